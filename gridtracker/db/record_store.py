from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

import pandas as pd
import psycopg2
from psycopg2 import sql
from psycopg2.pool import ThreadedConnectionPool

from ..models.config_models import DatabaseConfig

"""PostgreSQL-backed record store.

Implements the ``update_record(entity, record_id, fields)`` capability consumed
by the save orchestrator:

- one UPDATE per record, in its own transaction (records are independent)
- blocking psycopg2 work runs in a worker thread (asyncio.to_thread) so the
  orchestrator's concurrent dispatch is not serialized on the event loop
- zero affected rows is a failure (record missing)
- callers beyond the pool size wait for a free connection instead of
  failing with "connection pool exhausted"

Identifiers are composed with psycopg2.sql, values are always parameters.
"""

__all__ = [
    "PostgresRecordStore",
    "RecordUpdateError",
    "resolve_dsn",
]

logger = logging.getLogger(__name__)


class RecordUpdateError(Exception):
    pass


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the connection string.

    接続情報の優先順位:
        1. DATABASE_URL / PGDSN (DSN 全体)
        2. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. config の database セクション (不足分のフォールバック)
    """
    dsn_env = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn_env:
        return dsn_env
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _table(entity: str) -> sql.Identifier:
    # "schema.table" 形式を許可
    return sql.Identifier(*entity.split("."))


class PostgresRecordStore:
    """Record-update capability over a psycopg2 connection pool."""

    def __init__(
        self,
        dsn: str | None = None,
        *,
        id_column: str = "id",
        minconn: int = 1,
        maxconn: int = 8,
        pool: Any = None,
    ) -> None:
        if pool is None and dsn is None:
            raise ValueError("either dsn or pool is required")
        self.id_column = id_column
        self._pool = pool if pool is not None else ThreadedConnectionPool(minconn, maxconn, dsn)
        # getconn() は空きが無いと PoolError になるため、接続数で待ち合わせる
        self._slots = threading.BoundedSemaphore(maxconn)

    @contextmanager
    def _connection(self) -> Iterator[Any]:
        with self._slots:
            conn = self._pool.getconn()
            try:
                yield conn
            finally:
                self._pool.putconn(conn)

    def build_update(self, entity: str, fields: Mapping[str, Any]) -> sql.Composed:
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in fields
        )
        return sql.SQL("UPDATE {table} SET {assignments} WHERE {id_col} = %s").format(
            table=_table(entity),
            assignments=assignments,
            id_col=sql.Identifier(self.id_column),
        )

    async def update_record(self, entity: str, record_id: str, fields: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self.update_record_sync, entity, record_id, fields)

    def update_record_sync(self, entity: str, record_id: str, fields: Mapping[str, Any]) -> None:
        if not fields:
            raise RecordUpdateError(f"no fields to update for record {record_id}")
        query = self.build_update(entity, fields)
        params = [*fields.values(), record_id]

        with self._connection() as conn:
            try:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    affected = cur.rowcount
            except psycopg2.Error as e:
                conn.rollback()
                raise RecordUpdateError(str(e).strip()) from e
            if affected == 0:
                conn.rollback()
                raise RecordUpdateError(f"record {record_id} not found in {entity}")
            conn.commit()
        logger.debug(f"updated {entity}/{record_id}: {list(fields)}")

    def fetch_records(self, entity: str, columns: Sequence[str] | None = None) -> pd.DataFrame:
        """Current rows of ``entity`` as a DataFrame (dataset refresh source)."""
        if columns:
            select = sql.SQL(", ").join(sql.Identifier(c) for c in columns)
        else:
            select = sql.SQL("*")
        query = sql.SQL("SELECT {cols} FROM {table} ORDER BY {id_col}").format(
            cols=select,
            table=_table(entity),
            id_col=sql.Identifier(self.id_column),
        )
        with self._connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query)
                rows = cur.fetchall()
                names = [d[0] for d in cur.description]
            conn.rollback()  # read-only transaction を閉じる
        return pd.DataFrame(rows, columns=names)

    async def fetch_records_async(self, entity: str, columns: Sequence[str] | None = None) -> pd.DataFrame:
        return await asyncio.to_thread(self.fetch_records, entity, columns)

    def close(self) -> None:
        self._pool.closeall()
