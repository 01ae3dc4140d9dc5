from __future__ import annotations

from dataclasses import dataclass, field

from .column_metadata import ColumnMetadata
from .save_result import FailurePolicy

"""Config dataclasses for the grid edit tracker.

Populated by gridtracker.config.loader from config/grid.yml after JSON schema
validation.
"""

DEFAULT_SAVE_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class SaveConfig:
    """Batch save behaviour."""
    timeout_seconds: float | None = DEFAULT_SAVE_TIMEOUT_SECONDS  # None = no per-call timeout
    failure_policy: FailurePolicy = FailurePolicy.RETAIN_ALL


@dataclass(frozen=True)
class GridConfig:
    """Root configuration object for one grid view."""
    entity: str  # Target entity / table name
    columns: dict[str, ColumnMetadata]  # Column name -> metadata
    id_column: str = "id"
    timezone: str = "UTC"  # naive datetime の解釈タイムゾーン
    save: SaveConfig = field(default_factory=SaveConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    keep_na_strings: list[str] | None = None  # pandas NA 変換から除外する文字列
    null_sentinels: set[str] = field(default_factory=lambda: {"NULL"})  # 値クリアを表す文字列 (大文字)
