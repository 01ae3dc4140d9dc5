from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from ..logging.error_log import ErrorLogBuffer
from ..metadata.resolver import ColumnMetadataResolver
from ..models.config_models import GridConfig, SaveConfig
from ..models.normalized_value import ErrorKind, NormalizedValue, Rejection
from ..models.save_result import RecordOutcome, SaveOutcome
from ..normalize.normalizer import ValueNormalizer
from .change_set import ChangeSet
from .clipboard import GridColumn, fill_range, parse_clipboard_text, smart_paste
from .orchestrator import Refresh, SaveOrchestrator, UpdateRecord

"""Host-facing grid control.

Wires the resolver, normalizer, ChangeSet and save orchestrator together and
exposes the lifecycle used by the editing surface:

- on_cell_change(record_id, column_name, raw_value): synchronous, never raises;
  rejected edits come back as a CellWarning (also pushed to ``on_warning``)
- on_save(): coroutine returning the aggregate SaveOutcome
- has_pending_changes() / pending_change_count(): dirty indicator state
- destroy(): drops pending edits and flushes the error log
"""

__all__ = [
    "CellEditResult",
    "CellWarning",
    "GridControl",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellWarning:
    """Non-blocking, per-cell message for the UI."""
    record_id: str
    column_name: str
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class CellEditResult:
    accepted: bool
    value: NormalizedValue | None = None
    warning: CellWarning | None = None


class GridControl:
    """One editable grid view bound to an entity and a record-update capability."""

    def __init__(
        self,
        resolver: ColumnMetadataResolver,
        update_record: UpdateRecord,
        *,
        entity: str,
        refresh: Refresh | None = None,
        normalizer: ValueNormalizer | None = None,
        save_config: SaveConfig | None = None,
        error_log: ErrorLogBuffer | None = None,
        on_warning: Callable[[CellWarning], None] | None = None,
        notify_output_changed: Callable[[], None] | None = None,
        on_settled: Callable[[RecordOutcome], None] | None = None,
    ) -> None:
        save_config = save_config or SaveConfig()
        self.entity = entity
        self.resolver = resolver
        self.normalizer = normalizer or ValueNormalizer()
        self.error_log = error_log
        self.on_warning = on_warning
        self.notify_output_changed = notify_output_changed
        self.change_set = ChangeSet()
        self.warnings: list[CellWarning] = []
        self.orchestrator = SaveOrchestrator(
            update_record,
            entity=entity,
            refresh=refresh,
            timeout_seconds=save_config.timeout_seconds,
            failure_policy=save_config.failure_policy,
            error_log=error_log,
            on_settled=on_settled,
        )

    @classmethod
    def from_config(
        cls,
        config: GridConfig,
        update_record: UpdateRecord,
        **kwargs: Any,
    ) -> GridControl:
        kwargs.setdefault("resolver", ColumnMetadataResolver(config.columns))
        return cls(
            update_record=update_record,
            entity=config.entity,
            normalizer=ValueNormalizer(config.timezone),
            save_config=config.save,
            **kwargs,
        )

    # ---- editing surface -------------------------------------------------

    def on_cell_change(self, record_id: str, column_name: str, raw_value: Any) -> CellEditResult:
        """Normalize and record one cell edit. Never raises."""
        try:
            return self._apply_cell_change(str(record_id), column_name, raw_value)
        except Exception as e:
            logger.exception(f"cell change {record_id}/{column_name} failed")
            warning = self._warn(str(record_id), column_name, ErrorKind.NORMALIZATION_REJECTED, f"unexpected error: {e}")
            return CellEditResult(accepted=False, warning=warning)

    def _apply_cell_change(self, record_id: str, column_name: str, raw_value: Any) -> CellEditResult:
        column = self.resolver.resolve(column_name)
        degraded: CellWarning | None = None
        if column is None:
            degraded = self._warn(
                record_id, column_name, ErrorKind.METADATA_UNAVAILABLE,
                "column metadata unavailable; value kept as text",
            )

        result = self.normalizer.normalize(raw_value, column)
        if isinstance(result, Rejection):
            warning = self._warn(record_id, column_name, ErrorKind.NORMALIZATION_REJECTED, result.reason)
            return CellEditResult(accepted=False, warning=warning)
        if result.is_unsupported:
            warning = self._warn(record_id, column_name, ErrorKind.UNSUPPORTED_COLUMN, result.reason or "unsupported column")
            return CellEditResult(accepted=False, warning=warning)

        self.change_set.record(record_id, column_name, result)
        logger.debug(f"pending {record_id}/{column_name} = {result.value!r}")
        accepted = CellEditResult(accepted=True, value=result, warning=degraded)
        self._notify()
        return accepted

    def on_paste(
        self,
        record_ids: Sequence[str],
        clipboard_text: str,
        columns: Sequence[GridColumn],
        start_row: int = 0,
        start_col: int = 0,
    ) -> list[CellEditResult]:
        """Apply tab-separated clipboard text starting at (start_row, start_col).

        ``record_ids`` are the record ids in display order. Pasted rows beyond
        the last record are ignored.
        """
        cells = parse_clipboard_text(clipboard_text)
        results: list[CellEditResult] = []
        for update in smart_paste(cells, columns, start_row, start_col):
            if update.row_index >= len(record_ids):
                continue
            results.append(self.on_cell_change(record_ids[update.row_index], update.column_name, update.value))
        return results

    def on_fill(
        self,
        record_ids: Sequence[str],
        column_name: str,
        anchor_row: int,
        target_row: int,
        value: Any,
    ) -> list[CellEditResult]:
        """Copy ``value`` (the anchor cell) into every row between anchor and target."""
        results: list[CellEditResult] = []
        for row in fill_range(anchor_row, target_row):
            if 0 <= row < len(record_ids):
                results.append(self.on_cell_change(record_ids[row], column_name, value))
        return results

    # ---- save ------------------------------------------------------------

    async def on_save(self) -> SaveOutcome:
        outcome = await self.orchestrator.save(self.change_set)
        if outcome.operations:
            self._notify()
        return outcome

    # ---- state for UI indicators ------------------------------------------

    def has_pending_changes(self) -> bool:
        return self.change_set.size() > 0

    def pending_change_count(self) -> int:
        return self.change_set.size()

    def changed_cell_count(self) -> int:
        return self.change_set.cell_count()

    def is_cell_changed(self, record_id: str, column_name: str) -> bool:
        return self.change_set.has_cell(record_id, column_name)

    def is_column_editable(self, column_name: str) -> bool:
        return self.normalizer.is_editable(self.resolver.resolve(column_name))

    def pending_changes(self) -> dict[str, dict[str, Any]]:
        """Plain ``{record_id: {column: value}}`` view of the ChangeSet."""
        return {record_id: self.change_set.payload(record_id) for record_id in self.change_set}

    def destroy(self) -> None:
        """Control teardown: pending edits are dropped."""
        if self.change_set.size():
            logger.info(f"destroy: discarding {self.change_set.size()} pending record(s)")
        self.change_set.clear()
        if self.error_log is not None:
            self.error_log.flush()

    # ---- helpers ---------------------------------------------------------

    def _warn(self, record_id: str, column_name: str, kind: ErrorKind, message: str) -> CellWarning:
        warning = CellWarning(record_id=record_id, column_name=column_name, kind=kind, message=message)
        self.warnings.append(warning)
        logger.warning(f"{kind.value} {record_id}/{column_name}: {message}")
        # UI コールバックの例外はセル編集の境界を越えさせない
        try:
            if self.error_log is not None:
                self.error_log.add(self.entity, record_id, column_name, kind, message)
            if self.on_warning is not None:
                self.on_warning(warning)
        except Exception:
            logger.exception(f"warning callback failed for {record_id}/{column_name}")
        return warning

    def _notify(self) -> None:
        if self.notify_output_changed is None:
            return
        try:
            self.notify_output_changed()
        except Exception:
            logger.exception("notify_output_changed callback failed")
