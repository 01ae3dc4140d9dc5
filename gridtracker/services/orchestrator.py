from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from ..logging.error_log import ErrorLogBuffer
from ..models.normalized_value import ErrorKind, NormalizedValue
from ..models.save_result import (
    FailurePolicy,
    RecordOutcome,
    SaveOutcome,
    SaveState,
    UpdateOutcome,
)
from .change_set import ChangeSet

"""Batch save orchestration.

Turns a ChangeSet into one ``update_record(entity, record_id, fields)`` call per
pending record, dispatched concurrently (fan-out) and joined (fan-in) before the
batch outcome is decided:

1. empty ChangeSet -> success, zero operations, no remote calls
2. snapshot via drain(); one call per record carrying only that record's columns
3. wait for every call to settle (a failure does not cancel the others)
4. all succeeded -> clear the ChangeSet, refresh the dataset once, success
5. any failed -> aggregate failure; under RETAIN_ALL the ChangeSet is untouched
   (records that did succeed are re-sent on the next save: at-least-once)

No automatic retry. Each call is bounded by ``timeout_seconds`` (None disables);
cancelling the save cancels every in-flight call and leaves the ChangeSet as is.
"""

__all__ = [
    "Refresh",
    "SaveOrchestrator",
    "UpdateRecord",
    "save_changes",
]

logger = logging.getLogger(__name__)

UpdateRecord = Callable[[str, str, dict[str, Any]], Awaitable[Any]]
Refresh = Callable[[], Any]


class SaveOrchestrator:
    """Drains a ChangeSet into concurrent record updates and reconciles the result."""

    def __init__(
        self,
        update_record: UpdateRecord,
        *,
        entity: str,
        refresh: Refresh | None = None,
        timeout_seconds: float | None = 30.0,
        failure_policy: FailurePolicy = FailurePolicy.RETAIN_ALL,
        error_log: ErrorLogBuffer | None = None,
        on_settled: Callable[[RecordOutcome], None] | None = None,
    ) -> None:
        self._update_record = update_record
        self.entity = entity
        self._refresh = refresh
        self.timeout_seconds = timeout_seconds
        self.failure_policy = failure_policy
        self.error_log = error_log
        self.on_settled = on_settled
        self.state = SaveState.IDLE

    @property
    def is_saving(self) -> bool:
        return self.state is SaveState.SAVING

    async def save(self, change_set: ChangeSet) -> SaveOutcome:
        """Save every pending record of ``change_set`` and reconcile the outcome."""
        if self.state is SaveState.SAVING:
            logger.warning("save requested while another save is in flight; ignored")
            return SaveOutcome(
                ok=False,
                state=SaveState.SETTLED_FAILURE,
                error_kind=ErrorKind.SAVE_IN_PROGRESS,
                message="a save is already in progress",
            )

        if change_set.size() == 0:
            logger.info("save: no pending changes")
            return SaveOutcome(ok=True, state=SaveState.SETTLED_SUCCESS, operations=0)

        start = time.perf_counter()
        snapshot = change_set.drain()
        revision = change_set.revision
        logger.info(f"save: dispatching {len(snapshot)} record update(s) to '{self.entity}'")

        self.state = SaveState.SAVING
        try:
            outcomes: list[RecordOutcome] = await asyncio.gather(
                *(self._update_one(record_id, cols) for record_id, cols in snapshot)
            )
        finally:
            # 成功/失敗/キャンセルいずれでも Idle に戻す
            self.state = SaveState.IDLE
        elapsed = time.perf_counter() - start

        failures = [o for o in outcomes if not o.ok]
        succeeded = [entry for entry, o in zip(snapshot, outcomes) if o.ok]

        if not failures:
            if change_set.revision == revision:
                change_set.clear()
            else:
                # save 中に入った編集は残す
                change_set.discard(snapshot)
                logger.info(f"save: {change_set.size()} record(s) edited during save remain pending")
            await self._run_refresh()
            logger.info(f"save: {len(outcomes)} record(s) updated in {elapsed:.3f}s")
            return SaveOutcome(
                ok=True,
                state=SaveState.SETTLED_SUCCESS,
                operations=len(outcomes),
                records_updated=len(outcomes),
                records=tuple(outcomes),
                elapsed_seconds=elapsed,
            )

        for failure in failures:
            logger.error(f"save: record {failure.record_id} failed: {failure.reason}")
            if self.error_log is not None:
                self.error_log.add(
                    self.entity,
                    failure.record_id,
                    "",
                    ErrorKind.REMOTE_UPDATE_FAILED,
                    failure.reason or "update failed",
                )

        if self.failure_policy is FailurePolicy.RETAIN_FAILED and succeeded:
            change_set.discard(succeeded)
            retained = "failed records retained"
        else:
            retained = "all pending changes retained"

        message = (
            f"{len(failures)} of {len(outcomes)} record update(s) failed "
            f"({retained}): {failures[0].reason}"
        )
        return SaveOutcome(
            ok=False,
            state=SaveState.SETTLED_FAILURE,
            operations=len(outcomes),
            records_updated=len(succeeded),
            records=tuple(outcomes),
            error_kind=ErrorKind.REMOTE_UPDATE_FAILED,
            message=message,
            elapsed_seconds=elapsed,
        )

    async def _update_one(self, record_id: str, cols: dict[str, NormalizedValue]) -> RecordOutcome:
        payload = {name: value.value for name, value in cols.items()}
        fields = tuple(payload)
        started = time.perf_counter()
        logger.debug(f"update {self.entity}/{record_id}: {payload}")
        try:
            call = self._update_record(self.entity, record_id, payload)
            if self.timeout_seconds is not None:
                result = await asyncio.wait_for(call, self.timeout_seconds)
            else:
                result = await call
        except TimeoutError:
            outcome = RecordOutcome(
                record_id, False, fields,
                reason=f"timed out after {self.timeout_seconds}s",
                elapsed_seconds=time.perf_counter() - started,
            )
        except Exception as e:
            outcome = RecordOutcome(
                record_id, False, fields,
                reason=str(e) or type(e).__name__,
                elapsed_seconds=time.perf_counter() - started,
            )
        else:
            elapsed = time.perf_counter() - started
            if isinstance(result, UpdateOutcome) and not result.ok:
                outcome = RecordOutcome(record_id, False, fields, reason=result.reason or "update rejected", elapsed_seconds=elapsed)
            else:
                outcome = RecordOutcome(record_id, True, fields, elapsed_seconds=elapsed)

        if self.on_settled is not None:
            self.on_settled(outcome)
        return outcome

    async def _run_refresh(self) -> None:
        if self._refresh is None:
            return
        try:
            result = self._refresh()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # 保存自体は成功済み。表示更新の失敗は警告のみ
            logger.warning(f"save: dataset refresh failed: {e}")


async def save_changes(
    change_set: ChangeSet,
    update_record: UpdateRecord,
    *,
    entity: str,
    refresh: Refresh | None = None,
    timeout_seconds: float | None = 30.0,
    failure_policy: FailurePolicy = FailurePolicy.RETAIN_ALL,
) -> SaveOutcome:
    """One-shot save without keeping an orchestrator around."""
    orchestrator = SaveOrchestrator(
        update_record,
        entity=entity,
        refresh=refresh,
        timeout_seconds=timeout_seconds,
        failure_policy=failure_policy,
    )
    return await orchestrator.save(change_set)
