from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .normalized_value import ErrorKind

"""Save outcome models.

The batch as a whole moves through ``SaveState``:
IDLE -> SAVING -> (SETTLED_SUCCESS | SETTLED_FAILURE) -> IDLE

Only the settled states are ever reported in a SaveOutcome; there is no
externally observable "partially settled" state.
"""

__all__ = [
    "FailurePolicy",
    "RecordOutcome",
    "SaveOutcome",
    "SaveState",
    "UpdateOutcome",
]


class SaveState(Enum):
    IDLE = "idle"
    SAVING = "saving"
    SETTLED_SUCCESS = "settled_success"
    SETTLED_FAILURE = "settled_failure"


class FailurePolicy(Enum):
    """What happens to the ChangeSet when some record updates fail.

    - RETAIN_ALL: keep every pending edit (coarse, at-least-once retry)
    - RETAIN_FAILED: drop the records whose update succeeded, keep the rest
    """
    RETAIN_ALL = "retain_all"
    RETAIN_FAILED = "retain_failed"


@dataclass(frozen=True)
class UpdateOutcome:
    """Optional structured return value of an ``update_record`` callable.

    Callables may also simply return (success) or raise (failure).
    """
    ok: bool
    reason: str | None = None


@dataclass(frozen=True)
class RecordOutcome:
    """Settled result of one per-record update call."""
    record_id: str
    ok: bool
    fields: tuple[str, ...] = ()
    reason: str | None = None
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class SaveOutcome:
    """Aggregate result of one batch save."""
    ok: bool
    state: SaveState
    operations: int = 0  # dispatched update calls
    records_updated: int = 0
    records: tuple[RecordOutcome, ...] = field(default_factory=tuple)
    error_kind: ErrorKind | None = None
    message: str | None = None
    elapsed_seconds: float = 0.0

    @property
    def failures(self) -> list[RecordOutcome]:
        return [r for r in self.records if not r.ok]

    @property
    def failed_records(self) -> int:
        return len(self.failures)
