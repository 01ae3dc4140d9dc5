from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.save_result import RecordOutcome

"""Save progress display with tqdm (TTY only).

One tick per settled record update. In non-TTY environments (CI, pipes) the
bar is disabled to avoid ANSI control sequence spam; counters still update.
"""

__all__ = [
    "SaveProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """True if stdout is a TTY and progress should be displayed."""
    return sys.stdout.isatty()


class SaveProgress:
    """Progress bar over the record updates of one batch save.

    Pass ``advance`` as the orchestrator's ``on_settled`` callback.
    """

    def __init__(self, total_records: int, *, description: str = "Saving records") -> None:
        self.total_records = total_records
        self.description = description
        self.succeeded = 0
        self.failed = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_records,
                desc=description,
                unit="record",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, outcome: RecordOutcome) -> None:
        if outcome.ok:
            self.succeeded += 1
        else:
            self.failed += 1
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_postfix(ok=self.succeeded, failed=self.failed)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> SaveProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
