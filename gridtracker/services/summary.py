from __future__ import annotations

from ..models.save_result import SaveOutcome

"""SUMMARY line rendering for a batch save.

Format:
SUMMARY records={operations} updated={updated} failed={failed}
rejected_cells={rejected} elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Format very small numbers to avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(outcome: SaveOutcome, rejected_cells: int = 0) -> str:
    """Render a SUMMARY line from a SaveOutcome.

    Examples:
        >>> from gridtracker.models.save_result import SaveOutcome, SaveState
        >>> outcome = SaveOutcome(ok=True, state=SaveState.SETTLED_SUCCESS,
        ...                       operations=2, records_updated=2, elapsed_seconds=0.5)
        >>> render_summary_line(outcome)
        'SUMMARY records=2 updated=2 failed=0 rejected_cells=0 elapsed_sec=0.5'
    """
    return (
        f"SUMMARY records={outcome.operations} "
        f"updated={outcome.records_updated} "
        f"failed={outcome.failed_records} "
        f"rejected_cells={rejected_cells} "
        f"elapsed_sec={_format_seconds(outcome.elapsed_seconds)}"
    )
