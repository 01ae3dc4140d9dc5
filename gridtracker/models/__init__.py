"""Domain models for the grid edit tracker.

Column metadata, raw/normalized values, save outcomes, configuration and the
structured error record used by the error log.
"""

from .column_metadata import ColumnDataType, ColumnMetadata, Selection
from .config_models import DatabaseConfig, GridConfig, SaveConfig
from .normalized_value import ErrorKind, NormalizedValue, RawEdit, Rejection
from .save_result import FailurePolicy, RecordOutcome, SaveOutcome, SaveState, UpdateOutcome

__all__ = [
    # Column metadata
    "ColumnDataType",
    "ColumnMetadata",
    "Selection",
    # Configuration models
    "DatabaseConfig",
    "GridConfig",
    "SaveConfig",
    # Edit pipeline
    "ErrorKind",
    "NormalizedValue",
    "RawEdit",
    "Rejection",
    # Save outcomes
    "FailurePolicy",
    "RecordOutcome",
    "SaveOutcome",
    "SaveState",
    "UpdateOutcome",
]
