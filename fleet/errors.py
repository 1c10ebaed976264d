"""
Error taxonomy for service records and spreadsheet imports.

Row-scoped errors reject a single row and never abort a batch.
File-scoped errors abort an import before any row is processed.
"""

from typing import Any, List


class ServiceRecordError(Exception):
    """Base class for all service record errors."""


class RowError(ServiceRecordError):
    """A validation failure isolated to one input row."""

    kind = "RowError"

    def __init__(self, message: str, raw_value: Any = None):
        super().__init__(message)
        self.raw_value = raw_value


class InvalidDateFormat(RowError):
    kind = "InvalidDateFormat"

    def __init__(self, raw_value: Any):
        super().__init__(f"Invalid date format: {raw_value!r}", raw_value)


class InvalidKilometerValue(RowError):
    kind = "InvalidKilometerValue"

    def __init__(self, raw_value: Any):
        super().__init__(f"Invalid kilometer value: {raw_value!r}", raw_value)


class KilometerOrderViolation(RowError):
    kind = "KilometerOrderViolation"

    def __init__(self, current_km: int, next_km: int):
        super().__init__(
            f"Next service km ({next_km:,}) must be greater than "
            f"current km ({current_km:,})",
            (current_km, next_km),
        )
        self.current_km = current_km
        self.next_km = next_km


class FileError(ServiceRecordError):
    """A failure that invalidates a whole uploaded file."""


class MissingRequiredColumns(FileError):
    def __init__(self, missing_columns: List[str]):
        super().__init__(f"Missing required columns: {', '.join(missing_columns)}")
        self.missing_columns = list(missing_columns)


class UnreadableFile(FileError):
    def __init__(self, path: Any, reason: str = ""):
        message = f"Unreadable file: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)
        self.path = path
