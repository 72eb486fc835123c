"""
Exception hierarchy
===================

Two kinds of failure happen while loading a dataset:

- a *structural* failure stops ingestion of the whole file
  (unreadable file, missing header column, broken quoting), and
- a *row* failure only drops one row (bad ZIP, bad timestamp, bad number).

Queries never raise for missing data; they return a defined zero/omission
result instead.
"""

from typing import Optional


class CivstatError(Exception):
    """Base exception for all civstat errors."""

    def __init__(self, message: str = "", details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class StructuralError(CivstatError):
    """Raised when a whole file cannot be ingested."""
    pass


class TokenizerError(StructuralError):
    """Raised when the character stream breaks the quoted-field grammar."""

    def __init__(self, reason: str, line: int, column: int, row: int, field: int):
        super().__init__(
            message=f"{reason} at line {line}, column {column}, row {row}, field {field}",
            details={"reason": reason, "line": line, "column": column, "row": row, "field": field},
        )


class MissingColumnsError(StructuralError):
    """Raised when a header row lacks one or more required columns."""

    def __init__(self, missing):
        missing = list(missing)
        super().__init__(
            message=f"Missing required headers: {', '.join(missing)}",
            details={"missing": missing},
        )


class RowValidationError(CivstatError):
    """Raised when a single row cannot become a record. Loaders drop the row."""
    pass
