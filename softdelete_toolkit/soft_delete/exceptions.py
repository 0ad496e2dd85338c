"""Exceptions for soft delete operations."""

from typing import Optional


class SoftDeleteError(Exception):
    """Base exception for soft delete operations."""

    def __init__(self, message: str, table: Optional[str] = None):
        self.table = table
        super().__init__(message)


class MissingColumnError(SoftDeleteError):
    """Raised when the deletion marker column is missing from the table schema."""

    def __init__(self, column: str, table: str):
        self.column = column
        super().__init__(
            f"Configured field `{column}` is missing from the table `{table}`.",
            table=table,
        )


class InvalidArgumentError(SoftDeleteError, ValueError):
    """Raised when a record lacks one or more primary key values."""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message, table=table)
