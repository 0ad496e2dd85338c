"""Schema introspection for soft-deletable tables."""

import logging
from typing import Any, Dict, Optional, Set, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session

from .models import TableCapabilities, TableDescriptor

logger = logging.getLogger(__name__)

Bind = Union[Session, Connection, Engine]


class SchemaInspector:
    """
    Reports the live column set of a table.

    Reflection goes through a fresh SQLAlchemy inspector on every call, so
    schema changes made between operations are always observed.
    """

    def __init__(self, bind: Bind):
        self.bind = bind

    def _inspector(self) -> Any:
        if isinstance(self.bind, Session):
            # Use the session's connection so uncommitted DDL is visible
            return sa_inspect(self.bind.connection())
        return sa_inspect(self.bind)

    def describe(self, table_name: str) -> Dict[str, Dict[str, Any]]:
        """Return reflected column info keyed by column name."""
        columns = self._inspector().get_columns(table_name)
        return {column["name"]: column for column in columns}

    def column_names(self, table_name: str) -> Set[str]:
        return set(self.describe(table_name))

    def get_column(self, table_name: str, column_name: str) -> Optional[Dict[str, Any]]:
        """Return the column info, or None if the table lacks the column."""
        return self.describe(table_name).get(column_name)

    def capabilities(
        self, descriptor: TableDescriptor, status_flag_column: Optional[str]
    ) -> TableCapabilities:
        """
        Resolve the optional features of a table.

        Args:
            descriptor: Table to inspect
            status_flag_column: Name of the secondary deleted indicator, if any

        Returns:
            Capabilities of the table
        """
        has_status_flag = bool(status_flag_column) and (
            self.get_column(descriptor.table_name, str(status_flag_column)) is not None
        )
        logger.debug(
            f"Resolved capabilities for {descriptor.table_name}: "
            f"status_flag={has_status_flag}"
        )
        return TableCapabilities(has_status_flag=has_status_flag)
