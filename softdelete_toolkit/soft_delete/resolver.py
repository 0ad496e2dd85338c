"""Resolution of the deletion marker column."""

from typing import Optional

from ..config import SoftDeleteConfig, get_config
from .exceptions import MissingColumnError
from .models import TableDescriptor
from .schema import SchemaInspector


class SoftDeleteFieldResolver:
    """
    Determines which column holds the deletion marker for a table.

    Uses the descriptor's configured field if present, otherwise the
    configured default name. Nothing is cached: the schema is checked on
    every call.
    """

    def __init__(
        self, inspector: SchemaInspector, config: Optional[SoftDeleteConfig] = None
    ):
        self.inspector = inspector
        self.config = config

    def resolve_field(self, descriptor: TableDescriptor) -> str:
        """
        Resolve the deletion marker column of a table.

        Args:
            descriptor: Table to resolve the field for

        Returns:
            Column name of the deletion marker

        Raises:
            MissingColumnError: The column is not part of the table's schema
        """
        config = self.config or get_config()
        field = descriptor.deletion_field or config.default_field_name

        if self.inspector.get_column(descriptor.table_name, field) is None:
            raise MissingColumnError(field, descriptor.table_name)

        return field
