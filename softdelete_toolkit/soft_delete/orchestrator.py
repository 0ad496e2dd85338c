"""
Single-record soft delete protocol.

The orchestrator turns a logical delete into an UPDATE of the deletion
marker, after validating the record, checking rules, notifying listeners and
cascading to dependents.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, Type

from sqlalchemy import column as sa_column
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import table as sa_table
from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.exc import UnmappedColumnError
from sqlalchemy.sql.expression import TableClause

from ..config import RedeletePolicy, SoftDeleteConfig, get_config
from .cascade import AssociationCascade
from .events import EventDispatcher, RulesChecker
from .exceptions import InvalidArgumentError, MissingColumnError
from .models import (
    AFTER_DELETE,
    BEFORE_DELETE,
    DeleteOptions,
    TableCapabilities,
    TableDescriptor,
    utcnow,
)
from .resolver import SoftDeleteFieldResolver
from .schema import SchemaInspector

logger = logging.getLogger(__name__)


def mapped_key(model: Type[Any], column_name: str) -> Optional[str]:
    """Return the attribute name mapped to a column, or None if unmapped."""
    mapper = sa_inspect(model)
    column = mapper.local_table.c.get(column_name)

    if column is None:
        return None

    try:
        return mapper.get_property_by_column(column).key
    except UnmappedColumnError:
        return None


def attribute_key(model: Type[Any], column_name: str) -> str:
    """
    Return the mapped attribute name of a column of the model's table.

    Raises:
        MissingColumnError: The column is not mapped on the model
    """
    key = mapped_key(model, column_name)

    if key is None:
        raise MissingColumnError(column_name, sa_inspect(model).local_table.name)

    return key


def row_table(model: Type[Any], column_names: Iterable[str]) -> TableClause:
    """
    Lightweight table clause over the given columns of a model's table.

    Columns known to the model's metadata keep their type; columns only
    present in the live schema are untyped.
    """
    table = sa_inspect(model).local_table
    columns = [
        sa_column(name, table.c[name].type if name in table.c else None)
        for name in dict.fromkeys(column_names)
    ]
    return sa_table(table.name, *columns, schema=table.schema)


class DeletionOrchestrator:
    """
    Executes the full soft delete protocol for single records.

    Transactions belong to the caller: the orchestrator executes statements
    on the given session but never commits.
    """

    def __init__(
        self,
        session: Session,
        events: Optional[EventDispatcher] = None,
        rules: Optional[RulesChecker] = None,
        cascade: Optional[AssociationCascade] = None,
        inspector: Optional[SchemaInspector] = None,
        config: Optional[SoftDeleteConfig] = None,
        capabilities: Optional[Dict[str, TableCapabilities]] = None,
        clock: Callable[[], Any] = utcnow,
    ):
        """
        Initialize the orchestrator.

        Args:
            session: SQLAlchemy database session
            events: Dispatcher for before/after delete notifications
            rules: Domain rules checked when ``check_rules`` is set
            cascade: Association cascade for dependents
            inspector: Schema service; defaults to one bound to the session
            config: Configuration; the global configuration when omitted
            capabilities: Known table capabilities keyed by table name
            clock: Source of deletion timestamps
        """
        self.session = session
        self.config = config or get_config()
        self.events = events or EventDispatcher()
        self.rules = rules or RulesChecker()
        self.cascade = cascade or AssociationCascade(session, self.config)
        self.inspector = inspector or SchemaInspector(session)
        self.resolver = SoftDeleteFieldResolver(self.inspector, self.config)
        self.clock = clock
        self._capabilities: Dict[str, TableCapabilities] = dict(capabilities or {})

    def descriptor(self, model: Type[Any]) -> TableDescriptor:
        return TableDescriptor.for_model(
            model, actor_field=self.config.default_actor_field
        )

    def marker_values(
        self,
        model: Type[Any],
        descriptor: TableDescriptor,
        field: str,
        actor: Optional[str],
    ) -> Dict[str, Any]:
        """Column values stamping the marker, plus the actor when mapped."""
        values = {field: self.clock()}

        if descriptor.actor_field in sa_inspect(model).local_table.c:
            values[descriptor.actor_field] = actor

        return values

    def capabilities_for(self, descriptor: TableDescriptor) -> TableCapabilities:
        """Return the table's capabilities, resolving them on first use."""
        capabilities = self._capabilities.get(descriptor.table_name)
        if capabilities is None:
            capabilities = self.inspector.capabilities(
                descriptor, self.config.status_flag_column
            )
            self._capabilities[descriptor.table_name] = capabilities
        return capabilities

    def primary_key_values(
        self, record: Any, descriptor: TableDescriptor, action: str = "Deleting"
    ) -> Dict[str, Any]:
        """
        Primary key values of a record keyed by column name.

        Persisted records use their identity key, so expired attributes are
        never refreshed from the database.

        Raises:
            InvalidArgumentError: A primary key value is missing
        """
        state = sa_inspect(record)
        mapper = state.mapper

        if state.identity is not None:
            key_values = tuple(state.identity)
        else:
            key_values = tuple(
                state.dict.get(mapper.get_property_by_column(column).key)
                for column in mapper.primary_key
            )

        if any(value is None for value in key_values):
            raise InvalidArgumentError(
                f"{action} requires all primary key values.",
                table=descriptor.table_name,
            )

        return {
            column.name: value for column, value in zip(mapper.primary_key, key_values)
        }

    def primary_key_conditions(
        self, record: Any, descriptor: TableDescriptor, action: str = "Deleting"
    ) -> Tuple[Any, ...]:
        """
        Build equality conditions on every primary key attribute of a record.

        Raises:
            InvalidArgumentError: A primary key value is missing
        """
        model = type(record)
        key_values = self.primary_key_values(record, descriptor, action)
        return tuple(
            getattr(model, attribute_key(model, name)) == value
            for name, value in key_values.items()
        )

    def sync_record(self, record: Any, values: Dict[str, Any]) -> None:
        """Load written column values into the record as its committed state."""
        model = type(record)
        for name, value in values.items():
            key = mapped_key(model, name)
            if key is not None:
                set_committed_value(record, key, value)

    def soft_delete(
        self,
        record: Any,
        actor: Optional[str] = None,
        options: Optional[DeleteOptions] = None,
    ) -> Any:
        """
        Soft delete a single record.

        Args:
            record: Persisted mapped instance
            actor: Identity recorded in the actor column; None is allowed
            options: Delete options

        Returns:
            True when a row was marked; False when the record is new, a rule
            rejected it or no row matched; a listener-supplied result when a
            before-delete listener stopped the delete

        Raises:
            InvalidArgumentError: The record lacks primary key values
            MissingColumnError: The marker column is missing from the table
        """
        options = options or DeleteOptions()
        model = type(record)

        if not sa_inspect(record).has_identity:
            logger.debug(f"Skipping delete of unsaved {model.__name__}")
            return False

        descriptor = self.descriptor(model)
        key_values = self.primary_key_values(record, descriptor)

        if options.check_rules and not self.rules.check(
            record, RulesChecker.DELETE, options
        ):
            return False

        event = self.events.dispatch(BEFORE_DELETE, record, options)
        if event.is_stopped:
            return event.result

        self.cascade.cascade_delete(
            record,
            options,
            lambda item, cascade_options: self.soft_delete(
                item, actor=actor, options=cascade_options
            ),
        )

        field = self.resolver.resolve_field(descriptor)
        values = self.marker_values(model, descriptor, field, actor)

        flag_column = self.config.status_flag_column
        if flag_column and self.capabilities_for(descriptor).has_status_flag:
            values[flag_column] = self.config.status_flag_deleted_value

        row = row_table(model, [*key_values, *values])
        stmt = (
            update(row)
            .where(*(row.c[name] == value for name, value in key_values.items()))
            .values(values)
        )
        if self.config.redelete_policy == RedeletePolicy.IGNORE:
            stmt = stmt.where(row.c[field].is_(None))

        if self.session.autoflush:
            self.session.flush()

        result = self.session.execute(stmt)

        if result.rowcount <= 0:
            logger.warning(
                f"Soft delete of {model.__name__} affected no rows "
                f"(already gone or already deleted)"
            )
            return False

        self.sync_record(record, values)
        logger.info(
            f"Soft deleted {model.__name__} from {descriptor.table_name} "
            f"by {actor or 'unknown'}"
        )
        self.events.dispatch(AFTER_DELETE, record, options)

        return True
