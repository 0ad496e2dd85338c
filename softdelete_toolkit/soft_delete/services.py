"""
Service layer for soft delete operations.

``BulkOperations`` holds the set-oriented operations (bulk soft delete,
purge, restore) and ``SoftDeleteService`` ties every piece together for one
mapped class.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence, Type, Union

from sqlalchemy import Select, delete, select, update
from sqlalchemy.orm import Session

from ..config import RedeletePolicy, SoftDeleteConfig, get_config
from .cascade import AssociationCascade, SavePath
from .events import EventDispatcher, Listener, Rule, RulesChecker
from .models import DeleteOptions, TableCapabilities
from .orchestrator import DeletionOrchestrator, attribute_key

logger = logging.getLogger(__name__)

Conditions = Union[Mapping[str, Any], Sequence[Any]]


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class BulkOperations:
    """
    Set-oriented soft delete operations.

    None of these dispatch per-record events or check rules, except
    ``hard_delete`` which runs the full single-record protocol first.
    """

    def __init__(
        self,
        orchestrator: DeletionOrchestrator,
        save_path: Optional[SavePath] = None,
    ):
        self.orchestrator = orchestrator
        self.session = orchestrator.session
        self.save_path = save_path or SavePath(orchestrator.session)

    @property
    def config(self) -> SoftDeleteConfig:
        return self.orchestrator.config

    def _marker_attribute(self, model: Type[Any]) -> Any:
        descriptor = self.orchestrator.descriptor(model)
        field = self.orchestrator.resolver.resolve_field(descriptor)
        return getattr(model, attribute_key(model, field))

    def soft_delete_all(
        self, model: Type[Any], conditions: Conditions, actor: Optional[str] = None
    ) -> int:
        """
        Soft delete every row matching the conditions with one UPDATE.

        Args:
            model: Mapped class
            conditions: Attribute equalities, or a sequence of SQL criteria
            actor: Identity recorded in the actor column

        Returns:
            Number of affected rows
        """
        descriptor = self.orchestrator.descriptor(model)
        field = self.orchestrator.resolver.resolve_field(descriptor)
        values = self.orchestrator.marker_values(model, descriptor, field, actor)

        stmt = update(model).values(
            {attribute_key(model, name): value for name, value in values.items()}
        )
        if isinstance(conditions, Mapping):
            stmt = stmt.filter_by(**conditions)
        else:
            stmt = stmt.where(*conditions)

        if self.config.redelete_policy == RedeletePolicy.IGNORE:
            stmt = stmt.where(getattr(model, attribute_key(model, field)).is_(None))

        count = self.session.execute(stmt).rowcount
        logger.info(f"Soft deleted {count} rows from {descriptor.table_name}")
        return count

    def hard_delete(
        self,
        record: Any,
        actor: Optional[str] = None,
        options: Optional[DeleteOptions] = None,
    ) -> bool:
        """
        Soft delete a record, then physically remove its row.

        The row is only removed when the soft delete succeeds.
        """
        if not self.orchestrator.soft_delete(record, actor=actor, options=options):
            return False

        model = type(record)
        descriptor = self.orchestrator.descriptor(model)
        conditions = self.orchestrator.primary_key_conditions(record, descriptor)

        result = self.session.execute(delete(model).where(*conditions))
        success = result.rowcount > 0

        if success:
            logger.info(f"Hard deleted {model.__name__} from {descriptor.table_name}")
        return success

    def hard_delete_all_before(self, model: Type[Any], cutoff: datetime) -> int:
        """
        Purge rows soft deleted at or before a cutoff.

        Args:
            model: Mapped class
            cutoff: Rows whose marker is <= this moment are removed

        Returns:
            Number of removed rows
        """
        marker = self._marker_attribute(model)
        stmt = delete(model).where(marker.is_not(None), marker <= _naive_utc(cutoff))

        count = self.session.execute(stmt).rowcount
        logger.info(
            f"Purged {count} {model.__name__} rows soft deleted before {cutoff}"
        )
        return count

    def restore(self, record: Any) -> bool:
        """
        Return a soft-deleted record to the active state.

        Clears the marker and persists the record through the save path.

        Raises:
            InvalidArgumentError: The record lacks primary key values
            MissingColumnError: The marker column is missing from the table
        """
        model = type(record)
        descriptor = self.orchestrator.descriptor(model)
        self.orchestrator.primary_key_values(record, descriptor, action="Restoring")

        field = self.orchestrator.resolver.resolve_field(descriptor)
        setattr(record, attribute_key(model, field), None)

        return self.save_path.save(record)


class SoftDeleteService:
    """
    Soft delete facade for one mapped class.

    Usage:
        service = SoftDeleteService(Article, session)
        service.on("before_delete", listener)
        service.delete(article, actor="alice")
        service.restore(article)
        session.commit()
    """

    def __init__(
        self,
        model: Type[Any],
        session: Session,
        events: Optional[EventDispatcher] = None,
        rules: Optional[RulesChecker] = None,
        config: Optional[SoftDeleteConfig] = None,
        capabilities: Optional[Dict[str, TableCapabilities]] = None,
    ):
        """
        Initialize the service.

        Args:
            model: Mapped soft-deletable class
            session: SQLAlchemy database session
            events: Event dispatcher shared with other services, if any
            rules: Rules checker shared with other services, if any
            config: Configuration; the global configuration when omitted
            capabilities: Known table capabilities keyed by table name
        """
        self.model = model
        self.session = session
        self.events = events or EventDispatcher()
        self.rules = rules or RulesChecker()
        config = config or get_config()
        self.orchestrator = DeletionOrchestrator(
            session,
            events=self.events,
            rules=self.rules,
            cascade=AssociationCascade(session, config),
            config=config,
            capabilities=capabilities,
        )
        self.bulk = BulkOperations(self.orchestrator, SavePath(session, self.rules))

    @property
    def config(self) -> SoftDeleteConfig:
        return self.orchestrator.config

    def on(self, event_name: str, listener: Listener) -> Listener:
        return self.events.on(event_name, listener)

    def add_rule(self, rule: Rule, operation: str = RulesChecker.DELETE) -> Rule:
        return self.rules.add(rule, operation)

    def get_soft_delete_field(self) -> str:
        return self.orchestrator.resolver.resolve_field(
            self.orchestrator.descriptor(self.model)
        )

    def delete(
        self,
        record: Any,
        actor: Optional[str] = None,
        check_rules: bool = True,
        **extra: Any,
    ) -> Any:
        """Soft delete a record. See ``DeletionOrchestrator.soft_delete``."""
        options = DeleteOptions(check_rules=check_rules, extra=extra)
        return self.orchestrator.soft_delete(record, actor=actor, options=options)

    def delete_all(self, conditions: Conditions, actor: Optional[str] = None) -> int:
        return self.bulk.soft_delete_all(self.model, conditions, actor=actor)

    def hard_delete(
        self, record: Any, actor: Optional[str] = None, check_rules: bool = True
    ) -> bool:
        return self.bulk.hard_delete(
            record, actor=actor, options=DeleteOptions(check_rules=check_rules)
        )

    def hard_delete_all(self, until: datetime) -> int:
        return self.bulk.hard_delete_all_before(self.model, until)

    def restore(self, record: Any) -> bool:
        return self.bulk.restore(record)

    def query(
        self, include_deleted: bool = False, only_deleted: bool = False
    ) -> Select[Any]:
        """
        Select records of the model.

        Active records only by default, provided the query filter is
        installed on the session.

        Args:
            include_deleted: Also return soft-deleted records
            only_deleted: Return soft-deleted records only
        """
        stmt = select(self.model)

        if include_deleted or only_deleted:
            stmt = stmt.execution_options(**{self.config.include_deleted_option: True})

        if only_deleted:
            stmt = stmt.where(self._marker().is_not(None))

        return stmt

    def _marker(self) -> Any:
        return self.bulk._marker_attribute(self.model)
