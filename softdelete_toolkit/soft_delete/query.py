"""
Default query scope excluding soft-deleted rows.

Once installed on a session (class, sessionmaker or instance), every ORM
SELECT gets ``<marker> IS NULL`` added for each soft-deletable entity it
touches, including joined entities and aliases. Statements carrying the
``include_deleted`` execution option are left unfiltered.

Usage:
    QueryScopeFilter().install(SessionLocal)

    session.scalars(select(Article)).all()                  # active only
    session.scalars(with_deleted(select(Article))).all()    # everything
"""

import logging
from typing import Any, List, Optional, Type, TypeVar

from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, with_loader_criteria
from sqlalchemy.orm.exc import UnmappedColumnError
from sqlalchemy.sql import Executable

from ..config import SoftDeleteConfig, get_config
from .exceptions import MissingColumnError
from .mixins import SoftDeletable

logger = logging.getLogger(__name__)

StatementT = TypeVar("StatementT", bound=Executable)


def with_deleted(
    stmt: StatementT, config: Optional[SoftDeleteConfig] = None
) -> StatementT:
    """Mark a statement to include soft-deleted rows."""
    option = (config or get_config()).include_deleted_option
    return stmt.execution_options(**{option: True})  # type: ignore[return-value]


class QueryScopeFilter:
    """Adds the active-row criterion to ORM SELECT statements."""

    def __init__(self, config: Optional[SoftDeleteConfig] = None):
        self.config = config

    @property
    def option_name(self) -> str:
        return (self.config or get_config()).include_deleted_option

    def applies_to(self, orm_execute_state: ORMExecuteState) -> bool:
        """Whether the statement being executed should be filtered."""
        return (
            orm_execute_state.is_select
            and not orm_execute_state.is_column_load
            and not orm_execute_state.is_relationship_load
            and not orm_execute_state.execution_options.get(self.option_name, False)
        )

    def soft_deletable_classes(
        self, orm_execute_state: ORMExecuteState
    ) -> List[Type[SoftDeletable]]:
        """
        Soft-deletable classes the statement may load or join to.

        Every class of the registries behind the statement's entities is
        considered, so joined and relationship-loaded entities are covered.
        """
        classes = {
            mapper.class_
            for entity_mapper in orm_execute_state.all_mappers
            for mapper in entity_mapper.registry.mappers
            if issubclass(mapper.class_, SoftDeletable)
        }
        return sorted(classes, key=lambda cls: (cls.__module__, cls.__qualname__))

    def criterion_for(self, cls: Type[SoftDeletable]) -> Optional[Any]:
        """Active-row criterion of a class, or None if its marker is unmapped."""
        try:
            return cls.active_criterion(self.config)
        except (MissingColumnError, UnmappedColumnError):
            logger.debug(f"No mapped marker column on {cls.__name__}; not scoped")
            return None

    def __call__(self, orm_execute_state: ORMExecuteState) -> None:
        if not self.applies_to(orm_execute_state):
            return

        options = []
        for cls in self.soft_deletable_classes(orm_execute_state):
            criterion = self.criterion_for(cls)
            if criterion is not None:
                options.append(
                    with_loader_criteria(cls, criterion, include_aliases=True)
                )

        if options:
            orm_execute_state.statement = orm_execute_state.statement.options(
                *options
            )

    def install(self, target: Any) -> "QueryScopeFilter":
        """
        Listen for ORM executions on a Session class, sessionmaker or session.

        Returns:
            This filter, for chaining
        """
        if not event.contains(target, "do_orm_execute", self):
            event.listen(target, "do_orm_execute", self)
            logger.debug(f"Installed soft delete query filter on {target!r}")
        return self

    def remove(self, target: Any) -> None:
        if event.contains(target, "do_orm_execute", self):
            event.remove(target, "do_orm_execute", self)

    def is_installed(self, target: Any) -> bool:
        return event.contains(target, "do_orm_execute", self)
