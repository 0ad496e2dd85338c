"""Association cascade and save path used by the delete protocol."""

import logging
from typing import Any, Callable, List, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from ..config import SoftDeleteConfig
from .events import RulesChecker
from .mixins import SoftDeletable
from .models import DeleteOptions

logger = logging.getLogger(__name__)


class AssociationCascade:
    """
    Deletes the dependents of a record.

    Relationships listed in the model's ``__soft_delete_cascade__`` are
    followed. Soft-deletable dependents go through ``soft_delete`` (which
    recurses into their own dependents); any other dependent row is removed
    with ``Session.delete``.
    """

    def __init__(self, session: Session, config: Optional[SoftDeleteConfig] = None):
        self.session = session
        self.config = config

    def dependents(self, record: Any) -> List[Any]:
        """Return the loaded dependents of a record, in declaration order."""
        items: List[Any] = []

        for relationship_name in getattr(type(record), "__soft_delete_cascade__", ()):
            related = getattr(record, relationship_name)

            if related is None:
                continue

            if sa_inspect(related, raiseerr=False) is not None:
                items.append(related)
            else:
                # Collections, including dynamic relationship queries
                items.extend(related)

        return items

    def cascade_delete(
        self,
        record: Any,
        options: DeleteOptions,
        soft_delete: Callable[[Any, DeleteOptions], Any],
    ) -> int:
        """
        Delete every dependent of a record.

        Args:
            record: Parent record
            options: Options of the parent delete; ``primary`` is disabled
            soft_delete: Callable running the delete protocol on a dependent

        Returns:
            Number of dependents processed
        """
        cascade_options = options.for_cascade()
        count = 0

        for item in self.dependents(record):
            if isinstance(item, SoftDeletable):
                if item.is_soft_deleted(self.config):
                    continue
                soft_delete(item, cascade_options)
            else:
                self.session.delete(item)
            count += 1

        if count:
            # Dependents must reach the database before the parent is marked
            self.session.flush()
            logger.debug(
                f"Cascaded delete of {record.__class__.__name__} to {count} dependents"
            )

        return count


class SavePath:
    """Normal persistence path: re-validates and flushes a record."""

    def __init__(self, session: Session, rules: Optional[RulesChecker] = None):
        self.session = session
        self.rules = rules

    def save(self, record: Any) -> bool:
        if self.rules is not None and not self.rules.check(record, RulesChecker.SAVE):
            return False

        self.session.add(record)
        self.session.flush()
        return True
