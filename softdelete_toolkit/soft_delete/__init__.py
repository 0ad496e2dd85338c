"""
Soft Delete Module - recoverable deletions on top of SQLAlchemy.

Provides the delete protocol, bulk operations, query scoping and mixins for
models whose deletes become timestamped updates.
"""

from .cascade import AssociationCascade, SavePath
from .events import EventDispatcher, RulesChecker
from .exceptions import InvalidArgumentError, MissingColumnError, SoftDeleteError
from .mixins import SoftDeletable, SoftDeleteMixin
from .models import (
    AFTER_DELETE,
    BEFORE_DELETE,
    DeleteOptions,
    DeletionEvent,
    Outcome,
    TableCapabilities,
    TableDescriptor,
)
from .orchestrator import DeletionOrchestrator
from .query import QueryScopeFilter, with_deleted
from .resolver import SoftDeleteFieldResolver
from .schema import SchemaInspector
from .services import BulkOperations, SoftDeleteService

__all__ = [
    # Mixins
    "SoftDeletable",
    "SoftDeleteMixin",
    # Services
    "DeletionOrchestrator",
    "BulkOperations",
    "SoftDeleteService",
    "QueryScopeFilter",
    "with_deleted",
    # Collaborators
    "SchemaInspector",
    "SoftDeleteFieldResolver",
    "AssociationCascade",
    "SavePath",
    "EventDispatcher",
    "RulesChecker",
    # Models
    "TableDescriptor",
    "TableCapabilities",
    "DeleteOptions",
    "DeletionEvent",
    "Outcome",
    "BEFORE_DELETE",
    "AFTER_DELETE",
    # Exceptions
    "SoftDeleteError",
    "MissingColumnError",
    "InvalidArgumentError",
]
