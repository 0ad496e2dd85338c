"""
SoftDelete Toolkit - recoverable deletions for SQLAlchemy models.

Instead of physically removing rows, deletes stamp a deletion timestamp and
the identity of the actor onto the row. Soft-deleted rows are hidden from
queries by default, can be restored, and can later be purged for good.

Key Features
------------
* **Delete protocol**: rules checking, cancellable before/after notifications,
  cascading to dependents, then a single primary-key UPDATE
* **Bulk operations**: set-oriented soft delete, purge by cutoff date, restore
* **Query scoping**: soft-deleted rows excluded from every ORM SELECT unless
  explicitly requested
* **CLI**: schema inspection and purging from the command line

Quick Start
-----------
>>> from softdelete_toolkit import QueryScopeFilter, SoftDeleteMixin, SoftDeleteService
>>>
>>> class Article(Base, SoftDeleteMixin):
...     __tablename__ = "articles"
...     id = Column(Integer, primary_key=True)
>>>
>>> QueryScopeFilter().install(SessionLocal)
>>> service = SoftDeleteService(Article, session)
>>> service.delete(article, actor="alice")
True
>>> session.commit()
"""

__version__ = "1.0.0"

from .config import SoftDeleteConfig, configure, get_config, set_config
from .soft_delete import (
    BulkOperations,
    DeletionOrchestrator,
    InvalidArgumentError,
    MissingColumnError,
    QueryScopeFilter,
    SoftDeletable,
    SoftDeleteError,
    SoftDeleteMixin,
    SoftDeleteService,
    with_deleted,
)

__all__ = [
    # Soft Delete
    "SoftDeletable",
    "SoftDeleteMixin",
    "SoftDeleteService",
    "DeletionOrchestrator",
    "BulkOperations",
    "QueryScopeFilter",
    "with_deleted",
    # Exceptions
    "SoftDeleteError",
    "MissingColumnError",
    "InvalidArgumentError",
    # Configuration
    "SoftDeleteConfig",
    "get_config",
    "set_config",
    "configure",
]
