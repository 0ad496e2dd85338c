"""
SQLAlchemy mixins for soft delete functionality.

``SoftDeletable`` marks a mapped class as soft-deletable and exposes the
criteria used by the query filter. ``SoftDeleteMixin`` additionally declares
the conventional ``deleted`` / ``deleted_by`` columns.
"""

from datetime import datetime
from typing import Any, ClassVar, Optional, Sequence

from sqlalchemy import DateTime, Select, String, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from ..config import SoftDeleteConfig, get_config
from .exceptions import MissingColumnError


class SoftDeletable:
    """
    Marker mixin for models whose deletes become updates.

    Class attributes:
        __soft_delete_field__: Marker column; the configured default when None
        __soft_delete_actor_field__: Actor column; the configured default when None
        __soft_delete_cascade__: Relationship names deleted along with the record

    Usage:
        class Order(Base, SoftDeletable):
            __tablename__ = 'orders'
            __soft_delete_field__ = 'removed_at'
            __soft_delete_cascade__ = ['lines']

            id = Column(Integer, primary_key=True)
            removed_at = Column(DateTime)
            deleted_by = Column(String(100))
    """

    __soft_delete_field__: ClassVar[Optional[str]] = None
    __soft_delete_actor_field__: ClassVar[Optional[str]] = None
    __soft_delete_cascade__: ClassVar[Sequence[str]] = ()

    @classmethod
    def soft_delete_field(cls, config: Optional[SoftDeleteConfig] = None) -> str:
        """
        Return the marker column name of the mapped table.

        Args:
            config: Configuration supplying the default name; the global
                configuration when omitted

        Raises:
            MissingColumnError: The mapped table has no such column
        """
        field = (
            cls.__soft_delete_field__ or (config or get_config()).default_field_name
        )
        table = sa_inspect(cls).local_table

        if field not in table.c:
            raise MissingColumnError(field, table.name)

        return field

    @classmethod
    def soft_delete_attribute(cls, config: Optional[SoftDeleteConfig] = None) -> Any:
        """Return the instrumented attribute mapped to the marker column."""
        mapper = sa_inspect(cls)
        column = mapper.local_table.c[cls.soft_delete_field(config)]
        return getattr(cls, mapper.get_property_by_column(column).key)

    @classmethod
    def active_criterion(
        cls, config: Optional[SoftDeleteConfig] = None
    ) -> ColumnElement[bool]:
        return cls.soft_delete_attribute(config).is_(None)

    @classmethod
    def deleted_criterion(
        cls, config: Optional[SoftDeleteConfig] = None
    ) -> ColumnElement[bool]:
        return cls.soft_delete_attribute(config).is_not(None)

    def is_soft_deleted(self, config: Optional[SoftDeleteConfig] = None) -> bool:
        key = type(self).soft_delete_attribute(config).key
        return getattr(self, key) is not None

    @property
    def is_deleted(self) -> bool:
        return self.is_soft_deleted()

    @classmethod
    def query_active(cls, config: Optional[SoftDeleteConfig] = None) -> Select[Any]:
        """Select active (non-deleted) records only."""
        return select(cls).where(cls.active_criterion(config))

    @classmethod
    def query_deleted(cls, config: Optional[SoftDeleteConfig] = None) -> Select[Any]:
        """Select soft-deleted records only."""
        config = config or get_config()
        return (
            select(cls)
            .where(cls.deleted_criterion(config))
            .execution_options(**{config.include_deleted_option: True})
        )

    @classmethod
    def query_all(cls, config: Optional[SoftDeleteConfig] = None) -> Select[Any]:
        """Select all records, including soft-deleted ones."""
        option = (config or get_config()).include_deleted_option
        return select(cls).execution_options(**{option: True})


class SoftDeleteMixin(SoftDeletable):
    """
    Soft-deletable mixin declaring the conventional marker and actor columns.

    Usage:
        class Article(Base, SoftDeleteMixin):
            __tablename__ = 'articles'
            id = Column(Integer, primary_key=True)
            title = Column(String)
    """

    deleted: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, index=True
    )
    deleted_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
