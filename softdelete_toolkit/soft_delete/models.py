"""
Data models for soft delete operations.

These models describe the tables being soft deleted, the options flowing
through a delete, and the notifications dispatched around it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import inspect as sa_inspect

BEFORE_DELETE = "before_delete"
AFTER_DELETE = "after_delete"


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the way it is stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TableDescriptor(BaseModel):
    """Identifies the table behind a soft-deletable model."""

    model_config = ConfigDict(frozen=True)

    table_name: str = Field(..., description="Backing table name", min_length=1)
    primary_key: Tuple[str, ...] = Field(
        ..., description="Primary key column names", min_length=1
    )
    deletion_field: Optional[str] = Field(
        None, description="Configured deletion marker column, if any"
    )
    actor_field: str = Field(
        "deleted_by", description="Column recording who deleted the row"
    )

    @field_validator("deletion_field")
    @classmethod
    def validate_deletion_field(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank field names as unconfigured."""
        if v is not None and not v.strip():
            return None
        return v

    @classmethod
    def for_model(
        cls, model: Type[Any], actor_field: Optional[str] = None
    ) -> "TableDescriptor":
        """
        Build a descriptor from a mapped class.

        Args:
            model: SQLAlchemy mapped class
            actor_field: Fallback actor column when the class does not set one

        Returns:
            Descriptor for the model's local table
        """
        mapper = sa_inspect(model)
        table = mapper.local_table

        return cls(
            table_name=table.name,
            primary_key=tuple(column.name for column in mapper.primary_key),
            deletion_field=getattr(model, "__soft_delete_field__", None),
            actor_field=getattr(model, "__soft_delete_actor_field__", None)
            or actor_field
            or "deleted_by",
        )


class TableCapabilities(BaseModel):
    """Optional features of a table, resolved once per table."""

    model_config = ConfigDict(frozen=True)

    has_status_flag: bool = Field(
        False, description="Table carries the secondary deleted status column"
    )


class DeleteOptions(BaseModel):
    """Options for a single-record delete."""

    check_rules: bool = Field(True, description="Run delete rules before deleting")
    primary: bool = Field(
        True, description="False when the delete is cascaded from a parent"
    )
    extra: Dict[str, Any] = Field(
        default_factory=dict, description="Passed through to listeners and rules"
    )

    def for_cascade(self) -> "DeleteOptions":
        """Copy of these options for a dependent delete."""
        return self.model_copy(update={"primary": False})


@dataclass
class Outcome:
    """Result of a before-delete listener.

    A listener returning ``Outcome(proceed=False, result=...)`` cancels the
    delete and ``result`` becomes the return value of the delete call.
    """

    proceed: bool = True
    result: Any = None

    @classmethod
    def stop(cls, result: Any = False) -> "Outcome":
        return cls(proceed=False, result=result)


@dataclass
class DeletionEvent:
    """Notification surrounding a delete."""

    name: str
    record: Any
    options: DeleteOptions
    outcome: Optional[Outcome] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_stopped(self) -> bool:
        return self.outcome is not None and not self.outcome.proceed

    @property
    def result(self) -> Any:
        return self.outcome.result if self.outcome is not None else None
