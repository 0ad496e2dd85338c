"""
Configuration module for the SoftDelete Toolkit.

Provides centralized configuration for field naming, re-deletion policy
and purge defaults.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union, get_args, get_origin

from pydantic import BaseModel, Field, field_validator


class RedeletePolicy(str, Enum):
    """How a delete of an already soft-deleted row behaves."""

    REFRESH = "refresh"  # Re-stamp marker and actor, report success
    IGNORE = "ignore"  # Only touch active rows, report failure


class SoftDeleteConfig(BaseModel):
    """Central configuration for soft delete behaviour.

    Configuration Sources (in order of precedence):
        1. Programmatic settings (highest priority)
        2. Environment variables (SOFTDELETE_ prefix)
        3. Default values (lowest priority)

    Example:
        >>> config = SoftDeleteConfig(redelete_policy="ignore")

        Loading from environment:

        >>> import os
        >>> os.environ['SOFTDELETE_DEFAULT_FIELD_NAME'] = 'deleted_at'
        >>> config = SoftDeleteConfig.from_env()
    """

    # Field naming
    default_field_name: str = Field(
        "deleted", description="Marker column used when a model configures none"
    )
    default_actor_field: str = Field(
        "deleted_by", description="Column recording who deleted a row"
    )
    status_flag_column: Optional[str] = Field(
        "DEL_FLAG", description="Secondary deleted indicator column, if used"
    )
    status_flag_deleted_value: str = Field(
        "D", description="Value written to the status flag column on delete"
    )

    # Behaviour
    redelete_policy: RedeletePolicy = Field(
        RedeletePolicy.REFRESH, description="Handling of already deleted rows"
    )
    include_deleted_option: str = Field(
        "include_deleted",
        description="Execution option that disables the soft delete query filter",
    )

    # Purge settings
    purge_retention_days: int = Field(
        90, description="Default age in days for purging soft-deleted rows", gt=0
    )

    # Logging
    log_level: str = Field("WARNING", description="Log level for the CLI")

    @field_validator("default_field_name", "default_actor_field")
    @classmethod
    def validate_column_name(cls, v: str) -> str:
        """Ensure column names are not blank."""
        if not v or not v.strip():
            raise ValueError("Column names must not be empty")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the log level is one the logging module knows."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_env(cls, prefix: str = "SOFTDELETE_") -> "SoftDeleteConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        import os

        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var in os.environ:
                value = os.environ[env_var]

                field_type = field_info.annotation

                # Handle Optional types
                if get_origin(field_type) is Union:
                    args = get_args(field_type)
                    field_type = next(
                        (arg for arg in args if arg is not type(None)), str
                    )

                try:
                    if field_type == bool:
                        config_dict[field_name] = value.lower() in (
                            "true",
                            "1",
                            "yes",
                            "on",
                        )
                    elif field_type == int:
                        config_dict[field_name] = int(value)
                    elif isinstance(field_type, type) and issubclass(field_type, Enum):
                        config_dict[field_name] = field_type(value)
                    else:
                        config_dict[field_name] = value
                except (ValueError, TypeError):
                    # Leave the raw value for pydantic to report
                    config_dict[field_name] = value

        return cls.model_validate(config_dict)


# Global configuration instance
_config: Optional[SoftDeleteConfig] = None


def get_config() -> SoftDeleteConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        _config = SoftDeleteConfig.from_env()

    return _config


def set_config(config: Optional[SoftDeleteConfig]) -> None:
    """
    Set the global configuration instance.

    Passing None resets it so the next ``get_config`` reloads from the
    environment.
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> SoftDeleteConfig:
    """
    Configure the toolkit with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = SoftDeleteConfig(**kwargs)
    else:
        config_dict = _config.to_dict()
        config_dict.update(kwargs)
        _config = SoftDeleteConfig(**config_dict)

    return _config
