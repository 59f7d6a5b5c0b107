"""Configuration schema: Pydantic models for disposables config files."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: Optional[str] = None
    format: Optional[Literal["kv", "json", "pretty"]] = None
    console: Optional[bool] = None
    file: Optional[bool] = None
    dev_file: Optional[bool] = Field(None, alias="devFile")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class LifecycleConfig(BaseModel):
    """Resource lifecycle behaviour."""
    pause_on_hidden: bool = Field(True, alias="pauseOnHidden")
    default_pausable: bool = Field(True, alias="defaultPausable")
    auto_key_prefix: str = Field("__auto_", alias="autoKeyPrefix")
    start_hidden: bool = Field(False, alias="startHidden")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @field_validator("auto_key_prefix")
    @classmethod
    def _require_prefix(cls, value: str) -> str:
        if not value:
            raise ValueError("autoKeyPrefix must not be empty")
        return value


class Config(BaseModel):
    """Main configuration schema."""
    schema_: Optional[str] = Field(None, alias="$schema")
    log_level: Optional[str] = Field(None, alias="logLevel")
    logging: Optional[LoggingConfig] = None
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)
