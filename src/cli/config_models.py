"""Pydantic configuration models for focus."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class EngineConfig(BaseModel):
    """Debounce and ranking knobs."""

    debounce_seconds: float = Field(default=0.3, ge=0.0)
    max_alternatives: int = Field(default=2, ge=0)
    batch_size: int = Field(default=200, ge=1)


class CacheConfig(BaseModel):
    """Recommendation cache. TTLs in seconds."""

    advanced_ttl: float = Field(default=300, gt=0)
    basic_ttl: float = Field(default=60, gt=0)
    max_entries: int = Field(default=100, ge=1)


class PathsConfig(BaseModel):
    """File paths configuration."""

    feedback_db: Path = Path("~/.focus/feedback.db")
    log_file: Optional[Path] = None

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.feedback_db = self.feedback_db.expanduser()
        if self.log_file is not None:
            self.log_file = self.log_file.expanduser()
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "WARNING"
    json_mode: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class FocusConfig(BaseModel):
    """Main configuration model."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "FocusConfig":
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python", by_alias=True)
