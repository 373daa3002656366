"""Configuration management with Pydantic models."""

import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Action(str, Enum):
    """Hook actions passed to scripts."""

    OPEN = "OPEN"
    CLOSE = "CLOSE"


class WatcherConfig(BaseModel):
    """Main application configuration."""

    # Device settings
    device_dir: str = Field(default="/dev", description="Directory holding device nodes")
    device_prefix: str = Field(default="video", min_length=1, description="Video node prefix")
    proc_root: str = Field(default="/proc", description="Process table mount point")

    # Timing settings
    debounce_seconds: float = Field(default=0.5, gt=0, description="Quiescence window")
    rearm_attempts: int = Field(default=5, ge=1, description="Watch re-arm attempts")
    rearm_delay: float = Field(default=1.0, ge=0, description="Delay between re-arm attempts")
    poll_timeout: float = Field(default=1.0, gt=0, description="Seconds per inotify read")

    # Hook settings
    scripts: list[str] = Field(default_factory=list, description="Hook scripts to execute")
    action_variable: str = Field(default="ACTION", min_length=1)

    @field_validator("device_dir", "proc_root")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalise directory paths so prefix checks stay exact."""
        if v != "/":
            v = v.rstrip("/")
        return v

    @field_validator("action_variable")
    @classmethod
    def validate_action_variable(cls, v):
        """Environment variable names cannot contain '='."""
        if "=" in v:
            raise ValueError("action_variable must not contain '='")
        return v

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "WatcherConfig":
        """Create configuration from dictionary."""
        return cls(**config_dict)

    @classmethod
    def from_toml_file(cls, toml_path: Path) -> "WatcherConfig":
        """Load configuration from a TOML file.

        Keys may live at the top level or under a ``[camwatch]`` table.
        """
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)
        return cls.from_dict(data.get("camwatch", data))

    def merged(self, **overrides: Any) -> "WatcherConfig":
        """Return a copy with every non-None override applied."""
        values = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return self.from_dict(values)
