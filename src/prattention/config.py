"""Configuration management for prattention."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from prattention.exceptions import ConfigError

PRATTENTION_DIR = ".prattention"
CONFIG_FILE = "config.json"


class OwnershipConfig(BaseModel):
    """Where ownership data lives in a repository, and how long to trust it."""

    codeowners_file: str = "CODEOWNERS"
    high_risk_file: str = "highrisk.txt"
    fallback_group: str = "@FallbackOwners"
    cache_ttl_seconds: float = 600.0


class TurnsConfig(BaseModel):
    """Attention state storage configuration."""

    store_dir: str = "turns"
    ignored_emails: list[str] = Field(default_factory=lambda: ["bot"])


class ProjectConfig(BaseModel):
    """Full project configuration."""

    name: str = ""
    root_path: str = "."
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    ownership: OwnershipConfig = Field(default_factory=OwnershipConfig)
    turns: TurnsConfig = Field(default_factory=TurnsConfig)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .prattention directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / PRATTENTION_DIR).is_dir():
            return current
        current = current.parent
    if (current / PRATTENTION_DIR).is_dir():
        return current
    return None


def get_prattention_dir(root: Path) -> Path:
    """Get the .prattention directory for a project root."""
    return root / PRATTENTION_DIR


def get_store_dir(root: Path, config: ProjectConfig) -> Path:
    """Directory holding the per-PR attention documents."""
    store_dir = Path(config.turns.store_dir)
    if store_dir.is_absolute():
        return store_dir
    return get_prattention_dir(root) / store_dir


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .prattention/config.json."""
    config_path = get_prattention_dir(root) / CONFIG_FILE
    if not config_path.exists():
        return ProjectConfig(name=root.name, root_path=str(root))
    try:
        data = json.loads(config_path.read_text())
        return ProjectConfig(**data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .prattention/config.json."""
    pa_dir = get_prattention_dir(root)
    pa_dir.mkdir(parents=True, exist_ok=True)
    config_path = pa_dir / CONFIG_FILE
    config_path.write_text(json.dumps(config.model_dump(), indent=2))


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'ownership.cache_ttl_seconds')."""
    parts = key.split(".")
    data = config.model_dump()
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    if parts[-1] not in target:
        raise KeyError(f"Invalid config key: {key}")
    target[parts[-1]] = value
    return ProjectConfig(**data)
