"""Configuration management for buildgate."""

import json
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .constants import CONFIG_FILE, DEFAULT_DEBOUNCE_MS


class ConfigError(Exception):
    """Error loading buildgate configuration."""


class ConfigMissingError(ConfigError):
    """No config file exists in the base directory."""


class ConfigMalformedError(ConfigError):
    """Config file is unreadable or does not match the schema."""


class BuildgateConfig(BaseModel):
    """Root configuration read from .buildgate.json.

    Attributes:
        command: Build command run when watched files change.
        watch: Glob patterns, relative to the base directory. Order matters
            for the fingerprint.
        workspaces: Relative paths of sub-projects, each with its own config.
        debounce_ms: Quiescence window for watch mode.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    command: str = Field(
        validation_alias=AliasChoices("command", "cmd"),
        description="Build command (e.g., 'npm run build')",
    )
    watch: list[str] = Field(default_factory=list, description="Watched glob patterns")
    workspaces: list[str] = Field(
        default_factory=list, description="Workspace directories, relative to base"
    )
    debounce_ms: int = Field(
        default=DEFAULT_DEBOUNCE_MS, gt=0, description="Watch debounce window in ms"
    )


def config_path(base_dir: Path) -> Path:
    """Get path to the config file."""
    return base_dir / CONFIG_FILE


def load_config(base_dir: Path) -> BuildgateConfig:
    """Load config from .buildgate.json.

    Args:
        base_dir: Directory containing the config file

    Returns:
        Parsed configuration

    Raises:
        ConfigMissingError: If the config file does not exist
        ConfigMalformedError: If the file cannot be read or validated
    """
    path = config_path(base_dir)
    if not path.is_file():
        raise ConfigMissingError(f"{path} not found. Run `buildgate init` first")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigMalformedError(f"Cannot read {path}: {e}") from e

    try:
        return BuildgateConfig.model_validate_json(content)
    except ValidationError as e:
        raise ConfigMalformedError(f"Invalid config {path}: {e}") from e


def write_config_template(base_dir: Path) -> Path:
    """Write default .buildgate.json template.

    Args:
        base_dir: Directory to write the config into

    Returns:
        Path to the written config file
    """
    path = config_path(base_dir)
    template = {
        "command": "npm run build",
        "watch": ["src/**"],
    }
    path.write_text(json.dumps(template, indent=2), encoding="utf-8")
    return path
