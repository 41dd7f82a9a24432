"""Configuration loading for the patcher.

Settings live in a YAML file (``config.yaml`` by default) validated with
Pydantic. A missing file yields the defaults, which mirror the Termux-style
Node.js Android build: patches come from ``termux/termux-packages`` and the
``nodejs-lts`` package is preferred over ``nodejs``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

DEFAULT_CONFIG_NAME = "config.yaml"
REF_ENV_VAR = "TERMUX_REF"


class SettingsModel(BaseModel):
    """Base model that rejects unknown keys."""

    model_config = ConfigDict(extra="forbid", frozen=False)


class PatchSettings(SettingsModel):
    """Where patches are discovered and how they are applied."""

    repository: str = Field(default="termux/termux-packages", min_length=1)
    packages_path: str = "packages"
    ref: str = Field(default="master", min_length=1)
    sources: List[str] = Field(default_factory=lambda: ["nodejs-lts", "nodejs"])
    suffix: str = Field(default=".patch", min_length=1)
    strip: int = Field(default=1, ge=0)
    raw_base_url: str = "https://raw.githubusercontent.com"
    api_base_url: str = "https://api.github.com"
    timeout: float = Field(default=30.0, gt=0)


class PathSettings(SettingsModel):
    """Filesystem locations used during a run."""

    source_tree: Path = Path("node-src")
    download_dir: Path = Path("build/termux-patches")
    local_patches: Path = Path("patches")


class Settings(SettingsModel):
    """Top-level configuration document."""

    patches: PatchSettings = Field(default_factory=PatchSettings)
    paths: PathSettings = Field(default_factory=PathSettings)

    def resolve_paths(self, base: Path) -> "Settings":
        """Return a copy with relative paths anchored at ``base``."""

        def _anchor(value: Path) -> Path:
            expanded = Path(value).expanduser()
            if expanded.is_absolute():
                return expanded
            return (base / expanded).resolve()

        paths = PathSettings(
            source_tree=_anchor(self.paths.source_tree),
            download_dir=_anchor(self.paths.download_dir),
            local_patches=_anchor(self.paths.local_patches),
        )
        return self.model_copy(update={"paths": paths})


def default_config() -> Dict[str, Any]:
    """Return the default configuration as a plain mapping."""
    return Settings().model_dump(mode="json")


def write_config(config_path: Path, config_data: Mapping[str, Any]) -> None:
    """Persist configuration data to disk with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(dict(config_data), handle, sort_keys=False)


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config: {error}", details={"path": str(config_path)}) from error
    except OSError as error:
        raise ConfigError(f"Unable to read config {config_path}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.", details={"path": str(config_path)})
    return data


def load_settings(
    config_path: Path | str | None = None,
    *,
    required: bool = False,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from ``config_path`` and apply environment overrides.

    When the file does not exist the defaults are used, unless ``required``
    is set. Relative paths are resolved against the config file's directory.
    ``TERMUX_REF`` in the environment overrides ``patches.ref``.
    """
    path = Path(config_path) if config_path is not None else Path(DEFAULT_CONFIG_NAME)
    env_mapping = os.environ if env is None else env

    if path.exists():
        data = _read_yaml(path)
    elif required:
        raise ConfigError(f"Config file not found: {path}", details={"path": str(path)})
    else:
        data = {}

    try:
        settings = Settings.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration in {path}: {error}", details={"path": str(path)}) from error

    override = (env_mapping.get(REF_ENV_VAR) or "").strip()
    if override:
        settings.patches.ref = override

    return settings.resolve_paths(path.parent.resolve())


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "PatchSettings",
    "PathSettings",
    "REF_ENV_VAR",
    "Settings",
    "default_config",
    "load_settings",
    "write_config",
]
