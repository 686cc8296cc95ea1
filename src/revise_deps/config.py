"""User configuration management.

Persists settings to ~/.config/revise-deps/config.toml
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

# tomli-w for writing (tomllib is read-only)
import tomli_w

# tomllib is stdlib in 3.11+, use tomli as fallback for 3.10
try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found,no-redef]

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "revise-deps"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"

REGISTRY_BACKENDS = ("npm", "http")


@dataclass
class Config:
    """User configuration settings."""

    manifest: str = "package.json"
    state_file: str = "outdated-deps.json"
    registry: str = "npm"
    registry_url: str = "https://registry.npmjs.org"
    npm_command: str = "npm"
    timeout: int = 0  # seconds per external call, 0 for no limit
    jobs: int = 1
    include_dev: bool = True
    strict_exit: bool = False
    fail_on_severity: str = ""
    log_level: str = "WARNING"

    # File path for this config (not persisted)
    _path: Path = field(default=DEFAULT_CONFIG_PATH, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self) if not f.name.startswith("_")}

    @classmethod
    def from_dict(cls, data: dict[str, Any], path: Path | None = None) -> Config:
        """Create config from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls) if not f.name.startswith("_")}
        config = cls(**{k: v for k, v in data.items() if k in known})
        config._path = path or DEFAULT_CONFIG_PATH
        if config.registry not in REGISTRY_BACKENDS:
            print(
                f"Warning: Unknown registry backend {config.registry!r}, using 'npm'",
                file=sys.stderr,
            )
            config.registry = "npm"
        config.jobs = max(1, int(config.jobs))
        return config

    def save(self) -> None:
        """Save configuration to file."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "wb") as f:
            tomli_w.dump(self.to_dict(), f)

    def update(self, **kwargs: Any) -> None:
        """Update config values and save."""
        for key, value in kwargs.items():
            if hasattr(self, key) and not key.startswith("_"):
                setattr(self, key, value)
        self.save()


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file.

    Args:
        path: Optional custom config path. Defaults to ~/.config/revise-deps/config.toml

    Returns:
        Config object with loaded or default settings.
    """
    config_path = path or DEFAULT_CONFIG_PATH

    if not config_path.exists():
        # Return defaults, don't create file until save()
        return Config(_path=config_path)

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        return Config.from_dict(data, path=config_path)
    except (tomllib.TOMLDecodeError, OSError, TypeError, ValueError) as e:
        # If config is corrupt, return defaults but preserve path
        print(f"Warning: Could not load config from {config_path}: {e}", file=sys.stderr)
        return Config(_path=config_path)


def save_config(config: Config, path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Config object to save.
        path: Optional custom path. Uses config's internal path if not provided.
    """
    if path:
        config._path = path
    config.save()
