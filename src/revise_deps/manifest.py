"""Reading the project's package.json."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from revise_deps.errors import ManifestError

logger = logging.getLogger(__name__)


@dataclass
class Manifest:
    """Declared dependencies of a project, in manifest order."""

    path: Path
    name: str | None = None
    dependencies: dict[str, Any] = field(default_factory=dict)
    dev_dependencies: dict[str, Any] = field(default_factory=dict)
    has_dependencies: bool = False
    has_dev_dependencies: bool = False

    def sections(self, include_dev: bool = True) -> list[tuple[str, dict[str, Any]]]:
        """Return (label, map) pairs for the maps present in the manifest."""
        result = []
        if self.has_dependencies:
            result.append(("Dependencies", self.dependencies))
        if include_dev and self.has_dev_dependencies:
            result.append(("DevDependencies", self.dev_dependencies))
        return result

    def names(self) -> set[str]:
        return set(self.dependencies) | set(self.dev_dependencies)


def _section(data: dict[str, Any], key: str, path: Path) -> dict[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ManifestError(f"'{key}' in {path} must be an object, got {type(value).__name__}")
    return value


def load_manifest(project_dir: Path, filename: str = "package.json") -> Manifest:
    """Load the dependency maps from a project's manifest.

    Raises:
        ManifestError: The file is missing, unreadable or not a JSON object.
    """
    path = project_dir / filename
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ManifestError(f"No {filename} found in {project_dir}") from None
    except OSError as e:
        raise ManifestError(f"Could not read {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(f"Could not parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"{path} must contain a JSON object")

    deps = _section(data, "dependencies", path)
    dev_deps = _section(data, "devDependencies", path)
    logger.debug(
        "Loaded %s: %d dependencies, %d devDependencies",
        path,
        len(deps or {}),
        len(dev_deps or {}),
    )

    return Manifest(
        path=path,
        name=data.get("name"),
        dependencies=deps or {},
        dev_dependencies=dev_deps or {},
        has_dependencies=deps is not None,
        has_dev_dependencies=dev_deps is not None,
    )
