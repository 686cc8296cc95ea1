"""Pytest configuration for revise-deps tests."""

import json
from pathlib import Path

import pytest

from revise_deps.errors import PackageNotFound


class FakeRegistry:
    """In-memory registry: name -> latest version, or an exception to raise."""

    def __init__(self, versions: dict):
        self.versions = versions
        self.calls: list[str] = []

    def latest_version(self, package: str) -> str:
        self.calls.append(package)
        value = self.versions.get(package)
        if value is None:
            raise PackageNotFound(package)
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def fake_registry():
    """Factory for FakeRegistry instances."""
    return FakeRegistry


@pytest.fixture
def write_manifest(tmp_path: Path):
    """Write a package.json into tmp_path and return the directory."""

    def _write(data) -> Path:
        (tmp_path / "package.json").write_text(json.dumps(data, indent=2))
        return tmp_path

    return _write


@pytest.fixture(autouse=True)
def plain_console(monkeypatch):
    """Keep rich output free of color codes regardless of the CI environment."""
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("FORCE_COLOR", raising=False)
