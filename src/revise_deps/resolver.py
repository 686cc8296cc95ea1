"""Resolving a declared range to a baseline and looking up the latest release.

Two registry backends are available:

- ``NpmViewRegistry`` shells out to ``npm view <pkg> version`` and so honours
  whatever registry and auth the user's npm is configured with.
- ``HttpRegistry`` talks to the registry's JSON API directly with httpx.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx
import semver

from revise_deps.config import Config
from revise_deps.errors import InvalidVersion, PackageNotFound, RegistryError
from revise_deps.npm import NpmClient

logger = logging.getLogger(__name__)

# First run of up to three dot-separated numbers, not glued to other digits.
_COERCE_RE = re.compile(r"(?:^|[^\d])(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?(?:$|[^\d])")

# Abbreviated package metadata, much smaller than the full document
NPM_ABBREVIATED_ACCEPT = "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8"


def coerce_version(declared: object) -> semver.Version | None:
    """Coerce a declared range into the concrete version it starts from.

    ``"^1.2.3"`` -> 1.2.3, ``"~1.0"`` -> 1.0.0, ``">=2 <3"`` -> 2.0.0.
    Pre-release and build tags are dropped. Returns None when the range has
    no number in it (``"latest"``, ``"*"``, ``""``) or is not a string.
    """
    if not isinstance(declared, str):
        return None
    match = _COERCE_RE.search(declared)
    if not match:
        return None
    major, minor, patch = match.groups()
    return semver.Version(int(major), int(minor or 0), int(patch or 0))


def parse_version(text: str) -> semver.Version:
    """Parse a concrete version as published by the registry.

    Raises:
        ValueError: text is not a valid semantic version.
    """
    cleaned = text.strip()
    if cleaned.startswith(("v", "=")):
        cleaned = cleaned[1:]
    return semver.Version.parse(cleaned)


class Registry(Protocol):
    """Anything that can report the latest published version of a package."""

    def latest_version(self, package: str) -> str: ...


class NpmViewRegistry:
    """Latest-version lookups through ``npm view``."""

    def __init__(self, client: NpmClient):
        self.client = client

    def latest_version(self, package: str) -> str:
        code, stdout, stderr = self.client.view_version(package)
        if code != 0:
            if "E404" in stderr or "E404" in stdout:
                raise PackageNotFound(package)
            raise RegistryError(package, stderr or stdout or f"npm exited with code {code}")
        lines = [line for line in stdout.splitlines() if line.strip()]
        if not lines:
            raise RegistryError(package, "registry returned no version")
        # Only the last line is the version; npm may print notices before it.
        return lines[-1].strip().strip("'\"")


class HttpRegistry:
    """Latest-version lookups against the registry's HTTP API."""

    def __init__(
        self,
        base_url: str = "https://registry.npmjs.org",
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        if client is None:
            # Without an explicit timeout httpx applies its own default.
            kwargs = {"timeout": timeout} if timeout else {}
            client = httpx.Client(follow_redirects=True, **kwargs)
        self.client = client

    def package_url(self, package: str) -> str:
        # Scoped names keep the "@" but encode the slash: @scope%2Fname
        return f"{self.base_url}/{quote(package, safe='@')}"

    def latest_version(self, package: str) -> str:
        url = self.package_url(package)
        logger.debug("GET %s", url)
        try:
            resp = self.client.get(url, headers={"Accept": NPM_ABBREVIATED_ACCEPT})
        except httpx.HTTPError as e:
            raise RegistryError(package, str(e) or type(e).__name__) from e

        if resp.status_code == 404:
            raise PackageNotFound(package)
        if resp.status_code != 200:
            raise RegistryError(package, f"HTTP {resp.status_code} from {url}")

        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise RegistryError(package, f"invalid JSON from registry: {e}") from e

        latest = data.get("dist-tags", {}).get("latest") if isinstance(data, dict) else None
        if not latest:
            raise RegistryError(package, "registry metadata has no 'latest' dist-tag")
        return str(latest)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> HttpRegistry:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def make_registry(config: Config, project_dir: Path) -> NpmViewRegistry | HttpRegistry:
    """Build the registry backend selected in the configuration."""
    if config.registry == "http":
        return HttpRegistry(base_url=config.registry_url, timeout=config.timeout or None)
    client = NpmClient(project_dir, command=config.npm_command, timeout=config.timeout or None)
    return NpmViewRegistry(client)


class VersionResolver:
    """Turns (name, declared range) into (baseline, latest) versions."""

    def __init__(self, registry: Registry):
        self.registry = registry

    def baseline(self, package: str, declared: object) -> semver.Version:
        version = coerce_version(declared)
        if version is None:
            raise InvalidVersion(package, declared)
        return version

    def latest(self, package: str) -> semver.Version:
        text = self.registry.latest_version(package)
        try:
            return parse_version(text)
        except ValueError:
            raise RegistryError(package, f"Invalid Version: {text}") from None

    def resolve(self, package: str, declared: object) -> tuple[semver.Version, semver.Version]:
        """Return the baseline and latest versions of a dependency.

        Raises:
            InvalidVersion: declared range has no concrete version.
            PackageNotFound: registry does not know the package.
            RegistryError: the lookup failed for any other reason.
        """
        baseline = self.baseline(package, declared)
        return baseline, self.latest(package)
