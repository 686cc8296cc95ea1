"""Tests for version coercion and registry lookups."""

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
import semver

from revise_deps.config import Config
from revise_deps.errors import InvalidVersion, PackageNotFound, RegistryError
from revise_deps.resolver import (
    HttpRegistry,
    NpmViewRegistry,
    VersionResolver,
    coerce_version,
    make_registry,
    parse_version,
)


class TestCoerceVersion:
    """Tests for coerce_version()."""

    @pytest.mark.parametrize(
        "declared,expected",
        [
            ("^2.3.4", "2.3.4"),
            ("~1.0.0", "1.0.0"),
            ("1.2.3", "1.2.3"),
            (">=1.2.3 <2.0.0", "1.2.3"),
            ("v3.1.4", "3.1.4"),
            ("=0.0.1", "0.0.1"),
            ("~1.0", "1.0.0"),
            ("^4", "4.0.0"),
            ("1.x", "1.0.0"),
            ("^1.2.3-beta.1", "1.2.3"),
        ],
    )
    def test_leading_version_is_baseline(self, declared, expected):
        assert str(coerce_version(declared)) == expected

    @pytest.mark.parametrize("declared", ["", "latest", "*", "garbage", "x.y.z"])
    def test_no_concrete_version(self, declared):
        assert coerce_version(declared) is None

    def test_non_string_range(self):
        assert coerce_version({"version": "1.0.0"}) is None
        assert coerce_version(None) is None


class TestParseVersion:
    """Tests for parse_version()."""

    def test_plain(self):
        assert parse_version("1.3.0") == semver.Version(1, 3, 0)

    def test_strips_whitespace_and_prefix(self):
        assert parse_version(" v2.0.0\n") == semver.Version(2, 0, 0)

    def test_prerelease(self):
        assert parse_version("2.0.0-rc.1").prerelease == "rc.1"

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_version("not-a-version")


def _client(returncode: int, stdout: str = "", stderr: str = "") -> MagicMock:
    client = MagicMock()
    client.view_version.return_value = (returncode, stdout, stderr)
    return client


class TestNpmViewRegistry:
    """Tests for lookups through `npm view`."""

    def test_returns_version(self):
        registry = NpmViewRegistry(_client(0, "1.3.0"))
        assert registry.latest_version("left-pad") == "1.3.0"

    def test_takes_last_output_line(self):
        registry = NpmViewRegistry(_client(0, "npm notice something\n4.17.21"))
        assert registry.latest_version("lodash") == "4.17.21"

    def test_e404_is_not_found(self):
        stderr = "npm ERR! code E404\nnpm ERR! 404 Not Found - GET https://registry.npmjs.org/nope"
        registry = NpmViewRegistry(_client(1, "", stderr))
        with pytest.raises(PackageNotFound) as exc:
            registry.latest_version("nope")
        assert str(exc.value) == "Package nope not found in the registry."

    def test_other_failure_keeps_first_line(self):
        stderr = "npm ERR! code ETIMEDOUT\nnpm ERR! network request failed"
        registry = NpmViewRegistry(_client(1, "", stderr))
        with pytest.raises(RegistryError) as exc:
            registry.latest_version("slow")
        assert exc.value.message == "npm ERR! code ETIMEDOUT"
        assert "network request failed" not in str(exc.value)

    def test_missing_npm(self):
        registry = NpmViewRegistry(_client(-1, "", "[Errno 2] No such file or directory: 'npm'"))
        with pytest.raises(RegistryError):
            registry.latest_version("left-pad")

    def test_empty_output(self):
        registry = NpmViewRegistry(_client(0, ""))
        with pytest.raises(RegistryError):
            registry.latest_version("left-pad")


def _http_registry(handler) -> HttpRegistry:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpRegistry(base_url="https://registry.example.org/", client=client)


class TestHttpRegistry:
    """Tests for lookups against the registry HTTP API."""

    def test_latest_dist_tag(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"name": "left-pad", "dist-tags": {"latest": "1.3.0"}})

        registry = _http_registry(handler)
        assert registry.latest_version("left-pad") == "1.3.0"
        assert seen == ["https://registry.example.org/left-pad"]

    def test_scoped_package_url(self):
        registry = HttpRegistry(base_url="https://registry.example.org", client=MagicMock())
        assert registry.package_url("@types/node") == "https://registry.example.org/@types%2Fnode"

    def test_404_is_not_found(self):
        registry = _http_registry(lambda request: httpx.Response(404, json={"error": "Not found"}))
        with pytest.raises(PackageNotFound):
            registry.latest_version("nope")

    def test_server_error(self):
        registry = _http_registry(lambda request: httpx.Response(503, text="unavailable"))
        with pytest.raises(RegistryError) as exc:
            registry.latest_version("left-pad")
        assert "HTTP 503" in exc.value.message

    def test_invalid_json(self):
        registry = _http_registry(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(RegistryError):
            registry.latest_version("left-pad")

    def test_missing_latest_tag(self):
        registry = _http_registry(lambda request: httpx.Response(200, json={"dist-tags": {}}))
        with pytest.raises(RegistryError):
            registry.latest_version("left-pad")

    def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        registry = _http_registry(handler)
        with pytest.raises(RegistryError) as exc:
            registry.latest_version("left-pad")
        assert exc.value.message == "connection refused"

    def test_does_not_close_borrowed_client(self):
        client = MagicMock()
        HttpRegistry(client=client).close()
        client.close.assert_not_called()

    def test_default_timeout_is_httpx_default(self):
        with HttpRegistry() as registry, httpx.Client() as reference:
            assert registry.client.timeout == reference.timeout

    def test_explicit_timeout(self):
        with HttpRegistry(timeout=30) as registry:
            assert registry.client.timeout == httpx.Timeout(30)


class TestMakeRegistry:
    """Tests for backend selection."""

    def test_default_is_npm_view(self, tmp_path: Path):
        registry = make_registry(Config(), tmp_path)
        assert isinstance(registry, NpmViewRegistry)
        assert registry.client.project_dir == tmp_path

    def test_zero_timeout_means_no_limit(self, tmp_path: Path):
        registry = make_registry(Config(timeout=0), tmp_path)
        assert registry.client.timeout is None

    def test_configured_timeout(self, tmp_path: Path):
        registry = make_registry(Config(timeout=45), tmp_path)
        assert registry.client.timeout == 45

    def test_http_backend(self, tmp_path: Path):
        registry = make_registry(Config(registry="http", registry_url="https://r.example"), tmp_path)
        try:
            assert isinstance(registry, HttpRegistry)
            assert registry.base_url == "https://r.example"
        finally:
            registry.close()


class TestVersionResolver:
    """Tests for VersionResolver."""

    def test_resolve(self, fake_registry):
        resolver = VersionResolver(fake_registry({"left-pad": "1.3.0"}))
        baseline, latest = resolver.resolve("left-pad", "^1.0.0")
        assert baseline == semver.Version(1, 0, 0)
        assert latest == semver.Version(1, 3, 0)

    def test_invalid_range_skips_registry(self, fake_registry):
        registry = fake_registry({"left-pad": "1.3.0"})
        resolver = VersionResolver(registry)
        with pytest.raises(InvalidVersion) as exc:
            resolver.resolve("left-pad", "latest")
        assert str(exc.value) == "Invalid version for left-pad: latest"
        assert registry.calls == []

    def test_unparseable_latest_is_registry_error(self, fake_registry):
        resolver = VersionResolver(fake_registry({"odd": "banana"}))
        with pytest.raises(RegistryError) as exc:
            resolver.resolve("odd", "^1.0.0")
        assert "Invalid Version: banana" in str(exc.value)
