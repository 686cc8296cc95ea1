"""revise-deps: find outdated npm dependencies, audit them and upgrade them."""

from revise_deps.version import VERSION, VersionInfo, get_version_info

__version__ = VERSION
__all__ = ["__version__", "VERSION", "VersionInfo", "get_version_info"]
