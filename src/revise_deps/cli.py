"""CLI entry point.

Three commands, each run on its own:

- ``scan``   compare declared ranges with the registry, record what is outdated
- ``audit``  summarise ``npm audit`` by severity
- ``update`` upgrade whatever the last scan recorded, then forget it
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.markup import escape

from revise_deps.config import Config, load_config

logger = logging.getLogger(__name__)

SCAN_FIRST_MSG = 'No outdated dependencies found. Please run "revise-deps scan" first.'


class VersionAction(argparse.Action):
    """Like action="version", but only looks up npm when the flag is used."""

    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(option_strings, dest=dest, default=default, nargs=0, help=help)

    def __call__(self, parser, namespace, values, option_string=None):
        from revise_deps.version import get_version_info

        print(get_version_info().format_full())
        parser.exit()


def setup_logging(verbosity: int, default_level: str = "WARNING") -> None:
    """Configure stderr logging. -v for INFO, -vv for DEBUG."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = getattr(logging, default_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def cmd_scan(config: Config, project_dir: Path, json_output: bool = False) -> bool:
    """Scan dependencies and write the state file.

    Returns:
        True if every dependency was checked and the state file was written.
    """
    from revise_deps.errors import ManifestError
    from revise_deps.manifest import load_manifest
    from revise_deps.report import make_console, print_remediation, print_scan_report
    from revise_deps.resolver import HttpRegistry, VersionResolver, make_registry
    from revise_deps.scanner import scan_manifest
    from revise_deps.state import StateStore

    console = make_console()
    err_console = make_console(stderr=True)

    if not json_output:
        console.print("[blue]Scanning dependencies...[/]")

    try:
        manifest = load_manifest(project_dir, config.manifest)
    except ManifestError as e:
        err_console.print(f"[red]{escape(str(e))}[/]")
        return False

    registry = make_registry(config, project_dir)
    try:
        result = scan_manifest(
            manifest,
            VersionResolver(registry),
            include_dev=config.include_dev,
            jobs=config.jobs,
        )
    finally:
        if isinstance(registry, HttpRegistry):
            registry.close()

    store = StateStore(project_dir / config.state_file)
    saved = True
    try:
        store.save(result.outdated)
    except OSError as e:
        message = f"Could not write {store.path}: {e}"
        err_console.print(f"[red]{escape(message)}[/]")
        saved = False

    if json_output:
        data = result.to_dict()
        data["state_file"] = str(store.path) if saved else None
        print(json.dumps(data, indent=2, default=str))
    else:
        print_scan_report(result, console, err_console)
        print_remediation(result, console, npm_command=config.npm_command)

    return saved and not result.failed


def cmd_audit(config: Config, project_dir: Path, json_output: bool = False) -> bool:
    """Run npm audit and print issue counts by severity.

    Returns:
        False if the audit failed, or found issues at or above
        ``fail_on_severity`` when that is configured.
    """
    from revise_deps.auditor import run_audit
    from revise_deps.errors import AuditFailure
    from revise_deps.npm import NpmClient
    from revise_deps.report import make_console, print_audit_summary

    console = make_console()
    err_console = make_console(stderr=True)

    if not json_output:
        console.print("[blue]Checking for vulnerabilities...[/]")

    client = NpmClient(project_dir, command=config.npm_command, timeout=config.timeout or None)
    try:
        summary = run_audit(client)
    except AuditFailure as e:
        err_console.print(f"[red]{escape(str(e))}[/]")
        return False

    if json_output:
        print(json.dumps(summary.to_dict(), indent=2))
    else:
        print_audit_summary(summary, console)

    if not config.fail_on_severity:
        return True
    try:
        return summary.at_or_above(config.fail_on_severity) == 0
    except ValueError:
        logger.warning("Ignoring unknown fail_on_severity %r", config.fail_on_severity)
        return True


def cmd_update(config: Config, project_dir: Path, dry_run: bool = False) -> bool:
    """Upgrade the packages recorded by the last scan.

    Returns:
        False if the state file was corrupt or any package failed to update.
    """
    from functools import partial

    from revise_deps.errors import CorruptState, EmptyState, MissingState
    from revise_deps.npm import NpmClient
    from revise_deps.report import (
        make_console,
        print_package_update,
        print_update_summary,
    )
    from revise_deps.state import StateStore
    from revise_deps.updater import run_update

    console = make_console()
    err_console = make_console(stderr=True)

    console.print("[blue]Updating outdated dependencies...[/]")

    store = StateStore(project_dir / config.state_file)
    client = NpmClient(project_dir, command=config.npm_command, timeout=config.timeout or None)
    try:
        result = run_update(
            store,
            client,
            dry_run=dry_run,
            on_update=partial(print_package_update, console=console, err_console=err_console),
        )
    except MissingState:
        console.print(f"[red]{SCAN_FIRST_MSG}[/]")
        return True
    except EmptyState:
        console.print("[green]All dependencies are up-to-date.[/]")
        return True
    except CorruptState as e:
        err_console.print(
            f"[red]Could not read {escape(store.path.name)}: {escape(str(e))}.[/] "
            'Run "revise-deps scan" again.'
        )
        return False

    print_update_summary(result, console)
    return not result.failures


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="revise-deps",
        description="Dependency Management and Security Scanner",
    )
    parser.add_argument(
        "--version", action=VersionAction, help="Show version (and the npm in use) and exit"
    )
    parser.add_argument(
        "-C",
        "--directory",
        metavar="DIR",
        help="Project directory (default: current directory)",
    )
    parser.add_argument("--config", metavar="FILE", help="Config file path")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)"
    )
    parser.add_argument(
        "--strict-exit",
        action="store_true",
        help="Exit 1 when any check, audit or update failed",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    scan_parser = subparsers.add_parser("scan", help="Scan project dependencies")
    scan_parser.add_argument("--json", dest="scan_json", action="store_true", help="JSON output")

    audit_parser = subparsers.add_parser("audit", help="Check for vulnerabilities")
    audit_parser.add_argument(
        "--json", dest="audit_json", action="store_true", help="JSON output"
    )

    update_parser = subparsers.add_parser(
        "update", help="Update dependencies to the latest stable versions"
    )
    update_parser.add_argument(
        "--dry-run", action="store_true", help="Show install commands without running them"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the revise-deps CLI.

    Returns:
        Exit code: always 0 unless strict exit codes are enabled, in
        which case 1 when a hard failure occurred.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    config = load_config(Path(args.config).expanduser() if args.config else None)
    setup_logging(args.verbose, config.log_level)

    project_dir = Path(args.directory).expanduser().resolve() if args.directory else Path.cwd()
    logger.debug("Project directory: %s", project_dir)

    if args.command == "scan":
        ok = cmd_scan(config, project_dir, json_output=args.scan_json)
    elif args.command == "audit":
        ok = cmd_audit(config, project_dir, json_output=args.audit_json)
    else:
        ok = cmd_update(config, project_dir, dry_run=args.dry_run)

    strict = config.strict_exit or args.strict_exit
    return 1 if strict and not ok else 0


if __name__ == "__main__":
    sys.exit(main())
