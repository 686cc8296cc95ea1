"""Thin wrapper around the npm command line."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

# None waits for the command however long it takes.
DEFAULT_TIMEOUT: int | None = None


def run(
    cmd: list[str], cwd: Path | None = None, timeout: int | None = DEFAULT_TIMEOUT
) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr).

    Uses stdin=DEVNULL to prevent hanging when npm prompts for input.
    A missing executable or a timeout is reported as returncode -1.
    """
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            cwd=cwd,
            timeout=timeout,
            stdin=subprocess.DEVNULL,
        )
        return result.returncode, result.stdout.strip(), result.stderr.strip()
    except subprocess.TimeoutExpired:
        return -1, "", "Command timed out"
    except OSError as e:
        return -1, "", str(e)


class NpmClient:
    """The subset of npm that revise-deps drives: view, audit and install."""

    def __init__(
        self,
        project_dir: Path | None = None,
        command: str = "npm",
        timeout: int | None = DEFAULT_TIMEOUT,
    ):
        self.project_dir = project_dir or Path.cwd()
        self.command = command
        # 0 in the config means no limit.
        self.timeout = timeout or None

    def view_version(self, package: str) -> tuple[int, str, str]:
        """Ask the registry for the latest published version of a package."""
        return run(
            [self.command, "view", package, "version"],
            cwd=self.project_dir,
            timeout=self.timeout,
        )

    def audit_json(self) -> tuple[int, str, str]:
        """Run ``npm audit --json``.

        npm exits non-zero when it finds vulnerabilities, so callers should
        look at stdout before the return code.
        """
        return run([self.command, "audit", "--json"], cwd=self.project_dir, timeout=self.timeout)

    def install_command(self, package: str, save: bool = False) -> list[str]:
        cmd = [self.command, "install", f"{package}@latest"]
        if save:
            cmd.append("--save")
        return cmd

    def install_latest(self, package: str) -> int:
        """Install the latest version of a package, streaming npm's output.

        Raises:
            subprocess.CalledProcessError: npm exited non-zero.
            subprocess.TimeoutExpired: npm did not finish within the timeout.
            OSError: npm could not be started.
        """
        cmd = self.install_command(package)
        logger.debug("Running %s (cwd=%s)", " ".join(cmd), self.project_dir)
        result = subprocess.run(
            cmd,
            cwd=self.project_dir,
            timeout=self.timeout,
            stdin=subprocess.DEVNULL,
            check=True,
        )
        return result.returncode
