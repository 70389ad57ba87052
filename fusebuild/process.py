"""External tool invocation.

All subprocesses run synchronously with a bounded timeout. Every way a tool
can fail (not installed, non-zero exit, timeout) surfaces as ToolError so
callers have a single thing to downgrade.
"""
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from fusebuild.logging import get_logger

log = get_logger('process')

DEFAULT_TIMEOUT = 60.0


class ToolError(RuntimeError):
    """An external tool could not be run or did not succeed."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        stderr: str = '',
        timed_out: bool = False,
    ):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out

    @property
    def diagnostics(self) -> str:
        """Best human-readable explanation of the failure."""
        return self.stderr.strip() or str(self)


def find_tool(name: str) -> List[str]:
    """
    Find an executable, falling back to ``npx --no-install``.

    Returns:
        Command prefix for the tool

    Raises:
        ToolError: If neither the tool nor npx is available
    """
    if shutil.which(name):
        return [name]

    # Node tools are often only installed in node_modules
    if shutil.which('npx'):
        return ['npx', '--no-install', name]

    raise ToolError(f"{name} not found. Install with: npm install --save-dev {name}")


def resolve_command(cmd: Sequence[str]) -> List[str]:
    """Expand the executable of a configured command via find_tool()."""
    if not cmd:
        raise ToolError("Empty command")
    head, *rest = cmd
    if Path(head).is_absolute() or head in ('npx', 'node'):
        return [head, *rest]
    return [*find_tool(head), *rest]


def run_tool(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> subprocess.CompletedProcess:
    """
    Run an external tool and wait for it to exit.

    Args:
        cmd: Command and arguments
        cwd: Working directory
        timeout: Seconds before the tool is killed (None = wait forever)

    Returns:
        The completed process (returncode 0)

    Raises:
        ToolError: If the tool is missing, times out or exits non-zero
    """
    argv = resolve_command(cmd)
    log.debug("Running: %s", ' '.join(argv))

    try:
        result = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise ToolError(f"{argv[0]} not found: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise ToolError(
            f"{argv[0]} timed out after {timeout}s",
            timed_out=True,
        ) from e
    except OSError as e:
        raise ToolError(f"Could not run {argv[0]}: {e}") from e

    if result.returncode != 0:
        raise ToolError(
            f"{argv[0]} exited with code {result.returncode}",
            returncode=result.returncode,
            stderr=result.stderr or result.stdout or '',
        )

    return result
