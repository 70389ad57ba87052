"""Source compiler adapter (development only).

Compiles the typed entry point to plain script with the project's compiler
configuration. Called on every request for the compiled entry, not cached.
"""
from pathlib import Path
from typing import List, Optional

from fusebuild.logging import get_logger
from fusebuild.models import StageResult
from fusebuild.process import DEFAULT_TIMEOUT, ToolError, run_tool

log = get_logger('compiler')

STAGE = 'compile'


class SourceCompiler:
    """Runs the external compiler against a fixed project configuration."""

    def __init__(
        self,
        command: List[str],
        cwd: Path,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.command = list(command)
        self.cwd = Path(cwd)
        self.timeout = timeout

    def compile(self) -> StageResult:
        """
        Compile the project.

        Returns:
            Success, or a degraded result carrying the compiler's
            diagnostic text; whatever output is on disk is left in place.
        """
        try:
            run_tool(self.command, cwd=self.cwd, timeout=self.timeout)
        except ToolError as e:
            log.warning("TypeScript compilation failed: %s", e.diagnostics)
            return StageResult.degraded(STAGE, 'external_tool_failure', e.diagnostics)

        log.info("✓ Compiled TypeScript for development")
        return StageResult.success(STAGE)
