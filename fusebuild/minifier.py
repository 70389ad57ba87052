"""
Minifier adapter.

Runs an external minifier (terser by default) over a piece of script text:

    terser <in> --output <out> --compress --mangle --comments false

Content is handed over through a private temporary directory, so concurrent
builds never share file names. Minification is best effort: on any failure
the original content is returned unchanged.
"""
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from fusebuild.logging import get_logger
from fusebuild.models import SourceArtifact, StageResult
from fusebuild.process import DEFAULT_TIMEOUT, ToolError, run_tool

log = get_logger('minifier')

STAGE = 'minify'

MINIFY_FLAGS = ['--compress', '--mangle', '--comments', 'false']


class Minifier:
    """Best-effort wrapper around an out-of-process minifier."""

    def __init__(
        self,
        command: Sequence[str] = ('terser',),
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.command = list(command)
        self.timeout = timeout

    def build_command(self, input_path: Path, output_path: Path) -> List[str]:
        return [*self.command, str(input_path), '--output', str(output_path), *MINIFY_FLAGS]

    def minify_text(self, content: str, name: str = 'script.js') -> StageResult:
        """
        Minify script text.

        Returns:
            StageResult whose value is the minified text, or the original
            text (ok=False) if the minifier failed
        """
        with tempfile.TemporaryDirectory(prefix='fusebuild-') as tmpdir:
            input_path = Path(tmpdir) / f"temp_{name}"
            output_path = Path(tmpdir) / f"temp_{name}.min"
            try:
                input_path.write_text(content, encoding='utf-8')
                run_tool(self.build_command(input_path, output_path), timeout=self.timeout)
                minified = output_path.read_text(encoding='utf-8')
            except ToolError as e:
                log.warning("Could not minify %s: %s", name, e.diagnostics)
                return StageResult.degraded(STAGE, 'external_tool_failure', e.diagnostics, content)
            except (OSError, UnicodeDecodeError) as e:
                log.warning("Could not minify %s: %s", name, e)
                return StageResult.degraded(STAGE, 'external_tool_failure', str(e), content)

        log.info("✓ Minified %s content", name)
        return StageResult.success(STAGE, minified)

    def minify(self, artifact: SourceArtifact) -> StageResult:
        """
        Minify an artifact.

        Returns:
            StageResult whose value is a new 'minified' artifact, or the
            input artifact itself when minification degraded
        """
        result = self.minify_text(artifact.content, artifact.name)
        if not result.ok:
            return result.model_copy(update={'value': artifact})
        return result.model_copy(update={'value': artifact.derive('minified', result.value)})
