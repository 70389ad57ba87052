"""HTML rewriter: point the shell at the fused bundle."""
from pathlib import Path

from fusebuild.logging import get_logger
from fusebuild.models import StageResult
from fusebuild.sources import load_html_shell

log = get_logger('html')

STAGE = 'rewrite'


def rewrite_script_tag(document: str, source_tag: str, target_tag: str) -> StageResult:
    """
    Replace the first occurrence of source_tag with target_tag.

    Returns:
        StageResult whose value is the rewritten document. When source_tag
        is absent the value is the document byte-for-byte unchanged.
    """
    if source_tag not in document:
        log.warning("Script tag not found in HTML shell: %s", source_tag)
        return StageResult.degraded(STAGE, 'template_drift', f"tag not found: {source_tag}", document)
    return StageResult.success(STAGE, document.replace(source_tag, target_tag, 1))


def generate_index(
    shell_path: Path,
    out_path: Path,
    source_tag: str,
    target_tag: str,
) -> StageResult:
    """
    Read the HTML shell, rewrite it, and write it to out_path.

    The shell is written even if the tag was missing, so the build still
    ships an index.html.
    """
    shell = load_html_shell(shell_path)
    if not shell.ok:
        log.warning("Could not generate production index.html")
        return StageResult(stage=STAGE, ok=False, warnings=shell.warnings)

    result = rewrite_script_tag(shell.value, source_tag, target_tag)

    try:
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(result.value, encoding='utf-8')
    except OSError as e:
        log.warning("Could not generate production index.html: %s", e)
        return StageResult.degraded(STAGE, 'missing_artifact', str(e), result.value)

    if result.ok:
        log.info("✓ Generated production index.html with %s", target_tag)
    return result
