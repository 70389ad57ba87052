"""Loaders for the hand-authored inputs: the legacy script and the HTML shell."""
from pathlib import Path

from fusebuild.logging import get_logger
from fusebuild.models import SourceArtifact, StageResult

log = get_logger('sources')


def _read_text(path: Path) -> str:
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def load_legacy_script(path: Path) -> StageResult:
    """
    Read the legacy script as raw text.

    Returns:
        StageResult whose value is a 'raw' SourceArtifact, or a degraded
        result with no value if the file cannot be read
    """
    path = Path(path)
    try:
        content = _read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning("Could not read %s: %s", path.name, e)
        return StageResult.degraded('load_legacy', 'missing_artifact', f"{path}: {e}")

    log.debug("Read %s (%d bytes)", path.name, len(content))
    artifact = SourceArtifact(name=path.name, stage='raw', content=content, path=path)
    return StageResult.success('load_legacy', artifact)


def load_html_shell(path: Path) -> StageResult:
    """Read the HTML shell; value is its text."""
    path = Path(path)
    try:
        content = _read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning("Could not read %s: %s", path.name, e)
        return StageResult.degraded('load_html', 'missing_artifact', f"{path}: {e}")
    return StageResult.success('load_html', content)
