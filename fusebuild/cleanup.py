"""Cleanup stage: delete per-module outputs superseded by fusion."""
from pathlib import Path
from typing import Iterable, List

from fusebuild.logging import get_logger
from fusebuild.models import StageResult, StageWarning

log = get_logger('cleanup')

STAGE = 'cleanup'


def remove_superseded(paths: Iterable[Path], protected: Iterable[Path] = ()) -> StageResult:
    """
    Delete each path; missing files are noted and skipped.

    Args:
        paths: Files made redundant by fusion
        protected: Files that must survive (fused bundle, rewritten HTML)

    Returns:
        StageResult whose value is the list of removed paths. Deletion is
        idempotent, so running it twice never fails.
    """
    keep = {Path(p).resolve() for p in protected}
    removed: List[Path] = []
    warnings: List[StageWarning] = []
    failed = False

    for path in (Path(p) for p in paths):
        if path.resolve() in keep:
            log.warning("Refusing to remove build output: %s", path)
            continue
        try:
            path.unlink()
        except FileNotFoundError:
            log.info("Already absent: %s", path)
            warnings.append(StageWarning(stage=STAGE, kind='stale_file_absent', message=str(path)))
            continue
        except OSError as e:
            log.warning("Could not remove %s: %s", path, e)
            failed = True
            warnings.append(StageWarning(
                stage=STAGE, kind='removal_failed', message=f"could not remove {path}: {e}",
            ))
            continue
        removed.append(path)
        log.info("✓ Removed unnecessary file: %s", path)

    # An absent file is a notice, not a degradation
    return StageResult(stage=STAGE, ok=not failed, value=removed, warnings=warnings)
