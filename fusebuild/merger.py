"""Artifact merger: fuse the legacy script ahead of the entry bundle."""
from typing import Optional

from fusebuild.logging import get_logger
from fusebuild.models import BundleManifest, SourceArtifact, StageResult

log = get_logger('merger')

STAGE = 'merge'


def fuse(legacy: str, entry: str) -> str:
    """Legacy content, a newline, then the entry bundle. No escaping."""
    return legacy + '\n' + entry


def find_entry_chunk(manifest: BundleManifest) -> Optional[str]:
    """
    Name of the fusion target.

    The first entry chunk in manifest order wins when several qualify.
    """
    candidates = manifest.entry_chunks()
    if len(candidates) > 1:
        log.warning(
            "Multiple entry chunks (%s); fusing into %s",
            ', '.join(candidates), candidates[0],
        )
    return candidates[0] if candidates else None


def merge_legacy(manifest: BundleManifest, legacy: Optional[SourceArtifact]) -> StageResult:
    """
    Prepend the legacy script to the entry chunk.

    Args:
        manifest: Primary bundler output
        legacy: Legacy script artifact (minified in production), or None if
            it could not be loaded

    Returns:
        StageResult whose value is the manifest to write. Only the entry
        chunk's code differs from the input manifest.
    """
    if legacy is None:
        log.warning("Could not bundle legacy script: not loaded")
        return StageResult.degraded(STAGE, 'missing_artifact', "legacy script not loaded", manifest)

    target = find_entry_chunk(manifest)
    if target is None:
        log.warning("Could not bundle %s: no entry chunk in bundle", legacy.name)
        return StageResult.degraded(STAGE, 'missing_artifact', "no entry chunk in bundle", manifest)

    fused = fuse(legacy.content, manifest.entries[target].code)
    log.info("✓ Bundled %s into main bundle", legacy.name)
    return StageResult.success(STAGE, manifest.replace_code(target, fused))
