"""
Primary bundler capability.

The pipeline does not resolve modules itself. It asks a Bundler for a
BundleManifest and drives the remaining stages from that. Two bundlers
are provided:

- CommandBundler runs an external bundling command into a private staging
  directory and turns whatever it emitted into a manifest
- StaticBundler hands back a manifest it was given (embedding, tests)

Production output naming:
    entry chunk      -> bundle.min.js (configurable)
    everything else  -> the relative path the bundler emitted

Chunk and asset names are left to the bundler (esbuild's --chunk-names and
--asset-names), since the entry code refers to them by those names.
"""
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, runtime_checkable

from fusebuild.logging import get_logger
from fusebuild.models import BundleManifest, ManifestEntry
from fusebuild.process import DEFAULT_TIMEOUT, run_tool

log = get_logger('bundler')

SCRIPT_SUFFIXES = ('.js', '.mjs')
OUT_PLACEHOLDER = '{out}'


@runtime_checkable
class Bundler(Protocol):
    """Anything that can produce the primary bundle."""

    def run_bundle(self) -> BundleManifest:
        """Build and return the manifest. May raise on failure."""
        ...


def manifest_from_directory(
    staging: Path,
    bundle_entry: str,
    entry_file_name: str,
) -> BundleManifest:
    """
    Build a manifest from the files a bundler emitted.

    Args:
        staging: Directory the bundler wrote to
        bundle_entry: Emitted file name of the entry chunk (e.g. main.js)
        entry_file_name: Output name for the entry chunk (e.g. bundle.min.js)
    """
    entries: List[ManifestEntry] = []
    for path in sorted(p for p in staging.rglob('*') if p.is_file()):
        rel = path.relative_to(staging).as_posix()
        data = path.read_bytes()
        if rel == bundle_entry:
            entries.insert(0, ManifestEntry(
                file_name=entry_file_name,
                type='chunk',
                is_entry=True,
                code=data.decode('utf-8'),
            ))
        elif path.suffix in SCRIPT_SUFFIXES:
            entries.append(ManifestEntry(file_name=rel, type='chunk', code=data.decode('utf-8')))
        else:
            entries.append(ManifestEntry(file_name=rel, type='asset', data=data))
    return BundleManifest.from_entries(entries)


class CommandBundler:
    """Runs an external bundling command, ``{out}`` marking its output dir."""

    def __init__(
        self,
        command: Sequence[str],
        cwd: Path,
        bundle_entry: str = 'main.js',
        entry_file_name: str = 'bundle.min.js',
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ):
        self.command = list(command)
        self.cwd = Path(cwd)
        self.bundle_entry = bundle_entry
        self.entry_file_name = entry_file_name
        self.timeout = timeout

    def run_bundle(self) -> BundleManifest:
        """
        Run the bundler and collect its output.

        Raises:
            ToolError: If the bundling command fails
        """
        with tempfile.TemporaryDirectory(prefix='fusebuild-bundle-') as tmpdir:
            staging = Path(tmpdir)
            cmd = [part.replace(OUT_PLACEHOLDER, str(staging)) for part in self.command]
            run_tool(cmd, cwd=self.cwd, timeout=self.timeout)
            manifest = manifest_from_directory(staging, self.bundle_entry, self.entry_file_name)

        if not manifest.entry_chunks():
            log.warning("Bundler emitted no %s", self.bundle_entry)
        return manifest


class StaticBundler:
    """Returns a prebuilt manifest."""

    def __init__(self, manifest: BundleManifest):
        self.manifest = manifest

    def run_bundle(self) -> BundleManifest:
        return self.manifest


def write_bundle(manifest: BundleManifest, out_dir: Path) -> List[Path]:
    """
    Write every manifest entry below out_dir.

    The output directory is never emptied first; files that fusion makes
    redundant are removed by the cleanup stage.

    Returns:
        Paths written, in manifest order
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for file_name, entry in manifest.items():
        path = out_dir / file_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(entry.payload())
        written.append(path)
        log.debug("Wrote %s", path)
    return written
