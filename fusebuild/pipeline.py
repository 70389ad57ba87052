"""
Build pipeline orchestrator.

Development mode runs no build stages: files are served on demand and the
typed entry point is compiled per request (see dev_server).

Production mode runs a fixed sequence, each stage consuming the previous
one's output:

    Start -> bundle -> merge -> rewrite -> cleanup -> Done

A failing stage logs a warning and hands its best-available output on.
Stages are never retried and never abort the run.
"""
from pathlib import Path
from typing import Callable, List, Optional

from fusebuild.bundler import Bundler, CommandBundler, write_bundle
from fusebuild.cleanup import remove_superseded
from fusebuild.config import TARGET_TAG_TEMPLATE, BuildConfig
from fusebuild.html import generate_index
from fusebuild.logging import emit_record, get_logger
from fusebuild.merger import find_entry_chunk, merge_legacy
from fusebuild.minifier import Minifier
from fusebuild.models import BuildMode, BuildReport, BundleManifest, StageResult, StageWarning
from fusebuild.process import ToolError
from fusebuild.sources import load_legacy_script

log = get_logger('pipeline')

PRODUCTION_STAGES = ('bundle', 'merge', 'rewrite', 'cleanup')

StageCallback = Callable[[StageResult], None]


class Pipeline:
    """
    Runs the stage sequence for one build mode.

    Args:
        config: Resolved build configuration (mode is read once, here)
        bundler: Primary bundler; defaults to CommandBundler from config
        minifier: Minifier for the legacy script; defaults to config's
        on_stage: Called with each StageResult as it completes
    """

    def __init__(
        self,
        config: BuildConfig,
        bundler: Optional[Bundler] = None,
        minifier: Optional[Minifier] = None,
        on_stage: Optional[StageCallback] = None,
    ):
        self.config = config
        self.mode = config.mode
        self.bundler = bundler or CommandBundler(
            config.bundle_cmd,
            cwd=config.root,
            bundle_entry=config.bundle_entry,
            entry_file_name=config.entry_file_name,
            timeout=config.tool_timeout,
        )
        self.minifier = minifier or Minifier(config.minifier_cmd, timeout=config.tool_timeout)
        self.on_stage = on_stage

        # Hand-off between stages
        self._manifest = BundleManifest()
        self._fused_name: Optional[str] = None

    def run(self) -> BuildReport:
        """Run every stage applicable to the configured mode."""
        report = BuildReport(mode=self.mode)
        if self.mode is BuildMode.DEVELOPMENT:
            log.info("Development mode: no build stages, serving on demand")
            return report

        stages = {
            'bundle': self.bundle,
            'merge': self.merge,
            'rewrite': self.rewrite,
            'cleanup': self.cleanup,
        }
        for name in PRODUCTION_STAGES:
            result = self._run_stage(name, stages[name])
            self._record(report, result)

        if report.degraded:
            log.warning("Build completed with warnings:")
            for warning in report.warnings:
                log.warning("  %s", warning)
        else:
            log.info("✓ Build complete: %s", self.config.out_path)
        return report

    def _run_stage(self, name: str, stage: Callable[[], StageResult]) -> StageResult:
        """Run one stage; anything it raises degrades that stage only."""
        try:
            return stage()
        except Exception as e:
            log.exception("Stage %s failed: %s", name, e)
            return StageResult.degraded(name, 'unexpected_error', f"{type(e).__name__}: {e}")

    def _record(self, report: BuildReport, result: StageResult) -> None:
        report.results.append(result)
        emit_record('build', result.to_record())
        if self.on_stage:
            self.on_stage(result)

    # Stages

    def bundle(self) -> StageResult:
        """Run the primary bundler; an empty manifest on failure."""
        try:
            self._manifest = self.bundler.run_bundle()
        except ToolError as e:
            log.warning("Primary bundle failed: %s", e.diagnostics)
            self._manifest = BundleManifest()
            return StageResult.degraded('bundle', 'external_tool_failure', e.diagnostics, self._manifest)
        except (OSError, ValueError) as e:
            log.warning("Primary bundle failed: %s", e)
            self._manifest = BundleManifest()
            return StageResult.degraded('bundle', 'missing_artifact', str(e), self._manifest)
        except Exception as e:
            log.exception("Primary bundle failed: %s", e)
            self._manifest = BundleManifest()
            return StageResult.degraded(
                'bundle', 'unexpected_error', f"{type(e).__name__}: {e}", self._manifest,
            )

        log.info("✓ Bundled %d files", len(self._manifest))
        return StageResult.success('bundle', self._manifest)

    def merge(self) -> StageResult:
        """Load, minify and fuse the legacy script, then write the bundle."""
        warnings = []

        loaded = load_legacy_script(self.config.legacy_script_path)
        warnings.extend(loaded.warnings)
        legacy = loaded.value

        if legacy is not None:
            minified = self.minifier.minify(legacy)
            warnings.extend(minified.warnings)
            legacy = minified.value

        merged = merge_legacy(self._manifest, legacy)
        warnings.extend(merged.warnings)
        self._manifest = merged.value
        if merged.ok:
            self._fused_name = find_entry_chunk(self._manifest)

        try:
            write_bundle(self._manifest, self.config.out_path)
        except OSError as e:
            log.warning("Could not write bundle: %s", e)
            return StageResult(
                stage='merge', ok=False, value=self._manifest,
                warnings=[*warnings, StageWarning(stage='merge', kind='missing_artifact', message=str(e))],
            )

        return StageResult(stage='merge', ok=not warnings, value=self._manifest, warnings=warnings)

    def target_tag(self) -> str:
        """Script tag pointing at the name fusion produced."""
        if self._fused_name and self._fused_name != self.config.entry_file_name:
            return TARGET_TAG_TEMPLATE.format(entry=self._fused_name)
        return self.config.target_tag

    def rewrite(self) -> StageResult:
        """Write the production index.html."""
        return generate_index(
            self.config.entry_html_path,
            self.config.out_path / Path(self.config.entry_html).name,
            self.config.source_tag,
            self.target_tag(),
        )

    def cleanup(self) -> StageResult:
        """Remove per-module outputs that fusion superseded."""
        protected: List[Path] = [self.config.out_path / Path(self.config.entry_html).name]
        if self._fused_name:
            protected.append(self.config.out_path / self._fused_name)
        return remove_superseded(self.config.resolved_cleanup_paths(), protected)


def run_build(config: BuildConfig, **kwargs) -> BuildReport:
    """Build with a fresh Pipeline."""
    return Pipeline(config, **kwargs).run()
