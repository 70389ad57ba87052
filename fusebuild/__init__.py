"""
fusebuild: front-end build pipeline.

Development mode serves the project and compiles the typed entry point on
demand. Production mode bundles, fuses the legacy script into the entry
bundle, rewrites index.html and removes superseded per-module outputs.

Usage:
    >>> from fusebuild import load_config, Pipeline
    >>> config = load_config(mode='production')
    >>> report = Pipeline(config).run()
"""

from .config import BuildConfig, ConfigError, load_config
from .models import (
    BuildMode,
    BuildReport,
    BundleManifest,
    ManifestEntry,
    SourceArtifact,
    StageResult,
    StageWarning,
)
from .pipeline import Pipeline, run_build

__version__ = '0.1.0'

__all__ = [
    'BuildConfig',
    'BuildMode',
    'BuildReport',
    'BundleManifest',
    'ConfigError',
    'ManifestEntry',
    'Pipeline',
    'SourceArtifact',
    'StageResult',
    'StageWarning',
    'load_config',
    'run_build',
]
