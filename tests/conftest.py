"""Shared fixtures for fusebuild tests."""
import os
import subprocess
from pathlib import Path

import pytest

from fusebuild import logging as build_logging
from fusebuild.config import BuildConfig
from fusebuild.logging import MemorySink
from fusebuild.models import BuildMode

# Absolute paths are run as-is, so no lookup on PATH or via npx happens
MISSING_TOOL = '/nonexistent/fusebuild-test/tool'

SHELL_HTML = """<!DOCTYPE html>
<html>
<head><title>Game</title></head>
<body>
    <canvas id="webgl"></canvas>
    <script type="module" src="/dist/main.js"></script>
</body>
</html>
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep FUSEBUILD_* settings from the outer environment out of tests."""
    for key in list(os.environ):
        if key.startswith('FUSEBUILD_'):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def project(tmp_path) -> Path:
    """A project root with a legacy script, an HTML shell and stale dist files."""
    (tmp_path / 'game.js').write_text('var x=1;')
    (tmp_path / 'index.html').write_text(SHELL_HTML)
    dist = tmp_path / 'dist'
    dist.mkdir()
    for name in ('main.js', 'main.js.map', 'mobileUtils.js', 'mobileUtils.js.map'):
        (dist / name).write_text(f'// {name}')
    return tmp_path


@pytest.fixture
def production_config(project) -> BuildConfig:
    return BuildConfig(
        mode=BuildMode.PRODUCTION,
        root=project,
        minifier_cmd=[MISSING_TOOL],
        compiler_cmd=[MISSING_TOOL],
        bundle_cmd=[MISSING_TOOL],
        tool_timeout=5,
    )


@pytest.fixture
def build_records():
    """Capture structured 'build' records."""
    sink = MemorySink()
    build_logging.register_sink('build', sink)
    yield sink.records
    build_logging.unregister_sink('build')


@pytest.fixture
def fake_terser():
    """Factory for a subprocess.run stand-in that writes text to the --output file."""
    def make(minified: str):
        calls = []

        def run(argv, **kwargs):
            calls.append(list(argv))
            output = Path(argv[argv.index('--output') + 1])
            output.write_text(minified)
            return subprocess.CompletedProcess(argv, 0, stdout='', stderr='')

        run.calls = calls
        return run
    return make
