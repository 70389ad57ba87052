"""Tests for pipeline data models."""
import pytest
from pydantic import ValidationError

from fusebuild.models import (
    BuildMode,
    BuildReport,
    BundleManifest,
    ManifestEntry,
    SourceArtifact,
    StageResult,
)


class TestBuildMode:

    @pytest.mark.parametrize('value, expected', [
        ('development', BuildMode.DEVELOPMENT),
        ('PRODUCTION', BuildMode.PRODUCTION),
        (' production ', BuildMode.PRODUCTION),
        (BuildMode.DEVELOPMENT, BuildMode.DEVELOPMENT),
    ])
    def test_parse(self, value, expected):
        assert BuildMode.parse(value) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match='Unknown build mode'):
            BuildMode.parse('staging')


class TestSourceArtifact:

    def test_frozen(self):
        artifact = SourceArtifact(name='game.js', stage='raw', content='a')
        with pytest.raises(ValidationError):
            artifact.content = 'b'

    def test_derive_creates_new_artifact(self):
        raw = SourceArtifact(name='game.js', stage='raw', content='a')
        minified = raw.derive('minified', 'b')

        assert minified is not raw
        assert (minified.name, minified.stage, minified.content) == ('game.js', 'minified', 'b')
        assert raw.content == 'a'


class TestBundleManifest:

    def test_entry_chunks_in_order(self):
        m = BundleManifest.from_entries([
            ManifestEntry(file_name='b.js', is_entry=True),
            ManifestEntry(file_name='a.js'),
            ManifestEntry(file_name='c.js', is_entry=True),
        ])
        assert m.entry_chunks() == ['b.js', 'c.js']

    def test_replace_code_unknown(self):
        with pytest.raises(KeyError):
            BundleManifest().replace_code('missing.js', '')

    def test_payload(self):
        assert ManifestEntry(file_name='a.js', code='é').payload() == 'é'.encode('utf-8')
        assert ManifestEntry(file_name='a.png', type='asset', data=b'\xff\x00').payload() == b'\xff\x00'

    def test_absolute_file_name_rejected(self):
        with pytest.raises(ValidationError):
            ManifestEntry(file_name='/etc/passwd')


class TestBuildReport:

    def test_degraded_and_warnings(self):
        report = BuildReport(mode=BuildMode.PRODUCTION, results=[
            StageResult.success('bundle'),
            StageResult.degraded('rewrite', 'template_drift', 'tag not found'),
        ])

        assert report.stages == ['bundle', 'rewrite']
        assert report.degraded is True
        assert report.succeeded is True
        assert [w.kind for w in report.warnings] == ['template_drift']
        assert report.result('rewrite').ok is False
        assert report.result('cleanup') is None
