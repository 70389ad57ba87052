"""Tests for build configuration loading."""
import pytest

from fusebuild.config import DEFAULT_CLEANUP_PATHS, BuildConfig, ConfigError, load_config
from fusebuild.models import BuildMode


class TestBuildConfig:

    def test_defaults(self, tmp_path):
        config = BuildConfig(root=tmp_path)

        assert config.mode is BuildMode.DEVELOPMENT
        assert config.out_path == tmp_path / 'dist'
        assert config.legacy_script_path == tmp_path / 'game.js'
        assert config.port == 3000
        assert config.target_tag == '<script type="text/javascript" src="./bundle.min.js"></script>'
        assert config.cleanup_paths == DEFAULT_CLEANUP_PATHS

    def test_target_tag_follows_entry_name(self, tmp_path):
        config = BuildConfig(root=tmp_path, entry_file_name='app.js')

        assert 'src="./app.js"' in config.target_tag

    def test_compiler_command_expands_tsconfig(self, tmp_path):
        config = BuildConfig(root=tmp_path, tsconfig='tsconfig.dev.json')

        assert config.compiler_command() == ['tsc', '--project', 'tsconfig.dev.json']

    def test_compiler_command_keeps_other_braces(self, tmp_path):
        config = BuildConfig(root=tmp_path, compiler_cmd=['tsc', '--project', '{tsconfig}', '--plugins={}'])

        assert config.compiler_command() == ['tsc', '--project', 'tsconfig.build.json', '--plugins={}']

    def test_default_bundle_is_minified(self, tmp_path):
        cmd = BuildConfig(root=tmp_path).bundle_cmd

        assert '--minify' in cmd
        assert '--drop:console' in cmd
        assert '--drop:debugger' in cmd
        assert cmd[-1] == '--outfile={out}/main.js'

    def test_cleanup_paths_follow_out_dir(self, tmp_path):
        config = BuildConfig(root=tmp_path, out_dir='build')

        paths = config.resolved_cleanup_paths()

        assert tmp_path / 'build' / 'main.js' in paths
        assert all(p.parent == tmp_path / 'build' for p in paths)

    def test_string_commands_split(self, tmp_path):
        config = BuildConfig(root=tmp_path, minifier_cmd='npx terser')

        assert config.minifier_cmd == ['npx', 'terser']


class TestLoadConfig:

    def test_yaml_file(self, tmp_path):
        (tmp_path / 'fusebuild.yaml').write_text(
            "mode: production\n"
            "legacy_script: legacy/game.js\n"
            "cleanup_paths:\n"
            "  - main.js\n"
        )

        config = load_config(tmp_path)

        assert config.mode is BuildMode.PRODUCTION
        assert config.legacy_script == 'legacy/game.js'
        assert config.cleanup_paths == ['main.js']
        assert config.root == tmp_path.resolve()

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        (tmp_path / 'fusebuild.yaml').write_text("port: 4000\n")
        monkeypatch.setenv('FUSEBUILD_PORT', '5000')

        assert load_config(tmp_path).port == 5000

    def test_dotenv_file(self, tmp_path, monkeypatch):
        (tmp_path / '.env').write_text("FUSEBUILD_TOOL_TIMEOUT=12.5\n")
        monkeypatch.delenv('FUSEBUILD_TOOL_TIMEOUT', raising=False)

        assert load_config(tmp_path).tool_timeout == 12.5

    def test_overrides_beat_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv('FUSEBUILD_MODE', 'production')

        assert load_config(tmp_path, mode='development').mode is BuildMode.DEVELOPMENT
        assert load_config(tmp_path, mode=None).mode is BuildMode.PRODUCTION

    def test_env_cleanup_paths(self, tmp_path, monkeypatch):
        monkeypatch.setenv('FUSEBUILD_CLEANUP_PATHS', 'a.js,b.js')

        assert load_config(tmp_path).cleanup_paths == ['a.js', 'b.js']

    def test_invalid_mode(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path, mode='staging')

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / 'fusebuild.yaml').write_text("mode: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(tmp_path)

    def test_yaml_must_be_mapping(self, tmp_path):
        (tmp_path / 'fusebuild.yaml').write_text("- production\n")

        with pytest.raises(ConfigError, match='mapping'):
            load_config(tmp_path)
