"""Build configuration.

Settings are resolved in this order (highest wins):
    1. Explicit overrides (command line)
    2. Environment (FUSEBUILD_*; a project ``.env`` is loaded first)
    3. ``fusebuild.yaml`` in the project root
    4. Defaults below
"""
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from fusebuild.models import BuildMode

CONFIG_FILE_NAME = 'fusebuild.yaml'

SOURCE_TAG = '<script type="module" src="/dist/main.js"></script>'
TARGET_TAG_TEMPLATE = '<script type="text/javascript" src="./{entry}"></script>'

# Per-module outputs (and their maps) made redundant by fusion, relative
# to the output directory
DEFAULT_CLEANUP_PATHS = [
    'bundle.js',
    'main.js',
    'main.js.map',
    'mobileUtils.js',
    'mobileUtils.js.map',
]

# Minified, console and debugger statements dropped; {out} is the staging dir
DEFAULT_BUNDLE_CMD = [
    'esbuild', 'ts/main.ts', '--bundle',
    '--format=iife', '--target=es2015',
    '--minify', '--drop:console', '--drop:debugger', '--legal-comments=none',
    '--outfile={out}/main.js',
]


class ConfigError(ValueError):
    """Raised when the build configuration cannot be loaded or is invalid."""


class BuildConfig(BaseModel):
    """Resolved configuration for one pipeline run."""
    mode: BuildMode = BuildMode.DEVELOPMENT
    root: Path = Field(default_factory=Path.cwd)
    out_dir: str = 'dist'

    # Inputs
    entry_html: str = 'index.html'
    legacy_script: str = 'game.js'
    tsconfig: str = 'tsconfig.build.json'

    # External tools
    compiler_cmd: List[str] = Field(default_factory=lambda: ['tsc', '--project', '{tsconfig}'])
    minifier_cmd: List[str] = Field(default_factory=lambda: ['terser'])
    bundle_cmd: List[str] = Field(default_factory=lambda: list(DEFAULT_BUNDLE_CMD))
    bundle_entry: str = 'main.js'
    tool_timeout: float = Field(default=60.0, gt=0)

    # Production output
    entry_file_name: str = 'bundle.min.js'
    source_tag: str = SOURCE_TAG
    target_tag: Optional[str] = None
    cleanup_paths: List[str] = Field(default_factory=lambda: list(DEFAULT_CLEANUP_PATHS))

    # Development server
    dev_compiled_path: str = '/dist/main.js'
    host: str = 'localhost'
    port: int = Field(default=3000, ge=0, le=65535)
    cors: bool = True

    @field_validator('mode', mode='before')
    @classmethod
    def parse_mode(cls, v):
        return BuildMode.parse(v)

    @field_validator('compiler_cmd', 'minifier_cmd', 'bundle_cmd', mode='before')
    @classmethod
    def split_command(cls, v):
        if isinstance(v, str):
            return v.split()
        return v

    @field_validator('cleanup_paths', mode='before')
    @classmethod
    def split_paths(cls, v):
        if isinstance(v, str):
            return [p for p in v.split(',') if p.strip()]
        return v

    @model_validator(mode='after')
    def derive_target_tag(self):
        if self.target_tag is None:
            self.target_tag = TARGET_TAG_TEMPLATE.format(entry=self.entry_file_name)
        return self

    # Resolved paths

    @property
    def out_path(self) -> Path:
        return self.root / self.out_dir

    @property
    def entry_html_path(self) -> Path:
        return self.root / self.entry_html

    @property
    def legacy_script_path(self) -> Path:
        return self.root / self.legacy_script

    def compiler_command(self) -> List[str]:
        return [part.replace('{tsconfig}', self.tsconfig) for part in self.compiler_cmd]

    def resolved_cleanup_paths(self) -> List[Path]:
        return [self.out_path / p for p in self.cleanup_paths]


# Environment variable -> BuildConfig field
ENV_FIELDS: Dict[str, str] = {
    'FUSEBUILD_MODE': 'mode',
    'FUSEBUILD_ROOT': 'root',
    'FUSEBUILD_OUT_DIR': 'out_dir',
    'FUSEBUILD_LEGACY_SCRIPT': 'legacy_script',
    'FUSEBUILD_ENTRY_HTML': 'entry_html',
    'FUSEBUILD_TSCONFIG': 'tsconfig',
    'FUSEBUILD_COMPILER_CMD': 'compiler_cmd',
    'FUSEBUILD_MINIFIER_CMD': 'minifier_cmd',
    'FUSEBUILD_BUNDLE_CMD': 'bundle_cmd',
    'FUSEBUILD_TOOL_TIMEOUT': 'tool_timeout',
    'FUSEBUILD_ENTRY_FILE_NAME': 'entry_file_name',
    'FUSEBUILD_CLEANUP_PATHS': 'cleanup_paths',
    'FUSEBUILD_HOST': 'host',
    'FUSEBUILD_PORT': 'port',
}


def _env_settings() -> Dict[str, Any]:
    """Collect settings present in the environment."""
    return {
        field: os.environ[key]
        for key, field in ENV_FIELDS.items()
        if os.environ.get(key)
    }


def _yaml_settings(root: Path) -> Dict[str, Any]:
    """Read fusebuild.yaml from the project root, if present."""
    path = root / CONFIG_FILE_NAME
    if not path.exists():
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid {CONFIG_FILE_NAME}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE_NAME} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(root: Optional[Path] = None, **overrides: Any) -> BuildConfig:
    """
    Resolve the build configuration for a project.

    Args:
        root: Project root (default: FUSEBUILD_ROOT or the working directory)
        **overrides: Explicit settings that win over everything else;
            None values are ignored

    Raises:
        ConfigError: If a setting is invalid
    """
    root = Path(root) if root else Path(os.environ.get('FUSEBUILD_ROOT') or Path.cwd())
    load_dotenv(root / '.env')

    env = _env_settings()
    if 'root' in env and not overrides.get('root'):
        root = Path(env['root'])

    settings: Dict[str, Any] = {}
    settings.update(_yaml_settings(root))
    settings.update(env)
    settings.update({k: v for k, v in overrides.items() if v is not None})
    settings['root'] = Path(settings.get('root', root)).resolve()

    try:
        return BuildConfig(**settings)
    except ValidationError as e:
        raise ConfigError(str(e)) from e
