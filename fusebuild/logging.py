"""
fusebuild Logging

Two channels:

- Console lines from ``get_logger(module)``, formatted as
  ``[module] LEVEL: message``. Levels are set globally or per module.
- Structured build records from ``emit_record(module, record)``, routed to
  whichever sink is registered for that module. The pipeline emits one
  record per stage to the ``build`` module.

Usage:
    from fusebuild.logging import get_logger, emit_record

    log = get_logger('merger')
    log.info("✓ Bundled %s into main bundle", 'game.js')
    emit_record('build', {'type': 'stage', 'stage': 'merge', 'ok': True})

Environment:
    FUSEBUILD_LOG_LEVEL=DEBUG              # default console level
    FUSEBUILD_LOG_MINIFIER=DEBUG           # console level for one module
    FUSEBUILD_LOG_DIR=/tmp/fusebuild       # where FileSink writes
    FUSEBUILD_LOGGING_BUILD_ENABLED=true   # JSONL stage records for 'build'
"""

import json
import os
import sys
import time
import traceback
from abc import ABC, abstractmethod
from enum import IntEnum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional


class LogLevel(IntEnum):
    """Console levels; numeric values follow the stdlib logging module."""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    OFF = 100


# =============================================================================
# Build record sinks
# =============================================================================

class LogSink(ABC):
    """Destination for structured build records."""

    @abstractmethod
    def emit(self, module: str, record: Dict[str, Any]) -> None:
        """Accept one JSON-serializable record for a module."""

    @abstractmethod
    def flush(self) -> None:
        """Push buffered records to their destination."""

    @abstractmethod
    def close(self) -> None:
        """Release files or other resources."""

    def __enter__(self) -> 'LogSink':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class FileSink(LogSink):
    """
    One JSONL file per module per build.

    Each file opens with a header line and ends with a footer line written
    on close, so an interrupted build leaves a file without a footer.

    Args:
        log_dir: Target directory (default: get_log_dir())
        session_name: File name prefix (default: build start timestamp)
    """

    def __init__(
        self,
        log_dir: Optional[str] = None,
        session_name: Optional[str] = None,
    ):
        self._log_dir = Path(log_dir) if log_dir else None
        self._session_name = session_name or time.strftime("%Y%m%d_%H%M%S")
        self._files: Dict[str, Any] = {}

    def _directory(self) -> Path:
        if self._log_dir is None:
            self._log_dir = Path(get_log_dir())
        self._log_dir.mkdir(parents=True, exist_ok=True)
        return self._log_dir

    def _path(self, module: str) -> Path:
        return self._directory() / f"{self._session_name}_{module}.jsonl"

    def _open(self, module: str):
        if module not in self._files:
            handle = open(self._path(module), 'a', encoding='utf-8')
            handle.write(json.dumps({
                "type": "header",
                "module": module,
                "session_name": self._session_name,
                "start_time": time.time(),
            }) + "\n")
            self._files[module] = handle
        return self._files[module]

    def emit(self, module: str, record: Dict[str, Any]) -> None:
        if 'wall_time' not in record:
            record = {'wall_time': time.time(), **record}
        self._open(module).write(json.dumps(record) + "\n")

    def flush(self) -> None:
        for handle in self._files.values():
            handle.flush()

    def close(self) -> None:
        for module, handle in self._files.items():
            handle.write(json.dumps({"type": "footer", "module": module, "end_time": time.time()}) + "\n")
            handle.close()
        self._files.clear()

    @property
    def log_paths(self) -> Dict[str, Path]:
        """File written for each module that emitted so far."""
        return {module: self._path(module) for module in self._files}


class MemorySink(LogSink):
    """Keeps records in memory, newest last."""

    def __init__(self) -> None:
        self.records: List[Dict[str, Any]] = []

    def emit(self, module: str, record: Dict[str, Any]) -> None:
        self.records.append({'module': module, **record})

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


class NullSink(LogSink):
    """Drops every record."""

    def emit(self, module: str, record: Dict[str, Any]) -> None:
        pass

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


_sinks: Dict[str, LogSink] = {}


def register_sink(module: str, sink: LogSink) -> None:
    """Route records for ``module`` to ``sink``, replacing any previous one."""
    _sinks[module] = sink


def unregister_sink(module: str) -> Optional[LogSink]:
    return _sinks.pop(module, None)


def get_sink(module: str) -> Optional[LogSink]:
    return _sinks.get(module)


def emit_record(module: str, record: Dict[str, Any]) -> bool:
    """
    Send a build record to the module's sink.

    Returns:
        False when no sink is registered for the module
    """
    sink = get_sink(module)
    if sink is None:
        return False
    sink.emit(module, record)
    return True


def close_all_sinks() -> None:
    """Close and forget every registered sink."""
    for sink in _sinks.values():
        sink.close()
    _sinks.clear()


def create_sink_for_module(
    module: str,
    session_name: Optional[str] = None,
) -> LogSink:
    """FileSink if FUSEBUILD_LOGGING_<MODULE>_ENABLED is true, else NullSink."""
    if not get_module_config(module).get('enabled', False):
        return NullSink()
    return FileSink(session_name=session_name)


# =============================================================================
# Settings
# =============================================================================

_config: Dict[str, Any] = {
    'default_level': LogLevel.INFO,
    'module_levels': {},
    'log_dir': None,
    'modules': {},
}

LOG_PREFIX = 'FUSEBUILD_LOG_'
SETTINGS_PREFIX = 'FUSEBUILD_LOGGING_'


def get_log_dir() -> str:
    """configure/FUSEBUILD_LOG_DIR, else ``.fusebuild/logs`` under the working directory."""
    if _config.get('log_dir'):
        return str(Path(_config['log_dir']).expanduser())
    return str(Path.cwd() / '.fusebuild' / 'logs')


def get_module_config(module: str) -> Dict[str, Any]:
    """Structured-record settings for a module, e.g. {'enabled': True}."""
    return _config['modules'].get(module.lower(), {})


def _set_nested(d: Dict, keys: list, value: Any) -> None:
    for key in keys[:-1]:
        d = d.setdefault(key, {})
    d[keys[-1]] = value


def _parse_env_value(value: str) -> Any:
    lower = value.lower()
    if lower in ('true', '1', 'yes', 'on'):
        return True
    if lower in ('false', '0', 'no', 'off'):
        return False
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            pass
    return value


def _level_from_string(level_str: str) -> LogLevel:
    """Unknown names fall back to INFO; WARN is accepted for WARNING."""
    name = level_str.strip().upper()
    if name == 'WARN':
        name = 'WARNING'
    return LogLevel.__members__.get(name, LogLevel.INFO)


def configure_logging(
    level: str = 'INFO',
    modules: Optional[Dict[str, str]] = None,
) -> None:
    """
    Set console levels.

    Args:
        level: Default level for every module
        modules: module name -> level overrides
    """
    _config['default_level'] = _level_from_string(level)
    for mod, mod_level in (modules or {}).items():
        _config['module_levels'][mod] = _level_from_string(mod_level)


def _load_env_config() -> None:
    """Read FUSEBUILD_LOG_* levels and FUSEBUILD_LOGGING_* record settings."""
    for key, value in os.environ.items():
        if key == 'FUSEBUILD_LOG_LEVEL':
            _config['default_level'] = _level_from_string(value)
        elif key == 'FUSEBUILD_LOG_DIR':
            _config['log_dir'] = value
        elif key.startswith(SETTINGS_PREFIX):
            parts = key[len(SETTINGS_PREFIX):].lower().split('_')
            if len(parts) >= 2:
                settings = _config['modules'].setdefault(parts[0], {})
                _set_nested(settings, parts[1:], _parse_env_value(value))
        elif key.startswith(LOG_PREFIX):
            _config['module_levels'][key[len(LOG_PREFIX):].lower()] = _level_from_string(value)


_load_env_config()


# =============================================================================
# Console loggers
# =============================================================================

class BuildLogger:
    """
    Console logger for one module.

    WARNING and above print to stderr, the rest to stdout.
    """

    def __init__(self, module: str):
        self.module = module
        self._key = module.lower().replace('.', '_')

    @property
    def level(self) -> LogLevel:
        return _config['module_levels'].get(self._key, _config['default_level'])

    def _log(self, level: LogLevel, label: str, msg: str, *args) -> None:
        if level < self.level:
            return
        if args:
            try:
                msg = msg % args
            except (TypeError, ValueError):
                msg = f"{msg} {args}"
        stream = sys.stderr if level >= LogLevel.WARNING else sys.stdout
        print(f"[{self.module}] {label}: {msg}", file=stream)

    def debug(self, msg: str, *args) -> None:
        self._log(LogLevel.DEBUG, 'DEBUG', msg, *args)

    def info(self, msg: str, *args) -> None:
        self._log(LogLevel.INFO, 'INFO', msg, *args)

    def warning(self, msg: str, *args) -> None:
        self._log(LogLevel.WARNING, 'WARN', msg, *args)

    def error(self, msg: str, *args) -> None:
        self._log(LogLevel.ERROR, 'ERROR', msg, *args)

    def exception(self, msg: str, *args) -> None:
        """ERROR line followed by the traceback of the exception being handled."""
        self._log(LogLevel.ERROR, 'ERROR', msg, *args)
        for line in traceback.format_exc().rstrip().splitlines():
            self._log(LogLevel.ERROR, 'ERROR', line)


@lru_cache(maxsize=64)
def get_logger(module: str) -> BuildLogger:
    """Cached logger for a module name."""
    return BuildLogger(module)


def disable_logging() -> None:
    """Silence all console output."""
    _config['default_level'] = LogLevel.OFF
    _config['module_levels'].clear()
