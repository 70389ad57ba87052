"""
Data models for the fusebuild pipeline.

These models describe what flows between stages:
- BuildMode selects the branch of the pipeline once per run
- SourceArtifact is one script at one stage (raw, minified, fused, ...)
- BundleManifest is the primary bundler's output, keyed by file name
- StageWarning / StageResult carry the degrade-never-fail outcome of a stage
- BuildReport collects the results of a whole run
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BuildMode(str, Enum):
    """Pipeline mode, selected once at startup."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, value) -> "BuildMode":
        """Parse a mode name case-insensitively.

        Raises:
            ValueError: If the name is not a known mode
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown build mode {value!r} (expected one of: {choices})") from None

    @property
    def is_production(self) -> bool:
        return self is BuildMode.PRODUCTION


class SourceArtifact(BaseModel):
    """
    A named script text at one pipeline stage.

    Artifacts are frozen. A later stage derives a new artifact instead of
    changing an existing one.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    stage: str
    content: str
    path: Optional[Path] = None

    def derive(self, stage: str, content: str) -> "SourceArtifact":
        """Create the next-stage artifact with new content."""
        return SourceArtifact(name=self.name, stage=stage, content=content, path=self.path)


class ManifestEntry(BaseModel):
    """
    One output unit produced by the primary bundler.

    Chunks carry script text in ``code``. Assets (images, fonts, wasm, ...)
    carry their emitted bytes in ``data`` and are written back unchanged.
    """
    model_config = ConfigDict(frozen=True)

    file_name: str
    type: Literal["chunk", "asset"] = "chunk"
    is_entry: bool = False
    code: str = ""
    data: Optional[bytes] = None

    @field_validator('file_name')
    @classmethod
    def validate_file_name(cls, v):
        if not v or v.startswith('/'):
            raise ValueError("file_name must be a non-empty relative path")
        return v

    @property
    def is_entry_chunk(self) -> bool:
        return self.type == "chunk" and self.is_entry

    def payload(self) -> bytes:
        """Bytes to write for this entry."""
        if self.data is not None:
            return self.data
        return self.code.encode('utf-8')


class BundleManifest(BaseModel):
    """
    Mapping of output file name to manifest entry.

    Iteration order is insertion order; it decides which entry chunk is the
    fusion target when several qualify.
    """
    model_config = ConfigDict(frozen=True)

    entries: Dict[str, ManifestEntry] = Field(default_factory=dict)

    @classmethod
    def from_entries(cls, entries: List[ManifestEntry]) -> "BundleManifest":
        return cls(entries={e.file_name: e for e in entries})

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, file_name: object) -> bool:
        return file_name in self.entries

    def get(self, file_name: str) -> Optional[ManifestEntry]:
        return self.entries.get(file_name)

    def names(self) -> List[str]:
        return list(self.entries)

    def items(self) -> List[Tuple[str, ManifestEntry]]:
        return list(self.entries.items())

    def entry_chunks(self) -> List[str]:
        """Names of all entry chunks, in iteration order."""
        return [name for name, entry in self.entries.items() if entry.is_entry_chunk]

    def replace_code(self, file_name: str, code: str) -> "BundleManifest":
        """Return a new manifest with one entry's code replaced."""
        if file_name not in self.entries:
            raise KeyError(file_name)
        entries = dict(self.entries)
        entries[file_name] = entries[file_name].model_copy(update={'code': code})
        return BundleManifest(entries=entries)


WarningKind = Literal[
    "external_tool_failure",
    "missing_artifact",
    "template_drift",
    "stale_file_absent",
    "removal_failed",
    "unexpected_error",
]


class StageWarning(BaseModel):
    """A downgraded failure: which stage degraded and why."""
    model_config = ConfigDict(frozen=True)

    stage: str
    kind: WarningKind
    message: str

    def __str__(self) -> str:
        return f"{self.stage}: {self.kind}: {self.message}"


class StageResult(BaseModel):
    """
    Outcome of one stage.

    ``value`` is the best-available output (possibly the unchanged input when
    the stage degraded). ``ok`` is False when the stage had to fall back.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    stage: str
    ok: bool = True
    value: Any = None
    warnings: List[StageWarning] = Field(default_factory=list)

    @classmethod
    def success(cls, stage: str, value: Any = None) -> "StageResult":
        return cls(stage=stage, ok=True, value=value)

    @classmethod
    def degraded(
        cls,
        stage: str,
        kind: WarningKind,
        message: str,
        value: Any = None,
    ) -> "StageResult":
        return cls(
            stage=stage,
            ok=False,
            value=value,
            warnings=[StageWarning(stage=stage, kind=kind, message=message)],
        )

    def to_record(self) -> Dict[str, Any]:
        """Structured log record for this result."""
        return {
            'type': 'stage',
            'stage': self.stage,
            'ok': self.ok,
            'warnings': [w.model_dump() for w in self.warnings],
        }


class BuildReport(BaseModel):
    """Results of one pipeline run, in execution order."""
    mode: BuildMode
    results: List[StageResult] = Field(default_factory=list)

    @property
    def stages(self) -> List[str]:
        return [r.stage for r in self.results]

    @property
    def warnings(self) -> List[StageWarning]:
        return [w for r in self.results for w in r.warnings]

    @property
    def degraded(self) -> bool:
        return any(not r.ok for r in self.results)

    @property
    def succeeded(self) -> bool:
        """A completed run always succeeds; failures only degrade it."""
        return True

    def result(self, stage: str) -> Optional[StageResult]:
        for r in self.results:
            if r.stage == stage:
                return r
        return None
