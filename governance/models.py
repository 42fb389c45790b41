import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class InvalidArgumentError(ValueError):
    """Malformed call: reported to the caller, never part of a report."""


class ArtifactNotFoundError(LookupError):
    """The artifact store has no readable artifact at the requested path."""


class ArtifactUnreadableError(ArtifactNotFoundError):
    """The artifact exists but its data files are corrupt or malformed."""


class ArtifactKind(Enum):
    TEXTURE = "texture"
    MESH = "mesh"
    AUDIO = "audio"
    COMPOSITE = "composite"
    OTHER = "other"


KIND_EXTENSIONS = {
    ArtifactKind.TEXTURE: (".png", ".jpg", ".jpeg", ".tga", ".psd", ".exr"),
    ArtifactKind.MESH: (".fbx", ".obj", ".blend", ".max", ".ma", ".mb"),
    ArtifactKind.AUDIO: (".wav", ".mp3", ".ogg", ".aiff"),
    ArtifactKind.COMPOSITE: (".prefab",),
}


def kind_for_extension(extension):
    extension = extension.lower()
    for kind, extensions in KIND_EXTENSIONS.items():
        if extension in extensions:
            return kind
    return ArtifactKind.OTHER


# ── Import settings ────────────────────────────────────────────────

@dataclass(frozen=True)
class TextureSettings:
    texture_type: str = "default"  # default | normal_map | sprite
    srgb: bool = True
    mipmaps: bool = True
    streaming_mipmaps: bool = False
    max_size: int = 2048
    standalone_overridden: bool = False
    standalone_format: str = "automatic"


@dataclass(frozen=True)
class MeshSettings:
    readable: bool = False
    compression: str = "medium"  # off | low | medium | high
    generate_secondary_uv: bool = False
    import_blend_shapes: bool = False
    global_scale: float = 1.0
    optimize_polygons: bool = True


@dataclass(frozen=True)
class AudioSettings:
    load_type: str = "compressed_in_memory"  # decompress_on_load | compressed_in_memory | streaming
    compression_format: str = "vorbis"  # pcm | vorbis | adpcm
    quality: float = 0.7
    preload: bool = True
    force_mono: bool = False
    load_in_background: bool = False
    standalone_load_type: Optional[str] = None
    standalone_preload: bool = False


ImportSettings = Union[TextureSettings, MeshSettings, AudioSettings]

SETTINGS_TYPES = {
    ArtifactKind.TEXTURE: TextureSettings,
    ArtifactKind.MESH: MeshSettings,
    ArtifactKind.AUDIO: AudioSettings,
}


# ── Content info ───────────────────────────────────────────────────

@dataclass(frozen=True)
class TextureInfo:
    width: int
    height: int


@dataclass(frozen=True)
class MeshInfo:
    triangle_count: int
    renderer_count: int = 1
    has_lod_group: bool = False
    skinned: bool = False


@dataclass(frozen=True)
class AudioInfo:
    length_seconds: float
    frequency: int


@dataclass(frozen=True)
class CompositeInfo:
    """References collected from a composite; None marks a dangling one."""
    references: Tuple[Optional[str], ...] = ()
    nested_instances: int = 0

    @property
    def missing_references(self):
        return sum(1 for ref in self.references if ref is None)


ContentInfo = Union[TextureInfo, MeshInfo, AudioInfo, CompositeInfo]


@dataclass(frozen=True)
class ArtifactRef:
    """Snapshot of one governed content item for a single validation pass."""
    path: str
    kind: ArtifactKind
    size_bytes: Optional[int]
    extension: str
    import_settings: Optional[ImportSettings] = None
    content: Optional[ContentInfo] = None

    @classmethod
    def from_path(cls, path, size_bytes=None, import_settings=None, content=None):
        extension = os.path.splitext(path)[1].lower()
        return cls(
            path=path,
            kind=kind_for_extension(extension),
            size_bytes=size_bytes,
            extension=extension,
            import_settings=import_settings,
            content=content,
        )

    @property
    def file_name(self):
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]

    @property
    def name(self):
        return os.path.splitext(self.file_name)[0]


# ── Results ────────────────────────────────────────────────────────

class Severity(Enum):
    SUGGESTION = "SUGGESTION"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ValidationResult:
    path: str
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()
    fixable: Tuple[str, ...] = ()

    @property
    def valid(self):
        return not self.errors

    def summary(self):
        if not self.valid:
            return f"Failed ({len(self.errors)} errors)"
        if self.warnings:
            return f"Passed with {len(self.warnings)} warnings"
        return "Passed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }

    def __str__(self):
        lines = []
        if not self.valid:
            lines.append("VALIDATION FAILED:")
            lines.extend(f"   - {error}" for error in self.errors)
        if self.warnings:
            lines.append("WARNINGS:")
            lines.extend(f"   - {warning}" for warning in self.warnings)
        if self.suggestions:
            lines.append("SUGGESTIONS:")
            lines.extend(f"   - {suggestion}" for suggestion in self.suggestions)
        if not lines:
            lines.append("VALIDATION PASSED")
        return "\n".join(lines)


@dataclass
class ResultBuilder:
    """Append-only collector; build() freezes it into a ValidationResult."""
    path: str
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    fixable: List[str] = field(default_factory=list)

    def add(self, severity: Severity, message: str):
        if severity is Severity.ERROR:
            self.errors.append(message)
        elif severity is Severity.WARNING:
            self.warnings.append(message)
        else:
            self.suggestions.append(message)

    def error(self, message):
        self.errors.append(message)

    def warning(self, message):
        self.warnings.append(message)

    def suggest(self, message):
        self.suggestions.append(message)

    def mark_fixable(self, fix_id):
        if fix_id not in self.fixable:
            self.fixable.append(fix_id)

    def build(self) -> ValidationResult:
        return ValidationResult(
            path=self.path,
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            suggestions=tuple(self.suggestions),
            fixable=tuple(self.fixable),
        )


class Outcome(Enum):
    SUCCESS = 0
    FAILURE = 1


@dataclass(frozen=True)
class BatchReport:
    results: Tuple[ValidationResult, ...] = ()
    outcome: Outcome = Outcome.SUCCESS
    complete: bool = True
    skipped: Tuple[str, ...] = ()

    @property
    def passed(self):
        return sum(1 for r in self.results if r.valid)

    @property
    def failed(self):
        return sum(1 for r in self.results if not r.valid)

    @property
    def warned(self):
        return sum(1 for r in self.results if r.warnings)

    @property
    def exit_code(self):
        return self.outcome.value

    def result_for(self, path) -> Optional[ValidationResult]:
        for result in self.results:
            if result.path == path:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "failed": self.failed,
            "warned": self.warned,
            "complete": self.complete,
            "outcome": self.outcome.name.lower(),
            "perArtifact": [r.to_dict() for r in self.results],
        }
