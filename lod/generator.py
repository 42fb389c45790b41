import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from lod.profile import LODProfile, LODSettings
from lod.simplify import MeshGeometry, SimplificationError, decimate

logger = logging.getLogger(__name__)

# Below this many source triangles a model is not worth splitting into levels.
MIN_LOD_TRIANGLES = 100


@dataclass
class SourceRenderer:
    """One renderable surface of a mesh-bearing artifact."""
    name: str
    geometry: Optional[MeshGeometry]
    readable: bool = True
    materials: Tuple[str, ...] = ()
    bones: Tuple[str, ...] = ()
    root_bone: Optional[str] = None
    parent_bone: str = ""

    @property
    def skinned(self):
        return bool(self.bones) or (self.geometry is not None and self.geometry.skinned)


@dataclass(frozen=True)
class LODRenderer:
    name: str
    source: str
    geometry: MeshGeometry
    materials: Tuple[str, ...] = ()
    bones: Tuple[str, ...] = ()
    root_bone: Optional[str] = None
    # the group decides which level is visible
    enabled: bool = False


@dataclass(frozen=True)
class LODLevel:
    index: int
    threshold: float
    quality: float
    renderers: Tuple[LODRenderer, ...]

    @property
    def triangle_count(self):
        return sum(r.geometry.triangle_count for r in self.renderers)


@dataclass(frozen=True)
class LODGroup:
    """Levels bound at creation time, nearest (highest threshold) first."""
    name: str
    levels: Tuple[LODLevel, ...]
    cross_fade: bool = False
    cross_fade_seconds: float = 0.5
    warnings: Tuple[str, ...] = ()
    ok = True

    @property
    def thresholds(self):
        return tuple(level.threshold for level in self.levels)


class FailureReason(Enum):
    NOT_ELIGIBLE = "not_eligible"
    ALL_LEVELS_FAILED = "all_levels_failed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class LODFailure:
    path: str
    reason: FailureReason
    message: str
    warnings: Tuple[str, ...] = ()
    ok = False


@dataclass
class RenderableModel:
    path: str
    renderers: List[SourceRenderer] = field(default_factory=list)
    lod_group: Optional[LODGroup] = None

    @property
    def name(self):
        return self.path.replace("\\", "/").rsplit("/", 1)[-1].rsplit(".", 1)[0]

    @property
    def skinned(self):
        return any(r.skinned for r in self.renderers)

    @property
    def triangle_count(self):
        return sum(r.geometry.triangle_count for r in self.renderers if r.geometry is not None)


@dataclass(frozen=True)
class MeshComplexity:
    name: str
    triangles: int
    vertices: int
    recommended_levels: int


def recommended_level_count(triangles):
    if triangles < 500:
        return 1    # very simple, no LODs needed
    if triangles < 2000:
        return 2
    if triangles < 10000:
        return 3
    return 4


def analyze(model: RenderableModel) -> List[MeshComplexity]:
    """Per-renderer triangle/vertex counts with a recommended level count."""
    report = []
    for renderer in model.renderers:
        if renderer.geometry is None:
            continue
        triangles = renderer.geometry.triangle_count
        report.append(MeshComplexity(
            name=renderer.name,
            triangles=triangles,
            vertices=renderer.geometry.vertex_count,
            recommended_levels=recommended_level_count(triangles),
        ))
    return report


class LODEngine:
    def __init__(self, settings: LODSettings = None, simplifier=decimate, min_triangles=MIN_LOD_TRIANGLES):
        self.settings = settings or LODSettings()
        self.simplifier = simplifier
        self.min_triangles = min_triangles

    def check_eligibility(self, model: RenderableModel) -> Optional[str]:
        """Returns why the model cannot get LODs, or None when it can."""
        if not model.renderers:
            return "No renderers found in selected object or its children"

        for renderer in model.renderers:
            if renderer.geometry is None or not renderer.readable:
                return (f"Mesh {renderer.name} is not readable. "
                        "Enable 'Read/Write' in import settings for LOD generation")

        triangles = model.triangle_count
        if triangles < self.min_triangles:
            return f"Mesh {model.name} has very low triangle count ({triangles}), may not need LODs"
        return None

    def generate(self, model: RenderableModel, profile: LODProfile = None):
        """Builds and attaches an LODGroup, or returns an LODFailure.

        A level whose geometry cannot be produced is skipped with a
        warning. When no level survives nothing is attached and the
        model keeps whatever group it had before.
        """
        profile = profile or self.settings.profile_for(model)

        reason = self.check_eligibility(model)
        if reason is not None:
            logger.warning("%s: not eligible for LOD generation: %s", model.path, reason)
            return LODFailure(model.path, FailureReason.NOT_ELIGIBLE, reason)

        levels = []
        warnings = []
        ordered = sorted(enumerate(profile.levels), key=lambda item: -item[1].threshold)
        for index, spec in ordered:
            renderers = []
            for source in model.renderers:
                lod_renderer = self._build_renderer(source, spec.quality, index, warnings)
                if lod_renderer is not None:
                    renderers.append(lod_renderer)

            if renderers:
                levels.append(LODLevel(index, spec.threshold, spec.quality, tuple(renderers)))
            else:
                logger.warning("LOD%d skipped for %s: no geometry could be produced", index, model.name)
                warnings.append(f"LOD{index} skipped for {model.name}: no geometry could be produced")

        if not levels:
            logger.error("Failed to generate any LOD levels for %s", model.path)
            return LODFailure(
                model.path,
                FailureReason.ALL_LEVELS_FAILED,
                "Failed to generate any LOD levels",
                tuple(warnings),
            )

        group = LODGroup(
            name=f"{model.name}_LODGroup",
            levels=tuple(levels),
            cross_fade=self.settings.cross_fade,
            cross_fade_seconds=self.settings.cross_fade_seconds,
            warnings=tuple(warnings),
        )
        model.lod_group = group
        logger.info("Generated %d LOD levels for %s", len(levels), model.name)
        return group

    def _build_renderer(self, source: SourceRenderer, quality, index, warnings):
        try:
            geometry = self.simplifier(
                source.geometry,
                quality,
                preserve_uvs=self.settings.preserve_uvs,
                preserve_normals=self.settings.preserve_normals,
                max_error=self.settings.max_simplification_error,
                name=f"{source.geometry.name}_LOD{index}",
            )
        except SimplificationError as e:
            logger.warning("LOD%d of %s failed: %s", index, source.name, e)
            warnings.append(f"LOD{index} of {source.name} failed: {e}")
            return None

        # skinned levels keep the source skeleton binding
        return LODRenderer(
            name=f"{source.name}_LOD{index}",
            source=source.name,
            geometry=geometry,
            materials=source.materials,
            bones=source.bones,
            root_bone=source.root_bone,
        )

    def generate_many(self, models, profile: LODProfile = None, regenerate=False):
        """Runs generate over several models in path order; returns (path, result) pairs."""
        results = []
        for model in sorted(models, key=lambda m: m.path):
            if model.lod_group is not None and not regenerate:
                logger.info("Skipping %s - already has LOD Group", model.name)
                continue
            results.append((model.path, self.generate(model, profile)))

        generated = sum(1 for _, result in results if result.ok)
        logger.info("Generated LODs for %d of %d models", generated, len(results))
        return results
