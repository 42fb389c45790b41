import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Sequence, Tuple

DEFAULT_SETTINGS_PATH = os.path.join(os.path.dirname(__file__), "lod_settings.json")
MAX_LEVELS = 4


class ProfileError(ValueError):
    """Raised when an LOD profile or settings block is inconsistent."""


@dataclass(frozen=True)
class LODLevelSpec:
    threshold: float  # screen-relative height, (0, 1]
    quality: float  # fraction of source triangles kept, (0, 1]


@dataclass(frozen=True)
class LODProfile:
    """Ordered LOD levels, validated on construction.

    Thresholds strictly decrease from level 0, quality never increases,
    and level 0 always keeps the full source geometry.
    """
    levels: Tuple[LODLevelSpec, ...]

    def __post_init__(self):
        levels = tuple(self.levels)
        object.__setattr__(self, "levels", levels)

        if not 1 <= len(levels) <= MAX_LEVELS:
            raise ProfileError(f"LOD profile needs 1 to {MAX_LEVELS} levels, got {len(levels)}")

        for i, level in enumerate(levels):
            if not 0.0 < level.threshold <= 1.0:
                raise ProfileError(f"Level {i} threshold {level.threshold} is outside (0, 1]")
            if not 0.0 < level.quality <= 1.0:
                raise ProfileError(f"Level {i} quality {level.quality} is outside (0, 1]")

        if abs(levels[0].quality - 1.0) > 1e-6:
            raise ProfileError("Level 0 must keep full quality (1.0)")

        for i in range(1, len(levels)):
            if levels[i].threshold >= levels[i - 1].threshold:
                raise ProfileError(f"Level {i} threshold must be lower than level {i - 1}")
            if levels[i].quality > levels[i - 1].quality:
                raise ProfileError(f"Level {i} quality must not exceed level {i - 1}")

    @classmethod
    def from_lists(cls, thresholds: Sequence[float], qualities: Sequence[float]):
        if len(thresholds) != len(qualities):
            raise ProfileError("Thresholds and quality fractions must have the same length")
        try:
            levels = tuple(LODLevelSpec(float(t), float(q)) for t, q in zip(thresholds, qualities))
        except (TypeError, ValueError) as e:
            raise ProfileError(f"LOD thresholds and qualities must be numbers: {e}") from e
        return cls(levels)

    def __len__(self):
        return len(self.levels)


CHARACTER_PROFILE = LODProfile.from_lists([0.6, 0.3, 0.15, 0.05], [1.0, 0.5, 0.25, 0.1])
ENVIRONMENT_PROFILE = LODProfile.from_lists([0.5, 0.2, 0.05], [1.0, 0.3, 0.1])
WEAPON_PROFILE = LODProfile.from_lists([0.4, 0.1], [1.0, 0.4])


@dataclass(frozen=True)
class LODSettings:
    profiles: Mapping[str, LODProfile] = field(default_factory=lambda: MappingProxyType({
        "character": CHARACTER_PROFILE,
        "environment": ENVIRONMENT_PROFILE,
        "weapon": WEAPON_PROFILE,
    }))
    preserve_uvs: bool = True
    preserve_normals: bool = True
    max_simplification_error: float = 0.01
    cross_fade: bool = False
    cross_fade_seconds: float = 0.5

    def __post_init__(self):
        if not 0.001 <= self.max_simplification_error <= 0.1:
            raise ProfileError("max_simplification_error must be within [0.001, 0.1]")
        if not 0.1 <= self.cross_fade_seconds <= 2.0:
            raise ProfileError("cross_fade_seconds must be within [0.1, 2.0]")
        if "environment" not in self.profiles:
            raise ProfileError("LOD settings need an 'environment' profile as the fallback")

    def profile(self, category) -> LODProfile:
        try:
            return self.profiles[category]
        except KeyError:
            raise ProfileError(f"Unknown LOD profile: {category}") from None

    def category_for(self, model) -> str:
        path = "/" + model.path.replace("\\", "/")
        if "character" in self.profiles and (model.skinned or "/Characters/" in path):
            return "character"
        if "weapon" in self.profiles and "/Weapons/" in path:
            return "weapon"
        return "environment"

    def profile_for(self, model) -> LODProfile:
        return self.profiles[self.category_for(model)]

    @classmethod
    def from_dict(cls, data):
        try:
            profiles = {
                name: LODProfile.from_lists(raw["screen_relative_heights"], raw["quality_percentages"])
                for name, raw in data.get("profiles", {}).items()
            }
            for name, raw in data.get("profiles", {}).items():
                declared = raw.get("levels")
                if declared is not None and declared != len(profiles[name]):
                    raise ProfileError(f"Profile '{name}' declares {declared} levels but lists {len(profiles[name])}")
            return cls(
                profiles=MappingProxyType(profiles),
                preserve_uvs=bool(data.get("preserve_uvs", True)),
                preserve_normals=bool(data.get("preserve_normals", True)),
                max_simplification_error=float(data.get("max_simplification_error", 0.01)),
                cross_fade=bool(data.get("cross_fade", False)),
                cross_fade_seconds=float(data.get("cross_fade_seconds", 0.5)),
            )
        except ProfileError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProfileError(f"Malformed LOD settings: {e}") from e


def load_lod_settings(path=None) -> LODSettings:
    path = path or DEFAULT_SETTINGS_PATH
    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ProfileError(f"LOD settings {path} is not valid JSON: {e}") from e
    return LODSettings.from_dict(data)
