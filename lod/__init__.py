from lod.generator import (
    FailureReason, LODEngine, LODFailure, LODGroup, LODLevel, LODRenderer,
    RenderableModel, SourceRenderer, analyze, recommended_level_count,
)
from lod.profile import LODLevelSpec, LODProfile, LODSettings, ProfileError, load_lod_settings
from lod.simplify import MeshGeometry, SimplificationError, decimate
