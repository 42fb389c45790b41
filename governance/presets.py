"""Canonical import presets and the lossless fixes built on them."""
from dataclasses import dataclass, replace
from typing import Callable, Optional

from governance.models import (
    ArtifactKind, ArtifactRef, AudioSettings, MeshSettings, TextureSettings,
)


# ── Texture presets ────────────────────────────────────────────────

def texture_settings(current: TextureSettings) -> TextureSettings:
    return replace(
        current,
        texture_type="default",
        srgb=True,
        mipmaps=True,
        streaming_mipmaps=True,
        standalone_overridden=True,
        standalone_format="BC7",
    )


def normal_map_settings(current: TextureSettings) -> TextureSettings:
    return replace(
        current,
        texture_type="normal_map",
        srgb=False,
        mipmaps=True,
        standalone_overridden=True,
        standalone_format="BC5",
    )


# ── Model presets ──────────────────────────────────────────────────

def static_mesh_settings(current: MeshSettings) -> MeshSettings:
    return replace(
        current,
        global_scale=1.0,
        compression="medium",
        readable=False,
        optimize_polygons=True,
        import_blend_shapes=False,
        generate_secondary_uv=True,
    )


def character_mesh_settings(current: MeshSettings) -> MeshSettings:
    return replace(
        current,
        global_scale=1.0,
        compression="medium",
        readable=False,
        optimize_polygons=True,
        import_blend_shapes=True,
        generate_secondary_uv=True,
    )


# ── Audio presets ──────────────────────────────────────────────────

def sfx_settings(current: AudioSettings) -> AudioSettings:
    return replace(
        current,
        force_mono=True,
        load_in_background=False,
        load_type="compressed_in_memory",
        compression_format="vorbis",
        quality=0.7,
        preload=True,
        standalone_load_type="compressed_in_memory",
        standalone_preload=True,
    )


def music_settings(current: AudioSettings) -> AudioSettings:
    # Streaming clips must not preload.
    return replace(
        current,
        force_mono=False,
        load_in_background=True,
        load_type="streaming",
        compression_format="vorbis",
        quality=0.9,
        preload=False,
        standalone_load_type="streaming",
        standalone_preload=False,
    )


def voice_settings(current: AudioSettings) -> AudioSettings:
    return replace(
        current,
        force_mono=True,
        load_in_background=False,
        load_type="decompress_on_load",
        compression_format="pcm",
        preload=True,
        standalone_load_type="decompress_on_load",
        standalone_preload=True,
    )


@dataclass(frozen=True)
class PlannedFix:
    fix_id: str
    description: str
    apply: Callable


def _padded(path):
    return "/" + path.replace("\\", "/")


def _plan_texture(artifact: ArtifactRef) -> Optional[PlannedFix]:
    settings = artifact.import_settings
    if "_normal" in artifact.path.lower() and settings.texture_type != "normal_map":
        return PlannedFix("normal_map", "normal map settings", normal_map_settings)
    return None


def _plan_audio(artifact: ArtifactRef) -> Optional[PlannedFix]:
    settings = artifact.import_settings
    path = _padded(artifact.path)
    if "/SFX/" in path:
        if settings.load_type != "compressed_in_memory":
            return PlannedFix("sfx", "sound effect settings", sfx_settings)
    elif "/Music/" in path:
        if settings.load_type != "streaming":
            return PlannedFix("music", "music settings", music_settings)
    elif "/Voice/" in path:
        if settings.load_type == "streaming":
            return PlannedFix("voice", "voice settings", voice_settings)
    return None


def _no_fix(artifact):
    return None


FIX_PLANNERS = {
    ArtifactKind.TEXTURE: _plan_texture,
    ArtifactKind.AUDIO: _plan_audio,
    ArtifactKind.MESH: _no_fix,
    ArtifactKind.COMPOSITE: _no_fix,
    ArtifactKind.OTHER: _no_fix,
}


def plan_fix(artifact: ArtifactRef) -> Optional[PlannedFix]:
    """Returns the canonical preset that would correct this artifact, if any."""
    if artifact.import_settings is None:
        return None
    return FIX_PLANNERS[artifact.kind](artifact)


# name -> (settings type, preset function), for explicit preset requests
PRESETS = {
    "texture": (TextureSettings, texture_settings),
    "normal_map": (TextureSettings, normal_map_settings),
    "static_mesh": (MeshSettings, static_mesh_settings),
    "character_mesh": (MeshSettings, character_mesh_settings),
    "sfx": (AudioSettings, sfx_settings),
    "music": (AudioSettings, music_settings),
    "voice": (AudioSettings, voice_settings),
}
