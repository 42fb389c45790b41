"""Checks on the artifact's loaded content: image dimensions, clip length, triangles."""
from governance.models import ArtifactKind


def is_power_of_two(value):
    return value > 0 and (value & (value - 1)) == 0


def _check_texture(artifact, info, catalog, result):
    if not is_power_of_two(info.width) or not is_power_of_two(info.height):
        result.warning("Texture dimensions are not power of two - may cause compression issues")

    if "/UI/" in "/" + artifact.path and info.width != info.height:
        result.suggest("UI textures are often square - consider using power-of-two square dimensions")


def _check_mesh(artifact, info, catalog, result):
    triangles = info.triangle_count

    if triangles > catalog.limit("mesh_error_triangles"):
        result.error(f"Very high triangle count: {triangles}. Consider heavy optimization.")
    elif triangles > catalog.limit("mesh_warning_triangles"):
        result.warning(f"High triangle count: {triangles}. Consider optimization.")
    elif triangles < catalog.limit("mesh_low_triangles"):
        result.suggest(f"Very low triangle count: {triangles}. May not need LODs.")

    if not info.has_lod_group and triangles > catalog.limit("mesh_lod_suggestion_triangles"):
        result.suggest("Consider adding LOD Group for better performance")


def _check_audio(artifact, info, catalog, result):
    path = "/" + artifact.path

    if info.length_seconds > 30 and "/SFX/" in path:
        result.warning("SFX audio clip is very long (>30s). Consider if this should be music or ambient.")

    if info.length_seconds < 0.1 and "/Music/" in path:
        result.error("Music audio clip is very short (<0.1s). This might be an error.")

    if info.frequency < 44100:
        result.suggest("Audio sample rate is below 44.1kHz. Consider using higher quality for better sound.")


def _skip(artifact, info, catalog, result):
    pass


CONTENT_CHECKS = {
    ArtifactKind.TEXTURE: _check_texture,
    ArtifactKind.MESH: _check_mesh,
    ArtifactKind.AUDIO: _check_audio,
    # composites are covered by the reference check
    ArtifactKind.COMPOSITE: _skip,
    ArtifactKind.OTHER: _skip,
}


def check(artifact, catalog, result):
    if artifact.content is None:
        return
    CONTENT_CHECKS[artifact.kind](artifact, artifact.content, catalog, result)
