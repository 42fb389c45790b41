"""Advisory checks on an artifact's import configuration."""
from governance.models import ArtifactKind
from governance.presets import plan_fix

MB = 1024 * 1024


def _check_texture(artifact, settings, catalog, result):
    if settings.texture_type == "sprite" and not settings.srgb:
        result.warning("Sprite texture should have sRGB enabled for correct color space")

    if settings.texture_type == "normal_map" and settings.srgb:
        result.warning("Normal map should not be sampled as sRGB")

    if not settings.mipmaps and settings.texture_type != "sprite":
        result.warning("Consider enabling mipmaps for better performance at distance")

    if settings.standalone_overridden and settings.standalone_format == "automatic":
        result.suggest("Consider specifying explicit texture compression format for better control")

    if settings.max_size > catalog.limit("max_texture_size"):
        result.warning("Very large texture size. Consider if 4K+ resolution is necessary.")


def _check_mesh(artifact, settings, catalog, result):
    if settings.readable:
        result.warning("Mesh is readable - disable unless needed for runtime modification (performance impact)")

    if settings.compression == "off":
        result.suggest("Consider enabling mesh compression to reduce build size")

    if settings.generate_secondary_uv:
        result.suggest("Secondary UVs generated - ensure they are needed for lightmapping or other effects")


def _check_audio(artifact, settings, catalog, result):
    size = artifact.size_bytes or 0

    if (settings.load_type == "decompress_on_load"
            and settings.compression_format == "pcm"
            and not settings.force_mono
            and size > 1 * MB):
        result.warning("Large PCM audio will decompress on load - consider using CompressedInMemory or forcing to mono")

    if size > 2 * MB and settings.load_type not in ("streaming", "compressed_in_memory"):
        result.warning("Large audio file should use Streaming or CompressedInMemory load type")

    if settings.standalone_load_type == "streaming" and settings.standalone_preload:
        result.warning("Streaming audio should not preload data - this defeats streaming benefits")


def _skip(artifact, settings, catalog, result):
    pass


SETTINGS_CHECKS = {
    ArtifactKind.TEXTURE: _check_texture,
    ArtifactKind.MESH: _check_mesh,
    ArtifactKind.AUDIO: _check_audio,
    ArtifactKind.COMPOSITE: _skip,
    ArtifactKind.OTHER: _skip,
}


def check(artifact, catalog, result):
    settings = artifact.import_settings
    if settings is None:
        return

    SETTINGS_CHECKS[artifact.kind](artifact, settings, catalog, result)

    fix = plan_fix(artifact)
    if fix is not None:
        result.warning(f"Import settings do not match the canonical {fix.description}")
        result.mark_fixable(fix.fix_id)
