from governance.models import ArtifactKind

SIZE_SUGGESTIONS = {
    ArtifactKind.TEXTURE: "Consider reducing texture resolution or using more efficient compression",
    ArtifactKind.AUDIO: "Consider using compressed audio format or reducing quality",
    ArtifactKind.MESH: "Consider optimizing mesh or using LODs",
    ArtifactKind.COMPOSITE: None,
    ArtifactKind.OTHER: None,
}


def check(artifact, catalog, result):
    """Compares the byte size against the per-extension limit."""
    if artifact.size_bytes is None:
        result.warning("Could not check file size: size unavailable")
        return

    max_size = catalog.max_size(artifact.extension)
    if artifact.size_bytes <= max_size:
        return

    size_mb = artifact.size_bytes / 1024.0 / 1024.0
    max_mb = max_size / 1024.0 / 1024.0
    result.error(f"File too large: {size_mb:.1f}MB exceeds limit of {max_mb:.1f}MB")

    hint = SIZE_SUGGESTIONS[artifact.kind]
    if hint:
        result.suggest(hint)
