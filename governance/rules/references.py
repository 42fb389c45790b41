from governance.models import ArtifactKind


def check(artifact, catalog, result):
    """Reference integrity for composite artifacts."""
    if artifact.kind is not ArtifactKind.COMPOSITE:
        return

    info = artifact.content
    if info is None:
        result.error("Could not load prefab for reference validation")
        return

    if info.missing_references:
        result.error("Prefab contains missing references!")

    if info.nested_instances > catalog.limit("max_nested_composites"):
        result.warning("Prefab has many nested prefabs - consider simplifying hierarchy for performance")
