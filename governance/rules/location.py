def check(artifact, rule, catalog, result):
    """The artifact must live under one of its prefix's allowed locations."""
    if rule is None:
        return

    path = artifact.path.replace("\\", "/")
    if any(location in path for location in rule.locations):
        return

    allowed = " or ".join(rule.locations)
    result.error(f"Asset in wrong folder: '{artifact.name}' should be in: {allowed}")
    result.suggest(f"Move to: {rule.locations[0]}")
