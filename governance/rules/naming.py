import re

from governance.models import ArtifactKind

INVALID_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def is_governed(artifact, catalog):
    """Naming policy applies to art content and anything kept in an art location."""
    return artifact.kind is not ArtifactKind.OTHER or catalog.is_art_location(artifact.path)


def check(artifact, catalog, result):
    """Checks the base name: registered prefix, characters, spaces, underscores and length."""
    if not is_governed(artifact, catalog):
        return None

    name = artifact.name
    rule = catalog.match_prefix(name)

    if rule is None:
        expected = ", ".join(catalog.prefixes)
        result.error(f"Invalid naming: '{name}' should start with one of: {expected}")

        suggested_prefix = catalog.infer_prefix(artifact.path, artifact.kind)
        if suggested_prefix:
            result.suggest(f"Suggested name: {suggested_prefix}{artifact.file_name}")
    else:
        _check_category(name[len(rule.prefix):], catalog, result)

    if " " in name:
        result.error("Asset names cannot contain spaces. Use PascalCase or underscores.")

    if "__" in name:
        result.warning("Asset name contains consecutive underscores. Use single underscores only.")

    if INVALID_CHARS.search(name):
        result.error("Asset names can only contain letters, numbers, and underscores.")

    if len(name) > catalog.limit("max_name_length"):
        result.warning("Asset name is very long. Consider using a shorter, more descriptive name.")

    return rule


def _check_category(remainder, catalog, result):
    token = remainder.split("_", 1)[0]
    if not token:
        return
    category = catalog.canonical_category(token)
    if category and category != token:
        result.suggest(f"Use the standard category '{category}' instead of '{token}'")
