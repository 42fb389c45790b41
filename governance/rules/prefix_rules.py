"""Structure checks that depend on which prefix a name matched."""


def check_texture(name, rule, catalog, result):
    parts = name.split("_")
    if len(parts) < 3:
        result.warning("Texture name should include a texture type suffix (e.g., _Albedo, _Normal)")
        return

    suffix = "_" + parts[-1]
    if catalog.is_recognized_suffix(suffix):
        return

    standard = ", ".join(catalog.suffixes)
    result.warning(f"Unusual texture suffix '{suffix}'. Standard suffixes: {standard}")

    suggested = catalog.suffix_for_alias(parts[-1]) or catalog.suggest_suffix(name)
    if suggested:
        result.suggest(f"Consider using suffix: {suggested}")


def check_audio(name, rule, catalog, result):
    parts = name[len(rule.prefix):].split("_")
    if len(parts) < 2:
        result.warning(
            f"Audio files should include category and specific name (e.g., {rule.prefix}Weapon_RifleShot)"
        )

    if rule.categories and parts[0] not in rule.categories:
        result.suggest(f"Consider using a standard category: {', '.join(rule.categories)}")


def check_variant(name, rule, catalog, result):
    base_name = name.replace(rule.prefix, rule.base_prefix)
    last_underscore = base_name.rfind("_")

    # Shortest acceptable form is <base_prefix>X_V
    if last_underscore < len(rule.base_prefix) + 1:
        result.error(
            f"Prefab variant name should follow pattern: {rule.prefix}BaseName_Variant"
        )


STRUCTURE_CHECKS = {
    "texture": check_texture,
    "audio": check_audio,
    "variant": check_variant,
}


def check(artifact, rule, catalog, result):
    if rule is None or rule.structure is None:
        return
    STRUCTURE_CHECKS[rule.structure](artifact.name, rule, catalog, result)
