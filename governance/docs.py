def generate_markdown(catalog):
    """Renders the naming convention reference for artists."""
    lines = [
        "# Naming Conventions Reference",
        "",
        "## Prefix Rules",
        "",
        "| Prefix | Allowed Folders | Description |",
        "|--------|----------------|-------------|",
    ]
    for rule in catalog.prefixes.values():
        folders = ", ".join(rule.locations)
        lines.append(f"| `{rule.prefix}` | `{folders}` | {rule.description or 'Unknown prefix'} |")

    lines += [
        "",
        "## Texture Suffix Rules",
        "",
        "| Suffix | Aliases | Description |",
        "|--------|---------|-------------|",
    ]
    for rule in catalog.suffixes.values():
        aliases = ", ".join(rule.aliases)
        lines.append(f"| `{rule.suffix}` | {aliases} | {rule.description or 'Unknown suffix'} |")

    if catalog.categories:
        lines += [
            "",
            "## Categories",
            "",
            "| Category | Aliases |",
            "|----------|---------|",
        ]
        for category, aliases in catalog.categories.items():
            lines.append(f"| `{category}` | {', '.join(aliases)} |")

    lines += [
        "",
        "## File Size Limits",
        "",
        "| File Type | Maximum Size |",
        "|-----------|-------------|",
    ]
    for rule in catalog.sizes.values():
        lines.append(f"| `{rule.extension}` | {rule.max_bytes // 1024 // 1024}MB |")

    return "\n".join(lines) + "\n"
