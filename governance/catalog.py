import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

DEFAULT_REGISTRY_PATH = os.path.join(os.path.dirname(__file__), "rule_registry.json")
DEFAULT_MAX_SIZE = 5 * 1024 * 1024

STRUCTURES = ("texture", "audio", "variant")

DEFAULT_LIMITS = {
    "max_name_length": 64,
    "mesh_error_triangles": 100000,
    "mesh_warning_triangles": 50000,
    "mesh_low_triangles": 100,
    "mesh_lod_suggestion_triangles": 2000,
    "max_nested_composites": 5,
    "max_texture_size": 4096,
}


class CatalogError(ValueError):
    """Raised when a rule registry cannot be turned into a RuleCatalog."""


@dataclass(frozen=True)
class PrefixRule:
    prefix: str
    locations: Tuple[str, ...]
    structure: Optional[str] = None
    base_prefix: Optional[str] = None
    categories: Tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class SuffixRule:
    suffix: str
    aliases: Tuple[str, ...]
    keywords: Tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class SizeRule:
    extension: str
    max_bytes: int


@dataclass(frozen=True)
class InferenceRule:
    contains: Tuple[str, ...]
    prefix: str


@dataclass(frozen=True)
class RuleCatalog:
    """Immutable naming, location and size policy.

    Built once from the rule registry and shared read-only for the whole
    run. Prefixes are matched in registry order.
    """
    prefixes: Mapping[str, PrefixRule]
    suffixes: Mapping[str, SuffixRule]
    sizes: Mapping[str, SizeRule]
    categories: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    default_suffix: Optional[str] = None
    prefix_inference: Tuple[InferenceRule, ...] = ()
    kind_prefixes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    art_locations: Tuple[str, ...] = ()
    limits: Mapping[str, int] = field(default_factory=lambda: MappingProxyType(dict(DEFAULT_LIMITS)))

    # ── Lookups ──

    def allowed_locations(self, prefix):
        rule = self.prefixes.get(prefix)
        return frozenset(rule.locations) if rule else frozenset()

    def is_recognized_suffix(self, suffix):
        return suffix in self.suffixes

    def max_size(self, extension):
        rule = self.sizes.get(extension.lower())
        return rule.max_bytes if rule else DEFAULT_MAX_SIZE

    def match_prefix(self, name) -> Optional[PrefixRule]:
        for prefix, rule in self.prefixes.items():
            if name.startswith(prefix):
                return rule
        return None

    def suffix_for_alias(self, token) -> Optional[str]:
        token = token.lower()
        for rule in self.suffixes.values():
            if any(alias.lower() == token for alias in rule.aliases):
                return rule.suffix
        return None

    def suggest_suffix(self, name):
        """Keyword match on the lowercased name, falling back to the default suffix."""
        lower_name = name.lower()
        for rule in self.suffixes.values():
            if any(keyword in lower_name for keyword in rule.keywords):
                return rule.suffix
        return self.default_suffix

    def canonical_category(self, token) -> Optional[str]:
        for category, aliases in self.categories.items():
            if token == category or token in aliases:
                return category
        return None

    def infer_prefix(self, path, kind) -> Optional[str]:
        padded = "/" + path.replace("\\", "/")
        for rule in self.prefix_inference:
            if all("/" + folder in padded for folder in rule.contains):
                return rule.prefix
        return self.kind_prefixes.get(kind.value)

    def is_art_location(self, path):
        padded = "/" + path.replace("\\", "/")
        return any("/" + location in padded for location in self.art_locations)

    def limit(self, key):
        return self.limits.get(key, DEFAULT_LIMITS[key])

    # ── Construction ──

    @classmethod
    def from_dict(cls, data):
        try:
            prefixes = _build_prefixes(data.get("prefixes", {}))
            suffixes = {
                suffix: SuffixRule(
                    suffix=suffix,
                    aliases=tuple(rule.get("aliases", ())),
                    keywords=tuple(k.lower() for k in rule.get("keywords", ())),
                    description=rule.get("description", ""),
                )
                for suffix, rule in data.get("suffixes", {}).items()
            }
            sizes = {}
            for extension, max_bytes in data.get("size_limits", {}).items():
                key = extension.lower()
                if key in sizes:
                    raise CatalogError(f"Duplicate size rule for extension '{key}'")
                if int(max_bytes) <= 0:
                    raise CatalogError(f"Size limit for '{key}' must be positive")
                sizes[key] = SizeRule(extension=key, max_bytes=int(max_bytes))
            inference = tuple(
                InferenceRule(contains=tuple(rule["contains"]), prefix=rule["prefix"])
                for rule in data.get("prefix_inference", ())
            )
            limits = dict(DEFAULT_LIMITS)
            limits.update({k: int(v) for k, v in data.get("limits", {}).items()})
        except CatalogError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CatalogError(f"Malformed rule registry: {e}") from e

        default_suffix = data.get("default_suffix")
        if default_suffix is not None and default_suffix not in suffixes:
            raise CatalogError(f"Default suffix '{default_suffix}' is not a registered suffix")

        return cls(
            prefixes=MappingProxyType(prefixes),
            suffixes=MappingProxyType(suffixes),
            sizes=MappingProxyType(sizes),
            categories=MappingProxyType({k: tuple(v) for k, v in data.get("categories", {}).items()}),
            default_suffix=default_suffix,
            prefix_inference=inference,
            kind_prefixes=MappingProxyType(dict(data.get("kind_prefixes", {}))),
            art_locations=tuple(data.get("art_locations", ())),
            limits=MappingProxyType(limits),
        )


def _build_prefixes(raw):
    prefixes = {}
    for prefix, rule in raw.items():
        structure = rule.get("structure")
        if structure is not None and structure not in STRUCTURES:
            raise CatalogError(f"Prefix '{prefix}' has unknown structure '{structure}'")
        if structure == "variant" and not rule.get("base_prefix"):
            raise CatalogError(f"Variant prefix '{prefix}' needs a base_prefix")
        locations = tuple(rule.get("locations", ()))
        if not locations:
            raise CatalogError(f"Prefix '{prefix}' has no allowed locations")
        prefixes[prefix] = PrefixRule(
            prefix=prefix,
            locations=locations,
            structure=structure,
            base_prefix=rule.get("base_prefix"),
            categories=tuple(rule.get("categories", ())),
            description=rule.get("description", ""),
        )

    # A name could start with both prefixes, making the match order-dependent.
    keys = list(prefixes)
    for a in keys:
        for b in keys:
            if a != b and b.startswith(a):
                raise CatalogError(f"Prefix '{a}' overlaps prefix '{b}'")
    return prefixes


def _reject_duplicates(pairs):
    result = {}
    for key, value in pairs:
        if key in result:
            raise CatalogError(f"Duplicate rule key '{key}' in registry")
        result[key] = value
    return result


def load_catalog(path=None) -> RuleCatalog:
    """Loads a rule registry JSON file into a RuleCatalog."""
    path = path or DEFAULT_REGISTRY_PATH
    try:
        with open(path, "r") as f:
            data = json.load(f, object_pairs_hook=_reject_duplicates)
    except json.JSONDecodeError as e:
        raise CatalogError(f"Rule registry {path} is not valid JSON: {e}") from e
    return RuleCatalog.from_dict(data)
