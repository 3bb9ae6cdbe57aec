"""Convert packages to and from plain dictionaries.

The same representation is used by the local package store, the lock file
and package indexes. The manifest loader builds the RootPackage and extracts
inline aliases, stability flags and pinned references from its requirements.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from constants import Constants
from versioning.constraints import parse_constraints
from versioning.parser import normalize_version, parse_stability

from .models import Link, Package, PackageLinks, RootPackage

logger = logging.getLogger(__name__)

# dict key -> (PackageLinks field, link description)
LINK_TYPES = {
    "require": ("requires", "requires"),
    "conflict": ("conflicts", "conflicts"),
    "provide": ("provides", "provides"),
    "replace": ("replaces", "replaces"),
}

_STABILITY_FLAG_RE = re.compile(
    r"^[^,\s]*?@(" + "|".join(Constants.STABILITIES) + r")$", re.IGNORECASE
)
_REFERENCE_RE = re.compile(r"^[^,\s@]+?#([^\s@]+)$")
_INLINE_ALIAS_RE = re.compile(r"^([^,\s#]+)(?:#[^ ]+)? +as +([^,\s]+)$")


def load_links(source: str, description: str, raw: Optional[Mapping[str, str]]) -> Tuple[Link, ...]:
    """Build links from a ``{target: constraint}`` mapping."""
    links = []
    for target, constraint in (raw or {}).items():
        pretty = str(constraint)
        if pretty == "self.version":
            raise ValueError(f'"self.version" is not supported in the links of {source}')
        links.append(Link(source, target, parse_constraints(pretty), description, pretty))
    return tuple(links)


def load_package(data: Mapping[str, Any], cls=Package) -> Package:
    """Create a package from its dictionary form.

    Raises:
        ValueError: If name or version is missing or unparsable.
    """
    if not data.get("name"):
        raise ValueError("Package data is missing a name")
    if "version" not in data:
        raise ValueError(f"Package {data['name']} is missing a version")

    pretty_version = str(data["version"])
    version = data.get("version_normalized") or normalize_version(pretty_version)
    package = cls(data["name"], version, pretty_version)
    package.type = data.get("type", package.type)

    name = package.name
    package.set_links(PackageLinks(**{
        field: load_links(name, description, data.get(key))
        for key, (field, description) in LINK_TYPES.items()
    }))
    package.dev_requires = load_links(name, "requires (for development)", data.get("require-dev"))
    package.suggests = dict(data.get("suggest") or {})

    source = data.get("source") or {}
    package.source_type = source.get("type")
    package.source_url = source.get("url")
    package.source_reference = source.get("reference")

    dist = data.get("dist") or {}
    package.dist_type = dist.get("type")
    package.dist_url = dist.get("url")
    package.dist_reference = dist.get("reference")

    package.extra = dict(data.get("extra") or {})
    return package


def _dump_links(links: Iterable[Link]) -> Dict[str, str]:
    return {link.target: link.pretty_constraint for link in links}


def dump_package(package: Package) -> Dict[str, Any]:
    """Return the dictionary form of a package.

    Empty sections are omitted to keep stored files small.
    """
    data: Dict[str, Any] = {
        "name": package.pretty_name,
        "version": package.pretty_version,
        "version_normalized": package.version,
        "type": package.type,
    }
    for key, (field, _) in LINK_TYPES.items():
        links = getattr(package.links, field)
        if links:
            data[key] = _dump_links(links)
    if package.dev_requires:
        data["require-dev"] = _dump_links(package.dev_requires)
    if package.suggests:
        data["suggest"] = dict(package.suggests)
    if package.source_type or package.source_url or package.source_reference:
        data["source"] = {
            "type": package.source_type,
            "url": package.source_url,
            "reference": package.source_reference,
        }
    if package.dist_type or package.dist_url or package.dist_reference:
        data["dist"] = {
            "type": package.dist_type,
            "url": package.dist_url,
            "reference": package.dist_reference,
        }
    if package.extra:
        data["extra"] = package.extra
    return data


def _extract_aliases(requires: Mapping[str, str]) -> List[Dict[str, str]]:
    aliases = []
    for name, constraint in requires.items():
        match = _INLINE_ALIAS_RE.match(str(constraint).strip())
        if match:
            aliases.append({
                "package": name.lower(),
                "version": normalize_version(match.group(1)),
                "alias": match.group(2),
                "alias_normalized": normalize_version(match.group(2)),
            })
    return aliases


def _explicit_aliases(entries: Iterable[Mapping[str, str]]) -> List[Dict[str, str]]:
    """Read the manifest's ``aliases`` list of {package, version, alias}."""
    aliases = []
    for entry in entries:
        try:
            aliases.append({
                "package": entry["package"].lower(),
                "version": normalize_version(entry["version"]),
                "alias": entry["alias"],
                "alias_normalized": normalize_version(entry["alias"]),
            })
        except KeyError as exc:
            raise ValueError(f"Alias entry {dict(entry)} is missing {exc}") from exc
    return aliases


def _extract_stability_flags(requires: Mapping[str, str], minimum_stability: str) -> Dict[str, str]:
    """Collect per-package stability overrides from requirement strings.

    ``foo: 1.0@beta`` flags foo as beta; a constraint on a dev branch or an
    explicit unstable version flags the package with that stability when it
    is less stable than the minimum.
    """
    flags = {}
    minimum = Constants.STABILITIES[minimum_stability]
    for name, constraint in requires.items():
        text = str(constraint).strip()
        alias = _INLINE_ALIAS_RE.match(text)
        if alias:
            text = alias.group(1)
        match = _STABILITY_FLAG_RE.match(text)
        if match:
            stability = _canonical_stability(match.group(1))
        else:
            version = re.sub(r"^[<>=!~^\s]+", "", text.split("#", 1)[0])
            stability = parse_stability(version) if version and " " not in version else "stable"
        if Constants.STABILITIES[stability] > minimum:
            flags[name.lower()] = stability
    return flags


def _canonical_stability(value: str) -> str:
    for stability in Constants.STABILITIES:
        if stability.lower() == value.lower():
            return stability
    raise ValueError(f'Unknown stability "{value}"')


def _extract_references(requires: Mapping[str, str]) -> Dict[str, str]:
    references = {}
    for name, constraint in requires.items():
        text = str(constraint).strip()
        alias = _INLINE_ALIAS_RE.match(text)
        if alias:
            text = alias.group(1) + (text[len(alias.group(1)):].split(" ", 1)[0])
        match = _REFERENCE_RE.match(text)
        if match:
            references[name.lower()] = match.group(1)
    return references


def load_root_package(data: Mapping[str, Any]) -> RootPackage:
    """Create the root package from the manifest dictionary.

    Raises:
        ValueError: If the manifest is missing a name or holds bad constraints.
    """
    if not data.get("name"):
        raise ValueError("The manifest must define a name")
    manifest = dict(data)
    manifest.setdefault("version", "1.0.0")
    root = load_package(manifest, cls=RootPackage)

    minimum_stability = _canonical_stability(data.get("minimum-stability", Constants.DEFAULT_MINIMUM_STABILITY))
    root.minimum_stability = minimum_stability
    root.prefer_stable = bool(data.get("prefer-stable", False))

    all_requires: Dict[str, str] = {}
    all_requires.update(data.get("require") or {})
    all_requires.update(data.get("require-dev") or {})
    root.aliases = _extract_aliases(all_requires) + _explicit_aliases(data.get("aliases") or [])
    root.stability_flags = _extract_stability_flags(all_requires, minimum_stability)
    root.references = _extract_references(all_requires)

    root.scripts = {
        event: [commands] if isinstance(commands, str) else list(commands)
        for event, commands in (data.get("scripts") or {}).items()
    }
    root.repositories = list(data.get("repositories") or [])
    root.config = dict(data.get("config") or {})
    logger.debug("Loaded root package %s", root.pretty_string)
    return root
