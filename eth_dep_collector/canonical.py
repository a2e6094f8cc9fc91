"""
Canonical library groups.

A canonical group ties together package identifiers and native library names
that refer to the same real-world library across ecosystems (for example the
Go, Rust and Java bindings of blst, plus the C library itself). The table is
loaded from YAML once per process; lookups go through a reverse index that is
built lazily and never rebuilt.
"""

import threading
from pathlib import Path
from typing import NamedTuple

import yaml

from eth_dep_collector.config import get_canonical_mappings_path
from eth_dep_collector.console import warn
from eth_dep_collector.purl import normalize_identifier, strip_version


class CanonicalMappingError(ValueError):
    """The canonical mapping table is unreadable or inconsistent."""


class CanonicalGroup(NamedTuple):
    """One curated library identity."""

    id: str
    description: str
    category: str
    purls: list[str]
    native_names: list[str]


_GROUPS: dict[str, CanonicalGroup] | None = None
_INDEX: dict[str, str] | None = None
_LOCK = threading.Lock()


def parse_canonical_groups(content: str) -> dict[str, CanonicalGroup]:
    """
    Parse the YAML mapping document.

    Expected shape::

        libraries:
          blst:
            description: BLS12-381 signature library
            category: crypto
            purls: [pkg:cargo/blst, pkg:golang/github.com/supranational/blst]
            native_names: [blst]

    Raises:
        CanonicalMappingError: If the document is not valid YAML or lacks a
            ``libraries`` mapping.
    """
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise CanonicalMappingError(f"Invalid canonical mapping YAML: {e}") from e

    libraries = data.get("libraries") if isinstance(data, dict) else None
    if not isinstance(libraries, dict):
        raise CanonicalMappingError("Canonical mapping must define a 'libraries' table")

    groups: dict[str, CanonicalGroup] = {}
    for group_id, lib in libraries.items():
        lib = lib or {}
        groups[str(group_id)] = CanonicalGroup(
            id=str(group_id),
            description=str(lib.get("description", "")),
            category=str(lib.get("category", "")),
            purls=[str(p) for p in lib.get("purls") or []],
            native_names=[str(n) for n in lib.get("native_names") or []],
        )
    return groups


def validate_canonical_groups(groups: dict[str, CanonicalGroup]) -> dict[str, list[str]]:
    """
    Find identifiers or native names claimed by more than one group.

    Purls are compared in normalized, unversioned form.

    Returns:
        Mapping of conflicting key -> group ids claiming it (empty if valid).
    """
    owners: dict[str, list[str]] = {}
    for group in groups.values():
        keys = {strip_version(normalize_identifier(p)) for p in group.purls}
        keys.update(group.native_names)
        for key in keys:
            owners.setdefault(key, []).append(group.id)
    return {key: ids for key, ids in owners.items() if len(ids) > 1}


def load_canonical_groups(
    path: Path | None = None, strict: bool = False
) -> dict[str, CanonicalGroup]:
    """
    Load the canonical table from disk.

    Args:
        path: YAML file; defaults to the configured mapping path.
        strict: Raise CanonicalMappingError when membership overlaps.
    """
    path = path or get_canonical_mappings_path()
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise CanonicalMappingError(f"Cannot read canonical mapping {path}: {e}") from e

    groups = parse_canonical_groups(content)
    if strict:
        conflicts = validate_canonical_groups(groups)
        if conflicts:
            details = "; ".join(
                f"{key} -> {', '.join(ids)}" for key, ids in sorted(conflicts.items())
            )
            raise CanonicalMappingError(
                f"Canonical groups overlap ({len(conflicts)} keys): {details}"
            )
    return groups


def build_index(groups: dict[str, CanonicalGroup]) -> dict[str, str]:
    """
    Build the reverse lookup: purl / native name -> group id.

    Each purl is indexed as written and in normalized form. When a key is
    claimed twice the first group keeps it and a warning is printed.
    """
    index: dict[str, str] = {}

    def _add(key: str, group_id: str) -> None:
        existing = index.get(key)
        if existing is None:
            index[key] = group_id
        elif existing != group_id:
            warn(
                f"Canonical mapping conflict: {key} is claimed by "
                f"{existing} and {group_id}; keeping {existing}"
            )

    for group in groups.values():
        for purl in group.purls:
            _add(purl, group.id)
            _add(normalize_identifier(purl), group.id)
        for name in group.native_names:
            _add(name, group.id)
    return index


def _get_index() -> dict[str, str]:
    global _GROUPS, _INDEX
    if _INDEX is None:
        with _LOCK:
            if _INDEX is None:
                _GROUPS = load_canonical_groups()
                _INDEX = build_index(_GROUPS)
    return _INDEX


def get_canonical_groups() -> dict[str, CanonicalGroup]:
    """The process-wide canonical table."""
    _get_index()
    return _GROUPS or {}


def lookup_canonical_group(identifier_or_native_name: str) -> str | None:
    """
    Return the canonical group id for an identifier or native library name.

    Tries an exact match first, then the identifier with its @version removed.
    """
    if not identifier_or_native_name:
        return None
    index = _get_index()
    found = index.get(identifier_or_native_name)
    if found is not None:
        return found
    return index.get(strip_version(identifier_or_native_name))


def set_canonical_groups(groups: dict[str, CanonicalGroup]) -> None:
    """Install a table explicitly (used after a strict load and by tests)."""
    global _GROUPS, _INDEX
    with _LOCK:
        _GROUPS = groups
        _INDEX = build_index(groups)


def reset_canonical_cache() -> None:
    """Forget the loaded table so the next lookup reloads it."""
    global _GROUPS, _INDEX
    with _LOCK:
        _GROUPS = None
        _INDEX = None
