"""Cargo.lock / Cargo.toml parsing."""

import tomllib

from eth_dep_collector.models import ParseResult, RawDependency
from eth_dep_collector.parsers.base import ParserSpec
from eth_dep_collector.purl import build_identifier

PARSER = ParserSpec(
    name="cargo-lock",
    document_names={"Cargo.lock"},
    parse=lambda text, _self=None: parse_cargo_lock(text),
)


def _load_toml(text: str, label: str, warnings: list[str]) -> dict:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        warnings.append(f"{label}: invalid TOML ({e})")
        return {}


def parse_cargo_lock(text: str, dev_names: set[str] | None = None) -> ParseResult:
    """
    Parse Cargo.lock ([[package]] entries).

    Workspace members have no ``source`` field; only packages resolved from a
    registry or git source are external dependencies.

    Args:
        text: Cargo.lock content.
        dev_names: Crate names declared as dev-dependencies anywhere in the
            workspace; matching packages are flagged ``is_dev``.
    """
    warnings: list[str] = []
    data = _load_toml(text, "Cargo.lock", warnings)
    dev_names = dev_names or set()

    packages = data.get("package", [])
    if not isinstance(packages, list):
        warnings.append("Cargo.lock: 'package' is not an array of tables")
        packages = []

    records: list[RawDependency] = []
    seen: set[str] = set()
    for package in packages:
        if not isinstance(package, dict):
            continue
        name = package.get("name")
        version = package.get("version")
        if not name or not version:
            warnings.append(f"Cargo.lock: package entry without name/version: {package!r}")
            continue
        if package.get("source") is None:
            continue

        identifier = build_identifier("cargo", None, name, version)
        if identifier in seen:
            continue
        seen.add(identifier)
        records.append(
            RawDependency(
                name=name,
                version=version,
                identifier=identifier,
                is_dev=name in dev_names,
            )
        )

    return ParseResult(records, warnings)


def _table(data: dict, key: str, label: str, warnings: list[str]) -> dict:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        warnings.append(f"{label}: '{key}' is not a table")
        return {}
    return value


def parse_cargo_dev_dependencies(text: str, warnings: list[str] | None = None) -> set[str]:
    """Dev-dependency names from a Cargo.toml (package and workspace level)."""
    warnings = [] if warnings is None else warnings
    data = _load_toml(text, "Cargo.toml", warnings)
    names = set(_table(data, "dev-dependencies", "Cargo.toml", warnings))
    workspace = _table(data, "workspace", "Cargo.toml", warnings)
    names.update(_table(workspace, "dev-dependencies", "Cargo.toml [workspace]", warnings))
    return names


def cargo_workspace_members(text: str, warnings: list[str] | None = None) -> list[str]:
    """
    Workspace member directories from a root Cargo.toml.

    Glob entries (``crates/*``) cannot be expanded without a directory
    listing and are skipped.
    """
    warnings = [] if warnings is None else warnings
    data = _load_toml(text, "Cargo.toml", warnings)
    members = _table(data, "workspace", "Cargo.toml", warnings).get("members") or []
    if not isinstance(members, list):
        warnings.append("Cargo.toml [workspace]: 'members' is not an array")
        return []
    result: list[str] = []
    for member in members:
        path = str(member).strip().rstrip("/")
        if path.endswith("/*"):
            continue
        if not path or "*" in path or "?" in path:
            continue
        result.append(path)
    return result
