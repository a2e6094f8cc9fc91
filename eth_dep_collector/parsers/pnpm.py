"""pnpm-lock.yaml parsing (lockfile v6 and v9)."""

import re

import yaml

from eth_dep_collector.models import ParseResult, RawDependency
from eth_dep_collector.parsers.base import ParserSpec
from eth_dep_collector.purl import build_identifier

PARSER = ParserSpec(
    name="pnpm-lock",
    document_names={"pnpm-lock.yaml"},
    parse=lambda text, _self=None: parse_pnpm_lock(text),
    limitations=("Dev dep classification is approximate for transitive deps",),
)

# "@scope/name@1.2.3" or "name@1.2.3"
_KEY_RE = re.compile(r"^(@[^@/]+/[^@]+|[^@]+)@(.+)$")
# pnpm v5/v6 keys: "/name/1.2.3"
_LEGACY_KEY_RE = re.compile(r"^(@[^/]+/[^/]+|[^/]+)/(\d[^/]*)$")


def _strip_peer_suffix(version: str) -> str:
    """``1.2.3(typescript@5.0.0)`` -> ``1.2.3``; v6 uses ``_peer@x`` suffixes."""
    return version.split("(", 1)[0].split("_", 1)[0]


def split_package_key(key: str) -> tuple[str, str] | None:
    """Split a ``packages`` key into (name, version)."""
    legacy = key.startswith("/")
    key = key.lstrip("/").split("(", 1)[0]
    # Only v5/v6 keys start with "/"; their peer suffix may carry an "@"
    match = (legacy and _LEGACY_KEY_RE.match(key)) or _KEY_RE.match(key)
    if match is None:
        return None
    name, version = match.groups()
    return name, _strip_peer_suffix(version)


def collect_dev_keys(lock: dict, warnings: list[str] | None = None) -> set[str]:
    """``name@version`` keys of every importer's devDependencies."""
    warnings = [] if warnings is None else warnings
    dev_keys: set[str] = set()
    importers = lock.get("importers") or {}
    if not isinstance(importers, dict):
        warnings.append("pnpm-lock.yaml: 'importers' is not a mapping")
        return dev_keys

    for path, importer in importers.items():
        if not isinstance(importer, dict):
            continue
        dev_deps = importer.get("devDependencies") or {}
        if not isinstance(dev_deps, dict):
            warnings.append(f"pnpm-lock.yaml: devDependencies of {path!r} is not a mapping")
            continue
        for name, info in dev_deps.items():
            version = info.get("version") if isinstance(info, dict) else info
            if not version:
                continue
            version = str(version)
            if version.startswith(("link:", "workspace:", "file:")):
                continue
            dev_keys.add(f"{name}@{_strip_peer_suffix(version)}")
    return dev_keys


def parse_pnpm_lock(text: str) -> ParseResult:
    """
    Parse pnpm-lock.yaml.

    Every entry of the resolved ``packages`` table becomes a record; entries
    whose exact ``name@version`` is a dev dependency of some workspace importer
    are flagged ``is_dev``. Transitive dependencies of dev tools are not traced,
    so they stay classified as production.
    """
    warnings: list[str] = []
    try:
        lock = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        return ParseResult([], [f"pnpm-lock.yaml: invalid YAML ({e})"])
    if not isinstance(lock, dict):
        return ParseResult([], ["pnpm-lock.yaml: document is not a mapping"])

    dev_keys = collect_dev_keys(lock, warnings)
    packages = lock.get("packages") or {}
    if not isinstance(packages, dict):
        warnings.append("pnpm-lock.yaml: 'packages' is not a mapping")
        packages = {}
    records: list[RawDependency] = []
    seen: set[str] = set()

    for key in packages:
        parts = split_package_key(str(key))
        if parts is None:
            warnings.append(f"pnpm-lock.yaml: unrecognized package key {key!r}")
            continue
        name, version = parts
        identifier = build_identifier("npm", None, name, version)
        if identifier in seen:
            continue
        seen.add(identifier)
        records.append(
            RawDependency(
                name=name,
                version=version,
                identifier=identifier,
                is_dev=f"{name}@{version}" in dev_keys,
            )
        )

    return ParseResult(records, warnings)
