"""
Cache management for registry lookups.

Published crate metadata never changes for a given version, so crates.io
``links`` lookups are cached on disk to avoid re-querying (at one request per
second) on every run. Each namespace is one gzip JSON file in the cache
directory.
"""

import gzip
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from eth_dep_collector.config import get_cache_dir, get_cache_ttl

CACHE_VERSION = "1.0"


def _get_cache_path(namespace: str) -> Path:
    """Get the cache file path for a namespace (e.g. 'crates-links')."""
    return get_cache_dir() / f"{namespace}.json.gz"


def is_cache_valid(entry: dict[str, Any], expected_version: str = CACHE_VERSION) -> bool:
    """
    Check if a cache entry is still valid based on TTL and data version.

    Args:
        entry: Cache entry dict with cache_metadata and cache_version.
        expected_version: Expected cache_version string.

    Returns:
        True if cache is valid (within TTL and version matches), False otherwise.
    """
    if entry.get("cache_version") != expected_version:
        return False

    metadata = entry.get("cache_metadata")
    if not metadata or "fetched_at" not in metadata:
        return False

    try:
        fetched_at = datetime.fromisoformat(metadata["fetched_at"])
        ttl_seconds = metadata.get("ttl_seconds", get_cache_ttl())

        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)

        age_seconds = (datetime.now(timezone.utc) - fetched_at).total_seconds()
        return age_seconds < ttl_seconds
    except (ValueError, TypeError):
        return False


def _read(cache_path: Path) -> dict[str, Any]:
    try:
        with gzip.open(cache_path, "rt", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError, EOFError):
        # Corrupted cache
        return {}
    return data if isinstance(data, dict) else {}


def load_cache(namespace: str) -> dict[str, Any]:
    """
    Load valid entries of a namespace.

    Returns:
        Mapping of key -> entry, expired and corrupted entries dropped.
    """
    cache_path = _get_cache_path(namespace)
    if not cache_path.exists():
        return {}
    return {
        key: entry
        for key, entry in _read(cache_path).items()
        if isinstance(entry, dict) and is_cache_valid(entry)
    }


def save_cache(namespace: str, data: dict[str, Any], merge: bool = True) -> None:
    """
    Save entries to a namespace.

    Args:
        namespace: Cache namespace.
        data: Mapping of key -> entry dict; metadata is added when missing.
        merge: If True, merge with existing cache. If False, replace entirely.
    """
    cache_dir = get_cache_dir()
    cache_dir.mkdir(parents=True, exist_ok=True)
    cache_path = _get_cache_path(namespace)

    existing_data = _read(cache_path) if merge and cache_path.exists() else {}

    now = datetime.now(timezone.utc).isoformat()
    ttl = get_cache_ttl()
    for entry in data.values():
        entry.setdefault("cache_version", CACHE_VERSION)
        entry.setdefault(
            "cache_metadata",
            {"fetched_at": now, "ttl_seconds": ttl},
        )

    merged_data = {**existing_data, **data}
    with gzip.open(cache_path, "wt", encoding="utf-8") as f:
        json.dump(merged_data, f, indent=2, ensure_ascii=False, sort_keys=True)


def clear_cache(namespace: str | None = None) -> int:
    """
    Clear one or all namespaces.

    Returns:
        Number of cache files removed.
    """
    cache_dir = get_cache_dir()
    if not cache_dir.exists():
        return 0

    if namespace:
        paths = [_get_cache_path(namespace)]
    else:
        paths = list(cache_dir.glob("*.json.gz"))

    cleared = 0
    for cache_path in paths:
        if cache_path.exists():
            cache_path.unlink()
            cleared += 1
    return cleared


def get_cache_stats() -> dict[str, Any]:
    """Entry counts per namespace."""
    cache_dir = get_cache_dir()
    if not cache_dir.exists():
        return {
            "cache_dir": str(cache_dir),
            "exists": False,
            "total_entries": 0,
            "valid_entries": 0,
            "namespaces": {},
        }

    namespaces = {}
    total_entries = 0
    valid_entries = 0
    for cache_path in sorted(cache_dir.glob("*.json.gz")):
        data = _read(cache_path)
        valid = sum(
            1 for entry in data.values() if isinstance(entry, dict) and is_cache_valid(entry)
        )
        namespaces[cache_path.name.removesuffix(".json.gz")] = {
            "total": len(data),
            "valid": valid,
            "expired": len(data) - valid,
        }
        total_entries += len(data)
        valid_entries += valid

    return {
        "cache_dir": str(cache_dir),
        "exists": True,
        "total_entries": total_entries,
        "valid_entries": valid_entries,
        "namespaces": namespaces,
    }
