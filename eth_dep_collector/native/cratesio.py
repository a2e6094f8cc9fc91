"""
crates.io sparse-index lookups for ``-sys`` wrapper crates.

A ``-sys`` crate declares the native library it binds in the ``links`` field
of its manifest, which the index publishes per version. The index asks for at
most one request per second.
"""

import asyncio
import json
import time

import httpx

from eth_dep_collector.cache import load_cache, save_cache
from eth_dep_collector.config import get_registry_interval, is_cache_enabled
from eth_dep_collector.console import console
from eth_dep_collector.http_client import FetchError, MissingFileError, get_text
from eth_dep_collector.models import RawDependency
from eth_dep_collector.native.patterns import is_system_library
from eth_dep_collector.native.scanner import native_record

CRATES_INDEX_URL = "https://index.crates.io"
CACHE_NAMESPACE = "crates-links"


def crates_index_path(name: str) -> str:
    """Sparse index path: 1/a, 2/ab, 3/a/abc, ab/cd/abcd..."""
    n = name.lower()
    if len(n) == 1:
        return f"1/{n}"
    if len(n) == 2:
        return f"2/{n}"
    if len(n) == 3:
        return f"3/{n[0]}/{n}"
    return f"{n[:2]}/{n[2:4]}/{n}"


def parse_index_links(text: str, version: str) -> str | None:
    """
    ``links`` value for one version from an index file.

    The file is newline-delimited JSON, one object per published version;
    lines that are not valid JSON are skipped.
    """
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict) and entry.get("vers") == version and entry.get("links"):
            return str(entry["links"])
    return None


def is_wrapper_crate(name: str) -> bool:
    return name.endswith("-sys")


async def fetch_native_link(name: str, version: str) -> str | None:
    """Query the index for one crate version."""
    url = f"{CRATES_INDEX_URL}/{crates_index_path(name)}"
    try:
        text = await get_text(url, description=f"crates.io index {name}")
    except MissingFileError:
        return None
    return parse_index_links(text, version)


class RateLimiter:
    """Enforces a minimum interval between consecutive calls."""

    def __init__(self, interval: float):
        self.interval = interval
        self._last: float | None = None

    async def wait(self) -> None:
        if self._last is not None:
            remaining = self.interval - (time.monotonic() - self._last)
            if remaining > 0:
                await asyncio.sleep(remaining)
        self._last = time.monotonic()


async def resolve_native_libs(
    crates: list[tuple[str, str]], interval: float | None = None
) -> dict[str, str]:
    """
    Resolve the native library behind each wrapper crate.

    Lookups run one at a time. A failed lookup skips that crate. Cached answers
    (including "no links field") are reused without a request.

    Args:
        crates: (name, version) pairs.
        interval: Minimum seconds between requests (defaults to config).

    Returns:
        Mapping of crate name -> native library name.
    """
    limiter = RateLimiter(get_registry_interval() if interval is None else interval)
    use_cache = is_cache_enabled()
    cached = load_cache(CACHE_NAMESPACE) if use_cache else {}
    fresh: dict[str, dict] = {}
    result: dict[str, str] = {}

    for name, version in crates:
        key = f"{name}@{version}"
        if key in cached:
            link = cached[key].get("links")
        else:
            await limiter.wait()
            try:
                link = await fetch_native_link(name, version)
            except (FetchError, httpx.HTTPError) as e:
                console.print(f"[dim]  crates.io lookup failed for {key}: {e}[/dim]")
                continue
            fresh[key] = {"links": link}
        if link:
            result[name] = link

    if use_cache and fresh:
        save_cache(CACHE_NAMESPACE, fresh)
    return result


async def resolve_wrapper_crates(packages: list[RawDependency]) -> list[RawDependency]:
    """
    Native records for the production ``-sys`` crates among ``packages``.

    Each record carries the crate's version, since the crate pins the library.
    """
    wrappers = [p for p in packages if not p.is_dev and is_wrapper_crate(p.name)]
    links = await resolve_native_libs([(p.name, p.version) for p in wrappers])

    records: list[RawDependency] = []
    seen: set[str] = set()
    for crate in wrappers:
        library = links.get(crate.name)
        if not library or library in seen or is_system_library(library):
            continue
        seen.add(library)
        records.append(native_record(library, crate.version))
    return records
