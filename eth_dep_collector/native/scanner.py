"""
Native reference scanning over a client's source tree.

One code search finds candidate files, which are then fetched one by one and
run through the matching extractor. GitHub's search endpoint allows about 30
requests per minute, so the search is preceded by a longer pause and file
fetches are spaced out.
"""

import asyncio
from enum import Enum
from typing import Callable, NamedTuple, Protocol

import httpx

from eth_dep_collector.config import get_file_delay, get_search_delay
from eth_dep_collector.console import console
from eth_dep_collector.http_client import FetchError
from eth_dep_collector.models import DepKind, RawDependency
from eth_dep_collector.native.patterns import (
    extract_cgo_libraries,
    extract_dllimport_libraries,
    extract_jni_libraries,
    is_system_library,
)
from eth_dep_collector.purl import build_identifier


class SourceHost(Protocol):
    """What the scanner needs from the code host."""

    async def search_code(self, repo: str, query: str) -> list[str]: ...

    async def fetch_raw(self, repo: str, ref: str, path: str) -> str: ...


class NativeScanKind(str, Enum):
    """Interop syntax to scan for."""

    CGO = "cgo"
    JNI = "jni"
    DLLIMPORT = "dllimport"


class ScanSpec(NamedTuple):
    query: str
    extract: Callable[[str], list[str]]
    version: str  # version label for records: libraries carry no version in source
    suffixes: tuple[str, ...] = ()  # restrict results to these file extensions


SCAN_SPECS: dict[NativeScanKind, ScanSpec] = {
    NativeScanKind.CGO: ScanSpec('import "C"', extract_cgo_libraries, "vendored", (".go",)),
    NativeScanKind.JNI: ScanSpec(
        "System.loadLibrary", extract_jni_libraries, "runtime", (".java", ".kt")
    ),
    NativeScanKind.DLLIMPORT: ScanSpec(
        "DllImport", extract_dllimport_libraries, "runtime", (".cs",)
    ),
}


def native_record(library: str, version: str) -> RawDependency:
    """Record for a native library found in source or via a wrapper crate."""
    return RawDependency(
        name=library,
        version=version,
        identifier=build_identifier("generic", None, library),
        kind=DepKind.NATIVE,
        native_lib=library,
    )


def libraries_to_records(libraries: list[str], version: str) -> list[RawDependency]:
    """Drop OS libraries and duplicates, keeping first-seen order."""
    records: list[RawDependency] = []
    seen: set[str] = set()
    for library in libraries:
        if library in seen or is_system_library(library):
            continue
        seen.add(library)
        records.append(native_record(library, version))
    return records


async def scan_native_references(
    host: SourceHost,
    repo: str,
    ref: str,
    kind: NativeScanKind,
    search_delay: float | None = None,
    file_delay: float | None = None,
) -> list[RawDependency]:
    """
    Find native libraries referenced from ``repo`` at ``ref``.

    A failing file fetch skips that file. A failing search propagates.

    Args:
        host: Code host providing search and raw file access.
        repo: ``owner/repo``.
        ref: Tag or branch to read files at.
        kind: Interop syntax to look for.
        search_delay: Pause before the search (defaults to config).
        file_delay: Pause before each file fetch (defaults to config).
    """
    spec = SCAN_SPECS[NativeScanKind(kind)]
    search_delay = get_search_delay() if search_delay is None else search_delay
    file_delay = get_file_delay() if file_delay is None else file_delay

    await asyncio.sleep(search_delay)
    paths = await host.search_code(repo, spec.query)
    if spec.suffixes:
        paths = [p for p in paths if p.endswith(spec.suffixes)]

    libraries: list[str] = []
    for path in paths:
        await asyncio.sleep(file_delay)
        try:
            content = await host.fetch_raw(repo, ref, path)
        except (FetchError, httpx.HTTPError) as e:
            console.print(f"[dim]  skipped {path}: {e}[/dim]")
            continue
        libraries.extend(spec.extract(content))

    return libraries_to_records(libraries, spec.version)
