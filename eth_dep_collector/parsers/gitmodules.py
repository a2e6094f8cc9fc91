"""
``.gitmodules`` parsing for projects that vendor dependencies as submodules.

Format::

    [submodule "vendor/nim-blscurve"]
        path = vendor/nim-blscurve
        url = https://github.com/status-im/nim-blscurve.git
        branch = master
"""

import re
from typing import NamedTuple

from eth_dep_collector.models import ParseResult, RawDependency
from eth_dep_collector.parsers.base import ParserSpec
from eth_dep_collector.purl import build_identifier

PARSER = ParserSpec(
    name="gitmodules",
    document_names={".gitmodules"},
    parse=lambda text, _self=None: parse_gitmodules(text),
    limitations=(
        "Direct dependencies only: vendored git submodules, no transitive resolution",
        "Version is tracking branch name, not pinned commit hash",
    ),
)

# Test fixtures and network configuration data, not libraries
SKIP_PATH_PREFIXES = (
    "vendor/mainnet",
    "vendor/nim-eth2-scenarios",
    "vendor/gnosis",
    "vendor/sepolia",
    "vendor/holesky",
)

DEFAULT_BRANCH = "master"

_SECTION_RE = re.compile(r"^\s*\[submodule\b[^\]]*\]\s*$", re.MULTILINE)
_KEY_VALUE_RE = re.compile(r"^\s*([\w.-]+)\s*=\s*(.*?)\s*$")
_GITHUB_RE = re.compile(r"github\.com[/:]([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")


class Submodule(NamedTuple):
    path: str
    url: str
    branch: str | None = None


def parse_submodules(text: str) -> tuple[list[Submodule], list[str]]:
    """Split the document into submodule blocks; blocks missing path or url are reported."""
    submodules: list[Submodule] = []
    warnings: list[str] = []

    starts = [m.end() for m in _SECTION_RE.finditer(text)]
    ends = [m.start() for m in _SECTION_RE.finditer(text)][1:] + [len(text)]
    for start, end in zip(starts, ends):
        values: dict[str, str] = {}
        for line in text[start:end].splitlines():
            match = _KEY_VALUE_RE.match(line)
            if match:
                values[match.group(1).lower()] = match.group(2)

        path, url = values.get("path"), values.get("url")
        if not path or not url:
            warnings.append(f"submodule block without path/url: {values!r}")
            continue
        submodules.append(Submodule(path=path, url=url, branch=values.get("branch")))

    return submodules, warnings


def submodule_identifier(url: str, path: str, version: str) -> str:
    """GitHub remotes map to pkg:github; anything else to pkg:generic/<path leaf>."""
    match = _GITHUB_RE.search(url)
    if match:
        owner, repo = match.groups()
        return build_identifier("github", owner, repo, version)
    return build_identifier("generic", None, submodule_name(path), version)


def submodule_name(path: str) -> str:
    return path.rstrip("/").split("/")[-1]


def parse_gitmodules(text: str) -> ParseResult:
    """Parse ``.gitmodules`` into production records, skipping non-library paths."""
    submodules, warnings = parse_submodules(text)
    records: list[RawDependency] = []
    seen: set[str] = set()

    for submodule in submodules:
        if submodule.path.startswith(SKIP_PATH_PREFIXES):
            continue
        version = submodule.branch or DEFAULT_BRANCH
        identifier = submodule_identifier(submodule.url, submodule.path, version)
        if identifier in seen:
            continue
        seen.add(identifier)
        records.append(
            RawDependency(
                name=submodule_name(submodule.path),
                version=version,
                identifier=identifier,
            )
        )

    return ParseResult(records, warnings)
