"""
Gradle version declaration scripts (``gradle/versions.gradle``).

The file only declares versions; it carries no configuration scope
(implementation vs testImplementation), so every entry is treated as a
production dependency. Two declaration forms appear side by side::

    dependency 'io.netty:netty-all:4.1.100.Final'
    dependencySet(group: 'org.apache.tuweni', version: '2.3.1') {
      entry 'tuweni-bytes'
      entry 'tuweni-units'
    }
"""

import re

from eth_dep_collector.models import ParseResult, RawDependency
from eth_dep_collector.parsers.base import ParserSpec
from eth_dep_collector.purl import build_identifier

PARSER = ParserSpec(
    name="gradle-versions",
    document_names={"versions.gradle"},
    parse=lambda text, _self=None: parse_versions_gradle(text),
    limitations=(
        "Direct dependencies only: no Gradle lock file exists in repo",
        "Transitive deps not resolved",
        "No scope information: test dependencies cannot be excluded",
    ),
)

_SINGLE_RE = re.compile(r"""\bdependency\s+['"]([^:'"]+):([^:'"]+):([^'"]+)['"]""")
_SET_RE = re.compile(
    r"""\bdependencySet\s*\(\s*group\s*:\s*['"]([^'"]+)['"]\s*,"""
    r"""\s*version\s*:\s*['"]([^'"]+)['"]\s*\)\s*\{([^}]*)\}""",
    re.DOTALL,
)
_ENTRY_RE = re.compile(r"""\bentry\s+['"]([^'"]+)['"]""")


def extract_single_declarations(text: str) -> list[tuple[str, str, str]]:
    """``dependency 'group:artifact:version'`` triples."""
    return [m.groups() for m in _SINGLE_RE.finditer(text)]


def extract_dependency_sets(text: str) -> list[tuple[str, str, str]]:
    """Triples expanded from ``dependencySet(group:, version:) { entry .. }`` blocks."""
    triples: list[tuple[str, str, str]] = []
    for match in _SET_RE.finditer(text):
        group, version, block = match.groups()
        for entry in _ENTRY_RE.finditer(block):
            triples.append((group, entry.group(1), version))
    return triples


def parse_versions_gradle(text: str) -> ParseResult:
    """Parse both declaration forms into production records."""
    records: list[RawDependency] = []
    seen: set[str] = set()

    for group, artifact, version in [
        *extract_single_declarations(text),
        *extract_dependency_sets(text),
    ]:
        identifier = build_identifier("maven", group, artifact, version)
        if identifier in seen:
            continue
        seen.add(identifier)
        records.append(
            RawDependency(
                name=f"{group}:{artifact}", version=version, identifier=identifier
            )
        )

    return ParseResult(records, [])
