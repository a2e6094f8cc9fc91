"""
Central version catalogs in XML.

Two documents share this shape: NuGet central package management
(``Directory.Packages.props``, ``<PackageVersion Include=".." Version=".."/>``)
and Gradle dependency verification metadata
(``<component group=".." name=".." version=".."/>``).
"""

import re
import xml.etree.ElementTree as ET
from typing import Callable

from eth_dep_collector.models import ParseResult, RawDependency
from eth_dep_collector.parsers.base import ParserSpec
from eth_dep_collector.purl import build_identifier

NUGET_PARSER = ParserSpec(
    name="nuget-props",
    document_names={"Directory.Packages.props"},
    parse=lambda text, _self=None: parse_directory_packages_props(text),
    limitations=(
        "Direct dependencies only: no packages.lock.json exists in repo",
        "Transitive deps not resolved",
    ),
)

GRADLE_VERIFICATION_PARSER = ParserSpec(
    name="gradle-verification",
    document_names={"verification-metadata.xml"},
    parse=lambda text, _self=None: parse_verification_metadata(text),
)

# Archives published next to the jar that never end up on the classpath
ARCHIVE_SUFFIXES = ("-javadoc", "-sources")

_EXACT_VERSION_RE = re.compile(r"^\[([^,\[\]()]+)\]$")
_ATTR_RE = re.compile(r'([\w:.-]+)\s*=\s*"([^"]*)"')

# NuGet packages that are test/dev only
NUGET_DEV_PATTERNS = [
    re.compile(r"^FluentAssertions", re.IGNORECASE),
    re.compile(r"^BenchmarkDotNet", re.IGNORECASE),
    re.compile(r"^NUnit", re.IGNORECASE),
    re.compile(r"^xunit", re.IGNORECASE),
    re.compile(r"^Moq", re.IGNORECASE),
    re.compile(r"^NSubstitute", re.IGNORECASE),
    re.compile(r"^Shouldly", re.IGNORECASE),
    re.compile(r"^Microsoft\.NET\.Test", re.IGNORECASE),
    re.compile(r"^coverlet", re.IGNORECASE),
]

# Maven groups for test frameworks, benchmarks and Gradle build plugins
MAVEN_TEST_GROUPS = {
    "junit",
    "org.junit",
    "org.junit.jupiter",
    "org.junit.platform",
    "org.junit.vintage",
    "org.mockito",
    "org.assertj",
    "org.awaitility",
    "org.hamcrest",
    "org.openjdk.jmh",
    "org.openjdk.jol",
    "me.champeau.jmh",
    "com.github.spotbugs",
    "com.diffplug.spotless",
    "com.diffplug.durian",
    "com.jfrog.artifactory",
    "org.jacoco",
    "org.sonarqube",
    "org.graalvm.buildtools",
    "com.github.jk1.dependency-license-report",
    "de.undercouch.download",
}

MAVEN_TEST_GROUP_PREFIXES = ("org.sonarsource.", "net.ltgt.")


def strip_exact_version(version: str) -> str:
    """``[1.2.3]`` -> ``1.2.3``; ranges and plain versions are unchanged."""
    version = version.strip()
    match = _EXACT_VERSION_RE.match(version)
    return match.group(1).strip() if match else version


def is_nuget_dev_package(name: str) -> bool:
    return any(p.match(name) for p in NUGET_DEV_PATTERNS)


def is_maven_test_group(group: str) -> bool:
    if group in MAVEN_TEST_GROUPS:
        return True
    return group.startswith(MAVEN_TEST_GROUP_PREFIXES)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def iter_element_attributes(
    text: str, element: str, warnings: list[str]
) -> list[dict[str, str]]:
    """
    Attributes of every ``element`` in the document, namespace-agnostic.

    When the document is not well-formed the start tags are matched with a
    regular expression instead, so a truncated or slightly broken file still
    yields every complete element.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        warnings.append(f"XML parse error ({e}); falling back to tag scan")
        tag_re = re.compile(rf"<(?:[\w.-]+:)?{re.escape(element)}\b([^<>]*?)/?>")
        return [dict(_ATTR_RE.findall(m.group(1))) for m in tag_re.finditer(text)]

    return [
        dict(node.attrib) for node in root.iter() if _local_name(node.tag) == element
    ]


def parse_catalog(
    text: str,
    element: str,
    purl_type: str,
    name_attr: str,
    version_attr: str,
    group_attr: str | None = None,
    is_dev: Callable[[str | None, str], bool] | None = None,
    exclude: Callable[[str | None, str], bool] | None = None,
) -> ParseResult:
    """
    Extract (group, name, version) triples from attribute-bearing elements.

    Args:
        element: Element local name to read.
        purl_type: Identifier type (``nuget``, ``maven``).
        name_attr, version_attr, group_attr: Attribute names.
        is_dev: Flags an entry as dev-only (kept, marked).
        exclude: Drops an entry entirely.
    """
    warnings: list[str] = []
    records: list[RawDependency] = []
    seen: set[str] = set()

    for attrs in iter_element_attributes(text, element, warnings):
        name = attrs.get(name_attr)
        raw_version = attrs.get(version_attr)
        group = attrs.get(group_attr) if group_attr else None
        if not name or not raw_version or (group_attr and not group):
            continue

        if name.endswith(ARCHIVE_SUFFIXES):
            continue
        if exclude and exclude(group, name):
            continue

        version = strip_exact_version(raw_version)
        if version.startswith("$("):
            warnings.append(f"{name}: unresolved version property {version}")
            continue
        identifier = build_identifier(purl_type, group, name, version)
        if identifier in seen:
            continue
        seen.add(identifier)
        records.append(
            RawDependency(
                name=f"{group}:{name}" if group else name,
                version=version,
                identifier=identifier,
                is_dev=bool(is_dev and is_dev(group, name)),
            )
        )

    return ParseResult(records, warnings)


def parse_directory_packages_props(text: str) -> ParseResult:
    """Parse NuGet ``Directory.Packages.props``."""
    return parse_catalog(
        text,
        element="PackageVersion",
        purl_type="nuget",
        name_attr="Include",
        version_attr="Version",
        is_dev=lambda _group, name: is_nuget_dev_package(name),
    )


def parse_verification_metadata(text: str) -> ParseResult:
    """
    Parse Gradle ``verification-metadata.xml``.

    The file lists every verified artifact, transitive ones included. Test,
    benchmark and build-plugin groups are dropped.
    """
    return parse_catalog(
        text,
        element="component",
        purl_type="maven",
        name_attr="name",
        version_attr="version",
        group_attr="group",
        exclude=lambda group, _name: is_maven_test_group(group or ""),
    )
