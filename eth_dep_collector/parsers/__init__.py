"""
Source document parsers.

The set of formats is closed: each client is configured with one
`SourceFormat`, and `parse_document` dispatches on it.
"""

from enum import Enum

from eth_dep_collector.models import ParseResult
from eth_dep_collector.parsers import cargo, gitmodules, gosum, gradle, pnpm, xml_catalog
from eth_dep_collector.parsers.base import ParserSpec


class SourceFormat(str, Enum):
    """Manifest/lockfile formats understood by the collector."""

    GO_SUM = "go-sum"
    CARGO_LOCK = "cargo-lock"
    NUGET_PROPS = "nuget-props"
    GRADLE_VERIFICATION = "gradle-verification"
    GRADLE_VERSIONS = "gradle-versions"
    GITMODULES = "gitmodules"
    PNPM_LOCK = "pnpm-lock"


PARSERS: dict[SourceFormat, ParserSpec] = {
    SourceFormat.GO_SUM: gosum.PARSER,
    SourceFormat.CARGO_LOCK: cargo.PARSER,
    SourceFormat.NUGET_PROPS: xml_catalog.NUGET_PARSER,
    SourceFormat.GRADLE_VERIFICATION: xml_catalog.GRADLE_VERIFICATION_PARSER,
    SourceFormat.GRADLE_VERSIONS: gradle.PARSER,
    SourceFormat.GITMODULES: gitmodules.PARSER,
    SourceFormat.PNPM_LOCK: pnpm.PARSER,
}


def get_parser(source_format: SourceFormat) -> ParserSpec:
    """Parser spec for a format."""
    return PARSERS[SourceFormat(source_format)]


def parse_document(
    source_format: SourceFormat, text: str, self_identity: str | None = None
) -> ParseResult:
    """
    Parse one raw document.

    Args:
        source_format: Format of the document.
        text: Raw document text.
        self_identity: The client's own package identity, for formats that list
            the project itself (go.sum).
    """
    return get_parser(source_format).parse(text, self_identity)


__all__ = ["ParserSpec", "SourceFormat", "PARSERS", "get_parser", "parse_document"]
