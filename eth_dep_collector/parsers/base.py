"""Shared parser types."""

from typing import Callable, NamedTuple

from eth_dep_collector.models import ParseResult


class ParserSpec(NamedTuple):
    """Specification for one source document format."""

    name: str
    document_names: set[str]
    parse: Callable[[str, str | None], ParseResult]
    # Disclosed when the format cannot tell production from dev dependencies
    limitations: tuple[str, ...] = ()
