"""go.sum / go.mod parsing."""

import re

from eth_dep_collector.models import ParseResult, RawDependency
from eth_dep_collector.parsers.base import ParserSpec
from eth_dep_collector.purl import build_identifier

PARSER = ParserSpec(
    name="go-sum",
    document_names={"go.sum"},
    parse=lambda text, self_module=None: parse_go_sum(text, self_module),
)

_REPLACE_BLOCK_RE = re.compile(r"^replace\s*\((.*?)^\)", re.MULTILINE | re.DOTALL)
_REPLACE_INLINE_RE = re.compile(r"^replace\s+([^(\s].*)$", re.MULTILINE)
_REPLACE_LINE_RE = re.compile(r"^(\S+)(?:\s+\S+)?\s+=>\s+(\S+)\s+(\S+)")


def _is_self(module: str, self_module: str | None) -> bool:
    if not self_module:
        return False
    return module == self_module or module.startswith(self_module + "/")


def parse_go_sum(text: str, self_module: str | None = None) -> ParseResult:
    """
    Parse go.sum content.

    Each module version appears twice: once for the source zip and once with a
    ``/go.mod`` suffix for the module's go.mod hash. Only the first is kept.
    go.sum has no notion of test dependencies, so everything is production.

    Args:
        text: go.sum content.
        self_module: The client's own module path; it and its submodules are
            skipped.
    """
    records: list[RawDependency] = []
    warnings: list[str] = []
    seen: set[str] = set()

    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue

        parts = line.split()
        if len(parts) < 3:
            warnings.append(f"go.sum line {lineno}: expected 'module version hash'")
            continue

        module, version = parts[0], parts[1]
        if version.endswith("/go.mod"):
            continue
        if _is_self(module, self_module):
            continue

        identifier = build_identifier("golang", None, module, version)
        if identifier in seen:
            continue
        seen.add(identifier)
        records.append(RawDependency(name=module, version=version, identifier=identifier))

    return ParseResult(records, warnings)


def parse_go_mod_replacements(text: str) -> dict[str, tuple[str, str]]:
    """
    Read ``replace`` directives from go.mod.

    Both the block form and single-line form are supported. Replacements that
    point at a local path (no target version) are skipped.

    Returns:
        Mapping of original module -> (replacement module, version).
    """
    lines: list[str] = []
    for block in _REPLACE_BLOCK_RE.findall(text):
        lines.extend(block.splitlines())
    lines.extend(_REPLACE_INLINE_RE.findall(text))

    replacements: dict[str, tuple[str, str]] = {}
    for line in lines:
        line = line.split("//", 1)[0].strip()
        match = _REPLACE_LINE_RE.match(line)
        if match:
            original, target, version = match.groups()
            replacements[original] = (target, version)
    return replacements


def apply_replacements(
    records: list[RawDependency], replacements: dict[str, tuple[str, str]]
) -> list[RawDependency]:
    """Rewrite replaced modules and drop any duplicates this creates."""
    result: list[RawDependency] = []
    seen: set[str] = set()
    for record in records:
        replacement = replacements.get(record.name)
        if replacement:
            module, version = replacement
            record = record._replace(
                name=module,
                version=version,
                identifier=build_identifier("golang", None, module, version),
            )
        if record.identifier in seen:
            continue
        seen.add(record.identifier)
        result.append(record)
    return result
