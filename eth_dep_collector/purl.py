"""
Package identifier helpers.

Identifiers follow the package-URL shape ``pkg:<type>/<namespace>/<name>@<version>``.
They are assembled by hand rather than through a purl library because several
purl implementations fold the case of names for some types, and names must be
preserved as published.
"""

import re
from urllib.parse import quote, unquote

# Identifier type -> ecosystem label used in the summary views
TYPE_ECOSYSTEMS = {
    "golang": "go",
    "cargo": "rust",
    "maven": "java",
    "nuget": "dotnet",
    "npm": "npm",
    "github": "nim",
    "generic": "native",
}

_PURL_RE = re.compile(r"^pkg:([^/]+)/(.+)$", re.IGNORECASE)
_GO_MAJOR_RE = re.compile(r"^v\d+$")


def build_identifier(
    purl_type: str, namespace: str | None, name: str, version: str | None = None
) -> str:
    """Build an identifier from its parts; the version is percent-encoded."""
    ns = f"{namespace}/" if namespace else ""
    suffix = f"@{quote(version, safe='+')}" if version else ""
    return f"pkg:{purl_type}/{ns}{name}{suffix}"


def _split(identifier: str) -> tuple[str, str | None, str, str | None] | None:
    """Split into (type, namespace, name, decoded version); None if not a pkg: identifier."""
    match = _PURL_RE.match(identifier)
    if not match:
        return None
    purl_type, rest = match.groups()

    version = None
    at = rest.rfind("@")
    # An "@" before the last "/" belongs to an npm scope, not a version
    if at > 0 and "/" not in rest[at:]:
        rest, version = rest[:at], unquote(rest[at + 1 :])

    namespace, _, name = rest.rpartition("/")
    return purl_type, namespace or None, name, version


def normalize_identifier(identifier: str) -> str:
    """
    Lower-case the type and namespace of an identifier.

    The name and version keep their case because several ecosystems are case
    sensitive on names. Strings that are not pkg: identifiers are returned
    unchanged. Normalizing twice gives the same result as normalizing once.
    """
    parts = _split(identifier)
    if parts is None:
        return identifier
    purl_type, namespace, name, version = parts
    return build_identifier(
        purl_type.lower(), namespace.lower() if namespace else None, name, version
    )


def strip_version(identifier: str) -> str:
    """Remove a trailing @version; npm scopes are left intact."""
    parts = _split(identifier)
    if parts is None:
        return identifier
    purl_type, namespace, name, _version = parts
    return build_identifier(purl_type, namespace, name)


def identifier_type(identifier: str) -> str:
    """The type segment (golang, cargo, ...), or 'unknown'."""
    parts = _split(identifier)
    return parts[0].lower() if parts else "unknown"


def identifier_name(identifier: str) -> str:
    """The leaf name segment."""
    parts = _split(identifier)
    return parts[2] if parts else identifier


def identifier_version(identifier: str) -> str:
    """The version segment, or 'unknown'."""
    parts = _split(identifier)
    if parts and parts[3]:
        return parts[3]
    return "unknown"


def ecosystem_label(identifier: str) -> str:
    """Human-readable ecosystem for an identifier type."""
    purl_type = identifier_type(identifier)
    return TYPE_ECOSYSTEMS.get(purl_type, purl_type)


def display_name(identifier: str) -> str:
    """
    Short display name: the last two path segments (org/repo style).

    Go major-version suffixes (``/v2``) keep one more segment so that
    ``github.com/foo/bar/v2`` reads ``foo/bar/v2``.
    """
    parts = _split(identifier)
    if parts is None:
        return identifier
    _type, namespace, name, _version = parts
    segments = (namespace.split("/") if namespace else []) + [name]
    if len(segments) >= 2 and _GO_MAJOR_RE.match(segments[-1]):
        return "/".join(segments[-3:])
    return "/".join(segments[-2:])
