"""
Shared data types for the dependency collector.

Records produced by parsers and scanners, per-client configuration and results,
and the aggregated views written to the output dataset.
"""

from enum import Enum
from typing import Any, NamedTuple


class Layer(str, Enum):
    """Protocol layer a client implements."""

    EL = "EL"
    CL = "CL"


class DepKind(str, Enum):
    """Kind of dependency record."""

    PACKAGE = "package"
    NATIVE = "native"


class RawDependency(NamedTuple):
    """A single dependency extracted from one source document."""

    name: str
    version: str
    identifier: str  # pkg:<type>/<namespace>/<name>@<version>
    is_dev: bool = False
    kind: DepKind = DepKind.PACKAGE
    native_lib: str | None = None  # underlying C library for native records


class ParseResult(NamedTuple):
    """Best-effort parser output: extracted records plus what was skipped."""

    records: list[RawDependency]
    warnings: list[str]


class ClientDescriptor(NamedTuple):
    """Static per-client configuration."""

    id: str
    name: str
    repo: str  # owner/repo
    layer: Layer
    ecosystem: str
    el_network_share: float  # 0 for CL clients
    cl_network_share: float  # 0 for EL clients

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "repo": self.repo,
            "layer": self.layer.value,
            "ecosystem": self.ecosystem,
            "elNetworkShare": self.el_network_share,
            "clNetworkShare": self.cl_network_share,
        }


class ClientResult(NamedTuple):
    """Collection outcome for one client."""

    client: ClientDescriptor
    scanned_tag: str
    scanned_at: str
    tag_pinned: bool  # False when the default branch head was scanned
    deps: list[RawDependency]
    limitations: list[str]


class FailedClient(NamedTuple):
    """A client whose collection failed, with the error message."""

    id: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "error": self.error}


class NormalizedDep(NamedTuple):
    """Production dependency of one client, as written to the dataset."""

    purl: str
    name: str
    version: str
    ecosystem: str
    dep_type: DepKind
    canonical_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "purl": self.purl,
            "name": self.name,
            "version": self.version,
            "ecosystem": self.ecosystem,
            "depType": self.dep_type.value,
        }
        if self.canonical_id:
            data["canonicalId"] = self.canonical_id
        return data


class FrequencyEntry(NamedTuple):
    """Which clients carry one normalized identifier, and their combined share."""

    clients: list[str]
    el_coverage: float
    cl_coverage: float
    is_cross_layer: bool = False
    canonical_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "clients": list(self.clients),
            "elCoverage": self.el_coverage,
            "clCoverage": self.cl_coverage,
            "isCrossLayer": self.is_cross_layer,
        }
        if self.canonical_id:
            data["canonicalId"] = self.canonical_id
        return data


class SharedDep(NamedTuple):
    """Row of the top-shared-dependencies view."""

    purl: str
    name: str
    ecosystem: str
    clients: list[str]
    el_coverage: float
    cl_coverage: float
    is_cross_layer: bool
    canonical_id: str | None = None

    @property
    def total_coverage(self) -> float:
        return self.el_coverage + self.cl_coverage

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "purl": self.purl,
            "name": self.name,
            "ecosystem": self.ecosystem,
            "clients": list(self.clients),
            "elCoverage": self.el_coverage,
            "clCoverage": self.cl_coverage,
            "isCrossLayer": self.is_cross_layer,
        }
        if self.canonical_id:
            data["canonicalId"] = self.canonical_id
        return data


class EcosystemStat(NamedTuple):
    """Within-ecosystem sharing for one ecosystem label."""

    clients: list[str]
    total_deps: int
    shared_deps: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "clients": list(self.clients),
            "totalDeps": self.total_deps,
            "sharedDeps": self.shared_deps,
        }


class NativeDepEntry(NamedTuple):
    """Row of the native-library view."""

    native_lib: str
    clients: list[str]
    el_coverage: float
    cl_coverage: float
    is_cross_layer: bool
    canonical_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"nativeLib": self.native_lib}
        if self.canonical_id:
            data["canonicalId"] = self.canonical_id
        data.update(
            {
                "clients": list(self.clients),
                "elCoverage": self.el_coverage,
                "clCoverage": self.cl_coverage,
                "isCrossLayer": self.is_cross_layer,
            }
        )
        return data


class NetworkShareResult(NamedTuple):
    """Network shares per client id and where they came from."""

    shares: dict[str, tuple[float, float]]  # client id -> (el, cl)
    el_source: str  # "ethernodes" | "hardcoded"
    cl_source: str  # "blockprint" | "hardcoded"
    el_as_of: str | None = None
    cl_epochs: tuple[int, int] | None = None

    def source_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "elSource": self.el_source,
            "clSource": self.cl_source,
        }
        if self.el_as_of:
            data["elAsOf"] = self.el_as_of
        if self.cl_epochs:
            data["clEpochs"] = list(self.cl_epochs)
        return data
