"""
Client registry.

Static descriptors for the ten tracked clients and, for each one, the plan
describing which documents to fetch and which scanners to run. Network shares
here are fallback values; live values replace them when telemetry is up.
"""

from typing import NamedTuple

from eth_dep_collector.models import ClientDescriptor, Layer
from eth_dep_collector.native.scanner import NativeScanKind
from eth_dep_collector.parsers import SourceFormat

CLIENTS: list[ClientDescriptor] = [
    # Execution layer
    ClientDescriptor("geth", "Geth", "ethereum/go-ethereum", Layer.EL, "go", 0.41, 0.0),
    ClientDescriptor(
        "nethermind", "Nethermind", "NethermindEth/nethermind", Layer.EL, "dotnet", 0.38, 0.0
    ),
    ClientDescriptor("besu", "Besu", "hyperledger/besu", Layer.EL, "java", 0.09, 0.0),
    ClientDescriptor("erigon", "Erigon", "erigontech/erigon", Layer.EL, "go", 0.06, 0.0),
    ClientDescriptor("reth", "Reth", "paradigmxyz/reth", Layer.EL, "rust", 0.05, 0.0),
    # Consensus layer
    ClientDescriptor("lighthouse", "Lighthouse", "sigp/lighthouse", Layer.CL, "rust", 0.0, 0.38),
    ClientDescriptor("prysm", "Prysm", "prysmaticlabs/prysm", Layer.CL, "go", 0.0, 0.28),
    ClientDescriptor("teku", "Teku", "Consensys/teku", Layer.CL, "java", 0.0, 0.13),
    ClientDescriptor("lodestar", "Lodestar", "ChainSafe/lodestar", Layer.CL, "typescript", 0.0, 0.07),
    ClientDescriptor("nimbus", "Nimbus", "status-im/nimbus-eth2", Layer.CL, "nim", 0.0, 0.12),
]

EL_CLIENTS = [c for c in CLIENTS if c.layer == Layer.EL]
CL_CLIENTS = [c for c in CLIENTS if c.layer == Layer.CL]


class CollectionPlan(NamedTuple):
    """How one client's dependencies are collected."""

    source_format: SourceFormat
    document: str  # path of the primary document in the repository
    self_module: str | None = None  # own module path, skipped by go.sum
    native_scan: NativeScanKind | None = None
    resolve_wrapper_crates: bool = False  # map -sys crates to native libs
    member_dev_deps: bool = False  # read dev deps from workspace member manifests
    go_mod_replacements: bool = False
    limitations: tuple[str, ...] = ()


PLANS: dict[str, CollectionPlan] = {
    "geth": CollectionPlan(
        SourceFormat.GO_SUM,
        "go.sum",
        self_module="github.com/ethereum/go-ethereum",
        native_scan=NativeScanKind.CGO,
        go_mod_replacements=True,
    ),
    "erigon": CollectionPlan(
        SourceFormat.GO_SUM,
        "go.sum",
        self_module="github.com/erigontech/erigon",
        native_scan=NativeScanKind.CGO,
    ),
    "prysm": CollectionPlan(
        SourceFormat.GO_SUM,
        "go.sum",
        self_module="github.com/prysmaticlabs/prysm",
        native_scan=NativeScanKind.CGO,
        limitations=("Prysm uses Bazel as primary build system; go.sum reflects Go module deps only",),
    ),
    "reth": CollectionPlan(
        SourceFormat.CARGO_LOCK,
        "Cargo.lock",
        resolve_wrapper_crates=True,
        member_dev_deps=True,
        limitations=("Cargo.lock dev dep filtering is approximate: dev deps are matched by crate name only",),
    ),
    "lighthouse": CollectionPlan(
        SourceFormat.CARGO_LOCK,
        "Cargo.lock",
        resolve_wrapper_crates=True,
        member_dev_deps=True,
    ),
    "besu": CollectionPlan(
        SourceFormat.GRADLE_VERIFICATION,
        "gradle/verification-metadata.xml",
        native_scan=NativeScanKind.JNI,
    ),
    "teku": CollectionPlan(
        SourceFormat.GRADLE_VERSIONS,
        "gradle/versions.gradle",
        native_scan=NativeScanKind.JNI,
    ),
    "nethermind": CollectionPlan(
        SourceFormat.NUGET_PROPS,
        "Directory.Packages.props",
        native_scan=NativeScanKind.DLLIMPORT,
    ),
    "lodestar": CollectionPlan(SourceFormat.PNPM_LOCK, "pnpm-lock.yaml"),
    "nimbus": CollectionPlan(SourceFormat.GITMODULES, ".gitmodules"),
}


def get_client(client_id: str) -> ClientDescriptor:
    """Descriptor by id; raises KeyError for unknown ids."""
    for client in CLIENTS:
        if client.id == client_id:
            return client
    raise KeyError(client_id)


def get_plan(client_id: str) -> CollectionPlan:
    return PLANS[client_id]


def select_clients(ids: list[str] | None) -> list[ClientDescriptor]:
    """
    Subset of CLIENTS in registry order.

    Raises:
        ValueError: If any id is unknown.
    """
    if not ids:
        return list(CLIENTS)
    known = {c.id for c in CLIENTS}
    unknown = [i for i in ids if i not in known]
    if unknown:
        raise ValueError(
            f"Unknown client id(s): {', '.join(unknown)}. Known: {', '.join(sorted(known))}"
        )
    wanted = set(ids)
    return [c for c in CLIENTS if c.id in wanted]
