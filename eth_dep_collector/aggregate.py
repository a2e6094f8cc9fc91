"""
Cross-client aggregation.

Folds per-client dependency records into a frequency index keyed by
normalized identifier, then derives the summary views: top shared
dependencies (merged by canonical group), within-ecosystem sharing and the
native-library view. Every sort is stable so ties keep client registry order.
"""

from datetime import datetime, timezone
from typing import Any

from eth_dep_collector.canonical import lookup_canonical_group
from eth_dep_collector.config import get_top_shared_limit
from eth_dep_collector.models import (
    ClientDescriptor,
    ClientResult,
    DepKind,
    EcosystemStat,
    FailedClient,
    FrequencyEntry,
    Layer,
    NativeDepEntry,
    NetworkShareResult,
    NormalizedDep,
    SharedDep,
)
from eth_dep_collector.native.patterns import is_system_library
from eth_dep_collector.purl import display_name, ecosystem_label, identifier_type, normalize_identifier

CROSS_ECOSYSTEM = "cross-ecosystem"


def _coverage(
    client_ids: list[str], clients: dict[str, ClientDescriptor]
) -> tuple[float, float, bool]:
    """(EL coverage, CL coverage, cross-layer) for a deduplicated client list."""
    el = cl = 0.0
    layers: set[Layer] = set()
    for client_id in client_ids:
        client = clients.get(client_id)
        if client is None:
            continue
        el += client.el_network_share
        cl += client.cl_network_share
        layers.add(client.layer)
    return el, cl, Layer.EL in layers and Layer.CL in layers


def compute_frequency(results: list[ClientResult]) -> dict[str, FrequencyEntry]:
    """
    Frequency index over production dependencies.

    A client is counted once per identifier however many of its records
    normalize to it, so its network share is added at most once. Canonical
    ids are looked up by identifier first and then by the record's native
    library name.
    """
    clients = {r.client.id: r.client for r in results}
    carriers: dict[str, list[str]] = {}
    native_names: dict[str, str] = {}

    for result in results:
        for dep in result.deps:
            if dep.is_dev:
                continue
            key = normalize_identifier(dep.identifier)
            ids = carriers.setdefault(key, [])
            if result.client.id not in ids:
                ids.append(result.client.id)
            if dep.native_lib:
                native_names.setdefault(key, dep.native_lib)

    frequency: dict[str, FrequencyEntry] = {}
    for key, ids in carriers.items():
        el, cl, cross_layer = _coverage(ids, clients)
        canonical_id = lookup_canonical_group(key) or lookup_canonical_group(
            native_names.get(key, "")
        )
        frequency[key] = FrequencyEntry(ids, el, cl, cross_layer, canonical_id)
    return frequency


def compute_top_shared_deps(
    frequency: dict[str, FrequencyEntry],
    clients: list[ClientDescriptor],
    limit: int | None = None,
) -> list[SharedDep]:
    """
    Dependencies carried by two or more clients, most shared first.

    Entries in the same canonical group collapse into one row whose client
    list is the union of theirs; coverage is recomputed from that union so a
    client reaching the group through several identifiers counts once.
    """
    by_id = {c.id: c for c in clients}
    groups: dict[str, dict[str, Any]] = {}

    for purl, entry in frequency.items():
        group_key = entry.canonical_id or purl
        group = groups.get(group_key)
        if group is None:
            groups[group_key] = {
                "purl": purl,
                "name": entry.canonical_id or display_name(purl),
                "ecosystem": CROSS_ECOSYSTEM if entry.canonical_id else ecosystem_label(purl),
                "clients": list(entry.clients),
                "canonical_id": entry.canonical_id,
            }
            continue
        for client_id in entry.clients:
            if client_id not in group["clients"]:
                group["clients"].append(client_id)

    rows: list[SharedDep] = []
    for group in groups.values():
        if len(group["clients"]) < 2:
            continue
        el, cl, cross_layer = _coverage(group["clients"], by_id)
        rows.append(
            SharedDep(
                purl=group["purl"],
                name=group["name"],
                ecosystem=group["ecosystem"],
                clients=group["clients"],
                el_coverage=el,
                cl_coverage=cl,
                is_cross_layer=cross_layer,
                canonical_id=group["canonical_id"],
            )
        )

    rows.sort(key=lambda r: (-len(r.clients), -r.total_coverage))
    return rows[:limit] if limit else rows


def compute_ecosystem_stats(
    frequency: dict[str, FrequencyEntry], clients: list[ClientDescriptor]
) -> dict[str, EcosystemStat]:
    """
    Within-ecosystem sharing per client ecosystem label.

    ``total_deps`` counts identifiers used by any client of the ecosystem,
    ``shared_deps`` those used by at least two of them.
    """
    members: dict[str, list[str]] = {}
    client_ecosystem: dict[str, str] = {}
    for client in clients:
        members.setdefault(client.ecosystem, []).append(client.id)
        client_ecosystem[client.id] = client.ecosystem

    totals = dict.fromkeys(members, 0)
    shared = dict.fromkeys(members, 0)
    for entry in frequency.values():
        per_ecosystem: dict[str, int] = {}
        for client_id in entry.clients:
            ecosystem = client_ecosystem.get(client_id)
            if ecosystem:
                per_ecosystem[ecosystem] = per_ecosystem.get(ecosystem, 0) + 1
        for ecosystem, count in per_ecosystem.items():
            totals[ecosystem] += 1
            if count >= 2:
                shared[ecosystem] += 1

    return {
        ecosystem: EcosystemStat(ids, totals[ecosystem], shared[ecosystem])
        for ecosystem, ids in members.items()
    }


def normalize_client_deps(result: ClientResult) -> list[NormalizedDep]:
    """Production dependencies of one client in dataset form."""
    deps: list[NormalizedDep] = []
    for dep in result.deps:
        if dep.is_dev:
            continue
        canonical_id = lookup_canonical_group(dep.identifier) or lookup_canonical_group(
            dep.native_lib or ""
        )
        deps.append(
            NormalizedDep(
                purl=normalize_identifier(dep.identifier),
                name=dep.name,
                version=dep.version,
                ecosystem=identifier_type(dep.identifier),
                dep_type=dep.kind,
                canonical_id=canonical_id,
            )
        )
    return deps


def compute_native_deps(
    deps_by_client: dict[str, list[NormalizedDep]], clients: list[ClientDescriptor]
) -> list[NativeDepEntry]:
    """
    Native libraries across clients, most widespread first.

    Records are grouped by canonical id, else by library name. Each client is
    added to a group once before shares are summed, so two wrapper crates
    resolving to the same library do not double-count a client.
    """
    by_id = {c.id: c for c in clients}
    groups: dict[str, dict[str, Any]] = {}

    for client in clients:
        for dep in deps_by_client.get(client.id, []):
            if dep.dep_type != DepKind.NATIVE or is_system_library(dep.name):
                continue
            key = dep.canonical_id or dep.name
            group = groups.setdefault(
                key,
                {"native_lib": dep.name, "canonical_id": dep.canonical_id, "clients": []},
            )
            if client.id not in group["clients"]:
                group["clients"].append(client.id)

    entries: list[NativeDepEntry] = []
    for group in groups.values():
        el, cl, cross_layer = _coverage(group["clients"], by_id)
        entries.append(
            NativeDepEntry(
                native_lib=group["native_lib"],
                clients=group["clients"],
                el_coverage=el,
                cl_coverage=cl,
                is_cross_layer=cross_layer,
                canonical_id=group["canonical_id"],
            )
        )
    entries.sort(key=lambda e: -len(e.clients))
    return entries


def compute_views(
    frequency: dict[str, FrequencyEntry],
    clients: list[ClientDescriptor],
    deps_by_client: dict[str, list[NormalizedDep]],
    top_shared_limit: int | None = None,
) -> dict[str, Any]:
    """The three summary views, keyed as in the dataset."""
    top = compute_top_shared_deps(frequency, clients, top_shared_limit)
    stats = compute_ecosystem_stats(frequency, clients)
    native = compute_native_deps(deps_by_client, clients)
    return {
        "topSharedDeps": [row.to_dict() for row in top],
        "ecosystemStats": {eco: stat.to_dict() for eco, stat in stats.items()},
        "nativeDeps": [entry.to_dict() for entry in native],
    }


def client_metadata(result: ClientResult) -> dict[str, Any]:
    data = result.client.to_dict()
    data.update(
        {
            "scannedTag": result.scanned_tag,
            "scannedAt": result.scanned_at,
            "tagPinned": result.tag_pinned,
            "limitations": list(result.limitations),
        }
    )
    return data


def build_output(
    results: list[ClientResult],
    failed: list[FailedClient],
    shares_source: NetworkShareResult | None = None,
    generated_at: str | None = None,
    top_shared_limit: int | None = None,
) -> dict[str, Any]:
    """
    Assemble the full dataset.

    Args:
        results: Successful client results, in registry order.
        failed: Clients whose collection failed.
        shares_source: Where network shares came from; omitted when None.
        generated_at: Run timestamp; defaults to now (UTC, ISO 8601).
        top_shared_limit: Row cap for the top-shared view; defaults to config.
    """
    frequency = compute_frequency(results)
    clients = [r.client for r in results]
    deps_by_client = {r.client.id: normalize_client_deps(r) for r in results}
    limit = top_shared_limit if top_shared_limit is not None else get_top_shared_limit()

    output: dict[str, Any] = {
        "generatedAt": generated_at or datetime.now(timezone.utc).isoformat(),
        "clients": [client_metadata(r) for r in results],
        "deps": {cid: [d.to_dict() for d in deps] for cid, deps in deps_by_client.items()},
        "frequency": {purl: entry.to_dict() for purl, entry in frequency.items()},
        "failedClients": [f.to_dict() for f in failed],
    }
    if shares_source is not None:
        output["networkSharesSource"] = shares_source.source_dict()
    output.update(compute_views(frequency, clients, deps_by_client, limit))
    return output
