"""
Dataset file handling.

The dataset is written to a temporary sibling and renamed into place, so a
reader never sees a partially written file.
"""

import json
import os
from pathlib import Path
from typing import Any

from eth_dep_collector.aggregate import compute_views
from eth_dep_collector.config import get_top_shared_limit
from eth_dep_collector.models import (
    ClientDescriptor,
    DepKind,
    FrequencyEntry,
    Layer,
    NormalizedDep,
)


def write_dataset(data: dict[str, Any], path: Path | str) -> Path:
    """Write the dataset atomically; returns the final path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.replace(tmp_path, path)
    return path


def load_dataset(path: Path | str) -> dict[str, Any]:
    """
    Read a dataset file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If it is not a JSON object with the core dataset keys.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: dataset must be a JSON object")
    missing = [key for key in ("clients", "deps", "frequency") if key not in data]
    if missing:
        raise ValueError(f"{path}: missing dataset keys: {', '.join(missing)}")
    return data


def _client_from_dict(item: dict[str, Any]) -> ClientDescriptor:
    return ClientDescriptor(
        id=item["id"],
        name=item.get("name", item["id"]),
        repo=item.get("repo", ""),
        layer=Layer(item["layer"]),
        ecosystem=item.get("ecosystem", "unknown"),
        el_network_share=float(item.get("elNetworkShare", 0.0)),
        cl_network_share=float(item.get("clNetworkShare", 0.0)),
    )


def _dep_from_dict(item: dict[str, Any]) -> NormalizedDep:
    return NormalizedDep(
        purl=item["purl"],
        name=item.get("name", ""),
        version=item.get("version", ""),
        ecosystem=item.get("ecosystem", "unknown"),
        dep_type=DepKind(item.get("depType", DepKind.PACKAGE.value)),
        canonical_id=item.get("canonicalId"),
    )


def _frequency_from_dict(item: dict[str, Any]) -> FrequencyEntry:
    return FrequencyEntry(
        clients=list(item.get("clients", [])),
        el_coverage=float(item.get("elCoverage", 0.0)),
        cl_coverage=float(item.get("clCoverage", 0.0)),
        is_cross_layer=bool(item.get("isCrossLayer", False)),
        canonical_id=item.get("canonicalId"),
    )


def dataset_inputs(
    data: dict[str, Any],
) -> tuple[dict[str, FrequencyEntry], list[ClientDescriptor], dict[str, list[NormalizedDep]]]:
    """Typed frequency index, clients and per-client deps from a loaded dataset."""
    clients = [_client_from_dict(item) for item in data["clients"]]
    deps = {cid: [_dep_from_dict(d) for d in items] for cid, items in data["deps"].items()}
    frequency = {purl: _frequency_from_dict(e) for purl, e in data["frequency"].items()}
    return frequency, clients, deps


def refresh_views(data: dict[str, Any], top_shared_limit: int | None = None) -> dict[str, Any]:
    """
    Recompute the summary views of a dataset from its stored index.

    Returns a new dict; the input is left untouched.
    """
    frequency, clients, deps = dataset_inputs(data)
    limit = top_shared_limit if top_shared_limit is not None else get_top_shared_limit()
    return {**data, **compute_views(frequency, clients, deps, limit)}
