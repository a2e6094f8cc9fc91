"""
Tests for cross-client aggregation.
"""

import json

import pytest

from eth_dep_collector.aggregate import (
    CROSS_ECOSYSTEM,
    build_output,
    compute_ecosystem_stats,
    compute_frequency,
    compute_native_deps,
    compute_top_shared_deps,
    normalize_client_deps,
)
from eth_dep_collector.models import (
    ClientDescriptor,
    ClientResult,
    DepKind,
    FailedClient,
    Layer,
    NetworkShareResult,
    NormalizedDep,
    RawDependency,
)

SCANNED_AT = "2026-01-01T00:00:00+00:00"


def make_client(client_id, layer=Layer.EL, ecosystem="go", share=0.1):
    el, cl = (share, 0.0) if layer == Layer.EL else (0.0, share)
    return ClientDescriptor(client_id, client_id.title(), f"org/{client_id}", layer, ecosystem, el, cl)


def make_result(client, deps):
    return ClientResult(client, "v1.0.0", SCANNED_AT, True, deps, [])


def dep(identifier, is_dev=False):
    name = identifier.rsplit("/", 1)[-1].split("@")[0]
    return RawDependency(name, "1.0.0", identifier, is_dev=is_dev)


def native(name):
    return RawDependency(name, "vendored", f"pkg:generic/{name}", kind=DepKind.NATIVE, native_lib=name)


GETH = make_client("geth", share=0.5)
ERIGON = make_client("erigon", share=0.1)
RETH = make_client("reth", ecosystem="rust", share=0.05)
LIGHTHOUSE = make_client("lighthouse", Layer.CL, "rust", 0.4)
PRYSM = make_client("prysm", Layer.CL, "go", 0.3)


class TestFrequency:
    """Test the frequency index."""

    def test_client_counted_once_per_identifier(self):
        """Test records normalizing to one key count their client once."""
        results = [
            make_result(
                GETH,
                [
                    dep("pkg:golang/GitHub.com/holiman/uint256@v1.3.2"),
                    dep("pkg:golang/github.com/holiman/uint256@v1.3.2"),
                ],
            ),
            make_result(ERIGON, [dep("pkg:golang/github.com/holiman/uint256@v1.3.2")]),
        ]

        frequency = compute_frequency(results)
        entry = frequency["pkg:golang/github.com/holiman/uint256@v1.3.2"]

        assert list(frequency) == ["pkg:golang/github.com/holiman/uint256@v1.3.2"]
        assert entry.clients == ["geth", "erigon"]
        assert entry.el_coverage == pytest.approx(0.6)
        assert entry.cl_coverage == 0.0

    def test_dev_dependencies_excluded(self):
        """Test dev-only records never reach the index."""
        results = [make_result(GETH, [dep("pkg:golang/github.com/stretchr/testify@v1.9.0", is_dev=True)])]
        assert compute_frequency(results) == {}

    def test_cross_layer_needs_both_layers(self, ssl_groups):
        """Test two EL clients are not cross-layer until a CL client joins."""
        blst = "pkg:golang/github.com/supranational/blst@v0.3.13"
        el_only = [make_result(GETH, [dep(blst)]), make_result(ERIGON, [dep(blst)])]

        assert compute_frequency(el_only)[blst].is_cross_layer is False

        both = el_only + [make_result(PRYSM, [dep(blst)])]
        entry = compute_frequency(both)[blst]
        assert entry.is_cross_layer is True
        assert entry.canonical_id == "blst"
        assert entry.cl_coverage == pytest.approx(0.3)

    def test_canonical_id_from_native_name(self, ssl_groups):
        """Test native records find their group through the library name."""
        record = RawDependency(
            "openssl-sys", "0.9.104", "pkg:generic/ssl-custom", kind=DepKind.NATIVE, native_lib="libssl"
        )
        frequency = compute_frequency([make_result(RETH, [record])])
        assert frequency["pkg:generic/ssl-custom"].canonical_id == "openssl-group"


class TestTopShared:
    """Test the top shared dependencies view."""

    def test_canonical_merge_sums_shares(self, ssl_groups):
        """Test identifiers of one group collapse into a single row."""
        nethermind = make_client("nethermind", ecosystem="dotnet", share=0.3)
        results = [
            make_result(RETH, [dep("pkg:cargo/openssl-sys@0.9.104")]),
            make_result(nethermind, [native("libssl")]),
            make_result(LIGHTHOUSE, [native("openssl"), dep("pkg:cargo/openssl-sys@0.9.104")]),
        ]
        frequency = compute_frequency(results)

        rows = compute_top_shared_deps(frequency, [r.client for r in results])

        assert len(rows) == 1
        row = rows[0]
        assert row.name == "openssl-group"
        assert row.ecosystem == CROSS_ECOSYSTEM
        assert row.canonical_id == "openssl-group"
        assert row.clients == ["reth", "lighthouse", "nethermind"]
        assert row.el_coverage == pytest.approx(0.35)
        assert row.cl_coverage == pytest.approx(0.4)
        assert row.is_cross_layer is True

    def test_single_client_rows_dropped_and_sorted(self):
        """Test rows need two clients and sort by client count, then coverage."""
        a = "pkg:golang/github.com/a/a@v1"
        b = "pkg:golang/github.com/b/b@v1"
        c = "pkg:golang/github.com/c/c@v1"
        results = [
            make_result(GETH, [dep(a), dep(c)]),
            make_result(ERIGON, [dep(a), dep(b), dep(c)]),
            make_result(PRYSM, [dep(b), dep(c)]),
        ]
        frequency = compute_frequency(results)
        clients = [r.client for r in results]

        rows = compute_top_shared_deps(frequency, clients)

        assert [r.purl for r in rows] == [c, a, b]
        assert rows[1].name == "a/a"
        assert rows[1].ecosystem == "go"
        assert [r.purl for r in compute_top_shared_deps(frequency, clients, limit=1)] == [c]

    def test_ties_keep_insertion_order(self):
        """Test equal rows stay in the order they were first seen."""
        first = "pkg:cargo/first@1.0.0"
        second = "pkg:cargo/second@1.0.0"
        results = [
            make_result(RETH, [dep(first), dep(second)]),
            make_result(LIGHTHOUSE, [dep(first), dep(second)]),
        ]

        rows = compute_top_shared_deps(compute_frequency(results), [r.client for r in results])
        assert [r.purl for r in rows] == [first, second]


def test_ecosystem_stats():
    """Test totals and within-ecosystem sharing per ecosystem label."""
    results = [
        make_result(GETH, [dep("pkg:golang/github.com/x/shared@v1"), dep("pkg:golang/github.com/x/g@v1")]),
        make_result(ERIGON, [dep("pkg:golang/github.com/x/shared@v1"), dep("pkg:golang/github.com/x/e@v1")]),
        make_result(RETH, [dep("pkg:cargo/serde@1.0.0")]),
    ]

    stats = compute_ecosystem_stats(compute_frequency(results), [r.client for r in results])

    assert stats["go"].clients == ["geth", "erigon"]
    assert stats["go"].total_deps == 3
    assert stats["go"].shared_deps == 1
    assert stats["rust"].total_deps == 1
    assert stats["rust"].shared_deps == 0


def test_normalize_client_deps(ssl_groups):
    """Test dataset records drop dev deps and carry type and canonical id."""
    result = make_result(
        RETH,
        [dep("pkg:cargo/Blst@0.3.13"), dep("pkg:cargo/criterion@0.5.0", is_dev=True), native("openssl")],
    )

    deps = normalize_client_deps(result)

    assert [d.purl for d in deps] == ["pkg:cargo/Blst@0.3.13", "pkg:generic/openssl"]
    assert deps[0].ecosystem == "cargo"
    assert deps[1].dep_type == DepKind.NATIVE
    assert deps[1].canonical_id == "openssl-group"


def test_native_deps_dedupe_clients_and_skip_system():
    """Test a client reaching one library twice counts once and OS libraries are dropped."""

    def native_dep(name, canonical_id=None):
        return NormalizedDep(f"pkg:generic/{name}", name, "vendored", "generic", DepKind.NATIVE, canonical_id)

    deps_by_client = {
        "reth": [native_dep("openssl", "openssl-group"), native_dep("libssl", "openssl-group")],
        "lighthouse": [native_dep("openssl", "openssl-group"), native_dep("pthread")],
        "geth": [
            native_dep("gmp"),
            NormalizedDep("pkg:golang/x@v1", "x", "v1", "golang", DepKind.PACKAGE),
        ],
    }

    entries = compute_native_deps(deps_by_client, [RETH, LIGHTHOUSE, GETH])

    assert [e.native_lib for e in entries] == ["openssl", "gmp"]
    assert entries[0].clients == ["reth", "lighthouse"]
    assert entries[0].el_coverage == pytest.approx(0.05)
    assert entries[0].cl_coverage == pytest.approx(0.4)
    assert entries[0].is_cross_layer is True
    assert entries[1].clients == ["geth"]


class TestBuildOutput:
    """Test dataset assembly."""

    def _results(self):
        return [
            make_result(GETH, [dep("pkg:golang/github.com/supranational/blst@v0.3.13"), native("gmp")]),
            make_result(PRYSM, [dep("pkg:golang/github.com/supranational/blst@v0.3.13")]),
        ]

    def test_keys_and_serializable(self, ssl_groups):
        """Test the dataset carries every section and serializes to JSON."""
        shares = NetworkShareResult({}, "hardcoded", "blockprint", cl_epochs=(100, 200))
        output = build_output(
            self._results(),
            [FailedClient("reth", "boom")],
            shares_source=shares,
            generated_at="2026-01-02T00:00:00+00:00",
        )

        assert list(output) == [
            "generatedAt",
            "clients",
            "deps",
            "frequency",
            "failedClients",
            "networkSharesSource",
            "topSharedDeps",
            "ecosystemStats",
            "nativeDeps",
        ]
        assert output["failedClients"] == [{"id": "reth", "error": "boom"}]
        assert output["networkSharesSource"] == {
            "elSource": "hardcoded",
            "clSource": "blockprint",
            "clEpochs": [100, 200],
        }
        assert output["clients"][0]["scannedAt"] == SCANNED_AT
        assert output["clients"][1]["layer"] == "CL"
        assert output["topSharedDeps"][0]["canonicalId"] == "blst"
        assert output["nativeDeps"][0]["nativeLib"] == "gmp"
        json.dumps(output)

    def test_same_inputs_same_output(self, ssl_groups):
        """Test building twice from the same inputs gives the same dataset."""
        generated_at = "2026-01-02T00:00:00+00:00"

        first = build_output(self._results(), [], generated_at=generated_at)
        second = build_output(self._results(), [], generated_at=generated_at)

        assert first == second
        assert "networkSharesSource" not in first

    def test_generated_at_defaults_to_now(self, ssl_groups):
        """Test a UTC timestamp is filled in."""
        output = build_output(self._results(), [])
        assert output["generatedAt"].endswith("+00:00")
