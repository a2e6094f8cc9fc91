"""
Tests for the code-search driven native scanner.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from eth_dep_collector.http_client import FetchError, RateLimitError
from eth_dep_collector.models import DepKind
from eth_dep_collector.native.scanner import (
    NativeScanKind,
    libraries_to_records,
    native_record,
    scan_native_references,
)

CGO_FILE = '/*\n#cgo LDFLAGS: -lblst -lm -lpthread\n*/\nimport "C"\n'
CGO_FILE_2 = '/*\n#cgo LDFLAGS: -lgmp -lblst\n*/\nimport "C"\n'


def _host(paths, files):
    host = AsyncMock()
    host.search_code.return_value = paths

    async def fetch_raw(repo, ref, path):
        content = files[path]
        if isinstance(content, Exception):
            raise content
        return content

    host.fetch_raw.side_effect = fetch_raw
    return host


def test_native_record_shape():
    """Test native records carry the generic identifier and library name."""
    record = native_record("blst", "vendored")

    assert record.identifier == "pkg:generic/blst"
    assert record.kind == DepKind.NATIVE
    assert record.native_lib == "blst"
    assert record.version == "vendored"
    assert record.is_dev is False


def test_libraries_to_records_filters_system_and_duplicates():
    """Test OS libraries and repeats are dropped."""
    records = libraries_to_records(["blst", "c", "blst", "libdl", "gmp"], "runtime")
    assert [r.name for r in records] == ["blst", "gmp"]


def test_cgo_scan_at_ref():
    """Test files are fetched at the scanned ref and merged in order."""
    host = _host(["a/bls.go", "b/gmp.go", "docs/readme.md"], {"a/bls.go": CGO_FILE, "b/gmp.go": CGO_FILE_2})

    records = asyncio.run(
        scan_native_references(host, "ethereum/go-ethereum", "v1.14.0", NativeScanKind.CGO)
    )

    assert [r.native_lib for r in records] == ["blst", "gmp"]
    assert all(r.version == "vendored" for r in records)
    host.search_code.assert_awaited_once_with("ethereum/go-ethereum", 'import "C"')
    fetched = [c.args for c in host.fetch_raw.await_args_list]
    assert fetched == [
        ("ethereum/go-ethereum", "v1.14.0", "a/bls.go"),
        ("ethereum/go-ethereum", "v1.14.0", "b/gmp.go"),
    ]


def test_failed_file_is_skipped():
    """Test one failing file does not abort the scan."""
    host = _host(
        ["A.java", "B.java"],
        {"A.java": FetchError("boom"), "B.java": 'System.loadLibrary("gnark_jni");'},
    )

    records = asyncio.run(scan_native_references(host, "hyperledger/besu", "25.1.0", "jni"))

    assert [r.name for r in records] == ["gnark_jni"]
    assert records[0].version == "runtime"


def test_dllimport_restricted_to_cs():
    """Test non-C# search hits are ignored for P/Invoke scanning."""
    host = _host(
        ["Native.cs", "native.h"],
        {"Native.cs": '[DllImport("rocksdb")]', "native.h": '[DllImport("ignored")]'},
    )

    records = asyncio.run(
        scan_native_references(host, "NethermindEth/nethermind", "1.30.0", NativeScanKind.DLLIMPORT)
    )

    assert [r.name for r in records] == ["rocksdb"]


def test_search_failure_propagates():
    """Test a failed search is not absorbed."""
    host = AsyncMock()
    host.search_code.side_effect = RateLimitError("rate limited")

    with pytest.raises(RateLimitError):
        asyncio.run(scan_native_references(host, "o/r", "v1", NativeScanKind.CGO))


def test_delays_applied():
    """Test the search delay precedes the search and each file gets a delay."""
    host = _host(["a.go", "b.go"], {"a.go": "", "b.go": ""})

    with patch("eth_dep_collector.native.scanner.asyncio.sleep", new=AsyncMock()) as sleep:
        asyncio.run(
            scan_native_references(host, "o/r", "v1", NativeScanKind.CGO, search_delay=2.0, file_delay=0.5)
        )

    assert [c.args[0] for c in sleep.await_args_list] == [2.0, 0.5, 0.5]
