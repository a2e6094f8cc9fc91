"""
Tests for crates.io wrapper-crate resolution.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest

from eth_dep_collector.cache import load_cache
from eth_dep_collector.config import set_cache_enabled
from eth_dep_collector.http_client import MissingFileError, TransientFetchError
from eth_dep_collector.models import DepKind, RawDependency
from eth_dep_collector.native.cratesio import (
    CACHE_NAMESPACE,
    RateLimiter,
    crates_index_path,
    fetch_native_link,
    is_wrapper_crate,
    parse_index_links,
    resolve_native_libs,
    resolve_wrapper_crates,
)

INDEX_FILE = "\n".join(
    [
        json.dumps({"name": "openssl-sys", "vers": "0.9.103", "links": "openssl"}),
        "{not json",
        json.dumps({"name": "openssl-sys", "vers": "0.9.104", "links": "openssl"}),
        "",
    ]
)


@pytest.mark.parametrize(
    "name, path",
    [
        ("a", "1/a"),
        ("ab", "2/ab"),
        ("abc", "3/a/abc"),
        ("openssl-sys", "op/en/openssl-sys"),
        ("Zstd-Sys", "zs/td/zstd-sys"),
    ],
)
def test_crates_index_path(name, path):
    """Test the sparse index layout."""
    assert crates_index_path(name) == path


def test_parse_index_links():
    """Test the version's links value is found and bad lines skipped."""
    assert parse_index_links(INDEX_FILE, "0.9.104") == "openssl"
    assert parse_index_links(INDEX_FILE, "1.0.0") is None
    assert parse_index_links(json.dumps({"vers": "1.0.0"}), "1.0.0") is None


def test_is_wrapper_crate():
    """Test the -sys naming convention."""
    assert is_wrapper_crate("zstd-sys")
    assert not is_wrapper_crate("zstd")


def test_fetch_native_link_missing_crate():
    """Test an unknown crate resolves to None."""
    with patch(
        "eth_dep_collector.native.cratesio.get_text", new=AsyncMock(side_effect=MissingFileError("404"))
    ):
        assert asyncio.run(fetch_native_link("nope-sys", "1.0.0")) is None


def test_resolve_native_libs_skips_failures_and_caches():
    """Test failures are skipped and answers are cached for the next run."""
    responses = {
        "https://index.crates.io/op/en/openssl-sys": INDEX_FILE,
        "https://index.crates.io/li/bz/libz-sys": TransientFetchError("503"),
        "https://index.crates.io/ze/ro/zero-sys": json.dumps({"vers": "1.0.0"}),
    }

    async def fake_get_text(url, description=None):
        value = responses[url]
        if isinstance(value, Exception):
            raise value
        return value

    crates = [("openssl-sys", "0.9.104"), ("libz-sys", "1.1.0"), ("zero-sys", "1.0.0")]
    with patch("eth_dep_collector.native.cratesio.get_text", new=AsyncMock(side_effect=fake_get_text)) as get:
        result = asyncio.run(resolve_native_libs(crates, interval=0))
        assert get.await_count == 3

    assert result == {"openssl-sys": "openssl"}
    cached = load_cache(CACHE_NAMESPACE)
    assert cached["openssl-sys@0.9.104"]["links"] == "openssl"
    assert cached["zero-sys@1.0.0"]["links"] is None
    assert "libz-sys@1.1.0" not in cached

    # Second run: only the failed crate is requested again
    with patch("eth_dep_collector.native.cratesio.get_text", new=AsyncMock(side_effect=fake_get_text)) as get:
        again = asyncio.run(resolve_native_libs(crates, interval=0))
        assert get.await_count == 1
    assert again == result


def test_resolve_without_cache():
    """Test the cache is neither read nor written when disabled."""
    set_cache_enabled(False)
    with patch(
        "eth_dep_collector.native.cratesio.get_text", new=AsyncMock(return_value=INDEX_FILE)
    ):
        result = asyncio.run(resolve_native_libs([("openssl-sys", "0.9.104")], interval=0))

    assert result == {"openssl-sys": "openssl"}
    set_cache_enabled(True)
    assert load_cache(CACHE_NAMESPACE) == {}


def test_rate_limiter_spaces_calls():
    """Test the second call waits out the remaining interval."""
    limiter = RateLimiter(1.1)

    async def two_calls():
        await limiter.wait()
        await limiter.wait()

    with patch("eth_dep_collector.native.cratesio.asyncio.sleep", new=AsyncMock()) as sleep:
        asyncio.run(two_calls())

    assert sleep.await_count == 1
    assert 0 < sleep.await_args.args[0] <= 1.1


def test_resolve_wrapper_crates():
    """Test production -sys crates become native records with the crate version."""
    packages = [
        RawDependency("openssl-sys", "0.9.104", "pkg:cargo/openssl-sys@0.9.104"),
        RawDependency("libc", "0.2.0", "pkg:cargo/libc@0.2.0"),
        RawDependency("bench-sys", "1.0.0", "pkg:cargo/bench-sys@1.0.0", is_dev=True),
        RawDependency("libm-sys", "0.1.0", "pkg:cargo/libm-sys@0.1.0"),
    ]
    links = {"openssl-sys": "openssl", "libm-sys": "m"}

    with patch(
        "eth_dep_collector.native.cratesio.resolve_native_libs", new=AsyncMock(return_value=links)
    ) as resolve:
        records = asyncio.run(resolve_wrapper_crates(packages))

    resolve.assert_awaited_once_with([("openssl-sys", "0.9.104"), ("libm-sys", "0.1.0")])
    assert len(records) == 1
    assert records[0].identifier == "pkg:generic/openssl"
    assert records[0].version == "0.9.104"
    assert records[0].kind == DepKind.NATIVE
