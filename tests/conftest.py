"""
Shared fixtures.

Every test starts from default settings, with pacing delays zeroed, the disk
cache pointed at a temporary directory, and no canonical table loaded.
"""

import os

import pytest

from eth_dep_collector import canonical, config
from eth_dep_collector.canonical import CanonicalGroup


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Reset runtime settings and caches around each test."""
    for key in list(os.environ):
        if key.startswith(config.ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path / "project")

    config.reset_settings()
    config.set_cache_dir(tmp_path / "cache")
    for key in ("search_delay", "file_delay", "registry_interval", "backoff_base", "rate_limit_wait"):
        config.set_setting(key, 0.0)
    canonical.reset_canonical_cache()

    yield

    config.reset_settings()
    canonical.reset_canonical_cache()


@pytest.fixture
def ssl_groups():
    """A small canonical table with one cross-ecosystem group."""
    groups = {
        "openssl-group": CanonicalGroup(
            id="openssl-group",
            description="OpenSSL",
            category="crypto",
            purls=["pkg:cargo/openssl-sys", "pkg:generic/openssl", "pkg:generic/libssl"],
            native_names=["openssl", "libssl"],
        ),
        "blst": CanonicalGroup(
            id="blst",
            description="BLS12-381 signatures",
            category="crypto",
            purls=["pkg:cargo/blst", "pkg:golang/github.com/supranational/blst"],
            native_names=["blst"],
        ),
    }
    canonical.set_canonical_groups(groups)
    return groups

