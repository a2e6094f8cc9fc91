"""
Tests for .gitmodules parsing.
"""

from eth_dep_collector.canonical import lookup_canonical_group
from eth_dep_collector.parsers.gitmodules import (
    parse_gitmodules,
    parse_submodules,
    submodule_identifier,
)

GITMODULES = """\
[submodule "vendor/nim-blscurve"]
\tpath = vendor/nim-blscurve
\turl = https://github.com/status-im/nim-blscurve.git
\tignore = untracked
\tbranch = master
[submodule "vendor/nim-libp2p"]
\tpath = vendor/nim-libp2p
\turl = git@github.com:vacp2p/nim-libp2p.git
\tbranch = unstable
[submodule "vendor/mainnet"]
\tpath = vendor/mainnet
\turl = https://github.com/eth-clients/mainnet.git
[submodule "vendor/sqlite"]
\tpath = vendor/sqlite
\turl = https://gitlab.com/example/sqlite
[submodule "vendor/broken"]
\tpath = vendor/broken
"""


class TestParseGitmodules:
    """Test .gitmodules parsing."""

    def test_records(self):
        """Test identifiers, versions and skipped network-config submodules."""
        result = parse_gitmodules(GITMODULES)

        assert [(r.name, r.version, r.identifier) for r in result.records] == [
            ("nim-blscurve", "master", "pkg:github/status-im/nim-blscurve@master"),
            ("nim-libp2p", "unstable", "pkg:github/vacp2p/nim-libp2p@unstable"),
            ("sqlite", "master", "pkg:generic/sqlite@master"),
        ]

    def test_incomplete_block_warns(self):
        """Test a block without url is reported, not fatal."""
        submodules, warnings = parse_submodules(GITMODULES)

        assert len(submodules) == 4
        assert len(warnings) == 1

    def test_default_branch(self):
        """Test version falls back to master when no branch is set."""
        text = '[submodule "x"]\n  path = vendor/nim-stew\n  url = https://github.com/status-im/nim-stew\n'
        result = parse_gitmodules(text)
        assert result.records[0].version == "master"
        assert result.records[0].identifier == "pkg:github/status-im/nim-stew@master"

    def test_identifier_forms(self):
        """Test https, ssh and non-GitHub URLs."""
        assert (
            submodule_identifier("https://github.com/a/b.git", "vendor/b", "v1")
            == "pkg:github/a/b@v1"
        )
        assert submodule_identifier("git@github.com:a/b", "vendor/b", "v1") == "pkg:github/a/b@v1"
        assert (
            submodule_identifier("https://example.org/x/y.git", "vendor/y/", "v1")
            == "pkg:generic/y@v1"
        )

    def test_slashed_branch(self):
        """Test a release/ branch stays in the version and the group still resolves."""
        text = (
            '[submodule "vendor/nim-blscurve"]\n'
            "  path = vendor/nim-blscurve\n"
            "  url = https://github.com/status-im/nim-blscurve.git\n"
            "  branch = release/V1\n"
        )
        record = parse_gitmodules(text).records[0]

        assert record.version == "release/V1"
        assert record.identifier == "pkg:github/status-im/nim-blscurve@release%2FV1"
        assert lookup_canonical_group(record.identifier) == "blst"
