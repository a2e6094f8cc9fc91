"""
Tests for go.sum / go.mod parsing.
"""

from eth_dep_collector.models import RawDependency
from eth_dep_collector.parsers.gosum import (
    apply_replacements,
    parse_go_mod_replacements,
    parse_go_sum,
)

GO_SUM = """\
github.com/holiman/uint256 v1.3.2 h1:a9EgMPSC1AAaj1SZL5zIQD3WbwTuHrMGOerLjGmM/TA=
github.com/holiman/uint256 v1.3.2/go.mod h1:EOMSn4q6Nyt9P6efbI3bueV4e1b3dGlUCXeiRV4ng7E=
golang.org/x/crypto v0.36.0 h1:AnAEvhDddvBdpY+uR+MyHmuZzzNqXSe/GvuDeob5L34=
golang.org/x/crypto v0.36.0/go.mod h1:Y4J0ReaxCR1IMaabaSMugxJES1EpwhBHhv2bDHklZvc=
"""


class TestParseGoSum:
    """Test go.sum parsing."""

    def test_one_record_per_module_version(self):
        """Test the /go.mod companion line does not produce a second record."""
        result = parse_go_sum(GO_SUM)

        assert [r.identifier for r in result.records] == [
            "pkg:golang/github.com/holiman/uint256@v1.3.2",
            "pkg:golang/golang.org/x/crypto@v0.36.0",
        ]
        assert result.warnings == []

    def test_self_module_scenario(self):
        """Test the self module is skipped and only modA@v1.0 remains."""
        text = "modA v1.0 h1:aaa=\nmodA v1.0/go.mod h1:bbb=\nselfmod v0.0 h1:ccc=\n"

        result = parse_go_sum(text, "selfmod")

        assert result.records == [
            RawDependency(name="modA", version="v1.0", identifier="pkg:golang/modA@v1.0")
        ]

    def test_self_submodules_skipped(self):
        """Test submodules of the client's own module are skipped too."""
        text = (
            "github.com/ethereum/go-ethereum/rlp v1.0.0 h1:x=\n"
            "github.com/ethereum/go-ethereum-extra v1.0.0 h1:y=\n"
        )

        result = parse_go_sum(text, "github.com/ethereum/go-ethereum")

        assert [r.name for r in result.records] == ["github.com/ethereum/go-ethereum-extra"]

    def test_short_lines_are_reported(self):
        """Test malformed lines are dropped with a warning."""
        result = parse_go_sum("broken-line v1.0\n\ngolang.org/x/sys v0.1.0 h1:z=\n")

        assert len(result.records) == 1
        assert len(result.warnings) == 1
        assert "line 1" in result.warnings[0]

    def test_duplicates_collapse(self):
        """Test repeated lines yield unique identifiers."""
        result = parse_go_sum("a v1 h1:x=\na v1 h1:x=\n")
        assert len(result.records) == 1

    def test_all_records_are_production(self):
        """Test go.sum carries no dev signal."""
        assert not any(r.is_dev for r in parse_go_sum(GO_SUM).records)


class TestGoModReplacements:
    """Test go.mod replace directives."""

    def test_block_and_inline_forms(self):
        """Test both forms are read and local replacements are skipped."""
        go_mod = """\
module github.com/ethereum/go-ethereum

require github.com/foo/bar v1.0.0

replace (
\tgithub.com/foo/bar => github.com/fork/bar v1.0.1 // patched
\tgithub.com/local/thing => ../thing
)

replace github.com/old/mod v0.1.0 => github.com/new/mod v0.2.0
"""
        replacements = parse_go_mod_replacements(go_mod)

        assert replacements == {
            "github.com/foo/bar": ("github.com/fork/bar", "v1.0.1"),
            "github.com/old/mod": ("github.com/new/mod", "v0.2.0"),
        }

    def test_apply_rewrites_and_dedupes(self):
        """Test replaced records are rewritten and duplicates dropped."""
        records = parse_go_sum(
            "github.com/foo/bar v1.0.0 h1:x=\ngithub.com/fork/bar v1.0.1 h1:y=\n"
        ).records

        result = apply_replacements(
            records, {"github.com/foo/bar": ("github.com/fork/bar", "v1.0.1")}
        )

        assert len(result) == 1
        assert result[0].identifier == "pkg:golang/github.com/fork/bar@v1.0.1"
        assert result[0].name == "github.com/fork/bar"

    def test_no_replacements(self):
        """Test a go.mod without replace directives yields nothing."""
        assert parse_go_mod_replacements("module x\n\ngo 1.22\n") == {}
