"""Unit tests for the manifest patcher."""

from __future__ import annotations

import typing as typ

import pytest

from tether.errors import PatchError
from tether.manifest import (
    ManifestDocument,
    declaration_source,
    patch,
    quote_string,
    read_manifest,
    write_manifest,
)
from tether.trigger import OverrideTarget

if typ.TYPE_CHECKING:
    from pathlib import Path

DEPENDENCY = "pallet-parachain-staking"
FORK = OverrideTarget(
    repository_url="https://github.com/alice/avn-parachain-staking",
    branch_name="feature-x",
)


def _patched_line(text: str, number: int) -> str:
    return text.splitlines()[number - 1]


class TestPatchInline:
    """Tests for inline-table declarations."""

    def test_rewrites_git_and_branch(self, runtime_manifest: str) -> None:
        """The target declaration points at the override repository and branch."""
        patched = patch(ManifestDocument(runtime_manifest), DEPENDENCY, FORK)

        assert _patched_line(patched.text, 9) == (
            'pallet-parachain-staking = { git = "https://github.com/alice/'
            'avn-parachain-staking", default-features = false, branch = "feature-x" }'
        )

    def test_other_lines_are_byte_identical(self, runtime_manifest: str) -> None:
        """Declarations before and after the target are untouched."""
        patched = patch(ManifestDocument(runtime_manifest), DEPENDENCY, FORK)

        before = runtime_manifest.splitlines(keepends=True)
        after = patched.text.splitlines(keepends=True)
        assert len(before) == len(after), "Patching must not add or remove lines"
        changed = [number for number, pair in enumerate(zip(before, after), 1) if pair[0] != pair[1]]
        assert changed == [9], "Only the target declaration's line may change"

    def test_is_idempotent(self, runtime_manifest: str) -> None:
        """Re-applying the same target yields identical text."""
        once = patch(ManifestDocument(runtime_manifest), DEPENDENCY, FORK)
        twice = patch(once, DEPENDENCY, FORK)

        assert twice.text == once.text

    def test_similar_names_do_not_match(self) -> None:
        """A dependency whose name extends the target's is not the target."""
        text = (
            "[dependencies]\n"
            'pallet-parachain-staking-rpc = { git = "https://github.com/acme/rpc", branch = "main" }\n'
            'pallet-parachain-staking = { git = "https://github.com/acme/s", branch = "main" }\n'
        )

        patched = patch(ManifestDocument(text), DEPENDENCY, FORK)

        assert _patched_line(patched.text, 2) == _patched_line(text, 2)
        assert "feature-x" in _patched_line(patched.text, 3)

    def test_name_in_other_sections_is_ignored(self, runtime_manifest: str) -> None:
        """The feature list entry naming the dependency is not rewritten."""
        patched = patch(ManifestDocument(runtime_manifest), DEPENDENCY, FORK)

        assert '\t"pallet-parachain-staking/std",\n' in patched.text

    def test_tag_pin_becomes_branch(self) -> None:
        """A tag pin is replaced by the override branch."""
        text = '[dependencies]\nstaking = { git = "https://x.test/s", tag = "v1.0.0" }\n'

        patched = patch(ManifestDocument(text), "staking", FORK)

        assert patched.text == (
            '[dependencies]\nstaking = { git = "https://github.com/alice/'
            'avn-parachain-staking", branch = "feature-x" }\n'
        )

    def test_missing_pin_is_added(self) -> None:
        """A declaration without a pin gains a branch field next to git."""
        text = '[dependencies]\nstaking = { git = "https://x.test/s", features = ["std"] }\n'

        patched = patch(ManifestDocument(text), "staking", FORK)

        assert patched.text == (
            '[dependencies]\nstaking = { git = "https://github.com/alice/'
            'avn-parachain-staking", branch = "feature-x", features = ["std"] }\n'
        )
        assert patch(patched, "staking", FORK).text == patched.text

    def test_literal_quotes_are_preserved(self) -> None:
        """Single-quoted values stay single-quoted."""
        text = "[dependencies]\nstaking = { git = 'https://x.test/s', branch = 'main' }\n"

        patched = patch(ManifestDocument(text), "staking", FORK)

        assert "branch = 'feature-x'" in patched.text
        assert "git = 'https://github.com/alice/avn-parachain-staking'" in patched.text

    def test_matches_package_rename(self) -> None:
        """A renamed dependency is found through its package field."""
        text = (
            "[dependencies]\n"
            'staking = { package = "pallet-parachain-staking", '
            'git = "https://x.test/s", branch = "main" }\n'
        )

        patched = patch(ManifestDocument(text), DEPENDENCY, FORK)

        assert 'branch = "feature-x"' in patched.text

    def test_crlf_is_preserved(self) -> None:
        """Windows line endings survive patching."""
        text = '[dependencies]\r\nstaking = { git = "https://x.test/s", branch = "main" }\r\n# end\r\n'

        patched = patch(ManifestDocument(text), "staking", FORK)

        assert patched.text.count("\r\n") == 3
        assert patched.text.endswith("# end\r\n")


class TestPatchTableForms:
    """Tests for table and dotted-key declarations."""

    def test_table_form_branch(self) -> None:
        """Fields on separate lines are rewritten in place."""
        text = (
            "[dependencies.pallet-parachain-staking]\n"
            'git = "https://github.com/acme/s"  # upstream\n'
            'branch = "main"\n'
            "default-features = false\n"
        )

        patched = patch(ManifestDocument(text), DEPENDENCY, FORK)

        assert patched.text == (
            "[dependencies.pallet-parachain-staking]\n"
            'git = "https://github.com/alice/avn-parachain-staking"  # upstream\n'
            'branch = "feature-x"\n'
            "default-features = false\n"
        )

    def test_table_form_inserts_branch_after_git(self) -> None:
        """A table declaration without a pin gets a branch line after git."""
        text = (
            "[dependencies.pallet-parachain-staking]\n"
            '    git = "https://github.com/acme/s"\n'
            "    default-features = false\n"
        )

        patched = patch(ManifestDocument(text), DEPENDENCY, FORK)

        assert patched.text.splitlines() == [
            "[dependencies.pallet-parachain-staking]",
            '    git = "https://github.com/alice/avn-parachain-staking"',
            '    branch = "feature-x"',
            "    default-features = false",
        ]

    def test_table_form_insert_on_last_line(self) -> None:
        """Insertion works when git is the unterminated last line."""
        text = '[dependencies.staking]\ngit = "https://x.test/s"'

        patched = patch(ManifestDocument(text), "staking", FORK)

        assert patched.text.endswith('\nbranch = "feature-x"')

    def test_dotted_form_rev_becomes_branch(self) -> None:
        """Dotted keys keep their prefix when the pin is renamed."""
        text = (
            "[dependencies]\n"
            'staking.git = "https://x.test/s"\n'
            'staking.rev = "abc123"\n'
        )

        patched = patch(ManifestDocument(text), "staking", FORK)

        assert patched.text == (
            "[dependencies]\n"
            'staking.git = "https://github.com/alice/avn-parachain-staking"\n'
            'staking.branch = "feature-x"\n'
        )


class TestPatchFailures:
    """Tests for declarations that cannot be patched."""

    def test_missing_declaration(self, runtime_manifest: str) -> None:
        """Zero matches fail and leave the input document unchanged."""
        document = ManifestDocument(runtime_manifest)

        with pytest.raises(PatchError, match="No declaration of dependency 'pallet-balances'"):
            patch(document, "pallet-balances", FORK)

        assert document.text == runtime_manifest, "Input document must be unmodified"

    def test_ambiguous_declarations(self) -> None:
        """A dependency declared in two tables is not guessed at."""
        text = (
            "[dependencies]\n"
            'staking = { git = "https://x.test/s", branch = "main" }\n'
            "[dev-dependencies]\n"
            'staking = { git = "https://x.test/s", branch = "dev" }\n'
        )

        with pytest.raises(PatchError, match=r"declared more than once \(lines 2, 4\)"):
            patch(ManifestDocument(text), "staking", FORK)

    def test_commented_declaration_only(self) -> None:
        """A commented-out declaration does not count as a match."""
        text = '[dependencies]\n# staking = { git = "https://x.test/s", branch = "main" }\n'

        with pytest.raises(PatchError, match="No declaration"):
            patch(ManifestDocument(text), "staking", FORK)

    def test_declaration_without_git_source(self) -> None:
        """A registry dependency has no git source to override."""
        text = '[dependencies]\nstaking = "1.0"\n'

        with pytest.raises(PatchError, match="has no git source"):
            patch(ManifestDocument(text), "staking", FORK)

    @pytest.mark.parametrize(
        ("text", "pins"),
        [
            (
                "[dependencies]\n"
                'staking = { git = "https://x.test/s", branch = "main", tag = "v1" }\n',
                "branch, tag",
            ),
            (
                "[dependencies.staking]\n"
                'git = "https://x.test/s"\n'
                'tag = "v1"\n'
                'rev = "abc123"\n',
                "tag, rev",
            ),
        ],
    )
    def test_conflicting_pins(self, text: str, pins: str) -> None:
        """A declaration pinning several refs is rejected, not half-patched."""
        document = ManifestDocument(text)

        with pytest.raises(PatchError, match=rf"pins more than one .*\({pins}\)"):
            patch(document, "staking", FORK)

        assert document.text == text, "Input document must be unmodified"


class TestDeclarationSource:
    """Tests for declaration_source."""

    def test_inline_declaration(self, runtime_manifest: str) -> None:
        """The single line of an inline declaration is returned."""
        source = declaration_source(ManifestDocument(runtime_manifest), DEPENDENCY)

        assert source == _patched_line(runtime_manifest, 9)

    def test_table_declaration_spans_fields(self) -> None:
        """A table declaration is returned from header to last field."""
        text = '[dependencies.staking]\ngit = "https://x.test/s"\nbranch = "main"\n\n[features]\n'

        source = declaration_source(ManifestDocument(text), "staking")

        assert source == '[dependencies.staking]\ngit = "https://x.test/s"\nbranch = "main"'


@pytest.mark.parametrize(
    ("value", "preferred", "expected"),
    [
        ("main", '"', '"main"'),
        ("main", "'", "'main'"),
        ("it's", "'", '"it\'s"'),
        ('a"b\\c', '"', '"a\\"b\\\\c"'),
        ("tab\there", '"', '"tab\\u0009here"'),
    ],
)
def test_quote_string(value: str, preferred: str, expected: str) -> None:
    """Values are written as valid TOML strings."""
    assert quote_string(value, preferred) == expected


class TestManifestFiles:
    """Tests for reading and writing manifests."""

    def test_round_trip_preserves_bytes(self, tmp_path: Path) -> None:
        """CRLF and non-ASCII content are written back exactly."""
        path = tmp_path / "Cargo.toml"
        raw = '[package]\r\nauthors = ["Zoë"]\r\n'.encode()
        path.write_bytes(raw)

        write_manifest(path, read_manifest(path))

        assert path.read_bytes() == raw

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing manifest is a patch error."""
        with pytest.raises(PatchError, match="Cannot access manifest"):
            read_manifest(tmp_path / "Cargo.toml")

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        """Manifests must be UTF-8."""
        path = tmp_path / "Cargo.toml"
        path.write_bytes(b"\xff\xfe[package]\n")

        with pytest.raises(PatchError, match="not valid UTF-8"):
            read_manifest(path)
