"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import dataclasses
import typing as typ

import pytest

from tether.build import BuildOutcome, Success

if typ.TYPE_CHECKING:
    from pathlib import Path

DEPENDENCY_NAME = "pallet-parachain-staking"

RUNTIME_MANIFEST = """\
[package]
name = "avn-parachain-runtime"
version = "0.1.0"
edition = "2021"

[dependencies]
# Substrate
frame-support = { git = "https://github.com/paritytech/substrate", default-features = false, branch = "polkadot-v0.9.30" }
pallet-parachain-staking = { git = "https://github.com/acme/avn-parachain-staking", default-features = false, branch = "main" }
pallet-session = { git = "https://github.com/paritytech/substrate", default-features = false, branch = "polkadot-v0.9.30" }

[features]
default = ["std"]
std = [
\t"frame-support/std",
\t"pallet-parachain-staking/std",
]
"""

_GITHUB_VARIABLES = (
    "GITHUB_EVENT_NAME",
    "GITHUB_EVENT_PATH",
    "GITHUB_HEAD_REF",
    "GITHUB_REF",
    "GITHUB_REF_NAME",
    "GITHUB_REPOSITORY",
    "GITHUB_SERVER_URL",
    "GITHUB_STEP_SUMMARY",
    "TETHER_CANONICAL_REPOSITORY",
    "TETHER_BUILD_COMMAND",
    "TETHER_BUILD_TIMEOUT",
    "TETHER_DEPENDENCY_NAME",
    "TETHER_LOG_LEVEL",
    "TETHER_MANIFEST_PATH",
    "TETHER_OUTPUT_TAIL_LINES",
    "TETHER_REPORT_PATH",
    "TETHER_WORKSPACE",
)


@dataclasses.dataclass(slots=True)
class FakeBuilder:
    """Builder double that returns a canned outcome and records workspaces."""

    outcome: BuildOutcome = dataclasses.field(
        default_factory=lambda: Success(output_tail="Finished dev profile", duration=1.5)
    )
    workspaces: list[Path] = dataclasses.field(default_factory=list)
    manifests_seen: list[str] = dataclasses.field(default_factory=list)

    def run(self, workspace: Path) -> BuildOutcome:
        """Record the call and the manifest as the build would see it."""
        self.workspaces.append(workspace)
        manifest = workspace / "runtime" / "Cargo.toml"
        if manifest.exists():
            self.manifests_seen.append(manifest.read_text(encoding="utf-8"))
        return self.outcome


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove CI and Tether variables so tests control the environment."""
    for name in _GITHUB_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Return a downstream workspace with ``runtime/Cargo.toml``."""
    manifest = tmp_path / "runtime" / "Cargo.toml"
    manifest.parent.mkdir(parents=True)
    manifest.write_text(RUNTIME_MANIFEST, encoding="utf-8")
    return tmp_path


@pytest.fixture
def fake_builder() -> FakeBuilder:
    """Return a builder double that succeeds."""
    return FakeBuilder()


@pytest.fixture
def runtime_manifest() -> str:
    """Return a runtime manifest declaring three git dependencies."""
    return RUNTIME_MANIFEST
