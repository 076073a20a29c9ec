"""Resolve, patch and build: one verification run from start to finish.

The stages run strictly in order and the first failure ends the run. The
returned :class:`VerificationReport` names the stage that stopped it so the
command line can choose an exit code and print a diagnosis.
"""

from __future__ import annotations

import enum
import typing as typ

import msgspec

from tether.build import BuildOutcome, Success, ensure_success, verify
from tether.errors import BuildError, ContextError, PatchError
from tether.logging import get_logger, log_error, log_info
from tether.manifest import declaration_source, patch, read_manifest, write_manifest
from tether.trigger import OverrideTarget, resolve

if typ.TYPE_CHECKING:
    from tether.build import Builder
    from tether.config import VerifierConfig
    from tether.trigger import TriggerEvent

logger = get_logger(__name__)


class Stage(enum.StrEnum):
    """Where a verification run stopped."""

    RESOLVE = "resolve"
    PATCH = "patch"
    BUILD = "build"
    COMPLETE = "complete"


class VerificationReport(msgspec.Struct, kw_only=True, frozen=True):
    """Result of a verification run.

    Attributes
    ----------
    dependency_name
        Dependency whose declaration was overridden.
    stage
        ``complete`` when the build passed, otherwise the failing stage.
    target
        Override target, once resolved.
    outcome
        Build outcome, once the build ran.
    error
        Message of the error that stopped the run.

    """

    dependency_name: str
    stage: Stage
    target: OverrideTarget | None = None
    outcome: BuildOutcome | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Return True when the build ran and passed."""
        return self.stage is Stage.COMPLETE and isinstance(self.outcome, Success)


def apply_override(config: VerifierConfig, target: OverrideTarget) -> str:
    """Patch the configured manifest in place and return the new declaration.

    Raises
    ------
    PatchError
        If the manifest cannot be read or written, or the declaration is
        missing or ambiguous. The file is left untouched in that case.

    """
    path = config.resolved_manifest_path
    document = read_manifest(path)
    patched = patch(document, config.dependency_name, target)
    write_manifest(path, patched)
    return declaration_source(patched, config.dependency_name)


def run_verification(
    config: VerifierConfig, trigger: TriggerEvent, builder: Builder
) -> VerificationReport:
    """Run the resolve, patch and build stages for ``trigger``.

    Parameters
    ----------
    config
        Run configuration.
    trigger
        Event that started the run.
    builder
        Capability that runs the build.

    Returns
    -------
    VerificationReport
        The report; never raises for stage failures.

    """
    name = config.dependency_name
    try:
        target = resolve(trigger)
    except ContextError as exc:
        log_error(logger, "Cannot resolve override target: %s", exc)
        return VerificationReport(dependency_name=name, stage=Stage.RESOLVE, error=str(exc))
    log_info(
        logger,
        "Override target for %s: %s branch %s",
        name,
        target.repository_url,
        target.branch_name,
    )

    try:
        declaration = apply_override(config, target)
    except PatchError as exc:
        log_error(logger, "Cannot patch %s: %s", config.resolved_manifest_path, exc)
        return VerificationReport(
            dependency_name=name, stage=Stage.PATCH, target=target, error=str(exc)
        )
    log_info(logger, "Using %s from branch:\n%s", name, declaration)

    outcome = verify(config.workspace, builder)
    try:
        ensure_success(outcome)
    except BuildError as exc:
        return VerificationReport(
            dependency_name=name,
            stage=Stage.BUILD,
            target=target,
            outcome=outcome,
            error=str(exc),
        )
    return VerificationReport(
        dependency_name=name, stage=Stage.COMPLETE, target=target, outcome=outcome
    )
