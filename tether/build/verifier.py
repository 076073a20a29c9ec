"""Run the verification build against a patched workspace."""

from __future__ import annotations

import typing as typ

from tether.build.models import Failure, FailureDetail, FailureKind, Success
from tether.errors import BuildFailedError, BuildTimeoutError
from tether.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    from pathlib import Path

    from tether.build.models import BuildOutcome
    from tether.build.protocol import Builder

logger = get_logger(__name__)


def verify(workspace: Path, builder: Builder) -> BuildOutcome:
    """Build ``workspace`` once with ``builder``.

    There are no retries: a failed build is the signal the run exists to
    produce.

    Parameters
    ----------
    workspace
        Repository root whose manifest has already been patched.
    builder
        Capability that runs the build.

    Returns
    -------
    BuildOutcome
        ``Success`` or ``Failure`` with the captured output tail. A missing
        workspace is reported as a ``crash`` failure without invoking the
        builder.

    """
    if not workspace.is_dir():
        outcome: BuildOutcome = Failure(
            detail=FailureDetail(
                kind=FailureKind.CRASH,
                message=f"Workspace {workspace} is not a directory",
            )
        )
    else:
        log_info(logger, "Building %s", workspace)
        outcome = builder.run(workspace)

    match outcome:
        case Success(duration=duration):
            log_info(logger, "Build succeeded in %.1fs", duration)
        case Failure(detail=detail):
            log_error(logger, "Build failed (%s): %s", detail.kind, detail.message)
    return outcome


def ensure_success(outcome: BuildOutcome) -> Success:
    """Return ``outcome`` if it is a success, otherwise raise.

    Raises
    ------
    BuildTimeoutError
        If the build exceeded its time budget.
    BuildFailedError
        For any other failure.

    """
    if isinstance(outcome, Success):
        return outcome
    detail = outcome.detail
    if detail.kind is FailureKind.TIMEOUT:
        raise BuildTimeoutError(detail.message, detail=detail)
    raise BuildFailedError(detail.message, detail=detail)
