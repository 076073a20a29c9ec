"""Verification build execution and outcome classification."""

from __future__ import annotations

from .models import BuildOutcome, Failure, FailureDetail, FailureKind, Success
from .protocol import Builder
from .subprocess_builder import (
    DEFAULT_BUILD_TIMEOUT,
    DEFAULT_TAIL_LINES,
    SubprocessBuilder,
    tail_output,
)
from .verifier import ensure_success, verify

__all__ = [
    "DEFAULT_BUILD_TIMEOUT",
    "DEFAULT_TAIL_LINES",
    "BuildOutcome",
    "Builder",
    "Failure",
    "FailureDetail",
    "FailureKind",
    "SubprocessBuilder",
    "Success",
    "ensure_success",
    "tail_output",
    "verify",
]
