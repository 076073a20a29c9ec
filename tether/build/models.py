"""Outcome records for verification builds."""

from __future__ import annotations

import enum
import typing as typ

import msgspec


class FailureKind(enum.StrEnum):
    """Why a build did not succeed."""

    EXIT = "exit"
    SIGNAL = "signal"
    TIMEOUT = "timeout"
    CRASH = "crash"


class FailureDetail(msgspec.Struct, kw_only=True, frozen=True):
    """Diagnostics for a failed build.

    Attributes
    ----------
    kind
        Non-zero exit, termination by signal, timeout, or a command that
        could not be run at all.
    message
        One-line summary suitable for a CI log.
    exit_code
        Exit status for ``exit`` failures.
    signal
        Signal number for ``signal`` failures.
    output_tail
        Last lines of combined stdout and stderr.

    """

    kind: FailureKind
    message: str
    exit_code: int | None = None
    signal: int | None = None
    output_tail: str = ""


class Success(msgspec.Struct, kw_only=True, frozen=True, tag="success"):
    """The build command exited with status 0."""

    output_tail: str = ""
    duration: float = 0.0


class Failure(msgspec.Struct, kw_only=True, frozen=True, tag="failure"):
    """The build command did not exit with status 0."""

    detail: FailureDetail
    duration: float = 0.0


BuildOutcome: typ.TypeAlias = Success | Failure
