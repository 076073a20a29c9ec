"""Run the verification build as an external command.

The command runs with the workspace as its working directory. stdout and
stderr are merged so the captured tail reads in the order the build
printed it.
"""

from __future__ import annotations

import dataclasses as dc
import os
import signal
import subprocess
import sys
import time
import typing as typ

from tether.build.models import (
    BuildOutcome,
    Failure,
    FailureDetail,
    FailureKind,
    Success,
)
from tether.errors import ConfigError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

# Matches the job limit of the CI workflow this replaces.
DEFAULT_BUILD_TIMEOUT = 90 * 60
DEFAULT_TAIL_LINES = 200


def tail_output(output: str | bytes | None, lines: int) -> str:
    """Return the last ``lines`` lines of ``output``."""
    if output is None:
        return ""
    if isinstance(output, bytes):
        output = output.decode("utf-8", errors="replace")
    return "\n".join(output.splitlines()[-lines:])


def _signal_name(number: int) -> str:
    try:
        return signal.Signals(number).name
    except ValueError:
        return f"signal {number}"


def _kill_process_group(process: subprocess.Popen[str]) -> None:
    """Kill ``process`` and every process in its group."""
    if sys.platform == "win32":
        process.kill()
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # The group exited between the timeout and the kill.
        pass


@dc.dataclass(frozen=True, slots=True)
class SubprocessBuilder:
    """Build by running ``command`` in the workspace.

    Attributes
    ----------
    command
        Program and arguments; run without a shell.
    timeout
        Seconds before the command is killed and reported as a timeout.
    tail_lines
        Number of trailing output lines kept for the report.
    env
        Environment for the command; ``None`` inherits the current one.

    """

    command: tuple[str, ...]
    timeout: float = DEFAULT_BUILD_TIMEOUT
    tail_lines: int = DEFAULT_TAIL_LINES
    env: cabc.Mapping[str, str] | None = None

    def __post_init__(self) -> None:
        """Reject settings that would make the build unbounded or empty."""
        if not self.command:
            raise ConfigError.missing("build command")
        if self.timeout <= 0:
            raise ConfigError.invalid(
                "build timeout", str(self.timeout), "must be a positive number of seconds"
            )
        if self.tail_lines < 1:
            raise ConfigError.invalid(
                "output tail lines", str(self.tail_lines), "must be at least 1"
            )

    def run(self, workspace: Path) -> BuildOutcome:
        """Run the command in ``workspace`` and classify its exit.

        The command leads its own process group. On timeout the whole group
        is killed, so compiler processes started by the build do not
        outlive it.
        """
        started = time.monotonic()
        try:
            process = subprocess.Popen(  # noqa: S603
                # shell=False; the command comes from trusted configuration
                list(self.command),
                cwd=workspace,
                env=None if self.env is None else dict(self.env),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                start_new_session=True,
            )
        except OSError as exc:
            return Failure(
                detail=FailureDetail(
                    kind=FailureKind.CRASH,
                    message=f"Build command {self.command[0]!r} could not be run: {exc}",
                ),
                duration=time.monotonic() - started,
            )

        with process:
            try:
                stdout, _ = process.communicate(timeout=self.timeout)
            except subprocess.TimeoutExpired:
                _kill_process_group(process)
                # Collects what was printed before the kill.
                stdout, _ = process.communicate()
                return Failure(
                    detail=FailureDetail(
                        kind=FailureKind.TIMEOUT,
                        message=f"Build timed out after {self.timeout:g} seconds",
                        output_tail=tail_output(stdout, self.tail_lines),
                    ),
                    duration=time.monotonic() - started,
                )

        duration = time.monotonic() - started
        output = tail_output(stdout, self.tail_lines)
        code = process.returncode
        if code == 0:
            return Success(output_tail=output, duration=duration)
        if code < 0:
            detail = FailureDetail(
                kind=FailureKind.SIGNAL,
                message=f"Build killed by {_signal_name(-code)}",
                signal=-code,
                output_tail=output,
            )
        else:
            detail = FailureDetail(
                kind=FailureKind.EXIT,
                message=f"Build exited with status {code}",
                exit_code=code,
                output_tail=output,
            )
        return Failure(detail=detail, duration=duration)
