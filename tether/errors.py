"""Exceptions raised by the Tether verification stages.

Every stage raises a subclass of :class:`TetherError` so the command line
can map failures to exit codes from a single ``except`` clause.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from tether.build.models import FailureDetail


class TetherError(Exception):
    """Base class for every error Tether reports to the invoking platform."""


class ConfigError(TetherError):
    """Raised when environment or command-line configuration is invalid."""

    @classmethod
    def missing(cls, name: str) -> ConfigError:
        """Return an error for a required setting that was not provided."""
        return cls(f"{name} is required")

    @classmethod
    def invalid(cls, name: str, value: str, constraint: str) -> ConfigError:
        """Return an error for a setting whose value fails validation."""
        return cls(f"Invalid {name} {value!r}: {constraint}")


class ContextError(TetherError):
    """Raised when trigger metadata cannot produce an override target."""

    @classmethod
    def unknown_event(cls, event_name: str | None) -> ContextError:
        """Return an error for an event kind Tether does not handle."""
        if not event_name:
            return cls("Trigger event kind is not set (GITHUB_EVENT_NAME is empty)")
        return cls(f"Unsupported trigger event kind: {event_name!r}")

    @classmethod
    def missing_field(cls, event_kind: str, field: str) -> ContextError:
        """Return an error for a field the event kind requires."""
        return cls(f"{event_kind} trigger is missing required field {field!r}")

    @classmethod
    def missing_repository(cls) -> ContextError:
        """Return an error when the canonical repository cannot be determined."""
        return cls(
            "Canonical repository is unknown: set GITHUB_REPOSITORY or "
            "TETHER_CANONICAL_REPOSITORY"
        )

    @classmethod
    def not_a_branch(cls, ref: str) -> ContextError:
        """Return an error for a ref that does not name a branch."""
        return cls(f"Ref {ref!r} does not name a branch (expected refs/heads/...)")

    @classmethod
    def malformed_url(cls, url: str) -> ContextError:
        """Return an error for a repository URL that cannot be cloned from."""
        return cls(f"Repository URL {url!r} is not a well-formed URL")

    @classmethod
    def unreadable_payload(cls, path: str, detail: str) -> ContextError:
        """Return an error for an event payload that cannot be decoded."""
        return cls(f"Cannot read event payload at {path}: {detail}")


class PatchError(TetherError):
    """Raised when the target dependency declaration cannot be rewritten."""

    @classmethod
    def not_found(cls, dependency_name: str) -> PatchError:
        """Return an error when no declaration names the dependency."""
        return cls(f"No declaration of dependency {dependency_name!r} found")

    @classmethod
    def ambiguous(
        cls, dependency_name: str, line_numbers: cabc.Iterable[int]
    ) -> PatchError:
        """Return an error when several declarations name the dependency."""
        lines = ", ".join(str(number) for number in line_numbers)
        return cls(
            f"Dependency {dependency_name!r} is declared more than once "
            f"(lines {lines}); refusing to guess which one to patch"
        )

    @classmethod
    def missing_git_source(cls, dependency_name: str, line_number: int) -> PatchError:
        """Return an error when the declaration is not a git dependency."""
        return cls(
            f"Declaration of {dependency_name!r} on line {line_number} has no "
            "git source to override"
        )

    @classmethod
    def conflicting_pins(
        cls, dependency_name: str, line_number: int, pins: cabc.Iterable[str]
    ) -> PatchError:
        """Return an error when the declaration pins more than one ref."""
        names = ", ".join(pins)
        return cls(
            f"Declaration of {dependency_name!r} on line {line_number} pins "
            f"more than one of branch, tag and rev ({names})"
        )

    @classmethod
    def unreadable(cls, path: str, detail: str) -> PatchError:
        """Return an error for a manifest that cannot be read or written."""
        return cls(f"Cannot access manifest {path}: {detail}")


class BuildError(TetherError):
    """Base class for verification builds that did not succeed.

    Attributes
    ----------
    detail
        Classified failure including the captured output tail.

    """

    def __init__(self, message: str, *, detail: FailureDetail) -> None:
        """Initialise with a message and the classified failure."""
        self.detail = detail
        super().__init__(message)


class BuildFailedError(BuildError):
    """Raised when the build command exits non-zero, is killed, or cannot start."""


class BuildTimeoutError(BuildError):
    """Raised when the build command exceeds its time budget."""
