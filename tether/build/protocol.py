"""Builder protocol for running the verification build."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path

    from tether.build.models import BuildOutcome


@typ.runtime_checkable
class Builder(typ.Protocol):
    """Capability that builds and tests a patched workspace.

    Implementations report every result, including timeouts and commands
    that cannot start, as a :data:`BuildOutcome` rather than raising.

    Examples
    --------
    >>> from tether.build import Builder, SubprocessBuilder
    >>> isinstance(SubprocessBuilder(command=("cargo", "build")), Builder)
    True

    """

    def run(self, workspace: Path) -> BuildOutcome:
        """Build ``workspace`` and classify the result."""
        ...
