"""Manifest text and the dependency declarations located within it."""

from __future__ import annotations

import dataclasses as dc
import enum

import msgspec


class ManifestDocument(msgspec.Struct, frozen=True):
    """Full text of a dependency manifest.

    Instances are immutable; patching returns a new document.
    """

    text: str


class DeclarationForm(enum.StrEnum):
    """How a dependency is written in the manifest."""

    INLINE = "inline"  # name = { git = "...", branch = "..." }
    TABLE = "table"  # [dependencies.name] followed by key lines
    DOTTED = "dotted"  # name.git = "..." lines inside a dependency table


@dc.dataclass(frozen=True, slots=True)
class FieldSpan:
    """A ``key = value`` pair inside a declaration.

    Offsets index into the manifest text. ``value`` and ``quote`` are set
    only when the value is a single-line string.
    """

    key: str
    key_start: int
    key_end: int
    value_start: int
    value_end: int
    value: str | None = None
    quote: str | None = None


@dc.dataclass(slots=True)
class DependencyDeclaration:
    """One dependency entry found in a dependency section.

    Attributes
    ----------
    key
        Key the dependency is declared under.
    section
        Dependency table the entry belongs to, for example ``dependencies``
        or ``target.cfg(unix).dependencies``.
    form
        Inline table, standalone table or dotted keys.
    start
        Offset of the first character of the declaration's first line.
    line_number
        1-based line of the declaration's first line.
    fields
        Fields keyed by name, in source order.

    """

    key: str
    section: str
    form: DeclarationForm
    start: int
    line_number: int
    fields: dict[str, FieldSpan] = dc.field(default_factory=dict)

    @property
    def end(self) -> int:
        """Return the offset just past the declaration's last value."""
        return max((field.value_end for field in self.fields.values()), default=self.start)

    @property
    def package(self) -> str | None:
        """Return the upstream package name when the key is a rename."""
        field = self.fields.get("package")
        return None if field is None else field.value

    def declares(self, dependency_name: str) -> bool:
        """Return True when this entry declares ``dependency_name``."""
        return dependency_name in {self.key, self.package}
