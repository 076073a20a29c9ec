"""Locate dependency declarations in a Cargo-style TOML manifest.

The parser reads only as much TOML as it needs to find dependency entries
and the character spans of their fields. It never re-serializes the
document, so a rewrite can replace individual values and leave every other
byte alone.

Recognised dependency tables are ``[dependencies]``,
``[dev-dependencies]`` and ``[build-dependencies]``, their
``[workspace.*]`` and ``[target.<cfg>.*]`` variants, and the
``[<table>.<name>]`` form that declares a single dependency. Lines the
parser cannot read are skipped rather than guessed at.
"""

from __future__ import annotations

import re

from tether.manifest.models import DeclarationForm, DependencyDeclaration, FieldSpan

DEPENDENCY_TABLES = frozenset(
    {
        "dependencies",
        "dev-dependencies",
        "build-dependencies",
        "dev_dependencies",
        "build_dependencies",
    }
)

_BARE_KEY = re.compile(r"[A-Za-z0-9_-]+")
_BARE_VALUE_END = frozenset(",}]#\r\n")
_ESCAPES = {
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "f": "\f",
    "r": "\r",
    "e": "\x1b",
    '"': '"',
    "\\": "\\",
}


class _Unreadable(Exception):
    """Raised internally for a statement the parser does not understand."""


def is_dependency_table(path: tuple[str, ...]) -> bool:
    """Return True when ``path`` names a table of dependencies."""
    if not path or path[-1] not in DEPENDENCY_TABLES:
        return False
    if len(path) == 1:
        return True
    if len(path) == 2:  # noqa: PLR2004
        return path[0] == "workspace"
    return len(path) == 3 and path[0] == "target"  # noqa: PLR2004


class _Scanner:
    """Cursor over the manifest text."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, size: int = 1) -> str:
        return self.text[self.pos : self.pos + size]

    def expect(self, char: str) -> None:
        if self.peek() != char:
            raise _Unreadable
        self.pos += 1

    def skip_spaces(self) -> None:
        while self.peek() in {" ", "\t"} and not self.at_end():
            self.pos += 1

    def skip_comment(self) -> None:
        if self.peek() == "#":
            newline = self.text.find("\n", self.pos)
            self.pos = len(self.text) if newline == -1 else newline

    def skip_blank(self) -> None:
        """Skip whitespace, newlines and comments between statements."""
        while not self.at_end():
            char = self.peek()
            if char in {" ", "\t", "\r", "\n"}:
                self.pos += 1
            elif char == "#":
                self.skip_comment()
            else:
                return

    def skip_line(self) -> None:
        newline = self.text.find("\n", self.pos)
        self.pos = len(self.text) if newline == -1 else newline + 1

    def line_start(self) -> int:
        return self.text.rfind("\n", 0, self.pos) + 1

    def line_number(self, offset: int) -> int:
        return self.text.count("\n", 0, offset) + 1

    # Keys

    def simple_key(self) -> tuple[str, int, int]:
        start = self.pos
        char = self.peek()
        if char in {'"', "'"}:
            if self.peek(3) == char * 3:
                raise _Unreadable
            name = self.string()
        else:
            match = _BARE_KEY.match(self.text, self.pos)
            if match is None:
                raise _Unreadable
            name = match.group()
            self.pos = match.end()
        return (name, start, self.pos)

    def dotted_key(self) -> list[tuple[str, int, int]]:
        keys = [self.simple_key()]
        self.skip_spaces()
        while self.peek() == ".":
            self.pos += 1
            self.skip_spaces()
            keys.append(self.simple_key())
            self.skip_spaces()
        return keys

    # Values

    def string(self) -> str:
        quote = self.peek()
        self.pos += 1
        chars: list[str] = []
        while True:
            char = self.peek()
            if not char or char in {"\r", "\n"}:
                raise _Unreadable
            if char == quote:
                self.pos += 1
                return "".join(chars)
            if char == "\\" and quote == '"':
                chars.append(self._escape())
            else:
                chars.append(char)
                self.pos += 1

    def _escape(self) -> str:
        code = self.text[self.pos + 1 : self.pos + 2]
        if code in _ESCAPES:
            self.pos += 2
            return _ESCAPES[code]
        if code in {"u", "U"}:
            width = 4 if code == "u" else 8
            digits = self.text[self.pos + 2 : self.pos + 2 + width]
            try:
                decoded = chr(int(digits, 16))
            except ValueError as exc:
                raise _Unreadable from exc
            self.pos += 2 + width
            return decoded
        raise _Unreadable

    def skip_multiline_string(self) -> None:
        delimiter = self.peek(3)
        closing = self.text.find(delimiter, self.pos + 3)
        if closing == -1:
            raise _Unreadable
        self.pos = closing + 3
        while self.peek() == delimiter[0]:
            self.pos += 1

    def skip_nested(self, opening: str, closing: str) -> None:
        """Skip an array or inline table, which may contain strings."""
        depth = 0
        while not self.at_end():
            char = self.peek()
            if char in {'"', "'"}:
                if self.peek(3) == char * 3:
                    self.skip_multiline_string()
                else:
                    self.string()
                continue
            if char == "#":
                self.skip_comment()
                continue
            if char == opening:
                depth += 1
            elif char == closing:
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return
            self.pos += 1
        raise _Unreadable

    def value(self, key: tuple[str, int, int]) -> FieldSpan:
        name, key_start, key_end = key
        start = self.pos
        char = self.peek()
        value: str | None = None
        quote: str | None = None
        if char in {'"', "'"}:
            if self.peek(3) == char * 3:
                self.skip_multiline_string()
            else:
                value = self.string()
                quote = char
        elif char == "[":
            self.skip_nested("[", "]")
        elif char == "{":
            self.skip_nested("{", "}")
        else:
            while not self.at_end() and self.peek() not in _BARE_VALUE_END:
                self.pos += 1
            while self.pos > start and self.text[self.pos - 1] in {" ", "\t"}:
                self.pos -= 1
            if self.pos == start:
                raise _Unreadable
        return FieldSpan(
            key=name,
            key_start=key_start,
            key_end=key_end,
            value_start=start,
            value_end=self.pos,
            value=value,
            quote=quote,
        )

    def inline_table(self) -> dict[str, FieldSpan]:
        self.expect("{")
        fields: dict[str, FieldSpan] = {}
        self.skip_spaces()
        while self.peek() != "}":
            keys = self.dotted_key()
            self.expect("=")
            self.skip_spaces()
            field = self.value(keys[-1])
            if len(keys) == 1:
                fields[field.key] = field
            self.skip_spaces()
            if self.peek() == ",":
                self.pos += 1
                self.skip_spaces()
            elif self.peek() != "}":
                raise _Unreadable
        self.pos += 1
        return fields

    # Statements

    def header(self) -> tuple[tuple[str, ...], bool]:
        """Parse ``[a.b]`` or ``[[a.b]]``; return the path and array flag."""
        self.expect("[")
        is_array = self.peek() == "["
        if is_array:
            self.pos += 1
        self.skip_spaces()
        path = tuple(name for name, _, _ in self.dotted_key())
        self.expect("]")
        if is_array:
            self.expect("]")
        return (path, is_array)


class _DeclarationCollector:
    """Turn manifest statements into dependency declarations."""

    def __init__(self, scanner: _Scanner) -> None:
        self.scanner = scanner
        self.declarations: list[DependencyDeclaration] = []
        self.section: str | None = None
        self.table_declaration: DependencyDeclaration | None = None
        self.dotted: dict[str, DependencyDeclaration] = {}

    def _declaration(
        self, key: str, section: str, form: DeclarationForm, start: int
    ) -> DependencyDeclaration:
        declaration = DependencyDeclaration(
            key=key,
            section=section,
            form=form,
            start=start,
            line_number=self.scanner.line_number(start),
        )
        self.declarations.append(declaration)
        return declaration

    def header(self, start: int) -> None:
        self.section = None
        self.table_declaration = None
        self.dotted = {}
        path, is_array = self.scanner.header()
        if is_array:
            return
        if is_dependency_table(path):
            self.section = ".".join(path)
        elif len(path) > 1 and is_dependency_table(path[:-1]):
            self.table_declaration = self._declaration(
                path[-1], ".".join(path[:-1]), DeclarationForm.TABLE, start
            )

    def statement(self, start: int) -> None:
        scanner = self.scanner
        keys = scanner.dotted_key()
        scanner.expect("=")
        scanner.skip_spaces()

        if self.table_declaration is not None:
            field = scanner.value(keys[-1])
            if len(keys) == 1:
                self.table_declaration.fields[field.key] = field
            return

        if self.section is None:
            scanner.value(keys[-1])
            return

        name = keys[0][0]
        if len(keys) == 1:
            # Recorded before the value is read so an unreadable entry still
            # counts towards matching.
            declaration = self._declaration(
                name, self.section, DeclarationForm.INLINE, start
            )
            if scanner.peek() == "{":
                declaration.fields.update(scanner.inline_table())
            else:
                scanner.value(keys[-1])
            return

        field = scanner.value(keys[-1])
        if len(keys) != 2:  # noqa: PLR2004
            return
        declaration = self.dotted.get(name)
        if declaration is None:
            declaration = self._declaration(
                name, self.section, DeclarationForm.DOTTED, start
            )
            self.dotted[name] = declaration
        declaration.fields[field.key] = field


def parse_declarations(text: str) -> list[DependencyDeclaration]:
    """Return every dependency declaration in ``text`` in source order.

    Parameters
    ----------
    text
        Manifest content.

    Returns
    -------
    list[DependencyDeclaration]
        One record per declared dependency. Dotted keys for the same
        dependency (``name.git = ...``, ``name.branch = ...``) are merged
        into a single record.

    """
    scanner = _Scanner(text)
    collector = _DeclarationCollector(scanner)
    while True:
        scanner.skip_blank()
        if scanner.at_end():
            break
        start = scanner.line_start()
        try:
            if scanner.peek() == "[":
                collector.header(start)
            else:
                collector.statement(start)
        except _Unreadable:
            # Skip the rest of the line and resume at the next statement.
            pass
        scanner.skip_line()
    return collector.declarations
