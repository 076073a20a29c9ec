r"""Point one dependency declaration at an override repository and branch.

Usage
-----
>>> from tether.manifest import ManifestDocument, patch
>>> from tether.trigger import OverrideTarget
>>> document = ManifestDocument(
...     "[dependencies]\n"
...     'staking = { git = "https://github.com/acme/pallets", branch = "main" }\n'
... )
>>> target = OverrideTarget(
...     repository_url="https://github.com/bob/pallets", branch_name="fix"
... )
>>> patch(document, "staking", target).text.splitlines()[1]
'staking = { git = "https://github.com/bob/pallets", branch = "fix" }'

"""

from __future__ import annotations

import typing as typ

from tether.errors import PatchError
from tether.logging import get_logger, log_info
from tether.manifest.models import DeclarationForm, ManifestDocument
from tether.manifest.parser import parse_declarations

if typ.TYPE_CHECKING:
    from tether.manifest.models import DependencyDeclaration, FieldSpan
    from tether.trigger.models import OverrideTarget

logger = get_logger(__name__)

# Pins that Cargo treats as mutually exclusive with ``branch``.
_PIN_FIELDS = ("branch", "tag", "rev")

_Edit: typ.TypeAlias = tuple[int, int, str]


def quote_string(value: str, preferred: str | None = '"') -> str:
    """Return ``value`` as a TOML string literal.

    A literal (single-quoted) string is kept when ``preferred`` asks for one
    and the value can be written that way; otherwise a basic string with
    escapes is produced.
    """
    if preferred == "'" and not any(char in value for char in "'\r\n"):
        return f"'{value}'"
    escaped: list[str] = []
    for char in value:
        if char in {'"', "\\"}:
            escaped.append(f"\\{char}")
        elif ord(char) < 0x20 or ord(char) == 0x7F:  # noqa: PLR2004
            escaped.append(f"\\u{ord(char):04X}")
        else:
            escaped.append(char)
    return '"' + "".join(escaped) + '"'


def find_declaration(
    document: ManifestDocument, dependency_name: str
) -> DependencyDeclaration:
    """Return the single declaration of ``dependency_name``.

    Raises
    ------
    PatchError
        If no declaration, or more than one, names the dependency.

    """
    matches = [
        declaration
        for declaration in parse_declarations(document.text)
        if declaration.declares(dependency_name)
    ]
    if not matches:
        raise PatchError.not_found(dependency_name)
    if len(matches) > 1:
        raise PatchError.ambiguous(
            dependency_name, (declaration.line_number for declaration in matches)
        )
    return matches[0]


def declaration_source(document: ManifestDocument, dependency_name: str) -> str:
    """Return the source lines of the declaration of ``dependency_name``."""
    declaration = find_declaration(document, dependency_name)
    text = document.text
    line_end = text.find("\n", declaration.end)
    end = len(text) if line_end == -1 else line_end
    return text[declaration.start : end].rstrip("\r")


def _line_end(text: str, offset: int) -> tuple[int, str]:
    """Return the offset after the line containing ``offset`` and its newline."""
    newline = text.find("\n", offset)
    if newline == -1:
        return (len(text), "")
    if newline > 0 and text[newline - 1] == "\r":
        return (newline + 1, "\r\n")
    return (newline + 1, "\n")


def _branch_insertion(
    text: str, declaration: DependencyDeclaration, git: FieldSpan, branch: str
) -> _Edit:
    """Return an edit adding a ``branch`` field next to ``git``."""
    separator = text[git.key_end : git.value_start]
    value = quote_string(branch, git.quote)
    if declaration.form is DeclarationForm.INLINE:
        return (git.value_end, git.value_end, f", branch{separator}{value}")

    line_start = text.rfind("\n", 0, git.key_start) + 1
    prefix = text[line_start : git.key_start]
    offset, newline = _line_end(text, git.value_end)
    line = f"{prefix}branch{separator}{value}"
    if not newline:
        # The git field is on the last line and has no terminator.
        return (offset, offset, f"\n{line}")
    return (offset, offset, f"{line}{newline}")


def _plan_edits(
    text: str, declaration: DependencyDeclaration, target: OverrideTarget
) -> list[_Edit]:
    git = declaration.fields.get("git")
    if git is None or git.value is None:
        raise PatchError.missing_git_source(declaration.key, declaration.line_number)

    edits: list[_Edit] = [
        (git.value_start, git.value_end, quote_string(target.repository_url, git.quote))
    ]
    pins = [
        declaration.fields[name] for name in _PIN_FIELDS if name in declaration.fields
    ]
    if len(pins) > 1:
        raise PatchError.conflicting_pins(
            declaration.key, declaration.line_number, (field.key for field in pins)
        )
    if not pins:
        edits.append(_branch_insertion(text, declaration, git, target.branch_name))
        return edits

    pin = pins[0]
    if pin.key != "branch":
        edits.append((pin.key_start, pin.key_end, "branch"))
    edits.append(
        (pin.value_start, pin.value_end, quote_string(target.branch_name, pin.quote))
    )
    return edits


def _apply(text: str, edits: list[_Edit]) -> str:
    for start, end, replacement in sorted(edits, reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


def patch(
    document: ManifestDocument, dependency_name: str, target: OverrideTarget
) -> ManifestDocument:
    """Rewrite the declaration of ``dependency_name`` to use ``target``.

    The declaration's ``git`` value becomes ``target.repository_url`` and its
    branch pin becomes ``target.branch_name``. A ``tag`` or ``rev`` pin is
    replaced by ``branch``; a declaration with no pin gains a ``branch``
    field beside ``git``. Nothing outside the declaration changes, and
    patching twice with the same target gives the same text.

    Parameters
    ----------
    document
        Manifest to patch. It is not modified.
    dependency_name
        Key, or ``package`` name, the dependency is declared under.
    target
        Repository and branch to point the dependency at.

    Returns
    -------
    ManifestDocument
        The patched manifest.

    Raises
    ------
    PatchError
        If the dependency is not declared, is declared more than once, has
        no ``git`` source, or pins more than one of ``branch``, ``tag`` and
        ``rev``. No edit is applied in that case.

    """
    declaration = find_declaration(document, dependency_name)
    edits = _plan_edits(document.text, declaration, target)
    patched = ManifestDocument(_apply(document.text, edits))
    log_info(
        logger,
        "Patched %s (%s, line %d) to %s branch %s",
        dependency_name,
        declaration.section,
        declaration.line_number,
        target.repository_url,
        target.branch_name,
    )
    return patched
