"""Read and write manifests as exact UTF-8 text."""

from __future__ import annotations

import typing as typ

from tether.errors import PatchError
from tether.manifest.models import ManifestDocument

if typ.TYPE_CHECKING:
    from pathlib import Path


def read_manifest(path: Path) -> ManifestDocument:
    """Load ``path`` without newline translation.

    Raises
    ------
    PatchError
        If the file cannot be read or is not valid UTF-8.

    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise PatchError.unreadable(str(path), exc.strerror or str(exc)) from exc
    try:
        return ManifestDocument(raw.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise PatchError.unreadable(str(path), f"not valid UTF-8 ({exc.reason})") from exc


def write_manifest(path: Path, document: ManifestDocument) -> None:
    """Replace the contents of ``path`` with ``document``."""
    try:
        path.write_bytes(document.text.encode("utf-8"))
    except OSError as exc:
        raise PatchError.unreadable(str(path), exc.strerror or str(exc)) from exc
