"""Dependency manifest parsing and patching."""

from __future__ import annotations

from .io import read_manifest, write_manifest
from .models import DeclarationForm, DependencyDeclaration, FieldSpan, ManifestDocument
from .parser import parse_declarations
from .patcher import declaration_source, find_declaration, patch, quote_string

__all__ = [
    "DeclarationForm",
    "DependencyDeclaration",
    "FieldSpan",
    "ManifestDocument",
    "declaration_source",
    "find_declaration",
    "parse_declarations",
    "patch",
    "quote_string",
    "read_manifest",
    "write_manifest",
]
