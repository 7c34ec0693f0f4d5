from pathlib import Path

from docsplice.parsers.base import BaseParser
from docsplice.parsers.typescript_parser import TypeScriptParser

TYPESCRIPT_SUFFIXES = (".ts", ".mts", ".cts")
TSX_SUFFIXES = (".tsx",)
SUPPORTED_SUFFIXES = TYPESCRIPT_SUFFIXES + TSX_SUFFIXES


def get_parser_for_file(file_path: Path) -> BaseParser | None:
    """Return a fresh parser for the file's language, or None if unsupported.

    Declaration files (.d.ts) are parsed with the TypeScript grammar too.
    """
    suffix = file_path.suffix.lower()
    if suffix in TYPESCRIPT_SUFFIXES:
        return TypeScriptParser()
    if suffix in TSX_SUFFIXES:
        return TypeScriptParser(tsx=True)
    return None


__all__ = ["BaseParser", "TypeScriptParser", "get_parser_for_file", "SUPPORTED_SUFFIXES"]
