"""Applying planned insertions to source text and persisting the result."""

import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from docsplice.errors import WriteError
from docsplice.models import SpliceOperation

logger = logging.getLogger(__name__)


def apply(source_code: str, operations: Sequence[SpliceOperation]) -> str:
    """Insert every operation's text into the source in one left-to-right pass.

    Operation offsets refer to the original text; the cumulative length of
    earlier insertions (drift) is added to each offset as the text grows.

    Args:
        source_code: Original text
        operations: Insertions in strictly ascending offset order

    Returns:
        The new text

    Raises:
        ValueError: If offsets are out of range, unsorted or repeated
    """
    result = source_code
    drift = 0
    previous_offset = -1

    for operation in operations:
        if not 0 <= operation.offset <= len(source_code):
            raise ValueError(f"Offset {operation.offset} outside source of length {len(source_code)}")
        if operation.offset <= previous_offset:
            raise ValueError(f"Offsets must be strictly increasing: {operation.offset} after {previous_offset}")

        position = operation.offset + drift
        result = result[:position] + operation.text + result[position:]
        drift += len(operation.text)
        previous_offset = operation.offset

    return result


def read_source(file_path: Path) -> str:
    """Read UTF-8 text without translating line endings."""
    with open(file_path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_file(file_path: Path, text: str) -> None:
    """Persist text atomically: write a sibling temp file, then replace.

    Raises:
        WriteError: If the file could not be written; the original is untouched
    """
    file_path = Path(file_path)
    temp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="",
            dir=file_path.parent,
            prefix=f".{file_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            temp_path = Path(f.name)
            f.write(text)
        if file_path.exists():
            os.chmod(temp_path, file_path.stat().st_mode)
        os.replace(temp_path, file_path)
    except OSError as e:
        logger.error(f"Failed to write {file_path}: {e}")
        if temp_path is not None and temp_path.exists():
            temp_path.unlink()
        raise WriteError(f"Failed to write {file_path}: {e}") from e
