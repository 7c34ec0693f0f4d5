from collections.abc import Sequence

from docsplice.models import DeclarationRecord, RenderedComment, SpliceOperation


def detect_line_terminator(source_code: str) -> str:
    """Return "\\r\\n" when the first line ending is CRLF, else "\\n"."""
    newline = source_code.find("\n")
    if newline > 0 and source_code[newline - 1] == "\r":
        return "\r\n"
    return "\n"


def _indent_block(comment_text: str, indent: str, line_terminator: str) -> str:
    return "".join(f"{indent}{line}{line_terminator}" for line in comment_text.split("\n"))


def build_operation(record: DeclarationRecord, comment_text: str, source_code: str, line_terminator: str) -> SpliceOperation:
    """Turn a rendered block into an insertion above its declaration.

    When only whitespace precedes the declaration (or its leading comments) on
    its line, the block is inserted at the start of that line with every line
    indented like that line, lining it up with any comment run it goes above.
    Otherwise the declaration shares a line with earlier code and the block is
    opened on a new line.

    Args:
        record: Target declaration
        comment_text: Unindented block from the renderer, "\\n"-joined
        source_code: Original file text
        line_terminator: Terminator used by the file

    Returns:
        SpliceOperation against the original text
    """
    line_start = source_code.rfind("\n", 0, record.offset) + 1
    prefix = source_code[line_start:record.offset]

    if prefix.strip() == "":
        return SpliceOperation(offset=line_start, text=_indent_block(comment_text, prefix, line_terminator))
    block = _indent_block(comment_text, record.indent, line_terminator)
    return SpliceOperation(offset=record.offset, text=f"{line_terminator}{block}{record.indent}")


def plan(
    rendered: Sequence[RenderedComment],
    catalog: Sequence[DeclarationRecord],
    source_code: str,
) -> list[SpliceOperation]:
    """Plan one insertion per rendered comment, sorted by offset.

    Args:
        rendered: Rendered comments, at most one per declaration
        catalog: The file's declaration catalog
        source_code: Original file text

    Returns:
        SpliceOperations in strictly ascending offset order

    Raises:
        ValueError: If a comment targets a record outside the catalog, or two
            comments target the same position
    """
    known = set(catalog)
    line_terminator = detect_line_terminator(source_code)
    operations: list[SpliceOperation] = []

    for comment in rendered:
        record = comment.declaration
        if record not in known:
            raise ValueError(f"Declaration {record.qualified_name} is not part of this file's catalog")
        operations.append(build_operation(record, comment.text, source_code, line_terminator))

    operations.sort(key=lambda operation: operation.offset)
    for previous, current in zip(operations, operations[1:]):
        if previous.offset == current.offset:
            raise ValueError(f"Two comments target offset {current.offset}")
    return operations
