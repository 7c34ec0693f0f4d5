"""Error types raised by the docsplice pipeline.

Every error is scoped to a single file; callers report it and move on.
"""


class DocspliceError(Exception):
    """Base class for docsplice errors."""


class ParseError(DocspliceError):
    """Source text is not syntactically valid.

    Attributes:
        line: 0-indexed line of the first syntax error, if known
    """

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.line = line


class RenderError(DocspliceError):
    """A resolved comment failed content validation."""


class WriteError(DocspliceError):
    """Updated source could not be persisted."""
