"""Rendering of resolved comments into JSDoc blocks.

Body order is fixed: summary, blank separator, @param lines in the
declaration's parameter order, @returns, then @throws.
"""

import logging
import textwrap

from docsplice.errors import RenderError
from docsplice.models import ResolvedComment

logger = logging.getLogger(__name__)

NOT_IMPLEMENTED_LINE = "@throws {Error} Not implemented."


def _clean_lines(text: str) -> list[str]:
    """Split caller text into lines with `*/` escaped so the block stays closed."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n").replace("*/", "*\\/")
    lines = [line.rstrip() for line in normalized.split("\n")]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return lines


class CommentRenderer:
    """Builds unindented `/** ... */` blocks from resolved comments.

    Attributes:
        wrap_width: Wrap body lines longer than this many characters (0 disables)
        strict_returns: Raise RenderError for a @returns description on a
            declaration that cannot return a value; when False the line is
            dropped with a warning
    """

    def __init__(self, wrap_width: int = 0, strict_returns: bool = True):
        self.wrap_width = wrap_width
        self.strict_returns = strict_returns

    def render(self, resolved: ResolvedComment) -> str:
        """Render a resolved comment.

        Args:
            resolved: Proposal bound to its declaration

        Returns:
            The comment block, lines joined with "\\n", without indentation

        Raises:
            RenderError: If the summary is empty, or a @returns description
                targets a non-returning declaration in strict mode
        """
        proposal = resolved.proposal
        declaration = resolved.declaration

        summary = _clean_lines(proposal.summary or "")
        if not summary:
            raise RenderError(f"Empty summary for {declaration.qualified_name}")

        body = self._wrap_paragraph(summary)
        tags = self._param_lines(resolved)

        if proposal.returns and proposal.returns.strip():
            if declaration.returns_value:
                tags.extend(self._tag("@returns", proposal.returns))
            elif self.strict_returns:
                raise RenderError(
                    f"@returns is not allowed on {declaration.kind.value} {declaration.qualified_name}"
                )
            else:
                logger.warning(f"Dropping @returns for {declaration.qualified_name}: declaration returns no value")

        if proposal.throws and proposal.throws.strip():
            tags.extend(self._tag("@throws", proposal.throws))
        if proposal.not_implemented:
            tags.append(NOT_IMPLEMENTED_LINE)

        if tags:
            body.append("")
            body.extend(tags)

        lines = ["/**"]
        lines.extend(f" * {line}" if line else " *" for line in body)
        lines.append(" */")
        return "\n".join(lines)

    def _param_lines(self, resolved: ResolvedComment) -> list[str]:
        """@param lines ordered by the declaration, not by the proposal."""
        descriptions: dict[str, str] = {}
        for name, description in resolved.proposal.params:
            name = name.strip().lstrip(".").rstrip("?")
            if name in descriptions:
                logger.warning(f"Duplicate @param {name} for {resolved.declaration.qualified_name}; keeping the first")
                continue
            descriptions[name] = description

        declared = [param.name for param in resolved.declaration.parameters]
        for name in descriptions:
            if name not in declared:
                logger.warning(f"Dropping @param {name}: not a parameter of {resolved.declaration.qualified_name}")

        lines = []
        for name in declared:
            if name in descriptions:
                lines.extend(self._tag(f"@param {name}", descriptions[name]))
        return lines

    def _tag(self, tag: str, description: str) -> list[str]:
        """Render a tag with a possibly multi-line description."""
        description_lines = _clean_lines(description)
        if not description_lines:
            return [tag]
        first, *rest = description_lines
        return self._wrap_paragraph([f"{tag} {first}"] + [f"  {line.lstrip()}" for line in rest], hanging="  ")

    def _wrap_paragraph(self, lines: list[str], hanging: str = "") -> list[str]:
        if self.wrap_width <= 0:
            return list(lines)
        wrapped = []
        for line in lines:
            if not line or len(line) <= self.wrap_width:
                wrapped.append(line)
                continue
            wrapped.extend(textwrap.wrap(
                line,
                width=self.wrap_width,
                subsequent_indent=hanging,
                break_long_words=False,
                break_on_hyphens=False,
            ))
        return wrapped


def render_comment(resolved: ResolvedComment) -> str:
    """Render with default settings (no wrapping, strict @returns)."""
    return CommentRenderer().render(resolved)
