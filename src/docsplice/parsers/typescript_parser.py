import logging
from dataclasses import replace

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from docsplice.errors import ParseError
from docsplice.models import DeclarationKind, DeclarationRecord, Parameter
from docsplice.parsers.base import BaseParser

logger = logging.getLogger(__name__)

FUNCTION_TYPES = ("function_declaration", "generator_function_declaration", "function_signature")
CLASS_TYPES = ("class_declaration", "abstract_class_declaration")
MODULE_TYPES = ("internal_module", "module")
VARIABLE_TYPES = ("lexical_declaration", "variable_declaration")
METHOD_TYPES = ("method_definition", "method_signature", "abstract_method_signature")
FUNCTION_VALUE_TYPES = ("arrow_function", "function_expression", "function", "generator_function")


class _SourceText:
    """Converts tree-sitter byte positions into offsets of the Python string.

    Tree-sitter rows are delimited by "\\n" only, so lines are split the same way.
    """

    def __init__(self, source_code: str):
        self.source_code = source_code
        self._line_starts: list[int] = []
        self._line_bytes: list[bytes] = []
        position = 0
        for line in source_code.split("\n"):
            self._line_starts.append(position)
            self._line_bytes.append(line.encode("utf8"))
            position += len(line) + 1

    def column(self, point) -> int:
        row, byte_column = point[0], point[1]
        return len(self._line_bytes[row][:byte_column].decode("utf8"))

    def offset(self, point) -> int:
        return self._line_starts[point[0]] + self.column(point)

    def indent(self, row: int) -> str:
        line = self._line_bytes[row].decode("utf8")
        return line[: len(line) - len(line.lstrip(" \t"))]

    def starts_line(self, node: Node) -> bool:
        """Check that only whitespace precedes the node on its first line."""
        row, byte_column = node.start_point[0], node.start_point[1]
        return self._line_bytes[row][:byte_column].strip() == b""


def _text(node: Node) -> str:
    return node.text.decode("utf8")


def _annotation_text(node: Node | None) -> str | None:
    """Strip the leading colon from a type annotation node."""
    if node is None:
        return None
    text = _text(node).strip()
    if text.startswith(":"):
        text = text[1:].strip()
    return text or None


def _property_name(node: Node | None) -> str | None:
    if node is None:
        return None
    text = _text(node)
    if node.type == "string":
        return text[1:-1]
    return text


def _is_doc_comment(comment_text: str) -> bool:
    return comment_text.startswith("/**") and not comment_text.startswith("/**/")


def _first_error(node: Node) -> Node | None:
    """Depth-first search for the first ERROR or MISSING node."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.is_error or current.is_missing:
            return current
        # Reversed so the leftmost child is visited first
        for child in reversed(current.children):
            if child.has_error or child.is_missing:
                stack.append(child)
    return None


class TypeScriptParser(BaseParser):
    """Declaration indexer for TypeScript source code using tree-sitter."""

    def __init__(self, tsx: bool = False):
        grammar = tree_sitter_typescript.language_tsx() if tsx else tree_sitter_typescript.language_typescript()
        self.language = Language(grammar)
        self.parser = Parser(self.language)

    def parse(self, source_code: str) -> Tree:
        """Parse source code, refusing trees that contain syntax errors.

        Args:
            source_code: TypeScript source code

        Returns:
            The tree-sitter Tree

        Raises:
            ParseError: If the tree contains ERROR or MISSING nodes
        """
        tree = self.parser.parse(bytes(source_code, "utf8"))
        if tree.root_node.has_error:
            bad_node = _first_error(tree.root_node)
            if bad_node is None:
                raise ParseError("Syntax error in source")
            line = bad_node.start_point[0]
            problem = f"missing '{bad_node.type}'" if bad_node.is_missing else "unexpected input"
            raise ParseError(f"Syntax error at line {line + 1}: {problem}", line=line)
        return tree

    def index(self, source_code: str) -> list[DeclarationRecord]:
        """Catalog documentable declarations in TypeScript source code.

        Covers functions (including overload signatures), classes, interfaces,
        type aliases, class and interface members, and single-declarator
        variable statements. Namespace bodies are searched with the namespace
        names added to the scope; function bodies are not searched.

        Args:
            source_code: TypeScript source code

        Returns:
            DeclarationRecord objects sorted by offset, index matching position

        Raises:
            ParseError: If the source code has syntax errors
        """
        tree = self.parse(source_code)
        text = _SourceText(source_code)
        records: list[DeclarationRecord] = []

        self._index_statements(tree.root_node, text, (), records)

        records.sort(key=lambda record: record.offset)
        return [replace(record, index=i) for i, record in enumerate(records)]

    def _index_statements(self, container: Node, text: _SourceText, scope: tuple[str, ...], records: list) -> None:
        """Index every statement of a program or namespace body."""
        for child in container.named_children:
            self._index_statement(child, child, text, scope, records, exported=False)

    def _index_statement(
        self,
        node: Node,
        anchor: Node,
        text: _SourceText,
        scope: tuple[str, ...],
        records: list,
        exported: bool,
    ) -> None:
        """Index a single statement.

        Args:
            node: The statement, or the declaration unwrapped from it
            anchor: Outermost node (export/declare wrapper) where a comment goes
            text: Source text helper
            scope: Enclosing namespace path
            records: Output list
            exported: Whether an export wrapper was seen
        """
        node_type = node.type

        if node_type == "export_statement":
            declaration = node.child_by_field_name("declaration")
            if declaration is not None:
                self._index_statement(declaration, anchor, text, scope, records, exported=True)
            return

        if node_type == "ambient_declaration":
            for child in node.named_children:
                self._index_statement(child, anchor, text, scope, records, exported)
            return

        if node_type == "expression_statement":
            # "namespace Foo {}" is parsed as an expression statement
            for child in node.named_children:
                if child.type in MODULE_TYPES:
                    self._index_statement(child, anchor, text, scope, records, exported)
            return

        if node_type in MODULE_TYPES:
            name_node = node.child_by_field_name("name")
            body = node.child_by_field_name("body")
            if name_node is None or body is None:
                return
            names = tuple(part for part in _property_name(name_node).split(".") if part)
            self._index_statements(body, text, scope + names, records)
            return

        if node_type in FUNCTION_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is None:
                return
            records.append(self._build_record(
                node, anchor, text,
                name=_text(name_node),
                kind=DeclarationKind.FUNCTION,
                scope=scope,
                exported=exported,
                parameters=self._extract_parameters(node),
                return_type=_annotation_text(node.child_by_field_name("return_type")),
                callable=True,
            ))
            return

        if node_type in CLASS_TYPES:
            name_node = node.child_by_field_name("name")
            if name_node is None:
                return
            name = _text(name_node)
            records.append(self._build_record(
                node, anchor, text,
                name=name,
                kind=DeclarationKind.CLASS_DECLARATION,
                scope=scope,
                exported=exported,
            ))
            body = node.child_by_field_name("body")
            if body is not None:
                self._index_class_body(body, text, scope + (name,), records)
            return

        if node_type == "interface_declaration":
            name_node = node.child_by_field_name("name")
            if name_node is None:
                return
            name = _text(name_node)
            records.append(self._build_record(
                node, anchor, text,
                name=name,
                kind=DeclarationKind.INTERFACE_DECLARATION,
                scope=scope,
                exported=exported,
            ))
            body = node.child_by_field_name("body")
            if body is not None:
                self._index_interface_body(body, text, scope + (name,), records)
            return

        if node_type == "type_alias_declaration":
            name_node = node.child_by_field_name("name")
            if name_node is None:
                return
            records.append(self._build_record(
                node, anchor, text,
                name=_text(name_node),
                kind=DeclarationKind.TYPE_ALIAS,
                scope=scope,
                exported=exported,
            ))
            return

        if node_type in VARIABLE_TYPES:
            self._index_variable(node, anchor, text, scope, records, exported)

    def _index_variable(
        self,
        node: Node,
        anchor: Node,
        text: _SourceText,
        scope: tuple[str, ...],
        records: list,
        exported: bool,
    ) -> None:
        """Index a const/let/var statement holding exactly one declarator."""
        declarators = [child for child in node.named_children if child.type == "variable_declarator"]
        if len(declarators) != 1:
            logger.debug(f"Skipping variable statement with {len(declarators)} declarators at line {node.start_point[0] + 1}")
            return

        declarator = declarators[0]
        name_node = declarator.child_by_field_name("name")
        if name_node is None or name_node.type != "identifier":
            return

        value = declarator.child_by_field_name("value")
        is_function = value is not None and value.type in FUNCTION_VALUE_TYPES
        records.append(self._build_record(
            node, anchor, text,
            name=_text(name_node),
            kind=DeclarationKind.VARIABLE_DECLARATION,
            scope=scope,
            exported=exported,
            parameters=self._extract_parameters(value) if is_function else (),
            return_type=_annotation_text(value.child_by_field_name("return_type")) if is_function else None,
            callable=is_function,
        ))

    def _index_class_body(self, body: Node, text: _SourceText, scope: tuple[str, ...], records: list) -> None:
        """Index methods, accessors, constructors and fields of a class."""
        for member in body.named_children:
            if member.type in METHOD_TYPES:
                name = _property_name(member.child_by_field_name("name"))
                if not name:
                    continue
                records.append(self._build_record(
                    member, self._member_anchor(member), text,
                    name=name,
                    kind=DeclarationKind.METHOD_MEMBER,
                    scope=scope,
                    visibility=self._visibility(member),
                    parameters=self._extract_parameters(member),
                    return_type=_annotation_text(member.child_by_field_name("return_type")),
                    accessor=self._accessor(member),
                    callable=True,
                ))

            elif member.type == "public_field_definition":
                name = _property_name(member.child_by_field_name("name"))
                if not name:
                    continue
                value = member.child_by_field_name("value")
                is_function = value is not None and value.type in FUNCTION_VALUE_TYPES
                records.append(self._build_record(
                    member, self._member_anchor(member), text,
                    name=name,
                    kind=DeclarationKind.PROPERTY_MEMBER,
                    scope=scope,
                    visibility=self._visibility(member),
                    parameters=self._extract_parameters(value) if is_function else (),
                    return_type=_annotation_text(value.child_by_field_name("return_type")) if is_function else None,
                    callable=is_function,
                ))

    def _index_interface_body(self, body: Node, text: _SourceText, scope: tuple[str, ...], records: list) -> None:
        """Index property and method signatures of an interface."""
        for member in body.named_children:
            if member.type == "method_signature":
                name = _property_name(member.child_by_field_name("name"))
                if not name:
                    continue
                records.append(self._build_record(
                    member, member, text,
                    name=name,
                    kind=DeclarationKind.METHOD_MEMBER,
                    scope=scope,
                    parameters=self._extract_parameters(member),
                    return_type=_annotation_text(member.child_by_field_name("return_type")),
                    accessor=self._accessor(member),
                    callable=True,
                ))

            elif member.type == "property_signature":
                name = _property_name(member.child_by_field_name("name"))
                if not name:
                    continue
                records.append(self._build_record(
                    member, member, text,
                    name=name,
                    kind=DeclarationKind.PROPERTY_MEMBER,
                    scope=scope,
                ))

    def _member_anchor(self, member: Node) -> Node:
        """Extend a class member backwards over its decorators."""
        anchor = member
        previous = member.prev_named_sibling
        while previous is not None and previous.type == "decorator":
            anchor = previous
            previous = previous.prev_named_sibling
        return anchor

    def _leading_comments(self, anchor: Node, text: _SourceText) -> list[Node]:
        """Collect the comment run directly above a declaration.

        A comment belongs to the run when it starts its own line and no blank
        line separates it from the next comment or the declaration.
        """
        comments = []
        current = anchor
        previous = anchor.prev_sibling
        while previous is not None and previous.type == "comment":
            if current.start_point[0] - previous.end_point[0] > 1:
                break
            if not text.starts_line(previous):
                break
            comments.append(previous)
            current = previous
            previous = previous.prev_sibling
        comments.reverse()
        return comments

    def _has_doc_comment(self, anchor: Node, text: _SourceText) -> bool:
        """Look for a /** block above the declaration.

        Blank lines and other own-line comments may separate the block from
        the declaration, as in the TypeScript compiler's JSDoc lookup. Any
        other node ends the search.
        """
        previous = anchor.prev_sibling
        while previous is not None and previous.type == "comment" and text.starts_line(previous):
            if _is_doc_comment(_text(previous)):
                return True
            previous = previous.prev_sibling
        return False

    def _build_record(self, node: Node, anchor: Node, text: _SourceText, **fields) -> DeclarationRecord:
        """Create a record, locating leading trivia and indentation from the anchor."""
        comments = self._leading_comments(anchor, text)
        has_doc_comment = self._has_doc_comment(anchor, text)

        start = comments[0] if comments else anchor
        return DeclarationRecord(
            index=-1,
            offset=text.offset(start.start_point),
            column=text.column(anchor.start_point),
            indent=text.indent(anchor.start_point[0]),
            line=anchor.start_point[0],
            has_doc_comment=has_doc_comment,
            **fields,
        )

    def _extract_parameters(self, node: Node) -> tuple[Parameter, ...]:
        """Extract the parameter list of a function-like node.

        Args:
            node: Function, method, signature, arrow function or function expression

        Returns:
            Parameters in declaration order, skipping a `this` parameter
        """
        single = node.child_by_field_name("parameter")
        if single is not None:
            # Arrow function with a bare identifier: x => x
            return (Parameter(name=_text(single)),)

        params_node = node.child_by_field_name("parameters")
        if params_node is None:
            return ()

        parameters = []
        for child in params_node.named_children:
            if child.type not in ("required_parameter", "optional_parameter"):
                continue

            pattern = child.child_by_field_name("pattern")
            if pattern is None or pattern.type == "this":
                continue

            rest = pattern.type == "rest_pattern"
            name = _text(pattern)
            if rest:
                name = name.lstrip(".").strip()

            parameters.append(Parameter(
                name=name,
                type=_annotation_text(child.child_by_field_name("type")),
                optional=child.type == "optional_parameter",
                rest=rest,
            ))

        return tuple(parameters)

    def _visibility(self, member: Node) -> str | None:
        for child in member.children:
            if child.type == "accessibility_modifier":
                return _text(child)
        return None

    def _accessor(self, member: Node) -> str | None:
        name_node = member.child_by_field_name("name")
        for child in member.children:
            if name_node is not None and child.start_byte >= name_node.start_byte:
                break
            if child.type in ("get", "set"):
                return child.type
        return None
