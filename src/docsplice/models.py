from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DeclarationKind(Enum):
    """Kinds of documentable declarations. The kind decides the comment shape."""
    FUNCTION = "function"
    CLASS_DECLARATION = "class"
    INTERFACE_DECLARATION = "interface"
    TYPE_ALIAS = "type_alias"
    METHOD_MEMBER = "method"
    PROPERTY_MEMBER = "property"
    VARIABLE_DECLARATION = "variable"

    @classmethod
    def parse(cls, value: "str | DeclarationKind") -> "DeclarationKind":
        """Normalize an externally supplied kind string.

        Args:
            value: Kind name as written by a proposal source (e.g. "method",
                "ClassDeclaration", "type-alias") or a DeclarationKind

        Returns:
            The matching DeclarationKind

        Raises:
            ValueError: If the value does not name a known kind
        """
        if isinstance(value, DeclarationKind):
            return value

        normalized = str(value).strip().lower().replace("-", "").replace("_", "").replace(" ", "")
        kind = _KIND_ALIASES.get(normalized)
        if kind is None:
            raise ValueError(f"Unknown declaration kind: {value!r}")
        return kind


_KIND_ALIASES = {
    "function": DeclarationKind.FUNCTION,
    "functiondeclaration": DeclarationKind.FUNCTION,
    "class": DeclarationKind.CLASS_DECLARATION,
    "classdeclaration": DeclarationKind.CLASS_DECLARATION,
    "interface": DeclarationKind.INTERFACE_DECLARATION,
    "interfacedeclaration": DeclarationKind.INTERFACE_DECLARATION,
    "type": DeclarationKind.TYPE_ALIAS,
    "typealias": DeclarationKind.TYPE_ALIAS,
    "typealiasdeclaration": DeclarationKind.TYPE_ALIAS,
    "method": DeclarationKind.METHOD_MEMBER,
    "methodmember": DeclarationKind.METHOD_MEMBER,
    "constructor": DeclarationKind.METHOD_MEMBER,
    "property": DeclarationKind.PROPERTY_MEMBER,
    "propertymember": DeclarationKind.PROPERTY_MEMBER,
    "field": DeclarationKind.PROPERTY_MEMBER,
    "variable": DeclarationKind.VARIABLE_DECLARATION,
    "variabledeclaration": DeclarationKind.VARIABLE_DECLARATION,
    "const": DeclarationKind.VARIABLE_DECLARATION,
    "let": DeclarationKind.VARIABLE_DECLARATION,
    "var": DeclarationKind.VARIABLE_DECLARATION,
}

VOID_RETURN_TYPES = frozenset({"void", "never", "Promise<void>", "undefined"})


@dataclass(frozen=True)
class Parameter:
    """Represents a function/method parameter."""
    name: str
    type: str | None = None  # None if no type annotation
    optional: bool = False
    rest: bool = False


@dataclass(frozen=True)
class DeclarationKey:
    """Identity of a declaration. Not unique within a file (overloads)."""
    name: str
    kind: DeclarationKind
    scope: tuple[str, ...] = ()

    @property
    def qualified_name(self) -> str:
        return ".".join(self.scope + (self.name,))

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.qualified_name}"


@dataclass(frozen=True)
class DeclarationRecord:
    """A documentable declaration found in one file.

    Offsets and columns count characters of the Python string, not bytes.
    """
    index: int
    name: str
    kind: DeclarationKind
    scope: tuple[str, ...]
    offset: int  # Start of leading comment trivia, or of the first token
    column: int  # Column of the declaration's first token
    indent: str
    line: int  # 0-indexed row of the declaration's first token
    has_doc_comment: bool = False
    exported: bool = False
    visibility: str | None = None  # Only for class members
    parameters: tuple[Parameter, ...] = ()
    return_type: str | None = None
    accessor: str | None = None  # "get" or "set"
    callable: bool = False

    @property
    def key(self) -> DeclarationKey:
        return DeclarationKey(name=self.name, kind=self.kind, scope=self.scope)

    @property
    def qualified_name(self) -> str:
        return self.key.qualified_name

    @property
    def is_constructor(self) -> bool:
        return self.kind is DeclarationKind.METHOD_MEMBER and self.name == "constructor"

    @property
    def returns_value(self) -> bool:
        """Whether a @returns line is allowed for this declaration."""
        if not self.callable or self.is_constructor or self.accessor == "set":
            return False
        if self.return_type is None:
            return True
        return "".join(self.return_type.split()) not in VOID_RETURN_TYPES


@dataclass(frozen=True)
class ProposedComment:
    """A generated documentation entry that has not been placed yet."""
    name: str
    kind: "str | DeclarationKind"
    summary: str
    params: tuple[tuple[str, str], ...] = ()
    returns: str | None = None
    signature: tuple[str, ...] | None = None  # Parameter names, optionally "name: type"
    throws: str | None = None
    not_implemented: bool = False
    scope: tuple[str, ...] = ()

    def __post_init__(self):
        # "Shape.area" carries its enclosing scope in the name
        if "." in self.name:
            *outer, bare = self.name.split(".")
            object.__setattr__(self, "name", bare)
            object.__setattr__(self, "scope", tuple(self.scope) + tuple(outer))
        object.__setattr__(self, "params", tuple(tuple(p) for p in self.params))
        object.__setattr__(self, "scope", tuple(self.scope))
        if self.signature is not None:
            object.__setattr__(self, "signature", tuple(self.signature))

    @property
    def target(self) -> str:
        """Human readable target, e.g. "method:Shape.area"."""
        kind = self.kind.value if isinstance(self.kind, DeclarationKind) else self.kind
        return f"{kind}:{'.'.join(self.scope + (self.name,))}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProposedComment":
        """Build a proposal from a JSON/YAML mapping.

        Parameters may be given as a list of {"name", "description"} objects,
        a list of [name, description] pairs, or a mapping of name to
        description.
        """
        raw_params = data.get("params") or data.get("parameters") or []
        if isinstance(raw_params, Mapping):
            params = tuple((str(k), str(v)) for k, v in raw_params.items())
        else:
            params = tuple(_param_pair(p) for p in raw_params)

        signature = data.get("signature")
        if isinstance(signature, str):
            signature = _split_signature(signature)

        scope = data.get("scope") or ()
        if isinstance(scope, str):
            scope = tuple(s for s in scope.split(".") if s)

        return cls(
            name=str(data["name"]),
            kind=data["kind"],
            summary=str(data.get("summary") or ""),
            params=params,
            returns=data.get("returns"),
            signature=tuple(signature) if signature is not None else None,
            throws=data.get("throws"),
            not_implemented=bool(data.get("not_implemented", False)),
            scope=tuple(scope),
        )


def _param_pair(entry: Any) -> tuple[str, str]:
    if isinstance(entry, Mapping):
        return str(entry["name"]), str(entry.get("description", ""))
    name, description = entry
    return str(name), str(description)


def _split_signature(signature: str) -> tuple[str, ...]:
    """Split "f(a: number, b)" or "a: number, b" into parameter entries."""
    text = signature.strip()
    if "(" in text and text.endswith(")"):
        text = text[text.index("(") + 1:-1]

    parts = []
    depth = 0
    current = ""
    for char in text:
        if char in "<([{":
            depth += 1
        elif char in ">)]}":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    if current.strip():
        parts.append(current.strip())
    return tuple(parts)


class MatchOutcome(Enum):
    """How a proposal was resolved to a declaration."""
    UNIQUE = "unique"
    AMBIGUOUS_RESOLVED = "ambiguous_resolved"
    NOT_FOUND = "not_found"


class UnresolvedReason(Enum):
    """Why a proposal did not produce a comment."""
    NOT_FOUND = "not_found"
    UNKNOWN_KIND = "unknown_kind"
    ALREADY_DOCUMENTED = "already_documented"
    SUPERSEDED = "superseded"
    RENDER_REJECTED = "render_rejected"


@dataclass(frozen=True)
class ResolvedComment:
    """A proposal bound to exactly one declaration."""
    proposal: ProposedComment
    declaration: DeclarationRecord
    outcome: MatchOutcome = MatchOutcome.UNIQUE
    score: int = 0


@dataclass(frozen=True)
class UnresolvedProposal:
    """A proposal that was reported instead of placed."""
    proposal: ProposedComment
    reason: UnresolvedReason
    detail: str = ""


@dataclass(frozen=True)
class RenderedComment:
    """A resolved comment together with its rendered, unindented block."""
    resolved: ResolvedComment
    text: str

    @property
    def declaration(self) -> DeclarationRecord:
        return self.resolved.declaration


@dataclass(frozen=True)
class SpliceOperation:
    """Text to insert at an offset of the original source."""
    offset: int
    text: str


class FileStatus(Enum):
    """Outcome of processing one file."""
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    PARSE_ERROR = "parse_error"
    READ_ERROR = "read_error"
    WRITE_ERROR = "write_error"
    INTERNAL_ERROR = "internal_error"


@dataclass
class FileResult:
    """Per-file result handed back to the caller for reporting."""
    path: str
    status: FileStatus
    source: str | None = None
    new_source: str | None = None
    resolved: list[DeclarationKey] = field(default_factory=list)
    unresolved: list[UnresolvedProposal] = field(default_factory=list)
    skipped_documented: list[DeclarationKey] = field(default_factory=list)
    error: str | None = None  # None unless status is an error

    @property
    def changed(self) -> bool:
        return self.new_source is not None and self.new_source != self.source

    @property
    def failed(self) -> bool:
        return self.status in (
            FileStatus.PARSE_ERROR, FileStatus.READ_ERROR, FileStatus.WRITE_ERROR, FileStatus.INTERNAL_ERROR
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready report without the source text."""
        report: dict[str, Any] = {
            "path": self.path,
            "status": self.status.value,
            "resolved": [str(key) for key in self.resolved],
            "unresolved": [
                {
                    "target": item.proposal.target,
                    "reason": item.reason.value,
                    "detail": item.detail,
                }
                for item in self.unresolved
            ],
            "skipped_documented": [str(key) for key in self.skipped_documented],
        }
        if self.error is not None:
            report["error"] = self.error
        return report
