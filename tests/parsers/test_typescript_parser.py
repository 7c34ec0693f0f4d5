import pytest

from docsplice.errors import ParseError
from docsplice.models import DeclarationKind, Parameter
from docsplice.parsers.typescript_parser import TypeScriptParser


def _by_name(records, name):
    return [r for r in records if r.name == name]


def test_index_exported_function():
    source = "export function add(a: number, b: number) { return a + b; }\n"
    parser = TypeScriptParser()

    records = parser.index(source)

    assert len(records) == 1
    record = records[0]
    assert record.name == "add"
    assert record.kind == DeclarationKind.FUNCTION
    assert record.scope == ()
    assert record.exported is True
    assert record.offset == 0
    assert record.column == 0
    assert record.line == 0
    assert record.has_doc_comment is False
    assert record.parameters == (
        Parameter(name="a", type="number"),
        Parameter(name="b", type="number"),
    )
    assert record.return_type is None
    assert record.callable is True


def test_index_records_are_in_source_order_with_matching_index():
    source = """type Id = string;

interface User {
  id: Id;
}

function load(id: Id): User {
  return { id };
}

class Store {}
"""
    parser = TypeScriptParser()

    records = parser.index(source)

    offsets = [r.offset for r in records]
    assert offsets == sorted(offsets)
    assert [r.index for r in records] == list(range(len(records)))
    assert [r.name for r in records] == ["Id", "User", "id", "load", "Store"]


def test_index_kinds():
    source = """type Id = string;
interface User {
  id: Id;
  rename(name: string): void;
}
class Store {
  size = 0;
  lookup(id: Id): User | undefined { return undefined; }
}
const limit = 10;
"""
    parser = TypeScriptParser()

    records = parser.index(source)
    kinds = {(r.qualified_name, r.kind) for r in records}

    assert ("Id", DeclarationKind.TYPE_ALIAS) in kinds
    assert ("User", DeclarationKind.INTERFACE_DECLARATION) in kinds
    assert ("User.id", DeclarationKind.PROPERTY_MEMBER) in kinds
    assert ("User.rename", DeclarationKind.METHOD_MEMBER) in kinds
    assert ("Store", DeclarationKind.CLASS_DECLARATION) in kinds
    assert ("Store.size", DeclarationKind.PROPERTY_MEMBER) in kinds
    assert ("Store.lookup", DeclarationKind.METHOD_MEMBER) in kinds
    assert ("limit", DeclarationKind.VARIABLE_DECLARATION) in kinds


def test_index_function_return_type():
    source = "function total(items: number[]): number { return 0; }\n"
    parser = TypeScriptParser()

    record = parser.index(source)[0]

    assert record.return_type == "number"
    assert record.parameters == (Parameter(name="items", type="number[]"),)


def test_index_optional_and_rest_parameters():
    source = "function log(message: string, level?: number, ...extra: unknown[]): void {}\n"
    parser = TypeScriptParser()

    record = parser.index(source)[0]

    assert record.parameters == (
        Parameter(name="message", type="string"),
        Parameter(name="level", type="number", optional=True),
        Parameter(name="extra", type="unknown[]", rest=True),
    )
    assert record.return_type == "void"
    assert record.returns_value is False


def test_index_skips_this_parameter():
    source = "function handler(this: Window, event: Event): void {}\n"
    parser = TypeScriptParser()

    record = parser.index(source)[0]

    assert [p.name for p in record.parameters] == ["event"]


def test_index_overload_signatures():
    source = """export function parse(input: string): number;
export function parse(input: string, radix: number): number;
export function parse(input: string, radix?: number): number {
  return parseInt(input, radix);
}
"""
    parser = TypeScriptParser()

    records = parser.index(source)

    assert len(records) == 3
    assert all(r.name == "parse" and r.kind == DeclarationKind.FUNCTION for r in records)
    assert [len(r.parameters) for r in records] == [1, 2, 2]
    assert [r.line for r in records] == [0, 1, 2]


def test_index_class_members():
    source = """export class Shape {
  private sides: number;

  constructor(sides: number) {
    this.sides = sides;
  }

  get count(): number {
    return this.sides;
  }

  set count(value: number) {
    this.sides = value;
  }

  protected area(): number {
    return 0;
  }

  onResize = (width: number): void => {};
}
"""
    parser = TypeScriptParser()

    records = parser.index(source)
    members = [r for r in records if r.scope == ("Shape",)]

    assert [m.name for m in members] == ["sides", "constructor", "count", "count", "area", "onResize"]

    sides = members[0]
    assert sides.kind == DeclarationKind.PROPERTY_MEMBER
    assert sides.visibility == "private"
    assert sides.indent == "  "
    assert sides.column == 2

    constructor = members[1]
    assert constructor.kind == DeclarationKind.METHOD_MEMBER
    assert constructor.is_constructor is True
    assert constructor.returns_value is False

    getter, setter = members[2], members[3]
    assert getter.accessor == "get"
    assert getter.returns_value is True
    assert setter.accessor == "set"
    assert setter.returns_value is False

    area = members[4]
    assert area.visibility == "protected"
    assert area.return_type == "number"

    on_resize = members[5]
    assert on_resize.kind == DeclarationKind.PROPERTY_MEMBER
    assert on_resize.callable is True
    assert on_resize.parameters == (Parameter(name="width", type="number"),)
    assert on_resize.returns_value is False


def test_index_constructor_parameter_properties():
    source = """class Point {
  constructor(private readonly x: number, public y: number) {}
}
"""
    parser = TypeScriptParser()

    constructor = _by_name(parser.index(source), "constructor")[0]

    assert [p.name for p in constructor.parameters] == ["x", "y"]


def test_index_same_method_name_in_different_classes():
    source = """class Circle {
  area(): number { return 1; }
}

class Square {
  area(): number { return 2; }
}
"""
    parser = TypeScriptParser()

    areas = _by_name(parser.index(source), "area")

    assert [a.scope for a in areas] == [("Circle",), ("Square",)]


def test_index_namespace_scope():
    source = """namespace Geometry {
  export function area(width: number, height: number): number {
    return width * height;
  }

  export class Box {}
}
"""
    parser = TypeScriptParser()

    records = parser.index(source)

    area = _by_name(records, "area")[0]
    assert area.scope == ("Geometry",)
    assert area.exported is True
    assert area.indent == "  "
    assert _by_name(records, "Box")[0].scope == ("Geometry",)


def test_index_does_not_search_function_bodies():
    source = """function outer() {
  function inner() {}
  return inner;
}
"""
    parser = TypeScriptParser()

    records = parser.index(source)

    assert [r.name for r in records] == ["outer"]


def test_index_variable_with_arrow_function():
    source = "export const double = (value: number): number => value * 2;\n"
    parser = TypeScriptParser()

    record = parser.index(source)[0]

    assert record.kind == DeclarationKind.VARIABLE_DECLARATION
    assert record.name == "double"
    assert record.exported is True
    assert record.callable is True
    assert record.parameters == (Parameter(name="value", type="number"),)
    assert record.return_type == "number"


def test_index_plain_variable_is_not_callable():
    source = "const limit = 10;\n"
    parser = TypeScriptParser()

    record = parser.index(source)[0]

    assert record.callable is False
    assert record.returns_value is False


def test_index_skips_multi_declarator_statements():
    source = "let a = 1, b = 2;\n"
    parser = TypeScriptParser()

    assert parser.index(source) == []


def test_index_detects_existing_doc_comment():
    source = """/** Already documented. */
export function documented() {}

export function bare() {}
"""
    parser = TypeScriptParser()

    records = parser.index(source)

    assert _by_name(records, "documented")[0].has_doc_comment is True
    assert _by_name(records, "bare")[0].has_doc_comment is False


def test_index_offset_includes_leading_comments():
    source = """const x = 1;
// Helper used by tests.
function helper() {}
"""
    parser = TypeScriptParser()

    helper = _by_name(parser.index(source), "helper")[0]

    assert helper.has_doc_comment is False
    assert helper.offset == source.index("// Helper")
    assert helper.line == 2


def test_index_doc_comment_across_blank_line_is_attached():
    source = """/** Adds. */

export function add(a: number, b: number) { return a + b; }
"""
    parser = TypeScriptParser()

    add = parser.index(source)[0]

    assert add.has_doc_comment is True
    # Insertion point stays at the declaration; the blank line ends the run
    assert add.offset == source.index("export")


def test_index_doc_comment_above_line_comments_is_attached():
    source = """/**
 * Adds.
 */

// eslint-disable-next-line no-unused-vars
export function add(a: number, b: number) { return a + b; }
"""
    parser = TypeScriptParser()

    add = parser.index(source)[0]

    assert add.has_doc_comment is True
    assert add.offset == source.index("// eslint")


def test_index_doc_comment_of_previous_statement_is_not_attached():
    source = """/** The answer. */
const answer = 42;

function helper() {}
"""
    parser = TypeScriptParser()

    helper = _by_name(parser.index(source), "helper")[0]

    assert helper.has_doc_comment is False


def test_index_plain_block_comment_is_not_documentation():
    source = """/* not a doc comment */
function helper() {}
"""
    parser = TypeScriptParser()

    helper = parser.index(source)[0]

    assert helper.has_doc_comment is False
    assert helper.offset == 0


def test_index_trailing_comment_of_previous_line_is_not_attached():
    source = """let a = 1; /** about a */
function helper() {}
"""
    parser = TypeScriptParser()

    helper = _by_name(parser.index(source), "helper")[0]

    assert helper.has_doc_comment is False
    assert helper.offset == source.index("function")


def test_index_member_doc_comment_before_decorator():
    source = """class Api {
  /** Fetches data. */
  @cached()
  fetch(): string {
    return "";
  }
}
"""
    parser = TypeScriptParser()

    fetch = _by_name(parser.index(source), "fetch")[0]

    assert fetch.has_doc_comment is True
    assert fetch.offset == source.index("/** Fetches")


def test_index_offsets_count_characters_not_bytes():
    source = 'const greeting = "grüße";\nexport function wave() {}\n'
    parser = TypeScriptParser()

    wave = _by_name(parser.index(source), "wave")[0]

    assert wave.offset == source.index("export function wave")


def test_index_column_counts_characters_on_shared_line():
    source = 'const s = "é"; function f() {}\n'
    parser = TypeScriptParser()

    f = _by_name(parser.index(source), "f")[0]

    assert f.offset == source.index("function")
    assert f.column == source.index("function")
    assert f.indent == ""


def test_index_interface_members_scope():
    source = """export interface Repo {
  find(id: string): Promise<string>;
  readonly size: number;
}
"""
    parser = TypeScriptParser()

    records = parser.index(source)

    find = _by_name(records, "find")[0]
    assert find.scope == ("Repo",)
    assert find.kind == DeclarationKind.METHOD_MEMBER
    assert find.return_type == "Promise<string>"
    size = _by_name(records, "size")[0]
    assert size.kind == DeclarationKind.PROPERTY_MEMBER


def test_index_declare_function_anchor():
    source = "declare function fetchJson(url: string): Promise<unknown>;\n"
    parser = TypeScriptParser()

    records = parser.index(source)

    assert len(records) == 1
    assert records[0].name == "fetchJson"
    assert records[0].offset == 0


def test_index_empty_source():
    parser = TypeScriptParser()

    assert parser.index("") == []


def test_index_invalid_source_raises_parse_error():
    source = """export function broken(a: number {
  return a;
"""
    parser = TypeScriptParser()

    with pytest.raises(ParseError) as exc_info:
        parser.index(source)

    assert "line" in str(exc_info.value).lower()
    assert exc_info.value.line is not None


def test_tsx_parser_handles_jsx():
    source = """export function Title(props: { text: string }) {
  return <h1>{props.text}</h1>;
}
"""
    parser = TypeScriptParser(tsx=True)

    records = parser.index(source)

    assert [r.name for r in records] == ["Title"]
