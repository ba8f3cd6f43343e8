"""Strict decoding of a bundled program into a BundleGraph.

Expected shape (browserify-style prelude, minified)::

    !function(modules, cache, entries){ ... }(
        {10: [function(require, module, exports){ ... }, {"./include/board": 11}], ...},
        {},
        [10]
    );

Any deviation raises ShapeError with the location that failed.

The program is parsed with tree-sitter's JavaScript grammar, which tracks
current ECMAScript (optional chaining, class fields, BigInt, ...). Node
positions are UTF-8 byte offsets; spans handed out here are str indices.
"""

from __future__ import annotations

import re
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import tree_sitter_javascript
from tree_sitter import Language, Node, Parser

from .errors import ShapeError


JS_LANGUAGE = Language(tree_sitter_javascript.language())

# Trivia that may appear between any two tokens.
_SKIPPED = frozenset({"comment", "hash_bang_line", "html_comment"})
# Older grammar releases call an anonymous function expression "function".
_FUNCTION_TYPES = ("function_expression", "function")

_RADIX_INT_RE = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")
_LEGACY_OCTAL_RE = re.compile(r"0[0-7]+")
_SINGLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


@dataclass(frozen=True)
class ModuleRecord:
    id: int
    body_start: int
    body_end: int
    dependencies: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class BundleGraph:
    entry_id: int
    modules: Dict[int, ModuleRecord]


class _Offsets:
    """Maps UTF-8 byte offsets of ``text`` back to str indices."""

    def __init__(self, text: str, data: bytes) -> None:
        self._starts: Optional[List[int]] = None
        if len(data) != len(text):
            starts = []
            pos = 0
            for ch in text:
                starts.append(pos)
                pos += len(ch.encode("utf-8", "surrogatepass"))
            self._starts = starts

    def index(self, byte_offset: int) -> int:
        if self._starts is None:
            return byte_offset
        return bisect_left(self._starts, byte_offset)


@dataclass(frozen=True)
class Program:
    root: Node
    offsets: _Offsets


def _node_text(node: Node) -> str:
    return node.text.decode("utf-8", "surrogatepass")


def _node_type(node: Optional[Node]) -> str:
    if node is None:
        return "null"
    return node.type


def _children(node: Node) -> List[Node]:
    return [c for c in node.named_children if c.type not in _SKIPPED]


def _unparen(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type == "parenthesized_expression":
        inner = _children(node)
        if len(inner) != 1:
            break
        node = inner[0]
    return node


def _expect(node: Optional[Node], expected: Union[str, Tuple[str, ...]], location: str) -> Node:
    node = _unparen(node)
    wanted = (expected,) if isinstance(expected, str) else expected
    got = _node_type(node)
    if got not in wanted:
        raise ShapeError(location, f'expected node type "{wanted[0]}", got "{got}"')
    return node


def _elements(node: Node) -> List[Optional[Node]]:
    """Array elements in source order; holes (``[,x]``) come back as None."""
    out: List[Optional[Node]] = []
    pending: Optional[Node] = None
    seen = False
    for child in node.children:
        if child.type in _SKIPPED or child.type == "[":
            continue
        if child.type in (",", "]"):
            if child.type == "," or seen:
                out.append(pending)
            pending, seen = None, False
            continue
        pending, seen = child, True
    return out


def _number_value(raw: str) -> Optional[Union[int, float]]:
    t = raw.replace("_", "")
    if t.endswith("n"):
        return None  # BigInt
    if _RADIX_INT_RE.fullmatch(t):
        return int(t, 0)
    if _LEGACY_OCTAL_RE.fullmatch(t):
        return int(t, 8)
    try:
        return float(t)
    except ValueError:
        return None


def _integer_literal(node: Optional[Node], location: str) -> int:
    node = _unparen(node)
    if _node_type(node) != "number":
        raw = _node_text(node) if node is not None else "null"
        raise ShapeError(location, f"expected numeric literal, got {raw!r}")
    raw = _node_text(node)
    value = _number_value(raw)
    if value is None:
        raise ShapeError(location, f"expected numeric literal, got {raw!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ShapeError(location, f"expected integral numeric literal, got {raw!r}")
        value = int(value)
    return value


def _unescape(seq: str) -> str:
    body = seq[1:]
    if body.startswith("u{"):
        return chr(int(body[2:-1], 16))
    if body[:1] in ("u", "x") and len(body) > 1:
        return chr(int(body[1:], 16))
    if body[:1] in ("\n", "\r", "\u2028", "\u2029"):
        return ""  # line continuation
    return _SINGLE_ESCAPES.get(body, body)


def _string_value(node: Node) -> str:
    parts = []
    for child in node.named_children:
        if child.type == "escape_sequence":
            parts.append(_unescape(_node_text(child)))
        else:
            parts.append(_node_text(child))
    return "".join(parts)


def _dependency_name(key: Optional[Node], location: str) -> str:
    kind = _node_type(key)
    if kind == "property_identifier":
        return _node_text(key)
    if kind == "string":
        return _string_value(key)
    if kind == "number":
        raise ShapeError(location, f"dependency key not a string: {_node_text(key)!r}")
    raise ShapeError(location, f'expected node type one of property_identifier, string, got "{kind}"')


def _pairs(node: Node, location: str, what: str) -> List[Node]:
    pairs = _children(node)
    for i, prop in enumerate(pairs):
        loc = f"{location}.properties[{i}]"
        _expect(prop, "pair", loc)
        if _node_type(prop.child_by_field_name("key")) == "computed_property_name":
            raise ShapeError(loc, f"computed {what} key")
    return pairs


def _decode_dependencies(node: Optional[Node], location: str) -> Dict[str, int]:
    node = _expect(node, "object", location)
    deps: Dict[str, int] = {}
    for i, prop in enumerate(_pairs(node, location, "dependency")):
        loc = f"{location}.properties[{i}]"
        name = _dependency_name(prop.child_by_field_name("key"), f"{loc}.key")
        deps[name] = _integer_literal(prop.child_by_field_name("value"), f"{loc}.value")
    return deps


def decode_modules(
    node: Optional[Node], offsets: _Offsets, location: str = "bundle.arguments[0]"
) -> Dict[int, ModuleRecord]:
    node = _expect(node, "object", location)
    modules: Dict[int, ModuleRecord] = {}
    for i, prop in enumerate(_pairs(node, location, "module")):
        loc = f"{location}.properties[{i}]"
        module_id = _integer_literal(prop.child_by_field_name("key"), f"{loc}.key")
        if module_id in modules:
            raise ShapeError(f"{loc}.key", f"duplicate module id {module_id}")

        value = _expect(prop.child_by_field_name("value"), "array", f"{loc}.value")
        elements = _elements(value)
        if len(elements) != 2:
            raise ShapeError(f"{loc}.value", f"module value length {len(elements)}, expected 2")

        code = _expect(elements[0], _FUNCTION_TYPES, f"{loc}.value[0]")
        start, end = offsets.index(code.start_byte), offsets.index(code.end_byte)
        deps = _decode_dependencies(elements[1], f"{loc}.value[1]")

        modules[module_id] = ModuleRecord(id=module_id, body_start=start, body_end=end, dependencies=deps)
    return modules


def decode_entry_id(node: Optional[Node], location: str = "bundle.arguments[2]") -> int:
    node = _expect(node, "array", location)
    elements = _elements(node)
    if len(elements) != 1:
        raise ShapeError(location, f"entry point list length {len(elements)}, expected 1")
    return _integer_literal(elements[0], f"{location}[0]")


def _first_error(root: Node) -> Node:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
    return root


def parse_program(text: str) -> Program:
    data = text.encode("utf-8", "surrogatepass")
    tree = Parser(JS_LANGUAGE).parse(data)
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root)
        row, col = bad.start_point
        what = f"missing {bad.type}" if bad.is_missing else "unexpected token"
        raise ShapeError("program", f"syntax error: Line {row + 1}, column {col + 1}: {what}")
    return Program(root=root, offsets=_Offsets(text, data))


def find_bundle(program: Program) -> BundleGraph:
    body = _children(program.root)
    if len(body) != 1:
        raise ShapeError("program.body", f"expected a single top-level statement, got {len(body)}")

    stmt = _expect(body[0], "expression_statement", "program.body[0]")
    inner = _children(stmt)
    unary = _expect(inner[0] if inner else None, "unary_expression", "program.body[0].expression")
    call = _expect(unary.child_by_field_name("argument"), "call_expression", "bundle")
    _expect(call.child_by_field_name("function"), _FUNCTION_TYPES, "bundle.callee")

    arg_list = _expect(call.child_by_field_name("arguments"), "arguments", "bundle.arguments")
    args = _children(arg_list)
    if len(args) != 3:
        raise ShapeError("bundle.arguments", f"bundle args length {len(args)}, expected 3")

    modules = decode_modules(args[0], program.offsets)
    entry_id = decode_entry_id(args[2])
    return BundleGraph(entry_id=entry_id, modules=modules)


def parse_bundle(text: str) -> BundleGraph:
    """Parse bundle source text and decode its module table."""
    return find_bundle(parse_program(text))
