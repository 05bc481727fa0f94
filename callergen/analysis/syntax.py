"""Tree-sitter helpers for reading Rust sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import tree_sitter_rust
from tree_sitter import Language, Node, Parser, Tree

RUST_LANGUAGE = Language(tree_sitter_rust.language())

_COMMENT_NODES = {"line_comment", "block_comment"}


@dataclass
class Attribute:
    """A parsed ``#[path(key = value, ...)]`` outer attribute."""

    path: str
    arguments: Dict[str, str] = field(default_factory=dict)
    node: Optional[Node] = None

    @property
    def name(self) -> str:
        """Last path segment, so ``a::b::hyperprocess`` matches ``hyperprocess``."""
        return self.path.rsplit("::", 1)[-1]


class RustParser:
    """Thin wrapper that caches one tree-sitter parser per instance."""

    def __init__(self) -> None:
        self._parser = Parser(RUST_LANGUAGE)

    def parse(self, source: str) -> Tree:
        return self._parser.parse(source.encode("utf-8"))


def node_text(node: Node) -> str:
    text = node.text
    return text.decode("utf-8", errors="ignore") if text is not None else ""


def iter_items(container: Node) -> Iterator[Tuple[Node, List[Attribute]]]:
    """Yield each item of ``container`` with the outer attributes preceding it.

    Rust outer attributes are siblings of the item they decorate in the
    tree-sitter grammar, so attributes are buffered until the next item.
    Inline ``mod`` bodies are descended into.
    """
    pending: List[Attribute] = []
    for child in container.named_children:
        kind = child.type
        if kind in _COMMENT_NODES:
            continue
        if kind == "attribute_item":
            attribute = parse_attribute(child)
            if attribute is not None:
                pending.append(attribute)
            continue
        if kind == "inner_attribute_item":
            continue
        attributes, pending = pending, []
        if kind == "mod_item":
            body = child.child_by_field_name("body")
            if body is not None:
                yield from iter_items(body)
            continue
        yield child, attributes


def parse_attribute(node: Node) -> Optional[Attribute]:
    attribute = next((child for child in node.named_children if child.type == "attribute"), None)
    if attribute is None:
        return None
    path_node = attribute.named_children[0] if attribute.named_children else None
    if path_node is None:
        return None
    arguments_node = attribute.child_by_field_name("arguments") or next(
        (child for child in attribute.named_children if child.type == "token_tree"), None
    )
    arguments = parse_token_arguments(arguments_node) if arguments_node is not None else {}
    return Attribute(path=node_text(path_node), arguments=arguments, node=node)


def parse_token_arguments(token_tree: Node) -> Dict[str, str]:
    """Read ``key = value`` pairs from the top level of an attribute token tree.

    Values are kept as source text; a value made of a single string literal is
    unquoted. Bare flags (``key`` without ``=``) map to an empty string.
    """
    arguments: Dict[str, str] = {}
    key: Optional[str] = None
    value_nodes: List[Node] = []
    seen_equals = False

    def _flush() -> None:
        if key is None:
            return
        arguments[key] = _argument_value(value_nodes) if seen_equals else ""

    children = token_tree.children[1:-1]
    for child in children:
        kind = child.type
        if kind in _COMMENT_NODES:
            continue
        if kind == ",":
            _flush()
            key, value_nodes, seen_equals = None, [], False
            continue
        if key is None:
            if kind == "identifier":
                key = node_text(child)
            continue
        if kind == "=" and not seen_equals:
            seen_equals = True
            continue
        if seen_equals:
            value_nodes.append(child)
    _flush()
    return arguments


def _argument_value(nodes: List[Node]) -> str:
    if not nodes:
        return ""
    if len(nodes) == 1 and nodes[0].type in {"string_literal", "raw_string_literal"}:
        literal = nodes[0]
        contents = [child for child in literal.named_children if child.type == "string_content"]
        if contents:
            return "".join(node_text(child) for child in contents)
        text = node_text(literal)
        return text[text.index('"') + 1 : text.rindex('"')]
    parts: List[str] = []
    previous_end: Optional[int] = None
    for node in nodes:
        if previous_end is not None and node.start_byte > previous_end:
            parts.append(" ")
        parts.append(node_text(node))
        previous_end = node.end_byte
    return "".join(parts)


def item_name(node: Node) -> str:
    name = node.child_by_field_name("name")
    return strip_raw(node_text(name)) if name is not None else ""


def strip_raw(identifier: str) -> str:
    """Drop the ``r#`` prefix of raw identifiers."""
    return identifier[2:] if identifier.startswith("r#") else identifier


__all__ = [
    "Attribute",
    "RUST_LANGUAGE",
    "RustParser",
    "item_name",
    "iter_items",
    "node_text",
    "parse_attribute",
    "parse_token_arguments",
    "strip_raw",
]
