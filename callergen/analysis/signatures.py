"""Signature extraction for exposed process methods."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from tree_sitter import Node

from ..errors import SignatureError, UnsupportedReceiverError
from ..logging import get_logger
from ..models import UNIT, Exposure, FunctionSignature, TypeExpr
from ..naming import to_kebab_case
from .syntax import Attribute, iter_items, node_text, strip_raw

logger = get_logger("signatures")

_PRIMITIVES: Dict[str, str] = {
    "i8": "s8",
    "i16": "s16",
    "i32": "s32",
    "i64": "s64",
    "isize": "s64",
    "u8": "u8",
    "u16": "u16",
    "u32": "u32",
    "u64": "u64",
    "usize": "u64",
    "f32": "f32",
    "f64": "f64",
    "bool": "bool",
    "char": "char",
    "str": "string",
}

_STRING_TYPES = {"String", "str"}
_LIST_TYPES = {"Vec", "VecDeque", "HashSet", "BTreeSet"}
_MAP_TYPES = {"HashMap", "BTreeMap"}

_EXPOSURES = {exposure.value: exposure for exposure in Exposure}

# Field names every signature record already carries.
_RESERVED_PARAMS = {"target", "returning"}

_SKIPPED_NODES = {"line_comment", "block_comment", "lifetime", "attribute_item"}


def type_expr_from_node(node: Node) -> TypeExpr:
    """Capture a tree-sitter type node as a syntactic ``TypeExpr``."""
    kind = node.type
    if kind == "primitive_type":
        text = node_text(node)
        mapped = _PRIMITIVES.get(text)
        return TypeExpr.primitive(mapped) if mapped else TypeExpr.unsupported(text)
    if kind == "unit_type":
        return UNIT
    if kind in {"type_identifier", "scoped_type_identifier"}:
        return _named_type(_last_segment(node), node)
    if kind == "generic_type":
        return _generic_type(node)
    if kind == "tuple_type":
        items = [type_expr_from_node(child) for child in _type_children(node)]
        return TypeExpr.tuple_of(*items) if items else UNIT
    if kind == "reference_type":
        inner = node.child_by_field_name("type")
        return type_expr_from_node(inner) if inner is not None else TypeExpr.unsupported(node_text(node))
    if kind == "array_type":
        element = node.child_by_field_name("element")
        if element is not None:
            return TypeExpr.list_of(type_expr_from_node(element))
    return TypeExpr.unsupported(node_text(node))


def _type_children(node: Node) -> List[Node]:
    return [child for child in node.named_children if child.type not in _SKIPPED_NODES]


def _last_segment(node: Node) -> str:
    if node.type == "scoped_type_identifier":
        name = node.child_by_field_name("name")
        if name is not None:
            return node_text(name)
    return node_text(node)


def _named_type(name: str, node: Node) -> TypeExpr:
    if name in _STRING_TYPES:
        return TypeExpr.primitive("string")
    if name in _PRIMITIVES:
        return TypeExpr.primitive(_PRIMITIVES[name])
    if name == "Self":
        return TypeExpr.unsupported(node_text(node))
    return TypeExpr.named(name)


def _generic_type(node: Node) -> TypeExpr:
    base = node.child_by_field_name("type")
    arguments = node.child_by_field_name("type_arguments")
    if base is None or arguments is None:
        return TypeExpr.unsupported(node_text(node))
    name = _last_segment(base)
    args = [type_expr_from_node(child) for child in _type_children(arguments)]

    if name in _LIST_TYPES and len(args) == 1:
        return TypeExpr.list_of(args[0])
    if name == "Option" and len(args) == 1:
        return TypeExpr.option_of(args[0])
    if name == "Result" and len(args) == 2:
        return TypeExpr.result_of(args[0], args[1])
    if name in _MAP_TYPES and len(args) == 2:
        return TypeExpr.map_of(args[0], args[1])
    return TypeExpr.unsupported(node_text(node))


def _is_mutable_self(node: Node) -> bool:
    if node.type != "self_parameter":
        return False
    kinds = {child.type for child in node.children}
    return "&" in kinds and "mutable_specifier" in kinds


class SignatureExtractor:
    """Builds ``FunctionSignature`` objects from an annotated impl body."""

    def exposures_for(self, attributes: Sequence[Attribute]) -> frozenset[Exposure]:
        return frozenset(
            _EXPOSURES[attribute.name] for attribute in attributes if attribute.name in _EXPOSURES
        )

    def extract(
        self, body: Node
    ) -> Tuple[List[FunctionSignature], List[Tuple[str, SignatureError]]]:
        """Return the exposed signatures of ``body`` and the methods that were skipped."""
        signatures: List[FunctionSignature] = []
        skipped: List[Tuple[str, SignatureError]] = []
        for item, attributes in iter_items(body):
            if item.type != "function_item":
                continue
            exposures = self.exposures_for(attributes)
            if not exposures:
                continue
            name = strip_raw(node_text(item.child_by_field_name("name")))
            try:
                signatures.append(self.extract_method(item, exposures))
            except SignatureError as exc:
                logger.warning("Skipping %s: %s", name, exc)
                skipped.append((name, exc))
        return signatures, skipped

    def extract_method(self, node: Node, exposures: frozenset[Exposure]) -> FunctionSignature:
        name_node = node.child_by_field_name("name")
        name = strip_raw(node_text(name_node)) if name_node is not None else ""
        parameters = node.child_by_field_name("parameters")
        entries = _type_children(parameters) if parameters is not None else []

        if not entries or not _is_mutable_self(entries[0]):
            receiver = node_text(entries[0]) if entries else "no receiver"
            raise UnsupportedReceiverError(
                f"Method '{name}' must take '&mut self' (found '{receiver}')"
            )

        params: List[Tuple[str, TypeExpr]] = []
        seen: Dict[str, str] = {}
        for entry in entries[1:]:
            param, expr = self._parameter(name, entry)
            # Emitted names are kebab/snake forms, so compare those.
            derived = to_kebab_case(param)
            if not derived or derived in _RESERVED_PARAMS:
                raise SignatureError(
                    f"Method '{name}' uses the reserved parameter name '{param}'"
                )
            if derived in seen:
                raise SignatureError(
                    f"Method '{name}' parameters '{seen[derived]}' and '{param}' "
                    f"both normalise to '{derived}'"
                )
            seen[derived] = param
            params.append((param, expr))

        return_node = node.child_by_field_name("return_type")
        return_type = type_expr_from_node(return_node) if return_node is not None else UNIT
        return FunctionSignature(
            name=name,
            params=tuple(params),
            return_type=return_type,
            exposures=exposures,
        )

    @staticmethod
    def _parameter(function: str, node: Node) -> Tuple[str, TypeExpr]:
        if node.type != "parameter":
            raise SignatureError(
                f"Method '{function}' has an unsupported parameter '{node_text(node)}'"
            )
        pattern: Optional[Node] = node.child_by_field_name("pattern")
        type_node = node.child_by_field_name("type")
        if pattern is None or type_node is None or pattern.type != "identifier":
            raise SignatureError(
                f"Method '{function}' parameter '{node_text(node)}' must bind a plain identifier"
            )
        return strip_raw(node_text(pattern)), type_expr_from_node(type_node)


__all__ = ["SignatureExtractor", "type_expr_from_node"]
