"""Maps captured Rust type expressions onto the WIT grammar.

One ``TypeMapper`` is created per project. It memoizes every declaration it
produces, keyed by canonical (kebab-case) name, so structurally identical
types always resolve to the same record or variant and each declaration is
emitted once. Declarations are recorded after their dependencies, which is
the order the interface file needs since WIT has no forward declarations.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import (
    CyclicTypeError,
    TypeNameCollisionError,
    UnresolvedTypeError,
    UnsupportedTypeError,
)
from ..logging import get_logger
from ..models import (
    EnumDecl,
    Field,
    StructDecl,
    TypeDecl,
    TypeExpr,
    TypeKind,
    WitDecl,
    WitList,
    WitOption,
    WitPrimitive,
    WitRecord,
    WitRef,
    WitType,
    WitVariant,
)
from ..naming import to_kebab_case

WIT_PRIMITIVES = frozenset(
    {
        "s8",
        "s16",
        "s32",
        "s64",
        "u8",
        "u16",
        "u32",
        "u64",
        "f32",
        "f64",
        "bool",
        "char",
        "string",
        "unit",
    }
)

logger = get_logger("typemap")


def type_fragment(wit_type: WitType) -> str:
    """Return the name fragment used when deriving names of generated declarations."""
    if isinstance(wit_type, WitList):
        return f"list-of-{type_fragment(wit_type.inner)}"
    if isinstance(wit_type, WitOption):
        return f"option-of-{type_fragment(wit_type.inner)}"
    return wit_type.name


class TypeMapper:
    """Resolves ``TypeExpr`` values against one project's declarations."""

    def __init__(self, declarations: Mapping[str, TypeDecl]) -> None:
        self._declarations = dict(declarations)
        self._resolved: Dict[str, WitDecl] = {}
        self._named: Dict[str, str] = {}
        self._stack: List[str] = []

    @property
    def declarations(self) -> Tuple[WitDecl, ...]:
        """Every declaration produced so far, dependencies first."""
        return tuple(self._resolved.values())

    def map(self, expr: TypeExpr) -> WitType:
        kind = expr.kind
        if kind is TypeKind.PRIMITIVE:
            if expr.name not in WIT_PRIMITIVES:
                raise UnsupportedTypeError(f"Unsupported primitive type '{expr.name}'")
            return WitPrimitive(expr.name)
        if kind is TypeKind.NAMED:
            return WitRef(self._resolve_named(expr.name))
        if kind is TypeKind.LIST:
            return WitList(self._element(expr.args[0], "list"))
        if kind is TypeKind.OPTION:
            return WitOption(self._element(expr.args[0], "option"))
        if kind is TypeKind.RESULT:
            return WitRef(self._result_variant(expr.args[0], expr.args[1]))
        if kind is TypeKind.TUPLE:
            return WitRef(self._tuple_record(expr.args))
        if kind is TypeKind.MAP:
            return WitList(WitRef(self._map_entry(expr.args[0], expr.args[1])))
        raise UnsupportedTypeError(f"Unsupported type '{expr.name}'")

    def _element(self, expr: TypeExpr, container: str) -> WitType:
        # Unit only has a meaning as a return type or a Result arm.
        if expr.is_unit:
            raise UnsupportedTypeError(f"Unit type cannot be used inside a {container}")
        return self.map(expr)

    # ------------------------------------------------------------------
    # Named declarations

    def _resolve_named(self, name: str) -> str:
        resolved = self._named.get(name)
        if resolved is not None:
            return resolved
        if name in self._stack:
            cycle = self._stack[self._stack.index(name) :] + [name]
            raise CyclicTypeError(cycle)

        declaration = self._declarations.get(name)
        if declaration is None:
            raise UnresolvedTypeError(f"Type '{name}' is not declared in this project")
        if declaration.generic:
            raise UnsupportedTypeError(f"Generic type '{name}' cannot be mapped")

        wit_name = to_kebab_case(name)
        self._stack.append(name)
        try:
            if isinstance(declaration, StructDecl):
                mapped: WitDecl = WitRecord(wit_name, self._map_fields(declaration.fields))
            else:
                mapped = self._variant(wit_name, declaration)
        finally:
            self._stack.pop()

        self._register(mapped)
        self._named[name] = wit_name
        logger.debug("Resolved %s as %s %s", name, mapped.kind, wit_name)
        return wit_name

    def _variant(self, wit_name: str, declaration: EnumDecl) -> WitVariant:
        cases: List[Tuple[str, Optional[WitType]]] = []
        for case in declaration.cases:
            case_name = to_kebab_case(case.name)
            payload: Optional[WitType]
            if not case.fields:
                payload = None
            elif not case.positional:
                record = WitRecord(f"{wit_name}-{case_name}", self._map_fields(case.fields))
                self._register(record)
                payload = WitRef(record.name)
            elif len(case.fields) == 1:
                payload = self.map(case.fields[0][1])
            else:
                payload = WitRef(self._tuple_record([expr for _, expr in case.fields]))
            cases.append((case_name, payload))
        return WitVariant(wit_name, tuple(cases))

    def _map_fields(self, fields: Sequence[Field]) -> Tuple[Tuple[str, WitType], ...]:
        return tuple((to_kebab_case(name), self.map(expr)) for name, expr in fields)

    # ------------------------------------------------------------------
    # Structural declarations

    def _result_variant(self, ok: TypeExpr, err: TypeExpr) -> str:
        ok_type = None if ok.is_unit else self.map(ok)
        err_type = None if err.is_unit else self.map(err)
        name = "-".join(
            [
                "result",
                type_fragment(ok_type) if ok_type is not None else "unit",
                type_fragment(err_type) if err_type is not None else "unit",
            ]
        )
        self._register(WitVariant(name, (("ok", ok_type), ("err", err_type))))
        return name

    def _tuple_record(self, items: Sequence[TypeExpr]) -> str:
        mapped = [self._element(item, "tuple") for item in items]
        name = "-".join(["tuple", *(type_fragment(item) for item in mapped)])
        fields = tuple((f"f{index}", item) for index, item in enumerate(mapped))
        self._register(WitRecord(name, fields))
        return name

    def _map_entry(self, key: TypeExpr, value: TypeExpr) -> str:
        key_type = self._element(key, "map")
        value_type = self._element(value, "map")
        name = f"map-entry-{type_fragment(key_type)}-{type_fragment(value_type)}"
        self._register(WitRecord(name, (("key", key_type), ("value", value_type))))
        return name

    def _register(self, declaration: WitDecl) -> None:
        existing = self._resolved.get(declaration.name)
        if existing is None:
            self._resolved[declaration.name] = declaration
        elif existing != declaration:
            raise TypeNameCollisionError(
                f"'{declaration.name}' is derived from two different type shapes"
            )


__all__ = ["TypeMapper", "WIT_PRIMITIVES", "type_fragment"]
