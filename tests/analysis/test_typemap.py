"""Tests for callergen.analysis.typemap."""

from __future__ import annotations

import pytest

from callergen.analysis.typemap import TypeMapper
from callergen.errors import (
    CyclicTypeError,
    TypeNameCollisionError,
    UnresolvedTypeError,
    UnsupportedTypeError,
)
from callergen.models import (
    UNIT,
    EnumCase,
    EnumDecl,
    StructDecl,
    TypeExpr,
    WitList,
    WitOption,
    WitPrimitive,
    WitRecord,
    WitRef,
    WitVariant,
)

STRING = TypeExpr.primitive("string")
U64 = TypeExpr.primitive("u64")


def _mapper(*declarations) -> TypeMapper:
    return TypeMapper({declaration.name: declaration for declaration in declarations})


def test_primitives_and_containers_map_directly() -> None:
    mapper = _mapper()

    assert mapper.map(STRING) == WitPrimitive("string")
    assert mapper.map(TypeExpr.list_of(TypeExpr.option_of(U64))) == WitList(WitOption(WitPrimitive("u64")))
    assert mapper.declarations == ()


def test_struct_becomes_record_with_fields_in_order() -> None:
    file_info = StructDecl(
        "FileInfo",
        fields=(("file_name", STRING), ("size", U64), ("tags", TypeExpr.list_of(STRING))),
    )
    mapper = _mapper(file_info)

    assert mapper.map(TypeExpr.named("FileInfo")) == WitRef("file-info")
    assert mapper.declarations == (
        WitRecord(
            "file-info",
            (
                ("file-name", WitPrimitive("string")),
                ("size", WitPrimitive("u64")),
                ("tags", WitList(WitPrimitive("string"))),
            ),
        ),
    )


def test_shared_struct_is_declared_once_after_its_dependencies() -> None:
    inner = StructDecl("Inner", fields=(("value", U64),))
    outer = StructDecl("Outer", fields=(("a", TypeExpr.named("Inner")), ("b", TypeExpr.named("Inner"))))
    mapper = _mapper(inner, outer)

    mapper.map(TypeExpr.named("Outer"))
    mapper.map(TypeExpr.named("Inner"))

    assert [declaration.name for declaration in mapper.declarations] == ["inner", "outer"]


def test_enum_cases_become_variant_cases() -> None:
    kind = EnumDecl(
        "Kind",
        cases=(
            EnumCase("Plain"),
            EnumCase("Sized", fields=(("f0", U64),), positional=True),
            EnumCase("Pair", fields=(("f0", U64), ("f1", STRING)), positional=True),
            EnumCase("Named", fields=(("label", STRING),)),
        ),
    )
    mapper = _mapper(kind)

    mapper.map(TypeExpr.named("Kind"))

    declarations = {declaration.name: declaration for declaration in mapper.declarations}
    assert declarations["kind"] == WitVariant(
        "kind",
        (
            ("plain", None),
            ("sized", WitPrimitive("u64")),
            ("pair", WitRef("tuple-u64-string")),
            ("named", WitRef("kind-named")),
        ),
    )
    assert declarations["kind-named"] == WitRecord("kind-named", (("label", WitPrimitive("string")),))
    assert list(declarations)[-1] == "kind"


def test_result_tuple_and_map_produce_structural_declarations() -> None:
    mapper = _mapper()

    assert mapper.map(TypeExpr.result_of(UNIT, STRING)) == WitRef("result-unit-string")
    assert mapper.map(TypeExpr.tuple_of(TypeExpr.primitive("u8"), STRING)) == WitRef("tuple-u8-string")
    assert mapper.map(TypeExpr.map_of(STRING, TypeExpr.list_of(U64))) == WitList(
        WitRef("map-entry-string-list-of-u64")
    )

    declarations = {declaration.name: declaration for declaration in mapper.declarations}
    assert declarations["result-unit-string"] == WitVariant(
        "result-unit-string", (("ok", None), ("err", WitPrimitive("string")))
    )
    assert declarations["tuple-u8-string"] == WitRecord(
        "tuple-u8-string", (("f0", WitPrimitive("u8")), ("f1", WitPrimitive("string")))
    )
    assert declarations["map-entry-string-list-of-u64"] == WitRecord(
        "map-entry-string-list-of-u64",
        (("key", WitPrimitive("string")), ("value", WitList(WitPrimitive("u64")))),
    )


def test_same_structural_type_is_reused() -> None:
    mapper = _mapper()

    first = mapper.map(TypeExpr.result_of(U64, STRING))
    second = mapper.map(TypeExpr.result_of(U64, STRING))

    assert first == second
    assert len(mapper.declarations) == 1


def test_self_referencing_struct_is_cyclic() -> None:
    node = StructDecl("Node", fields=(("children", TypeExpr.list_of(TypeExpr.named("Node"))),))

    with pytest.raises(CyclicTypeError) as excinfo:
        _mapper(node).map(TypeExpr.named("Node"))
    assert excinfo.value.cycle == ("Node", "Node")


def test_indirect_cycle_reports_path() -> None:
    a = StructDecl("A", fields=(("b", TypeExpr.option_of(TypeExpr.named("B"))),))
    b = StructDecl("B", fields=(("a", TypeExpr.named("A")),))

    with pytest.raises(CyclicTypeError, match="A -> B -> A"):
        _mapper(a, b).map(TypeExpr.named("A"))


def test_unknown_name_is_unresolved() -> None:
    with pytest.raises(UnresolvedTypeError):
        _mapper().map(TypeExpr.named("Missing"))


@pytest.mark.parametrize(
    "expr",
    [TypeExpr.unsupported("Box<u8>"), TypeExpr.primitive("s128"), TypeExpr.named("Page")],
)
def test_unsupported_types_raise(expr: TypeExpr) -> None:
    page = StructDecl("Page", fields=(("items", TypeExpr.list_of(TypeExpr.named("T"))),), generic=True)

    with pytest.raises(UnsupportedTypeError):
        _mapper(page).map(expr)


def test_derived_name_collision_is_rejected() -> None:
    clash = StructDecl("TupleU8String", fields=(("a", TypeExpr.primitive("u8")),))
    mapper = _mapper(clash)
    mapper.map(TypeExpr.named("TupleU8String"))

    with pytest.raises(TypeNameCollisionError):
        mapper.map(TypeExpr.tuple_of(TypeExpr.primitive("u8"), STRING))


@pytest.mark.parametrize(
    "expr",
    [
        TypeExpr.option_of(UNIT),
        TypeExpr.list_of(UNIT),
        TypeExpr.tuple_of(UNIT, STRING),
        TypeExpr.map_of(STRING, UNIT),
    ],
)
def test_unit_inside_containers_is_rejected(expr: TypeExpr) -> None:
    with pytest.raises(UnsupportedTypeError, match="Unit type"):
        _mapper().map(expr)


def test_unit_is_still_a_valid_return_type() -> None:
    assert _mapper().map(UNIT) == WitPrimitive("unit")
