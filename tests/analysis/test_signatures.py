"""Tests for callergen.analysis.signatures."""

from __future__ import annotations

import pytest

from callergen.analysis.signatures import SignatureExtractor
from callergen.analysis.syntax import RustParser
from callergen.errors import SignatureError, UnsupportedReceiverError
from callergen.models import UNIT, Exposure, FunctionSignature, TypeExpr, TypeKind


def _extract(methods: str):
    tree = RustParser().parse(f"impl State {{\n{methods}\n}}\n")
    impl = tree.root_node.named_children[0]
    return SignatureExtractor().extract(impl.child_by_field_name("body"))


def _signature(params: str, returns: str = "") -> FunctionSignature:
    suffix = f" -> {returns}" if returns else ""
    signatures, skipped = _extract(f"#[remote]\nasync fn probe(&mut self{params}){suffix} {{}}")
    assert skipped == []
    return signatures[0]


@pytest.mark.parametrize(
    "rust, expected",
    [
        ("u8", TypeExpr.primitive("u8")),
        ("i64", TypeExpr.primitive("s64")),
        ("usize", TypeExpr.primitive("u64")),
        ("String", TypeExpr.primitive("string")),
        ("&str", TypeExpr.primitive("string")),
        ("Vec<Option<u32>>", TypeExpr.list_of(TypeExpr.option_of(TypeExpr.primitive("u32")))),
        ("[u8; 4]", TypeExpr.list_of(TypeExpr.primitive("u8"))),
        (
            "std::collections::HashMap<String, u64>",
            TypeExpr.map_of(TypeExpr.primitive("string"), TypeExpr.primitive("u64")),
        ),
        ("(u8, bool)", TypeExpr.tuple_of(TypeExpr.primitive("u8"), TypeExpr.primitive("bool"))),
        ("Result<(), String>", TypeExpr.result_of(UNIT, TypeExpr.primitive("string"))),
        ("crate::types::FileInfo", TypeExpr.named("FileInfo")),
    ],
)
def test_parameter_types_are_captured(rust: str, expected: TypeExpr) -> None:
    signature = _signature(f", value: {rust}")

    assert signature.params == (("value", expected),)


@pytest.mark.parametrize("rust", ["i128", "Box<u8>", "&dyn Fn()", "*const u8"])
def test_unsupported_shapes_are_kept_for_the_mapper(rust: str) -> None:
    signature = _signature(f", value: {rust}")

    assert signature.params[0][1].kind is TypeKind.UNSUPPORTED


def test_missing_return_type_is_unit() -> None:
    assert _signature("").return_type == UNIT


def test_exposures_are_collected_from_stacked_attributes() -> None:
    signatures, _ = _extract(
        """
        #[remote]
        #[doc = "both"]
        #[local]
        async fn ping(&mut self) {}

        #[init]
        async fn setup(&mut self) {}

        fn helper(&self) {}
        """
    )

    assert [signature.name for signature in signatures] == ["ping"]
    assert signatures[0].exposures == frozenset({Exposure.REMOTE, Exposure.LOCAL})


@pytest.mark.parametrize("receiver", ["&self", "self", "mut self", "", "this: &mut Self"])
def test_non_mutable_receivers_are_skipped(receiver: str) -> None:
    signatures, skipped = _extract(f"#[http]\nasync fn peek({receiver}) -> u8 {{ 0 }}")

    assert signatures == []
    assert skipped[0][0] == "peek"
    assert isinstance(skipped[0][1], UnsupportedReceiverError)


@pytest.mark.parametrize("params", [", (a, b): (u8, u8)", ", target: String", ", returning: u8"])
def test_unrepresentable_parameters_are_skipped(params: str) -> None:
    signatures, skipped = _extract(f"#[remote]\nasync fn bad(&mut self{params}) {{}}")

    assert signatures == []
    assert isinstance(skipped[0][1], SignatureError)


def test_raw_identifiers_are_unescaped() -> None:
    signature = _signature(", r#type: u8")

    assert signature.params == (("type", TypeExpr.primitive("u8")),)


@pytest.mark.parametrize("params", [", _target: String", ", target_: u8", ", _returning: bool"])
def test_parameters_normalising_to_reserved_names_are_skipped(params: str) -> None:
    signatures, skipped = _extract(f"#[remote]\nasync fn forward(&mut self{params}) -> bool {{ true }}")

    assert signatures == []
    assert skipped[0][0] == "forward"
    assert "reserved parameter name" in str(skipped[0][1])


def test_parameters_with_the_same_derived_name_are_skipped() -> None:
    signatures, skipped = _extract(
        """
        #[remote]
        async fn clash(&mut self, a_b: u32, aB: u32) {}

        #[remote]
        async fn fine(&mut self, a_b: u32, b_a: u32) {}
        """
    )

    assert [signature.name for signature in signatures] == ["fine"]
    assert skipped[0][0] == "clash"
    assert "a-b" in str(skipped[0][1])
