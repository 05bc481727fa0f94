"""Rust caller-stub generation for the aggregator project."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from jinja2 import Environment

from ..logging import get_logger
from ..models import (
    RequestBuilder,
    StubFunction,
    StubModule,
    WitInterface,
    WitList,
    WitOption,
    WitPrimitive,
    WitRef,
    WitType,
)
from ..naming import rust_identifier, to_pascal_case, to_snake_case
from .rendering import template_environment
from .wit import types_world_name

DEFAULT_TIMEOUT = 30

_RUST_PRIMITIVES: Dict[str, str] = {
    "s8": "i8",
    "s16": "i16",
    "s32": "i32",
    "s64": "i64",
    "u8": "u8",
    "u16": "u16",
    "u32": "u32",
    "u64": "u64",
    "f32": "f32",
    "f64": "f64",
    "bool": "bool",
    "char": "char",
    "string": "String",
    "unit": "()",
}

logger = get_logger("emitters.stubs")


def rust_type(wit_type: WitType) -> str:
    """Return the Rust type ``wit-bindgen`` generates for ``wit_type``."""
    if isinstance(wit_type, WitPrimitive):
        return _RUST_PRIMITIVES[wit_type.name]
    if isinstance(wit_type, WitList):
        return f"Vec<{rust_type(wit_type.inner)}>"
    if isinstance(wit_type, WitOption):
        return f"Option<{rust_type(wit_type.inner)}>"
    if isinstance(wit_type, WitRef):
        return to_pascal_case(wit_type.name)
    raise TypeError(f"Unknown WIT type {wit_type!r}")


def request_payload(builder: RequestBuilder) -> str:
    """Return the ``json!`` body for ``builder``: ``{}``, the bare value or a tuple."""
    names = [name for name, _ in builder.params]
    if not names:
        value = "{}"
    elif len(names) == 1:
        value = names[0]
    else:
        value = f"({', '.join(names)})"
    return '{"%s": %s}' % (builder.tag, value)


def wit_namespace(wit_package: str) -> Tuple[str, str]:
    """Split ``namespace:package@version`` into snake-case Rust module names."""
    base = wit_package.split("@", 1)[0]
    namespace, _, package = base.partition(":")
    return to_snake_case(namespace), to_snake_case(package)


def _param_list(params: Sequence[Tuple[str, str]]) -> str:
    return ", ".join(f"{name}: {type_}" for name, type_ in params)


class CallerUtilsGenerator:
    """Produces the stub module of each interface and the aggregator crate files."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, env: Environment | None = None) -> None:
        self.timeout = timeout
        self.env = env or template_environment()

    def build(self, interface: WitInterface) -> StubModule:
        """Derive one request builder per function and one stub per signature record."""
        builders: Dict[str, RequestBuilder] = {}
        stubs: List[StubFunction] = []
        for signature in interface.signatures:
            snake = to_snake_case(signature.function)
            params = tuple(
                (rust_identifier(to_snake_case(name)), rust_type(wit_type))
                for name, wit_type in signature.params
            )
            builder = builders.get(signature.function)
            if builder is None:
                builder = RequestBuilder(
                    name=f"{snake}_request",
                    tag=to_pascal_case(signature.function),
                    params=params,
                )
                builders[signature.function] = builder
            stubs.append(
                StubFunction(
                    name=f"{snake}_{signature.exposure.value}_rpc",
                    function=signature.function,
                    exposure=signature.exposure,
                    params=params,
                    return_type=rust_type(signature.returning),
                    builder=builder,
                    timeout=self.timeout,
                )
            )
        module = StubModule(
            process=interface.name,
            module=to_snake_case(interface.name),
            interface=interface.name,
            builders=tuple(builders.values()),
            stubs=tuple(stubs),
        )
        logger.debug(
            "Built stub module %s with %d stubs", module.module, len(module.stubs)
        )
        return module

    def render_module(self, module: StubModule) -> str:
        builders = [
            {
                "name": builder.name,
                "signature": _param_list(builder.params),
                "payload": request_payload(builder),
            }
            for builder in module.builders
        ]
        stubs = []
        for stub in module.stubs:
            params = [("target", "&Address"), *stub.params]
            stubs.append(
                {
                    "name": stub.name,
                    "function": stub.function,
                    "exposure": stub.exposure.value,
                    "signature": _param_list(params),
                    "return_type": stub.return_type,
                    "builder": stub.builder.name,
                    "arguments": ", ".join(name for name, _ in stub.params),
                    "timeout": stub.timeout,
                }
            )
        template = self.env.get_template("module.rs.j2")
        return template.render(interface=module.interface, builders=builders, stubs=stubs)

    def render_lib(self, modules: Sequence[StubModule], world: str, wit_package: str) -> str:
        """Render ``src/lib.rs`` with the bindings header and one module per process."""
        namespace, package = wit_namespace(wit_package)
        ordered = sorted(modules, key=lambda module: module.module)
        uses = [f"{namespace}::{package}::{module.module}" for module in ordered]
        template = self.env.get_template("lib.rs.j2")
        return template.render(
            world=types_world_name(world),
            uses=uses,
            modules=[{"module": module.module, "interface": module.interface} for module in ordered],
        )

    def render_manifest(self, name: str) -> str:
        return self.env.get_template("Cargo.toml.j2").render(name=name)


__all__ = ["CallerUtilsGenerator", "DEFAULT_TIMEOUT", "request_payload", "rust_type", "wit_namespace"]
