"""WIT interface and world rendering."""

from __future__ import annotations

from typing import Dict, List, Sequence

from jinja2 import Environment

from ..analysis.typemap import TypeMapper
from ..logging import get_logger
from ..models import (
    Exposure,
    ProcessDefinition,
    SignatureRecord,
    WitDecl,
    WitInterface,
    WitRecord,
    WitType,
)
from ..naming import to_kebab_case, wit_identifier
from .rendering import template_environment

logger = get_logger("emitters.wit")


def types_world_name(world: str) -> str:
    return f"types-{world}"


def _declaration_members(declaration: WitDecl) -> List[str]:
    if isinstance(declaration, WitRecord):
        return [f"{wit_identifier(name)}: {wit_type.render()}" for name, wit_type in declaration.fields]
    members = []
    for case, payload in declaration.cases:
        members.append(
            f"{wit_identifier(case)}({payload.render()})" if payload is not None else wit_identifier(case)
        )
    return members


def _signature_members(signature: SignatureRecord) -> List[str]:
    members = ["target: address"]
    members.extend(f"{wit_identifier(name)}: {wit_type.render()}" for name, wit_type in signature.params)
    members.append(f"returning: {signature.returning.render()}")
    return members


class WitEmitter:
    """Builds and renders the interface file of each process."""

    def __init__(self, env: Environment | None = None) -> None:
        self.env = env or template_environment()

    def build(self, process: ProcessDefinition, mapper: TypeMapper) -> WitInterface:
        """Map every exposed function of ``process`` into signature records.

        Type errors propagate so the caller can drop the whole project.
        """
        signatures: List[SignatureRecord] = []
        for function in process.exposed_functions:
            params = tuple(
                (to_kebab_case(name), mapper.map(expr)) for name, expr in function.params
            )
            returning: WitType = mapper.map(function.return_type)
            for exposure in Exposure.ordered(function.exposures):
                signatures.append(
                    SignatureRecord(
                        function=to_kebab_case(function.name),
                        exposure=exposure,
                        params=params,
                        returning=returning,
                    )
                )
        interface = WitInterface(
            name=process.interface_name,
            world=process.wit_world,
            declarations=mapper.declarations,
            signatures=tuple(signatures),
        )
        logger.debug(
            "Built interface %s with %d declarations and %d signature records",
            interface.name,
            len(interface.declarations),
            len(interface.signatures),
        )
        return interface

    def render(self, interface: WitInterface, process: str = "") -> str:
        declarations: List[Dict[str, object]] = [
            {
                "kind": declaration.kind,
                "name": wit_identifier(declaration.name),
                "members": _declaration_members(declaration),
            }
            for declaration in interface.declarations
        ]
        signatures = [
            {
                "function": signature.function,
                "exposure": signature.exposure.value,
                "name": wit_identifier(signature.name),
                "members": _signature_members(signature),
            }
            for signature in interface.signatures
        ]
        template = self.env.get_template("interface.wit.j2")
        return template.render(
            process=process or interface.name,
            name=wit_identifier(interface.name),
            declarations=declarations,
            signatures=signatures,
        )

    def render_world(
        self,
        world: str,
        package: str,
        interfaces: Sequence[str],
        include_worlds: Sequence[str] = (),
    ) -> str:
        """Render the ``types-<world>`` world importing every generated interface."""
        template = self.env.get_template("world.wit.j2")
        return template.render(
            package=package,
            world=types_world_name(world),
            interfaces=[wit_identifier(name) for name in sorted(set(interfaces))],
            include_worlds=list(include_worlds),
        )


__all__ = ["WitEmitter", "types_world_name"]
