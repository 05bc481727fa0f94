"""Core data models shared across callergen stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from .naming import to_kebab_case, wit_identifier


class Exposure(str, Enum):
    """Annotation kinds that expose a process method to callers."""

    HTTP = "http"
    REMOTE = "remote"
    LOCAL = "local"

    @classmethod
    def ordered(cls, exposures: Iterable["Exposure"]) -> List["Exposure"]:
        """Return ``exposures`` in canonical emission order."""
        return [member for member in cls if member in exposures]


class TypeKind(str, Enum):
    PRIMITIVE = "primitive"
    NAMED = "named"
    LIST = "list"
    OPTION = "option"
    RESULT = "result"
    TUPLE = "tuple"
    MAP = "map"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class TypeExpr:
    """Syntactic type expression captured from Rust source.

    ``name`` holds the primitive name (``u32``, ``string``, ``unit``), the
    referenced type name, or the raw source text for unsupported shapes.
    """

    kind: TypeKind
    name: str = ""
    args: Tuple["TypeExpr", ...] = ()

    @classmethod
    def primitive(cls, name: str) -> "TypeExpr":
        return cls(TypeKind.PRIMITIVE, name)

    @classmethod
    def named(cls, name: str) -> "TypeExpr":
        return cls(TypeKind.NAMED, name)

    @classmethod
    def list_of(cls, inner: "TypeExpr") -> "TypeExpr":
        return cls(TypeKind.LIST, args=(inner,))

    @classmethod
    def option_of(cls, inner: "TypeExpr") -> "TypeExpr":
        return cls(TypeKind.OPTION, args=(inner,))

    @classmethod
    def result_of(cls, ok: "TypeExpr", err: "TypeExpr") -> "TypeExpr":
        return cls(TypeKind.RESULT, args=(ok, err))

    @classmethod
    def tuple_of(cls, *items: "TypeExpr") -> "TypeExpr":
        return cls(TypeKind.TUPLE, args=tuple(items))

    @classmethod
    def map_of(cls, key: "TypeExpr", value: "TypeExpr") -> "TypeExpr":
        return cls(TypeKind.MAP, args=(key, value))

    @classmethod
    def unsupported(cls, text: str) -> "TypeExpr":
        return cls(TypeKind.UNSUPPORTED, text)

    @property
    def is_unit(self) -> bool:
        return self.kind is TypeKind.PRIMITIVE and self.name == "unit"


UNIT = TypeExpr.primitive("unit")

Field = Tuple[str, TypeExpr]


@dataclass(frozen=True)
class StructDecl:
    """A struct declared in a project's sources."""

    name: str
    fields: Tuple[Field, ...] = ()
    positional: bool = False
    generic: bool = False
    source_file: Optional[str] = None


@dataclass(frozen=True)
class EnumCase:
    name: str
    fields: Tuple[Field, ...] = ()
    positional: bool = False


@dataclass(frozen=True)
class EnumDecl:
    """An enum declared in a project's sources."""

    name: str
    cases: Tuple[EnumCase, ...] = ()
    generic: bool = False
    source_file: Optional[str] = None


TypeDecl = Union[StructDecl, EnumDecl]


@dataclass(frozen=True)
class FunctionSignature:
    """An exposed method of a process state implementation."""

    name: str
    params: Tuple[Field, ...]
    return_type: TypeExpr
    exposures: FrozenSet[Exposure]

    def __post_init__(self) -> None:
        if not self.exposures:
            raise ValueError(f"Function '{self.name}' has no exposure annotation")


@dataclass(frozen=True)
class ProcessDefinition:
    """The annotated process implementation block of one project."""

    name: str
    state_type: TypeExpr
    wit_world: str
    exposed_functions: Tuple[FunctionSignature, ...]
    project: str = ""
    source_file: Optional[str] = None

    @property
    def interface_name(self) -> str:
        return to_kebab_case(self.name)


# Interface-level (WIT) model


@dataclass(frozen=True)
class WitPrimitive:
    name: str

    def render(self) -> str:
        return self.name


@dataclass(frozen=True)
class WitList:
    inner: "WitType"

    def render(self) -> str:
        return f"list<{self.inner.render()}>"


@dataclass(frozen=True)
class WitOption:
    inner: "WitType"

    def render(self) -> str:
        return f"option<{self.inner.render()}>"


@dataclass(frozen=True)
class WitRef:
    """Reference to a record or variant declared in the same interface."""

    name: str

    def render(self) -> str:
        return wit_identifier(self.name)


WitType = Union[WitPrimitive, WitList, WitOption, WitRef]


@dataclass(frozen=True)
class WitRecord:
    name: str
    fields: Tuple[Tuple[str, WitType], ...]

    kind = "record"


@dataclass(frozen=True)
class WitVariant:
    name: str
    cases: Tuple[Tuple[str, Optional[WitType]], ...]

    kind = "variant"


WitDecl = Union[WitRecord, WitVariant]


@dataclass(frozen=True)
class SignatureRecord:
    """Request/response shape for one ``(function, exposure)`` pair."""

    function: str
    exposure: Exposure
    params: Tuple[Tuple[str, WitType], ...]
    returning: WitType

    @property
    def name(self) -> str:
        return f"{self.function}-signature-{self.exposure.value}"


@dataclass(frozen=True)
class WitInterface:
    """Everything rendered into one interface file."""

    name: str
    world: str
    declarations: Tuple[WitDecl, ...]
    signatures: Tuple[SignatureRecord, ...]


@dataclass(frozen=True)
class RequestBuilder:
    """Shared payload construction routine for every stub of one function."""

    name: str
    tag: str
    params: Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class StubFunction:
    name: str
    function: str
    exposure: Exposure
    params: Tuple[Tuple[str, str], ...]
    return_type: str
    builder: RequestBuilder
    timeout: int


@dataclass(frozen=True)
class StubModule:
    """One generated Rust module of stubs for a process."""

    process: str
    module: str
    interface: str
    builders: Tuple[RequestBuilder, ...]
    stubs: Tuple[StubFunction, ...]


# Workspace


@dataclass
class ProjectMeta:
    """A Cargo project discovered in the workspace."""

    name: str
    root: Path
    manifest_path: Path
    component_package: Optional[str] = None
    source_files: List[str] = field(default_factory=list)

    def is_process(self, marker: str) -> bool:
        return self.component_package == marker


@dataclass
class WorkspaceManifest:
    """Normalized view of the workspace for downstream stages."""

    root: Path
    projects: List[ProjectMeta]

    def by_name(self) -> Dict[str, ProjectMeta]:
        return {project.name: project for project in self.projects}


__all__ = [
    "EnumCase",
    "EnumDecl",
    "Exposure",
    "FunctionSignature",
    "ProcessDefinition",
    "ProjectMeta",
    "RequestBuilder",
    "SignatureRecord",
    "StructDecl",
    "StubFunction",
    "StubModule",
    "TypeDecl",
    "TypeExpr",
    "TypeKind",
    "UNIT",
    "WitDecl",
    "WitInterface",
    "WitList",
    "WitOption",
    "WitPrimitive",
    "WitRecord",
    "WitRef",
    "WitType",
    "WitVariant",
    "WorkspaceManifest",
]
