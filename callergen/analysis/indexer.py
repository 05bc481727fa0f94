"""Locates the annotated process implementation of each project."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from tree_sitter import Node

from ..errors import AmbiguousDefinitionError, MissingAnnotationError, SignatureError
from ..logging import get_logger
from ..models import (
    EnumCase,
    EnumDecl,
    Field,
    ProcessDefinition,
    ProjectMeta,
    StructDecl,
    TypeDecl,
    TypeExpr,
)
from .signatures import SignatureExtractor, type_expr_from_node
from .syntax import Attribute, RustParser, item_name, iter_items, node_text, strip_raw

PROCESS_ATTRIBUTE = "hyperprocess"
REQUIRED_KEYS = ("name", "wit_world")

logger = get_logger("indexer")


@dataclass
class ProjectIndex:
    """Extraction result for one process project."""

    project: ProjectMeta
    process: ProcessDefinition
    declarations: Dict[str, TypeDecl] = field(default_factory=dict)
    skipped: List[Tuple[str, SignatureError]] = field(default_factory=list)


@dataclass
class _Candidate:
    source_file: str
    node: Node
    attribute: Attribute


def fields_from_body(body: Node) -> Tuple[Tuple[Field, ...], bool]:
    """Return the fields of a struct or enum-case body and whether they are positional."""
    if body.type == "field_declaration_list":
        fields: List[Field] = []
        for child in body.named_children:
            if child.type != "field_declaration":
                continue
            name = child.child_by_field_name("name")
            type_node = child.child_by_field_name("type")
            if name is None or type_node is None:
                continue
            fields.append((strip_raw(node_text(name)), type_expr_from_node(type_node)))
        return tuple(fields), False
    if body.type == "ordered_field_declaration_list":
        types = body.children_by_field_name("type")
        return tuple((f"f{index}", type_expr_from_node(node)) for index, node in enumerate(types)), True
    return (), False


def struct_from_node(node: Node, source_file: str) -> StructDecl:
    body = node.child_by_field_name("body")
    fields, positional = fields_from_body(body) if body is not None else ((), False)
    return StructDecl(
        name=item_name(node),
        fields=fields,
        positional=positional,
        generic=node.child_by_field_name("type_parameters") is not None,
        source_file=source_file,
    )


def enum_from_node(node: Node, source_file: str) -> EnumDecl:
    cases: List[EnumCase] = []
    body = node.child_by_field_name("body")
    if body is not None:
        for variant in body.named_children:
            if variant.type != "enum_variant":
                continue
            variant_body = variant.child_by_field_name("body")
            fields, positional = (
                fields_from_body(variant_body) if variant_body is not None else ((), False)
            )
            cases.append(EnumCase(name=item_name(variant), fields=fields, positional=positional))
    return EnumDecl(
        name=item_name(node),
        cases=tuple(cases),
        generic=node.child_by_field_name("type_parameters") is not None,
        source_file=source_file,
    )


class SourceIndexer:
    """Parses a project's sources and extracts its single process definition."""

    def __init__(
        self,
        parser: RustParser | None = None,
        extractor: SignatureExtractor | None = None,
    ) -> None:
        self.parser = parser or RustParser()
        self.extractor = extractor or SignatureExtractor()

    def index(self, project: ProjectMeta) -> ProjectIndex:
        """Return the process definition and type arena of ``project``.

        Raises ``MissingAnnotationError`` when no complete ``#[hyperprocess]``
        block exists and ``AmbiguousDefinitionError`` when several do, or when
        two exposed methods share a name.
        """
        candidates: List[_Candidate] = []
        incomplete: List[str] = []
        declarations: Dict[str, TypeDecl] = {}

        for source_file in sorted(project.source_files):
            path = project.root / source_file
            try:
                source = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable source %s: %s", path, exc)
                continue

            tree = self.parser.parse(source)
            if tree.root_node.has_error:
                logger.warning("Syntax errors in %s; extraction may be incomplete", path)

            for item, attributes in iter_items(tree.root_node):
                kind = item.type
                if kind == "struct_item":
                    self._declare(declarations, struct_from_node(item, source_file))
                elif kind == "enum_item":
                    self._declare(declarations, enum_from_node(item, source_file))
                elif kind == "impl_item":
                    attribute = next(
                        (attr for attr in attributes if attr.name == PROCESS_ATTRIBUTE), None
                    )
                    if attribute is None:
                        continue
                    missing = [key for key in REQUIRED_KEYS if not attribute.arguments.get(key)]
                    if missing:
                        incomplete.append(f"{source_file} (missing {', '.join(missing)})")
                        continue
                    candidates.append(_Candidate(source_file, item, attribute))

        if not candidates:
            detail = f"; incomplete annotations: {', '.join(incomplete)}" if incomplete else ""
            raise MissingAnnotationError(
                f"No #[{PROCESS_ATTRIBUTE}] implementation found in project '{project.name}'{detail}"
            )
        if len(candidates) > 1:
            locations = ", ".join(candidate.source_file for candidate in candidates)
            raise AmbiguousDefinitionError(
                f"Project '{project.name}' has {len(candidates)} #[{PROCESS_ATTRIBUTE}] "
                f"implementations ({locations})"
            )

        candidate = candidates[0]
        body = candidate.node.child_by_field_name("body")
        signatures, skipped = self.extractor.extract(body) if body is not None else ([], [])

        seen: Dict[str, int] = {}
        for signature in signatures:
            seen[signature.name] = seen.get(signature.name, 0) + 1
        duplicates = sorted(name for name, count in seen.items() if count > 1)
        if duplicates:
            raise AmbiguousDefinitionError(
                f"Project '{project.name}' exposes duplicate functions: {', '.join(duplicates)}"
            )

        state_node = candidate.node.child_by_field_name("type")
        state_type = (
            type_expr_from_node(state_node)
            if state_node is not None
            else TypeExpr.unsupported("")
        )
        process = ProcessDefinition(
            name=candidate.attribute.arguments["name"],
            state_type=state_type,
            wit_world=candidate.attribute.arguments["wit_world"],
            exposed_functions=tuple(signatures),
            project=project.name,
            source_file=candidate.source_file,
        )
        logger.debug(
            "Indexed process %s from %s with %d exposed functions",
            process.name,
            candidate.source_file,
            len(signatures),
        )
        return ProjectIndex(
            project=project,
            process=process,
            declarations=declarations,
            skipped=skipped,
        )

    @staticmethod
    def _declare(declarations: Dict[str, TypeDecl], declaration: TypeDecl) -> None:
        existing = declarations.get(declaration.name)
        if existing is not None:
            logger.debug(
                "Ignoring duplicate declaration of %s in %s (first seen in %s)",
                declaration.name,
                declaration.source_file,
                existing.source_file,
            )
            return
        declarations[declaration.name] = declaration


__all__ = ["PROCESS_ATTRIBUTE", "ProjectIndex", "SourceIndexer"]
