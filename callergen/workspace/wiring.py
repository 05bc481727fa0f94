"""Merges the stub aggregator into the workspace and caller manifests.

Every edit is computed up front as a ``ManifestPatch`` and checked for
conflicts before anything is written. Patches are applied to the ``tomlkit``
documents held by the ``WorkspaceGraph`` so comments, ordering and
formatting of hand-written manifests survive.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.toml_document import TOMLDocument

from ..config import CallerGenConfig
from ..errors import ManifestConflictError
from ..logging import get_logger
from ..models import ProjectMeta, WorkspaceManifest
from .scanner import MANIFEST_FILENAME, read_manifest

WORKSPACE_ROOT = ""

APPEND = "append"
INSERT = "insert"

logger = get_logger("wiring")


@dataclass(frozen=True)
class ManifestPatch:
    """One structural edit of the manifest owned by ``project``.

    ``append`` adds ``value`` to the array ``table.key`` unless present;
    ``insert`` sets ``table.key`` to an inline table built from ``value``
    unless the key already exists.
    """

    project: str
    table: Tuple[str, ...]
    key: str
    value: Any
    action: str = APPEND

    def apply(self, document: TOMLDocument) -> None:
        container: Any = document
        for name in self.table:
            if name not in container:
                container[name] = tomlkit.table()
            container = container[name]

        if self.action == APPEND:
            if self.key not in container:
                container[self.key] = tomlkit.array()
            array = container[self.key]
            if self.value not in array:
                array.append(self.value)
            return

        if self.key not in container:
            entry = tomlkit.inline_table()
            entry.update(self.value)
            container[self.key] = entry

    def describe(self) -> str:
        location = ".".join([*self.table, self.key])
        owner = self.project or "workspace root"
        return f"{self.action} {self.value!r} at {location} ({owner})"


@dataclass
class WorkspaceGraph:
    """Project name to manifest mapping for one workspace.

    The root manifest is keyed by ``WORKSPACE_ROOT``. Documents are parsed on
    first use and only ``WorkspaceWiring`` mutates them.
    """

    root: Path
    aggregator_name: str
    aggregator_dir: Path
    manifests: Dict[str, Path] = field(default_factory=dict)
    callers: List[str] = field(default_factory=list)
    _documents: Dict[str, TOMLDocument] = field(default_factory=dict, repr=False)
    _originals: Dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def aggregator_member(self) -> str:
        return _relative(self.aggregator_dir, self.root)

    @property
    def crate_name(self) -> str:
        return self.aggregator_name.replace("-", "_")

    def document(self, project: str) -> TOMLDocument:
        document = self._documents.get(project)
        if document is not None:
            return document
        path = self.manifests[project]
        try:
            text = path.read_text(encoding="utf-8")
            document = tomlkit.parse(text)
        except (OSError, UnicodeDecodeError, TOMLKitError) as exc:
            raise ManifestConflictError(f"Cannot read manifest {path}: {exc}") from exc
        self._originals[project] = text
        self._documents[project] = document
        return document

    def changed(self) -> Dict[Path, str]:
        """Return the rendered text of every parsed manifest that differs from disk."""
        rendered: Dict[Path, str] = {}
        for project, document in self._documents.items():
            text = tomlkit.dumps(document)
            if text != self._originals[project]:
                rendered[self.manifests[project]] = text
        return rendered


def _relative(path: Path, start: Path) -> str:
    return Path(os.path.relpath(path, start)).as_posix()


def _normalize(member: str) -> str:
    member = member.strip().replace("\\", "/")
    while member.startswith("./"):
        member = member[2:]
    return member.rstrip("/")


def _member_matches(members: Sequence[Any], target: str) -> bool:
    for member in members:
        if isinstance(member, str) and fnmatchcase(target, _normalize(member)):
            return True
    return False


def references_crate(project: ProjectMeta, crate_name: str) -> bool:
    """Return True when any source of ``project`` mentions ``crate_name``."""
    pattern = re.compile(rf"\b{re.escape(crate_name)}\b")
    for source_file in project.source_files:
        try:
            text = (project.root / source_file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        if pattern.search(text):
            return True
    return False


class WorkspaceWiring:
    """Plans and applies the manifest edits that hook up the aggregator."""

    def __init__(self, config: CallerGenConfig) -> None:
        self.config = config

    def graph(self, manifest: WorkspaceManifest, processes: Sequence[ProjectMeta]) -> WorkspaceGraph:
        aggregator_dir = self.config.aggregator_path.resolve()
        graph = WorkspaceGraph(
            root=manifest.root,
            aggregator_name=self.config.aggregator.name,
            aggregator_dir=aggregator_dir,
        )
        root_manifest = manifest.root / MANIFEST_FILENAME
        if root_manifest.exists():
            graph.manifests[WORKSPACE_ROOT] = root_manifest
        for project in manifest.projects:
            graph.manifests.setdefault(project.name, project.manifest_path)

        for project in processes:
            if project.root.resolve() == aggregator_dir:
                continue
            if self.config.wire_all_processes or references_crate(project, graph.crate_name):
                graph.callers.append(project.name)
        logger.debug(
            "Wiring %s into %d caller project(s)", graph.aggregator_name, len(graph.callers)
        )
        return graph

    def plan(self, graph: WorkspaceGraph) -> List[ManifestPatch]:
        """Return the patches needed, raising ``ManifestConflictError`` on incompatible entries."""
        self._check_aggregator_manifest(graph)
        patches = self._plan_root(graph)
        for project in graph.callers:
            patch = self._plan_dependency(graph, project)
            if patch is not None:
                patches.append(patch)
        return patches

    def apply(self, graph: WorkspaceGraph, patches: Sequence[ManifestPatch]) -> Dict[Path, str]:
        """Apply ``patches`` to the graph documents and return the manifests whose text changed."""
        for patch in patches:
            logger.debug("Applying patch: %s", patch.describe())
            patch.apply(graph.document(patch.project))
        return graph.changed()

    def write(self, rendered: Mapping[Path, str]) -> List[Path]:
        written: List[Path] = []
        for path in sorted(rendered):
            path.write_text(rendered[path], encoding="utf-8")
            logger.info("Updated %s", path)
            written.append(path)
        return written

    def _check_aggregator_manifest(self, graph: WorkspaceGraph) -> None:
        manifest_path = graph.aggregator_dir / MANIFEST_FILENAME
        if not manifest_path.exists():
            return
        package = read_manifest(manifest_path).get("package")
        name = package.get("name") if isinstance(package, dict) else None
        if name != graph.aggregator_name:
            raise ManifestConflictError(
                f"{manifest_path} belongs to package '{name}', not '{graph.aggregator_name}'"
            )

    def _plan_root(self, graph: WorkspaceGraph) -> List[ManifestPatch]:
        if WORKSPACE_ROOT not in graph.manifests:
            logger.warning(
                "Workspace manifest not found at %s; skipping member wiring",
                graph.root / MANIFEST_FILENAME,
            )
            return []
        path = graph.manifests[WORKSPACE_ROOT]
        workspace = graph.document(WORKSPACE_ROOT).get("workspace")
        if not isinstance(workspace, Mapping):
            logger.warning("%s has no [workspace] table; skipping member wiring", path)
            return []

        member = graph.aggregator_member
        exclude = workspace.get("exclude", [])
        if isinstance(exclude, list) and _member_matches(exclude, member):
            raise ManifestConflictError(f"'{member}' is listed in workspace.exclude of {path}")

        members = workspace.get("members")
        if members is not None and not isinstance(members, list):
            raise ManifestConflictError(f"workspace.members in {path} is not an array")
        if members is not None and _member_matches(members, member):
            return []
        return [ManifestPatch(project=WORKSPACE_ROOT, table=("workspace",), key="members", value=member)]

    def _plan_dependency(self, graph: WorkspaceGraph, project: str) -> ManifestPatch | None:
        path = graph.manifests[project]
        relative = _relative(graph.aggregator_dir, path.parent)
        dependencies = graph.document(project).get("dependencies")
        if dependencies is not None and not isinstance(dependencies, Mapping):
            raise ManifestConflictError(f"[dependencies] in {path} is not a table")

        existing = dependencies.get(graph.aggregator_name) if dependencies is not None else None
        if existing is None:
            return ManifestPatch(
                project=project,
                table=("dependencies",),
                key=graph.aggregator_name,
                value={"path": relative},
                action=INSERT,
            )
        if self._compatible(existing, path.parent, graph.aggregator_dir):
            return None
        raise ManifestConflictError(
            f"{path} already declares '{graph.aggregator_name}' "
            f"as {existing!r}, expected {{ path = \"{relative}\" }}"
        )

    @staticmethod
    def _compatible(entry: Any, project_root: Path, aggregator_dir: Path) -> bool:
        if not isinstance(entry, Mapping):
            return False
        if entry.get("workspace") is True:
            return True
        path = entry.get("path")
        if not isinstance(path, str):
            return False
        return (project_root / path).resolve() == aggregator_dir


__all__ = ["ManifestPatch", "WORKSPACE_ROOT", "WorkspaceGraph", "WorkspaceWiring", "references_crate"]
