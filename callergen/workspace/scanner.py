"""Workspace scanning and project discovery utilities."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Dict, Iterator, List, Sequence

from ..config import CallerGenConfig, load_config
from ..logging import get_logger
from ..models import ProjectMeta, WorkspaceManifest

MANIFEST_FILENAME = "Cargo.toml"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
    "target",
    "pkg",
}

_SOURCE_SUFFIX = ".rs"

logger = get_logger("scanner")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .callergen.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        target = rel_path
        if self.anchored or self.has_slash:
            if fnmatchcase(target, self.pattern):
                return True
            if self.directory_only and target.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in target.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def _build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
    )


def _parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = _build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def _load_ignore_rules(root: Path, exclude_paths: Sequence[str]) -> List[IgnoreRule]:
    rules = _parse_gitignore(root / ".gitignore")
    for pattern in exclude_paths:
        rule = _build_ignore_rule(pattern)
        if rule is not None:
            rules.append(rule)
    return rules


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def _iter_files(root: Path, rules: Sequence[IgnoreRule]) -> Iterator[str]:
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        filtered_dirs = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if _should_ignore(rel_path, True, rules):
                continue
            filtered_dirs.append(name)
        dirnames[:] = filtered_dirs

        for filename in sorted(filenames):
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if _should_ignore(rel_path, False, rules):
                continue
            yield rel_path


def read_manifest(path: Path) -> Dict[str, Any]:
    """Parse a Cargo manifest, returning an empty mapping when it is unreadable."""
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Skipping unreadable manifest %s: %s", path, exc)
        return {}


def component_package(data: Dict[str, Any]) -> str | None:
    """Return ``[package.metadata.component] package`` when declared."""
    package = data.get("package")
    if not isinstance(package, dict):
        return None
    metadata = package.get("metadata")
    if not isinstance(metadata, dict):
        return None
    component = metadata.get("component")
    if not isinstance(component, dict):
        return None
    value = component.get("package")
    return value if isinstance(value, str) else None


def _owning_project(rel_path: str, project_dirs: Sequence[str]) -> str | None:
    # project_dirs is sorted deepest first so nested projects claim their own files.
    for project_dir in project_dirs:
        if not project_dir:
            return project_dir
        if rel_path.startswith(f"{project_dir}/"):
            return project_dir
    return None


class ManifestScanner:
    """Walks the workspace to produce the list of Cargo projects."""

    def __init__(self, config: CallerGenConfig | None = None) -> None:
        self._config = config

    def scan(self, root: str | Path) -> WorkspaceManifest:
        """Return every project in the workspace with its Rust sources."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Workspace path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Workspace path is not a directory: {root}")

        config = self._config or load_config(root_path)
        rules = _load_ignore_rules(root_path, config.exclude_paths)
        files = list(_iter_files(root_path, rules))

        projects: Dict[str, ProjectMeta] = {}
        for rel_path in files:
            if rel_path.rsplit("/", 1)[-1] != MANIFEST_FILENAME:
                continue
            manifest_path = root_path / rel_path
            data = read_manifest(manifest_path)
            package = data.get("package")
            if not isinstance(package, dict) or not isinstance(package.get("name"), str):
                # Virtual manifests (the workspace root) are not projects.
                continue
            project_dir = rel_path.rsplit("/", 1)[0] if "/" in rel_path else ""
            projects[project_dir] = ProjectMeta(
                name=package["name"],
                root=manifest_path.parent,
                manifest_path=manifest_path,
                component_package=component_package(data),
            )

        ordered_dirs = sorted(projects, key=lambda value: (-value.count("/") - bool(value), value))
        for rel_path in files:
            if not rel_path.endswith(_SOURCE_SUFFIX):
                continue
            owner = _owning_project(rel_path, ordered_dirs)
            if owner is None:
                continue
            project = projects[owner]
            relative = rel_path[len(owner) + 1 :] if owner else rel_path
            project.source_files.append(relative)

        discovered = [projects[key] for key in sorted(projects)]
        logger.debug("Scanner discovered %d projects under %s", len(discovered), root_path)
        return WorkspaceManifest(root=root_path, projects=discovered)

    def process_projects(self, manifest: WorkspaceManifest, marker: str) -> List[ProjectMeta]:
        """Return the projects whose manifest declares the component marker."""
        return [project for project in manifest.projects if project.is_process(marker)]


__all__ = ["IgnoreRule", "ManifestScanner", "component_package", "read_manifest"]
