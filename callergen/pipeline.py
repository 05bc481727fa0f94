"""Pipeline orchestration: scan, analyze, plan wiring, then write."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .analysis.indexer import SourceIndexer
from .analysis.typemap import TypeMapper
from .config import CallerGenConfig, load_config
from .emitters.stubs import CallerUtilsGenerator
from .emitters.wit import WitEmitter, types_world_name
from .errors import (
    AmbiguousDefinitionError,
    CallerGenError,
    DiscoveryError,
    MissingAnnotationError,
    TypeMappingError,
    WiringError,
    WorldMismatchError,
    WorldSelectionError,
)
from .logging import get_logger
from .models import ProcessDefinition, ProjectMeta, StubModule, WitInterface
from .workspace.scanner import MANIFEST_FILENAME, ManifestScanner
from .workspace.wiring import WorkspaceWiring

WORKSPACE = "<workspace>"

logger = get_logger("pipeline")


@dataclass
class Issue:
    """A skipped or failed project or function."""

    project: str
    function: Optional[str]
    kind: str
    message: str
    fatal: bool

    def describe(self) -> str:
        subject = f"{self.project}::{self.function}" if self.function else self.project
        status = "error" if self.fatal else "skipped"
        return f"{subject}: {status} [{self.kind}] {self.message}"


@dataclass
class ProjectOutput:
    """Everything generated for one process project, held until the write phase."""

    project: ProjectMeta
    process: ProcessDefinition
    interface: WitInterface
    module: StubModule


@dataclass
class RunReport:
    """Outcome of a pipeline run."""

    root: Path
    issues: List[Issue] = field(default_factory=list)
    processes: List[str] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)

    @property
    def fatal(self) -> bool:
        return any(issue.fatal for issue in self.issues)

    @property
    def exit_code(self) -> int:
        return 1 if self.fatal else 0

    def add(self, project: str, error: CallerGenError, *, function: str | None = None, fatal: bool) -> None:
        self.issues.append(
            Issue(project=project, function=function, kind=error.kind, message=str(error), fatal=fatal)
        )

    def summary(self) -> List[str]:
        lines = [f"Generated {len(self.processes)} process interface(s); {len(self.written)} file(s) written"]
        lines.extend(issue.describe() for issue in self.issues)
        return lines


class Pipeline:
    """Runs the generator over one workspace."""

    def __init__(
        self,
        config: CallerGenConfig | None = None,
        scanner: ManifestScanner | None = None,
        indexer: SourceIndexer | None = None,
        wit_emitter: WitEmitter | None = None,
        stub_generator: CallerUtilsGenerator | None = None,
    ) -> None:
        self._config = config
        self._scanner = scanner
        self.indexer = indexer or SourceIndexer()
        self.wit_emitter = wit_emitter or WitEmitter()
        self._stub_generator = stub_generator

    def run(self, root: str | Path) -> RunReport:
        """Generate interfaces and stubs for every process under ``root``.

        Nothing is written until every project is analyzed and the manifest
        edits are planned, so a wiring conflict leaves the tree untouched.
        """
        root_path = Path(root).expanduser().resolve()
        config = self._config or load_config(root_path)
        scanner = self._scanner or ManifestScanner(config)
        stub_generator = self._stub_generator or CallerUtilsGenerator(timeout=config.send_timeout)
        report = RunReport(root=root_path)

        manifest = scanner.scan(root_path)
        processes = scanner.process_projects(manifest, config.component_marker)
        if not processes:
            logger.warning("No projects marked '%s' found under %s", config.component_marker, root_path)
            return report

        outputs: List[ProjectOutput] = []
        interfaces: Dict[str, str] = {}
        for project in processes:
            output = self._analyze(project, stub_generator, report)
            if output is None:
                continue
            owner = interfaces.get(output.interface.name)
            if owner is not None:
                error = AmbiguousDefinitionError(
                    f"Interface '{output.interface.name}' is already generated by project '{owner}'"
                )
                logger.error("%s: %s", project.name, error)
                report.add(project.name, error, fatal=True)
                continue
            interfaces[output.interface.name] = project.name
            outputs.append(output)

        if not outputs:
            logger.warning("No process produced an interface; nothing to write")
            return report

        worlds = sorted({output.interface.world for output in outputs})
        if config.world and config.world not in worlds:
            error = WorldSelectionError(
                f"Configured world '{config.world}' is not used by any generated process "
                f"(found: {', '.join(worlds)})"
            )
            logger.error("%s", error)
            report.add(WORKSPACE, error, fatal=True)
            return report
        world = self._aggregator_world(config, worlds)
        for output in outputs:
            if output.interface.world != world:
                mismatch = WorldMismatchError(
                    f"Targets world '{output.interface.world}'; stubs are only generated for '{world}'"
                )
                logger.warning("%s: %s", output.project.name, mismatch)
                report.add(output.project.name, mismatch, fatal=False)

        wiring = WorkspaceWiring(config)
        try:
            graph = wiring.graph(manifest, processes)
            rendered_manifests = wiring.apply(graph, wiring.plan(graph))
        except WiringError as exc:
            logger.error("Workspace wiring failed: %s", exc)
            report.add(WORKSPACE, exc, fatal=True)
            return report

        for path, text in self._render(outputs, config, stub_generator, world).items():
            if _write_if_changed(path, text):
                report.written.append(path)
        report.written.extend(self._sync_wit(config))
        report.written.extend(wiring.write(rendered_manifests))
        report.processes = [output.process.name for output in outputs]
        return report

    def _analyze(
        self,
        project: ProjectMeta,
        stub_generator: CallerUtilsGenerator,
        report: RunReport,
    ) -> ProjectOutput | None:
        try:
            index = self.indexer.index(project)
        except MissingAnnotationError as exc:
            logger.warning("%s: %s", project.name, exc)
            report.add(project.name, exc, fatal=False)
            return None
        except DiscoveryError as exc:
            logger.error("%s: %s", project.name, exc)
            report.add(project.name, exc, fatal=True)
            return None

        for function, exc in index.skipped:
            report.add(project.name, exc, function=function, fatal=False)

        try:
            interface = self.wit_emitter.build(index.process, TypeMapper(index.declarations))
        except TypeMappingError as exc:
            logger.error("%s: %s", project.name, exc)
            report.add(project.name, exc, fatal=True)
            return None

        module = stub_generator.build(interface)
        logger.info(
            "Analyzed %s: %d exposed function(s)",
            index.process.name,
            len(index.process.exposed_functions),
        )
        return ProjectOutput(project=project, process=index.process, interface=interface, module=module)

    def _render(
        self,
        outputs: Sequence[ProjectOutput],
        config: CallerGenConfig,
        stub_generator: CallerUtilsGenerator,
        world: str,
    ) -> Dict[Path, str]:
        files: Dict[Path, str] = {}
        by_world: Dict[str, List[ProjectOutput]] = {}
        for output in outputs:
            files[config.api_path / f"{output.interface.name}.wit"] = self.wit_emitter.render(
                output.interface, output.process.name
            )
            by_world.setdefault(output.interface.world, []).append(output)

        for world, members in sorted(by_world.items()):
            files[config.api_path / f"{types_world_name(world)}.wit"] = self.wit_emitter.render_world(
                world,
                config.wit_package,
                [member.interface.name for member in members],
                config.include_worlds,
            )

        modules = [output.module for output in by_world.get(world, [])]
        aggregator = config.aggregator_path
        for module in modules:
            files[aggregator / "src" / f"{module.module}.rs"] = stub_generator.render_module(module)
        files[aggregator / "src" / "lib.rs"] = stub_generator.render_lib(
            modules, world, config.wit_package
        )
        manifest_path = aggregator / MANIFEST_FILENAME
        if not manifest_path.exists():
            files[manifest_path] = stub_generator.render_manifest(config.aggregator.name)
        return files

    @staticmethod
    def _aggregator_world(config: CallerGenConfig, worlds: Sequence[str]) -> str:
        if config.world:
            return config.world
        if len(worlds) > 1:
            logger.warning(
                "Processes target several worlds (%s); using '%s'. Set 'world' in .callergen.yml to choose.",
                ", ".join(worlds),
                worlds[0],
            )
        return worlds[0]

    @staticmethod
    def _sync_wit(config: CallerGenConfig) -> List[Path]:
        """Mirror the ``.wit`` files of the api directory into ``<aggregator>/target/wit``."""
        target = config.aggregator_path / "target" / "wit"
        target.mkdir(parents=True, exist_ok=True)
        sources = {path.name: path for path in sorted(config.api_path.glob("*.wit"))}
        written: List[Path] = []
        for stale in sorted(target.glob("*.wit")):
            if stale.name not in sources:
                stale.unlink()
                logger.debug("Removed stale %s", stale)
        for name, source in sources.items():
            destination = target / name
            if destination.exists() and destination.read_bytes() == source.read_bytes():
                continue
            shutil.copyfile(source, destination)
            written.append(destination)
        return written


def _write_if_changed(path: Path, text: str) -> bool:
    if path.exists() and path.read_text(encoding="utf-8") == text:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.info("Wrote %s", path)
    return True


__all__ = ["Issue", "Pipeline", "ProjectOutput", "RunReport"]
