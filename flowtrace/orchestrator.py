"""Pipeline orchestration for scan, search and trace flows."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .analyzers import (
    EntryPointClassifier,
    EntryPointRanker,
    JavaSourceParser,
    ProjectScanner,
    ServiceDependencyAnalyzer,
)
from .config import FlowTraceConfig, load_config
from .flow import BusinessFlowTracer, FlowReportRenderer, MermaidGenerator
from .logging import get_logger
from .markers import DEFAULT_MARKERS, MarkerTable
from .models import (
    CallChain,
    EntryPoint,
    EntryPointMatch,
    EntryType,
    ProjectStructure,
    ServiceDependencyGraph,
)


class EntryPointNotFoundError(LookupError):
    """Raised when a requested entry point cannot be resolved in any scanned project."""


@dataclass
class FlowResult:
    """Outcome of a trace run."""

    chain: CallChain
    structure: ProjectStructure
    graph: ServiceDependencyGraph
    diagram: str
    match: Optional[EntryPointMatch] = None


def parse_entry_reference(reference: str) -> Tuple[str, str]:
    """Split a `Class#method` reference into its class and method parts."""
    class_part, separator, method_part = reference.strip().partition("#")
    if not separator or not class_part.strip() or not method_part.strip():
        raise ValueError(f"Entry reference must look like Class#method: {reference!r}")
    return class_part.strip(), method_part.strip().split("(", 1)[0]


class FlowOrchestrator:
    """Coordinates scanning, dependency analysis, search and tracing."""

    def __init__(
        self,
        parser: JavaSourceParser | None = None,
        tracer: BusinessFlowTracer | None = None,
        generator: MermaidGenerator | None = None,
        renderer: FlowReportRenderer | None = None,
        ranker: EntryPointRanker | None = None,
    ) -> None:
        self.parser = parser or JavaSourceParser()
        self.tracer = tracer or BusinessFlowTracer()
        self.generator = generator or MermaidGenerator()
        self.renderer = renderer or FlowReportRenderer(generator=self.generator)
        self.ranker = ranker or EntryPointRanker()
        self.logger = get_logger("orchestrator")
        self._configs: Dict[str, FlowTraceConfig] = {}

    # ------------------------------------------------------------------
    # Scanning

    def load_config(self, root: str | Path) -> FlowTraceConfig:
        root_path = Path(root).expanduser().resolve()
        key = str(root_path)
        if key not in self._configs:
            if root_path.is_dir():
                self._configs[key] = load_config(root_path)
            else:
                self._configs[key] = FlowTraceConfig(root=root_path)
        return self._configs[key]

    def scan(self, root: str | Path, *, config: FlowTraceConfig | None = None) -> ProjectStructure:
        """Scan one project root, honouring its .flowtrace.yml."""
        config = config or self.load_config(root)
        scanner = ProjectScanner(
            parser=self.parser,
            classifier=EntryPointClassifier(config.markers),
            exclude_fragments=config.exclude_fragments,
            workers=config.scan.workers,
        )
        structure = scanner.scan(root, project_name=config.project_name)
        self._configs.setdefault(structure.project_path, config)
        return structure

    def scan_many(self, roots: Sequence[str | Path]) -> List[ProjectStructure]:
        return [self.scan(root) for root in roots]

    # ------------------------------------------------------------------
    # Analysis

    def build_graph(self, structures: Sequence[ProjectStructure]) -> ServiceDependencyGraph:
        analyzer = ServiceDependencyAnalyzer(self._markers_for(structures))
        return analyzer.analyze(structures)

    def search(
        self,
        keywords: Sequence[str],
        structures: Sequence[ProjectStructure],
        *,
        limit: Optional[int] = None,
    ) -> List[EntryPointMatch]:
        matches = self.ranker.find_by_keywords(keywords, structures)
        if limit is not None and limit >= 0:
            return matches[:limit]
        return matches

    def resolve_entry_point(
        self,
        structures: Sequence[ProjectStructure],
        *,
        entry: Optional[str] = None,
        keywords: Optional[Sequence[str]] = None,
    ) -> Tuple[EntryPoint, ProjectStructure, Optional[EntryPointMatch]]:
        """Find an entry point by `Class#method` reference or by best keyword match."""
        if entry:
            class_name, method_name = parse_entry_reference(entry)
            for structure in structures:
                for entry_point in structure.entry_points:
                    if entry_point.method_name == method_name and _class_matches(
                        entry_point.class_name, class_name
                    ):
                        return entry_point, structure, None
            # Any declared method can be traced even when it is not classified.
            for structure in structures:
                for record in structure.classes.values():
                    if not _class_matches(record.full_class_name, class_name):
                        continue
                    method = record.find_method(method_name)
                    if method is None:
                        continue
                    entry_point = EntryPoint(
                        type=EntryType.OTHER,
                        class_name=record.full_class_name,
                        method_name=method.name,
                        method_signature=method.signature,
                        direct_calls=list(method.called_methods),
                    )
                    return entry_point, structure, None
            raise EntryPointNotFoundError(f"No entry point found for {entry}")

        if keywords:
            matches = self.ranker.find_by_keywords(keywords, structures)
            if matches:
                best = matches[0]
                for structure in structures:
                    if any(item is best.entry_point for item in structure.entry_points):
                        return best.entry_point, structure, best
            raise EntryPointNotFoundError(
                f"No entry point matches keywords: {', '.join(keywords)}"
            )

        raise EntryPointNotFoundError("An entry reference or keywords are required")

    def trace(
        self,
        roots: Sequence[str | Path],
        *,
        entry: Optional[str] = None,
        keywords: Optional[Sequence[str]] = None,
        max_depth: Optional[int] = None,
    ) -> FlowResult:
        structures = self.scan_many(roots)
        graph = self.build_graph(structures)
        entry_point, structure, match = self.resolve_entry_point(
            structures, entry=entry, keywords=keywords
        )
        if max_depth is None:
            max_depth = self.load_config(structure.project_path).trace.max_depth
        chain = self.tracer.trace(entry_point, structure, graph, max_depth=max_depth)
        diagram = self.generator.generate_sequence_diagram(chain)
        return FlowResult(chain=chain, structure=structure, graph=graph, diagram=diagram, match=match)

    def render_report(self, result: FlowResult) -> str:
        return self.renderer.render(
            result.chain,
            project_name=result.structure.project_name,
            graph=result.graph,
            diagram=result.diagram,
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _markers_for(self, structures: Sequence[ProjectStructure]) -> MarkerTable:
        markers = DEFAULT_MARKERS
        for structure in structures:
            config = self._configs.get(structure.project_path)
            if config is None or config.markers is DEFAULT_MARKERS:
                continue
            markers = markers.extended(_families(config.markers))
        return markers


def _class_matches(full_class_name: str, requested: str) -> bool:
    return full_class_name == requested or full_class_name.endswith("." + requested)


def _families(markers: MarkerTable) -> Dict[str, Sequence[str]]:
    families: Dict[str, Sequence[str]] = {}
    for item in fields(markers):
        value = getattr(markers, item.name)
        families[item.name] = list(value)
    return families


__all__ = [
    "EntryPointNotFoundError",
    "FlowOrchestrator",
    "FlowResult",
    "parse_entry_reference",
]
