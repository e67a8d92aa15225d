"""Java source structure extraction and cross-service call chain tracing."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .analyzers import EntryPointRanker, ServiceDependencyAnalyzer
from .config import DEFAULT_MAX_DEPTH, FlowTraceConfig
from .flow import BusinessFlowTracer, MermaidGenerator
from .models import (
    CallChain,
    EntryPoint,
    EntryPointMatch,
    ProjectStructure,
    ServiceDependencyGraph,
)
from .orchestrator import EntryPointNotFoundError, FlowOrchestrator

__version__ = "0.1.0"


def scan_project(root_path: str | Path, *, config: Optional[FlowTraceConfig] = None) -> ProjectStructure:
    """Scan a project directory into a ProjectStructure."""
    return FlowOrchestrator().scan(root_path, config=config)


def find_entry_points(
    keywords: Iterable[str], structures: Sequence[ProjectStructure]
) -> List[EntryPointMatch]:
    """Rank entry points of the given projects against keywords."""
    return EntryPointRanker().find_by_keywords(keywords, structures)


def build_dependency_graph(structures: Sequence[ProjectStructure]) -> ServiceDependencyGraph:
    """Link remote references across independently scanned projects."""
    return ServiceDependencyAnalyzer().analyze(structures)


def trace_call_chain(
    entry_point: EntryPoint,
    owner_structure: ProjectStructure,
    graph: ServiceDependencyGraph,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> CallChain:
    """Trace the call tree reachable from an entry point."""
    return BusinessFlowTracer().trace(entry_point, owner_structure, graph, max_depth=max_depth)


def render_sequence_diagram(chain: CallChain) -> str:
    """Render a call chain as Mermaid sequence diagram text."""
    return MermaidGenerator().generate_sequence_diagram(chain)


__all__ = [
    "EntryPointNotFoundError",
    "FlowOrchestrator",
    "build_dependency_graph",
    "find_entry_points",
    "render_sequence_diagram",
    "scan_project",
    "trace_call_chain",
]
