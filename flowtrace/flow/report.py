"""Markdown flow report rendering backed by Jinja2 templates."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from ..logging import get_logger
from ..models import CallChain, CallNode, CallType, ServiceDependencyGraph
from .mermaid import MermaidGenerator

DEFAULT_TEMPLATE = "flow_report.md.j2"


@dataclass
class CallRow:
    """Flattened call tree row for tabular rendering."""

    depth: int
    indent: str
    type: str
    service: str
    class_name: str
    method: str


class FlowReportRenderer:
    """Renders a deterministic Markdown document describing one traced chain."""

    def __init__(
        self,
        templates_dir: Path | None = None,
        *,
        generator: MermaidGenerator | None = None,
    ) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self.generator = generator or MermaidGenerator()
        self.logger = get_logger("flow.report")
        self._env = self._create_env(templates_dir)

    def render(
        self,
        chain: CallChain,
        *,
        project_name: Optional[str] = None,
        graph: ServiceDependencyGraph | None = None,
        diagram: Optional[str] = None,
    ) -> str:
        entry = chain.entry_point
        diagram_text = diagram if diagram is not None else self.generator.generate_sequence_diagram(chain)
        rows = _rows(chain.root)
        remote_services = _remote_services(chain.root)
        context: Dict[str, object] = {
            "chain": chain,
            "entry": entry,
            "entry_type": entry.type.value,
            "project_name": project_name or (chain.root.service if chain.root else None),
            "diagram": diagram_text.rstrip("\n"),
            "rows": rows,
            "remote_services": remote_services,
            "node_count": len(chain.nodes),
            "max_depth": chain.max_depth,
            "dependencies": graph.find_dependencies(project_name) if graph and project_name else [],
        }
        template = self._env.get_template(DEFAULT_TEMPLATE)
        document = template.render(**context).strip() + "\n"
        self.logger.debug("Rendered flow report for chain %s", chain.chain_id)
        return document

    def _create_env(self, templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        default_dir = str(Path(__file__).with_name("templates"))
        if default_dir not in directories:
            directories.append(default_dir)
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


def _rows(root: Optional[CallNode]) -> List[CallRow]:
    if root is None:
        return []
    return [
        CallRow(
            depth=node.depth,
            indent="&nbsp;&nbsp;" * node.depth,
            type=node.type.value,
            service=node.service,
            class_name=node.class_name,
            method=node.method,
        )
        for node in root.walk()
    ]


def _remote_services(root: Optional[CallNode]) -> List[str]:
    if root is None:
        return []
    services: List[str] = []
    for node in root.walk():
        if node.type is CallType.LOCAL:
            continue
        if node.service not in services:
            services.append(node.service)
    return services


__all__ = ["CallRow", "DEFAULT_TEMPLATE", "FlowReportRenderer"]
