"""Call chain tracing and rendering."""

from __future__ import annotations

from .mermaid import MermaidGenerator
from .report import FlowReportRenderer
from .tracer import BusinessFlowTracer

__all__ = ["BusinessFlowTracer", "FlowReportRenderer", "MermaidGenerator"]
