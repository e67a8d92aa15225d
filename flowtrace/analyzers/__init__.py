"""Source analyzers: parsing, aggregation, classification, ranking, dependencies."""

from __future__ import annotations

from .dependencies import ServiceDependencyAnalyzer
from .entrypoints import EntryPointClassifier
from .java_source import JavaSourceParser, SourceParseError
from .modules import ModuleReader
from .project import ProjectScanner, ScanReport
from .ranking import RELEVANCE_THRESHOLD, EntryPointRanker

__all__ = [
    "EntryPointClassifier",
    "EntryPointRanker",
    "JavaSourceParser",
    "ModuleReader",
    "ProjectScanner",
    "RELEVANCE_THRESHOLD",
    "ScanReport",
    "ServiceDependencyAnalyzer",
    "SourceParseError",
]
