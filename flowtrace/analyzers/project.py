"""Project aggregation: walk modules, parse sources, classify entry points."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..config import DEFAULT_EXCLUDE_FRAGMENTS
from ..logging import get_logger
from ..markers import DEFAULT_MARKERS, MarkerTable
from ..models import ClassRecord, ModuleInfo, ProjectStructure
from .entrypoints import EntryPointClassifier
from .java_source import JavaSourceParser, SourceParseError
from .modules import SOURCE_ROOT, ModuleReader

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".gradle",
    "node_modules",
    ".flowtrace",
}


@dataclass
class _SourceFile:
    path: Path
    relative: str
    module: str


@dataclass
class ScanReport:
    """Counters collected while scanning a project."""

    files: int = 0
    parsed: int = 0
    skipped: int = 0
    duplicates: int = 0
    entry_points: int = 0


class ProjectScanner:
    """Builds a ProjectStructure from a (possibly multi-module) source tree.

    ``exclude_fragments`` is the complete fragment list and replaces the
    defaults; ``FlowTraceConfig.exclude_fragments`` already merges configured
    extras onto them.
    """

    def __init__(
        self,
        parser: JavaSourceParser | None = None,
        classifier: EntryPointClassifier | None = None,
        module_reader: ModuleReader | None = None,
        *,
        markers: MarkerTable = DEFAULT_MARKERS,
        exclude_fragments: Sequence[str] = DEFAULT_EXCLUDE_FRAGMENTS,
        workers: int = 1,
    ) -> None:
        self.parser = parser or JavaSourceParser()
        self.classifier = classifier or EntryPointClassifier(markers)
        self.module_reader = module_reader or ModuleReader()
        self.exclude_fragments = tuple(exclude_fragments)
        self.workers = max(1, workers)
        self.logger = get_logger("analyzers.project")
        self.last_report = ScanReport()

    def scan(self, root: str | Path, *, project_name: Optional[str] = None) -> ProjectStructure:
        """Scan a project root into a structural index."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Project path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {root}")

        self.logger.info("Scanning project %s", root_path)
        structure = ProjectStructure(
            project_name=project_name or root_path.name,
            project_path=str(root_path),
        )
        structure.modules = self.module_reader.read_modules(root_path)
        if len(structure.modules) > 1:
            self.logger.info("Multi-module project with %d modules", len(structure.modules))

        sources = self._collect_sources(root_path, structure.modules)
        report = ScanReport(files=len(sources))

        for source, record in self._parse_all(sources):
            if record is None:
                continue
            report.parsed += 1
            if not structure.add_class(record):
                report.duplicates += 1
                self.logger.warning(
                    "Duplicate class %s in %s ignored", record.full_class_name, source.relative
                )
                continue
            for entry_point in self.classifier.detect(record):
                entry_point.annotations["module"] = source.module
                structure.add_entry_point(entry_point)
                report.entry_points += 1

        report.skipped = report.files - report.parsed
        self.last_report = report
        self.logger.info(
            "Scan finished: %d files, %d classes, %d entry points, %d skipped",
            report.files,
            len(structure.classes),
            report.entry_points,
            report.skipped,
        )
        self.logger.debug("Statistics: %s", structure.statistics())
        return structure

    # ------------------------------------------------------------------
    # Internal helpers

    def _collect_sources(self, root: Path, modules: Sequence[ModuleInfo]) -> List[_SourceFile]:
        seen: set[Path] = set()
        sources: List[_SourceFile] = []
        for module in modules:
            module_path = Path(module.path)
            source_root = module_path / SOURCE_ROOT
            if not source_root.is_dir():
                source_root = module_path
            count = 0
            for path in _iter_java_files(source_root):
                if path in seen:
                    continue
                relative = "/" + path.relative_to(root).as_posix()
                if any(fragment in relative for fragment in self.exclude_fragments):
                    continue
                seen.add(path)
                sources.append(_SourceFile(path=path, relative=relative, module=module.name))
                count += 1
            self.logger.info("Module %s: %d Java files", module.name, count)
        # Merge order is by path so parallel and sequential scans agree.
        sources.sort(key=lambda item: item.relative)
        return sources

    def _parse_all(
        self, sources: Sequence[_SourceFile]
    ) -> Iterator[Tuple[_SourceFile, Optional[ClassRecord]]]:
        if self.workers == 1 or len(sources) < 2:
            for source in sources:
                yield source, self._parse_one(source)
            return
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            results: Dict[int, Optional[ClassRecord]] = dict(
                enumerate(executor.map(self._parse_one, sources))
            )
        for index, source in enumerate(sources):
            yield source, results[index]

    def _parse_one(self, source: _SourceFile) -> Optional[ClassRecord]:
        try:
            return self.parser.parse_file(source.path)
        except SourceParseError as exc:
            self.logger.warning("Skipping %s: %s", source.relative, exc)
            return None


def _iter_java_files(root: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
        current_dir = Path(dirpath)
        for filename in sorted(filenames):
            if filename.endswith(".java"):
                yield current_dir / filename


__all__ = ["ProjectScanner", "ScanReport"]
