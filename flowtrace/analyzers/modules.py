"""Build module discovery for Maven and Gradle projects."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from ..logging import get_logger
from ..models import ModuleInfo

SOURCE_ROOT = Path("src") / "main" / "java"

_GRADLE_SETTINGS = ("settings.gradle", "settings.gradle.kts")
_GRADLE_INCLUDE = re.compile(r"^\s*include\s*\(?(?P<args>.+?)\)?\s*$")
_GRADLE_NAME = re.compile(r"['\"]([^'\"]+)['\"]")


class ModuleReader:
    """Reads build descriptors to partition a project into modules."""

    def __init__(self) -> None:
        self.logger = get_logger("analyzers.modules")

    def read_modules(self, root: Path) -> List[ModuleInfo]:
        """Return module descriptors; a project without sub-modules is a single module."""
        pom = root / "pom.xml"
        if pom.exists():
            modules = self._maven_modules(root, pom)
            if modules:
                return modules

        for settings_name in _GRADLE_SETTINGS:
            settings = root / settings_name
            if settings.exists():
                modules = self._gradle_modules(root, settings)
                if modules:
                    return modules

        return [self._single_module(root)]

    # ------------------------------------------------------------------
    # Maven

    def _maven_modules(self, root: Path, pom: Path) -> List[ModuleInfo]:
        document = self._parse_pom(pom)
        if document is None:
            return []

        sub_modules = _pom_module_names(document)
        if not sub_modules:
            module = self._module_from_pom(document, root)
            self.logger.info("Detected single-module Maven project: %s", module.name)
            return [module]

        self.logger.info("Detected multi-module Maven project with %d modules", len(sub_modules))
        modules: List[ModuleInfo] = []
        for name in sub_modules:
            module_path = root / name
            module_pom = module_path / "pom.xml"
            if not module_pom.exists():
                self.logger.warning("Sub-module pom.xml not found: %s", module_path)
                continue
            module_document = self._parse_pom(module_pom)
            if module_document is None:
                modules.append(self._single_module(module_path))
                continue
            modules.append(self._module_from_pom(module_document, module_path))
        return modules

    def _parse_pom(self, pom: Path) -> Optional[ET.Element]:
        try:
            return ET.fromstring(pom.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ET.ParseError) as exc:
            self.logger.warning("Failed to parse %s: %s", pom, exc)
            return None

    def _module_from_pom(self, document: ET.Element, module_path: Path) -> ModuleInfo:
        namespace = _detect_xml_namespace(document)
        artifact_id = document.findtext(_tag("artifactId", namespace), default="").strip()
        description = document.findtext(_tag("name", namespace), default="").strip() or None
        return ModuleInfo(
            name=artifact_id or module_path.name,
            path=str(module_path),
            package_count=count_packages(module_path),
            class_count=count_source_files(module_path),
            description=description,
        )

    # ------------------------------------------------------------------
    # Gradle

    def _gradle_modules(self, root: Path, settings: Path) -> List[ModuleInfo]:
        includes = _gradle_includes(settings)
        if not includes:
            return []
        self.logger.info("Detected multi-module Gradle project with %d modules", len(includes))
        modules: List[ModuleInfo] = []
        for include in includes:
            module_path = root / include
            if not module_path.is_dir():
                self.logger.warning("Included Gradle module not found: %s", module_path)
                continue
            modules.append(
                ModuleInfo(
                    name=module_path.name,
                    path=str(module_path),
                    package_count=count_packages(module_path),
                    class_count=count_source_files(module_path),
                    description=None,
                )
            )
        return modules

    # ------------------------------------------------------------------

    def _single_module(self, path: Path) -> ModuleInfo:
        return ModuleInfo(
            name=path.name,
            path=str(path),
            package_count=count_packages(path),
            class_count=count_source_files(path),
            description="Single-module project",
        )


def count_source_files(module_path: Path) -> int:
    """Count Java files below the module's conventional source root."""
    source_root = module_path / SOURCE_ROOT
    if not source_root.is_dir():
        return 0
    return sum(1 for path in source_root.rglob("*.java") if path.is_file())


def count_packages(module_path: Path) -> int:
    """Count directories below the module's conventional source root."""
    source_root = module_path / SOURCE_ROOT
    if not source_root.is_dir():
        return 0
    return sum(1 for path in source_root.rglob("*") if path.is_dir())


def _pom_module_names(document: ET.Element) -> List[str]:
    namespace = _detect_xml_namespace(document)
    modules_element = document.find(_tag("modules", namespace))
    if modules_element is None:
        return []
    names: List[str] = []
    for element in modules_element.findall(_tag("module", namespace)):
        name = (element.text or "").strip()
        if name:
            names.append(name)
    return names


def _gradle_includes(settings: Path) -> List[str]:
    try:
        content = settings.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []
    includes: List[str] = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("//"):
            continue
        match = _GRADLE_INCLUDE.match(stripped)
        if not match:
            continue
        for name in _GRADLE_NAME.findall(match.group("args")):
            relative = name.lstrip(":").replace(":", "/")
            if relative and relative not in includes:
                includes.append(relative)
    return includes


def _detect_xml_namespace(element: ET.Element) -> str | None:
    match = re.match(r"\{(.+)}", element.tag)
    return match.group(1) if match else None


def _tag(name: str, namespace: str | None) -> str:
    return f"{{{namespace}}}{name}" if namespace else name


__all__ = ["ModuleReader", "SOURCE_ROOT", "count_packages", "count_source_files"]
