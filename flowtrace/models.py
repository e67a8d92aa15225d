"""Core data models shared across flowtrace components."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


# ---------------------------------------------------------------------------
# Source structure
# ---------------------------------------------------------------------------


@dataclass
class AnnotationRecord:
    """Annotation as written in source, with raw attribute text."""

    name: str
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    def matches(self, marker: str) -> bool:
        return self.name == marker or self.name.endswith("." + marker)

    def get(self, key: str) -> Optional[str]:
        return self.attributes.get(key)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "attributes": dict(self.attributes)}


def _has_annotation(annotations: List[AnnotationRecord], markers: tuple[str, ...]) -> bool:
    return any(ann.matches(marker) for ann in annotations for marker in markers)


@dataclass
class FieldRecord:
    """Declared field of a class; the first declarator wins for multi-variable fields."""

    name: str
    type: str
    annotations: List[AnnotationRecord] = field(default_factory=list)

    def has_annotation(self, *markers: str) -> bool:
        return _has_annotation(self.annotations, markers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "annotations": [ann.to_dict() for ann in self.annotations],
        }


@dataclass
class MethodRecord:
    """Declared method with the verbatim call expressions found in its body."""

    name: str
    parameters: List[str] = field(default_factory=list)
    return_type: str = "void"
    annotations: List[AnnotationRecord] = field(default_factory=list)
    is_public: bool = False
    is_static: bool = False
    signature: str = ""
    called_methods: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.signature:
            self.signature = f"{self.name}({', '.join(self.parameters)})"

    def has_annotation(self, *markers: str) -> bool:
        return _has_annotation(self.annotations, markers)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "parameters": list(self.parameters),
            "return_type": self.return_type,
            "annotations": [ann.to_dict() for ann in self.annotations],
            "is_public": self.is_public,
            "is_static": self.is_static,
            "signature": self.signature,
            "called_methods": list(self.called_methods),
        }


@dataclass
class ClassRecord:
    """Structural record for the first top-level type declared in a source file."""

    class_name: str
    package_name: Optional[str] = None
    full_class_name: str = ""
    annotations: List[AnnotationRecord] = field(default_factory=list)
    fields: List[FieldRecord] = field(default_factory=list)
    methods: List[MethodRecord] = field(default_factory=list)
    super_class: Optional[str] = None
    interfaces: List[str] = field(default_factory=list)
    is_interface: bool = False
    is_abstract: bool = False
    file_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.full_class_name:
            self.full_class_name = (
                f"{self.package_name}.{self.class_name}" if self.package_name else self.class_name
            )

    def has_annotation(self, *markers: str) -> bool:
        return _has_annotation(self.annotations, markers)

    def find_method(self, name: str, signature: Optional[str] = None) -> Optional[MethodRecord]:
        """Return the method with this signature, else the first one with this name."""
        if signature:
            for method in self.methods:
                if method.signature == signature:
                    return method
        for method in self.methods:
            if method.name == name:
                return method
        return None

    def find_field(self, name: str) -> Optional[FieldRecord]:
        for field_record in self.fields:
            if field_record.name == name:
                return field_record
        return None

    def qualify(self, type_name: str) -> str:
        """Resolve a type name against this class's package when it is not dotted."""
        if "." in type_name:
            return type_name
        if self.package_name:
            return f"{self.package_name}.{type_name}"
        return type_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_name": self.class_name,
            "package_name": self.package_name,
            "full_class_name": self.full_class_name,
            "annotations": [ann.to_dict() for ann in self.annotations],
            "fields": [item.to_dict() for item in self.fields],
            "methods": [item.to_dict() for item in self.methods],
            "super_class": self.super_class,
            "interfaces": list(self.interfaces),
            "is_interface": self.is_interface,
            "is_abstract": self.is_abstract,
            "file_path": self.file_path,
        }


@dataclass
class ModuleInfo:
    """Build module metadata used for reporting."""

    name: str
    path: str
    package_count: int = 0
    class_count: int = 0
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "package_count": self.package_count,
            "class_count": self.class_count,
            "description": self.description,
        }


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


class EntryType(str, Enum):
    HTTP = "HTTP"
    RPC = "RPC"
    SCHEDULED = "SCHEDULED"
    MQ = "MQ"
    OTHER = "OTHER"


@dataclass
class EntryPoint:
    """A method classified as an externally reachable trigger of a service."""

    type: EntryType
    class_name: str
    method_name: str
    method_signature: str
    path: Optional[str] = None
    http_method: Optional[str] = None
    direct_calls: List[str] = field(default_factory=list)
    annotations: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None

    @property
    def label(self) -> str:
        if self.type is EntryType.HTTP and self.http_method:
            return f"{self.http_method} {self.path}"
        return self.path or self.method_signature

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "path": self.path,
            "http_method": self.http_method,
            "class_name": self.class_name,
            "method_name": self.method_name,
            "method_signature": self.method_signature,
            "direct_calls": list(self.direct_calls),
            "annotations": dict(self.annotations),
            "description": self.description,
        }


@dataclass
class EntryPointMatch:
    """Ranked keyword match for an entry point."""

    entry_point: EntryPoint
    relevance_score: int
    project_name: str
    match_reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_point": self.entry_point.to_dict(),
            "relevance_score": self.relevance_score,
            "project_name": self.project_name,
            "match_reasons": list(self.match_reasons),
        }


@dataclass
class ProjectStructure:
    """Structural index of one scanned codebase."""

    project_name: str
    project_path: str
    modules: List[ModuleInfo] = field(default_factory=list)
    classes: Dict[str, ClassRecord] = field(default_factory=dict)
    entry_points: List[EntryPoint] = field(default_factory=list)

    def add_class(self, record: ClassRecord) -> bool:
        """Register a class by FQCN; the first registration wins."""
        if record.full_class_name in self.classes:
            return False
        self.classes[record.full_class_name] = record
        return True

    def add_entry_point(self, entry_point: EntryPoint) -> None:
        self.entry_points.append(entry_point)

    def statistics(self) -> Dict[str, Any]:
        by_type = Counter(entry.type.value for entry in self.entry_points)
        return {
            "module_count": len(self.modules),
            "class_count": len(self.classes),
            "entry_point_count": len(self.entry_points),
            "entry_type_count": dict(sorted(by_type.items())),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_name": self.project_name,
            "project_path": self.project_path,
            "modules": [module.to_dict() for module in self.modules],
            "classes": sorted(self.classes),
            "entry_points": [entry.to_dict() for entry in self.entry_points],
            "statistics": self.statistics(),
        }


# ---------------------------------------------------------------------------
# Service dependency graph
# ---------------------------------------------------------------------------


class DependencyType(str, Enum):
    DUBBO = "DUBBO"
    FEIGN = "FEIGN"
    HTTP = "HTTP"
    MQ = "MQ"


@dataclass
class ServiceNode:
    """A scanned codebase viewed as one deployable service."""

    service_name: str
    provided_interfaces: List[str] = field(default_factory=list)
    required_interfaces: List[str] = field(default_factory=list)

    def add_provided_interface(self, interface_name: str) -> None:
        if interface_name not in self.provided_interfaces:
            self.provided_interfaces.append(interface_name)

    def add_required_interface(self, interface_name: str) -> None:
        if interface_name not in self.required_interfaces:
            self.required_interfaces.append(interface_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service_name": self.service_name,
            "provided_interfaces": list(self.provided_interfaces),
            "required_interfaces": list(self.required_interfaces),
        }


@dataclass
class ServiceDependency:
    """Directed edge from an injected remote reference to its providing service."""

    source_service: str
    source_class: str
    source_field: str
    interface_name: str
    type: DependencyType
    target_service: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_service": self.source_service,
            "source_class": self.source_class,
            "source_field": self.source_field,
            "interface_name": self.interface_name,
            "type": self.type.value,
            "target_service": self.target_service,
        }


@dataclass
class ServiceDependencyGraph:
    """Bidirectional lookup between services, provided interfaces and dependencies."""

    services: Dict[str, ServiceNode] = field(default_factory=dict)
    interface_index: Dict[str, ServiceNode] = field(default_factory=dict)
    dependencies: List[ServiceDependency] = field(default_factory=list)

    def add_service(self, service: ServiceNode) -> None:
        self.services[service.service_name] = service
        for interface_name in service.provided_interfaces:
            self.interface_index[interface_name] = service

    def add_dependency(self, dependency: ServiceDependency) -> None:
        self.dependencies.append(dependency)

    def find_dependencies(self, service_name: str) -> List[ServiceDependency]:
        return [dep for dep in self.dependencies if dep.source_service == service_name]

    def find_service_by_interface(self, interface_name: str) -> Optional[ServiceNode]:
        return self.interface_index.get(interface_name)

    def get_service(self, service_name: str) -> Optional[ServiceNode]:
        return self.services.get(service_name)

    def find_field_dependency(
        self, service_name: str, class_name: str, field_name: str
    ) -> Optional[ServiceDependency]:
        for dep in self.dependencies:
            if (
                dep.source_service == service_name
                and dep.source_class == class_name
                and dep.source_field == field_name
            ):
                return dep
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "services": [node.to_dict() for node in self.services.values()],
            "dependencies": [dep.to_dict() for dep in self.dependencies],
        }


# ---------------------------------------------------------------------------
# Call chains
# ---------------------------------------------------------------------------


class CallType(str, Enum):
    LOCAL = "LOCAL"
    DUBBO = "DUBBO"
    FEIGN = "FEIGN"
    MQ = "MQ"


@dataclass
class CallNode:
    """One invocation in a traced call tree; parents own their children."""

    service: str
    class_name: str
    method: str
    type: CallType
    depth: int
    children: List["CallNode"] = field(default_factory=list)

    def add_child(self, child: Optional["CallNode"]) -> None:
        if child is not None:
            self.children.append(child)

    def walk(self) -> Iterator["CallNode"]:
        """Yield this node and its descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "class_name": self.class_name,
            "method": self.method,
            "type": self.type.value,
            "depth": self.depth,
            "children": [child.to_dict() for child in self.children],
        }


def _depth_below(node: Optional[CallNode]) -> int:
    if node is None or not node.children:
        return 0
    return 1 + max(_depth_below(child) for child in node.children)


@dataclass
class CallChain:
    """Traced call tree for a single entry point."""

    chain_id: str
    entry_point: EntryPoint
    root: Optional[CallNode] = None
    nodes: List[CallNode] = field(default_factory=list)

    @property
    def max_depth(self) -> int:
        return _depth_below(self.root)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_id": self.chain_id,
            "entry_point": self.entry_point.to_dict(),
            "root": self.root.to_dict() if self.root else None,
            "node_count": len(self.nodes),
            "max_depth": self.max_depth,
        }


__all__ = [
    "AnnotationRecord",
    "CallChain",
    "CallNode",
    "CallType",
    "ClassRecord",
    "DependencyType",
    "EntryPoint",
    "EntryPointMatch",
    "EntryType",
    "FieldRecord",
    "MethodRecord",
    "ModuleInfo",
    "ProjectStructure",
    "ServiceDependency",
    "ServiceDependencyGraph",
    "ServiceNode",
]
