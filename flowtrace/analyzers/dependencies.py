"""Cross-project service dependency graph construction."""

from __future__ import annotations

from typing import Optional, Sequence

from ..logging import get_logger
from ..markers import DEFAULT_MARKERS, MarkerTable
from ..models import (
    ClassRecord,
    DependencyType,
    FieldRecord,
    ProjectStructure,
    ServiceDependency,
    ServiceDependencyGraph,
    ServiceNode,
)
from .entrypoints import clean_attribute


def strip_generics(type_name: str) -> str:
    return type_name.split("<", 1)[0].strip()


class ServiceDependencyAnalyzer:
    """Links injected remote references to the projects that provide them.

    The first pass registers every project as a service node and indexes the
    interfaces its RPC providers implement. The second pass walks every field
    of every class and records DUBBO, FEIGN and MQ dependencies, resolving the
    target service through the interface index built in the first pass.
    """

    def __init__(self, markers: MarkerTable = DEFAULT_MARKERS) -> None:
        self.markers = markers
        self.logger = get_logger("analyzers.dependencies")

    def analyze(self, structures: Sequence[ProjectStructure]) -> ServiceDependencyGraph:
        self.logger.info("Analyzing service dependencies across %d projects", len(structures))
        graph = ServiceDependencyGraph()

        for structure in structures:
            node = self._service_node(structure)
            graph.add_service(node)
            self.logger.info(
                "Service %s provides %d interfaces",
                node.service_name,
                len(node.provided_interfaces),
            )

        for structure in structures:
            self._analyze_fields(structure, graph)

        self.logger.info(
            "Dependency analysis finished: %d services, %d dependencies",
            len(graph.services),
            len(graph.dependencies),
        )
        return graph

    # ------------------------------------------------------------------
    # Pass 1

    def _service_node(self, structure: ProjectStructure) -> ServiceNode:
        node = ServiceNode(service_name=structure.project_name)
        for record in structure.classes.values():
            if not record.has_annotation(*self.markers.rpc_provider):
                continue
            for interface_name in record.interfaces:
                node.add_provided_interface(record.qualify(strip_generics(interface_name)))
        return node

    # ------------------------------------------------------------------
    # Pass 2

    def _analyze_fields(self, structure: ProjectStructure, graph: ServiceDependencyGraph) -> None:
        service_name = structure.project_name
        source_node = graph.get_service(service_name)
        for record in structure.classes.values():
            for field_record in record.fields:
                dependency = self._field_dependency(structure, record, field_record, graph)
                if dependency is None:
                    continue
                graph.add_dependency(dependency)
                if source_node is not None:
                    source_node.add_required_interface(dependency.interface_name)
                self.logger.debug(
                    "%s dependency: %s -> %s (%s)",
                    dependency.type.value,
                    service_name,
                    dependency.interface_name,
                    dependency.target_service or "unresolved",
                )

    def _field_dependency(
        self,
        structure: ProjectStructure,
        record: ClassRecord,
        field_record: FieldRecord,
        graph: ServiceDependencyGraph,
    ) -> Optional[ServiceDependency]:
        declared = strip_generics(field_record.type)

        if field_record.has_annotation(*self.markers.rpc_reference):
            return self._dependency(
                structure, record, field_record, record.qualify(declared), DependencyType.DUBBO, graph
            )

        if field_record.has_annotation(*self.markers.http_client):
            return self._dependency(
                structure, record, field_record, record.qualify(declared), DependencyType.FEIGN, graph
            )

        client = self.feign_client_interface(structure, record, declared)
        if client is not None:
            dependency = self._dependency(
                structure, record, field_record, client.full_class_name, DependencyType.FEIGN, graph
            )
            if dependency.target_service is None:
                dependency.target_service = self._feign_target(client)
            return dependency

        if self.markers.is_mq_producer_type(declared):
            return ServiceDependency(
                source_service=structure.project_name,
                source_class=record.full_class_name,
                source_field=field_record.name,
                interface_name=declared,
                type=DependencyType.MQ,
            )
        return None

    def feign_client_interface(
        self, structure: ProjectStructure, record: ClassRecord, type_name: str
    ) -> Optional[ClassRecord]:
        """Return the same-project HTTP client interface a field type refers to."""
        candidate = structure.classes.get(record.qualify(type_name))
        if candidate is None or not candidate.is_interface:
            return None
        if not candidate.has_annotation(*self.markers.http_client):
            return None
        return candidate

    def _feign_target(self, client: ClassRecord) -> Optional[str]:
        for annotation in client.annotations:
            if not any(annotation.matches(marker) for marker in self.markers.http_client):
                continue
            for attribute in ("name", "value"):
                target = clean_attribute(annotation.get(attribute))
                if target:
                    return target
        return None

    @staticmethod
    def _dependency(
        structure: ProjectStructure,
        record: ClassRecord,
        field_record: FieldRecord,
        interface_name: str,
        dependency_type: DependencyType,
        graph: ServiceDependencyGraph,
    ) -> ServiceDependency:
        target = graph.find_service_by_interface(interface_name)
        return ServiceDependency(
            source_service=structure.project_name,
            source_class=record.full_class_name,
            source_field=field_record.name,
            interface_name=interface_name,
            type=dependency_type,
            target_service=target.service_name if target is not None else None,
        )


__all__ = ["ServiceDependencyAnalyzer", "strip_generics"]
