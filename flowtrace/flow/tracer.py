"""Depth- and cycle-bounded call tree tracing from a single entry point."""

from __future__ import annotations

import uuid
from typing import List, Optional, Tuple

from ..config import DEFAULT_MAX_DEPTH
from ..logging import get_logger
from ..models import (
    CallChain,
    CallNode,
    CallType,
    ClassRecord,
    DependencyType,
    EntryPoint,
    MethodRecord,
    ProjectStructure,
    ServiceDependency,
    ServiceDependencyGraph,
)

MQ_CONSUMERS = "MQ consumers"

_CALL_TYPES = {
    DependencyType.DUBBO: CallType.DUBBO,
    DependencyType.FEIGN: CallType.FEIGN,
    DependencyType.HTTP: CallType.FEIGN,
    DependencyType.MQ: CallType.MQ,
}


def method_key(record: ClassRecord, method: MethodRecord) -> str:
    return f"{record.full_class_name}.{method.name}"


def called_name(expression: str) -> str:
    """Return the invoked method name of a call expression without arguments."""
    name = expression.rsplit(".", 1)[-1]
    return name.split("(", 1)[0].strip()


class BusinessFlowTracer:
    """Builds a call tree by following call expressions through a project.

    Local calls are resolved heuristically by simple method name: the first
    method with that name in structure order is taken, regardless of the
    receiver's declared type. Calls through fields that hold remote references
    become leaf nodes naming the providing service.
    """

    def __init__(self) -> None:
        self.logger = get_logger("flow.tracer")

    def trace(
        self,
        entry_point: EntryPoint,
        structure: ProjectStructure,
        graph: ServiceDependencyGraph,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> CallChain:
        self.logger.info(
            "Tracing %s.%s (max depth %d)",
            entry_point.class_name,
            entry_point.method_name,
            max_depth,
        )
        chain = CallChain(chain_id=str(uuid.uuid4()), entry_point=entry_point)

        record = structure.classes.get(entry_point.class_name)
        if record is None:
            self.logger.warning("Entry class not found: %s", entry_point.class_name)
            return chain
        method = record.find_method(entry_point.method_name, entry_point.method_signature)
        if method is None:
            self.logger.warning(
                "Entry method not found: %s.%s", entry_point.class_name, entry_point.method_name
            )
            return chain

        chain.root = self._expand(method, record, structure, graph, 0, max_depth, [])
        chain.nodes = list(chain.root.walk())
        self.logger.info(
            "Trace finished: %d nodes, depth %d", len(chain.nodes), chain.max_depth
        )
        return chain

    # ------------------------------------------------------------------
    # Internal helpers

    def _expand(
        self,
        method: MethodRecord,
        record: ClassRecord,
        structure: ProjectStructure,
        graph: ServiceDependencyGraph,
        depth: int,
        max_depth: int,
        path: List[str],
    ) -> CallNode:
        node = CallNode(
            service=structure.project_name,
            class_name=record.full_class_name,
            method=method.signature,
            type=CallType.LOCAL,
            depth=depth,
        )
        if depth >= max_depth:
            self.logger.debug("Max depth reached at %s", method_key(record, method))
            return node

        path.append(method_key(record, method))
        try:
            for expression in method.called_methods:
                remote = self._remote_dependency(expression, record, structure, graph)
                if remote is not None:
                    node.add_child(self._remote_node(remote, expression, depth + 1))
                    continue

                target = self._find_local(expression, structure)
                if target is None:
                    continue
                next_record, next_method = target
                key = method_key(next_record, next_method)
                if key in path:
                    self.logger.debug("Cycle detected at %s", key)
                    continue
                node.add_child(
                    self._expand(
                        next_method, next_record, structure, graph, depth + 1, max_depth, path
                    )
                )
        finally:
            path.pop()
        return node

    def _remote_dependency(
        self,
        expression: str,
        record: ClassRecord,
        structure: ProjectStructure,
        graph: ServiceDependencyGraph,
    ) -> Optional[ServiceDependency]:
        if expression.startswith("this."):
            expression = expression[len("this.") :]
        if "." not in expression:
            return None
        field_name = expression.split(".", 1)[0]
        if record.find_field(field_name) is None:
            return None
        return graph.find_field_dependency(
            structure.project_name, record.full_class_name, field_name
        )

    @staticmethod
    def _remote_node(dependency: ServiceDependency, expression: str, depth: int) -> CallNode:
        call_type = _CALL_TYPES[dependency.type]
        service = dependency.target_service
        if not service:
            if call_type is CallType.MQ:
                service = MQ_CONSUMERS
            else:
                service = dependency.interface_name.rsplit(".", 1)[-1]
        return CallNode(
            service=service,
            class_name=dependency.interface_name,
            method=called_name(expression),
            type=call_type,
            depth=depth,
        )

    @staticmethod
    def _find_local(
        expression: str, structure: ProjectStructure
    ) -> Optional[Tuple[ClassRecord, MethodRecord]]:
        name = called_name(expression)
        if not name:
            return None
        for record in structure.classes.values():
            method = record.find_method(name)
            if method is not None:
                return record, method
        return None


__all__ = ["BusinessFlowTracer", "MQ_CONSUMERS", "called_name", "method_key"]
