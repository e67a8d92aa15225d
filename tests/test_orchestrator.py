"""Tests for flowtrace.orchestrator and the public API."""

from __future__ import annotations

from pathlib import Path

import pytest

import flowtrace
from flowtrace.models import CallType, EntryType
from flowtrace.orchestrator import (
    EntryPointNotFoundError,
    FlowOrchestrator,
    parse_entry_reference,
)


def _build_services(project_builder) -> tuple[Path, Path]:
    orders = project_builder("order-service")
    orders.java(
        "com.shop.order.OrderController",
        """
        package com.shop.order;

        @RestController
        @RequestMapping("/orders")
        public class OrderController {
            @Autowired
            private OrderService orderService;

            @PostMapping
            public Order createOrder(OrderRequest request) {
                return orderService.place(request);
            }
        }
        """,
    )
    orders.java(
        "com.shop.order.OrderService",
        """
        package com.shop.order;

        public class OrderService {
            @DubboReference
            private com.shop.inventory.InventoryService inventoryService;

            public Order place(OrderRequest request) {
                inventoryService.reserve(request.getSku());
                return persist(request);
            }

            public Order persist(OrderRequest request) {
                return null;
            }
        }
        """,
    )
    inventory = project_builder("inventory-service")
    inventory.write({".flowtrace.yml": "project_name: inventory\n"})
    inventory.java(
        "com.shop.inventory.InventoryServiceImpl",
        """
        package com.shop.inventory;

        @DubboService
        public class InventoryServiceImpl implements InventoryService {
            public void reserve(String sku) {}
        }
        """,
    )
    return orders.path(), inventory.path()


def test_scan_honours_project_config(project_builder) -> None:
    _, inventory_root = _build_services(project_builder)

    structure = FlowOrchestrator().scan(inventory_root)

    assert structure.project_name == "inventory"
    assert [entry.type for entry in structure.entry_points] == [EntryType.RPC]


def test_trace_by_entry_reference(project_builder) -> None:
    orders_root, inventory_root = _build_services(project_builder)

    result = FlowOrchestrator().trace(
        [orders_root, inventory_root], entry="OrderController#createOrder"
    )

    assert result.structure.project_name == "order-service"
    nodes = [(node.type, node.service, node.method) for node in result.chain.nodes]
    assert nodes == [
        (CallType.LOCAL, "order-service", "createOrder(OrderRequest request)"),
        (CallType.LOCAL, "order-service", "place(OrderRequest request)"),
        (CallType.DUBBO, "inventory", "reserve"),
        (CallType.LOCAL, "order-service", "persist(OrderRequest request)"),
    ]
    assert "order_service->>inventory: [Dubbo] InventoryService" in result.diagram


def test_trace_by_keyword_uses_best_match(project_builder) -> None:
    orders_root, inventory_root = _build_services(project_builder)

    result = FlowOrchestrator().trace([inventory_root, orders_root], keywords=["order"])

    assert result.match is not None
    assert result.chain.entry_point.method_name == "createOrder"
    assert result.structure.project_name == "order-service"


def test_trace_respects_max_depth(project_builder) -> None:
    orders_root, inventory_root = _build_services(project_builder)

    result = FlowOrchestrator().trace(
        [orders_root, inventory_root], entry="com.shop.order.OrderController#createOrder", max_depth=1
    )

    assert result.chain.max_depth == 1
    assert [node.method for node in result.chain.nodes] == [
        "createOrder(OrderRequest request)",
        "place(OrderRequest request)",
    ]


def test_trace_from_unclassified_method(project_builder) -> None:
    orders_root, _ = _build_services(project_builder)

    result = FlowOrchestrator().trace([orders_root], entry="OrderService#place")

    assert result.chain.entry_point.type is EntryType.OTHER
    assert result.chain.root.method == "place(OrderRequest request)"
    dubbo = result.chain.root.children[0]
    # No provider scanned, so the interface name stands in for the service.
    assert dubbo.service == "InventoryService"


def test_unknown_entry_raises(project_builder) -> None:
    orders_root, _ = _build_services(project_builder)
    orchestrator = FlowOrchestrator()

    with pytest.raises(EntryPointNotFoundError):
        orchestrator.trace([orders_root], entry="Missing#run")
    with pytest.raises(EntryPointNotFoundError):
        orchestrator.trace([orders_root], keywords=["nothing-matches-this"])


def test_render_report(project_builder) -> None:
    orders_root, inventory_root = _build_services(project_builder)
    orchestrator = FlowOrchestrator()
    result = orchestrator.trace([orders_root, inventory_root], entry="OrderController#createOrder")

    report = orchestrator.render_report(result)

    assert "# Business flow: OrderController.createOrder" in report
    assert "```mermaid" in report
    assert "| `com.shop.order.OrderService` | inventoryService |" in report


def test_search_applies_limit(project_builder) -> None:
    orders_root, inventory_root = _build_services(project_builder)
    orchestrator = FlowOrchestrator()
    structures = orchestrator.scan_many([orders_root, inventory_root])

    assert len(orchestrator.search(["e"], structures, limit=1)) == 1


@pytest.mark.parametrize("reference", ["Order", "#run", "Order#", ""])
def test_parse_entry_reference_rejects_malformed(reference: str) -> None:
    with pytest.raises(ValueError):
        parse_entry_reference(reference)


def test_parse_entry_reference_strips_arguments() -> None:
    assert parse_entry_reference("com.shop.A#run(String)") == ("com.shop.A", "run")


def test_public_functions_compose(project_builder) -> None:
    orders_root, inventory_root = _build_services(project_builder)

    orders = flowtrace.scan_project(orders_root)
    inventory = flowtrace.scan_project(inventory_root)
    graph = flowtrace.build_dependency_graph([orders, inventory])
    matches = flowtrace.find_entry_points(["createOrder"], [orders, inventory])
    chain = flowtrace.trace_call_chain(matches[0].entry_point, orders, graph)
    diagram = flowtrace.render_sequence_diagram(chain)

    assert orders.project_name == "order-service"
    assert inventory.project_name == "inventory"
    assert graph.find_service_by_interface("com.shop.inventory.InventoryService").service_name == "inventory"
    assert diagram.startswith("sequenceDiagram\n    participant Caller\n")
    assert "[Dubbo] InventoryService" in diagram
    assert diagram == flowtrace.render_sequence_diagram(chain)
