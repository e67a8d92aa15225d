"""Tests for Mermaid sequence diagram rendering."""

from __future__ import annotations

from flowtrace.flow.mermaid import MermaidGenerator
from flowtrace.models import CallChain, CallNode, CallType, EntryPoint, EntryType


def _entry(path: str | None = "/orders") -> EntryPoint:
    return EntryPoint(
        type=EntryType.HTTP,
        class_name="com.shop.OrderController",
        method_name="create",
        method_signature="create(OrderRequest request)",
        path=path,
        http_method="POST",
    )


def _chain() -> CallChain:
    root = CallNode("orders", "com.shop.OrderController", "create(OrderRequest request)", CallType.LOCAL, 0)
    validate = CallNode("orders", "com.shop.OrderService", "validate(Order order)", CallType.LOCAL, 1)
    stock = CallNode("inventory", "com.shop.api.StockApi", "reserve", CallType.DUBBO, 2)
    user = CallNode("users", "com.shop.api.UserClient", "find", CallType.FEIGN, 1)
    event = CallNode("MQ consumers", "KafkaTemplate", "send", CallType.MQ, 1)
    validate.add_child(stock)
    root.add_child(validate)
    root.add_child(user)
    root.add_child(event)
    chain = CallChain(chain_id="chain-1", entry_point=_entry(), root=root)
    chain.nodes = list(root.walk())
    return chain


def test_sequence_diagram_layout() -> None:
    diagram = MermaidGenerator().generate_sequence_diagram(_chain())

    assert diagram == "\n".join(
        [
            "sequenceDiagram",
            "    participant Caller",
            "    participant orders",
            "    participant inventory",
            "    participant users",
            "    participant MQ_consumers as MQ consumers",
            "    participant MQ",
            "",
            "    Caller->>orders: /orders",
            "    Note over orders: validate()",
            "    orders->>inventory: [Dubbo] StockApi",
            "    inventory-->>orders: return",
            "    orders->>users: [Feign] UserClient",
            "    users-->>orders: return",
            "    orders->>MQ: send message",
            "    MQ->>MQ_consumers: deliver message",
            "    orders-->>Caller: response",
        ]
    ) + "\n"


def test_chain_without_root_renders_header_only() -> None:
    chain = CallChain(chain_id="empty", entry_point=_entry())

    diagram = MermaidGenerator().generate_sequence_diagram(chain)

    assert diagram == "sequenceDiagram\n    participant Caller\n"


def test_entry_label_falls_back_to_signature() -> None:
    root = CallNode("jobs", "com.shop.Job", "run()", CallType.LOCAL, 0)
    chain = CallChain(chain_id="c", entry_point=_entry(path=None), root=root, nodes=[root])

    diagram = MermaidGenerator().generate_sequence_diagram(chain)

    assert "    Caller->>jobs: create(OrderRequest request)\n" in diagram
    assert "participant MQ\n" not in diagram


def test_unsafe_participant_names_get_aliases() -> None:
    root = CallNode("order-service", "com.shop.A", "a()", CallType.LOCAL, 0)
    root.add_child(CallNode("inventory-service", "com.shop.Api", "go", CallType.DUBBO, 1))
    root.add_child(CallNode("inventory_service", "com.shop.Other", "go", CallType.DUBBO, 1))
    chain = CallChain(chain_id="c", entry_point=_entry(), root=root, nodes=list(root.walk()))

    diagram = MermaidGenerator().generate_sequence_diagram(chain)

    assert "    participant order_service as order-service\n" in diagram
    assert "    participant inventory_service as inventory-service\n" in diagram
    assert "    participant inventory_service_2\n" not in diagram
    assert "    participant inventory_service_2 as inventory_service\n" in diagram
    assert "    order_service->>inventory_service: [Dubbo] Api\n" in diagram
    assert "    order_service->>inventory_service_2: [Dubbo] Other\n" in diagram


def test_rendering_is_idempotent() -> None:
    generator = MermaidGenerator()
    chain = _chain()

    assert generator.generate_sequence_diagram(chain) == generator.generate_sequence_diagram(chain)
