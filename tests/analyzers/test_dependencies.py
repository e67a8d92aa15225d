"""Tests for the cross-project service dependency graph."""

from __future__ import annotations

from flowtrace.analyzers.dependencies import ServiceDependencyAnalyzer, strip_generics
from flowtrace.analyzers.java_source import JavaSourceParser
from flowtrace.models import DependencyType, ProjectStructure

INVENTORY_IMPL = """
package com.shop.inventory;

import com.shop.inventory.api.StockApi;

@DubboService
public class InventoryServiceImpl implements InventoryService, com.shop.inventory.api.StockApi {
    public int checkStock(String sku) { return 0; }
}
"""

ORDER_SERVICE = """
package com.shop.order;

public class OrderService {
    @DubboReference
    private com.shop.inventory.InventoryService inventoryService;

    @Reference(check = false)
    private PaymentService paymentService;

    @FeignClient(name = "user-service")
    private UserClient userClient;

    @Autowired
    private MailClient mailClient;

    private KafkaTemplate<String, String> kafkaTemplate;

    private String plain;

    public void place() {}
}
"""

MAIL_CLIENT = """
package com.shop.order;

@FeignClient(name = "mail-service")
public interface MailClient {
    void send(String to);
}
"""


def _structure(name: str, *sources: str) -> ProjectStructure:
    parser = JavaSourceParser()
    structure = ProjectStructure(project_name=name, project_path=f"/work/{name}")
    for source in sources:
        record = parser.parse_source(source)
        assert record is not None
        structure.add_class(record)
    return structure


def test_providers_are_indexed_by_qualified_interface() -> None:
    inventory = _structure("inventory-service", INVENTORY_IMPL)

    graph = ServiceDependencyAnalyzer().analyze([inventory])

    node = graph.get_service("inventory-service")
    assert node is not None
    assert node.provided_interfaces == [
        "com.shop.inventory.InventoryService",
        "com.shop.inventory.api.StockApi",
    ]
    assert graph.find_service_by_interface("com.shop.inventory.InventoryService") is node
    assert graph.find_service_by_interface("InventoryService") is None


def test_field_dependencies_resolve_targets() -> None:
    inventory = _structure("inventory-service", INVENTORY_IMPL)
    orders = _structure("order-service", ORDER_SERVICE, MAIL_CLIENT)

    graph = ServiceDependencyAnalyzer().analyze([orders, inventory])

    deps = {dep.source_field: dep for dep in graph.find_dependencies("order-service")}
    assert list(deps) == [
        "inventoryService",
        "paymentService",
        "userClient",
        "mailClient",
        "kafkaTemplate",
    ]

    inventory_dep = deps["inventoryService"]
    assert inventory_dep.type is DependencyType.DUBBO
    assert inventory_dep.interface_name == "com.shop.inventory.InventoryService"
    assert inventory_dep.target_service == "inventory-service"
    assert inventory_dep.source_class == "com.shop.order.OrderService"

    payment_dep = deps["paymentService"]
    assert payment_dep.type is DependencyType.DUBBO
    assert payment_dep.interface_name == "com.shop.order.PaymentService"
    assert payment_dep.target_service is None

    assert deps["userClient"].type is DependencyType.FEIGN
    assert deps["userClient"].interface_name == "com.shop.order.UserClient"

    mail_dep = deps["mailClient"]
    assert mail_dep.type is DependencyType.FEIGN
    assert mail_dep.interface_name == "com.shop.order.MailClient"
    assert mail_dep.target_service == "mail-service"

    kafka_dep = deps["kafkaTemplate"]
    assert kafka_dep.type is DependencyType.MQ
    assert kafka_dep.interface_name == "KafkaTemplate"
    assert kafka_dep.target_service is None


def test_required_interfaces_are_recorded() -> None:
    inventory = _structure("inventory-service", INVENTORY_IMPL)
    orders = _structure("order-service", ORDER_SERVICE, MAIL_CLIENT)

    graph = ServiceDependencyAnalyzer().analyze([inventory, orders])

    node = graph.get_service("order-service")
    assert node.required_interfaces[0] == "com.shop.inventory.InventoryService"
    assert "KafkaTemplate" in node.required_interfaces


def test_field_dependency_lookup() -> None:
    inventory = _structure("inventory-service", INVENTORY_IMPL)
    orders = _structure("order-service", ORDER_SERVICE, MAIL_CLIENT)
    graph = ServiceDependencyAnalyzer().analyze([inventory, orders])

    dep = graph.find_field_dependency("order-service", "com.shop.order.OrderService", "inventoryService")

    assert dep is not None
    assert dep.target_service == "inventory-service"
    assert graph.find_field_dependency("order-service", "com.shop.order.OrderService", "plain") is None


def test_later_providers_overwrite_index() -> None:
    first = _structure("inventory-v1", INVENTORY_IMPL)
    second = _structure("inventory-v2", INVENTORY_IMPL)

    graph = ServiceDependencyAnalyzer().analyze([first, second])

    provider = graph.find_service_by_interface("com.shop.inventory.InventoryService")
    assert provider.service_name == "inventory-v2"
    assert len(graph.services) == 2


def test_strip_generics() -> None:
    assert strip_generics("KafkaTemplate<String, Event>") == "KafkaTemplate"
    assert strip_generics(" Plain ") == "Plain"
