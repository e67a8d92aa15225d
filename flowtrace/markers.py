"""Recognised annotation and type markers, grouped by the rule they drive."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Mapping, Optional, Tuple

# Route annotation name -> HTTP verb it implies (None means read the `method` attribute).
DEFAULT_ROUTE_MARKERS: Dict[str, Optional[str]] = {
    "RequestMapping": None,
    "GetMapping": "GET",
    "PostMapping": "POST",
    "PutMapping": "PUT",
    "DeleteMapping": "DELETE",
    "PatchMapping": "PATCH",
}

# Listener attribute -> tag used when recording the destination, in priority order.
MQ_DESTINATION_ATTRIBUTES: Tuple[Tuple[str, str], ...] = (
    ("queues", "Queue"),
    ("topics", "Topic"),
    ("topic", "Topic"),
    ("destination", "Destination"),
)

SCHEDULE_ATTRIBUTES: Tuple[Tuple[str, str], ...] = (
    ("cron", "Cron"),
    ("fixedRate", "Fixed rate"),
    ("fixedDelay", "Fixed delay"),
)


@dataclass(frozen=True)
class MarkerTable:
    """Lookup table mapping marker names to classification and dependency rules."""

    controller: Tuple[str, ...] = ("RestController", "Controller")
    rpc_provider: Tuple[str, ...] = ("DubboService", "Service")
    routes: Mapping[str, Optional[str]] = field(
        default_factory=lambda: dict(DEFAULT_ROUTE_MARKERS)
    )
    scheduled: Tuple[str, ...] = ("Scheduled",)
    mq_listener: Tuple[str, ...] = (
        "RabbitListener",
        "KafkaListener",
        "RocketMQMessageListener",
        "JmsListener",
    )
    # Listener markers that may annotate the consumer class instead of a method.
    mq_class_listener: Tuple[str, ...] = ("RocketMQMessageListener",)
    rpc_reference: Tuple[str, ...] = ("Reference", "DubboReference")
    http_client: Tuple[str, ...] = ("FeignClient",)
    mq_producer_types: Tuple[str, ...] = (
        "RabbitTemplate",
        "AmqpTemplate",
        "KafkaTemplate",
        "RocketMQTemplate",
        "JmsTemplate",
    )

    def route_verb(self, annotation_name: str) -> Tuple[bool, Optional[str]]:
        """Return (is_route, implied_verb) for an annotation simple name."""
        if annotation_name in self.routes:
            return True, self.routes[annotation_name]
        return False, None

    def is_mq_producer_type(self, type_name: str) -> bool:
        simple = type_name.split("<", 1)[0].strip().rsplit(".", 1)[-1]
        return simple in self.mq_producer_types

    def extended(self, extras: Mapping[str, Iterable[str]]) -> "MarkerTable":
        """Return a copy with extra names appended to the named families."""
        changes: Dict[str, object] = {}
        for family, names in extras.items():
            if family == "routes":
                merged_routes = dict(self.routes)
                for name in names:
                    merged_routes.setdefault(name, None)
                changes["routes"] = merged_routes
                continue
            current = getattr(self, family, None)
            if not isinstance(current, tuple):
                raise ValueError(f"Unknown marker family: {family}")
            merged = list(current)
            for name in names:
                if name not in merged:
                    merged.append(name)
            changes[family] = tuple(merged)
        if not changes:
            return self
        return replace(self, **changes)


DEFAULT_MARKERS = MarkerTable()


__all__ = [
    "DEFAULT_MARKERS",
    "DEFAULT_ROUTE_MARKERS",
    "MQ_DESTINATION_ATTRIBUTES",
    "MarkerTable",
    "SCHEDULE_ATTRIBUTES",
]
