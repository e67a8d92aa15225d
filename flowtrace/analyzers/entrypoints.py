"""Entry point classification for parsed classes."""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from ..logging import get_logger
from ..markers import (
    DEFAULT_MARKERS,
    MQ_DESTINATION_ATTRIBUTES,
    SCHEDULE_ATTRIBUTES,
    MarkerTable,
)
from ..models import AnnotationRecord, ClassRecord, EntryPoint, EntryType, MethodRecord

_HTTP_VERBS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE"}
_MQ_CLASS_HANDLER = "onMessage"


def clean_attribute(value: Optional[str]) -> str:
    """Strip surrounding braces and quotes; array values yield their first element."""
    if value is None:
        return ""
    text = value.strip()
    if text.startswith("{") and text.endswith("}"):
        text = text[1:-1].strip()
        text = _split_first(text)
    if len(text) >= 2 and text[0] == text[-1] and text[0] in {'"', "'"}:
        text = text[1:-1]
    return text.strip()


def _split_first(text: str) -> str:
    # Commas inside string literals do not separate elements.
    quote: Optional[str] = None
    for index, char in enumerate(text):
        if quote:
            if char == quote:
                quote = None
        elif char in {'"', "'"}:
            quote = char
        elif char == ",":
            return text[:index].strip()
    return text


def normalize_path(path: str) -> str:
    """Return the route with a leading slash and no repeated slashes."""
    result = (path or "").strip()
    if result and not result.startswith("/"):
        result = "/" + result
    return re.sub(r"/{2,}", "/", result)


def combine_path(class_path: str, method_path: str) -> str:
    """Combine class-level and method-level routes; an empty result is the root."""
    combined = normalize_path(class_path) + normalize_path(method_path)
    combined = re.sub(r"/{2,}", "/", combined)
    return combined or "/"


def extract_route(annotation: AnnotationRecord) -> str:
    """Read the route from `value`, falling back to `path`."""
    value = annotation.get("value")
    if value is None:
        value = annotation.get("path")
    return clean_attribute(value)


def request_method(annotation: AnnotationRecord) -> Optional[str]:
    """Return the verb named by a generic mapping's `method` attribute."""
    raw = clean_attribute(annotation.get("method"))
    if not raw:
        return None
    verb = raw.rsplit(".", 1)[-1].strip().upper()
    return verb if verb in _HTTP_VERBS else None


class EntryPointClassifier:
    """Classifies the public methods of a class into externally reachable entry points."""

    def __init__(self, markers: MarkerTable = DEFAULT_MARKERS) -> None:
        self.markers = markers
        self.logger = get_logger("analyzers.entrypoints")

    def detect(self, record: ClassRecord) -> List[EntryPoint]:
        entry_points: List[EntryPoint] = []
        if record.has_annotation(*self.markers.controller):
            entry_points.extend(self._http_endpoints(record))
        if record.has_annotation(*self.markers.rpc_provider):
            entry_points.extend(self._rpc_methods(record))
        entry_points.extend(self._scheduled_tasks(record))
        entry_points.extend(self._mq_consumers(record))
        return entry_points

    # ------------------------------------------------------------------
    # HTTP

    def _http_endpoints(self, record: ClassRecord) -> List[EntryPoint]:
        class_path = self._class_route(record)
        endpoints: List[EntryPoint] = []
        for method in record.methods:
            if not method.is_public:
                continue
            route = self._method_route(method)
            if route is None:
                continue
            annotation, method_path, verb = route
            entry = self._entry(EntryType.HTTP, record, method, annotation)
            entry.path = combine_path(class_path, method_path)
            entry.http_method = verb
            endpoints.append(entry)
            self.logger.debug("HTTP entry point: %s %s", verb, entry.path)
        return endpoints

    def _class_route(self, record: ClassRecord) -> str:
        for annotation in record.annotations:
            if annotation.simple_name == "RequestMapping":
                return extract_route(annotation)
        return ""

    def _method_route(
        self, method: MethodRecord
    ) -> Optional[Tuple[AnnotationRecord, str, str]]:
        found: Optional[Tuple[AnnotationRecord, str, str]] = None
        for annotation in method.annotations:
            is_route, implied = self.markers.route_verb(annotation.simple_name)
            if not is_route:
                continue
            verb = implied or request_method(annotation) or "GET"
            found = (annotation, extract_route(annotation), verb)
        return found

    # ------------------------------------------------------------------
    # RPC

    def _rpc_methods(self, record: ClassRecord) -> List[EntryPoint]:
        marker = _first_matching(record.annotations, self.markers.rpc_provider)
        endpoints: List[EntryPoint] = []
        for method in record.methods:
            if not method.is_public:
                continue
            entry = self._entry(EntryType.RPC, record, method, marker)
            entry.path = record.full_class_name
            endpoints.append(entry)
            self.logger.debug("RPC entry point: %s.%s", record.class_name, method.name)
        return endpoints

    # ------------------------------------------------------------------
    # Scheduled jobs

    def _scheduled_tasks(self, record: ClassRecord) -> List[EntryPoint]:
        endpoints: List[EntryPoint] = []
        for method in record.methods:
            if not method.is_public:
                continue
            annotation = _first_matching(method.annotations, self.markers.scheduled)
            if annotation is None:
                continue
            entry = self._entry(EntryType.SCHEDULED, record, method, annotation)
            for attribute, label in SCHEDULE_ATTRIBUTES:
                value = clean_attribute(annotation.get(attribute))
                if value:
                    entry.path = value
                    entry.description = f"{label}: {value}"
                    break
            endpoints.append(entry)
            self.logger.debug("Scheduled entry point: %s.%s", record.class_name, method.name)
        return endpoints

    # ------------------------------------------------------------------
    # Message consumers

    def _mq_consumers(self, record: ClassRecord) -> List[EntryPoint]:
        endpoints: List[EntryPoint] = []
        class_listener = _first_matching(record.annotations, self.markers.mq_class_listener)
        for method in record.methods:
            if not method.is_public:
                continue
            annotation = _first_matching(method.annotations, self.markers.mq_listener)
            if annotation is None and class_listener is not None and method.name == _MQ_CLASS_HANDLER:
                annotation = class_listener
            if annotation is None:
                continue
            entry = self._entry(EntryType.MQ, record, method, annotation)
            entry.path = _mq_destination(annotation)
            entry.description = annotation.simple_name
            endpoints.append(entry)
            self.logger.debug("MQ entry point: %s.%s", record.class_name, method.name)
        return endpoints

    # ------------------------------------------------------------------

    @staticmethod
    def _entry(
        entry_type: EntryType,
        record: ClassRecord,
        method: MethodRecord,
        annotation: Optional[AnnotationRecord],
    ) -> EntryPoint:
        metadata = {}
        if annotation is not None:
            metadata["annotation"] = annotation.simple_name
        return EntryPoint(
            type=entry_type,
            class_name=record.full_class_name,
            method_name=method.name,
            method_signature=method.signature,
            direct_calls=list(method.called_methods),
            annotations=metadata,
        )


def _first_matching(
    annotations: List[AnnotationRecord], markers: Tuple[str, ...]
) -> Optional[AnnotationRecord]:
    for annotation in annotations:
        if any(annotation.matches(marker) for marker in markers):
            return annotation
    return None


def _mq_destination(annotation: AnnotationRecord) -> Optional[str]:
    for attribute, label in MQ_DESTINATION_ATTRIBUTES:
        value = annotation.get(attribute)
        if value is not None:
            return f"{label}: {clean_attribute(value)}"
    return None


__all__ = [
    "EntryPointClassifier",
    "clean_attribute",
    "combine_path",
    "extract_route",
    "normalize_path",
    "request_method",
]
