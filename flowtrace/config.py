"""Configuration loading for flowtrace (.flowtrace.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .markers import DEFAULT_MARKERS, MarkerTable

CONFIG_FILENAME = ".flowtrace.yml"

DEFAULT_EXCLUDE_FRAGMENTS = ("/test/", "/target/", "/build/")
DEFAULT_MAX_DEPTH = 5

_MARKER_FAMILIES = (
    "controller",
    "rpc_provider",
    "routes",
    "scheduled",
    "mq_listener",
    "mq_class_listener",
    "rpc_reference",
    "http_client",
    "mq_producer_types",
)


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ScanConfig:
    """Project scanning settings."""

    workers: int = 1
    exclude_paths: List[str] = field(default_factory=list)


@dataclass
class TraceConfig:
    """Call chain tracing settings."""

    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass
class FlowTraceConfig:
    """Represents the settings defined in .flowtrace.yml."""

    root: Path
    project_name: Optional[str] = None
    scan: ScanConfig = field(default_factory=ScanConfig)
    trace: TraceConfig = field(default_factory=TraceConfig)
    markers: MarkerTable = DEFAULT_MARKERS

    @property
    def exclude_fragments(self) -> List[str]:
        fragments = list(DEFAULT_EXCLUDE_FRAGMENTS)
        for fragment in self.scan.exclude_paths:
            if fragment not in fragments:
                fragments.append(fragment)
        return fragments


def load_config(config_path: Path) -> FlowTraceConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return FlowTraceConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    scan = ScanConfig()
    scan_data = _as_dict(data.get("scan"))
    if scan_data:
        workers = _as_int(scan_data.get("workers"))
        if workers is not None:
            if workers < 1:
                raise ConfigError("scan.workers must be at least 1")
            scan.workers = workers
    scan.exclude_paths = _as_str_list(data.get("exclude_paths"))
    if scan_data:
        for fragment in _as_str_list(scan_data.get("exclude_paths")):
            if fragment not in scan.exclude_paths:
                scan.exclude_paths.append(fragment)

    trace = TraceConfig()
    trace_data = _as_dict(data.get("trace"))
    if trace_data:
        max_depth = _as_int(trace_data.get("max_depth"))
        if max_depth is not None:
            if max_depth < 0:
                raise ConfigError("trace.max_depth must not be negative")
            trace.max_depth = max_depth

    markers = DEFAULT_MARKERS
    marker_data = _as_dict(data.get("markers"))
    if marker_data:
        unknown = sorted(set(marker_data) - set(_MARKER_FAMILIES))
        if unknown:
            raise ConfigError(f"Unknown marker families: {', '.join(unknown)}")
        extras = {family: _as_str_list(value) for family, value in marker_data.items()}
        markers = DEFAULT_MARKERS.extended(extras)

    return FlowTraceConfig(
        root=root,
        project_name=_as_str(data.get("project_name")),
        scan=scan,
        trace=trace,
        markers=markers,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_EXCLUDE_FRAGMENTS",
    "DEFAULT_MAX_DEPTH",
    "FlowTraceConfig",
    "ScanConfig",
    "TraceConfig",
    "load_config",
]
