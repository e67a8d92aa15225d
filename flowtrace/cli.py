"""CLI entrypoints for flowtrace commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

from .logging import configure_logging
from .models import EntryPointMatch, ProjectStructure, ServiceDependencyGraph
from .orchestrator import EntryPointNotFoundError, FlowOrchestrator, FlowResult

_FORMATS = ("mermaid", "json", "markdown")


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_paths_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "paths",
        nargs="+",
        metavar="PATH",
        help="Project roots to scan; each root is treated as one service.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowtrace",
        description="Extract Java source structure and trace cross-service call chains.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan a project and summarise its modules, classes and entry points.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    scan_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )
    scan_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full project structure as JSON.",
    )

    search_parser = subparsers.add_parser(
        "entrypoints",
        help="Rank entry points across projects by keyword relevance.",
    )
    _add_verbose_option(search_parser, suppress_default=True)
    _add_paths_argument(search_parser)
    search_parser.add_argument(
        "-k",
        "--keyword",
        dest="keywords",
        action="append",
        required=True,
        help="Keyword to match; repeat for several keywords.",
    )
    search_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of matches to print.",
    )

    deps_parser = subparsers.add_parser(
        "deps",
        help="List service dependencies between projects.",
    )
    _add_verbose_option(deps_parser, suppress_default=True)
    _add_paths_argument(deps_parser)

    trace_parser = subparsers.add_parser(
        "trace",
        help="Trace the call chain of an entry point and render it.",
    )
    _add_verbose_option(trace_parser, suppress_default=True)
    _add_paths_argument(trace_parser)
    target = trace_parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--entry",
        help="Entry point as Class#method (simple or fully qualified class name).",
    )
    target.add_argument(
        "-k",
        "--keyword",
        dest="keywords",
        action="append",
        help="Trace the best keyword match instead of a named entry point.",
    )
    trace_parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum call depth (defaults to trace.max_depth from .flowtrace.yml, or 5).",
    )
    trace_parser.add_argument(
        "--format",
        choices=_FORMATS,
        default="mermaid",
        help="Output format.",
    )
    trace_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the rendered output to a file instead of stdout.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for flowtrace commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=args.log_file,
        component="service" if args.command == "serve" else "cli",
    )

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    orchestrator = FlowOrchestrator()

    try:
        if args.command == "scan":
            structure = orchestrator.scan(args.path)
            if args.json:
                print(json.dumps(structure.to_dict(), indent=2))
            else:
                print(_format_structure(structure))
        elif args.command == "entrypoints":
            structures = orchestrator.scan_many(args.paths)
            matches = orchestrator.search(args.keywords, structures, limit=args.limit)
            print(_format_matches(matches))
        elif args.command == "deps":
            structures = orchestrator.scan_many(args.paths)
            graph = orchestrator.build_graph(structures)
            print(_format_graph(graph))
        elif args.command == "trace":
            if args.max_depth is not None and args.max_depth < 0:
                parser.exit(1, "--max-depth must not be negative\n")
            result = orchestrator.trace(
                args.paths,
                entry=args.entry,
                keywords=args.keywords,
                max_depth=args.max_depth,
            )
            output = _format_trace(orchestrator, result, args.format)
            if args.output is not None:
                args.output.write_text(output, encoding="utf-8")
                print(f"Flow written to {_relativize(args.output.resolve())}")
            else:
                print(output, end="" if output.endswith("\n") else "\n")
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")
    except (EntryPointNotFoundError, ValueError) as exc:
        parser.exit(1, f"{exc}\n")
    except RuntimeError as exc:
        parser.exit(1, f"flowtrace {args.command} failed: {exc}\nRun with --verbose for more details.\n")


def _format_structure(structure: ProjectStructure) -> str:
    stats = structure.statistics()
    lines = [
        f"Project: {structure.project_name}",
        f"Path: {structure.project_path}",
        f"Modules: {stats['module_count']}",
    ]
    for module in structure.modules:
        lines.append(f"  - {module.name} ({module.class_count} source files)")
    lines.append(f"Classes: {stats['class_count']}")
    lines.append(f"Entry points: {stats['entry_point_count']}")
    for entry_type, count in stats["entry_type_count"].items():
        lines.append(f"  {entry_type}: {count}")
    for entry in structure.entry_points:
        lines.append(f"  [{entry.type.value}] {entry.label} -> {entry.class_name}#{entry.method_name}")
    return "\n".join(lines)


def _format_matches(matches: List[EntryPointMatch]) -> str:
    if not matches:
        return "No matching entry points"
    lines: List[str] = []
    for match in matches:
        entry = match.entry_point
        lines.append(
            f"{match.relevance_score:>4}  {match.project_name}  [{entry.type.value}] {entry.label}  "
            f"{entry.class_name}#{entry.method_name}"
        )
        for reason in match.match_reasons:
            lines.append(f"        {reason}")
    return "\n".join(lines)


def _format_graph(graph: ServiceDependencyGraph) -> str:
    lines = [f"Services: {len(graph.services)}"]
    for node in graph.services.values():
        lines.append(
            f"  - {node.service_name} (provides {len(node.provided_interfaces)}, "
            f"requires {len(node.required_interfaces)})"
        )
    lines.append(f"Dependencies: {len(graph.dependencies)}")
    for dep in graph.dependencies:
        target = dep.target_service or "?"
        lines.append(
            f"  {dep.source_service} -> {target} [{dep.type.value}] {dep.interface_name} "
            f"({dep.source_class}.{dep.source_field})"
        )
    return "\n".join(lines)


def _format_trace(orchestrator: FlowOrchestrator, result: FlowResult, output_format: str) -> str:
    if output_format == "json":
        payload = result.chain.to_dict()
        payload["project_name"] = result.structure.project_name
        payload["diagram"] = result.diagram
        return json.dumps(payload, indent=2) + "\n"
    if output_format == "markdown":
        return orchestrator.render_report(result)
    return result.diagram


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
