"""CLI parser and command behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from flowtrace.cli import _build_parser, main

CONTROLLER = """
package com.shop.order;

@RestController
@RequestMapping("/orders")
public class OrderController {
    @GetMapping("/{id}")
    public Order getOrder(Long id) {
        return load(id);
    }

    public Order load(Long id) {
        return null;
    }
}
"""


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "scan"])
    assert args.verbose is True
    assert args.command == "scan"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["deps", "a", "b", "--verbose"])
    assert args.verbose is True
    assert args.command == "deps"
    assert args.paths == ["a", "b"]


def test_cli_collects_repeated_keywords() -> None:
    parser = _build_parser()
    args = parser.parse_args(["entrypoints", "svc", "-k", "order", "--keyword", "pay", "--limit", "3"])
    assert args.keywords == ["order", "pay"]
    assert args.limit == 3


def test_cli_trace_requires_entry_or_keyword() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["trace", "svc"])
    with pytest.raises(SystemExit):
        parser.parse_args(["trace", "svc", "--entry", "A#b", "--keyword", "x"])


def test_cli_trace_defaults() -> None:
    parser = _build_parser()
    args = parser.parse_args(["trace", "svc", "--entry", "OrderController#getOrder"])
    assert args.format == "mermaid"
    assert args.max_depth is None
    assert args.output is None


def test_scan_command_prints_summary(repo_builder, capsys) -> None:
    repo_builder.java("com.shop.order.OrderController", CONTROLLER)

    main(["scan", str(repo_builder.path())])

    output = capsys.readouterr().out
    assert "Project: repo" in output
    assert "Classes: 1" in output
    assert "[HTTP] GET /orders/{id} -> com.shop.order.OrderController#getOrder" in output


def test_scan_command_prints_json(repo_builder, capsys) -> None:
    repo_builder.java("com.shop.order.OrderController", CONTROLLER)

    main(["scan", str(repo_builder.path()), "--json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["project_name"] == "repo"
    assert payload["classes"] == ["com.shop.order.OrderController"]
    assert payload["statistics"]["entry_type_count"] == {"HTTP": 1}


def test_trace_command_renders_mermaid(repo_builder, capsys) -> None:
    repo_builder.java("com.shop.order.OrderController", CONTROLLER)

    main(["trace", str(repo_builder.path()), "--entry", "OrderController#getOrder"])

    output = capsys.readouterr().out
    assert output.startswith("sequenceDiagram\n")
    assert "    Caller->>repo: /orders/{id}" in output
    assert "    Note over repo: load()" in output


def test_trace_command_writes_markdown(repo_builder, tmp_path: Path) -> None:
    repo_builder.java("com.shop.order.OrderController", CONTROLLER)
    target = tmp_path / "flow.md"

    main(
        [
            "trace",
            str(repo_builder.path()),
            "-k",
            "order",
            "--format",
            "markdown",
            "--output",
            str(target),
        ]
    )

    assert target.read_text(encoding="utf-8").startswith("# Business flow: OrderController.getOrder")


def test_trace_command_prints_json(repo_builder, capsys) -> None:
    repo_builder.java("com.shop.order.OrderController", CONTROLLER)

    main(["trace", str(repo_builder.path()), "--entry", "OrderController#getOrder", "--format", "json"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["project_name"] == "repo"
    assert payload["node_count"] == 2
    assert payload["root"]["children"][0]["method"] == "load(Long id)"


def test_trace_command_exits_when_entry_missing(repo_builder, capsys) -> None:
    repo_builder.java("com.shop.order.OrderController", CONTROLLER)

    with pytest.raises(SystemExit) as excinfo:
        main(["trace", str(repo_builder.path()), "--entry", "Nope#run"])

    assert excinfo.value.code == 1
    assert "No entry point found for Nope#run" in capsys.readouterr().err


def test_scan_command_exits_for_missing_path(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["scan", str(tmp_path / "absent")])

    assert excinfo.value.code == 1
    assert "Project path not found" in capsys.readouterr().err


def test_deps_and_entrypoints_commands(repo_builder, capsys) -> None:
    repo_builder.java("com.shop.order.OrderController", CONTROLLER)

    main(["deps", str(repo_builder.path())])
    deps_output = capsys.readouterr().out
    assert "Services: 1" in deps_output
    assert "Dependencies: 0" in deps_output

    main(["entrypoints", str(repo_builder.path()), "-k", "order"])
    search_output = capsys.readouterr().out
    assert "repo  [HTTP] GET /orders/{id}  com.shop.order.OrderController#getOrder" in search_output
    assert "method name contains 'order' (+20)" in search_output
