"""Tree-sitter powered Java parser producing one structural record per file."""

from __future__ import annotations

import re
import threading
from pathlib import Path
from typing import Iterator, List, Optional

import tree_sitter_java
from tree_sitter import Language, Node, Parser

from ..logging import get_logger
from ..models import AnnotationRecord, ClassRecord, FieldRecord, MethodRecord

JAVA_LANGUAGE = Language(tree_sitter_java.language())

_TYPE_DECLARATIONS = {"class_declaration", "interface_declaration"}
_FIELD_DECLARATIONS = {"field_declaration", "constant_declaration"}
_ANNOTATION_NODES = {"annotation", "marker_annotation"}
_COMMENT_NODES = {"comment", "line_comment", "block_comment"}
_UTF8_BOM = b"\xef\xbb\xbf"
_DOT_SPACING = re.compile(r"\s*\.\s*")


class SourceParseError(ValueError):
    """Raised when a source file cannot be turned into a class record."""


class JavaSourceParser:
    """Extracts the first top-level class or interface declared in a Java file.

    Only the first type declaration found in a pre-order walk is recorded;
    nested and additional declarations in the same file are ignored. Call
    expressions are captured lexically and are never resolved against a
    symbol table.
    """

    def __init__(self) -> None:
        self._local = threading.local()
        self.logger = get_logger("analyzers.java_source")

    def parse_file(self, path: Path | str) -> Optional[ClassRecord]:
        """Parse a file from disk; returns None when it declares no class or interface."""
        file_path = Path(path)
        try:
            source = file_path.read_bytes()
        except OSError as exc:
            raise SourceParseError(f"Cannot read {file_path}: {exc}") from exc
        try:
            source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SourceParseError(f"{file_path} is not valid UTF-8") from exc
        return self._parse_bytes(source, str(file_path.resolve()))

    def parse_source(self, text: str, path: str | None = None) -> Optional[ClassRecord]:
        """Parse in-memory source text."""
        return self._parse_bytes(text.encode("utf-8"), path)

    # ------------------------------------------------------------------
    # Internal helpers

    def _parser(self) -> Parser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = Parser(JAVA_LANGUAGE)
            self._local.parser = parser
        return parser

    def _parse_bytes(self, source: bytes, path: Optional[str]) -> Optional[ClassRecord]:
        if source.startswith(_UTF8_BOM):
            source = source[len(_UTF8_BOM) :]
        tree = self._parser().parse(source)
        root = tree.root_node
        if root.has_error:
            raise SourceParseError(f"Syntax errors in {path or '<source>'}")

        declaration = _first_type_declaration(root)
        if declaration is None:
            return None

        record = self._class_record(declaration, root, source, path)
        self.logger.debug(
            "Parsed class %s (fields: %d, methods: %d)",
            record.full_class_name,
            len(record.fields),
            len(record.methods),
        )
        return record

    def _class_record(
        self, declaration: Node, root: Node, source: bytes, path: Optional[str]
    ) -> ClassRecord:
        name_node = declaration.child_by_field_name("name")
        modifiers = _modifiers(declaration)
        keywords = _modifier_keywords(modifiers)

        super_class: Optional[str] = None
        interfaces: List[str] = []
        if declaration.type == "class_declaration":
            superclass = declaration.child_by_field_name("superclass")
            if superclass is not None:
                types = _named(superclass)
                if types:
                    super_class = _type_name(types[0], source)
            implemented = declaration.child_by_field_name("interfaces")
            if implemented is not None:
                interfaces = _type_list(implemented, source)
        else:
            for child in declaration.children:
                if child.type == "extends_interfaces":
                    interfaces = _type_list(child, source)

        fields: List[FieldRecord] = []
        methods: List[MethodRecord] = []
        body = declaration.child_by_field_name("body")
        if body is not None:
            for member in _named(body):
                if member.type in _FIELD_DECLARATIONS:
                    field_record = self._field_record(member, source)
                    if field_record is not None:
                        fields.append(field_record)
                elif member.type == "method_declaration":
                    methods.append(self._method_record(member, source))

        return ClassRecord(
            class_name=_text(name_node, source) if name_node is not None else "",
            package_name=_package_name(root, source),
            annotations=self._annotations(modifiers, source),
            fields=fields,
            methods=methods,
            super_class=super_class,
            interfaces=interfaces,
            is_interface=declaration.type == "interface_declaration",
            is_abstract="abstract" in keywords,
            file_path=path,
        )

    def _field_record(self, node: Node, source: bytes) -> Optional[FieldRecord]:
        type_node = node.child_by_field_name("type")
        declarator = node.child_by_field_name("declarator")
        if type_node is None or declarator is None:
            return None
        name_node = declarator.child_by_field_name("name")
        if name_node is None:
            return None
        return FieldRecord(
            name=_text(name_node, source),
            type=_compress(_text(type_node, source)),
            annotations=self._annotations(_modifiers(node), source),
        )

    def _method_record(self, node: Node, source: bytes) -> MethodRecord:
        name_node = node.child_by_field_name("name")
        type_node = node.child_by_field_name("type")
        modifiers = _modifiers(node)
        keywords = _modifier_keywords(modifiers)

        parameters: List[str] = []
        params_node = node.child_by_field_name("parameters")
        if params_node is not None:
            for param in _named(params_node):
                rendered = _parameter(param, source)
                if rendered:
                    parameters.append(rendered)

        return MethodRecord(
            name=_text(name_node, source) if name_node is not None else "",
            parameters=parameters,
            return_type=_compress(_text(type_node, source)) if type_node is not None else "void",
            annotations=self._annotations(modifiers, source),
            is_public="public" in keywords,
            is_static="static" in keywords,
            called_methods=_called_methods(node.child_by_field_name("body"), source),
        )

    def _annotations(self, modifiers: Optional[Node], source: bytes) -> List[AnnotationRecord]:
        if modifiers is None:
            return []
        return [
            _annotation(child, source)
            for child in modifiers.children
            if child.type in _ANNOTATION_NODES
        ]


def _text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")


def _compress(value: str) -> str:
    return " ".join(value.split())


def _receiver(value: str) -> str:
    """Compress receiver text so line-broken fluent chains read like single-line ones."""
    return _DOT_SPACING.sub(".", _compress(value))


def _named(node: Node) -> List[Node]:
    return [child for child in node.named_children if child.type not in _COMMENT_NODES]


def _iter_preorder(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _first_type_declaration(root: Node) -> Optional[Node]:
    for node in _iter_preorder(root):
        if node.type in _TYPE_DECLARATIONS:
            return node
    return None


def _package_name(root: Node, source: bytes) -> Optional[str]:
    for child in root.named_children:
        if child.type != "package_declaration":
            continue
        for part in child.named_children:
            if part.type in {"identifier", "scoped_identifier"}:
                return _text(part, source)
    return None


def _modifiers(node: Node) -> Optional[Node]:
    for child in node.children:
        if child.type == "modifiers":
            return child
    return None


def _modifier_keywords(modifiers: Optional[Node]) -> set[str]:
    if modifiers is None:
        return set()
    return {child.type for child in modifiers.children if not child.is_named}


def _type_name(node: Node, source: bytes) -> str:
    # Generic arguments are not part of the name used for interface resolution.
    return _compress(_text(node, source).split("<", 1)[0])


def _type_list(node: Node, source: bytes) -> List[str]:
    for child in _named(node):
        if child.type == "type_list":
            return [_type_name(item, source) for item in _named(child)]
    return [_type_name(item, source) for item in _named(node)]


def _annotation(node: Node, source: bytes) -> AnnotationRecord:
    name_node = node.child_by_field_name("name")
    record = AnnotationRecord(name=_text(name_node, source) if name_node is not None else "")
    if node.type != "annotation":
        return record
    arguments = node.child_by_field_name("arguments")
    if arguments is None:
        return record
    values = _named(arguments)
    pairs = [child for child in values if child.type == "element_value_pair"]
    if pairs:
        for pair in pairs:
            key = pair.child_by_field_name("key")
            value = pair.child_by_field_name("value")
            if key is not None and value is not None:
                record.attributes[_text(key, source)] = _attribute_text(value, source)
    elif values:
        record.attributes["value"] = _attribute_text(values[0], source)
    return record


def _attribute_text(node: Node, source: bytes) -> str:
    raw = _text(node, source)
    if node.type == "string_literal":
        return raw
    return _compress(raw)


def _parameter(node: Node, source: bytes) -> Optional[str]:
    if node.type == "formal_parameter":
        type_node = node.child_by_field_name("type")
        name_node = node.child_by_field_name("name")
        if type_node is None or name_node is None:
            return None
        return f"{_compress(_text(type_node, source))} {_text(name_node, source)}"
    if node.type == "spread_parameter":
        type_text: Optional[str] = None
        name_text: Optional[str] = None
        for child in _named(node):
            if child.type == "variable_declarator":
                name_node = child.child_by_field_name("name")
                if name_node is not None:
                    name_text = _text(name_node, source)
            elif child.type not in {"modifiers", "annotation", "marker_annotation"} and type_text is None:
                type_text = _compress(_text(child, source))
        if type_text and name_text:
            return f"{type_text}... {name_text}"
    return None


def _called_methods(body: Optional[Node], source: bytes) -> List[str]:
    if body is None:
        return []
    calls: List[str] = []
    for node in _iter_preorder(body):
        if node.type != "method_invocation":
            continue
        name_node = node.child_by_field_name("name")
        if name_node is None:
            continue
        name = _text(name_node, source)
        receiver = node.child_by_field_name("object")
        if receiver is not None:
            calls.append(f"{_receiver(_text(receiver, source))}.{name}")
        else:
            calls.append(name)
    return calls


__all__ = ["JAVA_LANGUAGE", "JavaSourceParser", "SourceParseError"]
