"""Mermaid sequence diagram rendering for traced call chains."""

from __future__ import annotations

import re
from typing import Dict, List

from ..logging import get_logger
from ..models import CallChain, CallNode, CallType

CALLER = "Caller"
MQ_PARTICIPANT = "MQ"

_SAFE_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")
_REMOTE_TAGS = {CallType.DUBBO: "[Dubbo]", CallType.FEIGN: "[Feign]"}


class _Participants:
    """Maps service names to diagram identifiers in first-seen order."""

    def __init__(self) -> None:
        self.ids: Dict[str, str] = {}
        self._taken = {CALLER, MQ_PARTICIPANT}

    def add(self, name: str) -> None:
        if name in self.ids:
            return
        if _SAFE_IDENTIFIER.match(name) and name not in self._taken:
            identifier = name
        else:
            base = _UNSAFE_CHARS.sub("_", name) or "service"
            if not base[0].isalpha() and base[0] != "_":
                base = "_" + base
            identifier = base
            suffix = 2
            while identifier in self._taken:
                identifier = f"{base}_{suffix}"
                suffix += 1
        self._taken.add(identifier)
        self.ids[name] = identifier

    def declarations(self) -> List[str]:
        lines = []
        for name, identifier in self.ids.items():
            if identifier == name:
                lines.append(f"    participant {identifier}")
            else:
                lines.append(f"    participant {identifier} as {name}")
        return lines

    def __getitem__(self, name: str) -> str:
        return self.ids[name]


class MermaidGenerator:
    """Renders a CallChain as Mermaid `sequenceDiagram` text."""

    def __init__(self) -> None:
        self.logger = get_logger("flow.mermaid")

    def generate_sequence_diagram(self, chain: CallChain) -> str:
        lines = ["sequenceDiagram", f"    participant {CALLER}"]
        root = chain.root
        if root is None:
            return "\n".join(lines) + "\n"

        participants = _Participants()
        has_mq = False
        for node in root.walk():
            participants.add(node.service)
            if node.type is CallType.MQ and node is not root:
                has_mq = True
        lines.extend(participants.declarations())
        if has_mq:
            lines.append(f"    participant {MQ_PARTICIPANT}")
        lines.append("")

        root_id = participants[root.service]
        entry = chain.entry_point
        label = entry.path or entry.method_signature
        lines.append(f"    {CALLER}->>{root_id}: {_label(label)}")
        self._calls(root, root_id, participants, lines)
        lines.append(f"    {root_id}-->>{CALLER}: response")

        self.logger.debug("Rendered diagram for chain %s (%d lines)", chain.chain_id, len(lines))
        return "\n".join(lines) + "\n"

    def _calls(
        self, node: CallNode, current: str, participants: _Participants, lines: List[str]
    ) -> None:
        for child in node.children:
            if child.type is CallType.LOCAL:
                lines.append(f"    Note over {current}: {_method_name(child.method)}")
                self._calls(child, current, participants, lines)
            elif child.type in _REMOTE_TAGS:
                target = participants[child.service]
                tag = _REMOTE_TAGS[child.type]
                lines.append(f"    {current}->>{target}: {tag} {_simple_name(child.class_name)}")
                lines.append(f"    {target}-->>{current}: return")
            elif child.type is CallType.MQ:
                target = participants[child.service]
                lines.append(f"    {current}->>{MQ_PARTICIPANT}: send message")
                lines.append(f"    {MQ_PARTICIPANT}->>{target}: deliver message")


def _method_name(signature: str) -> str:
    index = signature.find("(")
    if index > 0:
        return signature[:index] + "()"
    return signature


def _simple_name(class_name: str) -> str:
    return class_name.rsplit(".", 1)[-1]


def _label(text: str) -> str:
    return " ".join(text.replace(";", ",").split())


__all__ = ["CALLER", "MQ_PARTICIPANT", "MermaidGenerator"]
