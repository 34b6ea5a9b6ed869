"""Text Tool Calls: recovers tool calls that a model wrote as plain text.

Some models (Gemini in particular) fall back to emitting `toolname\\n{json}`
as text despite a proper function-calling setup. This module detects that
pattern for known tool names and converts it to ToolUseBlocks.

Invariants:
    - Only known tool names match, case-sensitively, at an identifier boundary
    - JSON is extracted by brace matching that respects strings and escapes
    - Candidate JSON must decode to a dict (arrays and scalars never qualify)
    - First match per tool name wins, scanning blocks in order
    - Matched text is removed from its block; blocks left blank are dropped,
      so the raw call never sits in history next to the structured one
"""

import json
import uuid
from dataclasses import dataclass
from typing import Any, Iterable

from agentloop.schemas.messages import ContentBlock, TextBlock, ToolUseBlock


@dataclass(frozen=True)
class TextToolCallResult:
    tool_uses: list[ToolUseBlock]
    content: list[ContentBlock]


@dataclass(frozen=True)
class _Match:
    block_index: int
    start: int
    end: int
    name: str
    input: dict[str, Any]


def extract_json_object(text: str, start: int = 0) -> str | None:
    """Balanced {...} beginning at text[start], or None if unbalanced."""
    if start >= len(text) or text[start] != "{":
        return None
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape:
            escape = False
            continue
        if in_string:
            if ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _try_parse_object(candidate: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(candidate)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _at_boundary(text: str, idx: int) -> bool:
    if idx == 0:
        return True
    prev = text[idx - 1]
    return not (prev.isalnum() or prev in "_-")


def _find_in_text(text: str, name: str) -> tuple[int, int, dict[str, Any]] | None:
    marker = name + "\n"
    idx = text.find(marker)
    while idx != -1:
        if _at_boundary(text, idx):
            json_start = idx + len(marker)
            while json_start < len(text) and text[json_start] in " \t\r\n":
                json_start += 1
            candidate = extract_json_object(text, json_start)
            if candidate is not None:
                parsed = _try_parse_object(candidate)
                if parsed is not None:
                    return idx, json_start + len(candidate), parsed
        idx = text.find(marker, idx + 1)
    return None


def _strip_spans(text: str, spans: list[tuple[int, int]]) -> str:
    """Cut the spans out; only whitespace touching a cut is trimmed."""
    starts = [0] + [end for _, end in spans]
    stops = [start for start, _ in spans] + [len(text)]
    pieces = []
    for i, (lo, hi) in enumerate(zip(starts, stops)):
        piece = text[lo:hi]
        if i > 0:
            piece = piece.lstrip()
        if i < len(spans):
            piece = piece.rstrip()
        if piece:
            pieces.append(piece)
    return "\n".join(pieces)


def parse_text_tool_calls(
    content: list[ContentBlock], tool_names: Iterable[str],
) -> TextToolCallResult:
    """Detect `name\\n{json}` tool calls in text blocks and strip them out."""
    names = list(dict.fromkeys(tool_names))
    matches: list[_Match] = []
    claimed: set[str] = set()

    for block_index, block in enumerate(content):
        if not isinstance(block, TextBlock):
            continue
        block_matches: list[_Match] = []
        for name in names:
            if name in claimed:
                continue
            found = _find_in_text(block.text, name)
            if found is None:
                continue
            start, end, parsed = found
            if any(start < m.end and m.start < end for m in block_matches):
                continue  # overlaps a call already taken from this block
            block_matches.append(_Match(block_index, start, end, name, parsed))
            claimed.add(name)
        matches.extend(sorted(block_matches, key=lambda m: m.start))

    if not matches:
        return TextToolCallResult(tool_uses=[], content=list(content))

    spans_by_block: dict[int, list[tuple[int, int]]] = {}
    for m in matches:
        spans_by_block.setdefault(m.block_index, []).append((m.start, m.end))

    stripped: list[ContentBlock] = []
    for block_index, block in enumerate(content):
        spans = spans_by_block.get(block_index)
        if spans is None:
            stripped.append(block)
            continue
        remaining = _strip_spans(block.text, spans)
        if remaining.strip():
            stripped.append(TextBlock(text=remaining))

    tool_uses = [
        ToolUseBlock(id=f"text_tool_{uuid.uuid4().hex[:12]}", name=m.name, input=m.input)
        for m in matches
    ]
    return TextToolCallResult(tool_uses=tool_uses, content=stripped)
