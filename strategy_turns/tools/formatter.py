"""Text formatting for tool responses: a readable block followed by the raw JSON."""

from __future__ import annotations
import json
from typing import Any


RULE = "━" * 40

ALERT_ICONS = {"success": "✅", "error": "❌", "warning": "⚠️", "info": "ℹ️"}


def header(title: str, icon: str = "") -> str:
    label = f"{icon}  **{title.upper()}**" if icon else f"**{title.upper()}**"
    return f"\n{RULE}\n{label}\n{RULE}\n"


def key_value(data: dict[str, Any]) -> str:
    """Markdown bullet per key. None values are left out."""
    lines = []
    for key, value in data.items():
        if value is None:
            continue
        shown = json.dumps(value, default=str) if isinstance(value, (dict, list)) else str(value)
        lines.append(f"- **{key}:** {shown}\n")
    return "".join(lines)


def alert(message: str, kind: str = "info") -> str:
    icon = ALERT_ICONS.get(kind, ALERT_ICONS["info"])
    return f"\n> {icon} **{kind.upper()}**: {message}\n"


def embed_json(data: Any, tag: str = "DATA") -> str:
    """Machine-readable copy of the response, hidden in an HTML comment."""
    return f"\n<!-- {tag}_JSON\n{json.dumps(data, default=str)}\n{tag}_JSON -->\n"


def extract_json(text: str, tag: str = "DATA") -> Any:
    """Inverse of ``embed_json``. Returns None if the block is missing."""
    start_marker = f"<!-- {tag}_JSON\n"
    end_marker = f"\n{tag}_JSON -->"
    start = text.find(start_marker)
    if start == -1:
        return None
    start += len(start_marker)
    end = text.find(end_marker, start)
    if end == -1:
        return None
    return json.loads(text[start:end])


def error_block(title: str, data: dict[str, Any]) -> str:
    """Standard rendering for an error payload, including action suggestions."""
    output = header(title)
    output += alert(data.get("message") or "Unknown error", "error")
    suggestions = data.get("suggestions")
    if suggestions:
        output += "\n**Did you mean:**\n"
        for s in suggestions:
            output += f"  - {s['action']} ({s['similarity']}% match)\n"
    fields = data.get("fields")
    if fields:
        output += "\n**Invalid fields:**\n"
        for f in fields:
            output += f"  - {f['field']}: {f['message']}\n"
    return output


class ToolResponse:
    """What a tool call returns: rendered text plus the structured payload."""

    def __init__(self, text: str, data: dict[str, Any]):
        self.text = text
        self.data = data

    @property
    def is_error(self) -> bool:
        return bool(self.data.get("error"))

    def to_mcp(self) -> dict[str, Any]:
        return {"content": [{"type": "text", "text": self.text}]}

    def __repr__(self) -> str:
        return f"ToolResponse(error={self.is_error}, actionType={self.data.get('actionType')!r})"
