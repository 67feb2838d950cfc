"""Parser for Valve's text KeyValues format (``.vdf`` / ``.acf``)."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

_LOGGER = logging.getLogger(__name__)

Token = Tuple[str, Optional[str]]


def _tokenize(text: str) -> Iterator[Token]:
    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if ch in "\r\n\t ":
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end < 0 else end
        elif ch == "{":
            yield ("OPEN", None)
            i += 1
        elif ch == "}":
            yield ("CLOSE", None)
            i += 1
        elif ch == '"':
            i += 1
            buf: List[str] = []
            while i < length and text[i] != '"':
                if text[i] == "\\" and i + 1 < length:
                    i += 1
                buf.append(text[i])
                i += 1
            i += 1
            yield ("STR", "".join(buf))
        else:
            start = i
            while i < length and text[i] not in "\r\n\t {}\"":
                i += 1
            yield ("STR", text[start:i])


def parse_vdf(text: str) -> Dict[str, Any]:
    """Nested dicts of strings. Unbalanced input yields what was read so far."""
    root: Dict[str, Any] = {}
    stack: List[Dict[str, Any]] = [root]
    pending: Optional[str] = None

    for kind, value in _tokenize(text):
        current = stack[-1]
        if kind == "STR":
            if pending is None:
                pending = value or ""
            else:
                current.setdefault(pending, value)
                pending = None
        elif kind == "OPEN":
            child: Dict[str, Any] = {}
            existing = current.get(pending or "")
            if isinstance(existing, dict):
                child = existing
            else:
                current[pending or ""] = child
            stack.append(child)
            pending = None
        elif len(stack) > 1:
            stack.pop()
            pending = None
    return root


def read_vdf(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8", errors="ignore")
    except OSError as exc:
        _LOGGER.warning("Failed to read VDF %s: %s", path, exc)
        return {}
    return parse_vdf(text)


def find_key(data: Dict[str, Any], name: str) -> Any:
    """Case-insensitive lookup of a top-level key."""
    if name in data:
        return data[name]
    wanted = name.casefold()
    for key, value in data.items():
        if key.casefold() == wanted:
            return value
    return None


__all__ = ["find_key", "parse_vdf", "read_vdf"]
