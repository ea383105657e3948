"""Read Terraform configuration text with python-hcl2.

``hcl2.loads`` gives a nested dict keyed by block type and labels.  This
module folds it back into :class:`HclBlock` objects ordered by their line
in the file, so callers can see labels without knowing how deep each block
type nests.  Values keep the library's convention: literals become Python
data and every other expression is a ``"${...}"`` string.
"""

from __future__ import annotations

import ast
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import hcl2

_START = "__start_line__"
_END = "__end_line__"
_META_KEYS = (_START, _END)
_VALUE_KEY = "infradraw_value"
_NOT_LITERAL = object()

# Labels per top level block type. Anything else is walked by meta keys.
_LABEL_COUNTS = {
    "resource": 2,
    "data": 2,
    "variable": 1,
    "module": 1,
    "output": 1,
    "provider": 1,
    "locals": 0,
    "terraform": 0,
}


class HclSyntaxError(ValueError):
    """Raised when configuration text cannot be read."""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        super().__init__(f"{message} (line {line}, column {column})")


@dataclass
class HclBody:
    """Attributes and nested blocks of a file or block."""

    attributes: Dict[str, Any] = field(default_factory=dict)
    blocks: List["HclBlock"] = field(default_factory=list)

    def to_value(self) -> Dict[str, Any]:
        """Flatten into a plain dict; repeated nested blocks become a list."""
        value = dict(self.attributes)
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for block in self.blocks:
            grouped.setdefault(block.type, []).append(block.body.to_value())
        for name, items in grouped.items():
            value[name] = items[0] if len(items) == 1 else items
        return value


@dataclass
class HclBlock:
    type: str
    labels: List[str]
    body: HclBody
    line: int = 0


def parse_hcl(text: str) -> HclBody:
    """Parse a whole file."""
    raw = _load(text)
    body = HclBody()
    found: List[HclBlock] = []
    for key, value in raw.items():
        if key in _META_KEYS:
            continue
        if _is_block_list(value) or (key in _LABEL_COUNTS and isinstance(value, list)):
            for item in value:
                found.extend(_blocks(key, item, _LABEL_COUNTS.get(key)))
        else:
            body.attributes[key] = _clean(value)
    body.blocks = sorted(found, key=lambda block: block.line)
    return body


def parse_value(text: str) -> Any:
    """Parse a single HCL expression by reading it as a synthetic attribute."""
    source = text.strip()
    if not source:
        raise HclSyntaxError("Expected expression")
    raw = _load(f"{_VALUE_KEY} = {source}\n")
    if set(raw) - set(_META_KEYS) != {_VALUE_KEY}:
        raise HclSyntaxError("Unexpected text after expression")
    return _clean(raw[_VALUE_KEY])


def parse_argument(text: str) -> Any:
    """Parse the argument text of a call such as ``jsonencode(...)``.

    python-hcl2 renders call arguments with Python literal syntax, so that
    form is tried before HCL.
    """
    try:
        literal = ast.literal_eval(text.strip())
    except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError):
        literal = _NOT_LITERAL
    if isinstance(literal, (dict, list, str, int, float)):
        return _clean(literal)
    return parse_value(text)


# --- Library output ---

def _load(text: str) -> Dict[str, Any]:
    text = text.replace("\r\n", "\n")
    if not text.endswith("\n"):
        text += "\n"
    try:
        return hcl2.loads(text, with_meta=True)
    # lark and the hcl2 transformer raise unrelated exception types
    except Exception as exc:
        line = getattr(exc, "line", None) or 0
        column = getattr(exc, "column", None) or 0
        message = str(exc).strip().splitlines()[0] if str(exc).strip() else type(exc).__name__
        raise HclSyntaxError(message, line if line > 0 else 0, column if column > 0 else 0) from exc


def _has_meta(value: Any) -> bool:
    """True for a block body, or a labelled block wrapping one."""
    while isinstance(value, dict):
        if _START in value:
            return True
        if len(value) != 1:
            return False
        value = next(iter(value.values()))
    return False


def _is_block_list(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(_has_meta(item) for item in value)


def _blocks(block_type: str, item: Any, label_count: Optional[int]) -> List[HclBlock]:
    blocks = []
    for labels, raw in _unwrap_labels(item, label_count):
        blocks.append(HclBlock(block_type, labels, _body(raw), raw.get(_START, 0)))
    return blocks


def _unwrap_labels(item: Any, label_count: Optional[int], labels: Tuple[str, ...] = ()) -> List[Tuple[List[str], Dict[str, Any]]]:
    if not isinstance(item, dict):
        return []
    done = _START in item or len(labels) == label_count
    if done:
        return [(list(labels), item)]
    found = []
    for label, inner in item.items():
        found.extend(_unwrap_labels(inner, label_count, labels + (_clean_string(str(label)),)))
    return found


def _body(raw: Dict[str, Any]) -> HclBody:
    body = HclBody()
    for key, value in raw.items():
        if key in _META_KEYS:
            continue
        if _is_block_list(value):
            for item in value:
                body.blocks.extend(_blocks(key, item, None))
        else:
            body.attributes[key] = _clean(value)
    return body


def _clean(value: Any) -> Any:
    """Drop meta keys and normalise strings throughout a value."""
    if isinstance(value, dict):
        return {_clean_string(str(key)): _clean(item) for key, item in value.items() if key not in _META_KEYS}
    if isinstance(value, list):
        return [_clean(item) for item in value]
    if isinstance(value, str):
        return _clean_string(value)
    return value


def _clean_string(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        try:
            return json.loads(value)
        except ValueError:
            return value[1:-1]
    return value
