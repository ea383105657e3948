"""Interpolation analysis for attribute values.

Values coming out of :mod:`infradraw.hcl` are plain Python data where any
non-literal expression is wrapped as ``"${...}"``.  This module splits such
values into segments and finds the variables and resources they refer to.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Union

# Roots that never name a managed resource.
EXCLUDED_ROOTS = frozenset({"var", "local", "data", "each", "count", "path", "self", "terraform"})

_TRAVERSAL = re.compile(r"^[A-Za-z_][\w-]*(?:\.[A-Za-z_][\w-]*|\[[^\]]*\])*$")
_TRAVERSAL_PART = re.compile(r"[A-Za-z_][\w-]*")
_FUNCTION_NAME = re.compile(r"^([a-z0-9_]+)\(")
_STRING_LITERAL = re.compile(r'"(?:[^"\\]|\\.)*"')
_VARIABLE_REFERENCE = re.compile(r"(?<![\w.\-])var\.([A-Za-z_][\w-]*)")
_RESOURCE_REFERENCE = re.compile(
    r"(?<![\w.\-])([A-Za-z_][\w-]*)\.([A-Za-z_][\w-]*)(?:\[[^\]]*\])?(?:\.([A-Za-z_][\w-]*))?"
)


@dataclass(frozen=True)
class TextSegment:
    text: str


@dataclass(frozen=True)
class VariableReference:
    name: str


@dataclass(frozen=True)
class ResourceReference:
    resource_type: str
    name: str
    attribute: Optional[str] = None

    @property
    def address(self) -> str:
        return f"{self.resource_type}.{self.name}"


@dataclass(frozen=True)
class FunctionCall:
    name: str
    arguments: Tuple["Segment", ...] = ()


@dataclass(frozen=True)
class ExpressionSegment:
    text: str


Segment = Union[TextSegment, VariableReference, ResourceReference, FunctionCall, ExpressionSegment]


def _closing_index(text: str, start: int, opener: str, closer: str) -> int:
    """Index of the ``closer`` balancing an ``opener`` just before ``start``."""
    depth = 1
    quote = ""
    i = start
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _next_marker(value: str, start: int, markers: Tuple[str, ...]) -> int:
    found = [index for index in (value.find(marker, start) for marker in markers) if index != -1]
    return min(found) if found else -1


def split_template(value: str, directives: bool = False) -> List[Tuple[bool, str]]:
    """Split a template string into ``(is_interpolation, text)`` pieces.

    With ``directives`` the ``%{ for ... }`` and ``%{ if ... }`` control
    sequences count as interpolations too, minus their ``~`` strip markers.
    """
    markers = ("${", "%{") if directives else ("${",)
    pieces: List[Tuple[bool, str]] = []
    text_start = 0
    search_from = 0
    while True:
        index = _next_marker(value, search_from, markers)
        if index == -1:
            break
        # $${ and %%{ are escaped literals
        if index > 0 and value[index - 1] == value[index]:
            search_from = index + 2
            continue
        close = _closing_index(value, index + 2, "{", "}")
        if close == -1:
            break
        if index > text_start:
            pieces.append((False, value[text_start:index]))
        pieces.append((True, value[index + 2:close].strip().strip("~").strip()))
        text_start = search_from = close + 1
    if text_start < len(value):
        pieces.append((False, value[text_start:]))
    return pieces


def expression_text(value: Any) -> Optional[str]:
    """Return the inner expression when ``value`` is exactly one ``${...}``."""
    if not isinstance(value, str):
        return None
    pieces = split_template(value)
    if len(pieces) == 1 and pieces[0][0]:
        return pieces[0][1]
    return None


def split_arguments(text: str) -> List[str]:
    """Split a function argument list on top-level commas."""
    arguments: List[str] = []
    depth = 0
    in_string = False
    current = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == "," and depth == 0:
            arguments.append(text[current:i].strip())
            current = i + 1
        i += 1
    arguments.append(text[current:].strip())
    return [argument for argument in arguments if argument]


def classify(expression: str) -> Segment:
    """Classify the content of one interpolation."""
    expression = expression.strip()
    if _TRAVERSAL.match(expression):
        parts = _TRAVERSAL_PART.findall(re.sub(r"\[[^\]]*\]", "", expression))
        root = parts[0]
        if root == "var" and len(parts) > 1:
            return VariableReference(parts[1])
        if root not in EXCLUDED_ROOTS and len(parts) > 1:
            return ResourceReference(root, parts[1], parts[2] if len(parts) > 2 else None)
        return ExpressionSegment(expression)

    match = _FUNCTION_NAME.match(expression)
    if match and _closing_index(expression, match.end(), "(", ")") == len(expression) - 1:
        arguments = split_arguments(expression[match.end():-1])
        return FunctionCall(match.group(1), tuple(classify(argument) for argument in arguments))
    return ExpressionSegment(expression)


def parse_expression(value: Any) -> List[Segment]:
    """Split an attribute value into text and classified interpolation segments."""
    if not isinstance(value, str):
        return []
    segments: List[Segment] = []
    for is_interpolation, text in split_template(value):
        if is_interpolation:
            segments.append(classify(text))
        elif text:
            segments.append(TextSegment(text))
    return segments


def iter_strings(value: Any) -> Iterator[str]:
    """Yield every string nested anywhere inside ``value``."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_strings(item)


def _code_fragments(expression: str) -> List[str]:
    """Expression code with string literals blanked, plus code from their templates."""
    fragments = [_STRING_LITERAL.sub('""', expression)]
    for literal in _STRING_LITERAL.findall(expression):
        for is_interpolation, inner in split_template(literal[1:-1]):
            if is_interpolation:
                fragments.extend(_code_fragments(inner))
    return fragments


def _expression_fragments(value: Any) -> Iterator[str]:
    for text in iter_strings(value):
        for is_interpolation, inner in split_template(text, directives=True):
            if is_interpolation:
                yield from _code_fragments(inner)


def find_variable_references(value: Any) -> List[str]:
    """Names of input variables referenced anywhere in ``value``, in order of appearance."""
    names: List[str] = []
    for fragment in _expression_fragments(value):
        for name in _VARIABLE_REFERENCE.findall(fragment):
            if name not in names:
                names.append(name)
    return names


def find_resource_references(value: Any) -> List[ResourceReference]:
    """Resource (and module) traversals referenced anywhere in ``value``."""
    references: List[ResourceReference] = []
    for fragment in _expression_fragments(value):
        for match in _RESOURCE_REFERENCE.finditer(fragment):
            root, name, attribute = match.groups()
            if root in EXCLUDED_ROOTS:
                continue
            reference = ResourceReference(root, name, attribute)
            if reference not in references:
                references.append(reference)
    return references


def _flatten(segment: Segment) -> Iterator[Segment]:
    if isinstance(segment, FunctionCall):
        for argument in segment.arguments:
            yield from _flatten(argument)
    elif isinstance(segment, (VariableReference, ResourceReference)):
        yield segment


def extract_references(value: Any) -> List[Union[VariableReference, ResourceReference]]:
    """Variable and resource references in ``value``, looking inside function arguments.

    Unlike :func:`find_resource_references` this only follows interpolations
    that are a plain traversal or a function call over them.
    """
    references: List[Union[VariableReference, ResourceReference]] = []
    for text in iter_strings(value):
        for segment in parse_expression(text):
            for reference in _flatten(segment):
                if reference not in references:
                    references.append(reference)  # type: ignore[arg-type]
    return references
