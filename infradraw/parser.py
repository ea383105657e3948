"""Terraform configuration parser.

Extracts resource, module and variable declarations from ``.tf`` text,
discovers dependencies between resources from interpolation references and
``depends_on`` lists, and converts resource records into graph blocks.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .constants import DEFAULT_BLOCK_HEIGHT, DEFAULT_BLOCK_WIDTH
from .hcl import HclBlock, HclSyntaxError, parse_argument, parse_hcl
from .layout import grid_position
from .references import expression_text, find_resource_references
from .resource_types import ResourceType, by_canonical_name, categorize
from .schema import SchemaCatalog
from .types import Block, Connection, Point, PropertyDefinition, PropertyKind, new_id
from .variables import VariableRecord, variable_type_from_expression

logger = logging.getLogger(__name__)

MODULE_TYPE = "module"

# Meta-arguments turned into connections rather than properties.
_CONNECTION_ATTRIBUTES = ("depends_on",)

_JSONENCODE = re.compile(r"^jsonencode\((.*)\)$", re.DOTALL)
_POLICY_KEYS = ("policy", "document", "statement")


@dataclass
class ResourceRecord:
    """A parsed ``resource`` (or ``module``) declaration."""

    type: str
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    position: Optional[Point] = None

    @property
    def address(self) -> str:
        return f"{self.type}.{self.name}"


@dataclass(frozen=True)
class Dependency:
    """``source`` refers to ``target``; both are resource addresses."""

    source: str
    target: str


@dataclass
class ParseResult:
    resources: List[ResourceRecord] = field(default_factory=list)
    variables: List[VariableRecord] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.resources and not self.variables


# --- Value formatting ------------------------------------------------------
def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _looks_like_policy(value: Dict[str, Any]) -> bool:
    return any(marker in str(key).lower() for key in value for marker in _POLICY_KEYS)


def hcl_literal(value: Any) -> str:
    """Render a parsed value back as configuration syntax, e.g. ``["a", 1]``."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _format_number(value)
    if isinstance(value, dict):
        return "{" + ", ".join(f"{_object_key(key)} = {hcl_literal(item)}" for key, item in value.items()) + "}"
    if isinstance(value, list):
        return "[" + ", ".join(hcl_literal(item) for item in value) + "]"
    return json.dumps(str(value), ensure_ascii=False)


def _object_key(key: Any) -> str:
    key = str(key)
    if re.match(r"^[A-Za-z_][\w-]*$", key):
        return key
    return json.dumps(key, ensure_ascii=False)


def format_value(value: Any) -> str:
    """Render a parsed value as the string stored in a block's property bag.

    Scalars are stored as plain text; lists and maps as configuration
    literals; policy-looking maps as indented JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _format_number(value)
    if isinstance(value, dict):
        if _looks_like_policy(value):
            return json.dumps(value, indent=2)
        return hcl_literal(value)
    if isinstance(value, list):
        return hcl_literal(value)
    return str(value)


def _json_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2)
    if not isinstance(value, str):
        return format_value(value)

    inner = expression_text(value)
    if inner is not None:
        match = _JSONENCODE.match(inner)
        if not match:
            return value
        try:
            decoded = parse_argument(match.group(1))
        except HclSyntaxError:
            return value
        return json.dumps(decoded, indent=2) if isinstance(decoded, (dict, list)) else value

    stripped = value.strip()
    if stripped.startswith(("{", "[")):
        try:
            return json.dumps(json.loads(stripped), indent=2)
        except ValueError:
            return value
    return value


def coerce_value(value: Any, definition: Optional[PropertyDefinition] = None) -> Optional[str]:
    """Convert a parsed attribute value to a property string of the definition's kind.

    Returns None for null values, which are left out of the property bag.
    """
    if value is None:
        return None
    kind = definition.kind if definition is not None else None
    if kind is PropertyKind.JSON:
        return _json_text(value)
    if kind is PropertyKind.BOOLEAN and isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower()
    if kind is PropertyKind.NUMBER and isinstance(value, str):
        try:
            return _format_number(float(value))
        except ValueError:
            return value
    return format_value(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def format_resource_name(text: str) -> str:
    """Normalise a label into a configuration identifier, e.g. "My API" -> "my_api"."""
    name = re.sub(r"[^a-z0-9_]", "_", text.lower())
    name = re.sub(r"_+", "_", name).strip("_")
    return name or "resource"


def create_block(
    catalog: SchemaCatalog,
    resource_type: ResourceType,
    x: float,
    y: float,
    label: str = "",
    name: str = "",
    source_type: str = "",
    properties: Optional[Dict[str, str]] = None,
) -> Block:
    """Build a block with catalog defaults underneath the given properties."""
    merged = catalog.default_properties(resource_type)
    merged.update(properties or {})
    label = label or resource_type.display_name
    return Block(
        id=new_id("block"),
        resource_type=resource_type,
        category=categorize(source_type or resource_type),
        x=x,
        y=y,
        width=DEFAULT_BLOCK_WIDTH,
        height=DEFAULT_BLOCK_HEIGHT,
        label=label,
        properties=merged,
        description=catalog.resource_description(resource_type),
        name=name or format_resource_name(label),
        source_type=source_type,
    )


# --- Dependencies ----------------------------------------------------------
def find_dependencies(resources: Iterable[ResourceRecord]) -> List[Dependency]:
    """Dependencies between the given records, in declaration order.

    Only references to declared resources count; self references are
    ignored.
    """
    records = list(resources)
    declared = {record.address for record in records}
    dependencies: List[Dependency] = []
    seen = set()
    for record in records:
        for reference in find_resource_references(record.attributes):
            target = reference.address
            if target == record.address or target not in declared:
                continue
            key = (record.address, target)
            if key in seen:
                continue
            seen.add(key)
            dependencies.append(Dependency(record.address, target))
    return dependencies


class ConfigurationParser:
    """Parses configuration text and converts it into blocks and connections."""

    def __init__(self, catalog: Optional[SchemaCatalog] = None):
        self._catalog = catalog if catalog is not None else SchemaCatalog()

    @property
    def catalog(self) -> SchemaCatalog:
        return self._catalog

    def parse(self, text: str, source: str = "<text>") -> ParseResult:
        """Parse one file.  Malformed text yields an empty result."""
        try:
            body = parse_hcl(text)
        except HclSyntaxError as exc:
            logger.warning("Could not parse %s: %s", source, exc)
            return ParseResult()

        result = ParseResult()
        for block in body.blocks:
            if block.type == "resource":
                if len(block.labels) < 2:
                    logger.warning("Skipping resource block with labels %s in %s", block.labels, source)
                    continue
                result.resources.append(ResourceRecord(block.labels[0], block.labels[1], block.body.to_value()))
            elif block.type == "module":
                if not block.labels:
                    continue
                result.resources.append(ResourceRecord(MODULE_TYPE, block.labels[0], block.body.to_value()))
            elif block.type == "variable":
                if not block.labels:
                    continue
                result.variables.append(self._variable_record(block))
            elif block.type == "data":
                logger.debug("Skipping data source %s in %s", ".".join(block.labels), source)

        result.dependencies = find_dependencies(result.resources)
        logger.debug(
            "Parsed %s: %d resources, %d variables",
            source,
            len(result.resources),
            len(result.variables),
        )
        return result

    def parse_files(self, texts: Iterable[str]) -> ParseResult:
        """Parse several files of one configuration; references may cross files."""
        merged = ParseResult()
        for index, text in enumerate(texts):
            result = self.parse(text, source=f"file #{index + 1}")
            merged.resources.extend(result.resources)
            merged.variables.extend(result.variables)
        merged.dependencies = find_dependencies(merged.resources)
        return merged

    @staticmethod
    def _variable_record(block: HclBlock) -> VariableRecord:
        attributes = block.body.attributes
        declared_type = attributes.get("type")
        type_expression = expression_text(declared_type)
        if type_expression is None:
            type_expression = declared_type if isinstance(declared_type, str) else ""
        default = attributes.get("default")
        return VariableRecord(
            name=block.labels[0],
            type=variable_type_from_expression(type_expression, default),
            description=format_value(attributes.get("description")),
            default=None if default is None else format_value(default),
            sensitive=_as_bool(attributes.get("sensitive", False)),
            type_expression=type_expression,
        )

    # --- Conversion ---------------------------------------------------------
    def _label_for(self, record: ResourceRecord, resource_type: ResourceType) -> str:
        if record.type == MODULE_TYPE:
            return f"Module: {record.name}"
        if resource_type is ResourceType.UNKNOWN:
            return f"{record.type}: {record.name}"
        return f"{resource_type.display_name}: {record.name}"

    def _properties_for(self, record: ResourceRecord, resource_type: ResourceType) -> Dict[str, str]:
        properties: Dict[str, str] = {}
        for name, value in record.attributes.items():
            if name in _CONNECTION_ATTRIBUTES:
                continue
            definition = self._catalog.property_definition(resource_type, name)
            coerced = coerce_value(value, definition)
            if coerced is not None:
                properties[name] = coerced
        return properties

    def convert_to_blocks(self, resources: Iterable[ResourceRecord]) -> List[Block]:
        """One block per record, in order, with catalog-typed properties.

        Records without an explicit position are placed on the import grid by
        their index, so the same input always produces the same layout.
        """
        blocks: List[Block] = []
        for index, record in enumerate(resources):
            resource_type = by_canonical_name(record.type)
            position = record.position if record.position is not None else grid_position(index)
            blocks.append(
                create_block(
                    self._catalog,
                    resource_type,
                    position.x,
                    position.y,
                    label=self._label_for(record, resource_type),
                    name=record.name,
                    source_type="" if resource_type is not ResourceType.UNKNOWN else record.type,
                    properties=self._properties_for(record, resource_type),
                )
            )
        return blocks

    @staticmethod
    def build_connections(
        resources: List[ResourceRecord],
        blocks: List[Block],
        dependencies: Iterable[Dependency],
    ) -> List[Connection]:
        """Turn dependencies into connections between the converted blocks.

        The referenced resource is the source (output side); the referencing
        resource is the target (input side).  ``resources`` and ``blocks``
        must be parallel lists as produced by :meth:`convert_to_blocks`.
        """
        block_ids: Dict[str, str] = {}
        for record, block in zip(resources, blocks):
            block_ids.setdefault(record.address, block.id)

        connections: List[Connection] = []
        seen: set = set()
        for dependency in dependencies:
            source_id = block_ids.get(dependency.target)
            target_id = block_ids.get(dependency.source)
            if not source_id or not target_id or source_id == target_id:
                continue
            pair: Tuple[str, str] = (source_id, target_id)
            if pair in seen:
                continue
            seen.add(pair)
            connections.append(Connection(new_id("connection"), source_id, target_id))
        return connections

    def convert(self, result: ParseResult) -> Tuple[List[Block], List[Connection]]:
        blocks = self.convert_to_blocks(result.resources)
        return blocks, self.build_connections(result.resources, blocks, result.dependencies)
