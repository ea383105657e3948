"""Data types for infradraw block graphs.

This module contains the core data structures shared by the parser, the
schema catalog and the Qt graph model.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .resource_types import ResourceType


def new_id(prefix: str) -> str:
    """Return a fresh identifier such as ``block_3f2a9c0d11e4``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Point:
    """A position on the canvas."""

    x: float
    y: float

    def offset(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


class ConnectionPointKind(Enum):
    """The two anchors every block exposes."""

    INPUT = "input"
    OUTPUT = "output"

    @property
    def opposite(self) -> "ConnectionPointKind":
        if self is ConnectionPointKind.INPUT:
            return ConnectionPointKind.OUTPUT
        return ConnectionPointKind.INPUT


class BlockCategory(Enum):
    """Coarse classification used for colouring and palette grouping."""

    COMPUTE = "compute"
    DATABASE = "database"
    STORAGE = "storage"
    NETWORKING = "networking"
    SECURITY = "security"
    INTEGRATION = "integration"
    MONITORING = "monitoring"


class PropertyKind(Enum):
    """Value kinds a block property can hold."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    JSON = "json"


@dataclass(frozen=True)
class PropertyDefinition:
    """A typed attribute of one resource type."""

    name: str
    kind: PropertyKind = PropertyKind.STRING
    default: Optional[str] = None
    required: bool = False
    deprecated: bool = False
    description: str = ""
    options: Tuple[str, ...] = ()


@dataclass
class Block:
    """A cloud resource placed on the canvas.

    Connection points are derived from the current position and size, so
    they can never go stale after a move or resize.
    """

    id: str
    resource_type: ResourceType
    category: BlockCategory
    x: float = 0.0
    y: float = 0.0
    width: float = 120.0
    height: float = 40.0
    label: str = ""
    properties: Dict[str, str] = field(default_factory=dict)
    description: str = ""
    name: str = ""  # Local resource name, e.g. "this" in aws_lambda_function.this
    source_type: str = ""  # Type string as written in configuration, kept for unknown types and modules

    @property
    def type_name(self) -> str:
        return self.source_type or self.resource_type.canonical_name

    @property
    def address(self) -> str:
        return f"{self.type_name}.{self.name}"

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    @property
    def input_point(self) -> Point:
        return Point(self.x, self.y + self.height / 2)

    @property
    def output_point(self) -> Point:
        return Point(self.x + self.width, self.y + self.height / 2)

    def point(self, kind: ConnectionPointKind) -> Point:
        if kind is ConnectionPointKind.INPUT:
            return self.input_point
        return self.output_point


@dataclass
class Connection:
    """A directed edge from one block's output to another block's input."""

    id: str
    source_block_id: str
    target_block_id: str


@dataclass
class DragState:
    """Transient state of an in-progress "drag to connect" gesture."""

    active: bool = False
    source_block_id: Optional[str] = None
    source_point_kind: Optional[ConnectionPointKind] = None
    current_position: Point = Point(0.0, 0.0)

    def reset(self) -> None:
        self.active = False
        self.source_block_id = None
        self.source_point_kind = None
        self.current_position = Point(0.0, 0.0)


@dataclass
class CompositeBlock:
    """A named group that owns its child blocks and moves them as one."""

    id: str
    name: str
    x: float = 0.0
    y: float = 0.0
    children: List[Block] = field(default_factory=list)
    properties: Dict[str, str] = field(default_factory=dict)
    description: str = ""
    color: str = "#5b6b8c"

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    @position.setter
    def position(self, value: Point) -> None:
        dx = value.x - self.x
        dy = value.y - self.y
        for child in self.children:
            child.x += dx
            child.y += dy
        self.x = value.x
        self.y = value.y

    def find_child(self, block_id: str) -> Optional[Block]:
        for child in self.children:
            if child.id == block_id:
                return child
        return None

    def add_child(self, block: Block) -> None:
        if self.find_child(block.id) is None:
            self.children.append(block)

    def remove_child(self, block_id: str) -> Optional[Block]:
        for index, child in enumerate(self.children):
            if child.id == block_id:
                return self.children.pop(index)
        return None
