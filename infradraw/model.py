"""Core GraphModel class for infradraw.

This module provides the Qt model holding blocks and the connections
between them.  Blocks live in an arena keyed by id; connections only store
ids, and every lookup goes through the arena (or a composite's children).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from PySide6.QtCore import (
    QAbstractListModel,
    QModelIndex,
    Property,
    Qt,
    Signal,
    Slot,
)

from .composite import COMPOSITE_TEMPLATES, CompositeMixin
from .connections import ConnectionDragMixin
from .constants import CATEGORY_PRESETS, MIN_BLOCK_HEIGHT, MIN_BLOCK_WIDTH
from .layout import LayoutMixin
from .parser import create_block
from .references import (
    VariableReference,
    extract_references,
    find_resource_references,
    find_variable_references,
)
from .resource_types import ResourceType, by_canonical_name, by_display_name
from .schema import SchemaCatalog
from .types import Block, BlockCategory, CompositeBlock, Connection, new_id

logger = logging.getLogger(__name__)


class GraphModel(
    ConnectionDragMixin,
    CompositeMixin,
    LayoutMixin,
    QAbstractListModel,
):
    """Qt model exposing top-level blocks to QML."""

    IdRole = Qt.UserRole + 1
    ResourceTypeRole = Qt.UserRole + 2
    CanonicalNameRole = Qt.UserRole + 3
    CategoryRole = Qt.UserRole + 4
    XRole = Qt.UserRole + 5
    YRole = Qt.UserRole + 6
    WidthRole = Qt.UserRole + 7
    HeightRole = Qt.UserRole + 8
    LabelRole = Qt.UserRole + 9
    ColorRole = Qt.UserRole + 10
    TextColorRole = Qt.UserRole + 11
    PropertiesRole = Qt.UserRole + 12
    DescriptionRole = Qt.UserRole + 13
    InputXRole = Qt.UserRole + 14
    InputYRole = Qt.UserRole + 15
    OutputXRole = Qt.UserRole + 16
    OutputYRole = Qt.UserRole + 17

    blocksChanged = Signal()
    connectionsChanged = Signal()
    dragStateChanged = Signal()
    compositesChanged = Signal()

    def __init__(self, catalog: Optional[SchemaCatalog] = None):
        super().__init__()
        self._catalog = catalog if catalog is not None else SchemaCatalog()
        self._blocks: Dict[str, Block] = {}
        # Row order and its inverse, kept in step with _blocks.
        self._order: List[str] = []
        self._rows: Dict[str, int] = {}
        self._connections: List[Connection] = []

        # Initialize mixins
        self._init_drag()
        self._init_composites()

    @property
    def catalog(self) -> SchemaCatalog:
        return self._catalog

    # --- Arena helpers -------------------------------------------------------
    def _row_of(self, block_id: str) -> int:
        return self._rows.get(block_id, -1)

    def _reindex(self, start: int = 0) -> None:
        for row in range(start, len(self._order)):
            self._rows[self._order[row]] = row

    def _insert_block_row(self, block: Block) -> None:
        row = len(self._order)
        self.beginInsertRows(QModelIndex(), row, row)
        self._blocks[block.id] = block
        self._order.append(block.id)
        self._rows[block.id] = row
        self.endInsertRows()
        self.blocksChanged.emit()

    def _take_block_row(self, block_id: str) -> Optional[Block]:
        row = self._row_of(block_id)
        if row < 0:
            return None
        self.beginRemoveRows(QModelIndex(), row, row)
        block = self._blocks.pop(block_id)
        del self._order[row]
        del self._rows[block_id]
        self._reindex(row)
        self.endRemoveRows()
        self.blocksChanged.emit()
        return block

    def _drop_connections_touching(self, block_ids: set) -> None:
        filtered = [
            connection
            for connection in self._connections
            if connection.source_block_id not in block_ids and connection.target_block_id not in block_ids
        ]
        if len(filtered) != len(self._connections):
            self._connections = filtered
            self.connectionsChanged.emit()

    def _emit_block_changed(self, block_id: str, roles: List[int]) -> None:
        row = self._row_of(block_id)
        if row >= 0:
            index = self.index(row, 0)
            self.dataChanged.emit(index, index, roles)
            self.blocksChanged.emit()
        else:
            self.compositesChanged.emit()

    # --- Qt model overrides -------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = QModelIndex()) -> int:  # type: ignore[override]
        return len(self._order)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._order)):
            return None

        block = self._blocks[self._order[index.row()]]
        preset = CATEGORY_PRESETS[block.category]
        if role == self.IdRole:
            return block.id
        if role == self.ResourceTypeRole:
            return block.resource_type.display_name
        if role == self.CanonicalNameRole:
            return block.type_name
        if role == self.CategoryRole:
            return block.category.value
        if role == self.XRole:
            return block.x
        if role == self.YRole:
            return block.y
        if role == self.WidthRole:
            return block.width
        if role == self.HeightRole:
            return block.height
        if role in (self.LabelRole, Qt.DisplayRole):
            return block.label
        if role == self.ColorRole:
            return preset["color"]
        if role == self.TextColorRole:
            return preset["text_color"]
        if role == self.PropertiesRole:
            return dict(block.properties)
        if role == self.DescriptionRole:
            return block.description
        if role == self.InputXRole:
            return block.input_point.x
        if role == self.InputYRole:
            return block.input_point.y
        if role == self.OutputXRole:
            return block.output_point.x
        if role == self.OutputYRole:
            return block.output_point.y
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return {
            self.IdRole: b"blockId",
            self.ResourceTypeRole: b"resourceType",
            self.CanonicalNameRole: b"canonicalName",
            self.CategoryRole: b"category",
            self.XRole: b"x",
            self.YRole: b"y",
            self.WidthRole: b"width",
            self.HeightRole: b"height",
            self.LabelRole: b"label",
            self.ColorRole: b"color",
            self.TextColorRole: b"textColor",
            self.PropertiesRole: b"properties",
            self.DescriptionRole: b"description",
            self.InputXRole: b"inputX",
            self.InputYRole: b"inputY",
            self.OutputXRole: b"outputX",
            self.OutputYRole: b"outputY",
        }

    # --- Properties exposed to QML -----------------------------------------
    @Property(int, notify=blocksChanged)
    def count(self) -> int:
        return len(self._blocks)

    @Property(list, notify=connectionsChanged)
    def connections(self) -> List[Dict[str, Any]]:
        result = []
        for connection in self._connections:
            source = self.getBlock(connection.source_block_id)
            target = self.getBlock(connection.target_block_id)
            if source is None or target is None:
                continue
            result.append({
                "id": connection.id,
                "sourceId": connection.source_block_id,
                "targetId": connection.target_block_id,
                "sourceX": source.output_point.x,
                "sourceY": source.output_point.y,
                "targetX": target.input_point.x,
                "targetY": target.input_point.y,
            })
        return result

    @Property(list, notify=compositesChanged)
    def composites(self) -> List[Dict[str, Any]]:
        return [self._composite_snapshot(composite) for composite in self._composites.values()]

    @Property(str, notify=compositesChanged)
    def activeCompositeId(self) -> str:
        return self._active_composite_id

    @Property(list, constant=True)
    def compositeTemplates(self) -> List[str]:
        return list(COMPOSITE_TEMPLATES)

    @Property(bool, notify=dragStateChanged)
    def isDraggingConnection(self) -> bool:
        return self._drag.active

    @Property(str, notify=dragStateChanged)
    def dragSourceId(self) -> str:
        return self._drag.source_block_id or ""

    @Property(str, notify=dragStateChanged)
    def dragSourcePointKind(self) -> str:
        kind = self._drag.source_point_kind
        return kind.value if kind is not None else ""

    @Property(float, notify=dragStateChanged)
    def dragX(self) -> float:
        return self._drag.current_position.x

    @Property(float, notify=dragStateChanged)
    def dragY(self) -> float:
        return self._drag.current_position.y

    # --- Lookups ------------------------------------------------------------
    def getBlock(self, block_id: str) -> Optional[Block]:
        block = self._blocks.get(block_id)
        if block is not None:
            return block
        composite = self.composite_of(block_id)
        return composite.find_child(block_id) if composite is not None else None

    def get_block(self, block_id: str) -> Optional[Block]:
        return self.getBlock(block_id)

    def get_blocks(self) -> List[Block]:
        """Top-level blocks in row order."""
        return list(self._blocks.values())

    def all_blocks(self) -> List[Block]:
        """Top-level blocks followed by every composite child."""
        blocks = list(self._blocks.values())
        for composite in self._composites.values():
            blocks.extend(composite.children)
        return blocks

    def get_connections(self) -> List[Connection]:
        return list(self._connections)

    # --- Blocks -------------------------------------------------------------
    def _initialize_default_properties(self, block: Block) -> None:
        for name, value in self._catalog.default_properties(block.resource_type).items():
            block.properties.setdefault(name, value)

    def add_block(self, block: Block) -> str:
        """Insert a block built elsewhere; missing defaults come from the catalog."""
        if self.getBlock(block.id) is not None:
            logger.warning("Block id %s already present; ignoring insert", block.id)
            return ""
        self._initialize_default_properties(block)
        self._insert_block_row(block)
        return block.id

    @Slot(str, float, float, str, result=str)
    def addBlock(self, resource_name: str, x: float, y: float, label: str = "") -> str:
        """Add a block for a canonical (``aws_vpc``) or display (``VPC``) type name."""
        resource_type = by_canonical_name(resource_name)
        if resource_type is ResourceType.UNKNOWN:
            resource_type = by_display_name(resource_name)
        block = create_block(self._catalog, resource_type, x, y, label=label.strip())
        return self.add_block(block)

    @Slot(str)
    def removeBlock(self, block_id: str) -> None:
        self._drop_connections_touching({block_id})

        if self._take_block_row(block_id) is None:
            composite = self.composite_of(block_id)
            if composite is not None:
                composite.remove_child(block_id)
                self.compositesChanged.emit()

        if self._drag.active and self._drag.source_block_id == block_id:
            self._reset_drag()

    @Slot(str, float, float)
    def updateBlockPosition(self, block_id: str, x: float, y: float) -> None:
        block = self.getBlock(block_id)
        if block is None or (block.x == x and block.y == y):
            return
        block.x = x
        block.y = y
        self._emit_block_changed(
            block_id,
            [self.XRole, self.YRole, self.InputXRole, self.InputYRole, self.OutputXRole, self.OutputYRole],
        )
        if self._touches_connection(block_id):
            self.connectionsChanged.emit()

    @Slot(str, float, float)
    def updateBlockSize(self, block_id: str, width: float, height: float) -> None:
        block = self.getBlock(block_id)
        if block is None:
            return
        new_width = max(MIN_BLOCK_WIDTH, width)
        new_height = max(MIN_BLOCK_HEIGHT, height)
        if block.width == new_width and block.height == new_height:
            return
        block.width = new_width
        block.height = new_height
        self._emit_block_changed(
            block_id,
            [self.WidthRole, self.HeightRole, self.InputXRole, self.InputYRole, self.OutputXRole, self.OutputYRole],
        )
        if self._touches_connection(block_id):
            self.connectionsChanged.emit()

    @Slot(str, str)
    def setBlockLabel(self, block_id: str, label: str) -> None:
        block = self.getBlock(block_id)
        if block is None or block.label == label:
            return
        block.label = label
        self._emit_block_changed(block_id, [self.LabelRole])

    @Slot(str, str, str)
    def updateBlockProperty(self, block_id: str, name: str, value: str) -> None:
        block = self.getBlock(block_id)
        if block is None or not name or block.properties.get(name) == value:
            return
        block.properties[name] = value
        self._emit_block_changed(block_id, [self.PropertiesRole])

    @Slot(str, str, result=str)
    def getBlockProperty(self, block_id: str, name: str) -> str:
        block = self.getBlock(block_id)
        if block is None:
            return ""
        return block.properties.get(name, "")

    @Slot(str, result="QVariantList")
    def getPropertyDefinitions(self, block_id: str) -> List[Dict[str, Any]]:
        block = self.getBlock(block_id)
        if block is None:
            return []
        return [
            {
                "name": definition.name,
                "kind": definition.kind.value,
                "default": definition.default or "",
                "required": definition.required,
                "deprecated": definition.deprecated,
                "description": definition.description,
                "options": list(definition.options),
            }
            for definition in self._catalog.properties_for_block(block)
        ]

    # --- Connections --------------------------------------------------------
    def _touches_connection(self, block_id: str) -> bool:
        return any(
            connection.source_block_id == block_id or connection.target_block_id == block_id
            for connection in self._connections
        )

    def _find_connection(self, source_id: str, target_id: str) -> Optional[Connection]:
        for connection in self._connections:
            if connection.source_block_id == source_id and connection.target_block_id == target_id:
                return connection
        return None

    @Slot(str, str, result=str)
    def addConnection(self, source_id: str, target_id: str) -> str:
        """Connect source's output to target's input.

        Returns the connection id; an existing connection between the pair is
        returned as is.  Self loops and unknown blocks yield "".
        """
        if source_id == target_id:
            return ""
        if self.getBlock(source_id) is None or self.getBlock(target_id) is None:
            return ""
        existing = self._find_connection(source_id, target_id)
        if existing is not None:
            return existing.id
        connection = Connection(new_id("connection"), source_id, target_id)
        self._connections.append(connection)
        self.connectionsChanged.emit()
        return connection.id

    @Slot(str, result=bool)
    def removeConnection(self, connection_id: str) -> bool:
        for idx, connection in enumerate(self._connections):
            if connection.id == connection_id:
                self._connections.pop(idx)
                self.connectionsChanged.emit()
                return True
        return False

    @Slot(str, result="QVariantList")
    def referencingBlocks(self, block_id: str) -> List[str]:
        """Ids of blocks whose property values reference this block's resource."""
        block = self.getBlock(block_id)
        if block is None or not block.name:
            return []
        address = block.address
        return [
            other.id
            for other in self.all_blocks()
            if other.id != block_id
            and any(reference.address == address for reference in find_resource_references(other.properties))
        ]

    @Slot(str, result=bool)
    def isBlockReferenced(self, block_id: str) -> bool:
        return bool(self.referencingBlocks(block_id))

    @Slot(str, result="QVariantList")
    def blocksReferencingVariable(self, name: str) -> List[str]:
        """Ids of blocks whose property values use ``var.<name>``."""
        if not name:
            return []
        return [block.id for block in self.all_blocks() if name in find_variable_references(block.properties)]

    @Slot(str, str, result="QVariantList")
    def getPropertyReferences(self, block_id: str, name: str) -> List[Dict[str, str]]:
        """Variables and resources one property points at, for the property panel.

        Resource entries carry the id of the block declaring that address,
        or an empty string when the graph has no such block.
        """
        value = self.getBlockProperty(block_id, name)
        by_address = {block.address: block.id for block in self.all_blocks() if block.name}
        references = []
        for reference in extract_references(value):
            if isinstance(reference, VariableReference):
                references.append({"kind": "variable", "name": reference.name, "blockId": ""})
            else:
                references.append(
                    {"kind": "resource", "name": reference.address, "blockId": by_address.get(reference.address, "")}
                )
        return references

    # --- Bulk operations ----------------------------------------------------
    @Slot()
    def clearAll(self) -> None:
        self.replace_contents([], [])

    def replace_contents(
        self,
        blocks: Iterable[Block],
        connections: Iterable[Connection],
        composites: Iterable[CompositeBlock] = (),
    ) -> None:
        """Swap the whole graph in one step.

        Listeners see a single model reset followed by one change
        notification per kind, never a half old and half new graph.
        """
        self.beginResetModel()
        self._blocks = {}
        for block in blocks:
            self._initialize_default_properties(block)
            self._blocks[block.id] = block
        self._order = list(self._blocks)
        self._rows = {}
        self._reindex()
        self._composites = {composite.id: composite for composite in composites}
        self._active_composite_id = ""

        known = {block.id for block in self.all_blocks()}
        self._connections = []
        seen = set()
        for connection in connections:
            pair = (connection.source_block_id, connection.target_block_id)
            if pair[0] == pair[1] or pair[0] not in known or pair[1] not in known or pair in seen:
                continue
            seen.add(pair)
            self._connections.append(connection)
        self._drag.reset()
        self.endResetModel()

        self.blocksChanged.emit()
        self.connectionsChanged.emit()
        self.compositesChanged.emit()
        self.dragStateChanged.emit()

    # --- Serialization ------------------------------------------------------
    @staticmethod
    def _block_to_dict(block: Block) -> Dict[str, Any]:
        return {
            "id": block.id,
            "resource_type": block.resource_type.canonical_name,
            "source_type": block.source_type,
            "category": block.category.value,
            "x": block.x,
            "y": block.y,
            "width": block.width,
            "height": block.height,
            "label": block.label,
            "name": block.name,
            "properties": dict(block.properties),
            "description": block.description,
        }

    @staticmethod
    def _block_from_dict(data: Dict[str, Any]) -> Block:
        resource_type = by_canonical_name(data.get("resource_type", ""))
        try:
            category = BlockCategory(data.get("category", BlockCategory.INTEGRATION.value))
        except ValueError:
            category = BlockCategory.INTEGRATION
        return Block(
            id=data.get("id") or new_id("block"),
            resource_type=resource_type,
            category=category,
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            width=float(data.get("width", 120.0)),
            height=float(data.get("height", 40.0)),
            label=data.get("label", ""),
            properties={str(key): str(value) for key, value in data.get("properties", {}).items()},
            description=data.get("description", ""),
            name=data.get("name", ""),
            source_type=data.get("source_type", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the graph to a dictionary for saving."""
        return {
            "blocks": [self._block_to_dict(block) for block in self._blocks.values()],
            "connections": [
                {"id": c.id, "source_block_id": c.source_block_id, "target_block_id": c.target_block_id}
                for c in self._connections
            ],
            "composites": [
                {
                    "id": composite.id,
                    "name": composite.name,
                    "x": composite.x,
                    "y": composite.y,
                    "color": composite.color,
                    "description": composite.description,
                    "properties": dict(composite.properties),
                    "children": [self._block_to_dict(child) for child in composite.children],
                }
                for composite in self._composites.values()
            ],
        }

    def from_dict(self, data: Dict[str, Any]) -> None:
        """Load the graph from a dictionary produced by :meth:`to_dict`."""
        blocks = [self._block_from_dict(item) for item in data.get("blocks", [])]
        composites = []
        for item in data.get("composites", []):
            composite = CompositeBlock(
                id=item.get("id") or new_id("composite"),
                name=item.get("name", "Group"),
                x=float(item.get("x", 0.0)),
                y=float(item.get("y", 0.0)),
                properties={str(k): str(v) for k, v in item.get("properties", {}).items()},
                description=item.get("description", ""),
                color=item.get("color", "#5b6b8c"),
            )
            for child in item.get("children", []):
                composite.add_child(self._block_from_dict(child))
            composites.append(composite)
        connections = [
            Connection(
                id=item.get("id") or new_id("connection"),
                source_block_id=item.get("source_block_id", ""),
                target_block_id=item.get("target_block_id", ""),
            )
            for item in data.get("connections", [])
        ]
        self.replace_contents(blocks, connections, composites)
