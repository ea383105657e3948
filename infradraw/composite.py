"""Composite (grouping) blocks for GraphModel.

A composite owns its children: grouping moves blocks off the top-level
canvas into the composite, ungrouping hands them back, and removing a
composite destroys its children together with their connections.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from PySide6.QtCore import Signal, Slot

from .parser import create_block
from .resource_types import ResourceType
from .schema import SchemaCatalog
from .types import Block, CompositeBlock, Connection, Point, new_id


def create_rest_api_composite(
    catalog: SchemaCatalog,
    x: float,
    y: float,
    api_name: str = "api",
    stage_name: str = "v1",
) -> CompositeBlock:
    """An API Gateway REST API grouped with its first resource."""
    composite = CompositeBlock(
        id=new_id("composite"),
        name=f"REST API: {api_name}",
        x=x,
        y=y,
        properties={"api_name": api_name, "stage_name": stage_name},
        description="API Gateway REST API with a resource",
        color="#d6407f",
    )
    rest_api = create_block(catalog, ResourceType.API_GATEWAY, x + 50, y + 50, name=api_name)
    rest_api.properties["name"] = api_name
    resource = create_block(catalog, ResourceType.API_GATEWAY_RESOURCE, x + 70, y + 120, name=f"{api_name}_resource")
    resource.properties["rest_api_id"] = f"${{{rest_api.address}.id}}"
    resource.properties["parent_id"] = f"${{{rest_api.address}.root_resource_id}}"
    resource.properties["path_part"] = "{proxy+}"
    composite.add_child(rest_api)
    composite.add_child(resource)
    return composite


def create_custom_group(name: str, x: float, y: float, description: str = "") -> CompositeBlock:
    return CompositeBlock(id=new_id("composite"), name=name or "Group", x=x, y=y, description=description)


COMPOSITE_TEMPLATES = ("rest_api", "custom")


class CompositeMixin:
    """Mixin providing composite block operations."""

    # Attributes expected from GraphModel
    _blocks: Dict[str, Block]
    _connections: List[Connection]
    _catalog: SchemaCatalog
    blocksChanged: Signal
    connectionsChanged: Signal
    compositesChanged: Signal
    _insert_block_row: Callable[[Block], None]
    _take_block_row: Callable[[str], Optional[Block]]
    _drop_connections_touching: Callable[[set], None]

    def _init_composites(self) -> None:
        self._composites: Dict[str, CompositeBlock] = {}
        self._active_composite_id: str = ""

    def getComposite(self, composite_id: str) -> Optional[CompositeBlock]:
        return self._composites.get(composite_id)

    def composite_of(self, block_id: str) -> Optional[CompositeBlock]:
        for composite in self._composites.values():
            if composite.find_child(block_id) is not None:
                return composite
        return None

    def _composite_snapshot(self, composite: CompositeBlock) -> Dict[str, Any]:
        return {
            "id": composite.id,
            "name": composite.name,
            "x": composite.x,
            "y": composite.y,
            "color": composite.color,
            "description": composite.description,
            "childIds": [child.id for child in composite.children],
        }

    def add_composite(self, composite: CompositeBlock) -> str:
        self._composites[composite.id] = composite
        self.compositesChanged.emit()
        return composite.id

    @Slot(str, float, float, result=str)
    def addComposite(self, name: str, x: float, y: float) -> str:
        return self.add_composite(create_custom_group(name, x, y))

    @Slot(str, float, float, str, result=str)
    def addCompositeFromTemplate(self, template: str, x: float, y: float, name: str) -> str:
        if template == "rest_api":
            composite = create_rest_api_composite(self._catalog, x, y, api_name=name or "api")
        elif template == "custom":
            composite = create_custom_group(name, x, y)
        else:
            return ""
        return self.add_composite(composite)

    @Slot("QVariantList", str, result=str)
    def groupBlocks(self, block_ids: List[str], name: str) -> str:
        """Move the given top-level blocks into a new composite."""
        blocks = [self._blocks[block_id] for block_id in block_ids if block_id in self._blocks]
        if not blocks:
            return ""
        composite = create_custom_group(
            name,
            min(block.x for block in blocks),
            min(block.y for block in blocks),
        )
        for block in blocks:
            self._take_block_row(block.id)
            composite.add_child(block)
        return self.add_composite(composite)

    @Slot(str, result=bool)
    def ungroupComposite(self, composite_id: str) -> bool:
        composite = self._composites.pop(composite_id, None)
        if composite is None:
            return False
        for child in composite.children:
            self._insert_block_row(child)
        composite.children.clear()
        if self._active_composite_id == composite_id:
            self._active_composite_id = ""
        self.compositesChanged.emit()
        return True

    @Slot(str, result=bool)
    def removeComposite(self, composite_id: str) -> bool:
        composite = self._composites.pop(composite_id, None)
        if composite is None:
            return False
        self._drop_connections_touching({child.id for child in composite.children})
        if self._active_composite_id == composite_id:
            self._active_composite_id = ""
        self.compositesChanged.emit()
        return True

    @Slot(str, float, float)
    def moveComposite(self, composite_id: str, x: float, y: float) -> None:
        composite = self._composites.get(composite_id)
        if composite is None or (composite.x == x and composite.y == y):
            return
        composite.position = Point(x, y)
        self.compositesChanged.emit()
        if composite.children:
            self.connectionsChanged.emit()

    @Slot(str, str, result=bool)
    def addChildToComposite(self, composite_id: str, block_id: str) -> bool:
        composite = self._composites.get(composite_id)
        if composite is None or block_id not in self._blocks:
            return False
        block = self._take_block_row(block_id)
        composite.add_child(block)
        self.compositesChanged.emit()
        return True

    @Slot(str, str, result=bool)
    def removeChildFromComposite(self, composite_id: str, block_id: str) -> bool:
        """Detach a child and put it back on the top-level canvas."""
        composite = self._composites.get(composite_id)
        if composite is None:
            return False
        child = composite.remove_child(block_id)
        if child is None:
            return False
        self._insert_block_row(child)
        self.compositesChanged.emit()
        return True

    @Slot(str, result="QVariantList")
    def compositeChildren(self, composite_id: str) -> List[Dict[str, Any]]:
        composite = self._composites.get(composite_id)
        if composite is None:
            return []
        return [
            {"id": child.id, "label": child.label, "x": child.x, "y": child.y,
             "width": child.width, "height": child.height}
            for child in composite.children
        ]

    @Slot(str, result=bool)
    def enterComposite(self, composite_id: str) -> bool:
        if composite_id not in self._composites:
            return False
        self._active_composite_id = composite_id
        self.compositesChanged.emit()
        return True

    @Slot()
    def exitComposite(self) -> None:
        if self._active_composite_id:
            self._active_composite_id = ""
            self.compositesChanged.emit()
