"""Block placement: the deterministic import grid and the arrange mixin."""

from __future__ import annotations

import math
from typing import Callable, Dict, List

from PySide6.QtCore import Slot

from .constants import (
    IMPORT_GRID_COLUMNS,
    IMPORT_GRID_ORIGIN_X,
    IMPORT_GRID_ORIGIN_Y,
    IMPORT_GRID_SPACING_X,
    IMPORT_GRID_SPACING_Y,
)
from .types import Block, Connection, Point


def grid_position(index: int, columns: int = IMPORT_GRID_COLUMNS) -> Point:
    """Position of the ``index``-th imported block, filling rows left to right."""
    row, column = divmod(index, columns)
    return Point(
        IMPORT_GRID_ORIGIN_X + column * IMPORT_GRID_SPACING_X,
        IMPORT_GRID_ORIGIN_Y + row * IMPORT_GRID_SPACING_Y,
    )


class LayoutMixin:
    """Mixin providing arrangement operations for GraphModel."""

    # Attributes expected from GraphModel
    _blocks: Dict[str, Block]
    _connections: List[Connection]
    updateBlockPosition: Callable[[str, float, float], None]

    @Slot(str)
    def arrangeBlocks(self, layout_type: str) -> None:
        """Arrange top-level blocks.

        Args:
            layout_type: One of 'grid' or 'hierarchical'
        """
        if not self._blocks:
            return

        padding = 40.0
        start_x = IMPORT_GRID_ORIGIN_X
        start_y = IMPORT_GRID_ORIGIN_Y

        if layout_type == "grid":
            self._arrange_grid(start_x, start_y, padding)
        elif layout_type == "hierarchical":
            self._arrange_hierarchical(start_x, start_y, padding)

    def _arrange_grid(self, start_x: float, start_y: float, padding: float) -> None:
        blocks = sorted(self._blocks.values(), key=lambda block: (block.y, block.x))
        cols = max(1, int(math.ceil(math.sqrt(len(blocks)))))
        cell_width = max(block.width for block in blocks) + padding
        cell_height = max(block.height for block in blocks) + padding

        for idx, block in enumerate(blocks):
            row, col = divmod(idx, cols)
            self.updateBlockPosition(block.id, start_x + col * cell_width, start_y + row * cell_height)

    def _arrange_hierarchical(self, start_x: float, start_y: float, padding: float) -> None:
        """Place blocks in columns by dependency depth, sources on the left.

        Connections point from the referenced resource to the one referencing
        it, so a VPC ends up left of its subnets and a subnet left of its
        instances.
        """
        block_ids = set(self._blocks)
        outgoing: Dict[str, List[str]] = {block_id: [] for block_id in block_ids}
        incoming: Dict[str, List[str]] = {block_id: [] for block_id in block_ids}
        for connection in self._connections:
            if connection.source_block_id in block_ids and connection.target_block_id in block_ids:
                outgoing[connection.source_block_id].append(connection.target_block_id)
                incoming[connection.target_block_id].append(connection.source_block_id)

        # Longest-path layering; blocks on a cycle keep the depth first reached.
        layers: Dict[str, int] = {}
        ordered = sorted(self._blocks.values(), key=lambda block: (block.y, block.x))
        roots = [block.id for block in ordered if not incoming[block.id]] or [ordered[0].id]
        stack = [(root, 0, frozenset([root])) for root in reversed(roots)]
        while stack:
            block_id, layer, path = stack.pop()
            if layers.get(block_id, -1) >= layer:
                continue
            layers[block_id] = layer
            for child_id in outgoing[block_id]:
                if child_id not in path:
                    stack.append((child_id, layer + 1, path | {child_id}))
        for block in ordered:
            layers.setdefault(block.id, 0)

        columns: Dict[int, List[Block]] = {}
        for block in ordered:
            columns.setdefault(layers[block.id], []).append(block)

        column_width = max(block.width for block in ordered) + padding * 2
        for layer, members in sorted(columns.items()):
            current_y = start_y
            for block in members:
                self.updateBlockPosition(block.id, start_x + layer * column_width, current_y)
                current_y += block.height + padding
