"""Drag-to-connect gesture handling for GraphModel.

A drag starts at one of a block's connection points.  On release, the
nearest point of the opposite kind on any other block within
``CONNECTION_PROXIMITY_THRESHOLD`` becomes the other endpoint; the
connection always runs from an OUTPUT point to an INPUT point no matter
which end the drag started from.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Tuple, TYPE_CHECKING

from PySide6.QtCore import Signal, Slot

from .constants import CONNECTION_PROXIMITY_THRESHOLD
from .types import Block, ConnectionPointKind, DragState, Point

if TYPE_CHECKING:
    from .model import GraphModel


def nearest_connection_point(
    blocks: Iterable[Block],
    position: Point,
    source_block_id: str,
    source_kind: ConnectionPointKind,
    threshold: float = CONNECTION_PROXIMITY_THRESHOLD,
) -> Optional[Tuple[Block, ConnectionPointKind, float]]:
    """Find the point a drag released at ``position`` should snap to.

    Points on the source block and points of the same kind as the source are
    never candidates.  Equidistant candidates resolve to the lowest block id.
    Returns None when no candidate lies strictly closer than ``threshold``.
    """
    wanted = source_kind.opposite
    best: Optional[Tuple[float, str, Block]] = None
    for block in blocks:
        if block.id == source_block_id:
            continue
        distance = position.distance_to(block.point(wanted))
        candidate = (distance, block.id, block)
        if best is None or candidate[:2] < best[:2]:
            best = candidate

    if best is None or best[0] >= threshold:
        return None
    return best[2], wanted, best[0]


class ConnectionDragMixin:
    """Mixin implementing the Idle/Dragging connection state machine."""

    # Attributes expected from GraphModel
    dragStateChanged: Signal
    getBlock: Callable[[str], Optional[Block]]
    all_blocks: Callable[[], List[Block]]
    addConnection: Callable[[str, str], str]

    def _init_drag(self) -> None:
        self._drag = DragState()

    @property
    def drag_state(self) -> DragState:
        return self._drag

    def _reset_drag(self) -> None:
        self._drag.reset()
        self.dragStateChanged.emit()

    @Slot(str, str, result=bool)
    def startConnectionDrag(self, block_id: str, point_kind: str) -> bool:
        """Begin a drag at ``block_id``'s 'input' or 'output' point."""
        try:
            kind = ConnectionPointKind(point_kind.lower())
        except ValueError:
            return False
        block = self.getBlock(block_id)
        if block is None:
            return False

        self._drag.active = True
        self._drag.source_block_id = block_id
        self._drag.source_point_kind = kind
        self._drag.current_position = block.point(kind)
        self.dragStateChanged.emit()
        return True

    @Slot(float, float)
    def updateDragPosition(self, x: float, y: float) -> None:
        if not self._drag.active:
            return
        self._drag.current_position = Point(x, y)
        self.dragStateChanged.emit()

    @Slot(float, float, result=str)
    def endConnectionDrag(self, x: float, y: float) -> str:
        """Finish the drag at (x, y); returns the connection id or "" when none was made."""
        if not self._drag.active:
            return ""

        source_id = self._drag.source_block_id or ""
        source_kind = self._drag.source_point_kind or ConnectionPointKind.OUTPUT
        try:
            match = nearest_connection_point(self.all_blocks(), Point(x, y), source_id, source_kind)
            if match is None:
                return ""
            target_block = match[0]
            if source_kind is ConnectionPointKind.OUTPUT:
                return self.addConnection(source_id, target_block.id)
            return self.addConnection(target_block.id, source_id)
        finally:
            self._reset_drag()

    @Slot()
    def cancelConnectionDrag(self) -> None:
        if self._drag.active:
            self._reset_drag()
