"""Input variable records and the Qt list model exposing them."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from PySide6.QtCore import (
    QAbstractListModel,
    QModelIndex,
    Property,
    Qt,
    Signal,
    Slot,
)

logger = logging.getLogger(__name__)


class VariableType(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    LIST = "list"
    MAP = "map"


_TYPE_KEYWORDS = {
    "string": VariableType.STRING,
    "number": VariableType.NUMBER,
    "bool": VariableType.BOOL,
    "list": VariableType.LIST,
    "set": VariableType.LIST,
    "tuple": VariableType.LIST,
    "map": VariableType.MAP,
    "object": VariableType.MAP,
    "any": VariableType.STRING,
}


def variable_type_from_expression(type_expression: str, default: Any = None) -> VariableType:
    """Map a type constraint such as ``map(string)`` onto a :class:`VariableType`.

    Without a constraint the type is inferred from the default value.
    """
    match = re.match(r"\s*([a-z]+)", type_expression or "")
    if match:
        keyword = match.group(1)
        if keyword in _TYPE_KEYWORDS:
            return _TYPE_KEYWORDS[keyword]
        logger.debug("Unknown variable type %r; treating as string", type_expression)
        return VariableType.STRING

    if isinstance(default, bool):
        return VariableType.BOOL
    if isinstance(default, (int, float)):
        return VariableType.NUMBER
    if isinstance(default, list):
        return VariableType.LIST
    if isinstance(default, dict):
        return VariableType.MAP
    return VariableType.STRING


@dataclass
class VariableRecord:
    """A declared input variable."""

    name: str
    type: VariableType = VariableType.STRING
    description: str = ""
    default: Optional[str] = None
    sensitive: bool = False
    type_expression: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
            "default": self.default,
            "sensitive": self.sensitive,
            "type_expression": self.type_expression,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VariableRecord":
        try:
            variable_type = VariableType(data.get("type", "string"))
        except ValueError:
            variable_type = VariableType.STRING
        default = data.get("default")
        return cls(
            name=str(data.get("name", "")),
            type=variable_type,
            description=str(data.get("description", "")),
            default=None if default is None else str(default),
            sensitive=bool(data.get("sensitive", False)),
            type_expression=str(data.get("type_expression", "")),
        )


def _parse_type(value: str) -> VariableType:
    try:
        return VariableType(value.lower())
    except ValueError:
        return VariableType.STRING


class VariableModel(QAbstractListModel):
    """Qt model for the configuration's input variables.

    Variable names are unique; adding a name that already exists is rejected.
    """

    NameRole = Qt.UserRole + 1
    TypeRole = Qt.UserRole + 2
    DescriptionRole = Qt.UserRole + 3
    DefaultRole = Qt.UserRole + 4
    SensitiveRole = Qt.UserRole + 5

    variablesChanged = Signal()

    def __init__(self, variables: Optional[List[VariableRecord]] = None):
        super().__init__()
        self._variables: List[VariableRecord] = []
        for record in variables or []:
            if self._index_of(record.name) < 0:
                self._variables.append(record)

    def rowCount(self, parent: Optional[QModelIndex] = QModelIndex()) -> int:  # type: ignore[override]
        return len(self._variables)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._variables)):
            return None

        record = self._variables[index.row()]
        if role in (self.NameRole, Qt.DisplayRole):
            return record.name
        if role == self.TypeRole:
            return record.type.value
        if role == self.DescriptionRole:
            return record.description
        if role == self.DefaultRole:
            return record.default if record.default is not None else ""
        if role == self.SensitiveRole:
            return record.sensitive
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return {
            self.NameRole: b"name",
            self.TypeRole: b"variableType",
            self.DescriptionRole: b"description",
            self.DefaultRole: b"defaultValue",
            self.SensitiveRole: b"sensitive",
        }

    @Property(int, notify=variablesChanged)
    def count(self) -> int:
        return len(self._variables)

    @property
    def variables(self) -> List[VariableRecord]:
        return list(self._variables)

    def _index_of(self, name: str) -> int:
        for row, record in enumerate(self._variables):
            if record.name == name:
                return row
        return -1

    def get(self, name: str) -> Optional[VariableRecord]:
        row = self._index_of(name)
        return self._variables[row] if row >= 0 else None

    def add(self, record: VariableRecord) -> bool:
        if not record.name or self._index_of(record.name) >= 0:
            return False
        row = len(self._variables)
        self.beginInsertRows(QModelIndex(), row, row)
        self._variables.append(record)
        self.endInsertRows()
        self.variablesChanged.emit()
        return True

    @Slot(str, str, str, str, bool, result=bool)
    def addVariable(self, name: str, type_name: str, description: str, default: str, sensitive: bool) -> bool:
        record = VariableRecord(
            name=name.strip(),
            type=_parse_type(type_name),
            description=description,
            default=default or None,
            sensitive=sensitive,
        )
        return self.add(record)

    @Slot(str, result=bool)
    def removeVariable(self, name: str) -> bool:
        row = self._index_of(name)
        if row < 0:
            return False
        self.beginRemoveRows(QModelIndex(), row, row)
        self._variables.pop(row)
        self.endRemoveRows()
        self.variablesChanged.emit()
        return True

    @Slot(str, str, str, str, bool, result=bool)
    def updateVariable(self, name: str, type_name: str, description: str, default: str, sensitive: bool) -> bool:
        row = self._index_of(name)
        if row < 0:
            return False
        record = self._variables[row]
        record.type = _parse_type(type_name)
        record.description = description
        record.default = default or None
        record.sensitive = sensitive
        index = self.index(row, 0)
        self.dataChanged.emit(index, index, [])
        self.variablesChanged.emit()
        return True

    @Slot()
    def clear(self) -> None:
        if not self._variables:
            return
        self.beginResetModel()
        self._variables.clear()
        self.endResetModel()
        self.variablesChanged.emit()

    def set_variables(self, records: Iterable[VariableRecord]) -> None:
        """Replace every variable in one step; later duplicates of a name are dropped."""
        unique: List[VariableRecord] = []
        seen = set()
        for record in records:
            if record.name in seen:
                logger.debug("Dropping duplicate variable %s", record.name)
                continue
            seen.add(record.name)
            unique.append(record)

        self.beginResetModel()
        self._variables = unique
        self.endResetModel()
        self.variablesChanged.emit()

    def to_dict(self) -> Dict[str, Any]:
        return {"variables": [record.to_dict() for record in self._variables]}

    def from_dict(self, data: Dict[str, Any]) -> None:
        self.set_variables(VariableRecord.from_dict(item) for item in data.get("variables", []))
