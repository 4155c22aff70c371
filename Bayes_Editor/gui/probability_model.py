"""Qt table model exposing a node's conditional probability table."""

from __future__ import annotations

from typing import Any, List, Optional

from PySide6.QtCore import QAbstractTableModel, QModelIndex, QObject, Qt

from ..graph.model import Node


class ProbabilityModel(QAbstractTableModel):
    """One row per table entry.

    Columns are the parents (insertion order), the node itself and the
    editable probability. Row labels come from :meth:`Node.cpt_decompose`.
    """

    def __init__(self, node: Node, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self.node = node

    @property
    def parents(self) -> List[Node]:
        return self.node.parents

    def refresh(self) -> None:
        """Reset views after the node's values or parents changed."""
        self.beginResetModel()
        self.endResetModel()

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return self.node.table_size()

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802
        if parent.isValid():
            return 0
        return len(self.parents) + 2

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> Any:
        if not index.isValid() or role not in (
            Qt.ItemDataRole.DisplayRole,
            Qt.ItemDataRole.EditRole,
        ):
            return None
        row, column = index.row(), index.column()
        if column == self.columnCount() - 1:
            return self.node.probability(row)
        self_value, parent_values = self.node.cpt_decompose(row)
        if column == len(self.parents):
            return self.node.values[self_value]
        return self.parents[column].values[parent_values[column]]

    def headerData(  # noqa: N802
        self,
        section: int,
        orientation: Qt.Orientation,
        role: int = Qt.ItemDataRole.DisplayRole,
    ) -> Any:
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Vertical:
            return f"{section + 1}."
        if section == self.columnCount() - 1:
            return "Probability"
        if section == len(self.parents):
            return self.node.name
        return self.parents[section].name

    def flags(self, index: QModelIndex) -> Qt.ItemFlag:
        if index.isValid() and index.column() == self.columnCount() - 1:
            return (
                Qt.ItemFlag.ItemIsEnabled
                | Qt.ItemFlag.ItemIsSelectable
                | Qt.ItemFlag.ItemIsEditable
            )
        return Qt.ItemFlag.ItemIsEnabled

    def setData(  # noqa: N802
        self, index: QModelIndex, value: Any, role: int = Qt.ItemDataRole.EditRole
    ) -> bool:
        """Store a probability; values outside ``[0, 1]`` are rejected."""
        if role != Qt.ItemDataRole.EditRole or index.column() != self.columnCount() - 1:
            return False
        try:
            p = float(value)
        except (TypeError, ValueError):
            return False
        if not 0.0 <= p <= 1.0:
            return False
        self.node.set_probability(index.row(), p)
        self.dataChanged.emit(index, index)
        return True

    def group_rows(self, row: int) -> range:
        """Return the rows sharing ``row``'s parent assignment.

        These entries form one conditional distribution and should sum to 1.
        """
        arity = self.node.arity
        if arity == 0:
            return range(0)
        start = (row // arity) * arity
        return range(start, start + arity)
