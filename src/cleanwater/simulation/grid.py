from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(slots=True, frozen=True)
class Grid:
    rows: int
    cols: int

    @property
    def size(self) -> int:
        return self.rows * self.cols

    def cell_index(self, row: int, col: int) -> int:
        return row * self.cols + col

    def row_col(self, cell_index: int) -> Tuple[int, int]:
        return divmod(cell_index, self.cols)

    def contains(self, cell_index: int) -> bool:
        return 0 <= cell_index < self.size

    def distance(self, a: int, b: int) -> int:
        """Manhattan distance between two cells."""
        a_row, a_col = self.row_col(a)
        b_row, b_col = self.row_col(b)
        return abs(a_row - b_row) + abs(a_col - b_col)

    def build_path(self) -> "WaterPath":
        mid_row = self.rows // 2
        return WaterPath(cells=tuple(self.cell_index(mid_row, col) for col in range(self.cols)))


@dataclass(slots=True, frozen=True)
class WaterPath:
    """Ordered cells a drop walks; drop positions index into ``cells``."""

    cells: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.cells)

    def __contains__(self, cell_index: object) -> bool:
        return cell_index in self.cells

    def cell_at(self, path_index: int) -> int:
        return self.cells[path_index]

    @property
    def end_cell(self) -> int:
        return self.cells[-1]
