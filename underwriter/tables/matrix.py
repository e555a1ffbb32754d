"""Conversion of Textract-shaped block lists into TableMatrix grids.

Engines that are not Textract emit the same block shape (TABLE blocks whose
CHILD relationships point at CELL blocks, which in turn point at WORD and
SELECTION_ELEMENT blocks), so this is the only place that knows about grids.
"""

from typing import Any

from underwriter.tables.models import TableMatrix


def _child_ids(block: dict[str, Any]) -> list[str]:
    ids: list[str] = []
    for relationship in block.get("Relationships") or []:
        if relationship.get("Type") == "CHILD":
            ids.extend(relationship.get("Ids") or [])
    return ids


def _cell_text(cell: dict[str, Any], blocks_by_id: dict[str, dict[str, Any]]) -> str:
    parts: list[str] = []
    for child_id in _child_ids(cell):
        child = blocks_by_id.get(child_id)
        if child is None:
            continue
        if child.get("BlockType") == "WORD" and child.get("Text"):
            parts.append(child["Text"])
        elif (
            child.get("BlockType") == "SELECTION_ELEMENT"
            and child.get("SelectionStatus") == "SELECTED"
        ):
            parts.append("Yes")
    return " ".join(parts).strip()


def to_matrix(blocks: list[dict[str, Any]]) -> list[TableMatrix]:
    """Build one padded grid per TABLE block, in block order.

    Cell positions come from the 1-based RowIndex/ColumnIndex; cells without a
    valid position are ignored. Missing cells are padded with "" and None.
    """
    blocks_by_id = {block["Id"]: block for block in blocks if block.get("Id")}
    tables: list[TableMatrix] = []

    for block in blocks:
        if block.get("BlockType") != "TABLE":
            continue

        cells: list[tuple[int, int, str, float | None]] = []
        max_row = 0
        max_col = 0
        for child_id in _child_ids(block):
            cell = blocks_by_id.get(child_id)
            if cell is None or cell.get("BlockType") != "CELL":
                continue
            row_index = int(cell.get("RowIndex") or 0)
            col_index = int(cell.get("ColumnIndex") or 0)
            if row_index < 1 or col_index < 1:
                continue
            confidence = cell.get("Confidence")
            cells.append(
                (
                    row_index,
                    col_index,
                    _cell_text(cell, blocks_by_id),
                    float(confidence) if confidence is not None else None,
                )
            )
            max_row = max(max_row, row_index)
            max_col = max(max_col, col_index)

        rows = [["" for _ in range(max_col)] for _ in range(max_row)]
        confidence_grid: list[list[float | None]] = [
            [None for _ in range(max_col)] for _ in range(max_row)
        ]
        for row_index, col_index, text, confidence in cells:
            rows[row_index - 1][col_index - 1] = text
            confidence_grid[row_index - 1][col_index - 1] = confidence

        tables.append(TableMatrix(rows=rows, confidence=confidence_grid))

    return tables
