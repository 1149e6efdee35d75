"""Excel export for planned-vs-executed comparison tables."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import Iterable, Sequence

import pandas as pd
from openpyxl.cell.cell import Cell
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

LOGGER = logging.getLogger(__name__)

SHEET_TITLE_LIMIT = 31
# Excel rejects these in sheet titles.
_FORBIDDEN_TITLE_CHARS = frozenset("[]:*?/\\")
EMPTY_SHEET = "Summary"
EMPTY_MESSAGE = "No results to display."

_THIN = Side(style="thin", color="000000")
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFFF40FF")
HEADER_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
OVERALL_HEADER_FONT = Font(bold=True)

PathInput = str | Path | PathLike[str]
ComparisonSheets = Sequence[tuple[str, pd.DataFrame]]


def _sheet_title(requested: str, taken: set[str]) -> str:
    """Return an Excel-safe title for ``requested`` not already in ``taken``."""

    safe = "".join("_" if ch in _FORBIDDEN_TITLE_CHARS else ch for ch in requested)
    stem = (safe.strip() or "Workout")[:SHEET_TITLE_LIMIT]
    title = stem
    counter = 0
    while title in taken:
        counter += 1
        tail = f"_{counter}"
        title = stem[: SHEET_TITLE_LIMIT - len(tail)] + tail
    taken.add(title)
    return title


def _column_width(cells: Iterable[Cell]) -> int:
    from .config import (
        EXCEL_AUTOSIZE_MAX_WIDTH,
        EXCEL_AUTOSIZE_MIN_WIDTH,
        EXCEL_AUTOSIZE_PADDING,
    )

    longest = max((len(str(c.value)) for c in cells if c.value is not None), default=0)
    return min(
        EXCEL_AUTOSIZE_MAX_WIDTH,
        max(EXCEL_AUTOSIZE_MIN_WIDTH, longest + EXCEL_AUTOSIZE_PADDING),
    )


def _autosize(ws: Worksheet) -> None:
    from .config import EXCEL_AUTOSIZE_COLUMNS, EXCEL_AUTOSIZE_MAX_ROWS

    if not EXCEL_AUTOSIZE_COLUMNS or ws.max_row > EXCEL_AUTOSIZE_MAX_ROWS:
        return
    for column in ws.columns:
        letter = getattr(column[0], "column_letter", None)
        if letter:
            ws.column_dimensions[letter].width = _column_width(column)


def _mark_header(ws: Worksheet, row: int, width: int, *, bold: bool = False) -> None:
    for col in range(1, width + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.border = HEADER_BORDER
        if bold:
            cell.font = OVERALL_HEADER_FONT


def _append_overall(ws: Worksheet, overall: pd.DataFrame) -> None:
    """Write the whole-workout table two rows below the comparison."""

    if overall.empty:
        return
    ws.append([])
    ws.append([])
    ws.append(list(overall.columns))
    _mark_header(ws, ws.max_row, len(overall.columns), bold=True)
    for values in overall.itertuples(index=False, name=None):
        ws.append(list(values))


def write_comparison(filepath: PathInput, sheets: ComparisonSheets) -> None:
    """Write one sheet per workout comparison frame.

    A frame's ``attrs["overall"]`` summary, when present, is appended below
    the table. With no frames a single message sheet is written.
    """

    target = str(Path(filepath))
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        if not sheets:
            pd.DataFrame({"Message": [EMPTY_MESSAGE]}).to_excel(
                writer, sheet_name=EMPTY_SHEET, index=False
            )
            _autosize(writer.sheets[EMPTY_SHEET])
            return
        taken: set[str] = set()
        for requested, df in sheets:
            title = _sheet_title(requested, taken)
            df.to_excel(writer, sheet_name=title, index=False)
            ws = writer.sheets[title]
            _mark_header(ws, 1, len(df.columns))
            overall = df.attrs.get("overall")
            if isinstance(overall, pd.DataFrame):
                _append_overall(ws, overall)
            _autosize(ws)
            LOGGER.info("Wrote comparison sheet %s rows=%s", title, len(df))


__all__ = ["write_comparison"]
