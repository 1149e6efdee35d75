from pathlib import Path

from openpyxl import load_workbook
import pandas as pd

from workout_reconciliation import reconcile
from workout_reconciliation.excel_writer import write_comparison
from workout_reconciliation.summary import build_comparison_frame


def test_comparison_sheet_with_overall(tmp_path: Path, structured_run_plan, completed_run):
    df = build_comparison_frame(reconcile(structured_run_plan, completed_run))
    out = tmp_path / "comparison.xlsx"
    write_comparison(out, [("tuesday intervals", df)])

    book = pd.read_excel(out, sheet_name=None)
    assert list(book) == ["tuesday intervals"]

    ws = load_workbook(out)["tuesday intervals"]
    header = [cell.value for cell in ws[1]]
    assert header[:3] == ["Step", "Kind", "Planned"]
    assert ws.cell(row=1, column=1).fill.fgColor.rgb == "FFFF40FF"
    # Three interval rows, two blank rows, then the overall table.
    assert ws.cell(row=7, column=1).value == "Metric"
    assert ws.cell(row=8, column=1).value == "Distance"
    assert ws.column_dimensions["A"].width >= 6


def test_duplicate_and_invalid_sheet_names(tmp_path: Path):
    df = pd.DataFrame({"Status": ["No plan to compare."]})
    out = tmp_path / "names.xlsx"
    write_comparison(out, [("run/1", df), ("run/1", df), ("x" * 40, df)])
    names = load_workbook(out).sheetnames
    assert names[0] == "run_1"
    assert names[1] == "run_1_1"
    assert len(names[2]) == 31


def test_empty_input_writes_message(tmp_path: Path):
    out = tmp_path / "empty.xlsx"
    write_comparison(out, [])
    book = pd.read_excel(out, sheet_name=None)
    assert list(book) == ["Summary"]
    assert book["Summary"].loc[0, "Message"] == "No results to display."
