import json
from pathlib import Path

import pandas as pd
import pytest

from workout_reconciliation import main as main_module
from workout_reconciliation.fetcher import FetchOutcome
from workout_reconciliation.main import main


def _dump(tmp_path: Path, name: str, data) -> str:
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_prints_comparison_table(tmp_path, capsys, structured_run_plan, completed_run):
    planned = _dump(tmp_path, "plan.json", structured_run_plan)
    completed = _dump(tmp_path, "done.json", completed_run)
    assert main(["--planned", planned, "--completed", completed]) == 0
    out = capsys.readouterr().out
    assert "Warm-up" in out
    assert "400 m" in out
    assert "Moving Time" in out


def test_without_plan_prints_status(tmp_path, capsys, completed_run):
    completed = _dump(tmp_path, "done.json", completed_run)
    assert main(["--completed", completed, "--units", "metric"]) == 0
    assert "No plan to compare." in capsys.readouterr().out


def test_writes_excel_output(tmp_path, structured_run_plan, completed_run):
    planned = _dump(tmp_path, "plan.json", structured_run_plan)
    completed = _dump(tmp_path, "tuesday.json", completed_run)
    out = tmp_path / "result.xlsx"
    code = main(["--planned", planned, "--completed", completed, "--output", str(out)])
    assert code == 0
    book = pd.read_excel(out, sheet_name=None)
    assert list(book) == ["tuesday"]


def test_missing_file_returns_error(tmp_path):
    assert main(["--completed", str(tmp_path / "absent.json")]) == 1


def test_non_object_json_returns_error(tmp_path):
    completed = _dump(tmp_path, "done.json", [1, 2, 3])
    assert main(["--completed", completed]) == 1


def test_malformed_workout_returns_error(tmp_path):
    completed = _dump(tmp_path, "done.json", {"sport": "run", "samples": 42})
    assert main(["--completed", completed]) == 1


def test_source_is_required():
    with pytest.raises(SystemExit):
        main([])


def test_fetches_by_workout_id(monkeypatch, capsys):
    class StubFetcher:
        def fetch(self, workout_id):
            return FetchOutcome(workout_id, {"sport": "run"}, True, 4)

    monkeypatch.setattr(main_module, "ActivityFetcher", StubFetcher)
    assert main(["--workout-id", "abc123"]) == 0
    assert "Still computing." in capsys.readouterr().out
