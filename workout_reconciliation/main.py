"""Command-line entry point: compare a planned workout with a completed one.

Usage examples:

    # Reconcile two local JSON payloads and print the table
    python -m workout_reconciliation --planned plan.json --completed done.json

    # Fetch the completed payload from the activity store and export Excel
    python -m workout_reconciliation --planned plan.json \
        --workout-id 8f2c1 --output results.xlsx --units metric
"""

from __future__ import annotations

import argparse
from datetime import datetime
import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from .config import DEFAULT_UNITS, OUTPUT_FILE, OUTPUT_FILE_TIMESTAMP_ENABLED
from .engine import reconcile
from .errors import ReconciliationError
from .excel_writer import write_comparison
from .fetcher import ActivityFetcher, reconcile_fetched
from .models import ReconciliationResult
from .summary import UNITS_IMPERIAL, UNITS_METRIC, build_comparison_frame

LOGGER = logging.getLogger(__name__)


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )
    else:
        logging.getLogger().setLevel(getattr(logging, level, logging.INFO))


def _resolve_output_path(requested: Optional[str]) -> str:
    if requested:
        return requested
    if OUTPUT_FILE_TIMESTAMP_ENABLED:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{OUTPUT_FILE}_{timestamp}.xlsx"
    return f"{OUTPUT_FILE}.xlsx"


def _load_json(path: str) -> Mapping[str, Any]:
    with Path(path).open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, Mapping):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare a planned workout with the telemetry of a completed one"
    )
    parser.add_argument(
        "--planned",
        help="Path to the planned workout JSON (omit to report 'no plan')",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--completed",
        help="Path to the completed workout JSON",
    )
    source.add_argument(
        "--workout-id",
        help="Fetch the completed workout from ACTIVITY_STORE_URL instead",
    )
    parser.add_argument(
        "--units",
        choices=[UNITS_IMPERIAL, UNITS_METRIC],
        default=DEFAULT_UNITS if DEFAULT_UNITS in (UNITS_IMPERIAL, UNITS_METRIC)
        else UNITS_IMPERIAL,
        help="Display units (default: DEFAULT_UNITS or imperial)",
    )
    parser.add_argument(
        "--output",
        help="Write the comparison to this Excel file",
    )
    parser.add_argument(
        "--excel",
        action="store_true",
        help="Write Excel output to the default OUTPUT_FILE name",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    return parser


def _run(args: argparse.Namespace) -> ReconciliationResult:
    planned = _load_json(args.planned) if args.planned else None
    if args.workout_id:
        outcome = ActivityFetcher().fetch(args.workout_id)
        return reconcile_fetched(planned, outcome)
    return reconcile(planned, _load_json(args.completed))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    try:
        result = _run(args)
    except (OSError, ValueError) as exc:
        LOGGER.error("Failed to load input: %s", exc)
        return 1
    except ReconciliationError as exc:
        LOGGER.error("Reconciliation failed: %s", exc)
        return 1

    df = build_comparison_frame(result, args.units)
    print(df.to_string(index=False))
    overall = df.attrs.get("overall")
    if overall is not None:
        print()
        print(overall.to_string(index=False))

    if args.output or args.excel:
        output_file = _resolve_output_path(args.output)
        name = args.workout_id or Path(args.completed).stem
        write_comparison(output_file, [(name, df)])
        LOGGER.info("Comparison saved to %s (status=%s)", output_file, result.status)
    return 0


__all__ = ["main"]
