"""Command line entry point.

Exit codes:
    0 - no device assessed as high risk
    1 - at least one device is high risk
    2 - usage error, unreadable input or smartctl missing
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .assess import assess_devices, scan
from .config import PredictionMode, load_settings
from .models import NormalizedDeviceRecord, RiskTier
from .report import format_table, reports_to_json
from .smartctl import has_smartctl, record_from_smartctl_json

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="disk-risk",
        description="Classify drive risk and forecast replacement timing from SMART data.",
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        help="saved `smartctl -a -j` output files; scans local disks when omitted",
    )
    parser.add_argument("-c", "--config", help="YAML settings file")
    parser.add_argument(
        "-m",
        "--mode",
        choices=[m.value for m in PredictionMode],
        help="override the prediction mode from the settings file",
    )
    parser.add_argument("-f", "--format", choices=["json", "table"], default="table")
    parser.add_argument("-w", "--workers", type=int, default=None, help="assess devices in parallel")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _load_inputs(paths: List[str]) -> List[NormalizedDeviceRecord]:
    records = []
    for path in paths:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a smartctl JSON object")
        records.append(record_from_smartctl_json(data))
    return records


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    settings = load_settings(args.config)
    if args.mode:
        settings.mode = PredictionMode(args.mode)

    if args.inputs:
        try:
            records = _load_inputs(args.inputs)
        except (OSError, ValueError) as exc:
            logger.error("Cannot read input: %s", exc)
            return 2
        reports = assess_devices(records, settings, max_workers=args.workers)
    else:
        if not has_smartctl():
            logger.error("smartctl not found in PATH")
            return 2
        try:
            reports = scan(settings, max_workers=args.workers)
        except RuntimeError as exc:
            logger.error("Disk scan failed: %s", exc)
            return 2

    if args.format == "json":
        print(reports_to_json(reports))
    else:
        print(format_table(reports))

    return 1 if any(r.tier is RiskTier.HIGH for r in reports) else 0


if __name__ == "__main__":
    sys.exit(main())
