#!/usr/bin/env python3
"""Validate a student score workbook and print class, branch and top-N reports."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from score_analytics import (
    DEFAULT_BRANCH_MARKER,
    DEFAULT_COHORT_YEAR,
    DEFAULT_TOP_N,
    build_averages_table,
    build_branch_table,
    build_rankings_table,
    build_records_table,
    compute_branch_averages,
    compute_component_averages,
    rank_students,
)
from score_records import DEFAULT_TOLERANCE
from score_report import render_report, write_outputs, write_table
from score_workbook import FileError, load_records

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, object] = {
    "cohort_year": DEFAULT_COHORT_YEAR,
    "branch_marker": DEFAULT_BRANCH_MARKER,
    "top_n": DEFAULT_TOP_N,
    "tolerance": DEFAULT_TOLERANCE,
}


def load_config(path: Optional[str]) -> Dict[str, object]:
    """Return the defaults overlaid with the JSON object stored at *path*."""

    cfg = dict(DEFAULT_CONFIG)
    if not path:
        return cfg
    if not os.path.isfile(path):
        raise SystemExit(f"Config file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid config file {path}: {exc}")
    if not isinstance(loaded, dict):
        raise SystemExit(f"Invalid config file {path}: expected a JSON object")
    unknown = sorted(set(loaded) - set(DEFAULT_CONFIG))
    if unknown:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
    cfg.update({k: v for k, v in loaded.items() if k in DEFAULT_CONFIG})
    return cfg


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("workbook", help="Path to the score workbook (.xlsx)")
    parser.add_argument("--config", default=None, help="Optional JSON configuration file")
    parser.add_argument(
        "--cohort-year",
        default=None,
        help="Cohort year prefix for branch averages (default: config or %s)" % DEFAULT_COHORT_YEAR,
    )
    parser.add_argument(
        "--branch-marker",
        default=None,
        help="Substring a branch code must contain (default: config or %s)" % DEFAULT_BRANCH_MARKER,
    )
    parser.add_argument(
        "--top-n",
        type=int,
        default=None,
        help="Number of students ranked per component (default: config or %d)" % DEFAULT_TOP_N,
    )
    parser.add_argument(
        "--outdir",
        default=None,
        help="Also write the report tables and data-quality report to this directory",
    )
    parser.add_argument(
        "--records-output",
        type=Path,
        default=None,
        help="Write the parsed records table here; the format is inferred from the file extension.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace) -> Dict[str, object]:
    cfg = load_config(args.config)
    if args.cohort_year is not None:
        cfg["cohort_year"] = args.cohort_year
    if args.branch_marker is not None:
        cfg["branch_marker"] = args.branch_marker
    if args.top_n is not None:
        cfg["top_n"] = args.top_n

    cfg["cohort_year"] = str(cfg["cohort_year"])
    cfg["branch_marker"] = str(cfg["branch_marker"])
    try:
        cfg["top_n"] = int(cfg["top_n"])
        cfg["tolerance"] = float(cfg["tolerance"])
    except (TypeError, ValueError):
        raise SystemExit("top_n must be an integer and tolerance a number")
    if cfg["top_n"] < 1:
        raise SystemExit("top_n must be at least 1")
    return cfg


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    cfg = resolve_settings(args)

    issues: List[Dict[str, object]] = []
    try:
        records = load_records(args.workbook, issues, tolerance=cfg["tolerance"])
    except FileError as exc:
        print(f"Error: {exc}")
        return 1

    if not records:
        logger.warning("No valid student rows found in %s", args.workbook)

    averages = compute_component_averages(records)
    branch_averages = compute_branch_averages(
        records,
        cohort_year=cfg["cohort_year"],
        branch_marker=cfg["branch_marker"],
    )
    rankings = rank_students(records, top_n=cfg["top_n"])

    sys.stdout.write(
        render_report(averages, branch_averages, rankings, cfg["cohort_year"], cfg["top_n"])
    )

    if args.records_output is not None:
        write_table(build_records_table(records, cfg["tolerance"]), args.records_output)
        print(f"Wrote parsed records to: {args.records_output}")

    if args.outdir:
        tables = {
            "averages": build_averages_table(averages),
            "branch_averages": build_branch_table(branch_averages),
            "rankings": build_rankings_table(rankings),
            "records": build_records_table(records, cfg["tolerance"]),
        }
        write_outputs(args.outdir, tables, issues)
        print("Wrote outputs to:", args.outdir)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
