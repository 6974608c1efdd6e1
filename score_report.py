"""Text and tabular output for the student score reports."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Mapping

import pandas as pd

from score_analytics import score_for
from score_records import COMPONENTS, StudentRecord

EMPTY_SECTION = "(no records)"


def format_averages(averages: Dict[str, float]) -> List[str]:
    lines = ["--- Average Scores ---"]
    if not averages:
        lines.append(EMPTY_SECTION)
        return lines
    for component in COMPONENTS:
        if component in averages:
            lines.append(f"{component}: {averages[component]:.2f}")
    return lines


def format_branch_averages(branch_averages: Dict[str, float], cohort_year: str) -> List[str]:
    lines = [f"--- Branch-wise Averages ({cohort_year} Batch) ---"]
    if not branch_averages:
        lines.append(EMPTY_SECTION)
        return lines
    for branch, avg in branch_averages.items():
        lines.append(f"Branch {branch}: {avg:.2f}")
    return lines


def format_rankings(rankings: Dict[str, List[StudentRecord]], top_n: int = 3) -> List[str]:
    lines = [f"--- Top {top_n} Students Per Component ---"]
    for component in COMPONENTS:
        lines.append("")
        lines.append(f"{component}:")
        ranked = rankings.get(component, [])
        if not ranked:
            lines.append(EMPTY_SECTION)
            continue
        for rank, record in enumerate(ranked, start=1):
            lines.append(f"Rank:{rank}. {record.employee_id} - {score_for(record, component):.2f}")
    return lines


def render_report(
    averages: Dict[str, float],
    branch_averages: Dict[str, float],
    rankings: Dict[str, List[StudentRecord]],
    cohort_year: str,
    top_n: int = 3,
) -> str:
    """Join the three report sections, each preceded by a blank line."""

    sections = [
        format_averages(averages),
        format_branch_averages(branch_averages, cohort_year),
        format_rankings(rankings, top_n),
    ]
    lines: List[str] = []
    for section in sections:
        lines.append("")
        lines.extend(section)
    return "\n".join(lines) + "\n"


def write_table(frame: pd.DataFrame, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    suffix = destination.suffix.lower()
    if suffix in {".xlsx", ".xlsm", ".xls"}:
        frame.to_excel(destination, index=False)
    else:
        frame.to_csv(destination, index=False)


def write_outputs(
    outdir: str,
    tables: Mapping[str, pd.DataFrame],
    issues: List[Dict[str, object]],
) -> None:
    """Write every table to ``score_report.xlsx`` and to one CSV each.

    The data-quality issues collected while parsing go to
    ``data_quality_report.csv`` (header only when the input was clean).
    """

    os.makedirs(outdir, exist_ok=True)
    with pd.ExcelWriter(os.path.join(outdir, "score_report.xlsx"), engine="openpyxl") as w:
        for sheet_name, frame in tables.items():
            frame.to_excel(w, index=False, sheet_name=sheet_name)

    for name, frame in tables.items():
        write_table(frame, Path(outdir) / f"{name}.csv")

    dq_df = pd.DataFrame(issues, columns=["row", "kind", "issue"])
    dq_df.to_csv(os.path.join(outdir, "data_quality_report.csv"), index=False)
