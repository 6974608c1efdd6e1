"""Aggregate views over parsed student score records."""

from __future__ import annotations

from operator import attrgetter
from typing import Callable, Dict, List, Sequence

import pandas as pd

from score_records import COMPONENT_FIELDS, COMPONENTS, StudentRecord

DEFAULT_COHORT_YEAR = "2024"
DEFAULT_BRANCH_MARKER = "A"
DEFAULT_TOP_N = 3

SCORE_SELECTORS: Dict[str, Callable[[StudentRecord], float]] = {
    component: attrgetter(field) for component, field in COMPONENT_FIELDS.items()
}

IDENTITY_COLUMNS = ["Sl No", "Class No", "Emplid", "Campus ID", "Cohort", "Branch"]


def score_for(record: StudentRecord, component: str) -> float:
    """Return *record*'s score for *component*; unknown names raise KeyError."""

    try:
        selector = SCORE_SELECTORS[component]
    except KeyError:
        raise KeyError(f"Unknown score component: {component!r}") from None
    return selector(record)


def records_frame(records: Sequence[StudentRecord]) -> pd.DataFrame:
    """One row per record, in record order, with a column per component."""

    columns = IDENTITY_COLUMNS + list(COMPONENTS)
    if not records:
        return pd.DataFrame(columns=columns)

    rows = []
    for record in records:
        row = {
            "Sl No": record.serial,
            "Class No": record.class_number,
            "Emplid": record.employee_id,
            "Campus ID": record.campus_id,
            "Cohort": record.cohort_year,
            "Branch": record.branch_code,
        }
        for component in COMPONENTS:
            row[component] = score_for(record, component)
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def compute_component_averages(records: Sequence[StudentRecord]) -> Dict[str, float]:
    """Mean of every score component; an empty dict when there are no records."""

    if not records:
        return {}
    means = records_frame(records)[list(COMPONENTS)].astype(float).mean()
    return {component: float(means[component]) for component in COMPONENTS}


def compute_branch_averages(
    records: Sequence[StudentRecord],
    cohort_year: str = DEFAULT_COHORT_YEAR,
    branch_marker: str = DEFAULT_BRANCH_MARKER,
) -> Dict[str, float]:
    """Average total per branch code for one cohort year.

    Only campus IDs of at least six characters whose first four characters
    equal *cohort_year* and whose branch code contains *branch_marker*
    are counted. Branch codes come from the data and the result is keyed
    in branch-code order.
    """

    if not records:
        return {}

    frame = records_frame(records)
    # Cohort and Branch are empty for campus IDs shorter than six characters.
    mask = (
        (frame["Branch"] != "")
        & (frame["Cohort"] == cohort_year)
        & frame["Branch"].str.contains(branch_marker, regex=False)
    )
    subset = frame.loc[mask].copy()
    if subset.empty:
        return {}

    means = subset.groupby("Branch", sort=True)["Total"].mean()
    return {str(branch): float(avg) for branch, avg in means.items()}


def rank_students(
    records: Sequence[StudentRecord],
    top_n: int = DEFAULT_TOP_N,
) -> Dict[str, List[StudentRecord]]:
    """Top *top_n* records per component, highest score first.

    Each component is ranked from its own stable sort, so equal scores keep
    the order the records were read in. *records* is left untouched.
    """

    if not records:
        return {component: [] for component in COMPONENTS}

    frame = records_frame(records)
    rankings: Dict[str, List[StudentRecord]] = {}
    for component in COMPONENTS:
        ordered = frame.sort_values(component, ascending=False, kind="mergesort")
        rankings[component] = [records[pos] for pos in ordered.index[:top_n]]
    return rankings


def build_averages_table(averages: Dict[str, float]) -> pd.DataFrame:
    columns = ["Component", "Average"]
    rows = [{"Component": c, "Average": round(averages[c], 2)} for c in COMPONENTS if c in averages]
    return pd.DataFrame(rows, columns=columns)


def build_branch_table(branch_averages: Dict[str, float]) -> pd.DataFrame:
    columns = ["Branch", "Average Total"]
    rows = [{"Branch": b, "Average Total": round(avg, 2)} for b, avg in branch_averages.items()]
    return pd.DataFrame(rows, columns=columns)


def build_rankings_table(rankings: Dict[str, List[StudentRecord]]) -> pd.DataFrame:
    """Flatten per-component rankings into one long table."""

    columns = ["Component", "Rank", "Emplid", "Campus ID", "Score"]
    rows = []
    for component in COMPONENTS:
        for rank, record in enumerate(rankings.get(component, []), start=1):
            rows.append({
                "Component": component,
                "Rank": rank,
                "Emplid": record.employee_id,
                "Campus ID": record.campus_id,
                "Score": round(score_for(record, component), 2),
            })
    return pd.DataFrame(rows, columns=columns)


def build_records_table(records: Sequence[StudentRecord], tolerance: float = 0.01) -> pd.DataFrame:
    """Parsed records with recomputed sub-totals and mismatch flags."""

    frame = records_frame(records)
    frame["Computed PreCompre"] = [r.computed_pre_compre for r in records]
    frame["Computed Total"] = [r.computed_total for r in records]
    if records:
        frame["PreCompre Mismatch"] = (
            (frame["Computed PreCompre"] - frame["PreCompre"].astype(float)).abs() >= tolerance
        )
        frame["Total Mismatch"] = (frame["Computed Total"] - frame["Total"].astype(float)).abs() >= tolerance
    else:
        frame["PreCompre Mismatch"] = pd.Series(dtype=bool)
        frame["Total Mismatch"] = pd.Series(dtype=bool)
    return frame
