"""Student score records and row-level parsing for the score workbook."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = 11
DEFAULT_TOLERANCE = 0.01

# Score components in report order; keys double as the display labels.
COMPONENTS = (
    "Quiz",
    "MidSem",
    "LabTest",
    "WeeklyLabs",
    "PreCompre",
    "Compre",
    "Total",
)

COMPONENT_FIELDS: Dict[str, str] = {
    "Quiz": "quiz",
    "MidSem": "mid_sem",
    "LabTest": "lab_test",
    "WeeklyLabs": "weekly_labs",
    "PreCompre": "pre_compre",
    "Compre": "compre",
    "Total": "total",
}

# Positional layout of a data row (index -> column label used in messages).
COLUMN_LABELS = (
    "Sl No",
    "Class No",
    "Emplid",
    "Campus ID",
    "Quiz",
    "MidSem",
    "LabTest",
    "WeeklyLabs",
    "PreCompre",
    "Compre",
    "Total",
)


class MalformedRow(ValueError):
    """Raised when a data row cannot be turned into a StudentRecord."""

    def __init__(self, row_number: int, message: str, field: str = "") -> None:
        super().__init__(message)
        self.row_number = row_number
        self.field = field


@dataclass(frozen=True)
class StudentRecord:
    serial: int
    class_number: int
    employee_id: str
    campus_id: str
    quiz: float = 0.0
    mid_sem: float = 0.0
    lab_test: float = 0.0
    weekly_labs: float = 0.0
    pre_compre: float = 0.0
    compre: float = 0.0
    total: float = 0.0

    @property
    def computed_pre_compre(self) -> float:
        return self.quiz + self.mid_sem + self.lab_test + self.weekly_labs

    @property
    def computed_total(self) -> float:
        return self.quiz + self.mid_sem + self.lab_test + self.weekly_labs + self.compre

    @property
    def cohort_year(self) -> str:
        if len(self.campus_id) < 6:
            return ""
        return self.campus_id[:4]

    @property
    def branch_code(self) -> str:
        if len(self.campus_id) < 6:
            return ""
        return self.campus_id[4:6]


def cell_text(value) -> str:
    """Return a stripped string for a spreadsheet cell (handles NaNs)."""

    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def almost_equal(a: float, b: float, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    return abs(a - b) < tolerance


def parse_int(text: str) -> int:
    token = cell_text(text)
    try:
        return int(token)
    except ValueError:
        pass
    # Whole numbers read back from numeric cells may carry a ".0" / ".00" suffix.
    value = float(token)
    if not value.is_integer():
        raise ValueError(f"not a whole number: {token!r}")
    return int(value)


def parse_score(text: str) -> float:
    """Parse a score cell; an empty cell counts as zero."""

    token = cell_text(text)
    if not token:
        return 0.0
    value = float(token)
    if not np.isfinite(value):
        raise ValueError(f"non-finite score {token!r}")
    return value


def record_issue(
    issues: Optional[List[Dict[str, object]]],
    row_number: int,
    kind: str,
    message: str,
) -> None:
    """Append a data-quality issue to *issues* (if given) and log it."""

    logger.warning(message)
    if issues is not None:
        issues.append({"row": row_number, "kind": kind, "issue": message})


def parse_row(
    row_number: int,
    row: Sequence[str],
    issues: Optional[List[Dict[str, object]]] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> StudentRecord:
    """Convert one worksheet row into a StudentRecord.

    ``row_number`` is the 1-indexed spreadsheet row and is only used for
    messages. Sub-total and total mismatches are reported to *issues* but
    never reject the row; unparsable numbers raise MalformedRow.
    """

    if len(row) < REQUIRED_COLUMNS:
        raise MalformedRow(
            row_number,
            f"row {row_number} has {len(row)} columns, expected at least {REQUIRED_COLUMNS}",
        )

    try:
        serial = parse_int(row[0])
    except ValueError:
        raise MalformedRow(row_number, f"invalid Sl No at row {row_number}", "Sl No") from None
    try:
        class_number = parse_int(row[1])
    except ValueError:
        raise MalformedRow(row_number, f"invalid Class No at row {row_number}", "Class No") from None

    scores: List[float] = []
    for idx in range(4, REQUIRED_COLUMNS):
        try:
            scores.append(parse_score(row[idx]))
        except ValueError:
            label = COLUMN_LABELS[idx]
            raise MalformedRow(
                row_number,
                f"invalid numeric data in {label} at row {row_number}: {cell_text(row[idx])!r}",
                label,
            ) from None

    quiz, mid_sem, lab_test, weekly_labs, pre_compre, compre, total = scores
    record = StudentRecord(
        serial=serial,
        class_number=class_number,
        employee_id=cell_text(row[2]),
        campus_id=cell_text(row[3]),
        quiz=quiz,
        mid_sem=mid_sem,
        lab_test=lab_test,
        weekly_labs=weekly_labs,
        pre_compre=pre_compre,
        compre=compre,
        total=total,
    )

    if not almost_equal(record.computed_pre_compre, record.pre_compre, tolerance):
        record_issue(
            issues,
            row_number,
            "pre_compre_mismatch",
            f"Mismatch in PreCompre at row {row_number}. "
            f"Expected {record.computed_pre_compre:.2f}, Found {record.pre_compre:.2f}",
        )
    if not almost_equal(record.computed_total, record.total, tolerance):
        record_issue(
            issues,
            row_number,
            "total_mismatch",
            f"Mismatch in total at row {row_number}. "
            f"Expected {record.computed_total:.2f}, Found {record.total:.2f}",
        )

    return record
