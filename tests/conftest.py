import sys
from pathlib import Path

import pytest
from openpyxl import Workbook

# Add the project root to sys.path so the top-level modules import without installing
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from score_records import StudentRecord  # noqa: E402

HEADER = [
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
]


@pytest.fixture
def sample_row():
    """A consistent data row: PreCompre and Total both match their parts."""
    return ["1", "1", "E001", "2024A1001", "8", "25", "9", "9", "51", "40", "91"]


@pytest.fixture
def make_record():
    """Factory for StudentRecords with only the interesting fields set."""

    def _make(employee_id="E000", campus_id="2024A1PS0001", serial=1, **scores):
        return StudentRecord(
            serial=serial,
            class_number=1,
            employee_id=employee_id,
            campus_id=campus_id,
            **scores,
        )

    return _make


@pytest.fixture
def write_workbook(tmp_path: Path):
    """Write rows (header included) to the first sheet of a new workbook."""

    def _write(rows, name="scores.xlsx", extra_sheet_rows=None):
        wb = Workbook()
        ws = wb.active
        ws.title = "Marks"
        for row in rows:
            ws.append(row)
        if extra_sheet_rows is not None:
            other = wb.create_sheet("Other")
            for row in extra_sheet_rows:
                other.append(row)
        path = tmp_path / name
        wb.save(path)
        return path

    return _write
