"""
Tests for score_records

Test Coverage:
- parse_row: column mapping, numeric parsing, MalformedRow cases
- Sub-total / total validation diagnostics
- StudentRecord derived values
"""
import math

import pytest

from score_records import (
    MalformedRow,
    StudentRecord,
    almost_equal,
    cell_text,
    parse_int,
    parse_row,
    parse_score,
)


class TestCellHelpers:
    """Tests for the cell-level parsing helpers."""

    def test_cell_text_when_nan_then_empty(self):
        """NaN cells read from pandas become empty strings."""
        assert cell_text(float("nan")) == ""
        assert cell_text(None) == ""
        assert cell_text("  E001 ") == "E001"

    def test_parse_int_accepts_float_artefact(self):
        """Whole numbers stored as floats ("12.0", "12.00") still parse as integers."""
        assert parse_int("12") == 12
        assert parse_int("12.0") == 12
        assert parse_int("12.00") == 12
        assert parse_int("12.000") == 12

    def test_parse_int_rejects_fraction(self):
        with pytest.raises(ValueError):
            parse_int("12.5")
        with pytest.raises(ValueError):
            parse_int("12.50x")
        with pytest.raises(ValueError):
            parse_int("inf")

    def test_parse_score_when_empty_then_zero(self):
        """An empty score cell counts as zero."""
        assert parse_score("") == 0.0
        assert parse_score("   ") == 0.0

    def test_parse_score_when_non_numeric_then_raises(self):
        with pytest.raises(ValueError):
            parse_score("AB")

    def test_parse_score_when_not_finite_then_raises(self):
        with pytest.raises(ValueError):
            parse_score("nan")
        with pytest.raises(ValueError):
            parse_score("inf")

    def test_almost_equal_is_strict(self):
        """A difference of exactly the tolerance is not equal."""
        assert almost_equal(10.0, 10.009)
        assert not almost_equal(10.0, 10.5)
        assert not almost_equal(0.0, 0.01, tolerance=0.01)


class TestParseRow:
    """Tests for parse_row."""

    def test_parse_row_when_consistent_then_no_issues(self, sample_row):
        """The reference row parses cleanly with no diagnostics."""
        issues = []
        record = parse_row(2, sample_row, issues)

        assert record.serial == 1
        assert record.class_number == 1
        assert record.employee_id == "E001"
        assert record.campus_id == "2024A1001"
        assert record.quiz == 8
        assert record.mid_sem == 25
        assert record.lab_test == 9
        assert record.weekly_labs == 9
        assert record.pre_compre == 51
        assert record.compre == 40
        assert record.total == 91
        assert record.computed_pre_compre == 51
        assert record.computed_total == 91
        assert issues == []

    def test_parse_row_when_total_mismatch_then_reports_and_keeps_record(self, sample_row):
        """A wrong declared total is reported but the record keeps it."""
        sample_row[10] = "95"
        issues = []
        record = parse_row(7, sample_row, issues)

        assert record.total == 95
        assert record.computed_total == 91
        assert len(issues) == 1
        assert issues[0]["row"] == 7
        assert issues[0]["kind"] == "total_mismatch"
        assert "Expected 91.00" in issues[0]["issue"]
        assert "Found 95.00" in issues[0]["issue"]

    def test_parse_row_when_pre_compre_mismatch_then_reports(self, sample_row):
        sample_row[8] = "50"
        issues = []
        record = parse_row(3, sample_row, issues)

        assert record.pre_compre == 50
        assert [i["kind"] for i in issues] == ["pre_compre_mismatch"]
        assert "Mismatch in PreCompre at row 3. Expected 51.00, Found 50.00" == issues[0]["issue"]

    def test_parse_row_when_within_tolerance_then_no_issue(self, sample_row):
        sample_row[10] = "91.005"
        issues = []
        parse_row(2, sample_row, issues)
        assert issues == []

    def test_parse_row_without_sink_still_returns_record(self, sample_row):
        """The issue sink is optional."""
        sample_row[10] = "95"
        record = parse_row(2, sample_row)
        assert record.total == 95

    def test_parse_row_when_empty_scores_then_zero(self):
        """Empty score cells default to zero and still validate."""
        row = ["4", "2", "E004", "2023B2002", "", "", "", "", "", "", ""]
        issues = []
        record = parse_row(5, row, issues)
        assert record.computed_total == 0.0
        assert record.total == 0.0
        assert issues == []

    def test_parse_row_when_bad_serial_then_raises(self, sample_row):
        sample_row[0] = "one"
        with pytest.raises(MalformedRow, match="invalid Sl No at row 4") as info:
            parse_row(4, sample_row)
        assert info.value.row_number == 4
        assert info.value.field == "Sl No"

    def test_parse_row_when_bad_class_number_then_raises(self, sample_row):
        sample_row[1] = ""
        with pytest.raises(MalformedRow, match="invalid Class No at row 9"):
            parse_row(9, sample_row)

    @pytest.mark.parametrize("column,label", [(4, "Quiz"), (7, "WeeklyLabs"), (10, "Total")])
    def test_parse_row_when_bad_score_then_raises(self, sample_row, column, label):
        """Any non-numeric score column rejects the whole row."""
        sample_row[column] = "absent"
        with pytest.raises(MalformedRow) as info:
            parse_row(2, sample_row)
        assert info.value.field == label

    def test_parse_row_when_short_then_raises(self, sample_row):
        with pytest.raises(MalformedRow, match="expected at least 11"):
            parse_row(2, sample_row[:10])

    def test_parse_row_ignores_extra_columns(self, sample_row):
        record = parse_row(2, sample_row + ["remark", "x"])
        assert record.total == 91


class TestStudentRecord:
    """Tests for StudentRecord derived values."""

    def test_computed_total_is_exact_sum(self):
        """computed_total never depends on the declared total."""
        record = StudentRecord(1, 1, "E1", "2024A7PS001", 1.5, 2.25, 3.0, 4.0, 0.0, 10.0, 999.0)
        assert math.isclose(record.computed_total, 1.5 + 2.25 + 3.0 + 4.0 + 10.0)
        assert math.isclose(record.computed_pre_compre, 1.5 + 2.25 + 3.0 + 4.0)

    def test_cohort_and_branch(self):
        record = StudentRecord(1, 1, "E1", "2024A7PS001")
        assert record.cohort_year == "2024"
        assert record.branch_code == "A7"

    def test_short_campus_id_has_no_branch(self):
        record = StudentRecord(1, 1, "E1", "2024A")
        assert record.cohort_year == ""
        assert record.branch_code == ""

    def test_record_is_immutable(self):
        record = StudentRecord(1, 1, "E1", "2024A7PS001", total=10.0)
        with pytest.raises(AttributeError):
            record.total = 20.0  # type: ignore
