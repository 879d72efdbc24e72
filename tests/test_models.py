"""Unit tests for report fields and views."""

from __future__ import annotations

import pytest

from lost_trace.errors import ValidationError
from lost_trace.models import Report, ReportFields, ReportStatus, ReportView


def test_report_fields_from_mapping():
    """Test building fields from a request body."""
    fields = ReportFields.from_mapping(
        {"person_name": "Ana", "age": "12", "gender": "", "description": "  ", "x": 1}
    )

    assert fields.age == 12
    assert fields.gender is None
    assert fields.description is None


def test_report_fields_require_name_and_age():
    """Test that a mapping without name or age is rejected."""
    with pytest.raises(ValidationError, match="required"):
        ReportFields.from_mapping({"person_name": "Ana"})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"person_name": "  ", "age": 3},
        {"person_name": "A" * 101, "age": 3},
        {"person_name": "Ana", "age": True},
        {"person_name": "Ana", "age": "twelve"},
        {"person_name": "Ana", "age": 151},
        {"person_name": "Ana", "age": 3, "gender": "robot"},
        {"person_name": "Ana", "age": 3, "description": "x" * 2001},
    ],
)
def test_report_fields_rejects_invalid(kwargs):
    """Test field validation."""
    with pytest.raises(ValidationError):
        ReportFields(**kwargs)


def test_report_fields_normalized():
    """Test that name, gender and description are normalized."""
    fields = ReportFields(person_name=" Ana ", age=9, gender="FEMALE", description=" coat ")

    assert fields.person_name == "Ana"
    assert fields.gender == "female"
    assert fields.description == "coat"


@pytest.mark.parametrize(
    "raw,expected",
    [("open", ReportStatus.OPEN), ("matched", ReportStatus.MATCHED), ("closed", "closed")],
)
def test_status_parse(raw, expected):
    """Test that unknown statuses are kept verbatim."""
    assert ReportStatus.parse(raw) == expected


def test_view_from_row_with_foreign_status():
    """Test that a view exposes a foreign status by name."""
    row = Report(
        person_name="Ana",
        age=9,
        image_url="file:///a.jpg",
        status="resolved",
        submitted_by_id="user-1",
    )

    view = ReportView.from_row(row)

    assert view.status == "resolved"
    assert view.status_name == "resolved"
    assert view.public_fields()["status"] == "resolved"
    assert not view.signature_present
