"""Unit tests for the SQL gallery store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import numpy as np
import pytest
from sqlalchemy.exc import OperationalError

from lost_trace.errors import PersistenceFailure, ReportNotFound
from lost_trace.models import Report, ReportStatus
from lost_trace.signature import signature_to_json
from lost_trace.store import SqlGalleryStore


@pytest.fixture
def store():
    """Create a store on a fresh in-memory database."""
    store = SqlGalleryStore.from_url("sqlite://")
    store.create_db_and_tables()
    return store


def make_report(name: str = "Ana", submitter: str = "user-1", signature=None, **kwargs) -> Report:
    """Create an unsaved OPEN report."""
    if signature is None:
        signature = signature_to_json(np.zeros(128))
    return Report(
        person_name=name,
        age=kwargs.pop("age", 10),
        image_url=kwargs.pop("image_url", f"file:///img/{name}.jpg"),
        signature=signature,
        submitted_by_id=submitter,
        **kwargs,
    )


def test_insert_and_get(store):
    """Test inserting a report and reading it back."""
    report_id = store.insert(make_report(gender="female", description="red coat"))

    view = store.get(report_id)

    assert view.id == report_id
    assert view.person_name == "Ana"
    assert view.gender == "female"
    assert view.status is ReportStatus.OPEN
    assert view.matched_with_id is None
    assert view.signature_present


def test_get_missing_raises(store):
    """Test that unknown ids raise ReportNotFound."""
    with pytest.raises(ReportNotFound):
        store.get("nope")


def test_scan_excluding_skips_given_id(store):
    """Test that a scan never returns the excluded report."""
    first = store.insert(make_report("A"))
    second = store.insert(make_report("B"))

    entries = store.scan_excluding(second)

    assert [e.id for e in entries] == [first]
    assert entries[0].view.person_name == "A"
    assert entries[0].signature.shape == (128,)


def test_scan_order_oldest_first(store):
    """Test that scans return reports in submission order."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ids = [
        store.insert(make_report(f"P{i}", submitted_at=base + timedelta(minutes=i)))
        for i in (2, 0, 1)
    ]

    entries = store.scan_excluding("none")

    assert [e.view.person_name for e in entries] == ["P0", "P1", "P2"]
    assert {e.id for e in entries} == set(ids)


def test_scan_tolerates_malformed_signatures(store):
    """Test that wrong-length or missing signatures scan as not comparable."""
    store.insert(make_report("short", signature=json.dumps([0.1] * 10)))
    store.insert(make_report("garbage", signature="{{{"))
    store.insert(make_report("missing", signature=""))
    store.insert(make_report("good"))

    entries = {e.view.person_name: e for e in store.scan_excluding("none")}

    assert entries["short"].signature is None
    assert entries["garbage"].signature is None
    assert entries["missing"].signature is None
    assert entries["good"].signature is not None
    assert not entries["short"].view.signature_present


def test_update_status_and_link(store):
    """Test setting MATCHED and the link on a report."""
    older = store.insert(make_report("old"))
    newer = store.insert(make_report("new"))

    store.update_status_and_link(newer, ReportStatus.MATCHED, older)

    view = store.get(newer)
    assert view.status is ReportStatus.MATCHED
    assert view.matched_with_id == older
    # Link is one-directional
    assert store.get(older).matched_with_id is None


def test_update_missing_raises(store):
    """Test that updating an unknown id raises ReportNotFound."""
    with pytest.raises(ReportNotFound):
        store.update_status_and_link("nope", ReportStatus.MATCHED, "x")


def test_list_all_and_by_submitter(store):
    """Test listing reports newest first, globally and per submitter."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    store.insert(make_report("A", submitter="u1", submitted_at=base))
    store.insert(make_report("B", submitter="u2", submitted_at=base + timedelta(hours=1)))
    store.insert(make_report("C", submitter="u1", submitted_at=base + timedelta(hours=2)))

    assert [r.person_name for r in store.list_all()] == ["C", "B", "A"]
    assert [r.person_name for r in store.list_by_submitter("u1")] == ["C", "A"]
    assert store.list_by_submitter("nobody") == []


def test_delete(store):
    """Test deleting a report and its image id lookup."""
    report_id = store.insert(make_report(image_public_id="abc.jpg"))

    assert store.get_image_public_id(report_id) == "abc.jpg"

    store.delete(report_id)

    with pytest.raises(ReportNotFound):
        store.get(report_id)
    with pytest.raises(ReportNotFound):
        store.delete(report_id)


def test_insert_duplicate_id_is_persistence_failure(store):
    """Test that a failed insert raises PersistenceFailure and leaves one row."""
    report_id = store.insert(make_report("first"))

    with pytest.raises(PersistenceFailure):
        store.insert(make_report("second", id=report_id))

    assert [r.person_name for r in store.list_all()] == ["first"]


def test_insert_database_error_is_persistence_failure():
    """Test that engine errors during insert surface as PersistenceFailure."""
    engine = Mock()
    store = SqlGalleryStore(engine)
    store._session = Mock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))

    with pytest.raises(PersistenceFailure, match="disk full"):
        store.insert(make_report())


def test_foreign_status_is_kept(store):
    """Test that statuses written by other components do not break reads."""
    closed = store.insert(make_report("closed", status="closed"))
    store.insert(make_report("open"))

    entries = {e.view.person_name: e for e in store.scan_excluding("none")}

    assert entries["closed"].view.status == "closed"
    assert entries["closed"].signature is not None
    assert entries["open"].view.status is ReportStatus.OPEN
    assert store.get(closed).status_name == "closed"
    assert [r.status_name for r in store.list_all()].count("closed") == 1
    assert {r.to_dict()["status"] for r in store.list_by_submitter("user-1")} == {"closed", "open"}
