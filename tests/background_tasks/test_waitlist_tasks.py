# tests/background_tasks/test_waitlist_tasks.py

from datetime import datetime, timedelta, timezone

import pytest

from hallpass.background_tasks.waitlist_tasks import expire_stale_entries
from hallpass.core.config import settings
from hallpass.crud.crud_waitlist_entry import waitlist_entry_crud, waitlist_event
from hallpass.services.admission import admission_controller
from hallpass.services.waitlist_queue import waitlist_queue
from tests.utils.classroom import create_classroom, create_destination


@pytest.fixture
def queued(db_session):
    """Bathroom (capacity 1) occupied by s1 with s2 and s3 waiting."""
    classroom = create_classroom(db_session, students=["s1", "s2", "s3"])
    bathroom = create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)
    for student_id in ["s1", "s2", "s3"]:
        admission_controller.attempt_checkout(
            db_session, student_id=student_id, classroom_id=classroom.id, destination_name="Bathroom"
        )
    return classroom, bathroom


def test_no_ttl_means_nothing_expires(db_session, queued, monkeypatch):
    _, bathroom = queued
    monkeypatch.setattr(settings, "WAITLIST_ENTRY_TTL_MINUTES", None)
    later = datetime.now(timezone.utc) + timedelta(days=7)

    assert expire_stale_entries(db=db_session, now=later) == 0
    assert len(waitlist_entry_crud.list_active_for_destination(db_session, destination_id=bathroom.id)) == 2


def test_fresh_entries_are_kept(db_session, queued):
    _, bathroom = queued

    assert expire_stale_entries(db=db_session, ttl_minutes=30) == 0
    assert len(waitlist_entry_crud.list_active_for_destination(db_session, destination_id=bathroom.id)) == 2


def test_stale_entries_are_cancelled_and_logged(db_session, queued):
    classroom, bathroom = queued
    s2 = waitlist_entry_crud.get_active_for_student(db_session, student_id="s2", classroom_id=classroom.id)
    later = datetime.now(timezone.utc) + timedelta(minutes=31)

    expired = expire_stale_entries(db=db_session, now=later, ttl_minutes=30)

    assert expired == 2
    assert waitlist_entry_crud.list_active_for_destination(db_session, destination_id=bathroom.id) == []
    events = waitlist_event.get_entry_events(db_session, waitlist_entry_id=s2.id)
    assert events[-1].event_type == "EXPIRED"


def test_approved_entries_do_not_expire(db_session, queued):
    classroom, bathroom = queued
    admission_controller.complete_check_in(db_session, student_id="s1", classroom_id=classroom.id)
    later = datetime.now(timezone.utc) + timedelta(minutes=31)

    expired = expire_stale_entries(db=db_session, now=later, ttl_minutes=30)

    assert expired == 1
    entries = waitlist_entry_crud.list_active_for_destination(db_session, destination_id=bathroom.id)
    assert [(e.student_id, e.position, e.status) for e in entries] == [("s2", 1, "approved")]


def test_skip_restarts_the_expiry_clock(db_session, queued):
    classroom, bathroom = queued
    now = datetime.now(timezone.utc)
    for entry in waitlist_entry_crud.list_active_for_destination(db_session, destination_id=bathroom.id):
        entry.queued_at = now - timedelta(minutes=45)
    db_session.commit()
    s2 = waitlist_entry_crud.get_active_for_student(db_session, student_id="s2", classroom_id=classroom.id)

    waitlist_queue.skip(db_session, entry_id=s2.id, classroom_id=classroom.id)
    expired = expire_stale_entries(db=db_session, now=now + timedelta(minutes=1), ttl_minutes=30)

    assert expired == 1
    entries = waitlist_entry_crud.list_active_for_destination(db_session, destination_id=bathroom.id)
    assert [(e.student_id, e.position, e.status) for e in entries] == [("s2", 1, "waiting")]
