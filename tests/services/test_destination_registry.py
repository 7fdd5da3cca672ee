# tests/services/test_destination_registry.py

import pytest

from hallpass.core.exceptions import (
    CapacityConflict,
    DestinationNotFound,
    DuplicateDestination,
    ValidationError,
)
from hallpass.crud.crud_waitlist_entry import waitlist_entry_crud
from hallpass.models.waitlist_entry import WaitListEntry, WaitlistEvent
from hallpass.services.admission import admission_controller
from hallpass.services.destination_registry import destination_registry, normalize_capacity
from tests.utils.classroom import create_classroom, create_destination


@pytest.mark.parametrize("raw, expected", [
    (None, None),
    (0, None),
    ("", None),
    ("  ", None),
    ("0", None),
    (3, 3),
    ("2", 2),
    (" 4 ", 4),
])
def test_normalize_capacity_accepts(raw, expected):
    assert normalize_capacity(raw) == expected


@pytest.mark.parametrize("raw", [-1, "-2", "abc", 1.5, True, [1]])
def test_normalize_capacity_rejects(raw):
    with pytest.raises(ValidationError):
        normalize_capacity(raw)


def test_create_destination_assigns_sort_order(db_session):
    classroom = create_classroom(db_session)

    first = create_destination(db_session, classroom_id=classroom.id, name="Nurse")
    second = create_destination(db_session, classroom_id=classroom.id, name="  Library  ")

    assert first.sort_order == 0
    assert second.sort_order == 1
    assert second.name == "Library"
    assert second.capacity is None


def test_create_destination_rejects_empty_and_duplicate_names(db_session):
    classroom = create_classroom(db_session)
    create_destination(db_session, classroom_id=classroom.id, name="Nurse")

    with pytest.raises(ValidationError):
        destination_registry.create_destination(db_session, classroom_id=classroom.id, name="   ")
    with pytest.raises(DuplicateDestination):
        destination_registry.create_destination(db_session, classroom_id=classroom.id, name="Nurse")


def test_only_one_destination_may_have_capacity(db_session):
    classroom = create_classroom(db_session)
    bathroom = create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)
    office = create_destination(db_session, classroom_id=classroom.id, name="Office")

    with pytest.raises(CapacityConflict) as exc_info:
        destination_registry.set_capacity(
            db_session, classroom_id=classroom.id, destination_id=office.id, capacity=2
        )
    assert exc_info.value.conflicting_id == bathroom.id
    assert exc_info.value.conflicting_name == "Bathroom"

    with pytest.raises(CapacityConflict):
        destination_registry.create_destination(
            db_session, classroom_id=classroom.id, name="Nurse", capacity=1
        )

    # Changing the waiting room's own capacity is fine
    updated = destination_registry.set_capacity(
        db_session, classroom_id=classroom.id, destination_id=bathroom.id, capacity=3
    )
    assert updated.capacity == 3


def test_clearing_capacity_always_succeeds(db_session):
    classroom = create_classroom(db_session)
    bathroom = create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)

    cleared = destination_registry.set_capacity(
        db_session, classroom_id=classroom.id, destination_id=bathroom.id, capacity=""
    )
    assert cleared.capacity is None

    office = create_destination(db_session, classroom_id=classroom.id, name="Office")
    moved = destination_registry.set_capacity(
        db_session, classroom_id=classroom.id, destination_id=office.id, capacity="2"
    )
    assert moved.capacity == 2


def test_inactive_destination_does_not_block_capacity(db_session):
    classroom = create_classroom(db_session)
    bathroom = create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)
    office = create_destination(db_session, classroom_id=classroom.id, name="Office")

    destination_registry.update(
        db_session, classroom_id=classroom.id, destination_id=bathroom.id, is_active=False
    )
    destination_registry.set_capacity(
        db_session, classroom_id=classroom.id, destination_id=office.id, capacity=1
    )

    # Re-activating the old waiting room would break the rule
    with pytest.raises(CapacityConflict):
        destination_registry.update(
            db_session, classroom_id=classroom.id, destination_id=bathroom.id, is_active=True
        )


def test_list_destinations_seeds_defaults(db_session):
    classroom = create_classroom(db_session)

    destinations = destination_registry.list_destinations(db_session, classroom_id=classroom.id)

    assert [d.name for d in destinations] == ["Bathroom", "Office"]
    assert [d.sort_order for d in destinations] == [0, 1]

    # Second call returns the same rows rather than seeding again
    again = destination_registry.list_destinations(db_session, classroom_id=classroom.id)
    assert [d.id for d in again] == [d.id for d in destinations]


def test_list_destinations_orders_and_hides_inactive(db_session):
    classroom = create_classroom(db_session)
    nurse = create_destination(db_session, classroom_id=classroom.id, name="Nurse")
    library = create_destination(db_session, classroom_id=classroom.id, name="Library")
    gym = create_destination(db_session, classroom_id=classroom.id, name="Gym")

    destination_registry.update(
        db_session, classroom_id=classroom.id, destination_id=nurse.id, sort_order=10
    )
    destination_registry.update(
        db_session, classroom_id=classroom.id, destination_id=gym.id, is_active=False
    )

    destinations = destination_registry.list_destinations(db_session, classroom_id=classroom.id)
    assert [d.id for d in destinations] == [library.id, nurse.id]


def test_resolve_only_finds_active_destinations(db_session):
    classroom = create_classroom(db_session)
    nurse = create_destination(db_session, classroom_id=classroom.id, name="Nurse")

    assert destination_registry.resolve(db_session, classroom_id=classroom.id, name="Nurse").id == nurse.id

    destination_registry.update(
        db_session, classroom_id=classroom.id, destination_id=nurse.id, is_active=False
    )
    with pytest.raises(DestinationNotFound):
        destination_registry.resolve(db_session, classroom_id=classroom.id, name="Nurse")


def test_rename_carries_open_check_ins(db_session):
    classroom = create_classroom(db_session, students=["s1"])
    nurse = create_destination(db_session, classroom_id=classroom.id, name="Nurse")
    admission_controller.attempt_checkout(
        db_session, student_id="s1", classroom_id=classroom.id, destination_name="Nurse"
    )

    renamed = destination_registry.rename(
        db_session, classroom_id=classroom.id, destination_id=nurse.id, name="Health Office"
    )

    assert renamed.name == "Health Office"
    result = admission_controller.complete_check_in(db_session, student_id="s1", classroom_id=classroom.id)
    assert result.destination == "Health Office"


def test_rename_to_existing_name_fails(db_session):
    classroom = create_classroom(db_session)
    create_destination(db_session, classroom_id=classroom.id, name="Nurse")
    library = create_destination(db_session, classroom_id=classroom.id, name="Library")

    with pytest.raises(DuplicateDestination):
        destination_registry.rename(
            db_session, classroom_id=classroom.id, destination_id=library.id, name="Nurse"
        )


def test_update_unknown_destination(db_session):
    classroom = create_classroom(db_session)
    other = create_classroom(db_session, teacher_id="teacher_456")
    foreign = create_destination(db_session, classroom_id=other.id, name="Nurse")

    with pytest.raises(DestinationNotFound):
        destination_registry.update(
            db_session, classroom_id=classroom.id, destination_id="dst_missing", sort_order=1
        )
    with pytest.raises(DestinationNotFound):
        destination_registry.delete_destination(
            db_session, classroom_id=classroom.id, destination_id=foreign.id
        )


def test_raising_capacity_promotes_waiting_students(db_session):
    classroom = create_classroom(db_session, students=["s1", "s2", "s3"])
    bathroom = create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)
    for student_id in ["s1", "s2", "s3"]:
        admission_controller.attempt_checkout(
            db_session, student_id=student_id, classroom_id=classroom.id, destination_name="Bathroom"
        )

    destination_registry.set_capacity(
        db_session, classroom_id=classroom.id, destination_id=bathroom.id, capacity=2
    )

    entries = waitlist_entry_crud.list_active_for_destination(db_session, destination_id=bathroom.id)
    assert [(e.student_id, e.status) for e in entries] == [("s2", "approved"), ("s3", "waiting")]

    # Unlimited releases everyone still waiting
    destination_registry.set_capacity(
        db_session, classroom_id=classroom.id, destination_id=bathroom.id, capacity=None
    )
    entries = waitlist_entry_crud.list_active_for_destination(db_session, destination_id=bathroom.id)
    assert all(e.status == "approved" for e in entries)


def test_delete_destination_drops_its_queue(db_session):
    classroom = create_classroom(db_session, students=["s1", "s2"])
    bathroom = create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)
    admission_controller.attempt_checkout(
        db_session, student_id="s1", classroom_id=classroom.id, destination_name="Bathroom"
    )
    admission_controller.attempt_checkout(
        db_session, student_id="s2", classroom_id=classroom.id, destination_name="Bathroom"
    )

    destination_registry.delete_destination(
        db_session, classroom_id=classroom.id, destination_id=bathroom.id
    )

    assert db_session.query(WaitListEntry).count() == 0
    assert db_session.query(WaitlistEvent).count() == 0
    # History keeps the name; the student can still come back
    result = admission_controller.complete_check_in(db_session, student_id="s1", classroom_id=classroom.id)
    assert result.destination == "Bathroom"
    assert result.promoted_entry_id is None
