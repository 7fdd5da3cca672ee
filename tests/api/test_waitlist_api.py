# tests/api/test_waitlist_api.py

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from hallpass.services.admission import admission_controller
from tests.utils.classroom import create_classroom, create_destination


def _fill_bathroom(db_session: Session):
    classroom = create_classroom(db_session, students=["s1", "s2", "s3"])
    create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)
    results = [
        admission_controller.attempt_checkout(
            db_session, student_id=student_id, classroom_id=classroom.id, destination_name="Bathroom"
        )
        for student_id in ["s1", "s2", "s3"]
    ]
    return classroom, results[1].entry_id, results[2].entry_id


def test_list_waitlist(client: TestClient, db_session: Session) -> None:
    classroom, s2_entry, s3_entry = _fill_bathroom(db_session)

    response = client.get(f"/api/v1/classrooms/{classroom.id}/waitlist")

    assert response.status_code == 200
    content = response.json()
    assert [e["id"] for e in content] == [s2_entry, s3_entry]
    assert [e["position"] for e in content] == [1, 2]
    assert content[0]["destination_name"] == "Bathroom"


def test_skip_action(client: TestClient, db_session: Session) -> None:
    classroom, s2_entry, _ = _fill_bathroom(db_session)

    response = client.post(
        f"/api/v1/classrooms/{classroom.id}/waitlist",
        json={"entry_id": s2_entry, "action": "skip"},
    )

    assert response.status_code == 200
    assert response.json()["position"] == 2
    assert response.json()["status"] == "waiting"


def test_approve_action(client: TestClient, db_session: Session) -> None:
    classroom, _, s3_entry = _fill_bathroom(db_session)

    response = client.post(
        f"/api/v1/classrooms/{classroom.id}/waitlist",
        json={"entry_id": s3_entry, "action": "approve"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["approved_at"] is not None


def test_invalid_action(client: TestClient, db_session: Session) -> None:
    classroom, s2_entry, _ = _fill_bathroom(db_session)

    response = client.post(
        f"/api/v1/classrooms/{classroom.id}/waitlist",
        json={"entry_id": s2_entry, "action": "promote"},
    )

    assert response.status_code == 400
    assert response.json()["allowed"] == ["skip", "remove", "approve"]


def test_removed_entry_is_gone(client: TestClient, db_session: Session) -> None:
    classroom, s2_entry, _ = _fill_bathroom(db_session)
    url = f"/api/v1/classrooms/{classroom.id}/waitlist"

    response = client.post(url, json={"entry_id": s2_entry, "action": "remove"})
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = client.post(url, json={"entry_id": s2_entry, "action": "remove"})
    assert response.status_code == 404
