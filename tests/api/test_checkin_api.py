# tests/api/test_checkin_api.py

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from hallpass.api import deps
from hallpass.main import app
from tests.utils.auth import get_teacher_authentication_headers
from tests.utils.classroom import create_classroom, create_destination


def _post_checkin(client: TestClient, classroom_id: str, **body):
    return client.post(f"/api/v1/classrooms/{classroom_id}/checkin", json=body)


def test_checkout_waitlist_and_return(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session, students=["s1", "s2"])
    create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)

    response = _post_checkin(client, classroom.id, student_id="s1", action="out", destination="Bathroom")
    assert response.status_code == 200
    assert response.json()["outcome"] == "admitted"

    response = _post_checkin(client, classroom.id, student_id="s2", action="out", destination="Bathroom")
    assert response.status_code == 200
    content = response.json()
    assert content["outcome"] == "waitlisted"
    assert content["position"] == 1

    response = _post_checkin(client, classroom.id, student_id="s1", action="in")
    assert response.status_code == 200
    assert response.json()["promoted_entry_id"] == content["entry_id"]


def test_checkin_errors_map_to_status_codes(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session, students=["s1"])

    response = _post_checkin(client, classroom.id, student_id="s1", action="out")
    assert response.status_code == 400
    assert response.json()["code"] == "destination_required"

    response = _post_checkin(client, classroom.id, student_id="s1", action="out", destination="Moon")
    assert response.status_code == 404

    response = _post_checkin(client, classroom.id, student_id="s1", action="in")
    assert response.status_code == 400
    assert response.json()["code"] == "not_checked_out"

    response = _post_checkin(client, classroom.id, student_id="ghost", action="out", destination="Moon")
    assert response.status_code == 400
    assert response.json()["code"] == "not_enrolled"


def test_unknown_checkin_action_is_rejected(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session, students=["s1"])

    response = _post_checkin(client, classroom.id, student_id="s1", action="sideways")

    assert response.status_code == 422


def test_queue_lists_students_out(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session, students=["s1", "s2"])
    create_destination(db_session, classroom_id=classroom.id, name="Library")
    _post_checkin(client, classroom.id, student_id="s1", action="out", destination="Library")

    response = client.get(f"/api/v1/classrooms/{classroom.id}/queue")

    assert response.status_code == 200
    content = response.json()
    assert [s["student_id"] for s in content["checked_out"]] == ["s1"]
    assert content["checked_out"][0]["destination"] == "Library"
    assert content["checked_out"][0]["duration_minutes"] == 0


def test_other_teachers_classroom_is_not_found(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session, teacher_id="teacher_456", students=["s1"])

    response = client.get(f"/api/v1/classrooms/{classroom.id}/queue")

    assert response.status_code == 404


def test_real_token_is_accepted(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session)
    app.dependency_overrides.pop(deps.get_current_user)

    response = client.get(
        f"/api/v1/classrooms/{classroom.id}/queue",
        headers=get_teacher_authentication_headers("teacher_123"),
    )
    assert response.status_code == 200

    response = client.get(f"/api/v1/classrooms/{classroom.id}/queue")
    assert response.status_code == 401


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
