# tests/api/test_destinations_api.py

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.utils.classroom import create_classroom, create_destination


def test_list_seeds_defaults(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session)

    response = client.get(f"/api/v1/classrooms/{classroom.id}/destinations")

    assert response.status_code == 200
    assert [d["name"] for d in response.json()] == ["Bathroom", "Office"]


def test_create_destination(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session)

    response = client.post(
        f"/api/v1/classrooms/{classroom.id}/destinations",
        json={"name": "Nurse", "capacity": "2"},
    )

    assert response.status_code == 201
    content = response.json()
    assert content["name"] == "Nurse"
    assert content["capacity"] == 2
    assert content["classroom_id"] == classroom.id


def test_create_conflicts(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session)
    bathroom = create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)
    url = f"/api/v1/classrooms/{classroom.id}/destinations"

    response = client.post(url, json={"name": "Bathroom"})
    assert response.status_code == 409
    assert response.json()["code"] == "duplicate_destination"

    response = client.post(url, json={"name": "Nurse", "capacity": 1})
    assert response.status_code == 409
    assert response.json()["conflicting_destination"] == {"id": bathroom.id, "name": "Bathroom"}

    response = client.post(url, json={"name": "Nurse", "capacity": -3})
    assert response.status_code == 400


def test_patch_only_changes_sent_fields(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session)
    bathroom = create_destination(db_session, classroom_id=classroom.id, name="Bathroom", capacity=1)
    url = f"/api/v1/classrooms/{classroom.id}/destinations/{bathroom.id}"

    response = client.patch(url, json={"name": "Restroom", "sortOrder": 5})
    assert response.status_code == 200
    content = response.json()
    assert content["name"] == "Restroom"
    assert content["sort_order"] == 5
    assert content["capacity"] == 1

    response = client.patch(url, json={"capacity": None})
    assert response.status_code == 200
    assert response.json()["capacity"] is None


def test_delete_destination(client: TestClient, db_session: Session) -> None:
    classroom = create_classroom(db_session)
    nurse = create_destination(db_session, classroom_id=classroom.id, name="Nurse")
    url = f"/api/v1/classrooms/{classroom.id}/destinations/{nurse.id}"

    response = client.delete(url)
    assert response.status_code == 204

    response = client.delete(url)
    assert response.status_code == 404
