from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from app.models.course import Course
from tests.conftest import add_category, add_course


def test_catalog_lists_newest_first_with_enrollment_state(
    client: TestClient, learner_headers: dict[str, str]
) -> None:
    older = add_course("Fire Safety", created_at=1_700_000_000)
    newer = add_course("Phishing Awareness", created_at=1_700_100_000)
    client.post(f"/v1/courses/{older.id}/enroll", headers=learner_headers)

    resp = client.get("/v1/courses", headers=learner_headers)
    assert resp.status_code == 200
    entries = resp.json()
    assert [e["title"] for e in entries] == ["Phishing Awareness", "Fire Safety"]
    assert entries[0]["id"] == str(newer.id)
    assert entries[0]["enrolled"] is False
    assert entries[1]["enrolled"] is True
    assert entries[1]["module_count"] == 2


def test_catalog_category_filter(
    client: TestClient, learner_headers: dict[str, str]
) -> None:
    compliance = add_category("Compliance")
    add_course("Anti-Bribery", category_id=compliance.id)
    add_course("Excel Basics")

    resp = client.get(
        "/v1/courses", params={"category_id": str(compliance.id)}, headers=learner_headers
    )
    assert [e["title"] for e in resp.json()] == ["Anti-Bribery"]


def test_catalog_requires_sign_in(client: TestClient, course: Course) -> None:
    assert client.get("/v1/courses").status_code == 401


def test_learners_never_see_answers(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    resp = client.get(f"/v1/courses/{course.id}", headers=learner_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["modules"]) == 2
    assert len(body["questions"]) == 2
    assert all(q["correct_index"] is None for q in body["questions"])
    assert body["progress"] is None


def test_admins_see_answers(
    client: TestClient, admin_headers: dict[str, str], course: Course
) -> None:
    body = client.get(f"/v1/courses/{course.id}", headers=admin_headers).json()
    assert [q["correct_index"] for q in body["questions"]] == [1, 1]


def test_unknown_course(client: TestClient, learner_headers: dict[str, str]) -> None:
    assert client.get(f"/v1/courses/{uuid4()}", headers=learner_headers).status_code == 404


def test_view_before_enrolling_changes_nothing(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    resp = client.post(f"/v1/courses/{course.id}/view", headers=learner_headers)
    assert resp.status_code == 200
    assert resp.json() == {"enrolled": False, "last_viewed_at": None}
    assert client.get("/v1/progress", headers=learner_headers).json() == []


def test_view_after_enrolling_records_the_visit(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    client.post(f"/v1/courses/{course.id}/enroll", headers=learner_headers)

    resp = client.post(f"/v1/courses/{course.id}/view", headers=learner_headers)
    body = resp.json()
    assert body["enrolled"] is True
    assert body["last_viewed_at"] is not None

    view = client.get(f"/v1/courses/{course.id}", headers=learner_headers).json()
    assert view["progress"]["last_viewed_at"] == body["last_viewed_at"]


def test_enrolling_twice_keeps_one_record(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    client.post(f"/v1/courses/{course.id}/enroll", headers=learner_headers)
    module_id = course.modules[0].id
    client.post(
        f"/v1/progress/{course.id}/modules/{module_id}/complete", headers=learner_headers
    )

    again = client.post(f"/v1/courses/{course.id}/enroll", headers=learner_headers)
    assert again.status_code == 201
    assert again.json()["completed_modules"] == [str(module_id)]
    assert len(client.get("/v1/progress", headers=learner_headers).json()) == 1
