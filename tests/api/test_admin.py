"""Administrator endpoints and how their changes reach open sessions."""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.models.course import Course
from tests.conftest import add_user, auth_headers

COURSE_BODY = {
    "title": "Incident Response",
    "description": "What to do when things go wrong",
    "passing_score": 80,
    "modules": [{"title": "Detect"}, {"title": "Contain", "content_type": "video"}],
    "questions": [
        {"prompt": "First step?", "options": ["panic", "report"], "correct_index": 1}
    ],
}


@pytest.mark.parametrize(
    "method,path",
    [
        ("get", "/admin/users"),
        ("get", "/admin/analytics"),
        ("post", "/admin/courses"),
        ("post", "/admin/categories"),
        ("post", "/admin/notifications"),
    ],
)
def test_learners_are_refused(
    client: TestClient, learner_headers: dict[str, str], method: str, path: str
) -> None:
    resp = getattr(client, method)(path, headers=learner_headers)
    assert resp.status_code == 403


def test_admin_routes_need_a_token(client: TestClient) -> None:
    assert client.get("/admin/users").status_code == 401


def test_user_overview(
    client: TestClient,
    learner,
    learner_headers: dict[str, str],
    admin_headers: dict[str, str],
    course: Course,
) -> None:
    client.post(f"/v1/courses/{course.id}/enroll", headers=learner_headers)
    client.post(f"/v1/progress/{course.id}/quiz", json={"score": 90}, headers=learner_headers)

    users = {u["email"]: u for u in client.get("/admin/users", headers=admin_headers).json()}
    assert set(users) == {"admin@example.com", "learner@example.com"}
    lee = users["learner@example.com"]
    assert lee["enrollments"] == 1
    assert lee["completed_courses"] == 1
    assert lee["progress"][0]["quiz_score"] == 90


def test_approving_unknown_user(client: TestClient, admin_headers: dict[str, str]) -> None:
    assert client.post(f"/admin/users/{uuid4()}/approve", headers=admin_headers).status_code == 404


def test_approving_twice_sends_one_notification(
    client: TestClient, admin_headers: dict[str, str]
) -> None:
    pending = add_user("pending@example.com", approved=False)
    client.post(f"/admin/users/{pending.id}/approve", headers=admin_headers)
    again = client.post(f"/admin/users/{pending.id}/approve", headers=admin_headers)
    assert again.status_code == 200

    login = client.post(
        "/auth/login",
        json={"email": "pending@example.com", "password": "correct-horse-battery"},
    )
    token = login.json()["accessToken"]
    body = client.get(
        "/v1/notifications", headers={"Authorization": f"Bearer {token}"}
    ).json()
    assert [n["type"] for n in body["items"]] == ["approval"]


def test_course_lifecycle_reaches_open_sessions(
    client: TestClient, learner_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    assert client.get("/v1/courses", headers=learner_headers).json() == []

    created = client.post("/admin/courses", json=COURSE_BODY, headers=admin_headers)
    assert created.status_code == 201
    course = created.json()
    assert course["module_count"] == 2
    assert course["questions"][0]["correct_index"] == 1
    course_id = course["id"]

    listed = client.get("/v1/courses", headers=learner_headers).json()
    assert [c["title"] for c in listed] == ["Incident Response"]

    edited_body = {
        **COURSE_BODY,
        "title": "Incident Response 2.0",
        "modules": [
            {"id": course["modules"][0]["id"], "title": "Detect early"},
            {"title": "Recover"},
        ],
    }
    edited = client.put(f"/admin/courses/{course_id}", json=edited_body, headers=admin_headers)
    assert edited.status_code == 200
    modules = edited.json()["modules"]
    assert modules[0]["id"] == course["modules"][0]["id"]
    assert modules[1]["id"] != course["modules"][1]["id"]

    view = client.get(f"/v1/courses/{course_id}", headers=learner_headers).json()
    assert view["title"] == "Incident Response 2.0"

    assert client.delete(f"/admin/courses/{course_id}", headers=admin_headers).status_code == 204
    assert client.get("/v1/courses", headers=learner_headers).json() == []
    assert client.delete(f"/admin/courses/{course_id}", headers=admin_headers).status_code == 404


@pytest.mark.parametrize(
    "change",
    [
        {"title": "  "},
        {"passing_score": 101},
        {"modules": [{"title": "Slides", "content_type": "hologram"}]},
        {"questions": [{"prompt": "Only one?", "options": ["yes"], "correct_index": 0}]},
        {"questions": [{"prompt": "Out of range", "options": ["a", "b"], "correct_index": 2}]},
        {"category_id": str(uuid4())},
    ],
    ids=["blank-title", "passing-score", "content-type", "one-option", "answer-index", "category"],
)
def test_invalid_course(
    client: TestClient, admin_headers: dict[str, str], change: dict
) -> None:
    resp = client.post("/admin/courses", json={**COURSE_BODY, **change}, headers=admin_headers)
    assert resp.status_code == 422


def test_update_unknown_course(client: TestClient, admin_headers: dict[str, str]) -> None:
    resp = client.put(f"/admin/courses/{uuid4()}", json=COURSE_BODY, headers=admin_headers)
    assert resp.status_code == 404


def test_categories(
    client: TestClient, learner_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    client.get("/v1/categories", headers=learner_headers)

    created = client.post("/admin/categories", json={"name": "Security"}, headers=admin_headers)
    assert created.status_code == 201
    category_id = created.json()["id"]

    dup = client.post("/admin/categories", json={"name": "Security"}, headers=admin_headers)
    assert dup.status_code == 409

    renamed = client.put(
        f"/admin/categories/{category_id}", json={"name": "InfoSec"}, headers=admin_headers
    )
    assert renamed.json()["name"] == "InfoSec"
    assert [c["name"] for c in client.get("/v1/categories", headers=learner_headers).json()] == [
        "InfoSec"
    ]


def test_deleting_a_category_uncategorizes_its_courses(
    client: TestClient, learner_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    category_id = client.post(
        "/admin/categories", json={"name": "Security"}, headers=admin_headers
    ).json()["id"]
    course_id = client.post(
        "/admin/courses", json={**COURSE_BODY, "category_id": category_id}, headers=admin_headers
    ).json()["id"]
    client.get("/v1/courses", headers=learner_headers)

    resp = client.delete(f"/admin/categories/{category_id}", headers=admin_headers)
    assert resp.status_code == 204

    view = client.get(f"/v1/courses/{course_id}", headers=learner_headers).json()
    assert view["category_id"] is None
    assert client.get("/v1/categories", headers=learner_headers).json() == []
    again = client.delete(f"/admin/categories/{category_id}", headers=admin_headers)
    assert again.status_code == 404


def test_resources(
    client: TestClient, learner_headers: dict[str, str], admin_headers: dict[str, str]
) -> None:
    client.get("/v1/resources", headers=learner_headers)

    bad = client.post(
        "/admin/resources",
        json={"title": "Intranet", "url": "ftp://files.example.com"},
        headers=admin_headers,
    )
    assert bad.status_code == 422

    created = client.post(
        "/admin/resources",
        json={"title": "Security Handbook", "url": "https://wiki.example.com/security"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    resource_id = created.json()["id"]
    assert [r["title"] for r in client.get("/v1/resources", headers=learner_headers).json()] == [
        "Security Handbook"
    ]

    assert client.delete(f"/admin/resources/{resource_id}", headers=admin_headers).status_code == 204
    assert client.get("/v1/resources", headers=learner_headers).json() == []
    assert client.delete(f"/admin/resources/{resource_id}", headers=admin_headers).status_code == 404


def test_analytics(
    client: TestClient,
    learner_headers: dict[str, str],
    admin_headers: dict[str, str],
    course: Course,
) -> None:
    other = add_user("other@example.com", name="Olga Other")
    other_headers = auth_headers(other)
    for headers in (learner_headers, other_headers):
        client.post(f"/v1/courses/{course.id}/enroll", headers=headers)
    client.post(f"/v1/progress/{course.id}/quiz", json={"score": 100}, headers=learner_headers)
    client.post(f"/v1/progress/{course.id}/quiz", json={"score": 40}, headers=other_headers)

    body = client.get("/admin/analytics", headers=admin_headers).json()
    (stats,) = body["courses"]
    assert stats["enrollments"] == 2
    assert stats["completions"] == 1
    assert stats["completion_rate"] == 50.0
    assert stats["average_score"] == 70.0
    assert body["leaderboard"][0]["name"] == "Lee Learner"
    assert body["leaderboard"][0]["rank"] == 1
