"""Enrollment, module, quiz, rating and certificate endpoints."""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import portal_store
from app.models.course import Course
from tests.conftest import FlakyRepo, add_course


def _enroll(client: TestClient, headers: dict[str, str], course: Course) -> None:
    resp = client.post(f"/v1/courses/{course.id}/enroll", headers=headers)
    assert resp.status_code == 201


def _complete(client: TestClient, headers: dict[str, str], course: Course, index: int = 0):
    module_id = course.modules[index].id
    return client.post(
        f"/v1/progress/{course.id}/modules/{module_id}/complete", headers=headers
    )


def _pass(client: TestClient, headers: dict[str, str], course: Course):
    return client.post(
        f"/v1/progress/{course.id}/quiz", json={"answers": [1, 1]}, headers=headers
    )


def test_enroll_creates_progress(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    resp = client.post(f"/v1/courses/{course.id}/enroll", headers=learner_headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["course_id"] == str(course.id)
    assert body["completed_modules"] == []
    assert body["percent_complete"] == 0

    listed = client.get("/v1/progress", headers=learner_headers).json()
    assert [p["course_id"] for p in listed] == [str(course.id)]


def test_enroll_unknown_course(client: TestClient, learner_headers: dict[str, str]) -> None:
    resp = client.post(f"/v1/courses/{uuid4()}/enroll", headers=learner_headers)
    assert resp.status_code == 404


def test_module_completion_awards_points_once(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    _enroll(client, learner_headers, course)

    first = _complete(client, learner_headers, course)
    assert first.status_code == 200
    body = first.json()
    assert body["newly_completed"] is True
    assert body["points"] == 10
    assert body["progress"]["percent_complete"] == 50

    again = _complete(client, learner_headers, course).json()
    assert again["newly_completed"] is False
    assert again["points"] == 10


def test_module_completion_requires_enrollment(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    assert _complete(client, learner_headers, course).status_code == 422


def test_module_from_another_course(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    other = add_course("Secure Coding")
    _enroll(client, learner_headers, course)
    resp = client.post(
        f"/v1/progress/{course.id}/modules/{other.modules[0].id}/complete",
        headers=learner_headers,
    )
    assert resp.status_code == 422


@pytest.mark.parametrize(
    "body",
    [{}, {"score": 90, "answers": [1, 1]}],
    ids=["neither", "both"],
)
def test_quiz_needs_exactly_one_of_score_or_answers(
    client: TestClient, learner_headers: dict[str, str], course: Course, body: dict
) -> None:
    resp = client.post(f"/v1/progress/{course.id}/quiz", json=body, headers=learner_headers)
    assert resp.status_code == 422


def test_passing_the_only_course_unlocks_every_eligible_badge(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    _enroll(client, learner_headers, course)

    resp = _pass(client, learner_headers, course)
    assert resp.status_code == 200
    body = resp.json()
    assert body["passed"] is True
    assert body["score"] == 100
    assert body["first_completion"] is True
    # course 100 + first-course 50 + quiz-master 75 + completionist 250
    assert body["points_awarded"] == 475
    assert body["new_badges"] == ["first-course", "quiz-master", "completionist"]
    assert body["certificate"]["course_title"] == "Data Privacy 101"
    assert body["certificate"]["learner_name"] == "Lee Learner"
    assert body["warnings"] == []

    me = client.get("/auth/me", headers=learner_headers).json()
    assert me["points"] == 475
    assert me["badges"] == sorted(["first-course", "quiz-master", "completionist"])
    # one certificate notification and one per badge
    assert me["unread_notifications"] == 4


def test_failing_score_saves_but_does_not_complete(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    _enroll(client, learner_headers, course)
    resp = client.post(
        f"/v1/progress/{course.id}/quiz", json={"score": 50}, headers=learner_headers
    )
    body = resp.json()
    assert body["passed"] is False
    assert body["passing_score"] == 70
    assert body["points_awarded"] == 0
    assert body["certificate"] is None

    (record,) = client.get("/v1/progress", headers=learner_headers).json()
    assert record["quiz_score"] == 50
    assert record["completed_at"] is None


def test_retake_awards_nothing(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    _enroll(client, learner_headers, course)
    _pass(client, learner_headers, course)

    retake = _pass(client, learner_headers, course).json()
    assert retake["passed"] is True
    assert retake["first_completion"] is False
    assert retake["points_awarded"] == 0
    assert retake["new_badges"] == []
    assert retake["certificate"] is not None


def test_quiz_unknown_course(client: TestClient, learner_headers: dict[str, str]) -> None:
    resp = client.post(
        f"/v1/progress/{uuid4()}/quiz", json={"score": 90}, headers=learner_headers
    )
    assert resp.status_code == 404


def test_quiz_score_out_of_range(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    resp = client.post(
        f"/v1/progress/{course.id}/quiz", json={"score": 150}, headers=learner_headers
    )
    assert resp.status_code == 422


def test_wrong_number_of_answers(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    resp = client.post(
        f"/v1/progress/{course.id}/quiz", json={"answers": [1]}, headers=learner_headers
    )
    assert resp.status_code == 422


def test_rating_requires_completion(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    _enroll(client, learner_headers, course)
    resp = client.post(
        f"/v1/progress/{course.id}/rating",
        json={"rating": 5, "comment": "Great"},
        headers=learner_headers,
    )
    assert resp.status_code == 422


def test_rating_after_completion(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    _enroll(client, learner_headers, course)
    _pass(client, learner_headers, course)

    resp = client.post(
        f"/v1/progress/{course.id}/rating",
        json={"rating": 4, "comment": "  Clear and short  "},
        headers=learner_headers,
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["rating_saved"] is True
    assert body["review"]["comment"] == "Clear and short"
    assert body["review"]["author_name"] == "Lee Learner"

    view = client.get(f"/v1/courses/{course.id}", headers=learner_headers).json()
    assert view["average_rating"] == 4.0
    assert view["review_count"] == 1
    assert view["progress"]["rating"] == 4


def test_certificates(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    assert client.get(f"/v1/certificates/{course.id}", headers=learner_headers).status_code == 404

    _enroll(client, learner_headers, course)
    _pass(client, learner_headers, course)

    cert = client.get(f"/v1/certificates/{course.id}", headers=learner_headers)
    assert cert.status_code == 200
    assert cert.json()["course_id"] == str(course.id)

    listed = client.get("/v1/certificates", headers=learner_headers).json()
    assert [c["course_id"] for c in listed] == [str(course.id)]


def test_points_refresh_the_cached_leaderboard(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    board = client.get("/v1/leaderboard", headers=learner_headers).json()
    assert [(e["name"], e["points"]) for e in board] == [("Lee Learner", 0)]

    _enroll(client, learner_headers, course)
    _complete(client, learner_headers, course)

    board = client.get("/v1/leaderboard", headers=learner_headers).json()
    assert board[0]["points"] == 10
    assert board[0]["rank"] == 1


def test_store_failure_surfaces_as_bad_gateway(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    portal_store.progress = FlakyRepo(portal_store.progress, "upsert")  # type: ignore[assignment]

    resp = client.post(f"/v1/courses/{course.id}/enroll", headers=learner_headers)
    assert resp.status_code == 502
    assert resp.json()["detail"] == "enroll failed: upsert unavailable"
    assert client.get("/v1/progress", headers=learner_headers).json() == []


def test_side_effect_failures_are_reported_not_raised(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    _enroll(client, learner_headers, course)
    portal_store.notifications = FlakyRepo(portal_store.notifications, "create")  # type: ignore[assignment]

    body = _pass(client, learner_headers, course).json()
    assert body["passed"] is True
    assert body["first_completion"] is True
    assert body["points_awarded"] == 475
    assert len(body["warnings"]) == 4
    assert all(w.startswith("create_notification failed") for w in body["warnings"])


def test_module_points_failure_is_a_warning(
    client: TestClient, learner_headers: dict[str, str], course: Course
) -> None:
    _enroll(client, learner_headers, course)
    portal_store.users = FlakyRepo(portal_store.users, "increment_points")  # type: ignore[assignment]

    resp = _complete(client, learner_headers, course)
    assert resp.status_code == 200
    body = resp.json()
    assert body["newly_completed"] is True
    assert body["points_awarded"] == 0
    assert body["warnings"] == ["award_points failed: increment_points unavailable"]
    assert body["progress"]["completed_modules"] == [str(course.modules[0].id)]
