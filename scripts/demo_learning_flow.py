"""Demo: walk a learner from registration to certificate using TestClient.

Run with:
    python scripts/demo_learning_flow.py

Uses the in-memory store and the seeded dev admin (APP_ENV=dev, no
DATABASE_URL).
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import DEV_ADMIN_PASSWORD, app
from app.repos.store import DEV_ADMIN_EMAIL

LEARNER_EMAIL = "demo.learner@example.com"
LEARNER_PASSWORD = "demo-pass-123"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    # `with` runs the lifespan, which seeds the admin and a sample course.
    with TestClient(app) as client:
        # ── Step 1: register (pending approval) ─────────────────────
        r = client.post(
            "/auth/register",
            json={"name": "Demo Learner", "email": LEARNER_EMAIL, "password": LEARNER_PASSWORD},
        )
        learner_id = r.json()["user"]["id"]
        print(f"1. POST /auth/register        → {r.status_code}  approved=false")

        r = client.post(
            "/auth/login", json={"email": LEARNER_EMAIL, "password": LEARNER_PASSWORD}
        )
        print(f"2. POST /auth/login (pending) → {r.status_code}  {r.json()['detail']}")

        # ── Step 2: admin approves ──────────────────────────────────
        r = client.post(
            "/auth/login", json={"email": DEV_ADMIN_EMAIL, "password": DEV_ADMIN_PASSWORD}
        )
        admin = _bearer(r.json()["accessToken"])
        r = client.post(f"/admin/users/{learner_id}/approve", headers=admin)
        print(f"3. POST /admin/users/…/approve → {r.status_code}")

        # ── Step 3: learner signs in and takes the course ───────────
        r = client.post(
            "/auth/login", json={"email": LEARNER_EMAIL, "password": LEARNER_PASSWORD}
        )
        learner = _bearer(r.json()["accessToken"])
        print(f"4. POST /auth/login           → {r.status_code}  landing={r.json()['landing_view']}")

        course_id = client.get("/v1/courses", headers=learner).json()[0]["id"]
        client.post(f"/v1/courses/{course_id}/enroll", headers=learner)
        detail = client.get(f"/v1/courses/{course_id}", headers=learner).json()
        for module in detail["modules"]:
            r = client.post(
                f"/v1/progress/{course_id}/modules/{module['id']}/complete", headers=learner
            )
            print(f"5. complete {module['title']!r:<24} → points={r.json()['points']}")

        r = client.post(f"/v1/progress/{course_id}/quiz", json={"score": 40}, headers=learner)
        print(f"6. quiz score=40              → passed={r.json()['passed']}")

        r = client.post(f"/v1/progress/{course_id}/quiz", json={"score": 100}, headers=learner)
        body = r.json()
        print(
            f"7. quiz score=100             → passed={body['passed']} "
            f"points_awarded={body['points_awarded']} badges={body['new_badges']}"
        )

        r = client.get(f"/v1/certificates/{course_id}", headers=learner)
        print(f"8. GET  /v1/certificates/…    → {r.status_code}  {r.json()['course_title']}")

        r = client.get("/v1/leaderboard", headers=learner)
        top = r.json()[0]
        print(f"9. GET  /v1/leaderboard       → #1 {top['name']} with {top['points']} points")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
