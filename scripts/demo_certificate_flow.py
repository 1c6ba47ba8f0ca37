"""Demo: sign up, finish a course and fetch the certificate, in-process.

Run with:
    python scripts/demo_certificate_flow.py

Uses the in-memory document store and local identity provider, so no
Firebase project or Redis server is needed.
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from lms.main import app

COURSE_ID = "demo-course"
COURSE = {
    "title": "Demo Course",
    "category": "Demo",
    "type": "certification",
    "modules": [
        {"id": "m1", "subCourses": [{"id": "s1"}, {"id": "s2"}]},
    ],
}


def main() -> None:
    client = TestClient(app)
    services = app.state.services

    # ── Seed data ───────────────────────────────────────────────────
    asyncio.run(services.store.set(f"courses/{COURSE_ID}", COURSE))

    # ── Step 1: sign up ─────────────────────────────────────────────
    r = client.post(
        "/auth/signup",
        json={"name": "Demo Learner", "email": "demo@example.com", "password": "demo-pass"},
    )
    print(f"1. POST /auth/signup              → {r.status_code}")
    headers = {"Authorization": f"Bearer {r.json()['token']}"}

    # ── Step 2: enroll ──────────────────────────────────────────────
    r = client.post(f"/v1/courses/{COURSE_ID}/enroll", headers=headers)
    print(f"2. POST /v1/courses/…/enroll       → {r.status_code}  progress={r.json()['progress']}%")

    # ── Step 3: certificate before completion ───────────────────────
    r = client.get(f"/v1/courses/{COURSE_ID}/certificate", headers=headers)
    print(f"3. GET  /v1/courses/…/certificate  → {r.status_code}  (not completed)")

    # ── Step 4: pass both exams ─────────────────────────────────────
    for sub_id in ("s1", "s2"):
        r = client.post(
            f"/v1/progress/{COURSE_ID}/complete",
            json={"moduleId": "m1", "subCourseId": sub_id, "score": 90},
            headers=headers,
        )
        print(f"4. POST /v1/progress/…/complete    → {r.status_code}  progress={r.json()['progress']}%")

    # ── Step 5: certificate, twice ──────────────────────────────────
    first = client.get(f"/v1/courses/{COURSE_ID}/certificate", headers=headers).json()
    second = client.get(f"/v1/courses/{COURSE_ID}/certificate", headers=headers).json()
    vid = first["certificate"]["verificationId"]
    print(f"5. GET  /v1/courses/…/certificate  → {first['outcome']} {vid}")
    print(f"   GET  /v1/courses/…/certificate  → {second['outcome']} {second['certificate']['verificationId']}")
    assert vid == second["certificate"]["verificationId"], "id changed between visits!"

    # ── Step 6: public verification ─────────────────────────────────
    r = client.get(f"/v1/certificates/{vid}/verify")
    print(f"6. GET  /v1/certificates/{vid}/verify → {r.status_code}  {r.json()['userName']}")


if __name__ == "__main__":
    main()
