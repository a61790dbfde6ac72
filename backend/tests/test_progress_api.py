import uuid
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.db import SessionLocal
from app.core.errors import BlockInvariantError
from app.main import app
from app.models.attempt import Attempt
from app.models.content_unit import ContentKind, ContentUnit
from app.routers import progress as progress_router

client = TestClient(app)

T0 = datetime(2026, 1, 5, 9, 0, 0)


@pytest.fixture
def db_session() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unit(db: Session, kind: ContentKind, number: int, title: str | None = "") -> ContentUnit:
    unit = db.query(ContentUnit).filter_by(kind=kind, number=number).first()
    if unit:
        return unit
    if title == "":
        title = f"Examen {number}" if kind == ContentKind.EXAM else f"Oefening {number}"
    unit = ContentUnit(
        id=uuid.uuid4(),
        kind=kind,
        number=number,
        title=title,
        total_questions=36 if kind == ContentKind.EXAM else 12,
    )
    db.add(unit)
    db.flush()
    return unit


def _attempt(
    db: Session,
    user_id: uuid.UUID,
    unit: ContentUnit,
    correct: int,
    day: int | None,
    total: int | None = None,
) -> Attempt:
    finished_at = T0 + timedelta(days=day) if day is not None else None
    attempt = Attempt(
        id=uuid.uuid4(),
        user_id=user_id,
        content_unit_id=unit.id,
        total_questions=total or unit.total_questions,
        correct_count=correct,
        started_at=T0,
        finished_at=finished_at,
    )
    db.add(attempt)
    return attempt


def _seed_scenario(db: Session) -> tuple[uuid.UUID, dict[str, Attempt]]:
    user_id = uuid.uuid4()
    p1 = _unit(db, ContentKind.PRACTICE, 1)
    p4 = _unit(db, ContentKind.PRACTICE, 4)
    p9 = _unit(db, ContentKind.PRACTICE, 9)
    e1 = _unit(db, ContentKind.EXAM, 1)
    attempts = {
        "p1_first": _attempt(db, user_id, p1, 9, 1),
        "p4": _attempt(db, user_id, p4, 7, 2),
        "e1": _attempt(db, user_id, e1, 25, 3),
        "p9": _attempt(db, user_id, p9, 10, 4),
        "p1_latest": _attempt(db, user_id, p1, 11, 5),
        "unfinished": _attempt(db, user_id, p9, 2, None),
    }
    db.commit()
    return user_id, attempts


def test_get_user_progress(db_session: Session):
    user_id, attempts = _seed_scenario(db_session)

    response = client.get(f"/api/v1/progress/users/{user_id}")

    assert response.status_code == 200
    assert response.headers["cache-control"].startswith("private")
    data = response.json()
    assert set(data) == {
        "attempts",
        "blocks",
        "latest_block",
        "avg_completed_blocks",
        "incomplete",
        "total_attempts",
    }
    assert data["total_attempts"] == 4
    assert len(data["blocks"]) == 1
    block = data["blocks"][0]
    assert block["attempt_ids"] == [str(attempts["e1"].id)]
    assert block["unit_titles"] == ["Examen 1"]
    assert block["correct_36"] == 25
    assert block["trend_36"] == "Flat"
    assert data["latest_block"]["block_index"] == 0
    assert data["avg_completed_blocks"] == pytest.approx(69.444, abs=1e-3)

    incomplete_ids = [a["id"] for a in data["incomplete"]]
    assert incomplete_ids == [
        str(attempts["p1_first"].id),
        str(attempts["p4"].id),
        str(attempts["p9"].id),
        str(attempts["p1_latest"].id),
    ]
    assert str(attempts["unfinished"].id) not in incomplete_ids


def test_get_user_progress_without_attempts():
    response = client.get(f"/api/v1/progress/users/{uuid.uuid4()}")

    assert response.status_code == 200
    data = response.json()
    assert data["blocks"] == []
    assert data["latest_block"] is None
    assert data["avg_completed_blocks"] is None
    assert data["incomplete"] == []
    assert data["total_attempts"] == 0


def test_get_user_overall_stats(db_session: Session):
    user_id, _ = _seed_scenario(db_session)

    response = client.get(f"/api/v1/progress/users/{user_id}/overall")

    assert response.status_code == 200
    data = response.json()
    assert data["sum_total"] == 72
    assert data["sum_correct"] == 53
    assert data["avg_completed_blocks"] == pytest.approx(69.444, abs=1e-3)
    assert data["best_block_percent"] == pytest.approx(69.444, abs=1e-3)
    assert data["streak_pass_blocks"] == 1
    assert data["streak_fail_blocks"] == 0


def test_missing_unit_title_is_served_as_empty(db_session: Session):
    user_id = uuid.uuid4()
    untitled = _unit(db_session, ContentKind.EXAM, 99, title=None)
    _attempt(db_session, user_id, untitled, 30, 1)
    db_session.commit()

    response = client.get(f"/api/v1/progress/users/{user_id}")

    assert response.status_code == 200
    assert response.json()["blocks"][0]["unit_titles"] == [""]


def test_malformed_stored_attempt_is_rejected(db_session: Session):
    user_id = uuid.uuid4()
    practice_unit = _unit(db_session, ContentKind.PRACTICE, 2)
    broken = _attempt(db_session, user_id, practice_unit, 20, 1, total=36)
    db_session.commit()

    response = client.get(f"/api/v1/progress/users/{user_id}")

    assert response.status_code == 422
    assert str(broken.id) in response.json()["detail"]


def test_compute_progress_from_payload():
    payload = {
        "attempts": [
            {
                "id": "p-1",
                "finished_at": "2026-01-06T09:00:00",
                "total_questions": 12,
                "correct_count": 8,
                "content_kind": "PRACTICE",
                "content_unit_number": 1,
                "content_unit_title": "Oefening 1",
            },
            {
                "id": "p-2",
                "finished_at": "2026-01-07T09:00:00",
                "total_questions": 12,
                "correct_count": 9,
                "content_kind": "PRACTICE",
                "content_unit_number": 2,
                "content_unit_title": "Oefening 2",
            },
            {
                "id": "p-3",
                "finished_at": "2026-01-08T09:00:00",
                "total_questions": 12,
                "correct_count": 10,
                "content_kind": "PRACTICE",
                "content_unit_number": 3,
            },
        ]
    }

    response = client.post("/api/v1/progress/compute", json=payload)

    assert response.status_code == 200
    data = response.json()
    assert [b["attempt_ids"] for b in data["blocks"]] == [["p-1", "p-2", "p-3"]]
    assert data["blocks"][0]["correct_36"] == 27
    assert data["blocks"][0]["unit_titles"] == ["Oefening 1", "Oefening 2", ""]
    assert data["incomplete"] == []


def test_compute_progress_orders_mixed_offsets_in_utc():
    payload = {
        "attempts": [
            {
                "id": "p-1",
                "finished_at": "2026-01-05T09:00:00Z",
                "total_questions": 12,
                "correct_count": 8,
                "content_kind": "PRACTICE",
                "content_unit_number": 1,
            },
            {
                "id": "e-1",
                "finished_at": "2026-01-06T09:00:00",
                "total_questions": 36,
                "correct_count": 25,
                "content_kind": "EXAM",
                "content_unit_number": 1,
            },
            {
                # 08:30 UTC, half an hour before the exam
                "id": "p-2",
                "finished_at": "2026-01-06T10:30:00+02:00",
                "total_questions": 12,
                "correct_count": 9,
                "content_kind": "PRACTICE",
                "content_unit_number": 2,
            },
        ]
    }

    response = client.post("/api/v1/progress/compute", json=payload)

    assert response.status_code == 200
    data = response.json()
    assert [b["attempt_ids"] for b in data["blocks"]] == [["e-1"]]
    assert [a["id"] for a in data["incomplete"]] == ["p-1", "p-2"]
    assert [a["id"] for a in data["attempts"]] == ["p-1", "p-2", "e-1"]


def test_compute_progress_rejects_kind_total_mismatch():
    payload = {
        "attempts": [
            {
                "id": "e-1",
                "finished_at": "2026-01-06T09:00:00",
                "total_questions": 12,
                "correct_count": 8,
                "content_kind": "EXAM",
                "content_unit_number": 1,
            }
        ]
    }

    response = client.post("/api/v1/progress/compute", json=payload)

    assert response.status_code == 422


def test_block_invariant_violation_is_a_server_error(monkeypatch):
    def _broken(_records):
        raise BlockInvariantError("block must total 36 questions, got 24")

    monkeypatch.setattr(progress_router.progress_service, "build_progress", _broken)

    response = client.post("/api/v1/progress/compute", json={"attempts": []})

    assert response.status_code == 500
    assert response.json()["detail"] == "Progress aggregation failed"


def test_clear_user_history(db_session: Session):
    user_id, attempts = _seed_scenario(db_session)

    response = client.delete(f"/api/v1/progress/users/{user_id}/attempts")

    assert response.status_code == 200
    assert response.json() == {"status": "success", "deleted": len(attempts)}

    db_session.expire_all()
    assert db_session.query(Attempt).filter_by(user_id=user_id).count() == 0
    after = client.get(f"/api/v1/progress/users/{user_id}").json()
    assert after["total_attempts"] == 0
