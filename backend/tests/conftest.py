import os
import tempfile
from datetime import datetime, timedelta, timezone

# Point the app at a throwaway SQLite file before anything imports app.core.db.
_db_dir = tempfile.mkdtemp(prefix="progress-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'progress.db')}"

import pytest  # noqa: E402

from app.core.db import Base, engine  # noqa: E402
from app.schemas.progress import ExamAttemptRecord, PracticeAttemptRecord  # noqa: E402

T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)


def _at(day: float) -> datetime:
    return T0 + timedelta(days=day)


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def practice():
    def _make(number: int, correct: int, day: float, attempt_id: str | None = None, title=None):
        return PracticeAttemptRecord(
            id=attempt_id or f"P{number}@{day}",
            finished_at=_at(day),
            correct_count=correct,
            content_unit_number=number,
            content_unit_title=f"Oefening {number}" if title is None else title,
        )

    return _make


@pytest.fixture
def exam():
    def _make(number: int, correct: int, day: float, attempt_id: str | None = None):
        return ExamAttemptRecord(
            id=attempt_id or f"E{number}@{day}",
            finished_at=_at(day),
            correct_count=correct,
            content_unit_number=number,
            content_unit_title=f"Examen {number}",
        )

    return _make


@pytest.fixture
def at():
    return _at
