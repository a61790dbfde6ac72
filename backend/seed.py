import logging
import sys
import uuid
from datetime import datetime, timedelta

# Add current directory to sys.path to resolve 'app' modules
sys.path.append(".")

from app.core.db import SessionLocal
from app.core.scoring import OFFICIAL_TOTAL, PRACTICE_TOTAL
from app.models.attempt import Attempt
from app.models.content_unit import ContentKind, ContentUnit

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

EXAM_COUNT = 4
PRACTICE_COUNT = 12

DEMO_USER_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")

# (kind, unit number, correct answers, days after the first attempt)
DEMO_ATTEMPTS = [
    (ContentKind.PRACTICE, 1, 9, 1),
    (ContentKind.PRACTICE, 4, 7, 2),
    (ContentKind.EXAM, 1, 25, 3),
    (ContentKind.PRACTICE, 9, 10, 4),
    (ContentKind.PRACTICE, 1, 11, 5),
]


def _get_or_create_unit(db, kind: ContentKind, number: int) -> ContentUnit:
    unit = db.query(ContentUnit).filter_by(kind=kind, number=number).first()
    if unit:
        return unit

    if kind == ContentKind.EXAM:
        title, total = f"Examen {number}", OFFICIAL_TOTAL
    else:
        title, total = f"Oefening {number}", PRACTICE_TOTAL

    unit = ContentUnit(
        id=uuid.uuid4(), kind=kind, number=number, title=title, total_questions=total
    )
    db.add(unit)
    logger.info(f"Created ContentUnit: {title}")
    return unit


def seed_db():
    db = SessionLocal()
    try:
        logger.info("Seeding database...")

        # 1. Content units
        for number in range(1, EXAM_COUNT + 1):
            _get_or_create_unit(db, ContentKind.EXAM, number)
        for number in range(1, PRACTICE_COUNT + 1):
            _get_or_create_unit(db, ContentKind.PRACTICE, number)
        db.commit()

        # 2. Demo learner history
        if db.query(Attempt).filter_by(user_id=DEMO_USER_ID).first():
            logger.info("Demo attempts already present, skipping")
            return

        start = datetime(2026, 1, 5, 9, 0, 0)
        for kind, number, correct, day in DEMO_ATTEMPTS:
            unit = _get_or_create_unit(db, kind, number)
            finished_at = start + timedelta(days=day)
            db.add(
                Attempt(
                    id=uuid.uuid4(),
                    user_id=DEMO_USER_ID,
                    content_unit_id=unit.id,
                    total_questions=unit.total_questions,
                    correct_count=correct,
                    started_at=finished_at - timedelta(minutes=30),
                    finished_at=finished_at,
                )
            )
        db.commit()
        logger.info(f"Created {len(DEMO_ATTEMPTS)} demo attempts for user {DEMO_USER_ID}")
    except Exception:
        db.rollback()
        logger.exception("Seeding failed")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_db()
