import uuid

from pydantic import ValidationError
from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.core.errors import InvalidAttemptError
from app.models.attempt import Attempt
from app.models.content_unit import ContentKind
from app.schemas.progress import (
    AttemptRecordBase,
    ExamAttemptRecord,
    PracticeAttemptRecord,
)

_RECORD_TYPES: dict[ContentKind, type[AttemptRecordBase]] = {
    ContentKind.EXAM: ExamAttemptRecord,
    ContentKind.PRACTICE: PracticeAttemptRecord,
}


def to_attempt_record(attempt: Attempt) -> AttemptRecordBase:
    unit = attempt.content_unit
    record_type = _RECORD_TYPES[ContentKind(unit.kind)]
    try:
        return record_type(
            id=str(attempt.id),
            finished_at=attempt.finished_at,
            total_questions=attempt.total_questions,
            correct_count=attempt.correct_count,
            content_kind=ContentKind(unit.kind).value,
            content_unit_number=unit.number,
            content_unit_title=unit.title,
        )
    except ValidationError as exc:
        raise InvalidAttemptError(
            "; ".join(error["msg"] for error in exc.errors()),
            attempt_id=str(attempt.id),
        ) from exc


def list_finished_attempts(db: Session, user_id: uuid.UUID) -> list[AttemptRecordBase]:
    """Finished attempts of one user, oldest first, as engine input records."""
    attempts = (
        db.query(Attempt)
        .filter(
            Attempt.user_id == user_id,
            Attempt.finished_at.is_not(None),
        )
        .order_by(Attempt.finished_at.asc(), Attempt.id.asc())
        .all()
    )
    return [to_attempt_record(a) for a in attempts]


def clear_history(db: Session, user_id: uuid.UUID) -> int:
    result = db.execute(delete(Attempt).where(Attempt.user_id == user_id))
    db.commit()
    return result.rowcount or 0
