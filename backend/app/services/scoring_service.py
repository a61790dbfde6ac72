from collections.abc import Sequence

from app.core.errors import BlockInvariantError, InvalidAttemptError
from app.core.scoring import (
    OFFICIAL_PASS_CORRECT,
    OFFICIAL_TOTAL,
    PASS_PERCENT_12,
    PASS_PERCENT_36,
    PRACTICE_TOTAL,
    PRACTICES_PER_BLOCK,
    REQUIRED_CORRECT_12,
)
from app.models.content_unit import ContentKind
from app.schemas.progress import AttemptMetrics, AttemptRecordBase, Block, Trend

# kind -> (total questions, required correct, pass percent)
_THRESHOLDS: dict[ContentKind, tuple[int, int, float]] = {
    ContentKind.EXAM: (OFFICIAL_TOTAL, OFFICIAL_PASS_CORRECT, PASS_PERCENT_36),
    ContentKind.PRACTICE: (PRACTICE_TOTAL, REQUIRED_CORRECT_12, PASS_PERCENT_12),
}


def _trend(delta: float | None) -> Trend:
    if delta is None or delta == 0:
        return Trend.FLAT
    return Trend.UP if delta > 0 else Trend.DOWN


def _thresholds_for(record: AttemptRecordBase) -> tuple[int, float]:
    try:
        kind = ContentKind(record.content_kind)
    except ValueError:
        raise InvalidAttemptError(
            f"unknown content kind {record.content_kind!r}", attempt_id=record.id
        ) from None

    expected_total, required_correct, pass_percent = _THRESHOLDS[kind]
    if record.total_questions != expected_total:
        raise InvalidAttemptError(
            f"{kind.value} attempt must have {expected_total} questions, "
            f"got {record.total_questions}",
            attempt_id=record.id,
        )
    if not 0 <= record.correct_count <= record.total_questions:
        raise InvalidAttemptError(
            f"correct_count {record.correct_count} outside 0..{record.total_questions}",
            attempt_id=record.id,
        )
    return required_correct, pass_percent


def compute_attempt_metrics(
    record: AttemptRecordBase,
    previous: AttemptMetrics | None,
) -> AttemptMetrics:
    """
    Grade one finished attempt.

    `previous` must be the metrics of the prior attempt of the same kind, or
    None for the first one. Thresholds are the fixed official constants, never
    re-derived from the question count.
    """
    required_correct, pass_percent = _thresholds_for(record)

    your_percent = (record.correct_count / record.total_questions) * 100
    delta = your_percent - previous.your_percent_attempt if previous is not None else None

    return AttemptMetrics(
        id=record.id,
        finished_at=record.finished_at,
        total_questions=record.total_questions,
        correct_answers=record.correct_count,
        required_correct_attempt=required_correct,
        pass_percent_attempt=pass_percent,
        your_percent_attempt=your_percent,
        pass_fail_attempt=your_percent >= pass_percent,
        missing_q_attempt=max(0, required_correct - record.correct_count),
        missing_pct_attempt=max(0.0, pass_percent - your_percent),
        safety_attempt=your_percent - pass_percent,
        delta_attempt=delta,
        trend_attempt=_trend(delta),
        content_kind=ContentKind(record.content_kind),
        content_unit_number=record.content_unit_number,
        content_unit_title=record.content_unit_title or "",
    )


def _check_block_constituents(attempts: Sequence[AttemptMetrics]) -> None:
    kinds = {a.content_kind for a in attempts}
    if len(attempts) == 1:
        if kinds != {ContentKind.EXAM}:
            raise BlockInvariantError("single-attempt block must be an exam")
    elif len(attempts) == PRACTICES_PER_BLOCK:
        if kinds != {ContentKind.PRACTICE}:
            raise BlockInvariantError(
                f"{PRACTICES_PER_BLOCK}-attempt block must contain only practices"
            )
    else:
        raise BlockInvariantError(
            f"block must contain 1 exam or {PRACTICES_PER_BLOCK} practices, got {len(attempts)}"
        )

    total = sum(a.total_questions for a in attempts)
    if total != OFFICIAL_TOTAL:
        raise BlockInvariantError(f"block must total {OFFICIAL_TOTAL} questions, got {total}")


def calculate_block_metrics(
    attempts: Sequence[AttemptMetrics],
    previous: Block | None,
) -> Block:
    """Aggregate one exam, or three practices, into a 36-question block."""
    _check_block_constituents(attempts)

    correct_36 = sum(a.correct_answers for a in attempts)
    your_percent_36 = (correct_36 / OFFICIAL_TOTAL) * 100
    delta_36 = your_percent_36 - previous.your_percent_36 if previous is not None else None

    return Block(
        block_index=previous.block_index + 1 if previous is not None else 0,
        block_date=attempts[-1].finished_at,
        attempt_ids=[a.id for a in attempts],
        unit_titles=[a.content_unit_title for a in attempts],
        correct_36=correct_36,
        total_36=OFFICIAL_TOTAL,
        your_percent_36=your_percent_36,
        pass_fail_36=your_percent_36 >= PASS_PERCENT_36,
        missing_q_36=max(0, OFFICIAL_PASS_CORRECT - correct_36),
        missing_pct_36=max(0.0, PASS_PERCENT_36 - your_percent_36),
        safety_36=your_percent_36 - PASS_PERCENT_36,
        delta_36=delta_36,
        trend_36=_trend(delta_36),
        attempts=list(attempts),
    )
