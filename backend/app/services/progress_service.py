"""
Progress aggregation for the reading-comprehension dashboard.

Turns the finished attempt history of one learner into three layers:

1. per-attempt metrics (12-question practices, 36-question exams)
2. 36-question blocks: every exam on its own, practices in runs of three
3. overall statistics (moving averages, best scores, streaks)

Everything is recomputed from the full history on each call; nothing here
reads or writes shared state.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import NamedTuple, TypeVar

from app.core.config import settings
from app.core.errors import InvalidAttemptError
from app.core.scoring import PASS_PERCENT_36, PRACTICES_PER_BLOCK
from app.models.content_unit import ContentKind
from app.schemas.progress import (
    AttemptMetrics,
    AttemptRecordBase,
    Block,
    OverallStats,
    ProgressResponse,
)
from app.services.scoring_service import calculate_block_metrics, compute_attempt_metrics

logger = logging.getLogger(__name__)

# AttemptRecordBase or AttemptMetrics: both expose id, finished_at,
# content_kind and content_unit_number.
AttemptT = TypeVar("AttemptT", AttemptRecordBase, AttemptMetrics)


class DedupeResult(NamedTuple):
    unique_latest: list[AttemptT]
    superseded_originals: list[AttemptT]


class AssemblyResult(NamedTuple):
    blocks: list[Block]
    incomplete: list[AttemptMetrics]


class _AssemblyState(NamedTuple):
    blocks: tuple[Block, ...] = ()
    buffer: tuple[AttemptMetrics, ...] = ()
    incomplete: tuple[AttemptMetrics, ...] = ()


class _Aggregation(NamedTuple):
    attempts: list[AttemptMetrics]
    blocks: list[Block]
    incomplete: list[AttemptMetrics]


def _chronological(items: Iterable[AttemptT]) -> list[AttemptT]:
    # sorted() is stable, so equal timestamps keep their input order
    return sorted(items, key=lambda item: item.finished_at)


def _is_kind(item, kind: ContentKind) -> bool:
    return ContentKind(item.content_kind) == kind


def _mean(values: Sequence[float]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


def _current_streak(outcomes: Sequence[bool]) -> tuple[int, int]:
    """Return (passes, fails) of the most recent unbroken run; one is always 0."""
    streak_pass = 0
    streak_fail = 0
    for passed in reversed(outcomes):
        if passed:
            if streak_fail:
                break
            streak_pass += 1
        else:
            if streak_pass:
                break
            streak_fail += 1
    return streak_pass, streak_fail


def _emit_block(state: _AssemblyState, constituents: Sequence[AttemptMetrics]) -> _AssemblyState:
    previous = state.blocks[-1] if state.blocks else None
    block = calculate_block_metrics(constituents, previous)
    return state._replace(blocks=state.blocks + (block,))


def _assembly_step(state: _AssemblyState, item: AttemptMetrics) -> _AssemblyState:
    if _is_kind(item, ContentKind.PRACTICE):
        buffer = state.buffer + (item,)
        if len(buffer) == PRACTICES_PER_BLOCK:
            return _emit_block(state._replace(buffer=()), buffer)
        return state._replace(buffer=buffer)

    # An exam never waits for the buffer and never lets it span the sitting.
    if len(state.buffer) == PRACTICES_PER_BLOCK:
        state = _emit_block(state._replace(buffer=()), state.buffer)
    elif state.buffer:
        state = state._replace(buffer=(), incomplete=state.incomplete + state.buffer)
    return _emit_block(state, (item,))


class ProgressService:
    """Service for building the three-layer progress view of one learner"""

    def __init__(self, moving_average_window: int | None = None):
        if moving_average_window is None:
            moving_average_window = settings.MOVING_AVERAGE_WINDOW
        if moving_average_window < 1:
            raise ValueError(
                f"moving_average_window must be positive, got {moving_average_window}"
            )
        self.moving_average_window = moving_average_window

    def dedupe(self, practice_attempts: Iterable[AttemptT]) -> DedupeResult:
        """
        Keep the latest attempt per practice unit number.

        Both lists come back in chronological order. Only practices are
        deduplicated; an exam here is rejected since every sitting counts.
        """
        ordered = _chronological(practice_attempts)
        seen_numbers: set[int] = set()
        latest_positions: set[int] = set()

        # Walk backwards so the first hit per unit number is the latest one.
        for position in range(len(ordered) - 1, -1, -1):
            item = ordered[position]
            if not _is_kind(item, ContentKind.PRACTICE):
                raise InvalidAttemptError(
                    f"only practice attempts are deduplicated, got {item.content_kind!s}",
                    attempt_id=item.id,
                )
            if item.content_unit_number not in seen_numbers:
                seen_numbers.add(item.content_unit_number)
                latest_positions.add(position)

        unique_latest = [item for i, item in enumerate(ordered) if i in latest_positions]
        superseded = [item for i, item in enumerate(ordered) if i not in latest_positions]
        return DedupeResult(unique_latest=unique_latest, superseded_originals=superseded)

    def assemble(
        self,
        unique_practice: Sequence[AttemptMetrics],
        exams: Sequence[AttemptMetrics],
    ) -> AssemblyResult:
        """
        Group the merged timeline into 36-question blocks.

        Practices fill a buffer that becomes a block at three; an exam arriving
        with one or two buffered practices strands them as incomplete and
        becomes a block of its own. Ties in finish time keep practices before
        exams, the order they are passed in.
        """
        state = _AssemblyState()
        for item in _chronological([*unique_practice, *exams]):
            state = _assembly_step(state, item)

        return AssemblyResult(
            blocks=list(state.blocks),
            incomplete=list(state.incomplete + state.buffer),
        )

    def collect_incomplete(
        self,
        assembly: AssemblyResult,
        practice_attempts: Iterable[AttemptMetrics],
    ) -> list[AttemptMetrics]:
        """
        Everything a learner should see as not (yet) counted: the stranded
        practices plus every other practice attempt, retakes included, that no
        block consumed.
        """
        in_blocks = {attempt_id for block in assembly.blocks for attempt_id in block.attempt_ids}
        incomplete = list(assembly.incomplete)
        listed = {a.id for a in incomplete}

        for attempt in practice_attempts:
            if attempt.id in in_blocks or attempt.id in listed:
                continue
            incomplete.append(attempt)
            listed.add(attempt.id)

        return _chronological(incomplete)

    def summarize(
        self,
        attempts: Sequence[AttemptMetrics],
        blocks: Sequence[Block],
    ) -> OverallStats:
        window = self.moving_average_window
        sum_correct = sum(a.correct_answers for a in attempts)
        sum_total = sum(a.total_questions for a in attempts)
        overall_percent = (sum_correct / sum_total) * 100 if sum_total > 0 else 0.0

        attempt_percents = [a.your_percent_attempt for a in attempts]
        block_percents = [b.your_percent_36 for b in blocks]

        streak_pass_attempts, streak_fail_attempts = _current_streak(
            [a.pass_fail_attempt for a in attempts]
        )
        streak_pass_blocks, streak_fail_blocks = _current_streak([b.pass_fail_36 for b in blocks])

        return OverallStats(
            sum_correct=sum_correct,
            sum_total=sum_total,
            overall_percent=overall_percent,
            overall_missing_pct=max(0.0, PASS_PERCENT_36 - overall_percent),
            avg_last5_attempts=_mean(attempt_percents[-window:]),
            avg_last5_blocks=_mean(block_percents[-window:]),
            avg_completed_blocks=_mean(block_percents),
            best_attempt_percent=max(attempt_percents, default=0.0),
            best_block_percent=max(block_percents, default=0.0),
            streak_pass_attempts=streak_pass_attempts,
            streak_fail_attempts=streak_fail_attempts,
            streak_pass_blocks=streak_pass_blocks,
            streak_fail_blocks=streak_fail_blocks,
        )

    def _metrics_chain(self, records: Sequence[AttemptRecordBase]) -> list[AttemptMetrics]:
        metrics: list[AttemptMetrics] = []
        previous: AttemptMetrics | None = None
        for record in records:
            previous = compute_attempt_metrics(record, previous)
            metrics.append(previous)
        return metrics

    def _aggregate(self, records: Iterable[AttemptRecordBase]) -> _Aggregation:
        exam_records: list[AttemptRecordBase] = []
        practice_records: list[AttemptRecordBase] = []
        for record in _chronological(records):
            if record.content_kind == ContentKind.EXAM:
                exam_records.append(record)
            elif record.content_kind == ContentKind.PRACTICE:
                practice_records.append(record)
            else:
                raise InvalidAttemptError(
                    f"unknown content kind {record.content_kind!r}", attempt_id=record.id
                )

        deduped = self.dedupe(practice_records)
        practice_metrics = self._metrics_chain(deduped.unique_latest)
        exam_metrics = self._metrics_chain(exam_records)
        # Retakes are shown, not trended.
        superseded_metrics = [
            compute_attempt_metrics(record, None) for record in deduped.superseded_originals
        ]

        assembly = self.assemble(practice_metrics, exam_metrics)
        incomplete = self.collect_incomplete(assembly, [*practice_metrics, *superseded_metrics])
        attempts = _chronological([*practice_metrics, *exam_metrics])

        logger.debug(
            "Aggregated %d attempts (%d unique practices, %d superseded, %d exams) "
            "into %d blocks, %d incomplete",
            len(attempts),
            len(practice_metrics),
            len(superseded_metrics),
            len(exam_metrics),
            len(assembly.blocks),
            len(incomplete),
        )
        return _Aggregation(attempts=attempts, blocks=assembly.blocks, incomplete=incomplete)

    def build_progress(self, records: Iterable[AttemptRecordBase]) -> ProgressResponse:
        """
        Build the dashboard payload from a learner's finished attempts.

        Raises InvalidAttemptError for a record that cannot be graded and
        BlockInvariantError if assembly ever produces a malformed block.
        """
        aggregation = self._aggregate(records)
        blocks = aggregation.blocks

        return ProgressResponse(
            attempts=aggregation.attempts,
            blocks=blocks,
            latest_block=blocks[-1] if blocks else None,
            avg_completed_blocks=_mean([b.your_percent_36 for b in blocks]),
            incomplete=aggregation.incomplete,
            total_attempts=len(aggregation.attempts),
        )

    def build_overall_stats(self, records: Iterable[AttemptRecordBase]) -> OverallStats:
        aggregation = self._aggregate(records)
        return self.summarize(aggregation.attempts, aggregation.blocks)


# Singleton instance
progress_service = ProgressService()
