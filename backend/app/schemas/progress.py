import enum
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from app.core.errors import InvalidAttemptError
from app.core.scoring import OFFICIAL_TOTAL, PRACTICE_TOTAL
from app.models.content_unit import ContentKind


class Trend(str, enum.Enum):
    UP = "Up"
    DOWN = "Down"
    FLAT = "Flat"


class AttemptRecordBase(BaseModel):
    """A finished attempt as handed over by the attempt store."""

    model_config = ConfigDict(frozen=True)

    id: str
    finished_at: datetime
    correct_count: int = Field(ge=0)
    content_unit_number: int
    content_unit_title: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("finished_at")
    @classmethod
    def naive_finish_is_utc(cls, value: datetime) -> datetime:
        # Stored rows come back naive; payloads may carry an offset.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("content_unit_title", mode="before")
    @classmethod
    def missing_title_is_empty(cls, value):
        return value or ""

    @model_validator(mode="after")
    def correct_within_total(self):
        if self.correct_count > self.total_questions:
            raise InvalidAttemptError(
                f"correct_count {self.correct_count} exceeds total_questions "
                f"{self.total_questions}",
                attempt_id=self.id,
            )
        return self


class ExamAttemptRecord(AttemptRecordBase):
    content_kind: Literal["EXAM"] = ContentKind.EXAM.value
    total_questions: Literal[36] = OFFICIAL_TOTAL


class PracticeAttemptRecord(AttemptRecordBase):
    content_kind: Literal["PRACTICE"] = ContentKind.PRACTICE.value
    total_questions: Literal[12] = PRACTICE_TOTAL


AttemptRecord = Annotated[
    Union[ExamAttemptRecord, PracticeAttemptRecord],
    Field(discriminator="content_kind"),
]

attempt_records_adapter = TypeAdapter(list[AttemptRecord])


class AttemptMetrics(BaseModel):
    """Layer 1: one graded attempt."""

    model_config = ConfigDict(frozen=True)

    id: str
    finished_at: datetime
    total_questions: int
    correct_answers: int
    required_correct_attempt: int
    pass_percent_attempt: float
    your_percent_attempt: float
    pass_fail_attempt: bool
    missing_q_attempt: int
    missing_pct_attempt: float
    safety_attempt: float
    delta_attempt: float | None  # vs previous attempt of the same kind
    trend_attempt: Trend
    content_kind: ContentKind
    content_unit_number: int
    content_unit_title: str


class Block(BaseModel):
    """Layer 2: one 36-question scoring group (1 exam or 3 practices)."""

    model_config = ConfigDict(frozen=True)

    block_index: int
    block_date: datetime
    attempt_ids: list[str]
    unit_titles: list[str]  # e.g. ["Oefening 1", "Oefening 4", "Oefening 9"]
    correct_36: int
    total_36: int
    your_percent_36: float
    pass_fail_36: bool
    missing_q_36: int
    missing_pct_36: float
    safety_36: float
    delta_36: float | None  # vs previous block, of either kind
    trend_36: Trend
    attempts: list[AttemptMetrics]


class OverallStats(BaseModel):
    """Layer 3: longitudinal summary over attempts and blocks."""

    sum_correct: int
    sum_total: int
    overall_percent: float
    overall_missing_pct: float
    avg_last5_attempts: float | None
    avg_last5_blocks: float | None
    avg_completed_blocks: float | None
    best_attempt_percent: float
    best_block_percent: float
    streak_pass_attempts: int
    streak_fail_attempts: int
    streak_pass_blocks: int
    streak_fail_blocks: int


class ProgressResponse(BaseModel):
    attempts: list[AttemptMetrics]
    blocks: list[Block]
    latest_block: Block | None
    avg_completed_blocks: float | None
    incomplete: list[AttemptMetrics]
    total_attempts: int


class ProgressComputeRequest(BaseModel):
    attempts: list[AttemptRecord] = Field(default_factory=list)


class ClearHistoryResponse(BaseModel):
    status: str
    deleted: int
