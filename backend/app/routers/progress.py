import logging
import uuid
from collections.abc import Callable
from typing import TypeVar

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db import get_db
from app.core.errors import BlockInvariantError, InvalidAttemptError
from app.schemas.progress import (
    ClearHistoryResponse,
    OverallStats,
    ProgressComputeRequest,
    ProgressResponse,
)
from app.services import attempt_repository
from app.services.progress_service import progress_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["progress"])

ResultT = TypeVar("ResultT")


def _set_cache_headers(response: Response) -> None:
    response.headers["Cache-Control"] = f"private, max-age={settings.PROGRESS_CACHE_SECONDS}"


def _run_engine(compute: Callable[[], ResultT]) -> ResultT:
    try:
        return compute()
    except InvalidAttemptError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except BlockInvariantError as exc:
        logger.exception("Progress aggregation produced an invalid block")
        raise HTTPException(status_code=500, detail="Progress aggregation failed") from exc


@router.get("/users/{user_id}", response_model=ProgressResponse)
def get_user_progress(
    user_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Attempts, 36-question blocks and incomplete practices for one learner.
    """
    progress = _run_engine(
        lambda: progress_service.build_progress(
            attempt_repository.list_finished_attempts(db, user_id)
        )
    )
    _set_cache_headers(response)
    return progress


@router.get("/users/{user_id}/overall", response_model=OverallStats)
def get_user_overall_stats(
    user_id: uuid.UUID,
    response: Response,
    db: Session = Depends(get_db),
):
    """
    Moving averages, best scores and current streaks for one learner.
    """
    stats = _run_engine(
        lambda: progress_service.build_overall_stats(
            attempt_repository.list_finished_attempts(db, user_id)
        )
    )
    _set_cache_headers(response)
    return stats


@router.post("/compute", response_model=ProgressResponse)
def compute_progress(payload: ProgressComputeRequest):
    """
    Run the aggregation on caller-supplied attempt records.
    """
    return _run_engine(lambda: progress_service.build_progress(payload.attempts))


@router.delete("/users/{user_id}/attempts", response_model=ClearHistoryResponse)
def clear_user_history(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
):
    deleted = attempt_repository.clear_history(db, user_id)
    logger.info("Cleared %d attempts for user %s", deleted, user_id)
    return ClearHistoryResponse(status="success", deleted=deleted)
