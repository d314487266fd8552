"""
Profile API routes - Codeforces-derived views for a single student.

These endpoints never fail because Codeforces is down: a failed fetch
is reported as ``available: false`` with an empty payload.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.services import students as store
from tracker.services.codeforces import CodeforcesClient, CodeforcesUnavailable, get_codeforces_client
from tracker.services.statistics import (
    SUPPORTED_WINDOWS, build_profile, filter_rating_history, summarize_submissions
)
from tracker.logging_config import get_logger, log_with_context

router = APIRouter(prefix="/api/v1")
logger = get_logger("http")


def _load_student(db: Session, student_id: str):
    try:
        return store.get_student(db, student_id)
    except store.StudentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except store.StoreError:
        log_with_context(logger, "INFO", "Store error loading profile, responding 500",
                         context={"student_id": student_id}, extra_data={"status_code": 500})
        raise HTTPException(status_code=500, detail="Internal server error")


def _check_window(days: int):
    if days not in SUPPORTED_WINDOWS:
        raise HTTPException(
            status_code=400,
            detail="days must be one of {}".format(", ".join(str(d) for d in SUPPORTED_WINDOWS))
        )


def _fetch(fetch, handle: str, student_id: str) -> Optional[list]:
    """Run a client fetch, returning None when Codeforces is unavailable."""
    try:
        return fetch(handle)
    except CodeforcesUnavailable as e:
        log_with_context(logger, "WARNING", "Degrading profile view: {}".format(e),
                         context={"student_id": student_id, "handle": handle})
        return None


@router.get("/user/{student_id}/rating-history")
def get_rating_history(
    student_id: str,
    days: int = Query(30, description="Trailing window in days (30, 90 or 365)"),
    db: Session = Depends(get_db),
    client: CodeforcesClient = Depends(get_codeforces_client)
):
    """Rating changes within the trailing window."""
    _check_window(days)
    student = _load_student(db, student_id)
    changes = _fetch(client.user_rating, student.codeforces_id, student_id)
    return {
        "handle": student.codeforces_id,
        "days": days,
        "available": changes is not None,
        "points": filter_rating_history(changes or [], days),
    }


@router.get("/user/{student_id}/problem-stats")
def get_problem_stats(
    student_id: str,
    db: Session = Depends(get_db),
    client: CodeforcesClient = Depends(get_codeforces_client)
):
    """Problem-solving summary computed from all submissions."""
    student = _load_student(db, student_id)
    submissions = _fetch(client.user_status, student.codeforces_id, student_id)
    return {
        "handle": student.codeforces_id,
        "available": submissions is not None,
        "stats": summarize_submissions(submissions or []),
    }


@router.get("/user/{student_id}/profile")
def get_profile(
    student_id: str,
    days: int = Query(30, description="Rating history window in days (30, 90 or 365)"),
    db: Session = Depends(get_db),
    client: CodeforcesClient = Depends(get_codeforces_client)
):
    """Student record together with rating history and problem stats."""
    _check_window(days)
    student = _load_student(db, student_id)
    handle = student.codeforces_id
    changes = _fetch(client.user_rating, handle, student_id)
    submissions = _fetch(client.user_status, handle, student_id)
    return {
        "user": store.serialize_student(student),
        **build_profile(changes, submissions, days),
    }
