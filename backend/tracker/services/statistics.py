"""
Statistics Service - derives profile views from raw Codeforces data.

Problem-solving summary (summarize_submissions):
1. Deduplicate accepted submissions by problem id (first seen wins)
2. total_solved = number of distinct solved problems
3. average_per_day = total_solved / active days in the last 30 days
4. average_problem_rating / most_difficult_problem over rated solves
5. Histogram of rated solves over four fixed rating buckets
6. Submission count per calendar day (all verdicts, all time)

Rating history (filter_rating_history) is a plain view filter over the
user.rating result. Both functions are pure: same input, same output.
All calendar days are UTC dates.
"""

import time
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from tracker.services.codeforces import ACCEPTED_VERDICT, Problem, RatingChange, Submission
from tracker.logging_config import get_logger, log_with_context

logger = get_logger("stats")

SUPPORTED_WINDOWS = (30, 90, 365)
ACTIVITY_WINDOW_DAYS = 30

# (label, low, high) inclusive on both ends; high=None means unbounded
RATING_BUCKETS = [
    ("800-1000", 800, 1000),
    ("1000-1500", 1001, 1500),
    ("1500-2000", 1501, 2000),
    ("2000+", 2001, None),
]


def _round_half_up(value: float, places: int = 0):
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def _utc(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def solved_problems(submissions: List[Submission]) -> List[Problem]:
    """Distinct accepted problems, in order of first accepted submission."""
    solved = OrderedDict()
    for submission in submissions:
        if submission.verdict != ACCEPTED_VERDICT:
            continue
        problem_id = submission.problem.problem_id
        if problem_id not in solved:
            solved[problem_id] = submission.problem
    return list(solved.values())


def bucket_for(rating: int) -> Optional[str]:
    """Label of the first bucket containing ``rating``, or None below 800."""
    for label, low, high in RATING_BUCKETS:
        if rating >= low and (high is None or rating <= high):
            return label
    return None


def serialize_problem(problem: Problem) -> dict:
    return {
        "contestId": problem.contestId,
        "index": problem.index,
        "name": problem.name,
        "rating": problem.rating,
        "tags": list(problem.tags),
    }


def summarize_submissions(submissions: List[Submission], now: Optional[datetime] = None) -> dict:
    """
    Compute the problem-solving summary for a handle.

    Args:
        submissions: Raw user.status submissions, in API order
        now: Evaluation time for the 30-day activity window (default: utcnow)

    Returns:
        Dict with totalSolved, averagePerDay, averageProblemRating,
        mostDifficultProblem, problemsByRating and submissionsByDay
    """
    now = _now(now)
    solved = solved_problems(submissions)
    total_solved = len(solved)

    cutoff = now - timedelta(days=ACTIVITY_WINDOW_DAYS)
    active_days = {
        _utc(s.creationTimeSeconds).date()
        for s in submissions
        if _utc(s.creationTimeSeconds) >= cutoff
    }
    average_per_day = _round_half_up(total_solved / len(active_days), 1) if active_days else 0

    rated = [p for p in solved if p.rating is not None]
    average_rating = _round_half_up(sum(p.rating for p in rated) / len(rated)) if rated else 0

    hardest = None
    for problem in rated:
        # strict comparison keeps the first of equally rated problems
        if hardest is None or problem.rating > hardest.rating:
            hardest = problem

    counts = OrderedDict((label, 0) for label, _, _ in RATING_BUCKETS)
    for problem in rated:
        label = bucket_for(problem.rating)
        if label is not None:
            counts[label] += 1

    by_day = {}
    for submission in submissions:
        day = _utc(submission.creationTimeSeconds).date().isoformat()
        by_day[day] = by_day.get(day, 0) + 1

    return {
        "totalSolved": total_solved,
        "averagePerDay": average_per_day,
        "averageProblemRating": average_rating,
        "mostDifficultProblem": serialize_problem(hardest) if hardest else None,
        "problemsByRating": [
            {"name": label, "min": low, "max": high, "count": counts[label]}
            for label, low, high in RATING_BUCKETS
        ],
        "submissionsByDay": dict(sorted(by_day.items())),
    }


def filter_rating_history(changes: List[RatingChange], days: int,
                          now: Optional[datetime] = None) -> List[dict]:
    """
    Convert rating changes to chart points within a trailing window.

    A point exactly at ``now - days`` is kept. Raises ValueError for a
    window outside SUPPORTED_WINDOWS.
    """
    if days not in SUPPORTED_WINDOWS:
        raise ValueError("Unsupported window {}; expected one of {}".format(days, SUPPORTED_WINDOWS))

    cutoff = _now(now) - timedelta(days=days)
    points = []
    for change in changes:
        updated_at = _utc(change.ratingUpdateTimeSeconds)
        if updated_at < cutoff:
            continue
        points.append({
            "name": updated_at.date().isoformat(),
            "timestamp": change.ratingUpdateTimeSeconds * 1000,
            "rating": change.newRating,
            "oldRating": change.oldRating,
            "contestId": change.contestId,
            "contestName": change.contestName,
            "rank": change.rank,
        })
    return points


def build_profile(changes: Optional[List[RatingChange]], submissions: Optional[List[Submission]],
                  days: int, now: Optional[datetime] = None) -> dict:
    """
    Assemble the rating-history and problem-stats views for a profile.

    ``None`` for either input means the external fetch failed; that view
    is reported with ``available: False`` and an empty/zero payload.
    """
    start_time = time.time()
    now = _now(now)
    profile = {
        "ratingHistory": {
            "days": days,
            "available": changes is not None,
            "points": filter_rating_history(changes or [], days, now),
        },
        "problemStats": {
            "available": submissions is not None,
            "stats": summarize_submissions(submissions or [], now),
        },
    }

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "DEBUG",
        "Profile built: {} rating points, {} solved".format(
            len(profile["ratingHistory"]["points"]), profile["problemStats"]["stats"]["totalSolved"]),
        extra_data={"duration_ms": round(duration_ms, 2), "days": days})
    return profile
