"""
Codeforces API client - read-only access to public user data.

Wraps the three endpoints the tracker needs:
- user.rating: rating change per rated contest
- user.status: every submission the handle has made
- user.info: current and max rating

Any failure (network, HTTP status, malformed body, API-level FAILED
status) is raised as CodeforcesUnavailable so callers can degrade
their view instead of erroring out.
"""

import os
import time
from typing import List, Optional
import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tracker.logging_config import get_logger, log_with_context

logger = get_logger("codeforces")

CODEFORCES_API_URL = os.getenv("CODEFORCES_API_URL", "https://codeforces.com/api")
CODEFORCES_TIMEOUT = float(os.getenv("CODEFORCES_TIMEOUT", "10"))

ACCEPTED_VERDICT = "OK"


# ── Pydantic models for API payloads ─────────────────────────

class _CodeforcesModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Problem(_CodeforcesModel):
    """A problem as embedded in a submission."""
    contestId: Optional[int] = None
    index: str
    name: str = ""
    rating: Optional[int] = None
    tags: List[str] = Field(default_factory=list)

    @property
    def problem_id(self) -> str:
        return "{}{}".format(self.contestId if self.contestId is not None else "", self.index)


class Submission(_CodeforcesModel):
    """A single submission attempt."""
    id: int
    contestId: Optional[int] = None
    creationTimeSeconds: int
    problem: Problem
    verdict: Optional[str] = None


class RatingChange(_CodeforcesModel):
    """One rated contest result."""
    contestId: int
    contestName: str = ""
    handle: str = ""
    rank: int = 0
    ratingUpdateTimeSeconds: int
    oldRating: int = 0
    newRating: int


class UserInfo(_CodeforcesModel):
    handle: str
    rating: Optional[int] = None
    maxRating: Optional[int] = None
    rank: Optional[str] = None
    maxRank: Optional[str] = None


class CodeforcesUnavailable(Exception):
    """Raised when the Codeforces API cannot provide a usable answer."""

    def __init__(self, method: str, reason: str):
        self.method = method
        self.reason = reason
        super().__init__("Codeforces {} unavailable: {}".format(method, reason))


class CodeforcesClient:
    """
    Thin synchronous client over the Codeforces public API.

    Args:
        base_url: API root, e.g. https://codeforces.com/api
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (mainly for tests)
    """

    def __init__(self, base_url: str = CODEFORCES_API_URL, timeout: float = CODEFORCES_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _call(self, method: str, params: dict):
        handle = params.get("handle") or params.get("handles")
        start_time = time.time()
        try:
            resp = self._client.get("/{}".format(method), params=params)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            log_with_context(logger, "WARNING", "Codeforces {} failed: {}".format(method, e),
                             context={"handle": handle})
            raise CodeforcesUnavailable(method, str(e)) from e

        if not isinstance(body, dict) or body.get("status") != "OK":
            comment = body.get("comment", "unknown error") if isinstance(body, dict) else "malformed body"
            log_with_context(logger, "WARNING", "Codeforces {} returned {}".format(method, comment),
                             context={"handle": handle})
            raise CodeforcesUnavailable(method, comment)

        duration_ms = (time.time() - start_time) * 1000
        log_with_context(logger, "DEBUG", "Codeforces {} ok".format(method),
                         context={"handle": handle},
                         extra_data={"duration_ms": round(duration_ms, 2)})
        return body.get("result")

    def user_rating(self, handle: str) -> List[RatingChange]:
        result = self._call("user.rating", {"handle": handle})
        try:
            return [RatingChange.model_validate(item) for item in result or []]
        except ValidationError as e:
            raise CodeforcesUnavailable("user.rating", "unexpected payload: {}".format(e)) from e

    def user_status(self, handle: str) -> List[Submission]:
        result = self._call("user.status", {"handle": handle})
        try:
            return [Submission.model_validate(item) for item in result or []]
        except ValidationError as e:
            raise CodeforcesUnavailable("user.status", "unexpected payload: {}".format(e)) from e

    def user_info(self, handle: str) -> UserInfo:
        result = self._call("user.info", {"handles": handle})
        try:
            return UserInfo.model_validate(result[0])
        except (ValidationError, IndexError, TypeError) as e:
            raise CodeforcesUnavailable("user.info", "unexpected payload: {}".format(e)) from e


def get_codeforces_client():
    """FastAPI dependency yielding a client that is closed after the request."""
    client = CodeforcesClient()
    try:
        yield client
    finally:
        client.close()
