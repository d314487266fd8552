import os
from datetime import datetime, timezone

# Must be set before tracker.database is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CODEFORCES_API_URL"] = "https://codeforces.test/api"

import pytest  # noqa: E402
import respx  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from tracker.database import create_tables, drop_tables  # noqa: E402
from tracker.services.codeforces import Submission, RatingChange  # noqa: E402

CF_API = "https://codeforces.test/api"
NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_db():
    """Give every test an empty students table."""
    drop_tables()
    create_tables()
    yield


@pytest.fixture
def client():
    from tracker.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def cf_api():
    """Mocked Codeforces API; unmatched requests fail the test."""
    with respx.mock(base_url=CF_API, assert_all_called=False) as router:
        yield router


@pytest.fixture
def student_payload():
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "contact": "919876543210",
        "codeforcesId": "ada_l",
        "currentRating": 1450,
        "maxRating": 1620,
    }


@pytest.fixture
def created_student(client, student_payload):
    response = client.post("/api/v1/create", json=student_payload)
    assert response.status_code == 201
    return response.json()


def make_submission(sub_id, contest_id, index, verdict="OK", rating=None,
                    when=NOW, tags=None, name=None):
    problem = {"contestId": contest_id, "index": index,
               "name": name or "Problem {}{}".format(contest_id, index),
               "tags": tags or []}
    if rating is not None:
        problem["rating"] = rating
    return Submission.model_validate({
        "id": sub_id,
        "contestId": contest_id,
        "creationTimeSeconds": int(when.timestamp()),
        "problem": problem,
        "verdict": verdict,
    })


def make_rating_change(contest_id, when, new_rating, old_rating=0, rank=1):
    return RatingChange.model_validate({
        "contestId": contest_id,
        "contestName": "Codeforces Round #{}".format(contest_id),
        "handle": "ada_l",
        "rank": rank,
        "ratingUpdateTimeSeconds": int(when.timestamp()),
        "oldRating": old_rating,
        "newRating": new_rating,
    })


def submission_json(submission: Submission) -> dict:
    return submission.model_dump(exclude_none=True)
