import pytest
from unittest.mock import patch

REQUIRED_FIELDS = ["name", "email", "contact", "codeforcesId", "currentRating", "maxRating"]


def test_create_round_trips(client, student_payload):
    response = client.post("/api/v1/create", json=student_payload)

    assert response.status_code == 201
    created = response.json()
    assert created["id"]
    for key, value in student_payload.items():
        assert created[key] == value

    fetched = client.get("/api/v1/user/{}".format(created["id"]))
    assert fetched.status_code == 200
    assert fetched.json() == created


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
def test_create_missing_field_is_rejected(client, student_payload, field):
    del student_payload[field]

    response = client.post("/api/v1/create", json=student_payload)

    assert response.status_code == 400
    assert field in response.json()["detail"]
    assert client.get("/api/v1/all-users").json() == []


def test_create_blank_name_is_rejected(client, student_payload):
    student_payload["name"] = "   "

    response = client.post("/api/v1/create", json=student_payload)

    assert response.status_code == 400


def test_create_accepts_zero_ratings(client, student_payload):
    student_payload.update(currentRating=0, maxRating=0)

    response = client.post("/api/v1/create", json=student_payload)

    assert response.status_code == 201
    assert response.json()["currentRating"] == 0
    assert response.json()["maxRating"] == 0


def test_create_with_malformed_rating_is_400(client, student_payload):
    student_payload["currentRating"] = "very high"

    response = client.post("/api/v1/create", json=student_payload)

    assert response.status_code == 400


def test_duplicate_email_is_store_error(client, student_payload, created_student):
    student_payload["name"] = "Someone Else"

    response = client.post("/api/v1/create", json=student_payload)

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


def test_list_returns_all_students(client, student_payload, created_student):
    other = dict(student_payload, name="Alan Turing", email="alan@example.com", codeforcesId="enigma")
    client.post("/api/v1/create", json=other)

    response = client.get("/api/v1/all-users")

    assert response.status_code == 200
    assert [s["name"] for s in response.json()] == ["Ada Lovelace", "Alan Turing"]


def test_list_search_filters_by_substring(client, student_payload, created_student):
    other = dict(student_payload, name="Alan Turing", email="alan@example.com", codeforcesId="enigma")
    client.post("/api/v1/create", json=other)

    response = client.get("/api/v1/all-users", params={"search": "enig"})

    assert [s["codeforcesId"] for s in response.json()] == ["enigma"]


def test_get_unknown_id_is_404(client):
    response = client.get("/api/v1/user/does-not-exist")

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_edit_applies_subset_of_fields(client, created_student):
    response = client.put(
        "/api/v1/edit/{}".format(created_student["id"]),
        json={"currentRating": 1580, "maxRating": 1700},
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated["currentRating"] == 1580
    assert updated["maxRating"] == 1700
    assert updated["name"] == created_student["name"]
    assert updated["email"] == created_student["email"]


def test_edit_replaces_all_fields(client, created_student):
    replacement = {
        "name": "Augusta King",
        "email": "augusta@example.com",
        "contact": "441234567890",
        "codeforcesId": "countess",
        "currentRating": 1900,
        "maxRating": 2010,
    }

    response = client.put("/api/v1/edit/{}".format(created_student["id"]), json=replacement)

    assert response.status_code == 200
    fetched = client.get("/api/v1/user/{}".format(created_student["id"])).json()
    for key, value in replacement.items():
        assert fetched[key] == value


def test_edit_unknown_id_is_404(client):
    response = client.put("/api/v1/edit/does-not-exist", json={"name": "Nobody"})

    assert response.status_code == 404


def test_edit_to_taken_email_is_store_error(client, student_payload, created_student):
    other = client.post("/api/v1/create", json=dict(
        student_payload, email="alan@example.com", codeforcesId="enigma")).json()

    response = client.put("/api/v1/edit/{}".format(other["id"]), json={"email": created_student["email"]})

    assert response.status_code == 500
    # The failed edit leaves the record untouched
    assert client.get("/api/v1/user/{}".format(other["id"])).json()["email"] == "alan@example.com"


def test_delete_removes_student(client, created_student):
    response = client.delete("/api/v1/delete/{}".format(created_student["id"]))

    assert response.status_code == 200
    assert response.json() == {"message": "User deleted successfully", "id": created_student["id"]}
    assert client.get("/api/v1/user/{}".format(created_student["id"])).status_code == 404


def test_delete_unknown_id_is_404(client):
    response = client.delete("/api/v1/delete/does-not-exist")

    assert response.status_code == 404


def test_responses_carry_request_id(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Request-ID"]


def test_edit_blank_required_field_is_400(client, created_student):
    response = client.put("/api/v1/edit/{}".format(created_student["id"]),
                          json={"name": "", "email": "  "})

    assert response.status_code == 400
    assert "name" in response.json()["detail"]
    assert "email" in response.json()["detail"]
    # Nothing is written when any field is blank
    fetched = client.get("/api/v1/user/{}".format(created_student["id"])).json()
    assert fetched["name"] == created_student["name"]
    assert fetched["email"] == created_student["email"]


def test_timestamps_carry_utc_offset(client, created_student):
    edited = client.put("/api/v1/edit/{}".format(created_student["id"]), json={"maxRating": 1700}).json()

    for record in (created_student, edited):
        assert record["createdAt"].endswith("+00:00")
        assert record["updatedAt"].endswith("+00:00")


def test_store_error_logged_once_at_error(client, student_payload, created_student):
    with patch("tracker.routes.students.log_with_context") as route_log:
        response = client.post("/api/v1/create", json=student_payload)

    assert response.status_code == 500
    levels = [c.args[1] for c in route_log.call_args_list]
    assert "ERROR" not in levels
    assert levels == ["INFO"]
    assert route_log.call_args.kwargs["extra_data"]["status_code"] == 500
