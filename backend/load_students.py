"""
Data Loader Script - Loads a JSON array of students into the tracker via API.

Reads the data file and POSTs every entry to the create endpoint.
This can be run from inside the backend container or from the host.

Usage:
    python load_students.py                                   # Default URL and file
    python load_students.py http://localhost:8000              # Custom API URL
    python load_students.py http://backend:8000 students.json  # Custom file
"""

import json
import sys
import os

import httpx


def to_payload(entry):
    """Map a loosely-shaped student entry to the create request body."""
    return {
        "name": entry.get("name"),
        "email": entry.get("email"),
        "contact": entry.get("contact") or entry.get("phone"),
        "codeforcesId": entry.get("codeforcesId") or entry.get("handle"),
        "currentRating": entry.get("currentRating", 0),
        "maxRating": entry.get("maxRating", 0),
    }


def load(client, api_url, entries):
    """POST every entry; return (created, failures)."""
    create_url = f"{api_url}/api/v1/create"
    created = 0
    failures = []
    for row, entry in enumerate(entries, 1):
        resp = client.post(create_url, json=to_payload(entry))
        if resp.status_code == 201:
            created += 1
        else:
            try:
                body = resp.json()
            except ValueError:
                body = None
            detail = body.get("detail") if isinstance(body, dict) else resp.text
            failures.append({"row": row, "email": entry.get("email"),
                             "status": resp.status_code, "detail": detail})
    return created, failures


def main():
    api_url = sys.argv[1] if len(sys.argv) > 1 else os.getenv("API_URL", "http://localhost:8000")
    data_file = sys.argv[2] if len(sys.argv) > 2 else os.path.join(
        os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "students.json")

    if not os.path.exists(data_file):
        print(f"Error: Could not find {data_file}")
        sys.exit(1)

    print(f"Loading data from: {data_file}")
    with open(data_file, 'r') as f:
        entries = json.load(f)

    print(f"Found {len(entries)} students to create")
    print(f"Sending to: {api_url}")
    print()

    with httpx.Client(timeout=30.0) as client:
        created, failures = load(client, api_url.rstrip("/"), entries)

    print("=" * 60)
    print("LOAD SUMMARY")
    print("=" * 60)
    print(f"  Total received:  {len(entries)}")
    print(f"  Created:         {created}")
    print(f"  Failed:          {len(failures)}")
    for failure in failures:
        print(f"    row {failure['row']} ({failure['email']}): "
              f"{failure['status']} {failure['detail']}")
    print("=" * 60)

    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
