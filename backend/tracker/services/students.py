"""
Student Store Service - create/read/update/delete on student records.

Every operation is a thin pass-through to the ORM. The only checks made
here are "is the required field present"; everything else (email
uniqueness, column types) is left to the database.

Failures are reported with three exceptions:
1. StudentValidationError - a required field is missing or blank (HTTP 400)
2. StudentNotFound - no record for the given id (HTTP 404)
3. StoreError - any other persistence failure (HTTP 500)
"""

import time
from datetime import timezone
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tracker.models.student import Student
from tracker.logging_config import get_logger, log_with_context

logger = get_logger("db")

# API field name -> ORM attribute
FIELD_MAP = {
    "name": "name",
    "email": "email",
    "contact": "contact",
    "codeforcesId": "codeforces_id",
    "currentRating": "current_rating",
    "maxRating": "max_rating",
}

REQUIRED_TEXT_FIELDS = ["name", "email", "contact", "codeforcesId"]
REQUIRED_NUMBER_FIELDS = ["currentRating", "maxRating"]


class StudentValidationError(Exception):
    """Raised when a required field is absent or blank."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__("Missing required fields: {}".format(", ".join(self.missing)))


class StudentNotFound(Exception):
    """Raised when no student record exists for the given id."""

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__("User not found")


class StoreError(Exception):
    """Raised for any other persistence failure."""


def _isoformat_utc(value):
    # SQLite hands timestamps back without an offset; they are stored as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def serialize_student(student: Student) -> dict:
    """Serialize a Student ORM object to the API's camelCase shape."""
    return {
        "id": str(student.id),
        "name": student.name,
        "email": student.email,
        "contact": student.contact,
        "codeforcesId": student.codeforces_id,
        "currentRating": student.current_rating,
        "maxRating": student.max_rating,
        "createdAt": _isoformat_utc(student.created_at),
        "updatedAt": _isoformat_utc(student.updated_at),
    }


def _missing_fields(fields: dict) -> list:
    missing = []
    for key in REQUIRED_TEXT_FIELDS:
        value = fields.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(key)
    for key in REQUIRED_NUMBER_FIELDS:
        # 0 is a valid rating, only absence counts as missing
        if fields.get(key) is None:
            missing.append(key)
    return missing


def _commit(db: Session, action: str, context: dict):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to {} student: {}".format(action, e),
                         context=context, exc_info=True)
        raise StoreError(str(e)) from e


def _load(db: Session, student_id: str) -> Student:
    try:
        student = db.get(Student, student_id)
    except SQLAlchemyError as e:
        log_with_context(logger, "ERROR", "Failed to load student: {}".format(e),
                         context={"student_id": student_id}, exc_info=True)
        raise StoreError(str(e)) from e
    if student is None:
        raise StudentNotFound(student_id)
    return student


def create_student(db: Session, fields: dict) -> Student:
    """
    Create a new student record.

    Args:
        db: Database session
        fields: API-named fields (name, email, contact, codeforcesId,
            currentRating, maxRating)

    Returns:
        The persisted Student

    Raises:
        StudentValidationError: if any required field is missing
        StoreError: on any database failure (including duplicate email)
    """
    missing = _missing_fields(fields)
    if missing:
        raise StudentValidationError(missing)

    student = Student(
        name=fields["name"],
        email=fields["email"],
        contact=fields["contact"],
        codeforces_id=fields["codeforcesId"],
        current_rating=fields.get("currentRating") or 0,
        max_rating=fields.get("maxRating") or 0,
    )
    db.add(student)
    _commit(db, "create", {"email": fields["email"]})
    db.refresh(student)

    log_with_context(logger, "INFO", "Created student: {}".format(student.name),
                     context={"student_id": str(student.id), "handle": student.codeforces_id})
    return student


def list_students(db: Session, search: Optional[str] = None) -> list:
    """Return all students, optionally filtered by a substring search."""
    start_time = time.time()
    query = db.query(Student)
    if search:
        pattern = "%{}%".format(search)
        query = query.filter(or_(
            Student.name.ilike(pattern),
            Student.email.ilike(pattern),
            Student.contact.ilike(pattern),
            Student.codeforces_id.ilike(pattern),
        ))
    try:
        students = query.order_by(Student.created_at.asc()).all()
    except SQLAlchemyError as e:
        log_with_context(logger, "ERROR", "Failed to list students: {}".format(e), exc_info=True)
        raise StoreError(str(e)) from e

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "DEBUG", "Listed {} students".format(len(students)),
                     extra_data={"duration_ms": round(duration_ms, 2), "search": search})
    return students


def get_student(db: Session, student_id: str) -> Student:
    """Fetch a single student or raise StudentNotFound."""
    return _load(db, student_id)


def update_student(db: Session, student_id: str, fields: dict) -> Student:
    """
    Apply the provided fields to an existing student.

    Fields that are absent or None are left untouched, so callers may
    send any subset of the mutable fields. Blank text for a required
    field raises StudentValidationError.
    """
    student = _load(db, student_id)

    blank = [
        key for key in REQUIRED_TEXT_FIELDS
        if isinstance(fields.get(key), str) and not fields[key].strip()
    ]
    if blank:
        raise StudentValidationError(blank)

    changed = []
    for key, attr in FIELD_MAP.items():
        value = fields.get(key)
        if value is None:
            continue
        setattr(student, attr, value)
        changed.append(key)

    _commit(db, "update", {"student_id": student_id})
    db.refresh(student)

    log_with_context(logger, "INFO", "Updated student {}".format(student_id),
                     context={"student_id": student_id},
                     extra_data={"fields": changed})
    return student


def delete_student(db: Session, student_id: str) -> str:
    """Delete a student and return its id."""
    student = _load(db, student_id)
    db.delete(student)
    _commit(db, "delete", {"student_id": student_id})

    log_with_context(logger, "INFO", "Deleted student {}".format(student_id),
                     context={"student_id": student_id})
    return student_id


def sync_ratings(db: Session, student_id: str, client) -> Student:
    """
    Refresh current and max rating from Codeforces user.info.

    Raises CodeforcesUnavailable (from the client) when the external API
    cannot be reached; the stored record is not modified in that case.
    """
    student = _load(db, student_id)
    info = client.user_info(student.codeforces_id)

    student.current_rating = info.rating or 0
    student.max_rating = info.maxRating or 0
    _commit(db, "sync", {"student_id": student_id})
    db.refresh(student)

    log_with_context(logger, "INFO",
        "Synced ratings for {}: current={}, max={}".format(
            student.codeforces_id, student.current_rating, student.max_rating),
        context={"student_id": student_id, "handle": student.codeforces_id})
    return student
