"""
Student API routes - CRUD operations on student records.

Provides endpoints for:
- Creating a student (all fields required)
- Listing students with an optional substring search
- Viewing, editing and deleting a single student
- Refreshing stored ratings from Codeforces
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from tracker.database import get_db
from tracker.services import students as store
from tracker.services.codeforces import CodeforcesClient, CodeforcesUnavailable, get_codeforces_client
from tracker.logging_config import get_logger, log_with_context

router = APIRouter(prefix="/api/v1")
logger = get_logger("http")


# ── Pydantic schemas ─────────────────────────────────────────

class StudentFields(BaseModel):
    """
    Request body for create and edit.

    Every field is optional at the schema level; presence of required
    fields is checked by the store so that a missing field is a 400.
    """
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    contact: Optional[str] = None
    codeforcesId: Optional[str] = None
    currentRating: Optional[int] = None
    maxRating: Optional[int] = None


class DeleteResponse(BaseModel):
    message: str
    id: str


def _not_found(e: store.StudentNotFound):
    return HTTPException(status_code=404, detail=str(e))


def _store_failure(e: store.StoreError, action: str):
    # the db channel already logged the failure with its traceback
    log_with_context(logger, "INFO", "Store error during {}, responding 500".format(action),
                     extra_data={"status_code": 500, "cause": type(e.__cause__).__name__})
    return HTTPException(status_code=500, detail="Internal server error")


@router.post("/create", status_code=201)
def create_student(request: StudentFields, db: Session = Depends(get_db)):
    """Create a student; every one of the six fields must be present."""
    try:
        student = store.create_student(db, request.model_dump())
    except store.StudentValidationError as e:
        raise HTTPException(status_code=400, detail="All fields are required: missing {}".format(
            ", ".join(e.missing)))
    except store.StoreError as e:
        raise _store_failure(e, "create")
    return store.serialize_student(student)


@router.get("/all-users")
def list_students(
    search: Optional[str] = Query(None, description="Search name/email/contact/handle"),
    db: Session = Depends(get_db)
):
    """List every student, optionally filtered by substring."""
    try:
        students = store.list_students(db, search=search)
    except store.StoreError as e:
        raise _store_failure(e, "list")
    return [store.serialize_student(s) for s in students]


@router.get("/user/{student_id}")
def get_student(student_id: str, db: Session = Depends(get_db)):
    try:
        student = store.get_student(db, student_id)
    except store.StudentNotFound as e:
        raise _not_found(e)
    except store.StoreError as e:
        raise _store_failure(e, "get")
    return store.serialize_student(student)


@router.put("/edit/{student_id}")
def edit_student(student_id: str, request: StudentFields, db: Session = Depends(get_db)):
    """Update any subset of the student's fields."""
    try:
        student = store.update_student(db, student_id, request.model_dump(exclude_unset=True))
    except store.StudentNotFound as e:
        raise _not_found(e)
    except store.StudentValidationError as e:
        raise HTTPException(status_code=400, detail="Fields cannot be blank: {}".format(
            ", ".join(e.missing)))
    except store.StoreError as e:
        raise _store_failure(e, "edit")
    return store.serialize_student(student)


@router.delete("/delete/{student_id}", response_model=DeleteResponse)
def delete_student(student_id: str, db: Session = Depends(get_db)):
    try:
        deleted_id = store.delete_student(db, student_id)
    except store.StudentNotFound as e:
        raise _not_found(e)
    except store.StoreError as e:
        raise _store_failure(e, "delete")
    return DeleteResponse(message="User deleted successfully", id=deleted_id)


@router.post("/user/{student_id}/sync")
def sync_student_ratings(
    student_id: str,
    db: Session = Depends(get_db),
    client: CodeforcesClient = Depends(get_codeforces_client)
):
    """Refresh current and max rating from Codeforces."""
    try:
        student = store.sync_ratings(db, student_id, client)
    except store.StudentNotFound as e:
        raise _not_found(e)
    except CodeforcesUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except store.StoreError as e:
        raise _store_failure(e, "sync")
    return store.serialize_student(student)
