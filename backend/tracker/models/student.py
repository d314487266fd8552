"""
Student model - a tracked student and their Codeforces metadata.

Each student is uniquely identified by UUID. Email is unique across all
records; it is the only cross-record constraint.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, DateTime, String, Index, UniqueConstraint
from tracker.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Student(Base):
    """
    SQLAlchemy model for the students table.

    Ratings are entered by hand or refreshed from the Codeforces user.info
    endpoint; they are never derived from submission history.
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique student identifier")
    name = Column(Text, nullable=False,
                  doc="Student's display name")
    email = Column(String(320), nullable=False,
                   doc="Student email, unique per record")
    contact = Column(Text, nullable=False,
                     doc="Phone number stored as free text")
    codeforces_id = Column(Text, nullable=False,
                           doc="Codeforces handle (not validated on write)")
    current_rating = Column(Integer, nullable=False, default=0,
                            doc="Current Codeforces rating")
    max_rating = Column(Integer, nullable=False, default=0,
                        doc="Highest Codeforces rating reached")
    created_at = Column(DateTime(timezone=True), default=_utcnow,
                        doc="Timestamp when the record was created")
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow,
                        doc="Timestamp of the last edit")

    __table_args__ = (
        UniqueConstraint("email", name="uq_students_email"),
        Index("ix_students_codeforces_id", "codeforces_id"),
    )

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', handle='{self.codeforces_id}')>"
