from tracker.models.student import Student

__all__ = ["Student"]
