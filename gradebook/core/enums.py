"""
Enumerations and constants for the gradebook platform.
"""

from enum import Enum


class EntityStatus(Enum):
    """Status of an entity in the system."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"
    DELETED = "deleted"


class SubmissionStatus(Enum):
    """Lifecycle of a student's activity submission."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    GRADED = "GRADED"
    RETURNED = "RETURNED"
    RESUBMITTED = "RESUBMITTED"
    LATE = "LATE"
    REJECTED = "REJECTED"


class AggregationOutcome(Enum):
    """What happened to the grade book after a grade write."""
    UPDATED = "updated"  # topic grades and snapshot refreshed
    SKIPPED = "skipped"  # no grade book or student grade to update
    STALE = "stale"  # recomputation failed, grade book lags the write


# Letter scale applied to 0-100 scores, highest threshold first.
DEFAULT_LETTER_SCALE = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)
FAILING_LETTER = "F"
