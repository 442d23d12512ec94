"""
Core entities for the gradebook platform.
"""

import uuid
from abc import ABC
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .enums import EntityStatus, SubmissionStatus
from .exceptions import ValidationError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class AbstractEntity(ABC):
    """Base abstract entity with universal ID and lifecycle timestamps."""

    def __init__(self, entity_id: Optional[str] = None, created_at: Optional[datetime] = None,
                 updated_at: Optional[datetime] = None, status: Optional[EntityStatus] = None):
        self._id = entity_id or str(uuid.uuid4())
        self._created_at = created_at or utc_now()
        self._updated_at = updated_at or self._created_at
        self._status = status or EntityStatus.ACTIVE

    @property
    def id(self) -> str:
        """Get the entity ID."""
        return self._id

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        """Get last update timestamp."""
        return self._updated_at

    @property
    def status(self) -> EntityStatus:
        """Get entity status."""
        return self._status

    @property
    def is_deleted(self) -> bool:
        return self._status == EntityStatus.DELETED

    def update(self, **kwargs) -> None:
        """Update entity with new data."""
        for key, value in kwargs.items():
            if hasattr(self, f"_{key}"):
                setattr(self, f"_{key}", value)
        self._updated_at = utc_now()

    def delete(self) -> None:
        """Mark entity as deleted."""
        self.update(status=EntityStatus.DELETED)

    def to_dict(self) -> Dict[str, Any]:
        """Convert entity to dictionary."""
        return {
            'id': self._id,
            'created_at': _iso(self._created_at),
            'updated_at': _iso(self._updated_at),
            'status': self._status.value,
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id}, status={self._status.value})"


class Student(AbstractEntity):
    """Student profile referenced by grades."""

    def __init__(self, first_name: str, last_name: str, email: str, **kwargs):
        super().__init__(**kwargs)
        self._first_name = first_name
        self._last_name = last_name
        self._email = email

    @property
    def first_name(self) -> str:
        return self._first_name

    @property
    def last_name(self) -> str:
        return self._last_name

    @property
    def email(self) -> str:
        return self._email

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'first_name': self._first_name,
            'last_name': self._last_name,
            'email': self._email,
        })
        return base_dict


class SchoolClass(AbstractEntity):
    """A class running in a term; its term_id is the class's current term."""

    def __init__(self, name: str, term_id: str, **kwargs):
        super().__init__(**kwargs)
        self._name = name
        self._term_id = term_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def term_id(self) -> str:
        return self._term_id

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({'name': self._name, 'term_id': self._term_id})
        return base_dict


class Activity(AbstractEntity):
    """Unit of classwork, optionally gradable and tied to a topic."""

    def __init__(self, class_id: str, title: str, topic_id: Optional[str] = None,
                 is_gradable: bool = False, max_score: Optional[float] = None,
                 weightage: Optional[float] = None, **kwargs):
        super().__init__(**kwargs)
        if max_score is not None and max_score <= 0:
            raise ValidationError("Activity max score must be positive")
        if weightage is not None and weightage < 0:
            raise ValidationError("Activity weightage cannot be negative")
        self._class_id = class_id
        self._title = title
        self._topic_id = topic_id
        self._is_gradable = is_gradable
        self._max_score = max_score
        self._weightage = weightage

    @property
    def class_id(self) -> str:
        return self._class_id

    @property
    def title(self) -> str:
        return self._title

    @property
    def topic_id(self) -> Optional[str]:
        return self._topic_id

    @property
    def is_gradable(self) -> bool:
        return self._is_gradable

    @property
    def max_score(self) -> Optional[float]:
        return self._max_score

    @property
    def weightage(self) -> Optional[float]:
        return self._weightage

    def validate_score(self, score: float, student_id: Optional[str] = None) -> None:
        """Reject scores for non-gradable activities or outside [0, max_score]."""
        if not self._is_gradable:
            raise ValidationError("Cannot grade a non-gradable activity",
                                  details={'activity_id': self._id})
        upper = self._max_score
        if score < 0 or (upper is not None and score > upper):
            subject = f"Score for student {student_id}" if student_id else "Score"
            bound = f"between 0 and {upper:g}" if upper is not None else "at least 0"
            raise ValidationError(f"{subject} must be {bound}",
                                  details={'activity_id': self._id, 'student_id': student_id, 'score': score})

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'class_id': self._class_id,
            'title': self._title,
            'topic_id': self._topic_id,
            'is_gradable': self._is_gradable,
            'max_score': self._max_score,
            'weightage': self._weightage,
        })
        return base_dict


class ActivityGrade(AbstractEntity):
    """A student's grade record for one activity."""

    def __init__(self, activity_id: str, student_id: str, score: Optional[float] = None,
                 submission_status: SubmissionStatus = SubmissionStatus.SUBMITTED,
                 feedback: Optional[str] = None, content: Any = None, attachments: Any = None,
                 graded_by_id: Optional[str] = None, submitted_at: Optional[datetime] = None,
                 graded_at: Optional[datetime] = None, **kwargs):
        super().__init__(**kwargs)
        self._activity_id = activity_id
        self._student_id = student_id
        self._score = score
        self._submission_status = submission_status
        self._feedback = feedback
        self._content = content
        self._attachments = attachments
        self._graded_by_id = graded_by_id
        self._submitted_at = submitted_at or self._created_at
        self._graded_at = graded_at

    @property
    def activity_id(self) -> str:
        return self._activity_id

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def score(self) -> Optional[float]:
        return self._score

    @property
    def submission_status(self) -> SubmissionStatus:
        return self._submission_status

    @property
    def feedback(self) -> Optional[str]:
        return self._feedback

    @property
    def content(self) -> Any:
        return self._content

    @property
    def attachments(self) -> Any:
        return self._attachments

    @property
    def graded_by_id(self) -> Optional[str]:
        return self._graded_by_id

    @property
    def submitted_at(self) -> datetime:
        return self._submitted_at

    @property
    def graded_at(self) -> Optional[datetime]:
        return self._graded_at

    def snapshot(self) -> Dict[str, Any]:
        """Compact form kept on the student's grade book entry."""
        return {
            'id': self._id,
            'activity_id': self._activity_id,
            'score': self._score,
            'status': self._submission_status.value,
            'submitted_at': _iso(self._submitted_at),
            'graded_at': _iso(self._graded_at),
        }

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'activity_id': self._activity_id,
            'student_id': self._student_id,
            'score': self._score,
            'status': self._submission_status.value,
            'feedback': self._feedback,
            'content': self._content,
            'attachments': self._attachments,
            'graded_by_id': self._graded_by_id,
            'submitted_at': _iso(self._submitted_at),
            'graded_at': _iso(self._graded_at),
        })
        return base_dict


class GradeBook(AbstractEntity):
    """Per-class, per-term container of student grade rollups."""

    def __init__(self, class_id: str, term_id: str, created_by_id: str,
                 calculation_rules: Optional[Dict[str, Any]] = None,
                 updated_by_id: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._class_id = class_id
        self._term_id = term_id
        self._created_by_id = created_by_id
        self._calculation_rules = calculation_rules or {}
        self._updated_by_id = updated_by_id

    @property
    def class_id(self) -> str:
        return self._class_id

    @property
    def term_id(self) -> str:
        return self._term_id

    @property
    def created_by_id(self) -> str:
        return self._created_by_id

    @property
    def updated_by_id(self) -> Optional[str]:
        return self._updated_by_id

    @property
    def calculation_rules(self) -> Dict[str, Any]:
        return dict(self._calculation_rules)

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'class_id': self._class_id,
            'term_id': self._term_id,
            'calculation_rules': dict(self._calculation_rules),
            'created_by_id': self._created_by_id,
            'updated_by_id': self._updated_by_id,
        })
        return base_dict


class StudentGrade(AbstractEntity):
    """A student's rollup within one grade book."""

    def __init__(self, grade_book_id: str, student_id: str,
                 assessment_grades: Optional[Dict[str, Any]] = None,
                 activity_grades: Optional[List[Dict[str, Any]]] = None,
                 final_grade: Optional[float] = None, letter_grade: Optional[str] = None,
                 attendance: Optional[float] = None, comments: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._grade_book_id = grade_book_id
        self._student_id = student_id
        self._assessment_grades = assessment_grades or {}
        self._activity_grades = activity_grades or []
        self._final_grade = final_grade
        self._letter_grade = letter_grade
        self._attendance = attendance
        self._comments = comments

    @property
    def grade_book_id(self) -> str:
        return self._grade_book_id

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def assessment_grades(self) -> Dict[str, Any]:
        return dict(self._assessment_grades)

    @property
    def activity_grades(self) -> List[Dict[str, Any]]:
        return list(self._activity_grades)

    @property
    def final_grade(self) -> Optional[float]:
        return self._final_grade

    @property
    def letter_grade(self) -> Optional[str]:
        return self._letter_grade

    @property
    def attendance(self) -> Optional[float]:
        return self._attendance

    @property
    def comments(self) -> Optional[str]:
        return self._comments

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'grade_book_id': self._grade_book_id,
            'student_id': self._student_id,
            'assessment_grades': dict(self._assessment_grades),
            'activity_grades': list(self._activity_grades),
            'final_grade': self._final_grade,
            'letter_grade': self._letter_grade,
            'attendance': self._attendance,
            'comments': self._comments,
        })
        return base_dict


class StudentTopicGrade(AbstractEntity):
    """Blended score for one topic of a student grade."""

    def __init__(self, student_grade_id: str, topic_id: str, activity_score: float = 0.0,
                 assessment_score: float = 0.0, score: float = 0.0, **kwargs):
        super().__init__(**kwargs)
        self._student_grade_id = student_grade_id
        self._topic_id = topic_id
        self._activity_score = activity_score
        self._assessment_score = assessment_score
        self._score = score

    @property
    def student_grade_id(self) -> str:
        return self._student_grade_id

    @property
    def topic_id(self) -> str:
        return self._topic_id

    @property
    def activity_score(self) -> float:
        return self._activity_score

    @property
    def assessment_score(self) -> float:
        return self._assessment_score

    @property
    def score(self) -> float:
        return self._score

    def to_dict(self) -> Dict[str, Any]:
        base_dict = super().to_dict()
        base_dict.update({
            'student_grade_id': self._student_grade_id,
            'topic_id': self._topic_id,
            'activity_score': self._activity_score,
            'assessment_score': self._assessment_score,
            'score': self._score,
        })
        return base_dict
