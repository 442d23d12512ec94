"""
Grading API facade.

Validates raw payloads with the pydantic input models, calls the services
and returns plain dictionaries. Authorization is assumed to have happened
before a call reaches this layer; ``user_id`` identifies the acting teacher.
"""

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from ..core.exceptions import ValidationError
from ..services import ActivityGradeService, BatchGradeEntry, GradeAggregator, GradeBookService
from .schemas import (
    ActivityGradeFilters, AssessmentScoreInput, BatchGradeActivitiesInput, CreateActivityGradeInput,
    CreateGradeBookInput, CreateStudentGradeInput, GradeBookFilters, StudentGradeFilters,
    UpdateActivityGradeInput, UpdateGradeBookInput, UpdateStudentGradeInput
)

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


def parse_input(model: Type[M], payload: Optional[Dict[str, Any]]) -> M:
    """Validate a payload, turning schema errors into BAD_REQUEST."""
    try:
        return model.model_validate(payload or {})
    except SchemaValidationError as e:
        errors = [
            {'field': ".".join(str(part) for part in err["loc"]), 'message': err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError(f"Invalid {model.__name__}", details={'errors': errors}) from e


class GradingAPI:
    """Entry point for the exposed grading operations."""

    def __init__(self, activity_grade_service: ActivityGradeService,
                 grade_book_service: GradeBookService, aggregator: GradeAggregator):
        self._activity_grades = activity_grade_service
        self._grade_books = grade_book_service
        self._aggregator = aggregator

    # Activity grades

    def create_activity_grade(self, payload: Dict[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
        data = parse_input(CreateActivityGradeInput, payload)
        result = self._activity_grades.create_activity_grade(
            activity_id=data.activity_id,
            student_id=data.student_id,
            score=data.score,
            feedback=data.feedback,
            content=data.content,
            attachments=data.attachments,
            status=data.status,
            graded_by_id=data.graded_by_id or (user_id if data.score is not None else None),
        )
        return result.to_dict()

    def get_activity_grade(self, activity_id: str, student_id: str) -> Dict[str, Any]:
        return self._activity_grades.get_activity_grade(activity_id, student_id).to_dict()

    def list_activity_grades(self, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = parse_input(ActivityGradeFilters, filters)
        page = self._activity_grades.list_activity_grades(
            activity_id=data.activity_id, student_id=data.student_id, status=data.status,
            search=data.search, skip=data.skip, take=data.take)
        return page.to_dict()

    def update_activity_grade(self, activity_id: str, student_id: str, payload: Dict[str, Any],
                              user_id: Optional[str] = None) -> Dict[str, Any]:
        data = parse_input(UpdateActivityGradeInput, payload)
        changes = data.model_dump(exclude_unset=True)
        if "score" in changes and "graded_by_id" not in changes and user_id:
            changes["graded_by_id"] = user_id
        return self._activity_grades.update_activity_grade(activity_id, student_id, **changes).to_dict()

    def batch_grade_activities(self, payload: Dict[str, Any], user_id: str) -> List[Dict[str, Any]]:
        data = parse_input(BatchGradeActivitiesInput, payload)
        entries = [BatchGradeEntry(item.student_id, item.score, item.feedback) for item in data.grades]
        results = self._activity_grades.batch_grade_activities(data.activity_id, entries, graded_by_id=user_id)
        return [result.to_dict() for result in results]

    # Grade books

    def create_grade_book(self, payload: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        data = parse_input(CreateGradeBookInput, payload)
        return self._grade_books.create_grade_book(
            data.class_id, data.term_id, created_by_id=user_id,
            calculation_rules=data.calculation_rules).to_dict()

    def get_grade_book(self, grade_book_id: str) -> Dict[str, Any]:
        return self._grade_books.get_grade_book(grade_book_id).to_dict()

    def update_grade_book(self, grade_book_id: str, payload: Dict[str, Any], user_id: str) -> Dict[str, Any]:
        data = parse_input(UpdateGradeBookInput, payload)
        return self._grade_books.update_grade_book(
            grade_book_id, calculation_rules=data.calculation_rules,
            updated_by_id=user_id, status=data.status).to_dict()

    def delete_grade_book(self, grade_book_id: str) -> Dict[str, Any]:
        return self._grade_books.delete_grade_book(grade_book_id).to_dict()

    def list_grade_books(self, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = parse_input(GradeBookFilters, filters)
        return self._grade_books.list_grade_books(
            class_id=data.class_id, term_id=data.term_id, search=data.search,
            skip=data.skip, take=data.take).to_dict()

    # Student grades

    def create_student_grade(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = parse_input(CreateStudentGradeInput, payload)
        return self._grade_books.create_student_grade(**data.model_dump()).to_dict()

    def get_student_grade(self, student_grade_id: str) -> Dict[str, Any]:
        return self._grade_books.get_student_grade(student_grade_id).to_dict()

    def get_student_grade_for_class(self, student_id: str, class_id: str) -> Dict[str, Any]:
        return self._grade_books.get_student_grade_for_class(student_id, class_id).to_dict()

    def update_student_grade(self, student_grade_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = parse_input(UpdateStudentGradeInput, payload)
        changes = data.model_dump(exclude_unset=True)
        return self._grade_books.update_student_grade(student_grade_id, **changes).to_dict()

    def list_student_grades(self, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = parse_input(StudentGradeFilters, filters)
        return self._grade_books.list_student_grades(
            grade_book_id=data.grade_book_id, student_id=data.student_id, status=data.status,
            skip=data.skip, take=data.take).to_dict()

    def list_topic_grades(self, student_grade_id: str) -> List[Dict[str, Any]]:
        return [t.to_dict() for t in self._grade_books.list_topic_grades(student_grade_id)]

    def record_assessment_score(self, student_grade_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = parse_input(AssessmentScoreInput, payload)
        topic_grade = self._aggregator.record_assessment_score(
            student_grade_id, data.topic_id, data.assessment_score)
        logger.info("Recorded assessment score for student grade %s, topic %s",
                    student_grade_id, data.topic_id)
        return topic_grade.to_dict()
