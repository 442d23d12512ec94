"""
Grade book service: class/term grade books and per-student rollups.
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.entities import GradeBook, SchoolClass, StudentGrade, StudentTopicGrade
from ..core.enums import EntityStatus
from ..core.exceptions import (
    ConfigurationError, DuplicateEntityError, GradebookException, InternalError,
    ResourceNotFoundError, ValidationError
)
from ..core.grading_policy import GradeWeightingPolicy
from ..persistence.repositories import (
    DEFAULT_PAGE_SIZE, ClassRepository, GradeBookRepository, Page, StudentGradeRepository,
    StudentRepository, StudentTopicGradeRepository
)

logger = logging.getLogger(__name__)

STUDENT_GRADE_FIELDS = ("assessment_grades", "final_grade", "letter_grade", "attendance", "comments", "status")


class GradeBookService:
    """Service for grade books and the student grades they hold."""

    def __init__(self, class_repo: ClassRepository, student_repo: StudentRepository,
                 grade_book_repo: GradeBookRepository, student_grade_repo: StudentGradeRepository,
                 topic_grade_repo: StudentTopicGradeRepository):
        self._class_repo = class_repo
        self._student_repo = student_repo
        self._grade_book_repo = grade_book_repo
        self._student_grade_repo = student_grade_repo
        self._topic_grade_repo = topic_grade_repo

    # Grade books

    def create_grade_book(self, class_id: str, term_id: str, created_by_id: str,
                          calculation_rules: Optional[Dict[str, Any]] = None) -> GradeBook:
        self._validate_rules(calculation_rules)
        try:
            self._require_class(class_id)
            grade_book = GradeBook(class_id=class_id, term_id=term_id, created_by_id=created_by_id,
                                   calculation_rules=calculation_rules)
            try:
                self._grade_book_repo.insert(grade_book)
            except DuplicateEntityError as e:
                raise DuplicateEntityError("Grade book already exists for this class and term",
                                           details={'class_id': class_id, 'term_id': term_id}) from e
            logger.info("Created grade book %s for class %s, term %s", grade_book.id, class_id, term_id)
            return grade_book
        except GradebookException:
            raise
        except Exception as e:
            raise InternalError("Failed to create grade book", cause=e) from e

    def get_grade_book(self, grade_book_id: str) -> GradeBook:
        """Get a grade book; a missing or deleted class hides its grade book."""
        grade_book = self._grade_book_repo.find_by_id(grade_book_id)
        if grade_book is None:
            raise ResourceNotFoundError("Grade book not found", details={'id': grade_book_id})
        self._require_class(grade_book.class_id)
        return grade_book

    def update_grade_book(self, grade_book_id: str, calculation_rules: Optional[Dict[str, Any]] = None,
                          updated_by_id: Optional[str] = None,
                          status: Optional[EntityStatus] = None) -> GradeBook:
        self._validate_rules(calculation_rules)
        grade_book = self._grade_book_repo.find_by_id(grade_book_id)
        if grade_book is None:
            raise ResourceNotFoundError("Grade book not found", details={'id': grade_book_id})
        changes: Dict[str, Any] = {}
        if calculation_rules is not None:
            changes['calculation_rules'] = calculation_rules
        if updated_by_id is not None:
            changes['updated_by_id'] = updated_by_id
        if status is not None:
            changes['status'] = EntityStatus(status)
        grade_book.update(**changes)
        return self._grade_book_repo.save(grade_book)

    def delete_grade_book(self, grade_book_id: str) -> GradeBook:
        grade_book = self._grade_book_repo.find_by_id(grade_book_id)
        if grade_book is None:
            raise ResourceNotFoundError("Grade book not found", details={'id': grade_book_id})
        self._grade_book_repo.delete_with_rollups(grade_book_id)
        logger.info("Deleted grade book %s", grade_book_id)
        return grade_book

    def list_grade_books(self, class_id: Optional[str] = None, term_id: Optional[str] = None,
                         search: Optional[str] = None, skip: int = 0,
                         take: int = DEFAULT_PAGE_SIZE) -> Page[GradeBook]:
        if skip < 0 or take < 1:
            raise ValidationError("skip must be >= 0 and take must be >= 1")
        return self._grade_book_repo.search(class_id=class_id, term_id=term_id, search=search,
                                            skip=skip, take=take)

    # Student grades

    def create_student_grade(self, grade_book_id: str, student_id: str,
                             assessment_grades: Optional[Dict[str, Any]] = None,
                             final_grade: Optional[float] = None, letter_grade: Optional[str] = None,
                             attendance: Optional[float] = None,
                             comments: Optional[str] = None) -> StudentGrade:
        if self._grade_book_repo.find_by_id(grade_book_id) is None:
            raise ResourceNotFoundError("Grade book not found", details={'id': grade_book_id})
        if self._student_repo.find_by_id(student_id) is None:
            raise ResourceNotFoundError("Student not found", details={'student_id': student_id})

        student_grade = StudentGrade(grade_book_id=grade_book_id, student_id=student_id,
                                     assessment_grades=assessment_grades, final_grade=final_grade,
                                     letter_grade=letter_grade, attendance=attendance, comments=comments)
        try:
            self._student_grade_repo.insert(student_grade)
        except DuplicateEntityError as e:
            raise DuplicateEntityError("Student grade already exists",
                                       details={'grade_book_id': grade_book_id, 'student_id': student_id}) from e
        return student_grade

    def update_student_grade(self, student_grade_id: str, **changes: Any) -> StudentGrade:
        unknown = set(changes) - set(STUDENT_GRADE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown student grade field(s): {', '.join(sorted(unknown))}")
        student_grade = self.get_student_grade(student_grade_id)
        if changes.get('status') is not None:
            changes['status'] = EntityStatus(changes['status'])
        elif 'status' in changes:
            del changes['status']
        student_grade.update(**changes)
        return self._student_grade_repo.save(student_grade)

    def get_student_grade(self, student_grade_id: str) -> StudentGrade:
        student_grade = self._student_grade_repo.find_by_id(student_grade_id)
        if student_grade is None:
            raise ResourceNotFoundError("Student grade not found", details={'id': student_grade_id})
        return student_grade

    def get_student_grade_for_class(self, student_id: str, class_id: str) -> StudentGrade:
        student_grade = self._student_grade_repo.find_for_class(student_id, class_id)
        if student_grade is None:
            raise ResourceNotFoundError("Student grade not found",
                                        details={'student_id': student_id, 'class_id': class_id})
        return student_grade

    def list_student_grades(self, grade_book_id: Optional[str] = None, student_id: Optional[str] = None,
                            status: Optional[EntityStatus] = None, skip: int = 0,
                            take: int = DEFAULT_PAGE_SIZE) -> Page[StudentGrade]:
        if skip < 0 or take < 1:
            raise ValidationError("skip must be >= 0 and take must be >= 1")
        return self._student_grade_repo.search(grade_book_id=grade_book_id, student_id=student_id,
                                               status=EntityStatus(status) if status else None,
                                               skip=skip, take=take)

    def list_topic_grades(self, student_grade_id: str) -> List[StudentTopicGrade]:
        self.get_student_grade(student_grade_id)
        return self._topic_grade_repo.find_by_student_grade(student_grade_id)

    def _require_class(self, class_id: str) -> SchoolClass:
        school_class = self._class_repo.find_by_id(class_id)
        if school_class is None or school_class.is_deleted:
            raise ResourceNotFoundError("Class not found", details={'class_id': class_id})
        return school_class

    @staticmethod
    def _validate_rules(calculation_rules: Optional[Dict[str, Any]]) -> None:
        try:
            GradeWeightingPolicy.from_rules(calculation_rules)
        except ConfigurationError as e:
            raise ValidationError(f"Invalid calculation rules: {e.message}") from e
