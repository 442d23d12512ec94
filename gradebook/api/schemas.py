"""
Pydantic models for the grading API inputs.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.enums import EntityStatus, SubmissionStatus
from ..persistence.repositories import DEFAULT_PAGE_SIZE


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PaginationInput(StrictModel):
    skip: int = Field(0, ge=0)
    take: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=100)


class CreateActivityGradeInput(StrictModel):
    activity_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    score: Optional[float] = Field(None, ge=0)
    feedback: Optional[str] = None
    content: Optional[Any] = None
    attachments: Optional[List[Any]] = None
    status: Optional[SubmissionStatus] = None
    graded_by_id: Optional[str] = None


class UpdateActivityGradeInput(StrictModel):
    score: Optional[float] = Field(None, ge=0)
    feedback: Optional[str] = None
    content: Optional[Any] = None
    attachments: Optional[List[Any]] = None
    status: Optional[SubmissionStatus] = None
    graded_by_id: Optional[str] = None


class ActivityGradeFilters(PaginationInput):
    activity_id: Optional[str] = None
    student_id: Optional[str] = None
    status: Optional[SubmissionStatus] = None
    search: Optional[str] = None


class BatchGradeItem(StrictModel):
    student_id: str = Field(..., min_length=1)
    score: float = Field(..., ge=0)
    feedback: Optional[str] = None


class BatchGradeActivitiesInput(StrictModel):
    activity_id: str = Field(..., min_length=1)
    grades: List[BatchGradeItem] = Field(..., min_length=1)

    @field_validator("grades")
    @classmethod
    def unique_students(cls, grades: List[BatchGradeItem]) -> List[BatchGradeItem]:
        seen = set()
        for item in grades:
            if item.student_id in seen:
                raise ValueError(f"Student {item.student_id} appears more than once")
            seen.add(item.student_id)
        return grades


class CreateGradeBookInput(StrictModel):
    class_id: str = Field(..., min_length=1)
    term_id: str = Field(..., min_length=1)
    calculation_rules: Dict[str, Any] = Field(default_factory=dict)


class UpdateGradeBookInput(StrictModel):
    calculation_rules: Optional[Dict[str, Any]] = None
    status: Optional[EntityStatus] = None


class GradeBookFilters(PaginationInput):
    class_id: Optional[str] = None
    term_id: Optional[str] = None
    search: Optional[str] = None


class CreateStudentGradeInput(StrictModel):
    grade_book_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    assessment_grades: Optional[Dict[str, Any]] = None
    final_grade: Optional[float] = Field(None, ge=0, le=100)
    letter_grade: Optional[str] = Field(None, max_length=5)
    attendance: Optional[float] = Field(None, ge=0, le=100)
    comments: Optional[str] = None


class UpdateStudentGradeInput(StrictModel):
    assessment_grades: Optional[Dict[str, Any]] = None
    final_grade: Optional[float] = Field(None, ge=0, le=100)
    letter_grade: Optional[str] = Field(None, max_length=5)
    attendance: Optional[float] = Field(None, ge=0, le=100)
    comments: Optional[str] = None
    status: Optional[EntityStatus] = None


class StudentGradeFilters(PaginationInput):
    grade_book_id: Optional[str] = None
    student_id: Optional[str] = None
    status: Optional[EntityStatus] = None


class AssessmentScoreInput(StrictModel):
    topic_id: str = Field(..., min_length=1)
    assessment_score: float = Field(..., ge=0, le=100)
