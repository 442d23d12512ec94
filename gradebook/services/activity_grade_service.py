"""
Activity grading service: one grade record per (activity, student) pair.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..core.entities import Activity, ActivityGrade, utc_now
from ..core.enums import SubmissionStatus
from ..core.exceptions import (
    DuplicateEntityError, GradebookException, InternalError, ResourceNotFoundError, ValidationError
)
from ..persistence.repositories import (
    DEFAULT_PAGE_SIZE, ActivityGradeRepository, ActivityRepository, Page, StudentRepository
)
from .grade_aggregator import AggregationResult, GradeAggregator

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("score", "feedback", "content", "attachments", "status", "graded_by_id")


def parse_submission_status(value: Any) -> Optional[SubmissionStatus]:
    """Accept an enum member or its string value; reject anything else as BAD_REQUEST."""
    if value is None or isinstance(value, SubmissionStatus):
        return value
    try:
        return SubmissionStatus(value)
    except ValueError as e:
        raise ValidationError(f"Invalid submission status: {value!r}",
                              details={'status': value}) from e


@dataclass
class GradeWriteResult:
    """A stored grade plus what happened to the grade book afterwards."""
    grade: ActivityGrade
    created: bool
    aggregation: AggregationResult

    def to_dict(self) -> Dict[str, Any]:
        result = self.grade.to_dict()
        result['created'] = self.created
        result['aggregation'] = self.aggregation.to_dict()
        return result


@dataclass
class BatchGradeEntry:
    """One student's score in a batch grading request."""
    student_id: str
    score: float
    feedback: Optional[str] = None


class ActivityGradeService:
    """Service for creating, updating and listing activity grades."""

    def __init__(self, activity_repo: ActivityRepository, student_repo: StudentRepository,
                 activity_grade_repo: ActivityGradeRepository, aggregator: GradeAggregator):
        self._activity_repo = activity_repo
        self._student_repo = student_repo
        self._activity_grade_repo = activity_grade_repo
        self._aggregator = aggregator

    def create_activity_grade(self, activity_id: str, student_id: str, score: Optional[float] = None,
                              feedback: Optional[str] = None, content: Any = None, attachments: Any = None,
                              status: Optional[SubmissionStatus] = None,
                              graded_by_id: Optional[str] = None) -> GradeWriteResult:
        """Create the grade for a pair; the unique constraint decides conflicts."""
        status = parse_submission_status(status)
        try:
            activity = self._require_activity(activity_id)
            if self._student_repo.find_by_id(student_id) is None:
                raise ResourceNotFoundError("Student not found", details={'student_id': student_id})
            if score is not None:
                activity.validate_score(score)

            grade = ActivityGrade(
                activity_id=activity_id,
                student_id=student_id,
                score=score,
                submission_status=status or SubmissionStatus.SUBMITTED,
                feedback=feedback,
                content=content,
                attachments=attachments,
                graded_by_id=graded_by_id,
                graded_at=utc_now() if score is not None else None,
            )
            try:
                self._activity_grade_repo.insert(grade)
            except DuplicateEntityError as e:
                raise DuplicateEntityError("Activity grade already exists for this student",
                                           details={'activity_id': activity_id, 'student_id': student_id}) from e

            logger.info("Created activity grade %s (activity=%s, student=%s)", grade.id, activity_id, student_id)
            return GradeWriteResult(grade, True, self._aggregator.recompute(student_id, activity.class_id))
        except GradebookException:
            raise
        except Exception as e:
            raise InternalError("Failed to create activity grade", cause=e) from e

    def get_activity_grade(self, activity_id: str, student_id: str) -> ActivityGrade:
        """Get an activity grade by activity ID and student ID."""
        try:
            grade = self._activity_grade_repo.find_by_pair(activity_id, student_id)
        except GradebookException:
            raise
        except Exception as e:
            raise InternalError("Failed to get activity grade", cause=e) from e
        if grade is None:
            raise ResourceNotFoundError("Activity grade not found",
                                        details={'activity_id': activity_id, 'student_id': student_id})
        return grade

    def list_activity_grades(self, activity_id: Optional[str] = None, student_id: Optional[str] = None,
                             status: Optional[SubmissionStatus] = None, search: Optional[str] = None,
                             skip: int = 0, take: int = DEFAULT_PAGE_SIZE) -> Page[ActivityGrade]:
        """List activity grades with pagination and filtering."""
        if skip < 0 or take < 1:
            raise ValidationError("skip must be >= 0 and take must be >= 1")
        status = parse_submission_status(status)
        try:
            return self._activity_grade_repo.search(activity_id=activity_id, student_id=student_id,
                                                    submission_status=status, search=search,
                                                    skip=skip, take=take)
        except GradebookException:
            raise
        except Exception as e:
            raise InternalError("Failed to list activity grades", cause=e) from e

    def update_activity_grade(self, activity_id: str, student_id: str, **changes: Any) -> GradeWriteResult:
        """Apply a partial update; unchanged fields are not rewritten."""
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown activity grade field(s): {', '.join(sorted(unknown))}")
        try:
            grade = self.get_activity_grade(activity_id, student_id)
            if "score" in changes:
                activity = self._require_activity(activity_id)
                if changes["score"] is not None:
                    activity.validate_score(changes["score"])

            diff = self._diff(grade, changes)
            if diff:
                grade.update(**diff)
                self._activity_grade_repo.save(grade)
                logger.info("Updated activity grade %s fields: %s", grade.id, ", ".join(sorted(diff)))

            return GradeWriteResult(grade, False, self._aggregator.recompute_for_grade(grade))
        except GradebookException:
            raise
        except Exception as e:
            raise InternalError("Failed to update activity grade", cause=e) from e

    def batch_grade_activities(self, activity_id: str, grades: Sequence[BatchGradeEntry],
                               graded_by_id: str) -> List[GradeWriteResult]:
        """Grade many students for one activity.

        Every entry is validated before the first write. Writes then run
        one student at a time without a surrounding transaction.
        """
        try:
            activity = self._require_activity(activity_id)
            if not activity.is_gradable:
                raise ValidationError("Cannot grade a non-gradable activity",
                                      details={'activity_id': activity_id})
            for entry in grades:
                activity.validate_score(entry.score, student_id=entry.student_id)

            student_ids = [entry.student_id for entry in grades]
            known = self._student_repo.find_by_ids(student_ids)
            for sid in student_ids:
                if sid not in known:
                    raise ResourceNotFoundError(f"Student {sid} not found", details={'student_id': sid})

            existing = self._activity_grade_repo.find_by_activity(activity_id, student_ids)
            results = []
            for entry in grades:
                grade, created = self._upsert_graded(activity, entry, graded_by_id, existing.get(entry.student_id))
                existing[entry.student_id] = grade
                results.append(GradeWriteResult(grade, created,
                                                self._aggregator.recompute(entry.student_id, activity.class_id)))

            logger.info("Batch graded %d student(s) for activity %s (%d created)",
                        len(results), activity_id, sum(1 for r in results if r.created))
            return results
        except GradebookException:
            raise
        except Exception as e:
            raise InternalError("Failed to batch grade activities", cause=e) from e

    def _upsert_graded(self, activity: Activity, entry: BatchGradeEntry, graded_by_id: str,
                       current: Optional[ActivityGrade]):
        fields = dict(score=entry.score, feedback=entry.feedback,
                      submission_status=SubmissionStatus.GRADED,
                      graded_at=utc_now(), graded_by_id=graded_by_id)
        if current is None:
            grade = ActivityGrade(activity_id=activity.id, student_id=entry.student_id, **fields)
            try:
                return self._activity_grade_repo.insert(grade), True
            except DuplicateEntityError:
                current = self._activity_grade_repo.find_by_pair(activity.id, entry.student_id)
                if current is None:
                    raise
        current.update(**fields)
        return self._activity_grade_repo.save(current), False

    def _require_activity(self, activity_id: str) -> Activity:
        activity = self._activity_repo.find_by_id(activity_id)
        if activity is None:
            raise ResourceNotFoundError("Activity not found", details={'activity_id': activity_id})
        return activity

    @staticmethod
    def _diff(grade: ActivityGrade, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Fields whose supplied value differs from what is stored."""
        current = {
            "score": grade.score,
            "feedback": grade.feedback,
            "content": grade.content,
            "attachments": grade.attachments,
            "status": grade.submission_status,
            "graded_by_id": grade.graded_by_id,
        }
        diff = {}
        for key, value in changes.items():
            if key == "status":
                if value is None:
                    continue
                value = parse_submission_status(value)
            if current[key] != value:
                diff["submission_status" if key == "status" else key] = value
        score_changed = "score" in diff
        if score_changed and diff["score"] is None:
            diff["graded_at"] = None
        elif changes.get("score") is not None and (score_changed or grade.graded_at is None):
            diff["graded_at"] = utc_now()
        return diff
