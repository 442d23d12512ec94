"""
Grade aggregation: rolls activity grades into topic grades and blends them
with assessment scores on the student's grade book entry.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..core.entities import Activity, ActivityGrade, StudentGrade, StudentTopicGrade
from ..core.enums import AggregationOutcome
from ..core.exceptions import DuplicateEntityError, ResourceNotFoundError, ValidationError
from ..core.grading_policy import GradeWeightingPolicy
from ..persistence.repositories import (
    ActivityGradeRepository, ActivityRepository, ClassRepository, GradeBookRepository,
    StudentGradeRepository, StudentTopicGradeRepository
)

logger = logging.getLogger(__name__)

# Normalization base for activities without a declared maximum.
DEFAULT_MAX_SCORE = 100.0


@dataclass
class AggregationResult:
    """Result of a grade book recomputation."""
    outcome: AggregationOutcome
    student_id: str
    class_id: Optional[str] = None
    topic_ids: List[str] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def is_stale(self) -> bool:
        return self.outcome == AggregationOutcome.STALE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'outcome': self.outcome.value,
            'student_id': self.student_id,
            'class_id': self.class_id,
            'topic_ids': list(self.topic_ids),
            'reason': self.reason,
        }


def normalized_score(grade: ActivityGrade, activity: Activity) -> float:
    """Score as a percentage of the activity maximum; ungraded counts as 0."""
    if grade.score is None:
        return 0.0
    return grade.score / (activity.max_score or DEFAULT_MAX_SCORE) * 100


def topic_activity_scores(grades: Iterable[ActivityGrade],
                          activities: Dict[str, Activity]) -> Dict[str, float]:
    """Weighted average of normalized scores per topic.

    Grades whose activity has no topic (or is unknown) are left out.
    """
    totals: Dict[str, List[float]] = OrderedDict()
    for grade in grades:
        activity = activities.get(grade.activity_id)
        if activity is None or not activity.topic_id:
            continue
        weight = activity.weightage or 1
        bucket = totals.setdefault(activity.topic_id, [0.0, 0.0])
        bucket[0] += normalized_score(grade, activity) * weight
        bucket[1] += weight
    return {
        topic_id: (score_total / weight_total if weight_total > 0 else 0.0)
        for topic_id, (score_total, weight_total) in totals.items()
    }


class GradeAggregator:
    """Recomputes a student's topic and class grades after grade writes."""

    def __init__(self, class_repo: ClassRepository, activity_repo: ActivityRepository,
                 activity_grade_repo: ActivityGradeRepository, grade_book_repo: GradeBookRepository,
                 student_grade_repo: StudentGradeRepository,
                 topic_grade_repo: StudentTopicGradeRepository,
                 policy: Optional[GradeWeightingPolicy] = None):
        self._class_repo = class_repo
        self._activity_repo = activity_repo
        self._activity_grade_repo = activity_grade_repo
        self._grade_book_repo = grade_book_repo
        self._student_grade_repo = student_grade_repo
        self._topic_grade_repo = topic_grade_repo
        self._policy = policy or GradeWeightingPolicy()

    @property
    def policy(self) -> GradeWeightingPolicy:
        return self._policy

    def recompute_for_grade(self, grade: ActivityGrade) -> AggregationResult:
        """Recompute the grade book entry affected by one activity grade."""
        try:
            activity = self._activity_repo.find_by_id(grade.activity_id)
            if activity is None:
                raise ResourceNotFoundError("Activity not found", details={'activity_id': grade.activity_id})
        except Exception as e:
            return self._stale(grade.student_id, None, e)
        return self.recompute(grade.student_id, activity.class_id)

    def recompute(self, student_id: str, class_id: str) -> AggregationResult:
        """Best-effort recomputation; failures come back as a STALE result."""
        try:
            return self._recompute(student_id, class_id)
        except Exception as e:
            return self._stale(student_id, class_id, e)

    def record_assessment_score(self, student_grade_id: str, topic_id: str,
                                assessment_score: float) -> StudentTopicGrade:
        """Store a topic's assessment score and re-blend it with the activity score."""
        if assessment_score < 0 or assessment_score > 100:
            raise ValidationError("Assessment score must be between 0 and 100",
                                  details={'assessment_score': assessment_score})
        student_grade = self._student_grade_repo.find_by_id(student_grade_id)
        if student_grade is None:
            raise ResourceNotFoundError("Student grade not found", details={'id': student_grade_id})
        grade_book = self._grade_book_repo.find_by_id(student_grade.grade_book_id)
        policy = self._policy.for_grade_book(grade_book)

        topic_grade = self._upsert_topic_grade(student_grade_id, topic_id, policy,
                                               assessment_score=assessment_score)
        self._refresh_class_grade(student_grade, policy)
        self._student_grade_repo.save(student_grade)
        return topic_grade

    def _recompute(self, student_id: str, class_id: str) -> AggregationResult:
        school_class = self._class_repo.find_by_id(class_id)
        if school_class is None:
            raise ResourceNotFoundError("Class not found", details={'class_id': class_id})

        grade_book = self._grade_book_repo.find_active_for_class(class_id, school_class.term_id)
        if grade_book is None:
            return self._skipped(student_id, class_id, "no grade book for the class term")
        student_grade = self._student_grade_repo.find_by_book_and_student(grade_book.id, student_id)
        if student_grade is None:
            return self._skipped(student_id, class_id, "student has no grade book entry")

        grades = self._activity_grade_repo.find_for_student_in_class(student_id, class_id)
        activities = self._activity_repo.find_by_ids(g.activity_id for g in grades)
        policy = self._policy.for_grade_book(grade_book)

        scores = topic_activity_scores(grades, activities)
        for topic_id, activity_score in scores.items():
            self._upsert_topic_grade(student_grade.id, topic_id, policy, activity_score=activity_score)

        self._refresh_class_grade(student_grade, policy)
        student_grade.update(activity_grades=[g.snapshot() for g in grades])
        self._student_grade_repo.save(student_grade)

        logger.debug("Recomputed %d topic grade(s) for student %s in class %s",
                     len(scores), student_id, class_id)
        return AggregationResult(AggregationOutcome.UPDATED, student_id, class_id,
                                 topic_ids=list(scores))

    def _upsert_topic_grade(self, student_grade_id: str, topic_id: str, policy: GradeWeightingPolicy,
                            activity_score: Optional[float] = None,
                            assessment_score: Optional[float] = None) -> StudentTopicGrade:
        """Set whichever side is given and re-blend it with the stored other side."""
        topic_grade = self._topic_grade_repo.find_by_pair(student_grade_id, topic_id)
        if topic_grade is not None:
            self._blend(topic_grade, policy, activity_score, assessment_score)
            return self._topic_grade_repo.save(topic_grade)

        topic_grade = StudentTopicGrade(student_grade_id=student_grade_id, topic_id=topic_id)
        self._blend(topic_grade, policy, activity_score, assessment_score)
        try:
            return self._topic_grade_repo.insert(topic_grade)
        except DuplicateEntityError:
            # lost the insert race; apply our side to the winner's row
            existing = self._topic_grade_repo.find_by_pair(student_grade_id, topic_id)
            if existing is None:
                raise
            self._blend(existing, policy, activity_score, assessment_score)
            return self._topic_grade_repo.save(existing)

    @staticmethod
    def _blend(topic_grade: StudentTopicGrade, policy: GradeWeightingPolicy,
               activity_score: Optional[float], assessment_score: Optional[float]) -> None:
        if activity_score is None:
            activity_score = topic_grade.activity_score or 0.0
        if assessment_score is None:
            assessment_score = topic_grade.assessment_score or 0.0
        topic_grade.update(activity_score=activity_score, assessment_score=assessment_score,
                           score=policy.blend(assessment_score, activity_score))

    def _refresh_class_grade(self, student_grade: StudentGrade, policy: GradeWeightingPolicy) -> None:
        """Overall class grade is the mean of the student's topic scores."""
        topic_grades = self._topic_grade_repo.find_by_student_grade(student_grade.id)
        if not topic_grades:
            return
        final_grade = sum(t.score for t in topic_grades) / len(topic_grades)
        student_grade.update(final_grade=round(final_grade, 2),
                             letter_grade=policy.letter_grade(final_grade))

    def _skipped(self, student_id: str, class_id: str, reason: str) -> AggregationResult:
        logger.info("Skipping grade book update for student %s in class %s: %s",
                    student_id, class_id, reason)
        return AggregationResult(AggregationOutcome.SKIPPED, student_id, class_id, reason=reason)

    def _stale(self, student_id: str, class_id: Optional[str], error: Exception) -> AggregationResult:
        logger.exception("Failed to update student grade with activity grades (student=%s, class=%s)",
                         student_id, class_id)
        return AggregationResult(AggregationOutcome.STALE, student_id, class_id, reason=str(error))
