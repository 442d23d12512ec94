"""
Weighting policy shared by every topic-grade calculation.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from .entities import GradeBook
from .enums import DEFAULT_LETTER_SCALE, FAILING_LETTER
from .exceptions import ConfigurationError
from .interfaces import WeightingPolicy

DEFAULT_ASSESSMENT_WEIGHT = 0.7
DEFAULT_ACTIVITY_WEIGHT = 0.3

# calculation_rules keys that override the platform weights for one grade book
ASSESSMENT_WEIGHT_RULE = "assessmentWeight"
ACTIVITY_WEIGHT_RULE = "activityWeight"


@dataclass(frozen=True)
class GradeWeightingPolicy(WeightingPolicy):
    """Fixed-weight blend of assessment and activity scores."""
    assessment_weight: float = DEFAULT_ASSESSMENT_WEIGHT
    activity_weight: float = DEFAULT_ACTIVITY_WEIGHT
    letter_scale: Sequence[Tuple[float, str]] = DEFAULT_LETTER_SCALE

    def __post_init__(self):
        if self.assessment_weight < 0 or self.activity_weight < 0:
            raise ConfigurationError("Grade weights cannot be negative")
        if not math.isclose(self.assessment_weight + self.activity_weight, 1.0, abs_tol=1e-9):
            raise ConfigurationError(
                f"Grade weights must sum to 1, got {self.assessment_weight} + {self.activity_weight}"
            )

    def blend(self, assessment_score: float, activity_score: float) -> float:
        return assessment_score * self.assessment_weight + activity_score * self.activity_weight

    def letter_grade(self, score: float) -> str:
        for threshold, letter in self.letter_scale:
            if score >= threshold:
                return letter
        return FAILING_LETTER

    def for_grade_book(self, grade_book: Optional[GradeBook]) -> "GradeWeightingPolicy":
        """Return the policy a grade book's calculation rules select."""
        if grade_book is None:
            return self
        return self.from_rules(grade_book.calculation_rules, default=self)

    @classmethod
    def from_rules(cls, rules: Optional[Dict[str, Any]],
                   default: Optional["GradeWeightingPolicy"] = None) -> "GradeWeightingPolicy":
        fallback = default or cls()
        rules = rules or {}
        if ASSESSMENT_WEIGHT_RULE not in rules or ACTIVITY_WEIGHT_RULE not in rules:
            return fallback
        try:
            assessment = float(rules[ASSESSMENT_WEIGHT_RULE])
            activity = float(rules[ACTIVITY_WEIGHT_RULE])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid weights in calculation rules: {e}", cause=e) from e
        return cls(assessment_weight=assessment, activity_weight=activity,
                   letter_scale=fallback.letter_scale)
