"""
Services module containing the grading workflows.
"""

from .grade_aggregator import GradeAggregator, AggregationResult
from .activity_grade_service import ActivityGradeService, GradeWriteResult, BatchGradeEntry
from .grade_book_service import GradeBookService

__all__ = [
    "GradeAggregator",
    "AggregationResult",
    "ActivityGradeService",
    "GradeWriteResult",
    "BatchGradeEntry",
    "GradeBookService",
]
