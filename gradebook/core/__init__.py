"""
Core module containing the grading object model and base classes.
"""

from .entities import *
from .interfaces import *
from .exceptions import *
from .enums import *
from .grading_policy import GradeWeightingPolicy

__all__ = [
    # Entities
    "AbstractEntity",
    "Student",
    "SchoolClass",
    "Activity",
    "ActivityGrade",
    "GradeBook",
    "StudentGrade",
    "StudentTopicGrade",

    # Interfaces
    "Repository",
    "WeightingPolicy",
    "GradeWeightingPolicy",

    # Enums
    "EntityStatus",
    "SubmissionStatus",
    "AggregationOutcome",

    # Exceptions
    "GradebookException",
    "ResourceNotFoundError",
    "DuplicateEntityError",
    "ValidationError",
    "InternalError",
    "PersistenceError",
    "ConfigurationError",
]
