"""
Core interfaces and abstract base classes for the gradebook platform.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TypeVar, Generic


T = TypeVar('T')


class Repository(ABC, Generic[T]):
    """Abstract base class for repositories keyed by entity id."""

    @abstractmethod
    def insert(self, entity: T) -> T:
        """Insert a new entity; unique-constraint violations raise DuplicateEntityError."""
        pass

    @abstractmethod
    def save(self, entity: T) -> T:
        """Write back an existing entity."""
        pass

    @abstractmethod
    def find_by_id(self, entity_id: str) -> Optional[T]:
        """Find entity by ID."""
        pass

    @abstractmethod
    def find_all(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """Find all entities matching filters."""
        pass

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        """Delete an entity by ID."""
        pass


class WeightingPolicy(ABC):
    """Interface for the assessment/activity blend used in topic grades."""

    @abstractmethod
    def blend(self, assessment_score: float, activity_score: float) -> float:
        """Combine assessment and activity scores into a topic score."""
        pass

    @abstractmethod
    def letter_grade(self, score: float) -> str:
        """Map a 0-100 score to a letter grade."""
        pass
