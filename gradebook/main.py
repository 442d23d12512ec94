"""
Main entry point for the gradebook platform.
"""

import logging
from typing import Any, Dict, Optional

from .api import GradingAPI
from .config import load_config
from .core.grading_policy import GradeWeightingPolicy
from .persistence import DatabaseFactory
from .persistence.repositories import (
    ActivityGradeRepository, ActivityRepository, ClassRepository, GradeBookRepository,
    StudentGradeRepository, StudentRepository, StudentTopicGradeRepository
)
from .services import ActivityGradeService, GradeAggregator, GradeBookService

logger = logging.getLogger(__name__)


class GradebookPlatform:
    """Main platform class that wires storage, services and the API facade."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config = load_config(config)
        self._database = None
        self._repositories: Dict[str, Any] = {}
        self._policy = None
        self._aggregator = None
        self._activity_grade_service = None
        self._grade_book_service = None
        self._api = None

        self._initialize_platform()

    def _initialize_platform(self):
        """Initialize the platform with all services."""
        logging.basicConfig(
            level=getattr(logging, str(self._config['log_level']).upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        logger.info("Initializing gradebook platform...")

        db_type = self._config['database_type']
        self._database = DatabaseFactory.create_database(db_type, **self._config['database_config'])
        logger.info("Database initialized: %s", db_type)

        self._repositories = {
            'student': StudentRepository(self._database),
            'class': ClassRepository(self._database),
            'activity': ActivityRepository(self._database),
            'activity_grade': ActivityGradeRepository(self._database),
            'grade_book': GradeBookRepository(self._database),
            'student_grade': StudentGradeRepository(self._database),
            'topic_grade': StudentTopicGradeRepository(self._database),
        }
        logger.info("Repositories initialized")

        grading = self._config['grading']
        self._policy = GradeWeightingPolicy(assessment_weight=float(grading['assessment_weight']),
                                            activity_weight=float(grading['activity_weight']))
        self._aggregator = GradeAggregator(
            self._repositories['class'],
            self._repositories['activity'],
            self._repositories['activity_grade'],
            self._repositories['grade_book'],
            self._repositories['student_grade'],
            self._repositories['topic_grade'],
            policy=self._policy,
        )
        self._activity_grade_service = ActivityGradeService(
            self._repositories['activity'],
            self._repositories['student'],
            self._repositories['activity_grade'],
            self._aggregator,
        )
        self._grade_book_service = GradeBookService(
            self._repositories['class'],
            self._repositories['student'],
            self._repositories['grade_book'],
            self._repositories['student_grade'],
            self._repositories['topic_grade'],
        )
        logger.info("Services initialized (weights: assessment=%s, activity=%s)",
                    self._policy.assessment_weight, self._policy.activity_weight)

        self._api = GradingAPI(self._activity_grade_service, self._grade_book_service, self._aggregator)
        logger.info("Gradebook platform initialized successfully")

    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    @property
    def database(self):
        return self._database

    @property
    def repositories(self) -> Dict[str, Any]:
        return self._repositories

    @property
    def policy(self) -> GradeWeightingPolicy:
        return self._policy

    @property
    def aggregator(self) -> GradeAggregator:
        return self._aggregator

    @property
    def activity_grade_service(self) -> ActivityGradeService:
        return self._activity_grade_service

    @property
    def grade_book_service(self) -> GradeBookService:
        return self._grade_book_service

    @property
    def api(self) -> GradingAPI:
        return self._api


def create_platform(config: Optional[Dict[str, Any]] = None) -> GradebookPlatform:
    """Create a gradebook platform instance."""
    return GradebookPlatform(config)
