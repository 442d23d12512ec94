"""
Persistence module for data storage.
"""

from .database import DatabaseManager, SQLiteDatabase, PostgreSQLDatabase, DatabaseFactory
from .repositories import (
    Page, StudentRepository, ClassRepository, ActivityRepository, ActivityGradeRepository,
    GradeBookRepository, StudentGradeRepository, StudentTopicGradeRepository
)
from .schema import SCHEMA

__all__ = [
    "DatabaseManager",
    "SQLiteDatabase",
    "PostgreSQLDatabase",
    "DatabaseFactory",
    "Page",
    "StudentRepository",
    "ClassRepository",
    "ActivityRepository",
    "ActivityGradeRepository",
    "GradeBookRepository",
    "StudentGradeRepository",
    "StudentTopicGradeRepository",
    "SCHEMA",
]
