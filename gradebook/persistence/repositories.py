"""
Repository pattern implementations for data access.

Every repository maps one entity type onto one table. Table and column
names come from class constants; values always travel as query parameters.
"""

import json
import math
import threading
from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from ..core.entities import (
    AbstractEntity, Activity, ActivityGrade, GradeBook, SchoolClass, Student,
    StudentGrade, StudentTopicGrade
)
from ..core.enums import EntityStatus, SubmissionStatus
from ..core.exceptions import GradebookException, PersistenceError, ResourceNotFoundError
from ..core.interfaces import Repository
from .database import DatabaseManager

T = TypeVar('T', bound=AbstractEntity)

DEFAULT_PAGE_SIZE = 10


@dataclass
class Page(Generic[T]):
    """One page of a listing plus the paging flags callers render."""
    items: List[T]
    total: int
    skip: int = 0
    take: int = DEFAULT_PAGE_SIZE

    @property
    def has_next_page(self) -> bool:
        return self.skip + self.take < self.total

    @property
    def has_previous_page(self) -> bool:
        return self.skip > 0

    @property
    def page(self) -> int:
        return self.skip // self.take + 1 if self.take else 1

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.take) if self.take else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [item.to_dict() for item in self.items],
            'total': self.total,
            'page': self.page,
            'page_size': self.take,
            'page_count': self.page_count,
            'page_info': {
                'has_next_page': self.has_next_page,
                'has_previous_page': self.has_previous_page,
            },
        }


@dataclass
class Criteria:
    """WHERE fragments and their parameters, combined with AND."""
    clauses: List[str] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)

    def add(self, clause: str, *params: Any) -> "Criteria":
        self.clauses.append(clause)
        self.params.extend(params)
        return self

    def where(self) -> str:
        return f" WHERE {' AND '.join(self.clauses)}" if self.clauses else ""


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _dump(value: Any) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _load(value: Optional[str]) -> Any:
    return json.loads(value) if value else None


def like_pattern(search: str) -> str:
    """Substring pattern for use with LIKE ... ESCAPE '\\'; wildcards in the input match literally."""
    escaped = search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class BaseRepository(Repository[T], Generic[T]):
    """Base repository implementation with common functionality."""

    _table: str = ""
    _columns: Tuple[str, ...] = ()

    def __init__(self, database: DatabaseManager):
        self._database = database
        self._lock = threading.RLock()

    @property
    def entity_name(self) -> str:
        return self._table.rstrip("s").replace("_", " ")

    def insert(self, entity: T) -> T:
        """Insert a new entity."""
        row = self._entity_to_row(entity)
        placeholders = ", ".join("?" for _ in self._columns)
        query = f"INSERT INTO {self._table} ({', '.join(self._columns)}) VALUES ({placeholders})"
        with self._lock:
            self._run(lambda: self._database.execute_update(query, [row[c] for c in self._columns]),
                      f"insert {self.entity_name}")
        return entity

    def save(self, entity: T) -> T:
        """Write back an existing entity."""
        row = self._entity_to_row(entity)
        columns = [c for c in self._columns if c != "id"]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        query = f"UPDATE {self._table} SET {assignments} WHERE id = ?"
        with self._lock:
            affected = self._run(
                lambda: self._database.execute_update(query, [row[c] for c in columns] + [entity.id]),
                f"save {self.entity_name}")
        if affected == 0:
            raise ResourceNotFoundError(f"{self.entity_name.capitalize()} not found",
                                        details={'id': entity.id})
        return entity

    def find_by_id(self, entity_id: str) -> Optional[T]:
        """Find entity by ID."""
        return self.find_one({"id": entity_id})

    def find_one(self, filters: Dict[str, Any]) -> Optional[T]:
        results = self.find_all(filters)
        return results[0] if results else None

    def find_all(self, filters: Optional[Dict[str, Any]] = None) -> List[T]:
        """Find all entities whose columns equal the given filter values."""
        criteria = self._equality_criteria(filters)
        query = f"SELECT * FROM {self._table}{criteria.where()} ORDER BY created_at DESC, id"
        return self.query(query, criteria.params)

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count entities matching filters."""
        criteria = self._equality_criteria(filters)
        query = f"SELECT COUNT(*) AS count FROM {self._table}{criteria.where()}"
        rows = self._run(lambda: self._database.execute_query(query, criteria.params),
                         f"count {self.entity_name}s")
        return int(rows[0]["count"]) if rows else 0

    def delete(self, entity_id: str) -> bool:
        """Delete an entity by ID."""
        query = f"DELETE FROM {self._table} WHERE id = ?"
        with self._lock:
            affected = self._run(lambda: self._database.execute_update(query, (entity_id,)),
                                 f"delete {self.entity_name}")
        return affected > 0

    def query(self, query: str, params: Sequence[Any] = ()) -> List[T]:
        rows = self._run(lambda: self._database.execute_query(query, params),
                         f"query {self.entity_name}s")
        try:
            return [self._entity_from_row(row) for row in rows]
        except (KeyError, ValueError, TypeError) as e:
            raise PersistenceError(f"Corrupt {self.entity_name} row: {e}", cause=e) from e

    def page(self, criteria: Criteria, order_by: str, skip: int = 0,
             take: int = DEFAULT_PAGE_SIZE, joins: str = "") -> Page[T]:
        """Return one page of rows matching criteria, with the total count."""
        alias = "t"
        where = criteria.where()
        count_query = f"SELECT COUNT(*) AS count FROM {self._table} {alias}{joins}{where}"
        rows = self._run(lambda: self._database.execute_query(count_query, criteria.params),
                         f"count {self.entity_name}s")
        total = int(rows[0]["count"]) if rows else 0
        query = (f"SELECT {alias}.* FROM {self._table} {alias}{joins}{where} "
                 f"ORDER BY {order_by} LIMIT ? OFFSET ?")
        items = self.query(query, list(criteria.params) + [take, skip])
        return Page(items=items, total=total, skip=skip, take=take)

    def _equality_criteria(self, filters: Optional[Dict[str, Any]]) -> Criteria:
        criteria = Criteria()
        for key, value in (filters or {}).items():
            if key not in self._columns:
                raise PersistenceError(f"Unknown {self.entity_name} column: {key}")
            if isinstance(value, EntityStatus):
                value = value.value
            criteria.add(f"{key} = ?", value)
        return criteria

    def _run(self, operation, description: str):
        try:
            return operation()
        except GradebookException:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to {description}: {str(e)}", cause=e) from e

    @staticmethod
    def _base_row(entity: AbstractEntity) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "status": entity.status.value,
            "created_at": _iso(entity.created_at),
            "updated_at": _iso(entity.updated_at),
        }

    @staticmethod
    def _base_kwargs(row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "entity_id": row["id"],
            "status": EntityStatus(row["status"]),
            "created_at": _dt(row["created_at"]),
            "updated_at": _dt(row["updated_at"]),
        }

    @abstractmethod
    def _entity_to_row(self, entity: T) -> Dict[str, Any]:
        """Convert entity instance to a column dictionary."""
        pass

    @abstractmethod
    def _entity_from_row(self, row: Dict[str, Any]) -> T:
        """Convert a column dictionary to an entity instance."""
        pass


class StudentRepository(BaseRepository[Student]):
    """Repository for Student entities."""

    _table = "students"
    _columns = ("id", "first_name", "last_name", "email", "status", "created_at", "updated_at")

    def _entity_to_row(self, entity: Student) -> Dict[str, Any]:
        row = self._base_row(entity)
        row.update(first_name=entity.first_name, last_name=entity.last_name, email=entity.email)
        return row

    def _entity_from_row(self, row: Dict[str, Any]) -> Student:
        return Student(first_name=row["first_name"], last_name=row["last_name"],
                       email=row["email"], **self._base_kwargs(row))

    def find_by_ids(self, student_ids: Iterable[str]) -> Dict[str, Student]:
        ids = list(dict.fromkeys(student_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        students = self.query(f"SELECT * FROM students WHERE id IN ({placeholders})", ids)
        return {s.id: s for s in students}


class ClassRepository(BaseRepository[SchoolClass]):
    """Repository for SchoolClass entities."""

    _table = "classes"
    _columns = ("id", "name", "term_id", "status", "created_at", "updated_at")

    @property
    def entity_name(self) -> str:
        return "class"

    def _entity_to_row(self, entity: SchoolClass) -> Dict[str, Any]:
        row = self._base_row(entity)
        row.update(name=entity.name, term_id=entity.term_id)
        return row

    def _entity_from_row(self, row: Dict[str, Any]) -> SchoolClass:
        return SchoolClass(name=row["name"], term_id=row["term_id"], **self._base_kwargs(row))


class ActivityRepository(BaseRepository[Activity]):
    """Repository for Activity entities."""

    _table = "activities"
    _columns = ("id", "class_id", "topic_id", "title", "is_gradable", "max_score", "weightage",
                "status", "created_at", "updated_at")

    @property
    def entity_name(self) -> str:
        return "activity"

    def _entity_to_row(self, entity: Activity) -> Dict[str, Any]:
        row = self._base_row(entity)
        row.update(class_id=entity.class_id, topic_id=entity.topic_id, title=entity.title,
                   is_gradable=int(entity.is_gradable), max_score=entity.max_score,
                   weightage=entity.weightage)
        return row

    def _entity_from_row(self, row: Dict[str, Any]) -> Activity:
        return Activity(class_id=row["class_id"], title=row["title"], topic_id=row["topic_id"],
                        is_gradable=bool(row["is_gradable"]), max_score=row["max_score"],
                        weightage=row["weightage"], **self._base_kwargs(row))

    def find_by_ids(self, activity_ids: Iterable[str]) -> Dict[str, Activity]:
        ids = list(dict.fromkeys(activity_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        activities = self.query(f"SELECT * FROM activities WHERE id IN ({placeholders})", ids)
        return {a.id: a for a in activities}


class ActivityGradeRepository(BaseRepository[ActivityGrade]):
    """Repository for ActivityGrade entities, unique per (activity, student)."""

    _table = "activity_grades"
    _columns = ("id", "activity_id", "student_id", "score", "submission_status", "feedback",
                "content", "attachments", "graded_by_id", "submitted_at", "graded_at",
                "status", "created_at", "updated_at")

    def _entity_to_row(self, entity: ActivityGrade) -> Dict[str, Any]:
        row = self._base_row(entity)
        row.update(
            activity_id=entity.activity_id,
            student_id=entity.student_id,
            score=entity.score,
            submission_status=entity.submission_status.value,
            feedback=entity.feedback,
            content=_dump(entity.content),
            attachments=_dump(entity.attachments),
            graded_by_id=entity.graded_by_id,
            submitted_at=_iso(entity.submitted_at),
            graded_at=_iso(entity.graded_at),
        )
        return row

    def _entity_from_row(self, row: Dict[str, Any]) -> ActivityGrade:
        return ActivityGrade(
            activity_id=row["activity_id"],
            student_id=row["student_id"],
            score=row["score"],
            submission_status=SubmissionStatus(row["submission_status"]),
            feedback=row["feedback"],
            content=_load(row["content"]),
            attachments=_load(row["attachments"]),
            graded_by_id=row["graded_by_id"],
            submitted_at=_dt(row["submitted_at"]),
            graded_at=_dt(row["graded_at"]),
            **self._base_kwargs(row),
        )

    def find_by_pair(self, activity_id: str, student_id: str) -> Optional[ActivityGrade]:
        return self.find_one({"activity_id": activity_id, "student_id": student_id})

    def find_by_activity(self, activity_id: str, student_ids: Optional[Iterable[str]] = None) -> Dict[str, ActivityGrade]:
        """Grades of one activity keyed by student id."""
        criteria = Criteria().add("activity_id = ?", activity_id)
        if student_ids is not None:
            ids = list(dict.fromkeys(student_ids))
            if not ids:
                return {}
            criteria.add(f"student_id IN ({', '.join('?' for _ in ids)})", *ids)
        grades = self.query(f"SELECT * FROM activity_grades{criteria.where()}", criteria.params)
        return {g.student_id: g for g in grades}

    def find_for_student_in_class(self, student_id: str, class_id: str) -> List[ActivityGrade]:
        """All of a student's grades whose activity belongs to the class."""
        query = (
            "SELECT g.* FROM activity_grades g "
            "JOIN activities a ON g.activity_id = a.id "
            "WHERE g.student_id = ? AND a.class_id = ? "
            "ORDER BY g.submitted_at, g.id"
        )
        return self.query(query, (student_id, class_id))

    def search(self, activity_id: Optional[str] = None, student_id: Optional[str] = None,
               submission_status: Optional[SubmissionStatus] = None, search: Optional[str] = None,
               skip: int = 0, take: int = DEFAULT_PAGE_SIZE) -> Page[ActivityGrade]:
        criteria = Criteria()
        if activity_id:
            criteria.add("t.activity_id = ?", activity_id)
        if student_id:
            criteria.add("t.student_id = ?", student_id)
        if submission_status:
            criteria.add("t.submission_status = ?", submission_status.value)
        if search:
            pattern = like_pattern(search)
            criteria.add("(LOWER(t.id) LIKE ? ESCAPE '\\' OR LOWER(COALESCE(t.feedback, '')) LIKE ? ESCAPE '\\')",
                         pattern, pattern)
        return self.page(criteria, "t.updated_at DESC, t.id", skip=skip, take=take)


class GradeBookRepository(BaseRepository[GradeBook]):
    """Repository for GradeBook entities, unique per (class, term)."""

    _table = "grade_books"
    _columns = ("id", "class_id", "term_id", "calculation_rules", "created_by_id", "updated_by_id",
                "status", "created_at", "updated_at")

    def _entity_to_row(self, entity: GradeBook) -> Dict[str, Any]:
        row = self._base_row(entity)
        row.update(class_id=entity.class_id, term_id=entity.term_id,
                   calculation_rules=json.dumps(entity.calculation_rules),
                   created_by_id=entity.created_by_id, updated_by_id=entity.updated_by_id)
        return row

    def _entity_from_row(self, row: Dict[str, Any]) -> GradeBook:
        return GradeBook(class_id=row["class_id"], term_id=row["term_id"],
                         created_by_id=row["created_by_id"],
                         calculation_rules=_load(row["calculation_rules"]) or {},
                         updated_by_id=row["updated_by_id"], **self._base_kwargs(row))

    def find_active_for_class(self, class_id: str, term_id: str) -> Optional[GradeBook]:
        return self.find_one({"class_id": class_id, "term_id": term_id,
                              "status": EntityStatus.ACTIVE})

    def search(self, class_id: Optional[str] = None, term_id: Optional[str] = None,
               search: Optional[str] = None, skip: int = 0,
               take: int = DEFAULT_PAGE_SIZE) -> Page[GradeBook]:
        criteria = Criteria()
        joins = ""
        if class_id:
            criteria.add("t.class_id = ?", class_id)
        if term_id:
            criteria.add("t.term_id = ?", term_id)
        if search:
            joins = " JOIN classes c ON t.class_id = c.id"
            criteria.add("LOWER(c.name) LIKE ? ESCAPE '\\'", like_pattern(search))
        return self.page(criteria, "t.created_at DESC, t.id", skip=skip, take=take, joins=joins)

    def delete_with_rollups(self, grade_book_id: str) -> None:
        """Remove a grade book together with its student and topic grades."""
        with self._lock:
            self._run(lambda: self._database.execute_transaction([
                ("DELETE FROM student_topic_grades WHERE student_grade_id IN "
                 "(SELECT id FROM student_grades WHERE grade_book_id = ?)", (grade_book_id,)),
                ("DELETE FROM student_grades WHERE grade_book_id = ?", (grade_book_id,)),
                ("DELETE FROM grade_books WHERE id = ?", (grade_book_id,)),
            ]), "delete grade book")


class StudentGradeRepository(BaseRepository[StudentGrade]):
    """Repository for StudentGrade entities, unique per (grade book, student)."""

    _table = "student_grades"
    _columns = ("id", "grade_book_id", "student_id", "assessment_grades", "activity_grades",
                "final_grade", "letter_grade", "attendance", "comments",
                "status", "created_at", "updated_at")

    def _entity_to_row(self, entity: StudentGrade) -> Dict[str, Any]:
        row = self._base_row(entity)
        row.update(grade_book_id=entity.grade_book_id, student_id=entity.student_id,
                   assessment_grades=json.dumps(entity.assessment_grades),
                   activity_grades=json.dumps(entity.activity_grades),
                   final_grade=entity.final_grade, letter_grade=entity.letter_grade,
                   attendance=entity.attendance, comments=entity.comments)
        return row

    def _entity_from_row(self, row: Dict[str, Any]) -> StudentGrade:
        return StudentGrade(grade_book_id=row["grade_book_id"], student_id=row["student_id"],
                            assessment_grades=_load(row["assessment_grades"]) or {},
                            activity_grades=_load(row["activity_grades"]) or [],
                            final_grade=row["final_grade"], letter_grade=row["letter_grade"],
                            attendance=row["attendance"], comments=row["comments"],
                            **self._base_kwargs(row))

    def find_by_book_and_student(self, grade_book_id: str, student_id: str) -> Optional[StudentGrade]:
        return self.find_one({"grade_book_id": grade_book_id, "student_id": student_id})

    def find_for_class(self, student_id: str, class_id: str) -> Optional[StudentGrade]:
        query = (
            "SELECT sg.* FROM student_grades sg "
            "JOIN grade_books gb ON sg.grade_book_id = gb.id "
            "WHERE sg.student_id = ? AND gb.class_id = ? "
            "ORDER BY gb.created_at DESC LIMIT 1"
        )
        results = self.query(query, (student_id, class_id))
        return results[0] if results else None

    def search(self, grade_book_id: Optional[str] = None, student_id: Optional[str] = None,
               status: Optional[EntityStatus] = None, skip: int = 0,
               take: int = DEFAULT_PAGE_SIZE) -> Page[StudentGrade]:
        criteria = Criteria()
        if grade_book_id:
            criteria.add("t.grade_book_id = ?", grade_book_id)
        if student_id:
            criteria.add("t.student_id = ?", student_id)
        if status:
            criteria.add("t.status = ?", status.value)
        return self.page(criteria, "t.updated_at DESC, t.id", skip=skip, take=take)


class StudentTopicGradeRepository(BaseRepository[StudentTopicGrade]):
    """Repository for StudentTopicGrade entities, unique per (student grade, topic)."""

    _table = "student_topic_grades"
    _columns = ("id", "student_grade_id", "topic_id", "activity_score", "assessment_score", "score",
                "status", "created_at", "updated_at")

    def _entity_to_row(self, entity: StudentTopicGrade) -> Dict[str, Any]:
        row = self._base_row(entity)
        row.update(student_grade_id=entity.student_grade_id, topic_id=entity.topic_id,
                   activity_score=entity.activity_score, assessment_score=entity.assessment_score,
                   score=entity.score)
        return row

    def _entity_from_row(self, row: Dict[str, Any]) -> StudentTopicGrade:
        return StudentTopicGrade(student_grade_id=row["student_grade_id"], topic_id=row["topic_id"],
                                 activity_score=row["activity_score"],
                                 assessment_score=row["assessment_score"], score=row["score"],
                                 **self._base_kwargs(row))

    def find_by_pair(self, student_grade_id: str, topic_id: str) -> Optional[StudentTopicGrade]:
        return self.find_one({"student_grade_id": student_grade_id, "topic_id": topic_id})

    def find_by_student_grade(self, student_grade_id: str) -> List[StudentTopicGrade]:
        return self.query("SELECT * FROM student_topic_grades WHERE student_grade_id = ? ORDER BY topic_id",
                          (student_grade_id,))
