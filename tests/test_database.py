import pytest

from gradebook.core.entities import ActivityGrade, Student
from gradebook.core.exceptions import ConfigurationError, DuplicateEntityError, ResourceNotFoundError
from gradebook.persistence import (
    ActivityGradeRepository, DatabaseFactory, SQLiteDatabase, StudentRepository, SCHEMA
)


@pytest.fixture()
def database(tmp_path):
    return SQLiteDatabase(str(tmp_path / "db.sqlite"))


def test_schema_is_created(database):
    for table in SCHEMA:
        assert database.table_exists(table)
    assert not database.table_exists("enrollments")


def test_unique_constraint_maps_to_duplicate(database):
    repo = ActivityGradeRepository(database)
    repo.insert(ActivityGrade("a1", "s1", score=5))

    with pytest.raises(DuplicateEntityError) as exc_info:
        repo.insert(ActivityGrade("a1", "s1", score=7))

    assert exc_info.value.error_code == "CONFLICT"
    assert repo.count({"activity_id": "a1"}) == 1


def test_round_trip_keeps_json_fields(database):
    repo = ActivityGradeRepository(database)
    grade = ActivityGrade("a1", "s1", content={'answer': 42}, attachments=["essay.pdf"])
    repo.insert(grade)

    loaded = repo.find_by_pair("a1", "s1")
    assert loaded.id == grade.id
    assert loaded.content == {'answer': 42}
    assert loaded.attachments == ["essay.pdf"]
    assert loaded.created_at == grade.created_at


def test_save_of_unknown_row(database):
    repo = StudentRepository(database)
    with pytest.raises(ResourceNotFoundError):
        repo.save(Student("Dan", "Brown", "dan@school.edu"))


def test_transaction_rolls_back_on_conflict(database):
    repo = StudentRepository(database)
    repo.insert(Student("Eve", "Stone", "eve@school.edu"))
    insert = "INSERT INTO students (id, first_name, last_name, email, status, created_at, updated_at) " \
             "VALUES (?, ?, ?, ?, 'active', '2024-01-01', '2024-01-01')"

    with pytest.raises(DuplicateEntityError):
        database.execute_transaction([
            (insert, ("s-new", "New", "Person", "new@school.edu")),
            (insert, ("s-dup", "Dup", "Person", "eve@school.edu")),
        ])

    assert repo.find_by_id("s-new") is None


def test_factory(tmp_path):
    database = DatabaseFactory.create_database("SQLite", database_path=str(tmp_path / "f.db"))
    assert isinstance(database, SQLiteDatabase)

    with pytest.raises(ConfigurationError):
        DatabaseFactory.create_database("oracle")
