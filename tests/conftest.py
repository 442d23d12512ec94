import pytest

from gradebook.core.entities import Activity, SchoolClass, Student
from gradebook.main import GradebookPlatform

TERM_ID = "term-2024-1"
TEACHER_ID = "teacher-1"


@pytest.fixture()
def platform(tmp_path, monkeypatch):
    """A platform backed by a throwaway SQLite file."""
    monkeypatch.chdir(tmp_path)
    for name in ("GRADEBOOK_DATABASE_TYPE", "GRADEBOOK_ASSESSMENT_WEIGHT", "GRADEBOOK_ACTIVITY_WEIGHT"):
        monkeypatch.delenv(name, raising=False)
    return GradebookPlatform({
        'database_type': 'sqlite',
        'database_config': {'database_path': str(tmp_path / "gradebook_test.db")},
        'log_level': 'WARNING',
    })


@pytest.fixture()
def repos(platform):
    return platform.repositories


@pytest.fixture()
def seeded(platform, repos):
    """One class with three students, a grade book and four activities.

    Students 0 and 1 have grade book entries; student 2 does not.
    """
    school_class = SchoolClass(name="Grade 8 Mathematics", term_id=TERM_ID)
    repos['class'].insert(school_class)

    students = [
        Student("Alice", "Johnson", "alice@school.edu"),
        Student("Bob", "Smith", "bob@school.edu"),
        Student("Carol", "Davis", "carol@school.edu"),
    ]
    for student in students:
        repos['student'].insert(student)

    quiz = Activity(school_class.id, "Algebra quiz", topic_id="T1", is_gradable=True,
                    max_score=100, weightage=1)
    homework = Activity(school_class.id, "Algebra homework", topic_id="T1", is_gradable=True,
                        max_score=50, weightage=2)
    reading = Activity(school_class.id, "Reading", topic_id="T1", is_gradable=False)
    essay = Activity(school_class.id, "Geometry essay", topic_id="T2", is_gradable=True, max_score=20)
    for activity in (quiz, homework, reading, essay):
        repos['activity'].insert(activity)

    grade_book = platform.grade_book_service.create_grade_book(school_class.id, TERM_ID, TEACHER_ID)
    student_grades = [
        platform.grade_book_service.create_student_grade(grade_book.id, student.id)
        for student in students[:2]
    ]

    return {
        'class': school_class,
        'students': students,
        'quiz': quiz,
        'homework': homework,
        'reading': reading,
        'essay': essay,
        'grade_book': grade_book,
        'student_grades': student_grades,
    }
