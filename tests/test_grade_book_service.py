import pytest

from gradebook.core.entities import SchoolClass
from gradebook.core.enums import EntityStatus
from gradebook.core.exceptions import DuplicateEntityError, ResourceNotFoundError, ValidationError

from .conftest import TEACHER_ID, TERM_ID


@pytest.fixture()
def service(platform):
    return platform.grade_book_service


def test_create_and_get_grade_book(service, seeded):
    grade_book = service.get_grade_book(seeded['grade_book'].id)

    assert grade_book.class_id == seeded['class'].id
    assert grade_book.term_id == TERM_ID
    assert grade_book.created_by_id == TEACHER_ID
    assert grade_book.status == EntityStatus.ACTIVE


def test_grade_book_is_unique_per_class_and_term(service, seeded):
    with pytest.raises(DuplicateEntityError, match="already exists"):
        service.create_grade_book(seeded['class'].id, TERM_ID, TEACHER_ID)

    other_term = service.create_grade_book(seeded['class'].id, "term-2024-2", TEACHER_ID)
    assert other_term.term_id == "term-2024-2"


def test_create_grade_book_for_missing_class(service, seeded):
    with pytest.raises(ResourceNotFoundError, match="Class not found"):
        service.create_grade_book("no-such-class", TERM_ID, TEACHER_ID)


def test_create_grade_book_rejects_bad_weights(service, seeded):
    with pytest.raises(ValidationError, match="Invalid calculation rules"):
        service.create_grade_book(seeded['class'].id, "term-x", TEACHER_ID,
                                  calculation_rules={'assessmentWeight': 0.9, 'activityWeight': 0.9})


def test_soft_deleted_class_hides_grade_book(service, seeded, repos):
    school_class = seeded['class']
    school_class.delete()
    repos['class'].save(school_class)

    with pytest.raises(ResourceNotFoundError, match="Class not found"):
        service.get_grade_book(seeded['grade_book'].id)


def test_update_grade_book(service, seeded):
    updated = service.update_grade_book(seeded['grade_book'].id,
                                        calculation_rules={'assessmentWeight': 0.6, 'activityWeight': 0.4},
                                        updated_by_id="teacher-2", status=EntityStatus.ARCHIVED)

    stored = service.get_grade_book(updated.id)
    assert stored.calculation_rules == {'assessmentWeight': 0.6, 'activityWeight': 0.4}
    assert stored.updated_by_id == "teacher-2"
    assert stored.status == EntityStatus.ARCHIVED


def test_update_missing_grade_book(service, seeded):
    with pytest.raises(ResourceNotFoundError):
        service.update_grade_book("missing", updated_by_id=TEACHER_ID)


def test_delete_grade_book_removes_rollups(platform, service, seeded, repos):
    student_grade = seeded['student_grades'][0]
    platform.activity_grade_service.create_activity_grade(seeded['quiz'].id, seeded['students'][0].id,
                                                          score=50)
    assert repos['topic_grade'].find_by_student_grade(student_grade.id)

    service.delete_grade_book(seeded['grade_book'].id)

    with pytest.raises(ResourceNotFoundError):
        service.get_grade_book(seeded['grade_book'].id)
    assert repos['student_grade'].find_by_id(student_grade.id) is None
    assert repos['topic_grade'].find_by_student_grade(student_grade.id) == []


def test_list_grade_books_filters_and_searches(service, seeded, repos):
    art = SchoolClass(name="Studio Art", term_id=TERM_ID)
    repos['class'].insert(art)
    service.create_grade_book(art.id, TERM_ID, TEACHER_ID)

    page = service.list_grade_books()
    assert page.total == 2
    assert page.items[0].class_id == art.id

    found = service.list_grade_books(search="math")
    assert [g.class_id for g in found.items] == [seeded['class'].id]

    by_class = service.list_grade_books(class_id=art.id, term_id=TERM_ID)
    assert by_class.total == 1
    assert by_class.page_count == 1


def test_student_grade_conflict(service, seeded):
    with pytest.raises(DuplicateEntityError):
        service.create_student_grade(seeded['grade_book'].id, seeded['students'][0].id)


def test_create_student_grade_requires_book_and_student(service, seeded):
    with pytest.raises(ResourceNotFoundError, match="Grade book not found"):
        service.create_student_grade("missing", seeded['students'][2].id)
    with pytest.raises(ResourceNotFoundError, match="Student not found"):
        service.create_student_grade(seeded['grade_book'].id, "missing")


def test_update_student_grade(service, seeded):
    student_grade = seeded['student_grades'][0]

    updated = service.update_student_grade(student_grade.id, attendance=95.5, comments="Steady progress",
                                           assessment_grades={'midterm': 81})

    stored = service.get_student_grade(updated.id)
    assert stored.attendance == 95.5
    assert stored.comments == "Steady progress"
    assert stored.assessment_grades == {'midterm': 81}

    with pytest.raises(ValidationError):
        service.update_student_grade(student_grade.id, grade_book_id="elsewhere")


def test_student_grade_lookups(service, seeded):
    student = seeded['students'][1]

    by_class = service.get_student_grade_for_class(student.id, seeded['class'].id)
    assert by_class.id == seeded['student_grades'][1].id

    with pytest.raises(ResourceNotFoundError):
        service.get_student_grade_for_class(seeded['students'][2].id, seeded['class'].id)

    page = service.list_student_grades(grade_book_id=seeded['grade_book'].id)
    assert page.total == 2
    assert service.list_student_grades(student_id=student.id).total == 1

    assert service.list_topic_grades(seeded['student_grades'][0].id) == []
    with pytest.raises(ResourceNotFoundError):
        service.list_topic_grades("missing")


def test_grade_book_search_matches_wildcards_literally(service, seeded, repos):
    discounted = SchoolClass(name="Math 100% Review", term_id=TERM_ID)
    repos['class'].insert(discounted)
    service.create_grade_book(discounted.id, TERM_ID, TEACHER_ID)

    assert [g.class_id for g in service.list_grade_books(search="%").items] == [discounted.id]
    assert service.list_grade_books(search="_").total == 0
    assert service.list_grade_books(search="math").total == 2
