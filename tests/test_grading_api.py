import pytest

from gradebook.core.exceptions import DuplicateEntityError, ValidationError

from .conftest import TEACHER_ID


@pytest.fixture()
def api(platform):
    return platform.api


def test_create_returns_plain_dict(api, seeded):
    result = api.create_activity_grade(
        {'activity_id': seeded['quiz'].id, 'student_id': seeded['students'][0].id, 'score': 88},
        user_id=TEACHER_ID)

    assert result['score'] == 88
    assert result['status'] == "SUBMITTED"
    assert result['graded_by_id'] == TEACHER_ID
    assert result['created'] is True
    assert result['aggregation']['outcome'] == "updated"


def test_schema_errors_become_bad_request(api, seeded):
    with pytest.raises(ValidationError) as exc_info:
        api.create_activity_grade({'activity_id': seeded['quiz'].id, 'score': "lots"})

    error = exc_info.value
    assert error.error_code == "BAD_REQUEST"
    fields = {e['field'] for e in error.details['errors']}
    assert {"student_id", "score"} <= fields


def test_unknown_fields_are_rejected(api, seeded):
    with pytest.raises(ValidationError):
        api.update_activity_grade(seeded['quiz'].id, seeded['students'][0].id, {'grade': "A"})


def test_unknown_status_is_rejected(api, seeded):
    with pytest.raises(ValidationError):
        api.create_activity_grade({'activity_id': seeded['quiz'].id,
                                   'student_id': seeded['students'][0].id, 'status': "LOST"})


def test_update_only_touches_given_fields(api, seeded):
    quiz, student = seeded['quiz'], seeded['students'][0]
    api.create_activity_grade({'activity_id': quiz.id, 'student_id': student.id, 'score': 50,
                               'feedback': "ok"}, user_id=TEACHER_ID)

    result = api.update_activity_grade(quiz.id, student.id, {'status': "RETURNED"})

    assert result['status'] == "RETURNED"
    assert result['score'] == 50
    assert result['feedback'] == "ok"
    assert result['created'] is False


def test_batch_rejects_repeated_students(api, seeded):
    student_id = seeded['students'][0].id
    with pytest.raises(ValidationError):
        api.batch_grade_activities({'activity_id': seeded['quiz'].id, 'grades': [
            {'student_id': student_id, 'score': 1},
            {'student_id': student_id, 'score': 2},
        ]}, user_id=TEACHER_ID)


def test_batch_and_list(api, seeded):
    quiz = seeded['quiz']
    results = api.batch_grade_activities({'activity_id': quiz.id, 'grades': [
        {'student_id': s.id, 'score': 70 + i} for i, s in enumerate(seeded['students'])
    ]}, user_id=TEACHER_ID)
    assert [r['status'] for r in results] == ["GRADED"] * 3

    page = api.list_activity_grades({'activity_id': quiz.id, 'status': "GRADED", 'take': 2})
    assert page['total'] == 3
    assert page['page'] == 1
    assert page['page_count'] == 2
    assert page['page_info'] == {'has_next_page': True, 'has_previous_page': False}
    assert len(page['items']) == 2

    with pytest.raises(ValidationError):
        api.list_activity_grades({'skip': -5})


def test_grade_book_round_trip(api, seeded, repos):
    from gradebook.core.entities import SchoolClass

    science = SchoolClass(name="Science", term_id="term-2024-1")
    repos['class'].insert(science)
    book = api.create_grade_book({'class_id': science.id, 'term_id': science.term_id}, user_id=TEACHER_ID)
    assert book['created_by_id'] == TEACHER_ID

    with pytest.raises(DuplicateEntityError):
        api.create_grade_book({'class_id': science.id, 'term_id': science.term_id}, user_id=TEACHER_ID)

    updated = api.update_grade_book(book['id'], {'calculation_rules': {'assessmentWeight': 0.5,
                                                                       'activityWeight': 0.5}},
                                    user_id="teacher-2")
    assert updated['updated_by_id'] == "teacher-2"

    listing = api.list_grade_books({'search': "sci"})
    assert [b['id'] for b in listing['items']] == [book['id']]

    assert api.delete_grade_book(book['id'])['id'] == book['id']


def test_student_grade_endpoints(api, seeded):
    student_grade_id = seeded['student_grades'][0].id
    api.create_activity_grade({'activity_id': seeded['quiz'].id, 'student_id': seeded['students'][0].id,
                               'score': 60}, user_id=TEACHER_ID)

    topic = api.record_assessment_score(student_grade_id, {'topic_id': "T1", 'assessment_score': 80})
    assert topic['score'] == pytest.approx(74.0)

    with pytest.raises(ValidationError):
        api.record_assessment_score(student_grade_id, {'topic_id': "T1", 'assessment_score': 101})

    updated = api.update_student_grade(student_grade_id, {'comments': "Improving"})
    assert updated['comments'] == "Improving"
    assert updated['letter_grade'] == "C"

    assert api.get_student_grade_for_class(seeded['students'][0].id, seeded['class'].id)['id'] == student_grade_id
    assert [t['topic_id'] for t in api.list_topic_grades(student_grade_id)] == ["T1"]
    assert api.list_student_grades({'grade_book_id': seeded['grade_book'].id})['total'] == 2

    with pytest.raises(DuplicateEntityError):
        api.create_student_grade({'grade_book_id': seeded['grade_book'].id,
                                  'student_id': seeded['students'][0].id})
