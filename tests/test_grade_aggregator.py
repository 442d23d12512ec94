import logging

import pytest

from gradebook.core.entities import Activity, ActivityGrade, SchoolClass, StudentTopicGrade
from gradebook.core.enums import AggregationOutcome
from gradebook.core.exceptions import ResourceNotFoundError, ValidationError
from gradebook.services.grade_aggregator import topic_activity_scores

from .conftest import TEACHER_ID, TERM_ID


def _grade(platform, seeded, activity_key, student_index, score):
    return platform.activity_grade_service.create_activity_grade(
        seeded[activity_key].id, seeded['students'][student_index].id, score=score)


def _topic(platform, student_grade_id, topic_id):
    return platform.repositories['topic_grade'].find_by_pair(student_grade_id, topic_id)


def test_topic_score_is_weighted_mean_of_normalized_scores(platform, seeded):
    _grade(platform, seeded, 'quiz', 0, 90)
    result = _grade(platform, seeded, 'homework', 0, 22.5)

    assert result.aggregation.outcome == AggregationOutcome.UPDATED
    assert result.aggregation.topic_ids == ["T1"]
    topic = _topic(platform, seeded['student_grades'][0].id, "T1")
    assert topic.activity_score == pytest.approx(60.0)
    assert topic.assessment_score == 0
    assert topic.score == pytest.approx(18.0)


def test_assessment_score_blends_with_activity_score(platform, seeded):
    student_grade = seeded['student_grades'][0]
    _grade(platform, seeded, 'quiz', 0, 90)
    _grade(platform, seeded, 'homework', 0, 22.5)

    topic = platform.aggregator.record_assessment_score(student_grade.id, "T1", 80)

    assert topic.score == pytest.approx(74.0)
    stored = platform.grade_book_service.get_student_grade(student_grade.id)
    assert stored.final_grade == pytest.approx(74.0)
    assert stored.letter_grade == "C"


def test_assessment_score_survives_activity_recompute(platform, seeded):
    student_grade = seeded['student_grades'][0]
    _grade(platform, seeded, 'quiz', 0, 60)
    platform.aggregator.record_assessment_score(student_grade.id, "T1", 80)

    platform.activity_grade_service.update_activity_grade(seeded['quiz'].id, seeded['students'][0].id,
                                                          score=100)

    topic = _topic(platform, student_grade.id, "T1")
    assert topic.assessment_score == 80
    assert topic.activity_score == pytest.approx(100.0)
    assert topic.score == pytest.approx(86.0)


def test_class_grade_is_mean_of_topics(platform, seeded):
    student_grade = seeded['student_grades'][0]
    _grade(platform, seeded, 'quiz', 0, 100)
    _grade(platform, seeded, 'essay', 0, 10)

    stored = platform.grade_book_service.get_student_grade(student_grade.id)
    topics = {t.topic_id: t for t in platform.grade_book_service.list_topic_grades(student_grade.id)}

    assert set(topics) == {"T1", "T2"}
    assert topics["T2"].activity_score == pytest.approx(50.0)
    assert stored.final_grade == pytest.approx((30.0 + 15.0) / 2)
    assert stored.letter_grade == "F"


def test_snapshot_of_activity_grades_is_stored(platform, seeded):
    first = _grade(platform, seeded, 'quiz', 0, 90)
    second = _grade(platform, seeded, 'homework', 0, 40)

    stored = platform.grade_book_service.get_student_grade(seeded['student_grades'][0].id)
    snapshot = {entry['activity_id']: entry for entry in stored.activity_grades}

    assert set(snapshot) == {seeded['quiz'].id, seeded['homework'].id}
    assert snapshot[seeded['quiz'].id]['id'] == first.grade.id
    assert snapshot[seeded['homework'].id]['score'] == 40
    assert snapshot[seeded['homework'].id]['id'] == second.grade.id


def test_student_without_grade_book_entry_is_skipped(platform, seeded):
    result = _grade(platform, seeded, 'quiz', 2, 90)

    assert result.aggregation.outcome == AggregationOutcome.SKIPPED
    assert "no grade book entry" in result.aggregation.reason
    assert platform.activity_grade_service.get_activity_grade(
        seeded['quiz'].id, seeded['students'][2].id).score == 90


def test_class_without_grade_book_is_skipped(platform, seeded, repos):
    other_class = SchoolClass(name="Art", term_id=TERM_ID)
    repos['class'].insert(other_class)
    sketch = Activity(other_class.id, "Sketch", topic_id="A1", is_gradable=True, max_score=10)
    repos['activity'].insert(sketch)

    result = platform.activity_grade_service.create_activity_grade(
        sketch.id, seeded['students'][0].id, score=8)

    assert result.aggregation.outcome == AggregationOutcome.SKIPPED
    assert result.aggregation.reason == "no grade book for the class term"


def test_failed_recompute_reports_stale_and_keeps_grade(platform, seeded, repos, monkeypatch, caplog):
    def boom(entity):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(repos['student_grade'], "save", boom)

    with caplog.at_level(logging.ERROR, logger="gradebook.services.grade_aggregator"):
        result = _grade(platform, seeded, 'quiz', 0, 90)

    assert result.aggregation.outcome == AggregationOutcome.STALE
    assert result.aggregation.is_stale
    assert "disk on fire" in result.aggregation.reason
    assert any("Failed to update student grade" in r.getMessage() for r in caplog.records)
    assert platform.activity_grade_service.get_activity_grade(
        seeded['quiz'].id, seeded['students'][0].id).score == 90


def test_grade_book_rules_override_weights(platform, seeded):
    platform.grade_book_service.update_grade_book(
        seeded['grade_book'].id, calculation_rules={'assessmentWeight': 0.5, 'activityWeight': 0.5},
        updated_by_id=TEACHER_ID)
    student_grade = seeded['student_grades'][0]
    _grade(platform, seeded, 'quiz', 0, 60)

    topic = platform.aggregator.record_assessment_score(student_grade.id, "T1", 80)

    assert topic.score == pytest.approx(70.0)


def test_record_assessment_score_validation(platform, seeded):
    with pytest.raises(ValidationError):
        platform.aggregator.record_assessment_score(seeded['student_grades'][0].id, "T1", 120)
    with pytest.raises(ResourceNotFoundError):
        platform.aggregator.record_assessment_score("missing", "T1", 50)


def test_topic_scores_treat_missing_weight_and_score():
    quiz = Activity("c1", "Quiz", topic_id="T1", is_gradable=True, max_score=10, weightage=0)
    task = Activity("c1", "Task", topic_id="T1", is_gradable=True)
    loose = Activity("c1", "Loose", is_gradable=True, max_score=10)
    activities = {a.id: a for a in (quiz, task, loose)}
    grades = [
        ActivityGrade(quiz.id, "s1", score=5),
        ActivityGrade(task.id, "s1", score=None),
        ActivityGrade(loose.id, "s1", score=10),
    ]

    scores = topic_activity_scores(grades, activities)

    assert scores == {"T1": pytest.approx(25.0)}


def test_topic_grade_insert_race_updates_existing_row(platform, seeded, repos, monkeypatch):
    student_grade = seeded['student_grades'][0]
    topic_repo = repos['topic_grade']
    lookup = topic_repo.find_by_pair
    competitor = StudentTopicGrade(student_grade.id, "T1", assessment_score=80, score=56)
    raced = []

    def miss_then_competing_insert(student_grade_id, topic_id):
        if not raced:
            raced.append(topic_id)
            topic_repo.insert(competitor)
            return None
        return lookup(student_grade_id, topic_id)

    monkeypatch.setattr(topic_repo, "find_by_pair", miss_then_competing_insert)

    result = _grade(platform, seeded, 'quiz', 0, 60)

    assert result.aggregation.outcome == AggregationOutcome.UPDATED
    rows = topic_repo.find_by_student_grade(student_grade.id)
    assert [t.id for t in rows] == [competitor.id]
    assert rows[0].assessment_score == 80
    assert rows[0].activity_score == pytest.approx(60.0)
    assert rows[0].score == pytest.approx(74.0)
