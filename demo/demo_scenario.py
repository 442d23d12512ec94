#!/usr/bin/env python3
"""
Demo scenario for the gradebook platform.
"""

import sys
import os
import json

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gradebook.main import GradebookPlatform
from gradebook.core.entities import Activity, SchoolClass, Student
from gradebook.core.exceptions import GradebookException


def run_demo():
    """Walk through grading two activities and reading back the grade book."""
    print("=" * 60)
    print("CAMPUS GRADEBOOK - DEMO")
    print("=" * 60)

    config = {
        'database_type': 'sqlite',
        'database_config': {'database_path': 'demo_gradebook.db'},
    }
    if os.path.exists(config['database_config']['database_path']):
        os.remove(config['database_config']['database_path'])
    platform = GradebookPlatform(config)
    teacher_id = "teacher-1"

    try:
        print("\n1. Creating sample data...")
        data = create_sample_data(platform)

        print("\n2. Opening a grade book...")
        book = platform.api.create_grade_book(
            {'class_id': data['class'].id, 'term_id': data['class'].term_id}, user_id=teacher_id)
        for student in data['students']:
            platform.api.create_student_grade({'grade_book_id': book['id'], 'student_id': student.id})
        print(f"  Grade book {book['id']} with {len(data['students'])} students")

        print("\n3. Batch grading the quiz...")
        quiz, homework = data['activities']
        results = platform.api.batch_grade_activities({
            'activity_id': quiz.id,
            'grades': [
                {'student_id': data['students'][0].id, 'score': 92},
                {'student_id': data['students'][1].id, 'score': 71, 'feedback': "Review chapter 3"},
            ],
        }, user_id=teacher_id)
        for result in results:
            print(f"  {result['student_id']}: {result['score']} ({result['aggregation']['outcome']})")

        print("\n4. Grading homework one student at a time...")
        platform.api.create_activity_grade(
            {'activity_id': homework.id, 'student_id': data['students'][0].id, 'score': 40},
            user_id=teacher_id)

        print("\n5. Rejected inputs...")
        try:
            platform.api.create_activity_grade(
                {'activity_id': homework.id, 'student_id': data['students'][1].id, 'score': 75},
                user_id=teacher_id)
        except GradebookException as e:
            print(f"  {e.error_code}: {e.message}")

        print("\n6. Recording an assessment score and reading the rollup...")
        student = data['students'][0]
        student_grade = platform.api.get_student_grade_for_class(student.id, data['class'].id)
        platform.api.record_assessment_score(student_grade['id'], {'topic_id': 'algebra', 'assessment_score': 85})
        print(json.dumps(platform.api.get_student_grade(student_grade['id']), indent=2))
        for topic in platform.api.list_topic_grades(student_grade['id']):
            print(f"  topic {topic['topic_id']}: activity={topic['activity_score']:.1f} "
                  f"assessment={topic['assessment_score']:.1f} blended={topic['score']:.1f}")

        print("\n" + "=" * 60)
        print("DEMO COMPLETED SUCCESSFULLY!")
        print("=" * 60)

    except Exception as e:
        print(f"\nDemo failed with error: {e}")
        import traceback
        traceback.print_exc()


def create_sample_data(platform):
    """Create a class, its students and two gradable activities."""
    repos = platform.repositories

    school_class = SchoolClass(name="Grade 8 Mathematics", term_id="2024-T1")
    repos['class'].insert(school_class)

    students = [
        Student("Alice", "Johnson", "alice@school.edu"),
        Student("Bob", "Smith", "bob@school.edu"),
    ]
    for student in students:
        repos['student'].insert(student)

    activities = [
        Activity(school_class.id, "Algebra quiz", topic_id="algebra", is_gradable=True, max_score=100),
        Activity(school_class.id, "Algebra homework", topic_id="algebra", is_gradable=True,
                 max_score=50, weightage=2),
    ]
    for activity in activities:
        repos['activity'].insert(activity)

    print(f"  Class {school_class.name} ({school_class.term_id}), "
          f"{len(students)} students, {len(activities)} activities")
    return {'class': school_class, 'students': students, 'activities': activities}


if __name__ == "__main__":
    run_demo()
