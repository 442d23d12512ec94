"""
Table definitions for the grading store.

Uniqueness rules live here as constraints; repositories surface their
violations as DuplicateEntityError.
"""

SCHEMA = {
    "students": """
        CREATE TABLE IF NOT EXISTS students (
            id VARCHAR(64) PRIMARY KEY,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "classes": """
        CREATE TABLE IF NOT EXISTS classes (
            id VARCHAR(64) PRIMARY KEY,
            name TEXT NOT NULL,
            term_id VARCHAR(64) NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "activities": """
        CREATE TABLE IF NOT EXISTS activities (
            id VARCHAR(64) PRIMARY KEY,
            class_id VARCHAR(64) NOT NULL,
            topic_id VARCHAR(64),
            title TEXT NOT NULL,
            is_gradable INTEGER NOT NULL DEFAULT 0,
            max_score REAL,
            weightage REAL,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "activity_grades": """
        CREATE TABLE IF NOT EXISTS activity_grades (
            id VARCHAR(64) PRIMARY KEY,
            activity_id VARCHAR(64) NOT NULL,
            student_id VARCHAR(64) NOT NULL,
            score REAL,
            submission_status VARCHAR(20) NOT NULL,
            feedback TEXT,
            content TEXT,
            attachments TEXT,
            graded_by_id VARCHAR(64),
            submitted_at TEXT NOT NULL,
            graded_at TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (activity_id, student_id)
        )
    """,
    "grade_books": """
        CREATE TABLE IF NOT EXISTS grade_books (
            id VARCHAR(64) PRIMARY KEY,
            class_id VARCHAR(64) NOT NULL,
            term_id VARCHAR(64) NOT NULL,
            calculation_rules TEXT NOT NULL,
            created_by_id VARCHAR(64) NOT NULL,
            updated_by_id VARCHAR(64),
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (class_id, term_id)
        )
    """,
    "student_grades": """
        CREATE TABLE IF NOT EXISTS student_grades (
            id VARCHAR(64) PRIMARY KEY,
            grade_book_id VARCHAR(64) NOT NULL,
            student_id VARCHAR(64) NOT NULL,
            assessment_grades TEXT NOT NULL,
            activity_grades TEXT NOT NULL,
            final_grade REAL,
            letter_grade VARCHAR(4),
            attendance REAL,
            comments TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (grade_book_id, student_id)
        )
    """,
    "student_topic_grades": """
        CREATE TABLE IF NOT EXISTS student_topic_grades (
            id VARCHAR(64) PRIMARY KEY,
            student_grade_id VARCHAR(64) NOT NULL,
            topic_id VARCHAR(64) NOT NULL,
            activity_score REAL NOT NULL DEFAULT 0,
            assessment_score REAL NOT NULL DEFAULT 0,
            score REAL NOT NULL DEFAULT 0,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (student_grade_id, topic_id)
        )
    """,
}
