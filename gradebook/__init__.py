"""
Gradebook: grading core for the campus administration platform.

Records activity grades per student, keeps per-class, per-term grade books,
and rolls activity and assessment scores up into topic and class grades.
"""

__version__ = "1.0.0"
__author__ = "Campus Platform Team"
__description__ = "Activity grading and grade book aggregation for campus administration"
