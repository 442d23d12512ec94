"""
API module exposing the grading operations.
"""

from .grading_api import GradingAPI, parse_input
from . import schemas

__all__ = [
    "GradingAPI",
    "parse_input",
    "schemas",
]
