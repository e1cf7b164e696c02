"""
MockPrep: interview practice from markdown question banks.

Parses numbered questions out of markdown, runs typed quizzes graded by
Gemini, and holds live voice interviews over the Gemini Live API.
"""

__version__ = "1.0.0"

# Main entry points
from .bank import Question, QuestionType, parse_questions, select_questions
from .interview import InterviewSession, SessionStatus
from .quiz import QuizSession

__all__ = [
    "Question", "QuestionType", "parse_questions", "select_questions",
    "InterviewSession", "SessionStatus",
    "QuizSession",
]
