"""
Typed quiz mode: categorization, grading, snippet execution and scoring.
"""

from .models import UserAnswer, QuizResult
from .schemas import CategorizationResult, ValidationResult, parse_categorization, parse_validation
from .services import (
    QuestionAnalyzer, AnswerValidator, CodePreparer,
    extract_code_block, remove_snippet_from_text, fallback_categorization
)
from .sandbox import ExecutionResult, execute_code
from .session import QuizSession

__all__ = [
    "UserAnswer", "QuizResult",
    "CategorizationResult", "ValidationResult", "parse_categorization", "parse_validation",
    "QuestionAnalyzer", "AnswerValidator", "CodePreparer",
    "extract_code_block", "remove_snippet_from_text", "fallback_categorization",
    "ExecutionResult", "execute_code",
    "QuizSession",
]
