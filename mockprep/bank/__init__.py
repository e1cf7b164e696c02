"""Question banks: models, markdown parsing, and run selection."""

from .models import Question, QuestionType, RepoFile
from .markdown import parse_questions, fence_toggles, scan_state_after
from .selection import BankSource, load_bank, select_questions, clamp_question_count
from .demo import DEMO_QUESTIONS_MARKDOWN

__all__ = [
    "Question", "QuestionType", "RepoFile",
    "parse_questions", "fence_toggles", "scan_state_after",
    "BankSource", "load_bank", "select_questions", "clamp_question_count",
    "DEMO_QUESTIONS_MARKDOWN",
]
