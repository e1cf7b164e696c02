"""
Data models for the typed quiz.
"""
import time
from dataclasses import dataclass, field
from typing import Optional, Dict, List

from ..bank.models import Question


@dataclass
class UserAnswer:
    """One graded answer."""
    question_id: str
    user_input: str
    is_correct: bool
    feedback: str
    proof: Optional[str] = None
    actual_output: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class QuizResult:
    """Final outcome of a quiz run."""
    questions: List[Question]
    answers: Dict[str, UserAnswer]
    score: int

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def answered(self) -> int:
        return len(self.answers)

    @property
    def percentage(self) -> float:
        return 100.0 * self.score / self.total if self.total else 0.0
