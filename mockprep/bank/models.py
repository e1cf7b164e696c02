"""
Data models for question banks.
"""
import itertools
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, List, TYPE_CHECKING

if TYPE_CHECKING:
    from ..quiz.schemas import CategorizationResult


_question_ids = itertools.count(1)


def _next_question_id() -> str:
    return f"q-{next(_question_ids)}"


class QuestionType(str, Enum):
    """Categories assigned to a question by the categorization step."""
    CONCEPTUAL = "CONCEPTUAL"
    CODE_PREDICTION = "CODE_PREDICTION"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    CODING_CHALLENGE = "CODING_CHALLENGE"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Question:
    """A single interview question cut out of a markdown bank."""
    raw_text: str
    id: str = field(default_factory=_next_question_id)
    processed: bool = False
    type: Optional[QuestionType] = None
    question_text: Optional[str] = None
    code_snippet: Optional[str] = None
    language: Optional[str] = None
    options: Optional[List[str]] = None

    def enrich(self, result: 'CategorizationResult', processed: bool = True) -> 'Question':
        """Return a copy carrying the categorization fields, keeping the same id."""
        return replace(
            self,
            processed=processed,
            type=result.type,
            question_text=result.question_text,
            code_snippet=result.code_snippet,
            language=result.language,
            options=list(result.options) if result.options else None,
        )

    @property
    def display_text(self) -> str:
        """Question text if categorized, otherwise the raw markdown."""
        return self.question_text or self.raw_text


@dataclass
class RepoFile:
    """A markdown file listed in the question bank repository."""
    name: str
    download_url: str
    content: Optional[str] = None
