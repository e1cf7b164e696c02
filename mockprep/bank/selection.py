"""
Picking the questions for one practice run.
"""
import logging
import random
from enum import Enum
from typing import List, Optional, Sequence

from .demo import DEMO_QUESTIONS_MARKDOWN
from .markdown import parse_questions
from .models import Question, RepoFile

logger = logging.getLogger("question_selection")


class BankSource(str, Enum):
    """Where the questions for a run come from."""
    DEMO = "demo"
    FILE = "file"
    MIXED = "mixed"


def load_bank(source: BankSource,
              files: Sequence[RepoFile] = (),
              file_name: Optional[str] = None) -> List[Question]:
    """
    Parse the questions for the chosen source.

    Args:
        source: demo bank, one synced file, or every synced file
        files: Synced repository files (with content)
        file_name: Name of the file when ``source`` is FILE

    Returns:
        Parsed questions in document order (files in listing order for MIXED)

    Raises:
        ValueError: If FILE is requested for a file that was not synced
    """
    if source == BankSource.DEMO:
        return parse_questions(DEMO_QUESTIONS_MARKDOWN)

    if source == BankSource.MIXED:
        questions: List[Question] = []
        for repo_file in files:
            questions.extend(parse_questions(repo_file.content or ""))
        logger.info(f"Mixed bank: {len(questions)} questions from {len(files)} files")
        return questions

    for repo_file in files:
        if repo_file.name == file_name:
            return parse_questions(repo_file.content or "")
    raise ValueError(f"File not found in synced bank: {file_name}")


def clamp_question_count(requested: int, available: int) -> int:
    """Clamp a requested run size into [1, available]; 0 when nothing is available."""
    if available <= 0:
        return 0
    return min(available, max(1, requested))


def select_questions(questions: Sequence[Question],
                     count: int,
                     rng: Optional[random.Random] = None) -> List[Question]:
    """
    Shuffle a copy of the bank (Fisher-Yates) and take the first ``count``.

    Args:
        questions: Parsed bank
        count: Requested run size, clamped to what is available
        rng: Random source, injectable for tests

    Returns:
        The selected questions
    """
    rng = rng or random.Random()
    shuffled = list(questions)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled[:clamp_question_count(count, len(shuffled))]
