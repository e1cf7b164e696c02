"""
Markdown question bank parsing.

A bank is a markdown document where each question starts with a numbered
marker (``1.`` or ``1)``). Numbered lines inside fenced code blocks are
content, not new questions, so the parser tracks fence state line by line.
"""
import re
from typing import List, Optional

from .models import Question

FENCE = "```"

QUESTION_START_RE = re.compile(r"^\s*([0-9]+)[\.\)]\s*(.*)")


def fence_toggles(line: str) -> bool:
    """True when the line opens or closes a fenced block (odd number of fences)."""
    return line.count(FENCE) % 2 == 1


def scan_state_after(in_fence: bool, line: str) -> bool:
    """Fence state after consuming ``line``."""
    return not in_fence if fence_toggles(line) else in_fence


def parse_questions(markdown: str) -> List[Question]:
    """
    Split a markdown document into questions, in document order.

    Text before the first numbered marker is discarded. Each question keeps
    the remainder of its marker line plus every following line up to the next
    marker that sits outside a fenced block, stripped of surrounding blank
    space.

    Args:
        markdown: Full document text

    Returns:
        List of unprocessed Question records (empty for empty input)
    """
    questions: List[Question] = []
    current_lines: Optional[List[str]] = None
    in_fence = False

    for line in markdown.split("\n"):
        # The start decision uses the fence state from before this line
        match = None if in_fence else QUESTION_START_RE.match(line)

        if match:
            if current_lines is not None:
                questions.append(Question(raw_text="\n".join(current_lines).strip()))
            current_lines = [match.group(2)]
        elif current_lines is not None:
            current_lines.append(line)

        in_fence = scan_state_after(in_fence, line)

    if current_lines is not None:
        questions.append(Question(raw_text="\n".join(current_lines).strip()))

    return questions
