"""
Quiz services: question categorization, answer validation and preparing
predict-the-output snippets for execution.

Every model call has a local fallback, so a missing key or a failed request
degrades the quiz instead of stopping it.
"""
import logging
import re
from typing import Optional, Tuple

from pydantic import ValidationError

from .schemas import (
    CategorizationResult, ValidationResult, parse_categorization, parse_validation,
    CATEGORIZATION_RESPONSE_SCHEMA, VALIDATION_RESPONSE_SCHEMA
)
from ..bank.models import Question, QuestionType
from ..infrastructure.llm import LLMError
from ..interview.prompts import InterviewPrompts, FallbackMessages

logger = logging.getLogger("services")

CODE_BLOCK_RE = re.compile(r"```(\w*)\s+([\s\S]*?)```")
MARKDOWN_FENCE_RE = re.compile(r"```[\w+-]*")
DEFAULT_SNIPPET_LANGUAGE = "javascript"
PREDICTION_HINTS = ("output", "console.log", "predict", "guess")


def extract_code_block(text: str) -> Optional[Tuple[str, str, str]]:
    """
    Find the first fenced code block.

    Returns:
        (whole block, language, stripped code) or None; language falls back
        to javascript when the fence has no tag
    """
    match = CODE_BLOCK_RE.search(text)
    if not match:
        return None
    language = match.group(1).strip() or DEFAULT_SNIPPET_LANGUAGE
    return match.group(0), language, match.group(2).strip()


def remove_snippet_from_text(question_text: str, snippet: str) -> str:
    """
    Drop the fenced block that holds ``snippet`` from the question text.

    Only that one block is removed; other fenced blocks and the prose
    between them stay.
    """
    if not snippet or snippet not in question_text:
        return question_text
    for match in CODE_BLOCK_RE.finditer(question_text):
        if snippet in match.group(2):
            return (question_text[:match.start()] + question_text[match.end():]).strip()
    return question_text


def fallback_categorization(raw_text: str) -> CategorizationResult:
    """Categorize without a model: a fenced block means code prediction."""
    block = extract_code_block(raw_text)
    if block is None:
        return CategorizationResult(type=QuestionType.CONCEPTUAL, question_text=raw_text)
    whole, language, code = block
    return CategorizationResult(
        type=QuestionType.CODE_PREDICTION,
        question_text=raw_text.replace(whole, "", 1).strip(),
        code_snippet=code or None,
        language=language,
    )


class QuestionAnalyzer:
    """Turns raw markdown questions into structured ones."""

    def __init__(self, llm_client):
        self.llm_client = llm_client

    def categorize(self, raw_text: str) -> CategorizationResult:
        """
        Ask the model to structure one question, then repair its output.

        Args:
            raw_text: The question's raw markdown

        Returns:
            A categorization; the local fallback when the model call fails
        """
        try:
            data = self.llm_client.generate_json(
                raw_text,
                system_instruction=InterviewPrompts.categorize_instruction(),
                response_schema=CATEGORIZATION_RESPONSE_SCHEMA,
            )
            result = parse_categorization(data)
        except (LLMError, ValidationError) as e:
            logger.error(f"AI analysis failed, using local fallback: {e}")
            return fallback_categorization(raw_text)

        updates = {}
        if not result.code_snippet:
            block = extract_code_block(raw_text)
            if block is not None:
                _, language, code = block
                updates["code_snippet"] = code or None
                updates["language"] = language
                lowered = raw_text.lower()
                if result.type == QuestionType.CONCEPTUAL and any(h in lowered for h in PREDICTION_HINTS):
                    updates["type"] = QuestionType.CODE_PREDICTION
                    logger.debug("Upgraded conceptual question with code to code prediction")

        snippet = updates.get("code_snippet", result.code_snippet)
        if snippet:
            updates["question_text"] = remove_snippet_from_text(result.question_text, snippet)

        return result.model_copy(update=updates) if updates else result

    def analyze(self, question: Question) -> Question:
        """Categorize a question and return the enriched copy."""
        if question.processed:
            return question
        result = self.categorize(question.raw_text)
        logger.info(f"Question {question.id} categorized as {result.type.value}")
        return question.enrich(result)


class AnswerValidator:
    """Grades typed answers with the model."""

    def __init__(self, llm_client):
        self.llm_client = llm_client

    def validate(self, question: Question, user_answer: str) -> ValidationResult:
        """
        Grade one answer.

        Returns:
            The model's verdict, or an incorrect verdict explaining that
            validation is unavailable
        """
        try:
            data = self.llm_client.generate_json(
                InterviewPrompts.validation_request(question, user_answer),
                system_instruction=InterviewPrompts.validate_instruction(),
                response_schema=VALIDATION_RESPONSE_SCHEMA,
                thinking_budget=0,
            )
            return parse_validation(data)
        except (LLMError, ValidationError) as e:
            logger.error(f"AI validation failed: {e}")
            return ValidationResult(
                is_correct=False,
                feedback=FallbackMessages.VALIDATION_UNAVAILABLE,
                proof=FallbackMessages.VALIDATION_PROOF,
            )


class CodePreparer:
    """Makes interview snippets runnable without correcting them."""

    def __init__(self, llm_client):
        self.llm_client = llm_client

    def prepare(self, raw_code: str, language: str = DEFAULT_SNIPPET_LANGUAGE) -> str:
        """Return runnable code, or the raw snippet if the model call fails."""
        try:
            text = self.llm_client.generate_content(
                InterviewPrompts.executable_code_prompt(raw_code, language)
            )
        except LLMError as e:
            logger.warning(f"Could not prepare snippet, running it as-is: {e}")
            return raw_code
        cleaned = MARKDOWN_FENCE_RE.sub("", text or "").strip()
        return cleaned or raw_code
