"""
Structured model outputs for the quiz: question categorization and answer
validation, plus the response schemas sent with each request.
"""
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from ..bank.models import QuestionType

CATEGORIZABLE_TYPES = [
    QuestionType.CONCEPTUAL.value,
    QuestionType.CODE_PREDICTION.value,
    QuestionType.MULTIPLE_CHOICE.value,
    QuestionType.CODING_CHALLENGE.value,
]

CATEGORIZATION_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "type": {"type": "STRING", "enum": CATEGORIZABLE_TYPES},
        "questionText": {"type": "STRING"},
        "codeSnippet": {"type": "STRING", "nullable": True},
        "language": {"type": "STRING", "nullable": True},
        "options": {"type": "ARRAY", "items": {"type": "STRING"}, "nullable": True},
    },
    "required": ["type", "questionText"],
}

VALIDATION_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "isCorrect": {"type": "BOOLEAN"},
        "feedback": {"type": "STRING"},
        "proof": {"type": "STRING"},
        "actualOutput": {"type": "STRING", "nullable": True},
    },
    "required": ["isCorrect", "feedback", "proof"],
}


class CategorizationResult(BaseModel):
    """Structure extracted from one raw question."""
    model_config = ConfigDict(populate_by_name=True)

    type: QuestionType
    question_text: str = Field(alias="questionText")
    code_snippet: Optional[str] = Field(default=None, alias="codeSnippet")
    language: Optional[str] = None
    options: Optional[List[str]] = None

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        if v == QuestionType.UNKNOWN:
            raise ValueError("type must be one of " + ", ".join(CATEGORIZABLE_TYPES))
        return v

    @field_validator("code_snippet", "language")
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("options")
    @classmethod
    def empty_options_to_none(cls, v):
        return v or None


class ValidationResult(BaseModel):
    """Verdict on a typed answer."""
    model_config = ConfigDict(populate_by_name=True)

    is_correct: StrictBool = Field(alias="isCorrect")
    feedback: str
    proof: str
    actual_output: Optional[str] = Field(default=None, alias="actualOutput")


def parse_categorization(data: Dict[str, Any]) -> CategorizationResult:
    """
    Validate a categorization response.

    Raises:
        pydantic.ValidationError: If required fields are missing or mistyped
    """
    return CategorizationResult.model_validate(data)


def parse_validation(data: Dict[str, Any]) -> ValidationResult:
    """
    Validate an answer-validation response.

    Raises:
        pydantic.ValidationError: If required fields are missing or mistyped
    """
    return ValidationResult.model_validate(data)
