"""
Prompt templates for the live interviewer and the quiz grading calls.

Kept apart from the business logic so the wording can be edited in one place.
"""

from typing import List, Sequence

from ..bank.models import Question
from ..config import LIVE_MAX_CONTEXT_QUESTIONS


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    @staticmethod
    def question_context(questions: Sequence[Question],
                         limit: int = LIVE_MAX_CONTEXT_QUESTIONS) -> str:
        """Render the first ``limit`` questions as numbered context blocks."""
        blocks: List[str] = []
        for i, q in enumerate(list(questions)[:limit]):
            q_type = q.type.value if q.type else "UNKNOWN"
            lines = [
                f"QUESTION #{i + 1} ({q_type}):",
                f"TEXT: {q.display_text}",
            ]
            if q.code_snippet:
                lines.append(f"CODE SNIPPET:\n{q.code_snippet}")
            if q.options:
                lines.append(f"OPTIONS: {', '.join(q.options)}")
            lines.append("---")
            blocks.append("\n".join(lines))
        return "\n".join(blocks)

    @staticmethod
    def live_system_instruction(questions: Sequence[Question]) -> str:
        """System instruction for the voice interviewer persona."""
        return f"""
You are a Principal Software Engineer at a FAANG company conducting a high-stakes technical phone screen.

YOUR OBJECTIVE:
Accurately assess the candidate's deep technical understanding. Do not settle for surface-level answers.

BEHAVIOR & TONE:
- Professional, direct, and efficient.
- Voice-only context: Explicitly describe code behavior if discussing it.
- Short responses: Keep your turns under 4 sentences to allow the candidate to speak.

EVALUATION PROCESS:
1. Select a question from the provided context randomly.
2. Ask the question clearly.
3. Listen to the user's answer.
4. CRITICAL: If they are vague, ask "Can you explain specifically how X works?" or "What happens in memory when you do that?".
5. CRITICAL: If they are wrong, politely correct them ("Actually, that's not quite right because...") and move to the next topic.
6. Do not give away the answer immediately. Ask a hint first.

CONTEXT (Interview Questions):
{InterviewPrompts.question_context(questions)}

Start by briefly introducing yourself as the interviewer and asking them if they are ready for the first technical question.
        """.strip()

    @staticmethod
    def categorize_instruction() -> str:
        """System instruction for structuring one raw markdown question."""
        return """
You are an expert technical interviewer.
Analyze the provided raw interview question text.

Your primary goal is to structure the content correctly.

Rules for Extraction:
1. **questionText**: The main text of the question. REMOVE any markdown code blocks from this text if you successfully extracted them to codeSnippet.
2. **codeSnippet**: EXPLICITLY EXTRACT any markdown code blocks (content between ``` fences) into this field. Do not include the fences.
   - CHECK CAREFULLY: If the question asks to "Predict output" or "Guess output", there is ALMOST ALWAYS a code block. Find it.
3. **options**: If the text contains list items like "A)", "B)" or "1.", "2." that look like choices, extract them here.
4. **type**: Determine the best category.
   - CODE_PREDICTION: If there is a code snippet and the question asks for output/result/console.log.
   - CODING_CHALLENGE: If asking to write code.
   - MULTIPLE_CHOICE: If options are present.
   - CONCEPTUAL: Default.

Return strictly valid JSON matching this schema:
{
  "type": "CONCEPTUAL" | "CODE_PREDICTION" | "MULTIPLE_CHOICE" | "CODING_CHALLENGE",
  "questionText": "string",
  "codeSnippet": "string" | null,
  "language": "string",
  "options": ["string"] | null
}
        """.strip()

    @staticmethod
    def validate_instruction() -> str:
        """System instruction for grading a typed answer."""
        return """
You are a strict technical interviewer and code evaluator.
Validate the user's answer for the technical interview question.

Inputs provided:
1. Question Type
2. Original Question
3. Code Snippet (if any)
4. User's Answer

Your Logic:
- If CONCEPTUAL: Analyze accuracy. Be strict. Provide a brief explanation and a source/citation style proof.
- If CODE_PREDICTION:
  - You must MENTALLY EXECUTE the code snippet provided.
  - Determine the exact output (console logs, return values, or Errors).
  - Compare the User's Answer to your calculated output.
  - If the user predicts the correct output (logic wise), it is correct.
  - The 'proof' field should contain the actual output you calculated.
- If MULTIPLE_CHOICE: Check if selected option is correct.

Return strictly valid JSON:
{
  "isCorrect": boolean,
  "feedback": "Short explanation of why it is right or wrong",
  "proof": "Actual Output: <output> OR Explanation",
  "actualOutput": "The output you calculated"
}
        """.strip()

    @staticmethod
    def validation_request(question: Question, user_answer: str) -> str:
        """User turn for the grading call."""
        q_type = question.type.value if question.type else "UNKNOWN"
        return f"""
Question Type: {q_type}
Question: {question.display_text}
Code Snippet:
{question.code_snippet or "N/A"}

User Answer: {user_answer}
        """.strip()

    @staticmethod
    def executable_code_prompt(raw_code: str, language: str = "javascript") -> str:
        """Ask the model to make a predict-the-output fragment runnable without fixing it."""
        runtime = "JavaScript" if language in ("javascript", "js") else language.capitalize()
        log_call = "console.log" if runtime == "JavaScript" else "print"
        return f"""
You are a {runtime} runtime helper.
The following code snippet is from a technical interview question "Predict the Output".

It might be incomplete (e.g., missing a function wrapper, missing imports, or undefined variables that should be mocked).

YOUR TASK:
1. Wrap the code or add context so it can run as a standalone script (using {log_call}).
2. IF the code contains intentional logical errors (like Temporal Dead Zone, Hoisting issues, Scope issues), DO NOT FIX THEM. The user needs to see the error.
3. IF the code is just a fragment (e.g. just a 'map' call without an array), provide a minimal valid context (e.g. define an array).
4. RETURN ONLY THE RAW {runtime.upper()} CODE. NO MARKDOWN. NO COMMENTS.

Snippet:
{raw_code}
        """.strip()


class FallbackMessages:
    """Fixed texts used when a model call cannot be completed."""

    VALIDATION_UNAVAILABLE = "Validation service unavailable."
    VALIDATION_PROOF = "Error"
    CONNECTION_FAILED = "Failed to initialize audio or network."
    MISSING_API_KEY = "GEMINI_API_KEY is missing from environment."
    CONNECTION_LOST = "Connection error. Please try again."
