"""
Typed quiz session: walks a selected question list, categorizes each
question when it is first shown, grades answers and keeps the score.
"""
import logging
from typing import Callable, Dict, List, Optional, Sequence

from .models import UserAnswer, QuizResult
from .sandbox import ExecutionResult, execute_code
from .services import QuestionAnalyzer, AnswerValidator, CodePreparer, DEFAULT_SNIPPET_LANGUAGE
from ..bank.models import Question

logger = logging.getLogger("quiz")


class QuizSession:
    """
    State of one quiz run.

    Args:
        questions: Selected questions, in presentation order
        analyzer: Categorizes questions lazily
        validator: Grades answers
        preparer: Optional; makes snippets runnable before execution
        executor: Runs code; execute_code by default
    """

    def __init__(self,
                 questions: Sequence[Question],
                 analyzer: QuestionAnalyzer,
                 validator: AnswerValidator,
                 preparer: Optional[CodePreparer] = None,
                 executor: Callable[[str, str], ExecutionResult] = execute_code):
        if not questions:
            raise ValueError("A quiz needs at least one question")
        self.questions: List[Question] = list(questions)
        self.analyzer = analyzer
        self.validator = validator
        self.preparer = preparer
        self.executor = executor
        self.current_index = 0
        self.answers: Dict[str, UserAnswer] = {}
        self.score = 0

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def is_last(self) -> bool:
        return self.current_index == self.total - 1

    def current_question(self) -> Question:
        """The question at the cursor, categorized on first access."""
        question = self.questions[self.current_index]
        if not question.processed:
            question = self.analyzer.analyze(question)
            self.questions[self.current_index] = question
        return question

    def answer_for(self, question: Question) -> Optional[UserAnswer]:
        return self.answers.get(question.id)

    def submit(self, answer_text: str) -> UserAnswer:
        """
        Grade an answer to the current question.

        Re-answering replaces the earlier answer and the score moves by the
        difference between the two verdicts.

        Raises:
            ValueError: If the answer is blank
        """
        if not answer_text or not answer_text.strip():
            raise ValueError("Answer must not be empty")
        question = self.current_question()
        verdict = self.validator.validate(question, answer_text)

        previous = self.answers.get(question.id)
        if previous is not None and previous.is_correct:
            self.score -= 1
        if verdict.is_correct:
            self.score += 1

        answer = UserAnswer(
            question_id=question.id,
            user_input=answer_text,
            is_correct=verdict.is_correct,
            feedback=verdict.feedback,
            proof=verdict.proof,
            actual_output=verdict.actual_output,
        )
        self.answers[question.id] = answer
        logger.info(f"Answer to {question.id}: {'correct' if answer.is_correct else 'incorrect'} "
                    f"(score {self.score}/{self.total})")
        return answer

    def next(self) -> bool:
        """Move forward; False when already at the last question."""
        if self.is_last:
            return False
        self.current_index += 1
        return True

    def previous(self) -> bool:
        """Move back; False when already at the first question."""
        if self.current_index == 0:
            return False
        self.current_index -= 1
        return True

    def run_snippet(self) -> ExecutionResult:
        """Execute the current question's code snippet."""
        question = self.current_question()
        if not question.code_snippet:
            return ExecutionResult(output="", error="This question has no code snippet")
        language = question.language or DEFAULT_SNIPPET_LANGUAGE
        code = question.code_snippet
        if self.preparer is not None:
            code = self.preparer.prepare(code, language)
        return self.executor(code, language)

    def finish(self) -> QuizResult:
        return QuizResult(questions=list(self.questions), answers=dict(self.answers), score=self.score)
