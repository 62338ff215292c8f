"""Quiz attempts: loading a quiz from the store and collecting one answer per question.

A QuizAttempt owns the answer set for one run through the quiz. It refuses
to finalize until every question has an answer, then freezes the answers and
hands them to the scoring engine exactly once.
"""
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from sqlalchemy.orm import Session

from services.quiz import models
from services.quiz.ctq import CtqResult, compute_result
from services.quiz.scoring_config import ScoringConfiguration

logger = logging.getLogger(__name__)


class QuizLoadError(Exception):
    """Raised when the quiz cannot be read or its data is structurally incomplete."""


class QuizNotFoundError(QuizLoadError):
    pass


class UnansweredQuestionError(Exception):
    """Raised when moving past a question that has no answer."""


class IncompleteAnswerSetError(Exception):
    """Raised when finalizing with unanswered questions."""

    def __init__(self, total: int, remaining: int):
        self.total = total
        self.remaining = remaining
        super().__init__(f"Please answer all {total} questions. You have {remaining} remaining.")


@dataclass(frozen=True)
class OptionView:
    id: str
    text: str
    value: int


@dataclass(frozen=True)
class QuestionView:
    id: str
    item_number: int
    text: str
    order: int
    options: tuple[OptionView, ...]


@dataclass(frozen=True)
class QuizView:
    id: str
    slug: str
    title: str
    description: str | None
    questions: tuple[QuestionView, ...]


def load_quiz(db: Session, slug: str) -> QuizView:
    """Read a quiz with its questions in order and options ascending by value.

    Raises:
        QuizLoadError: the quiz does not exist, has no questions, or a question has no options.
    """
    quiz = db.query(models.Quiz).filter(models.Quiz.slug == slug).first()
    if not quiz:
        raise QuizNotFoundError(f"Quiz not found: {slug}")

    # Relationship order_by: questions by order, options by value.
    if not quiz.questions:
        raise QuizLoadError("Quiz data is incomplete or invalid.")

    views = []
    for q in quiz.questions:
        options = q.answer_options
        if not options:
            logger.error(f"Question {q.id} (item {q.item_number}) of quiz {slug} has no answer options")
            raise QuizLoadError("Quiz data is incomplete or invalid.")
        views.append(
            QuestionView(
                id=q.id,
                item_number=q.item_number,
                text=q.text,
                order=q.order,
                options=tuple(OptionView(id=o.id, text=o.text, value=o.value) for o in options),
            )
        )

    return QuizView(
        id=quiz.id,
        slug=quiz.slug,
        title=quiz.title,
        description=quiz.description,
        questions=tuple(views),
    )


class QuizAttempt:
    def __init__(self, quiz: QuizView, config: ScoringConfiguration | None = None):
        self.quiz = quiz
        self.config = config
        self._by_item = {q.item_number: q for q in quiz.questions}
        self.reset()

    def reset(self) -> None:
        """Discard all answers and any result (retake)."""
        self._answers: dict[int, int] = {}
        self.current_index = 0
        self.result: CtqResult | None = None

    @property
    def current_question(self) -> QuestionView:
        return self.quiz.questions[self.current_index]

    @property
    def answers(self) -> Mapping[int, int]:
        return MappingProxyType(self._answers)

    @property
    def total(self) -> int:
        return len(self.quiz.questions)

    @property
    def answered_count(self) -> int:
        return sum(1 for item in self._by_item if item in self._answers)

    @property
    def remaining(self) -> int:
        return self.total - self.answered_count

    @property
    def is_complete(self) -> bool:
        return self.remaining == 0

    def answer(self, item_number: int, value: int) -> None:
        question = self._by_item.get(item_number)
        if question is None:
            raise ValueError(f"Question {item_number} is not part of quiz {self.quiz.slug}")
        if value not in {o.value for o in question.options}:
            raise ValueError(f"{value!r} is not an option for question {item_number}")
        self._answers[item_number] = value
        # A changed answer invalidates any previous result.
        self.result = None

    def select_option(self, option_id: str) -> None:
        for question in self.quiz.questions:
            for option in question.options:
                if option.id == option_id:
                    self.answer(question.item_number, option.value)
                    return
        raise ValueError(f"Unknown answer option {option_id}")

    def next(self) -> CtqResult | None:
        """Advance one question; on the last question, finalize instead.

        Raises:
            UnansweredQuestionError: the current question has no answer yet.
        """
        if self.current_question.item_number not in self._answers:
            raise UnansweredQuestionError("Please select an answer before proceeding.")
        if self.current_index < self.total - 1:
            self.current_index += 1
            return None
        return self.finalize()

    def previous(self) -> None:
        if self.current_index > 0:
            self.current_index -= 1
            self.result = None

    def finalize(self) -> CtqResult:
        """Freeze the answer set and score it.

        Raises:
            IncompleteAnswerSetError: some questions are still unanswered.
        """
        if not self.is_complete:
            raise IncompleteAnswerSetError(total=self.total, remaining=self.remaining)
        frozen = MappingProxyType(dict(self._answers))
        self.result = compute_result(frozen, self.config)
        return self.result
