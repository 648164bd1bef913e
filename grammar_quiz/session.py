"""Quiz lifecycle: fetch a batch, walk through it, score it, repeat."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from grammar_quiz.config import Settings
from grammar_quiz.explainer import explain_mistake
from grammar_quiz.models import Answer, Question, QuizFilter
from grammar_quiz.question_generator import GenerationError, generate_questions

if TYPE_CHECKING:
    from grammar_quiz.providers.base import LLMProvider

_log = logging.getLogger("grammar_quiz.session")

GENERATION_ERROR_MESSAGE = "AI 老师出题失败了，请检查网络或刷新重试。"

# Ordered from weakest to strongest result
ENCOURAGEMENT_PHRASES = [
    "Every mistake is a lesson. Keep going! / 每个错误都是一次学习，继续加油！",
    "Good start! Review the rules and try again. / 不错的开始！复习规则再试一次。",
    "You're getting there! / 你正在进步！",
    "Nice work, you're on the right track! / 做得好，方向完全正确！",
    "Great job, almost perfect! / 太棒了，几乎完美！",
    "Outstanding! You're a grammar master! / 太出色了！你是语法大师！",
]


class Phase(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    AWAITING_SELECTION = "awaiting_selection"
    SUBMITTED = "submitted"
    RESULT = "result"


class TransitionError(Exception):
    """The requested action is not available in the current phase."""


@dataclass(frozen=True)
class Score:
    correct: int
    total: int
    accuracy: int
    encouragement: str


def compute_accuracy(answers: list[Answer]) -> int:
    """Percentage of correct answers, halves rounded up."""
    correct = sum(1 for a in answers if a.is_correct)
    return math.floor(100 * correct / max(len(answers), 1) + 0.5)


def encouragement_for(accuracy: int) -> str:
    last = len(ENCOURAGEMENT_PHRASES) - 1
    index = min(math.floor(accuracy / 100 * last), last)
    return ENCOURAGEMENT_PHRASES[max(index, 0)]


class QuizSession:
    """State for one learner on one page.

    Every mutation goes through the transition methods below. Async methods
    tag their request with a sequence number so a slow response that was
    superseded by a newer request is dropped instead of applied.
    """

    def __init__(
        self,
        llm: LLMProvider,
        settings: Settings | None = None,
        quiz_filter: QuizFilter | None = None,
    ):
        self.llm = llm
        self.settings = settings or Settings()
        self.quiz_filter = quiz_filter or QuizFilter()
        # config.json may hold a non-positive value
        self.batch_size = max(int(self.settings.batch_size), 1)

        self.phase = Phase.LOADING
        self.questions: list[Question] = []
        self.current_index = 0
        self.answers: list[Answer] = []
        self.selected_option: str | None = None
        self.error: str | None = None
        self.explanation_pending = False
        self.ai_explanation: str | None = None

        self._fetch_seq = 0
        self._explain_token: tuple[int, int] | None = None

    # ── Derived state ─────────────────────────────────────────────────────

    @property
    def current_question(self) -> Question | None:
        if self.phase not in (Phase.AWAITING_SELECTION, Phase.SUBMITTED):
            return None
        if self.current_index >= len(self.questions):
            return None
        return self.questions[self.current_index]

    @property
    def submitted(self) -> bool:
        return self.phase == Phase.SUBMITTED

    @property
    def last_answer(self) -> Answer | None:
        return self.answers[-1] if self.answers else None

    def score(self) -> Score:
        correct = sum(1 for a in self.answers if a.is_correct)
        accuracy = compute_accuracy(self.answers)
        return Score(
            correct=correct,
            total=len(self.answers),
            accuracy=accuracy,
            encouragement=encouragement_for(accuracy),
        )

    # ── Batch loading ─────────────────────────────────────────────────────

    def _reset(self) -> None:
        self.questions = []
        self.current_index = 0
        self.answers = []
        self._clear_question_state()

    def _clear_question_state(self) -> None:
        self.selected_option = None
        self.explanation_pending = False
        self.ai_explanation = None
        self._explain_token = None

    async def load(self, quiz_filter: QuizFilter | None = None) -> bool:
        """Fetch a fresh batch. Returns False if the result was an error or stale."""
        if quiz_filter is not None:
            self.quiz_filter = quiz_filter
        self._fetch_seq += 1
        seq = self._fetch_seq
        requested = self.quiz_filter

        self._reset()
        self.phase = Phase.LOADING
        self.error = None

        try:
            questions = await generate_questions(
                self.llm,
                requested,
                count=self.batch_size,
                learner_profile=self.settings.learner_profile,
                temperature=self.settings.question_temperature,
                thinking=self.settings.llm_thinking,
            )
        except GenerationError as e:
            if seq != self._fetch_seq:
                _log.info("Discarding stale failure for fetch #%d", seq)
                return False
            _log.warning("Failed to fetch questions: %s", e)
            self.phase = Phase.ERROR
            self.error = GENERATION_ERROR_MESSAGE
            return False

        if seq != self._fetch_seq:
            _log.info("Discarding stale batch from fetch #%d (current #%d)", seq, self._fetch_seq)
            return False

        self.questions = questions
        self.phase = Phase.AWAITING_SELECTION
        _log.info("Fetch #%d: %d questions ready", seq, len(questions))
        return True

    async def set_filter(self, quiz_filter: QuizFilter) -> bool:
        return await self.load(quiz_filter)

    async def retry(self) -> bool:
        if self.phase != Phase.ERROR:
            raise TransitionError(f"Cannot retry while {self.phase.value}")
        return await self.load()

    async def start_new_batch(self) -> bool:
        if self.phase != Phase.RESULT:
            raise TransitionError(f"Cannot start a new batch while {self.phase.value}")
        return await self.load()

    # ── Answering ─────────────────────────────────────────────────────────

    def select(self, option: str) -> bool:
        """Set the pending selection. Ignored unless awaiting a selection."""
        if self.phase != Phase.AWAITING_SELECTION:
            return False
        question = self.current_question
        if option not in question.options:
            raise ValueError(f"{option!r} is not an option for this question")
        self.selected_option = option
        return True

    def submit(self) -> Answer | None:
        """Record the pending selection. A no-op without one."""
        question = self.current_question
        if self.phase != Phase.AWAITING_SELECTION or self.selected_option is None:
            return None

        answer = Answer(
            question_id=question.id,
            selected_option=self.selected_option,
            is_correct=question.is_correct(self.selected_option),
        )
        self.answers.append(answer)
        self.phase = Phase.SUBMITTED
        if not answer.is_correct:
            self.explanation_pending = True
            self._explain_token = (self._fetch_seq, self.current_index)
        return answer

    async def resolve_explanation(self) -> str | None:
        """Fetch the AI explanation for the last wrong answer.

        Leaves the phase alone. Returns None if there is nothing to explain
        or the learner moved on before the response arrived.
        """
        if not self.explanation_pending:
            return self.ai_explanation
        token = self._explain_token
        question = self.current_question
        selected = self.selected_option

        text = await explain_mistake(
            self.llm,
            question.rendered_sentence(),
            selected,
            question.correct_answer,
            language=self.settings.explanation_language,
            learner_profile=self.settings.learner_profile,
            temperature=self.settings.explanation_temperature,
        )
        if token != self._explain_token:
            _log.info("Discarding explanation for question %d: no longer current", token[1] + 1)
            return None
        self.ai_explanation = text
        self.explanation_pending = False
        return text

    def next(self) -> Phase:
        if self.phase != Phase.SUBMITTED:
            raise TransitionError(f"Cannot advance while {self.phase.value}")
        next_index = self.current_index + 1
        if next_index % self.batch_size == 0 or next_index >= len(self.questions):
            self.phase = Phase.RESULT
            self._clear_question_state()
            score = self.score()
            _log.info("Batch done: %d/%d (%d%%)", score.correct, score.total, score.accuracy)
        else:
            self.current_index = next_index
            self._clear_question_state()
            self.phase = Phase.AWAITING_SELECTION
        return self.phase
