from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

ALL = "All"  # "unfiltered" as spelled by the UI and CLI


class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class GrammarPoint(str, Enum):
    NON_FINITE = "Non-finite Verbs"
    RELATIVE_CLAUSE = "Relative Clauses"
    ADVERBIAL_CLAUSE = "Adverbial Clauses"
    INVERSION = "Inversion"
    SUBJUNCTIVE = "Subjunctive Mood"
    CONJUNCTIONS = "Conjunctions"


def _parse_enum(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    text = str(value).strip()
    if not text or text.lower() == ALL.lower():
        return None
    for member in enum_cls:
        if member.value.lower() == text.lower() or member.name.lower() == text.lower():
            return member
    raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}")


@dataclass(frozen=True)
class QuizFilter:
    """Which questions to request. ``None`` on an axis means unfiltered."""

    difficulty: Difficulty | None = None
    category: GrammarPoint | None = None

    @classmethod
    def parse(cls, difficulty: str | None = None, category: str | None = None) -> QuizFilter:
        """Build a filter from UI strings; ``"All"`` or empty means unfiltered."""
        return cls(
            difficulty=_parse_enum(Difficulty, difficulty),
            category=_parse_enum(GrammarPoint, category),
        )

    def to_dict(self) -> dict:
        return {
            "difficulty": self.difficulty.value if self.difficulty else ALL,
            "category": self.category.value if self.category else ALL,
        }


@dataclass(frozen=True)
class Explanation:
    rule: str
    examples: list[str]
    common_errors: str


@dataclass(frozen=True)
class Question:
    id: str
    sentence_before: str
    sentence_after: str
    options: list[str]
    correct_answer: str
    difficulty: Difficulty
    category: GrammarPoint
    explanation: Explanation

    def rendered_sentence(self) -> str:
        return f"{self.sentence_before} [___] {self.sentence_after}".strip()

    def is_correct(self, option: str) -> bool:
        return option == self.correct_answer


@dataclass(frozen=True)
class Answer:
    question_id: str
    selected_option: str
    is_correct: bool
    timestamp: float = field(default_factory=time.time)
