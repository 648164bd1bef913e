"""Shared test fixtures."""
from __future__ import annotations

import json

import pytest

from grammar_quiz.models import Difficulty, Explanation, GrammarPoint, Question


def make_question_dict(n: int = 1, **overrides) -> dict:
    """One question in the wire shape the model is asked to return."""
    data = {
        "id": f"q{n}",
        "sentenceBefore": f"This is the house {n}",
        "sentenceAfter": "Jack built.",
        "options": ["which", "who", "whom", "whose"],
        "correctAnswer": "which",
        "difficulty": "Intermediate",
        "category": "Relative Clauses",
        "explanation": {
            "rule": "Use 'which' for things in relative clauses. / 指物用 which。",
            "examples": ["The book which I bought is red."],
            "commonErrors": "Using 'who' for things. / 用 who 指物。",
        },
    }
    data.update(overrides)
    return data


def make_batch_json(count: int = 5, prefix: str = "q") -> str:
    return json.dumps(
        [make_question_dict(i, id=f"{prefix}{i}") for i in range(1, count + 1)],
        ensure_ascii=False,
    )


@pytest.fixture
def question_dict():
    return make_question_dict()


@pytest.fixture
def batch_json():
    return make_batch_json()


@pytest.fixture
def sample_question():
    """A valid Question object."""
    return Question(
        id="test-q-001",
        sentence_before="Had I known the truth, I",
        sentence_after="differently.",
        options=["would have acted", "would act", "had acted", "acted"],
        correct_answer="would have acted",
        difficulty=Difficulty.ADVANCED,
        category=GrammarPoint.SUBJUNCTIVE,
        explanation=Explanation(
            rule="Past counterfactual: had + done, would have + done.",
            examples=["Had she left earlier, she would have caught the train."],
            common_errors="Using 'would act' for a past condition.",
        ),
    )
