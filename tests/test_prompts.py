"""Tests for prompt templates and formatting."""
from __future__ import annotations

import json

from grammar_quiz.models import Difficulty, GrammarPoint, QuizFilter
from grammar_quiz.prompts import (
    MIXED_CATEGORY_DESCRIPTION,
    QUESTION_BATCH_SCHEMA,
    QUESTION_FIELDS,
    format_explanation_prompt,
    format_question_prompt,
)


class TestQuestionPrompt:
    def test_filtered(self):
        f = QuizFilter(Difficulty.ADVANCED, GrammarPoint.INVERSION)
        prompt = format_question_prompt(f, 5, "Chinese middle school students")
        assert "exactly 5" in prompt
        assert "Difficulty Level: Advanced" in prompt
        assert "Grammar Focus: Inversion" in prompt
        assert "Chinese middle school students" in prompt

    def test_unfiltered_uses_mixed_description(self):
        prompt = format_question_prompt(QuizFilter(), 3, "adults")
        assert MIXED_CATEGORY_DESCRIPTION in prompt
        assert "All" not in prompt.split("Grammar Focus:")[1].splitlines()[0]

    def test_lists_allowed_values(self):
        prompt = format_question_prompt(QuizFilter(), 5, "adults")
        for c in GrammarPoint:
            assert c.value in prompt
        for d in Difficulty:
            assert d.value in prompt

    def test_no_unfilled_placeholders(self):
        prompt = format_question_prompt(QuizFilter(), 5, "adults")
        assert "{count}" not in prompt
        assert "{learner_profile}" not in prompt
        # Literal braces from the JSON example survive formatting
        assert '"sentenceBefore"' in prompt


class TestExplanationPrompt:
    def test_contains_context(self):
        prompt = format_explanation_prompt(
            "I wish I [___] rich.", "am", "were", "Chinese", "teenagers",
        )
        assert '"am"' in prompt
        assert '"were"' in prompt
        assert "I wish I [___] rich." in prompt
        assert "in Chinese" in prompt
        assert "one short example" in prompt


class TestSchema:
    def test_all_fields_required(self):
        item = QUESTION_BATCH_SCHEMA["items"]
        assert QUESTION_BATCH_SCHEMA["type"] == "array"
        assert set(item["required"]) == set(item["properties"]) == set(QUESTION_FIELDS)
        assert item["properties"]["explanation"]["required"] == ["rule", "examples", "commonErrors"]

    def test_serializable(self):
        assert json.loads(json.dumps(QUESTION_BATCH_SCHEMA)) == QUESTION_BATCH_SCHEMA
