"""Prompt templates for question generation and mistake explanations."""
from __future__ import annotations

from grammar_quiz.models import Difficulty, GrammarPoint, QuizFilter

QUESTION_BATCH_PROMPT = """\
Generate exactly {count} English grammar fill-in-the-blank questions for {learner_profile}.
Difficulty Level: {difficulty}
Grammar Focus: {category}

Requirements:
1. Each question must be a single coherent sentence with exactly ONE blank.
2. Use sentenceBefore (text before the blank) and sentenceAfter (text after the blank).
3. The blank must sit exactly where the grammatical challenge is.
4. Options: exactly 4 distinct choices, one correct. correctAnswer must be copied \
verbatim from options.
5. Distractors: highly plausible but incorrect grammatical structures.
6. Explanation: bilingual (English/Chinese) covering the specific rule (rule), \
clear example sentences (examples, at least one) and common traps (commonErrors).
7. difficulty must be one of: {difficulty_values}.
8. category must be one of: {category_values}.

Respond with ONLY a JSON array of objects in this exact format, with no other text:
[
  {{
    "id": "q1",
    "sentenceBefore": "text before the blank",
    "sentenceAfter": "text after the blank",
    "options": ["option1", "option2", "option3", "option4"],
    "correctAnswer": "option1",
    "difficulty": "Intermediate",
    "category": "Relative Clauses",
    "explanation": {{
      "rule": "The grammar rule / 语法规则",
      "examples": ["Example sentence."],
      "commonErrors": "Typical mistakes / 常见错误"
    }}
  }}
]
"""

EXPLANATION_PROMPT = """\
Context: A student answered "{selected}" but the correct answer is "{correct}" \
for the sentence "{sentence}".
Task: Explain clearly in {language} why {correct} is right and {selected} is wrong.
Target: {learner_profile}.
Tone: Professional and encouraging.
Include the grammar rule and one short example.
"""

MIXED_CATEGORY_DESCRIPTION = "Mixed grammar (Non-finite, Relative clauses, etc.)"
MIXED_DIFFICULTY_DESCRIPTION = "Mixed (any level)"

QUESTION_FIELDS = [
    "id",
    "sentenceBefore",
    "sentenceAfter",
    "options",
    "correctAnswer",
    "difficulty",
    "category",
    "explanation",
]

QUESTION_BATCH_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "id": {"type": "string"},
            "sentenceBefore": {"type": "string"},
            "sentenceAfter": {"type": "string"},
            "options": {"type": "array", "items": {"type": "string"}},
            "correctAnswer": {"type": "string"},
            "difficulty": {"type": "string"},
            "category": {"type": "string"},
            "explanation": {
                "type": "object",
                "properties": {
                    "rule": {"type": "string"},
                    "examples": {"type": "array", "items": {"type": "string"}},
                    "commonErrors": {"type": "string"},
                },
                "required": ["rule", "examples", "commonErrors"],
            },
        },
        "required": QUESTION_FIELDS,
    },
}


def format_question_prompt(quiz_filter: QuizFilter, count: int, learner_profile: str) -> str:
    if quiz_filter.difficulty is None:
        difficulty = MIXED_DIFFICULTY_DESCRIPTION
    else:
        difficulty = quiz_filter.difficulty.value
    if quiz_filter.category is None:
        category = MIXED_CATEGORY_DESCRIPTION
    else:
        category = quiz_filter.category.value

    return QUESTION_BATCH_PROMPT.format(
        count=count,
        learner_profile=learner_profile,
        difficulty=difficulty,
        category=category,
        difficulty_values=", ".join(d.value for d in Difficulty),
        category_values=", ".join(c.value for c in GrammarPoint),
    )


def format_explanation_prompt(
    sentence: str,
    selected: str,
    correct: str,
    language: str,
    learner_profile: str,
) -> str:
    return EXPLANATION_PROMPT.format(
        sentence=sentence,
        selected=selected,
        correct=correct,
        language=language,
        learner_profile=learner_profile,
    )
