"""Ask the LLM for a batch of grammar questions and validate what comes back."""
from __future__ import annotations

import json
import logging
import re
import uuid
from typing import TYPE_CHECKING

from grammar_quiz.models import Difficulty, Explanation, GrammarPoint, Question, QuizFilter
from grammar_quiz.prompts import QUESTION_BATCH_SCHEMA, QUESTION_FIELDS, format_question_prompt

if TYPE_CHECKING:
    from grammar_quiz.providers.base import LLMProvider

_log = logging.getLogger("grammar_quiz.qgen")

OPTION_COUNT = 4
DEFAULT_LEARNER_PROFILE = "Chinese middle school students"


class GenerationError(Exception):
    """A question batch could not be produced."""


def _extract_json(text: str) -> list | dict | None:
    """Extract a JSON array (or object) from an LLM response.

    Strips ``<think>`` blocks first, then tries the whole text, then a
    code-fenced block, then balanced ``[…]`` / ``{…}`` blocks, preferring
    the *last* match since models often draft before the final answer.
    """
    text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL).strip()
    if not text:
        return None

    # 1. Structured-output providers return bare JSON
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # 2. JSON inside a code fence
    m = re.search(r"```(?:json)?\s*\n?([\[{].*?[\]}])\s*\n?```", text, re.DOTALL)
    if m:
        try:
            return json.loads(m.group(1))
        except json.JSONDecodeError:
            pass

    # 3. Balanced top-level blocks, last-first
    for candidate in reversed(_find_json_blocks(text)):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    return None


def _find_json_blocks(text: str) -> list[str]:
    """Find balanced top-level ``[…]`` or ``{…}`` substrings in *text*."""
    results: list[str] = []
    i = 0
    while i < len(text):
        if text[i] in "[{":
            depth = 0
            in_str = False
            escape = False
            start = i
            for j in range(i, len(text)):
                ch = text[j]
                if escape:
                    escape = False
                    continue
                if ch == "\\":
                    escape = True
                    continue
                if ch == '"':
                    in_str = not in_str
                    continue
                if in_str:
                    continue
                if ch in "[{":
                    depth += 1
                elif ch in "]}":
                    depth -= 1
                    if depth == 0:
                        results.append(text[start : j + 1])
                        i = j + 1
                        break
            else:
                # Unbalanced, skip this opening bracket
                i += 1
        else:
            i += 1
    return results


def _coerce_enum(enum_cls, value):
    if not isinstance(value, str):
        return None
    for member in enum_cls:
        if member.value.lower() == value.strip().lower():
            return member
    return None


def _validate_question(data: dict, quiz_filter: QuizFilter) -> str | None:
    """Validate one generated question and fill in what can be defaulted.

    Returns ``None`` on success (data is valid and patched in-place), or a
    human-readable reason string on failure.
    """
    if not isinstance(data, dict):
        return f"expected object, got {type(data).__name__}"

    # id, difficulty and category can be backfilled; everything else is required
    if not data.get("id"):
        data["id"] = uuid.uuid4().hex[:9]
    else:
        data["id"] = str(data["id"])

    difficulty = _coerce_enum(Difficulty, data.get("difficulty")) or quiz_filter.difficulty
    if difficulty is None:
        return f"unknown difficulty: {data.get('difficulty')!r}"
    data["difficulty"] = difficulty

    category = _coerce_enum(GrammarPoint, data.get("category")) or quiz_filter.category
    if category is None:
        return f"unknown category: {data.get('category')!r}"
    data["category"] = category

    missing = [f for f in QUESTION_FIELDS if f not in data]
    if missing:
        return f"missing fields: {', '.join(missing)}"

    for key in ("sentenceBefore", "sentenceAfter", "correctAnswer"):
        if not isinstance(data[key], str):
            return f"{key} must be a string"
    if not data["sentenceBefore"].strip() and not data["sentenceAfter"].strip():
        return "sentence is empty"

    options = data["options"]
    if not isinstance(options, list) or len(options) != OPTION_COUNT:
        n = len(options) if isinstance(options, list) else type(options).__name__
        return f"options must be list of {OPTION_COUNT} (got {n})"
    if not all(isinstance(o, str) and o.strip() for o in options):
        return "options must be non-empty strings"
    if len({o.strip() for o in options}) != OPTION_COUNT:
        return f"duplicate options: {options}"

    # Correctness is exact string equality later, so pin the answer to the option text
    correct = data["correctAnswer"]
    if correct not in options:
        match = next((o for o in options if o.strip() == correct.strip()), None)
        if match is None:
            return f"correctAnswer {correct!r} is not one of the options {options}"
        data["correctAnswer"] = match

    explanation = data["explanation"]
    if not isinstance(explanation, dict):
        return "explanation must be an object"
    missing = [f for f in ("rule", "examples", "commonErrors") if f not in explanation]
    if missing:
        return f"explanation missing fields: {', '.join(missing)}"
    examples = explanation["examples"]
    if isinstance(examples, str):
        explanation["examples"] = examples = [examples]
    if not isinstance(examples, list) or not any(isinstance(e, str) and e.strip() for e in examples):
        return "explanation.examples must be a non-empty list"
    return None


def _build_question(data: dict) -> Question:
    explanation = data["explanation"]
    return Question(
        id=data["id"],
        sentence_before=data["sentenceBefore"].strip(),
        sentence_after=data["sentenceAfter"].strip(),
        options=list(data["options"]),
        correct_answer=data["correctAnswer"],
        difficulty=data["difficulty"],
        category=data["category"],
        explanation=Explanation(
            rule=str(explanation["rule"]),
            examples=[e for e in explanation["examples"] if isinstance(e, str) and e.strip()],
            common_errors=str(explanation["commonErrors"]),
        ),
    )


def parse_questions(text: str, quiz_filter: QuizFilter) -> list[Question]:
    """Turn a raw LLM response into validated questions.

    Invalid items are dropped with a warning; raises ``GenerationError`` if
    nothing usable is left.
    """
    parsed = _extract_json(text)
    if isinstance(parsed, dict):
        # Some models wrap the array: {"questions": [...]}
        parsed = next((v for v in parsed.values() if isinstance(v, list)), None)
    if not isinstance(parsed, list):
        raise GenerationError("Response did not contain a JSON array")

    questions: list[Question] = []
    seen_ids: set[str] = set()
    for i, item in enumerate(parsed):
        reason = _validate_question(item, quiz_filter)
        if reason:
            _log.warning("  Dropped question %d: %s", i + 1, reason)
            continue
        if item["id"] in seen_ids:
            item["id"] = uuid.uuid4().hex[:9]
        seen_ids.add(item["id"])
        questions.append(_build_question(item))

    if not questions:
        raise GenerationError("No valid questions returned from AI.")
    return questions


async def generate_questions(
    llm: LLMProvider,
    quiz_filter: QuizFilter,
    count: int = 5,
    learner_profile: str = DEFAULT_LEARNER_PROFILE,
    temperature: float = 1.0,
    thinking: bool = False,
) -> list[Question]:
    """Generate one batch of questions matching *quiz_filter*.

    No retries here: the caller decides whether to ask again.
    """
    if count < 1:
        raise ValueError(f"count must be positive (got {count})")

    prompt = format_question_prompt(quiz_filter, count, learner_profile)
    _log.info("Generate %d questions (%s / %s)", count,
              quiz_filter.to_dict()["difficulty"], quiz_filter.to_dict()["category"])
    try:
        response = await llm.generate(
            prompt,
            temperature=temperature,
            thinking=thinking,
            schema=QUESTION_BATCH_SCHEMA,
        )
    except Exception as e:
        _log.warning("Question generation failed: %s", e)
        raise GenerationError(str(e)) from e

    if not response or not response.strip():
        raise GenerationError("Empty response from AI.")

    questions = parse_questions(response, quiz_filter)
    _log.info("  Got %d valid questions from %s", len(questions), llm.name())
    return questions
