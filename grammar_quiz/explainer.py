"""Free-text feedback for a wrong answer."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from grammar_quiz.prompts import format_explanation_prompt

if TYPE_CHECKING:
    from grammar_quiz.providers.base import LLMProvider

_log = logging.getLogger("grammar_quiz.explain")

EXPLANATION_FALLBACK = "抱歉，AI 老师暂时无法提供详细解析。"


class ExplanationError(Exception):
    """The explanation request failed or came back empty."""


async def request_explanation(
    llm: LLMProvider,
    sentence: str,
    selected: str,
    correct: str,
    language: str = "Chinese",
    learner_profile: str = "Chinese middle school students",
    temperature: float = 0.7,
) -> str:
    prompt = format_explanation_prompt(sentence, selected, correct, language, learner_profile)
    try:
        text = await llm.generate(prompt, temperature=temperature, thinking=False)
    except Exception as e:
        raise ExplanationError(str(e)) from e
    if not text or not text.strip():
        raise ExplanationError("Empty explanation from AI.")
    return text.strip()


async def explain_mistake(
    llm: LLMProvider,
    sentence: str,
    selected: str,
    correct: str,
    language: str = "Chinese",
    learner_profile: str = "Chinese middle school students",
    temperature: float = 0.7,
) -> str:
    """Explain why *correct* beats *selected*; never raises."""
    try:
        return await request_explanation(
            llm, sentence, selected, correct,
            language=language,
            learner_profile=learner_profile,
            temperature=temperature,
        )
    except ExplanationError as e:
        _log.warning("Explanation failed, using fallback: %s", e)
        return EXPLANATION_FALLBACK
