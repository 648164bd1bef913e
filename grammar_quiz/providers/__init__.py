from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from grammar_quiz.config import Settings
    from grammar_quiz.providers.base import LLMProvider


def create_llm(s: Settings) -> LLMProvider:
    if s.llm_provider == "gemini":
        from grammar_quiz.providers.llm_gemini import GeminiProvider
        return GeminiProvider(model=s.llm_model)
    elif s.llm_provider == "ollama":
        from grammar_quiz.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=s.ollama_url, model=s.llm_model)
    elif s.llm_provider == "anthropic":
        from grammar_quiz.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=s.llm_model)
    elif s.llm_provider == "openai":
        from grammar_quiz.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=s.llm_model)
    raise ValueError(f"Unknown LLM provider: {s.llm_provider}")
