from __future__ import annotations

import json
from abc import ABC, abstractmethod


def schema_instruction(schema: dict) -> str:
    """System text for providers that cannot enforce a response schema."""
    return (
        "Respond with JSON only, no prose and no code fences. "
        "The JSON must validate against this schema:\n"
        + json.dumps(schema, indent=2)
    )


class LLMProvider(ABC):
    @abstractmethod
    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        thinking: bool = True,
        schema: dict | None = None,
    ) -> str:
        """Return the model's text response.

        *schema* is a JSON Schema for the expected output. Gemini and Ollama
        enforce it; OpenAI and Anthropic get it as a system instruction.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        ...
