from __future__ import annotations

import logging
import os
import time

from grammar_quiz.providers.base import LLMProvider, schema_instruction

log = logging.getLogger("grammar_quiz.llm")


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "claude-sonnet-4-20250514"):
        import anthropic
        self.client = anthropic.AsyncAnthropic(api_key=os.environ.get("ANTHROPIC_API_KEY", ""))
        self.model = model

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        thinking: bool = True,
        schema: dict | None = None,
    ) -> str:
        kwargs: dict = {}
        if schema is not None:
            kwargs["system"] = schema_instruction(schema)

        t0 = time.monotonic()
        # Five questions with bilingual explanations overflow 1024 tokens
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=4096,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
            **kwargs,
        )
        text = "".join(block.text for block in message.content if block.type == "text")
        log.info("── RESPONSE %s (%.1fs) ──\n%s", self.model, time.monotonic() - t0, text)
        return text

    def name(self) -> str:
        return f"anthropic/{self.model}"
