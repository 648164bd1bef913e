from __future__ import annotations

import logging
import os
import time

from grammar_quiz.providers.base import LLMProvider, schema_instruction

log = logging.getLogger("grammar_quiz.llm")


class OpenAIProvider(LLMProvider):
    def __init__(self, model: str = "gpt-4o-mini"):
        import openai
        self.client = openai.AsyncOpenAI(api_key=os.environ.get("OPENAI_API_KEY", ""))
        self.model = model

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        thinking: bool = True,
        schema: dict | None = None,
    ) -> str:
        # JSON mode only allows a top-level object, and question batches are arrays
        messages = [{"role": "user", "content": prompt}]
        if schema is not None:
            messages.insert(0, {"role": "system", "content": schema_instruction(schema)})

        t0 = time.monotonic()
        resp = await self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            messages=messages,
        )
        text = resp.choices[0].message.content or ""
        log.info("── RESPONSE %s (%.1fs) ──\n%s", self.model, time.monotonic() - t0, text)
        return text

    def name(self) -> str:
        return f"openai/{self.model}"
