from __future__ import annotations

import logging
import os
import time

from grammar_quiz.providers.base import LLMProvider

log = logging.getLogger("grammar_quiz.llm")


def _gemini_schema(schema: dict) -> dict:
    """Convert a JSON Schema dict to Gemini's dialect (upper-case type names)."""
    converted: dict = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            converted[key] = value.upper()
        elif key == "properties":
            converted[key] = {k: _gemini_schema(v) for k, v in value.items()}
        elif key == "items":
            converted[key] = _gemini_schema(value)
        else:
            converted[key] = value
    return converted


class GeminiProvider(LLMProvider):
    def __init__(self, model: str = "gemini-2.5-flash"):
        import google.generativeai as genai

        # A missing key is left for the API to reject on first call.
        genai.configure(api_key=os.environ.get("GEMINI_API_KEY", ""))
        self._genai = genai
        self.model = model

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.7,
        thinking: bool = True,
        schema: dict | None = None,
    ) -> str:
        config: dict = {"temperature": temperature}
        if schema is not None:
            config["response_mime_type"] = "application/json"
            config["response_schema"] = _gemini_schema(schema)

        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        t0 = time.monotonic()
        model = self._genai.GenerativeModel(self.model)
        response = await model.generate_content_async(prompt, generation_config=config)
        text = response.text
        log.info("── RESPONSE (%.1fs) ──\n%s", time.monotonic() - t0, text)
        return text

    def name(self) -> str:
        return f"gemini/{self.model}"
