"""Tests for LLM providers: selection, schema conversion and request shape."""
from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from grammar_quiz.config import Settings
from grammar_quiz.prompts import QUESTION_BATCH_SCHEMA
from grammar_quiz.providers import create_llm
from grammar_quiz.providers.base import schema_instruction
from grammar_quiz.providers import llm_ollama
from grammar_quiz.providers.llm_anthropic import AnthropicProvider
from grammar_quiz.providers.llm_gemini import GeminiProvider, _gemini_schema
from grammar_quiz.providers.llm_ollama import OllamaProvider
from grammar_quiz.providers.llm_openai import OpenAIProvider


class TestCreateLLM:
    def test_ollama(self):
        llm = create_llm(Settings(llm_provider="ollama", llm_model="qwen3:8b",
                                  ollama_url="http://gpu-box:11434/"))
        assert isinstance(llm, OllamaProvider)
        assert llm.base_url == "http://gpu-box:11434"
        assert llm.name() == "ollama/qwen3:8b"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            create_llm(Settings(llm_provider="carrier-pigeon"))


class TestGeminiSchema:
    def test_types_upper_cased(self):
        converted = _gemini_schema(QUESTION_BATCH_SCHEMA)
        item = converted["items"]
        assert converted["type"] == "ARRAY"
        assert item["type"] == "OBJECT"
        assert item["properties"]["options"] == {"type": "ARRAY", "items": {"type": "STRING"}}
        assert item["properties"]["explanation"]["properties"]["rule"]["type"] == "STRING"

    def test_required_kept(self):
        converted = _gemini_schema(QUESTION_BATCH_SCHEMA)
        assert converted["items"]["required"] == QUESTION_BATCH_SCHEMA["items"]["required"]

    def test_input_untouched(self):
        _gemini_schema(QUESTION_BATCH_SCHEMA)
        assert QUESTION_BATCH_SCHEMA["type"] == "array"


class TestSchemaInstruction:
    def test_embeds_schema(self):
        text = schema_instruction(QUESTION_BATCH_SCHEMA)
        assert text.startswith("Respond with JSON only")
        assert '"correctAnswer"' in text


class FakeGeminiModel:
    calls: list[dict] = []

    def __init__(self, model_name):
        self.model_name = model_name

    async def generate_content_async(self, prompt, generation_config=None):
        FakeGeminiModel.calls.append({"model": self.model_name, "prompt": prompt,
                                      "config": generation_config})
        return SimpleNamespace(text='[{"id": "g1"}]')


class TestGenerate:
    @pytest.mark.asyncio
    async def test_gemini_structured_output(self):
        FakeGeminiModel.calls = []
        with patch("google.generativeai.configure"):
            llm = GeminiProvider(model="gemini-2.5-flash")
        llm._genai = SimpleNamespace(GenerativeModel=FakeGeminiModel)

        text = await llm.generate("make questions", temperature=1.0, schema=QUESTION_BATCH_SCHEMA)
        assert text == '[{"id": "g1"}]'
        call = FakeGeminiModel.calls[0]
        assert call["model"] == "gemini-2.5-flash"
        assert call["config"]["temperature"] == 1.0
        assert call["config"]["response_mime_type"] == "application/json"
        assert call["config"]["response_schema"]["type"] == "ARRAY"

    @pytest.mark.asyncio
    async def test_gemini_plain_text(self):
        FakeGeminiModel.calls = []
        with patch("google.generativeai.configure"):
            llm = GeminiProvider()
        llm._genai = SimpleNamespace(GenerativeModel=FakeGeminiModel)

        await llm.generate("explain", temperature=0.7)
        assert FakeGeminiModel.calls[0]["config"] == {"temperature": 0.7}

    @pytest.mark.asyncio
    async def test_ollama_sends_format(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(200, json={"response": "[]", "eval_count": 3})

        real_client = httpx.AsyncClient
        transport = httpx.MockTransport(handler)
        llm = OllamaProvider(base_url="http://ollama:11434", model="qwen3:8b")
        with patch.object(llm_ollama.httpx, "AsyncClient",
                          lambda **kw: real_client(transport=transport, **kw)):
            text = await llm.generate("make questions", schema=QUESTION_BATCH_SCHEMA)

        assert text == "[]"
        assert seen["url"] == "http://ollama:11434/api/generate"
        body = json.loads(seen["body"])
        assert body["format"] == QUESTION_BATCH_SCHEMA
        assert body["stream"] is False

    @pytest.mark.asyncio
    async def test_openai_schema_as_system_message(self):
        llm = OpenAIProvider(model="gpt-4o-mini")
        create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="[]"))],
        ))
        llm.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        assert await llm.generate("make questions", schema=QUESTION_BATCH_SCHEMA) == "[]"
        messages = create.call_args.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert "correctAnswer" in messages[0]["content"]
        assert messages[1] == {"role": "user", "content": "make questions"}

    @pytest.mark.asyncio
    async def test_openai_without_schema(self):
        llm = OpenAIProvider()
        create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None))],
        ))
        llm.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        assert await llm.generate("explain") == ""
        assert [m["role"] for m in create.call_args.kwargs["messages"]] == ["user"]

    @pytest.mark.asyncio
    async def test_anthropic_schema_as_system(self):
        llm = AnthropicProvider(model="claude-sonnet-4-20250514")
        create = AsyncMock(return_value=SimpleNamespace(content=[
            SimpleNamespace(type="thinking", text="ignored"),
            SimpleNamespace(type="text", text="[{"),
            SimpleNamespace(type="text", text="}]"),
        ]))
        llm.client = SimpleNamespace(messages=SimpleNamespace(create=create))

        assert await llm.generate("make questions", schema=QUESTION_BATCH_SCHEMA) == "[{}]"
        kwargs = create.call_args.kwargs
        assert "correctAnswer" in kwargs["system"]
        assert kwargs["max_tokens"] == 4096

    @pytest.mark.asyncio
    async def test_anthropic_without_schema(self):
        llm = AnthropicProvider()
        create = AsyncMock(return_value=SimpleNamespace(content=[SimpleNamespace(type="text", text="ok")]))
        llm.client = SimpleNamespace(messages=SimpleNamespace(create=create))

        assert await llm.generate("explain") == "ok"
        assert "system" not in create.call_args.kwargs
