import asyncio

import pytest
from langchain_core.messages import AIMessage

from app.core.config import Settings
from app.services.ai_service import (
    EMPTY_RESPONSE,
    FALLBACK_RESPONSE,
    LEGAL_ASSISTANT_PROMPT,
    AIService,
    build_system_prompt,
)


class StubLLM:
    def __init__(self, reply=None, error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.messages = None

    async def ainvoke(self, messages):
        self.messages = messages
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def configured_settings() -> Settings:
    return Settings(_env_file=None, OPENAI_API_KEY="sk-test", AI_TIMEOUT_SECONDS=0.2)


def _service_with(settings: Settings, llm: StubLLM) -> AIService:
    service = AIService(settings)
    service._get_llm = lambda: llm
    return service


class TestSystemPrompt:
    def test_without_context(self):
        assert build_system_prompt(None) == LEGAL_ASSISTANT_PROMPT

    def test_with_context(self):
        prompt = build_system_prompt("Case: Smith v. Jones")
        assert prompt.startswith(LEGAL_ASSISTANT_PROMPT)
        assert "Current Case Context:\nCase: Smith v. Jones" in prompt


class TestGenerateResponse:
    async def test_unconfigured_returns_fallback(self):
        service = AIService(Settings(_env_file=None, OPENAI_API_KEY=""))
        result = await service.generate_response("Hello")
        assert result.response == FALLBACK_RESPONSE
        assert result.model == "gpt-3.5-turbo"
        assert result.tokens == 0

    async def test_successful_completion(self, configured_settings):
        reply = AIMessage(
            content="  General information only.  ",
            usage_metadata={"input_tokens": 20, "output_tokens": 10, "total_tokens": 30},
            response_metadata={"model_name": "gpt-3.5-turbo-0125"},
        )
        llm = StubLLM(reply=reply)
        result = await _service_with(configured_settings, llm).generate_response("Question?", "Case: X")

        assert result.response == "General information only."
        assert result.tokens == 30
        assert result.model == "gpt-3.5-turbo-0125"
        assert result.response_time >= 0

        system, human = llm.messages
        assert "Case: X" in system.content
        assert human.content == "Question?"

    async def test_empty_completion(self, configured_settings):
        llm = StubLLM(reply=AIMessage(content="   "))
        result = await _service_with(configured_settings, llm).generate_response("Question?")
        assert result.response == EMPTY_RESPONSE
        assert result.tokens == 0

    async def test_error_returns_fallback(self, configured_settings):
        llm = StubLLM(error=RuntimeError("upstream down"))
        result = await _service_with(configured_settings, llm).generate_response("Question?")
        assert result.response == FALLBACK_RESPONSE

    async def test_timeout_returns_fallback(self, configured_settings):
        llm = StubLLM(reply=AIMessage(content="too late"), delay=1.0)
        result = await _service_with(configured_settings, llm).generate_response("Question?")
        assert result.response == FALLBACK_RESPONSE
