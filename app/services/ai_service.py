import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from app.core.config import Settings

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = (
    "I apologize, but I'm experiencing technical difficulties. Please try again later."
)
EMPTY_RESPONSE = "I apologize, but I could not generate a response at this time."

LEGAL_ASSISTANT_PROMPT = """You are an AI legal assistant for LawCaseAI, a platform that helps lawyers manage their cases more efficiently.

Your role is to:
1. Provide helpful, accurate legal information and guidance
2. Assist with case management and document analysis
3. Suggest best practices for legal workflows
4. Help lawyers understand complex legal concepts
5. Always maintain professional and ethical standards

Important guidelines:
- Never provide legal advice that could be considered as practicing law without a license
- Always suggest consulting with qualified attorneys for specific legal matters
- Be helpful but acknowledge the limitations of AI in legal contexts
- Focus on general legal information and process guidance
- Maintain confidentiality and professionalism"""


@dataclass(frozen=True)
class CompletionResult:
    response: str
    model: str
    tokens: int
    response_time: int  # milliseconds


def build_system_prompt(case_context: Optional[str] = None) -> str:
    if not case_context:
        return LEGAL_ASSISTANT_PROMPT
    return (
        f"{LEGAL_ASSISTANT_PROMPT}\n\n"
        f"Current Case Context:\n{case_context}\n\n"
        "Please provide assistance based on the above case information."
    )


class AIService:
    """Thin wrapper around the chat completion service used by the case assistant."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.model_name = settings.OPENAI_MODEL
        self.timeout = settings.AI_TIMEOUT_SECONDS
        self._llm: Optional[ChatOpenAI] = None

    @property
    def configured(self) -> bool:
        return self.settings.ai_configured

    def _get_llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = ChatOpenAI(
                model=self.model_name,
                temperature=self.settings.AI_TEMPERATURE,
                max_tokens=self.settings.AI_MAX_TOKENS,
                api_key=self.settings.OPENAI_API_KEY,
                base_url=self.settings.OPENAI_BASE_URL,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._llm

    def _fallback(self) -> CompletionResult:
        return CompletionResult(response=FALLBACK_RESPONSE, model=self.model_name, tokens=0, response_time=0)

    async def generate_response(self, prompt: str, case_context: Optional[str] = None) -> CompletionResult:
        """
        Ask the completion service for a reply. Never raises: any failure or
        timeout yields the fixed fallback reply.
        """
        if not self.configured:
            logger.warning("Completion service not configured; returning fallback reply")
            return self._fallback()

        messages = [
            SystemMessage(content=build_system_prompt(case_context)),
            HumanMessage(content=prompt),
        ]
        start = time.perf_counter()
        try:
            reply = await asyncio.wait_for(self._get_llm().ainvoke(messages), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Completion service timed out after {self.timeout}s")
            return self._fallback()
        except Exception as e:
            logger.error(f"Completion service error: {e}")
            return self._fallback()

        response_time = int((time.perf_counter() - start) * 1000)
        usage = getattr(reply, "usage_metadata", None) or {}
        model = (getattr(reply, "response_metadata", None) or {}).get("model_name") or self.model_name
        content = reply.content if isinstance(reply.content, str) else ""
        return CompletionResult(
            response=content.strip() or EMPTY_RESPONSE,
            model=model,
            tokens=usage.get("total_tokens", 0),
            response_time=response_time,
        )

    async def check_connection(self) -> bool:
        return self.configured


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service
