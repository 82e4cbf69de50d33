"""
app/services/ai_service.py

Purpose: AI answer generation

- Single stateless completion call to an OpenAI-compatible API (OpenRouter by default)
- Fixed system prompt and token cap from settings
- Raises AIServiceError on any provider failure; no retries here
"""

from typing import Optional

from openai import AsyncOpenAI

from app.core.config import settings
from app.core.exceptions import AIServiceError
from app.core.logging import get_logger

logger = get_logger(__name__)


class AIService:
    def __init__(self):
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        # Created on first use so the app starts without an API key
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.AI_BASE_URL,
                timeout=settings.AI_TIMEOUT_SECONDS,
                max_retries=0,
                default_headers={"X-Title": "Answer Bot AI"},
            )
        return self._client

    async def generate(self, prompt_text: str) -> str:
        """
        Generates an answer for the user's question.

        Raises:
            AIServiceError: On transport, quota or model errors, or an empty answer
        """
        logger.info(f"🤖 Generating AI response for: {prompt_text[:50]}")

        try:
            completion = await self.client.chat.completions.create(
                model=settings.AI_MODEL,
                messages=[
                    {"role": "system", "content": settings.SYSTEM_PROMPT},
                    {"role": "user", "content": prompt_text},
                ],
                max_tokens=settings.AI_MAX_TOKENS,
            )
        except Exception as e:
            logger.error(f"❌ AI provider error: {e}")
            raise AIServiceError(details={"error": str(e)}) from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise AIServiceError("AI provider returned an empty response")

        answer = content.strip()
        logger.info(f"✅ AI response generated ({len(answer)} chars)")
        return answer


# Singleton instance
ai_service = AIService()
