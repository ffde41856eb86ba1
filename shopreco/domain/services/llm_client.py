# shopreco/domain/services/llm_client.py

from __future__ import annotations
from functools import lru_cache
from time import monotonic as _now
from typing import Optional, Protocol
import logging

from openai import AsyncOpenAI

from shopreco.core.config import get_settings
from shopreco.domain.services.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class LLMClient(Protocol):
    """Single capability the recommendation pipeline needs: prompt in, free text out."""

    async def generate(self, prompt: str) -> str: ...


class OpenAILLMClient:
    """
    Chat-completions backed generator.
    Every request carries an explicit timeout; errors propagate to the caller,
    which owns the fallback.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_s: float = 30,
        temperature: float = 0.2,
        max_tokens: int = 2048,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.timeout_s = timeout_s
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client = client or AsyncOpenAI(api_key=api_key, max_retries=1)

    async def generate(self, prompt: str) -> str:
        t0 = _now()
        resp = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout_s,
        )
        dt = _now() - t0
        # Best-effort usage logging
        u = getattr(resp, "usage", None)
        logger.info(
            "LLM call model=%s duration=%.3fs tokens(prompt=%s, completion=%s, total=%s) prompt_chars=%s",
            getattr(resp, "model", self.model), dt,
            getattr(u, "prompt_tokens", None), getattr(u, "completion_tokens", None),
            getattr(u, "total_tokens", None), len(prompt),
        )
        return resp.choices[0].message.content or ""


@lru_cache
def get_llm_client() -> OpenAILLMClient:
    settings = get_settings()
    return OpenAILLMClient(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        timeout_s=settings.openai_timeout_s,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )
