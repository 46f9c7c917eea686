"""
Single prompt/response round trips to the generative-AI model.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import backoff
import openai
from openai import AsyncOpenAI

from brewpress.core.errors import AIError, RateLimited

logger = logging.getLogger(__name__)

# Rate limiting configuration
COOLDOWN_SECONDS = 30
RATE_LIMIT_BASE_WAIT = 60
MAX_RETRIES = 3


def is_rate_limited(error: BaseException) -> bool:
    """
    Tell rate-limit failures apart from every other model error.

    Args:
        error: Exception raised by the backend

    Returns:
        True for openai.RateLimitError or anything carrying HTTP status 429
    """
    if isinstance(error, openai.RateLimitError):
        return True
    for attr in ("status_code", "status"):
        if getattr(error, attr, None) == 429:
            return True
    return False


class OpenAIBackend:
    """
    Text generation through any OpenAI-compatible chat completions endpoint.

    The default base URL is Gemini's OpenAI-compatible API.
    """
    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None):
        self.model = model
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    async def generate(self, prompt: str) -> str:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""


class AIGateway:
    """
    Throttled access to the AI backend.

    Every successful call is followed by a fixed cooldown, rate-limit
    failures are retried with exponential backoff, anything else fails fast.
    """
    def __init__(
        self,
        backend,
        cooldown: float = COOLDOWN_SECONDS,
        base_wait: float = RATE_LIMIT_BASE_WAIT,
        max_retries: int = MAX_RETRIES,
    ):
        """
        Initialize the AIGateway.

        Args:
            backend: Object with an async generate(prompt) -> str method
            cooldown: Seconds to wait after every successful response
            base_wait: First rate-limit wait; doubles on each retry
            max_retries: Rate-limit retries before giving up
        """
        self.backend = backend
        self.cooldown = cooldown
        self.base_wait = base_wait
        self.max_retries = max_retries

    def _on_backoff(self, details: Dict[str, Any]) -> None:
        logger.warning(
            f"Rate limited by AI backend, waiting {details['wait']:.0f}s "
            f"before retry {details['tries']}/{self.max_retries}"
        )

    async def analyze(self, prompt: str) -> str:
        """
        Send one prompt and return the model's text.

        Args:
            prompt: Prompt text

        Returns:
            Response text

        Raises:
            RateLimited: If rate limiting persists after all retries
            AIError: On any other backend failure
        """
        generate = backoff.on_exception(
            backoff.expo,
            Exception,
            max_tries=self.max_retries + 1,
            giveup=lambda e: not is_rate_limited(e),
            on_backoff=self._on_backoff,
            jitter=None,
            factor=self.base_wait,
        )(self.backend.generate)

        try:
            text = await generate(prompt)
        except Exception as e:
            if is_rate_limited(e):
                logger.error(f"AI backend still rate limiting after {self.max_retries} retries")
                raise RateLimited(str(e)) from e
            logger.error(f"AI request failed: {e}")
            raise AIError(str(e)) from e

        logger.info("Received AI response")
        if self.cooldown > 0:
            logger.debug(f"Waiting {self.cooldown}s to stay under AI rate limits")
            await asyncio.sleep(self.cooldown)

        return text
