from __future__ import annotations

import logging

from groq import Groq

from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)


class LLMUnavailableError(RuntimeError):
    """Raised when the LLM is disabled or no API key is configured."""


def complete_text(
    system: str,
    user: str,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> str:
    """
    Send one system + user prompt to Groq and return the raw reply text.

    The reply is returned untouched: it may carry markdown fences or prose
    around the payload, so parsing is the caller's job. Timeouts and API
    errors propagate to the caller.
    """
    if not config.enabled or not config.api_key:
        raise LLMUnavailableError("Groq LLM is disabled or GROQ_API_KEY is not set")

    client = Groq(api_key=config.api_key, timeout=config.timeout)
    response = client.chat.completions.create(
        model=config.model,
        messages=[
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ],
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )

    content = response.choices[0].message.content or ""
    logger.debug("Groq completion returned %d chars", len(content))
    return content.strip()
