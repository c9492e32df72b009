"""
Model access for the trainer: waiter replies and intent analysis both go
through call_llm(), which tries LLM_MODEL and then LLM_FALLBACK_MODEL, each
with its own timeout.

No GOOGLE_API_KEY means every call raises LLMError straight away; the waiter
and the semantic classifier then use their offline paths.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from functools import lru_cache
from typing import Any

import google.generativeai as genai

from safeorder.config import settings

logger = logging.getLogger(__name__)

_RATE_LIMIT_MARKERS = ("resource_exhausted", "429", "quota", "rate limit")
_FENCE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?```\s*$", re.DOTALL)
_MAX_OUTPUT_TOKENS = 1024


class LLMError(Exception):
    """No configured model returned a usable response."""


def _rate_limited(exc: Exception) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _RATE_LIMIT_MARKERS)


@lru_cache(maxsize=4)
def _get_model(name: str) -> genai.GenerativeModel:
    genai.configure(api_key=settings.google_api_key)
    return genai.GenerativeModel(name)


async def _call_model(
    model: genai.GenerativeModel, prompt: str, timeout: int, temperature: float
) -> str:
    config = genai.GenerationConfig(
        temperature=temperature, max_output_tokens=_MAX_OUTPUT_TOKENS
    )
    # generate_content blocks, so it runs on a worker thread
    response = await asyncio.wait_for(
        asyncio.to_thread(model.generate_content, prompt, generation_config=config),
        timeout=timeout,
    )
    return response.text.strip()


async def call_llm(prompt: str, temperature: float = 0.3) -> str:
    """Raw text from the first model that answers. Raises LLMError when none does."""
    if not settings.google_api_key:
        raise LLMError("GOOGLE_API_KEY is not configured")

    attempts = (
        (settings.llm_model, settings.llm_timeout_seconds),
        (settings.llm_fallback_model, settings.llm_fallback_timeout_seconds),
    )
    last_exc: Exception | None = None
    for attempt, (name, timeout) in enumerate(attempts):
        try:
            text = await _call_model(_get_model(name), prompt, timeout, temperature)
        except Exception as exc:
            last_exc = exc
            reason = "rate limited" if _rate_limited(exc) else repr(exc)
            logger.warning("Model '%s' unavailable: %s", name, reason)
            continue
        if attempt:
            logger.info("Answered by fallback model '%s'", name)
        logger.debug("Model '%s' replied:\n%s", name, text)
        return text

    raise LLMError(
        f"No model answered ({settings.llm_model}, {settings.llm_fallback_model}): {last_exc!r}"
    ) from last_exc


def strip_fences(text: str) -> str:
    """Unwrap a ```json ... ``` block; other text is only trimmed."""
    cleaned = text.strip()
    match = _FENCE.match(cleaned)
    if match:
        return match.group(1).strip()
    if cleaned.startswith("```"):
        # Opening fence without a closing one
        return cleaned.split("\n", 1)[1].strip() if "\n" in cleaned else ""
    return cleaned


async def call_llm_json(prompt: str) -> Any:
    """call_llm() at low temperature, parsed as JSON. Raises LLMError on bad JSON."""
    raw = await call_llm(prompt, temperature=0.1)
    try:
        return json.loads(strip_fences(raw))
    except json.JSONDecodeError as exc:
        logger.warning("Model returned invalid JSON (%s): %s", exc, raw)
        raise LLMError(f"Invalid JSON from model: {exc}") from exc
