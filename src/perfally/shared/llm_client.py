"""Async OpenAI API wrapper used for remediation-plan generation."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Protocol

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2048

TokensCallback = Callable[[int, int], None]
"""Called with (input_tokens, output_tokens) when a completion finishes."""


class CompletionClient(Protocol):
    async def simple_completion(
        self,
        *,
        model: str,
        system: str,
        user_message: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        on_tokens: TokensCallback | None = None,
    ) -> str: ...


class LLMClient:
    """Thin async wrapper around the OpenAI SDK.

    One request per call, no tools and no retry. The model identifier is
    chosen by the caller per request.
    """

    def __init__(self, api_key: str, *, timeout: float | None = None) -> None:
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def simple_completion(
        self,
        *,
        model: str,
        system: str,
        user_message: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        on_tokens: TokensCallback | None = None,
    ) -> str:
        """Single request/response; returns the assistant text ('' when empty)."""
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user_message},
            ],
        }
        response = await self._client.chat.completions.create(**kwargs)
        usage = getattr(response, "usage", None)
        if on_tokens and usage:
            on_tokens(getattr(usage, "prompt_tokens", 0), getattr(usage, "completion_tokens", 0))
        return response.choices[0].message.content or ""


def build_llm_client(api_key: str | None, *, timeout: float | None = None) -> LLMClient | None:
    """Return a client, or ``None`` when no credential is configured.

    ``None`` is the signal for "AI plans unavailable"; no SDK object is
    constructed in that case.
    """
    if not api_key:
        logger.info("No OpenAI API key configured; AI action plans disabled")
        return None
    return LLMClient(api_key, timeout=timeout)


# ======================================================================
# Dry-run client, zero API calls
# ======================================================================

_DRY_RUN_PLAN = json.dumps([
    {
        "title": "Defer render-blocking scripts",
        "action": "Load non-critical JavaScript with defer or async so the browser can paint before it executes.",
        "steps": [
            "List the scripts flagged as render-blocking",
            "Add defer to scripts that don't touch above-the-fold content",
            "Re-run the audit and compare FCP",
        ],
        "why": "Faster first paint keeps visitors from bouncing before the page appears.",
        "difficulty": "Easy",
    },
    {
        "title": "Serve the hero image in a modern format",
        "action": "Convert the largest above-the-fold image to WebP or AVIF and size it for the viewport.",
        "steps": [
            "Export the hero image as AVIF with a WebP fallback",
            "Add width and height attributes",
            "Mark it fetchpriority=high",
        ],
        "why": "The hero image is usually the LCP element; a smaller file shortens LCP directly.",
        "difficulty": "Medium",
    },
    {
        "title": "Add missing meta description",
        "action": "Write a unique meta description of 120-160 characters for this page.",
        "steps": ["Draft a description summarizing the page", "Add it to the page head"],
        "why": "Search engines show it as the result snippet, which affects click-through.",
        "difficulty": "Easy",
    },
    {
        "title": "Reserve space for embeds",
        "action": "Give ads, iframes and late-loading banners a fixed min-height so content doesn't shift.",
        "steps": ["Identify elements that shift after load", "Set explicit dimensions or aspect-ratio"],
        "why": "Layout shifts cause misclicks and count against CLS.",
        "difficulty": "Medium",
    },
])


class DryRunClient:
    """Drop-in replacement for LLMClient that makes zero API calls."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def simple_completion(
        self,
        *,
        model: str,
        system: str,
        user_message: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        on_tokens: TokensCallback | None = None,
    ) -> str:
        self.calls.append(model)
        logger.info("[dry-run] completion requested from %s (%d chars)", model, len(user_message))
        return _DRY_RUN_PLAN
