"""Tests for the OpenAI wrapper and the dry-run client."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from perfally.shared.llm_client import DryRunClient, LLMClient, build_llm_client


def _response(content: str | None, usage: bool = True) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=120, completion_tokens=45) if usage else None,
    )


class TestSimpleCompletion:
    @pytest.mark.asyncio
    async def test_returns_text(self, mock_llm_client: LLMClient) -> None:
        mock_llm_client._client.chat.completions.create = AsyncMock(return_value=_response("Hello"))

        result = await mock_llm_client.simple_completion(
            model="small-model", system="Be brief.", user_message="Hi", max_tokens=64,
        )

        assert result == "Hello"
        kwargs = mock_llm_client._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "small-model"
        assert kwargs["max_tokens"] == 64
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "Hi"},
        ]

    @pytest.mark.asyncio
    async def test_empty_content(self, mock_llm_client: LLMClient) -> None:
        mock_llm_client._client.chat.completions.create = AsyncMock(return_value=_response(None))
        assert await mock_llm_client.simple_completion(model="m", system="s", user_message="u") == ""

    @pytest.mark.asyncio
    async def test_reports_token_usage(self, mock_llm_client: LLMClient) -> None:
        mock_llm_client._client.chat.completions.create = AsyncMock(return_value=_response("ok"))
        seen: list[tuple[int, int]] = []

        await mock_llm_client.simple_completion(
            model="m", system="s", user_message="u", on_tokens=lambda i, o: seen.append((i, o)),
        )
        assert seen == [(120, 45)]

    @pytest.mark.asyncio
    async def test_errors_propagate(self, mock_llm_client: LLMClient) -> None:
        mock_llm_client._client.chat.completions.create = AsyncMock(side_effect=RuntimeError("boom"))
        with pytest.raises(RuntimeError, match="boom"):
            await mock_llm_client.simple_completion(model="m", system="s", user_message="u")


class TestBuildClient:
    def test_without_key(self) -> None:
        assert build_llm_client(None) is None

    def test_with_key(self) -> None:
        client = build_llm_client("sk-test", timeout=10)
        assert isinstance(client, LLMClient)


class TestDryRunClient:
    @pytest.mark.asyncio
    async def test_canned_plan(self) -> None:
        client = DryRunClient()
        text = await client.simple_completion(model="small-model", system="s", user_message="u")
        items = json.loads(text)
        assert len(items) == 4
        assert all({"title", "action", "steps", "why", "difficulty"} <= item.keys() for item in items)
        assert client.calls == ["small-model"]
