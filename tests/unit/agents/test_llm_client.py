"""Tests for the Ollama LLM client wrapper.

Verifies the async wrapper, retry logic, think-tag stripping and token
extraction without hitting a real Ollama server.
"""

from __future__ import annotations

from unittest.mock import MagicMock, Mock, patch

import httpx
import ollama
import pytest

from Grid_Rank.agents.llm_client import DEFAULT_HOST, ChatMessage, LLMClient, LLMResponse

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_mock_chat_response(
    content: str,
    model: str = "llama3.1:8b",
    prompt_eval_count: int | None = 500,
    eval_count: int | None = 200,
    total_duration: int | None = 3_000_000_000,
) -> Mock:
    """Build a mock matching ``ollama.ChatResponse`` shape."""
    response = Mock(spec=ollama.ChatResponse)
    response.message = Mock()
    response.message.content = content
    response.model = model
    response.prompt_eval_count = prompt_eval_count
    response.eval_count = eval_count
    response.total_duration = total_duration
    return response


_MESSAGES: list[ChatMessage] = [ChatMessage(role="user", content="test")]

# ---------------------------------------------------------------------------
# Chat success
# ---------------------------------------------------------------------------


class TestLLMClientChat:
    """Tests for LLMClient.chat() happy path and content processing."""

    @pytest.mark.asyncio()
    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    async def test_chat_success(self, mock_client_class: MagicMock) -> None:
        mock_instance = MagicMock()
        mock_client_class.return_value = mock_instance
        mock_instance.chat.return_value = _make_mock_chat_response('[{"id": "a"}]')

        client = LLMClient(host="http://localhost:11434", model="llama3.1:8b")
        response = await client.chat(_MESSAGES)

        assert isinstance(response, LLMResponse)
        assert response.content == '[{"id": "a"}]'
        assert response.input_tokens == 500
        assert response.output_tokens == 200
        assert response.duration_ms == 3000

    @pytest.mark.asyncio()
    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    async def test_chat_strips_think_tags(self, mock_client_class: MagicMock) -> None:
        mock_instance = MagicMock()
        mock_client_class.return_value = mock_instance
        raw = "<think>first</think>start<think>second\nblock</think>end"
        mock_instance.chat.return_value = _make_mock_chat_response(raw)

        response = await LLMClient(host="http://localhost:11434").chat(_MESSAGES)

        assert response.content == "startend"

    @pytest.mark.asyncio()
    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    async def test_missing_usage_defaults_to_zero(self, mock_client_class: MagicMock) -> None:
        mock_instance = MagicMock()
        mock_client_class.return_value = mock_instance
        mock_instance.chat.return_value = _make_mock_chat_response(
            "{}", prompt_eval_count=None, eval_count=None, total_duration=None
        )

        response = await LLMClient(host="http://localhost:11434").chat(_MESSAGES)

        assert (response.input_tokens, response.output_tokens, response.duration_ms) == (0, 0, 0)

    @pytest.mark.asyncio()
    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    async def test_json_mode_passed_to_ollama(self, mock_client_class: MagicMock) -> None:
        mock_instance = MagicMock()
        mock_client_class.return_value = mock_instance
        mock_instance.chat.return_value = _make_mock_chat_response("{}")

        client = LLMClient(host="http://localhost:11434", model="mistral:7b")
        await client.chat(_MESSAGES)
        await client.chat(_MESSAGES, json_mode=False)

        first, second = mock_instance.chat.call_args_list
        assert first.kwargs["format"] == "json"
        assert first.kwargs["model"] == "mistral:7b"
        assert second.kwargs["format"] is None


class TestLLMClientHost:
    """Host resolution from arguments and environment."""

    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    def test_env_host(self, _mock_client: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
        assert LLMClient().host == "http://gpu-box:11434"

    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    def test_default_host(self, _mock_client: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OLLAMA_HOST", raising=False)
        assert LLMClient().host == DEFAULT_HOST


# ---------------------------------------------------------------------------
# Retry behavior
# ---------------------------------------------------------------------------


class TestLLMClientRetry:
    """Tests for connection retry and immediate failure on missing models."""

    @pytest.mark.asyncio()
    @patch("Grid_Rank.agents.llm_client.asyncio.sleep", return_value=None)
    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    async def test_retry_then_success(
        self,
        mock_client_class: MagicMock,
        mock_sleep: MagicMock,
    ) -> None:
        mock_instance = MagicMock()
        mock_client_class.return_value = mock_instance
        error = httpx.ReadError("connection reset")
        mock_instance.chat.side_effect = [error, error, _make_mock_chat_response("{}")]

        response = await LLMClient(host="http://localhost:11434").chat(_MESSAGES)

        assert response.content == "{}"
        assert mock_instance.chat.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio()
    @patch("Grid_Rank.agents.llm_client.asyncio.sleep", return_value=None)
    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    async def test_retries_exhausted(
        self,
        mock_client_class: MagicMock,
        _mock_sleep: MagicMock,
    ) -> None:
        mock_instance = MagicMock()
        mock_client_class.return_value = mock_instance
        mock_instance.chat.side_effect = ConnectionError("Failed to connect to Ollama.")

        with pytest.raises(ConnectionError):
            await LLMClient(host="http://localhost:11434").chat(_MESSAGES)
        assert mock_instance.chat.call_count == 4

    @pytest.mark.asyncio()
    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    async def test_model_not_found_no_retry(self, mock_client_class: MagicMock) -> None:
        mock_instance = MagicMock()
        mock_client_class.return_value = mock_instance
        mock_instance.chat.side_effect = ollama.ResponseError("model not found", status_code=404)

        with pytest.raises(ollama.ResponseError):
            await LLMClient(host="http://localhost:11434").chat(_MESSAGES)
        assert mock_instance.chat.call_count == 1


class TestListModels:
    """Tests for LLMClient.list_models()."""

    @pytest.mark.asyncio()
    @patch("Grid_Rank.agents.llm_client.ollama.Client")
    async def test_returns_model_tags(self, mock_client_class: MagicMock) -> None:
        mock_instance = MagicMock()
        mock_client_class.return_value = mock_instance
        listing = Mock()
        listing.models = [Mock(model="llama3.1:8b"), Mock(model=None), Mock(model="qwen2.5:7b")]
        mock_instance.list.return_value = listing

        models = await LLMClient(host="http://localhost:11434").list_models()

        assert models == ["llama3.1:8b", "qwen2.5:7b"]
