"""Tests for the Gemini summary and assistant calls."""

import base64
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.core.exceptions import AnalysisError
from app.services.gemini_service import (
    EMPTY_SUMMARY,
    SUMMARY_PROMPTS,
    UNSUPPORTED_FORMAT_SUMMARY,
    ContentCategory,
    GeminiService,
    content_category,
)


def _reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestContentCategory:
    """Tests for content_category()."""

    def test_categories(self):
        assert content_category("image/jpeg") == ContentCategory.IMAGE
        assert content_category("application/pdf") == ContentCategory.DOCUMENT
        assert content_category("text/csv") == ContentCategory.DOCUMENT
        assert content_category("audio/wav") == ContentCategory.AUDIO
        assert content_category("application/zip") is None
        assert content_category("") is None


class TestSummarize:
    """Tests for GeminiService.summarize()."""

    @pytest.mark.asyncio
    async def test_unsupported_format_skips_api(self):
        service = GeminiService(api_key="k")
        with patch.object(service, "_make_gemini_request", new_callable=AsyncMock) as mock_request:
            result = await service.summarize(b"PK..", "application/zip")

        assert result == UNSUPPORTED_FORMAT_SUMMARY
        mock_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_sends_inline_data_with_category_prompt(self):
        service = GeminiService(api_key="k")
        with patch.object(service, "_make_gemini_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _reply("  A cat on a sofa.  ")
            result = await service.summarize(b"\x89PNG", "image/png")

        assert result == "A cat on a sofa."
        parts = mock_request.call_args.args[0][0]["parts"]
        assert parts[0]["inlineData"] == {
            "mimeType": "image/png",
            "data": base64.b64encode(b"\x89PNG").decode("ascii"),
        }
        assert parts[1]["text"] == SUMMARY_PROMPTS[ContentCategory.IMAGE]

    @pytest.mark.asyncio
    async def test_empty_reply(self):
        service = GeminiService(api_key="k")
        with patch.object(service, "_make_gemini_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"candidates": []}
            assert await service.summarize(b"text", "text/plain") == EMPTY_SUMMARY

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        with pytest.raises(AnalysisError):
            await GeminiService(api_key="").summarize(b"text", "text/plain")

    @pytest.mark.asyncio
    async def test_http_error_becomes_analysis_error(self):
        service = GeminiService(api_key="k")
        request = httpx.Request("POST", "https://generativelanguage.googleapis.com")
        error = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(500, request=request))
        with patch.object(service, "_make_gemini_request", new_callable=AsyncMock, side_effect=error):
            with pytest.raises(AnalysisError):
                await service.summarize(b"text", "text/plain")


class TestAsk:
    """Tests for GeminiService.ask()."""

    @pytest.mark.asyncio
    async def test_history_and_file_context(self):
        service = GeminiService(api_key="k")
        with patch.object(service, "_make_gemini_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = _reply("You have no files.")
            reply = await service.ask(
                "What do I have?",
                [{"role": "user", "text": "hi"}, {"role": "model", "text": "hello"}],
                [],
            )

        assert reply == "You have no files."
        contents = mock_request.call_args.args[0]
        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert contents[-1]["parts"][0]["text"] == "What do I have?"
        assert "(no files)" in mock_request.call_args.kwargs["system_prompt"]
