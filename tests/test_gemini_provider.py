"""Regression tests for Gemini response parsing and assistant fallbacks."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from wikiatlas.config import LoggingConfig, ProviderConfig
from wikiatlas.core.types import Article
from wikiatlas.errors import AssistError
from wikiatlas.llm.prompts import build_semantic_match_prompt
from wikiatlas.llm.providers.gemini import (
    DEFAULT_TOPICS,
    FACT_CHECK_FALLBACK,
    SUMMARY_FALLBACK,
    GeminiProvider,
    _extract_text,
    parse_match_ids,
)


def _provider() -> GeminiProvider:
    return GeminiProvider(ProviderConfig(api_key="test-key"), "test-key", LoggingConfig())


def _response(text: str, **extra) -> dict:
    candidate = {"content": {"parts": [{"text": text}]}, **extra}
    return {"candidates": [candidate]}


def _patch_post(monkeypatch, result):
    calls = []

    async def fake_post(self, payload, model):
        calls.append((payload, model))
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(GeminiProvider, "_post", fake_post)
    return calls


def test_extract_text_joins_non_thought_parts():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "internal reasoning"},
                        {"text": '{"ids": ["a"'},
                        {"text": ', "b"]}'},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == '{"ids": ["a", "b"]}'


def test_extract_text_falls_back_to_all_text_when_only_thought():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "first"},
                        {"thought": True, "text": " second"},
                    ]
                }
            }
        ]
    }

    assert _extract_text(data) == "first second"


def test_extract_text_handles_missing_candidates():
    assert _extract_text({}) == ""


def test_parse_match_ids_accepts_structured_and_plain_answers():
    assert parse_match_ids('{"ids": ["a1", "b2"]}') == ["a1", "b2"]
    assert parse_match_ids('["a1"]') == ["a1"]
    assert parse_match_ids("ID:a1, ID:b2 ,") == ["a1", "b2"]
    assert parse_match_ids('```json\n{"ids": ["x"]}\n```') == ["x"]
    assert parse_match_ids("42") == ["42"]
    assert parse_match_ids("") == []
    assert parse_match_ids('{"ids": []}') == []


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError):
        GeminiProvider(ProviderConfig(), None, LoggingConfig())


def test_suggest_matches_sends_structured_request(monkeypatch):
    calls = _patch_post(monkeypatch, _response('{"ids": ["b"]}'))
    articles = [
        Article(id="a", title="Amir Temur", excerpt="Sohibqiron"),
        Article(id="b", title="Ulug'bek", excerpt="Astronom"),
    ]

    ids = asyncio.run(_provider().suggest_matches("yulduzlar", articles))

    assert ids == ["b"]
    payload, model = calls[0]
    assert model == "gemini-3-flash-preview"
    assert payload["generationConfig"]["responseMimeType"] == "application/json"
    prompt = payload["contents"][0]["parts"][0]["text"]
    assert "ID:b | Title:Ulug'bek | Excerpt:Astronom" in prompt


def test_suggest_matches_degrades_to_empty_on_http_error(monkeypatch):
    _patch_post(monkeypatch, httpx.ConnectError("offline"))

    ids = asyncio.run(_provider().suggest_matches("yulduzlar", [Article(id="a", title="A")]))

    assert ids == []


def test_suggest_matches_skips_call_for_empty_collection(monkeypatch):
    calls = _patch_post(monkeypatch, _response('{"ids": ["a"]}'))

    assert asyncio.run(_provider().suggest_matches("yulduzlar", [])) == []
    assert calls == []


def test_writing_assistant_fallbacks(monkeypatch):
    _patch_post(monkeypatch, httpx.ConnectError("offline"))
    provider = _provider()

    assert asyncio.run(provider.summarize("Matn")) == SUMMARY_FALLBACK
    assert asyncio.run(provider.improve("Asl matn")) == "Asl matn"
    assert asyncio.run(provider.fact_check("Matn")) == FACT_CHECK_FALLBACK
    assert asyncio.run(provider.categorize("Sarlavha", "Matn")) == "Other"
    assert asyncio.run(provider.suggest_topics("")) == DEFAULT_TOPICS
    assert asyncio.run(provider.translate("Sarlavha", "Matn", "en")) == {"title": "Sarlavha", "content": "Matn"}


def test_fact_check_uses_search_tool_and_lists_sources(monkeypatch):
    grounding = {"groundingChunks": [{"web": {"uri": "https://uz.wikipedia.org/wiki/Bobur"}}, {"web": {}}]}
    calls = _patch_post(monkeypatch, _response("Hammasi to'g'ri.", groundingMetadata=grounding))

    result = asyncio.run(_provider().fact_check("Bobur 1483 yilda tug'ilgan."))

    payload, model = calls[0]
    assert payload["tools"] == [{"google_search": {}}]
    assert model == "gemini-3-pro-preview"
    assert result == "Hammasi to'g'ri.\n\nSources:\n- https://uz.wikipedia.org/wiki/Bobur"


def test_suggest_topics_strips_numbering(monkeypatch):
    _patch_post(monkeypatch, _response("1. Ipak yo'li\n2. Registon\n\n3. Xiva"))

    assert asyncio.run(_provider().suggest_topics("tarix")) == ["Ipak yo'li", "Registon", "Xiva"]


def test_translate_reads_json_answer(monkeypatch):
    _patch_post(monkeypatch, _response('{"title": "Quantum physics", "content": "Body"}'))

    result = asyncio.run(_provider().translate("Kvant fizikasi", "Matn", "en"))

    assert result == {"title": "Quantum physics", "content": "Body"}


def test_generate_article_raises_on_unusable_answer(monkeypatch):
    _patch_post(monkeypatch, _response("Sorry, I cannot help with that."))

    with pytest.raises(AssistError):
        asyncio.run(_provider().generate_article("Ipak yo'li"))


def test_semantic_prompt_skips_articles_without_id():
    prompt = build_semantic_match_prompt("q", [Article(id=None, title="Ghost"), Article(id="a", title="Real")])

    assert "Ghost" not in prompt
    assert "ID:a | Title:Real" in prompt
