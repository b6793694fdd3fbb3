"""Google Gemini provider for semantic search and writing assistance."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Sequence

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...core.types import Article
from ...errors import AssistError
from ...utils.logging import log_event, redact_text, truncate_text
from ..prompts import (
    build_categorize_prompt,
    build_fact_check_prompt,
    build_generate_article_prompt,
    build_improve_prompt,
    build_semantic_match_prompt,
    build_suggest_topics_prompt,
    build_summarize_prompt,
    build_translate_prompt,
)
from ..tracing import record_span_error, set_span_output, start_span
from .base import AtlasProvider


_MATCH_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "ids": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["ids"],
}


_ARTICLE_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "content": {"type": "STRING"},
    },
    "required": ["title", "content"],
}

SUMMARY_FALLBACK = "The AI engine is currently synthesizing other data. Please try again."
SUMMARY_EMPTY = "Summary generated empty."
FACT_CHECK_FALLBACK = "AI Fact-Checking Engine temporarily offline."
FACT_CHECK_EMPTY = "Synthesis complete. No major errors detected."
DEFAULT_CATEGORY = "Other"
DEFAULT_TOPICS = [
    "O'zbekiston tarixi",
    "Sun'iy intellekt kelajagi",
    "Koinot sirlari",
    "Ekologiya va biz",
    "Raqamli iqtisodiyot",
]

_NUMBERING_RE = re.compile(r"^\d+\.\s*")

logger = logging.getLogger(__name__)


class GeminiProvider(AtlasProvider):
    """Gemini-backed provider talking to the generateContent REST endpoint."""

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
        excerpt_chars: int = 100,
    ):
        if not api_key:
            raise ValueError("Missing Google API key")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self.excerpt_chars = excerpt_chars

    async def suggest_matches(self, query: str, articles: Sequence[Article]) -> list[str]:
        if not query or not query.strip() or not articles:
            return []
        prompt = build_semantic_match_prompt(query, articles, self.excerpt_chars)
        try:
            content, _ = await self._generate(
                "llm_semantic_match",
                prompt,
                generation_config={
                    "temperature": 0.1,
                    "responseMimeType": "application/json",
                    "responseSchema": _MATCH_RESPONSE_SCHEMA,
                },
                attributes={"search.query": query, "search.candidates": len(articles)},
            )
        except httpx.HTTPError:
            return []
        return parse_match_ids(content)

    async def summarize(self, text: str, lang: str = "uz") -> str:
        try:
            content, _ = await self._generate("llm_summarize", build_summarize_prompt(text, lang))
        except httpx.HTTPError:
            return SUMMARY_FALLBACK
        return content.strip() or SUMMARY_EMPTY

    async def improve(self, text: str) -> str:
        try:
            content, _ = await self._generate(
                "llm_improve",
                build_improve_prompt(text),
                model=self.cfg.writing_model,
            )
        except httpx.HTTPError:
            return text
        return content.strip() or text

    async def fact_check(self, text: str) -> str:
        try:
            content, data = await self._generate(
                "llm_fact_check",
                build_fact_check_prompt(text),
                model=self.cfg.writing_model,
                tools=[{"google_search": {}}],
            )
        except httpx.HTTPError:
            return FACT_CHECK_FALLBACK
        result = content.strip() or FACT_CHECK_EMPTY
        sources = _grounding_uris(data)
        if sources:
            result += "\n\nSources:\n" + "\n".join(f"- {uri}" for uri in sources)
        return result

    async def categorize(self, title: str, content: str) -> str:
        try:
            text, _ = await self._generate("llm_categorize", build_categorize_prompt(title, content))
        except httpx.HTTPError:
            return DEFAULT_CATEGORY
        return text.strip() or DEFAULT_CATEGORY

    async def translate(self, title: str, content: str, target_lang: str) -> dict[str, str]:
        original = {"title": title, "content": content}
        try:
            text, _ = await self._generate(
                "llm_translate",
                build_translate_prompt(title, content, target_lang),
                generation_config=_json_config(_ARTICLE_RESPONSE_SCHEMA),
            )
            obj = _parse_json_response(text)
        except httpx.HTTPError:
            return original
        except json.JSONDecodeError:
            logger.warning("Translation response was not valid JSON")
            return original
        return _title_content(obj) or original

    async def suggest_topics(self, context: str) -> list[str]:
        try:
            text, _ = await self._generate("llm_suggest_topics", build_suggest_topics_prompt(context))
        except httpx.HTTPError:
            return list(DEFAULT_TOPICS)
        topics = [_NUMBERING_RE.sub("", line).strip() for line in text.splitlines()]
        return [topic for topic in topics if topic]

    async def generate_article(self, topic: str) -> dict[str, str]:
        try:
            text, _ = await self._generate(
                "llm_generate_article",
                build_generate_article_prompt(topic),
                model=self.cfg.writing_model,
                generation_config=_json_config(_ARTICLE_RESPONSE_SCHEMA),
            )
            obj = _parse_json_response(text)
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            raise AssistError("AI article generation failed.", context={"topic": topic}) from exc
        article = _title_content(obj)
        if article is None:
            raise AssistError("AI article generation failed.", context={"topic": topic})
        return article

    async def _generate(
        self,
        event: str,
        prompt: str,
        model: str | None = None,
        generation_config: dict[str, Any] | None = None,
        tools: list[dict[str, Any]] | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> tuple[str, dict[str, Any]]:
        model_name = model or self.cfg.model
        payload: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if generation_config:
            payload["generationConfig"] = generation_config
        if tools:
            payload["tools"] = tools

        with start_span(
            f"gemini.{event}",
            kind="llm",
            input_value=prompt,
            attributes={"llm.model": model_name, "llm.provider": "gemini", **(attributes or {})},
        ) as span:
            try:
                data = await self._post(payload, model_name)
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_llm_response(event, "provider_error", str(exc), prompt, model_name)
                raise
            content = _extract_text(data)
            set_span_output(span, content)
            self._log_llm_response(event, "ok", content, prompt, model_name)
            return content, data

    async def _post(self, payload: dict[str, Any], model: str) -> dict[str, Any]:
        url = f"{self.cfg.base_url}/v1beta/models/{model}:generateContent"
        params = {"key": self.api_key}
        async with httpx.AsyncClient(timeout=self.cfg.timeout_seconds, trust_env=self.cfg.trust_env) as client:
            resp = await client.post(url, params=params, json=payload)
            resp.raise_for_status()
            return resp.json()

    def _log_llm_response(self, event: str, status: str, content: str, prompt: str, model: str) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": event,
            "status": status,
            "model": model,
            "raw_response": truncate_text(redact_text(content, redaction)),
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(self.llm_logger, "LLM response", **payload)


def parse_match_ids(content: str) -> list[str]:
    """Read article ids from a structured or plain comma-separated answer."""
    if not content or not content.strip():
        return []
    try:
        obj = json.loads(content)
    except json.JSONDecodeError:
        try:
            obj = _parse_json_response(content)
        except json.JSONDecodeError:
            obj = content.split(",")

    if isinstance(obj, dict):
        obj = obj.get("ids") or []
    elif isinstance(obj, (str, int)):
        obj = [obj]
    if not isinstance(obj, list):
        return []
    ids = [str(item).replace("ID:", "").strip() for item in obj if item is not None]
    return [item for item in ids if item]


def _json_config(schema: dict[str, Any]) -> dict[str, Any]:
    return {
        "temperature": 0.4,
        "responseMimeType": "application/json",
        "responseSchema": schema,
    }


def _title_content(obj: Any) -> dict[str, str] | None:
    if not isinstance(obj, dict):
        return None
    title = obj.get("title")
    content = obj.get("content")
    if not isinstance(title, str) or not isinstance(content, str):
        return None
    return {"title": title, "content": content}


def _grounding_uris(data: dict[str, Any]) -> list[str]:
    try:
        chunks = data["candidates"][0]["groundingMetadata"]["groundingChunks"]
    except (KeyError, IndexError, TypeError):
        return []
    if not isinstance(chunks, list):
        return []
    uris: list[str] = []
    for chunk in chunks:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        uri = web.get("uri") if isinstance(web, dict) else None
        if uri:
            uris.append(str(uri))
    return uris


def _extract_text(data: dict[str, Any]) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except Exception:  # noqa: BLE001
        return ""

    if not isinstance(parts, list):
        return ""

    non_thought_chunks: list[str] = []
    all_chunks: list[str] = []
    for part in parts:
        if not isinstance(part, dict):
            continue
        text = part.get("text")
        if text is None:
            continue
        chunk = str(text)
        if not chunk:
            continue
        all_chunks.append(chunk)
        if not bool(part.get("thought")):
            non_thought_chunks.append(chunk)

    if non_thought_chunks:
        return "".join(non_thought_chunks)
    return "".join(all_chunks)


def _parse_json_response(content: str) -> dict[str, Any]:
    if not content:
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        extracted = _extract_json_snippet(content)
        return json.loads(extracted)


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        if line.strip().startswith("```") and "json" in line.lower():
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None
