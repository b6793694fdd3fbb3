"""Tests for Langfuse tracing setup behavior."""

from __future__ import annotations

import sys
import types

from wikiatlas.config import LangfuseConfig
from wikiatlas.llm import tracing


def test_setup_langfuse_reads_keys_and_host_from_env(monkeypatch):
    captured: dict = {}

    class DummyLangfuse:
        def __init__(self, **kwargs):
            captured.update(kwargs)

    fake_module = types.SimpleNamespace(Langfuse=DummyLangfuse)
    monkeypatch.setitem(sys.modules, "langfuse", fake_module)
    monkeypatch.setattr(tracing, "_TRACER", None)
    monkeypatch.setenv("LANGFUSE_PUBLIC_KEY", "pk-test")
    monkeypatch.setenv("LANGFUSE_SECRET_KEY", "sk-test")
    monkeypatch.setenv("LANGFUSE_HOST", "https://us.cloud.langfuse.com")

    tracing.setup_langfuse(LangfuseConfig(enabled=True, timeout_seconds=45))

    assert captured["public_key"] == "pk-test"
    assert captured["secret_key"] == "sk-test"
    assert captured["host"] == "https://us.cloud.langfuse.com"
    assert captured["timeout"] == 45
    assert isinstance(tracing.get_tracer(), DummyLangfuse)


def test_setup_langfuse_disables_tracer_when_keys_missing(monkeypatch):
    monkeypatch.setattr(tracing, "_TRACER", None)
    monkeypatch.delenv("LANGFUSE_PUBLIC_KEY", raising=False)
    monkeypatch.delenv("LANGFUSE_SECRET_KEY", raising=False)

    tracing.setup_langfuse(LangfuseConfig(enabled=True))

    assert tracing.get_tracer() is None


def test_start_span_is_a_no_op_without_tracer(monkeypatch):
    monkeypatch.setattr(tracing, "_TRACER", None)

    with tracing.start_span("gemini.llm_summarize", kind="llm", input_value="prompt") as span:
        tracing.set_span_output(span, "output")
        tracing.record_span_error(span, RuntimeError("boom"))

    assert span is None


def test_span_payloads_are_redacted_and_truncated(monkeypatch):
    monkeypatch.setattr(tracing, "_CFG", LangfuseConfig(max_text_chars=40))

    text = tracing._normalize_text(
        "Contact olim@wikiatlas.uz about 3f2b8c1e-9d4a-4e6b-8f0c-1a2b3c4d5e6f for the rest"
    )

    assert "olim@wikiatlas.uz" not in text
    assert "3f2b8c1e" not in text
    assert len(text) <= 60
