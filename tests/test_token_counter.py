"""Tests for approximate token counting and its heuristic fallback."""

import math

import pytest

import context_engine.context.token_counter as token_counter
from context_engine.context.models import ChatMessage
from context_engine.context.token_counter import (
    MESSAGE_OVERHEAD_TOKENS,
    count_message_tokens,
    count_tokens,
    estimate_tokens,
    message_text,
)


def test_empty_text_counts_zero():
    assert count_tokens("") == 0
    assert count_tokens(None) == 0


def test_nonempty_text_counts_positive():
    assert count_tokens("The brand palette uses aperol orange.") > 0


def test_count_is_deterministic():
    text = "Typography pairs Neue Haas Grotesk with OffBit for accents."
    assert count_tokens(text) == count_tokens(text)


def test_longer_text_counts_more():
    sentence = "Our voice is warm, direct and curious. "
    assert count_tokens(sentence * 10) > count_tokens(sentence)


@pytest.mark.parametrize(
    "text,expected",
    [("a", 1), ("abcd", 1), ("abcde", 2), ("hello world", 3)],
)
def test_estimate_tokens_ceil_division(text, expected):
    assert estimate_tokens(text) == expected


def test_falls_back_when_encoder_unavailable(monkeypatch):
    """No encoder -> ceil(len / 4)."""
    monkeypatch.setattr(token_counter, "_get_encoder", lambda: None)
    text = "x" * 41
    assert count_tokens(text) == math.ceil(41 / 4)


def test_falls_back_on_encoding_error():
    """Special tokens are rejected by tiktoken; the heuristic answers instead."""
    text = "<|endoftext|>"
    assert count_tokens(text) == math.ceil(len(text) / 4)


def test_falls_back_when_encode_raises(monkeypatch):
    class BrokenEncoder:
        def encode(self, text):
            raise ValueError("boom")

    monkeypatch.setattr(token_counter, "_get_encoder", lambda: BrokenEncoder())
    assert count_tokens("abcdefgh") == 2


def test_message_tokens_include_overhead():
    messages = [
        ChatMessage(role="user", content="What colors do we use?"),
        ChatMessage(role="assistant", content="Aperol, charcoal and vanilla."),
    ]
    expected = sum(count_tokens(m.content) for m in messages) + 2 * MESSAGE_OVERHEAD_TOKENS
    assert count_message_tokens(messages) == expected


def test_message_tokens_empty_list():
    assert count_message_tokens([]) == 0


def test_message_tokens_accepts_dicts():
    as_dicts = [{"role": "user", "content": "Show me the logo files."}]
    as_models = [ChatMessage(role="user", content="Show me the logo files.")]
    assert count_message_tokens(as_dicts) == count_message_tokens(as_models)


def test_message_without_content_counts_overhead_only():
    assert count_message_tokens([{"role": "assistant", "content": None}]) == MESSAGE_OVERHEAD_TOKENS


def test_message_text_joins_text_parts():
    msg = {
        "role": "user",
        "parts": [
            {"type": "text", "text": "first"},
            {"type": "image", "text": "ignored"},
            {"type": "text", "text": "second"},
        ],
    }
    assert message_text(msg) == "first\nsecond"
    assert ChatMessage.model_validate(msg).text == "first\nsecond"
