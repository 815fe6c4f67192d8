"""Tests for context assembly, trimming and message-history trimming."""

import pytest

from context_engine.context.context_assembler import (
    TRUNCATION_MARKER,
    assemble_context,
    trim_message_history,
    trim_to_token_budget,
)
from context_engine.context.models import BudgetCategory, ChatMessage, ContentSection
from context_engine.context.token_counter import count_message_tokens, count_tokens

PROSE = (
    "Open Session helps teams steward their brand with care. "
    "The palette centres on aperol orange, charcoal and vanilla. "
    "Headlines are set in Neue Haas Grotesk while OffBit adds a digital accent. "
    "Voice guidelines favour short sentences, warm humour and concrete verbs. "
) * 20

MARKER_OVERHEAD = count_tokens(f"\n{TRUNCATION_MARKER}")


def _section(category, content, priority, tokens=None):
    return ContentSection(
        category=category,
        content=content,
        tokens=count_tokens(content) if tokens is None else tokens,
        priority=priority,
    )


# ─── trim_to_token_budget ────────────────────────────────────────────────────


def test_trim_returns_text_within_budget_unchanged():
    assert trim_to_token_budget("short text", 100) == "short text"
    assert trim_to_token_budget("", 10) == ""


def test_trim_adds_marker_at_end():
    trimmed = trim_to_token_budget(PROSE, 50)

    assert trimmed.endswith(TRUNCATION_MARKER)
    assert PROSE.startswith(trimmed[: -len(TRUNCATION_MARKER) - 1])


def test_trim_preserve_end_keeps_suffix():
    trimmed = trim_to_token_budget(PROSE, 50, preserve_end=True)

    assert trimmed.startswith(TRUNCATION_MARKER)
    assert PROSE.endswith(trimmed[len(TRUNCATION_MARKER) + 1:])


@pytest.mark.parametrize("max_tokens", [20, 50, 120, 300])
def test_trim_bound(max_tokens):
    assert count_tokens(trim_to_token_budget(PROSE, max_tokens)) <= max_tokens + MARKER_OVERHEAD


@pytest.mark.parametrize("max_tokens", [5, 20, 50, 120, 300])
@pytest.mark.parametrize("preserve_end", [False, True])
def test_trim_idempotent(max_tokens, preserve_end):
    once = trim_to_token_budget(PROSE, max_tokens, preserve_end)
    assert trim_to_token_budget(once, max_tokens, preserve_end) == once


def test_trim_monotonic_in_budget():
    lengths = [len(trim_to_token_budget(PROSE, n)) for n in (20, 40, 80, 160, 320, 10_000)]
    assert lengths == sorted(lengths)
    assert lengths[-1] == len(PROSE)


# ─── assemble_context ────────────────────────────────────────────────────────


def test_assemble_all_sections_fit_in_priority_order():
    sections = [
        _section(BudgetCategory.RETRIEVED_CONTEXT, "Retrieved snippet.", 3),
        _section(BudgetCategory.SYSTEM_PROMPT, "System instructions.", 1),
        _section(BudgetCategory.BRAND_VOICE, "Warm and direct.", 2),
    ]

    result = assemble_context(sections, 1_000)

    assert result.assembled == "System instructions.\n\nWarm and direct.\n\nRetrieved snippet."
    assert result.overflow == []
    assert result.tokens_used == sum(s.tokens for s in sections)


def test_assemble_skips_empty_content_in_text():
    sections = [
        _section(BudgetCategory.SYSTEM_PROMPT, "System.", 1),
        _section(BudgetCategory.SKILL_CONTEXT, "", 2),
    ]

    result = assemble_context(sections, 100)

    assert result.assembled == "System."
    assert len(result.sections) == 2


def test_assemble_trims_boundary_section():
    system = _section(BudgetCategory.SYSTEM_PROMPT, "System.", 1, tokens=100)
    retrieved = _section(BudgetCategory.RETRIEVED_CONTEXT, PROSE, 3)

    result = assemble_context([retrieved, system], 500)

    assert [s.category for s in result.sections] == [
        BudgetCategory.SYSTEM_PROMPT,
        BudgetCategory.RETRIEVED_CONTEXT,
    ]
    partial = result.sections[1]
    assert partial.truncated
    assert partial.content.endswith(TRUNCATION_MARKER)
    assert partial.tokens <= 500 - 100 - 50
    assert result.tokens_used <= 500
    # Original section untouched
    assert retrieved.content == PROSE
    assert not retrieved.truncated


def test_assemble_overflows_when_little_room_left():
    system = _section(BudgetCategory.SYSTEM_PROMPT, "System.", 1, tokens=850)
    retrieved = _section(BudgetCategory.RETRIEVED_CONTEXT, PROSE, 3)

    result = assemble_context([system, retrieved], 1_000)

    assert result.sections == [system]
    assert result.overflow == [retrieved]


def test_assemble_exhausted_budget_sends_rest_to_overflow():
    sections = [
        _section(BudgetCategory.SYSTEM_PROMPT, "a", 1, tokens=300),
        _section(BudgetCategory.BRAND_VOICE, "b", 4, tokens=300),
        _section(BudgetCategory.SKILL_CONTEXT, "c", 5, tokens=300),
    ]

    result = assemble_context(sections, 300)

    assert [s.content for s in result.sections] == ["a"]
    assert [s.content for s in result.overflow] == ["b", "c"]


def test_section_from_text_counts_tokens():
    section = ContentSection.from_text("brand_voice", "Warm, direct, curious.", priority=2)

    assert section.category == BudgetCategory.BRAND_VOICE
    assert section.tokens == count_tokens("Warm, direct, curious.")


# ─── trim_message_history ────────────────────────────────────────────────────


def _history(n, words=60):
    return [
        ChatMessage(
            role="user" if i % 2 == 0 else "assistant",
            content=f"Message {i}. " + "brand " * words,
        )
        for i in range(n)
    ]


def test_history_within_budget_unchanged():
    history = _history(3, words=5)
    assert trim_message_history(history, 10_000) == history


def test_history_drops_oldest_with_marker():
    history = _history(20)
    budget = count_message_tokens(history[-8:]) + 10

    trimmed = trim_message_history(history, budget, preserve_count=4)

    assert trimmed[0].role == "system"
    assert "earlier messages omitted" in trimmed[0].content
    assert trimmed[-4:] == history[-4:]
    kept = len(trimmed) - 1
    assert trimmed[0].content.startswith(f"[{20 - kept} earlier messages omitted")


def test_history_trims_preserved_when_they_exceed_budget():
    history = _history(6, words=400)

    trimmed = trim_message_history(history, 200, preserve_count=4)

    assert len(trimmed) == 5
    assert trimmed[0].role == "system"
    assert trimmed[0].content.startswith("[2 earlier messages omitted")
    recent = trimmed[1:]
    assert [m.role for m in recent] == [m.role for m in history[-4:]]
    assert all(count_tokens(m.content) <= 50 for m in recent)
    assert all(m.content.endswith(TRUNCATION_MARKER) for m in recent)


def test_history_over_budget_without_older_messages_has_no_marker():
    history = _history(4, words=400)

    trimmed = trim_message_history(history, 200, preserve_count=4)

    assert len(trimmed) == 4
    assert all(m.role != "system" for m in trimmed)
