"""Context assembly within a token budget.

Merges prioritized content sections (system instructions, brand voice,
retrieved knowledge, compacted history) into one prompt. Whole sections are
included in priority order, a boundary section may be trimmed, and anything
left out is reported as overflow.
"""

from collections.abc import Iterable, Mapping

from context_engine.context.models import (
    AssembledContext,
    ChatMessage,
    ContentSection,
    normalize_messages,
)
from context_engine.context.token_counter import count_message_tokens, count_tokens
from context_engine.core.logging import get_logger

logger = get_logger(__name__)

TRUNCATION_MARKER = "[...truncated...]"

# A partial section is only worth including above this many free tokens
MIN_PARTIAL_SECTION_TOKENS = 200
# Headroom kept free when trimming a boundary section
PARTIAL_SECTION_MARGIN = 50


def trim_to_token_budget(text: str, max_tokens: int, preserve_end: bool = False) -> str:
    """Trim text to fit within a token budget.

    Binary-searches the longest prefix (or suffix when preserve_end) that fits
    together with the truncation marker.

    Args:
        text: Text to trim
        max_tokens: Maximum tokens allowed, marker included
        preserve_end: Keep the end of the text instead of the start

    Returns:
        The text unchanged if it fits, otherwise the trimmed text with marker
    """
    if not text or count_tokens(text) <= max_tokens:
        return text

    def _candidate(length: int) -> str:
        if preserve_end:
            kept = text[len(text) - length:] if length else ""
            return f"{TRUNCATION_MARKER}\n{kept}"
        return f"{text[:length]}\n{TRUNCATION_MARKER}"

    low, high = 0, len(text)
    while low < high:
        mid = (low + high + 1) // 2
        if count_tokens(_candidate(mid)) <= max_tokens:
            low = mid
        else:
            high = mid - 1

    return _candidate(low)


def assemble_context(
    sections: Iterable[ContentSection],
    total_budget: int,
) -> AssembledContext:
    """
    Assemble context sections within a token budget.

    Args:
        sections: Candidate sections (not modified)
        total_budget: Max tokens for the assembled context

    Returns:
        AssembledContext with prompt text, included sections and overflow
    """
    ordered = sorted(sections, key=lambda s: s.priority)

    included: list[ContentSection] = []
    overflow: list[ContentSection] = []
    used_tokens = 0

    for section in ordered:
        if used_tokens + section.tokens <= total_budget:
            included.append(section)
            used_tokens += section.tokens
            continue

        remaining = total_budget - used_tokens
        if remaining > MIN_PARTIAL_SECTION_TOKENS:
            trimmed = trim_to_token_budget(section.content, remaining - PARTIAL_SECTION_MARGIN)
            trimmed_tokens = count_tokens(trimmed)
            included.append(
                section.model_copy(
                    update={"content": trimmed, "tokens": trimmed_tokens, "truncated": True}
                )
            )
            used_tokens += trimmed_tokens
        else:
            overflow.append(section)

    if overflow:
        logger.debug(
            f"Context overflow: {len(overflow)} sections dropped "
            f"({', '.join(s.category.value for s in overflow)})"
        )

    assembled = "\n\n".join(s.content for s in included if s.content)

    return AssembledContext(
        assembled=assembled,
        sections=included,
        overflow=overflow,
        tokens_used=used_tokens,
    )


def _omission_marker(dropped_count: int) -> list[ChatMessage]:
    """System marker standing in for dropped messages (empty if none)."""
    if dropped_count <= 0:
        return []
    return [
        ChatMessage(
            role="system",
            content=f"[{dropped_count} earlier messages omitted for context window management]",
        )
    ]


def trim_message_history(
    messages: Iterable[ChatMessage | Mapping],
    max_tokens: int,
    preserve_count: int = 4,
) -> list[ChatMessage]:
    """
    Trim message history to a token budget, always keeping recent messages.

    Older messages are kept newest-first while they fit; dropped ones are
    replaced by a system marker carrying their count.

    Args:
        messages: Conversation history, oldest first
        max_tokens: Max tokens for the returned history
        preserve_count: Number of most recent messages always kept

    Returns:
        New message list within budget
    """
    normalized = normalize_messages(messages)

    if count_message_tokens(normalized) <= max_tokens:
        return normalized

    preserved = normalized[-preserve_count:] if preserve_count > 0 else []
    older = normalized[: len(normalized) - len(preserved)]
    preserved_tokens = count_message_tokens(preserved)

    if preserved and preserved_tokens >= max_tokens:
        # Even preserved messages exceed budget - trim them, drop all older ones
        per_message = max_tokens // len(preserved)
        trimmed = [
            msg.model_copy(
                update={"content": trim_to_token_budget(msg.text, per_message), "parts": None}
            )
            for msg in preserved
        ]
        return _omission_marker(len(older)) + trimmed

    remaining_budget = max_tokens - preserved_tokens
    included_older: list[ChatMessage] = []
    used_tokens = 0

    for msg in reversed(older):
        msg_tokens = count_message_tokens([msg])
        if used_tokens + msg_tokens > remaining_budget:
            break
        included_older.append(msg)
        used_tokens += msg_tokens
    included_older.reverse()

    return _omission_marker(len(older) - len(included_older)) + included_older + preserved
