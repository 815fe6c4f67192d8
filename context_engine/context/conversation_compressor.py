"""Conversation compression via local heuristic summarization.

Compresses conversation history while preserving key context:
- Recent messages kept verbatim (last 4 by default)
- System messages kept verbatim
- Older messages replaced by a summary message combining a structured
  overview (intent, topics, counts) with extracted key sentences
"""

import re
from collections.abc import Iterable, Mapping

from context_engine.context.context_assembler import trim_to_token_budget
from context_engine.context.models import (
    ChatMessage,
    ConversationStats,
    SummarizationOptions,
    SummarizationResult,
    SummaryStrategy,
    normalize_messages,
)
from context_engine.context.sentence_scoring import (
    SentenceCandidate,
    SentenceScorer,
    default_sentence_score,
)
from context_engine.context.token_counter import count_message_tokens, count_tokens
from context_engine.core.logging import get_logger

logger = get_logger(__name__)

# Tokens held back from the summary for framing and rounding
SUMMARY_RESERVE_TOKENS = 100
# Margin between the structured part and the key-context block
HYBRID_MARGIN_TOKENS = 20
# Key-context block is skipped below this many free tokens
MIN_KEY_CONTEXT_TOKENS = 100
MAX_QUOTE_TOKENS = 100
MIN_SENTENCE_CHARS = 10

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

TOPIC_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("brand voice", re.compile(r"brand voice|tone|personality", re.IGNORECASE)),
    ("colors", re.compile(r"color|palette|hex|rgb", re.IGNORECASE)),
    ("typography", re.compile(r"font|typography|typeface", re.IGNORECASE)),
    ("writing style", re.compile(r"writing style|copy|messaging", re.IGNORECASE)),
    ("guidelines", re.compile(r"guideline|rule|standard", re.IGNORECASE)),
    ("assets", re.compile(r"asset|logo|image|file", re.IGNORECASE)),
    ("technical", re.compile(r"code|implement|build|develop", re.IGNORECASE)),
)


def _extract_key_content(
    messages: list[ChatMessage],
    max_tokens: int,
    scorer: SentenceScorer,
) -> str:
    """Select the highest-scoring sentences that fit, in conversation order."""
    candidates: list[SentenceCandidate] = []

    for message_index, msg in enumerate(messages):
        text = msg.text
        if not text:
            continue
        sentences = [s.strip() for s in SENTENCE_SPLIT.split(text) if len(s.strip()) > MIN_SENTENCE_CHARS]
        for sentence_index, sentence in enumerate(sentences):
            candidates.append(
                SentenceCandidate(
                    text=sentence,
                    role=msg.role,
                    message_index=message_index,
                    sentence_index=sentence_index,
                    message_count=len(messages),
                )
            )

    # Stable sort keeps conversation order among equal scores
    ranked = sorted(candidates, key=scorer, reverse=True)

    selected: list[SentenceCandidate] = []
    used_tokens = 0
    for candidate in ranked:
        tokens = count_tokens(candidate.text)
        if used_tokens + tokens <= max_tokens:
            selected.append(candidate)
            used_tokens += tokens

    selected.sort(key=lambda c: (c.message_index, c.sentence_index))
    return " ".join(c.text for c in selected)


def _structured_summary(messages: list[ChatMessage]) -> str:
    """Overview of intent, topics and size of the summarized span."""
    user_messages = [m for m in messages if m.role == "user"]
    assistant_messages = [m for m in messages if m.role == "assistant"]

    parts: list[str] = []

    if user_messages:
        first_content = user_messages[0].text
        last_content = user_messages[-1].text

        parts.append(f'User\'s initial request: "{trim_to_token_budget(first_content, MAX_QUOTE_TOKENS)}"')

        if len(user_messages) > 1 and last_content != first_content:
            parts.append(
                f'Most recent user message: "{trim_to_token_budget(last_content, MAX_QUOTE_TOKENS)}"'
            )

    all_content = " ".join(m.text for m in messages).lower()
    topics = [topic for topic, pattern in TOPIC_PATTERNS if pattern.search(all_content)]
    if topics:
        parts.append(f"Topics discussed: {', '.join(topics)}")

    parts.append(
        f"Conversation length: {len(user_messages)} user messages, "
        f"{len(assistant_messages)} assistant responses"
    )

    return "\n".join(parts)


def _build_result(
    summary: str,
    result_messages: list[ChatMessage],
    summarized_count: int,
    original_tokens: int,
) -> SummarizationResult:
    result_tokens = count_message_tokens(result_messages)
    return SummarizationResult(
        summary=summary,
        preserved_messages=result_messages,
        summarized_count=summarized_count,
        original_tokens=original_tokens,
        result_tokens=result_tokens,
        compression_ratio=original_tokens / max(result_tokens, 1),
    )


def summarize_conversation(
    messages: Iterable[ChatMessage | Mapping],
    max_tokens: int,
    options: SummarizationOptions | None = None,
    scorer: SentenceScorer | None = None,
) -> SummarizationResult:
    """
    Summarize a conversation to fit within a token budget.

    Args:
        messages: Full conversation history, oldest first (not modified)
        max_tokens: Max tokens for the result (summary + preserved messages)
        options: Summarization options (defaults if None)
        scorer: Sentence scorer for extractive selection (heuristic default)

    Returns:
        SummarizationResult with summary and the new message list
    """
    options = options or SummarizationOptions()
    scorer = scorer or default_sentence_score

    normalized = normalize_messages(messages)
    original_tokens = count_message_tokens(normalized)

    # Already within budget
    if original_tokens <= max_tokens:
        return SummarizationResult(
            summary="",
            preserved_messages=normalized,
            summarized_count=0,
            original_tokens=original_tokens,
            result_tokens=original_tokens,
            compression_ratio=1.0,
        )

    system_messages = (
        [m for m in normalized if m.role == "system"] if options.preserve_system_messages else []
    )
    non_system = [m for m in normalized if m.role != "system"]

    recent_count = options.preserve_recent_count
    preserved = non_system[-recent_count:] if recent_count > 0 else []
    to_summarize = non_system[: len(non_system) - len(preserved)]

    preserved_tokens = count_message_tokens(preserved) + count_message_tokens(system_messages)
    summary_budget = min(
        options.max_summary_tokens,
        max_tokens - preserved_tokens - SUMMARY_RESERVE_TOKENS,
    )

    if not to_summarize or summary_budget <= 0:
        logger.debug(
            f"Skipping summarization: {len(to_summarize)} candidates, budget {summary_budget}"
        )
        return _build_result("", [*system_messages, *preserved], 0, original_tokens)

    if options.strategy == SummaryStrategy.EXTRACTIVE:
        summary = _extract_key_content(to_summarize, summary_budget, scorer)
    else:
        structured = _structured_summary(to_summarize)
        remaining_budget = summary_budget - count_tokens(structured) - HYBRID_MARGIN_TOKENS

        summary = structured
        if remaining_budget > MIN_KEY_CONTEXT_TOKENS:
            key_content = _extract_key_content(to_summarize, remaining_budget, scorer)
            if key_content:
                summary = f"{structured}\n\nKey context: {key_content}"

    summary = trim_to_token_budget(summary, summary_budget)

    summary_message = ChatMessage(
        role="system",
        content=f"[Conversation Summary - {len(to_summarize)} messages]\n{summary}",
    )

    result = _build_result(
        summary,
        [*system_messages, summary_message, *preserved],
        len(to_summarize),
        original_tokens,
    )

    logger.debug(
        f"Compacted {len(to_summarize)} messages: "
        f"{original_tokens} -> {result.result_tokens} tokens "
        f"(ratio {result.compression_ratio:.2f})"
    )
    return result


def needs_summarization(
    messages: Iterable[ChatMessage | Mapping],
    token_budget: int,
    threshold: float = 0.8,
) -> bool:
    """Check whether history exceeds the given fraction of its budget."""
    return count_message_tokens(messages) > token_budget * threshold


def get_conversation_stats(messages: Iterable[ChatMessage | Mapping]) -> ConversationStats:
    """Count messages per role and tokens for a conversation."""
    normalized = normalize_messages(messages)
    total_tokens = count_message_tokens(normalized)

    return ConversationStats(
        total_messages=len(normalized),
        user_messages=sum(1 for m in normalized if m.role == "user"),
        assistant_messages=sum(1 for m in normalized if m.role == "assistant"),
        system_messages=sum(1 for m in normalized if m.role == "system"),
        total_tokens=total_tokens,
        avg_tokens_per_message=total_tokens / len(normalized) if normalized else 0.0,
    )
