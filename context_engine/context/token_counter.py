"""Approximate token counting for context window budgeting.

Uses tiktoken with cl100k_base encoding (closest to Claude's tokenizer).
Counts are an approximation; when the encoder is unavailable or rejects the
input, a ~4 characters per token heuristic is used instead.
"""

import math
from collections.abc import Iterable, Mapping
from functools import lru_cache

import tiktoken

from context_engine.context.models import ChatMessage
from context_engine.core.config import get_settings
from context_engine.core.logging import get_logger

logger = get_logger(__name__)

CHARS_PER_TOKEN = 4
# Role/metadata framing cost per message
MESSAGE_OVERHEAD_TOKENS = 4


@lru_cache
def _get_encoder() -> tiktoken.Encoding | None:
    """Load the tiktoken encoder once; None if it cannot be loaded."""
    encoding_name = get_settings().TOKENIZER_ENCODING
    try:
        return tiktoken.get_encoding(encoding_name)
    except Exception as e:
        logger.warning(
            f"Tokenizer '{encoding_name}' unavailable, using character heuristic: {e}"
        )
        return None


def estimate_tokens(text: str) -> int:
    """Estimate token count using the ~4 chars/token heuristic."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def count_tokens(text: str | None) -> int:
    """Count tokens in text.

    Args:
        text: Text to count tokens for

    Returns:
        Token count (never raises)
    """
    if not text:
        return 0

    encoder = _get_encoder()
    if encoder is None:
        return estimate_tokens(text)

    try:
        return len(encoder.encode(text))
    except Exception as e:
        # e.g. disallowed special tokens such as <|endoftext|>
        logger.debug(f"Token encoding failed, falling back to heuristic: {e}")
        return estimate_tokens(text)


def message_text(message: ChatMessage | Mapping) -> str:
    """Extract plain text from a ChatMessage or message dict."""
    if isinstance(message, ChatMessage):
        return message.text
    content = message.get("content")
    if isinstance(content, str):
        return content
    parts = message.get("parts") or []
    return "\n".join(
        p["text"] for p in parts
        if isinstance(p, Mapping) and p.get("type") == "text" and p.get("text")
    )


def count_message_tokens(messages: Iterable[ChatMessage | Mapping]) -> int:
    """Count tokens in a message list, including per-message overhead.

    Args:
        messages: ChatMessage objects or message dicts

    Returns:
        Total token count
    """
    return sum(
        count_tokens(message_text(msg)) + MESSAGE_OVERHEAD_TOKENS for msg in messages
    )
