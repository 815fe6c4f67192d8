"""Heuristic sentence scoring for extractive conversation summaries.

Any callable taking a SentenceCandidate and returning a float can replace
default_sentence_score.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

IMPORTANT_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\b(important|critical|must|required|essential)\b", re.IGNORECASE),
    re.compile(r"\b(remember|note that|key point)\b", re.IGNORECASE),
    re.compile(r"\b(decision|decided|agree|confirmed)\b", re.IGNORECASE),
    re.compile(r"\?$"),
    re.compile(r"\b(error|bug|issue|problem|fix)\b", re.IGNORECASE),
)

LONG_SENTENCE_CHARS = 200


@dataclass(frozen=True)
class SentenceCandidate:
    """A sentence taken from a message being summarized."""

    text: str
    role: str
    message_index: int  # Position of the message in the summarized span
    sentence_index: int  # Position of the sentence within its message
    message_count: int  # Size of the summarized span


SentenceScorer = Callable[[SentenceCandidate], float]


def is_important(text: str) -> bool:
    """Whether text carries an importance marker."""
    return any(pattern.search(text) for pattern in IMPORTANT_PATTERNS)


def default_sentence_score(candidate: SentenceCandidate) -> float:
    """Linear heuristic favouring early, user-authored and marked sentences."""
    score = (1 - candidate.message_index / candidate.message_count) * 2

    if candidate.role == "user":
        score += 3
    if "?" in candidate.text:
        score += 2
    if is_important(candidate.text):
        score += 3
    if candidate.sentence_index == 0:
        score += 1
    if len(candidate.text) > LONG_SENTENCE_CHARS:
        score -= 1

    return score
