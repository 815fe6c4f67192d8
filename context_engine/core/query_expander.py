"""Query expansion for retrieval recall.

Expands user queries with synonyms, brand vocabulary and reformulations
before they are sent to the retrieval service:
1. Static synonyms for common terms
2. Brand-specific term mappings
3. Query reformulation for semantic coverage

Usage:
    from context_engine.core.query_expander import expand_for_hybrid_search

    variants = expand_for_hybrid_search("aperol logo")
    # variants.semantic_query -> vector search
    # variants.keyword_query  -> keyword search
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from enum import Enum

from pydantic import BaseModel, Field

from context_engine.core.expansion_vocabulary import DEFAULT_VOCABULARY, ExpansionVocabulary
from context_engine.core.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Models
# =============================================================================


class QueryIntent(str, Enum):
    """What the user is trying to do with a query."""

    SEARCH = "search"
    QUESTION = "question"
    ACTION = "action"
    DEFINITION = "definition"


class ExpansionOptions(BaseModel):
    """Which expansion sources to use and how many terms to keep."""

    include_synonyms: bool = True
    include_domain_terms: bool = True
    include_reformulations: bool = True
    max_expansions: int = Field(default=10, ge=0)


class ExpandedQuery(BaseModel):
    """A query enriched with expansion terms."""

    original: str
    expanded: str
    terms: list[str] = Field(default_factory=list, description="Unique, insertion-ordered")
    confidence: float = Field(..., ge=0.0, le=1.0)
    intent: QueryIntent = QueryIntent.SEARCH


class HybridSearchQuery(BaseModel):
    """Semantic and keyword variants of one query."""

    semantic_query: str
    keyword_query: str
    terms: list[str] = Field(default_factory=list)


# =============================================================================
# Query Analysis
# =============================================================================

_NON_WORD = re.compile(r"[^\w\s-]")

_DEFINITION_START = re.compile(r"^(what\s+is|what\s+are|define)\b")
_DEFINITION_ANYWHERE = re.compile(r"\bmeaning\s+of\b")
_QUESTION_START = re.compile(r"^(how|what|why|when|where)\b")
_ACTION_START = re.compile(r"^(find|show|get|list|search)\b")

_QUESTION_PREFIX = re.compile(
    r"^(what|how|where|when|why|which)\s+(is|are|do|does|can|should)\s+"
)
_DEFINITION_PREFIX = re.compile(r"^(what\s+is|what\s+are|define|meaning\s+of)(\s+|$)")
_ACTION_PREFIX = re.compile(r"^(find|show|get|list|search)\s+(me\s+)?")
_TRAILING_QUESTION = re.compile(r"\?$")


def tokenize_query(query: str) -> list[str]:
    """Lower-case, strip punctuation (hyphens kept) and drop 1-char tokens."""
    if not isinstance(query, str):
        return []
    return [term for term in _NON_WORD.sub(" ", query.lower()).split() if len(term) > 1]


def detect_intent(query: str) -> QueryIntent:
    """Classify a query by its leading words and punctuation."""
    if not isinstance(query, str):
        return QueryIntent.SEARCH
    lower = query.lower().strip()

    if _DEFINITION_START.search(lower) or _DEFINITION_ANYWHERE.search(lower):
        return QueryIntent.DEFINITION
    if _QUESTION_START.search(lower) or "?" in lower:
        return QueryIntent.QUESTION
    if _ACTION_START.search(lower):
        return QueryIntent.ACTION
    return QueryIntent.SEARCH


# =============================================================================
# Expansion Sources
# =============================================================================


def _related_terms(term: str, table: Mapping[str, tuple[str, ...]]) -> list[str]:
    """Bidirectional lookup: mapped values of term, plus keys mapping to term."""
    related = list(table.get(term, ()))

    for key, values in table.items():
        if key == term or key in related:
            continue
        for value in values:
            lower = value.lower()
            if term == lower or term in lower.split():
                related.append(key)
                break

    return related


def generate_reformulations(query: str) -> list[str]:
    """Rewrite a query into bare phrases and adjacent-word bigrams."""
    if not isinstance(query, str):
        return []
    reformulations: list[str] = []
    intent = detect_intent(query)
    lower = query.lower().strip()

    if intent == QueryIntent.QUESTION:
        # "What are the brand colors?" -> "the brand colors"
        stripped = _TRAILING_QUESTION.sub("", _QUESTION_PREFIX.sub("", lower)).strip()
        if stripped and stripped != lower:
            reformulations.append(stripped)

    elif intent == QueryIntent.DEFINITION:
        # "What is aperol?" -> "aperol", "aperol definition", "aperol meaning"
        bare = _TRAILING_QUESTION.sub("", lower).strip()
        term = _DEFINITION_PREFIX.sub("", bare).strip()
        if term:
            reformulations.extend([term, f"{term} definition", f"{term} meaning"])

    elif intent == QueryIntent.ACTION:
        # "Find me logos" -> "logos"
        target = _ACTION_PREFIX.sub("", lower).strip()
        if target and target != lower:
            reformulations.append(target)

    words = tokenize_query(query)
    if len(words) >= 3:
        reformulations.extend(f"{a} {b}" for a, b in zip(words, words[1:]))

    return list(dict.fromkeys(reformulations))


# =============================================================================
# Main Expansion Functions
# =============================================================================


def expand_query(
    query: str,
    options: ExpansionOptions | None = None,
    vocabulary: ExpansionVocabulary = DEFAULT_VOCABULARY,
) -> ExpandedQuery:
    """
    Expand a query with synonyms and related terms.

    Args:
        query: Original user query
        options: Expansion options (defaults if None)
        vocabulary: Synonym and domain-term tables

    Returns:
        ExpandedQuery whose terms always include every original token
    """
    options = options or ExpansionOptions()
    if not isinstance(query, str):
        query = ""

    tokens = list(dict.fromkeys(tokenize_query(query)))
    intent = detect_intent(query)

    if not tokens:
        return ExpandedQuery(original=query, expanded=query, terms=[], confidence=0.5, intent=intent)

    # Ordered set
    expansions: dict[str, None] = dict.fromkeys(tokens)

    if options.include_synonyms:
        for term in tokens:
            expansions.update(dict.fromkeys(_related_terms(term, vocabulary.synonyms)))

    if options.include_domain_terms:
        for term in tokens:
            expansions.update(dict.fromkeys(_related_terms(term, vocabulary.domain_terms)))

        # Multi-word keys only show up in the full query text
        full_query = query.lower()
        for key, values in vocabulary.domain_terms.items():
            if key in full_query:
                expansions.update(dict.fromkeys(values))

    if options.include_reformulations:
        expansions.update(dict.fromkeys(generate_reformulations(query)))

    token_set = set(tokens)
    new_terms = [term for term in expansions if term not in token_set]
    new_terms = new_terms[: max(0, options.max_expansions - len(tokens))]

    expanded = f"{query} {' '.join(new_terms)}" if new_terms else query
    confidence = min(1.0, 0.5 + 0.05 * len(new_terms))

    logger.debug(
        f"Expanded query ({intent.value}): {len(tokens)} tokens + {len(new_terms)} terms"
    )

    return ExpandedQuery(
        original=query,
        expanded=expanded,
        terms=tokens + new_terms,
        confidence=confidence,
        intent=intent,
    )


def expand_for_hybrid_search(
    query: str,
    vocabulary: ExpansionVocabulary = DEFAULT_VOCABULARY,
) -> HybridSearchQuery:
    """Expand a query into semantic and keyword search variants.

    Reformulations are skipped since phrases hurt literal keyword matching.
    """
    expansion = expand_query(
        query,
        ExpansionOptions(include_reformulations=False, max_expansions=8),
        vocabulary,
    )

    keyword_terms = [term for term in expansion.terms if " " not in term][:5]

    return HybridSearchQuery(
        semantic_query=expansion.expanded,
        keyword_query=" ".join(keyword_terms),
        terms=expansion.terms,
    )


def should_expand_query(
    query: str,
    vocabulary: ExpansionVocabulary = DEFAULT_VOCABULARY,
) -> bool:
    """Check whether a query would benefit from expansion."""
    if not isinstance(query, str):
        # Nothing to expand
        return False
    terms = tokenize_query(query)

    # Very short queries
    if len(terms) <= 2:
        return True

    # Brand vocabulary
    if any(term in vocabulary.domain_terms for term in terms):
        return True

    # Questions, definitions and actions benefit from reformulation
    return detect_intent(query) != QueryIntent.SEARCH
