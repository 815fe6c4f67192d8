"""Context management module for bounded prompt assembly.

This module provides:
- Approximate token counting
- Token budget allocation across content categories
- Priority-ordered context assembly with trimming and overflow
- Conversation compaction via heuristic summarization
"""

from context_engine.context.models import (
    MIN_CATEGORY_TOKENS,
    AssembledContext,
    BudgetCategory,
    ChatMessage,
    ContentSection,
    ContextUsageReport,
    ConversationStats,
    MessagePart,
    SummarizationOptions,
    SummarizationResult,
    SummaryStrategy,
    TokenAllocation,
    TokenBudget,
)

__all__ = [
    # Constants
    "MIN_CATEGORY_TOKENS",
    # Models
    "AssembledContext",
    "BudgetCategory",
    "ChatMessage",
    "ContentSection",
    "ContextUsageReport",
    "ConversationStats",
    "MessagePart",
    "SummarizationOptions",
    "SummarizationResult",
    "SummaryStrategy",
    "TokenAllocation",
    "TokenBudget",
]
