"""Token budget allocation for context window optimization.

Partitions a finite context window across six content categories:
1. Start from default budgets plus caller overrides
2. Over capacity: shrink least-essential categories first, never below the floor
3. Under capacity: grow the flexible categories (retrieval, history, response)
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from context_engine.context.models import (
    MIN_CATEGORY_TOKENS,
    BudgetCategory,
    ChatMessage,
    ContextUsageReport,
    TokenAllocation,
    TokenBudget,
)
from context_engine.context.token_counter import count_message_tokens, count_tokens
from context_engine.core.config import get_settings
from context_engine.core.logging import get_logger, log_with_context

logger = get_logger(__name__)


@dataclass(frozen=True)
class CategoryPriority:
    """Allocation priority of a category."""

    category: BudgetCategory
    priority: int  # Lower = more essential (shrunk last)


# Sum is the typical working context size (23,500)
DEFAULT_BUDGET: Mapping[BudgetCategory, int] = MappingProxyType({
    BudgetCategory.SYSTEM_PROMPT: 2_000,
    BudgetCategory.BRAND_VOICE: 1_500,
    BudgetCategory.SKILL_CONTEXT: 2_000,
    BudgetCategory.RETRIEVED_CONTEXT: 8_000,
    BudgetCategory.CONVERSATION_HISTORY: 6_000,
    BudgetCategory.RESPONSE_BUFFER: 4_000,
})

PRIORITY_ORDER: tuple[CategoryPriority, ...] = (
    CategoryPriority(BudgetCategory.SYSTEM_PROMPT, 1),
    CategoryPriority(BudgetCategory.RESPONSE_BUFFER, 2),
    CategoryPriority(BudgetCategory.CONVERSATION_HISTORY, 3),
    CategoryPriority(BudgetCategory.RETRIEVED_CONTEXT, 4),
    CategoryPriority(BudgetCategory.SKILL_CONTEXT, 5),
    CategoryPriority(BudgetCategory.BRAND_VOICE, 6),
)

# Surplus shares, in tenths
GROWTH_SHARES: tuple[tuple[BudgetCategory, int], ...] = (
    (BudgetCategory.RETRIEVED_CONTEXT, 5),
    (BudgetCategory.CONVERSATION_HISTORY, 3),
    (BudgetCategory.RESPONSE_BUFFER, 2),
)

# Max fraction of a category removed per shrink pass
SHRINK_RATE = 0.3

RESPONSE_BUFFER_TOKENS = 4_000
LOW_REMAINING_TOKENS = 2_000


def _shrink(budget: dict[BudgetCategory, int], excess: int) -> int:
    """Absorb excess by shrinking least-essential categories first.

    Returns the excess that could not be absorbed (categories at floor).
    """
    shrink_order = sorted(PRIORITY_ORDER, key=lambda p: p.priority, reverse=True)

    while excess > 0:
        absorbed = 0
        for entry in shrink_order:
            if excess <= 0:
                break
            current = budget[entry.category]
            reduction = min(int(current * SHRINK_RATE), excess, current - MIN_CATEGORY_TOKENS)
            if reduction <= 0:
                continue
            budget[entry.category] = current - reduction
            excess -= reduction
            absorbed += reduction

        if absorbed == 0:
            break

    return excess


def _grow(budget: dict[BudgetCategory, int], extra: int) -> None:
    """Distribute surplus to the flexible categories (floor division)."""
    for category, tenths in GROWTH_SHARES:
        budget[category] += extra * tenths // 10


def allocate_token_budget(
    total_tokens: int | None = None,
    overrides: Mapping[BudgetCategory | str, int] | None = None,
) -> TokenAllocation:
    """
    Allocate a context window across budget categories.

    Args:
        total_tokens: Context window to fill (default from settings)
        overrides: Per-category budgets replacing the defaults

    Returns:
        TokenAllocation with the budget, realized total, remaining and utilization.
        When category floors exceed total_tokens, remaining is negative.
    """
    if total_tokens is None:
        total_tokens = get_settings().DEFAULT_CONTEXT_TOKENS

    budget = dict(DEFAULT_BUDGET)
    for key, value in (overrides or {}).items():
        budget[BudgetCategory(key)] = max(int(value), MIN_CATEGORY_TOKENS)

    current_total = sum(budget.values())
    if current_total > total_tokens:
        unabsorbed = _shrink(budget, current_total - total_tokens)
        if unabsorbed > 0:
            log_with_context(
                logger,
                logging.WARNING,
                "Category floors exceed requested context size",
                total_tokens=total_tokens,
                unabsorbed=unabsorbed,
            )
    elif current_total < total_tokens:
        _grow(budget, total_tokens - current_total)

    total = sum(budget.values())
    utilization = total / total_tokens if total_tokens > 0 else float("inf")

    return TokenAllocation(
        budget=TokenBudget(**{category.value: tokens for category, tokens in budget.items()}),
        total=total,
        remaining=total_tokens - total,
        utilization=utilization,
    )


def analyze_context_usage(
    system_prompt: str,
    messages: Iterable[ChatMessage | Mapping],
    retrieved_context: str,
    total_budget: int = 150_000,
) -> ContextUsageReport:
    """
    Analyze token usage of a request and recommend fixes.

    Args:
        system_prompt: Full system prompt text
        messages: Conversation history
        retrieved_context: Retrieved knowledge text
        total_budget: Context window size

    Returns:
        ContextUsageReport with usage breakdown, warnings and recommendations
    """
    system_tokens = count_tokens(system_prompt)
    message_tokens = count_message_tokens(messages)
    context_tokens = count_tokens(retrieved_context)

    total = system_tokens + message_tokens + context_tokens + RESPONSE_BUFFER_TOKENS
    remaining = total_budget - total
    utilization = total / total_budget if total_budget > 0 else float("inf")

    warnings: list[str] = []
    recommendations: list[str] = []

    if utilization > 0.9:
        warnings.append("Context window is >90% utilized. Response quality may suffer.")
        recommendations.append("Consider summarizing conversation history.")

    if message_tokens > 0.5 * total_budget:
        warnings.append("Conversation history is using >50% of context.")
        recommendations.append("Enable conversation summarization for long threads.")

    if context_tokens > 0.4 * total_budget:
        warnings.append("Retrieved context is using >40% of context.")
        recommendations.append("Reduce number of retrieved chunks or enable re-ranking.")

    if remaining < LOW_REMAINING_TOKENS:
        warnings.append(f"Less than {LOW_REMAINING_TOKENS} tokens remaining for response.")
        recommendations.append("Immediately trim older messages.")

    return ContextUsageReport(
        usage={
            "system_prompt": system_tokens,
            "messages": message_tokens,
            "retrieved_context": context_tokens,
            "response_buffer": RESPONSE_BUFFER_TOKENS,
        },
        total=total,
        remaining=remaining,
        utilization=utilization,
        warnings=warnings,
        recommendations=recommendations,
    )


def format_allocation_report(allocation: TokenAllocation) -> str:
    """Format a human-readable budget report.

    Args:
        allocation: Budget allocation result

    Returns:
        Formatted report string
    """
    lines = ["Token Budget Report", "=" * 40]

    for entry in PRIORITY_ORDER:
        tokens = allocation.budget[entry.category]
        floor = " [FLOOR]" if tokens == MIN_CATEGORY_TOKENS else ""
        lines.append(f"  {entry.category.display_name}: {tokens:,}{floor}")

    lines.append("-" * 40)
    lines.append(f"  Total: {allocation.total:,}")
    lines.append(f"  Remaining: {allocation.remaining:,}")
    lines.append(f"  Utilization: {allocation.utilization:.1%}")
    lines.append(f"  Over Capacity: {allocation.over_capacity}")

    return "\n".join(lines)
