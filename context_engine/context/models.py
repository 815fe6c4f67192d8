"""Pydantic models for context management."""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# No category is ever starved below this many tokens
MIN_CATEGORY_TOKENS = 500


class BudgetCategory(str, Enum):
    """Named slices of the context window."""

    SYSTEM_PROMPT = "system_prompt"
    BRAND_VOICE = "brand_voice"
    SKILL_CONTEXT = "skill_context"
    RETRIEVED_CONTEXT = "retrieved_context"
    CONVERSATION_HISTORY = "conversation_history"
    RESPONSE_BUFFER = "response_buffer"

    @property
    def display_name(self) -> str:
        """Human-readable category name."""
        return self.value.replace("_", " ").title()


class TokenBudget(BaseModel):
    """Per-category token budget. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    system_prompt: int = Field(..., ge=MIN_CATEGORY_TOKENS, description="Base instructions")
    brand_voice: int = Field(..., ge=MIN_CATEGORY_TOKENS, description="Voice/personality")
    skill_context: int = Field(..., ge=MIN_CATEGORY_TOKENS, description="Active skill instructions")
    retrieved_context: int = Field(..., ge=MIN_CATEGORY_TOKENS, description="Retrieved knowledge")
    conversation_history: int = Field(..., ge=MIN_CATEGORY_TOKENS, description="Message history")
    response_buffer: int = Field(..., ge=MIN_CATEGORY_TOKENS, description="Reserved for the response")

    def __getitem__(self, category: BudgetCategory | str) -> int:
        return getattr(self, BudgetCategory(category).value)

    def as_dict(self) -> dict[BudgetCategory, int]:
        """Budget keyed by category, in declaration order."""
        return {category: self[category] for category in BudgetCategory}

    @property
    def total(self) -> int:
        return sum(self.as_dict().values())


class TokenAllocation(BaseModel):
    """Result of allocating a context window across categories."""

    model_config = ConfigDict(frozen=True)

    budget: TokenBudget
    total: int = Field(..., description="Sum of all category budgets")
    remaining: int = Field(..., description="Requested total minus realized total; negative if floors overflow")
    utilization: float = Field(..., description="Realized total / requested total")

    @property
    def over_capacity(self) -> bool:
        """True when category floors could not fit in the requested total."""
        return self.remaining < 0


class ContentSection(BaseModel):
    """One unit of prompt material competing for the context window."""

    model_config = ConfigDict(frozen=True)

    category: BudgetCategory
    content: str = ""
    tokens: int = Field(..., ge=0, description="Precomputed token count of content")
    priority: int = Field(..., ge=1, le=5, description="1 = must-keep, 5 = droppable")
    truncated: bool = Field(default=False, description="Whether content was trimmed to fit")

    @classmethod
    def from_text(
        cls,
        category: BudgetCategory | str,
        content: str,
        priority: int,
    ) -> "ContentSection":
        """Build a section, counting its tokens."""
        from context_engine.context.token_counter import count_tokens

        return cls(
            category=category,
            content=content,
            tokens=count_tokens(content),
            priority=priority,
        )


class AssembledContext(BaseModel):
    """Prompt text built from the sections that fit the budget."""

    assembled: str = ""
    sections: list[ContentSection] = Field(default_factory=list)
    overflow: list[ContentSection] = Field(default_factory=list)
    tokens_used: int = 0


class MessagePart(BaseModel):
    """A typed fragment of a multi-part message."""

    model_config = ConfigDict(frozen=True)

    type: str
    text: str | None = None


class ChatMessage(BaseModel):
    """A message in conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant", "system"] = Field(..., description="user, assistant, or system")
    content: str | None = Field(default=None, description="Message content")
    parts: list[MessagePart] | None = Field(
        default=None, description="Multi-part content, used when content is absent"
    )

    @property
    def text(self) -> str:
        """Plain text of the message."""
        if isinstance(self.content, str):
            return self.content
        if self.parts:
            return "\n".join(p.text for p in self.parts if p.type == "text" and p.text)
        return ""


def normalize_messages(messages: Iterable[ChatMessage | Mapping]) -> list[ChatMessage]:
    """Convert message dicts to ChatMessage objects, keeping order."""
    return [
        msg if isinstance(msg, ChatMessage) else ChatMessage.model_validate(msg)
        for msg in messages
    ]


class SummaryStrategy(str, Enum):
    """How older conversation turns are condensed."""

    EXTRACTIVE = "extractive"
    HYBRID = "hybrid"


class SummarizationOptions(BaseModel):
    """Tunables for conversation compaction."""

    max_summary_tokens: int = Field(default=500, ge=0)
    preserve_recent_count: int = Field(default=4, ge=0)
    preserve_system_messages: bool = True
    strategy: SummaryStrategy = SummaryStrategy.HYBRID


class SummarizationResult(BaseModel):
    """Compacted conversation with accounting."""

    summary: str = ""
    preserved_messages: list[ChatMessage] = Field(default_factory=list)
    summarized_count: int = 0
    original_tokens: int = 0
    result_tokens: int = 0
    compression_ratio: float = 1.0


class ConversationStats(BaseModel):
    """Message and token counts for a conversation."""

    total_messages: int = 0
    user_messages: int = 0
    assistant_messages: int = 0
    system_messages: int = 0
    total_tokens: int = 0
    avg_tokens_per_message: float = 0.0


class ContextUsageReport(BaseModel):
    """Token usage breakdown of an assembled request, with advice."""

    usage: dict[str, int] = Field(default_factory=dict)
    total: int = 0
    remaining: int = 0
    utilization: float = 0.0
    warnings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
