"""Static vocabulary for query expansion.

Synonym and domain-term tables are read-only and built once at import.
Pass an alternate ExpansionVocabulary to the expander to use other tables.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


def _freeze(table: dict[str, list[str]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType({key: tuple(values) for key, values in table.items()})


# Common synonyms and related terms
SYNONYMS: Mapping[str, tuple[str, ...]] = _freeze({
    # Colors
    "color": ["colour", "hue", "shade", "palette"],
    "colours": ["colors"],
    "red": ["crimson", "scarlet", "ruby"],
    "orange": ["aperol", "tangerine", "coral"],
    "black": ["dark", "charcoal", "ebony"],
    "white": ["light", "cream", "vanilla", "ivory"],
    # Typography
    "font": ["typeface", "typography", "type"],
    "typeface": ["font", "typography"],
    "typography": ["font", "typeface", "type", "lettering"],
    "heading": ["title", "header", "headline"],
    "body": ["paragraph", "text", "copy"],
    "bold": ["heavy", "strong", "thick"],
    # Brand
    "logo": ["logomark", "brandmark", "mark", "symbol"],
    "brand": ["identity", "branding"],
    "identity": ["brand", "branding"],
    "guidelines": ["guide", "rules", "standards", "spec"],
    "voice": ["tone", "personality", "character"],
    "tone": ["voice", "mood", "style"],
    # Design
    "style": ["aesthetic", "look", "design"],
    "design": ["style", "aesthetic", "visual"],
    "layout": ["composition", "arrangement", "structure"],
    "spacing": ["padding", "margin", "whitespace", "gap"],
    "icon": ["symbol", "glyph", "pictogram"],
    # Content
    "write": ["compose", "draft", "create"],
    "writing": ["copy", "content", "text"],
    "message": ["messaging", "communication", "content"],
    "social": ["social media", "instagram", "twitter", "linkedin"],
    # Actions
    "use": ["apply", "utilize", "employ"],
    "create": ["make", "build", "design", "generate"],
    "find": ["search", "locate", "discover"],
    "show": ["display", "present", "demonstrate"],
})

# Brand-specific vocabulary; multi-word keys are matched against the full query
DOMAIN_TERMS: Mapping[str, tuple[str, ...]] = _freeze({
    # Brand colors
    "aperol": ["orange", "brand color", "accent", "#FE5102"],
    "charcoal": ["dark", "black", "#191919", "background"],
    "vanilla": ["cream", "light", "warm white", "#FFFAEE"],
    "glass": ["transparent", "overlay", "frost"],
    # Typography
    "neue haas": ["neue haas grotesk", "display font", "heading font"],
    "offbit": ["accent font", "tech font", "digital"],
    # Brand concepts
    "steward": ["guide", "advisor", "helper", "guardian"],
    "open session": ["brand", "company", "organization"],
    # Asset categories
    "illustration": ["illustrations", "drawings", "graphics"],
    "texture": ["textures", "pattern", "background"],
    "photo": ["photography", "image", "picture"],
})


@dataclass(frozen=True)
class ExpansionVocabulary:
    """Lookup tables used by the query expander."""

    synonyms: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: SYNONYMS)
    domain_terms: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: DOMAIN_TERMS)

    @classmethod
    def from_tables(
        cls,
        synonyms: dict[str, list[str]] | None = None,
        domain_terms: dict[str, list[str]] | None = None,
    ) -> "ExpansionVocabulary":
        """Build a vocabulary from plain dicts (keys lower-cased)."""
        return cls(
            synonyms=_freeze({k.lower(): v for k, v in (synonyms or {}).items()}),
            domain_terms=_freeze({k.lower(): v for k, v in (domain_terms or {}).items()}),
        )


DEFAULT_VOCABULARY = ExpansionVocabulary()
