"""
Data Models
===========
Pydantic models for the brand guideline extraction pipeline.
The BrandGuideline aggregate serializes to camelCase JSON for the
persistence collaborator.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ─── Enums ────────────────────────────────────────────────────────────────────


class Category(str, Enum):
    """Canonical section / guideline category label."""
    COLOR = "COLOR"
    TYPOGRAPHY = "TYPOGRAPHY"
    LOGO = "LOGO"
    SPACING = "SPACING"
    IMAGERY = "IMAGERY"
    TONE = "TONE"
    GENERAL = "GENERAL"


class Severity(str, Enum):
    """Downstream conformance impact of a guideline entity."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


class ExtractionMethod(str, Enum):
    """Which pipeline path produced the final guideline."""
    ENHANCED_HEURISTIC = "enhanced-heuristic"
    LLM_ENHANCED = "llm-enhanced"
    SPECIALIZED = "perfect_enhanced_rule_based"
    FALLBACK = "fallback-mock-data"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ─── Input / Section Models ───────────────────────────────────────────────────


class RawDocument(_Model):
    """Input text plus brand-name hint. Never mutated."""
    model_config = ConfigDict(frozen=True)

    text: str
    brand_name: str = ""


class Section(_Model):
    """
    A labeled span of the cleaned text.
    Created by the segmenter, consumed by extractors.
    """
    category: Category
    text: str = ""
    headers: list[str] = Field(default_factory=list)
    source: str = Field(
        default="conservative",
        description="conservative | pre_cluster | merged | whole_document",
    )

    def extend(self, text: str, header: Optional[str] = None):
        """Append a chunk of text (and optionally the header that opened it)."""
        if header and header not in self.headers:
            self.headers.append(header)
        if text:
            self.text = f"{self.text}\n{text}" if self.text else text


# ─── Candidate Entities ───────────────────────────────────────────────────────


class HeadingStyle(_Model):
    """Size / weight / letter-spacing rule for one heading level."""
    size_px: Optional[float] = Field(default=None, alias="sizePx")
    weight: Optional[str] = None
    letter_spacing_px: Optional[float] = Field(default=None, alias="letterSpacingPx")


class CandidateBase(_Model):
    """Fields shared by every extracted candidate."""
    raw: str
    value: str
    context: str = ""
    section: Category = Category.GENERAL
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    provenance: str = ""
    offset: Optional[int] = Field(default=None, exclude=True)


class ColorCandidate(CandidateBase):
    kind: Literal["color"] = "color"
    attribute: str = Field(
        default="value",
        description="value | forbidden | rule",
    )
    usage: str = "general"
    role: Optional[str] = None
    name: Optional[str] = None


class FontCandidate(CandidateBase):
    kind: Literal["font"] = "font"
    attribute: str = Field(
        default="family",
        description="family | weight | size | heading",
    )
    role_hint: Optional[str] = None
    whitelisted: bool = False
    score: float = 0.0
    heading: Optional[HeadingStyle] = None


class LogoRuleCandidate(CandidateBase):
    kind: Literal["logo_rule"] = "logo_rule"
    rule_type: str = "rule"


class SpacingRuleCandidate(CandidateBase):
    kind: Literal["spacing_rule"] = "spacing_rule"
    rule_type: str = "rule"


class ToneDescriptorCandidate(CandidateBase):
    kind: Literal["tone"] = "tone"
    rule_type: str = "descriptor"


class ImageryDescriptorCandidate(CandidateBase):
    kind: Literal["imagery"] = "imagery"
    rule_type: str = "descriptor"


CandidateEntity = Annotated[
    Union[
        ColorCandidate,
        FontCandidate,
        LogoRuleCandidate,
        SpacingRuleCandidate,
        ToneDescriptorCandidate,
        ImageryDescriptorCandidate,
    ],
    Field(discriminator="kind"),
]


# ─── Guideline Blocks ─────────────────────────────────────────────────────────


class NamedColor(_Model):
    hex: str
    name: Optional[str] = None
    usage: str = "general"
    severity: Severity = Severity.MEDIUM


class ColorsBlock(_Model):
    semantic: dict[str, NamedColor] = Field(default_factory=dict)
    neutral: list[NamedColor] = Field(default_factory=list)
    palette: list[str] = Field(default_factory=list)
    forbidden: list[str] = Field(default_factory=list)
    names: list[str] = Field(default_factory=list)
    rules: list[str] = Field(default_factory=list)
    unresolved: list[str] = Field(default_factory=list)

    def is_populated(self) -> bool:
        return bool(self.palette or self.semantic)


class FontSet(_Model):
    primary: Optional[str] = None
    secondary: Optional[str] = None
    families: list[str] = Field(default_factory=list)


class TypographyBlock(_Model):
    fonts: FontSet = Field(default_factory=FontSet)
    weights: list[str] = Field(default_factory=list)
    sizes: list[str] = Field(default_factory=list)
    hierarchy: dict[str, HeadingStyle] = Field(default_factory=dict)
    rules: list[str] = Field(default_factory=list)

    def is_populated(self) -> bool:
        return bool(self.fonts.primary or self.fonts.families)


class LogoMinSize(_Model):
    print_size: Optional[str] = Field(default=None, alias="print")
    digital_size: Optional[str] = Field(default=None, alias="digital")


class LogoBlock(_Model):
    rules: list[str] = Field(default_factory=list)
    clearspace: Optional[str] = None
    min_size: LogoMinSize = Field(default_factory=LogoMinSize, alias="minSize")
    forbidden: list[str] = Field(default_factory=list)
    variants: list[str] = Field(default_factory=list)

    def is_populated(self) -> bool:
        return bool(
            self.rules
            or self.forbidden
            or self.variants
            or self.clearspace
            or self.min_size.print_size
            or self.min_size.digital_size
        )


class SpacingBlock(_Model):
    grid: Optional[str] = None
    base_unit: Optional[str] = Field(default=None, alias="baseUnit")
    section_gap: Optional[str] = Field(default=None, alias="sectionGap")
    component_gap: Optional[str] = Field(default=None, alias="componentGap")
    rules: list[str] = Field(default_factory=list)

    def is_populated(self) -> bool:
        return bool(
            self.grid
            or self.base_unit
            or self.section_gap
            or self.component_gap
            or self.rules
        )


class ToneBlock(_Model):
    descriptors: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    rules: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)

    def is_populated(self) -> bool:
        return bool(self.descriptors or self.rules or self.keywords or self.examples)


class ImageryBlock(_Model):
    style_descriptors: list[str] = Field(
        default_factory=list, alias="styleDescriptors"
    )
    rules: list[str] = Field(default_factory=list)

    def is_populated(self) -> bool:
        return bool(self.style_descriptors or self.rules)


class ConfidenceBlock(_Model):
    per_category: dict[str, float] = Field(
        default_factory=dict, alias="perCategory"
    )
    overall: float = Field(default=0.0, ge=0.0, le=1.0)


class ExtractionMetadata(_Model):
    extraction_method: ExtractionMethod = Field(
        default=ExtractionMethod.ENHANCED_HEURISTIC, alias="extractionMethod"
    )
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    text_length: int = Field(default=0, alias="textLength")
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    brand_name: str = Field(default="", alias="brandName")
    defaulted_categories: list[str] = Field(
        default_factory=list, alias="defaultedCategories"
    )
    llm_sections: int = Field(default=0, alias="llmSections")


# Guideline attribute name for each extractable category
CATEGORY_FIELDS: dict[Category, str] = {
    Category.COLOR: "colors",
    Category.TYPOGRAPHY: "typography",
    Category.LOGO: "logo",
    Category.SPACING: "spacing",
    Category.TONE: "tone",
    Category.IMAGERY: "imagery",
}


class BrandGuideline(_Model):
    """
    The aggregate output of the engine.
    This is the only object handed to the persistence collaborator.
    """
    colors: ColorsBlock = Field(default_factory=ColorsBlock)
    typography: TypographyBlock = Field(default_factory=TypographyBlock)
    logo: LogoBlock = Field(default_factory=LogoBlock)
    spacing: SpacingBlock = Field(default_factory=SpacingBlock)
    tone: ToneBlock = Field(default_factory=ToneBlock)
    imagery: ImageryBlock = Field(default_factory=ImageryBlock)
    confidence: ConfidenceBlock = Field(default_factory=ConfidenceBlock)
    metadata: ExtractionMetadata = Field(default_factory=ExtractionMetadata)

    def block(self, category: Category):
        return getattr(self, CATEGORY_FIELDS[category])

    def to_json_dict(self) -> dict:
        """Plain JSON-compatible dict with camelCase keys."""
        return self.model_dump(by_alias=True, mode="json")


# ─── Reconciliation Report ────────────────────────────────────────────────────


class ReconciliationMove(_Model):
    """A token relocated from one category array to another."""
    token: str
    source: str
    target: str


class ReconciliationReport(_Model):
    moves: list[ReconciliationMove] = Field(default_factory=list)
    dropped_fragments: list[str] = Field(default_factory=list)
    duplicates_removed: int = 0
    escalations: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def total_corrections(self) -> int:
        return (
            len(self.moves)
            + len(self.dropped_fragments)
            + self.duplicates_removed
            + len(self.escalations)
        )
