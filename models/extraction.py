from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal


class ExtractedBOMItem(BaseModel):
    """A candidate BOM line pulled out of free text (by the LLM or keywords)."""
    name: str
    make: Optional[str] = None
    description: str = ""
    sku: Optional[str] = None
    quantity: float = 1
    category: str = "Uncategorized"
    unit: str = "pcs"
    confidence: float = 0.8             # 0-1
    specifications: dict = Field(default_factory=dict)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return min(1.0, max(0.0, v))

    @field_validator("category", "unit", mode="before")
    @classmethod
    def _blank_to_default(cls, v, info):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Uncategorized" if info.field_name == "category" else "pcs"
        return v


class BOMAnalysisResult(BaseModel):
    """
    Output of a BOM import analysis.

    degraded is True when the extraction service failed and the local keyword
    analyzer produced the items instead; callers should show lower confidence.
    """
    items: List[ExtractedBOMItem] = Field(default_factory=list)
    total_items: int = 0
    processing_time_seconds: float = 0.0
    method: Literal["llm", "keywords"] = "llm"
    degraded: bool = False
    error: Optional[str] = None         # Why the extraction service failed
