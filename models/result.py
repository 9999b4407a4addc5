from pydantic import BaseModel, Field
from typing import Optional, List, Literal

from .bom import BOMItem, InwardStatus


ComplianceIssueType = Literal[
    "name-format",
    "invalid-sku",
    "description-mismatch",
    "quote-mismatch",
    "missing-quote",
    "missing-field",
    "duplicate-item",
    "price-mismatch",
    "quantity-mismatch",
]

SeverityLevel = Literal["error", "warning", "info"]

# Weights used by the compliance score
_SEVERITY_WEIGHTS = {"error": 3.0, "warning": 1.5, "info": 0.5}


class InwardStats(BaseModel):
    """Headline counts for the inward tracking panel."""
    ordered: int = 0            # on-track + arriving-soon + overdue
    arriving_soon: int = 0
    overdue: int = 0
    received: int = 0
    not_ordered: int = 0
    total: int = 0


class InwardRow(BaseModel):
    """One row of the tracking table."""
    item: BOMItem
    status: InwardStatus
    days_until_arrival: Optional[int] = None


class ComplianceIssue(BaseModel):
    """A single compliance problem found on a BOM item."""
    bom_item_id: str
    bom_item_name: str
    category: str = ""
    issue_type: ComplianceIssueType
    severity: SeverityLevel
    message: str
    details: str = ""
    current_value: Optional[str] = None
    confidence: Optional[float] = None  # 0-1, for LLM-detected issues


class ComplianceReport(BaseModel):
    """
    Result of a compliance run over a project's BOM.

    method says who produced the issues: "llm" for the compliance service,
    "local" for the rule-based fallback (in which case degraded is True).
    It stays None when there were no items to check.
    """
    project_id: str
    created_at: str                         # ISO 8601 datetime
    method: Optional[Literal["llm", "local"]] = None
    degraded: bool = False
    error: Optional[str] = None
    processing_time_seconds: float = 0.0

    total_items_checked: int = 0
    items_with_issues: int = 0
    total_issues: int = 0
    issues_by_type: dict[str, int] = Field(default_factory=dict)
    issues_by_severity: dict[str, int] = Field(
        default_factory=lambda: {"error": 0, "warning": 0, "info": 0}
    )
    issues: List[ComplianceIssue] = Field(default_factory=list)
    score: int = 100

    def compute_summary(self) -> None:
        """Populate counters and the 0-100 score from the issues list."""
        self.total_issues = len(self.issues)
        self.items_with_issues = len({i.bom_item_id for i in self.issues})

        by_type: dict[str, int] = {}
        by_severity = {"error": 0, "warning": 0, "info": 0}
        for issue in self.issues:
            by_type[issue.issue_type] = by_type.get(issue.issue_type, 0) + 1
            by_severity[issue.severity] += 1
        self.issues_by_type = by_type
        self.issues_by_severity = by_severity

        if self.total_items_checked == 0:
            self.score = 100
            return
        weighted = sum(_SEVERITY_WEIGHTS[s] * n for s, n in by_severity.items())
        self.score = round(max(0.0, 100 - (weighted / self.total_items_checked) * 20))
