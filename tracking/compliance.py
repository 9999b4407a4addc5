"""
BOM compliance checking.

The compliance service (LLM) is asked first. If it fails for any reason the
local rule set runs instead and the report is marked degraded.

Local rules:
  Data quality:  missing name or category, non-positive quantity
  SKU:           malformed part numbers
  Duplicates:    near-identical names within a category (rapidfuzz)
  Quotes:        components with no linked vendor quote
  Pricing:       finalized vendor price vs item price
  Delivery:      received without arrival date, arrival date on a non-received item
"""
import logging
import re
import time
from datetime import datetime, timezone
from typing import Iterable, Optional

from rapidfuzz import fuzz

from config import Config
from models.bom import BOMItem
from models.document import ProjectDocument
from models.result import ComplianceIssue, ComplianceReport
from .document_links import filter_documents_by_type, is_item_linked_to_document
from .llm_parser import BOMLLMParser

logger = logging.getLogger(__name__)

# Letters, digits, dots, slashes and hyphens; must contain at least one digit
_SKU_RE = re.compile(r"^(?=.*\d)[A-Za-z0-9][A-Za-z0-9./-]{2,}$")


class ComplianceChecker:
    """
    Usage:
        checker = ComplianceChecker(config)
        report = checker.check(project_id, items, documents)
    """

    def __init__(self, config: Config, parser: Optional[BOMLLMParser] = None):
        self.config = config
        self.parser = parser or BOMLLMParser(
            model=config.llm_model,
            base_url=config.llm_base_url,
            api_key=config.llm_api_key,
            timeout=config.llm_timeout,
            max_attempts=config.llm_max_attempts,
        )
        self.duplicate_threshold = config.duplicate_fuzzy_threshold
        self.price_tolerance_pct = config.price_tolerance_pct

    def check(
        self,
        project_id: str,
        items: list[BOMItem],
        documents: Iterable[ProjectDocument] = (),
    ) -> ComplianceReport:
        """Run a compliance pass; never raises for compliance service failures."""
        start = time.monotonic()
        report = ComplianceReport(
            project_id=project_id,
            created_at=datetime.now(timezone.utc).isoformat(),
            total_items_checked=len(items),
        )

        if items:
            try:
                report.issues = self.parser.check_compliance(items)
                report.method = "llm"
            except Exception as e:
                logger.warning("Compliance service failed, using local rules: %s", e)
                report.issues = self.check_local(items, documents)
                report.method = "local"
                report.degraded = True
                report.error = str(e)

        report.processing_time_seconds = round(time.monotonic() - start, 3)
        report.compute_summary()
        logger.info(
            "Compliance for project %s: %d issues, score %d (%s)",
            project_id, report.total_issues, report.score, report.method,
        )
        return report

    def check_local(
        self,
        items: list[BOMItem],
        documents: Iterable[ProjectDocument] = (),
    ) -> list[ComplianceIssue]:
        """Rule-based checks only; no network."""
        quotes = filter_documents_by_type(documents, "vendor-quote")
        issues: list[ComplianceIssue] = []
        for item in items:
            issues.extend(self._check_data_quality(item))
            issues.extend(self._check_sku(item))
            issues.extend(self._check_quote(item, quotes))
            issues.extend(self._check_price(item))
            issues.extend(self._check_delivery(item))
        issues.extend(self._check_duplicates(items))
        return issues

    # ------------------------------------------------------------------
    # Data quality checks
    # ------------------------------------------------------------------

    def _check_data_quality(self, item: BOMItem) -> list[ComplianceIssue]:
        issues = []

        if not item.name.strip():
            issues.append(_issue(
                item, "missing-field", "error",
                "Item has no name",
                details="Every BOM line needs a name to be ordered or tracked.",
            ))

        if not item.category.strip() or item.category == "Uncategorized":
            issues.append(_issue(
                item, "missing-field", "warning",
                "Item has no category",
                details="Assign a category so the item appears in the right BOM section.",
                current_value=item.category or None,
            ))

        if item.quantity <= 0:
            issues.append(_issue(
                item, "missing-field", "error",
                f"Quantity must be positive, got {item.quantity:g}",
                current_value=f"{item.quantity:g}",
            ))

        return issues

    def _check_sku(self, item: BOMItem) -> list[ComplianceIssue]:
        if item.is_service or not item.sku:
            return []
        sku = item.sku.strip()
        if _SKU_RE.match(sku):
            return []
        return [_issue(
            item, "invalid-sku", "warning",
            f"SKU '{sku}' does not look like a part number",
            details="Part numbers contain letters, digits and hyphens, and at least one digit.",
            current_value=sku,
        )]

    # ------------------------------------------------------------------
    # Quote / pricing checks
    # ------------------------------------------------------------------

    def _check_quote(self, item: BOMItem, quotes: list[ProjectDocument]) -> list[ComplianceIssue]:
        if item.is_service:
            return []
        if any(is_item_linked_to_document(item, doc) for doc in quotes):
            return []
        return [_issue(
            item, "missing-quote", "info",
            "No vendor quote linked",
            details="Link a vendor-quote document before ordering.",
        )]

    def _check_price(self, item: BOMItem) -> list[ComplianceIssue]:
        vendor = item.finalized_vendor
        if vendor is None or not item.price or not vendor.price:
            return []
        deviation = abs(vendor.price - item.price) / item.price
        if deviation <= self.price_tolerance_pct:
            return []
        return [_issue(
            item, "price-mismatch", "warning",
            f"Vendor price {vendor.price:.2f} differs from BOM price {item.price:.2f} "
            f"by {deviation:.0%}",
            details=f"Finalized vendor: {vendor.name}",
            current_value=f"{vendor.price:.2f}",
        )]

    # ------------------------------------------------------------------
    # Delivery checks
    # ------------------------------------------------------------------

    def _check_delivery(self, item: BOMItem) -> list[ComplianceIssue]:
        if item.status == "received" and not item.actual_arrival:
            return [_issue(
                item, "missing-field", "warning",
                "Item is received but has no arrival date",
            )]
        if item.status != "received" and item.actual_arrival:
            return [_issue(
                item, "missing-field", "warning",
                f"Item has an arrival date ({item.actual_arrival}) but is {item.status}",
                current_value=item.actual_arrival,
            )]
        return []

    # ------------------------------------------------------------------
    # Duplicate detection
    # ------------------------------------------------------------------

    def _check_duplicates(self, items: list[BOMItem]) -> list[ComplianceIssue]:
        """Flag the later item of each near-duplicate pair within a category."""
        issues = []
        flagged: set[str] = set()

        for i, first in enumerate(items):
            for second in items[i + 1:]:
                if second.id in flagged or first.category != second.category:
                    continue
                if not first.name.strip() or not second.name.strip():
                    continue
                score = fuzz.token_sort_ratio(first.name.lower(), second.name.lower())
                if score < self.duplicate_threshold:
                    continue
                flagged.add(second.id)
                issues.append(_issue(
                    second, "duplicate-item", "warning",
                    f"Looks like a duplicate of '{first.name}'",
                    details=f"Name similarity {score:.0f}% within category {first.category}.",
                    current_value=second.name,
                ))
        return issues


def _issue(
    item: BOMItem,
    issue_type: str,
    severity: str,
    message: str,
    details: str = "",
    current_value: Optional[str] = None,
) -> ComplianceIssue:
    return ComplianceIssue(
        bom_item_id=item.id,
        bom_item_name=item.name,
        category=item.category,
        issue_type=issue_type,
        severity=severity,
        message=message,
        details=details,
        current_value=current_value,
    )
