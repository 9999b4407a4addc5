from .bom import BOMItem, VendorQuote, ItemType, BOMStatus, InwardStatus, INWARD_STATUSES
from .document import ProjectDocument, DocumentType, DeletionCheck
from .extraction import ExtractedBOMItem, BOMAnalysisResult
from .result import InwardStats, InwardRow, ComplianceIssue, ComplianceReport

__all__ = [
    "BOMItem", "VendorQuote", "ItemType", "BOMStatus", "InwardStatus", "INWARD_STATUSES",
    "ProjectDocument", "DocumentType", "DeletionCheck",
    "ExtractedBOMItem", "BOMAnalysisResult",
    "InwardStats", "InwardRow", "ComplianceIssue", "ComplianceReport",
]
