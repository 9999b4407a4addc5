from .lead_time import parse_lead_time_to_days, calculate_expected_arrival, parse_iso_date
from .inward_status import get_inward_status, days_until_arrival, ARRIVING_SOON_DAYS
from .reporting import summarize_inward, tracking_table, tracked_items
from .document_links import (
    filter_documents_by_type, get_outgoing_po_documents, find_linked_document,
    find_linked_po_document, is_item_linked_to_document, validate_document_deletion,
    sync_po_document_links,
)
from .order_actions import mark_ordered, mark_received, delivery_variance_days, describe_variance
from .extractor import DocumentTextExtractor, ExtractionResult
from .llm_parser import BOMLLMParser
from .keyword_analyzer import KeywordAnalyzer
from .importer import BOMImporter
from .compliance import ComplianceChecker
from .database import ProjectStore

__all__ = [
    "parse_lead_time_to_days", "calculate_expected_arrival", "parse_iso_date",
    "get_inward_status", "days_until_arrival", "ARRIVING_SOON_DAYS",
    "summarize_inward", "tracking_table", "tracked_items",
    "filter_documents_by_type", "get_outgoing_po_documents", "find_linked_document",
    "find_linked_po_document", "is_item_linked_to_document", "validate_document_deletion",
    "sync_po_document_links",
    "mark_ordered", "mark_received", "delivery_variance_days", "describe_variance",
    "DocumentTextExtractor", "ExtractionResult", "BOMLLMParser", "KeywordAnalyzer",
    "BOMImporter", "ComplianceChecker", "ProjectStore",
]
