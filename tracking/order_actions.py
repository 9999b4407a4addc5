"""
Order and receipt transitions for BOM items.

These are the only places an item's order/delivery fields change. Each
returns an updated copy and leaves the input item untouched; the caller
persists the result and, for orders, runs sync_po_document_links() to move
the PO link.
"""
import logging
from typing import Optional

from models.bom import BOMItem, VendorQuote
from .lead_time import calculate_expected_arrival, parse_iso_date, parse_lead_time_to_days

logger = logging.getLogger(__name__)


def mark_ordered(
    item: BOMItem,
    order_date: str,
    po_number: Optional[str] = None,
    linked_po_document_id: Optional[str] = None,
    vendor: Optional[VendorQuote] = None,
    lead_time: Optional[str] = None,
    expected_arrival: Optional[str] = None,
) -> BOMItem:
    """
    Mark an item as ordered.

    The expected arrival is taken from expected_arrival when given, otherwise
    computed from order_date plus the parsed lead time (lead_time, else the
    vendor's quoted lead time). A lead time that parses to 0 days leaves the
    expected arrival unset. The date is fixed here and not recomputed later.

    Raises ValueError for service items and for an unparseable order date.
    """
    if item.is_service:
        raise ValueError(f"Service item {item.id!r} cannot be ordered for inward tracking")
    if parse_iso_date(order_date) is None:
        raise ValueError(f"Invalid order date {order_date!r}, expected YYYY-MM-DD")

    if expected_arrival is None:
        text = lead_time if lead_time is not None else (vendor.lead_time if vendor else "")
        days = parse_lead_time_to_days(text)
        if days > 0:
            expected_arrival = calculate_expected_arrival(order_date, days)
        logger.debug("Item %s lead time %r -> %d days", item.id, text, days)

    update = {
        "status": "ordered",
        "order_date": order_date,
        "expected_arrival": expected_arrival,
        "actual_arrival": None,
    }
    if po_number is not None:
        update["po_number"] = po_number
    if linked_po_document_id is not None:
        update["linked_po_document_id"] = linked_po_document_id
    if vendor is not None:
        update["finalized_vendor"] = vendor

    logger.info("Item %s marked ordered (expected %s)", item.id, expected_arrival or "unknown")
    return item.model_copy(update=update)


def mark_received(
    item: BOMItem,
    actual_arrival: str,
    linked_invoice_document_id: Optional[str] = None,
) -> BOMItem:
    """Mark an ordered item as received. status and actual_arrival always change together."""
    if item.status == "not-ordered":
        raise ValueError(f"Item {item.id!r} has not been ordered and cannot be received")
    if parse_iso_date(actual_arrival) is None:
        raise ValueError(f"Invalid arrival date {actual_arrival!r}, expected YYYY-MM-DD")

    update = {"status": "received", "actual_arrival": actual_arrival}
    if linked_invoice_document_id is not None:
        update["linked_invoice_document_id"] = linked_invoice_document_id

    logger.info("Item %s marked received on %s", item.id, actual_arrival)
    return item.model_copy(update=update)


def delivery_variance_days(item: BOMItem) -> Optional[int]:
    """Actual minus expected arrival in days: negative is early, positive is late."""
    expected = parse_iso_date(item.expected_arrival)
    actual = parse_iso_date(item.actual_arrival)
    if expected is None or actual is None:
        return None
    return (actual - expected).days


def describe_variance(days: Optional[int]) -> str:
    if days is None:
        return "-"
    if days == 0:
        return "On time"
    n = abs(days)
    unit = "day" if n == 1 else "days"
    return f"{n} {unit} {'early' if days < 0 else 'late'}"
