"""
Unit tests for order / receipt transitions.
"""
import pytest

from models.bom import VendorQuote
from tracking.inward_status import get_inward_status
from tracking.order_actions import (
    delivery_variance_days,
    describe_variance,
    mark_ordered,
    mark_received,
)


@pytest.mark.unit
class TestMarkOrdered:
    """Tests for mark_ordered."""

    def test_expected_arrival_from_vendor_lead_time(self, make_item):
        """Test the finalized vendor's quoted lead time sets the expected arrival."""
        vendor = VendorQuote(name="Acme Automation", price=420.0, lead_time="2-3 weeks")
        item = make_item(vendors=[vendor])

        ordered = mark_ordered(item, "2025-11-01", po_number="PO-42", vendor=vendor)

        assert ordered.status == "ordered"
        assert ordered.order_date == "2025-11-01"
        assert ordered.expected_arrival == "2025-11-15"
        assert ordered.po_number == "PO-42"
        assert ordered.finalized_vendor == vendor

    def test_explicit_lead_time_overrides_vendor(self, make_item):
        vendor = VendorQuote(name="Acme", lead_time="6 weeks")
        ordered = mark_ordered(make_item(), "2025-11-01", vendor=vendor, lead_time="10 days")
        assert ordered.expected_arrival == "2025-11-11"

    def test_explicit_expected_arrival_wins(self, make_item):
        ordered = mark_ordered(make_item(), "2025-11-01", lead_time="1 week",
                               expected_arrival="2025-12-24")
        assert ordered.expected_arrival == "2025-12-24"

    def test_unparseable_lead_time_leaves_arrival_unset(self, make_item, today):
        """Test a zero-day lead time means no expected arrival, and the item is on-track."""
        ordered = mark_ordered(make_item(), "2025-11-01", lead_time="ASAP")
        assert ordered.expected_arrival is None
        assert get_inward_status(ordered, today) == "on-track"

    def test_input_item_untouched(self, make_item):
        item = make_item()
        mark_ordered(item, "2025-11-01", lead_time="1 week")
        assert item.status == "not-ordered"
        assert item.order_date is None

    def test_links_po_document(self, make_item):
        ordered = mark_ordered(make_item(), "2025-11-01", linked_po_document_id="doc-1")
        assert ordered.linked_po_document_id == "doc-1"

    def test_reorder_clears_actual_arrival(self, make_item):
        """Test re-ordering a received item drops the stale arrival date."""
        item = make_item(status="received", actual_arrival="2025-10-01")
        ordered = mark_ordered(item, "2025-11-01")
        assert ordered.actual_arrival is None
        assert ordered.status == "ordered"

    def test_service_rejected(self, make_item):
        with pytest.raises(ValueError, match="Service item"):
            mark_ordered(make_item(item_type="service"), "2025-11-01")

    def test_bad_order_date_rejected(self, make_item):
        with pytest.raises(ValueError, match="Invalid order date"):
            mark_ordered(make_item(), "01/11/2025", lead_time="1 week")


@pytest.mark.unit
class TestMarkReceived:
    """Tests for mark_received."""

    def test_status_and_date_set_together(self, make_item):
        item = make_item(status="ordered", order_date="2025-11-01", expected_arrival="2025-11-15")

        received = mark_received(item, "2025-11-18", linked_invoice_document_id="inv-1")

        assert received.status == "received"
        assert received.actual_arrival == "2025-11-18"
        assert received.linked_invoice_document_id == "inv-1"
        assert received.expected_arrival == "2025-11-15"

    def test_not_ordered_rejected(self, make_item):
        with pytest.raises(ValueError, match="has not been ordered"):
            mark_received(make_item(), "2025-11-18")

    def test_bad_arrival_date_rejected(self, make_item):
        with pytest.raises(ValueError, match="Invalid arrival date"):
            mark_received(make_item(status="ordered"), "yesterday")


@pytest.mark.unit
class TestDeliveryVariance:
    """Tests for delivery_variance_days / describe_variance."""

    def test_late_early_on_time(self, make_item):
        late = make_item(expected_arrival="2025-11-15", actual_arrival="2025-11-18")
        early = make_item(expected_arrival="2025-11-15", actual_arrival="2025-11-14")
        on_time = make_item(expected_arrival="2025-11-15", actual_arrival="2025-11-15")

        assert delivery_variance_days(late) == 3
        assert delivery_variance_days(early) == -1
        assert delivery_variance_days(on_time) == 0

    def test_missing_dates(self, make_item):
        assert delivery_variance_days(make_item(expected_arrival="2025-11-15")) is None
        assert delivery_variance_days(make_item(actual_arrival="2025-11-15")) is None

    @pytest.mark.parametrize("days, text", [
        (None, "-"),
        (0, "On time"),
        (1, "1 day late"),
        (3, "3 days late"),
        (-1, "1 day early"),
        (-4, "4 days early"),
    ])
    def test_describe(self, days, text):
        assert describe_variance(days) == text
