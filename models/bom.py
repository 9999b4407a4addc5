from pydantic import BaseModel, Field
from typing import Optional, List, Literal


ItemType = Literal["component", "service"]

# "approved" is a legacy value still present in stored BOMs. It is neither
# "not-ordered" nor "received", so inward tracking classifies it by date.
BOMStatus = Literal["not-ordered", "ordered", "approved", "received"]

InwardStatus = Literal["not-ordered", "on-track", "arriving-soon", "overdue", "received"]

INWARD_STATUSES: tuple[str, ...] = (
    "not-ordered", "on-track", "arriving-soon", "overdue", "received",
)


class VendorQuote(BaseModel):
    """A vendor offer for a BOM line (also used for the finalized vendor)."""
    name: str
    price: float = 0.0
    lead_time: str = ""                 # Free text, e.g. "2-3 weeks"
    availability: str = ""


class BOMItem(BaseModel):
    """
    A single Bill of Materials line.

    Dates are ISO 8601 strings (YYYY-MM-DD). Each optional field is absent
    independently: a missing expected_arrival says nothing about actual_arrival.
    For services, price is a day rate and quantity is a duration in days.
    """
    id: str
    item_type: ItemType = "component"
    name: str
    make: Optional[str] = None
    description: str = ""
    sku: Optional[str] = None
    price: Optional[float] = None
    quantity: float = 1
    category: str = "Uncategorized"
    vendors: List[VendorQuote] = Field(default_factory=list)

    status: BOMStatus = "not-ordered"
    order_date: Optional[str] = None        # YYYY-MM-DD
    expected_arrival: Optional[str] = None  # YYYY-MM-DD, fixed at order time
    actual_arrival: Optional[str] = None    # YYYY-MM-DD, set iff status == received
    po_number: Optional[str] = None

    linked_po_document_id: Optional[str] = None
    linked_invoice_document_id: Optional[str] = None
    linked_quote_document_id: Optional[str] = None

    finalized_vendor: Optional[VendorQuote] = None

    @property
    def is_service(self) -> bool:
        return self.item_type == "service"
