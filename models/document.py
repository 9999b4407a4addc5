from pydantic import BaseModel, Field
from typing import Optional, List, Literal

from .bom import BOMItem


DocumentType = Literal[
    "outgoing-po",      # PO raised by us against a vendor
    "vendor-quote",
    "vendor-po",        # Legacy, manually uploaded POs
    "customer-po",
    "vendor-invoice",
    "spec-sheet",
]


class ProjectDocument(BaseModel):
    """
    A file attached to a project.

    linked_bom_items holds BOM item ids. For outgoing-po documents an item id
    may appear on at most one document at a time; the link synchronizer keeps
    that true; the store does not.
    """
    id: str
    project_id: str
    name: str
    url: str = ""
    type: DocumentType
    uploaded_at: Optional[str] = None       # ISO 8601 datetime
    uploaded_by: Optional[str] = None
    linked_bom_items: List[str] = Field(default_factory=list)
    file_size: Optional[int] = None
    source_url: Optional[str] = None        # Spec sheets: where it was found


class DeletionCheck(BaseModel):
    """Outcome of the document deletion guard."""
    can_delete: bool
    reason: Optional[str] = None
    blocked_by_items: List[BOMItem] = Field(default_factory=list)
