"""
BOM item <-> project document linkage.

Documents carry the forward link (linked_bom_items); items carry optional
back-references (linked_po_document_id, linked_invoice_document_id,
linked_quote_document_id). For outgoing POs an item may be linked to at most
one document at a time. The store does not enforce that --
sync_po_document_links() does, whenever an item is (re)assigned to a PO.

Filtering is always on the document's `type` field.
"""
import logging
from typing import Callable, Iterable, Optional

from models.bom import BOMItem
from models.document import DeletionCheck, DocumentType, ProjectDocument

logger = logging.getLogger(__name__)

# Persistence callback: replace a document's link list with the given ids.
# Must raise on failure rather than drop the write.
LinkDocument = Callable[[str, list[str]], None]

# Which item back-reference points at each document type
_BACK_REFERENCE = {
    "outgoing-po":    "linked_po_document_id",
    "vendor-invoice": "linked_invoice_document_id",
    "vendor-quote":   "linked_quote_document_id",
}

# Document types whose deletion is blocked by linked items in a given status
_DELETION_BLOCKERS = {
    "outgoing-po":    ("ordered", "PO"),
    "vendor-invoice": ("received", "invoice"),
}


def _unique(ids: Iterable[str]) -> list[str]:
    """De-duplicate keeping first-seen order; drops empty ids."""
    seen: dict[str, None] = {}
    for i in ids:
        if i:
            seen.setdefault(i, None)
    return list(seen)


# ----------------------------------------------------------------------
# Queries
# ----------------------------------------------------------------------

def filter_documents_by_type(
    documents: Iterable[ProjectDocument],
    document_type: DocumentType,
) -> list[ProjectDocument]:
    return [doc for doc in documents if doc.type == document_type]


def get_outgoing_po_documents(documents: Iterable[ProjectDocument]) -> list[ProjectDocument]:
    return filter_documents_by_type(documents, "outgoing-po")


def find_linked_document(
    documents: Iterable[ProjectDocument],
    item_id: str,
) -> Optional[ProjectDocument]:
    """First document whose linked_bom_items contains item_id."""
    for doc in documents:
        if item_id in (doc.linked_bom_items or []):
            return doc
    return None


def find_linked_po_document(
    documents: Iterable[ProjectDocument],
    item_id: str,
    linked_po_document_id: Optional[str] = None,
) -> Optional[ProjectDocument]:
    """
    Find the outgoing PO for an item.

    The item's direct reference wins when it resolves to an existing PO;
    otherwise fall back to scanning linked_bom_items. Non-PO documents are
    never returned.
    """
    po_documents = get_outgoing_po_documents(documents)

    if linked_po_document_id:
        for doc in po_documents:
            if doc.id == linked_po_document_id:
                return doc

    return find_linked_document(po_documents, item_id)


def is_item_linked_to_document(item: BOMItem, document: ProjectDocument) -> bool:
    """True if either side of the link points at the other."""
    if item.id in (document.linked_bom_items or []):
        return True
    attr = _BACK_REFERENCE.get(document.type)
    return bool(attr) and getattr(item, attr) == document.id


def validate_document_deletion(
    document: ProjectDocument,
    items: Iterable[BOMItem],
) -> DeletionCheck:
    """
    Decide whether a document may be deleted.

    An outgoing PO cannot be deleted while a linked item is still ordered; a
    vendor invoice cannot be deleted while a linked item is received. All
    other document types can always be deleted. This only validates -- the
    caller is responsible for not deleting when can_delete is False.
    """
    blocker = _DELETION_BLOCKERS.get(document.type)
    if blocker is None:
        return DeletionCheck(can_delete=True)

    blocking_status, label = blocker
    blocked = [
        item for item in items
        if item.status == blocking_status and is_item_linked_to_document(item, document)
    ]
    if not blocked:
        return DeletionCheck(can_delete=True)

    names = ", ".join(item.name for item in blocked)
    reason = (
        f"Cannot delete {label} document '{document.name}': it is linked to "
        f"{len(blocked)} {blocking_status} item(s): {names}"
    )
    return DeletionCheck(can_delete=False, reason=reason, blocked_by_items=blocked)


# ----------------------------------------------------------------------
# Synchronizer
# ----------------------------------------------------------------------

def sync_po_document_links(
    item_id: str,
    new_document_id: str,
    documents: list[ProjectDocument],
    link_document: LinkDocument,
    previous_document_id: Optional[str] = None,
) -> list[ProjectDocument]:
    """
    Attach item_id to new_document_id and detach it from the previous PO.

    Writes go through link_document one at a time: the new document first,
    then (only when previous_document_id is given and differs) the previous
    one. If the first write raises, the exception propagates and the second
    write is never attempted. If the second write raises, the first has
    already taken effect; there is no rollback.

    Returns a new list reflecting both writes. The documents argument and the
    documents in it are left untouched.
    """
    by_id = {doc.id: doc for doc in documents}

    new_doc = by_id.get(new_document_id)
    if new_doc is None:
        logger.warning("PO document %s not in the local snapshot -- linking anyway", new_document_id)
    new_links = _unique([*(new_doc.linked_bom_items if new_doc else []), item_id])

    link_document(new_document_id, new_links)
    logger.info("Linked item %s to PO document %s", item_id, new_document_id)

    updated = [
        doc.model_copy(update={"linked_bom_items": new_links}) if doc.id == new_document_id else doc
        for doc in documents
    ]

    if previous_document_id and previous_document_id != new_document_id:
        previous_doc = by_id.get(previous_document_id)
        remaining = [
            linked for linked in (previous_doc.linked_bom_items if previous_doc else [])
            if linked != item_id
        ]
        link_document(previous_document_id, remaining)
        logger.info("Unlinked item %s from previous PO document %s", item_id, previous_document_id)

        updated = [
            doc.model_copy(update={"linked_bom_items": remaining}) if doc.id == previous_document_id else doc
            for doc in updated
        ]

    return updated
