#!/usr/bin/env python3
"""
BOM inward tracking — CLI entry point.

Usage examples:
  python main.py check                                     # Verify LLM endpoint and database
  python main.py add-item P1 "Servo motor" --sku SM-200 --vendor Acme --vendor-lead-time "2-3 weeks"
  python main.py add-document P1 "PO-0042.pdf" --type outgoing-po
  python main.py import quote.pdf --project P1             # Extract BOM lines from a document
  python main.py order ITEM_ID --order-date 2025-11-01 --po-document DOC_ID
  python main.py receive ITEM_ID --date 2025-11-20
  python main.py track --project P1 --status overdue       # Inward tracking table
  python main.py compliance --project P1
  python main.py delete-document DOC_ID                    # Refused while items depend on it
"""
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from config import Config
from models.bom import INWARD_STATUSES, BOMItem, VendorQuote
from models.document import ProjectDocument
from tracking.compliance import ComplianceChecker
from tracking.database import ProjectStore
from tracking.document_links import sync_po_document_links, validate_document_deletion
from tracking.importer import BOMImporter
from tracking.llm_parser import BOMLLMParser
from tracking.order_actions import (
    delivery_variance_days,
    describe_variance,
    mark_ordered,
    mark_received,
)
from tracking.reporting import summarize_inward, tracking_table

DOCUMENT_TYPES = ["outgoing-po", "vendor-quote", "vendor-po", "customer-po", "vendor-invoice", "spec-sheet"]


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("pdfminer").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _config(ctx: click.Context) -> Config:
    config = Config()
    if ctx.obj.get("db"):
        config.db_path = Path(ctx.obj["db"])
    return config


def _store(ctx: click.Context) -> ProjectStore:
    return ProjectStore(_config(ctx).db_path)


def _load_item(store: ProjectStore, item_id: str) -> tuple[BOMItem, str]:
    item = store.get_item(item_id)
    project_id = store.get_item_project(item_id)
    if item is None or project_id is None:
        _fail(f"BOM item '{item_id}' not found")
    return item, project_id


def _check_document(document: ProjectDocument, doc_type: str, project_id: str) -> None:
    """Raise ValueError unless document is a doc_type belonging to project_id."""
    if document.type != doc_type:
        raise ValueError(f"Document '{document.name}' is a {document.type}, expected {doc_type}")
    if document.project_id != project_id:
        raise ValueError(f"Document '{document.name}' belongs to project {document.project_id}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--db", default=None, type=click.Path(dir_okay=False), help="SQLite database file")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, db: Optional[str]) -> None:
    """BOM inward tracking — orders, deliveries, documents and compliance."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["db"] = db
    _setup_logging(verbose)


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Verify that the LLM backend and the database are ready."""
    config = _config(ctx)
    parser = BOMLLMParser(
        model=config.llm_model,
        base_url=config.llm_base_url,
        api_key=config.llm_api_key,
        timeout=config.llm_timeout,
        max_attempts=1,
    )
    llm = parser.check_connection()

    click.echo("\n=== Setup Check ===\n")
    click.echo(f"  LLM endpoint:  {config.llm_base_url}")
    if llm["ok"]:
        model_status = "✓ available" if llm.get("model_available") else "✗ NOT found"
        click.echo(f"  Model '{config.llm_model}':  {model_status}")
    else:
        click.echo(f"  LLM backend:   ✗ NOT reachable ({llm.get('error')})")
        click.echo("  → Imports and compliance checks will use local fallbacks")

    ProjectStore(config.db_path)
    click.echo(f"  Database:      ✓  {config.db_path}")
    click.echo()


# --------------------------------------------------------------------
# add-item / add-document commands
# --------------------------------------------------------------------

@cli.command("add-item")
@click.argument("project_id")
@click.argument("name")
@click.option("--sku", default=None)
@click.option("--make", default=None)
@click.option("--category", default="Uncategorized")
@click.option("--quantity", default=1.0, type=float)
@click.option("--price", default=None, type=float)
@click.option("--service", is_flag=True, help="Service line (never tracked for delivery)")
@click.option("--vendor", default=None, help="Vendor name for the quote")
@click.option("--vendor-price", default=0.0, type=float)
@click.option("--vendor-lead-time", default="", help='Quoted lead time, e.g. "2-3 weeks"')
@click.pass_context
def add_item(
    ctx: click.Context,
    project_id: str,
    name: str,
    sku: Optional[str],
    make: Optional[str],
    category: str,
    quantity: float,
    price: Optional[float],
    service: bool,
    vendor: Optional[str],
    vendor_price: float,
    vendor_lead_time: str,
) -> None:
    """Add a BOM line to PROJECT_ID."""
    store = _store(ctx)
    vendors = [VendorQuote(name=vendor, price=vendor_price, lead_time=vendor_lead_time)] if vendor else []
    item = BOMItem(
        id=str(uuid.uuid4()),
        item_type="service" if service else "component",
        name=name,
        make=make,
        sku=sku,
        price=price,
        quantity=quantity,
        category=category,
        vendors=vendors,
    )
    store.upsert_item(project_id, item)
    store.log_audit(item.id, "created", detail={"project_id": project_id})
    click.echo(item.id)


@cli.command("add-document")
@click.argument("project_id")
@click.argument("name")
@click.option("--type", "doc_type", required=True, type=click.Choice(DOCUMENT_TYPES))
@click.option("--url", default="")
@click.option("--link", "links", multiple=True, help="BOM item id to link (repeatable)")
@click.pass_context
def add_document(
    ctx: click.Context,
    project_id: str,
    name: str,
    doc_type: str,
    url: str,
    links: tuple[str, ...],
) -> None:
    """Register a project document."""
    store = _store(ctx)
    document = store.upsert_document(ProjectDocument(
        id=str(uuid.uuid4()),
        project_id=project_id,
        name=name,
        url=url,
        type=doc_type,
        linked_bom_items=list(links),
    ))
    store.log_audit(document.id, "uploaded", detail={"type": doc_type, "name": name})
    click.echo(document.id)


# --------------------------------------------------------------------
# import command
# --------------------------------------------------------------------

@cli.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--project", "project_id", required=True)
@click.option("--dry-run", is_flag=True, help="Show extracted items without saving")
@click.pass_context
def import_bom(ctx: click.Context, file: str, project_id: str, dry_run: bool) -> None:
    """Extract BOM lines from FILE (PDF or text) into a project."""
    config = _config(ctx)
    store = ProjectStore(config.db_path)
    existing = store.list_items(project_id)

    importer = BOMImporter(config)
    try:
        result = importer.analyze_document(
            file,
            existing_categories=sorted({i.category for i in existing}),
            existing_makes=sorted({i.make for i in existing if i.make}),
        )
    except ValueError as e:
        _fail(str(e))

    if result.degraded:
        click.secho(
            f"  ⚠  Extraction service unavailable ({result.error}), used keyword analysis",
            fg="yellow",
        )

    new_items = importer.to_bom_items(result, existing)
    click.echo(f"\n  Extracted {result.total_items} rows via {result.method}, {len(new_items)} new:\n")
    for item in new_items:
        click.echo(f"    {item.name:<40} {item.sku or '-':<16} x{item.quantity:g}  [{item.category}]")

    if dry_run:
        return
    for item in new_items:
        store.upsert_item(project_id, item)
        store.log_audit(item.id, "imported", detail={"source": Path(file).name, "method": result.method})
    click.echo()


# --------------------------------------------------------------------
# track command
# --------------------------------------------------------------------

@cli.command()
@click.option("--project", "project_id", required=True)
@click.option(
    "--status", "status_filter", default="all",
    type=click.Choice(["all", *INWARD_STATUSES]),
    help="Only show items in this inward status",
)
@click.option("--today", default=None, type=click.DateTime(formats=["%Y-%m-%d"]),
              help="Evaluate as of this date (default: system date)")
@click.pass_context
def track(ctx: click.Context, project_id: str, status_filter: str, today: Optional[datetime]) -> None:
    """Show inward tracking stats and the sorted delivery table."""
    config = _config(ctx)
    store = ProjectStore(config.db_path)
    items = store.list_items(project_id)
    as_of = today.date() if today else None

    stats = summarize_inward(items, as_of, config.arriving_soon_days)
    click.echo(
        f"\n  Ordered: {stats.ordered}   Arriving soon: {stats.arriving_soon}   "
        f"Overdue: {stats.overdue}   Received: {stats.received}   "
        f"Not ordered: {stats.not_ordered}   Total: {stats.total}\n"
    )

    rows = tracking_table(items, status_filter, as_of, config.arriving_soon_days)
    if not rows:
        click.echo("  No ordered or received items.")
        return

    for row in rows:
        item = row.item
        if row.status == "received":
            timing = describe_variance(delivery_variance_days(item))
        elif row.days_until_arrival is None:
            timing = "no ETA"
        elif row.days_until_arrival < 0:
            timing = f"{-row.days_until_arrival}d late"
        else:
            timing = f"in {row.days_until_arrival}d"
        colour = {"overdue": "red", "arriving-soon": "yellow", "received": "green"}.get(row.status)
        click.secho(
            f"  {row.status:<14} {item.name:<32} PO {item.po_number or '-':<12} "
            f"ordered {item.order_date or '-':<10}  expected {item.expected_arrival or '-':<10}  {timing}",
            fg=colour,
        )
    click.echo()


# --------------------------------------------------------------------
# order / receive commands
# --------------------------------------------------------------------

@cli.command()
@click.argument("item_id")
@click.option("--order-date", required=True, help="YYYY-MM-DD")
@click.option("--lead-time", default=None, help='Overrides the vendor quote, e.g. "10 days"')
@click.option("--vendor", default=None, help="Finalize this quoted vendor")
@click.option("--po-number", default=None)
@click.option("--po-document", "po_document_id", default=None, help="Outgoing PO document id")
@click.pass_context
def order(
    ctx: click.Context,
    item_id: str,
    order_date: str,
    lead_time: Optional[str],
    vendor: Optional[str],
    po_number: Optional[str],
    po_document_id: Optional[str],
) -> None:
    """Mark ITEM_ID as ordered and link it to its PO document."""
    store = _store(ctx)
    item, project_id = _load_item(store, item_id)

    chosen = None
    if vendor:
        chosen = next((v for v in item.vendors if v.name.lower() == vendor.lower()), None)
        if chosen is None:
            _fail(f"Vendor '{vendor}' has not quoted for '{item.name}'")
    elif len(item.vendors) == 1:
        chosen = item.vendors[0]

    previous_po = item.linked_po_document_id
    try:
        updated = mark_ordered(
            item, order_date,
            po_number=po_number,
            linked_po_document_id=po_document_id,
            vendor=chosen,
            lead_time=lead_time,
        )
        if po_document_id:
            po_document = store.get_document(po_document_id)
            if po_document is None:
                raise KeyError(f"Document {po_document_id!r} not found")
            _check_document(po_document, "outgoing-po", project_id)
            store.upsert_item(project_id, updated)
            sync_po_document_links(
                item.id,
                po_document_id,
                store.list_documents(project_id, "outgoing-po"),
                store.link_document,
                previous_document_id=previous_po,
            )
        else:
            store.upsert_item(project_id, updated)
    except (ValueError, KeyError) as e:
        _fail(str(e.args[0]) if isinstance(e, KeyError) else str(e))

    store.log_audit(item.id, "ordered", detail={
        "order_date": order_date,
        "expected_arrival": updated.expected_arrival,
        "po_document_id": po_document_id,
    })
    click.echo(f"  ✓ {item.name} ordered on {order_date}, expected {updated.expected_arrival or 'unknown'}")


@cli.command()
@click.argument("item_id")
@click.option("--date", "arrival_date", required=True, help="Actual arrival date YYYY-MM-DD")
@click.option("--invoice-document", "invoice_document_id", default=None, help="Vendor invoice document id")
@click.pass_context
def receive(
    ctx: click.Context,
    item_id: str,
    arrival_date: str,
    invoice_document_id: Optional[str],
) -> None:
    """Mark ITEM_ID as received."""
    store = _store(ctx)
    item, project_id = _load_item(store, item_id)

    try:
        updated = mark_received(item, arrival_date, linked_invoice_document_id=invoice_document_id)
        if invoice_document_id:
            invoice = store.get_document(invoice_document_id)
            if invoice is None:
                raise KeyError(f"Document {invoice_document_id!r} not found")
            _check_document(invoice, "vendor-invoice", project_id)
            store.upsert_item(project_id, updated)
            if item.id not in invoice.linked_bom_items:
                store.link_document(invoice.id, [*invoice.linked_bom_items, item.id])
        else:
            store.upsert_item(project_id, updated)
    except (ValueError, KeyError) as e:
        _fail(str(e.args[0]) if isinstance(e, KeyError) else str(e))

    store.log_audit(item.id, "received", detail={"actual_arrival": arrival_date})
    variance = describe_variance(delivery_variance_days(updated))
    click.echo(f"  ✓ {item.name} received on {arrival_date} ({variance})")


# --------------------------------------------------------------------
# compliance command
# --------------------------------------------------------------------

@cli.command()
@click.option("--project", "project_id", required=True)
@click.pass_context
def compliance(ctx: click.Context, project_id: str) -> None:
    """Run a compliance check over a project's BOM."""
    config = _config(ctx)
    store = ProjectStore(config.db_path)
    report = ComplianceChecker(config).check(
        project_id, store.list_items(project_id), store.list_documents(project_id),
    )

    if report.degraded:
        click.secho(
            f"  ⚠  Compliance service unavailable ({report.error}), used local rules",
            fg="yellow",
        )
    click.echo(
        f"\n  Score: {report.score}/100   Items checked: {report.total_items_checked}   "
        f"Issues: {report.total_issues}\n"
    )
    for issue in report.issues:
        icon = "✗" if issue.severity == "error" else ("⚠" if issue.severity == "warning" else "ℹ")
        click.echo(f"    {icon} [{issue.severity.upper()}] {issue.bom_item_name}: {issue.message}")
    click.echo()


# --------------------------------------------------------------------
# delete-document command
# --------------------------------------------------------------------

@cli.command("delete-document")
@click.argument("document_id")
@click.pass_context
def delete_document(ctx: click.Context, document_id: str) -> None:
    """Delete a document unless ordered/received items still depend on it."""
    store = _store(ctx)
    document = store.get_document(document_id)
    if document is None:
        _fail(f"Document '{document_id}' not found")

    check_result = validate_document_deletion(document, store.list_items(document.project_id))
    if not check_result.can_delete:
        _fail(check_result.reason)

    store.delete_document(document_id)
    store.log_audit(document_id, "deleted", detail={"name": document.name, "type": document.type})
    click.echo(f"  ✓ Deleted {document.name}")


if __name__ == "__main__":
    cli()
