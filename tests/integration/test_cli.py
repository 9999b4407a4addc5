"""
Integration tests for the click CLI, run against a temporary database.

The LLM client methods are patched to fail, so import and compliance
exercise their local fallbacks without network access.
"""
import pytest
from click.testing import CliRunner

from main import cli
from tracking.database import ProjectStore
from tracking.llm_parser import BOMLLMParser


@pytest.fixture
def db_path(temp_dir, monkeypatch):
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    return temp_dir / "bomtrack.db"


@pytest.fixture
def offline_llm(monkeypatch):
    def _down(self, *args, **kwargs):
        raise ConnectionError("LLM offline")

    monkeypatch.setattr(BOMLLMParser, "parse", _down)
    monkeypatch.setattr(BOMLLMParser, "check_compliance", _down)


@pytest.fixture
def run(db_path):
    runner = CliRunner()

    def _run(*args):
        return runner.invoke(cli, ["--db", str(db_path), *args])

    return _run


def _last_line(result) -> str:
    return result.output.strip().splitlines()[-1]


@pytest.mark.integration
class TestCli:
    """End-to-end command tests."""

    def test_order_and_track(self, run, db_path):
        """Test ordering computes the expected arrival and track shows it as overdue."""
        item_id = _last_line(run("add-item", "P1", "Servo Motor", "--sku", "SM-200",
                                 "--vendor", "Acme", "--vendor-lead-time", "2 weeks"))

        result = run("order", item_id, "--order-date", "2025-11-01")
        assert result.exit_code == 0, result.output
        assert "expected 2025-11-15" in result.output

        result = run("track", "--project", "P1", "--today", "2025-11-28")
        assert result.exit_code == 0, result.output
        assert "Overdue: 1" in result.output
        assert "Servo Motor" in result.output

        item = ProjectStore(db_path).get_item(item_id)
        assert item.finalized_vendor.name == "Acme"

    def test_track_status_filter(self, run):
        item_id = _last_line(run("add-item", "P1", "Camera"))
        run("order", item_id, "--order-date", "2025-11-25", "--lead-time", "5 days")

        result = run("track", "--project", "P1", "--status", "overdue", "--today", "2025-11-28")

        assert "No ordered or received items" in result.output

    def test_order_moves_po_link(self, run, db_path):
        """Test re-ordering against a new PO unlinks the item from the old one."""
        item_id = _last_line(run("add-item", "P1", "Servo Motor"))
        po_a = _last_line(run("add-document", "P1", "PO-A.pdf", "--type", "outgoing-po"))
        po_b = _last_line(run("add-document", "P1", "PO-B.pdf", "--type", "outgoing-po"))

        assert run("order", item_id, "--order-date", "2025-11-01", "--po-document", po_a).exit_code == 0
        assert run("order", item_id, "--order-date", "2025-11-03", "--po-document", po_b).exit_code == 0

        store = ProjectStore(db_path)
        assert store.get_document(po_a).linked_bom_items == []
        assert store.get_document(po_b).linked_bom_items == [item_id]
        assert store.get_item(item_id).linked_po_document_id == po_b

    def test_order_rejects_non_po_document(self, run, db_path):
        """Test a vendor quote cannot stand in for the PO and keeps its links."""
        item_id = _last_line(run("add-item", "P1", "Servo Motor"))
        quote = _last_line(run("add-document", "P1", "Q-1.pdf", "--type", "vendor-quote",
                               "--link", "other"))

        result = run("order", item_id, "--order-date", "2025-11-01", "--po-document", quote)

        assert result.exit_code == 1
        assert "expected outgoing-po" in result.output
        store = ProjectStore(db_path)
        assert store.get_document(quote).linked_bom_items == ["other"]
        assert store.get_item(item_id).status == "not-ordered"

    def test_order_rejects_po_from_other_project(self, run, db_path):
        """Test a PO from another project is refused and its links survive."""
        item_id = _last_line(run("add-item", "P1", "Servo Motor"))
        po = _last_line(run("add-document", "P2", "PO-9.pdf", "--type", "outgoing-po",
                            "--link", "z1", "--link", "z2"))

        result = run("order", item_id, "--order-date", "2025-11-01", "--po-document", po)

        assert result.exit_code == 1
        assert "belongs to project P2" in result.output
        store = ProjectStore(db_path)
        assert store.get_document(po).linked_bom_items == ["z1", "z2"]
        assert store.get_item(item_id).linked_po_document_id is None

    @pytest.mark.parametrize("project, doc_type, message", [
        ("P1", "outgoing-po", "expected vendor-invoice"),
        ("P2", "vendor-invoice", "belongs to project P2"),
    ])
    def test_receive_rejects_wrong_invoice(self, run, db_path, project, doc_type, message):
        """Test only a vendor invoice of the item's own project can be attached."""
        item_id = _last_line(run("add-item", "P1", "Camera"))
        doc = _last_line(run("add-document", project, "DOC.pdf", "--type", doc_type))
        run("order", item_id, "--order-date", "2025-11-01", "--lead-time", "2 weeks")

        result = run("receive", item_id, "--date", "2025-11-18", "--invoice-document", doc)

        assert result.exit_code == 1
        assert message in result.output
        store = ProjectStore(db_path)
        assert store.get_document(doc).linked_bom_items == []
        assert store.get_item(item_id).status == "ordered"

    def test_order_service_rejected(self, run):
        item_id = _last_line(run("add-item", "P1", "Commissioning", "--service"))
        result = run("order", item_id, "--order-date", "2025-11-01")
        assert result.exit_code == 1
        assert "cannot be ordered" in result.output

    def test_order_unknown_item(self, run):
        result = run("order", "nope", "--order-date", "2025-11-01")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_receive_and_delete_guard(self, run, db_path):
        """Test an invoice cannot be deleted while its received item depends on it."""
        item_id = _last_line(run("add-item", "P1", "Camera"))
        invoice = _last_line(run("add-document", "P1", "INV-9.pdf", "--type", "vendor-invoice"))
        run("order", item_id, "--order-date", "2025-11-01", "--lead-time", "2 weeks")

        result = run("receive", item_id, "--date", "2025-11-18", "--invoice-document", invoice)
        assert result.exit_code == 0, result.output
        assert "3 days late" in result.output

        result = run("delete-document", invoice)
        assert result.exit_code == 1
        assert "Camera" in result.output
        assert ProjectStore(db_path).get_document(invoice) is not None

    def test_delete_unlinked_document(self, run, db_path):
        doc = _last_line(run("add-document", "P1", "datasheet.pdf", "--type", "spec-sheet"))
        result = run("delete-document", doc)
        assert result.exit_code == 0, result.output
        assert ProjectStore(db_path).get_document(doc) is None

    def test_receive_not_ordered(self, run):
        item_id = _last_line(run("add-item", "P1", "Camera"))
        result = run("receive", item_id, "--date", "2025-11-18")
        assert result.exit_code == 1

    def test_import_falls_back_to_keywords(self, run, db_path, temp_dir, sample_bom_text, offline_llm):
        bom = temp_dir / "bom.txt"
        bom.write_text(sample_bom_text, encoding="utf-8")

        result = run("import", str(bom), "--project", "P1")

        assert result.exit_code == 0, result.output
        assert "keyword analysis" in result.output
        assert len(ProjectStore(db_path).list_items("P1")) == 4

        # Importing the same file again adds nothing
        run("import", str(bom), "--project", "P1")
        assert len(ProjectStore(db_path).list_items("P1")) == 4

    def test_compliance_local_fallback(self, run, offline_llm):
        run("add-item", "P1", "Servo Motor", "--quantity", "0")

        result = run("compliance", "--project", "P1")

        assert result.exit_code == 0, result.output
        assert "used local rules" in result.output
        assert "Quantity must be positive" in result.output
