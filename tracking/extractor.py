"""
Document text extraction for BOM imports.

PDFs (vendor quotes, customer BOM sheets) are read page by page with
pdfplumber. Plain-text and CSV files are read as UTF-8. Either way the
result is plain text for the extraction service or the keyword analyzer.

Scanned PDFs yield no text; that is logged and an empty result returned --
the import then simply finds no items.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".csv", ".tsv", ".md"}


@dataclass
class ExtractionResult:
    """
    Output of DocumentTextExtractor.

    text:            Extracted plain text, pages separated by blank lines.
    page_count:      Number of pages (1 for text files).
    extractor_name:  "pdfplumber" or "text".
    """
    text: str
    page_count: int
    extractor_name: str


class DocumentTextExtractor:
    """Pulls plain text out of a PDF or text document."""

    def extract(self, path: str | Path) -> ExtractionResult:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Document not found: {path}")

        suffix = path.suffix.lower()
        if suffix == ".pdf":
            return self._extract_pdf(path)
        if suffix in TEXT_SUFFIXES:
            text = path.read_text(encoding="utf-8", errors="replace")
            logger.info("Read %d chars from %s", len(text), path.name)
            return ExtractionResult(text=text, page_count=1, extractor_name="text")

        raise ValueError(
            f"Unsupported document type {suffix!r} for {path.name} "
            f"(expected .pdf or one of {sorted(TEXT_SUFFIXES)})"
        )

    def _extract_pdf(self, pdf_path: Path) -> ExtractionResult:
        try:
            import pdfplumber
        except ImportError:
            raise RuntimeError(
                "pdfplumber is not installed. Run: pip install pdfplumber"
            )

        pages_text: list[str] = []
        with pdfplumber.open(str(pdf_path)) as pdf:
            page_count = len(pdf.pages)
            for i, page in enumerate(pdf.pages):
                text = page.extract_text()
                if text:
                    pages_text.append(text.strip())
                else:
                    logger.debug("Page %d yielded no text (may be scanned)", i + 1)

        raw_text = "\n\n".join(pages_text)

        if not raw_text.strip():
            logger.warning("No text extracted from %s -- likely a scanned PDF", pdf_path.name)

        logger.info(
            "pdfplumber extracted %d chars from %s (%d pages)",
            len(raw_text), pdf_path.name, page_count,
        )
        return ExtractionResult(text=raw_text, page_count=page_count, extractor_name="pdfplumber")
