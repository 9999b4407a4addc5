"""
BOM import orchestration.

Steps:
  1. Extract text from the uploaded document (pdfplumber / plain text)
  2. Ask the extraction service for BOM items
  3. If the service fails for any reason, fall back to the keyword analyzer
     and mark the result degraded
  4. Convert extracted rows into new BOM items, skipping rows already present

The import never fails because the extraction service is down. Local file
errors (missing file, unsupported type) still raise.
"""
import logging
import time
import uuid
from pathlib import Path
from typing import Iterable, Optional, Union

from config import Config
from models.bom import BOMItem
from models.extraction import BOMAnalysisResult
from .extractor import DocumentTextExtractor
from .keyword_analyzer import KeywordAnalyzer
from .llm_parser import BOMLLMParser

logger = logging.getLogger(__name__)


class BOMImporter:
    """
    Usage:
        importer = BOMImporter(config)
        result = importer.analyze_document("quote.pdf", existing_makes=["Siemens"])
        new_items = importer.to_bom_items(result, existing_items=store.list_items(project_id))
    """

    def __init__(
        self,
        config: Config,
        parser: Optional[BOMLLMParser] = None,
        analyzer: Optional[KeywordAnalyzer] = None,
        extractor: Optional[DocumentTextExtractor] = None,
    ):
        self.config    = config
        self.parser    = parser or BOMLLMParser(
            model=config.llm_model,
            base_url=config.llm_base_url,
            api_key=config.llm_api_key,
            timeout=config.llm_timeout,
            max_attempts=config.llm_max_attempts,
        )
        self.analyzer  = analyzer or KeywordAnalyzer(config.make_fuzzy_threshold)
        self.extractor = extractor or DocumentTextExtractor()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze_text(
        self,
        text: str,
        existing_categories: Iterable[str] = (),
        existing_makes: Iterable[str] = (),
    ) -> BOMAnalysisResult:
        categories = list(existing_categories)
        makes = list(existing_makes)
        start = time.monotonic()

        try:
            items = self.parser.parse(text, categories, makes)
        except Exception as e:
            logger.warning("Extraction service failed, falling back to keyword analysis: %s", e)
            result = self.analyzer.analyze(text, makes)
            return result.model_copy(update={"degraded": True, "error": str(e)})

        elapsed = round(time.monotonic() - start, 3)
        logger.info("Extraction service returned %d items in %.2fs", len(items), elapsed)
        return BOMAnalysisResult(
            items=items,
            total_items=len(items),
            processing_time_seconds=elapsed,
            method="llm",
        )

    def analyze_document(
        self,
        path: Union[str, Path],
        existing_categories: Iterable[str] = (),
        existing_makes: Iterable[str] = (),
    ) -> BOMAnalysisResult:
        extraction = self.extractor.extract(path)
        if not extraction.text.strip():
            logger.warning("No text in %s -- nothing to import", Path(path).name)
            return BOMAnalysisResult(method="keywords")
        return self.analyze_text(extraction.text, existing_categories, existing_makes)

    def to_bom_items(
        self,
        result: BOMAnalysisResult,
        existing_items: Iterable[BOMItem] = (),
    ) -> list[BOMItem]:
        """
        Turn extracted rows into new, not-ordered component items.

        A row is skipped when an item with the same name and SKU (case
        insensitive) already exists, or appeared earlier in the same result.
        """
        seen = {_identity(item.name, item.sku) for item in existing_items}
        new_items: list[BOMItem] = []
        skipped = 0

        for row in result.items:
            key = _identity(row.name, row.sku)
            if key in seen:
                skipped += 1
                continue
            seen.add(key)
            new_items.append(BOMItem(
                id=str(uuid.uuid4()),
                item_type="component",
                name=row.name,
                make=row.make,
                description=row.description,
                sku=row.sku,
                quantity=row.quantity,
                category=row.category,
                status="not-ordered",
            ))

        if skipped:
            logger.info("Skipped %d duplicate rows during import", skipped)
        return new_items


def _identity(name: str, sku: Optional[str]) -> tuple[str, str]:
    return (name or "").strip().lower(), (sku or "").strip().lower()
