"""
Local keyword-based BOM analysis.

Used when the extraction service is unavailable. Each non-header line of the
input becomes one candidate item:

  1. SKU        first token that looks like a part number (letters + digits)
  2. Quantity   first standalone integer left after removing the SKU (default 1)
  3. Name       the remaining text with digits stripped
  4. Category   the category with the most keyword hits (ties keep the first)
  5. Make       known make by exact substring, then by a make word longer
                than 3 characters, then by rapidfuzz partial ratio

Confidence is deliberately low -- this is the degraded path.
"""
import logging
import re
import time
from typing import Iterable, Optional

from rapidfuzz import fuzz

from models.extraction import BOMAnalysisResult, ExtractedBOMItem

logger = logging.getLogger(__name__)

MAKE_FUZZY_THRESHOLD = 85

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Vision Systems":  ["camera", "lens", "vision", "optical", "image", "sensor", "detector"],
    "Motors & Drives": ["motor", "drive", "actuator", "servo", "stepper", "brushless", "gearbox"],
    "Sensors":         ["sensor", "proximity", "limit", "pressure", "temperature", "flow", "level"],
    "Control Systems": ["controller", "board", "plc", "hmi", "touchscreen", "display", "interface"],
    "Mechanical":      ["bolt", "screw", "nut", "washer", "bracket", "mount", "housing", "frame"],
    "Electrical":      ["wire", "cable", "connector", "switch", "relay", "fuse", "breaker"],
    "Pneumatic":       ["valve", "cylinder", "compressor", "air", "pneumatic", "vacuum"],
    "Hydraulic":       ["pump", "valve", "cylinder", "hydraulic", "fluid", "pressure"],
    "Tools":           ["tool", "drill", "saw", "grinder", "welder", "cutter"],
    "Safety":          ["guard", "safety", "emergency", "stop", "light", "alarm"],
}

# Lines containing any of these are treated as table headers
HEADER_WORDS = ("item", "part", "description", "quantity")

_SKU_RE = re.compile(r"\b(?=[A-Z0-9-]*\d)(?=[A-Z0-9-]*[A-Z])[A-Z0-9][A-Z0-9-]{2,}\b")
_QTY_RE = re.compile(r"\b(\d+)\b")


class KeywordAnalyzer:
    """Heuristic, offline BOM line extraction and categorisation."""

    def __init__(
        self,
        make_fuzzy_threshold: int = MAKE_FUZZY_THRESHOLD,
        category_keywords: Optional[dict[str, list[str]]] = None,
    ):
        self.make_fuzzy_threshold = make_fuzzy_threshold
        self.category_keywords = category_keywords or CATEGORY_KEYWORDS

    def analyze(self, text: str, existing_makes: Iterable[str] = ()) -> BOMAnalysisResult:
        start = time.monotonic()
        makes = [m for m in existing_makes if m and m.strip()]

        items: list[ExtractedBOMItem] = []
        for line in (text or "").splitlines():
            item = self._analyze_line(line, makes)
            if item is not None:
                items.append(item)

        logger.info("Keyword analysis found %d items", len(items))
        return BOMAnalysisResult(
            items=items,
            total_items=len(items),
            processing_time_seconds=round(time.monotonic() - start, 3),
            method="keywords",
        )

    # ------------------------------------------------------------------
    # Per-line heuristics
    # ------------------------------------------------------------------

    def _analyze_line(self, line: str, makes: list[str]) -> Optional[ExtractedBOMItem]:
        trimmed = line.strip()
        if not trimmed:
            return None
        lowered = trimmed.lower()
        if any(word in lowered for word in HEADER_WORDS):
            return None

        sku_match = _SKU_RE.search(trimmed)
        sku = sku_match.group(0) if sku_match else None
        rest = trimmed.replace(sku, " ") if sku else trimmed

        qty_match = _QTY_RE.search(rest)
        quantity = int(qty_match.group(1)) if qty_match else 1

        name = re.sub(r"\d+", "", rest)
        name = re.sub(r"\s+", " ", name)
        name = re.sub(r"[-\s]+$", "", name).strip()
        if not name:
            return None

        category = self.categorize(name)
        return ExtractedBOMItem(
            name=name,
            make=self.match_make(name, makes),
            description=name,
            sku=sku,
            quantity=quantity,
            category=category,
            unit="pcs",
            confidence=0.5 if category != "Uncategorized" else 0.2,
        )

    def categorize(self, name: str) -> str:
        """Category with the most keyword hits; first wins on ties."""
        lowered = name.lower()
        best, best_hits = "Uncategorized", 0
        for category, keywords in self.category_keywords.items():
            hits = sum(1 for kw in keywords if kw.lower() in lowered)
            if hits > best_hits:
                best, best_hits = category, hits
        return best

    def match_make(self, name: str, makes: list[str]) -> Optional[str]:
        lowered = name.lower()

        # 1. Whole make name appears in the line
        for make in makes:
            if make.lower() in lowered:
                return make

        # 2. Any significant word of the make appears
        for make in makes:
            if any(len(word) > 3 and word in lowered for word in make.lower().split()):
                return make

        # 3. Fuzzy (typos, spacing)
        return self._fuzzy_make(lowered, makes)

    def _fuzzy_make(self, lowered: str, makes: list[str]) -> Optional[str]:
        if not makes:
            return None
        best_score = 0.0
        best_make: Optional[str] = None
        for make in makes:
            if len(make) <= 3:
                continue
            score = fuzz.partial_ratio(make.lower(), lowered)
            if score > best_score:
                best_score, best_make = score, make

        if best_make and best_score >= self.make_fuzzy_threshold:
            logger.debug("Make fuzzy matched: %r -> %s (score=%d)", lowered, best_make, best_score)
            return best_make
        return None
