"""
OpenAI-compatible client for BOM extraction and compliance review.

Works with any OpenAI-compatible backend:
  - Ollama (local):  base_url=http://localhost:11434/v1   api_key=ollama
  - OpenAI:          base_url=https://api.openai.com/v1   api_key=sk-...
  - Groq:            base_url=https://api.groq.com/openai/v1

All connection settings arrive through the constructor (normally from
Config); nothing here reads the environment.

Failures raise. Deciding what to do when the service is down -- falling back
to local heuristics -- is the caller's job (see importer.py, compliance.py).
"""
import json
import logging
import re
from typing import Iterable, Optional

from pydantic import ValidationError

from models.bom import BOMItem
from models.extraction import ExtractedBOMItem
from models.result import ComplianceIssue

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    "Vision Systems", "Motors & Drives", "Sensors", "Control Systems",
    "Mechanical", "Electrical", "Pneumatic", "Hydraulic", "Tools", "Safety",
    "Uncategorized",
]


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_PROMPT_EXTRACT = """You are a BOM (Bill of Materials) extraction expert. Extract line items from the text below.

INSTRUCTIONS:
1. Extract item names, quantities and descriptions
2. Look for manufacturer/brand names (makes) - match to existing makes where possible: {makes}
3. Assign each item one of these categories: {categories}
4. Extract part numbers/SKUs when visible
5. Default unit is "pcs" unless specified
6. confidence is your certainty (0 to 1) that the line is a real BOM item

Return ONLY a JSON object -- no markdown, no explanation, no code fences -- with exactly this structure:
{{
  "items": [
    {{
      "name": "Item Name",
      "make": "Brand Name or null",
      "description": "Item description",
      "sku": "Part number or null",
      "quantity": 1,
      "category": "Category Name",
      "unit": "pcs",
      "confidence": 0.9
    }}
  ],
  "totalItems": 1
}}

Text:
---
{text}
---"""


_PROMPT_COMPLIANCE = """You are reviewing an industrial project's Bill of Materials for data quality.
For each problem you find, report one issue. Issue types: name-format, invalid-sku,
description-mismatch, missing-field, duplicate-item, price-mismatch, quantity-mismatch.
Severity is one of: error, warning, info.

Return ONLY a JSON object -- no markdown, no explanation, no code fences -- with exactly this structure:
{{
  "issues": [
    {{
      "bom_item_id": "id of the item",
      "bom_item_name": "name of the item",
      "category": "item category",
      "issue_type": "missing-field",
      "severity": "warning",
      "message": "Short summary",
      "details": "Explanation and suggested fix",
      "current_value": "offending value or null",
      "confidence": 0.8
    }}
  ]
}}

BOM items (JSON):
---
{items_json}
---"""


# ---------------------------------------------------------------------------
# BOMLLMParser
# ---------------------------------------------------------------------------

class BOMLLMParser:
    """
    Uses an OpenAI-compatible chat-completions API to turn free text into BOM
    items and to review a BOM for compliance issues.

    Each call is retried up to max_attempts times; the last error is raised.
    """

    def __init__(
        self,
        model: str = "llama3.2",
        base_url: str = "http://localhost:11434/v1",
        api_key: str = "ollama",
        timeout: float = 60.0,
        max_attempts: int = 3,
    ):
        self.model        = model
        self.base_url     = base_url
        self.api_key      = api_key
        self.timeout      = timeout
        self.max_attempts = max(1, max_attempts)
        self._client      = None

    def _get_client(self):
        """Lazily initialise the OpenAI client."""
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(
                base_url=self.base_url,
                api_key=self.api_key,
                timeout=self.timeout,
            )
        return self._client

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(
        self,
        text: str,
        existing_categories: Iterable[str] = (),
        existing_makes: Iterable[str] = (),
    ) -> list[ExtractedBOMItem]:
        """
        Extract candidate BOM items from free text.

        Raises ValueError if the model never returns usable JSON, or whatever
        the client raised on the final attempt.
        """
        categories = list(existing_categories) or DEFAULT_CATEGORIES
        makes = list(existing_makes)
        prompt = _PROMPT_EXTRACT.format(
            makes=", ".join(makes) or "any recognizable brands",
            categories=", ".join(categories),
            text=text,
        )

        data = self._complete_json(prompt, "BOM extraction")
        raw_items = data.get("items")
        if not isinstance(raw_items, list):
            raise ValueError("LLM response has no 'items' list")

        items: list[ExtractedBOMItem] = []
        for raw in raw_items:
            try:
                items.append(ExtractedBOMItem.model_validate(_clean_nulls(raw)))
            except ValidationError as e:
                logger.warning("Skipping malformed extracted item %r: %s", raw, e)
        logger.info("LLM extracted %d BOM items (%d returned)", len(items), len(raw_items))
        return items

    def check_compliance(self, items: list[BOMItem]) -> list[ComplianceIssue]:
        """Ask the model to review BOM items; returns the issues it reports."""
        items_json = json.dumps(
            [item.model_dump(include={"id", "name", "make", "description", "sku",
                                      "price", "quantity", "category", "item_type"})
             for item in items],
            indent=1,
        )
        data = self._complete_json(_PROMPT_COMPLIANCE.format(items_json=items_json), "compliance")
        raw_issues = data.get("issues")
        if not isinstance(raw_issues, list):
            raise ValueError("LLM response has no 'issues' list")

        known_ids = {item.id for item in items}
        issues: list[ComplianceIssue] = []
        for raw in raw_issues:
            try:
                issue = ComplianceIssue.model_validate(_clean_nulls(raw))
            except ValidationError as e:
                logger.warning("Skipping malformed compliance issue: %s", e)
                continue
            if issue.bom_item_id not in known_ids:
                logger.debug("Dropping issue for unknown item id %s", issue.bom_item_id)
                continue
            issues.append(issue)
        return issues

    def check_connection(self) -> dict:
        """
        Verify the LLM endpoint is reachable and the configured model is available.
        """
        try:
            client = self._get_client()
            models_response = client.models.list()
            available = [m.id for m in models_response.data]
            model_available = any(self.model in m for m in available)
            return {
                "ok": True,
                "base_url": self.base_url,
                "model_available": model_available,
                "available_models": available,
            }
        except Exception as e:
            return {
                "ok": False,
                "base_url": self.base_url,
                "error": str(e),
                "model_available": False,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _complete_json(self, prompt: str, purpose: str) -> dict:
        client = self._get_client()

        for attempt in range(1, self.max_attempts + 1):
            logger.debug("LLM %s attempt %d (model=%s)", purpose, attempt, self.model)
            try:
                response = client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=0.0,   # deterministic output
                )
                raw = (response.choices[0].message.content or "").strip()
                data = _parse_json_response(raw)
                if data is not None:
                    logger.info("LLM %s succeeded on attempt %d", purpose, attempt)
                    return data
            except Exception as e:
                logger.warning("LLM %s attempt %d failed: %s", purpose, attempt, e)
                if attempt == self.max_attempts:
                    raise

        raise ValueError(
            f"LLM failed to return valid {purpose} JSON after {self.max_attempts} attempts"
        )


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _parse_json_response(raw: str) -> Optional[dict]:
    """
    Extract the outermost JSON object from a model response.
    Handles markdown code fences and attempts basic JSON repair.
    """
    raw = re.sub(r"^```(?:json)?\s*", "", raw, flags=re.IGNORECASE)
    raw = re.sub(r"\s*```$", "", raw)
    raw = raw.strip()

    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start == -1 or end == 0:
        logger.warning("No JSON object found in LLM response")
        return None

    json_str = raw[start:end]
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.warning("JSON decode error: %s", e)
        # Attempt repair: remove trailing commas before } or ]
        json_str = re.sub(r",\s*([}\]])", r"\1", json_str)
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError:
            logger.error("Could not repair JSON from LLM response")
            return None

    return data if isinstance(data, dict) else None


def _clean_nulls(raw) -> dict:
    """Drop null values so model defaults apply ("null" strings included)."""
    if not isinstance(raw, dict):
        return {}
    return {k: v for k, v in raw.items() if v is not None and v != "null"}
