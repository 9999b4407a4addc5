"""
Central configuration for BOM inward tracking.

All paths, thresholds, and model settings are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. config/tracker_settings.json  (admin-editable, persisted)
  2. Environment variables
  3. Hardcoded defaults in this file

Environment variables are read once, when a Config is constructed. Nothing
else in the project reads the environment; a Config is passed explicitly to
the importer, the compliance checker and the LLM parser.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"
DEFAULT_DB_PATH    = DEFAULT_OUTPUT_DIR / "bomtrack.db"


@dataclass
class Config:
    # --- LLM settings (OpenAI-compatible API) ---
    # Used for BOM extraction and compliance review. When unreachable, both
    # fall back to local heuristics.
    #
    # Ollama (default):   LLM_BASE_URL=http://localhost:11434/v1   LLM_API_KEY=ollama
    # OpenAI:             LLM_BASE_URL=https://api.openai.com/v1   LLM_API_KEY=sk-...
    # Groq:               LLM_BASE_URL=https://api.groq.com/openai/v1
    llm_model: str = field(
        default_factory=lambda: os.getenv("LLM_MODEL", "llama3.2")
    )
    llm_base_url: str = field(
        default_factory=lambda: os.getenv("LLM_BASE_URL", "http://localhost:11434/v1")
    )
    llm_api_key: str = field(
        default_factory=lambda: os.getenv("LLM_API_KEY", "ollama")
    )
    llm_timeout: float = field(
        default_factory=lambda: float(os.getenv("LLM_TIMEOUT", "60"))
    )
    llm_max_attempts: int = 3

    # --- Storage ---
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )

    # --- Inward tracking ---
    arriving_soon_days: int = 7       # Expected within this many days -> arriving-soon

    # --- Import / compliance thresholds ---
    make_fuzzy_threshold:      int   = 85    # rapidfuzz partial_ratio for make matching
    duplicate_fuzzy_threshold: int   = 90    # rapidfuzz token_sort_ratio for duplicate names
    price_tolerance_pct:       float = 0.10  # Vendor vs BOM price deviation allowed

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from tracker_settings.json if present."""
        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / "tracker_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "llm_model":                 str,
            "llm_base_url":              str,
            "llm_timeout":               float,
            "llm_max_attempts":          int,
            "arriving_soon_days":        int,
            "make_fuzzy_threshold":      int,
            "duplicate_fuzzy_threshold": int,
            "price_tolerance_pct":       float,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load tracker_settings.json: %s", exc)

    def ensure_output_dir(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
