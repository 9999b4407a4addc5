"""
Pytest configuration and shared fixtures for the bomtrack test suite.
"""
import json
import os
import shutil
import tempfile
import uuid
from datetime import date
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

# Run from the project root so relative paths resolve
PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)

# Fixed clock for inward status tests
TODAY = date(2025, 11, 28)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="bomtrack_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration with an isolated database and no settings overlay."""
    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    from config import Config

    config = Config()
    config.db_path = temp_dir / "output" / "bomtrack.db"
    config.llm_max_attempts = 1
    return config


@pytest.fixture
def test_store(test_config) -> "ProjectStore":
    """Provide a test database instance."""
    from tracking.database import ProjectStore
    return ProjectStore(test_config.db_path)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def make_item():
    """Factory for BOM items; keyword arguments override the defaults."""
    from models.bom import BOMItem

    def _make(**overrides) -> "BOMItem":
        fields = {
            "id": f"item-{uuid.uuid4().hex[:8]}",
            "name": "Servo Motor",
            "category": "Motors & Drives",
        }
        fields.update(overrides)
        return BOMItem(**fields)

    return _make


@pytest.fixture
def make_document():
    """Factory for project documents; keyword arguments override the defaults."""
    from models.document import ProjectDocument

    def _make(**overrides) -> "ProjectDocument":
        fields = {
            "id": f"doc-{uuid.uuid4().hex[:8]}",
            "project_id": "P1",
            "name": "PO-0042.pdf",
            "type": "outgoing-po",
        }
        fields.update(overrides)
        return ProjectDocument(**fields)

    return _make


@pytest.fixture
def sample_bom_text() -> str:
    """Plain-text BOM as pasted from a vendor quote."""
    return """Item  Description  Quantity
Basler industrial camera CAM-1920 2
Siemens servo motor SM-200 4
Hex bolt 50

Emergency stop button ES-22 1
"""


@pytest.fixture
def mock_llm_items_response() -> dict:
    """Return a mock LLM extraction response."""
    return {
        "items": [
            {
                "name": "Industrial Camera",
                "make": "Basler",
                "description": "5MP GigE camera",
                "sku": "ACA2440",
                "quantity": 2,
                "category": "Vision Systems",
                "unit": "pcs",
                "confidence": 0.95,
            },
            {
                "name": "Servo Motor",
                "make": None,
                "description": "",
                "sku": "null",
                "quantity": 4,
                "category": "Motors & Drives",
                "unit": "pcs",
                "confidence": 0.9,
            },
        ],
        "totalItems": 2,
    }


def _completion(content: str) -> MagicMock:
    """Build an object shaped like an OpenAI chat completion response."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture
def make_completion():
    return _completion


@pytest.fixture
def mock_openai_client():
    """
    A MagicMock standing in for openai.OpenAI.

    Set client.chat.completions.create.return_value / side_effect per test.
    """
    client = MagicMock()
    client.chat.completions.create.return_value = _completion(json.dumps({"items": []}))
    return client


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
