"""Pytest configuration and fixtures."""

import os
import random

import pytest

# Set before sop_engine modules are imported so the cached settings see them
os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
os.environ["SOP_ENGINE_ENV"] = "test"

from sop_engine.core.config import get_settings  # noqa: E402
from sop_engine.core.schemas_sop import CompleteSOPDocument, QualityCheckpoint  # noqa: E402
from tests.fixtures_sop import (  # noqa: E402
    DATAFLOW_CODE,
    DATAFLOW_MARKER,
    FLOWCHART_CODE,
    FLOWCHART_MARKER,
    SAMPLE_SOP_TEXT,
    SAMPLE_WORKFLOW,
    SEQUENCE_CODE,
    SEQUENCE_MARKER,
    SOP_TEXT_MARKER,
    FakeTextGenerator,
    make_document,
)


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["SOP_ENGINE_ENV"] = "test"
    get_settings.cache_clear()


@pytest.fixture
def fake_llm():
    """Factory for FakeTextGenerator instances."""
    return FakeTextGenerator


@pytest.fixture
def chart_llm():
    return FakeTextGenerator(
        {
            FLOWCHART_MARKER: f"```mermaid\n{FLOWCHART_CODE}\n```",
            SEQUENCE_MARKER: SEQUENCE_CODE,
            DATAFLOW_MARKER: f"Here is the diagram:\n\n{DATAFLOW_CODE}",
        }
    )


@pytest.fixture
def text_llm():
    return FakeTextGenerator({SOP_TEXT_MARKER: SAMPLE_SOP_TEXT})


@pytest.fixture
def sample_workflow():
    return dict(SAMPLE_WORKFLOW)


@pytest.fixture
def sample_document() -> CompleteSOPDocument:
    return make_document()


@pytest.fixture
def document_with_checkpoints(sample_document) -> CompleteSOPDocument:
    """Sample document with one optional checkpoint on the PROCEDURE section."""
    checkpoint = QualityCheckpoint(
        description="Verify documents",
        criteria=["ID is valid", "Contract is signed"],
        method="Visual inspection",
        responsible="Account Manager",
        required=False,
    )
    sections = list(sample_document.sections)
    sections[2] = sections[2].model_copy(update={"checkpoints": [checkpoint]})
    return sample_document.model_copy(update={"sections": sections})


@pytest.fixture
def rng():
    return random.Random(7)
