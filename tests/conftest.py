"""
Pytest configuration file for the MediPattern test suite.

This file defines shared fixtures used across the test modules:
- An in-memory storage backend and a `JournalStore` built on it, so tests never
  touch the real data file.
- A fake language-model client that records its calls and can be told to fail,
  hang, or answer late, so the orchestrator can be tested without network access.
- An orchestrator wired to both, with short timeouts.
"""
import asyncio

import pytest

from medipattern.journal import JournalStore
from medipattern.models import ExtractedMetrics, Insight, InsightType
from medipattern.orchestrator import IngestionOrchestrator
from medipattern.storage import MemoryStorage


def make_metrics(**overrides):
    """Builds extraction-service metrics with sensible defaults."""
    values = dict(painLevel=3, sleepHours=6.5, mood="Anxious", symptoms=["Headache"], medicationStatus="Missed")
    values.update(overrides)
    return ExtractedMetrics.model_validate(values)


class FakeServiceClient:
    """Stands in for `GeminiClient`.

    Each operation can be given a delay (seconds) and an error to raise.
    """

    def __init__(self):
        self.metrics = make_metrics()
        self.insight = Insight(text="Pain spikes when meds are missed.", type=InsightType.WARNING)
        self.report = "## Summary\nPain is trending down."

        self.extract_delay = 0
        self.insight_delay = 0
        self.report_delay = 0
        self.extract_error = None
        self.insight_error = None
        self.report_error = None

        self.extract_calls = []
        self.insight_calls = []
        self.report_calls = []

    async def extract_metrics(self, text):
        self.extract_calls.append(text)
        if self.extract_delay:
            await asyncio.sleep(self.extract_delay)
        if self.extract_error:
            raise self.extract_error
        return self.metrics

    async def generate_insight(self, history):
        self.insight_calls.append(history)
        if self.insight_delay:
            await asyncio.sleep(self.insight_delay)
        if self.insight_error:
            raise self.insight_error
        return self.insight

    async def generate_report(self, history):
        self.report_calls.append(history)
        if self.report_delay:
            await asyncio.sleep(self.report_delay)
        if self.report_error:
            raise self.report_error
        return self.report


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return JournalStore(storage)


@pytest.fixture
def fake_client():
    return FakeServiceClient()


@pytest.fixture
def orchestrator(store, fake_client):
    return IngestionOrchestrator(
        store,
        fake_client,
        extraction_timeout=0.05,
        insight_timeout=0.05,
        report_timeout=0.05,
    )


@pytest.fixture
def patient(store):
    """Returns the default patient created on first use, with the demo journal."""
    return store.list_patients()[0]
