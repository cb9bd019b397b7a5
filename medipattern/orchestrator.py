"""
This module coordinates the journal ingestion pipeline.

`IngestionOrchestrator.submit_entry` takes the raw text of a journal entry through
three steps:
1. Structure: the text is sent to the extraction service under a timeout.
2. Memory: the resulting entry is saved at the top of the patient's history,
   and the updated history is handed back to the caller.
3. Reasoning: a detached background task asks the insight service for a trend
   insight on the refreshed history and attaches it to the patient profile.

The caller only ever waits for steps 1 and 2. Failures in step 3 are logged and
replaced with a neutral fallback insight.
"""
# medipattern/orchestrator.py

import asyncio
import logging
from enum import Enum
from typing import Dict, List, Set

from medipattern.exceptions import (
    EmptyEntryError,
    EntryNotSavedError,
    ExtractionError,
    ExtractionTimeoutError,
    ReportError,
    ReportTimeoutError,
    StorageError,
)
from medipattern.gemini import fallback_insight
from medipattern.models import JournalEntry

logger = logging.getLogger(__name__)

EXTRACTION_TIMEOUT_MESSAGE = "Analysis timed out. Please check your connection."
EXTRACTION_FAILED_MESSAGE = "Failed to analyze entry. Please try again."
REPORT_TIMEOUT_MESSAGE = "Report generation timed out."
REPORT_FAILED_MESSAGE = "Failed to generate report. Please try again."


class SubmissionState(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    FAILED = "failed"
    PERSISTED = "persisted"
    INSIGHT_PENDING = "insight_pending"
    INSIGHT_ATTACHED = "insight_attached"
    INSIGHT_FALLBACK = "insight_fallback"


class _Timeout(Exception):
    pass


def _discard_late_result(task: asyncio.Task) -> None:
    # Retrieve the outcome so asyncio does not report it; the value is never used.
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("Late call finished with %r after its timeout", error)
    else:
        logger.debug("Discarding late result received after timeout")


async def _wait_bounded(coro, timeout: float):
    """Awaits `coro` for at most `timeout` seconds.

    On timeout the underlying call is left running and its eventual result is
    discarded, then `_Timeout` is raised.
    """
    task = asyncio.ensure_future(coro)
    done, _ = await asyncio.wait({task}, timeout=timeout)
    if not done:
        task.add_done_callback(_discard_late_result)
        raise _Timeout()
    return task.result()


class IngestionOrchestrator:
    """Runs journal submissions and report requests against the external services.

    Args:
        store (JournalStore): The persistence store that owns all journal data.
        client: The language-model service, normally a `GeminiClient`. It must
            provide async `extract_metrics`, `generate_insight` and `generate_report`.
        extraction_timeout (float): Seconds to wait for extraction.
        insight_timeout (float): Seconds to wait for a trend insight.
        report_timeout (float): Seconds to wait for a report.
        insight_window (int): How many of the newest entries are analysed for insights.
    """

    def __init__(self, store, client, extraction_timeout=15.0, insight_timeout=15.0,
                 report_timeout=25.0, insight_window=7):
        self.store = store
        self.client = client
        self.extraction_timeout = extraction_timeout
        self.insight_timeout = insight_timeout
        self.report_timeout = report_timeout
        self.insight_window = insight_window
        self._states: Dict[str, SubmissionState] = {}
        self._background_tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, store, client, settings):
        return cls(
            store,
            client,
            extraction_timeout=settings.extraction_timeout,
            insight_timeout=settings.insight_timeout,
            report_timeout=settings.report_timeout,
            insight_window=settings.insight_window,
        )

    def state_for(self, patient_id: str) -> SubmissionState:
        """Returns the state of the latest submission for a patient."""
        return self._states.get(patient_id, SubmissionState.IDLE)

    def insight_pending(self, patient_id: str) -> bool:
        return self.state_for(patient_id) == SubmissionState.INSIGHT_PENDING

    def _transition(self, patient_id, state):
        logger.debug("Patient %s: %s -> %s", patient_id, self.state_for(patient_id).value, state.value)
        self._states[patient_id] = state

    async def submit_entry(self, raw_text: str, patient_id: str) -> List[JournalEntry]:
        """Extracts, saves and schedules insight analysis for a journal entry.

        Args:
            raw_text (str): The patient's free-text entry.
            patient_id (str): The patient the entry belongs to.

        Returns:
            list[JournalEntry]: The patient's history with the new entry at index 0.

        Raises:
            EmptyEntryError: If the text is empty or whitespace.
            ExtractionTimeoutError: If extraction did not finish in time.
            ExtractionError: If extraction failed for any other reason.
            EntryNotSavedError: If the entry was extracted but could not be saved.
        """
        if not raw_text or not raw_text.strip():
            raise EmptyEntryError("Journal entry is empty.")

        self._transition(patient_id, SubmissionState.EXTRACTING)
        try:
            metrics = await _wait_bounded(self.client.extract_metrics(raw_text), self.extraction_timeout)
        except _Timeout:
            self._transition(patient_id, SubmissionState.FAILED)
            logger.warning("Extraction for patient %s timed out after %ss", patient_id, self.extraction_timeout)
            raise ExtractionTimeoutError(EXTRACTION_TIMEOUT_MESSAGE) from None
        except Exception as e:
            self._transition(patient_id, SubmissionState.FAILED)
            logger.error("Analysis failed for patient %s: %s", patient_id, e)
            raise ExtractionError(f"{EXTRACTION_FAILED_MESSAGE} ({e})") from e

        entry = JournalEntry(original_text=raw_text, metrics=metrics)
        try:
            history = self.store.save_entry(entry, patient_id)
        except StorageError as e:
            self._transition(patient_id, SubmissionState.FAILED)
            logger.error("Entry %s for patient %s was analyzed but not saved: %s", entry.entry_id, patient_id, e)
            raise EntryNotSavedError(f"Your entry was analyzed but could not be saved: {e}", entry) from e
        except Exception:
            self._transition(patient_id, SubmissionState.FAILED)
            logger.exception("Unexpected error saving entry %s for patient %s", entry.entry_id, patient_id)
            raise
        self._transition(patient_id, SubmissionState.PERSISTED)

        self._schedule_insight(patient_id, history)
        return history

    def _schedule_insight(self, patient_id, history):
        self._transition(patient_id, SubmissionState.INSIGHT_PENDING)
        task = asyncio.create_task(self._refresh_insight(patient_id, list(history)))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _refresh_insight(self, patient_id, history):
        """Generates and attaches a trend insight. Never raises."""
        recent = history[:self.insight_window]
        try:
            insight = await _wait_bounded(self.client.generate_insight(recent), self.insight_timeout)
            state = SubmissionState.INSIGHT_ATTACHED
        except _Timeout:
            logger.warning("Insight generation for patient %s timed out after %ss", patient_id, self.insight_timeout)
            insight, state = fallback_insight(), SubmissionState.INSIGHT_FALLBACK
        except Exception as e:
            logger.warning("Insight generation failed for patient %s: %s", patient_id, e)
            insight, state = fallback_insight(), SubmissionState.INSIGHT_FALLBACK

        try:
            self.store.update_patient_insight(patient_id, insight)
        except Exception:
            logger.exception("Could not store insight for patient %s", patient_id)
            state = SubmissionState.FAILED
        self._transition(patient_id, state)

    async def drain(self) -> None:
        """Waits for every scheduled insight task to finish."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def request_report(self, history: List[JournalEntry]) -> str:
        """Generates a clinician-facing summary of a journal.

        The report service answers with an apology text on its own failures;
        that text is returned like any other report.

        Raises:
            ReportTimeoutError: If the report did not arrive in time.
            ReportError: If the report service raised.
        """
        try:
            return await _wait_bounded(self.client.generate_report(list(history)), self.report_timeout)
        except _Timeout:
            logger.warning("Report generation timed out after %ss", self.report_timeout)
            raise ReportTimeoutError(REPORT_TIMEOUT_MESSAGE) from None
        except Exception as e:
            logger.error("Report generation failed: %s", e)
            raise ReportError(REPORT_FAILED_MESSAGE) from e
