"""MediPattern: AI-assisted patient journals with trend insights."""

from medipattern.journal import JournalStore
from medipattern.models import (
    HealthMetrics,
    Insight,
    InsightType,
    JournalEntry,
    MedicationStatus,
    PatientProfile,
)
from medipattern.orchestrator import IngestionOrchestrator, SubmissionState

__all__ = [
    "HealthMetrics",
    "IngestionOrchestrator",
    "Insight",
    "InsightType",
    "JournalEntry",
    "JournalStore",
    "MedicationStatus",
    "PatientProfile",
    "SubmissionState",
]
