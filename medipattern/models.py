"""
This module defines the primary data models for the MediPattern application.

These classes structure the data managed by the `JournalStore` and persisted in
the application's key/value storage. Entities are serialized to plain
dictionaries with camelCase keys so that stored journals stay readable by the
presentation layer and compatible with legacy single-patient data.
"""
# medipattern/models.py

from datetime import datetime, timezone
from enum import Enum
from typing import List
import uuid

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> str:
    """Returns the current UTC time as an ISO-formatted string."""
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    """Returns a fresh unique identifier."""
    return str(uuid.uuid4())


class MedicationStatus(str, Enum):
    TAKEN = "Taken"
    MISSED = "Missed"
    UNSPECIFIED = "Unspecified"


class InsightType(str, Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    INFO = "info"


class HealthMetrics(BaseModel):
    """Structured metrics extracted from a single journal entry.

    Attributes:
        pain_level (int): Pain on a 0-10 scale.
        sleep_hours (float): Hours slept, never negative.
        mood (str): A short mood label such as "Anxious" or "Calm".
        symptoms (list[str]): Reported symptoms, in the order they were reported.
        medication_status (MedicationStatus): Whether medication was taken.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    pain_level: int = Field(alias="painLevel", ge=0, le=10)
    sleep_hours: float = Field(alias="sleepHours", ge=0)
    mood: str
    symptoms: List[str] = Field(default_factory=list)
    # Legacy entries were written before medication tracking existed.
    medication_status: MedicationStatus = Field(
        default=MedicationStatus.UNSPECIFIED, alias="medicationStatus"
    )

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class ExtractedMetrics(HealthMetrics):
    """Metrics as returned by the extraction service, where every field is required."""

    symptoms: List[str]
    medication_status: MedicationStatus = Field(alias="medicationStatus")


class Insight:
    """A single trend insight attached to a patient profile.

    Attributes:
        text (str): A short natural-language observation.
        type (InsightType): Classification of the trend.
        timestamp (str): The ISO-formatted time the insight was generated.
    """
    def __init__(self, text, type, timestamp=None):
        self.text = text
        self.type = InsightType(type)
        self.timestamp = timestamp or utc_now()

    def to_dict(self) -> dict:
        return {"text": self.text, "type": self.type.value, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> "Insight":
        return cls(text=data["text"], type=data["type"], timestamp=data.get("timestamp"))


class JournalEntry:
    """Represents a single journal entry for one patient.

    Entries are never edited once created; a history only grows by prepending
    new entries or is cleared as a whole.

    Attributes:
        entry_id (str): A unique identifier for the entry.
        timestamp (str): The ISO-formatted timestamp of when the entry was created.
        original_text (str): The free text the patient wrote.
        metrics (HealthMetrics): The structured metrics extracted from the text.
    """
    def __init__(self, original_text, metrics, entry_id=None, timestamp=None):
        # A unique ID is generated if one is not provided.
        self.entry_id = entry_id or new_id()
        # A timestamp is generated if one is not provided.
        self.timestamp = timestamp or utc_now()
        self.original_text = original_text
        self.metrics = metrics

    def to_dict(self) -> dict:
        return {
            "id": self.entry_id,
            "timestamp": self.timestamp,
            "originalText": self.original_text,
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "JournalEntry":
        return cls(
            original_text=data.get("originalText", ""),
            metrics=HealthMetrics.model_validate(data["metrics"]),
            entry_id=data["id"],
            timestamp=data["timestamp"],
        )

    def __repr__(self):
        return f"JournalEntry(entry_id={self.entry_id!r}, timestamp={self.timestamp!r})"


class PatientProfile:
    """Represents one patient whose journal is kept by the application.

    Attributes:
        patient_id (str): A unique identifier for the patient.
        name (str): The display name of the patient.
        created_at (str): The ISO-formatted timestamp of when the profile was created.
        latest_insight (Insight | None): The most recent trend insight, if any.
    """
    def __init__(self, name, patient_id=None, created_at=None, latest_insight=None):
        self.patient_id = patient_id or new_id()
        self.name = name
        self.created_at = created_at or utc_now()
        self.latest_insight = latest_insight

    def to_dict(self) -> dict:
        return {
            "id": self.patient_id,
            "name": self.name,
            "createdAt": self.created_at,
            "latestInsight": self.latest_insight.to_dict() if self.latest_insight else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PatientProfile":
        insight = data.get("latestInsight")
        return cls(
            name=data["name"],
            patient_id=data["id"],
            created_at=data.get("createdAt"),
            latest_insight=Insight.from_dict(insight) if insight else None,
        )

    def __repr__(self):
        return f"PatientProfile(patient_id={self.patient_id!r}, name={self.name!r})"
