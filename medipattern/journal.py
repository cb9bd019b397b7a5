"""
This module provides the persistence layer for patient journals.

It defines the `JournalStore` class, which is responsible for:
- Keeping the patient registry and creating new patient profiles.
- Storing each patient's journal history under its own key, newest entry first.
- Attaching the latest trend insight to a patient profile.
- Initializing the registry on first use, either by migrating the legacy
  single-patient history or by seeding a demonstration dataset.

Stored values that cannot be decoded are treated as missing data. Errors from
the storage medium itself (for example a full quota) are propagated.
"""
# medipattern/journal.py

import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from medipattern.demo_data import build_demo_history
from medipattern.models import Insight, InsightType, JournalEntry, PatientProfile

logger = logging.getLogger(__name__)

REGISTRY_KEY = "medipattern_patients"
HISTORY_KEY_PREFIX = "medipattern_history_"
LEGACY_HISTORY_KEY = "medipattern_history"

DEFAULT_PATIENT_NAME = "My Journal"
DEFAULT_INSIGHT_TEXT = "Add a few journal entries to start seeing trends."


def history_key(patient_id: str) -> str:
    return f"{HISTORY_KEY_PREFIX}{patient_id}"


def default_insight() -> Insight:
    return Insight(text=DEFAULT_INSIGHT_TEXT, type=InsightType.INFO)


class JournalStore:
    """Owns the patient registry and every patient's journal history.

    Args:
        storage: A `KeyValueStorage` backend holding JSON values.
    """

    def __init__(self, storage):
        self._storage = storage

    def _read_json(self, key):
        """Reads and decodes a stored JSON value.

        Returns:
            The decoded value, or None if the key is missing or holds invalid JSON.
        """
        raw = self._storage.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.warning("Ignoring malformed value stored under '%s'", key)
            return None

    def _write_json(self, key, value):
        self._storage.set(key, json.dumps(value))

    def _save_registry(self, patients: List[PatientProfile]) -> None:
        self._write_json(REGISTRY_KEY, [p.to_dict() for p in patients])

    def _decode_registry(self, payload) -> List[PatientProfile]:
        if not isinstance(payload, list):
            logger.warning("Patient registry is not a list, treating it as empty")
            return []
        patients = []
        for item in payload:
            if not isinstance(item, dict):
                logger.warning("Skipping malformed patient record %r", item)
                continue
            try:
                patients.append(PatientProfile.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed patient record %r: %s", item, e)
        return patients

    def _initialize_registry(self) -> List[PatientProfile]:
        """Creates the registry with one default patient.

        If the legacy single-patient history exists, it becomes the default
        patient's history. Otherwise the default patient gets the demonstration
        dataset. The legacy key is removed in both cases.
        """
        profile = PatientProfile(name=DEFAULT_PATIENT_NAME, latest_insight=default_insight())
        legacy = self._read_json(LEGACY_HISTORY_KEY)

        if isinstance(legacy, list):
            logger.info("Migrating %d legacy journal entries to patient %s", len(legacy), profile.patient_id)
            self._write_json(history_key(profile.patient_id), legacy)
        else:
            logger.info("No legacy journal found, seeding demonstration data for patient %s", profile.patient_id)
            self._write_json(history_key(profile.patient_id), [e.to_dict() for e in build_demo_history()])

        patients = [profile]
        self._save_registry(patients)
        self._storage.delete(LEGACY_HISTORY_KEY)
        return patients

    def list_patients(self) -> List[PatientProfile]:
        """Returns the patient registry, creating it on first use.

        Once the registry exists, no migration or seeding happens again.

        Returns:
            list[PatientProfile]: All known patients, in creation order.
        """
        if self._storage.get(REGISTRY_KEY) is None:
            return self._initialize_registry()
        return self._decode_registry(self._read_json(REGISTRY_KEY))

    def get_patient(self, patient_id: str) -> Optional[PatientProfile]:
        """Retrieves a single patient profile by ID.

        Returns:
            PatientProfile or None: The profile, or None if it is not in the registry.
        """
        for patient in self.list_patients():
            if patient.patient_id == patient_id:
                return patient
        return None

    def add_patient(self, name: str) -> PatientProfile:
        """Creates a new patient with an empty journal.

        Args:
            name (str): The display name of the new patient.

        Returns:
            PatientProfile: The created profile.

        Raises:
            ValueError: If the name is blank.
            StorageError: If the registry or the history could not be written.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Patient name must not be empty.")

        patients = self.list_patients()
        profile = PatientProfile(name=name, latest_insight=default_insight())
        patients.append(profile)
        self._save_registry(patients)
        self._write_json(history_key(profile.patient_id), [])
        logger.info("Added patient %s (%s)", profile.patient_id, name)
        return profile

    def update_patient_insight(self, patient_id: str, insight: Insight) -> List[PatientProfile]:
        """Replaces the latest insight of a patient.

        Args:
            patient_id (str): The ID of the patient.
            insight (Insight): The new insight.

        Returns:
            list[PatientProfile]: The registry after the update. If the patient is
            unknown, the registry is returned unchanged and nothing is written.
        """
        patients = self.list_patients()
        for patient in patients:
            if patient.patient_id == patient_id:
                patient.latest_insight = insight
                self._save_registry(patients)
                return patients
        logger.warning("Cannot attach insight to unknown patient %s", patient_id)
        return patients

    def get_history(self, patient_id: str) -> List[JournalEntry]:
        """Retrieves a patient's journal, newest entry first.

        Returns:
            list[JournalEntry]: The entries, or an empty list if there is no
            history or the stored value is not a list.
        """
        return self._decode_history(self._read_json(history_key(patient_id)), patient_id)

    def _decode_history(self, payload, patient_id) -> List[JournalEntry]:
        if not isinstance(payload, list):
            if payload is not None:
                logger.warning("History of patient %s is not a list, treating it as empty", patient_id)
            return []
        history = []
        for item in payload:
            if not isinstance(item, dict):
                logger.warning("Skipping malformed journal entry for patient %s: %r", patient_id, item)
                continue
            try:
                history.append(JournalEntry.from_dict(item))
            except (KeyError, TypeError, ValidationError) as e:
                logger.warning("Skipping malformed journal entry for patient %s: %s", patient_id, e)
        return history

    def save_entry(self, entry: JournalEntry, patient_id: str) -> List[JournalEntry]:
        """Prepends an entry to a patient's journal.

        Args:
            entry (JournalEntry): The new entry.
            patient_id (str): The ID of the patient the entry belongs to.

        Stored items that cannot be decoded are written back untouched, so a save
        never drops earlier entries.

        Returns:
            list[JournalEntry]: The full history including the new entry at index 0.
        """
        stored = self._read_json(history_key(patient_id))
        if not isinstance(stored, list):
            stored = []
        self._write_json(history_key(patient_id), [entry.to_dict()] + stored)
        return [entry] + self._decode_history(stored, patient_id)

    def clear_history(self, patient_id: str) -> None:
        """Deletes a patient's journal. Demonstration data is not seeded again."""
        self._storage.delete(history_key(patient_id))

    def search_history(self, patient_id: str, search_term: str) -> List[JournalEntry]:
        """Searches a patient's journal for a given term.

        The entry text, mood and symptoms are matched case-insensitively.

        Args:
            patient_id (str): The ID of the patient.
            search_term (str): The term to search for.

        Returns:
            list[JournalEntry]: Matching entries, newest first.
        """
        history = self.get_history(patient_id)
        if not search_term or not search_term.strip():
            return history

        search_term = search_term.strip().lower()

        def entry_matches(entry):
            fields = [entry.original_text, entry.metrics.mood] + list(entry.metrics.symptoms)
            return any(search_term in (field or "").lower() for field in fields)

        return [entry for entry in history if entry_matches(entry)]
