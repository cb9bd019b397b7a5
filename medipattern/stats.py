"""
Read-only views of a journal for dashboards and exports.

Everything here is derived from a history list and never writes to storage.
"""
# medipattern/stats.py

import pandas as pd

from medipattern.models import MedicationStatus

FRAME_COLUMNS = ["date", "pain", "sleep", "mood", "medication"]
EXPORT_COLUMNS = ["id", "timestamp", "date", "pain", "sleep", "mood", "medication", "symptoms", "text"]


def _rows(history):
    for entry in history:
        metrics = entry.metrics
        yield {
            "id": entry.entry_id,
            "timestamp": entry.timestamp,
            "date": entry.timestamp[:10],
            "pain": metrics.pain_level,
            "sleep": metrics.sleep_hours,
            "mood": metrics.mood,
            "medication": metrics.medication_status.value,
            "symptoms": "; ".join(metrics.symptoms),
            "text": entry.original_text,
        }


def history_frame(history) -> pd.DataFrame:
    """Returns the journal as a chart-ready DataFrame, oldest entry first."""
    df = pd.DataFrame(list(_rows(reversed(list(history)))), columns=EXPORT_COLUMNS)
    return df[FRAME_COLUMNS].reset_index(drop=True)


def summarize_history(history) -> dict:
    """Computes the headline numbers shown on the dashboard.

    Returns:
        dict: `entries`, `average_pain`, `average_sleep` and `missed_medication`.
        Averages are rounded to one decimal and are None for an empty journal.
    """
    df = history_frame(history)
    if df.empty:
        return {"entries": 0, "average_pain": None, "average_sleep": None, "missed_medication": 0}
    return {
        "entries": len(df),
        "average_pain": round(float(df["pain"].mean()), 1),
        "average_sleep": round(float(df["sleep"].mean()), 1),
        "missed_medication": int((df["medication"] == MedicationStatus.MISSED.value).sum()),
    }


def export_history_csv(history) -> bytes:
    """Exports the journal, newest first, as UTF-8 encoded CSV."""
    df = pd.DataFrame(list(_rows(history)), columns=EXPORT_COLUMNS)
    return df.to_csv(index=False).encode("utf-8")
