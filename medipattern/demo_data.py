"""
Demonstration journal used to seed the first patient on a fresh install.

The dataset covers today and the five days before it, newest first, so a new
user immediately sees populated trends.
"""
# medipattern/demo_data.py

from datetime import datetime, timedelta, timezone

from medipattern.models import HealthMetrics, JournalEntry

_DEMO_ENTRIES = [
    ("demo-today", "Started the day feeling fresh. Slept a solid 8 hours. No pain at all.",
     dict(painLevel=0, sleepHours=8.0, mood="Energetic", symptoms=[], medicationStatus="Taken")),
    ("demo-1day", "A bit anxious about the meeting. Stomach hurts a little (level 3).",
     dict(painLevel=3, sleepHours=6.5, mood="Anxious", symptoms=["Stomach ache"], medicationStatus="Taken")),
    ("demo-2days", "Feeling pretty good! Went for a long walk in the park.",
     dict(painLevel=1, sleepHours=7.5, mood="Happy", symptoms=[], medicationStatus="Unspecified")),
    ("demo-3days", "Better than yesterday. Took some ibuprofen. Still tired though.",
     dict(painLevel=4, sleepHours=6.0, mood="Tired", symptoms=["Fatigue"], medicationStatus="Taken")),
    ("demo-4days", "Terrible night. Woke up multiple times. Headache is splitting. Forgot my pills.",
     dict(painLevel=8, sleepHours=4.0, mood="Irritable", symptoms=["Headache", "Insomnia"], medicationStatus="Missed")),
    ("demo-5days", "Feeling okay today, slept well but had vivid dreams. Back pain is mild.",
     dict(painLevel=2, sleepHours=7.0, mood="Calm", symptoms=["Mild back pain"], medicationStatus="Unspecified")),
]


def build_demo_history(now=None):
    """Builds the demonstration history relative to `now`.

    Args:
        now (datetime, optional): The reference time. Defaults to the current UTC time.

    Returns:
        list[JournalEntry]: Six entries, newest first, one per day.
    """
    now = now or datetime.now(timezone.utc)
    history = []
    for days_ago, (entry_id, text, metrics) in enumerate(_DEMO_ENTRIES):
        history.append(JournalEntry(
            original_text=text,
            metrics=HealthMetrics.model_validate(metrics),
            entry_id=entry_id,
            timestamp=(now - timedelta(days=days_ago)).isoformat(),
        ))
    return history
