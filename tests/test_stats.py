"""
Tests for the dashboard statistics and CSV export.
"""
import io

import pandas as pd

from medipattern.demo_data import build_demo_history
from medipattern.stats import export_history_csv, history_frame, summarize_history


def test_summarize_demo_history():
    summary = summarize_history(build_demo_history())
    assert summary == {
        "entries": 6,
        "average_pain": 3.0,
        "average_sleep": 6.5,
        "missed_medication": 1,
    }


def test_summarize_empty_history():
    summary = summarize_history([])
    assert summary["entries"] == 0
    assert summary["average_pain"] is None
    assert summary["average_sleep"] is None


def test_history_frame_is_chronological():
    df = history_frame(build_demo_history())
    assert list(df.columns) == ["date", "pain", "sleep", "mood", "medication"]
    # Oldest entry first, today's entry last.
    assert df.iloc[0]["mood"] == "Calm"
    assert df.iloc[-1]["mood"] == "Energetic"
    assert df["date"].is_monotonic_increasing


def test_export_history_csv():
    history = build_demo_history()
    exported = pd.read_csv(io.BytesIO(export_history_csv(history)))
    assert len(exported) == 6
    assert exported.iloc[0]["id"] == "demo-today"
    assert exported.iloc[4]["symptoms"] == "Headache; Insomnia"
    assert "text" in exported.columns
