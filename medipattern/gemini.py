"""
This module provides an interface to the Google Gemini large language model.

It is responsible for:
- Configuring the Gemini API with the key from the application settings.
- Turning a free-text journal entry into structured `HealthMetrics`.
- Producing a one-sentence trend `Insight` from the most recent entries.
- Writing a narrative summary of the whole journal for a clinician.

Structured responses are requested as JSON with a response schema, then
validated with pydantic so that partial or malformed answers never reach the
journal.
"""
# medipattern/gemini.py

import json
import logging
import re
from datetime import datetime

import google.generativeai as genai
from pydantic import BaseModel, Field, ValidationError

from medipattern.exceptions import ConfigurationError, ResponseDecodeError
from medipattern.models import ExtractedMetrics, Insight, InsightType

logger = logging.getLogger(__name__)

PARSE_SYSTEM_INSTRUCTION = """
You are an expert medical AI assistant. Your task is to extract structured data from a patient's natural language journal entry.
Extract the following:
1. Pain Level (0-10 integer). If not mentioned, estimate based on tone or default to 0.
2. Sleep Hours (number).
3. Mood (string, e.g., "Anxious", "Happy", "Tired").
4. Symptoms (array of strings).
5. Medication Status (enum: 'Taken', 'Missed', 'Unspecified'). Look for keywords like "took meds", "forgot pills", etc.
"""

INSIGHT_SYSTEM_INSTRUCTION = """
You are a proactive medical health agent.
Analyze the last few days of patient data.
Identify ONE significant correlation or pattern (e.g., "Pain spikes when meds are missed" or "Sleep quality is improving").
Output a JSON object with:
- "text": A concise, single-sentence insight (max 20 words).
- "type": "warning" (if negative trend), "positive" (if positive trend), or "info" (neutral).
"""

REPORT_SYSTEM_INSTRUCTION = """
You are a senior medical consultant AI. Analyze the provided patient history JSON.
Identify trends in pain, sleep, and mood over time.
Provide a professional summary suitable for a doctor to read.
Highlight correlations (e.g., "Poor sleep correlates with higher pain").
Use Markdown for formatting.
DO NOT provide a medical diagnosis.
"""

EXTRACTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "painLevel": {"type": "INTEGER", "description": "Pain scale from 0 to 10"},
        "sleepHours": {"type": "NUMBER", "description": "Hours of sleep"},
        "mood": {"type": "STRING", "description": "One or two word description of mood"},
        "symptoms": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "List of identified physical symptoms",
        },
        "medicationStatus": {
            "type": "STRING",
            "format": "enum",
            "enum": ["Taken", "Missed", "Unspecified"],
            "description": "Whether the patient mentioned taking their medication",
        },
    },
    "required": ["painLevel", "sleepHours", "mood", "symptoms", "medicationStatus"],
}

INSIGHT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "text": {"type": "STRING"},
        "type": {"type": "STRING", "format": "enum", "enum": ["positive", "warning", "info"]},
    },
    "required": ["text", "type"],
}

FALLBACK_INSIGHT_TEXT = "Unable to generate new insights at this moment."
EMPTY_REPORT_TEXT = "Unable to generate report."
REPORT_ERROR_TEXT = "Error generating report. Please check your connection or API limit."

_CODE_FENCE = re.compile(r"```(?:json)?\n?|```")


class _InsightPayload(BaseModel):
    text: str = Field(min_length=1)
    type: InsightType


def fallback_insight() -> Insight:
    """Returns the neutral insight used whenever a real one cannot be produced."""
    return Insight(text=FALLBACK_INSIGHT_TEXT, type=InsightType.INFO)


def strip_code_fences(text: str) -> str:
    """Removes markdown code fences the model sometimes wraps JSON in."""
    return _CODE_FENCE.sub("", text).strip()


def decode_json_response(text: str) -> dict:
    """Decodes a JSON object from a model response.

    Raises:
        ResponseDecodeError: If the response is empty or not a JSON object.
    """
    if not text:
        raise ResponseDecodeError("Empty response from AI")
    try:
        payload = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise ResponseDecodeError(f"Response is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ResponseDecodeError("Response is not a JSON object")
    return payload


def _entry_date(entry) -> str:
    try:
        return datetime.fromisoformat(entry.timestamp).date().isoformat()
    except ValueError:
        return entry.timestamp[:10]


def insight_context(history, window: int = 7) -> list:
    """Reduces the newest `window` entries to their date and metrics."""
    return [{"d": _entry_date(e), **e.metrics.to_dict()} for e in history[:window]]


def report_context(history) -> list:
    """Reduces every entry to its date and metrics."""
    return [{"date": _entry_date(e), "metrics": e.metrics.to_dict()} for e in history]


def _response_text(response) -> str:
    # `response.text` raises when the model returned no usable candidate.
    try:
        return response.text
    except ValueError as e:
        raise ResponseDecodeError(f"Model returned no text: {e}") from e


class GeminiClient:
    """Calls Gemini for extraction, insights and reports.

    Args:
        api_key (str): The Gemini API key.
        model_name (str): The model identifier used for every request.
        insight_window (int): How many of the newest entries are analysed for insights.
    """

    def __init__(self, api_key, model_name="gemini-2.5-flash", insight_window=7):
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured.")
        genai.configure(api_key=api_key)
        self.model_name = model_name
        self.insight_window = insight_window

        self._parse_model = genai.GenerativeModel(
            model_name,
            system_instruction=PARSE_SYSTEM_INSTRUCTION,
            generation_config=genai.GenerationConfig(
                response_mime_type="application/json",
                response_schema=EXTRACTION_SCHEMA,
            ),
        )
        self._insight_model = genai.GenerativeModel(
            model_name,
            system_instruction=INSIGHT_SYSTEM_INSTRUCTION,
            generation_config=genai.GenerationConfig(
                response_mime_type="application/json",
                response_schema=INSIGHT_SCHEMA,
            ),
        )
        self._report_model = genai.GenerativeModel(model_name, system_instruction=REPORT_SYSTEM_INSTRUCTION)

    @classmethod
    def from_settings(cls, settings):
        return cls(settings.gemini_api_key, settings.model_name, settings.insight_window)

    async def extract_metrics(self, text: str) -> ExtractedMetrics:
        """Extracts structured metrics from a journal entry.

        Args:
            text: The patient's free-text entry.

        Returns:
            ExtractedMetrics: The validated metrics.

        Raises:
            ResponseDecodeError: If the response is empty, not JSON, or misses a field.
        """
        response = await self._parse_model.generate_content_async(text)
        payload = decode_json_response(_response_text(response))
        try:
            return ExtractedMetrics.model_validate(payload)
        except ValidationError as e:
            raise ResponseDecodeError(f"Response does not match the metrics schema: {e}") from e

    async def generate_insight(self, history) -> Insight:
        """Generates a trend insight from the most recent entries.

        Any failure is logged and answered with the neutral fallback insight.
        """
        context = insight_context(history, self.insight_window)
        try:
            response = await self._insight_model.generate_content_async(json.dumps(context))
            payload = _InsightPayload.model_validate(decode_json_response(_response_text(response)))
        except Exception as e:
            logger.error("Insight generation error: %s", e)
            return fallback_insight()
        return Insight(text=payload.text, type=payload.type)

    async def generate_report(self, history) -> str:
        """Generates a narrative summary of the journal for a clinician.

        Returns:
            str: The report in Markdown, or a short apology if the call failed.
        """
        try:
            response = await self._report_model.generate_content_async(json.dumps(report_context(history)))
            return _response_text(response) or EMPTY_REPORT_TEXT
        except Exception as e:
            logger.error("Report generation error: %s", e)
            return REPORT_ERROR_TEXT
