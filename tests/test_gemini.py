"""
Tests for the Gemini service adapter.

`google.generativeai.GenerativeModel` and `configure` are replaced with fakes via
monkeypatch, so no API key or network access is needed. Each fake model keeps
the prompts it received and answers with whatever `reply` is set to.
"""
import json

import google.generativeai as genai
import pytest

from medipattern import gemini as gemini_module
from medipattern.demo_data import build_demo_history
from medipattern.exceptions import ConfigurationError, ResponseDecodeError
from medipattern.gemini import (
    EMPTY_REPORT_TEXT,
    EXTRACTION_SCHEMA,
    FALLBACK_INSIGHT_TEXT,
    REPORT_ERROR_TEXT,
    GeminiClient,
    strip_code_fences,
)
from medipattern.models import ExtractedMetrics, InsightType, MedicationStatus


class _FakeResponse:
    def __init__(self, text, text_error=None):
        self._text = text
        self._text_error = text_error

    @property
    def text(self):
        if self._text_error:
            raise self._text_error
        return self._text


class _FakeModel:
    def __init__(self, model_name, system_instruction=None, generation_config=None):
        self.model_name = model_name
        self.system_instruction = system_instruction
        self.generation_config = generation_config
        self.prompts = []
        self.reply = ""
        self.error = None
        self.text_error = None

    async def generate_content_async(self, contents):
        self.prompts.append(contents)
        if self.error:
            raise self.error
        return _FakeResponse(self.reply, self.text_error)


@pytest.fixture
def configured_keys(monkeypatch):
    keys = []
    monkeypatch.setattr(genai, "configure", lambda api_key=None: keys.append(api_key))
    monkeypatch.setattr(genai, "GenerativeModel", _FakeModel)
    return keys


@pytest.fixture
def client(configured_keys):
    return GeminiClient("test-key", model_name="gemini-test")


def _metrics_json(**overrides):
    payload = {"painLevel": 6, "sleepHours": 5.5, "mood": "Tired", "symptoms": ["Headache"], "medicationStatus": "Missed"}
    payload.update(overrides)
    return json.dumps(payload)


def test_client_requires_api_key(configured_keys):
    with pytest.raises(ConfigurationError):
        GeminiClient(None)
    assert configured_keys == []


def test_client_configures_models(client, configured_keys):
    assert configured_keys == ["test-key"]
    assert client._parse_model.model_name == "gemini-test"
    assert client._parse_model.system_instruction == gemini_module.PARSE_SYSTEM_INSTRUCTION
    assert client._report_model.system_instruction == gemini_module.REPORT_SYSTEM_INSTRUCTION
    assert client._report_model.generation_config is None


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_extraction_schema_requires_every_field():
    assert set(EXTRACTION_SCHEMA["required"]) == set(EXTRACTION_SCHEMA["properties"])


@pytest.mark.asyncio
async def test_extract_metrics_decodes_fenced_json(client):
    client._parse_model.reply = f"```json\n{_metrics_json()}\n```"
    metrics = await client.extract_metrics("Slept 5.5 hours, headache, forgot pills")

    assert isinstance(metrics, ExtractedMetrics)
    assert metrics.pain_level == 6
    assert metrics.sleep_hours == 5.5
    assert metrics.symptoms == ["Headache"]
    assert metrics.medication_status is MedicationStatus.MISSED
    assert client._parse_model.prompts == ["Slept 5.5 hours, headache, forgot pills"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        "",
        "not json at all",
        "[1, 2, 3]",
        json.dumps({"painLevel": 6, "sleepHours": 5.5, "mood": "Tired", "symptoms": []}),
        _metrics_json(painLevel=14),
        _metrics_json(medicationStatus="Sometimes"),
    ],
)
async def test_extract_metrics_fails_closed(client, reply):
    client._parse_model.reply = reply
    with pytest.raises(ResponseDecodeError):
        await client.extract_metrics("text")


@pytest.mark.asyncio
async def test_extract_metrics_blocked_response(client):
    client._parse_model.text_error = ValueError("response was blocked")
    with pytest.raises(ResponseDecodeError):
        await client.extract_metrics("text")


@pytest.mark.asyncio
async def test_extract_metrics_propagates_api_errors(client):
    client._parse_model.error = ConnectionError("offline")
    with pytest.raises(ConnectionError):
        await client.extract_metrics("text")


@pytest.mark.asyncio
async def test_generate_insight_uses_recent_window(client):
    history = build_demo_history() + build_demo_history()
    client._insight_model.reply = '{"text": "Pain spikes when meds are missed.", "type": "warning"}'

    insight = await client.generate_insight(history)

    assert insight.text == "Pain spikes when meds are missed."
    assert insight.type is InsightType.WARNING
    sent = json.loads(client._insight_model.prompts[0])
    assert len(sent) == 7
    assert set(sent[0]) == {"d", "painLevel", "sleepHours", "mood", "symptoms", "medicationStatus"}


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["", '{"text": "Hmm", "type": "alarming"}', '{"text": "", "type": "info"}'])
async def test_generate_insight_falls_back_on_bad_response(client, reply):
    client._insight_model.reply = reply
    insight = await client.generate_insight(build_demo_history())
    assert insight.type is InsightType.INFO
    assert insight.text == FALLBACK_INSIGHT_TEXT


@pytest.mark.asyncio
async def test_generate_insight_falls_back_on_api_error(client):
    client._insight_model.error = RuntimeError("quota")
    insight = await client.generate_insight(build_demo_history())
    assert insight.text == FALLBACK_INSIGHT_TEXT


@pytest.mark.asyncio
async def test_generate_report_sends_full_history(client):
    client._report_model.reply = "## Summary"
    history = build_demo_history()

    assert await client.generate_report(history) == "## Summary"
    sent = json.loads(client._report_model.prompts[0])
    assert len(sent) == 6
    assert set(sent[0]) == {"date", "metrics"}


@pytest.mark.asyncio
async def test_generate_report_canned_responses(client):
    client._report_model.reply = ""
    assert await client.generate_report(build_demo_history()) == EMPTY_REPORT_TEXT

    client._report_model.error = RuntimeError("quota")
    assert await client.generate_report(build_demo_history()) == REPORT_ERROR_TEXT
