"""
Unit tests for verdict explanations and the optional LLM client.
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
import requests

from tracker.app.assistant import explain_verdict, template_explanation
from tracker.app.llm import LLMClient, LLMUnavailable, _output_text
from tracker.app.schemas import VerificationStatus


class _FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}")

    def json(self):
        return self._payload


class _FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return self.response


def test_template_lists_reasons_in_order():
    text = template_explanation(VerificationStatus.PARTIALLY_VERIFIED,
                                ["Product ID missing", "Issue date not registered"])
    assert text.startswith("Result: Partially Verified.")
    assert "1. Product ID missing" in text
    assert "2. Issue date not registered" in text
    assert "Treat the certificate with caution" in text


def test_template_without_status():
    text = template_explanation(None, [])
    assert "Please run verification first" in text


def test_template_without_reasons():
    assert "No specific reasons were provided" in template_explanation(VerificationStatus.FAKE, [])


def test_explain_without_client_uses_template():
    result = explain_verdict(VerificationStatus.VERIFIED, ["All checks passed"])
    assert result.source == "template"
    assert "Result: Verified." in result.text


def test_explain_uses_llm_when_configured():
    session = _FakeSession(_FakeResponse({"output": "It checks out."}))
    client = LLMClient("http://llm.local/generate", "secret", session=session)
    result = explain_verdict(VerificationStatus.VERIFIED, ["All checks passed"], client)
    assert result.source == "llm"
    assert result.text == "It checks out."

    url, kwargs = session.calls[0]
    assert url == "http://llm.local/generate"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert "Status: Verified" in kwargs["json"]["prompt"]


def test_explain_falls_back_on_http_error():
    session = _FakeSession(_FakeResponse({}, status=503))
    client = LLMClient("http://llm.local/generate", "secret", session=session)
    result = explain_verdict(VerificationStatus.FAKE, ["Issuer not found on chain"], client)
    assert result.source == "template"
    assert "1. Issuer not found on chain" in result.text


def test_explain_skips_llm_without_status():
    session = _FakeSession(_FakeResponse({"output": "unused"}))
    client = LLMClient("http://llm.local/generate", "secret", session=session)
    assert explain_verdict(None, [], client).source == "template"
    assert session.calls == []


def test_unconfigured_client_raises():
    client = LLMClient(None, None)
    assert client.configured is False
    with pytest.raises(LLMUnavailable):
        client.complete("hello")


def test_empty_output_raises():
    client = LLMClient("http://llm.local", "k", session=_FakeSession(_FakeResponse({"foo": 1})))
    with pytest.raises(LLMUnavailable):
        client.complete("hello")


def test_output_text_layouts():
    assert _output_text({"output_text": "a"}) == "a"
    assert _output_text({"choices": [{"message": {"content": "b"}}]}) == "b"
    assert _output_text({"choices": [{"output_text": "c"}]}) == "c"
    assert _output_text(["not", "a", "dict"]) is None
