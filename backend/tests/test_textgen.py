# Overview: Pytest coverage for advisory text generation and its fallbacks.

import pytest
import requests

from loggas.services import textgen_service
from loggas.services.textgen_service import (
    ExternalServiceError,
    FINANCIAL_FALLBACK,
    PROJECTION_FALLBACK,
    ROUTE_FALLBACK,
)
from loggas.validation import NotFoundError


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def _candidate(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def api_key(app, monkeypatch):
    monkeypatch.setitem(app.config, "GEMINI_API_KEY", "test-key")


@pytest.fixture
def calls(monkeypatch):
    """Captures outgoing requests; set calls.response to control the reply."""
    class Recorder(list):
        response = FakeResponse(payload=_candidate("Tudo certo."))

    recorder = Recorder()

    def fake_post(url, **kwargs):
        recorder.append((url, kwargs))
        if isinstance(recorder.response, Exception):
            raise recorder.response
        return recorder.response

    monkeypatch.setattr(textgen_service.requests, "post", fake_post)
    return recorder


class TestGenerateText:

    def test_missing_key_raises_without_calling_out(self, db_session, calls):
        with pytest.raises(ExternalServiceError):
            textgen_service.generate_text("oi")
        assert calls == []

    def test_request_shape(self, db_session, api_key, calls):
        assert textgen_service.generate_text("Olá") == "Tudo certo."
        url, kwargs = calls[0]
        assert url.endswith(":generateContent")
        assert kwargs["params"] == {"key": "test-key"}
        assert kwargs["json"] == {"contents": [{"parts": [{"text": "Olá"}]}]}
        assert kwargs["timeout"]

    @pytest.mark.parametrize("response", [
        FakeResponse(status_code=500, payload={}),
        FakeResponse(payload=None),
        FakeResponse(payload={"candidates": []}),
        requests.Timeout("slow"),
        requests.ConnectionError("down"),
    ])
    def test_failures_raise(self, db_session, api_key, calls, response):
        calls.response = response
        with pytest.raises(ExternalServiceError):
            textgen_service.generate_text("oi")


class TestAdvisoryHelpers:

    def test_financial_insights_text(self, tenant_a, api_key, calls, make_product):
        make_product(tenant_a, name="Botijão P13")
        assert textgen_service.financial_insights(tenant_a) == "Tudo certo."
        prompt = calls[0][1]["json"]["contents"][0]["parts"][0]["text"]
        assert "Botijão P13" in prompt

    def test_financial_insights_fallback(self, tenant_a, api_key, calls):
        calls.response = FakeResponse(status_code=503, payload={})
        assert textgen_service.financial_insights(tenant_a) == FINANCIAL_FALLBACK

    def test_no_key_falls_back(self, tenant_a, calls):
        assert textgen_service.financial_insights(tenant_a) == FINANCIAL_FALLBACK

    def test_customer_projection(self, tenant_a, api_key, calls, make_customer):
        make_customer(tenant_a, "c-1", name="João Silva")
        assert textgen_service.customer_projection(tenant_a, "c-1") == "Tudo certo."

        calls.response = requests.Timeout("slow")
        assert textgen_service.customer_projection(tenant_a, "c-1") == PROJECTION_FALLBACK

    def test_customer_projection_unknown_customer(self, tenant_a, calls):
        with pytest.raises(NotFoundError):
            textgen_service.customer_projection(tenant_a, "missing")

    def test_route_suggestion_empty_list(self, tenant_a, api_key, calls):
        assert textgen_service.delivery_route_suggestion(tenant_a, []) == ROUTE_FALLBACK
        assert calls == []
