from __future__ import annotations

import pytest
import requests

from trailfinder.common.http import HttpClient, HttpRequestError, RetryConfig, RetryableHttpError


class FakeResponse:
    def __init__(self, status_code: int, payload=None, raises_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._raises_json = raises_json

    def json(self):
        if self._raises_json:
            raise ValueError("bad json")
        return self._payload


def test_http_post_form_json_success(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    calls = []

    def fake_request(**kwargs):
        calls.append(kwargs)
        return FakeResponse(200, {"elements": []})

    monkeypatch.setattr(client.session, "request", fake_request)
    payload = client.post_form_json("https://example.com/api", source_type="overpass", data={"data": "q"})

    assert payload == {"elements": []}
    assert calls[0]["method"] == "POST"
    assert calls[0]["data"] == {"data": "q"}
    assert calls[0]["headers"]["Content-Type"] == "application/x-www-form-urlencoded"


def test_http_post_json_sends_body_and_headers(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    calls = []

    def fake_request(**kwargs):
        calls.append(kwargs)
        return FakeResponse(200, {"ok": True})

    monkeypatch.setattr(client.session, "request", fake_request)
    client.post_json(
        "https://example.com/chat",
        source_type="enrichment",
        body={"model": "m"},
        headers={"Authorization": "Bearer k"},
    )

    assert calls[0]["json"] == {"model": "m"}
    assert calls[0]["headers"]["Authorization"] == "Bearer k"
    assert calls[0]["headers"]["User-Agent"].startswith("trailfinder")


def test_http_retryable_status_raises_retryable_error(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(503, {"x": 1}))

    with pytest.raises(RetryableHttpError):
        client.post_json("https://example.com", source_type="enrichment", body={})


def test_http_client_error_is_not_retryable(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=3, multiplier=0, max_wait=0))
    calls = []

    def fake_request(**_kwargs):
        calls.append(1)
        return FakeResponse(401, {})

    monkeypatch.setattr(client.session, "request", fake_request)

    with pytest.raises(HttpRequestError) as excinfo:
        client.post_json("https://example.com", source_type="enrichment", body={})
    assert not isinstance(excinfo.value, RetryableHttpError)
    assert len(calls) == 1


def test_http_transport_error_is_retryable(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))

    def fake_request(**_kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(client.session, "request", fake_request)

    with pytest.raises(RetryableHttpError):
        client.post_form_json("https://example.com", source_type="overpass", data={})


def test_http_invalid_json_raises(monkeypatch):
    client = HttpClient(retry=RetryConfig(max_attempts=1))
    monkeypatch.setattr(client.session, "request", lambda **_kwargs: FakeResponse(200, raises_json=True))

    with pytest.raises(HttpRequestError):
        client.post_json("https://example.com", source_type="enrichment", body={})
