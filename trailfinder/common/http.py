"""POST-only JSON client for the Overpass and enrichment endpoints."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from types import TracebackType
from typing import Any
from urllib.parse import urlparse

import requests
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from trailfinder.common.constants import USER_AGENT
from trailfinder.common.errors import StageError
from trailfinder.common.logging import get_logger

RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}

# Minimum seconds between calls to the same host.
SOURCE_MIN_INTERVALS = {
    "overpass": 1.0,
    "enrichment": 0.5,
}


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = 20.0
    read: float = 120.0


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 5
    multiplier: float = 1.0
    max_wait: float = 30.0


class HttpRequestError(StageError):
    error_code = "HTTP_ERROR"


class RetryableHttpError(HttpRequestError):
    pass


class HostThrottle:
    """Spaces out calls per host; the pipeline is single-threaded."""

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self.last_call: dict[str, float] = {}

    def wait(self, host: str) -> None:
        previous = self.last_call.get(host)
        if previous is not None:
            remaining = self.min_interval - (time.monotonic() - previous)
            if remaining > 0:
                time.sleep(remaining)
        self.last_call[host] = time.monotonic()


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        retry: RetryConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.retry = retry or RetryConfig()
        self.logger = get_logger(logger)
        self.session = requests.Session()
        self.throttles = {source: HostThrottle(interval) for source, interval in SOURCE_MIN_INTERVALS.items()}

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _post_once(
        self,
        url: str,
        source_type: str,
        headers: dict[str, str],
        timeout: TimeoutConfig,
        data: dict[str, Any] | None,
        json_body: dict[str, Any] | None,
    ) -> dict[str, Any]:
        throttle = self.throttles.get(source_type)
        if throttle is not None:
            throttle.wait(urlparse(url).netloc)

        try:
            response = self.session.request(
                method="POST",
                url=url,
                data=data,
                json=json_body,
                headers={"User-Agent": USER_AGENT, "Accept": "application/json", **headers},
                timeout=(timeout.connect, timeout.read),
            )
        except requests.RequestException as exc:
            raise RetryableHttpError(f"{source_type}: transport error calling {url}: {exc}") from exc

        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableHttpError(f"{source_type}: retryable HTTP status {response.status_code}")
        if response.status_code >= 400:
            raise HttpRequestError(f"{source_type}: HTTP status {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise HttpRequestError(f"{source_type}: response from {url} is not JSON") from exc

    def _post(
        self,
        url: str,
        *,
        source_type: str,
        headers: dict[str, str] | None,
        timeout: TimeoutConfig | None,
        data: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        retrying = Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(initial=self.retry.multiplier, max=self.retry.max_wait, jitter=1.0),
            retry=retry_if_exception_type(RetryableHttpError),
            before_sleep=before_sleep_log(self.logger, logging.WARNING),
            reraise=True,
        )
        return retrying(
            self._post_once,
            url,
            source_type,
            dict(headers or {}),
            timeout or self.timeout,
            data,
            json_body,
        )

    def post_form_json(
        self,
        url: str,
        *,
        source_type: str,
        data: dict[str, Any],
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        merged = {"Content-Type": "application/x-www-form-urlencoded", **(headers or {})}
        return self._post(url, source_type=source_type, headers=merged, timeout=timeout, data=data)

    def post_json(
        self,
        url: str,
        *,
        source_type: str,
        body: dict[str, Any],
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> dict[str, Any]:
        return self._post(url, source_type=source_type, headers=headers, timeout=timeout, json_body=body)
