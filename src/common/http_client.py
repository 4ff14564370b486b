"""Blocking HTTP helpers built on requests.

Encapsulates timeout/retry handling and DEBUG traces for the
:class:`common.transport.RequestsTransport`. Failures are raised as
:class:`errors.TransportError` so that callers decide what is fatal.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import Constants
from errors import ResourceNotFoundError, TransportError

logger = logging.getLogger(__name__)

# Statuses that mean the resource does not exist.
MISSING_STATUSES = (404, 410)


def _default_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    merged = {"User-Agent": Constants.USER_AGENT}
    if headers:
        merged.update(headers)
    return merged


def robust_request(
    method: str,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, str], str]:
    """Perform a request with timeout and retries.

    Server errors (5xx), timeouts and connection errors are retried with a
    linear backoff. Returns ``(status_code, headers, text)`` for any response
    below 500; raises TransportError once retries are exhausted.
    """
    safe_target = safe_url(url)
    sender = session or requests
    last_exception = None

    for attempt in range(Constants.HTTP_RETRY_MAX):
        if attempt:
            time.sleep(Constants.HTTP_RETRY_BASE_DELAY_SEC * attempt)
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action=method,
                            target=safe_target,
                            attempt=attempt + 1,
                        ),
                    )
                response = sender.request(
                    method,
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=_default_headers(headers),
                    **kwargs,
                )
            except requests.Timeout:
                last_exception = "timeout"
                continue
            except requests.RequestException as exc:  # includes ConnectionError
                last_exception = str(exc)
                continue

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action=method,
                        status_code=response.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                    ),
                )
            if response.status_code >= 500:
                last_exception = f"server error {response.status_code}"
                continue
            return response.status_code, dict(response.headers), response.text

    raise TransportError(
        url, f"request failed after {Constants.HTTP_RETRY_MAX} attempts: {last_exception}"
    )


def get_text(url: str, **kwargs: Any) -> str:
    """GET ``url`` and return the body; 404/410 raise ResourceNotFoundError."""
    status_code, _, text = robust_request("GET", url, **kwargs)
    if status_code in MISSING_STATUSES:
        raise ResourceNotFoundError(url, "not found", status=status_code)
    if status_code != 200:
        raise TransportError(url, f"unexpected status {status_code}", status=status_code)
    return text


def probe_status(url: str, status_code: int) -> bool:
    """Interpret the status of an existence check.

    2xx means present and 404/410 mean absent. Anything else is a failure
    to answer, not an answer.
    """
    if 200 <= status_code < 300:
        return True
    if status_code in MISSING_STATUSES:
        return False
    raise TransportError(url, f"unexpected status {status_code}", status=status_code)


def head_ok(url: str, **kwargs: Any) -> bool:
    """Return True if a HEAD request for ``url`` succeeds with a 2xx status.

    Raises:
        TransportError: The server answered with neither success nor 404/410.
    """
    status_code, _, _ = robust_request("HEAD", url, allow_redirects=True, **kwargs)
    return probe_status(url, status_code)
