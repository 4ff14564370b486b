"""Transports used to fetch manifests and registry listings.

The engine only talks to the :class:`Transport` interface. ``file://`` URLs
are served from disk by the base class; remote URLs are delegated to the
concrete implementation. Retry policy lives here, never in the engine.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp
import requests

from common import http_client
from common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from constants import Constants
from errors import ResourceNotFoundError, TransportError

logger = logging.getLogger(__name__)


def file_url_to_path(url: str) -> str:
    """Convert a ``file://`` URL to a local filesystem path."""
    parts = urllib.parse.urlsplit(url)
    return urllib.request.url2pathname(parts.path)


def _read_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as fh:
        return fh.read()


class Transport(ABC):
    """Fetches text resources by URL."""

    async def fetch_text(self, url: str) -> str:
        """Return the body of ``url``.

        Raises:
            ResourceNotFoundError: The resource does not exist.
            TransportError: Any other failure.
        """
        if url.startswith("file:"):
            path = file_url_to_path(url)
            try:
                return await asyncio.to_thread(_read_file, path)
            except FileNotFoundError as exc:
                raise ResourceNotFoundError(url, "no such file") from exc
            except OSError as exc:
                raise TransportError(url, str(exc)) from exc
        return await self._fetch_remote(url)

    async def fetch_json(self, url: str) -> Any:
        """Fetch ``url`` and decode it as JSON."""
        text = await self.fetch_text(url)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransportError(url, f"invalid JSON: {exc}") from exc

    async def exists(self, url: str) -> bool:
        """Return True if ``url`` can be fetched."""
        if url.startswith("file:"):
            return await asyncio.to_thread(os.path.isfile, file_url_to_path(url))
        return await self._probe_remote(url)

    async def close(self) -> None:
        """Release any held connections."""

    @abstractmethod
    async def _fetch_remote(self, url: str) -> str:
        """Fetch a non-file URL."""

    @abstractmethod
    async def _probe_remote(self, url: str) -> bool:
        """Check a non-file URL for existence."""


class AiohttpTransport(Transport):
    """Asynchronous transport over a shared aiohttp session."""

    def __init__(self, timeout: Optional[int] = None, limit: int = 100):
        """Initialize the transport.

        Args:
            timeout: Request timeout in seconds (defaults to Constants.REQUEST_TIMEOUT).
            limit: Maximum number of simultaneous connections.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout or Constants.REQUEST_TIMEOUT)
        self._limit = limit
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> aiohttp.ClientSession:
        """Start the HTTP session if needed and return it."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=self._limit)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers={"User-Agent": Constants.USER_AGENT},
            )
        return self._session

    async def close(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _fetch_remote(self, url: str) -> str:
        session = await self.start()
        safe_target = safe_url(url)
        with Timer() as t:
            try:
                async with session.get(url) as response:
                    if is_debug_enabled(logger):
                        logger.debug(
                            "HTTP response",
                            extra=extra_context(
                                event="http_response",
                                component="transport",
                                action="GET",
                                status_code=response.status,
                                duration_ms=t.duration_ms(),
                                target=safe_target,
                            ),
                        )
                    if response.status in http_client.MISSING_STATUSES:
                        raise ResourceNotFoundError(url, "not found", status=response.status)
                    if response.status != 200:
                        raise TransportError(
                            url, f"unexpected status {response.status}", status=response.status
                        )
                    return await response.text()
            except asyncio.TimeoutError as exc:
                raise TransportError(url, "timed out") from exc
            except aiohttp.ClientError as exc:
                raise TransportError(url, str(exc)) from exc

    async def _probe_remote(self, url: str) -> bool:
        session = await self.start()
        try:
            async with session.head(url, allow_redirects=True) as response:
                return http_client.probe_status(url, response.status)
        except asyncio.TimeoutError as exc:
            raise TransportError(url, "timed out") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(url, str(exc)) from exc


class RequestsTransport(Transport):
    """Blocking requests-based transport run in worker threads.

    Useful where an aiohttp event-loop session is unwanted (e.g. one-shot
    CLI runs); retries come from :mod:`common.http_client`.
    """

    def __init__(self) -> None:
        self._session = requests.Session()

    async def _fetch_remote(self, url: str) -> str:
        return await asyncio.to_thread(http_client.get_text, url, session=self._session)

    async def _probe_remote(self, url: str) -> bool:
        return await asyncio.to_thread(http_client.head_ok, url, session=self._session)

    async def close(self) -> None:
        self._session.close()


def create_transport(kind: str = "aiohttp") -> Transport:
    """Build a transport by name ("aiohttp" or "requests")."""
    if kind == "aiohttp":
        return AiohttpTransport()
    if kind == "requests":
        return RequestsTransport()
    raise ValueError(f"unknown transport: {kind}")
