"""Upstream client for the GitHub API and raw content store."""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.parse
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ..common.logging_utils import Timer, extra_context, is_debug_enabled, safe_url
from ..constants import Constants
from ..errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass
class UpstreamResponse:
    """Fully buffered upstream response."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""
    links: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status < 400

    def header(self, name: str) -> Optional[str]:
        lower = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lower:
                return value
        return None


def _parse_links(response: aiohttp.ClientResponse) -> Dict[str, str]:
    """Map each rel of the response Link header to its URL."""
    links: Dict[str, str] = {}
    for rel, link in response.links.items():
        target = link.get("url")
        if target is not None:
            links[str(rel)] = str(target)
    return links


class UpstreamClient:
    """Client for fetching from upstream GitHub endpoints."""

    DEFAULT_REDIRECT_ALLOWLIST = {
        "api.github.com",
        "raw.githubusercontent.com",
        "objects.githubusercontent.com",
    }

    def __init__(self, timeout: int = Constants.REQUEST_TIMEOUT):
        """Initialize the upstream client.

        Args:
            timeout: Request timeout in seconds.
        """
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._redirect_allowlist = set(self.DEFAULT_REDIRECT_ALLOWLIST)

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=100)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    @asynccontextmanager
    async def open_response(self, url: str, headers: Dict[str, str]):
        """Open an upstream GET response as an async context manager."""
        if self._session is None:
            await self.start()
        assert self._session is not None
        response = await self._request_with_redirects(url, headers)
        try:
            yield response
        finally:
            response.release()

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> UpstreamResponse:
        """GET a URL and buffer the whole response.

        Args:
            url: Absolute upstream URL.
            headers: Extra request headers (authorization etc).

        Returns:
            Buffered upstream response, whatever its status.

        Raises:
            UpstreamUnavailable: On connection errors, timeouts or blocked redirects.
        """
        request_headers = self._build_request_headers(headers)
        safe_target = safe_url(url)
        with Timer() as t:
            try:
                async with self.open_response(url, request_headers) as response:
                    body = await response.read()
                    result = UpstreamResponse(
                        status=response.status,
                        headers={k: str(v) for k, v in response.headers.items()},
                        body=body,
                        url=url,
                        links=_parse_links(response),
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                logger.error("Upstream request to %s failed: %s", safe_target, exc)
                raise UpstreamUnavailable(f"Upstream request failed: {exc}") from exc

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="upstream",
                    action="GET",
                    status_code=result.status,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                ),
            )
        return result

    async def get_json(
        self, url: str, headers: Optional[Dict[str, str]] = None
    ) -> Tuple[int, Dict[str, str], Optional[Any]]:
        """GET a URL and parse a JSON body.

        Returns:
            Tuple of (status_code, links_by_rel, parsed_json_or_none)
        """
        request_headers = {"Accept": "application/vnd.github+json"}
        if headers:
            request_headers.update(headers)
        response = await self.fetch(url, request_headers)
        if response.status == 200 and response.body:
            try:
                return response.status, response.links, json.loads(response.body)
            except (json.JSONDecodeError, UnicodeDecodeError):
                logger.warning("Invalid JSON received from %s", safe_url(url))
                return response.status, response.links, None
        return response.status, response.links, None

    def _is_allowed_redirect(self, source_url: str, target_url: str) -> bool:
        """Validate redirect targets to prevent SSRF."""
        target = urllib.parse.urlparse(target_url)
        if target.scheme not in ("http", "https"):
            return False
        if not target.hostname:
            return False

        allowed_hosts = set(self._redirect_allowlist)
        source_host = urllib.parse.urlparse(source_url).hostname
        if source_host:
            allowed_hosts.add(source_host.lower())

        target_host = target.hostname.lower()
        for host in allowed_hosts:
            if target_host == host or target_host.endswith(f".{host}"):
                return True
        return False

    async def _request_with_redirects(
        self,
        url: str,
        headers: Dict[str, str],
        max_redirects: int = 5,
    ) -> aiohttp.ClientResponse:
        """Request URL while enforcing a redirect allowlist."""
        assert self._session is not None
        current_url = url

        for _ in range(max_redirects + 1):
            response = await self._session.request(
                "GET",
                current_url,
                headers=headers,
                allow_redirects=False,
            )

            if response.status not in (301, 302, 303, 307, 308):
                return response

            location = response.headers.get("Location")
            if not location:
                return response

            next_url = urllib.parse.urljoin(current_url, location)
            if not self._is_allowed_redirect(current_url, next_url):
                response.release()
                raise aiohttp.ClientError("Redirect blocked by allowlist")

            response.release()
            current_url = next_url

        raise aiohttp.ClientError("Too many redirects")

    def _build_request_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        """Build request headers to send upstream."""
        request_headers: Dict[str, str] = {}
        if headers:
            for key, value in headers.items():
                if key.lower() in ("host", "connection"):
                    continue
                request_headers[key] = value

        request_headers.setdefault("User-Agent", Constants.USER_AGENT)
        request_headers.setdefault("Accept", "*/*")
        return request_headers

    def filter_response_headers(self, headers: Dict[str, Any]) -> Dict[str, str]:
        """Filter upstream response headers down to the ones worth keeping.

        Args:
            headers: Raw response headers.

        Returns:
            Filtered headers dict with canonical casing.
        """
        forward_headers = {
            "etag": "ETag",
            "last-modified": "Last-Modified",
        }

        filtered = {}
        for key, value in headers.items():
            canonical = forward_headers.get(key.lower())
            if canonical is not None:
                filtered[canonical] = str(value)

        return filtered

    async def __aenter__(self) -> "UpstreamClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
