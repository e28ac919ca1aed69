"""Cache-aside serving of documentation artifacts.

Artifacts are fetched from the raw content store below the docs tag of the
resolved target, decorated with caching and hardening headers, and stored
in the artifact cache under their absolute upstream URL. Nothing is locked
per key: two concurrent cold misses for the same URL may both fetch, which
is harmless because upstream reads have no side effects.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import posixpath
import re
import urllib.parse
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional, Set, Union

from ..common.logging_utils import extra_context, is_debug_enabled, safe_url
from ..constants import DEFAULT_SECURITY_HEADERS, CacheTTL
from ..errors import DocsProxyError
from ..versioning.models import ResolvedTarget
from .cache import ArtifactCache, CachedArtifact
from .upstream import UpstreamClient, UpstreamResponse

if TYPE_CHECKING:
    from ..repository.github import GitHubClient
    from ..versioning.releases import ReleaseRegistry

logger = logging.getLogger(__name__)

# Content-addressed bundles, e.g. app.a1b2c3d4e5f6.min.js
UNIQUE_FILENAME = re.compile(r"^[a-zA-Z0-9]+\.[a-f0-9]{8,32}\.min\.(?:js|css)$")

INDEX_FILENAME = "index.html"

# Error pages are cached apart from the release artifact of the same URL.
ERROR_PAGE_KEY_SUFFIX = "#error"


@dataclass(frozen=True)
class Redirect:
    """Tells the caller to redirect instead of serving a body."""

    location: str
    status: int = 307


ServeResult = Union[CachedArtifact, Redirect]


def ttl_for(filename: str, target: ResolvedTarget) -> int:
    """Pick the TTL class of an artifact.

    Content-hashed bundles are immutable regardless of the release they
    belong to; everything else depends on the release's volatility.
    """
    if UNIQUE_FILENAME.match(filename):
        return CacheTTL.UNIQUE
    if target.is_prerelease:
        return CacheTTL.PRERELEASE
    return CacheTTL.RELEASE


def content_type_for(filename: str) -> Optional[str]:
    """Content-Type derived from the file extension; text types get a charset."""
    mime_type, _ = mimetypes.guess_type(filename, strict=False)
    if not mime_type:
        return None
    if mime_type.startswith("text/"):
        return f"{mime_type}; charset=utf-8"
    return mime_type


def error_response(
    status: int,
    reason: Optional[str],
    details: str,
    headers: Optional[Dict[str, str]] = None,
) -> CachedArtifact:
    """Minimal bodyless error response with the details in a header."""
    target_headers = dict(headers or {})
    target_headers["X-Error-Details"] = details
    return CachedArtifact(status=status, headers=target_headers, body=b"", reason=reason)


def suffix_url(url: str, suffix: str) -> str:
    """Append ``suffix`` as a new path element of ``url``."""
    parts = urllib.parse.urlsplit(url)
    path = parts.path if parts.path.endswith("/") else f"{parts.path}/"
    return urllib.parse.urlunsplit(parts._replace(path=path + suffix))


class ContentCache:
    """Serves artifacts of a resolved docs tree through the artifact cache."""

    def __init__(
        self,
        github: "GitHubClient",
        upstream: UpstreamClient,
        cache: ArtifactCache,
        releases: "ReleaseRegistry",
    ):
        self._github = github
        self._upstream = upstream
        self._cache = cache
        self._releases = releases
        self._pending: Set["asyncio.Future[bool]"] = set()

    async def serve(
        self,
        target: ResolvedTarget,
        path: str,
        *,
        method: str = "GET",
        redirects: bool = True,
        force: bool = False,
    ) -> ServeResult:
        """Serve ``path`` of the resolved docs tree.

        Args:
            target: Resolved version or PR.
            path: Artifact path below the tree root, e.g. ``/guide.html``.
            method: Inbound method; HEAD responses never carry a body.
            redirects: Whether the caller is an end-user request that may be
                redirected to a canonical path. Crawls pass False.
            force: Skip the cache read and always refetch and store.

        Returns:
            The artifact to send, or a Redirect.

        Raises:
            UpstreamUnavailable: If the raw content store cannot be reached.
        """
        if redirects and target.explicit and target.is_latest:
            return Redirect(path or "/", 307)

        url = self._github.raw_url(target.segment, path)
        filename = posixpath.basename(urllib.parse.urlsplit(url).path)

        if not force:
            cached = await self._cache.match(url)
            if cached is not None:
                if is_debug_enabled(logger):
                    logger.debug(
                        "Cache hit",
                        extra=extra_context(event="cache_hit", component="contents", target=safe_url(url)),
                    )
                return self._present(cached, method)
            logger.debug("Cache missed, need to retrieve %s...", safe_url(url))
        else:
            logger.debug("Retrieving %s...", safe_url(url))

        fetched = await self._fetch(url)

        if fetched.status in (400, 404):
            alternative_url = suffix_url(url, INDEX_FILENAME)
            alternative = await self._fetch(alternative_url)
            if alternative.ok:
                if redirects and not path.endswith("/"):
                    return Redirect(self._directory_location(target, path), 307)
                filename = INDEX_FILENAME
                fetched = alternative

        status = fetched.status
        if status >= 400:
            if status == 400:
                status = 404
            if not redirects or force:
                logger.warning("Retrieving %s failed (status: %s)", safe_url(url), status)
                return error_response(status, None, f"Upstream answered {fetched.status}.")
            return await self.serve_error(status, method=method)

        artifact = self._build_artifact(fetched, target, filename)
        await self._write_back(url, artifact, ttl_for(filename, target), wait=force)

        logger.info(
            "%s%s retrieved. (status: %s)",
            "" if force else "Cache missed; ",
            safe_url(url),
            fetched.status,
        )
        return self._present(artifact, method)

    async def serve_error(
        self,
        status: int,
        reason: Optional[str] = None,
        message: Optional[str] = None,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
    ) -> CachedArtifact:
        """Serve the ``/<status>.html`` page of the latest release with ``status``.

        Falls back to a bodyless response carrying ``X-Error-Details`` when the
        page itself cannot be resolved.
        """
        fallback_details = f"Cannot resolve default {status} error page, using default handler."
        try:
            latest = await self._releases.latest()
            url = self._github.raw_url(f"v{latest}", f"/{status}.html")

            key = f"{url}{ERROR_PAGE_KEY_SUFFIX}"
            page = await self._cache.match(key)
            if page is None:
                fetched = await self._fetch(url)
                if not fetched.ok:
                    logger.warning(
                        "Error page %s unavailable (status: %s)", safe_url(url), fetched.status
                    )
                    return self._present(
                        error_response(status, reason, message or fallback_details, headers), method
                    )
                page = self._build_error_page(fetched)
                await self._write_back(key, page, CacheTTL.ERROR_PAGE, wait=False)
        except DocsProxyError as exc:
            logger.warning("Cannot serve %s error page: %s", status, exc)
            return self._present(error_response(status, reason, message or fallback_details, headers), method)

        extra = dict(headers or {})
        if message:
            extra["X-Error-Details"] = message
        return self._present(page.with_status(status, reason, extra), method)

    async def flush(self) -> None:
        """Wait for all pending cache write-backs."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _fetch(self, url: str) -> UpstreamResponse:
        return await self._upstream.fetch(url, {"Authorization": self._github.raw_authorization()})

    async def _write_back(self, key: str, artifact: CachedArtifact, ttl: int, *, wait: bool) -> None:
        """Store an artifact; only ``wait`` makes the caller await the write."""
        if wait:
            await self._cache.put(key, artifact, ttl)
            return
        task = asyncio.ensure_future(self._cache.put(key, artifact, ttl))
        self._pending.add(task)
        task.add_done_callback(self._on_write_done)

    def _on_write_done(self, task: "asyncio.Future[bool]") -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Cache write-back failed: %s", exc)

    def _build_artifact(
        self, fetched: UpstreamResponse, target: ResolvedTarget, filename: str
    ) -> CachedArtifact:
        headers = self._upstream.filter_response_headers(fetched.headers)
        if target.is_pr:
            headers["X-PR"] = target.label
        else:
            headers["X-Version"] = target.label
        headers["Cache-Control"] = f"public, max-age={ttl_for(filename, target)}"
        content_type = content_type_for(filename)
        if content_type:
            headers["Content-Type"] = content_type
        headers.update(DEFAULT_SECURITY_HEADERS)
        return CachedArtifact(status=200, headers=headers, body=fetched.body)

    @staticmethod
    def _build_error_page(fetched: UpstreamResponse) -> CachedArtifact:
        headers = {
            "Cache-Control": f"public, max-age={CacheTTL.ERROR_PAGE}",
            "Content-Type": "text/html; charset=utf-8",
        }
        headers.update(DEFAULT_SECURITY_HEADERS)
        return CachedArtifact(status=200, headers=headers, body=fetched.body)

    @staticmethod
    def _directory_location(target: ResolvedTarget, path: str) -> str:
        """Trailing-slash location for a directory request."""
        if target.explicit:
            return f"/{target.segment}{path}/"
        return f"{path}/" if path else "/"

    @staticmethod
    def _present(artifact: CachedArtifact, method: str) -> CachedArtifact:
        # The cache keeps the body for GET; HEAD must never emit it.
        if method.upper() == "HEAD":
            return artifact.without_body()
        return artifact
