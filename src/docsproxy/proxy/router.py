"""Dispatch of parsed docs routes to the content layer."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Union

from ..errors import MethodNotAllowed, UnknownVersion
from ..versioning.models import ResolvedTarget
from ..versioning.resolver import VersionResolver
from .cache import CachedArtifact
from .contents import ContentCache, Redirect, ServeResult
from .request_parser import RequestParser, RouteKind
from .versions import VersionsListing

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD")


class RouteHandlers(Protocol):
    """What the router needs from the content layer."""

    async def resolve_default(self, path: str, target: ResolvedTarget, *, method: str = "GET") -> ServeResult:
        ...

    async def resolve_not_found(self, message: Optional[str] = None, *, method: str = "GET") -> CachedArtifact:
        ...

    async def list_versions(self) -> CachedArtifact:
        ...


class ContentHandlers:
    """RouteHandlers backed by ContentCache and VersionsListing."""

    def __init__(self, contents: ContentCache, listing: VersionsListing):
        self._contents = contents
        self._listing = listing

    async def resolve_default(self, path: str, target: ResolvedTarget, *, method: str = "GET") -> ServeResult:
        return await self._contents.serve(target, path, method=method)

    async def resolve_not_found(self, message: Optional[str] = None, *, method: str = "GET") -> CachedArtifact:
        return await self._contents.serve_error(404, "Not Found", message, method=method)

    async def list_versions(self) -> CachedArtifact:
        return await self._listing.serve()


class DocsRouter:
    """Classifies a request path and hands it to the configured handlers."""

    def __init__(
        self,
        resolver: VersionResolver,
        handlers: RouteHandlers,
        parser: Optional[RequestParser] = None,
    ):
        self._resolver = resolver
        self._handlers = handlers
        self._parser = parser or RequestParser()

    async def dispatch(self, method: str, path: str) -> Union[CachedArtifact, Redirect]:
        """Serve one request.

        Args:
            method: HTTP method.
            path: Request path.

        Returns:
            The artifact to send or a redirect.

        Raises:
            MethodNotAllowed: For anything but GET and HEAD, before any I/O.
        """
        method = method.upper()
        if method not in ALLOWED_METHODS:
            raise MethodNotAllowed(method)

        route = self._parser.parse(path)
        if route.is_redirect:
            logger.debug("Redirecting %s to %s", route.raw_path, route.redirect_to)
            return Redirect(route.redirect_to, 301)

        if route.kind is RouteKind.VERSIONS:
            listing = await self._handlers.list_versions()
            return listing.without_body() if method == "HEAD" else listing

        try:
            if route.kind is RouteKind.PR:
                target = await self._resolver.resolve(pr=route.pr)
            elif route.kind is RouteKind.VERSIONED:
                target = await self._resolver.resolve(version=route.version)
            else:
                target = await self._resolver.resolve()
        except UnknownVersion as exc:
            return await self._handlers.resolve_not_found(exc.message, method=method)

        return await self._handlers.resolve_default(route.path, target, method=method)
