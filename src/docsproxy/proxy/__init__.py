"""docsproxy HTTP layer.

Resolves request paths to documentation releases, serves artifacts from
the upstream raw content store through a TTL cache, and keeps that cache
warm ahead of traffic.
"""

from .cache import ArtifactCache, CachedArtifact, KeyValueStore
from .contents import ContentCache, Redirect
from .crawler import CrawlReport, WarmCacheCrawler
from .request_parser import RequestParser, RouteKind, RouteMatch
from .router import ContentHandlers, DocsRouter, RouteHandlers
from .server import DocsProxyServer, ProxyConfig
from .upstream import UpstreamClient, UpstreamResponse

__all__ = [
    "ArtifactCache",
    "CachedArtifact",
    "KeyValueStore",
    "ContentCache",
    "Redirect",
    "CrawlReport",
    "WarmCacheCrawler",
    "RequestParser",
    "RouteKind",
    "RouteMatch",
    "ContentHandlers",
    "DocsRouter",
    "RouteHandlers",
    "DocsProxyServer",
    "ProxyConfig",
    "UpstreamClient",
    "UpstreamResponse",
]
