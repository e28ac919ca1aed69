"""Documentation proxy server using aiohttp."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import quote

from aiohttp import web
from yarl import URL

from ..constants import Constants
from ..errors import DocsProxyError, MethodNotAllowed
from ..repository.github import GitHubClient
from ..versioning.models import ResolvedTarget
from ..versioning.releases import ReleaseRegistry
from ..versioning.resolver import VersionResolver
from .cache import ArtifactCache, CachedArtifact, KeyValueStore
from .contents import ContentCache, Redirect, error_response
from .crawler import CrawlReport, WarmCacheCrawler
from .router import ContentHandlers, DocsRouter
from .upstream import UpstreamClient
from .versions import VersionsListing

logger = logging.getLogger(__name__)


@dataclass
class ProxyConfig:
    """Configuration for the docs proxy server."""

    host: str = "127.0.0.1"
    port: int = 8080
    github_organization: str = ""
    github_repository: str = ""
    github_user: str = ""
    github_token: str = ""
    api_base: str = Constants.GITHUB_API_BASE
    raw_base: str = Constants.GITHUB_RAW_BASE
    timeout: int = Constants.REQUEST_TIMEOUT
    registry_ttl: int = Constants.REGISTRY_TTL
    warm_interval: int = 0
    cache_max_bytes: int = 256 * 1024 * 1024

    @classmethod
    def from_args(
        cls,
        args: Any,
        file_config: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ProxyConfig":
        """Create config from CLI arguments.

        Precedence per field: CLI argument, then config file, then
        environment (for the GitHub settings), then the default.

        Args:
            args: Parsed CLI arguments namespace.
            file_config: Mapping loaded from the --config file.
            environ: Environment mapping, defaults to os.environ.

        Returns:
            ProxyConfig instance.
        """
        file_config = file_config or {}
        environ = os.environ if environ is None else environ
        defaults = cls()

        def pick(attr: str, key: str, env: Optional[str] = None) -> Any:
            value = getattr(args, attr, None)
            if value is not None:
                return value
            if file_config.get(key) is not None:
                return file_config[key]
            if env and environ.get(env):
                return environ[env]
            return getattr(defaults, key)

        return cls(
            host=str(pick("PROXY_HOST", "host")),
            port=int(pick("PROXY_PORT", "port")),
            github_organization=str(
                pick("GITHUB_ORGANIZATION", "github_organization", Constants.ENV_GITHUB_ORGANIZATION)
            ),
            github_repository=str(
                pick("GITHUB_REPOSITORY", "github_repository", Constants.ENV_GITHUB_REPOSITORY)
            ),
            github_user=str(pick("GITHUB_USER", "github_user", Constants.ENV_GITHUB_USER)),
            github_token=str(pick("GITHUB_TOKEN", "github_token", Constants.ENV_GITHUB_TOKEN)),
            api_base=str(pick("API_BASE", "api_base")),
            raw_base=str(pick("RAW_BASE", "raw_base")),
            timeout=int(pick("PROXY_TIMEOUT", "timeout")),
            registry_ttl=int(pick("REGISTRY_TTL", "registry_ttl")),
            warm_interval=int(pick("WARM_INTERVAL", "warm_interval")),
            cache_max_bytes=int(pick("CACHE_MAX_BYTES", "cache_max_bytes")),
        )

    def missing(self) -> List[str]:
        """Names of required settings that are empty."""
        required = ("github_organization", "github_repository")
        return [name for name in required if not getattr(self, name)]


class DocsProxyServer:
    """HTTP server for a versioned documentation site.

    Explicitly constructs the registry, resolver, content cache and crawler
    once per process and hands them to each other; nothing is global.
    """

    def __init__(
        self,
        config: ProxyConfig,
        *,
        upstream: Optional[UpstreamClient] = None,
        artifact_cache: Optional[ArtifactCache] = None,
        kv_store: Optional[KeyValueStore] = None,
    ):
        """Initialize the proxy server.

        Args:
            config: Server configuration.
            upstream: Shared upstream client, created from config if omitted.
            artifact_cache: Artifact cache, in-process if omitted.
            kv_store: Registry snapshot store, in-process if omitted.
        """
        self._config = config
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._warm_task: Optional[asyncio.Task] = None

        self._upstream = upstream or UpstreamClient(timeout=config.timeout)
        self._artifact_cache = artifact_cache or ArtifactCache(max_bytes=config.cache_max_bytes)
        self._kv_store = kv_store or KeyValueStore(default_ttl=config.registry_ttl)

        self._github = GitHubClient(
            self._upstream,
            config.github_organization,
            config.github_repository,
            user=config.github_user,
            token=config.github_token,
            api_base=config.api_base,
            raw_base=config.raw_base,
        )
        self._releases = ReleaseRegistry(self._github, self._kv_store, ttl=config.registry_ttl)
        self._resolver = VersionResolver(self._releases)
        self._contents = ContentCache(self._github, self._upstream, self._artifact_cache, self._releases)
        self._listing = VersionsListing(self._releases)
        self._crawler = WarmCacheCrawler(self._github)
        self._router = DocsRouter(self._resolver, ContentHandlers(self._contents, self._listing))

    @property
    def releases(self) -> ReleaseRegistry:
        return self._releases

    @property
    def contents(self) -> ContentCache:
        return self._contents

    @property
    def upstream(self) -> UpstreamClient:
        return self._upstream

    def _create_app(self) -> web.Application:
        """Create the aiohttp application."""
        app = web.Application()
        app.router.add_get(Constants.HEALTH_PATH, self._health_check)
        app.router.add_route("*", "/{path:.*}", self._handle_request)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    async def _health_check(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response({
            "status": "ok",
            "repository": f"{self._config.github_organization}/{self._config.github_repository}",
            "cache": self.cache_stats(),
        })

    async def _on_startup(self, app: web.Application) -> None:
        """Called when the server starts."""
        await self._upstream.start()
        if self._config.warm_interval > 0:
            self._warm_task = asyncio.ensure_future(self._warm_loop(self._config.warm_interval))
        logger.info("Docs proxy starting on %s:%s", self._config.host, self._config.port)

    async def _on_cleanup(self, app: web.Application) -> None:
        """Called when the server stops."""
        if self._warm_task is not None:
            self._warm_task.cancel()
            try:
                await self._warm_task
            except asyncio.CancelledError:
                pass
            self._warm_task = None
        await self._contents.flush()
        await self._upstream.stop()
        logger.info("Docs proxy stopped")

    async def _handle_request(self, request: web.Request) -> web.StreamResponse:
        """Handle an incoming docs request.

        Args:
            request: Incoming HTTP request.

        Returns:
            HTTP response.
        """
        method = request.method
        try:
            result = await self._router.dispatch(method, request.path)
        except MethodNotAllowed as exc:
            logger.info("Rejected %s %s", method, request.path)
            result = error_response(exc.status, exc.reason, exc.message)
        except DocsProxyError as exc:
            logger.error("Serving %s failed: %s", request.path, exc)
            result = await self._contents.serve_error(exc.status, exc.reason, exc.message, method=method)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Internal error serving %s", request.path)
            result = error_response(500, "Internal Server Error", "Internal proxy error")

        return self._to_response(request, result)

    def _to_response(self, request: web.Request, result: Union[CachedArtifact, Redirect]) -> web.Response:
        """Convert a content-layer result into an aiohttp response."""
        if isinstance(result, Redirect):
            path = quote(result.location, safe=Constants.URL_PATH_SAFE)
            location = URL.build(path=path, encoded=True).with_query(request.query)
            return web.Response(status=result.status, headers={"Location": str(location)})

        headers: Dict[str, str] = dict(result.headers)
        etag = result.etag
        if etag and result.status == 200 and request.headers.get("If-None-Match") == etag:
            return web.Response(status=304, headers=headers)

        body = b"" if request.method == "HEAD" else result.body
        return web.Response(status=result.status, reason=result.reason, headers=headers, body=body)

    async def warm(self) -> CrawlReport:
        """Refresh the registry and force-refresh every artifact of the latest release."""
        latest = await self._releases.update()
        return await self._crawler.crawl(latest, self._warm_one)

    async def _warm_one(self, path: str, version: Any) -> None:
        target = ResolvedTarget.for_version(version, is_latest=True, explicit=False)
        result = await self._contents.serve(target, path, redirects=False, force=True)
        if isinstance(result, CachedArtifact) and result.status >= 400:
            raise DocsProxyError(f"{path} answered {result.status}", status=result.status)

    async def _warm_loop(self, interval: int) -> None:
        """Run warm() every ``interval`` seconds until cancelled."""
        while True:
            try:
                report = await self.warm()
                logger.info(
                    "Cache warm-up of %s finished: %d artifacts, %d failed",
                    report.version, report.visited, report.failed,
                )
            except DocsProxyError as exc:
                logger.error("Cache warm-up failed: %s", exc)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Cache warm-up failed")
            await asyncio.sleep(interval)

    def cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dict with artifact cache and registry store stats.
        """
        return {
            "artifact_cache": self._artifact_cache.stats(),
            "registry_store": self._kv_store.stats(),
        }

    async def start(self) -> None:
        """Start the proxy server."""
        self._app = self._create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(
            self._runner,
            self._config.host,
            self._config.port,
        )
        await site.start()

        logger.info(
            "Docs proxy listening on http://%s:%s",
            self._config.host, self._config.port,
        )
        for line in self._github.describe():
            logger.info(line)
        if self._config.warm_interval > 0:
            logger.info("Cache warm-up every %s seconds", self._config.warm_interval)

    async def stop(self) -> None:
        """Stop the proxy server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._app = None


def run_proxy_server_sync(config: ProxyConfig) -> None:
    """Run the proxy server synchronously.

    Installs signal handlers for SIGTERM and SIGINT for clean shutdown.

    Args:
        config: Server configuration.
    """
    server = DocsProxyServer(config)
    loop = asyncio.new_event_loop()

    async def run():
        await server.start()
        stop_event = asyncio.Event()
        running_loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            running_loop.add_signal_handler(sig, stop_event.set)
        await stop_event.wait()
        logger.info("Shutdown signal received, stopping...")
        await server.stop()

    try:
        loop.run_until_complete(run())
    except KeyboardInterrupt:
        # Fallback for platforms where signal handlers don't work (Windows)
        loop.run_until_complete(server.stop())
    finally:
        loop.close()
        logger.info("Docs proxy shutdown complete")


async def run_warm_once(config: ProxyConfig) -> CrawlReport:
    """Run a single registry update and crawl, then release all resources."""
    server = DocsProxyServer(config)
    async with server.upstream:
        try:
            return await server.warm()
        finally:
            await server.contents.flush()
