"""Warm-cache crawler: walks a release tree and pre-populates the cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

import semantic_version

from ..common.logging_utils import Timer, extra_context

if TYPE_CHECKING:
    from ..repository.github import GitHubClient

logger = logging.getLogger(__name__)

ContentConsumer = Callable[[str, semantic_version.Version], Awaitable[object]]


@dataclass
class CrawlReport:
    """Outcome of one crawl."""

    version: str
    visited: int = 0
    failed: int = 0
    skipped: int = 0


class WarmCacheCrawler:
    """Enumerates every blob of a release tree and hands it to a consumer."""

    def __init__(self, github: "GitHubClient"):
        self._github = github

    async def crawl(self, version: semantic_version.Version, on_each: ContentConsumer) -> CrawlReport:
        """Visit every artifact of ``docs/v<version>``.

        Args:
            version: Release to crawl.
            on_each: Awaited with (``/<path>``, version) for every blob.

        Returns:
            Counts of visited, failed and skipped entries.

        Raises:
            UpstreamUnavailable: If the tree listing cannot be read. Failures
                of individual artifacts are logged and counted instead.
        """
        report = CrawlReport(version=str(version))
        logger.info("Crawling of %s...", version)

        with Timer() as t:
            async for entry in self._github.iter_tree(f"v{version}"):
                path = entry.get("path")
                if entry.get("type") != "blob" or not path:
                    report.skipped += 1
                    continue

                report.visited += 1
                try:
                    await on_each(f"/{path}", version)
                except Exception as exc:  # pylint: disable=broad-except
                    report.failed += 1
                    logger.warning("Warming /%s of %s failed: %s", path, version, exc)

        logger.info(
            "Crawling of %s... DONE! (%d visited, %d failed)",
            version,
            report.visited,
            report.failed,
            extra=extra_context(
                event="crawl_done",
                component="crawler",
                duration_ms=t.duration_ms(),
                skipped=report.skipped,
            ),
        )
        return report
