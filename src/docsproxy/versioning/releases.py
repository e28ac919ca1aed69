"""Release registry: which documentation versions exist and which is latest.

The snapshot lives in a shared key/value store with an expiry. Readers never
fail on a single miss: they rebuild the snapshot from the GitHub tag list and
read again, up to a fixed number of attempts.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, List, Optional, Union

import semantic_version

from ..common.logging_utils import Timer, extra_context
from ..constants import Constants
from ..errors import NoReleaseAvailable, RegistryExhausted
from .models import ReleaseSnapshot
from .parser import is_prerelease, parse_tag_ref, parse_version

if TYPE_CHECKING:
    from ..proxy.cache import KeyValueStore
    from ..repository.github import GitHubClient

logger = logging.getLogger(__name__)


class ReleaseRegistry:
    """Tracks the docs releases published as ``docs/v<version>`` tags."""

    def __init__(
        self,
        github: "GitHubClient",
        store: "KeyValueStore",
        ttl: int = Constants.REGISTRY_TTL,
        max_tries: int = Constants.MAX_RETRIEVE_TRIES,
    ):
        self._github = github
        self._store = store
        self._ttl = ttl
        self._max_tries = max_tries

    async def update(self) -> semantic_version.Version:
        """Re-read all docs tags from GitHub and persist a fresh snapshot.

        Returns:
            The latest release version.

        Raises:
            NoReleaseAvailable: If no tag parses to a non-prerelease version.
            UpstreamUnavailable: If the tag listing cannot be read.
        """
        latest: Optional[semantic_version.Version] = None
        seen = {}
        skipped = 0

        with Timer() as t:
            async for ref in self._github.iter_docs_refs():
                current = parse_tag_ref(ref, Constants.DOCS_REF_PREFIX)
                if current is None:
                    skipped += 1
                    continue

                if not is_prerelease(current) and (latest is None or current > latest):
                    latest = current

                seen.setdefault(str(current), current)

        if latest is None:
            raise NoReleaseAvailable("There is no release version available.")

        all_sorted = sorted(seen.values(), reverse=True)

        await self._store.put(Constants.KV_RELEASE_LATEST, str(latest), ttl=self._ttl)
        await self._store.put(
            Constants.KV_RELEASES_SORTED,
            json.dumps([str(v) for v in all_sorted]),
            ttl=self._ttl,
        )

        logger.info(
            "Release registry updated: latest=%s, %d versions (%d tags skipped)",
            latest,
            len(all_sorted),
            skipped,
            extra=extra_context(
                event="registry_update",
                component="releases",
                duration_ms=t.duration_ms(),
            ),
        )
        return latest

    async def latest(self) -> semantic_version.Version:
        """Current latest release, rebuilding the snapshot when it is absent.

        Raises:
            RegistryExhausted: If the snapshot stays absent after all attempts.
        """
        plain = await self._read_with_backfill(Constants.KV_RELEASE_LATEST)
        return self._to_version(plain)

    async def all(self) -> List[semantic_version.Version]:
        """All known versions, sorted descending."""
        return [self._to_version(v) for v in await self._all_plain()]

    async def has(self, version: Union[str, semantic_version.Version]) -> bool:
        """True iff the version's string form is a known release."""
        return str(version) in await self._all_plain()

    async def snapshot(self) -> ReleaseSnapshot:
        """Latest pointer and full list as one value."""
        return ReleaseSnapshot(latest=await self.latest(), all=await self.all())

    async def _all_plain(self) -> List[str]:
        plain = await self._read_with_backfill(Constants.KV_RELEASES_SORTED)
        try:
            values = json.loads(plain)
        except json.JSONDecodeError as exc:
            raise RegistryExhausted(f"Stored release list is not valid JSON: {exc}") from exc
        return [str(v) for v in values]

    async def _read_with_backfill(self, key: str) -> str:
        """Read ``key``, running ``update()`` after every miss, a bounded number of times."""
        for attempt in range(self._max_tries):
            plain = await self._store.get(key, cache_ttl=self._ttl)
            if plain:
                return plain
            logger.debug("Registry key %s absent (attempt %d), updating", key, attempt + 1)
            await self.update()
        raise RegistryExhausted(
            f"Was not able to retrieve {key} after {self._max_tries} tries."
        )

    @staticmethod
    def _to_version(plain: str) -> semantic_version.Version:
        result = parse_version(plain)
        if result is None:
            raise RegistryExhausted(f'"{plain}" is not a valid version.')
        return result
