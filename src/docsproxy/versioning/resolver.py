"""Resolve requested versions and PR previews to concrete docs trees."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Union

import semantic_version

from ..errors import UnknownVersion
from .models import ResolvedTarget
from .parser import parse_version

if TYPE_CHECKING:
    from .releases import ReleaseRegistry

logger = logging.getLogger(__name__)


class VersionResolver:
    """Maps a requested version, PR number or nothing to a ResolvedTarget."""

    def __init__(self, releases: "ReleaseRegistry"):
        self._releases = releases

    async def resolve(
        self,
        version: Union[str, semantic_version.Version, None] = None,
        pr: Optional[int] = None,
    ) -> ResolvedTarget:
        """Resolve a request.

        Args:
            version: Explicitly requested version, if any.
            pr: Requested pull-request preview number, if any. Takes
                precedence over ``version``.

        Returns:
            The resolved target.

        Raises:
            UnknownVersion: If an explicit version is not a known release.
        """
        if pr is not None:
            # PR previews are not tagged as releases; no existence check.
            return ResolvedTarget.for_pr(pr)

        latest = await self._releases.latest()
        if version is None:
            return ResolvedTarget.for_version(latest, is_latest=True, explicit=False)

        requested = version if isinstance(version, semantic_version.Version) else parse_version(version)
        if requested is None or not await self._releases.has(requested):
            logger.debug("Requested version %s is unknown", version)
            raise UnknownVersion(str(version))

        return ResolvedTarget.for_version(
            requested,
            is_latest=str(requested) == str(latest),
            explicit=True,
        )
