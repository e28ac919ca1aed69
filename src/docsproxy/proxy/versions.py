"""JSON listing of the known documentation versions."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, List

from ..constants import CacheTTL
from .cache import CachedArtifact

if TYPE_CHECKING:
    from ..versioning.releases import ReleaseRegistry


class VersionsListing:
    """Builds the version selector payload straight from the registry snapshot."""

    def __init__(self, releases: "ReleaseRegistry"):
        self._releases = releases

    async def payload(self) -> List[Dict[str, Any]]:
        snapshot = await self._releases.snapshot()
        latest_name = str(snapshot.latest)

        entries = []
        for version in snapshot.all:
            name = str(version)
            if name == latest_name:
                entries.append({
                    "version": "..",
                    "title": f"Latest ({name})",
                    "aliases": ["latest"],
                    "latest": True,
                })
            else:
                entries.append({
                    "version": f"v{name}",
                    "title": name,
                    "aliases": [],
                })
        return entries

    async def serve(self) -> CachedArtifact:
        body = json.dumps(await self.payload()).encode("utf-8")
        return CachedArtifact(
            status=200,
            headers={
                "Cache-Control": f"public, max-age={CacheTTL.VERSIONS_LISTING}",
                "Content-Type": "application/json",
            },
            body=body,
        )
