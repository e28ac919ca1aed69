"""GitHub API client for docs tags and release trees.

Provides an async REST client for listing the ``docs/*`` tags of the
documentation repository, walking the file tree of one tag, and addressing
raw artifacts below a tag.
"""
from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional
from urllib.parse import quote

from ..constants import Constants
from ..errors import UpstreamUnavailable

if TYPE_CHECKING:
    from ..proxy.upstream import UpstreamClient

logger = logging.getLogger(__name__)


class GitHubClient:
    """Async REST client for the documentation repository on GitHub."""

    def __init__(
        self,
        upstream: UpstreamClient,
        organization: str,
        repository: str,
        *,
        user: Optional[str] = None,
        token: Optional[str] = None,
        api_base: Optional[str] = None,
        raw_base: Optional[str] = None,
    ):
        """Initialize GitHub client.

        Args:
            upstream: Shared upstream HTTP client.
            organization: Repository owner.
            repository: Repository name.
            user: User name for raw content Basic auth.
            token: Personal access token, used for both API and raw access.
            api_base: Base URL for the REST API (defaults to Constants.GITHUB_API_BASE)
            raw_base: Base URL for raw content (defaults to Constants.GITHUB_RAW_BASE)
        """
        self.upstream = upstream
        self.organization = organization
        self.repository = repository
        self.user = user or ""
        self.token = token or ""
        self.api_base = (api_base or Constants.GITHUB_API_BASE).rstrip("/")
        self.raw_base = (raw_base or Constants.GITHUB_RAW_BASE).rstrip("/")

    def _get_headers(self) -> Dict[str, str]:
        """Get API request headers including authorization if a token is available."""
        headers = {"X-GitHub-Api-Version": "2022-11-28"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def raw_authorization(self) -> str:
        """Basic authorization header value for the raw content store."""
        credentials = f"{self.user}:{self.token}".encode("utf-8")
        return "Basic " + base64.b64encode(credentials).decode("ascii")

    def raw_url(self, segment: str, path: str) -> str:
        """Absolute raw content URL of ``path`` below ``refs/tags/docs/<segment>``.

        Args:
            segment: Tag segment such as ``v1.2.3`` or ``pr-42``.
            path: Artifact path, with or without a leading slash.
        """
        if path and not path.startswith("/"):
            path = f"/{path}"
        return (
            f"{self.raw_base}/{self.organization}/{self.repository}/"
            f"{Constants.DOCS_REF_PREFIX}{segment}{quote(path, safe=Constants.URL_PATH_SAFE)}"
        )

    async def iter_docs_refs(self) -> AsyncIterator[str]:
        """Yield every ref name under ``refs/tags/docs/``, page by page."""
        url = (
            f"{self.api_base}/repos/{self.organization}/{self.repository}"
            f"/git/matching-refs/tags/{Constants.DOCS_TAG_PREFIX.rstrip('/')}"
            f"?per_page={Constants.REPO_API_PER_PAGE}"
        )
        async for page in self._get_paginated(url):
            for item in page or []:
                if isinstance(item, dict) and item.get("ref"):
                    yield item["ref"]

    async def iter_tree(self, segment: str) -> AsyncIterator[Dict[str, Any]]:
        """Yield the entries of the recursive tree of ``docs/<segment>``.

        Args:
            segment: Tag segment such as ``v1.2.3``.
        """
        url = (
            f"{self.api_base}/repos/{self.organization}/{self.repository}"
            f"/git/trees/{Constants.DOCS_TAG_PREFIX}{segment}"
            f"?recursive=1&per_page={Constants.REPO_API_PER_PAGE}"
        )
        async for page in self._get_paginated(url):
            if not isinstance(page, dict):
                continue
            if page.get("truncated"):
                logger.warning(
                    "Tree listing of %s is truncated by GitHub; some artifacts will not be visited.",
                    segment,
                )
            for entry in page.get("tree") or []:
                if isinstance(entry, dict):
                    yield entry

    async def _get_paginated(self, url: str) -> AsyncIterator[Any]:
        """Fetch all pages of a paginated endpoint.

        Args:
            url: URL of the first page.

        Yields:
            The parsed JSON body of each page.

        Raises:
            UpstreamUnavailable: If any page does not answer 200.
        """
        current_url: Optional[str] = url
        while current_url:
            status, links, data = await self.upstream.get_json(current_url, headers=self._get_headers())

            if status != 200:
                raise UpstreamUnavailable(
                    f"GitHub API answered {status} for {current_url.split('?', 1)[0]}"
                )

            yield data
            current_url = links.get("next")

    def describe(self) -> List[str]:
        """Human-readable summary lines for startup logging."""
        return [
            f"Repository: {self.organization}/{self.repository}",
            f"API: {self.api_base}",
            f"Raw content: {self.raw_base}",
        ]
