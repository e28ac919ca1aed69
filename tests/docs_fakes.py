"""In-process fakes for the upstream HTTP layer shared by the docsproxy tests."""

import json
from typing import Any, Dict, List, Optional

import semantic_version

from docsproxy.proxy.upstream import UpstreamClient, UpstreamResponse
from docsproxy.repository.github import GitHubClient

API_BASE = "https://api.example"
RAW_BASE = "https://raw.example"
ORG = "acme"
REPO = "docs"


def json_body(data: Any, status: int = 200, links: Optional[Dict[str, str]] = None) -> UpstreamResponse:
    """Upstream response carrying a JSON document."""
    return UpstreamResponse(status=status, body=json.dumps(data).encode("utf-8"), links=dict(links or {}))


def raw(path: str, segment: str = "v1.2.3") -> str:
    """Raw content URL of ``path`` below ``refs/tags/docs/<segment>``."""
    return f"{RAW_BASE}/{ORG}/{REPO}/refs/tags/docs/{segment}{path}"


def refs_url() -> str:
    return f"{API_BASE}/repos/{ORG}/{REPO}/git/matching-refs/tags/docs?per_page=100"


def tree_url(segment: str) -> str:
    return f"{API_BASE}/repos/{ORG}/{REPO}/git/trees/docs/{segment}?recursive=1&per_page=100"


def refs_payload(*tags: str) -> List[Dict[str, str]]:
    return [{"ref": f"refs/tags/docs/{tag}"} for tag in tags]


class FakeUpstream(UpstreamClient):
    """UpstreamClient answering from a URL -> response table and recording every call."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[str] = []
        self.request_headers: List[Dict[str, str]] = []

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> UpstreamResponse:
        self.calls.append(url)
        self.request_headers.append(dict(headers or {}))
        response = self.responses.get(url)
        if isinstance(response, Exception):
            raise response
        if response is None:
            return UpstreamResponse(status=404, url=url)
        return response

    def count(self, url: str) -> int:
        return self.calls.count(url)


def make_github(upstream: UpstreamClient) -> GitHubClient:
    return GitHubClient(
        upstream,
        ORG,
        REPO,
        user="bot",
        token="s3cret",
        api_base=API_BASE,
        raw_base=RAW_BASE,
    )


class FakeTagSource:
    """Stands in for GitHubClient where only the docs tag listing matters."""

    def __init__(self, *tags: str):
        self.tags = list(tags)
        self.listings = 0

    async def iter_docs_refs(self):
        self.listings += 1
        for tag in self.tags:
            yield f"refs/tags/docs/{tag}"


class StaticReleases:
    """Release registry with a fixed latest release."""

    def __init__(self, latest: str = "1.2.3", versions: Optional[List[str]] = None):
        self._latest = semantic_version.Version(latest)
        self._all = [semantic_version.Version(v) for v in (versions or [latest])]

    async def latest(self) -> semantic_version.Version:
        return self._latest

    async def all(self) -> List[semantic_version.Version]:
        return list(self._all)

    async def has(self, version) -> bool:
        return str(version) in [str(v) for v in self._all]
