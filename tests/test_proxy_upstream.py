"""Tests for upstream client helpers."""

import asyncio
import json

import pytest

aiohttp_mod = pytest.importorskip("aiohttp")

from yarl import URL

from docsproxy.errors import UpstreamUnavailable
from docsproxy.proxy.upstream import UpstreamClient, UpstreamResponse


class TestUpstreamClientHeaders:
    """Tests for upstream request header handling."""

    def test_build_request_headers_drops_hop_headers(self):
        """Ensure auth headers are preserved and host/connection removed."""
        client = UpstreamClient()
        headers = {
            "Authorization": "Basic Ym90OnMzY3JldA==",
            "Connection": "keep-alive",
            "Host": "docs.example.com",
        }

        result = client._build_request_headers(headers)

        assert result["Authorization"] == "Basic Ym90OnMzY3JldA=="
        assert "Connection" not in result
        assert "Host" not in result
        assert result["User-Agent"] == "docsproxy/0.1"
        assert result["Accept"] == "*/*"

    def test_build_request_headers_preserves_accept(self):
        client = UpstreamClient()

        result = client._build_request_headers({"Accept": "application/vnd.github+json"})

        assert result["Accept"] == "application/vnd.github+json"


class TestUpstreamClientResponseHeaders:
    """Tests for response header filtering."""

    def test_only_validators_are_kept(self):
        client = UpstreamClient()
        headers = {
            "etag": 'W/"123"',
            "Last-Modified": "Tue, 01 Oct 2024 10:00:00 GMT",
            "Content-Security-Policy": "default-src 'none'",
            "Set-Cookie": "a=b",
            "Content-Type": "text/plain",
        }

        result = client.filter_response_headers(headers)

        assert result == {
            "ETag": 'W/"123"',
            "Last-Modified": "Tue, 01 Oct 2024 10:00:00 GMT",
        }


class TestUpstreamResponse:
    """Tests for UpstreamResponse."""

    def test_ok_and_header(self):
        response = UpstreamResponse(status=304, headers={"ETag": '"x"'})
        assert response.ok is True
        assert response.header("etag") == '"x"'
        assert UpstreamResponse(status=404).ok is False


class _DummyResponse:
    def __init__(self, status, headers=None, body=b"", links=None):
        self.status = status
        self.headers = headers or {}
        self.links = links or {}
        self._body = body

    async def read(self):
        return self._body

    def release(self):
        pass


class _DummySession:
    def __init__(self, responses, urls):
        self._responses = iter(responses)
        self._urls = urls

    async def request(self, method, url, headers=None, allow_redirects=False):
        self._urls.append(url)
        response = next(self._responses)
        if isinstance(response, Exception):
            raise response
        return response


class TestUpstreamClientRedirects:
    """Tests for the redirect allowlist."""

    def test_follow_allowed_redirect(self):
        """Raw content redirects to the objects host are followed."""
        client = UpstreamClient()
        urls = []
        client._session = _DummySession(
            [
                _DummyResponse(
                    status=302,
                    headers={"Location": "https://objects.githubusercontent.com/blob/abc"},
                ),
                _DummyResponse(status=200, headers={"ETag": '"e"'}, body=b"ok"),
            ],
            urls,
        )

        response = asyncio.run(client.fetch("https://raw.githubusercontent.com/acme/docs/x.html"))

        assert response.status == 200
        assert response.body == b"ok"
        assert urls[1] == "https://objects.githubusercontent.com/blob/abc"

    def test_block_disallowed_redirect(self):
        """Redirects to foreign hosts surface as UpstreamUnavailable."""
        client = UpstreamClient()
        client._session = _DummySession(
            [
                _DummyResponse(
                    status=302,
                    headers={"Location": "http://169.254.169.254/latest/meta-data"},
                ),
            ],
            [],
        )

        with pytest.raises(UpstreamUnavailable):
            asyncio.run(client.fetch("https://raw.githubusercontent.com/acme/docs/x.html"))

    def test_connection_error(self):
        client = UpstreamClient()
        client._session = _DummySession([aiohttp_mod.ClientConnectionError("refused")], [])

        with pytest.raises(UpstreamUnavailable):
            asyncio.run(client.fetch("https://api.github.com/repos/acme/docs"))


class TestUpstreamClientJson:
    """Tests for get_json."""

    def test_get_json_parses_body_and_sends_accept(self):
        client = UpstreamClient()
        urls = []
        session = _DummySession(
            [_DummyResponse(status=200, body=json.dumps([{"ref": "r"}]).encode())],
            urls,
        )
        seen_headers = []
        original_request = session.request

        async def _request(method, url, headers=None, allow_redirects=False):
            seen_headers.append(headers)
            return await original_request(method, url, headers=headers, allow_redirects=allow_redirects)

        session.request = _request
        client._session = session

        status, _, data = asyncio.run(client.get_json("https://api.github.com/x"))

        assert status == 200
        assert data == [{"ref": "r"}]
        assert seen_headers[0]["Accept"] == "application/vnd.github+json"

    def test_get_json_invalid_body(self):
        client = UpstreamClient()
        client._session = _DummySession([_DummyResponse(status=200, body=b"<html>")], [])

        status, _, data = asyncio.run(client.get_json("https://api.github.com/x"))

        assert status == 200
        assert data is None

    def test_get_json_returns_links_by_rel(self):
        client = UpstreamClient()
        links = {
            "next": {"rel": "next", "url": URL("https://api.github.com/x?page=2")},
            "last": {"rel": "last", "url": URL("https://api.github.com/x?page=5")},
        }
        client._session = _DummySession([_DummyResponse(status=200, body=b"[]", links=links)], [])

        _, parsed, data = asyncio.run(client.get_json("https://api.github.com/x"))

        assert data == []
        assert parsed == {
            "next": "https://api.github.com/x?page=2",
            "last": "https://api.github.com/x?page=5",
        }

    def test_get_json_without_link_header(self):
        client = UpstreamClient()
        client._session = _DummySession([_DummyResponse(status=200, body=b"[]")], [])

        _, parsed, _ = asyncio.run(client.get_json("https://api.github.com/x"))

        assert parsed == {}
