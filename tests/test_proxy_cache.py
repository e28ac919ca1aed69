"""Tests for the key/value store and the artifact cache."""

import asyncio
import time

from docsproxy.proxy.cache import ArtifactCache, CachedArtifact, KeyValueStore


def _artifact(body: bytes = b"<html></html>", etag: str = '"abc"') -> CachedArtifact:
    return CachedArtifact(status=200, headers={"ETag": etag, "Content-Type": "text/html"}, body=body)


class TestKeyValueStore:
    """Tests for KeyValueStore."""

    def test_put_and_get(self):
        store = KeyValueStore()
        asyncio.run(store.put("release-latest", "1.2.3"))
        assert asyncio.run(store.get("release-latest")) == "1.2.3"

    def test_missing_key(self):
        assert asyncio.run(KeyValueStore().get("nothing")) is None

    def test_expired_entry_is_absent(self):
        store = KeyValueStore()
        asyncio.run(store.put("k", "v", ttl=60))
        store._cache["k"].expires_at = time.time() - 1

        assert asyncio.run(store.get("k")) is None
        assert "k" not in store._cache


class TestArtifactCache:
    """Tests for ArtifactCache."""

    def test_match_returns_stored_artifact(self):
        cache = ArtifactCache()
        artifact = _artifact()
        assert asyncio.run(cache.put("https://raw.example/a", artifact, ttl=60)) is True
        assert asyncio.run(cache.match("https://raw.example/a")) == artifact

    def test_expired_artifact_is_evicted(self):
        cache = ArtifactCache()
        asyncio.run(cache.put("k", _artifact(b"12345"), ttl=60))
        cache._cache["k"].expires_at = time.time() - 1

        assert asyncio.run(cache.match("k")) is None
        assert cache.stats()["current_bytes"] == 0

    def test_replacing_entry_tracks_bytes(self):
        cache = ArtifactCache()
        asyncio.run(cache.put("k", _artifact(b"a" * 10)))
        asyncio.run(cache.put("k", _artifact(b"b" * 4)))

        assert cache.stats()["current_bytes"] == 4
        assert cache.stats()["total_entries"] == 1

    def test_oversized_body_is_not_stored(self):
        cache = ArtifactCache(max_bytes=100)
        assert asyncio.run(cache.put("big", _artifact(b"x" * 11))) is False
        assert asyncio.run(cache.match("big")) is None

    def test_byte_limit_evicts_oldest(self):
        cache = ArtifactCache(max_bytes=100)
        asyncio.run(cache.put("first", _artifact(b"x" * 10)))
        cache._cache["first"].created_at -= 10
        for i in range(9):
            asyncio.run(cache.put(f"k{i}", _artifact(b"y" * 10)))

        asyncio.run(cache.put("last", _artifact(b"z" * 10)))

        assert asyncio.run(cache.match("first")) is None
        assert cache.stats()["current_bytes"] <= 100


class TestCachedArtifact:
    """Tests for CachedArtifact helpers."""

    def test_header_lookup_is_case_insensitive(self):
        artifact = _artifact()
        assert artifact.etag == '"abc"'
        assert artifact.header("content-type") == "text/html"
        assert artifact.header("X-Missing") is None

    def test_without_body_keeps_headers(self):
        stripped = _artifact(b"body").without_body()
        assert stripped.body == b""
        assert stripped.etag == '"abc"'

    def test_with_status_does_not_mutate_original(self):
        original = _artifact()
        changed = original.with_status(404, "Not Found", {"X-Error-Details": "gone"})

        assert changed.status == 404
        assert changed.reason == "Not Found"
        assert changed.header("X-Error-Details") == "gone"
        assert original.status == 200
        assert "X-Error-Details" not in original.headers
