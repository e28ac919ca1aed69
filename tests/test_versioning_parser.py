"""Tests for docs tag and path segment parsing."""

import semantic_version

from docsproxy.versioning.models import ResolvedTarget, TargetKind
from docsproxy.versioning.parser import is_prerelease, parse_path_segment, parse_tag_ref, parse_version


class TestParseVersion:
    """Tests for parse_version."""

    def test_plain_and_prefixed(self):
        assert parse_version("1.2.3") == semantic_version.Version("1.2.3")
        assert parse_version("v1.2.3") == semantic_version.Version("1.2.3")
        assert parse_version("=1.2.3") == semantic_version.Version("1.2.3")

    def test_prerelease_and_build(self):
        version = parse_version("v2.0.0-rc.1+build.5")
        assert version is not None
        assert version.prerelease == ("rc", "1")
        assert version.build == ("build", "5")

    def test_invalid_inputs(self):
        assert parse_version(None) is None
        assert parse_version("") is None
        assert parse_version("1.2") is None
        assert parse_version("latest") is None


class TestParseTagRef:
    """Tests for parse_tag_ref."""

    def test_docs_tag(self):
        assert parse_tag_ref("refs/tags/docs/v1.4.0", "refs/tags/docs/") == semantic_version.Version("1.4.0")

    def test_outside_prefix(self):
        assert parse_tag_ref("refs/tags/v1.4.0", "refs/tags/docs/") is None

    def test_non_version_suffix(self):
        assert parse_tag_ref("refs/tags/docs/pr-12", "refs/tags/docs/") is None


class TestParsePathSegment:
    """Tests for parse_path_segment."""

    def test_pr_segments(self):
        assert parse_path_segment("pr-42") == ("pr", 42)
        assert parse_path_segment("42") == ("pr", 42)

    def test_pr_zero_is_not_a_pr(self):
        assert parse_path_segment("pr-0") == ("none", None)

    def test_version_segment(self):
        kind, value = parse_path_segment("v1.2.3-beta.2")
        assert kind == "version"
        assert value == semantic_version.Version("1.2.3-beta.2")

    def test_other_segments(self):
        assert parse_path_segment("guide.html") == ("none", None)
        assert parse_path_segment("v1.2") == ("none", None)
        assert parse_path_segment("1.2.3") == ("none", None)

    def test_is_prerelease(self):
        assert is_prerelease(semantic_version.Version("1.0.0-alpha")) is True
        assert is_prerelease(semantic_version.Version("1.0.0")) is False


class TestResolvedTarget:
    """Tests for ResolvedTarget."""

    def test_version_target(self):
        target = ResolvedTarget.for_version(semantic_version.Version("1.2.3"), is_latest=True, explicit=False)
        assert target.kind is TargetKind.VERSION
        assert target.segment == "v1.2.3"
        assert target.label == "1.2.3"
        assert target.is_prerelease is False
        assert str(target) == "v1.2.3"

    def test_prerelease_target(self):
        target = ResolvedTarget.for_version(semantic_version.Version("2.0.0-rc.1"), is_latest=False, explicit=True)
        assert target.is_prerelease is True

    def test_pr_target(self):
        target = ResolvedTarget.for_pr(7)
        assert target.is_pr is True
        assert target.is_prerelease is True
        assert target.is_latest is False
        assert target.segment == "pr-7"
        assert target.label == "7"
