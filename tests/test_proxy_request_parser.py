"""Tests for the docs request parser."""

import semantic_version

from docsproxy.proxy.request_parser import RequestParser, RouteKind


class TestRequestParser:
    """Tests for RequestParser.parse."""

    def setup_method(self):
        self.parser = RequestParser()

    def test_versions_listing(self):
        route = self.parser.parse("/versions.json")
        assert route.kind is RouteKind.VERSIONS
        assert route.is_redirect is False

    def test_versioned_path(self):
        route = self.parser.parse("/v1.2.3/guide/intro.html")
        assert route.kind is RouteKind.VERSIONED
        assert route.version == semantic_version.Version("1.2.3")
        assert route.path == "/guide/intro.html"

    def test_versioned_root(self):
        route = self.parser.parse("/v1.2.3")
        assert route.kind is RouteKind.VERSIONED
        assert route.path == ""

    def test_versioned_prerelease(self):
        route = self.parser.parse("/v2.0.0-rc.1/")
        assert route.kind is RouteKind.VERSIONED
        assert route.version == semantic_version.Version("2.0.0-rc.1")
        assert route.path == "/"

    def test_invalid_versioned_segment_served_from_latest(self):
        route = self.parser.parse("/v1.2.3_beta/guide.html")
        assert route.kind is RouteKind.DEFAULT
        assert route.path == "/v1.2.3_beta/guide.html"

    def test_pr_path(self):
        route = self.parser.parse("/pr-42/guide.html")
        assert route.kind is RouteKind.PR
        assert route.pr == 42
        assert route.path == "/guide.html"

    def test_pr_zero_is_default(self):
        route = self.parser.parse("/pr-0/guide.html")
        assert route.kind is RouteKind.DEFAULT

    def test_bare_version_redirect(self):
        route = self.parser.parse("/1.2.3/guide.html")
        assert route.kind is RouteKind.NUMERIC_REDIRECT
        assert route.redirect_to == "/v1.2.3/guide.html"

    def test_latest_alias(self):
        assert self.parser.parse("/latest/guide.html").redirect_to == "/guide.html"
        assert self.parser.parse("/latest").redirect_to == "/"
        assert self.parser.parse("/latest/").redirect_to == "/"

    def test_latest_prefix_is_not_alias(self):
        route = self.parser.parse("/latest-news.html")
        assert route.kind is RouteKind.DEFAULT

    def test_default(self):
        route = self.parser.parse("/guide/intro.html")
        assert route.kind is RouteKind.DEFAULT
        assert route.path == "/guide/intro.html"
        assert self.parser.parse("").path == "/"

    def test_decoded_path_is_not_decoded_again(self):
        """The server hands over an already decoded path; a literal %20 stays."""
        route = self.parser.parse("/v1.2.3/a%20b.html")
        assert route.path == "/a%20b.html"
