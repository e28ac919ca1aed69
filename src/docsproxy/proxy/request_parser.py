"""Request parser classifying inbound docs paths into routes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import semantic_version

from ..constants import Constants
from ..versioning.parser import parse_path_segment


class RouteKind(Enum):
    """Kinds of inbound docs requests."""

    VERSIONS = "versions"
    VERSIONED = "versioned"
    PR = "pr"
    NUMERIC_REDIRECT = "numeric_redirect"
    LATEST_ALIAS = "latest_alias"
    DEFAULT = "default"


@dataclass
class RouteMatch:
    """Result of parsing a docs request path."""

    kind: RouteKind
    path: str
    version: Optional[semantic_version.Version] = None
    pr: Optional[int] = None
    redirect_to: Optional[str] = None
    raw_path: str = ""

    @property
    def is_redirect(self) -> bool:
        return self.redirect_to is not None


class RequestParser:
    """Parser for the docs site URL scheme.

    Patterns, first match wins:
      /versions.json               - version selector listing
      /v{semver}[/rest]            - explicit release
      /pr-{n}[/rest]               - pull request preview
      /{x.y.z}[/rest]              - bare version, redirected to /v{x.y.z}
      /latest[/rest]               - alias, redirected to /[rest]
      anything else                - latest release
    """

    _VERSIONED_PATTERN = re.compile(r"^/(v\d+\.\d+\.\d+[^/]*)(|/.*)$")
    _PR_PATTERN = re.compile(r"^/(pr-\d+)(|/.*)$")
    _BARE_VERSION_PATTERN = re.compile(r"^/(\d+\.\d+\.\d+)(|/.*)$")
    _LATEST_PATTERN = re.compile(r"^/latest(|/.*)$")

    def parse(self, path: str) -> RouteMatch:
        """Parse a request path into a route.

        Args:
            path: The percent-decoded URL path to parse.

        Returns:
            RouteMatch describing how to serve the request.
        """
        path = path or "/"
        if not path.startswith("/"):
            path = "/" + path

        if path == Constants.VERSIONS_PATH:
            return RouteMatch(RouteKind.VERSIONS, path=path, raw_path=path)

        match = self._VERSIONED_PATTERN.match(path)
        if match:
            segment, rest = match.groups()
            kind, version = parse_path_segment(segment)
            if kind != "version":
                # Looks versioned but is not a semantic version: serve as-is from latest.
                return RouteMatch(RouteKind.DEFAULT, path=path, raw_path=path)
            return RouteMatch(RouteKind.VERSIONED, path=rest, version=version, raw_path=path)

        match = self._PR_PATTERN.match(path)
        if match:
            segment, rest = match.groups()
            kind, number = parse_path_segment(segment)
            if kind == "pr":
                return RouteMatch(RouteKind.PR, path=rest, pr=number, raw_path=path)

        match = self._BARE_VERSION_PATTERN.match(path)
        if match:
            raw_version, rest = match.groups()
            return RouteMatch(
                RouteKind.NUMERIC_REDIRECT,
                path=rest,
                redirect_to=f"/v{raw_version}{rest}",
                raw_path=path,
            )

        match = self._LATEST_PATTERN.match(path)
        if match:
            rest = match.group(1)
            return RouteMatch(
                RouteKind.LATEST_ALIAS,
                path=rest,
                redirect_to=rest or "/",
                raw_path=path,
            )

        return RouteMatch(RouteKind.DEFAULT, path=path, raw_path=path)
