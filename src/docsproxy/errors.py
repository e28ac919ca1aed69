"""Exception hierarchy for docsproxy.

Every error carries the HTTP status the server answers with when the error
reaches the request boundary.
"""

from __future__ import annotations

from typing import Optional


class DocsProxyError(Exception):
    """Base class for all docsproxy errors."""

    status: int = 500
    reason: str = "Internal Server Error"

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class UpstreamUnavailable(DocsProxyError):
    """The GitHub API or raw content store could not be reached or failed."""

    status = 502
    reason = "Bad Gateway"


class UnknownVersion(DocsProxyError):
    """A requested version is not present in the release registry."""

    status = 404
    reason = "Not Found"

    def __init__(self, version: str):
        super().__init__(f"Version {version} does not exist.")
        self.version = version


class RegistryExhausted(DocsProxyError):
    """The registry snapshot stayed unavailable after all self-heal attempts."""

    status = 500


class NoReleaseAvailable(DocsProxyError):
    """The upstream tag list does not contain a single release version."""

    status = 500


class MethodNotAllowed(DocsProxyError):
    """The inbound request used a method other than GET or HEAD."""

    status = 405
    reason = "Method Not Allowed"

    def __init__(self, method: str):
        super().__init__(f"The request method {method} is not allowed for this resource.")
        self.method = method
