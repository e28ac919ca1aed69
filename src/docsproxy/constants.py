"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    REGISTRY_ERROR = 3


ONE_MINUTE = 60
ONE_HOUR = ONE_MINUTE * 60
ONE_DAY = ONE_HOUR * 24
ONE_YEAR = ONE_DAY * 365


class CacheTTL:  # pylint: disable=too-few-public-methods
    """TTL classes (seconds) for cached artifacts."""

    UNIQUE = ONE_YEAR
    PRERELEASE = ONE_MINUTE * 15
    RELEASE = ONE_HOUR * 12
    ERROR_PAGE = ONE_MINUTE * 5
    VERSIONS_LISTING = ONE_MINUTE * 5


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    GITHUB_API_BASE = "https://api.github.com"
    GITHUB_RAW_BASE = "https://raw.githubusercontent.com"
    ENV_GITHUB_USER = "GITHUB_ACCESS_USER"
    ENV_GITHUB_TOKEN = "GITHUB_ACCESS_TOKEN"
    ENV_GITHUB_ORGANIZATION = "GITHUB_ORGANIZATION"
    ENV_GITHUB_REPOSITORY = "GITHUB_REPOSITORY"
    ENV_LOG_LEVEL = "DOCSPROXY_LOG_LEVEL"
    REPO_API_PER_PAGE = 100
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    LOG_FORMAT = "[%(levelname)s] %(message)s"

    DOCS_REF_PREFIX = "refs/tags/docs/"
    DOCS_TAG_PREFIX = "docs/"
    URL_PATH_SAFE = "/@:+!$&'()*,;=-._~"  # left unescaped when quoting paths

    # Registry snapshot keys in the shared key/value store
    KV_RELEASE_LATEST = "release-latest"
    KV_RELEASES_SORTED = "releases-sorted"
    REGISTRY_TTL = ONE_HOUR
    MAX_RETRIEVE_TRIES = 25

    USER_AGENT = "docsproxy/0.1"
    HEALTH_PATH = "/_docsproxy/health"
    VERSIONS_PATH = "/versions.json"


DEFAULT_SECURITY_HEADERS = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Embedder-Policy": "require-corp",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Xss-Protection": "1; mode=block",
    "Strict-Transport-Security": f"max-age={ONE_YEAR}",
}
