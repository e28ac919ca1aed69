"""docsproxy - versioned documentation proxy.

Serves documentation releases published as ``docs/v<version>`` tags (and
``docs/pr-<n>`` previews) of a GitHub repository, with release-aware caching.
"""

__version__ = "0.1.0"
