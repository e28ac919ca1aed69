"""Parsing utilities for docs tags and version path segments."""

import re
from typing import Optional, Tuple, Union

import semantic_version

_VERSION_SEGMENT = re.compile(r"^v(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$")
_PR_SEGMENT = re.compile(r"^(?:pr-)?(\d+)$")


def parse_version(raw: Optional[str]) -> Optional[semantic_version.Version]:
    """Parse a version string, accepting a leading ``v`` or ``=``.

    Returns None for anything that is not a strict semantic version.
    """
    if not raw:
        return None
    plain = raw.strip()
    while plain[:1] in ("v", "V", "="):
        plain = plain[1:]
    try:
        return semantic_version.Version(plain)
    except ValueError:
        return None


def parse_tag_ref(ref: str, prefix: str) -> Optional[semantic_version.Version]:
    """Extract the version from a ref such as ``refs/tags/docs/v1.2.3``.

    Refs outside ``prefix`` and unparsable suffixes yield None.
    """
    if not ref.startswith(prefix):
        return None
    return parse_version(ref[len(prefix):])


def parse_path_segment(segment: str) -> Tuple[str, Union[semantic_version.Version, int, None]]:
    """Classify a single path segment.

    Numeric segments (optionally ``pr-`` prefixed) are PR numbers,
    ``v<major>.<minor>.<patch>[-pre][+build]`` segments are versions, and
    everything else is not a version at all.

    Returns:
        Tuple of (kind, value) where kind is "pr", "version" or "none".
    """
    match = _PR_SEGMENT.match(segment)
    if match:
        number = int(match.group(1))
        if number > 0:
            return "pr", number
        return "none", None

    match = _VERSION_SEGMENT.match(segment)
    if match:
        version = parse_version(match.group(1))
        if version is not None:
            return "version", version
    return "none", None


def is_prerelease(version: semantic_version.Version) -> bool:
    """Return True when the version carries a prerelease component."""
    return bool(version.prerelease)
