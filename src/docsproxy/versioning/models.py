"""Data models for release tracking and version resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import semantic_version


class TargetKind(Enum):
    """What a resolved request points at."""
    VERSION = "version"
    PR = "pr"


@dataclass(frozen=True)
class ReleaseSnapshot:
    """Latest pointer plus every known version, sorted descending."""
    latest: semantic_version.Version
    all: List[semantic_version.Version] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedTarget:
    """Concrete docs tree a request is served from."""
    kind: TargetKind
    version: Optional[semantic_version.Version] = None
    pr: Optional[int] = None
    is_latest: bool = False
    explicit: bool = False

    @classmethod
    def for_version(
        cls,
        version: semantic_version.Version,
        *,
        is_latest: bool,
        explicit: bool,
    ) -> "ResolvedTarget":
        return cls(TargetKind.VERSION, version=version, is_latest=is_latest, explicit=explicit)

    @classmethod
    def for_pr(cls, number: int) -> "ResolvedTarget":
        return cls(TargetKind.PR, pr=number, is_latest=False, explicit=True)

    @property
    def is_pr(self) -> bool:
        return self.kind is TargetKind.PR

    @property
    def is_prerelease(self) -> bool:
        """PR previews always count as prerelease content."""
        if self.is_pr:
            return True
        return bool(self.version is not None and self.version.prerelease)

    @property
    def segment(self) -> str:
        """Tag segment below ``refs/tags/docs/``, e.g. ``v1.2.3`` or ``pr-42``."""
        if self.is_pr:
            return f"pr-{self.pr}"
        return f"v{self.version}"

    @property
    def label(self) -> str:
        """Value for the X-Version / X-PR response header."""
        return str(self.pr) if self.is_pr else str(self.version)

    def __str__(self) -> str:
        return self.segment
