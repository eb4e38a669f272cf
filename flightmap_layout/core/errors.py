from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional


@dataclass(frozen=True)
class FlightmapError(Exception):
    """Coded problem report, located by file and a dotted path into the roadmap.

    Loading raises these. Layout never does: data problems come back as
    lint warnings on the result.
    """

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    severity: ClassVar[str] = "error"

    @property
    def location(self) -> str:
        return ":".join(part for part in (self.file, self.path) if part) or "<roadmap>"

    def __str__(self) -> str:
        return f"{self.location}: {self.code}: {self.message}"

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "file": self.file,
            "path": self.path,
            "severity": self.severity,
        }


class RoadmapLoadError(FlightmapError):
    pass


class RoadmapLintError(FlightmapError):
    severity: ClassVar[str] = "warning"


class KeyValueStoreError(FlightmapError):
    pass
