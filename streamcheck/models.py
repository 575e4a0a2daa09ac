from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path

# Structures de données partagées entre lecteur, classifieur et rapport.

UNKNOWN_CHANNEL = "unknown channel"


class Verdict(enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    UNDECIDED = "undecided"


@dataclass
class ChannelEntry:
    """Une paire #EXTINF + URL lue dans la playlist."""
    extinf: str
    url: str
    name: str = UNKNOWN_CHANNEL
    line_no: int = 0


@dataclass(frozen=True)
class StageResult:
    verdict: Verdict
    reason: str = ""

    @property
    def decided(self) -> bool:
        return self.verdict is not Verdict.UNDECIDED


UNDECIDED = StageResult(Verdict.UNDECIDED)


@dataclass
class ClassificationResult:
    verdict: Verdict
    reason: str
    stage: str = ""
    # Fragments affichés sur la ligne de progression (code HTTP, type, notes ffprobe)
    trace: list[str] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.verdict is Verdict.ACCEPT


@dataclass
class RunSummary:
    total: int = 0
    accepted: int = 0
    output_path: Path | None = None

    @property
    def rejected(self) -> int:
        return self.total - self.accepted
