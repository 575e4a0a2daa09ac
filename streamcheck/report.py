from __future__ import annotations

from pathlib import Path
from typing import Callable

from .m3u import short_name
from .models import ChannelEntry, ClassificationResult, RunSummary

# Affichage de la progression et des compteurs (aucune décision ici).
LogFn = Callable[[str], None]


def _default_log(msg: str) -> None:
    print(msg, flush=True)


class RunReporter:
    def __init__(self, log: LogFn | None = None):
        self.log = log or _default_log
        self.summary = RunSummary()

    def start(self, input_path: str | Path, output_path: str | Path, deep_probe: bool) -> None:
        self.summary = RunSummary(output_path=Path(output_path))
        self.log(f"[CHECK] Input: {input_path}")
        self.log(f"[CHECK] Output: {output_path}")
        self.log("[CHECK] Strict mode: every MP4 link is excluded")
        chain = "status -> URL pattern -> content type -> " + ("ffprobe" if deep_probe else "fallback")
        self.log(f"[CHECK] Strategy: {chain}")

    def entry(self, index: int, entry: ChannelEntry, result: ClassificationResult) -> None:
        self.summary.total += 1
        if result.accepted:
            self.summary.accepted += 1
        trace = " ".join(result.trace)
        status = "OK" if result.accepted else "KO"
        line = f"[{index}] {short_name(entry.name)} ... "
        if trace:
            line += trace + " "
        self.log(f"{line}-> {status} ({result.reason})")

    def finish(self, output_path: str | Path) -> RunSummary:
        s = self.summary
        s.output_path = Path(output_path)
        self.log("")
        self.log("[DONE] Check complete")
        self.log(f"[DONE] Total channels: {s.total}")
        self.log(f"[DONE] Kept: {s.accepted}")
        self.log(f"[DONE] Removed: {s.rejected}")
        self.log(f"[DONE] Clean playlist: {s.output_path}")
        return s
