from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from ffprobe_bridge import FfprobeBridge, find_ffprobe

from .classifier import UrlClassifier
from .errors import DependencyError
from .http_probe import LogFn
from .m3u import PlaylistWriter
from .models import ChannelEntry, RunSummary
from .report import RunReporter
from .settings import CheckSettings


def check_dependencies(settings: CheckSettings, log: LogFn) -> Optional[FfprobeBridge]:
    """
    Résout ffprobe une seule fois au démarrage.
    Absent -> None (détection de base), sauf s'il est exigé: DependencyError.
    """
    if not settings.use_ffprobe:
        if settings.require_ffprobe:
            raise DependencyError("ffprobe is required but deep probing is disabled")
        return None

    path = find_ffprobe(settings.ffprobe_path)
    if path:
        return FfprobeBridge(path, timeout_s=settings.probe_timeout_s, log=log)

    if settings.ffprobe_path:
        raise DependencyError(f"ffprobe not found: {settings.ffprobe_path}")
    if settings.require_ffprobe:
        raise DependencyError("ffprobe not found in PATH (install ffmpeg)")
    log("[WARN] ffprobe not found, falling back to basic detection")
    return None


def run_check(
    header: str,
    entries: Iterable[ChannelEntry],
    output_path: str | Path,
    classifier: UrlClassifier,
    reporter: RunReporter,
) -> RunSummary:
    """Boucle principale: une entrée à la fois, la sortie n'apparaît qu'une fois le parcours terminé."""
    with PlaylistWriter(output_path, header) as writer:
        for index, entry in enumerate(entries, 1):
            result = classifier.classify(entry.url)
            if result.accepted:
                writer.add(entry)
            reporter.entry(index, entry, result)
    return reporter.finish(output_path)
