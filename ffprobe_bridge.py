# ffprobe_bridge.py
from __future__ import annotations

import json
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

# Pont avec ffprobe: localise l'exécutable, lance -show_format / -show_streams et lit le JSON.
LogFn = Callable[[str], None]


def _default_log(msg: str) -> None:
    print(msg, flush=True)


class ProbeError(RuntimeError):
    pass


@dataclass
class ProbeData:
    """Métadonnées utiles au tri MP4 (vides si ffprobe n'a rien renvoyé)."""
    format_name: str = ""
    filename: str = ""
    codecs: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.format_name or self.filename or self.codecs)


def find_ffprobe(explicit: str | None = None) -> Optional[str]:
    """
    Chemin de ffprobe: d'abord `explicit` (chemin ou nom de commande), sinon le PATH.
    Retourne None si introuvable.
    """
    if explicit:
        p = Path(explicit)
        if p.is_file():
            return str(p)
        return shutil.which(explicit)
    return shutil.which("ffprobe")


def run_ffprobe(ffprobe: str, url: str, section: str, timeout_s: float) -> dict:
    """
    Exécute: ffprobe -v quiet -print_format json -show_<section> <url>
    Lève ProbeError (code retour non nul, timeout, JSON illisible).
    """
    if section not in {"format", "streams"}:
        raise ValueError(f"run_ffprobe: section inconnue: {section}")
    cmd = [ffprobe, "-v", "quiet", "-print_format", "json", f"-show_{section}", url]
    try:
        p = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired as e:
        raise ProbeError(f"ffprobe timeout ({timeout_s:g}s)") from e
    except OSError as e:
        raise ProbeError(f"ffprobe could not start: {e}") from e

    if p.returncode != 0:
        raise ProbeError(f"ffprobe failed (code={p.returncode})")
    try:
        data = json.loads(p.stdout or "{}")
    except json.JSONDecodeError as e:
        raise ProbeError(f"ffprobe returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProbeError("ffprobe returned unexpected JSON")
    return data


class FfprobeBridge:
    """Deep probe of one URL. Failures give empty ProbeData instead of raising."""

    def __init__(self, ffprobe: str, timeout_s: float = 15.0, log: LogFn | None = None):
        self.ffprobe = ffprobe
        self.timeout_s = float(timeout_s)
        self.log = log or _default_log

    def _section(self, url: str, section: str) -> dict:
        try:
            return run_ffprobe(self.ffprobe, url, section, self.timeout_s)
        except ProbeError as e:
            self.log(f"[PROBE] {section}: {e}")
            return {}

    def probe(self, url: str) -> ProbeData:
        fmt = self._section(url, "format").get("format") or {}
        streams = self._section(url, "streams").get("streams") or []
        codecs = [
            str(s.get("codec_name") or "").lower()
            for s in streams
            if isinstance(s, dict) and s.get("codec_name")
        ]
        return ProbeData(
            format_name=str(fmt.get("format_name") or ""),
            filename=str(fmt.get("filename") or ""),
            codecs=codecs,
        )
