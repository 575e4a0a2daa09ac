from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

import requests

from ffprobe_bridge import ProbeData

from .http_probe import CONTENT_TYPE_UNKNOWN, HttpProbe, LogFn, fetch_content_type, fetch_status, new_session
from .models import UNDECIDED, ClassificationResult, StageResult, Verdict
from .settings import CheckSettings

# Tri strict des URLs: on garde les flux, on exclut tout ce qui ressemble à du MP4.
# Les étapes s'enchaînent dans l'ordre; la première qui tranche l'emporte.

MP4_URL_PATTERNS = (
    re.compile(r"\.mp4($|\?|&)"),
    re.compile(r"/mp4(/|$)"),
    re.compile(r"format=mp4"),
    re.compile(r"type=mp4"),
)

MP4_CONTENT_TYPES = (
    "video/mp4",
    "video/x-mp4",
    "video/quicktime",
    "application/mp4",
    "audio/mp4",
    "audio/x-mp4",
)

STREAM_CONTENT_TYPES = (
    "video/mp2t",
    "application/vnd.apple.mpegurl",
    "application/x-mpegurl",
    "audio/mpegurl",
    "audio/mpeg",
    "video/mpeg",
    "application/octet-stream",
    "binary/octet-stream",
    "video/h264",
)

OCTET_STREAM_TYPES = ("application/octet-stream", "binary/octet-stream")

# Types renvoyés par une page d'erreur plutôt que par un flux.
ERROR_PAGE_TYPES = ("text/html", "text/plain")

STREAMING_FORMAT_RE = re.compile(r"mpegts|hls|m3u8")
MP4_FILENAME_RE = re.compile(r"\.mp4($|\?|&)")


class Prober(Protocol):
    def probe(self, url: str) -> ProbeData: ...


def _accept(reason: str) -> StageResult:
    return StageResult(Verdict.ACCEPT, reason)


def _reject(reason: str) -> StageResult:
    return StageResult(Verdict.REJECT, reason)


# -------------------------
# Étapes (fonctions pures)
# -------------------------
def check_status(http: HttpProbe) -> StageResult:
    if not http.ok:
        return _reject(f"invalid status {http.status_text}")
    return UNDECIDED


def check_url_pattern(url: str) -> StageResult:
    url_lower = url.lower()
    for pat in MP4_URL_PATTERNS:
        if pat.search(url_lower):
            return _reject("URL pattern indicates MP4")
    return UNDECIDED


def _matches(content_type: str, candidates) -> bool:
    ct = content_type.lower()
    return any(c in ct for c in candidates)


def check_content_type(content_type: str, defer_octet_stream: bool = False) -> StageResult:
    """
    Type MP4 connu -> REJECT, type de flux connu -> ACCEPT, sinon indécis.
    Avec defer_octet_stream, octet-stream reste indécis pour laisser ffprobe trancher.
    """
    if _matches(content_type, MP4_CONTENT_TYPES):
        return _reject(f"MP4 content type {content_type}")
    if defer_octet_stream and _matches(content_type, OCTET_STREAM_TYPES):
        return UNDECIDED
    if _matches(content_type, STREAM_CONTENT_TYPES):
        return _accept(f"streaming content type {content_type}")
    return UNDECIDED


def check_probe_data(data: ProbeData) -> StageResult:
    format_name = data.format_name.lower()
    if "mp4" in format_name:
        return _reject("probe reports MP4 format")
    if MP4_FILENAME_RE.search(data.filename.lower()):
        return _reject("probe reports MP4 file")
    if "h264" in data.codecs and "aac" in data.codecs:
        if STREAMING_FORMAT_RE.search(format_name):
            return _accept("h264/aac in streaming container")
        return _reject("h264/aac, likely MP4")
    return _accept("probe found no MP4 markers")


def check_fallback(content_type: str) -> StageResult:
    """Sans ffprobe: politique conservatrice, le doute exclut."""
    if _matches(content_type, ERROR_PAGE_TYPES):
        return _reject(f"likely an error page ({content_type})")
    if not content_type or content_type == CONTENT_TYPE_UNKNOWN:
        return _reject("content type undetermined")
    return _accept("unknown but not MP4")


# -------------------------
# Chaîne
# -------------------------
@dataclass
class _Context:
    url: str
    content_type: str = ""
    trace: list[str] = field(default_factory=list)


Stage = Callable[[_Context], StageResult]


class UrlClassifier:
    """
    Classifies one URL at a time: status -> url-pattern -> content-type -> deep-probe | fallback.
    `prober` is the deep-probe capability (None when ffprobe is not available).
    """

    def __init__(
        self,
        settings: CheckSettings | None = None,
        session: requests.Session | None = None,
        prober: Optional[Prober] = None,
        log: LogFn | None = None,
    ):
        self.settings = settings or CheckSettings()
        self.session = session or new_session(self.settings.user_agent)
        self.prober = prober
        self.log = log
        self.stages: list[tuple[str, Stage]] = [
            ("status", self._status),
            ("url-pattern", self._url_pattern),
            ("content-type", self._content_type),
        ]
        if prober is not None:
            self.stages.append(("deep-probe", self._deep_probe))
        else:
            self.stages.append(("fallback", self._fallback))

    @property
    def deep_probe(self) -> bool:
        return self.prober is not None

    def _status(self, ctx: _Context) -> StageResult:
        http = fetch_status(
            ctx.url,
            self.session,
            timeout_s=self.settings.http_timeout_s,
            retries=self.settings.http_retries,
            log=self.log,
        )
        if http.error:
            ctx.trace.append(f"[HTTP {http.status_text}: {http.error}]")
        return check_status(http)

    def _url_pattern(self, ctx: _Context) -> StageResult:
        return check_url_pattern(ctx.url)

    def _content_type(self, ctx: _Context) -> StageResult:
        http = fetch_content_type(
            ctx.url,
            self.session,
            timeout_s=self.settings.http_timeout_s,
            retries=self.settings.http_retries,
            log=self.log,
        )
        ctx.content_type = http.content_type
        ctx.trace.append(f"[type: {http.content_type or '-'}]")
        return check_content_type(
            http.content_type,
            defer_octet_stream=self.settings.defer_octet_stream and self.deep_probe,
        )

    def _deep_probe(self, ctx: _Context) -> StageResult:
        assert self.prober is not None
        data = self.prober.probe(ctx.url)
        if data.empty:
            ctx.trace.append("[ffprobe: no data]")
        else:
            codecs = "/".join(data.codecs) or "-"
            ctx.trace.append(f"[ffprobe: {data.format_name or '-'} {codecs}]")
        return check_probe_data(data)

    def _fallback(self, ctx: _Context) -> StageResult:
        return check_fallback(ctx.content_type)

    def classify(self, url: str) -> ClassificationResult:
        ctx = _Context(url=url)
        for name, stage in self.stages:
            res = stage(ctx)
            if res.decided:
                return ClassificationResult(verdict=res.verdict, reason=res.reason, stage=name, trace=ctx.trace)
        # La dernière étape (deep-probe ou fallback) tranche toujours.
        raise AssertionError("classifier chain ended undecided")
