from __future__ import annotations

import os
from pathlib import Path

import pytest

from ffprobe_bridge import ProbeData
from streamcheck.settings import ENV_PREFIX


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for k in list(os.environ):
        if k.startswith(ENV_PREFIX):
            monkeypatch.delenv(k, raising=False)


@pytest.fixture
def write_playlist(tmp_path):
    def _write(text: str, name: str = "playlist.m3u") -> Path:
        p = tmp_path / name
        p.write_text(text, encoding="utf-8", newline="")
        return p
    return _write


class FakeProber:
    """Stands in for FfprobeBridge: returns canned ProbeData and records the URLs it saw."""

    def __init__(self, data: ProbeData | None = None):
        self.data = data or ProbeData()
        self.urls: list[str] = []

    def probe(self, url: str) -> ProbeData:
        self.urls.append(url)
        return self.data


@pytest.fixture
def fake_prober():
    return FakeProber
