from __future__ import annotations

import pytest

import check_m3u
import ffprobe_bridge
from streamcheck.classifier import UrlClassifier

HLS = "application/vnd.apple.mpegurl"

PLAYLIST = (
    "#EXTM3U x-tvg-url=\"http://epg/guide.xml\"\n"
    "#EXTINF:-1 tvg-id=\"news.fr\",News 24\n"
    "http://cdn/news/index.m3u8\n"
    "#EXTINF:-1,Film du soir\n"
    "http://vod/films/soir.mp4\n"
    "#EXTINF:-1,Sport\n"
    "http://cdn/sport/stream.ts\n"
    "#EXTINF:-1,Chaine avec un nom vraiment beaucoup trop long\n"
    "http://gone/live.m3u8\n"
    "#EXTINF:-1,Portail\n"
    "http://portal/live\n"
    "#EXTINF:-1,Sans URL\n"
)


@pytest.fixture
def network(requests_mock):
    ok = {"status_code": 200}
    requests_mock.get("http://cdn/news/index.m3u8", **ok)
    requests_mock.head("http://cdn/news/index.m3u8", headers={"Content-Type": HLS})
    requests_mock.get("http://vod/films/soir.mp4", **ok)
    requests_mock.get("http://cdn/sport/stream.ts", **ok)
    requests_mock.head("http://cdn/sport/stream.ts", headers={"Content-Type": "video/MP2T"})
    requests_mock.get("http://gone/live.m3u8", status_code=404)
    requests_mock.get("http://portal/live", **ok)
    requests_mock.head("http://portal/live", headers={"Content-Type": "text/html; charset=utf-8"})
    return requests_mock


def _entries(path):
    lines = path.read_text(encoding="utf-8").splitlines()
    return lines[0], list(zip(lines[1::2], lines[2::2]))


def test_filters_playlist_end_to_end(write_playlist, network, capsys):
    src = write_playlist(PLAYLIST)
    rc = check_m3u.main([str(src), "--no-ffprobe"])
    assert rc == 0

    out = src.with_name("playlist_clean.m3u")
    header, entries = _entries(out)
    assert header == '#EXTM3U x-tvg-url="http://epg/guide.xml"'
    assert entries == [
        ('#EXTINF:-1 tvg-id="news.fr",News 24', "http://cdn/news/index.m3u8"),
        ("#EXTINF:-1,Sport", "http://cdn/sport/stream.ts"),
    ]

    stdout = capsys.readouterr().out
    assert "[DONE] Total channels: 5" in stdout
    assert "[DONE] Kept: 2" in stdout
    assert "[DONE] Removed: 3" in stdout
    assert "invalid status 404" in stdout
    assert "URL pattern indicates MP4" in stdout
    assert "Chaine avec un nom vraiment be..." in stdout
    assert "Sans URL" not in stdout


def test_rechecking_output_keeps_everything(write_playlist, network, tmp_path, capsys):
    src = write_playlist(PLAYLIST)
    first = tmp_path / "first.m3u"
    second = tmp_path / "second.m3u"
    assert check_m3u.main([str(src), str(first), "--no-ffprobe"]) == 0
    assert check_m3u.main([str(first), str(second), "--no-ffprobe"]) == 0
    assert second.read_text(encoding="utf-8") == first.read_text(encoding="utf-8")
    assert "[DONE] Removed: 0" in capsys.readouterr().out


def test_header_only_output_when_everything_rejected(write_playlist, requests_mock, tmp_path):
    src = write_playlist("#EXTM3U\n#EXTINF:-1,A\nhttp://down/a.m3u8\n")
    requests_mock.get("http://down/a.m3u8", status_code=500)
    out = tmp_path / "out.m3u"
    assert check_m3u.main([str(src), str(out), "--no-ffprobe"]) == 0
    assert out.read_text(encoding="utf-8") == "#EXTM3U\n"


@pytest.mark.parametrize("argv", [[], ["a.m3u", "b.m3u", "c.m3u"], ["a.m3u", "--bogus"]])
def test_usage_errors_exit_1(argv, capsys):
    assert check_m3u.main(argv) == 1
    err = capsys.readouterr().err
    assert "usage:" in err


def test_missing_input_exit_1(tmp_path, capsys):
    assert check_m3u.main([str(tmp_path / "missing.m3u")]) == 1
    assert "does not exist" in capsys.readouterr().err


def test_bad_header_exit_1(write_playlist, capsys):
    src = write_playlist("#EXTINF:-1,A\nhttp://a\n")
    assert check_m3u.main([str(src), "--no-ffprobe"]) == 1
    assert "not a valid M3U" in capsys.readouterr().err
    assert not src.with_name("playlist_clean.m3u").exists()


def test_missing_input_reported_before_dependencies(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(ffprobe_bridge.shutil, "which", lambda name: None)
    assert check_m3u.main([str(tmp_path / "missing.m3u"), "--require-ffprobe"]) == 1
    assert "does not exist" in capsys.readouterr().err


def test_required_ffprobe_missing_exit_1(write_playlist, monkeypatch, capsys):
    monkeypatch.setattr(ffprobe_bridge.shutil, "which", lambda name: None)
    src = write_playlist("not even a playlist\n")
    assert check_m3u.main([str(src), "--require-ffprobe"]) == 1
    # la dépendance est vérifiée avant l'en-tête
    assert "ffprobe not found" in capsys.readouterr().err


def test_explicit_ffprobe_path_missing_exit_1(write_playlist, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(ffprobe_bridge.shutil, "which", lambda name: None)
    src = write_playlist("#EXTM3U\n")
    assert check_m3u.main([str(src), "--ffprobe", str(tmp_path / "nope")]) == 1
    assert "ffprobe not found" in capsys.readouterr().err


def test_missing_ffprobe_only_warns(write_playlist, monkeypatch, capsys):
    monkeypatch.setattr(ffprobe_bridge.shutil, "which", lambda name: None)
    src = write_playlist("#EXTM3U\n")
    assert check_m3u.main([str(src)]) == 0
    out = capsys.readouterr().out
    assert "[WARN] ffprobe not found" in out
    assert "content type -> fallback" in out


def test_interrupt_leaves_output_untouched(write_playlist, network, tmp_path, monkeypatch, capsys):
    src = write_playlist(PLAYLIST)
    out = tmp_path / "out.m3u"
    out.write_text("#EXTM3U\nprevious run\n", encoding="utf-8")
    calls = []

    def classify(self, url):
        calls.append(url)
        if len(calls) == 2:
            raise KeyboardInterrupt
        return original(self, url)

    original = UrlClassifier.classify
    monkeypatch.setattr(UrlClassifier, "classify", classify)
    assert check_m3u.main([str(src), str(out), "--no-ffprobe"]) == 130
    assert out.read_text(encoding="utf-8") == "#EXTM3U\nprevious run\n"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["out.m3u", "playlist.m3u"]


@pytest.mark.parametrize("argv", [
    ["--timeout", "0"],
    ["--timeout", "-1"],
    ["--probe-timeout", "0"],
    ["--timeout", "soon"],
])
def test_non_positive_timeouts_are_usage_errors(write_playlist, argv, capsys):
    src = write_playlist("#EXTM3U\n#EXTINF:-1,A\nhttp://a/live.m3u8\n")
    assert check_m3u.main([str(src), "--no-ffprobe", *argv]) == 1
    assert "usage:" in capsys.readouterr().err
    assert not src.with_name("playlist_clean.m3u").exists()


def test_latin1_playlist_end_to_end(tmp_path, requests_mock, capsys):
    raw = b"#EXTM3U\n#EXTINF:-1,T\xe9l\xe9 Sud\nhttp://cdn/tele/index.m3u8\n"
    src = tmp_path / "latin1.m3u"
    src.write_bytes(raw)
    requests_mock.get("http://cdn/tele/index.m3u8", status_code=200)
    requests_mock.head("http://cdn/tele/index.m3u8", headers={"Content-Type": HLS})
    assert check_m3u.main([str(src), "--no-ffprobe"]) == 0
    assert (tmp_path / "latin1_clean.m3u").read_bytes() == raw
    assert "[1] T\ufffdl\ufffd Sud ... " in capsys.readouterr().out
