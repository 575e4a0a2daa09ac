from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Iterator, Tuple

from .errors import FormatError, NotFoundError
from .models import ChannelEntry, UNKNOWN_CHANNEL

# Lecture/écriture des playlists M3U (EXTINF + URL) pour le filtrage.

M3U_HEADER = "#EXTM3U"
EXTINF_PREFIX = "#EXTINF"
EXTINF_NAME_RE = re.compile(r",([^,]*)$")

SHORT_NAME_WIDTH = 30


def display_name(extinf: str) -> str:
    """Nom affiché: texte après la dernière virgule de la ligne #EXTINF."""
    m = EXTINF_NAME_RE.search(extinf)
    name = (m.group(1) if m else "").strip()
    return name or UNKNOWN_CHANNEL


def printable(text: str) -> str:
    """Octets non UTF-8 conservés par surrogateescape -> U+FFFD, pour l'affichage seulement."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def short_name(name: str, width: int = SHORT_NAME_WIDTH) -> str:
    name = printable(name)
    if len(name) <= width:
        return name
    return name[:width] + "..."


def default_output_path(input_path: str | Path) -> Path:
    """playlist.m3u -> playlist_clean.m3u (même dossier)."""
    p = Path(input_path)
    return p.with_name(f"{p.stem}_clean{p.suffix}")


def _chomp(line: str) -> str:
    return line.rstrip("\r\n")


def read_header(path: str | Path) -> str:
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"input file '{path}' does not exist")
    # utf-8-sig: un BOM éventuel ne fait pas partie de l'en-tête
    with path.open("r", encoding="utf-8-sig", errors="surrogateescape") as f:
        first = _chomp(f.readline())
    if not first.startswith(M3U_HEADER):
        raise FormatError(f"file '{path}' is not a valid M3U playlist (missing {M3U_HEADER} header)")
    return first


def iter_entries(path: str | Path) -> Iterator[ChannelEntry]:
    """
    Parcourt la playlist après l'en-tête et produit les paires (#EXTINF, URL).
    La ligne qui suit un #EXTINF est prise comme URL quel que soit son contenu;
    un #EXTINF en fin de fichier sans ligne suivante est ignoré.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8-sig", errors="surrogateescape") as f:
        lines = iter(f)
        next(lines, None)
        line_no = 1
        for raw in lines:
            line_no += 1
            line = _chomp(raw)
            if not line.startswith(EXTINF_PREFIX):
                continue
            url_raw = next(lines, None)
            if url_raw is None:
                return
            yield ChannelEntry(
                extinf=line,
                url=_chomp(url_raw).strip(),
                name=display_name(line),
                line_no=line_no,
            )
            line_no += 1


def read_playlist(path: str | Path) -> Tuple[str, Iterator[ChannelEntry]]:
    """Valide l'en-tête tout de suite, puis renvoie (en-tête, générateur d'entrées)."""
    header = read_header(path)
    return header, iter_entries(path)


class PlaylistWriter:
    """
    Écrit la playlist filtrée dans un fichier temporaire du dossier cible,
    puis le déplace sur le chemin final à la sortie du bloc `with`.
    En cas d'exception (Ctrl-C compris) le temporaire est supprimé et la cible n'est pas touchée.
    """

    def __init__(self, path: str | Path, header: str = M3U_HEADER):
        self.path = Path(path)
        self.header = header
        self.count = 0
        self._fh = None
        self._tmp_path: Path | None = None

    def __enter__(self) -> "PlaylistWriter":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
        self._tmp_path = Path(tmp)
        self._fh = os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="\n")
        self._fh.write(self.header + "\n")
        return self

    def add(self, entry: ChannelEntry) -> None:
        if self._fh is None:
            raise RuntimeError("PlaylistWriter used outside of a with block")
        self._fh.write(entry.extinf + "\n")
        self._fh.write(entry.url + "\n")
        self.count += 1

    def __exit__(self, exc_type, exc, tb) -> None:
        assert self._fh is not None and self._tmp_path is not None
        try:
            if exc_type is None:
                self._fh.flush()
                os.fsync(self._fh.fileno())
            self._fh.close()
            if exc_type is None:
                os.replace(self._tmp_path, self.path)
        finally:
            if self._tmp_path.exists():
                self._tmp_path.unlink()
            self._fh = None
