"""Filtre de playlists M3U: garde les flux (HLS, MPEG-TS...) et retire les liens MP4."""

__version__ = "0.3.0"
