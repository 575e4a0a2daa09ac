from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

# Réglages du run: valeurs par défaut, surchargées par l'environnement puis par la ligne de commande.

ENV_PREFIX = "M3U_CHECK_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env(name: str) -> str:
    return (os.environ.get(ENV_PREFIX + name) or "").strip()


def _env_int(name: str, default: int) -> int:
    v = _env(name)
    if not v:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    v = _env(name)
    if not v:
        return default
    try:
        f = float(v)
    except ValueError:
        return default
    return f if f > 0 else default


def _env_bool(name: str, default: bool) -> bool:
    v = _env(name).lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    return default


@dataclass(frozen=True)
class CheckSettings:
    http_timeout_s: float = 10.0
    http_retries: int = 1
    probe_timeout_s: float = 15.0
    ffprobe_path: Optional[str] = None
    use_ffprobe: bool = True
    require_ffprobe: bool = False
    # Laisse ffprobe trancher les réponses application/octet-stream au lieu de les accepter d'office.
    defer_octet_stream: bool = False
    user_agent: str = "Mozilla/5.0"

    @classmethod
    def from_env(cls) -> "CheckSettings":
        base = cls()
        return cls(
            http_timeout_s=_env_float("HTTP_TIMEOUT", base.http_timeout_s),
            http_retries=max(0, _env_int("HTTP_RETRIES", base.http_retries)),
            probe_timeout_s=_env_float("PROBE_TIMEOUT", base.probe_timeout_s),
            ffprobe_path=_env("FFPROBE") or None,
            use_ffprobe=_env_bool("USE_FFPROBE", base.use_ffprobe),
            require_ffprobe=_env_bool("REQUIRE_FFPROBE", base.require_ffprobe),
            defer_octet_stream=_env_bool("DEFER_OCTET_STREAM", base.defer_octet_stream),
            user_agent=_env("USER_AGENT") or base.user_agent,
        )

    def with_overrides(self, **changes) -> "CheckSettings":
        """Applique les options CLI; les valeurs None sont ignorées."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)
