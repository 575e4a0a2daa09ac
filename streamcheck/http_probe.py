from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import requests

from .errors import NetworkError

# Sondes HTTP d'une URL de chaîne: code de statut (GET sans lire le corps) et Content-Type (HEAD).

LogFn = Callable[[str], None]

STATUS_UNREACHABLE = 0
CONTENT_TYPE_UNKNOWN = "unknown"

# Codes pour lesquels une nouvelle tentative a du sens (comme curl --retry).
RETRY_STATUSES = {408, 429, 500, 502, 503, 504}


@dataclass
class HttpProbe:
    status: int = STATUS_UNREACHABLE
    content_type: str = ""
    final_url: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400

    @property
    def status_text(self) -> str:
        return f"{self.status:03d}"


def new_session(user_agent: str = "Mozilla/5.0") -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": user_agent})
    return session


def _send(
    session: requests.Session,
    method: str,
    url: str,
    timeout_s: float,
    retries: int,
    log: Optional[LogFn] = None,
) -> requests.Response:
    """
    Envoie la requête avec au plus `retries` nouvelles tentatives sur erreur transitoire.
    Lève NetworkError si aucune réponse n'a pu être obtenue.
    """
    attempts = max(0, int(retries)) + 1
    last_error = ""
    for attempt in range(1, attempts + 1):
        try:
            r = session.request(
                method,
                url,
                allow_redirects=True,
                timeout=(timeout_s, timeout_s),
                stream=(method == "GET"),
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            last_error = f"{type(e).__name__}"
            if log:
                log(f"[HTTP] {method} attempt {attempt}/{attempts} failed: {last_error}")
            continue
        except (requests.exceptions.RequestException, UnicodeError) as e:
            # URL invalide, schéma manquant, octets non UTF-8...: inutile de réessayer
            raise NetworkError(url, f"{type(e).__name__}") from e

        if r.status_code in RETRY_STATUSES and attempt < attempts:
            if log:
                log(f"[HTTP] {method} attempt {attempt}/{attempts} got {r.status_code}, retrying")
            r.close()
            continue
        return r

    raise NetworkError(url, last_error or "no response")


def fetch_status(
    url: str,
    session: requests.Session,
    timeout_s: float = 10.0,
    retries: int = 1,
    log: Optional[LogFn] = None,
) -> HttpProbe:
    """GET avec redirections; seul le code final compte, le corps n'est pas téléchargé."""
    try:
        r = _send(session, "GET", url, timeout_s, retries, log=log)
    except NetworkError as e:
        return HttpProbe(status=STATUS_UNREACHABLE, error=str(e))
    try:
        return HttpProbe(
            status=r.status_code,
            content_type=r.headers.get("Content-Type", ""),
            final_url=r.url or url,
        )
    finally:
        r.close()


def fetch_content_type(
    url: str,
    session: requests.Session,
    timeout_s: float = 10.0,
    retries: int = 1,
    log: Optional[LogFn] = None,
) -> HttpProbe:
    """HEAD avec redirections. Content-Type absent -> "", échec réseau -> "unknown"."""
    try:
        r = _send(session, "HEAD", url, timeout_s, retries, log=log)
    except NetworkError as e:
        return HttpProbe(status=STATUS_UNREACHABLE, content_type=CONTENT_TYPE_UNKNOWN, error=str(e))
    try:
        return HttpProbe(
            status=r.status_code,
            content_type=(r.headers.get("Content-Type") or "").strip(),
            final_url=r.url or url,
        )
    finally:
        r.close()
