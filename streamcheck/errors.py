from __future__ import annotations

# Erreurs du vérificateur: les quatre premières arrêtent le run, NetworkError reste locale à une entrée.


class CheckError(Exception):
    """Base of every error raised by the checker."""


class UsageError(CheckError, ValueError):
    pass


class NotFoundError(CheckError, FileNotFoundError):
    pass


class FormatError(CheckError, ValueError):
    pass


class DependencyError(CheckError, RuntimeError):
    pass


class NetworkError(CheckError, RuntimeError):
    """HTTP request failed after retries. Never escapes the classifier."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url
