# domain/errors.py
from __future__ import annotations
from typing import Any


class AuthError(RuntimeError):
    """Fallo al obtener token (MSAL devuelve un dict con 'error' en vez de 'access_token')."""

    def __init__(self, message: str, result: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.result = result or {}


class DuplicateRecipientError(ValueError):
    pass
