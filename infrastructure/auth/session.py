# infrastructure/auth/session.py
from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol
import msal

from domain.errors import AuthError
from infrastructure.email.graph_client import GraphMailClient
from infrastructure.filesystem.storage import TokenCacheStorage

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    SIGNED_OUT = "signed_out"
    LOADING = "loading"
    SIGNED_IN = "signed_in"


class SessionObserver(Protocol):
    def on_session_state_changed(self, session: "GraphSession", old: SessionState, new: SessionState) -> None: ...


class GraphSession:
    """
    Sesión delegada del usuario (MSAL, cliente público). Sustituye al proveedor global:
    se pasa explícitamente a quien la necesite y avisa a sus observadores en cada cambio de estado.
    """

    def __init__(
        self,
        *,
        client_id: str,
        authority: str,
        scopes: List[str],
        cache_storage: TokenCacheStorage,
        graph_base: str = "https://graph.microsoft.com/v1.0",
        timeout: int = 30,
        app_factory: Callable[..., Any] = msal.PublicClientApplication,
    ) -> None:
        self.client_id = client_id
        self.authority = authority
        self.scopes = scopes
        self.cache_storage = cache_storage
        self.graph_base = graph_base
        self.timeout = timeout
        self._app_factory = app_factory
        self._app: Any = None
        self._account: Optional[Dict[str, Any]] = None
        self._client: Optional[GraphMailClient] = None
        self._observers: List[SessionObserver] = []
        self.state = SessionState.SIGNED_OUT

    # ───────── observadores ─────────
    def subscribe(self, observer: SessionObserver) -> None:
        self._observers.append(observer)

    def _set_state(self, new: SessionState) -> None:
        old = self.state
        if old == new:
            return
        self.state = new
        logger.info("Sesión: %s -> %s", old.value, new.value)
        for obs in list(self._observers):
            obs.on_session_state_changed(self, old, new)

    # ───────── MSAL ─────────
    def _msal_app(self) -> Any:
        if self._app is None:
            if not self.client_id:
                raise AuthError("Falta el identificador de la aplicación (MAIL_APP_CLIENT_ID)")
            self._app = self._app_factory(
                self.client_id,
                authority=self.authority,
                token_cache=self.cache_storage.load(),
            )
        return self._app

    def _accept(self, result: Optional[Dict[str, Any]]) -> bool:
        if not result or "access_token" not in result:
            return False
        accounts = self._msal_app().get_accounts()
        self._account = accounts[0] if accounts else self._account
        self.cache_storage.save()
        return True

    def try_silent_sign_in(self) -> bool:
        app = self._msal_app()
        accounts = app.get_accounts()
        if not accounts:
            return False
        self._set_state(SessionState.LOADING)
        result = app.acquire_token_silent(self.scopes, account=accounts[0])
        if self._accept(result):
            self._set_state(SessionState.SIGNED_IN)
            return True
        self._set_state(SessionState.SIGNED_OUT)
        return False

    def sign_in(self) -> None:
        self._set_state(SessionState.LOADING)
        result = self._msal_app().acquire_token_interactive(scopes=self.scopes)
        if not self._accept(result):
            self._set_state(SessionState.SIGNED_OUT)
            raise AuthError(f"MSAL token error: {result}", result)
        self._set_state(SessionState.SIGNED_IN)

    def establish(self) -> None:
        """Intento silencioso y, si sigue sin sesión, login interactivo."""
        silent_ok = self.try_silent_sign_in()
        if self.state == SessionState.SIGNED_OUT and not silent_ok:
            self.sign_in()

    def acquire_token(self, force_refresh: bool = False) -> str:
        if self._account is None:
            raise AuthError("No hay cuenta con sesión iniciada")
        result = self._msal_app().acquire_token_silent(
            self.scopes, account=self._account, force_refresh=force_refresh
        )
        if not result or "access_token" not in result:
            raise AuthError(f"MSAL token error: {result}", result)
        self.cache_storage.save()
        return result["access_token"]

    def get_client(self) -> Optional[GraphMailClient]:
        if self.state != SessionState.SIGNED_IN:
            return None
        if self._client is None:
            self._client = GraphMailClient(token_provider=self, base=self.graph_base, timeout=self.timeout)
        return self._client
