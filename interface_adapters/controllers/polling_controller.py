# interface_adapters/controllers/polling_controller.py
from __future__ import annotations
import logging
import webbrowser
from typing import Callable, Optional

from config.settings import Settings
from application.use_cases.mailbox_sync_usecase import MailboxSyncUseCase
from application.use_cases.compose_usecase import ComposeMailUseCase, Navigator
from domain.models import CursorPolicy
from infrastructure.auth.session import GraphSession, SessionState
from infrastructure.filesystem.storage import TokenCacheStorage

logger = logging.getLogger(__name__)


def build_session(settings: Settings) -> GraphSession:
    return GraphSession(
        client_id=settings.GRAPH_CLIENT_ID,
        authority=settings.GRAPH_AUTHORITY,
        scopes=settings.scopes(),
        cache_storage=TokenCacheStorage(settings.token_cache_path()),
        graph_base=settings.GRAPH_BASE,
        timeout=settings.HTTP_TIMEOUT,
    )


class PollingController:
    """
    Vista de bandeja sin interfaz: escucha la sesión, lanza la carga inicial al iniciar sesión
    y ejecuta un poll incremental por cada llamada a run_once().
    """

    def __init__(
        self,
        settings: Settings,
        *,
        session: Optional[GraphSession] = None,
        sync: Optional[MailboxSyncUseCase] = None,
        opener: Callable[[str], object] = webbrowser.open,
    ) -> None:
        self.settings = settings
        self.session = session or build_session(settings)
        self.sync = sync or MailboxSyncUseCase(
            session=self.session,
            cursor_policy=CursorPolicy.parse(settings.SYNC_CURSOR_POLICY),
            inbox_top=settings.INBOX_TOP,
            calendar_top=settings.CALENDAR_TOP,
            window_days=settings.CALENDAR_WINDOW_DAYS,
            fallback_tz=settings.TZ,
        )
        self.opener = opener
        self.session.subscribe(self)

    # ───────────────────────── sesión ─────────────────────────
    def on_session_state_changed(self, session: GraphSession, old: SessionState, new: SessionState) -> None:
        if new != SessionState.SIGNED_IN:
            return
        if session.get_client() is None:
            logger.info("Sesión iniciada pero sin cliente disponible; se ignora")
            return
        if not self.sync.loaded:
            self.sync.initial_load()

    # ───────────────────────── navegación ─────────────────────────
    def on_navigated_to(self) -> None:
        self.sync.clear()
        self.session.establish()

    def refresh(self) -> None:
        self.sync.clear()
        self.sync.initial_load()

    def go_to_webmail(self) -> None:
        self.opener(self.settings.WEBMAIL_URL)

    def compose(self, navigator: Navigator) -> ComposeMailUseCase:
        return ComposeMailUseCase(session=self.session, navigator=navigator)

    # ───────────────────────── ejecución ─────────────────────────
    def run_once(self) -> int:
        return self.sync.incremental_sync()
