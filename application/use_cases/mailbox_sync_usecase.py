# application/use_cases/mailbox_sync_usecase.py
from __future__ import annotations
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Protocol

from application.services.calendar_window import calendar_window
from domain.mail_cache import MailCache
from domain.models import MIN_SYNC, CalendarEvent, CursorPolicy, MailItem, SyncState

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ClientSource(Protocol):
    def get_client(self) -> Optional[Any]: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MailboxSyncUseCase:
    """
    Carga inicial + sincronización incremental de la bandeja.

    Un único escritor: toda escritura en la caché se hace con `_lock` tomado.
    La carga inicial espera al lock; el poll incremental no espera (si hay una carga
    en curso ese tick se descarta y lo recoge el siguiente).
    """

    def __init__(
        self,
        *,
        session: ClientSource,
        clock: Clock = utc_now,
        cursor_policy: CursorPolicy = CursorPolicy.NOW,
        inbox_top: int = 100,
        calendar_top: int = 3,
        window_days: int = 2,
        fallback_tz: str = "UTC",
    ) -> None:
        self.session = session
        self.clock = clock
        self.cursor_policy = cursor_policy
        self.inbox_top = inbox_top
        self.calendar_top = calendar_top
        self.window_days = window_days
        self.fallback_tz = fallback_tz

        self.cache = MailCache()
        self.events: List[CalendarEvent] = []
        self.account_name: str = ""
        self.last_sync: datetime = MIN_SYNC
        self.state = SyncState.IDLE
        self.loaded = False
        self._lock = threading.Lock()

    # ───────── cursor ─────────
    def _advance_cursor(self, merged: Iterable[MailItem]) -> None:
        if self.cursor_policy == CursorPolicy.MAX_RECEIVED:
            received = [m.received for m in merged]
            if not received:
                return
            candidate = max(received)
        else:
            candidate = self.clock()
        # nunca hacia atrás
        if candidate > self.last_sync:
            self.last_sync = candidate

    # ───────── vistas ─────────
    def clear(self) -> None:
        """Vacía caché y eventos; la siguiente señal de sesión vuelve a cargar."""
        with self._lock:
            self.cache.clear()
            self.events = []
            self.loaded = False

    # ───────── carga inicial ─────────
    def initial_load(self) -> int:
        client = self.session.get_client()
        if client is None:
            logger.info("Carga inicial omitida: no hay cliente autenticado")
            return 0

        self.loaded = True
        with self._lock:
            self.state = SyncState.LOADING
            try:
                me = client.get_me()
                messages = client.list_inbox(top=self.inbox_top)
                tz_name = client.get_mailbox_time_zone()
                start, end = calendar_window(self.clock(), tz_name, self.window_days, self.fallback_tz)
                events = client.calendar_view(start=start, end=end, time_zone=tz_name, top=self.calendar_top)

                # caché, eventos y cursor se escriben juntos, solo si todos los fetch han ido bien
                self.account_name = me.get("displayName") or ""
                self.cache.replace_all(messages)
                self.events = events
                self._advance_cursor(messages)
            except Exception:
                self.loaded = False
                raise
            finally:
                self.state = SyncState.IDLE

        logger.info(
            "Carga inicial: %d correos (%d sin leer), %d eventos, cursor=%s",
            len(self.cache), self.cache.number_unread, len(self.events), self.last_sync.isoformat(),
        )
        return len(messages)

    # ───────── sincronización incremental ─────────
    def incremental_sync(self) -> int:
        client = self.session.get_client()
        if client is None:
            return 0

        if not self._lock.acquire(blocking=False):
            logger.debug("Poll omitido: carga en curso (%s)", self.state.value)
            return 0
        try:
            self.state = SyncState.POLLING
            logger.debug("Buscando correo nuevo desde %s", self.last_sync.isoformat())
            new_items = client.inbox_delta_since(self.last_sync)
            if not new_items:
                return 0
            # Uno a uno en la cabeza: un lote [a, b, c] queda como c, b, a
            for item in new_items:
                self.cache.insert(0, item)
            self._advance_cursor(new_items)
        finally:
            self.state = SyncState.IDLE
            self._lock.release()

        logger.info("Correos nuevos: %d (sin leer: %d)", len(new_items), self.cache.number_unread)
        return len(new_items)
