# domain/mail_cache.py
from __future__ import annotations
import logging
from typing import Callable, Iterable, Iterator, List

from domain.models import MailItem

logger = logging.getLogger(__name__)

Listener = Callable[["MailCache"], None]


class MailCache:
    """
    Copia local (solo lectura) de la bandeja, de más reciente a más antiguo.
    El contador de no leídos se recalcula entero en cada cambio de pertenencia
    (insert / append / remove / clear). O(n), con n acotado por INBOX_TOP.
    """

    def __init__(self) -> None:
        self._items: List[MailItem] = []
        self._listeners: List[Listener] = []
        self.number_unread: int = 0

    # ───────── suscripción ─────────
    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        self.number_unread = sum(1 for m in self._items if not m.is_read)
        for cb in list(self._listeners):
            cb(self)

    # ───────── mutaciones ─────────
    def append(self, item: MailItem) -> None:
        self._items.append(item)
        self._changed()

    def insert(self, index: int, item: MailItem) -> None:
        self._items.insert(index, item)
        self._changed()

    def remove(self, item: MailItem) -> None:
        self._items.remove(item)
        self._changed()

    def clear(self) -> None:
        self._items.clear()
        self._changed()

    def replace_all(self, items: Iterable[MailItem]) -> None:
        self.clear()
        for it in items:
            self.append(it)

    # ───────── lectura ─────────
    def items(self) -> list[MailItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[MailItem]:
        return iter(list(self._items))

    def __getitem__(self, index: int) -> MailItem:
        return self._items[index]
