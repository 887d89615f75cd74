# domain/recipients.py
from __future__ import annotations
import re
from typing import Iterable, Iterator, Optional

from domain.errors import DuplicateRecipientError
from domain.models import EmailAddress

EMAIL_RE = re.compile(r"^([\w.\-]+)@([\w\-]+)((\.(\w){2,3})+)$")
RECIPIENT_SEPARATOR = ";"


def is_valid_email(email: Optional[str]) -> bool:
    if email is None or not email.strip():
        return False
    e = email.strip()
    # el regex por sí solo admite "a.@b.com"; se rechaza explícitamente
    if e.endswith("."):
        return False
    m = EMAIL_RE.fullmatch(e)
    if not m:
        return False
    return not m.group(1).endswith(".")


class RecipientSet:
    """Direcciones confirmadas del borrador, en orden de inserción y sin repetidos (sin distinguir mayúsculas)."""

    def __init__(self, addresses: Iterable[EmailAddress] = ()) -> None:
        self._items: list[EmailAddress] = []
        for a in addresses:
            self.add(a)

    @staticmethod
    def _key(address: EmailAddress) -> str:
        return address.address.casefold()

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, EmailAddress):
            return False
        return any(self._key(a) == self._key(address) for a in self._items)

    def add(self, address: EmailAddress) -> None:
        if address in self:
            raise DuplicateRecipientError(f"Destinatario repetido: {address.address}")
        self._items.append(address)

    def clear(self) -> None:
        self._items.clear()

    def replace(self, addresses: Iterable[EmailAddress]) -> None:
        self._items.clear()
        for a in addresses:
            if a not in self:
                self._items.append(a)

    def addresses(self) -> list[str]:
        return [a.address for a in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[EmailAddress]:
        return iter(list(self._items))

    def __bool__(self) -> bool:
        return bool(self._items)


def parse_recipients(raw: Optional[str]) -> list[EmailAddress]:
    """
    Separa por ';' y recorta cada trozo. Todo o nada: si un solo trozo no es válido
    (incluido un trozo vacío por un ';' final) no se devuelve ningún destinatario.
    """
    parts = [p.strip() for p in (raw or "").split(RECIPIENT_SEPARATOR)]
    if not all(is_valid_email(p) for p in parts):
        return []
    rs = RecipientSet()
    rs.replace(EmailAddress(address=p) for p in parts)
    return list(rs)
