# domain/models.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

# Cursor inicial: "nunca sincronizado"
MIN_SYNC = datetime.min.replace(tzinfo=timezone.utc)


class MessageAction(str, Enum):
    REPLY = "reply"
    FORWARD = "forward"


class SyncState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    POLLING = "polling"


class CursorPolicy(str, Enum):
    """
    Cómo avanza el cursor de sincronización tras un fetch correcto.
      - NOW: al instante actual (UTC), aunque algún mensaje llegue entre la consulta y la asignación.
      - MAX_RECEIVED: al receivedDateTime más reciente de lo ya fusionado en caché.
    """
    NOW = "now"
    MAX_RECEIVED = "max_received"

    @classmethod
    def parse(cls, value: str) -> "CursorPolicy":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValueError(f"SYNC_CURSOR_POLICY no válida: {value!r} (now | max_received)") from None


@dataclass(frozen=True)
class EmailAddress:
    address: str
    name: str = ""


@dataclass
class MailItem:
    id: str
    subject: str
    body: str
    sender: str
    received: datetime
    is_read: bool = False
    sender_name: str = ""


@dataclass
class CalendarEvent:
    id: str
    subject: str
    start: datetime
    end: datetime
    time_zone: str
    location: str = ""


@dataclass
class ComposeDraft:
    subject: str = ""
    body: str = ""
    recipient_text: str = ""
    replying_to: Optional[MailItem] = None
    action: Optional[MessageAction] = None
    suggestions: list[EmailAddress] = field(default_factory=list)
