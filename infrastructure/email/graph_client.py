# infrastructure/email/graph_client.py
from __future__ import annotations
import logging
import re
from datetime import datetime, timezone
from typing import List, Dict, Any, Iterable, Optional, Protocol
import requests

from domain.models import CalendarEvent, EmailAddress, MailItem

logger = logging.getLogger(__name__)

MESSAGE_SELECT = "id,subject,body,from,isRead,receivedDateTime"
# Graph devuelve fracciones de 7 dígitos ("2024-05-01T10:00:00.0000000"); fromisoformat admite 6
_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


class TokenProvider(Protocol):
    def acquire_token(self, force_refresh: bool = False) -> str: ...


def parse_graph_datetime(value: Optional[str], *, assume_utc: bool = True) -> datetime:
    if not value:
        raise ValueError("Fecha Graph vacía")
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    s = _FRACTION_RE.sub(r".\1", s)
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None and assume_utc:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_filter_datetime(dt: datetime) -> str:
    """Formato de los $filter de Graph: yyyy-MM-ddTHH:mm:ssZ (UTC, sin fracción)."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    # isoformat y no strftime: %Y no rellena a 4 dígitos el año 1 en glibc
    return dt.replace(tzinfo=None, microsecond=0).isoformat() + "Z"


def mail_item_from_graph(raw: Dict[str, Any]) -> MailItem:
    sender = (raw.get("from", {}) or {}).get("emailAddress", {}) or {}
    body = raw.get("body", {}) or {}
    return MailItem(
        id=raw["id"],
        subject=raw.get("subject") or "",
        body=body.get("content") or "",
        sender=sender.get("address") or "",
        sender_name=sender.get("name") or "",
        is_read=bool(raw.get("isRead", False)),
        received=parse_graph_datetime(raw.get("receivedDateTime")),
    )


def calendar_event_from_graph(raw: Dict[str, Any]) -> CalendarEvent:
    start = raw.get("start", {}) or {}
    end = raw.get("end", {}) or {}
    # Con Prefer: outlook.timezone las horas vienen en la zona del buzón (sin offset)
    return CalendarEvent(
        id=raw.get("id") or "",
        subject=raw.get("subject") or "",
        start=parse_graph_datetime(start.get("dateTime"), assume_utc=False),
        end=parse_graph_datetime(end.get("dateTime"), assume_utc=False),
        time_zone=start.get("timeZone") or "",
        location=((raw.get("location", {}) or {}).get("displayName") or ""),
    )


def build_message(*, subject: str, body_text: str, to: Iterable[EmailAddress]) -> Dict[str, Any]:
    return {
        "subject": subject,
        "body": {"contentType": "Text", "content": body_text},
        "toRecipients": [
            {"emailAddress": {"address": a.address, **({"name": a.name} if a.name else {})}}
            for a in to
        ],
    }


class GraphMailClient:
    """Cliente delegado (/me) sobre Microsoft Graph. El token lo gestiona la sesión."""

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        base: str = "https://graph.microsoft.com/v1.0",
        timeout: int = 30,
    ) -> None:
        self.token_provider = token_provider
        self.base = base.rstrip("/")
        self.timeout = timeout

    def _headers(self, force_refresh: bool = False) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token_provider.acquire_token(force_refresh=force_refresh)}"}

    # ───────── HTTP helpers ─────────
    def _get(
        self,
        url: str,
        params: Dict[str, Any] | None = None,
        extra_headers: Dict[str, str] | None = None,
    ) -> Dict[str, Any]:
        extra = extra_headers or {}
        r = requests.get(url, headers={**self._headers(), **extra}, params=params, timeout=self.timeout)
        if r.status_code == 401:
            # Token caducado → forzamos refresh y reintentamos UNA vez
            r = requests.get(
                url, headers={**self._headers(force_refresh=True), **extra}, params=params, timeout=self.timeout
            )
        r.raise_for_status()
        return r.json()

    def _post(self, url: str, json: Dict[str, Any]) -> requests.Response:
        """Devuelve el Response (Graph puede responder 202 sin cuerpo)."""
        headers = {**self._headers(), "Content-Type": "application/json"}
        r = requests.post(url, headers=headers, json=json, timeout=self.timeout)
        if r.status_code == 401:
            headers = {**self._headers(force_refresh=True), "Content-Type": "application/json"}
            r = requests.post(url, headers=headers, json=json, timeout=self.timeout)
        r.raise_for_status()
        return r

    # ───────── perfil ─────────
    def get_me(self) -> Dict[str, Any]:
        return self._get(f"{self.base}/me")

    def get_mailbox_time_zone(self) -> str:
        data = self._get(f"{self.base}/me/mailboxSettings")
        return data.get("timeZone") or "UTC"

    # ───────── mensajes ─────────
    def list_inbox(self, top: int = 100) -> List[MailItem]:
        url = f"{self.base}/me/mailFolders/inbox/messages"
        data = self._get(url, params={"$top": top, "$select": MESSAGE_SELECT})
        return [mail_item_from_graph(m) for m in data.get("value", [])]

    def inbox_delta_since(self, cursor: datetime) -> List[MailItem]:
        url = f"{self.base}/me/mailFolders/inbox/messages/delta"
        params = {"$filter": f"receivedDateTime gt {format_filter_datetime(cursor)}"}
        data = self._get(url, params=params)
        items: List[MailItem] = []
        for m in data.get("value", []):
            if "@removed" in m:
                logger.debug("Delta: ignorado mensaje eliminado %s", m.get("id"))
                continue
            items.append(mail_item_from_graph(m))
        return items

    # ───────── calendario ─────────
    def calendar_view(self, *, start: datetime, end: datetime, time_zone: str, top: int = 3) -> List[CalendarEvent]:
        url = f"{self.base}/me/calendarView"
        params = {
            "startDateTime": start.isoformat(),
            "endDateTime": end.isoformat(),
            "$orderby": "start/dateTime",
            "$top": top,
        }
        data = self._get(url, params=params, extra_headers={"Prefer": f'outlook.timezone="{time_zone}"'})
        return [calendar_event_from_graph(e) for e in data.get("value", [])]

    # ───────── contactos recientes ─────────
    def list_people(self) -> List[EmailAddress]:
        data = self._get(f"{self.base}/me/people")
        out: List[EmailAddress] = []
        for person in data.get("value", []):
            scored = person.get("scoredEmailAddresses") or []
            address = (scored[0].get("address") or "").strip() if scored else ""
            if not address:
                continue
            out.append(EmailAddress(address=address, name=person.get("displayName") or ""))
        return out

    # ───────── enviar / responder (Graph responde 202 sin cuerpo) ─────────
    def send_mail(self, message: Dict[str, Any], *, save_to_sent_items: bool = True) -> None:
        r = self._post(f"{self.base}/me/sendMail", json={"message": message, "saveToSentItems": save_to_sent_items})
        if r.status_code not in (200, 202):
            logger.warning("send_mail status=%s body=%s", r.status_code, r.text or "<empty>")

    def reply(self, message_id: str, message: Dict[str, Any]) -> None:
        r = self._post(f"{self.base}/me/messages/{message_id}/reply", json={"message": message})
        if r.status_code not in (200, 202):
            logger.warning("reply status=%s body=%s", r.status_code, r.text or "<empty>")
