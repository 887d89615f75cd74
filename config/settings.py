# config/settings.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import os
from dotenv import load_dotenv

load_dotenv()

@dataclass(frozen=True)
class Settings:
    # GRAPH (delegado, cuenta del usuario)
    GRAPH_CLIENT_ID: str = os.getenv("MAIL_APP_CLIENT_ID", "")
    GRAPH_AUTHORITY: str = os.getenv("GRAPH_AUTHORITY", "https://login.microsoftonline.com/common")
    GRAPH_BASE: str = os.getenv("GRAPH_BASE", "https://graph.microsoft.com/v1.0")
    GRAPH_SCOPES: str = os.getenv(
        "GRAPH_SCOPES",
        "User.Read,Mail.ReadWrite,Mail.Send,Calendars.Read,MailboxSettings.Read,People.Read",
    )
    TOKEN_CACHE_PATH: str = os.getenv("TOKEN_CACHE_PATH", "./.token_cache.json")
    HTTP_TIMEOUT: int = int(os.getenv("HTTP_TIMEOUT", 30))

    # Bandeja / calendario
    INBOX_TOP: int = int(os.getenv("INBOX_TOP", 100))
    CALENDAR_TOP: int = int(os.getenv("CALENDAR_TOP", 3))
    CALENDAR_WINDOW_DAYS: int = int(os.getenv("CALENDAR_WINDOW_DAYS", 2))
    TZ: str = os.getenv("TZ", "UTC")

    # Polling
    POLL_INTERVAL: int = int(os.getenv("POLL_INTERVAL", 10))
    SYNC_CURSOR_POLICY: str = os.getenv("SYNC_CURSOR_POLICY", "now").lower()  # now | max_received

    WEBMAIL_URL: str = os.getenv("WEBMAIL_URL", "https://outlook.live.com/mail/0/")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # ───────── helpers ─────────
    def scopes(self) -> list[str]:
        # offline_access lo añade MSAL por su cuenta (es un scope reservado)
        raw = (self.GRAPH_SCOPES or "").strip()
        return [s.strip() for s in raw.split(",") if s.strip() and s.strip() != "offline_access"]

    def token_cache_path(self) -> Path:
        return Path(self.TOKEN_CACHE_PATH).expanduser().resolve()
