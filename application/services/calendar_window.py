# application/services/calendar_window.py
from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from tzlocal.windows_tz import win_tz

logger = logging.getLogger(__name__)


def resolve_zone(tz_name: str, fallback: str = "UTC") -> ZoneInfo:
    """
    Graph suele devolver nombres de zona de Windows ("Romance Standard Time"): se traducen
    a IANA con la tabla de tzlocal. Si tampoco así se encuentra, se usa la zona configurada (TZ).
    """
    try:
        return ZoneInfo(win_tz.get(tz_name, tz_name))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Zona horaria '%s' desconocida; se usa %s", tz_name, fallback)
        return ZoneInfo(fallback)


def start_of_week_utc(now_utc: datetime, tz_name: str, fallback: str = "UTC") -> datetime:
    """Domingo 00:00 de la semana actual en la zona del buzón, expresado en UTC."""
    zone = resolve_zone(tz_name, fallback)
    local = now_utc.astimezone(zone)
    # weekday(): lunes=0 … domingo=6
    days_since_sunday = (local.weekday() + 1) % 7
    sunday = (local - timedelta(days=days_since_sunday)).date()
    start_local = datetime(sunday.year, sunday.month, sunday.day, tzinfo=zone)
    return start_local.astimezone(timezone.utc)


def calendar_window(now_utc: datetime, tz_name: str, days: int = 2, fallback: str = "UTC") -> tuple[datetime, datetime]:
    start = start_of_week_utc(now_utc, tz_name, fallback)
    return start, start + timedelta(days=days)
