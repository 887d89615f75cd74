# infrastructure/filesystem/storage.py
from __future__ import annotations
from pathlib import Path
import msal

class TokenCacheStorage:
    """Persiste la caché de MSAL en disco para poder hacer sign-in silencioso entre ejecuciones."""

    def __init__(self, path: Path) -> None:
        self.path = path.resolve()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.cache = msal.SerializableTokenCache()

    def load(self) -> msal.SerializableTokenCache:
        if self.path.exists():
            self.cache.deserialize(self.path.read_text(encoding="utf-8"))
        return self.cache

    def save(self) -> None:
        if self.cache.has_state_changed:
            self.path.write_text(self.cache.serialize(), encoding="utf-8")
            self.cache.has_state_changed = False
