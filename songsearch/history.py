# songsearch/history.py
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import List, Optional

from .storage import InMemoryKeyValueStore, KeyValueStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "song_search_history"
MIN_QUERY_LEN = 2


class SearchHistory:
    """
    Historial de búsquedas: único, más reciente primero, con capacidad.
    La persistencia es best-effort: si el store falla se loguea y el
    estado en memoria sigue siendo la fuente de verdad de la sesión.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        limit: int = 10,
        enabled: bool = True,
        key: str = HISTORY_KEY,
    ):
        if limit < 1:
            raise ValueError("limit debe ser >= 1")
        self.store = store if store is not None else InMemoryKeyValueStore()
        self.limit = limit
        self.enabled = enabled
        self.key = key
        # el primero del OrderedDict es el más reciente
        self._entries: "OrderedDict[str, None]" = OrderedDict()

    def load(self) -> List[str]:
        try:
            raw = self.store.get(self.key)
        except Exception:
            logger.warning("no se pudo leer el historial", exc_info=True)
            return self.entries()

        self._entries.clear()
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("historial persistido con formato inválido; se ignora")
            return []

        for q in raw:
            if isinstance(q, str) and q not in self._entries:
                self._entries[q] = None
            if len(self._entries) >= self.limit:
                break
        return self.entries()

    def append(self, query: str) -> None:
        if not self.enabled or not query or len(query) < MIN_QUERY_LEN:
            return

        self._entries[query] = None
        self._entries.move_to_end(query, last=False)
        while len(self._entries) > self.limit:
            self._entries.popitem(last=True)

        self._save()

    def entries(self) -> List[str]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        try:
            self.store.remove(self.key)
        except Exception:
            logger.warning("no se pudo borrar el historial persistido", exc_info=True)

    def __len__(self) -> int:
        return len(self._entries)

    def _save(self) -> None:
        try:
            self.store.set(self.key, self.entries())
        except Exception:
            logger.warning("no se pudo guardar el historial", exc_info=True)
