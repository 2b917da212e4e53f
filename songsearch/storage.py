# songsearch/storage.py
from __future__ import annotations

import json
import logging
import os
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Core types (catálogo)
# -------------------------------------------------------------------

@dataclass(frozen=True)
class Creator:
    name: str
    aliases: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Song:
    id: str
    titles: Tuple[str, ...]
    creators: Tuple[Creator, ...] = ()
    related_info: Tuple[str, ...] = ()
    extra_info: Optional[str] = None
    path: Optional[str] = None
    audio_path: Optional[str] = None

    @property
    def primary_title(self) -> str:
        return self.titles[0]


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _str_tuple(value: Any, what: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{what} debe ser una lista de strings")
    return tuple(str(v) for v in value if v not in (None, ""))


def _opt_str(value: Any) -> Optional[str]:
    if value in (None, ""):
        return None
    return str(value)


def song_from_dict(raw: Mapping[str, Any]) -> Song:
    """
    Convierte una entrada del documento de catálogo en Song.
    Formato esperado (claves del catálogo original):
      {"id", "titles", "creators": [{"name", "aliases"}], "relatedInfo",
       "extraInfo", "path", "audioPath"}
    Levanta ValueError si la entrada no es válida.
    """
    if not isinstance(raw, Mapping):
        raise ValueError("la canción debe ser un objeto")

    song_id = raw.get("id")
    if song_id in (None, ""):
        raise ValueError("la canción no tiene id")

    titles = _str_tuple(raw.get("titles"), "titles")
    if not titles:
        raise ValueError(f"la canción '{song_id}' no tiene titles")

    creators: List[Creator] = []
    for c in raw.get("creators") or []:
        if not isinstance(c, Mapping) or not c.get("name"):
            raise ValueError(f"creator inválido en '{song_id}'")
        creators.append(Creator(name=str(c["name"]), aliases=_str_tuple(c.get("aliases"), "aliases")))

    return Song(
        id=str(song_id),
        titles=titles,
        creators=tuple(creators),
        related_info=_str_tuple(raw.get("relatedInfo", raw.get("related_info")), "relatedInfo"),
        extra_info=_opt_str(raw.get("extraInfo", raw.get("extra_info"))),
        path=_opt_str(raw.get("path")),
        audio_path=_opt_str(raw.get("audioPath", raw.get("audio_path"))),
    )


def parse_songs(document: Any) -> List[Song]:
    """
    Devuelve SIEMPRE una lista (posiblemente vacía), nunca levanta:
      - documento None / no-dict / sin "songs" -> []
      - entradas inválidas se descartan con warning
      - ids duplicados: gana la primera aparición
    """
    if document is None:
        logger.warning("catálogo vacío: no hay documento")
        return []
    if not isinstance(document, Mapping):
        logger.warning("catálogo inválido: se esperaba un objeto, llegó %s", type(document).__name__)
        return []

    raw_songs = document.get("songs")
    if not isinstance(raw_songs, (list, tuple)):
        logger.warning("catálogo inválido: falta la colección 'songs' o no es una lista")
        return []

    songs: List[Song] = []
    seen = set()
    for i, raw in enumerate(raw_songs):
        try:
            song = song_from_dict(raw)
        except ValueError as e:
            logger.warning("canción #%d descartada: %s", i, e)
            continue
        if song.id in seen:
            logger.warning("id duplicado '%s' descartado", song.id)
            continue
        seen.add(song.id)
        songs.append(song)
    return songs


def load_catalog(path: Path) -> Optional[Dict[str, Any]]:
    """Lee el documento JSON del catálogo. Si no se puede leer devuelve None."""
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("no se pudo leer el catálogo %s: %s", path, e)
        return None


# -------------------------------------------------------------------
# Key/value store (persistencia del historial)
# -------------------------------------------------------------------

class KeyValueStore(Protocol):
    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


@dataclass
class InMemoryKeyValueStore:
    data: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        return self.data.get(key)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)

    def clear(self) -> None:
        self.data.clear()


class SQLiteKeyValueStore:
    """
    Tabla kv(key, value) con valores serializados en JSON.
    Cada operación abre y cierra su propia conexión.
    """

    def __init__(self, sqlite_path: Path):
        self.sqlite_path = Path(sqlite_path)
        self._ensure_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.sqlite_path))

    def _ensure_db(self) -> None:
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Any:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO kv(key, value) VALUES(?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, payload),
            )
            conn.commit()
        finally:
            conn.close()

    def remove(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def clear(self) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv")
            conn.commit()
        finally:
            conn.close()


# -------------------------------------------------------------------
# Public factory
# -------------------------------------------------------------------

def build_history_store() -> KeyValueStore:
    """
    Config por env:
      - HISTORY_STORAGE=memory|sqlite
      - HISTORY_SQLITE_PATH=/data/history.db
    Si sqlite no se puede abrir, cae a memoria (el historial es best-effort).
    """
    storage = os.getenv("HISTORY_STORAGE", "memory").strip().lower()

    if storage == "sqlite":
        sqlite_path = Path(os.getenv("HISTORY_SQLITE_PATH", "/data/history.db"))
        try:
            return SQLiteKeyValueStore(sqlite_path)
        except (sqlite3.Error, OSError) as e:
            logger.warning("no se pudo abrir %s (%s); historial solo en memoria", sqlite_path, e)

    return InMemoryKeyValueStore()


def build_catalog_document() -> Optional[Dict[str, Any]]:
    """
    Config por env:
      - CATALOG_PATH=/app/data/catalog.json
    """
    catalog_path = Path(os.getenv("CATALOG_PATH", "/app/data/catalog.json"))
    return load_catalog(catalog_path)
