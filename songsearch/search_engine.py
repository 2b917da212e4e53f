# songsearch/search_engine.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import SearchConfig
from .fuzzy import FuzzyMatcher
from .history import SearchHistory
from .indexer import IndexedCatalog, build_index
from .matching import Romanizer, Span, highlight
from .query import preprocess
from .ranking import RankKey, rank_with_keys
from .storage import KeyValueStore, Song
from .suggestions import SuggestionEngine, SuggestionSet


@dataclass(frozen=True)
class MatchSpan:
    key: str
    value_index: int
    value: str
    start: int
    end: int


@dataclass(frozen=True)
class SearchHit:
    song_id: str
    score: float
    match_spans: Tuple[MatchSpan, ...] = ()


@dataclass(frozen=True)
class _IndexState:
    catalog: IndexedCatalog
    matcher: FuzzyMatcher
    suggestions: SuggestionEngine


class SongSearchEngine:
    """
    - Índice (pinyin + n-grams) construido una vez por catálogo
    - Matcher aproximado multi-campo (rapidfuzz)
    - Ranking determinístico:
        1) título exacto  2) posición en título  3) prefijo de título
        4) extra_info     5) creator exacto      6) alias exacto
        7) score del matcher asc
    - Historial de búsquedas y sugerencias por categoría
    """

    def __init__(
        self,
        catalog: Any,
        config: SearchConfig = SearchConfig(),
        history_store: Optional[KeyValueStore] = None,
        romanizer: Optional[Romanizer] = None,
    ):
        self.config = config
        self.romanizer = romanizer
        self.history = SearchHistory(
            store=history_store,
            limit=config.history_limit,
            enabled=not config.disable_history,
        )
        self.history.load()
        self._state = self._build_state(catalog)

    def _build_state(self, catalog: Any) -> _IndexState:
        indexed = build_index(catalog, romanizer=self.romanizer)
        matcher = FuzzyMatcher(
            indexed.songs,
            weights=self.config.field_weights,
            threshold=self.config.threshold,
            distance=self.config.distance,
            location=self.config.location,
            ignore_location=self.config.ignore_location,
        )
        suggestions = SuggestionEngine(
            indexed,
            history=self.history,
            enabled_history=not self.config.disable_history,
            max_suggestions=self.config.max_suggestions,
            threshold=self.config.suggestion_threshold,
        )
        return _IndexState(catalog=indexed, matcher=matcher, suggestions=suggestions)

    def reload(self, catalog: Any) -> None:
        """Reconstruye todo y recién al final reemplaza la referencia."""
        self._state = self._build_state(catalog)

    @property
    def catalog(self) -> IndexedCatalog:
        return self._state.catalog

    # -----------------------
    # Búsqueda
    # -----------------------

    def search(self, query: Optional[str], limit: Optional[int] = None) -> List[SearchHit]:
        hits, _ = self.search_with_keys(query, limit)
        return hits

    def search_with_keys(
        self, query: Optional[str], limit: Optional[int] = None
    ) -> Tuple[List[SearchHit], List[RankKey]]:
        """Como search, pero devuelve también la RankKey de cada hit, alineada por posición."""
        plan = preprocess(query)
        if plan is None:
            return [], []

        self.history.append(query.strip())

        state = self._state
        hits = state.matcher.search(plan.text, keys=plan.keys, mode=plan.mode)
        keyed = rank_with_keys(hits, query)
        if limit is not None:
            keyed = keyed[:max(limit, 0)]

        results = [
            SearchHit(
                song_id=h.song.id,
                score=h.score,
                match_spans=tuple(
                    MatchSpan(key=m.key, value_index=m.value_index, value=m.value, start=s, end=e)
                    for m in h.matches
                    for s, e in m.spans
                ),
            )
            for _, h in keyed
        ]
        return results, [k for k, _ in keyed]

    def suggest(self, prefix: Optional[str], limit: Optional[int] = None) -> SuggestionSet:
        return self._state.suggestions.suggest(prefix, limit)

    # -----------------------
    # Historial
    # -----------------------

    def get_history(self) -> List[str]:
        return self.history.entries()

    def clear_history(self) -> None:
        self.history.clear()

    # -----------------------
    # Catálogo
    # -----------------------

    def get_song(self, song_id: str) -> Optional[Song]:
        indexed = self._state.catalog.get(song_id)
        return indexed.song if indexed is not None else None

    def get_song_info(self, song_id: str) -> Optional[Dict[str, Any]]:
        song = self.get_song(song_id)
        if song is None:
            return None
        return {
            "id": song.id,
            "titles": list(song.titles),
            "primary_title": song.primary_title,
            "creators": [
                {"name": c.name, "aliases": list(c.aliases), "display_name": c.name}
                for c in song.creators
            ],
            "path": song.path,
            "audio_path": song.audio_path,
            "related_info": list(song.related_info),
            "extra_info": song.extra_info,
        }

    @staticmethod
    def highlight(text: str, spans: Sequence[Span]) -> str:
        return highlight(text, spans)

    def stats(self) -> Dict[str, Any]:
        return {
            "songs": len(self._state.catalog),
            "history_entries": len(self.history),
            "history_enabled": not self.config.disable_history,
        }
