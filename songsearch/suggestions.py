# songsearch/suggestions.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .fuzzy import FieldMatch, FuzzyMatcher, RawHit
from .history import SearchHistory
from .indexer import IndexedCatalog, IndexedCreator, IndexedSong
from .matching import escape_html

TITLE = "title"
CREATOR = "creator"
CREATOR_ALIAS = "creator_alias"
HISTORY = "history"

SUGGESTION_KEYS = (
    "titles",
    "titles_pinyin",
    "titles_pinyin_initials",
    "creators.name",
    "creators.name_pinyin",
    "creators.name_pinyin_initials",
    "creators.aliases",
    "creators.aliases_pinyin",
)


@dataclass(frozen=True)
class Suggestion:
    type: str
    text: str
    song_id: Optional[str] = None
    creator_name: Optional[str] = None
    song_title: Optional[str] = None
    matches: Tuple[FieldMatch, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "text": self.text,
            "song_id": self.song_id,
            "creator_name": self.creator_name,
            "song_title": self.song_title,
            "matches": [
                {"key": m.key, "value_index": m.value_index, "spans": [list(s) for s in m.spans]}
                for m in self.matches
            ],
        }


@dataclass
class SuggestionSet:
    prefix: str = ""
    titles: List[Suggestion] = field(default_factory=list)
    creators: List[Suggestion] = field(default_factory=list)
    history: List[Suggestion] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "prefix": self.prefix,
            "titles": [s.as_dict() for s in self.titles],
            "creators": [s.as_dict() for s in self.creators],
            "history": [s.as_dict() for s in self.history],
        }


def unique_by_text(items: Sequence[Suggestion], prefix: str) -> List[Suggestion]:
    """
    Dedup por texto (gana el primero) y orden por calidad:
    prefijo antes que no-prefijo, exacto antes que solo-prefijo, más corto primero.
    """
    seen = set()
    unique: List[Suggestion] = []
    for item in items:
        if item.text in seen:
            continue
        seen.add(item.text)
        unique.append(item)

    unique.sort(
        key=lambda s: (
            not s.text.lower().startswith(prefix),
            s.text.lower() != prefix,
            len(s.text),
        )
    )
    return unique


def _contains(prefix: str, *candidates: Optional[str]) -> bool:
    return any(c and prefix in c for c in candidates)


def _at(values: Sequence[str], i: int) -> Optional[str]:
    return values[i] if i < len(values) else None


class SuggestionEngine:
    def __init__(
        self,
        catalog: IndexedCatalog,
        history: Optional[SearchHistory] = None,
        enabled_history: bool = True,
        max_suggestions: int = 5,
        threshold: float = 0.4,
    ):
        self.catalog = catalog
        self.history = history
        self.enabled_history = enabled_history
        self.max_suggestions = max_suggestions
        # matcher propio: pesos iguales, sin penalización por posición
        self.matcher = FuzzyMatcher(
            catalog.songs,
            weights={k: 1.0 for k in SUGGESTION_KEYS},
            threshold=threshold,
            ignore_location=True,
            token_fields=(),
        )

    def _title_suggestions(self, hit: RawHit, prefix: str) -> List[Suggestion]:
        song: IndexedSong = hit.song
        title_matches = tuple(m for m in hit.matches if m.key == "titles")
        out = []
        for i, title in enumerate(song.titles):
            if _contains(prefix, title.lower(), _at(song.titles_pinyin, i), _at(song.titles_pinyin_initials, i)):
                out.append(Suggestion(
                    type=TITLE,
                    text=title,
                    song_id=song.id,
                    matches=title_matches,
                ))
        return out

    def _creator_suggestions(self, hit: RawHit, prefix: str) -> List[Suggestion]:
        song: IndexedSong = hit.song
        name_matches = tuple(m for m in hit.matches if m.key.startswith("creators.name"))
        alias_matches = tuple(m for m in hit.matches if m.key.startswith("creators.aliases"))
        out = []
        c: IndexedCreator
        for c in song.creators:
            if c.name and _contains(prefix, c.name.lower(), c.name_pinyin, c.name_pinyin_initials):
                out.append(Suggestion(
                    type=CREATOR,
                    text=c.name,
                    song_id=song.id,
                    creator_name=c.name,
                    matches=name_matches,
                ))
            for j, alias in enumerate(c.aliases):
                if _contains(prefix, alias.lower(), _at(c.aliases_pinyin, j), _at(c.aliases_pinyin_initials, j)):
                    out.append(Suggestion(
                        type=CREATOR_ALIAS,
                        text=alias,
                        song_id=song.id,
                        creator_name=c.name,
                        song_title=song.song.primary_title,
                        matches=alias_matches,
                    ))
        return out

    def suggest(self, prefix: Optional[str], limit: Optional[int] = None) -> SuggestionSet:
        """
        Sugerencias por categoría para un prefijo.
        Cada categoría tiene su propio tope: titles ceil(limit/2),
        creators floor(limit/3), history floor(limit/3).
        """
        if not prefix or len(prefix) < 1:
            return SuggestionSet()

        limit = self.max_suggestions if limit is None else limit
        if limit <= 0:
            return SuggestionSet()

        lower_prefix = escape_html(prefix).lower()

        titles: List[Suggestion] = []
        creators: List[Suggestion] = []
        for hit in self.matcher.search(lower_prefix):
            titles += self._title_suggestions(hit, lower_prefix)
            creators += self._creator_suggestions(hit, lower_prefix)

        history: List[Suggestion] = []
        if self.enabled_history and self.history is not None:
            history = [
                Suggestion(type=HISTORY, text=h)
                for h in self.history.entries()
                if lower_prefix in h.lower()
            ]

        return SuggestionSet(
            prefix=lower_prefix,
            titles=unique_by_text(titles, lower_prefix)[:math.ceil(limit / 2)],
            creators=unique_by_text(creators, lower_prefix)[:limit // 3],
            history=unique_by_text(history, lower_prefix)[:limit // 3],
        )
