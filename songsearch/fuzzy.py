# songsearch/fuzzy.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from rapidfuzz import fuzz

from .indexer import IndexedSong
from .matching import Span

FUZZY = "fuzzy"
INCLUDE = "include"
PREFIX = "prefix"
MODES = (FUZZY, INCLUDE, PREFIX)

# score 0 no puede entrar en el producto ponderado
EPSILON = 2.220446049250313e-16


@dataclass(frozen=True)
class FieldMatch:
    key: str
    value_index: int
    value: str
    spans: Tuple[Span, ...]
    score: float


@dataclass
class RawHit:
    song: IndexedSong
    score: float
    matches: List[FieldMatch] = field(default_factory=list)

    def spans_for(self, key: str) -> List[FieldMatch]:
        return [m for m in self.matches if m.key == key]


class FuzzyMatcher:
    """
    Búsqueda aproximada multi-campo sobre un catálogo indexado.

    Score por valor (0 = perfecto, 1 = peor):
      - substring exacto -> error 0
      - si no, partial_ratio_alignment de rapidfuzz: error = 1 - sim/100,
        con sim escalada por len(valor)/len(patrón) si el valor es más corto
      - + penalización por posición: |start - location| / distance
    Por campo cuenta el mejor valor; el score del hit es el producto
    de los scores por campo elevados a su peso normalizado.
    """

    def __init__(
        self,
        songs: Sequence[IndexedSong],
        weights: Mapping[str, float],
        threshold: float = 0.45,
        distance: int = 100,
        location: int = 0,
        ignore_location: bool = False,
        token_fields: Sequence[str] = ("words_index",),
    ):
        self.songs = tuple(songs)
        self.weights = dict(weights)
        self.threshold = threshold
        self.distance = distance
        self.location = location
        self.ignore_location = ignore_location
        self.token_fields = frozenset(token_fields)

    # -----------------------
    # Scoring por valor
    # -----------------------

    def _location_penalty(self, start: int) -> float:
        if self.ignore_location:
            return 0.0
        proximity = abs(start - self.location)
        if not self.distance:
            return 1.0 if proximity else 0.0
        return proximity / self.distance

    def score_value(
        self,
        pattern: str,
        value: str,
        mode: str = FUZZY,
        ignore_location: bool = False,
    ) -> Optional[Tuple[float, Span]]:
        """Devuelve (score, span) o None si el valor no matchea."""
        text = value.lower()
        if not text or not pattern:
            return None

        if mode == PREFIX:
            return (0.0, (0, len(pattern))) if text.startswith(pattern) else None

        idx = text.find(pattern)
        if mode == INCLUDE:
            return (0.0, (idx, idx + len(pattern))) if idx >= 0 else None

        if idx >= 0:
            error = 0.0
            span = (idx, idx + len(pattern))
        else:
            alignment = fuzz.partial_ratio_alignment(pattern, text)
            if alignment is None or alignment.score <= 0:
                return None
            similarity = alignment.score / 100.0
            # valor más corto que el patrón: el alineamiento solo cubre una parte de la query
            if len(text) < len(pattern):
                similarity *= len(text) / len(pattern)
            error = 1.0 - similarity
            span = (alignment.dest_start, alignment.dest_end)

        penalty = 0.0 if ignore_location else self._location_penalty(span[0])
        score = error + penalty
        if score > self.threshold:
            return None
        return score, span

    def _match_key(self, pattern: str, key: str, values: Sequence[str], mode: str) -> List[FieldMatch]:
        out: List[FieldMatch] = []
        for i, value in enumerate(values):
            if not value:
                continue
            if key in self.token_fields:
                best: Optional[Tuple[float, Span]] = None
                for token, offset in _tokens_with_offsets(value):
                    res = self.score_value(pattern, token, mode, ignore_location=True)
                    if res is not None and (best is None or res[0] < best[0]):
                        best = (res[0], (offset + res[1][0], offset + res[1][1]))
                res = best
            else:
                res = self.score_value(pattern, value, mode)
            if res is not None:
                score, span = res
                out.append(FieldMatch(key=key, value_index=i, value=value, spans=(span,), score=score))
        return out

    # -----------------------
    # Búsqueda
    # -----------------------

    def search(self, pattern: str, keys: Optional[Sequence[str]] = None, mode: str = FUZZY) -> List[RawHit]:
        """
        pattern ya normalizado (lower). keys limita los campos consultados.
        Orden: score asc, luego orden del catálogo.
        """
        if mode not in MODES:
            raise ValueError(f"mode desconocido: {mode}")
        if not pattern:
            return []

        search_keys = [k for k in (keys or self.weights.keys()) if k in self.weights]
        total_weight = sum(self.weights[k] for k in search_keys)
        if not search_keys or total_weight <= 0:
            return []

        hits: List[Tuple[float, int, RawHit]] = []
        for pos, song in enumerate(self.songs):
            matches: List[FieldMatch] = []
            best_by_key: Dict[str, float] = {}
            for key in search_keys:
                key_matches = self._match_key(pattern, key, song.fields.get(key, ()), mode)
                if key_matches:
                    matches.extend(key_matches)
                    best_by_key[key] = min(m.score for m in key_matches)

            if not best_by_key:
                continue

            total = 1.0
            for key, score in best_by_key.items():
                total *= max(score, EPSILON) ** (self.weights[key] / total_weight)
            hits.append((total, pos, RawHit(song=song, score=total, matches=matches)))

        hits.sort(key=lambda h: (h[0], h[1]))
        return [h[2] for h in hits]


def _tokens_with_offsets(text: str) -> List[Tuple[str, int]]:
    out = []
    offset = 0
    for token in text.split(" "):
        if token:
            out.append((token, offset))
        offset += len(token) + 1
    return out
