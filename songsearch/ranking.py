# songsearch/ranking.py
from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

from .fuzzy import RawHit
from .matching import normalize

CRITERIA = (
    "exact_title",
    "title_position",
    "title_prefix",
    "extra_info",
    "creator_name",
    "creator_alias",
    "score",
)


class RankKey(NamedTuple):
    """
    Proyección por candidato, calculada una sola vez antes de ordenar.
    Cada componente es "menor = mejor" para poder comparar tuplas.
    """
    exact_title: bool
    title_position: Tuple[int, int]
    title_prefix: bool
    extra_info: bool
    creator_name: bool
    creator_alias: bool
    score: float


def min_title_position(hit: RawHit) -> Optional[int]:
    starts = [span[0] for m in hit.spans_for("titles") for span in m.spans]
    return min(starts) if starts else None


def rank_key(hit: RawHit, query_lower: str) -> RankKey:
    song = hit.song.song
    titles = [t.lower() for t in song.titles]
    position = min_title_position(hit)
    extra = (song.extra_info or "").lower()

    return RankKey(
        exact_title=not any(t == query_lower for t in titles),
        # sin span en titles -> después de cualquiera que lo tenga
        title_position=(0, position) if position is not None else (1, 0),
        title_prefix=not any(t.startswith(query_lower) for t in titles),
        extra_info=not (bool(extra) and query_lower in extra),
        creator_name=not any(c.name.lower() == query_lower for c in song.creators),
        creator_alias=not any(a.lower() == query_lower for c in song.creators for a in c.aliases),
        score=hit.score,
    )


def rank_with_keys(hits: Sequence[RawHit], original_query: str) -> List[Tuple[RankKey, RawHit]]:
    query_lower = normalize(original_query)
    keyed = [(rank_key(h, query_lower), h) for h in hits]
    keyed.sort(key=lambda kh: kh[0])
    return keyed


def rank(hits: Sequence[RawHit], original_query: str) -> List[RawHit]:
    """
    Orden determinístico (gana el primer criterio que discrimina):
      1) título exacto (case-insensitive)
      2) posición mínima del match en titles
      3) prefijo de algún título
      4) query contenida en extra_info
      5) nombre de creator exacto
      6) alias de creator exacto
      7) score del matcher asc
    El sort es estable: empates totales conservan el orden del matcher.
    """
    return [h for _, h in rank_with_keys(hits, original_query)]


def decisive_criterion(a: RankKey, b: RankKey) -> Optional[str]:
    """Nombre del primer criterio que separa a de b (None si empatan)."""
    for name, va, vb in zip(CRITERIA, a, b):
        if va != vb:
            return name
    return None


def tie_break_counts(keys: Sequence[RankKey]) -> Dict[str, int]:
    """Cuántos pares adyacentes del ranking decidió cada criterio."""
    counts: Dict[str, int] = {}
    for a, b in zip(keys, keys[1:]):
        name = decisive_criterion(a, b) or "tie"
        counts[name] = counts.get(name, 0) + 1
    return counts
