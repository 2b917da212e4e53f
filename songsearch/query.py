# songsearch/query.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .fuzzy import FUZZY, INCLUDE, PREFIX
from .matching import normalize

TITLE_KEYS = ("titles", "titles_pinyin", "titles_pinyin_initials")

# campo -> (keys, mode)
FIELD_SCOPES: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "title": (TITLE_KEYS, PREFIX),
    "creator": (("creators.name",), INCLUDE),
    "alias": (("creators.aliases",), INCLUDE),
    "info": (("related_info",), INCLUDE),
}


@dataclass(frozen=True)
class QueryPlan:
    text: str
    keys: Optional[Tuple[str, ...]] = None
    mode: str = FUZZY
    field: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.field}:{self.text}" if self.field else self.text


def preprocess(raw: Optional[str]) -> Optional[QueryPlan]:
    """
    - strip + lower
    - vacío -> None (no se busca)
    - "campo:valor" con campo en {title, creator, alias, info} -> búsqueda acotada
    - cualquier otro campo se busca literal, con los dos puntos incluidos
    """
    query = normalize(raw)
    if not query:
        return None

    if ":" in query:
        field, _, value = query.partition(":")
        field = field.strip()
        value = value.strip()
        scope = FIELD_SCOPES.get(field)
        if scope is not None and value:
            keys, mode = scope
            return QueryPlan(text=value, keys=keys, mode=mode, field=field)

    return QueryPlan(text=query)
