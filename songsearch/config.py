# songsearch/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping

# -------------------------
# Pesos por campo (prior de ranking)
# -------------------------
# Orden estricto: titles > pinyin de titles > iniciales de titles > extra_info
# > creators.name > creators.aliases > related_info > words_index
DEFAULT_FIELD_WEIGHTS: Dict[str, float] = {
    "titles": 2.0,
    "titles_pinyin": 1.8,
    "titles_pinyin_initials": 1.6,
    "extra_info": 1.4,
    "extra_info_pinyin": 1.2,
    "creators.name": 1.0,
    "creators.name_pinyin": 0.9,
    "creators.name_pinyin_initials": 0.8,
    "creators.aliases": 0.7,
    "creators.aliases_pinyin": 0.6,
    "creators.aliases_pinyin_initials": 0.5,
    "related_info": 0.4,
    "related_info_pinyin": 0.3,
    "words_index": 0.2,
}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SearchConfig:
    """
    Configuración explícita del motor (reemplaza el merge de opciones por dict).

      - disable_history: no registra queries ni sugiere desde el historial
      - history_limit: capacidad del historial (más reciente primero)
      - max_suggestions: límite por defecto de suggest()
      - threshold / distance / location / ignore_location: tuning del matcher
      - suggestion_threshold: umbral (más laxo) del matcher de sugerencias
      - field_weights: peso por campo indexado
    """
    disable_history: bool = False
    history_limit: int = 10
    max_suggestions: int = 5
    threshold: float = 0.45
    distance: int = 100
    location: int = 0
    ignore_location: bool = False
    suggestion_threshold: float = 0.4
    field_weights: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_FIELD_WEIGHTS))

    def __post_init__(self) -> None:
        if self.history_limit < 1:
            raise ValueError("history_limit debe ser >= 1")
        if self.max_suggestions < 1:
            raise ValueError("max_suggestions debe ser >= 1")
        if not (0.0 <= self.threshold <= 1.0):
            raise ValueError("threshold debe estar entre 0 y 1")
        if not (0.0 <= self.suggestion_threshold <= 1.0):
            raise ValueError("suggestion_threshold debe estar entre 0 y 1")
        if self.distance < 0:
            raise ValueError("distance debe ser >= 0")
        if self.location < 0:
            raise ValueError("location debe ser >= 0")
        if not self.field_weights:
            raise ValueError("field_weights no puede estar vacío")
        for key, weight in self.field_weights.items():
            if weight <= 0:
                raise ValueError(f"el peso de '{key}' debe ser > 0")

    @classmethod
    def from_env(cls) -> "SearchConfig":
        """
        Config por env:
          - DISABLE_HISTORY=true|false
          - HISTORY_LIMIT=10
          - MAX_SUGGESTIONS=5
          - MATCH_THRESHOLD=0.45
          - MATCH_DISTANCE=100
        """
        return cls(
            disable_history=_env_bool("DISABLE_HISTORY", False),
            history_limit=int(os.getenv("HISTORY_LIMIT", "10")),
            max_suggestions=int(os.getenv("MAX_SUGGESTIONS", "5")),
            threshold=float(os.getenv("MATCH_THRESHOLD", "0.45")),
            distance=int(os.getenv("MATCH_DISTANCE", "100")),
        )
