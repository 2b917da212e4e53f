# songsearch/metrics.py
from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, Sequence

from .ranking import CRITERIA

WINDOW = 5000
ENDPOINTS = ("search", "suggest")


def _window() -> Deque[float]:
    return deque(maxlen=WINDOW)


def _percentile(values: Iterable[float], q: float) -> float:
    ordered = sorted(values)
    if not ordered:
        return 0.0
    return ordered[int(q * (len(ordered) - 1))]


def _summary(values: Sequence[float]) -> Dict[str, float]:
    if not values:
        return {"count": 0, "avg": 0.0, "p50": 0.0, "p95": 0.0}
    return {
        "count": len(values),
        "avg": round(sum(values) / len(values), 2),
        "p50": round(_percentile(values, 0.50), 2),
        "p95": round(_percentile(values, 0.95), 2),
    }


@dataclass
class Metrics:
    """
    Métricas en proceso del servicio.
    Latencias por endpoint y tamaño de resultados en ventanas acotadas
    (las últimas WINDOW observaciones).
    """
    started_at: float = field(default_factory=time.time)

    total_searches: int = 0
    total_empty_queries: int = 0
    total_zero_result_searches: int = 0
    total_suggestions: int = 0

    # top queries (normalizadas) con contador
    top_queries: Dict[str, int] = field(default_factory=dict)

    latency_ms: Dict[str, Deque[float]] = field(
        default_factory=lambda: {name: _window() for name in ENDPOINTS}
    )
    result_counts: Deque[float] = field(default_factory=_window)

    # pares adyacentes del ranking resueltos por cada criterio
    tie_pairs_total: int = 0
    tie_resolved_by: Dict[str, int] = field(default_factory=dict)

    def inc_search(self, query_norm: str) -> None:
        self.total_searches += 1
        if not query_norm:
            self.total_empty_queries += 1
            return
        self.top_queries[query_norm] = self.top_queries.get(query_norm, 0) + 1

    def inc_suggest(self) -> None:
        self.total_suggestions += 1

    def observe_latency(self, endpoint: str, latency_ms: float) -> None:
        if endpoint not in self.latency_ms:
            raise ValueError(f"endpoint desconocido: {endpoint}")
        self.latency_ms[endpoint].append(latency_ms)

    def add_search_stats(self, latency_ms: float, result_count: int) -> None:
        self.observe_latency("search", latency_ms)
        self.result_counts.append(result_count)
        if result_count == 0:
            self.total_zero_result_searches += 1

    def add_tie_stats(self, counts: Dict[str, int]) -> None:
        for name, n in counts.items():
            self.tie_pairs_total += n
            self.tie_resolved_by[name] = self.tie_resolved_by.get(name, 0) + n

    def snapshot(self, topk: int = 10) -> Dict:
        uptime_s = time.time() - self.started_at
        top = sorted(self.top_queries.items(), key=lambda x: x[1], reverse=True)[:topk]

        denom = self.tie_pairs_total
        resolved_pct = {
            name: round(self.tie_resolved_by.get(name, 0) / denom, 4) if denom else 0.0
            for name in CRITERIA + ("tie",)
        }

        return {
            "uptime_seconds": round(uptime_s, 2),
            "total_searches": self.total_searches,
            "total_empty_queries": self.total_empty_queries,
            "total_zero_result_searches": self.total_zero_result_searches,
            "total_suggestions": self.total_suggestions,

            "latency_ms": {name: _summary(list(w)) for name, w in self.latency_ms.items()},
            "results": _summary(list(self.result_counts)),

            "tie_break": {
                "pairs_total": self.tie_pairs_total,
                "resolved_by_pct": resolved_pct,
            },

            "top_queries": [{"query": q, "count": c} for q, c in top],
        }
