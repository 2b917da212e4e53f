# songsearch/app.py
import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .config import SearchConfig
from .matching import normalize
from .ranking import tie_break_counts
from .search_engine import SongSearchEngine
from .storage import build_catalog_document, build_history_store
from .metrics import Metrics

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Song Search API",
    description=(
        "Búsqueda aproximada de canciones (chino/latino) con pinyin, índice de n-grams, "
        "ranking determinístico, historial y sugerencias por categoría."
    ),
    version="1.0.0"
)

engine: Optional[SongSearchEngine] = None
metrics = Metrics()


# -----------------------
# API Models
# -----------------------

class MatchSpanModel(BaseModel):
    key: str
    value_index: int
    value: str
    start: int
    end: int


class SearchHitModel(BaseModel):
    song_id: str
    score: float
    title: str
    match_spans: List[MatchSpanModel] = Field(default_factory=list)


class SearchResponse(BaseModel):
    query: str
    results: List[SearchHitModel]


class MatchModel(BaseModel):
    key: str
    value_index: int
    spans: List[List[int]]


class SuggestionModel(BaseModel):
    type: str
    text: str
    song_id: Optional[str] = None
    creator_name: Optional[str] = None
    song_title: Optional[str] = None
    matches: List[MatchModel] = Field(default_factory=list)


class SuggestResponse(BaseModel):
    prefix: str
    titles: List[SuggestionModel]
    creators: List[SuggestionModel]
    history: List[SuggestionModel]


class HistoryResponse(BaseModel):
    history: List[str]


class CreatorInfo(BaseModel):
    name: str
    aliases: List[str]
    display_name: str


class SongInfo(BaseModel):
    id: str
    titles: List[str]
    primary_title: str
    creators: List[CreatorInfo]
    path: Optional[str] = None
    audio_path: Optional[str] = None
    related_info: List[str]
    extra_info: Optional[str] = None


# -----------------------
# Startup
# -----------------------

@app.on_event("startup")
def startup():
    global engine
    document = build_catalog_document()
    engine = SongSearchEngine(
        catalog=document,
        config=SearchConfig.from_env(),
        history_store=build_history_store(),
    )
    logger.info("catálogo indexado: %d canciones", len(engine.catalog))


def get_engine() -> SongSearchEngine:
    assert engine is not None, "SongSearchEngine no inicializado"
    return engine


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/metrics")
def get_metrics():
    snap = metrics.snapshot(topk=10)
    snap["engine"] = get_engine().stats()
    return snap


# -----------------------
# Search / suggest
# -----------------------

@app.get("/search", response_model=SearchResponse)
def search(q: str = "", limit: int = 20):
    if not (1 <= limit <= 100):
        raise HTTPException(status_code=422, detail="limit debe estar entre 1 y 100")

    eng = get_engine()
    metrics.inc_search(normalize(q))

    t0 = time.perf_counter()
    hits, keys = eng.search_with_keys(q, limit=limit)
    latency_ms = (time.perf_counter() - t0) * 1000.0
    metrics.add_search_stats(latency_ms=latency_ms, result_count=len(hits))
    metrics.add_tie_stats(tie_break_counts(keys))

    results: List[Dict[str, Any]] = []
    for h in hits:
        song = eng.get_song(h.song_id)
        results.append({
            "song_id": h.song_id,
            "score": round(h.score, 6),
            "title": song.primary_title if song else "",
            "match_spans": [
                {"key": s.key, "value_index": s.value_index, "value": s.value, "start": s.start, "end": s.end}
                for s in h.match_spans
            ],
        })

    return {"query": q, "results": results}


@app.get("/suggest", response_model=SuggestResponse)
def suggest(prefix: str = "", limit: Optional[int] = None):
    if limit is not None and not (1 <= limit <= 50):
        raise HTTPException(status_code=422, detail="limit debe estar entre 1 y 50")

    metrics.inc_suggest()
    t0 = time.perf_counter()
    result = get_engine().suggest(prefix, limit)
    metrics.observe_latency("suggest", (time.perf_counter() - t0) * 1000.0)
    return result.as_dict()


# -----------------------
# History / songs
# -----------------------

@app.get("/history", response_model=HistoryResponse)
def get_history():
    return {"history": get_engine().get_history()}


@app.delete("/history", response_model=HistoryResponse)
def clear_history():
    eng = get_engine()
    eng.clear_history()
    return {"history": eng.get_history()}


@app.get("/songs/{song_id}", response_model=SongInfo)
def get_song(song_id: str):
    info = get_engine().get_song_info(song_id)
    if info is None:
        raise HTTPException(status_code=404, detail=f"canción '{song_id}' no encontrada")
    return info
