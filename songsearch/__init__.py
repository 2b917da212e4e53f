# songsearch/__init__.py
from .config import DEFAULT_FIELD_WEIGHTS, SearchConfig
from .history import SearchHistory
from .indexer import IndexedCatalog, IndexedSong, build_index
from .matching import PinyinRomanizer, Romanizer
from .query import QueryPlan, preprocess
from .ranking import rank
from .search_engine import MatchSpan, SearchHit, SongSearchEngine
from .storage import Creator, InMemoryKeyValueStore, KeyValueStore, Song, SQLiteKeyValueStore
from .suggestions import Suggestion, SuggestionSet

__all__ = [
    "DEFAULT_FIELD_WEIGHTS",
    "SearchConfig",
    "SearchHistory",
    "IndexedCatalog",
    "IndexedSong",
    "build_index",
    "PinyinRomanizer",
    "Romanizer",
    "QueryPlan",
    "preprocess",
    "rank",
    "MatchSpan",
    "SearchHit",
    "SongSearchEngine",
    "Creator",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "Song",
    "SQLiteKeyValueStore",
    "Suggestion",
    "SuggestionSet",
]
