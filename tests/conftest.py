# tests/conftest.py
import copy
from typing import List

import pytest

from songsearch import InMemoryKeyValueStore, SearchConfig, SongSearchEngine

PINYIN = {
    "中": "zhong", "国": "guo", "卡": "ka", "农": "nong", "月": "yue", "晕": "yun",
    "大": "da", "调": "diao", "古": "gu", "典": "dian", "音": "yin", "乐": "yue",
    "茶": "cha", "理": "li", "崩": "beng", "坏": "huai", "帕": "pa", "赫": "he",
    "贝": "bei", "尔": "er", "爱": "ai", "团": "tuan", "星": "xing", "空": "kong",
}


class FakeRomanizer:
    """Romanizador determinístico: una sílaba por carácter conocido."""

    def syllables(self, text: str) -> List[str]:
        out = []
        for ch in text:
            if ch in PINYIN:
                out.append(PINYIN[ch])
            elif not ch.isspace():
                out.append(ch.lower())
        return out

    def initials(self, text: str) -> List[str]:
        return [s[0] for s in self.syllables(text)]


CATALOG = {
    "songs": [
        {
            "id": "canon_in_d",
            "titles": ["Canon in D", "D大调卡农", "卡农"],
            "creators": [
                {"name": "Johann Pachelbel", "aliases": ["Pachelbel", "帕赫贝尔"]},
                {"name": "中国爱乐乐团", "aliases": ["China Philharmonic Orchestra"]},
            ],
            "relatedInfo": ["古典音乐"],
            "path": "/music/canon_in_d/",
            "audioPath": "/file_storage/music/canon.mp3",
        },
        {
            "id": "moon_halo",
            "titles": ["Moon Halo", "月晕"],
            "extraInfo": "崩坏3动画短片主题曲",
            "creators": [
                {"name": "茶理理", "aliases": ["Chalili"]},
                {"name": "hanser"},
            ],
            "relatedInfo": ["崩坏3", "Honkai Impact 3rd"],
        },
        {
            "id": "canon_remix",
            "titles": ["Rock version of Canon in D"],
            "creators": [{"name": "JerryC"}],
            "relatedInfo": ["Inspired by Pachelbel"],
        },
    ]
}


@pytest.fixture
def catalog_doc():
    return copy.deepcopy(CATALOG)


@pytest.fixture
def fake_romanizer():
    return FakeRomanizer()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def engine(catalog_doc, fake_romanizer, store):
    return SongSearchEngine(catalog_doc, config=SearchConfig(), history_store=store, romanizer=fake_romanizer)


class FailingStore:
    """Store que siempre falla (cuota excedida / sin backend)."""

    def get(self, key):
        raise OSError("store unavailable")

    def set(self, key, value):
        raise OSError("store unavailable")

    def remove(self, key):
        raise OSError("store unavailable")

    def clear(self):
        raise OSError("store unavailable")


@pytest.fixture
def failing_store():
    return FailingStore()


class QuotaExceededStore:
    """Store de backend que falla con errores fuera de sqlite/IO."""

    def get(self, key):
        raise RuntimeError("quota exceeded")

    def set(self, key, value):
        raise RuntimeError("quota exceeded")

    def remove(self, key):
        raise RuntimeError("quota exceeded")

    def clear(self):
        raise RuntimeError("quota exceeded")


@pytest.fixture
def quota_store():
    return QuotaExceededStore()
