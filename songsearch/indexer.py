# songsearch/indexer.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .matching import (
    PinyinRomanizer,
    Romanizer,
    char_ngrams,
    has_cjk,
    romanize,
    romanize_initials,
    split_words,
)
from .storage import Creator, Song, parse_songs


@dataclass(frozen=True)
class IndexedCreator:
    creator: Creator
    name_pinyin: str
    name_pinyin_initials: str
    aliases_pinyin: Tuple[str, ...]
    aliases_pinyin_initials: Tuple[str, ...]

    @property
    def name(self) -> str:
        return self.creator.name

    @property
    def aliases(self) -> Tuple[str, ...]:
        return self.creator.aliases


@dataclass(frozen=True)
class IndexedSong:
    """
    Song + campos derivados:
      - *_pinyin: pinyin concatenado (o el texto en minúscula si no es CJK)
      - *_pinyin_initials: iniciales (solo CJK; "" en otro caso)
      - words_index: tokens deduplicados unidos por espacio
    """
    song: Song
    titles_pinyin: Tuple[str, ...]
    titles_pinyin_initials: Tuple[str, ...]
    creators: Tuple[IndexedCreator, ...]
    related_info_pinyin: Tuple[str, ...]
    extra_info_pinyin: Optional[str]
    words_index: str
    fields: Mapping[str, Tuple[str, ...]] = field(compare=False, repr=False)

    @property
    def id(self) -> str:
        return self.song.id

    @property
    def titles(self) -> Tuple[str, ...]:
        return self.song.titles


@dataclass(frozen=True)
class IndexedCatalog:
    songs: Tuple[IndexedSong, ...] = ()
    by_id: Mapping[str, IndexedSong] = field(default_factory=dict, compare=False, repr=False)

    def __len__(self) -> int:
        return len(self.songs)

    def get(self, song_id: str) -> Optional[IndexedSong]:
        return self.by_id.get(song_id)


# -------------------------
# Variantes por campo
# -------------------------

def _pinyin_variant(text: str, romanizer: Romanizer) -> str:
    if has_cjk(text):
        return romanize(text, romanizer)
    return text.lower()


def _initials_variant(text: str, romanizer: Romanizer) -> str:
    if has_cjk(text):
        return romanize_initials(text, romanizer)
    return ""


def _index_creator(creator: Creator, romanizer: Romanizer) -> IndexedCreator:
    return IndexedCreator(
        creator=creator,
        name_pinyin=_pinyin_variant(creator.name, romanizer),
        name_pinyin_initials=_initials_variant(creator.name, romanizer),
        aliases_pinyin=tuple(_pinyin_variant(a, romanizer) for a in creator.aliases),
        aliases_pinyin_initials=tuple(_initials_variant(a, romanizer) for a in creator.aliases),
    )


# -------------------------
# Índice de palabras
# -------------------------

def _element_tokens(elem: str, romanizer: Romanizer) -> List[str]:
    if has_cjk(elem):
        tokens = list(elem)
        tokens += char_ngrams(elem, 2)
        tokens += char_ngrams(elem, 3)
        # 4-grams dos veces (posibles chengyu)
        for gram in char_ngrams(elem, 4):
            tokens += [gram, gram]
        tokens.append(romanize(elem, romanizer))
        tokens.append(romanize_initials(elem, romanizer))
        return tokens

    lowered = elem.lower()
    return split_words(lowered) + [lowered]


def build_words_index(song: Song, romanizer: Romanizer) -> str:
    """
    Tokens de titles, creators (nombre y alias), related_info y extra_info.
    Deduplicado en orden de aparición y a nivel de pieza separada por
    espacios: cada token aparece una sola vez en el string final.
    Un elemento latino con espacios ("Don't Stop-Me") aporta solo sus
    piezas (don't, stop-me); la frase completa no se emite como token.
    """
    elements: List[str] = list(song.titles)
    elements += [c.name for c in song.creators]
    elements += [a for c in song.creators for a in c.aliases]
    elements += list(song.related_info)
    if song.extra_info:
        elements.append(song.extra_info)

    words: Dict[str, None] = {}
    for elem in elements:
        if not elem:
            continue
        for token in _element_tokens(elem, romanizer):
            for piece in token.split():
                words.setdefault(piece, None)
    return " ".join(words)


def _fields(song: Song, titles_pinyin, titles_initials, creators, related_pinyin,
            extra_pinyin, words_index) -> Dict[str, Tuple[str, ...]]:
    return {
        "titles": song.titles,
        "titles_pinyin": titles_pinyin,
        "titles_pinyin_initials": titles_initials,
        "extra_info": (song.extra_info,) if song.extra_info else (),
        "extra_info_pinyin": (extra_pinyin,) if extra_pinyin else (),
        "creators.name": tuple(c.name for c in creators),
        "creators.name_pinyin": tuple(c.name_pinyin for c in creators),
        "creators.name_pinyin_initials": tuple(c.name_pinyin_initials for c in creators),
        "creators.aliases": tuple(a for c in creators for a in c.aliases),
        "creators.aliases_pinyin": tuple(a for c in creators for a in c.aliases_pinyin),
        "creators.aliases_pinyin_initials": tuple(a for c in creators for a in c.aliases_pinyin_initials),
        "related_info": song.related_info,
        "related_info_pinyin": related_pinyin,
        "words_index": (words_index,),
    }


def index_song(song: Song, romanizer: Romanizer) -> IndexedSong:
    titles_pinyin = tuple(_pinyin_variant(t, romanizer) for t in song.titles)
    titles_initials = tuple(_initials_variant(t, romanizer) for t in song.titles)
    creators = tuple(_index_creator(c, romanizer) for c in song.creators)
    related_pinyin = tuple(_pinyin_variant(r, romanizer) for r in song.related_info)
    extra_pinyin = None
    if song.extra_info and has_cjk(song.extra_info):
        extra_pinyin = romanize(song.extra_info, romanizer)
    words_index = build_words_index(song, romanizer)

    return IndexedSong(
        song=song,
        titles_pinyin=titles_pinyin,
        titles_pinyin_initials=titles_initials,
        creators=creators,
        related_info_pinyin=related_pinyin,
        extra_info_pinyin=extra_pinyin,
        words_index=words_index,
        fields=_fields(song, titles_pinyin, titles_initials, creators,
                       related_pinyin, extra_pinyin, words_index),
    )


def build_index(catalog: Any, romanizer: Optional[Romanizer] = None) -> IndexedCatalog:
    """
    catalog: documento {"songs": [...]} o un iterable de Song ya parseadas.
    Nunca levanta por datos inválidos: devuelve un catálogo vacío.
    """
    romanizer = romanizer or PinyinRomanizer()

    if isinstance(catalog, (list, tuple)) and all(isinstance(s, Song) for s in catalog):
        songs: Iterable[Song] = catalog
    else:
        songs = parse_songs(catalog)

    indexed = tuple(index_song(s, romanizer) for s in songs)
    return IndexedCatalog(songs=indexed, by_id={s.id: s for s in indexed})
