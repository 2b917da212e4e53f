# songsearch/matching.py
from __future__ import annotations

import html
import re
from typing import Iterable, List, Protocol, Sequence, Tuple

from pypinyin import Style, lazy_pinyin

# -------------------------
# Patrones
# -------------------------
CJK_PAT = re.compile(r"[\u4e00-\u9fa5]")
WORD_SPLIT = re.compile(r"[\s\-_.,;:!?()\[\]{}'\"/\\&+=#$%@|<>]+")

Span = Tuple[int, int]


def has_cjk(text: str) -> bool:
    return bool(text) and CJK_PAT.search(text) is not None


def normalize(text: str) -> str:
    """
    Normalización para comparar (query y campos):
      - strip
      - lower
    No elimina puntuación: el ranking compara igualdad exacta de títulos.
    """
    return str(text or "").strip().lower()


def split_words(text: str) -> List[str]:
    """Tokens en minúscula, separados por espacios y puntuación común."""
    return [w for w in WORD_SPLIT.split(text.lower()) if w]


def char_ngrams(s: str, n: int) -> List[str]:
    """
    Todas las subcadenas de n caracteres, en orden.
    Si el texto es más corto que n no hay n-grams.
    """
    if not s or n <= 0 or len(s) < n:
        return []
    return [s[i:i + n] for i in range(len(s) - n + 1)]


def escape_html(text: str) -> str:
    return html.escape(text or "", quote=True)


# -------------------------
# Romanizador (pinyin)
# -------------------------

class Romanizer(Protocol):
    def syllables(self, text: str) -> List[str]:
        ...

    def initials(self, text: str) -> List[str]:
        ...


class PinyinRomanizer:
    """
    Adaptador sobre pypinyin: sílabas sin tono e iniciales por sílaba.
    Los tramos no chinos se devuelven tal cual (en minúscula).
    """

    def syllables(self, text: str) -> List[str]:
        return _clean_parts(lazy_pinyin(text, style=Style.NORMAL))

    def initials(self, text: str) -> List[str]:
        return _clean_parts(lazy_pinyin(text, style=Style.FIRST_LETTER))


def _clean_parts(parts: Iterable[str]) -> List[str]:
    out = []
    for p in parts:
        p = p.strip().lower()
        if p:
            out.append(p)
    return out


def romanize(text: str, romanizer: Romanizer) -> str:
    """Pinyin completo concatenado (ej: 中国 -> zhongguo)."""
    return "".join(romanizer.syllables(text))


def romanize_initials(text: str, romanizer: Romanizer) -> str:
    """Iniciales del pinyin (ej: 中国 -> zg)."""
    return "".join(romanizer.initials(text))


# -------------------------
# Resaltado de spans
# -------------------------

def merge_spans(spans: Iterable[Span]) -> List[Span]:
    """Ordena y fusiona rangos [start, end) superpuestos o contiguos."""
    merged: List[Span] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            last_start, last_end = merged[-1]
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def highlight(text: str, spans: Sequence[Span]) -> str:
    """
    Envuelve los rangos en <span class="highlight">; el resto del texto
    se escapa para que el resultado sea HTML seguro.
    """
    if not text:
        return ""
    if not spans:
        return escape_html(text)

    out: List[str] = []
    last = 0
    for start, end in merge_spans(spans):
        start = max(start, last)
        end = min(end, len(text))
        if start >= end:
            continue
        out.append(escape_html(text[last:start]))
        out.append(f'<span class="highlight">{escape_html(text[start:end])}</span>')
        last = end
    out.append(escape_html(text[last:]))
    return "".join(out)
