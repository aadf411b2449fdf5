from __future__ import annotations
from typing import List, Optional, Sequence

from docfields.core.models import BoundingBox, OCRWord
from docfields.core.similarity import similarity

WORD_THRESHOLD = 0.8


def _exact(words: Sequence[OCRWord], target: str) -> Optional[BoundingBox]:
    for w in words:
        if target in w.text.lower():
            return w.bbox
    return None


def _fuzzy_word(words: Sequence[OCRWord], target: str) -> Optional[BoundingBox]:
    for w in words:
        if similarity(w.text.lower(), target, transpositions=True) > WORD_THRESHOLD:
            return w.bbox
    return None


def _fuzzy_phrase(words: Sequence[OCRWord], targets: List[str]) -> Optional[BoundingBox]:
    n = len(targets)
    for i in range(len(words) - n + 1):
        window = words[i:i + n]
        if all(similarity(w.text.lower(), t, transpositions=True) > WORD_THRESHOLD for w, t in zip(window, targets)):
            first, last = window[0].bbox, window[-1].bbox
            # top and height come from the first word only
            return BoundingBox(x0=first.x0, y0=first.y0, x1=last.x1, y1=first.y1)
    return None


def find_position(words: Sequence[OCRWord], target: str) -> Optional[BoundingBox]:
    """
    Locate `target` among OCR words, in reading order.
    Tiers, first hit wins: substring of one word, fuzzy single word, fuzzy run of words.
    The fuzzy tiers score with transpositions=True (OSA distance, an adjacent swap
    costs one edit) rather than plain Levenshtein, so 'Invocie:' still clears
    WORD_THRESHOLD against 'invoice:'. Returns None when nothing matches.
    """
    t = (target or "").strip().lower()
    if not t or not words: return None
    return _exact(words, t) or _fuzzy_word(words, t) or _fuzzy_phrase(words, t.split())
