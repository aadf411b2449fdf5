from __future__ import annotations
from typing import Optional
from rapidfuzz.distance import Levenshtein, OSA


def levenshtein(a: str, b: str) -> int:
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str, transpositions: bool = False) -> float:
    """
    (longest - edits) / longest, in [0, 1]. Case-sensitive; lowercase first if needed.
    With `transpositions`, swapping two adjacent characters counts as a single edit
    (optimal string alignment), which suits OCR glyph swaps like "Invocie".
    """
    longest = max(len(a), len(b))
    if longest == 0: return 1.0
    edits = OSA.distance(a, b) if transpositions else levenshtein(a, b)
    return (longest - edits) / longest


def fuzzy_find(text: str, target: str, threshold: float = 0.6) -> Optional[str]:
    """
    Look for `target` in free OCR text.
    Exact (case-insensitive) hits return the text as written on the page; otherwise a
    window of len(target words) slides over the page words and the first window whose
    average word similarity reaches `threshold` is returned.
    """
    target = (target or "").strip()
    if not text or not target: return None
    i = text.lower().find(target.lower())
    if i >= 0:
        return text[i:i + len(target)]
    words = text.split()
    twords = target.lower().split()
    n = len(twords)
    for i in range(len(words) - n + 1):
        score = sum(similarity(words[i + j].lower(), twords[j]) for j in range(n)) / n
        if score >= threshold:
            return " ".join(words[i:i + n])
    return None
