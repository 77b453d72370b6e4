from __future__ import annotations

from typing import Callable, List


def _is_cjk(ch: str) -> bool:
    # CJK ideographs, kana; these scripts break between any two characters
    return "一" <= ch <= "鿿" or "぀" <= ch <= "ヿ"


def _has_cjk(s: str) -> bool:
    return any(_is_cjk(ch) for ch in s)


def _break_chars(word: str, measure: Callable[[str], int], max_width: int) -> List[str]:
    pieces: List[str] = []
    cur = ""
    for ch in word:
        test = cur + ch
        if measure(test) <= max_width or not cur:
            cur = test
        else:
            pieces.append(cur)
            cur = ch
    if cur:
        pieces.append(cur)
    return pieces


def wrap_text(text: str, measure: Callable[[str], int], max_width: int) -> List[str]:
    """Wrap text into lines no wider than ``max_width`` according to ``measure``.

    CJK paragraphs wrap per character, others per space-separated word (Hangul
    included); a single word wider than the line is broken per character.
    Explicit newlines are kept, blank lines included.
    """
    out: List[str] = []
    for para in (text or "").split("\n"):
        if para == "":
            out.append("")
            continue
        if _has_cjk(para):
            out.extend(_break_chars(para, measure, max_width))
            continue
        cur = ""
        for word in para.split():
            test = f"{cur} {word}" if cur else word
            if measure(test) <= max_width:
                cur = test
                continue
            if cur:
                out.append(cur)
                cur = ""
            if measure(word) <= max_width:
                cur = word
            else:
                *full, cur = _break_chars(word, measure, max_width)
                out.extend(full)
        if cur:
            out.append(cur)
    return out
