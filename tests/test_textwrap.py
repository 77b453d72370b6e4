from __future__ import annotations

from lumenvn.ui.textwrap import wrap_text


def fake_measure_factory(char_widths: dict[str, int], default: int = 10):
    def measure(s: str) -> int:
        w = 0
        for ch in s:
            w += char_widths.get(ch, default)
        return w
    return measure


def test_wrap_cjk_char_based():
    # Each Chinese char = 12px, max_width 36 -> 3 chars per line
    measure = fake_measure_factory({}, default=12)
    lines = wrap_text("你好世界再见", measure, 36)
    assert lines == ["你好世", "界再见"]


def test_wrap_word_based():
    measure = fake_measure_factory({" ": 5}, default=5)
    lines = wrap_text("hello world test", measure, 60)
    assert lines == ["hello world", "test"]


def test_hangul_wraps_on_spaces():
    measure = fake_measure_factory({}, default=10)
    lines = wrap_text("안녕 하세요", measure, 30)
    assert lines == ["안녕", "하세요"]


def test_overlong_word_is_broken():
    measure = fake_measure_factory({}, default=10)
    lines = wrap_text("abcdefgh ij", measure, 30)
    assert lines == ["abc", "def", "gh", "ij"]


def test_wrap_mixed_newlines():
    measure = fake_measure_factory({}, default=10)
    lines = wrap_text("第一行\n\nthird line", measure, 100)
    # Large width -> no wrapping; preserve blank line
    assert lines == ["第一行", "", "third line"]


def test_empty_text():
    assert wrap_text("", len, 10) == [""]
