from __future__ import annotations

from pathlib import Path
from typing import Optional

import pygame


# bundled font candidates, relative to the content directory
BUNDLED_FONTS = (
    "fonts/NotoSansKR-Regular.otf",
    "fonts/NotoSansKR-Regular.ttf",
    "fonts/NotoSansCJK-Regular.ttc",
)

SYSTEM_FAMILIES = (
    "Noto Sans CJK KR",
    "Noto Sans KR",
    "Malgun Gothic",
    "Apple SD Gothic Neo",
    "NanumGothic",
    "Noto Sans CJK SC",
)


def init_font(font_path: Optional[str], size: int, content_dir: Optional[Path | str] = None) -> pygame.font.Font:
    """Pick a font able to draw Hangul/CJK; falls back to pygame's default font."""
    if not pygame.font.get_init():
        pygame.font.init()
    if font_path:
        p = Path(font_path)
        if p.exists():
            return pygame.font.Font(str(p), size)
    if content_dir is not None:
        for rel in BUNDLED_FONTS:
            p = Path(content_dir) / rel
            if p.exists():
                return pygame.font.Font(str(p), size)
    return pygame.font.SysFont(list(SYSTEM_FAMILIES), size)
