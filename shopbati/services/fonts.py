# shopbati/services/fonts.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

REGULAR_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/local/share/fonts/DejaVuSans.ttf",
    "/Library/Fonts/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Regular.ttf",
)
BOLD_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    "/usr/local/share/fonts/DejaVuSans-Bold.ttf",
    "/Library/Fonts/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/usr/share/fonts/liberation/LiberationSans-Bold.ttf",
)
# wider coverage for glyphs the main face lacks
FALLBACK_CANDIDATES = (
    "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/google-noto/NotoSans-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
    "/usr/share/fonts/gnu-free/FreeSans.ttf",
)


@dataclass(frozen=True)
class FontFiles:
    regular: Optional[str] = None
    bold: Optional[str] = None
    fallbacks: Tuple[str, ...] = ()

    @property
    def unicode(self) -> bool:
        return self.regular is not None


def find_font_path(explicit: Optional[str], candidates: Iterable[str]) -> Optional[str]:
    # an explicit path wins when it exists
    if explicit and os.path.exists(explicit):
        return explicit
    for path in candidates:
        if os.path.exists(path):
            return path
    return None


def locate_fonts(regular: Optional[str] = None, bold: Optional[str] = None, *,
                 search_system: bool = True,
                 fallbacks: Sequence[str] = FALLBACK_CANDIDATES) -> FontFiles:
    """
    Pick the TrueType files for invoice text. Configured paths come first,
    then well-known system locations. Nothing found means the PDF falls back
    to the core Helvetica font.
    """
    regular_path = find_font_path(regular, REGULAR_CANDIDATES if search_system else ())
    if regular_path is None:
        return FontFiles()
    bold_path = find_font_path(bold, BOLD_CANDIDATES if search_system else ())
    extra = tuple(p for p in fallbacks if search_system and os.path.exists(p) and p != regular_path)
    return FontFiles(regular=regular_path, bold=bold_path, fallbacks=extra)
