"""Text normalization used on both utterances and lexicon phrases.

Steps: NFKC compatibility composition, locale-independent case folding,
NFD decomposition with combining marks dropped, NFC recomposition, and
whitespace collapsing.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Optional

_WHITESPACE = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    if text is None or not text.strip():
        return ""

    folded = unicodedata.normalize("NFKC", text).casefold()
    decomposed = unicodedata.normalize("NFD", folded)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    composed = unicodedata.normalize("NFC", stripped)
    return _WHITESPACE.sub(" ", composed).strip()
