"""Text normalization for deterministic intent detection.

Vietnamese input is matched against the dictionaries in a diacritic-insensitive way, so that
"giá bán", "gia ban" and "GIÁ BÁN" all hit the same alias. The folded form is only used for matching;
tokens always keep the user's original spelling.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

_COMBINING_MARKS_RE = re.compile(r"[\u0300-\u036f]")
_MULTISPACE_RE = re.compile(r"\s+")

# Order matters: ranges and digit-grouped numbers must win over the punctuation split.
_WORD_RE = re.compile(
    r"[A-Za-z]+\d+:[A-Za-z]+\d+"
    r"|\d+(?:[.,]\d+)+"
    r"|[.,;:!?()]"
    r"|[^\s.,;:!?()]+"
)

PUNCTUATION_CHARS = frozenset(".,;:!?()")


@dataclass(frozen=True)
class Word:
    """A raw word of the input together with its offset in the original text."""

    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def normalize_vietnamese(text: str) -> str:
    """Fold Vietnamese text for dictionary matching.

    Normalization steps:
        - Lowercase.
        - Decompose (NFD) and drop combining diacritic marks.
        - Replace `đ` -> `d` (it has no decomposition).
        - Trim surrounding whitespace.
    """

    value = (text or "").lower()
    value = unicodedata.normalize("NFD", value)
    value = _COMBINING_MARKS_RE.sub("", value)
    value = value.replace("đ", "d")
    return value.strip()


def normalize_phrase(text: str) -> str:
    """Fold a multi-word phrase and collapse inner whitespace to single spaces."""

    return _MULTISPACE_RE.sub(" ", normalize_vietnamese(text))


def split_words(text: str) -> list[Word]:
    """Split raw input into words, keeping punctuation as separate words.

    Cell ranges such as `A1:B10` and digit-grouped numbers such as `1,000` or `2.5` are kept whole.
    """

    return [Word(text=m.group(0), start=m.start()) for m in _WORD_RE.finditer(text or "")]
