"""Text clean-up applied to extracted text before chunking."""

from __future__ import annotations

import re

_LINE_ENDINGS = re.compile(r"\r\n?")
_HORIZONTAL_WS = re.compile(r"[ \t]+")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")

_LANGUAGE_MARKERS: dict[str, tuple[str, ...]] = {
    "en": ("the", "and", "that", "have", "for", "not", "with", "you", "this", "but"),
    "es": ("que", "de", "no", "la", "el", "es", "y", "en", "lo", "los"),
    "fr": ("le", "de", "et", "un", "il", "être", "en", "avoir", "les", "une"),
}


def normalize_text(text: str) -> str:
    """Normalise line endings and whitespace.

    * ``\\r\\n`` / ``\\r`` become ``\\n``
    * runs of spaces and tabs collapse to one space
    * every line is trimmed
    * two or more blank lines collapse to a single blank line
    * the result is trimmed
    """
    text = _LINE_ENDINGS.sub("\n", text)
    text = _HORIZONTAL_WS.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def detect_language(text: str) -> str:
    """Guess the language of *text* from stop-word frequency.

    Only looks at the first 1000 characters.  Returns ``"unknown"`` when
    no marker word is found.
    """
    words = re.findall(r"\w+", text[:1000].lower())
    if not words:
        return "unknown"

    counts = {
        lang: sum(1 for w in words if w in markers)
        for lang, markers in _LANGUAGE_MARKERS.items()
    }
    best = max(counts, key=lambda lang: counts[lang])
    return best if counts[best] > 0 else "unknown"
