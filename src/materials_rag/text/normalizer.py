"""String cleanup, script-ratio language detection and content-word extraction."""

from __future__ import annotations

import re
import unicodedata

from materials_rag.models.domain import Language

_THAI_CHAR = re.compile(r"[\u0e00-\u0e7f]")
_LATIN_CHAR = re.compile(r"[a-zA-Z]")
_WHITESPACE = re.compile(r"\s+")

STOPWORDS = frozenset({"and", "the", "for", "with", "from"})


def normalize(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    return _WHITESPACE.sub(" ", text).strip()


def detect_language(text: str) -> Language:
    """Classify by the share of Thai-script and Latin letters in the raw text."""
    if not text:
        return "english"
    thai_ratio = len(_THAI_CHAR.findall(text)) / len(text)
    latin_ratio = len(_LATIN_CHAR.findall(text)) / len(text)
    if thai_ratio > 0.3 and latin_ratio > 0.1:
        return "mixed"
    if thai_ratio > 0.3:
        return "thai"
    return "english"


def content_words(text: str, min_length: int = 4) -> list[str]:
    """Lowercased whitespace tokens of at least ``min_length`` chars, minus stopwords."""
    return [
        word
        for word in text.lower().split()
        if len(word) >= min_length and word not in STOPWORDS
    ]


def split_clauses(text: str, min_length: int = 11) -> list[str]:
    """Sentence-like units split on terminal punctuation, short fragments dropped."""
    return [
        part.strip().lower()
        for part in re.split(r"[.!?]", text)
        if len(part.strip()) >= min_length
    ]
