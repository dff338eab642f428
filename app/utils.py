"""Utility helpers for the MediaShelf service."""

from __future__ import annotations

import html
import math
import re
import unicodedata
from typing import Any


TAG_RE = re.compile(r"<[^>]+>")
WHITESPACE_RE = re.compile(r"\s+")
NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)

READING_WORDS_PER_MINUTE = 200


def normalize_text(value: str | None) -> str:
    """Return a lowercase ASCII form with punctuation collapsed to spaces."""

    if not value:
        return ""
    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii").lower()
    value = NON_ALNUM_RE.sub(" ", value)
    return value.strip()


def strip_html(value: str | None, *, max_length: int | None = None) -> str | None:
    """Remove markup and entities from a feed or page snippet."""

    if not value:
        return None
    cdata = CDATA_RE.search(value)
    if cdata:
        value = cdata.group(1)
    text = TAG_RE.sub(" ", value)
    text = html.unescape(text)
    text = WHITESPACE_RE.sub(" ", text).strip()
    if not text:
        return None
    if max_length is not None and len(text) > max_length:
        text = text[:max_length].rstrip() + "..."
    return text


def parse_year(value: Any) -> int | None:
    """Extract a four digit year from a date-like value."""

    if isinstance(value, int):
        return value
    if not isinstance(value, str) or len(value) < 4:
        return None
    try:
        return int(value[:4])
    except ValueError:
        return None


def coerce_int(value: Any) -> int | None:
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def coerce_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def reading_time_minutes(word_count: int | None) -> int | None:
    if not word_count or word_count <= 0:
        return None
    return math.ceil(word_count / READING_WORDS_PER_MINUTE)
