"""
Folio - Text Utilities
=======================
Helper functions for cleaning the notes document and classifying its
sections by title.

These utilities are consumed by the seeding tool and should remain
stateless and side-effect-free.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterator
from typing import NamedTuple

from folio.src.core.models import ChunkType

# Control characters other than \t and \n, plus BOM, zero-width marks and soft hyphens
_INVISIBLE_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f\ufeff\u200b-\u200f\u00ad\u2060\ufffe]")
_HSPACE_RE = re.compile(r"[^\S\n]+")


def _clean_lines(text: str) -> Iterator[str]:
    """Yield stripped lines, letting at most one blank line through in a row."""
    blank_run = 0
    for line in text.split("\n"):
        line = _HSPACE_RE.sub(" ", line).strip()
        blank_run = blank_run + 1 if not line else 0
        if blank_run <= 1:
            yield line


def clean_text(text: str) -> str:
    """
    Normalise the notes document before it is split into sections.

    Line endings become ``\\n`` and the text is NFC-normalised.  Invisible
    characters are dropped, runs of spaces and tabs become one space, each
    line is trimmed, and blank runs shrink to a single empty line.
    """
    text = unicodedata.normalize("NFC", text.replace("\r\n", "\n").replace("\r", "\n"))
    return "\n".join(_clean_lines(_INVISIBLE_RE.sub("", text))).strip()


# ── Section title → classification ────────────────────────────────────

class SectionClass(NamedTuple):
    type: ChunkType
    topics: tuple[str, ...]


# Case-insensitive substring match against the title; first hit wins.
# Extend this table as new sections are added to the notes document.
_SECTION_KEYWORDS: list[tuple[str, SectionClass]] = [
    ("family", SectionClass("family", ("family",))),
    ("home life", SectionClass("family", ("family", "home"))),
    ("pets", SectionClass("family", ("family", "pets"))),
    ("hobbies", SectionClass("hobbies", ("hobbies",))),
    ("interests", SectionClass("hobbies", ("hobbies", "interests"))),
    ("games", SectionClass("hobbies", ("hobbies", "gaming"))),
    ("media", SectionClass("hobbies", ("hobbies", "media"))),
    ("music", SectionClass("hobbies", ("hobbies", "music"))),
    ("sports", SectionClass("hobbies", ("hobbies", "sports"))),
    ("travel", SectionClass("hobbies", ("hobbies", "travel"))),
    ("values", SectionClass("values", ("values",))),
    ("principles", SectionClass("values", ("values", "principles"))),
    ("personality", SectionClass("values", ("personality",))),
    ("preferences", SectionClass("preferences", ("preferences",))),
    ("routine", SectionClass("preferences", ("preferences", "routine"))),
    ("habits", SectionClass("preferences", ("preferences", "habits"))),
    ("food", SectionClass("preferences", ("preferences", "food"))),
    ("career", SectionClass("work", ("career",))),
    ("leadership", SectionClass("work", ("career", "leadership"))),
    ("side projects", SectionClass("project", ("projects",))),
]

DEFAULT_SECTION_CLASS = SectionClass("personal", ("general",))


def lookup_section_title(title: str) -> SectionClass | None:
    """Return the mapped classification for *title*, or ``None``."""
    title_lower = title.lower()
    for keyword, section_class in _SECTION_KEYWORDS:
        if keyword in title_lower:
            return section_class
    return None


def classify_section_title(title: str, fallback: SectionClass = DEFAULT_SECTION_CLASS) -> SectionClass:
    """
    Classify a notes section by its title.

    Examples::

        "Family & Home Life"   → family,  ("family",)
        "Weekend Routine"      → preferences, ("preferences", "routine")
        "Random Thoughts"      → personal, ("general",)   (fallback)
    """
    return lookup_section_title(title) or fallback
