"""Prompt compilation: character extraction and clause classification.

A raw prompt such as::

    在阳光明媚的森林里@小明 正在愉快地跑步，水彩风格

is compiled in three steps:

1. **Character extraction** - every ``@name`` marker (``@`` followed by one
   or more word characters, Unicode letters included) yields one
   :class:`CharacterReference`.  Names are deduplicated by exact equality and
   keep their first-seen order.
2. **Cleaning** - the markers are removed and surrounding whitespace is
   stripped, producing the cleaned prompt.
3. **Segmentation** - the cleaned prompt is split on clause punctuation
   (comma, period, exclamation mark, question mark, semicolon; full-width and
   ASCII), each clause is trimmed and classified.

Classification
--------------
Clauses are classified by keyword-table membership, evaluated in tiers:

========  ====================================  ==========================
Tier      Tables                                Rule
========  ====================================  ==========================
1         time                                  any match wins
2         weather                               any match wins
3         style                                 any match wins
4         scene, action, character              longest match wins, ties
                                                go to the earlier table
5         background                            any match wins
========  ====================================  ==========================

A clause matching nothing is ``other``.  Within a tier, the table whose
longest matching keyword is longest decides the kind; for single-table tiers
this reduces to "any match".  The tables live in :mod:`huiben.core.keywords`.

Offsets
-------
Segment offsets are cumulative character positions in the cleaned prompt,
assuming exactly one separator character between consecutive clauses.  They
are exact for prompts without whitespace around punctuation and approximate
otherwise.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from . import keywords
from .errors import EmptyInputError
from .models import CharacterReference, ParsedPrompt, PromptSegment, SegmentKind

logger = logging.getLogger(__name__)

CHARACTER_PATTERN = re.compile(r"@(\w+)")
CLAUSE_SEPARATORS = re.compile(r"[，,。.！!？?；;]")

KeywordTable = tuple[SegmentKind, Sequence[str]]

# Ordered tiers of keyword tables.  The first tier with any match decides.
CLASSIFICATION_TIERS: tuple[tuple[KeywordTable, ...], ...] = (
    ((SegmentKind.TIME, keywords.TIME_KEYWORDS),),
    ((SegmentKind.WEATHER, keywords.WEATHER_KEYWORDS),),
    ((SegmentKind.STYLE, keywords.STYLE_KEYWORDS),),
    (
        (SegmentKind.SCENE, keywords.SCENE_KEYWORDS),
        (SegmentKind.ACTION, keywords.ACTION_KEYWORDS),
        (SegmentKind.CHARACTER, keywords.CHARACTER_KEYWORDS),
    ),
    ((SegmentKind.BACKGROUND, keywords.BACKGROUND_KEYWORDS),),
)


def extract_characters(text: str) -> list[CharacterReference]:
    """Collect distinct ``@name`` references in first-seen order.

    Args:
        text: Raw prompt text

    Returns:
        One unbound CharacterReference per distinct name
    """
    seen: set[str] = set()
    characters: list[CharacterReference] = []

    for match in CHARACTER_PATTERN.finditer(text):
        name = match.group(1)
        if name in seen:
            continue
        seen.add(name)
        characters.append(CharacterReference(name=name))

    return characters


def extract_character_names(text: str) -> list[str]:
    """Return the distinct character names referenced in ``text``."""
    return [c.name for c in extract_characters(text)]


def clean_prompt(text: str) -> str:
    """Remove every character marker and strip surrounding whitespace."""
    return CHARACTER_PATTERN.sub("", text).strip()


def _longest_match(text: str, table: Sequence[str]) -> int:
    """Length of the longest keyword in ``table`` found in ``text`` (0 if none)."""
    return max((len(kw) for kw in table if kw.lower() in text), default=0)


def _best_in_tier(text: str, tier: Sequence[KeywordTable]) -> SegmentKind | None:
    best_kind: SegmentKind | None = None
    best_length = 0

    for kind, table in tier:
        length = _longest_match(text, table)
        # Strictly greater: on ties the earlier table keeps the label.
        if length > best_length:
            best_kind = kind
            best_length = length

    return best_kind


def classify_segment(clause: str) -> SegmentKind:
    """Classify one clause into a segment kind.

    Args:
        clause: Clause text, already stripped of character markers

    Returns:
        The SegmentKind decided by the first matching tier, or OTHER
    """
    text = clause.lower()

    for tier in CLASSIFICATION_TIERS:
        kind = _best_in_tier(text, tier)
        if kind is not None:
            return kind

    return SegmentKind.OTHER


def split_clauses(cleaned: str) -> list[str]:
    """Split on clause punctuation, trimming clauses and dropping empty ones."""
    return [part.strip() for part in CLAUSE_SEPARATORS.split(cleaned) if part.strip()]


def compile_prompt(raw_prompt: str) -> ParsedPrompt:
    """Compile a raw prompt into classified segments and character references.

    Args:
        raw_prompt: Prompt as typed by the user, possibly containing ``@name``
            markers

    Returns:
        ParsedPrompt with the original text, ordered segments and distinct
        character references

    Raises:
        EmptyInputError: If ``raw_prompt`` is the empty string
    """
    if raw_prompt == "":
        raise EmptyInputError("prompt cannot be empty")

    characters = extract_characters(raw_prompt)
    cleaned = clean_prompt(raw_prompt)

    segments: list[PromptSegment] = []
    if cleaned:
        clauses = split_clauses(cleaned)

        if not clauses:
            # Punctuation only: keep the whole cleaned prompt as one segment.
            segments.append(
                PromptSegment(
                    kind=classify_segment(cleaned),
                    text=cleaned,
                    start_offset=0,
                    end_offset=len(cleaned),
                )
            )
        else:
            offset = 0
            for clause in clauses:
                end = offset + len(clause)
                segments.append(
                    PromptSegment(
                        kind=classify_segment(clause),
                        text=clause,
                        start_offset=offset,
                        end_offset=end,
                    )
                )
                offset = end + 1

    logger.debug(
        "Compiled prompt into %d segments with %d characters", len(segments), len(characters)
    )

    return ParsedPrompt(original=raw_prompt, segments=segments, characters=characters)
