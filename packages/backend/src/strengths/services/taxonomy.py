"""Label canonicalization for the shared category/capability vocabulary.

Learn: Community entries are free text typed by many unrelated people.
Without normalization the vocabulary fragments into near-duplicates:
"UX Research", "ux research", "UX research ". Every label is therefore
reduced to one canonical form before it is stored or compared:

1. Trim and collapse runs of whitespace, then lower-case.
2. Re-case: categories use Title Case with a small-word list
   (articles, short prepositions and conjunctions stay lower-case unless
   they are the first word); capabilities capitalize every word.
3. First writer wins: if an existing label matches case-insensitively,
   that label's stored form is returned instead of the new casing.

These functions are pure — the caller supplies the existing labels.
"""

from collections.abc import Iterable
from typing import Optional

SMALL_WORDS = frozenset(
    {
        "a", "an", "the",
        "and", "but", "or", "nor", "for", "so", "yet",
        "as", "at", "by", "in", "of", "off", "on", "per", "to", "up", "via",
        "from", "into", "onto", "with", "vs",
    }
)


def clean_label(raw: str) -> str:
    """Trim and collapse internal whitespace."""
    return " ".join(raw.split())


def label_key(raw: str) -> str:
    """Comparison key — what two labels must share to be "the same"."""
    return clean_label(raw).lower()


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def title_case(raw: str) -> str:
    """Title Case with small words kept lower-case after the first word."""
    words = label_key(raw).split(" ")
    if words == [""]:
        return ""
    cased = [_capitalize(words[0])]
    for word in words[1:]:
        cased.append(word if word in SMALL_WORDS else _capitalize(word))
    return " ".join(cased)


def capitalize_words(raw: str) -> str:
    """Capitalize every word."""
    key = label_key(raw)
    if not key:
        return ""
    return " ".join(_capitalize(word) for word in key.split(" "))


def find_existing(raw: str, existing: Iterable[str]) -> Optional[str]:
    """Return the first label in `existing` matching `raw` ignoring case."""
    key = label_key(raw)
    for label in existing:
        if label_key(label) == key:
            return label
    return None


def normalize_category(raw: str, existing: Iterable[str] = ()) -> str:
    """Canonical category for `raw`, converging on an existing spelling."""
    match = find_existing(raw, existing)
    if match is not None:
        return match
    return title_case(raw)


def normalize_capability(raw: str, existing: Iterable[str] = ()) -> str:
    """Canonical capability label for `raw`, converging on an existing spelling."""
    match = find_existing(raw, existing)
    if match is not None:
        return match
    return capitalize_words(raw)
