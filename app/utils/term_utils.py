"""
Term normalization and record key construction.

Both the access ledger and the approval workflow key their records on the
academic term, so every term string passes through `normalize_term` before it
is compared or joined into a key. "1st Term", "first" and "First Term" all
resolve to the same canonical label.
"""

import re
from typing import Optional

FIRST_TERM = "First Term"
SECOND_TERM = "Second Term"
THIRD_TERM = "Third Term"

CANONICAL_TERMS = (FIRST_TERM, SECOND_TERM, THIRD_TERM)

TERM_LABELS = {
    "first": FIRST_TERM,
    "first term": FIRST_TERM,
    "1st": FIRST_TERM,
    "1st term": FIRST_TERM,
    "second": SECOND_TERM,
    "second term": SECOND_TERM,
    "2nd": SECOND_TERM,
    "2nd term": SECOND_TERM,
    "third": THIRD_TERM,
    "third term": THIRD_TERM,
    "3rd": THIRD_TERM,
    "3rd term": THIRD_TERM,
}

KEY_SEPARATOR = "::"

_WORD_PATTERN = re.compile(r"\w\S*")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def title_case(value: str) -> str:
    """Upper-case the first character of each word and lower-case the rest."""
    return _WORD_PATTERN.sub(
        lambda match: match.group(0)[0].upper() + match.group(0)[1:].lower(), value
    )


def normalize_term(term: Optional[str]) -> str:
    """
    Resolve a free-form term string to its canonical label.

    Args:
        term: Term as typed by a user or stored by an older client

    Returns:
        str: One of the canonical labels, or the title-cased input when the
        term is not a known synonym. Blank input resolves to the first term.
    """
    if not term or not term.strip():
        return FIRST_TERM

    lookup_key = " ".join(term.split()).lower()
    return TERM_LABELS.get(lookup_key, title_case(term.strip()))


def normalize_key_segment(value: str) -> str:
    """Collapse whitespace runs to underscores and lower-case the segment."""
    return _WHITESPACE_PATTERN.sub("_", value).lower()


def build_access_key(parent_id: str, student_id: str, term: str, session: str) -> str:
    """Identity key of an access grant, with the term already canonical."""
    return KEY_SEPARATOR.join([parent_id, student_id, session, normalize_term(term)])


def build_workflow_record_id(
    student_id: str, class_name: str, subject: str, term: str, session: str
) -> str:
    """Identity key of a workflow record; stable across casing and spacing."""
    segments = [student_id, class_name, subject, normalize_term(term), session]
    return KEY_SEPARATOR.join(normalize_key_segment(segment) for segment in segments)
