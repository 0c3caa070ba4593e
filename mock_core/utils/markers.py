"""
Inline blank markers embedded in question text.

Two encodings are in circulation and both must keep working:

- bracket notation written by hand or by the plain-text editor: ``[3]``
- the rich-text editor's placeholder span: ``<span data-number="3">...</span>``

A single text may mix both, and the same number may appear in both forms
(the editor renders ``[3]`` inside the span), so results are de-duplicated.
"""
from __future__ import annotations

import re

BRACKET_MARKER_RE = re.compile(r"\[(\d+)\]")
HTML_MARKER_RE = re.compile(r"""data-number\s*=\s*["'](\d+)["']""")


def _bracket_markers(text: str) -> set[int]:
    return {int(num) for num in BRACKET_MARKER_RE.findall(text)}


def _html_markers(text: str) -> set[int]:
    return {int(num) for num in HTML_MARKER_RE.findall(text)}


def extract_markers(text: object) -> set[int]:
    """Return the distinct marker numbers found in ``text`` in either encoding."""
    if not isinstance(text, str) or not text:
        return set()
    return _bracket_markers(text) | _html_markers(text)

