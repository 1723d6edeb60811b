"""
selector.py

Responsibility: Present the version matrix as a numbered list and validate a
single 1-based choice. There is no retry: an invalid choice is an error.
"""

from __future__ import annotations

from devimage.errors import DevImageError
from devimage.versions import MatrixEntry, VersionMatrix


class SelectionError(DevImageError, ValueError):
    pass


def format_choices(matrix: VersionMatrix) -> list[str]:
    return [f"  {i}) {entry.label}" for i, entry in enumerate(matrix, start=1)]


def select_entry(matrix: VersionMatrix, raw: str) -> MatrixEntry:
    """
    Return the entry for a 1-based index given as text.

    Only plain ASCII digits are accepted ("+1", "-1", "1.0" and " " are all
    rejected); surrounding whitespace is ignored.
    """
    choice = (raw or "").strip()
    if not choice or not (choice.isascii() and choice.isdigit()):
        raise SelectionError(f"Invalid selection: {raw!r}")

    index = int(choice)
    if index < 1 or index > len(matrix):
        raise SelectionError(f"Invalid selection: {index} (expected 1-{len(matrix)})")
    return matrix[index - 1]
