"""Utility functions for frag2mtx package.

This module contains small parsing helpers shared by the region, cell and
fragment readers.
"""

from __future__ import annotations

U32_MAX = 2**32 - 1


def parse_u32(text: str) -> int:
    """Parse an unsigned 32-bit coordinate.

    Accepts ASCII digits with an optional leading ``+``. Whitespace,
    underscores, signs other than ``+`` and values above ``2**32 - 1`` are
    rejected, unlike :func:`int`.

    Parameters
    ----------
    text
        Field text to parse.

    Returns
    -------
    int
        The parsed value.

    Raises
    ------
    ValueError
        If the field is not a valid unsigned 32-bit integer.

    Examples
    --------
    >>> parse_u32("100")
    100
    >>> parse_u32("-1")
    Traceback (most recent call last):
    ...
    ValueError: invalid digit found in '-1'
    """
    digits = text[1:] if text.startswith("+") else text
    if not digits:
        raise ValueError(f"cannot parse integer from empty string {text!r}")
    if not (digits.isascii() and digits.isdigit()):
        raise ValueError(f"invalid digit found in {text!r}")
    value = int(digits)
    if value > U32_MAX:
        raise ValueError(f"number too large to fit in 32 bits: {text!r}")
    return value


def strip_newline(line: str) -> str:
    """Remove a trailing ``\\n`` or ``\\r\\n``, leaving other whitespace alone."""
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line
