"""Identifier helpers shared by both backends.

Flag and command names in a specification are free-form CLI words
(``max-items``, ``api.token``, ``pageSize``); generated Python needs valid,
collision-free identifiers for them. :func:`to_identifier` performs the
word-boundary aware conversion and :class:`NameAllocator` hands out unique
names within one generated module.
"""

from __future__ import annotations

import keyword
import re
from typing import Iterable

_SEPARATORS = re.compile(r"[^0-9A-Za-z]+")
# Split "pageSize" -> "page", "Size" and "HTTPServer" -> "HTTP", "Server".
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def split_words(name: str) -> list[str]:
    """Split *name* into words on separators and camelCase boundaries.

    Example::

        >>> split_words("my-flag")
        ['my', 'flag']
        >>> split_words("myFlag")
        ['my', 'Flag']
    """
    words: list[str] = []
    for chunk in _SEPARATORS.split(name):
        if chunk:
            words.extend(w for w in _CAMEL_BOUNDARY.split(chunk) if w)
    return words


def to_identifier(name: str, prefix: str = "x") -> str:
    """Convert a CLI name to a snake_case Python identifier.

    ``my-flag``, ``my_flag``, ``my.flag`` and ``myFlag`` all become
    ``my_flag``. Names starting with a digit get *prefix* prepended and
    Python keywords get a trailing underscore.

    Args:
        name: The free-form name from the specification.
        prefix: Word prepended when the result would not be a valid
            identifier on its own.

    Returns:
        A valid, lower-case Python identifier.
    """
    ident = "_".join(word.lower() for word in split_words(name))
    if not ident:
        return prefix
    if ident[0].isdigit():
        ident = f"{prefix}_{ident}"
    if keyword.iskeyword(ident):
        ident += "_"
    return ident


class NameAllocator:
    """Hand out unique identifiers, suffixing ``_2``, ``_3`` ... on collision."""

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._used: set[str] = set(reserved)

    def allocate(self, base: str) -> str:
        name = base
        counter = 2
        while name in self._used:
            name = f"{base}_{counter}"
            counter += 1
        self._used.add(name)
        return name
