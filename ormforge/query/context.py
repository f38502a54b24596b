"""Per-render placeholder and argument accumulator.

A single :class:`RenderContext` is created per ``build_*()`` call and threaded
through every clause, combined group and nested subquery.  Placeholders are
numbered and arguments appended in the same step, so ``params[i]`` always
belongs to the ``i``-th placeholder in the rendered text.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ormforge.dialect.base import SQLDialect
from ormforge.errors import MalformedClauseError

#: Marker written by callers in WHERE / HAVING fragments.
BIND_MARKER = "?"


def split_on_markers(fragment: str) -> list[str]:
    """Split ``fragment`` at every bind marker outside quoted text.

    Markers inside single-quoted string literals or double-quoted
    identifiers are literal text, not placeholders.

    Returns:
        The text pieces between markers; ``len(result) - 1`` is the marker
        count.
    """
    pieces: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for ch in fragment:
        if quote is not None:
            current.append(ch)
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
            current.append(ch)
        elif ch == BIND_MARKER:
            pieces.append("".join(current))
            current = []
        else:
            current.append(ch)
    pieces.append("".join(current))
    return pieces


def count_markers(fragment: str) -> int:
    """Return the number of bind markers in ``fragment``."""
    return len(split_on_markers(fragment)) - 1


@dataclass
class RenderContext:
    """Accumulates positional arguments during a single render.

    Attributes:
        dialect: Dialect supplying placeholder style and quoting.
        params: Arguments collected so far, in placeholder order.
    """

    dialect: SQLDialect
    params: list[Any] = field(default_factory=list)

    def add_value(self, value: Any) -> str:
        """Store a value and return the placeholder that refers to it."""
        self.params.append(value)
        return self.dialect.param_placeholder(len(self.params))

    def bind(self, fragment: str, values: Sequence[Any]) -> str:
        """Replace each marker in ``fragment`` with the next placeholder.

        Raises:
            MalformedClauseError: If the marker count differs from
                ``len(values)``.
        """
        pieces = split_on_markers(fragment)
        if len(pieces) - 1 != len(values):
            raise MalformedClauseError(
                f"Fragment {fragment!r} has {len(pieces) - 1} placeholder(s) "
                f"but {len(values)} value(s) were supplied.",
                fragment=fragment,
                expected=len(pieces) - 1,
                received=len(values),
            )
        out = [pieces[0]]
        for value, piece in zip(values, pieces[1:]):
            out.append(self.add_value(value))
            out.append(piece)
        return "".join(out)
