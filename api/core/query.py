"""
Predicate composition for dynamic SQL.

A filter or assignment is a `Predicate`: a code-owned SQL template plus the one
value it binds. Templates refer to their value as `{0}`; `compose` numbers the
placeholders ($1, $2, ...) in order and returns the fragment together with the
argument list, so query text and arguments are always built in lockstep and
caller-supplied values only ever travel as bound parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence


@dataclass(frozen=True)
class Predicate:
    template: str
    value: Any


def compose(
    predicates: Iterable[Predicate],
    *,
    joiner: str,
    start: int = 1,
) -> tuple[str, list[Any]]:
    """
    Join predicates with `joiner`, numbering placeholders from `start`.
    """
    parts: list[str] = []
    args: list[Any] = []
    for index, predicate in enumerate(predicates, start=start):
        parts.append(predicate.template.format(f"${index}"))
        args.append(predicate.value)
    return joiner.join(parts), args


def where_clause(predicates: Sequence[Predicate]) -> tuple[str, list[Any]]:
    if not predicates:
        return "", []
    sql, args = compose(predicates, joiner=" AND ")
    return f" WHERE {sql}", args


def equals(column: str, value: Any) -> Predicate:
    return Predicate(f"{column} = {{0}}", value)


def escape_like(term: str) -> str:
    """
    Escape LIKE metacharacters so `term` matches literally (default escape char is a backslash).
    """
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_any(columns: Sequence[str], term: str) -> Predicate:
    """
    Case-insensitive substring match of `term` against any of `columns`, one bound value.
    """
    ors = " OR ".join(f"{column} ILIKE {{0}}" for column in columns)
    return Predicate(f"({ors})", f"%{escape_like(term)}%")
