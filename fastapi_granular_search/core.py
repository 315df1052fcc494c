# fastapi_granular_search/core.py

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Union

from .params import Params
from .settings import FuzzyMode

ESCAPE_CHAR = "\\"


class Op(str, Enum):
    EQ = "$eq"
    IN = "$in"
    LIKE = "$like"


class Combine(str, Enum):
    AND = "$and"
    OR = "$or"


@dataclass(frozen=True)
class Comparison:
    """
    A single field comparison.

    `strict` comparisons fail when the value does not fit the column type;
    non-strict ones (free-text probes) are dropped instead.
    """
    field: str
    op: Op
    value: Any
    strict: bool = True


@dataclass(frozen=True)
class Group:
    mode: Combine
    items: tuple


@dataclass(frozen=True)
class RelationMatch:
    """The related entity (through `relation`) must match `predicate`."""
    relation: str
    predicate: "Predicate"


Predicate = Union[Comparison, Group, RelationMatch]


def _escape(term: str) -> str:
    return (term.replace(ESCAPE_CHAR, ESCAPE_CHAR * 2)
            .replace("%", ESCAPE_CHAR + "%")
            .replace("_", ESCAPE_CHAR + "_"))


def fuzzy_pattern(term: Any, mode: FuzzyMode = FuzzyMode.SUBSEQUENCE, escape: bool = True) -> str:
    """
    Build the LIKE pattern for a fuzzy match.

    SUBSEQUENCE wraps every character with '%' so "cat" matches "c-a-t" and
    "concat"; CONTIGUOUS is a plain substring match.
    """
    term = str(term)
    chars = [_escape(c) if escape else c for c in term]
    if mode == FuzzyMode.CONTIGUOUS:
        return f"%{''.join(chars)}%"
    return "%" + "".join(f"{c}%" for c in chars)


def combine(mode: Combine, items: Iterable[Optional[Predicate]]) -> Optional[Predicate]:
    flat = []
    for item in items:
        if isinstance(item, Group) and item.mode == mode:
            flat.extend(item.items)
        elif item is not None:
            flat.append(item)
    items = tuple(flat)
    if not items:
        return None
    if len(items) == 1:
        return items[0]
    return Group(mode, items)


def join_predicates(
    any_of: Iterable[Optional[Predicate]], all_of: Iterable[Optional[Predicate]]
) -> Optional[Predicate]:
    """AND(OR(*any_of), *all_of) with empty sides dropped."""
    return combine(Combine.AND, [combine(Combine.OR, any_of), *all_of])


def _fuzzy_comparison(field: str, value: Any, strict: bool, mode: FuzzyMode, escape: bool) -> Predicate:
    if isinstance(value, list):
        return combine(Combine.OR, [
            Comparison(field, Op.LIKE, fuzzy_pattern(v, mode, escape), strict) for v in value
        ])
    return Comparison(field, Op.LIKE, fuzzy_pattern(value, mode, escape), strict)


def _exact_comparison(field: str, value: Any, strict: bool) -> Predicate:
    if isinstance(value, list):
        return Comparison(field, Op.IN, tuple(value), strict)
    return Comparison(field, Op.EQ, value, strict)


def build_predicate(
    params: Params,
    exact_fields: Iterable[str],
    fuzzy_fields: Iterable[str],
    free_text: bool = False,
    force_or: bool = False,
    q_key: str = "q",
    fuzzy_mode: FuzzyMode = FuzzyMode.SUBSEQUENCE,
    escape: bool = True,
) -> Optional[Predicate]:
    """
    Build the predicate for one entity from already classified fields.

    Fields are AND-ed (OR-ed with `force_or`), a list value matches any of its
    items. In free-text mode every field is probed with the `q` token, or with
    its own value when one was sent, and the probes are OR-ed.
    """
    q = params.get(q_key) if free_text else None
    expressions = []

    # only probes with the free-text token may be skipped, explicit values stay strict
    for field in fuzzy_fields:
        value = params.get(field, q)
        if value is not None:
            strict = field in params or not free_text
            expressions.append(_fuzzy_comparison(field, value, strict, fuzzy_mode, escape))

    for field in exact_fields:
        value = params.get(field, q)
        if value is not None:
            strict = field in params or not free_text
            expressions.append(_exact_comparison(field, value, strict))

    mode = Combine.OR if free_text or force_or else Combine.AND
    return combine(mode, expressions)
