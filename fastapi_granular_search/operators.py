# fastapi_granular_search/operators.py

import enum
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import String, and_, cast, false, or_
from sqlalchemy.sql import ColumnElement

from .core import ESCAPE_CHAR, Combine, Comparison, Group, Op, Predicate, RelationMatch
from .exceptions import InvalidInput
from .schema import RelationKind, SearchRegistry
from .settings import GranularSearchSettings

logger = logging.getLogger(__name__)

LOGICAL_OPERATORS = {
    Combine.AND: and_,
    Combine.OR: or_,
}

TRUE_STRINGS = {"true", "1", "yes", "on"}
FALSE_STRINGS = {"false", "0", "no", "off"}


class _Skip(Exception):
    pass


def python_type_of(column) -> Optional[type]:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def is_string_column(column) -> bool:
    """Check if a column is a string type"""
    return isinstance(column.type, String) and not hasattr(column.type, "enums")


def _coerce(python_type: Optional[type], value: Any) -> Any:
    if python_type is None or isinstance(value, python_type) and python_type is not int:
        return value
    if python_type is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
        raise ValueError(value)
    if python_type is int:
        if isinstance(value, bool):
            raise ValueError(value)
        if isinstance(value, int):
            return value
        return int(str(value).strip())
    if python_type is float:
        return float(value)
    if python_type is Decimal:
        return Decimal(str(value).strip())
    if python_type is datetime:
        return datetime.fromisoformat(str(value).strip())
    if python_type is date:
        return date.fromisoformat(str(value).strip())
    if isinstance(python_type, type) and issubclass(python_type, enum.Enum):
        try:
            return python_type(value)
        except ValueError:
            return python_type[str(value)]
    if python_type is str:
        return str(value)
    return value


def coerce_value(column, field: str, value: Any, strict: bool) -> Any:
    try:
        return _coerce(python_type_of(column), value)
    except (ValueError, TypeError, KeyError, InvalidOperation):
        if strict:
            raise InvalidInput(f"Invalid value for '{field}': {value!r}")
        raise _Skip()


def _eq_operator(column, field, value, strict, settings):
    return column == coerce_value(column, field, value, strict)


def _in_operator(column, field, values, strict, settings):
    coerced = []
    for value in values:
        try:
            coerced.append(coerce_value(column, field, value, strict))
        except _Skip:
            continue
    if not coerced:
        raise _Skip()
    return column.in_(coerced)


def _like_operator(column, field, pattern, strict, settings):
    target = column if is_string_column(column) else cast(column, String)
    if settings.case_sensitive:
        return target.like(pattern, escape=ESCAPE_CHAR)
    return target.ilike(pattern, escape=ESCAPE_CHAR)


COMPARISON_OPERATORS = {
    Op.EQ: _eq_operator,
    Op.IN: _in_operator,
    Op.LIKE: _like_operator,
}


def _compile(predicate: Predicate, model, registry: SearchRegistry,
             settings: GranularSearchSettings) -> Optional[ColumnElement]:
    # None means no row can match this node
    if isinstance(predicate, Comparison):
        column = getattr(model, predicate.field)
        try:
            return COMPARISON_OPERATORS[predicate.op](
                column, predicate.field, predicate.value, predicate.strict, settings)
        except _Skip:
            logger.debug("Skipping %s %s %r: value does not fit the column type",
                         predicate.field, predicate.op.value, predicate.value)
            return None

    if isinstance(predicate, Group):
        compiled = [_compile(item, model, registry, settings) for item in predicate.items]
        if predicate.mode == Combine.OR:
            compiled = [expr for expr in compiled if expr is not None]
        if not compiled or any(expr is None for expr in compiled):
            return None
        if len(compiled) == 1:
            return compiled[0]
        return LOGICAL_OPERATORS[predicate.mode](*compiled)

    if isinstance(predicate, RelationMatch):
        info = registry.related_entity_of(model, predicate.relation)
        inner = _compile(predicate.predicate, info.model, registry, settings)
        if inner is None:
            return None
        relationship = getattr(model, predicate.relation)
        if info.kind == RelationKind.TO_MANY:
            return relationship.any(inner)
        return relationship.has(inner)

    raise TypeError(f"Unsupported predicate node: {predicate!r}")


def compile_predicate(
    predicate: Optional[Predicate],
    model,
    registry: SearchRegistry,
    settings: GranularSearchSettings,
) -> Optional[ColumnElement]:
    """
    Translate a predicate tree into a SQLAlchemy expression against `model`.

    Returns None when there is nothing to filter on. When every free-text probe
    was dropped because the token fits none of the columns, the result is FALSE.
    """
    if predicate is None:
        return None
    expression = _compile(predicate, model, registry, settings)
    return false() if expression is None else expression
