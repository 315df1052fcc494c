# fastapi_granular_search/aggregates.py

from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import Select, extract, func, literal_column, select

from .config import as_name_set
from .exceptions import ConfigurationError, InvalidInput
from .extractor import is_filled
from .params import normalize_params
from .schema import SearchRegistry, default_registry

TIME_PARAMS = ("date", "date_from", "date_to", "datetime_from", "datetime_to")

SECONDS_PER = {
    "minute": 60,
    "hour": 3600,
    "day": 86400,
    "week": 604800,
    "month": 2419200,  # 4 weeks
    "quarter": 7257600,  # 12 weeks
}


def _parse_date(key: str, value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip()).date()
    except ValueError:
        raise InvalidInput(f"Invalid date for '{key}': {value!r}")


def _parse_datetime(key: str, value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidInput(f"Invalid datetime for '{key}': {value!r}")


def time_search(stmt: Select, model, params: Any, time_column: str = "created_at") -> Select:
    """
    Filter on a date/time column.

    Recognized parameters, first match wins:
        date                        rows within that day
        date_from & date_to         rows from the start of the first day to the end of the last
        datetime_from & datetime_to rows between two datetimes
    """
    data = {k: v for k, v in normalize_params(params).items() if k in TIME_PARAMS and is_filled(v)}
    column = getattr(model, time_column, None)
    if column is None:
        raise ConfigurationError(f"Unknown time column '{time_column}'")

    if "date" in data:
        day = _parse_date("date", data["date"])
        start = datetime.combine(day, time.min)
        return stmt.where(column >= start, column < start + timedelta(days=1))
    if "date_from" in data and "date_to" in data:
        start = datetime.combine(_parse_date("date_from", data["date_from"]), time.min)
        end = datetime.combine(_parse_date("date_to", data["date_to"]), time.max)
        return stmt.where(column.between(start, end))
    if "datetime_from" in data and "datetime_to" in data:
        start = _parse_datetime("datetime_from", data["datetime_from"])
        end = _parse_datetime("datetime_to", data["datetime_to"])
        return stmt.where(column.between(start, end))
    return stmt


def convert_time_to_seconds(time_type: str, value: int = 1) -> int:
    try:
        return SECONDS_PER[time_type] * value
    except KeyError:
        raise ConfigurationError(
            f"Unknown time bucket '{time_type}', expected one of {sorted(SECONDS_PER)}")


def group_by(
    stmt: Optional[Select],
    model,
    column_name: str,
    excluded_keys: Optional[Iterable[str]] = None,
    extra_columns: Iterable[Any] = (),
    registry: Optional[SearchRegistry] = None,
) -> Select:
    """
    `column_name, COUNT(*) AS count` per distinct value; unchanged if the column
    is unknown or excluded.

    Any ORDER BY on `stmt` is dropped.
    """
    registry = registry or default_registry
    stmt = select(model) if stmt is None else stmt
    excluded = as_name_set(excluded_keys, "excluded_keys")
    if column_name in excluded or not registry.has_field(model, column_name):
        return stmt
    column = getattr(model, column_name)
    return stmt.with_only_columns(
        column, func.count().label("count"), *extra_columns
    ).group_by(column).order_by(None)


def group_by_time(
    stmt: Optional[Select],
    model,
    time_type: str,
    params: Any = None,
    time_column: str = "created_at",
    extra_columns: Iterable[Any] = (),
) -> Select:
    """
    `COUNT(*) AS time_count` per time bucket, with the bucket start (unix seconds)
    as `timestamp`. The bucket width is `value` (parameter, default 1) units of `time_type`.

    Any ORDER BY on `stmt` is dropped. Buckets use `extract(epoch)`, which SQLite
    and PostgreSQL support; MySQL has no epoch field and would need UNIX_TIMESTAMP.
    """
    stmt = select(model) if stmt is None else stmt
    raw = normalize_params(params).get("value", 1)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid value for 'value': {raw!r}")
    if value < 1:
        raise InvalidInput(f"Invalid value for 'value': {raw!r}")

    seconds = convert_time_to_seconds(time_type, value)
    epoch = extract("epoch", getattr(model, time_column))
    # inline the width so the grouped and selected expressions compare equal
    bucket = epoch - epoch % literal_column(str(seconds))
    return stmt.with_only_columns(
        func.count().label("time_count"), bucket.label("timestamp"), *extra_columns
    ).group_by(bucket).order_by(None)
