# fastapi_granular_search/params.py

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

from fastapi import Query, Request
from starlette.datastructures import ImmutableMultiDict

from .exceptions import InvalidInput

Scalar = Union[str, int, float, bool, Decimal, date, datetime, None]
ParamValue = Union[Scalar, list[Scalar]]
Params = dict[str, ParamValue]

SCALAR_TYPES = (str, int, float, bool, Decimal, date, datetime, type(None))


class SearchParams:
    """Documents the reserved search parameters in OpenAPI.

    Every other query parameter whose name is a field of the entity is used as a filter.
    """

    def __init__(
        self,
        q: Optional[str] = Query(None, description="Free-text search across the searchable fields."),
        sort_by: Optional[list[str]] = Query(None, alias="sortBy", description="e.g. sortBy=name&sortBy=id"),
        sort_by_desc: Optional[list[str]] = Query(None, alias="sortByDesc", description="e.g. sortByDesc=created_at"),
    ):
        self.q = q
        self.sort_by = sort_by
        self.sort_by_desc = sort_by_desc


def _from_multi_items(items) -> Params:
    data: Params = {}
    for key, value in items:
        as_list = key.endswith("[]")
        if as_list:
            key = key[:-2]
        if key in data:
            current = data[key]
            data[key] = (current if isinstance(current, list) else [current]) + [value]
        else:
            data[key] = [value] if as_list else value
    return data


def _check_value(key: str, value: Any) -> ParamValue:
    if isinstance(value, SCALAR_TYPES):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        for item in value:
            if not isinstance(item, SCALAR_TYPES):
                raise InvalidInput(
                    f"Invalid value for key '{key}': lists may only contain scalars, got {item!r}")
        return list(value)
    raise InvalidInput(f"Invalid filter format for key '{key}': {value!r}")


def normalize_params(source: Any, q_key: str = "q") -> Params:
    """
    Turn a request, a multi-dict, a plain mapping or a bare search string into
    a flat dict of key -> scalar or list of scalars.

    The input is never modified.
    """
    if source is None:
        return {}
    if isinstance(source, str):
        return {q_key: source}
    if isinstance(source, Request):
        source = source.query_params
    if isinstance(source, ImmutableMultiDict):
        return _from_multi_items(source.multi_items())
    if not isinstance(source, Mapping):
        raise InvalidInput(f"Search parameters must be a mapping, got {type(source).__name__}")

    params: Params = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise InvalidInput(f"Parameter keys must be strings, got {key!r}")
        params[key] = _check_value(key, value)
    return params
