# fastapi_granular_search/extractor.py

from typing import Any, Iterable, Optional

from .params import Params


def is_filled(value: Any) -> bool:
    """An empty string, blank string, empty list or None counts as "not provided"."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, list):
        return any(is_filled(v) for v in value)
    return True


def has_q(params: Params, q_key: str = "q") -> bool:
    return is_filled(params.get(q_key))


def _compact(value: Any) -> Any:
    if isinstance(value, list):
        return [v for v in value if is_filled(v)]
    return value


def extract_prepended_keys(params: Params, prepend_key: str, q_key: Optional[str] = "q") -> Params:
    """
    Keep only the keys namespaced with `prepend_key` and strip the prefix.

    extract_prepended_keys({"author_name": "Jo", "title": "x"}, "author") == {"name": "Jo"}

    When `q_key` is given, the free-text token rides along so related entities can
    be searched with it; an explicit `<prepend_key>_q` wins over the shared one.
    """
    prefix = f"{prepend_key}_"
    extracted: Params = {}
    if q_key and is_filled(params.get(q_key)):
        extracted[q_key] = params[q_key]
    for key, value in params.items():
        if key.startswith(prefix) and len(key) > len(prefix):
            extracted[key[len(prefix):]] = value
    return extracted


def extract(
    params: Params,
    excluded_keys: Iterable[str] = (),
    prepend_key: str = "",
    ignore_q: bool = False,
    q_key: str = "q",
) -> Params:
    """
    Normalize a parameter mapping for one entity.

    Excluded keys are dropped first. With a `prepend_key`, only namespaced keys are
    kept (renamed) unless a free-text search is running, in which case keys pass
    through unchanged. Empty values are dropped.
    """
    excluded = set(excluded_keys)
    data = {k: v for k, v in params.items() if k not in excluded}

    free_text = not ignore_q and has_q(data, q_key)
    if prepend_key and not free_text:
        data = extract_prepended_keys(data, prepend_key, q_key=None)
        data = {k: v for k, v in data.items() if k not in excluded}

    if ignore_q:
        data.pop(q_key, None)

    return {k: _compact(v) for k, v in data.items() if is_filled(v)}
