# fastapi_granular_search/classifier.py

import logging
from dataclasses import dataclass
from typing import Iterable

from .extractor import has_q
from .params import Params

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifiedFields:
    exact: tuple[str, ...]
    fuzzy: tuple[str, ...]
    free_text: bool


def classify(
    params: Params,
    table_fields: Iterable[str],
    fuzzy_fields: Iterable[str] = (),
    ignore_q: bool = False,
    q_key: str = "q",
    reserved_keys: Iterable[str] = (),
) -> ClassifiedFields:
    """
    Split the entity's fields into exact-match and fuzzy-match groups.

    In free-text mode every configured fuzzy field takes part and every other
    field is compared exactly, whether or not it was sent as a key. Otherwise
    only the fields present in `params` are used.
    """
    reserved = set(reserved_keys) | {q_key}
    table_fields = [f for f in table_fields if f not in reserved]
    fuzzy_config = set(fuzzy_fields)
    free_text = not ignore_q and has_q(params, q_key)

    if free_text:
        fuzzy = [f for f in table_fields if f in fuzzy_config]
        exact = [f for f in table_fields if f not in fuzzy_config]
    else:
        present = [f for f in table_fields if f in params]
        fuzzy = [f for f in present if f in fuzzy_config]
        exact = [f for f in present if f not in fuzzy_config]

    logger.debug("Classified fields exact=%s fuzzy=%s free_text=%s", exact, fuzzy, free_text)
    return ClassifiedFields(exact=tuple(exact), fuzzy=tuple(fuzzy), free_text=free_text)
