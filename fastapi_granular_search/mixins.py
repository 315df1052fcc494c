# fastapi_granular_search/mixins.py

from typing import Any, Iterable, Optional, Union

from sqlalchemy import Select

from .builder import get_granular_search
from .config import DEFAULT_CONFIG


class Searchable:
    """
    Mixin for declarative models.

    class Post(Searchable, Base):
        __granular_search__ = EntitySearchConfig(fuzzy_fields=["title"], allowed_relations=["author"])

    Post.granular_search({"q": "cat"}) returns a Select on Post.
    """

    __granular_search__ = DEFAULT_CONFIG

    @classmethod
    def granular_search(cls, params: Any, stmt: Optional[Select] = None, ignore_q: bool = False) -> Select:
        return get_granular_search().search(params, cls, stmt=stmt, ignore_q=ignore_q)

    @classmethod
    def of_relation(cls, relation: str, key: Union[str, Iterable[str]], value: Any,
                    force_or: bool = False, stmt: Optional[Select] = None) -> Select:
        return get_granular_search().of_relation(cls, relation, key, value, force_or=force_or, stmt=stmt)

    @classmethod
    def of_relation_from_request(cls, params: Any, relation: str, prepend_key: Optional[str] = None,
                                 stmt: Optional[Select] = None) -> Select:
        return get_granular_search().of_relation_from_request(
            params, cls, relation, prepend_key=prepend_key, stmt=stmt)
