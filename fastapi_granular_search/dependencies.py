# fastapi_granular_search/dependencies.py

from typing import Callable, Optional, Type

from fastapi import Depends, Request

from .builder import GranularSearch, get_granular_search
from .params import SearchParams


def GranularQuery(model: Type, searcher: Optional[Callable[[], GranularSearch]] = None):
    """Route dependency yielding `select(model)` filtered by the request's query string."""
    get_searcher = searcher or get_granular_search

    def wrapper(
        request: Request,
        params: SearchParams = Depends(),
        granular: GranularSearch = Depends(get_searcher),
    ):
        return granular.search(request, model)
    return Depends(wrapper)
