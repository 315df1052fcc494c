from .aggregates import group_by, group_by_time, time_search
from .builder import GranularSearch, SortClause, apply_sort, build_query, get_granular_search, sort_clauses
from .config import EntitySearchConfig
from .core import Combine, Comparison, Group, Op, RelationMatch, build_predicate, fuzzy_pattern
from .dependencies import GranularQuery
from .exceptions import ConfigurationError, GranularSearchError, InvalidInput, UnknownEntity, UnknownRelation
from .extractor import extract, extract_prepended_keys
from .classifier import classify
from .mixins import Searchable
from .params import SearchParams, normalize_params
from .schema import SearchRegistry, default_registry, snake_singular
from .settings import FuzzyMode, GranularSearchSettings, get_settings

__all__ = [
    "GranularSearch",
    "GranularQuery",
    "Searchable",
    "EntitySearchConfig",
    "SearchRegistry",
    "default_registry",
    "GranularSearchSettings",
    "FuzzyMode",
    "get_settings",
    "get_granular_search",
    "build_query",
    "normalize_params",
    "SearchParams",
    "extract",
    "extract_prepended_keys",
    "classify",
    "build_predicate",
    "fuzzy_pattern",
    "sort_clauses",
    "apply_sort",
    "SortClause",
    "Comparison",
    "Group",
    "RelationMatch",
    "Op",
    "Combine",
    "snake_singular",
    "time_search",
    "group_by",
    "group_by_time",
    "GranularSearchError",
    "InvalidInput",
    "UnknownEntity",
    "UnknownRelation",
    "ConfigurationError",
]
