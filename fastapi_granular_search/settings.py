"""
Settings for granular search.
Loaded from environment variables prefixed with GRANULAR_SEARCH_.
"""
from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class FuzzyMode(str, Enum):
    SUBSEQUENCE = "subsequence"  # %f%o%o%
    CONTIGUOUS = "contiguous"  # %foo%


class GranularSearchSettings(BaseSettings):
    """Reserved parameter names and fuzzy matching behaviour."""

    model_config = SettingsConfigDict(env_prefix="GRANULAR_SEARCH_", extra="ignore")

    # Reserved parameter keys
    q_key: str = "q"
    sort_key: str = "sortBy"
    sort_desc_key: str = "sortByDesc"
    q_relations_key: str = "q_relations"

    # Fuzzy matching
    fuzzy_mode: FuzzyMode = FuzzyMode.SUBSEQUENCE
    case_sensitive: bool = False  # False compiles to ILIKE
    escape_wildcards: bool = True

    @property
    def reserved_keys(self) -> frozenset[str]:
        return frozenset({self.q_key, self.sort_key, self.sort_desc_key, self.q_relations_key})


@lru_cache
def get_settings() -> GranularSearchSettings:
    return GranularSearchSettings()
