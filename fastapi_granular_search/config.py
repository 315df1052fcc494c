# fastapi_granular_search/config.py

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from .exceptions import InvalidInput


def as_name_set(value: Any, label: str) -> frozenset[str]:
    """Coerce a plain list/tuple/set of names to a frozenset, rejecting mappings."""
    if value is None:
        return frozenset()
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise InvalidInput(f"{label} must be a list of field names, got {type(value).__name__}")
    names = list(value)
    for name in names:
        if not isinstance(name, str):
            raise InvalidInput(f"{label} must only contain strings, got {name!r}")
    return frozenset(names)


@dataclass(frozen=True)
class EntitySearchConfig:
    """
    Per-entity search settings.

    Attributes:
        excluded_fields: Fields that can never be filtered or searched.
        fuzzy_fields: Fields matched with LIKE instead of '='.
        allowed_relations: Relations that may be cascaded into.
        free_text_relations: Relations that also receive the free-text token.
        relation_prefixes: Parameter prefix per relation, overriding snake_singular(relation).
    """
    excluded_fields: frozenset[str] = frozenset()
    fuzzy_fields: frozenset[str] = frozenset()
    allowed_relations: frozenset[str] = frozenset()
    free_text_relations: frozenset[str] = frozenset()
    relation_prefixes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("excluded_fields", "fuzzy_fields", "allowed_relations", "free_text_relations"):
            object.__setattr__(self, name, as_name_set(getattr(self, name), name))
        if not isinstance(self.relation_prefixes, Mapping):
            raise InvalidInput("relation_prefixes must be a mapping of relation name to prefix")
        object.__setattr__(self, "relation_prefixes", dict(self.relation_prefixes))

    def __hash__(self):
        return hash((
            self.excluded_fields,
            self.fuzzy_fields,
            self.allowed_relations,
            self.free_text_relations,
            tuple(sorted(self.relation_prefixes.items())),
        ))


DEFAULT_CONFIG = EntitySearchConfig()
