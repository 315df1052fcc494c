# fastapi_granular_search/schema.py

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import Mapper

from .config import DEFAULT_CONFIG, EntitySearchConfig
from .exceptions import ConfigurationError, UnknownEntity, UnknownRelation

logger = logging.getLogger(__name__)


class RelationKind(str, Enum):
    TO_ONE = "to_one"
    TO_MANY = "to_many"


@dataclass(frozen=True)
class RelationInfo:
    name: str
    kind: RelationKind
    target: str  # table name of the related entity
    model: Any


@dataclass(frozen=True)
class EntityDescriptor:
    """Static, read-only view of a mapped entity and its search configuration."""
    name: str
    model: Any
    fields: tuple[str, ...]
    relations: dict[str, RelationInfo]
    config: EntitySearchConfig

    @property
    def searchable_fields(self) -> tuple[str, ...]:
        return tuple(f for f in self.fields if f not in self.config.excluded_fields)

    def has_field(self, field: str) -> bool:
        return field in self.fields


def snake_singular(relation: str) -> str:
    """Default parameter prefix for a relation: 'blogPosts' -> 'blog_post'."""
    snake = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", relation).lower()
    if snake.endswith("ies") and len(snake) > 3:
        return snake[:-3] + "y"
    if snake.endswith(("sses", "xes", "zes", "ches", "shes")):
        return snake[:-2]
    if snake.endswith("s") and not snake.endswith("ss"):
        return snake[:-1]
    return snake


def _mapper_of(model) -> Mapper:
    try:
        mapper = inspect(model)
    except NoInspectionAvailable:
        raise UnknownEntity(f"'{getattr(model, '__name__', model)}' is not a mapped entity")
    if not isinstance(mapper, Mapper):
        raise UnknownEntity(f"'{getattr(model, '__name__', model)}' is not a mapped entity")
    return mapper


class SearchRegistry:
    """
    Schema introspection and relation resolution for mapped models.

    Descriptors are built once per model and reused; relations are read from
    the mapper when a model is registered, not per search call.
    """

    def __init__(self):
        self._descriptors: dict[Any, EntityDescriptor] = {}

    def register(self, model, config: Optional[EntitySearchConfig] = None) -> EntityDescriptor:
        mapper = _mapper_of(model)
        if config is None:
            config = getattr(model, "__granular_search__", None) or DEFAULT_CONFIG
        if not isinstance(config, EntitySearchConfig):
            raise ConfigurationError(
                f"Search configuration of '{model.__name__}' must be an EntitySearchConfig")

        name = mapper.local_table.name
        fields = tuple(attr.key for attr in mapper.column_attrs)
        relations = {
            rel.key: RelationInfo(
                name=rel.key,
                kind=RelationKind.TO_MANY if rel.uselist else RelationKind.TO_ONE,
                target=rel.mapper.local_table.name,
                model=rel.mapper.class_,
            )
            for rel in mapper.relationships
        }

        unknown_fuzzy = config.fuzzy_fields - set(fields)
        if unknown_fuzzy:
            raise ConfigurationError(
                f"Fuzzy fields {sorted(unknown_fuzzy)} are not fields of '{name}'")
        unknown_relations = config.allowed_relations - set(relations)
        if unknown_relations:
            raise UnknownRelation(
                f"The model '{model.__name__}' does not have such relation: {sorted(unknown_relations)}")
        stray_q_relations = config.free_text_relations - config.allowed_relations
        if stray_q_relations:
            raise ConfigurationError(
                f"Free-text relations {sorted(stray_q_relations)} of '{name}' are not allowed relations")

        descriptor = EntityDescriptor(
            name=name, model=model, fields=fields, relations=relations, config=config)
        self._descriptors[model] = descriptor
        logger.debug("Registered entity %s with %d fields and relations %s",
                     name, len(fields), sorted(relations))
        return descriptor

    def descriptor(self, model) -> EntityDescriptor:
        descriptor = self._descriptors.get(model)
        if descriptor is None:
            descriptor = self.register(model)
        return descriptor

    # Schema introspection

    def entity_exists(self, model, entity_name: str) -> bool:
        return entity_name in _mapper_of(model).local_table.metadata.tables

    def fields_of(self, model) -> tuple[str, ...]:
        return self.descriptor(model).fields

    def has_field(self, model, field: str) -> bool:
        return self.descriptor(model).has_field(field)

    # Relation resolution

    def is_valid_relation(self, model, relation: str) -> bool:
        return relation in self.descriptor(model).relations

    def related_entity_of(self, model, relation: str) -> RelationInfo:
        info = self.descriptor(model).relations.get(relation)
        if info is None:
            raise UnknownRelation(
                f"The model '{model.__name__}' does not have such relation: {relation}")
        return info

    def validate_relation(self, model, relation: str) -> RelationInfo:
        descriptor = self.descriptor(model)
        if relation not in descriptor.config.allowed_relations:
            raise UnknownRelation(
                f"The relation is not included in the allowed relations of '{descriptor.name}': {relation}")
        return self.related_entity_of(model, relation)

    def relation_prefix(self, model, relation: str) -> str:
        prefixes = self.descriptor(model).config.relation_prefixes
        return prefixes.get(relation) or snake_singular(relation)


default_registry = SearchRegistry()
