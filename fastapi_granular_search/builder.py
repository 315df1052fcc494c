# fastapi_granular_search/builder.py

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable, Optional, Union

from sqlalchemy import Select, asc, desc, select

from .classifier import classify
from .config import as_name_set
from .core import Predicate, RelationMatch, build_predicate, join_predicates
from .exceptions import ConfigurationError, UnknownEntity
from .extractor import extract, has_q, is_filled
from .operators import compile_predicate
from .params import Params, normalize_params
from .relations import cascade_relations, relation_step, resolve_q_relations
from .schema import EntityDescriptor, SearchRegistry, default_registry
from .settings import GranularSearchSettings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SortClause:
    field: str
    descending: bool = False


def sort_clauses(params: Params, known_fields: Iterable[str], settings: GranularSearchSettings) -> list[SortClause]:
    """
    Read `sortBy`, or `sortByDesc` when `sortBy` is absent, into sort clauses.

    Unknown fields are skipped.
    """
    descending = False
    fields = params.get(settings.sort_key)
    if not is_filled(fields):
        descending = True
        fields = params.get(settings.sort_desc_key)
    if not is_filled(fields):
        return []

    known = set(known_fields)
    clauses = []
    for field in fields if isinstance(fields, list) else [fields]:
        if field in known:
            clauses.append(SortClause(field, descending))
        else:
            logger.debug("Skipping unknown sort field %r", field)
    return clauses


def apply_sort(stmt: Select, model, params: Params, known_fields: Iterable[str],
               settings: Optional[GranularSearchSettings] = None) -> Select:
    for clause in sort_clauses(params, known_fields, settings or get_settings()):
        column = getattr(model, clause.field)
        stmt = stmt.order_by(desc(column) if clause.descending else asc(column))
    return stmt


class GranularSearch:
    """
    Turns a flat parameter mapping into filters, free-text search and ordering
    on a SQLAlchemy `Select`, optionally cascading into related models.

    The returned statement is not executed.
    """

    def __init__(self, registry: Optional[SearchRegistry] = None,
                 settings: Optional[GranularSearchSettings] = None):
        self.registry = registry or default_registry
        self.settings = settings or get_settings()

    def _normalize(self, params: Any) -> Params:
        return normalize_params(params, self.settings.q_key)

    def _descriptor(self, model, table_name: Optional[str] = None) -> EntityDescriptor:
        descriptor = self.registry.descriptor(model)
        if table_name is not None and not self.registry.entity_exists(model, table_name):
            raise UnknownEntity(f"Unknown entity or table: '{table_name}'")
        return descriptor

    def _where(self, stmt: Optional[Select], model, predicate: Optional[Predicate]) -> Select:
        stmt = select(model) if stmt is None else stmt
        expression = compile_predicate(predicate, model, self.registry, self.settings)
        if expression is not None:
            stmt = stmt.where(expression)
        return stmt

    def predicate(
        self,
        params: Params,
        fields: Iterable[str],
        excluded_keys: Iterable[str] = (),
        like_keys: Iterable[str] = (),
        prepend_key: str = "",
        ignore_q: bool = False,
        force_or: bool = False,
    ) -> tuple[Optional[Predicate], Params]:
        """Extract, classify and build the predicate of a single entity."""
        settings = self.settings
        excluded = set(excluded_keys)
        extracted = extract(params, excluded, prepend_key, ignore_q, settings.q_key)
        classified = classify(
            extracted,
            [f for f in fields if f not in excluded],
            like_keys,
            ignore_q=ignore_q,
            q_key=settings.q_key,
            reserved_keys=settings.reserved_keys,
        )
        predicate = build_predicate(
            extracted,
            classified.exact,
            classified.fuzzy,
            free_text=classified.free_text,
            force_or=force_or,
            q_key=settings.q_key,
            fuzzy_mode=settings.fuzzy_mode,
            escape=settings.escape_wildcards,
        )
        return predicate, extracted

    def entity_predicate(
        self,
        descriptor: EntityDescriptor,
        params: Params,
        ignore_q: bool,
        visited: set[str],
    ) -> tuple[Optional[Predicate], Params]:
        """Predicate for one entity and, recursively, its allowed relations."""
        visited.add(descriptor.name)
        config = descriptor.config
        root, extracted = self.predicate(
            params, descriptor.fields, config.excluded_fields, config.fuzzy_fields, ignore_q=ignore_q)
        free_text = not ignore_q and has_q(extracted, self.settings.q_key)
        any_of, all_of = cascade_relations(self, descriptor, extracted, free_text, visited)
        return join_predicates([root, *any_of], all_of), extracted

    def granular_search(
        self,
        params: Any,
        model,
        table_name: Optional[str] = None,
        excluded_keys: Optional[Iterable[str]] = None,
        like_keys: Optional[Iterable[str]] = None,
        prepend_key: str = "",
        ignore_q: bool = False,
        force_or: bool = False,
        stmt: Optional[Select] = None,
    ) -> Select:
        """
        Filter `model` by the keys of `params` that are fields of its table.

        Args:
            params: Request, multi-dict, mapping or bare free-text string
            model: Mapped class to filter
            table_name: Table to validate against; defaults to the model's table
            excluded_keys: Fields that can never be filtered on
            like_keys: Fields matched with LIKE instead of '='
            prepend_key: Only use keys named `<prepend_key>_<field>`
            ignore_q: Disable free-text search for this call
            force_or: Match any field instead of all of them
            stmt: Statement to extend; defaults to select(model)

        Returns:
            The extended, unexecuted statement
        """
        excluded = as_name_set(excluded_keys, "excluded_keys")
        fuzzy = as_name_set(like_keys, "like_keys")
        params = self._normalize(params)
        descriptor = self._descriptor(model, table_name)

        unknown = fuzzy - set(descriptor.fields)
        if unknown:
            raise ConfigurationError(
                f"Fuzzy fields {sorted(unknown)} are not fields of '{descriptor.name}'")

        predicate, extracted = self.predicate(
            params, descriptor.fields, excluded, fuzzy, prepend_key, ignore_q, force_or)
        stmt = self._where(stmt, model, predicate)
        known = [f for f in descriptor.fields if f not in excluded]
        return apply_sort(stmt, model, extracted, known, self.settings)

    def search(self, params: Any, model, stmt: Optional[Select] = None, ignore_q: bool = False) -> Select:
        """
        Granular search on `model` using its registered configuration,
        cascading into its allowed relations.
        """
        params = self._normalize(params)
        descriptor = self._descriptor(model)
        visited: set[str] = set()
        predicate, extracted = self.entity_predicate(descriptor, params, ignore_q, visited)
        stmt = self._where(stmt, model, predicate)
        return apply_sort(stmt, model, extracted, descriptor.searchable_fields, self.settings)

    def of_relation(
        self,
        model,
        relation: str,
        key: Union[str, Iterable[str]],
        value: Any,
        force_or: bool = False,
        stmt: Optional[Select] = None,
    ) -> Select:
        """Require a related row whose `key` (or any/all of several keys) matches `value`."""
        info = self.registry.validate_relation(model, relation)
        keys = [key] if isinstance(key, str) else list(key)
        params = self._normalize({k: value for k in keys})
        target = self.registry.descriptor(info.model)
        predicate, _ = self.predicate(
            params, target.fields, target.config.excluded_fields, target.config.fuzzy_fields,
            force_or=force_or)
        if predicate is None:
            return select(model) if stmt is None else stmt
        return self._where(stmt, model, RelationMatch(relation, predicate))

    def of_relation_from_request(
        self,
        params: Any,
        model,
        relation: str,
        prepend_key: Optional[str] = None,
        stmt: Optional[Select] = None,
    ) -> Select:
        """Cascade the parameters into a single relation of `model`."""
        params = self._normalize(params)
        descriptor = self._descriptor(model)
        free_text = has_q(params, self.settings.q_key)
        q_relations = resolve_q_relations(descriptor, params, self.settings.q_relations_key)
        or_joined, and_joined = relation_step(
            self, descriptor, relation, params, free_text, q_relations, {descriptor.name}, prepend_key)
        return self._where(stmt, model, or_joined or and_joined)


@lru_cache
def get_granular_search() -> GranularSearch:
    return GranularSearch()


def build_query(cls: Any, params: Any, stmt: Optional[Select] = None) -> Select:
    return get_granular_search().search(params, cls, stmt=stmt)
