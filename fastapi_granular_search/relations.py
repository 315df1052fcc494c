# fastapi_granular_search/relations.py

import logging
from typing import TYPE_CHECKING, Iterable, Optional

from .core import Predicate, RelationMatch
from .extractor import extract_prepended_keys, is_filled
from .params import Params
from .schema import EntityDescriptor

if TYPE_CHECKING:
    from .builder import GranularSearch

logger = logging.getLogger(__name__)


def resolve_q_relations(descriptor: EntityDescriptor, params: Params, q_relations_key: str) -> frozenset[str]:
    """Free-text relations for this call: the configured ones, or the `q_relations`
    parameter restricted to the allowed relations."""
    requested = params.get(q_relations_key)
    if not is_filled(requested):
        return descriptor.config.free_text_relations
    if isinstance(requested, str):
        requested = requested.split(",")
    names = {str(name).strip() for name in requested if is_filled(name)}
    ignored = names - descriptor.config.allowed_relations
    if ignored:
        logger.debug("Ignoring q_relations %s not allowed on %s", sorted(ignored), descriptor.name)
    return frozenset(names & descriptor.config.allowed_relations)


def relation_step(
    searcher: "GranularSearch",
    descriptor: EntityDescriptor,
    relation: str,
    params: Params,
    free_text: bool,
    q_relations: Iterable[str],
    visited: set[str],
    prepend_key: Optional[str] = None,
) -> tuple[Optional[Predicate], Optional[Predicate]]:
    """
    Cascade the search into one relation.

    Returns (or_joined, and_joined); at most one of them is set. A relation that
    receives the free-text token can satisfy the search on its own, explicit
    prefixed filters are an extra requirement.
    """
    info = searcher.registry.validate_relation(descriptor.model, relation)
    q_key = searcher.settings.q_key
    prefix = prepend_key or searcher.registry.relation_prefix(descriptor.model, relation)

    subset = extract_prepended_keys(params, prefix, q_key if free_text else None)
    own = {
        k: v for k, v in subset.items()
        if is_filled(v) and (k != q_key or f"{prefix}_{q_key}" in params)
    }
    target = searcher.registry.descriptor(info.model)

    if free_text and relation in q_relations and info.target not in visited:
        predicate, _ = searcher.entity_predicate(target, subset, False, visited)
        if predicate is not None:
            logger.debug("OR-joining relation %s.%s", descriptor.name, relation)
            return RelationMatch(relation, predicate), None
    elif own:
        predicate, _ = searcher.entity_predicate(target, own, True, visited)
        if predicate is not None:
            logger.debug("AND-joining relation %s.%s with %s", descriptor.name, relation, sorted(own))
            return None, RelationMatch(relation, predicate)
    return None, None


def cascade_relations(
    searcher: "GranularSearch",
    descriptor: EntityDescriptor,
    params: Params,
    free_text: bool,
    visited: set[str],
) -> tuple[list[Predicate], list[Predicate]]:
    """Run relation_step over every allowed relation, in mapper declaration order."""
    q_relations = resolve_q_relations(descriptor, params, searcher.settings.q_relations_key)
    any_of: list[Predicate] = []
    all_of: list[Predicate] = []
    for relation in descriptor.relations:
        if relation not in descriptor.config.allowed_relations:
            continue
        or_joined, and_joined = relation_step(
            searcher, descriptor, relation, params, free_text, q_relations, visited)
        if or_joined is not None:
            any_of.append(or_joined)
        if and_joined is not None:
            all_of.append(and_joined)
    return any_of, all_of
