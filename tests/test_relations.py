"""Tests for cascading searches into related models."""

import pytest

from fastapi_granular_search import EntitySearchConfig, Group, InvalidInput, RelationMatch, UnknownRelation

from tests.helpers import id_set
from tests.models import Author, Comment, Post


def relation_matches(predicate):
    if isinstance(predicate, RelationMatch):
        return [predicate]
    if isinstance(predicate, Group):
        return [m for item in predicate.items for m in relation_matches(item)]
    return []


class TestPrefixedRelationFilters:
    def test_to_one_relation(self, searcher, seeded):
        assert id_set(seeded, searcher.search({"author_name": "Alan"}, Post)) == {2, 3}

    def test_relation_filter_is_an_extra_requirement(self, searcher, seeded):
        stmt = searcher.search({"author_name": "Alan", "status": "archived"}, Post)
        assert id_set(seeded, stmt) == {3}

    def test_to_many_relation(self, searcher, seeded):
        assert id_set(seeded, searcher.search({"post_title": "engine"}, Author)) == {1}

    def test_nested_relations(self, searcher, seeded):
        stmt = searcher.search({"post_author_name": "Grace"}, Comment)
        assert id_set(seeded, stmt) == {1}

    def test_relations_that_are_not_allowed_are_ignored(self, searcher, registry, seeded):
        registry.register(Post, EntitySearchConfig(allowed_relations=["author"]))
        assert id_set(seeded, searcher.search({"comment_body": "cat"}, Post)) == {1, 2, 3, 4}

    def test_empty_relation_subset_is_a_no_op(self, searcher):
        assert "EXISTS" not in str(searcher.search({"author_name": ""}, Post))


class TestFreeTextRelations:
    def test_related_match_satisfies_free_text(self, searcher, seeded):
        assert id_set(seeded, searcher.search({"q": "turing"}, Post)) == {2, 3}

    def test_related_entity_is_searched_once(self, searcher, registry):
        descriptor = registry.descriptor(Post)
        predicate, _ = searcher.entity_predicate(descriptor, {"q": "turing"}, False, set())
        matches = relation_matches(predicate)
        assert [m.relation for m in matches] == ["author"]

    def test_visited_set_collects_entities(self, searcher, registry):
        visited = set()
        searcher.entity_predicate(registry.descriptor(Post), {"q": "turing"}, False, visited)
        assert visited == {"posts", "authors"}

    def test_q_relations_parameter_overrides_configuration(self, searcher, seeded):
        stmt = searcher.search({"q": "turing", "q_relations": ["reviewer"]}, Post)
        assert id_set(seeded, stmt) == {1}

    def test_q_relations_outside_allowed_are_ignored(self, searcher, seeded):
        stmt = searcher.search({"q": "turing", "q_relations": "editor"}, Post)
        assert id_set(seeded, stmt) == set()

    def test_prefixed_token_overrides_free_text(self, searcher, seeded):
        stmt = searcher.search({"q": "turing", "author_q": "grace"}, Post)
        assert id_set(seeded, stmt) == {4}

    def test_prefixed_filters_still_required(self, searcher, seeded):
        assert id_set(seeded, searcher.search({"q": "grace", "comment_body": "cat"}, Post)) == {4}
        assert id_set(seeded, searcher.search({"q": "turing", "comment_body": "cat"}, Post)) == set()

    def test_ignore_q_disables_relation_fan_out(self, searcher, seeded):
        stmt = searcher.search({"q": "turing"}, Post, ignore_q=True)
        assert id_set(seeded, stmt) == {1, 2, 3, 4}

    def test_unmatchable_free_text_is_not_dropped(self, searcher, registry, seeded):
        registry.register(Author, EntitySearchConfig(
            excluded_fields=["name", "email", "password"],
            allowed_relations=["posts"],
        ))
        assert id_set(seeded, searcher.search({"post_title": "engine"}, Author)) == {1}
        assert id_set(seeded, searcher.search({"q": "zzz", "post_title": "engine"}, Author)) == set()

    def test_uncoercible_related_value_next_to_free_text(self, searcher):
        with pytest.raises(InvalidInput):
            searcher.search({"q": "turing", "author_age": "old"}, Post)

    def test_symmetric_relations_terminate(self, searcher, registry, seeded):
        registry.register(Author, EntitySearchConfig(
            excluded_fields=["password"],
            fuzzy_fields=["name", "email"],
            allowed_relations=["posts"],
            free_text_relations=["posts"],
        ))
        assert id_set(seeded, searcher.search({"q": "analytical"}, Author)) == {1}
        predicate, _ = searcher.entity_predicate(
            registry.descriptor(Author), {"q": "analytical"}, False, set())
        assert [m.relation for m in relation_matches(predicate)] == ["posts"]


class TestOfRelation:
    def test_single_key(self, searcher, seeded):
        assert id_set(seeded, searcher.of_relation(Post, "author", "name", "Grace")) == {4}

    def test_several_keys_with_force_or(self, searcher, seeded):
        stmt = searcher.of_relation(Post, "author", ["name", "email"], "alan", force_or=True)
        assert id_set(seeded, stmt) == {2, 3}

    def test_several_keys_all_required(self, searcher, seeded):
        stmt = searcher.of_relation(Post, "author", ["name", "email"], "alan")
        assert id_set(seeded, stmt) == {2, 3}
        stmt = searcher.of_relation(Post, "author", ["name", "email"], "lovelace")
        assert id_set(seeded, stmt) == set()

    def test_unknown_relation(self, searcher):
        with pytest.raises(UnknownRelation):
            searcher.of_relation(Post, "editor", "name", "x")

    def test_relation_must_be_allowed(self, searcher, registry):
        registry.register(Post, EntitySearchConfig(allowed_relations=["author"]))
        with pytest.raises(UnknownRelation):
            searcher.of_relation(Post, "comments", "body", "cat")


class TestOfRelationFromRequest:
    def test_prefixed_keys(self, searcher, seeded):
        stmt = searcher.of_relation_from_request({"author_name": "Ada"}, Post, "author")
        assert id_set(seeded, stmt) == {1}

    def test_custom_prefix(self, searcher, seeded):
        stmt = searcher.of_relation_from_request({"writer_name": "Ada"}, Post, "author", prepend_key="writer")
        assert id_set(seeded, stmt) == {1}

    def test_free_text(self, searcher, seeded):
        stmt = searcher.of_relation_from_request({"q": "hopper"}, Post, "author")
        assert id_set(seeded, stmt) == {4}

    def test_nothing_to_filter(self, searcher, seeded):
        stmt = searcher.of_relation_from_request({"title": "x"}, Post, "author")
        assert id_set(seeded, stmt) == {1, 2, 3, 4}
