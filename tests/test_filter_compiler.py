import json
import os
import unittest
from datetime import datetime, timezone

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from app.schemas.query import (
    AssociationDescriptor,
    CompiledQuery,
    FieldDescriptor,
    FieldKind,
    Predicate,
    SearchGroup,
    SortClause,
)
from app.services.filter_compiler import FilterValueError, add_filter, use_filter


class _UserModel:
    """Stand-in for a mapped class; the compiler only carries the reference through."""


FIELDS = [
    FieldDescriptor(name="id", kind=FieldKind.UUID),
    FieldDescriptor(name="created_at", kind=FieldKind.DATE),
    FieldDescriptor(name="name", kind=FieldKind.STRING),
    FieldDescriptor(name="age", kind=FieldKind.INTEGER),
    FieldDescriptor(name="score", kind=FieldKind.FLOAT),
    FieldDescriptor(name="is_active", kind=FieldKind.BOOLEAN),
    FieldDescriptor(name="owner_id", kind=FieldKind.UUID),
    FieldDescriptor(name="extra", kind=FieldKind.OTHER),
]

USERS = [AssociationDescriptor(alias="users", model=_UserModel, fields=["name", "email"])]


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class DefaultsTests(unittest.TestCase):
    def test_no_query_returns_defaults_with_string_search(self):
        compiled = use_filter(None, FIELDS)
        self.assertEqual(compiled.page, 1)
        self.assertEqual(compiled.limit, 10)
        self.assertEqual(compiled.sort, [SortClause(field="id", dir="ASC")])
        self.assertEqual(compiled.filter, {})
        self.assertEqual(compiled.search, "")

    def test_empty_query_has_no_search_group(self):
        compiled = use_filter({}, FIELDS)
        self.assertEqual((compiled.page, compiled.limit), (1, 10))
        self.assertEqual(compiled.sort, [SortClause(field="id", dir="ASC")])
        self.assertEqual(compiled.filter, {})
        self.assertIsNone(compiled.search)

    def test_default_sort_uses_given_primary_key(self):
        compiled = use_filter({}, FIELDS, primary_key="code")
        self.assertEqual(compiled.sort, [SortClause(field="code", dir="ASC")])


class PaginationTests(unittest.TestCase):
    def test_numeric_strings_are_parsed(self):
        compiled = use_filter({"page": "3", "limit": "25"}, FIELDS)
        self.assertEqual((compiled.page, compiled.limit), (3, 25))
        self.assertEqual(compiled.offset, 50)

    def test_invalid_values_fall_back_to_defaults(self):
        for page, limit in (("abc", "x"), ("0", "0"), ("-2", "-10"), ("", "")):
            compiled = use_filter({"page": page, "limit": limit}, FIELDS)
            self.assertEqual((compiled.page, compiled.limit), (1, 10), (page, limit))

    def test_limit_is_clamped_to_ceiling(self):
        compiled = use_filter({"limit": "100000"}, FIELDS, max_limit=50)
        self.assertEqual(compiled.limit, 50)

    def test_zero_ceiling_disables_clamp(self):
        compiled = use_filter({"limit": "100000"}, FIELDS, max_limit=0)
        self.assertEqual(compiled.limit, 100000)

    def test_repeated_key_uses_first_value(self):
        compiled = use_filter({"page": ["2", "9"]}, FIELDS)
        self.assertEqual(compiled.page, 2)


class SortTests(unittest.TestCase):
    def test_multiple_tokens_with_default_direction(self):
        compiled = use_filter({"sort": "name-DESC,age"}, FIELDS)
        self.assertEqual(
            compiled.sort,
            [SortClause(field="name", dir="DESC"), SortClause(field="age", dir="ASC")],
        )

    def test_direction_is_case_insensitive(self):
        compiled = use_filter({"sort": "name-desc"}, FIELDS)
        self.assertEqual(compiled.sort, [SortClause(field="name", dir="DESC")])

    def test_association_sort_references_joined_model(self):
        compiled = use_filter({"sort": "users.name-DESC"}, FIELDS, USERS)
        self.assertEqual(compiled.sort, [SortClause(field="name", dir="DESC", association="users")])

    def test_unknown_alias_keeps_dotted_field(self):
        compiled = use_filter({"sort": "teams.name-ASC"}, FIELDS, USERS)
        self.assertEqual(compiled.sort, [SortClause(field="teams.name", dir="ASC")])

    def test_repeated_sort_keys_are_combined(self):
        compiled = use_filter({"sort": ["age-DESC", "name"]}, FIELDS)
        self.assertEqual([s.field for s in compiled.sort], ["age", "name"])

    def test_invalid_direction_is_rejected(self):
        with self.assertRaises(FilterValueError):
            use_filter({"sort": "name-sideways"}, FIELDS)


class FilterTests(unittest.TestCase):
    def _filter(self, payload: dict) -> dict:
        return use_filter({"filter": json.dumps(payload)}, FIELDS).filter

    def test_from_and_to_collapse_into_single_between(self):
        result = self._filter({"from": "2024-01-01", "to": "2024-01-31"})
        self.assertEqual(list(result), ["created_at"])
        self.assertEqual(
            result["created_at"],
            Predicate(field="created_at", op="between", value=[_utc(2024, 1, 1), _utc(2024, 1, 31)]),
        )

    def test_to_before_from_in_json_still_collapses(self):
        result = use_filter({"filter": '{"to":"2024-01-31","from":"2024-01-01"}'}, FIELDS).filter
        self.assertEqual(result["created_at"].op, "between")
        self.assertEqual(result["created_at"].value, [_utc(2024, 1, 1), _utc(2024, 1, 31)])

    def test_from_alone_is_lower_bound(self):
        result = self._filter({"from": "2024-01-01T10:00:00Z"})
        self.assertEqual(result["created_at"], Predicate(field="created_at", op="gte", value=_utc(2024, 1, 1, 10)))

    def test_to_alone_is_upper_bound(self):
        result = self._filter({"to": "2024-01-31"})
        self.assertEqual(result["created_at"], Predicate(field="created_at", op="lte", value=_utc(2024, 1, 31)))

    def test_offset_datetimes_are_normalized_to_utc(self):
        result = self._filter({"from": "2024-01-01T03:00:00+03:00"})
        self.assertEqual(result["created_at"].value, _utc(2024, 1, 1))

    def test_integer_range_and_equality(self):
        self.assertEqual(self._filter({"age": "18-65"})["age"], Predicate(field="age", op="between", value=[18, 65]))
        self.assertEqual(self._filter({"age": "30"})["age"], Predicate(field="age", op="eq", value=30))
        self.assertEqual(self._filter({"age": 30})["age"], Predicate(field="age", op="eq", value=30))

    def test_negative_integer_is_equality_not_range(self):
        self.assertEqual(self._filter({"age": "-5"})["age"], Predicate(field="age", op="eq", value=-5))

    def test_invalid_integer_is_rejected(self):
        for bad in ("abc", "18-", "1-2-3"):
            with self.assertRaises(FilterValueError, msg=bad):
                self._filter({"age": bad})

    def test_date_field_is_equality_on_parsed_instant(self):
        self.assertEqual(
            self._filter({"created_at": "2024-02-01"})["created_at"],
            Predicate(field="created_at", op="eq", value=_utc(2024, 2, 1)),
        )

    def test_invalid_date_is_rejected(self):
        with self.assertRaises(FilterValueError) as ctx:
            self._filter({"created_at": "yesterday"})
        self.assertEqual(ctx.exception.field, "created_at")
        with self.assertRaises(FilterValueError):
            self._filter({"from": "not-a-date"})

    def test_uuid_is_used_verbatim(self):
        raw = "8F14E45F-CEEA-467A-9575-1A2B3C4D5E6F"
        self.assertEqual(self._filter({"owner_id": raw})["owner_id"], Predicate(field="owner_id", op="eq", value=raw))

    def test_invalid_uuid_is_rejected_at_compile_time(self):
        with self.assertRaises(FilterValueError) as ctx:
            self._filter({"owner_id": "not-a-uuid"})
        self.assertEqual(ctx.exception.field, "owner_id")

    def test_boolean_coercion(self):
        self.assertIs(self._filter({"is_active": "true"})["is_active"].value, True)
        self.assertIs(self._filter({"is_active": True})["is_active"].value, True)
        self.assertIs(self._filter({"is_active": "false"})["is_active"].value, False)
        self.assertIs(self._filter({"is_active": "yes"})["is_active"].value, False)

    def test_text_and_unknown_keys_use_substring_match(self):
        result = self._filter({"name": "Ann", "nickname": "x", "score": "4.5", "extra": "k"})
        self.assertEqual(result["name"], Predicate(field="name", op="ilike", value="%Ann%"))
        self.assertEqual(result["nickname"], Predicate(field="nickname", op="ilike", value="%x%"))
        self.assertEqual(result["score"].op, "ilike")
        self.assertEqual(result["extra"].op, "ilike")

    def test_range_and_field_filters_coexist(self):
        result = self._filter({"from": "2024-01-01", "name": "Ann", "to": "2024-01-31"})
        self.assertEqual(sorted(result), ["created_at", "name"])
        self.assertEqual(result["created_at"].op, "between")

    def test_explicit_created_at_does_not_replace_range(self):
        result = self._filter({"from": "2024-01-01", "to": "2024-01-31", "created_at": "2024-01-10"})
        self.assertEqual(
            result["created_at"],
            Predicate(field="created_at", op="between", value=[_utc(2024, 1, 1), _utc(2024, 1, 31)]),
        )
        self.assertEqual(result["created_at#2"], Predicate(field="created_at", op="eq", value=_utc(2024, 1, 10)))
        self.assertEqual(len(result), 2)

    def test_malformed_json_raises(self):
        with self.assertRaises(json.JSONDecodeError):
            use_filter({"filter": "{bad"}, FIELDS)

    def test_non_object_json_is_rejected(self):
        with self.assertRaises(FilterValueError):
            use_filter({"filter": "[1, 2]"}, FIELDS)


class SearchTests(unittest.TestCase):
    def test_numeric_term_hits_numbers_by_equality_and_text_by_substring(self):
        fields = [
            FieldDescriptor(name="age", kind=FieldKind.INTEGER),
            FieldDescriptor(name="name", kind=FieldKind.STRING),
        ]
        compiled = use_filter({"search": "42"}, fields)
        self.assertEqual(
            compiled.search,
            SearchGroup(
                any_of=[
                    Predicate(field="age", op="eq", value=42),
                    Predicate(field="name", op="ilike", value="%42%"),
                ]
            ),
        )

    def test_text_term_skips_numeric_date_uuid_and_boolean_fields(self):
        compiled = use_filter({"search": "ann"}, FIELDS)
        self.assertIsInstance(compiled.search, SearchGroup)
        self.assertEqual(
            compiled.search.any_of,
            [Predicate(field="name", op="ilike", value="%ann%")],
        )

    def test_date_term_matches_day_portion_of_date_fields(self):
        compiled = use_filter({"search": "2024-03-05"}, FIELDS)
        by_field = {p.field: p for p in compiled.search.any_of}
        self.assertEqual(by_field["created_at"], Predicate(field="created_at", op="ilike", value="%2024-03-05%"))
        self.assertEqual(by_field["name"].value, "%2024-03-05%")
        self.assertNotIn("age", by_field)
        self.assertNotIn("is_active", by_field)
        self.assertNotIn("id", by_field)

    def test_float_term(self):
        compiled = use_filter({"search": "4.5"}, FIELDS)
        by_field = {p.field: p for p in compiled.search.any_of}
        self.assertEqual(by_field["score"], Predicate(field="score", op="eq", value=4.5))
        self.assertEqual(by_field["age"], Predicate(field="age", op="eq", value=4.5))

    def test_associations_add_substring_predicates(self):
        compiled = use_filter({"search": "smith"}, FIELDS, USERS)
        nested = [p for p in compiled.search.any_of if p.association]
        self.assertEqual(
            nested,
            [
                Predicate(field="name", op="ilike", value="%smith%", association="users"),
                Predicate(field="email", op="ilike", value="%smith%", association="users"),
            ],
        )

    def test_nothing_searchable_gives_none(self):
        fields = [FieldDescriptor(name="id", kind=FieldKind.UUID), FieldDescriptor(name="flag", kind=FieldKind.BOOLEAN)]
        compiled = use_filter({"search": "anything"}, fields)
        self.assertIsNone(compiled.search)

    def test_blank_search_is_ignored(self):
        self.assertIsNone(use_filter({"search": "   "}, FIELDS).search)


class AddFilterTests(unittest.TestCase):
    def test_taken_slot_gets_numbered_key(self):
        filters = {}
        first = Predicate(field="role", op="ilike", value="%tech%")
        second = Predicate(field="role", op="eq", value="Admin")
        self.assertEqual(add_filter(filters, "role", first), "role")
        self.assertEqual(add_filter(filters, "role", second), "role#2")
        self.assertEqual(filters, {"role": first, "role#2": second})


class CompiledQueryShapeTests(unittest.TestCase):
    def test_result_is_compiled_query(self):
        self.assertIsInstance(use_filter({"page": "2"}, FIELDS), CompiledQuery)


if __name__ == "__main__":
    unittest.main()
