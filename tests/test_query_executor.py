"""Tests for query execution against the sample network."""

from datetime import datetime, timezone

import pytest

from conftest import ASSET_TYPE, PARTICIPANT_TYPE

from record_query.binding import bind
from record_query.errors import MissingParameterError, TypeMismatchError, UnknownQueryError
from record_query.query_executor import QueryExecutor
from record_query.registry import ResourceRegistry


def identifiers(resources):
    return [r.identifier for r in resources]


def expected(prefix, indices):
    """Identifiers for the given indices, in ascending identifier order."""
    return sorted(f"{prefix}_{i}" for i in indices)


class TestNamedAndDynamicQueries:
    """Tests that named and dynamic queries select the same resources."""

    @pytest.mark.parametrize(
        "type_name, prefix, named, path, start",
        [
            (ASSET_TYPE, "ASSET", "assets_stringValue", "stringValue", 0),
            (PARTICIPANT_TYPE, "PARTICIPANT", "participants_stringValue", "stringValue", 0),
            # The concept of resource i carries the values of i + 1
            (ASSET_TYPE, "ASSET", "assets_nestedStringValue", "conceptValue.stringValue", 3),
            (PARTICIPANT_TYPE, "PARTICIPANT", "participants_nestedStringValue", "conceptValue.stringValue", 3),
        ],
    )
    def test_string_value_scenario(self, executor, type_name, prefix, named, path, start):
        """Test the 'string 0' selection through both query forms."""
        named_result = executor.query(named, {"inputStringValue": "string 0"})
        dynamic_result = executor.query(
            executor.build_query(f"SELECT {type_name} WHERE ({path} == 'string 0')")
        )
        parameterised_result = executor.query(
            executor.build_query(f"SELECT {type_name} WHERE ({path} == _$inputStringValue)"),
            {"inputStringValue": "string 0"},
        )

        assert identifiers(named_result) == expected(prefix, range(start, 32, 4))
        assert identifiers(parameterised_result) == identifiers(named_result)
        assert identifiers(dynamic_result) == identifiers(named_result)
        assert dynamic_result == named_result

    def test_explicit_ascending_order(self, executor):
        result = executor.query("assets_stringValue", {"inputStringValue": "string 0"})

        assert identifiers(result) == [
            "ASSET_0", "ASSET_12", "ASSET_16", "ASSET_20",
            "ASSET_24", "ASSET_28", "ASSET_4", "ASSET_8",
        ]

    def test_parameter_substitution(self, executor):
        """Test that changing only the bound value changes only the matches."""
        first = executor.query("assets_stringValue", {"inputStringValue": "string 0"})
        second = executor.query("assets_stringValue", {"inputStringValue": "string 1"})

        assert identifiers(second) == expected("ASSET", range(1, 32, 4))
        assert all(r["stringValue"] == "string 1" for r in second)
        assert not set(identifiers(first)) & set(identifiers(second))

    def test_dynamic_query_with_parameter(self, executor):
        compiled = executor.build_query(f"SELECT {ASSET_TYPE} WHERE (stringValue == _$inputStringValue)")

        result = executor.query(compiled, {"inputStringValue": "string 3"})

        assert identifiers(result) == expected("ASSET", range(3, 32, 4))

    def test_idempotent(self, executor):
        compiled = executor.build_query(f"SELECT {ASSET_TYPE} WHERE (booleanValue == true)")

        assert executor.query(compiled) == executor.query(compiled)

    def test_unknown_named_query(self, executor):
        with pytest.raises(UnknownQueryError):
            executor.query("nope")

    def test_invalid_query_reference(self, executor):
        with pytest.raises(TypeError):
            executor.query(42)  # type: ignore[arg-type]

    def test_missing_parameter_fails_before_evaluation(self, executor, monkeypatch):
        """Test that a missing parameter is reported and nothing is evaluated."""
        def fail(*args, **kwargs):
            raise AssertionError("evaluation should not start")

        monkeypatch.setattr(executor, "execute", fail)
        monkeypatch.setattr(executor, "_evaluate_condition", fail)

        with pytest.raises(MissingParameterError) as exc_info:
            executor.query("assets_stringValue", {"other": "string 0"})
        assert exc_info.value.name == "inputStringValue"

    def test_executor_without_registries(self):
        executor = QueryExecutor()
        compiled = executor.build_query(f"SELECT {ASSET_TYPE}")

        with pytest.raises(RuntimeError):
            executor.query(compiled)


class TestConditions:
    """Tests for condition evaluation over the sample assets."""

    def run(self, executor, condition, params=None):
        return identifiers(executor.query(executor.build_query(f"SELECT {ASSET_TYPE} WHERE {condition}"), params))

    def test_nested_path(self, executor):
        """Test that a nested path reads the concept, not the top-level field."""
        result = self.run(executor, "(conceptValue.stringValue == 'string 0')")

        # The concept of resource i carries the values of i + 1
        assert result == expected("ASSET", range(3, 32, 4))

    def test_absent_field_matches_nothing(self, executor):
        assert self.run(executor, "(missingField == 'string 0')") == []

    def test_absent_field_under_not_matches_nothing(self, executor):
        assert self.run(executor, "(NOT missingField == 'string 0')") == []
        assert self.run(executor, "(missingField != 'string 0')") == []

    def test_path_through_primitive_matches_nothing(self, executor):
        assert self.run(executor, "(stringValue.length == 8)") == []

    def test_unknown_and_false_is_false(self, executor):
        """Test that NOT over an AND with a false side can still match."""
        result = self.run(executor, "(NOT (missingField == 1 AND stringValue == 'string 9'))")

        assert len(result) == 32

    def test_unknown_or_true_is_true(self, executor):
        result = self.run(executor, "(missingField == 1 OR stringValue == 'string 0')")

        assert result == expected("ASSET", range(0, 32, 4))

    def test_not_equal(self, executor):
        assert len(self.run(executor, "(stringValue != 'string 0')")) == 24
        assert len(self.run(executor, "(NOT stringValue == 'string 0')")) == 24

    def test_and(self, executor):
        result = self.run(executor, "(stringValue == 'string 1' AND integerValue < 8000)")

        assert result == expected("ASSET", [1, 5, 17, 21])

    def test_or(self, executor):
        result = self.run(executor, "(stringValue == 'string 0' OR stringValue == 'string 1')")

        assert len(result) == 16

    def test_numeric_equality_across_kinds(self, executor):
        """Test that an integer literal equals a double field value."""
        assert self.run(executor, "(doubleValue == 5)") == expected("ASSET", [2, 10, 18, 26])
        assert self.run(executor, "(integerValue == 3000.0)") == expected("ASSET", [3, 19])

    def test_numeric_ordering(self, executor):
        assert self.run(executor, "(integerValue > 12000)") == expected("ASSET", [13, 14, 15, 29, 30, 31])
        assert self.run(executor, "(longValue <= 100000)") == expected("ASSET", [0, 1])

    def test_boolean(self, executor):
        assert self.run(executor, "(booleanValue == true)") == expected("ASSET", range(1, 32, 2))

    def test_boolean_never_equals_number(self, executor):
        assert self.run(executor, "(booleanValue == 1)") == []
        assert self.run(executor, "(integerValue == true)") == []

    def test_string_ordering(self, executor):
        assert len(self.run(executor, "(stringValue >= 'string 2')")) == 16

    def test_enum_ordering_never_matches(self, executor):
        """Test that enum symbols are not ordered by their spelling."""
        assert self.run(executor, "(enumValue < 'VALUE_1')") == []
        assert self.run(executor, "(enumValue >= 'VALUE_0')") == []
        assert self.run(executor, "(enumValue != 'VALUE_0')") == expected("ASSET", [i for i in range(32) if i % 8])

    def test_mismatched_kinds_never_match(self, executor):
        assert self.run(executor, "(stringValue == 0)") == []
        assert self.run(executor, "(stringValue != 0)") == []
        assert self.run(executor, "(integerValue < 'string 0')") == []

    def test_enum(self, executor):
        assert self.run(executor, "(enumValue == 'VALUE_3')") == expected("ASSET", [3, 11, 19, 27])

    def test_timestamp(self, executor):
        """Test that string operands compare as instants."""
        assert self.run(executor, "(dateTimeValue == '1970-01-01T00:01:40Z')") == expected("ASSET", [1, 17])
        assert self.run(executor, "(dateTimeValue >= '1970-01-01T00:25:00.000Z')") == expected("ASSET", [15, 31])
        assert self.run(executor, "(dateTimeValue == 'not a date')") == []

    def test_naive_datetime_parameter_is_utc(self, executor):
        instant = datetime(1970, 1, 1, 0, 1, 40)

        assert self.run(executor, "(dateTimeValue == _$t)", {"t": instant}) == expected("ASSET", [1, 17])
        assert self.run(executor, "(dateTimeValue > _$t)", {"t": datetime(1970, 1, 1, 0, 23, 20)}) == expected("ASSET", [15, 31])
        assert self.run(executor, "(dateTimeValue == _$t)", {"t": instant.replace(tzinfo=timezone.utc)}) == expected("ASSET", [1, 17])

    def test_relationship(self, executor):
        uri = f"resource:{PARTICIPANT_TYPE}#PARTICIPANT_1"

        assert self.run(executor, f"(participant == '{uri}')") == expected("ASSET", range(1, 32, 4))
        assert self.run(executor, "(participant < 'x')") == []

    def test_parameter_in_comparison(self, executor):
        result = self.run(executor, "(integerValue >= _$min AND booleanValue == _$flag)", {"min": 14000, "flag": False})

        assert result == expected("ASSET", [14, 30])


class TestExecute:
    """Tests for executing bound queries against a registry."""

    def test_limit_and_skip(self, executor):
        compiled = executor.build_query(f"SELECT {ASSET_TYPE} WHERE (stringValue == 'string 0') LIMIT 2 SKIP 1")

        assert identifiers(executor.query(compiled)) == ["ASSET_12", "ASSET_16"]

    def test_limit_without_condition(self, executor):
        compiled = executor.build_query(f"SELECT {ASSET_TYPE} LIMIT 3")

        assert identifiers(executor.query(compiled)) == ["ASSET_0", "ASSET_1", "ASSET_10"]

    def test_parameterised_limit(self, executor):
        compiled = executor.build_query(f"SELECT {PARTICIPANT_TYPE} LIMIT _$n SKIP _$k")

        assert identifiers(executor.query(compiled, {"n": 1, "k": 31})) == ["PARTICIPANT_9"]
        assert executor.query(compiled, {"n": 5, "k": 40}) == []

    def test_unconditional_select_returns_all(self, executor):
        result = executor.query(executor.build_query(f"SELECT {ASSET_TYPE}"))

        assert identifiers(result) == expected("ASSET", range(32))

    def test_empty_registry(self, executor, type_registry):
        """Test that an empty registry yields an empty result, not an error."""
        registry = ResourceRegistry(type_registry.get_or_raise(ASSET_TYPE))
        compiled = executor.build_query(f"SELECT {ASSET_TYPE} WHERE (stringValue == 'string 0')")

        assert executor.execute(bind(compiled), registry) == []
        assert executor.execute(compiled, registry) == []

    def test_registry_type_mismatch(self, executor, registries):
        compiled = executor.build_query(f"SELECT {ASSET_TYPE}")

        with pytest.raises(TypeMismatchError):
            executor.execute(bind(compiled), registries.get_registry(PARTICIPANT_TYPE))

    def test_results_are_subset_without_duplicates(self, executor, registries):
        registry = registries.get_registry(ASSET_TYPE)
        compiled = executor.build_query(f"SELECT {ASSET_TYPE} WHERE (enumValue != 'VALUE_0' OR booleanValue == false)")

        result = executor.execute(bind(compiled), registry)

        assert len(set(identifiers(result))) == len(result)
        assert all(r in registry.get_all() for r in result)
        assert identifiers(result) == sorted(identifiers(result))
