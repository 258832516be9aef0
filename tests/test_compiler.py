"""Tests for query compilation and parameter binding."""

import pytest

from record_query.binding import bind
from record_query.compiler import CompiledQuery, QueryCompiler
from record_query.errors import MissingParameterError, TypeMismatchError
from record_query.parsing.query_parser import Comparison, Parameter


class TestQueryCompiler:
    """Tests for dynamic and template compilation."""

    def test_compile_dynamic(self):
        """Test compiling a dynamic query string."""
        compiler = QueryCompiler()
        compiled = compiler.compile("SELECT systest.queries.SampleAsset WHERE (stringValue == 'string 0')")

        assert isinstance(compiled, CompiledQuery)
        assert compiled.target_type == "systest.queries.SampleAsset"
        assert isinstance(compiled.predicate, Comparison)
        assert compiled.parameters == ()
        assert compiled.name is None
        assert not compiled.is_named

    def test_compile_unconditional(self):
        compiled = QueryCompiler().compile("SELECT T")

        assert compiled.predicate is None

    def test_parameters_in_order_of_first_appearance(self):
        """Test that parameter names are collected once, in source order."""
        compiler = QueryCompiler()
        compiled = compiler.compile(
            "SELECT T WHERE (b == _$second OR a == _$first AND c == _$second) LIMIT _$count"
        )

        assert compiled.parameters == ("second", "first", "count")
        assert compiled.limit == Parameter(name="count")

    def test_each_compile_is_fresh(self):
        """Test that compiling the same text twice yields equal, distinct objects."""
        compiler = QueryCompiler()
        first = compiler.compile("SELECT T WHERE (a == 1)")
        second = compiler.compile("SELECT T WHERE (a == 1)")

        assert first == second
        assert first is not second

    def test_compile_rejects_condition(self):
        with pytest.raises(SyntaxError):
            QueryCompiler().compile("(a == 1)")

    def test_template_condition(self):
        """Test a named template given as a bare condition."""
        compiled = QueryCompiler().compile_template(
            "byString", "T", "(stringValue == _$inputStringValue)", "By string"
        )

        assert compiled.name == "byString"
        assert compiled.is_named
        assert compiled.target_type == "T"
        assert compiled.description == "By string"
        assert compiled.parameters == ("inputStringValue",)

    def test_template_select(self):
        """Test a named template given as a full SELECT statement."""
        compiled = QueryCompiler().compile_template("all", "T", "SELECT T LIMIT 2")

        assert compiled.predicate is None
        assert compiled.limit == 2

    def test_template_select_wrong_type(self):
        with pytest.raises(TypeMismatchError):
            QueryCompiler().compile_template("all", "T", "SELECT Other")

    def test_template_rejects_query_file(self):
        with pytest.raises(SyntaxError):
            QueryCompiler().compile_template("q", "T", 'query q { description: "" statement: SELECT T }')

    def test_compile_file(self):
        """Test compiling every definition of a query file."""
        source = """
        query a { description: "first" statement: SELECT T WHERE (x == _$x) }
        query b { description: "second" statement: SELECT U }
        """
        compiled = QueryCompiler().compile_file(source)

        assert [(q.name, q.target_type, q.description) for q in compiled] == [
            ("a", "T", "first"),
            ("b", "U", "second"),
        ]
        assert compiled[0].parameters == ("x",)


class TestBind:
    """Tests for parameter binding."""

    def test_bind_values(self):
        """Test that declared parameters are bound to their values."""
        compiled = QueryCompiler().compile("SELECT T WHERE (a == _$x)")
        bound = bind(compiled, {"x": "string 0"})

        assert bound.values == {"x": "string 0"}
        assert bound.value_of(compiled.predicate.operand) == "string 0"

    def test_extra_parameters_ignored(self):
        compiled = QueryCompiler().compile("SELECT T WHERE (a == _$x)")
        bound = bind(compiled, {"x": 1, "unused": 2})

        assert dict(bound.values) == {"x": 1}

    def test_missing_parameter_names_first(self):
        """Test that the first unresolved parameter is reported."""
        compiled = QueryCompiler().compile("SELECT T WHERE (a == _$first AND b == _$second)")

        with pytest.raises(MissingParameterError) as exc_info:
            bind(compiled, {"second": 2})
        assert exc_info.value.name == "first"

        with pytest.raises(MissingParameterError) as exc_info:
            bind(compiled)
        assert exc_info.value.name == "first"

    def test_values_are_read_only(self):
        compiled = QueryCompiler().compile("SELECT T WHERE (a == _$x)")
        bound = bind(compiled, {"x": 1})

        with pytest.raises(TypeError):
            bound.values["x"] = 2  # type: ignore[index]

    def test_no_type_checking_at_bind_time(self):
        """Test that any value binds; mismatches surface as non-matches later."""
        compiled = QueryCompiler().compile("SELECT T WHERE (a == _$x)")

        assert bind(compiled, {"x": object()}).values["x"] is not None

    def test_limit_and_skip(self):
        compiled = QueryCompiler().compile("SELECT T LIMIT _$n SKIP 4")
        bound = bind(compiled, {"n": 2})

        assert bound.limit == 2
        assert bound.skip == 4

    def test_defaults_without_limit_or_skip(self):
        bound = bind(QueryCompiler().compile("SELECT T"))

        assert bound.limit is None
        assert bound.skip == 0

    @pytest.mark.parametrize("value", ["3", -1, 1.5, True])
    def test_invalid_count_parameter(self, value):
        """Test that LIMIT/SKIP parameters must be non-negative integers."""
        compiled = QueryCompiler().compile("SELECT T SKIP _$n")

        with pytest.raises(ValueError, match="non-negative integer"):
            bind(compiled, {"n": value})
