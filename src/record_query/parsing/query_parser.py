"""Parser for the resource query language.

Three forms are accepted:

* a select statement: ``SELECT org.example.Car WHERE (colour == 'RED') LIMIT 5 SKIP 10``
* a bare condition, used by named-query templates: ``(colour == _$colour)``
* a query file of named definitions::

    query carsByColour {
      description: "Cars of a given colour"
      statement:
          SELECT org.example.Car
              WHERE (colour == _$colour)
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

import ply.yacc as yacc

from record_query.parsing.query_lexer import QueryLexer

# Comparison operator symbols to operator names
COMPARISON_OPERATORS = {"==": "eq", "!=": "neq", "<": "lt", "<=": "lte", ">": "gt", ">=": "gte"}


@dataclass(frozen=True)
class FieldPath:
    """A field reference: a bare name or a dotted path into nested concepts."""

    segments: tuple[str, ...]

    @property
    def dotted(self) -> str:
        """Return the path as written, e.g. ``conceptValue.stringValue``."""
        return ".".join(self.segments)


@dataclass(frozen=True)
class Literal:
    """A literal operand: string, number or boolean."""

    value: Any


@dataclass(frozen=True)
class Parameter:
    """A parameter placeholder written as ``_$name``."""

    name: str


@dataclass(frozen=True)
class Comparison:
    """A comparison between a field path and a literal or parameter."""

    path: FieldPath
    operator: str  # eq, neq, lt, lte, gt, gte
    operand: Literal | Parameter


@dataclass(frozen=True)
class LogicalCondition:
    """A compound condition (AND/OR)."""

    operator: str  # and, or
    left: Condition
    right: Condition


@dataclass(frozen=True)
class NotCondition:
    """A negated condition."""

    operand: Condition


Condition = Union[Comparison, LogicalCondition, NotCondition]


@dataclass(frozen=True)
class SelectStatement:
    """A SELECT statement."""

    target_type: str
    where: Condition | None = None
    limit: int | Parameter | None = None
    skip: int | Parameter | None = None


@dataclass(frozen=True)
class QueryDefinition:
    """A named query declared in a query file."""

    name: str
    description: str
    statement: SelectStatement


@dataclass
class QueryFile:
    """The definitions of a query file, in file order."""

    definitions: list[QueryDefinition] = field(default_factory=list)


class QueryParser:
    """Parser for queries and query files."""

    tokens = QueryLexer.tokens

    # Operator precedence
    precedence = (
        ("left", "OR"),
        ("left", "AND"),
        ("right", "NOT"),
    )

    def __init__(self) -> None:
        self.lexer = QueryLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        # ply turns a SyntaxError raised inside a rule into error recovery,
        # so rules record the first semantic error and parse() raises it.
        self._rule_error: str | None = None

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : select_statement
                     | condition
                     | query_file"""
        p[0] = p[1]

    # --- Query files ---

    def p_query_file_single(self, p: yacc.YaccProduction) -> None:
        """query_file : query_definition"""
        p[0] = QueryFile(definitions=[p[1]])

    def p_query_file_multiple(self, p: yacc.YaccProduction) -> None:
        """query_file : query_file query_definition"""
        p[1].definitions.append(p[2])
        p[0] = p[1]

    def p_query_definition(self, p: yacc.YaccProduction) -> None:
        """query_definition : QUERY IDENTIFIER LBRACE IDENTIFIER COLON STRING IDENTIFIER COLON select_statement RBRACE"""
        for index, expected in ((4, "description"), (7, "statement")):
            if p[index] != expected:
                self._reject(f"Syntax error at '{p[index]}' (position {p.lexpos(index)}): expected '{expected}'")
        p[0] = QueryDefinition(name=p[2], description=p[6], statement=p[9])

    # --- Select statements ---

    def p_select_statement(self, p: yacc.YaccProduction) -> None:
        """select_statement : SELECT dotted_name where_clause limit_clause skip_clause"""
        p[0] = SelectStatement(target_type=p[2], where=p[3], limit=p[4], skip=p[5])

    def p_where_clause_empty(self, p: yacc.YaccProduction) -> None:
        """where_clause : """
        p[0] = None

    def p_where_clause(self, p: yacc.YaccProduction) -> None:
        """where_clause : WHERE condition"""
        p[0] = p[2]

    def p_limit_clause_empty(self, p: yacc.YaccProduction) -> None:
        """limit_clause : """
        p[0] = None

    def p_limit_clause(self, p: yacc.YaccProduction) -> None:
        """limit_clause : LIMIT count_value"""
        p[0] = p[2]

    def p_skip_clause_empty(self, p: yacc.YaccProduction) -> None:
        """skip_clause : """
        p[0] = None

    def p_skip_clause(self, p: yacc.YaccProduction) -> None:
        """skip_clause : SKIP count_value"""
        p[0] = p[2]

    def p_count_value_integer(self, p: yacc.YaccProduction) -> None:
        """count_value : INTEGER"""
        if p[1] < 0:
            self._reject(f"Syntax error at '{p[1]}' (position {p.lexpos(1)}): expected a non-negative integer")
        p[0] = p[1]

    def p_count_value_parameter(self, p: yacc.YaccProduction) -> None:
        """count_value : PARAMETER"""
        p[0] = Parameter(name=p[1])

    # --- Conditions ---

    def p_condition_comparison(self, p: yacc.YaccProduction) -> None:
        """condition : dotted_name EQ operand
                     | dotted_name NEQ operand
                     | dotted_name LT operand
                     | dotted_name LTE operand
                     | dotted_name GT operand
                     | dotted_name GTE operand"""
        path = FieldPath(segments=tuple(p[1].split(".")))
        p[0] = Comparison(path=path, operator=COMPARISON_OPERATORS[p[2]], operand=p[3])

    def p_condition_not(self, p: yacc.YaccProduction) -> None:
        """condition : NOT condition"""
        p[0] = NotCondition(operand=p[2])

    def p_condition_and(self, p: yacc.YaccProduction) -> None:
        """condition : condition AND condition"""
        p[0] = LogicalCondition(operator="and", left=p[1], right=p[3])

    def p_condition_or(self, p: yacc.YaccProduction) -> None:
        """condition : condition OR condition"""
        p[0] = LogicalCondition(operator="or", left=p[1], right=p[3])

    def p_condition_paren(self, p: yacc.YaccProduction) -> None:
        """condition : LPAREN condition RPAREN"""
        p[0] = p[2]

    def p_operand_literal(self, p: yacc.YaccProduction) -> None:
        """operand : STRING
                   | INTEGER
                   | FLOAT"""
        p[0] = Literal(value=p[1])

    def p_operand_boolean(self, p: yacc.YaccProduction) -> None:
        """operand : TRUE
                   | FALSE"""
        p[0] = Literal(value=p[1].lower() == "true")

    def p_operand_parameter(self, p: yacc.YaccProduction) -> None:
        """operand : PARAMETER"""
        p[0] = Parameter(name=p[1])

    def p_dotted_name_single(self, p: yacc.YaccProduction) -> None:
        """dotted_name : IDENTIFIER"""
        p[0] = p[1]

    def p_dotted_name_dotted(self, p: yacc.YaccProduction) -> None:
        """dotted_name : dotted_name DOT IDENTIFIER"""
        p[0] = f"{p[1]}.{p[3]}"

    def p_dotted_name_keyword_segment(self, p: yacc.YaccProduction) -> None:
        """dotted_name : dotted_name DOT SELECT
                       | dotted_name DOT WHERE
                       | dotted_name DOT AND
                       | dotted_name DOT OR
                       | dotted_name DOT NOT
                       | dotted_name DOT LIMIT
                       | dotted_name DOT SKIP
                       | dotted_name DOT QUERY
                       | dotted_name DOT TRUE
                       | dotted_name DOT FALSE"""
        # Keywords are plain names after a dot, as in org.query.Car
        p[0] = f"{p[1]}.{p[3]}"

    def _reject(self, message: str) -> None:
        if self._rule_error is None:
            self._rule_error = message

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="statement", **kwargs)

    def parse(self, data: str) -> SelectStatement | Condition | QueryFile:
        """Parse a select statement, a bare condition or a query file."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.lineno = 1
        self._rule_error = None
        result = self.parser.parse(data, lexer=self.lexer.lexer)
        if self._rule_error is not None:
            message, self._rule_error = self._rule_error, None
            raise SyntaxError(message)
        return result

    def parse_select(self, data: str) -> SelectStatement:
        """Parse text that must be a single SELECT statement."""
        return self._parse_expecting(data, SelectStatement, "a SELECT statement")

    def parse_condition(self, data: str) -> Condition:
        """Parse text that must be a bare condition."""
        return self._parse_expecting(data, (Comparison, LogicalCondition, NotCondition), "a condition")  # type: ignore[return-value]

    def parse_query_file(self, data: str) -> QueryFile:
        """Parse a query file. An empty or comment-only file has no definitions."""
        if not self._has_tokens(data):
            return QueryFile()
        return self._parse_expecting(data, QueryFile, "query definitions")

    def _parse_expecting(self, data: str, expected: type | tuple[type, ...], what: str) -> Any:
        result = self.parse(data)
        if not isinstance(result, expected):
            raise SyntaxError(f"Syntax error at position 0: expected {what}")
        return result

    def _has_tokens(self, data: str) -> bool:
        self.lexer.input(data)
        return self.lexer.token() is not None
