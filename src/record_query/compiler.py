"""Compilation of query text into immutable, executable queries."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterator

from record_query.errors import TypeMismatchError
from record_query.parsing.query_parser import (
    Comparison,
    Condition,
    LogicalCondition,
    NotCondition,
    Parameter,
    QueryDefinition,
    QueryParser,
    SelectStatement,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledQuery:
    """A parsed query ready for binding.

    Holds only the target type, the predicate tree and the parameter names;
    it references no registry contents, so it can be evaluated against any
    registry of the target type.
    """

    target_type: str
    predicate: Condition | None
    parameters: tuple[str, ...]  # distinct names, in order of first appearance
    limit: int | Parameter | None = None
    skip: int | Parameter | None = None
    source: str = ""
    name: str | None = None
    description: str = ""

    @property
    def is_named(self) -> bool:
        return self.name is not None


def iter_parameters(statement: SelectStatement) -> Iterator[Parameter]:
    """Yield every parameter node of a statement, in source order."""
    if statement.where is not None:
        yield from _condition_parameters(statement.where)
    for clause in (statement.limit, statement.skip):
        if isinstance(clause, Parameter):
            yield clause


def _condition_parameters(condition: Condition) -> Iterator[Parameter]:
    if isinstance(condition, Comparison):
        if isinstance(condition.operand, Parameter):
            yield condition.operand
    elif isinstance(condition, LogicalCondition):
        yield from _condition_parameters(condition.left)
        yield from _condition_parameters(condition.right)
    elif isinstance(condition, NotCondition):
        yield from _condition_parameters(condition.operand)


def collect_parameter_names(statement: SelectStatement) -> tuple[str, ...]:
    """Return the distinct parameter names of a statement."""
    return tuple(dict.fromkeys(param.name for param in iter_parameters(statement)))


class QueryCompiler:
    """Compiles dynamic query strings and named-query templates.

    Every call compiles afresh; results are not cached here. The named-query
    catalog keeps the compiled form of its definitions.
    """

    def __init__(self, parser: QueryParser | None = None) -> None:
        self._parser = parser or QueryParser()
        # ply parsers keep per-parse state
        self._lock = threading.Lock()

    def compile(self, text: str) -> CompiledQuery:
        """Compile a ``SELECT <Type> WHERE (...)`` string.

        Raises:
            SyntaxError: If the text is not a valid SELECT statement.
        """
        with self._lock:
            statement = self._parser.parse_select(text)
        compiled = self._from_statement(statement, source=text)
        logger.debug("Compiled query for %s with parameters %s", compiled.target_type, compiled.parameters)
        return compiled

    def compile_template(
        self, name: str, target_type: str, template: str, description: str = ""
    ) -> CompiledQuery:
        """Compile a named-query template for ``target_type``.

        The template is either a bare condition, such as
        ``(stringValue == _$value)``, or a complete SELECT statement whose
        type must be ``target_type``.

        Raises:
            SyntaxError: If the template is malformed.
            TypeMismatchError: If a SELECT template targets another type.
        """
        with self._lock:
            parsed = self._parser.parse(template)
        if isinstance(parsed, SelectStatement):
            if parsed.target_type != target_type:
                raise TypeMismatchError(target_type, parsed.target_type)
            statement = parsed
        elif isinstance(parsed, (Comparison, LogicalCondition, NotCondition)):
            statement = SelectStatement(target_type=target_type, where=parsed)
        else:
            raise SyntaxError("Syntax error at position 0: expected a condition or a SELECT statement")
        return self._from_statement(statement, source=template, name=name, description=description)

    def compile_file(self, text: str) -> list[CompiledQuery]:
        """Compile every definition of a query file.

        Raises:
            SyntaxError: If any part of the file is malformed.
        """
        with self._lock:
            query_file = self._parser.parse_query_file(text)
        return [self.compile_definition(d, source=text) for d in query_file.definitions]

    def compile_definition(self, definition: QueryDefinition, source: str = "") -> CompiledQuery:
        """Compile a definition parsed from a query file."""
        return self._from_statement(
            definition.statement,
            source=source,
            name=definition.name,
            description=definition.description,
        )

    @staticmethod
    def _from_statement(
        statement: SelectStatement,
        source: str,
        name: str | None = None,
        description: str = "",
    ) -> CompiledQuery:
        return CompiledQuery(
            target_type=statement.target_type,
            predicate=statement.where,
            parameters=collect_parameter_names(statement),
            limit=statement.limit,
            skip=statement.skip,
            source=source,
            name=name,
            description=description,
        )
