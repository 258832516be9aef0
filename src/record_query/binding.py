"""Binding of caller-supplied parameter values to compiled queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from record_query.compiler import CompiledQuery
from record_query.errors import MissingParameterError
from record_query.parsing.query_parser import Literal, Parameter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundQuery:
    """A compiled query together with a value for each of its parameters."""

    query: CompiledQuery
    values: Mapping[str, Any]

    def value_of(self, operand: Literal | Parameter) -> Any:
        """Return the value an operand node stands for."""
        if isinstance(operand, Parameter):
            return self.values[operand.name]
        return operand.value

    @property
    def limit(self) -> int | None:
        return self._count(self.query.limit)

    @property
    def skip(self) -> int:
        return self._count(self.query.skip) or 0

    def _count(self, clause: int | Parameter | None) -> int | None:
        if isinstance(clause, Parameter):
            return self.values[clause.name]
        return clause


def bind(query: CompiledQuery, params: Mapping[str, Any] | None = None) -> BoundQuery:
    """Bind parameter values to a compiled query.

    Values are not checked against the fields they are compared with; a
    mismatch simply never matches. Names the query does not declare are
    ignored.

    Raises:
        MissingParameterError: For the first declared parameter without a value.
        ValueError: If a LIMIT or SKIP parameter is not a non-negative integer.
    """
    params = params or {}
    values: dict[str, Any] = {}
    for name in query.parameters:
        if name not in params:
            raise MissingParameterError(name)
        values[name] = params[name]

    for clause in (query.limit, query.skip):
        if isinstance(clause, Parameter):
            count = values[clause.name]
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise ValueError(f"Parameter '{clause.name}' must be a non-negative integer, got {count!r}")

    unused = set(params) - set(values)
    if unused:
        logger.debug("Ignoring unused parameters %s", sorted(unused))
    return BoundQuery(query=query, values=MappingProxyType(values))
