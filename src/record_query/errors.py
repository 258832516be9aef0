"""Exceptions raised by the query engine.

Malformed query text raises the built-in ``SyntaxError``; everything else
raised on purpose by the engine derives from :class:`QueryError`.
"""

from __future__ import annotations


class QueryError(Exception):
    """Base class for query engine errors."""


class UnknownQueryError(QueryError):
    """A named query was not found in the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Query '{name}' is not defined")
        self.name = name


class DuplicateQueryError(QueryError, ValueError):
    """A named query was defined twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Query '{name}' is already defined")
        self.name = name


class MissingParameterError(QueryError):
    """A declared query parameter was not supplied."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Missing value for parameter '{name}'")
        self.name = name


class TypeMismatchError(QueryError):
    """A registry, resource or query disagree about the declared type."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Expected type '{expected}', got '{actual}'")
        self.expected = expected
        self.actual = actual


class DuplicateResourceError(QueryError, ValueError):
    """A resource identifier is already present in a registry."""

    def __init__(self, type_name: str, identifier: str) -> None:
        super().__init__(f"Resource '{identifier}' already exists in registry '{type_name}'")
        self.type_name = type_name
        self.identifier = identifier
