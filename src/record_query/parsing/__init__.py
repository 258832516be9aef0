"""Parsing module for the query language."""

from record_query.parsing.query_parser import (
    Comparison,
    Condition,
    FieldPath,
    Literal,
    LogicalCondition,
    NotCondition,
    Parameter,
    QueryDefinition,
    QueryFile,
    QueryParser,
    SelectStatement,
)

__all__ = [
    "Comparison",
    "Condition",
    "FieldPath",
    "Literal",
    "LogicalCondition",
    "NotCondition",
    "Parameter",
    "QueryDefinition",
    "QueryFile",
    "QueryParser",
    "SelectStatement",
]
