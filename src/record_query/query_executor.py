"""Query executor: evaluates bound queries against resource registries."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from record_query.binding import BoundQuery, bind
from record_query.catalog import QueryCatalog
from record_query.compiler import CompiledQuery, QueryCompiler
from record_query.errors import TypeMismatchError
from record_query.parsing.query_parser import (
    Comparison,
    Condition,
    FieldPath,
    LogicalCondition,
    NotCondition,
)
from record_query.registry import RegistryManager, ResourceRegistry
from record_query.types import Concept, FieldDefinition, Relationship, Resource, parse_timestamp

logger = logging.getLogger(__name__)

# Marker for a field path that does not resolve on a resource
_UNRESOLVED = object()


class QueryExecutor:
    """Executes named and dynamic queries.

    Both kinds resolve to a :class:`CompiledQuery` before binding and
    evaluation, so they behave identically for the same condition.
    """

    def __init__(
        self,
        registries: RegistryManager | None = None,
        catalog: QueryCatalog | None = None,
        compiler: QueryCompiler | None = None,
    ) -> None:
        self.registries = registries
        self.catalog = catalog if catalog is not None else QueryCatalog(compiler)
        self.compiler = compiler or self.catalog.compiler

    def build_query(self, text: str) -> CompiledQuery:
        """Compile a dynamic query. Each call compiles the text again."""
        return self.compiler.compile(text)

    def query(self, query: str | CompiledQuery, params: Mapping[str, Any] | None = None) -> list[Resource]:
        """Run a named query (by name) or a compiled dynamic query.

        Raises:
            UnknownQueryError: If a query name is not in the catalog.
            MissingParameterError: If a declared parameter has no value.
        """
        compiled = self._resolve(query)
        bound = bind(compiled, params)
        if self.registries is None:
            raise RuntimeError("No registries configured for this executor")
        registry = self.registries.get_registry(compiled.target_type)
        return self.execute(bound, registry)

    def _resolve(self, query: str | CompiledQuery) -> CompiledQuery:
        if isinstance(query, CompiledQuery):
            return query
        elif isinstance(query, str):
            return self.catalog.resolve(query)
        else:
            raise TypeError(f"Expected a query name or CompiledQuery, got {type(query).__name__}")

    def execute(self, bound: BoundQuery | CompiledQuery, registry: ResourceRegistry) -> list[Resource]:
        """Evaluate a bound query against every resource of a registry.

        Matches are returned in registry order (ascending identifier), after
        applying SKIP and then LIMIT.

        Raises:
            TypeMismatchError: If the registry holds another type than the query targets.
        """
        if isinstance(bound, CompiledQuery):
            bound = bind(bound)
        query = bound.query
        if registry.type_name != query.target_type:
            raise TypeMismatchError(query.target_type, registry.type_name)

        snapshot = registry.get_all()
        if query.predicate is None:
            matched = list(snapshot)
        else:
            matched = [r for r in snapshot if self._evaluate_condition(r, query.predicate, bound) is True]

        skip = bound.skip
        limit = bound.limit
        result = matched[skip:] if limit is None else matched[skip:skip + limit]
        logger.debug(
            "Query %s on %s matched %d of %d resources, returning %d",
            query.name or "<dynamic>",
            registry.type_name,
            len(matched),
            len(snapshot),
            len(result),
        )
        return result

    def _evaluate_condition(self, resource: Resource, condition: Condition, bound: BoundQuery) -> bool | None:
        """Evaluate a condition against a resource.

        Returns None when the outcome is unknown because a field path did not
        resolve. Unknown propagates through NOT and follows three-valued
        logic through AND/OR.
        """
        if isinstance(condition, Comparison):
            resolved = self._resolve_field_path(resource, condition.path)
            if resolved is _UNRESOLVED:
                return None
            field_value, field_def = resolved
            return self._compare(field_value, condition.operator, bound.value_of(condition.operand), field_def)

        if isinstance(condition, NotCondition):
            result = self._evaluate_condition(resource, condition.operand, bound)
            return None if result is None else not result

        if isinstance(condition, LogicalCondition):
            left = self._evaluate_condition(resource, condition.left, bound)
            if condition.operator == "and":
                if left is False:
                    return False
                right = self._evaluate_condition(resource, condition.right, bound)
                if right is False:
                    return False
                return None if left is None or right is None else True
            else:  # or
                if left is True:
                    return True
                right = self._evaluate_condition(resource, condition.right, bound)
                if right is True:
                    return True
                return None if left is None or right is None else False

        raise ValueError(f"Unknown condition type: {type(condition)}")

    def _resolve_field_path(self, resource: Resource, path: FieldPath) -> Any:
        """Walk a dotted path through a resource and its nested concepts.

        Returns ``(value, field_definition)`` for the last segment, or
        ``_UNRESOLVED``.
        """
        value: Any = resource
        field_def: FieldDefinition | None = None
        for segment in path.segments:
            if not isinstance(value, Concept) or segment not in value:
                return _UNRESOLVED
            field_def = value.type_def.get_field(segment)
            value = value[segment]
        if value is None or field_def is None:
            return _UNRESOLVED
        return value, field_def

    def _compare(self, field_value: Any, operator: str, value: Any, field_def: FieldDefinition) -> bool:
        """Compare a field value against an operand value.

        Values of incompatible kinds never match, whatever the operator.
        """
        pair = _comparable_pair(field_value, value, _is_enum_field(field_def, field_value))
        if pair is None:
            return False
        left, right, ordered = pair
        try:
            if operator == "eq":
                return left == right
            elif operator == "neq":
                return left != right
            elif not ordered:
                return False
            elif operator == "lt":
                return left < right
            elif operator == "lte":
                return left <= right
            elif operator == "gt":
                return left > right
            elif operator == "gte":
                return left >= right
        except (TypeError, ValueError):
            return False

        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_enum_field(field_def: FieldDefinition, field_value: Any) -> bool:
    # Enum symbols are held as strings on fields with no primitive type
    return not field_def.is_relationship and field_def.primitive is None and isinstance(field_value, str)


def _comparable_pair(field_value: Any, value: Any, is_enum: bool = False) -> tuple[Any, Any, bool] | None:
    """Return ``(left, right, ordered)`` for values of compatible kinds, else None.

    ``ordered`` tells whether ordering operators apply to the pair; enum
    symbols only support equality.
    """
    if isinstance(field_value, bool):
        return (field_value, value, False) if isinstance(value, bool) else None
    if _is_number(field_value):
        return (field_value, value, True) if _is_number(value) else None
    if isinstance(field_value, str):
        return (field_value, value, not is_enum) if isinstance(value, str) else None
    if isinstance(field_value, datetime):
        if isinstance(value, str):
            try:
                value = parse_timestamp(value)
            except ValueError:
                return None
        elif isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (field_value, value, True) if isinstance(value, datetime) else None
    if isinstance(field_value, Relationship):
        if isinstance(value, str):
            try:
                value = Relationship.from_uri(value)
            except ValueError:
                return None
        return (field_value, value, False) if isinstance(value, Relationship) else None
    return None
