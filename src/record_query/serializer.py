"""Conversion between JSON objects and typed resources."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from record_query.types import (
    Concept,
    ConceptTypeDefinition,
    EnumTypeDefinition,
    FieldDefinition,
    PrimitiveType,
    Relationship,
    Resource,
    ResourceTypeDefinition,
    TypeRegistry,
    format_timestamp,
    parse_timestamp,
)

CLASS_KEY = "$class"


class Serializer:
    """Converts resources to and from their JSON representation.

    The ``$class`` key carries the fully-qualified type name. Relationships
    are written as ``resource:<type>#<identifier>``, timestamps as ISO-8601
    strings and concepts as nested objects with their own ``$class``.
    Timestamps are held and written with millisecond precision; finer
    digits are dropped when decoding.
    """

    def __init__(self, type_registry: TypeRegistry) -> None:
        self.type_registry = type_registry

    def from_json(self, data: dict[str, Any]) -> Resource:
        """Decode a JSON object into a resource."""
        type_def = self._lookup_class(data, None)
        if not isinstance(type_def, ResourceTypeDefinition):
            raise ValueError(f"Type '{type_def.name}' is not a resource type")

        id_field = type_def.identifier_field
        if id_field not in data:
            raise ValueError(f"Missing identifying field '{id_field}' for type '{type_def.name}'")
        identifier = data[id_field]
        if not isinstance(identifier, str):
            raise ValueError(f"Identifying field '{id_field}' must be a string, got {identifier!r}")

        fields = self._decode_fields(data, type_def, skip=id_field)
        return Resource(type_def, identifier, fields)

    def to_json(self, resource: Resource) -> dict[str, Any]:
        """Encode a resource as a JSON object."""
        type_def = resource.type_def
        result: dict[str, Any] = {CLASS_KEY: type_def.name}
        for f in type_def.fields:
            if f.name == type_def.identifier_field:
                result[f.name] = resource.identifier
            elif f.name in resource:
                result[f.name] = self._encode_value(resource[f.name], f)
        return result

    # --- Decoding ---

    def _lookup_class(self, data: Any, default: str | None) -> ConceptTypeDefinition:
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        type_name = data.get(CLASS_KEY, default)
        if type_name is None:
            raise ValueError(f"Missing '{CLASS_KEY}' in {data!r}")
        type_def = self.type_registry.get_or_raise(type_name)
        if not isinstance(type_def, ConceptTypeDefinition):
            raise ValueError(f"Type '{type_name}' cannot be instantiated from an object")
        return type_def

    def _decode_fields(
        self, data: dict[str, Any], type_def: ConceptTypeDefinition, skip: str | None = None
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for key, raw in data.items():
            if key == CLASS_KEY or key == skip:
                continue
            f = type_def.get_field(key)
            if f is None:
                raise ValueError(f"Field '{key}' is not declared on type '{type_def.name}'")
            if raw is None:
                if not f.optional:
                    raise ValueError(f"Field '{type_def.name}.{key}' is not optional")
                continue
            fields[key] = self._decode_value(raw, f, type_def)
        return fields

    def _decode_value(self, raw: Any, f: FieldDefinition, owner: ConceptTypeDefinition) -> Any:
        where = f"{owner.name}.{f.name}"

        if f.is_relationship:
            if not isinstance(raw, str):
                raise ValueError(f"Relationship field '{where}' expects a URI string, got {raw!r}")
            rel = Relationship.from_uri(raw)
            if rel.type_name != f.type_name:
                raise ValueError(f"Relationship field '{where}' expects '{f.type_name}', got '{rel.type_name}'")
            return rel

        primitive = f.primitive
        if primitive is PrimitiveType.STRING:
            if not isinstance(raw, str):
                raise ValueError(f"Field '{where}' expects a string, got {raw!r}")
            return raw
        if primitive is PrimitiveType.BOOLEAN:
            if not isinstance(raw, bool):
                raise ValueError(f"Field '{where}' expects a boolean, got {raw!r}")
            return raw
        if primitive is PrimitiveType.DOUBLE:
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise ValueError(f"Field '{where}' expects a number, got {raw!r}")
            return float(raw)
        if primitive in (PrimitiveType.INTEGER, PrimitiveType.LONG):
            if isinstance(raw, float) and raw.is_integer():
                raw = int(raw)
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ValueError(f"Field '{where}' expects an integer, got {raw!r}")
            return raw
        if primitive is PrimitiveType.DATETIME:
            if not isinstance(raw, str):
                raise ValueError(f"Field '{where}' expects an ISO-8601 string, got {raw!r}")
            try:
                value = parse_timestamp(raw)
            except ValueError as e:
                raise ValueError(f"Field '{where}' has an invalid timestamp {raw!r}") from e
            # Timestamps are encoded to the millisecond
            return value.replace(microsecond=value.microsecond // 1000 * 1000)

        field_type = self.type_registry.get_or_raise(f.type_name)
        if isinstance(field_type, EnumTypeDefinition):
            if raw not in field_type.values:
                raise ValueError(f"Field '{where}' expects one of {field_type.values}, got {raw!r}")
            return raw
        concept_def = self._lookup_class(raw, f.type_name)
        if concept_def.name != f.type_name:
            raise ValueError(f"Field '{where}' expects '{f.type_name}', got '{concept_def.name}'")
        return Concept(concept_def, self._decode_fields(raw, concept_def))

    # --- Encoding ---

    def _encode_value(self, value: Any, f: FieldDefinition) -> Any:
        if isinstance(value, Relationship):
            return value.uri
        if isinstance(value, Concept):
            result: dict[str, Any] = {CLASS_KEY: value.type_name}
            for sub in value.type_def.fields:
                if sub.name in value:
                    result[sub.name] = self._encode_value(value[sub.name], sub)
            return result
        if isinstance(value, datetime):
            return format_timestamp(value)
        if f.primitive is PrimitiveType.DOUBLE:
            return float(value)
        return value
