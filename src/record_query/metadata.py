"""Load a type registry from JSON model metadata.

The metadata document maps fully-qualified type names to type specs::

    {
      "types": {
        "org.example.Colour": {"kind": "enum", "values": ["RED", "GREEN"]},
        "org.example.Address": {
          "kind": "concept",
          "fields": [{"name": "city", "type": "String"}]
        },
        "org.example.Car": {
          "kind": "asset",
          "identifier": "vin",
          "fields": [
            {"name": "vin", "type": "String"},
            {"name": "colour", "type": "org.example.Colour"},
            {"name": "owner", "type": "--> org.example.Person", "optional": true}
          ]
        }
      }
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from record_query.types import (
    PRIMITIVE_TYPE_NAMES,
    RESOURCE_KINDS,
    ConceptTypeDefinition,
    EnumTypeDefinition,
    FieldDefinition,
    ResourceTypeDefinition,
    TypeDefinition,
    TypeRegistry,
)

logger = logging.getLogger(__name__)

RELATIONSHIP_MARKER = "-->"


def load_type_registry(path: Path | str) -> TypeRegistry:
    """Load a type registry from a JSON metadata file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Metadata file not found: {path}")

    with open(path) as f:
        metadata = json.load(f)

    registry = type_registry_from_metadata(metadata)
    logger.info("Loaded %d types from %s", len(registry.list_types()), path)
    return registry


def type_registry_from_metadata(metadata: dict[str, Any]) -> TypeRegistry:
    """Build a type registry from a parsed metadata document.

    Field types may name types declared later in the document; every
    reference is checked once all types are registered.
    """
    registry = TypeRegistry()
    types_data = metadata.get("types", {})

    for name, spec in types_data.items():
        registry.register(_create_type_from_spec(name, spec))

    for name in registry.list_types():
        type_def = registry.get(name)
        if isinstance(type_def, ConceptTypeDefinition):
            for f in type_def.fields:
                _check_field_type(type_def, f, registry)

    return registry


def _create_type_from_spec(name: str, spec: dict[str, Any]) -> TypeDefinition:
    kind = spec.get("kind")
    if kind == "enum":
        values = list(spec.get("values", []))
        if len(set(values)) != len(values):
            raise ValueError(f"Enum '{name}' declares duplicate values")
        return EnumTypeDefinition(name=name, values=values)

    fields = [_create_field_from_spec(f) for f in spec.get("fields", [])]
    if kind == "concept":
        return ConceptTypeDefinition(name=name, fields=fields)
    if kind in RESOURCE_KINDS:
        if "identifier" not in spec:
            raise ValueError(f"Resource type '{name}' does not declare an identifying field")
        return ResourceTypeDefinition(
            name=name,
            fields=fields,
            identifier_field=spec["identifier"],
            kind=kind,
        )
    raise ValueError(f"Unknown kind {kind!r} for type '{name}'")


def _create_field_from_spec(spec: dict[str, Any]) -> FieldDefinition:
    type_text = spec["type"].strip()
    if type_text.startswith(RELATIONSHIP_MARKER):
        return FieldDefinition(
            name=spec["name"],
            type_name=type_text[len(RELATIONSHIP_MARKER):].strip(),
            is_relationship=True,
            optional=spec.get("optional", False),
        )
    return FieldDefinition(name=spec["name"], type_name=type_text, optional=spec.get("optional", False))


def _check_field_type(owner: ConceptTypeDefinition, f: FieldDefinition, registry: TypeRegistry) -> None:
    if f.is_relationship:
        target = registry.get(f.type_name)
        if target is None or not target.is_resource:
            raise ValueError(f"Relationship field '{owner.name}.{f.name}' targets unknown resource type '{f.type_name}'")
        return
    if f.type_name in PRIMITIVE_TYPE_NAMES:
        return
    target = registry.get(f.type_name)
    if target is None:
        raise KeyError(f"Type '{f.type_name}' not found (field '{owner.name}.{f.name}')")
    if target.is_resource:
        raise ValueError(
            f"Field '{owner.name}.{f.name}' embeds resource type '{f.type_name}'; use a relationship"
        )
