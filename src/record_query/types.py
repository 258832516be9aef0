"""Type definitions and resource values for the record_query library."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping


class PrimitiveType(Enum):
    """Built-in primitive field types."""

    STRING = "String"
    DOUBLE = "Double"
    INTEGER = "Integer"
    LONG = "Long"
    DATETIME = "DateTime"
    BOOLEAN = "Boolean"

    @property
    def is_numeric(self) -> bool:
        """Return whether values of this type compare numerically."""
        return self in (PrimitiveType.DOUBLE, PrimitiveType.INTEGER, PrimitiveType.LONG)


# Mapping from type name strings to PrimitiveType enum values
PRIMITIVE_TYPE_NAMES: dict[str, PrimitiveType] = {pt.value: pt for pt in PrimitiveType}

# Resource kinds a resource type may be declared as
RESOURCE_KINDS = frozenset({"asset", "participant", "resource"})

# Prefix of the URI form of a relationship
RELATIONSHIP_PREFIX = "resource:"


@dataclass
class FieldDefinition:
    """Definition of a field within a concept or resource type.

    ``type_name`` is a primitive type name, the name of a declared enum or
    concept type, or (for relationships) the name of the target resource type.
    """

    name: str
    type_name: str
    is_relationship: bool = False
    optional: bool = False

    @property
    def primitive(self) -> PrimitiveType | None:
        """Return the primitive type of this field, if it has one."""
        if self.is_relationship:
            return None
        return PRIMITIVE_TYPE_NAMES.get(self.type_name)


@dataclass
class TypeDefinition:
    """Base class for all declared types."""

    name: str

    @property
    def is_enum(self) -> bool:
        """Return whether this type is an enumeration."""
        return False

    @property
    def is_concept(self) -> bool:
        """Return whether this type is a concept (structured value without identity)."""
        return False

    @property
    def is_resource(self) -> bool:
        """Return whether this type is a resource (asset or participant)."""
        return False

    @property
    def short_name(self) -> str:
        """Return the type name without its namespace."""
        return self.name.rsplit(".", 1)[-1]


@dataclass
class EnumTypeDefinition(TypeDefinition):
    """An enumeration: a closed set of string symbols."""

    values: list[str] = field(default_factory=list)

    @property
    def is_enum(self) -> bool:
        return True


@dataclass
class ConceptTypeDefinition(TypeDefinition):
    """A structured type: an ordered list of field definitions."""

    fields: list[FieldDefinition] = field(default_factory=list)

    @property
    def is_concept(self) -> bool:
        return True

    @property
    def field_names(self) -> list[str]:
        """Return the declared field names in declaration order."""
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> FieldDefinition | None:
        """Get a field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass
class ResourceTypeDefinition(ConceptTypeDefinition):
    """A resource type: a structured type with an identifying field."""

    identifier_field: str = ""
    kind: str = "asset"

    def __post_init__(self) -> None:
        if self.kind not in RESOURCE_KINDS:
            raise ValueError(f"Unknown resource kind '{self.kind}' for type '{self.name}'")
        id_field = self.get_field(self.identifier_field)
        if id_field is None:
            raise ValueError(
                f"Identifying field '{self.identifier_field}' not declared on type '{self.name}'"
            )
        if id_field.primitive is not PrimitiveType.STRING:
            raise ValueError(f"Identifying field '{self.identifier_field}' of '{self.name}' must be a String")

    @property
    def is_concept(self) -> bool:
        return False

    @property
    def is_resource(self) -> bool:
        return True


class TypeRegistry:
    """Registry of all declared types."""

    def __init__(self) -> None:
        self._types: dict[str, TypeDefinition] = {}

    def register(self, type_def: TypeDefinition) -> None:
        """Register a type definition."""
        if type_def.name in self._types or type_def.name in PRIMITIVE_TYPE_NAMES:
            raise ValueError(f"Type '{type_def.name}' is already defined")
        self._types[type_def.name] = type_def

    def get(self, name: str) -> TypeDefinition | None:
        """Get a type by name."""
        return self._types.get(name)

    def get_or_raise(self, name: str) -> TypeDefinition:
        """Get a type by name, raising if not found."""
        type_def = self._types.get(name)
        if type_def is None:
            raise KeyError(f"Type '{name}' not found")
        return type_def

    def list_types(self) -> list[str]:
        """List all registered type names."""
        return list(self._types.keys())

    def resource_types(self) -> list[ResourceTypeDefinition]:
        """Return all registered resource types."""
        return [td for td in self._types.values() if isinstance(td, ResourceTypeDefinition)]

    def __contains__(self, name: str) -> bool:
        return name in self._types


@dataclass(frozen=True)
class Relationship:
    """A typed reference to another resource, not resolved eagerly."""

    type_name: str
    identifier: str

    @property
    def uri(self) -> str:
        """Return the ``resource:<type>#<identifier>`` form of this reference."""
        return f"{RELATIONSHIP_PREFIX}{self.type_name}#{self.identifier}"

    @classmethod
    def from_uri(cls, uri: str) -> Relationship:
        """Parse a ``resource:<type>#<identifier>`` string."""
        if not uri.startswith(RELATIONSHIP_PREFIX):
            raise ValueError(f"Invalid relationship URI '{uri}'")
        type_name, sep, identifier = uri[len(RELATIONSHIP_PREFIX):].partition("#")
        if not sep or not type_name or not identifier:
            raise ValueError(f"Invalid relationship URI '{uri}'")
        return cls(type_name=type_name, identifier=identifier)

    def __str__(self) -> str:
        return self.uri


class Concept:
    """A structured value without identity, held inside a resource field."""

    def __init__(self, type_def: ConceptTypeDefinition, fields: Mapping[str, Any] | None = None) -> None:
        values = dict(fields or {})
        declared = set(type_def.field_names)
        for name in values:
            if name not in declared:
                raise ValueError(f"Field '{name}' is not declared on type '{type_def.name}'")
        self._type_def = type_def
        self._fields = MappingProxyType(values)

    @property
    def type_def(self) -> ConceptTypeDefinition:
        return self._type_def

    @property
    def type_name(self) -> str:
        return self._type_def.name

    @property
    def fields(self) -> Mapping[str, Any]:
        """Return the read-only field mapping."""
        return self._fields

    def get(self, name: str, default: Any = None) -> Any:
        """Get a field value by name."""
        return self._fields.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.type_name == other.type_name and dict(self._fields) == dict(other._fields)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.type_name!r}, {dict(self._fields)!r})"


class Resource(Concept):
    """A typed record instance (asset or participant) with a unique identifier.

    The identifying field is not stored in :attr:`fields`; :meth:`get` and
    item access resolve it to :attr:`identifier`.
    """

    def __init__(
        self,
        type_def: ResourceTypeDefinition,
        identifier: str,
        fields: Mapping[str, Any] | None = None,
    ) -> None:
        if not isinstance(identifier, str) or not identifier:
            raise TypeError(f"Identifier of '{type_def.name}' must be a non-empty string, got {identifier!r}")
        values = dict(fields or {})
        id_field = type_def.identifier_field
        if id_field in values:
            if values[id_field] != identifier:
                raise ValueError(
                    f"Field '{id_field}' ({values[id_field]!r}) does not match identifier {identifier!r}"
                )
            del values[id_field]
        super().__init__(type_def, values)
        self._identifier = identifier

    @property
    def type_def(self) -> ResourceTypeDefinition:
        return self._type_def  # type: ignore[return-value]

    @property
    def identifier(self) -> str:
        return self._identifier

    def to_relationship(self) -> Relationship:
        """Return a relationship pointing at this resource."""
        return Relationship(self.type_name, self._identifier)

    def get(self, name: str, default: Any = None) -> Any:
        if name == self.type_def.identifier_field:
            return self._identifier
        return super().get(name, default)

    def __contains__(self, name: object) -> bool:
        return name == self.type_def.identifier_field or super().__contains__(name)

    def __getitem__(self, name: str) -> Any:
        if name == self.type_def.identifier_field:
            return self._identifier
        return super().__getitem__(name)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._identifier == other._identifier and super().__eq__(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Resource({self.type_name!r}, {self._identifier!r})"


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_timestamp(value: datetime) -> str:
    """Format an instant as UTC ISO-8601 with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
