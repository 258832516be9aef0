"""Record Query - a query engine for typed resource registries."""

from record_query.binding import BoundQuery, bind
from record_query.catalog import QueryCatalog
from record_query.compiler import CompiledQuery, QueryCompiler
from record_query.errors import (
    DuplicateQueryError,
    DuplicateResourceError,
    MissingParameterError,
    QueryError,
    TypeMismatchError,
    UnknownQueryError,
)
from record_query.metadata import load_type_registry, type_registry_from_metadata
from record_query.query_executor import QueryExecutor
from record_query.registry import RegistryManager, ResourceRegistry
from record_query.serializer import Serializer
from record_query.types import (
    Concept,
    ConceptTypeDefinition,
    EnumTypeDefinition,
    FieldDefinition,
    PrimitiveType,
    Relationship,
    Resource,
    ResourceTypeDefinition,
    TypeDefinition,
    TypeRegistry,
)

__all__ = [
    # Main API
    "QueryExecutor",
    "QueryCatalog",
    "QueryCompiler",
    "CompiledQuery",
    "BoundQuery",
    "bind",
    # Registries and serialization
    "RegistryManager",
    "ResourceRegistry",
    "Serializer",
    "load_type_registry",
    "type_registry_from_metadata",
    # Resource model
    "Concept",
    "Relationship",
    "Resource",
    "TypeDefinition",
    "PrimitiveType",
    "EnumTypeDefinition",
    "ConceptTypeDefinition",
    "ResourceTypeDefinition",
    "FieldDefinition",
    "TypeRegistry",
    # Errors
    "QueryError",
    "UnknownQueryError",
    "DuplicateQueryError",
    "MissingParameterError",
    "TypeMismatchError",
    "DuplicateResourceError",
]

__version__ = "0.1.0"
