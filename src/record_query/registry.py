"""Resource registries: identifier-ordered stores of one declared type."""

from __future__ import annotations

import logging
import threading
from contextlib import ExitStack
from typing import Iterable, Iterator

from record_query.errors import DuplicateResourceError, TypeMismatchError
from record_query.types import Resource, ResourceTypeDefinition, TypeRegistry

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Holds the resources of a single resource type, keyed by identifier.

    Readers work on an immutable snapshot (a tuple in ascending identifier
    order). Writers build a new snapshot under a lock and publish it by
    swapping the reference, so a reader sees either the whole of a batch or
    none of it.
    """

    def __init__(self, type_def: ResourceTypeDefinition) -> None:
        self.type_def = type_def
        self._lock = threading.Lock()
        self._by_id: dict[str, Resource] = {}
        self._snapshot: tuple[Resource, ...] = ()

    @property
    def type_name(self) -> str:
        return self.type_def.name

    def add(self, resource: Resource) -> None:
        """Add a single resource."""
        self.add_all([resource])

    def add_all(self, resources: Iterable[Resource]) -> None:
        """Add a batch of resources atomically.

        Raises:
            TypeMismatchError: If a resource is not of this registry's type.
            DuplicateResourceError: If an identifier is already present, or
                repeated within the batch. Nothing is added in either case.
        """
        batch = list(resources)
        with self._lock:
            by_id = self._merged(batch)
            self._publish(by_id)
        logger.debug("Added %d resources to %s (%d total)", len(batch), self.type_name, len(by_id))

    def _merged(self, batch: list[Resource]) -> dict[str, Resource]:
        # Caller holds the lock
        by_id = dict(self._by_id)
        for resource in batch:
            if not isinstance(resource, Resource):
                raise TypeError(f"Expected a Resource, got {type(resource).__name__}")
            if resource.type_name != self.type_name:
                raise TypeMismatchError(self.type_name, resource.type_name)
            if resource.identifier in by_id:
                raise DuplicateResourceError(self.type_name, resource.identifier)
            by_id[resource.identifier] = resource
        return by_id

    def _publish(self, by_id: dict[str, Resource]) -> None:
        self._by_id = by_id
        self._snapshot = tuple(by_id[key] for key in sorted(by_id))

    def get(self, identifier: str) -> Resource:
        """Get a resource by identifier."""
        resource = self._by_id.get(identifier)
        if resource is None:
            raise KeyError(f"Resource '{identifier}' not found in registry '{self.type_name}'")
        return resource

    def exists(self, identifier: str) -> bool:
        """Return whether a resource with this identifier is present."""
        return identifier in self._by_id

    def get_all(self) -> tuple[Resource, ...]:
        """Return the current snapshot in ascending identifier order."""
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._snapshot)

    def __repr__(self) -> str:
        return f"ResourceRegistry({self.type_name!r}, {len(self._snapshot)} resources)"


class RegistryManager:
    """Hands out one registry per resource type, creating them on first use."""

    def __init__(self, type_registry: TypeRegistry) -> None:
        self.type_registry = type_registry
        self._registries: dict[str, ResourceRegistry] = {}
        self._lock = threading.Lock()

    def get_registry(self, type_name: str) -> ResourceRegistry:
        """Get the registry for a resource type.

        Raises:
            KeyError: If the type is not declared.
            TypeError: If the type is not a resource type.
        """
        with self._lock:
            registry = self._registries.get(type_name)
            if registry is None:
                type_def = self.type_registry.get_or_raise(type_name)
                if not isinstance(type_def, ResourceTypeDefinition):
                    raise TypeError(f"Type '{type_name}' is not a resource type")
                registry = ResourceRegistry(type_def)
                self._registries[type_name] = registry
            return registry

    def registries(self) -> list[ResourceRegistry]:
        """Return the registries created so far, ordered by type name."""
        with self._lock:
            return [self._registries[name] for name in sorted(self._registries)]

    def add_all(self, resources: Iterable[Resource]) -> None:
        """Route resources to their registries as one atomic batch.

        Every type's batch is validated before any registry is updated, so a
        failure leaves all registries unchanged.
        """
        grouped: dict[str, list[Resource]] = {}
        for resource in resources:
            if not isinstance(resource, Resource):
                raise TypeError(f"Expected a Resource, got {type(resource).__name__}")
            grouped.setdefault(resource.type_name, []).append(resource)
        targets = [(self.get_registry(name), grouped[name]) for name in sorted(grouped)]

        # Locks are taken in type-name order
        with ExitStack() as stack:
            for registry, _ in targets:
                stack.enter_context(registry._lock)
            merged = [(registry, registry._merged(batch)) for registry, batch in targets]
            for registry, by_id in merged:
                registry._publish(by_id)
        for registry, batch in targets:
            logger.debug("Added %d resources to %s (%d total)", len(batch), registry.type_name, len(registry))
