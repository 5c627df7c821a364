from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeVar, overload

from ._errors import (
    CyclicDependencyError,
    InternalConsistencyError,
    LifetimeViolationError,
    RegistrationError,
    UnregisteredServiceError,
)
from ._service import Lifetime, ServiceDescriptor, ServiceIdentity


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from ._service import ServiceProvider

    T = TypeVar("T")

    Key = ServiceIdentity[T] | str

# Distinguishes "nothing cached" from a cached falsy singleton.
_MISSING: Any = object()


class ContainerBuilder:
    """Collects service registrations and freezes them into a `Container`.

    Every `register_*` method returns the builder, so wiring reads as a chain:

      container = (
          ContainerBuilder()
          .register_instance(CONFIG, config)
          .register_injected(Lifetime.SINGLETON, REPO, Repository)
          .register_factory(Lifetime.TRANSIENT, HANDLER, lambda provide: Handler(provide(REPO)))
          .build()
      )

    Registering an identity again replaces its previous descriptor.
    """

    def __init__(self) -> None:
        self._descriptors: dict[ServiceIdentity[Any], ServiceDescriptor] = {}

    def register_instance(self, identity: ServiceIdentity[T], instance: T) -> ContainerBuilder:
        """Register a pre-built instance (always singleton)."""
        self._check_identity(identity)
        return self._add(ServiceDescriptor.for_instance(identity, instance))

    def register_factory(
        self,
        lifetime: Lifetime,
        identity: ServiceIdentity[T],
        factory: Callable[[ServiceProvider], T],
    ) -> ContainerBuilder:
        """Register a function that receives a provider and returns a new instance."""
        self._check_lifetime(lifetime)
        self._check_identity(identity)
        if not callable(factory):
            msg = f"factory must be callable, got {type(factory).__name__}"
            raise RegistrationError(msg)
        return self._add(ServiceDescriptor.for_factory(lifetime, identity, factory))

    def register_injected(
        self,
        lifetime: Lifetime,
        identity: ServiceIdentity[T],
        implementation: Callable[..., T],
    ) -> ContainerBuilder:
        """Register a constructor-like callable built from its declared dependencies.

        The callable lists the names it needs in `__dependencies__` (see
        `depends_on`); they are resolved in order and passed positionally. The
        number of declared names must match the callable's required positional
        parameters, otherwise `DependencyCountMismatchError` is raised here.
        """
        self._check_lifetime(lifetime)
        self._check_identity(identity)
        if not callable(implementation):
            msg = f"implementation must be callable, got {type(implementation).__name__}"
            raise RegistrationError(msg)
        return self._add(ServiceDescriptor.for_injected(lifetime, identity, implementation))

    def build(self) -> Container:
        """Create a container over a snapshot of the current registrations."""
        logger.debug("Building container with %d service(s)", len(self._descriptors))
        return Container(dict(self._descriptors))

    def __contains__(self, identity: object) -> bool:
        return identity in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def _add(self, descriptor: ServiceDescriptor) -> ContainerBuilder:
        name = descriptor.identity.name
        for existing in self._descriptors:
            if existing.name == name and existing is not descriptor.identity:
                msg = f"Another service identity named {name!r} is already registered. Service names must be unique."
                raise RegistrationError(msg)

        logger.debug("Registering %s", descriptor)
        self._descriptors[descriptor.identity] = descriptor
        return self

    @staticmethod
    def _check_identity(identity: object) -> None:
        if not isinstance(identity, ServiceIdentity):
            msg = f"Services must be registered under a ServiceIdentity, got {identity!r}"
            raise RegistrationError(msg)

    @staticmethod
    def _check_lifetime(lifetime: object) -> None:
        if not isinstance(lifetime, Lifetime):
            msg = f"lifetime must be a Lifetime member, got {lifetime!r}"
            raise RegistrationError(msg)


class Container:
    """Resolves service identities into instances.

    - singletons are built lazily on first retrieval and cached for the life of
      the container
    - transients are built anew on every retrieval
    - the first resolution of each service checks its dependency graph for
      cycles and for longer-lived services requiring shorter-lived ones

    Containers are created by `ContainerBuilder.build()` and never change
    their registrations afterwards.
    """

    def __init__(self, descriptors: Mapping[ServiceIdentity[Any], ServiceDescriptor]) -> None:
        self._descriptors: Mapping[ServiceIdentity[Any], ServiceDescriptor] = MappingProxyType(dict(descriptors))
        self._names: Mapping[str, ServiceIdentity[Any]] = MappingProxyType(
            {key.name: key for key in self._descriptors}
        )
        self._validated: set[ServiceIdentity[Any]] = set()
        self._singletons: dict[ServiceIdentity[Any], object] = {}
        self._lock = threading.RLock()

    @overload
    def retrieve(self, key: ServiceIdentity[T]) -> T: ...

    @overload
    def retrieve(self, key: str) -> Any: ...

    def retrieve(self, key: Key[T]) -> object:
        """Return an instance for `key`, an identity or a registered service name."""
        with self._lock:
            return self._retrieve(key, None, None)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            return key in self._names
        return key in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def _retrieve(
        self,
        key: Key[T],
        stack: dict[ServiceIdentity[Any], ServiceDescriptor] | None,
        required_by: ServiceDescriptor | None,
    ) -> object:
        identity = self._lookup(key, required_by)
        descriptor = self._descriptors.get(identity)
        if descriptor is None:
            msg = f"No service was registered for the given key {identity.name!r}!"
            if required_by is not None:
                msg = f"{msg} Required by {required_by}."
            raise UnregisteredServiceError(
                msg,
                name=identity.name,
                required_by=None if required_by is None else str(required_by),
            )

        validated = identity in self._validated

        cached = self._singletons.get(identity, _MISSING)
        if cached is not _MISSING:
            if not validated:
                msg = f"Expected descriptor to be validated when returning a cached instance! Service: {descriptor}"
                raise InternalConsistencyError(msg)
            if descriptor.lifetime is not Lifetime.SINGLETON:
                msg = f"Unexpected cached instance for non-singleton service! Service: {descriptor}"
                raise InternalConsistencyError(msg)
            return cached

        if not validated:
            if stack is None:
                stack = {}

            if identity in stack:
                chain = [str(d) for d in stack.values()]
                chain.append(str(descriptor))
                raise CyclicDependencyError(chain)

            stack[identity] = descriptor

        def provide(nested: Key[Any]) -> Any:
            return self._retrieve(nested, stack, descriptor)

        try:
            instance = descriptor.construct(provide)
        finally:
            if not validated:
                del stack[identity]

        # Checked once the dependency is built so a cycle through it is reported first.
        # Edges out of an unvalidated dependent are checked even when the dependency
        # was validated by an earlier request.
        if (
            required_by is not None
            and required_by.identity not in self._validated
            and descriptor.lifetime < required_by.lifetime
        ):
            raise LifetimeViolationError(required_by, descriptor)

        if descriptor.lifetime is Lifetime.SINGLETON:
            logger.debug("Constructed singleton %s", descriptor)
            self._singletons[identity] = instance

        self._validated.add(identity)
        return instance

    def _lookup(self, key: Key[Any], required_by: ServiceDescriptor | None) -> ServiceIdentity[Any]:
        if isinstance(key, ServiceIdentity):
            return key

        if isinstance(key, str):
            found = self._names.get(key)
            if found is not None:
                return found

            msg = f"No service key found for {key!r}!"
            if required_by is not None:
                msg = f"{msg} Required by {required_by}."
            raise UnregisteredServiceError(
                msg,
                name=key,
                required_by=None if required_by is None else str(required_by),
            )

        msg = f"Services are retrieved by ServiceIdentity or name, got {key!r}"
        raise TypeError(msg)
