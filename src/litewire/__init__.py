"""Lightweight dependency injection runtime.

This package maps service identities to construction recipes and resolves them
into instances on demand, enforcing lifetimes and rejecting dependency cycles.

Exports:
- `ContainerBuilder`: Collects registrations (pre-built instances, factories, and
  injected constructors) and freezes them into a `Container`.
- `Container`: Resolves identities or service names into instances, caching
  singletons and validating each dependency graph on first use.
- `ServiceIdentity` / `identity`: Opaque, named tokens services are registered under.
- `Lifetime`: Ordered enum of lifetimes (`TRANSIENT < SINGLETON`).
- `depends_on` / `DEPENDENCIES`: Declare the service names an injected constructor takes.
- The `ContainerError` hierarchy and `InternalConsistencyError`.
"""

from ._container import Container, ContainerBuilder
from ._errors import (
    ContainerError,
    CyclicDependencyError,
    DependencyCountMismatchError,
    InternalConsistencyError,
    InvalidIdentityError,
    LifetimeViolationError,
    RegistrationError,
    ResolutionError,
    UnregisteredServiceError,
)
from ._service import (
    DEPENDENCIES,
    Lifetime,
    ServiceDescriptor,
    ServiceIdentity,
    ServiceProvider,
    ServiceStyle,
    depends_on,
    identity,
)


__all__ = [
    "DEPENDENCIES",
    "Container",
    "ContainerBuilder",
    "ContainerError",
    "CyclicDependencyError",
    "DependencyCountMismatchError",
    "InternalConsistencyError",
    "InvalidIdentityError",
    "Lifetime",
    "LifetimeViolationError",
    "RegistrationError",
    "ResolutionError",
    "ServiceDescriptor",
    "ServiceIdentity",
    "ServiceProvider",
    "ServiceStyle",
    "UnregisteredServiceError",
    "depends_on",
    "identity",
]
