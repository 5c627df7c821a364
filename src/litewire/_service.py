from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar, overload

from ._errors import DependencyCountMismatchError, InternalConsistencyError, InvalidIdentityError, RegistrationError


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    F = TypeVar("F", bound=Callable[..., Any])

T = TypeVar("T")

# Attribute holding the ordered service names a constructor-like callable depends on.
DEPENDENCIES = "__dependencies__"


@total_ordering
class Lifetime(Enum):
    """How long a built instance may live.

    Members are declared from shortest to longest lived and compare in that
    order, so `Lifetime.TRANSIENT < Lifetime.SINGLETON`. A service may only
    depend on services whose lifetime is not shorter than its own.
    """

    TRANSIENT = "transient"
    SINGLETON = "singleton"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Lifetime):
            return NotImplemented
        return self._rank < other._rank

    @property
    def _rank(self) -> int:
        return list(Lifetime).index(self)


class ServiceStyle(Enum):
    INSTANCE = "instance"
    FACTORY = "factory"
    INJECTED = "injected"


class ServiceIdentity(Generic[T]):
    """Opaque token identifying one registrable service.

    Two identities are equal only when they are the same object; the name is
    carried for diagnostics and for name-based dependency declarations.

    Example:
      DB: ServiceIdentity[Database] = ServiceIdentity("Database")

    """

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        if not isinstance(name, str) or not name:
            msg = f"Service identity name must be a non-empty string, got {name!r}"
            raise InvalidIdentityError(msg)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"ServiceIdentity({self._name!r})"


def identity(name: str) -> ServiceIdentity[Any]:
    """Create a new, unique service identity named `name`."""
    return ServiceIdentity(name)


class ServiceProvider(Protocol):
    """Callback handed to factories for resolving their own dependencies."""

    @overload
    def __call__(self, key: ServiceIdentity[T], /) -> T: ...

    @overload
    def __call__(self, key: str, /) -> Any: ...


def depends_on(*names: str) -> Callable[[F], F]:
    """Declare the services a constructor-like callable takes, in parameter order.

    Example:
      @depends_on("Database", "Clock")
      class Repository:
          def __init__(self, db, clock): ...

    """
    checked = _check_dependency_names(names, owner="depends_on()")

    def decorator(target: F) -> F:
        setattr(target, DEPENDENCIES, checked)
        return target

    return decorator


def declared_dependencies(target: Callable[..., Any]) -> tuple[str, ...]:
    names = getattr(target, DEPENDENCIES, ())
    if isinstance(names, str):
        msg = f"{_callable_name(target)}.{DEPENDENCIES} must be a sequence of names, not a single string"
        raise RegistrationError(msg)
    return _check_dependency_names(names, owner=_callable_name(target))


def _check_dependency_names(names: Sequence[Any], *, owner: str) -> tuple[str, ...]:
    for name in names:
        if not isinstance(name, str) or not name:
            msg = f"{owner} declares an invalid dependency name {name!r}; names must be non-empty strings"
            raise RegistrationError(msg)
    return tuple(names)


def _callable_name(target: Any) -> str:
    return getattr(target, "__qualname__", None) or getattr(target, "__name__", None) or repr(target)


def _constructor_arity(target: Callable[..., Any]) -> tuple[int, list[str]]:
    """Count required positional parameters and list required keyword-only ones."""
    try:
        sig = inspect.signature(target)
    except (ValueError, TypeError):
        # builtins and some C types expose no signature; treat as taking nothing
        return 0, []

    positional = 0
    keyword_only: list[str] = []
    for p in sig.parameters.values():
        if p.default is not inspect.Parameter.empty:
            continue
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
        elif p.kind is inspect.Parameter.KEYWORD_ONLY:
            keyword_only.append(p.name)
    return positional, keyword_only


@dataclass(frozen=True)
class ServiceDescriptor:
    """Immutable recipe for building the instances of one identity.

    `construct` always has the shape `(provider) -> instance`; the style only
    matters for validation and for the diagnostic label.
    """

    identity: ServiceIdentity[Any]
    lifetime: Lifetime
    style: ServiceStyle
    construct: Callable[[ServiceProvider], Any]
    implementation: Callable[..., Any] | None = None

    def __post_init__(self) -> None:
        if (self.style is ServiceStyle.INJECTED) != (self.implementation is not None):
            msg = "implementation must be provided if and only if style is ServiceStyle.INJECTED"
            raise InternalConsistencyError(msg)

    @classmethod
    def for_instance(cls, identity: ServiceIdentity[T], instance: T) -> ServiceDescriptor:
        return cls(identity, Lifetime.SINGLETON, ServiceStyle.INSTANCE, lambda _: instance)

    @classmethod
    def for_factory(
        cls,
        lifetime: Lifetime,
        identity: ServiceIdentity[T],
        factory: Callable[[ServiceProvider], T],
    ) -> ServiceDescriptor:
        return cls(identity, lifetime, ServiceStyle.FACTORY, factory)

    @classmethod
    def for_injected(
        cls,
        lifetime: Lifetime,
        identity: ServiceIdentity[T],
        implementation: Callable[..., T],
    ) -> ServiceDescriptor:
        names = declared_dependencies(implementation)
        arity, keyword_only = _constructor_arity(implementation)
        impl_name = _callable_name(implementation)

        if keyword_only:
            msg = (
                f"{impl_name} cannot be injected: dependencies are passed positionally but it requires "
                f"keyword-only arguments ({', '.join(keyword_only)})."
            )
            raise DependencyCountMismatchError(msg)

        if len(names) != arity:
            msg = (
                f"Dependency count mismatch! {impl_name} specifies {len(names)} dependencies "
                f"but has a constructor that takes {arity} arguments."
            )
            raise DependencyCountMismatchError(msg)

        def construct(provider: ServiceProvider) -> T:
            return implementation(*(provider(name) for name in names))

        return cls(identity, lifetime, ServiceStyle.INJECTED, construct, implementation)

    @property
    def dependencies(self) -> tuple[str, ...]:
        """Names declared by an injected implementation; empty for other styles."""
        if self.implementation is None:
            return ()
        return declared_dependencies(self.implementation)

    def __str__(self) -> str:
        name = self.identity.name
        if self.implementation is not None:
            name = getattr(self.implementation, "__name__", name)
        return f"<{self.lifetime.value} {self.style.value} of {name}>"
