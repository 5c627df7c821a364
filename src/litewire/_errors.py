from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from ._service import ServiceDescriptor


class ContainerError(Exception):
    """Base class for container misconfiguration.

    Every subclass describes a mistake in how services were declared or wired,
    something to fix in the composition code rather than handle at runtime.
    """


class RegistrationError(ContainerError):
    pass


class InvalidIdentityError(RegistrationError, ValueError):
    pass


class DependencyCountMismatchError(RegistrationError, TypeError):
    pass


class ResolutionError(ContainerError, RuntimeError):
    pass


class UnregisteredServiceError(ResolutionError):
    def __init__(self, message: str, *, name: str | None = None, required_by: str | None = None) -> None:
        super().__init__(message)
        self.name = name
        self.required_by = required_by


class CyclicDependencyError(ResolutionError):
    """Raised when resolution re-enters a service that is still being built.

    `chain` holds the descriptor labels on the resolution stack in order,
    with the re-entered descriptor appended last.
    """

    def __init__(self, chain: list[str]) -> None:
        super().__init__("Cyclic dependency detected! Cycle was: " + " -> ".join(chain))
        self.chain = chain


class LifetimeViolationError(ResolutionError):
    def __init__(self, dependent: ServiceDescriptor, dependency: ServiceDescriptor) -> None:
        super().__init__(
            f"Service {dependent} cannot require service {dependency} because it has a longer lifetime!"
        )
        self.dependent = dependent
        self.dependency = dependency


class InternalConsistencyError(AssertionError):
    """Raised when the container's own bookkeeping is inconsistent.

    This signals a bug in litewire, not a wiring mistake, so it is kept
    outside the `ContainerError` hierarchy.
    """
