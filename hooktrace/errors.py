"""
hooktrace Errors - Exception Hierarchy
======================================

Every exception the harness raises derives from HooktraceError, so the
Interaction Simulator can tell a harness-classified failure apart from a
bug in the harness itself.

Taxonomy:
    ContractViolation: a state value was mutated in place, or state was
        transitioned from inside a render pass
    ThrownDuringDispatch: a handler or render function raised
    UnknownEventError: a script addressed a handler that is not declared
    DefinitionError: a component definition is malformed
    CircularDependencyError: memo dependency names form a cycle

UndeclaredPropAccess and TraceDivergence are not exceptions. They are
reported as records (see hooktrace.props and hooktrace.harness).
"""

from typing import Any, Optional


class HooktraceError(Exception):
    """Base class for all harness errors."""

    pass


class ContractViolation(HooktraceError):
    """A state value was changed without going through its transition."""

    pass


class DefinitionError(HooktraceError):
    """A component definition is inconsistent."""

    pass


class CircularDependencyError(DefinitionError):
    """Raised when memo dependency names form a cycle."""

    pass


class UnknownEventError(HooktraceError):
    """Raised when dispatching to a handler that is not declared."""

    def __init__(self, event_name: str, available: Optional[list] = None):
        self.event_name = event_name
        self.available = sorted(available or [])
        super().__init__(
            f"No handler named '{event_name}'. Declared handlers: {self.available}"
        )


class ThrownDuringDispatch(HooktraceError):
    """
    A handler or render function raised while processing an event.

    The original exception is kept both as ``error`` and as ``__cause__``.
    """

    def __init__(
        self,
        event_name: str,
        phase: str,
        error: BaseException,
        component: Optional[str] = None,
    ):
        self.event_name = event_name
        self.phase = phase
        self.error = error
        self.component = component
        where = f"{component}." if component else ""
        super().__init__(
            f"{type(error).__name__} in {phase} of {where}{event_name}: {error}"
        )

    def describe(self) -> Any:
        return (type(self.error).__name__, str(self.error), self.phase)
