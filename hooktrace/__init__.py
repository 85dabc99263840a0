"""
hooktrace - Reactive Component Verification Harness

Models a UI component's reactive state (state cells, dependency-gated memos,
declared props), replays scripted interactions against it, and checks the
rendered outputs against an expected trace, reporting the first divergence.
"""

from .component import (
    AbsentInOutput,
    CommitInfo,
    ComponentDefinition,
    ComponentInstance,
    RenderScope,
    mount,
    use_callback,
    use_memo,
)
from .config import DEFAULT_CONFIG, HarnessConfig
from .errors import (
    CircularDependencyError,
    ContractViolation,
    DefinitionError,
    HooktraceError,
    ThrownDuringDispatch,
    UnknownEventError,
)
from .harness import (
    MISSING,
    DeterminismCheck,
    FailureKind,
    TraceDivergence,
    VerificationHarness,
    VerificationResult,
    check_deterministic,
    verify,
    verify_definition,
)
from .memo import Memo, MemoKind, Recompute, callback
from .props import ABSENT, PropsView, UndeclaredPropAccess, contains_absent
from .simulator import InteractionSimulator, simulate
from .state import CommitQueue, StateCell, StateChange, create_state
from .trace import Event, PropsUpdate, RenderTrace, Thrown, TraceEntry
from .values import FrozenDict, FrozenList, FrozenSet, freeze, thaw

__version__ = "0.1.0"

__all__ = [
    # State
    "StateCell",
    "StateChange",
    "CommitQueue",
    "create_state",
    # Memos
    "Memo",
    "MemoKind",
    "Recompute",
    "callback",
    # Props
    "ABSENT",
    "PropsView",
    "UndeclaredPropAccess",
    "contains_absent",
    # Components
    "ComponentDefinition",
    "ComponentInstance",
    "RenderScope",
    "CommitInfo",
    "AbsentInOutput",
    "mount",
    "use_memo",
    "use_callback",
    # Simulation
    "Event",
    "PropsUpdate",
    "RenderTrace",
    "TraceEntry",
    "Thrown",
    "InteractionSimulator",
    "simulate",
    # Verification
    "VerificationHarness",
    "VerificationResult",
    "TraceDivergence",
    "FailureKind",
    "DeterminismCheck",
    "MISSING",
    "verify",
    "verify_definition",
    "check_deterministic",
    # Values
    "FrozenList",
    "FrozenDict",
    "FrozenSet",
    "freeze",
    "thaw",
    # Configuration
    "HarnessConfig",
    "DEFAULT_CONFIG",
    # Exceptions
    "HooktraceError",
    "ContractViolation",
    "ThrownDuringDispatch",
    "UnknownEventError",
    "DefinitionError",
    "CircularDependencyError",
]
