"""
hooktrace Harness - Trace Verification
======================================

The VerificationHarness runs a script through the InteractionSimulator and
compares the produced RenderTrace with an expected one, position by
position. It stops at the first divergence and reports it with the event
index, both values, and the memo recomputations of that step:

    FailureKind.DIVERGED            rendered, but the output is wrong
    FailureKind.NOT_RERENDERED      the step committed no effective change,
                                    so the previous output was reused
    FailureKind.THROWN              a handler, memo or render raised
    FailureKind.CONTRACT_VIOLATION  state was mutated outside a transition
    FailureKind.MISSING             the script ended before the expectation
    FailureKind.UNEXPECTED          the script produced more outputs than
                                    expected

Example:
    result = verify_definition(Counter, ["increment"] * 3, [1, 2, 3])
    assert result.passed, result.report()
"""

import difflib
import logging
import pprint
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from .component import ComponentDefinition, ComponentInstance, mount
from .config import DEFAULT_CONFIG, HarnessConfig
from .errors import ContractViolation
from .simulator import InteractionSimulator
from .trace import RenderTrace, Step, Thrown, TraceEntry
from .values import outputs_equal


class _Missing:
    def __repr__(self):
        return "MISSING"


MISSING = _Missing()


class FailureKind(Enum):
    """Classification of the first divergence."""

    DIVERGED = "diverged"
    NOT_RERENDERED = "not re-rendered"
    THROWN = "thrown"
    CONTRACT_VIOLATION = "contract violation"
    MISSING = "missing output"
    UNEXPECTED = "unexpected output"


@dataclass(frozen=True)
class TraceDivergence:
    """
    First point where the produced trace departs from the expected one.

    ``actual`` is MISSING when the run produced nothing at ``index``;
    ``expected`` is MISSING when the expectation ended first. For thrown
    failures ``error`` holds the exception and ``actual`` the Thrown marker.
    """

    index: int
    kind: FailureKind
    expected: Any
    actual: Any
    event: Optional[Step] = None
    error: Optional[BaseException] = None
    entry: Optional[TraceEntry] = None

    @property
    def thrown(self) -> bool:
        return self.error is not None

    def headline(self) -> str:
        where = f"event #{self.index}"
        if self.event is not None:
            where += f" {self.event}"
        if self.error is not None:
            error = f"{type(self.error).__name__}: {self.error}"
            return f"{where}: {self.kind.value}: {error}"
        return f"{where}: {self.kind.value}"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of one verification: Pass, or Fail with the first divergence."""

    trace: RenderTrace
    expected: Tuple[Any, ...]
    failure: Optional[TraceDivergence] = None
    notices: Tuple[Any, ...] = ()
    config: HarnessConfig = field(default=DEFAULT_CONFIG, repr=False)

    @property
    def passed(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.passed

    def diff(self) -> str:
        """Unified diff of expected vs actual at the first divergence."""
        failure = self.failure
        if failure is None:
            return ""
        expected = _format(failure.expected)
        if failure.error is not None:
            actual = _format_error(failure.error)
        else:
            actual = _format(failure.actual)
        lines = difflib.unified_diff(
            expected,
            actual,
            fromfile=f"expected[{failure.index}]",
            tofile=f"actual[{failure.index}]",
            n=self.config.diff_context,
            lineterm="",
        )
        return "\n".join(lines)

    def report(self) -> str:
        """Console-ready summary."""
        if self.failure is None:
            return f"PASS: {len(self.expected)} step(s) matched"

        failure = self.failure
        lines = [f"FAIL at {failure.headline()}"]
        if failure.index > 0:
            lines.append(f"  steps 0..{failure.index - 1} matched")
        diff = self.diff()
        if diff:
            lines.append(diff)
        if failure.entry is not None and failure.entry.recomputed:
            lines.append("memo recomputations in this step:")
            lines.extend(f"  {r.describe()}" for r in failure.entry.recomputed)
        if self.notices:
            lines.append("notices:")
            lines.extend(f"  {notice.describe()}" for notice in self.notices)
        return "\n".join(lines)

    def __repr__(self) -> str:
        if self.failure is None:
            return "Pass"
        failure = self.failure
        if failure.error is not None:
            return f"Fail(thrown at {failure.index}, {failure.error!r})"
        return (
            f"Fail(at {failure.index}, expected={failure.expected!r}, "
            f"actual={failure.actual!r}, kind={failure.kind.value})"
        )


@dataclass(frozen=True)
class DeterminismCheck:
    """Result of replaying one script on independent mounts."""

    identical: bool
    traces: Tuple[RenderTrace, ...]

    def __bool__(self) -> bool:
        return self.identical


# ============================================================================
# HARNESS
# ============================================================================


class VerificationHarness:
    """Runs scripts and compares their traces against expectations."""

    def __init__(self, config: Optional[HarnessConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.simulator = InteractionSimulator()

    def verify(
        self, instance: ComponentInstance, script: Iterable[Any], expected: Any
    ) -> VerificationResult:
        """
        Run ``script`` on ``instance`` and compare against ``expected``.

        ``expected`` is a sequence of outputs, or a RenderTrace whose outputs
        are used.
        """
        outputs = _expected_outputs(expected)
        trace = self.simulator.run(instance, script)
        failure = self.compare(trace, outputs)
        notices = tuple(instance.root.notices)
        result = VerificationResult(trace, outputs, failure, notices, self.config)
        logging.debug(f"verify {instance.name}: {result!r}")
        return result

    def verify_definition(
        self,
        definition: ComponentDefinition,
        script: Iterable[Any],
        expected: Any,
        props: Optional[Mapping[str, Any]] = None,
    ) -> VerificationResult:
        """Verify against a freshly mounted instance of ``definition``."""
        return self.verify(mount(definition, props, self.config), script, expected)

    def check_deterministic(
        self,
        definition: ComponentDefinition,
        script: Sequence[Any],
        props: Optional[Mapping[str, Any]] = None,
        runs: int = 2,
    ) -> DeterminismCheck:
        """Replay ``script`` on ``runs`` fresh mounts and compare the traces."""
        traces = tuple(
            self.simulator.run(mount(definition, props, self.config), script)
            for _ in range(runs)
        )
        identical = all(trace == traces[0] for trace in traces[1:])
        return DeterminismCheck(identical, traces)

    @staticmethod
    def compare(
        trace: RenderTrace, expected: Sequence[Any]
    ) -> Optional[TraceDivergence]:
        """Return the first divergence between ``trace`` and ``expected``."""
        for index in range(max(len(trace), len(expected))):
            want = expected[index] if index < len(expected) else MISSING

            if index >= len(trace):
                return _missing_or_thrown(trace, index, want)

            entry = trace[index]
            if want is MISSING:
                return TraceDivergence(
                    index,
                    FailureKind.UNEXPECTED,
                    MISSING,
                    entry.output,
                    entry.event,
                    entry=entry,
                )
            if not outputs_equal(want, entry.output):
                kind = (
                    FailureKind.DIVERGED
                    if entry.rerendered
                    else FailureKind.NOT_RERENDERED
                )
                return TraceDivergence(
                    index, kind, want, entry.output, entry.event, entry=entry
                )

        if trace.thrown is not None:
            return _missing_or_thrown(trace, trace.thrown.index, MISSING)
        return None


def _missing_or_thrown(trace: RenderTrace, index: int, want: Any) -> TraceDivergence:
    thrown: Optional[Thrown] = trace.thrown
    if thrown is not None and thrown.index == index:
        kind = (
            FailureKind.CONTRACT_VIOLATION
            if isinstance(thrown.error, ContractViolation)
            else FailureKind.THROWN
        )
        return TraceDivergence(index, kind, want, thrown, thrown.event, thrown.error)
    return TraceDivergence(index, FailureKind.MISSING, want, MISSING)


def _expected_outputs(expected: Any) -> Tuple[Any, ...]:
    if isinstance(expected, RenderTrace):
        return tuple(expected.outputs())
    return tuple(expected)


def _format(value: Any) -> List[str]:
    return pprint.pformat(value, width=72).splitlines()


def _format_error(error: BaseException) -> List[str]:
    lines = traceback.format_exception_only(type(error), error)
    cause = error.__cause__
    if cause is not None:
        lines.append("caused by:\n")
        lines.extend(traceback.format_exception_only(type(cause), cause))
    return "".join(lines).splitlines()


# ============================================================================
# MODULE-LEVEL SHORTCUTS
# ============================================================================


def verify(
    instance: ComponentInstance,
    script: Iterable[Any],
    expected: Any,
    config: Optional[HarnessConfig] = None,
) -> VerificationResult:
    """Verify ``script`` on an already mounted ``instance``."""
    return VerificationHarness(config or instance.config).verify(
        instance, script, expected
    )


def verify_definition(
    definition: ComponentDefinition,
    script: Iterable[Any],
    expected: Any,
    props: Optional[Mapping[str, Any]] = None,
    config: Optional[HarnessConfig] = None,
) -> VerificationResult:
    """Mount ``definition`` fresh and verify ``script`` against ``expected``."""
    return VerificationHarness(config).verify_definition(
        definition, script, expected, props
    )


def check_deterministic(
    definition: ComponentDefinition,
    script: Sequence[Any],
    props: Optional[Mapping[str, Any]] = None,
    config: Optional[HarnessConfig] = None,
) -> DeterminismCheck:
    """Replay ``script`` twice on fresh mounts and compare the traces."""
    return VerificationHarness(config).check_deterministic(definition, script, props)
