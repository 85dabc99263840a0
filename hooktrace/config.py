"""
hooktrace Config - Harness Options
==================================

Options are carried explicitly by each ComponentInstance and harness call.
There is no module-level configuration and no environment lookup, so two
runs configured differently never influence each other.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class HarnessConfig:
    """
    Behavior switches for instances and verification runs.

    Attributes:
        freeze_reads: Deep-freeze values handed out by state readers so that
            in-place mutation raises ContractViolation. Turning this off
            reproduces the "mutated state directly" defect.
        bailout_on_equal_state: Skip re-rendering when a commit leaves every
            state cell equal to its previous value.
        record_prop_notices: Keep UndeclaredPropAccess records on the
            instance for verification reports.
        diff_context: Number of context lines in textual diffs.
    """

    freeze_reads: bool = True
    bailout_on_equal_state: bool = True
    record_prop_notices: bool = True
    diff_context: int = 3


DEFAULT_CONFIG = HarnessConfig()
