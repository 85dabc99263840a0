"""
hooktrace Simulator - Scripted Interaction Runs
===============================================

The InteractionSimulator replays a script of steps against a mounted
instance, one step at a time. Each step runs to completion (handler,
commit, render) before the next one starts, and the output after each
commit is appended to the RenderTrace.

Every run starts from the tree's declared initial state: a root that has
already handled events is reset first, so running the same script twice
yields the same trace.

If a step raises, a terminal Thrown marker is recorded at that position
and the run stops there: later steps are never dispatched against an
instance whose state may be half-updated.
"""

import logging
from typing import Any, Iterable, List, Mapping, Optional

from .component import ComponentDefinition, ComponentInstance, mount
from .config import HarnessConfig
from .errors import HooktraceError
from .trace import PropsUpdate, RenderTrace, Thrown, TraceEntry, coerce_step


class InteractionSimulator:
    """Replays scripts against component instances."""

    def run(self, instance: ComponentInstance, script: Iterable[Any]) -> RenderTrace:
        """
        Dispatch every step of ``script`` in order and record the outputs.

        Args:
            instance: Mounted instance. Its root is reset if used, receives prop
                updates and collects notices; event names are resolved
                relative to ``instance``.
            script: Steps (Event, PropsUpdate, names or ``(name, *args)``
                tuples).

        Returns:
            A new RenderTrace. It ends with a Thrown marker if a step raised.
        """
        root = instance.root
        prefix = f"{instance.path}/" if instance is not root else ""
        if root.dirty:
            root.reset()
        entries: List[TraceEntry] = []

        for index, item in enumerate(script):
            step = coerce_step(item)
            mark = len(root.notices)
            try:
                if isinstance(step, PropsUpdate):
                    output = root.update(step.props)
                else:
                    output = root.dispatch(prefix + step.name, *step.args)
            except HooktraceError as exc:
                logging.debug(f"step #{index} {step} raised {exc!r}, halting run")
                return RenderTrace(entries, Thrown(index, step, exc))

            commit = root.last_commit
            entries.append(
                TraceEntry(
                    index,
                    step,
                    output,
                    rerendered=commit.rerendered,
                    recomputed=commit.recomputed,
                    notices=tuple(root.notices[mark:]),
                )
            )

        return RenderTrace(entries)


def simulate(
    definition: ComponentDefinition,
    script: Iterable[Any],
    props: Optional[Mapping[str, Any]] = None,
    config: Optional[HarnessConfig] = None,
) -> RenderTrace:
    """Mount a fresh instance of ``definition`` and run ``script`` against it."""
    return InteractionSimulator().run(mount(definition, props, config), script)
