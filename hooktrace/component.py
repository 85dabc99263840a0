"""
hooktrace Component - Definitions and Mounted Instances
=======================================================

A ComponentDefinition is a declaration: the prop names it reads, its state
cells with their initial values, its memos and event handlers with their
dependency lists, and a pure render function. A ComponentInstance is one
mount of a definition; it owns its cells and memos exclusively.

Render pass:
    1. Snapshot every state cell into a RenderScope.
    2. Evaluate memos and handlers in dependency order. Each dependency list
       is given by name (state, prop, or earlier memo/handler) and resolved
       against the snapshot, then handed to the memo for comparison.
    3. Call ``render(scope)``. The scope is read-only; state can only be
       changed from handlers.

Handlers are callback memos. ``use_callback("inc", fn, deps)`` binds
``fn`` to the scope of the render that (re)created it, so a handler with a
stale dependency list keeps reading the values of the render it was bound
in. That is exactly the class of defect the harness is meant to expose.

Dispatch:
    dispatch("increment")        handler on this instance
    dispatch("rows/3/toggle")    handler on a mounted child, by key path

The handler runs inside the tree's CommitQueue. Its transitions are applied
when it returns, and the root re-renders unless nothing effectively changed.

Example:
    Counter = ComponentDefinition(
        "Counter",
        state={"count": 0},
        handlers=[
            use_callback("increment", lambda s: s.set("count", lambda n: n + 1), []),
        ],
        render=lambda s: s.state.count,
    )
    counter = mount(Counter)
    assert counter.dispatch("increment") == 1
"""

import functools
import logging
from dataclasses import dataclass
from types import SimpleNamespace
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from .config import DEFAULT_CONFIG, HarnessConfig
from .errors import (
    CircularDependencyError,
    DefinitionError,
    HooktraceError,
    ThrownDuringDispatch,
    UnknownEventError,
)
from .memo import Memo, MemoKind, Recompute
from .props import PropsView, contains_absent
from .state import CommitQueue, StateCell, StateChange
from .util.cycle_detector import OrderedTopoSort

MOUNT_EVENT = "<mount>"
PROPS_EVENT = "<props>"


# ============================================================================
# DECLARATIONS
# ============================================================================


@dataclass(frozen=True)
class DerivedDecl:
    """A memo or handler declaration."""

    name: str
    fn: Callable[..., Any]
    deps: Optional[Tuple[str, ...]]
    kind: MemoKind


def use_memo(
    name: str,
    compute: Callable[["RenderScope"], Any],
    deps: Optional[Sequence[str]] = None,
) -> DerivedDecl:
    """
    Declare a memoized value computed as ``compute(scope)``.

    ``deps=None`` recomputes on every render; ``deps=[]`` computes once.
    """
    return DerivedDecl(name, compute, _names(deps), MemoKind.VALUE)


def use_callback(
    name: str, fn: Callable[..., Any], deps: Optional[Sequence[str]] = None
) -> DerivedDecl:
    """
    Declare an event handler ``fn(scope, *args)``.

    The handler is rebound to the current scope only when its dependency
    list changes.
    """
    return DerivedDecl(name, fn, _names(deps), MemoKind.CALLBACK)


def _names(deps: Optional[Sequence[str]]) -> Optional[Tuple[str, ...]]:
    if deps is None:
        return None
    if isinstance(deps, str):
        raise DefinitionError(f"Dependency list must be a sequence, got {deps!r}")
    return tuple(deps)


class ComponentDefinition:
    """
    Declared shape of a component.

    Names must be unique across props, state, memos and handlers. Dependency
    names are checked here, and memo-to-memo dependencies are ordered with a
    cycle check, so a malformed definition fails before anything is mounted.
    """

    def __init__(
        self,
        name: str,
        render: Callable[["RenderScope"], Any],
        props: Iterable[str] = (),
        state: Optional[Mapping[str, Any]] = None,
        memos: Sequence[DerivedDecl] = (),
        handlers: Sequence[DerivedDecl] = (),
    ):
        self.name = name
        self.render = render
        self.props: Tuple[str, ...] = tuple(props)
        self.state: Dict[str, Any] = dict(state or {})
        self.derived: Tuple[DerivedDecl, ...] = tuple(memos) + tuple(handlers)
        self.order: List[DerivedDecl] = self._validate()

    @property
    def handler_names(self) -> List[str]:
        return [decl.name for decl in self.derived if decl.kind is MemoKind.CALLBACK]

    def _validate(self) -> List[DerivedDecl]:
        seen: Dict[str, str] = {}
        for kind, names in (
            ("prop", self.props),
            ("state", self.state),
            ("memo", [decl.name for decl in self.derived]),
        ):
            for name in names:
                if not name or "/" in name:
                    raise DefinitionError(f"{self.name}: invalid {kind} name {name!r}")
                if name in seen:
                    raise DefinitionError(
                        f"{self.name}: '{name}' is both a {seen[name]} and a {kind}"
                    )
                seen[name] = kind

        graph: OrderedTopoSort[str] = OrderedTopoSort()
        by_name = {}
        for decl in self.derived:
            graph.add_node(decl.name)
            by_name[decl.name] = decl
        for decl in self.derived:
            for dep in decl.deps or ():
                if dep not in seen:
                    raise DefinitionError(
                        f"{self.name}.{decl.name}: unknown dependency '{dep}'"
                    )
                if dep in by_name:
                    try:
                        graph.add_edge(dep, decl.name)
                    except ValueError as exc:
                        raise CircularDependencyError(f"{self.name}: {exc}") from exc
        return [by_name[name] for name in graph.topological_sort()]

    def __repr__(self) -> str:
        return f"ComponentDefinition({self.name})"


# ============================================================================
# RENDER SCOPE
# ============================================================================


class RenderScope:
    """
    Read-only view handed to render, memo and handler functions.

    Attributes:
        state: Namespace of state values as of this render.
        props: PropsView of the declared props.
        memo: Namespace of memo outputs and bound handlers.
    """

    __slots__ = ("state", "props", "memo", "_values", "_instance")

    def __init__(self, instance: "ComponentInstance", state: Dict[str, Any]):
        self._instance = instance
        self._values: Dict[str, Any] = dict(state)
        self.state = SimpleNamespace(**state)
        self.props: PropsView = instance.props
        self.memo = SimpleNamespace()

    def __getitem__(self, name: str) -> Any:
        """Resolve a declared name (state, prop, memo or handler)."""
        if name in self._values:
            return self._values[name]
        return self.props[name]

    def _bind(self, name: str, value: Any) -> None:
        self._values[name] = value
        setattr(self.memo, name, value)

    def setter(self, name: str) -> Callable[[Any], None]:
        """Stable transition function of the named state cell."""
        return self._instance._setter(name)

    def set(self, name: str, update: Any) -> None:
        """Transition the named state cell (value or function of previous)."""
        self._instance._setter(name)(update)

    def child(self, key: str, definition: ComponentDefinition, **props) -> Any:
        """Render (mounting if needed) the child at ``key`` and return its output."""
        return self._instance._render_child(str(key), definition, props)


# ============================================================================
# COMMIT RECORD
# ============================================================================


@dataclass(frozen=True)
class CommitInfo:
    """What the most recent dispatch or update did."""

    event: str
    changes: Tuple[StateChange, ...]
    rerendered: bool
    recomputed: Tuple[Recompute, ...]


@dataclass(frozen=True)
class AbsentInOutput:
    """A render produced output containing the ABSENT marker."""

    component: str
    output: Any

    def describe(self) -> str:
        return f"{self.component} rendered an absent prop: {self.output!r}"


# ============================================================================
# INSTANCE
# ============================================================================


class ComponentInstance:
    """One mounted component, owning its state cells and memos."""

    def __init__(
        self,
        definition: ComponentDefinition,
        props: Optional[Mapping[str, Any]] = None,
        config: Optional[HarnessConfig] = None,
        *,
        key: Optional[str] = None,
        parent: Optional["ComponentInstance"] = None,
    ):
        self.definition = definition
        self.name = definition.name if key is None else f"{definition.name}[{key}]"
        self.key = key
        self.config = config or (parent.config if parent else DEFAULT_CONFIG)
        self._parent = parent
        self._root: ComponentInstance = parent._root if parent else self
        if parent is None:
            # Shared by the whole tree: one queue, one notice list
            self._queue = CommitQueue()
            self.notices: List[Any] = []
            self._recomputed: List[Recompute] = []
            self._initial_props = dict(props or {})

        self._build()
        self.props = self._make_props(props)
        self.children: Dict[str, ComponentInstance] = {}
        self._rendered_keys: Optional[set] = None
        self._event = MOUNT_EVENT
        self.output: Any = None
        self.render_count = 0
        self.mounted = True
        self.last_commit: Optional[CommitInfo] = None
        self._dirty = False

        if parent is None:
            self._commit_render(MOUNT_EVENT, ())

    # ------------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------------

    def update(self, props: Optional[Mapping[str, Any]] = None) -> Any:
        """Replace the root's props bag (declared names stay fixed) and re-render."""
        self._check_mounted()
        if self._parent is not None:
            raise HooktraceError(
                f"{self.name}: a child's props are set by its parent's render; "
                f"update the root instead"
            )
        self._dirty = True
        self.props = self._make_props(props, self.props)
        self._commit_render(PROPS_EVENT, ())
        return self.output

    def dispatch(self, event_name: str, *args: Any) -> Any:
        """Invoke a declared handler, commit its transitions and re-render."""
        root = self._root
        target = self._resolve(event_name)
        bound = target.callback(event_name.rsplit("/", 1)[-1])
        root._dirty = True

        with root._queue:
            try:
                bound(*args)
            except HooktraceError:
                raise
            except Exception as exc:
                raise ThrownDuringDispatch(
                    event_name, "handler", exc, target.name
                ) from exc

        try:
            changes = tuple(root._queue.flush())
        except HooktraceError:
            raise
        except Exception as exc:
            raise ThrownDuringDispatch(event_name, "commit", exc, target.name) from exc

        if self.config.bailout_on_equal_state and all(
            change.is_identity for change in changes
        ):
            logging.debug(f"{event_name}: no effective state change, skipping render")
            root.last_commit = CommitInfo(event_name, changes, False, ())
            return root.output

        root._commit_render(event_name, changes)
        return root.output

    def reset(self) -> Any:
        """
        Return the tree to its declared initial state and re-render it.

        Children are unmounted, cells and memos are rebuilt from the
        definition, the props given at mount are restored and notices are
        cleared. Only the root of a tree can be reset.
        """
        if self._parent is not None:
            raise HooktraceError(f"{self.name}: only the root of a tree can be reset")
        for child in self.children.values():
            child.unmount()
        self.children.clear()
        self._queue = CommitQueue()
        self.notices.clear()
        self._build()
        self.props = self._make_props(self._initial_props)
        self.output = None
        self.render_count = 0
        self.mounted = True
        self._dirty = False
        self._commit_render(MOUNT_EVENT, ())
        logging.debug(f"{self.name}: reset to initial state")
        return self.output

    def callback(self, name: str) -> Callable[..., Any]:
        """The handler ``name`` as bound by the most recent render."""
        memo = self.memos.get(name)
        if memo is None or memo.kind is not MemoKind.CALLBACK:
            raise UnknownEventError(name, self.definition.handler_names)
        return memo.output

    @property
    def root(self) -> "ComponentInstance":
        return self._root

    @property
    def dirty(self) -> bool:
        """True once a dispatch or props update ran since mount or the last reset."""
        return self._root._dirty

    @property
    def path(self) -> str:
        """Key path from the root, as used in dispatch names ("" for the root)."""
        keys = []
        node = self
        while node._parent is not None:
            keys.append(node.key)
            node = node._parent
        return "/".join(reversed(keys))

    def state_value(self, name: str) -> Any:
        return self.cells[name].read()

    def unmount(self) -> None:
        for child in self.children.values():
            child.unmount()
        self.children.clear()
        self.mounted = False

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    def _build(self) -> None:
        self.cells: Dict[str, StateCell] = {
            name: StateCell(
                f"{self.name}.{name}",
                initial,
                queue=self._root._queue,
                freeze_reads=self.config.freeze_reads,
            )
            for name, initial in self.definition.state.items()
        }
        self._setters = {name: cell.transition for name, cell in self.cells.items()}
        self.memos: Dict[str, Memo] = {
            decl.name: Memo(
                decl.fn, decl.deps, name=f"{self.name}.{decl.name}", kind=decl.kind
            )
            for decl in self.definition.derived
        }

    def _make_props(
        self,
        bag: Optional[Mapping[str, Any]],
        previous: Optional[PropsView] = None,
    ) -> PropsView:
        notices = self._root.notices if self.config.record_prop_notices else None
        return PropsView(self.name, self.definition.props, bag, notices, previous)

    def _check_mounted(self) -> None:
        if not self.mounted:
            raise HooktraceError(f"{self.name} is unmounted")

    def _setter(self, name: str) -> Callable[[Any], None]:
        try:
            return self._setters[name]
        except KeyError:
            raise DefinitionError(f"{self.name} has no state named '{name}'") from None

    def _resolve(self, event_name: str) -> "ComponentInstance":
        self._check_mounted()
        node = self
        for key in event_name.split("/")[:-1]:
            child = node.children.get(key)
            if child is None:
                raise UnknownEventError(event_name, [f"{k}/" for k in node.children])
            node = child
        return node

    def _commit_render(self, event_name: str, changes: Tuple[StateChange, ...]):
        self._recomputed = []
        self._render(event_name)
        recomputed = tuple(self._recomputed)
        self.last_commit = CommitInfo(event_name, changes, True, recomputed)

    def _render(self, event_name: str) -> Any:
        root = self._root
        self._event = event_name
        scope = RenderScope(self, {name: c.read() for name, c in self.cells.items()})
        self._rendered_keys = set()
        try:
            with root._queue.rendering():
                for decl in self.definition.order:
                    scope._bind(decl.name, self._evaluate(decl, scope))
                try:
                    output = self.definition.render(scope)
                except HooktraceError:
                    raise
                except Exception as exc:
                    raise ThrownDuringDispatch(
                        event_name, "render", exc, self.name
                    ) from exc
            rendered = self._rendered_keys
        finally:
            self._rendered_keys = None

        for key in [k for k in self.children if k not in rendered]:
            logging.debug(f"{self.name}: unmounting child '{key}'")
            self.children.pop(key).unmount()

        self.output = output
        self.render_count += 1
        if contains_absent(output):
            leak = AbsentInOutput(self.name, output)
            logging.warning(leak.describe())
            root.notices.append(leak)
        return output

    def _evaluate(self, decl: DerivedDecl, scope: RenderScope) -> Any:
        memo = self.memos[decl.name]
        deps = None if decl.deps is None else [scope[name] for name in decl.deps]
        try:
            value = memo.evaluate(compute=functools.partial(decl.fn, scope), deps=deps)
        except HooktraceError:
            raise
        except Exception as exc:
            raise ThrownDuringDispatch(
                self._event, f"memo {decl.name}", exc, self.name
            ) from exc
        if memo.last_recompute is not None:
            self._root._recomputed.append(memo.last_recompute)
        return value

    def _render_child(
        self, key: str, definition: ComponentDefinition, props: Mapping[str, Any]
    ) -> Any:
        if self._rendered_keys is None:
            raise HooktraceError(f"{self.name}: children render only inside render")
        if "/" in key or key in self._rendered_keys:
            raise DefinitionError(f"{self.name}: bad or duplicate child key {key!r}")
        self._rendered_keys.add(key)

        child = self.children.get(key)
        if child is not None and child.definition is not definition:
            child.unmount()
            child = None
        if child is None:
            child = ComponentInstance(definition, props, key=key, parent=self)
            self.children[key] = child
        else:
            child.props = child._make_props(props, child.props)
        return child._render(self._event)

    def __repr__(self) -> str:
        return f"ComponentInstance({self.name}, output={self.output!r})"


def mount(
    definition: ComponentDefinition,
    props: Optional[Mapping[str, Any]] = None,
    config: Optional[HarnessConfig] = None,
) -> ComponentInstance:
    """Construct and initially render a root instance of ``definition``."""
    return ComponentInstance(definition, props, config)
