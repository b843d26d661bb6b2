"""Push-invalidate / ordered-recompute signal graph.

``Signal`` nodes hold inputs, ``Computed`` nodes derive values from explicit
upstream nodes. Setting a signal marks every downstream node dirty and asks
the ``Scheduler`` to flush; the scheduler recomputes dirty nodes in rank
(topological) order so no node ever reads a partially updated upstream.
Invalidations raised while a flush is running are coalesced into one
follow-up pass instead of being queued one by one. Listeners are called only
once the graph has settled, so a listener reading any other node sees values
from the same cycle.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Callable, Generic, Iterator, Literal, Sequence, TypeVar


LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
SchedulerState = Literal["idle", "recomputing"]
NodeState = Literal["clean", "dirty"]
Listener = Callable[[Any], None]


class Scheduler:
    def __init__(self) -> None:
        self._state: SchedulerState = "idle"
        self._batch_depth = 0
        self._dirty: dict[int, "Computed[Any]"] = {}
        self._changed: dict[int, "_Node[Any]"] = {}
        self._passes = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def passes(self) -> int:
        """Number of recompute passes run so far."""
        return self._passes

    @property
    def has_pending(self) -> bool:
        return bool(self._dirty or self._changed)

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Defer flushing until the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
        if self._batch_depth == 0:
            self.flush()

    def invalidate(self, node: "_Node") -> None:
        stack = list(node._dependents)
        while stack:
            child = stack.pop()
            if id(child) in self._dirty:
                continue
            child._state = "dirty"
            self._dirty[id(child)] = child
            stack.extend(child._dependents)
        if self._batch_depth == 0:
            self.flush()

    def changed(self, node: "_Node[Any]") -> None:
        """Queue ``node``'s listeners for the end of the running (or next) flush."""
        self._changed[id(node)] = node

    def schedule(self, node: "Computed[Any]") -> None:
        node._state = "dirty"
        self._dirty[id(node)] = node
        if self._batch_depth == 0:
            self.flush()

    def flush(self) -> None:
        if self._state == "recomputing":
            # The running flush loops until nothing is dirty or unpublished.
            return
        if not self._dirty and not self._changed:
            return
        self._state = "recomputing"
        pending: list[Computed[Any]] = []
        try:
            while self._dirty or self._changed:
                while self._dirty:
                    pending = sorted(self._dirty.values(), key=lambda n: (n.rank, n._serial))
                    self._dirty.clear()
                    self._passes += 1
                    for node in pending:
                        # Re-dirtied mid-pass: recompute in the follow-up pass, after its upstream.
                        if node._state == "dirty" and id(node) not in self._dirty:
                            node._recompute()
                pending = []
                # Sets made by listeners dirty the graph again and loop back.
                changed = list(self._changed.values())
                self._changed.clear()
                for node in changed:
                    node._emit()
        except BaseException:
            for node in [*pending, *self._dirty.values()]:
                node._state = "clean"
            self._dirty.clear()
            self._changed.clear()
            raise
        finally:
            self._state = "idle"


class _Node(Generic[T]):
    _serial_counter = 0

    def __init__(self, scheduler: Scheduler, name: str) -> None:
        self.scheduler = scheduler
        self.name = name
        self._dependents: list[Computed[Any]] = []
        self._listeners: list[Listener] = []
        self._value: T | None = None
        self._version = 0
        _Node._serial_counter += 1
        self._serial = _Node._serial_counter

    rank = 0

    @property
    def version(self) -> int:
        return self._version

    def get(self) -> T:
        return self._value  # type: ignore[return-value]

    @property
    def value(self) -> T:
        return self.get()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(value)`` after each change; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, version={self._version})"


class Signal(_Node[T]):
    """Mutable input node."""

    def __init__(
        self,
        value: T,
        *,
        scheduler: Scheduler,
        name: str = "",
        equals: Callable[[T, T], bool] | None = None,
    ) -> None:
        super().__init__(scheduler, name)
        self._value = value
        self._equals = equals

    def set(self, value: T) -> None:
        if self._equals is not None and self._equals(self._value, value):  # type: ignore[arg-type]
            return
        self._value = value
        self._version += 1
        self.scheduler.changed(self)
        self.scheduler.invalidate(self)


class Computed(_Node[T]):
    """Derived node; ``fn`` receives the current values of ``deps`` in order."""

    def __init__(
        self,
        fn: Callable[..., T],
        deps: Sequence[_Node[Any]],
        *,
        scheduler: Scheduler,
        name: str = "",
    ) -> None:
        super().__init__(scheduler, name)
        if not deps:
            raise ValueError("computed node needs at least one dependency")
        self._fn = fn
        self._deps = tuple(deps)
        self._state: NodeState = "dirty"
        self.rank = 1 + max(dep.rank for dep in self._deps)
        for dep in self._deps:
            dep._dependents.append(self)
        scheduler.schedule(self)

    @property
    def state(self) -> NodeState:
        return self._state

    def _recompute(self) -> None:
        try:
            value = self._fn(*(dep.get() for dep in self._deps))
        except Exception:
            # Keep the last good value; the scheduler aborts the pass.
            self._state = "clean"
            LOGGER.exception("recompute of %s failed; keeping revision %d", self.name or "node", self._version)
            raise
        self._value = value
        self._version += 1
        self._state = "clean"
        self.scheduler.changed(self)
