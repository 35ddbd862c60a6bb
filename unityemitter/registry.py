"""In-process listener registry with capped buckets, once and suspension support."""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
import threading
from functools import partial
from typing import Any, Awaitable, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple, Union

from unityemitter.errors import EmitterTypeError
from unityemitter.listeners import Bucket, Callback, Chain, Listener
from unityemitter.options import EmitterOptions
from unityemitter.options import check_options as _check_options
from unityemitter.rejections import LoggingRejectionObserver, RejectionObserver

LOGGER = logging.getLogger(__name__)


def _require_name(name: object) -> None:
    if not isinstance(name, str):
        raise EmitterTypeError("name", "string")


def _require_callback(callback: object) -> None:
    if not callable(callback):
        raise EmitterTypeError("callback", "function")


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


def _resume(listener: Listener) -> None:
    listener.suspended = False
    LOGGER.debug("Listener %s on %r resumed", listener.id, listener.name)


class EventRegistry:
    """Publish/subscribe registry for named events.

    Listeners for one event live in a chain of buckets; a bucket holds at most
    ``options.limits.store`` listeners before a new one is opened. Dispatch is
    synchronous and follows bucket order, then registration order inside a
    bucket. Listeners returning an awaitable are not awaited: the result is
    scheduled on the running loop and the listener only counts as emitted once
    it completes successfully.

    The registry is not thread-safe. Suspension timers run on daemon
    ``threading.Timer`` threads.
    """

    def __init__(
        self,
        options: Union[EmitterOptions, Mapping[str, Any], None] = None,
        *,
        on_rejection: Optional[RejectionObserver] = None,
    ) -> None:
        self.options: EmitterOptions = _check_options(options)
        self._storage: Dict[str, Chain] = {}
        self._ids = itertools.count(1)
        self._pending: Set[asyncio.Future] = set()
        self._storage_warned = False
        self._observer: Optional[RejectionObserver] = None
        if self.options.rejections:
            self._observer = on_rejection or LoggingRejectionObserver(type(self).__name__)

    @staticmethod
    def check_options(options: Union[EmitterOptions, Mapping[str, Any], None] = None) -> EmitterOptions:
        return _check_options(options)

    def __iter__(self) -> Iterator[Tuple[str, Chain]]:
        yield from self._storage.items()

    def __contains__(self, name: object) -> bool:
        return name in self._storage

    def __repr__(self) -> str:
        return f"{type(self).__name__}(events={len(self._storage)}, options={self.options!r})"

    def register(self, name: str, callback: Callback, *, once: bool = False) -> Listener:
        """Add ``callback`` to ``name`` and return its listener record.

        Registering a callback that already sits in the chain with the same
        ``once`` flag refreshes that record instead of adding a second one.
        """

        _require_name(name)
        _require_callback(callback)

        self._check_storage_limit()
        chain = self._storage.get(name)
        if chain is None:
            chain = [Bucket(self.options.limits.store)]
            self._storage[name] = chain

        for bucket in chain:
            existing = bucket.find(callback, once)
            if existing is not None:
                existing.refresh()
                LOGGER.debug("Refreshed listener %s on %r", existing.id, name)
                return existing

        listener = Listener(id=next(self._ids), name=name, callback=callback, once=once)
        last = chain[-1]
        last.add(listener)

        limits = self.options.limits
        if not limits.ignore and last.full:
            chain.append(Bucket(limits.store))
        LOGGER.debug("Registered listener %s on %r (once=%s, buckets=%d)", listener.id, name, once, len(chain))
        return listener

    def on(self, name: str, callback: Callback) -> "EventRegistry":
        self.register(name, callback)
        return self

    def once(self, name: str, callback: Callback) -> "EventRegistry":
        """Like :meth:`on`, but the listener fires at most one time."""

        self.register(name, callback, once=True)
        return self

    def add_listeners(self, name: str, callbacks: Iterable[Callback]) -> "EventRegistry":
        _require_name(name)
        for callback in callbacks:
            self.on(name, callback)
        return self

    def off(self, name: str, callback: Optional[Callback] = None, *, listener_id: Optional[int] = None) -> bool:
        """Remove listeners from ``name``; always returns ``True``.

        With ``listener_id`` only that listener is removed. Otherwise, when
        ``callback`` is registered on ``name``, every listener sharing its
        event name is removed, which can take out listeners other than
        ``callback`` itself.
        """

        _require_name(name)
        if listener_id is None or callback is not None:
            _require_callback(callback)

        chain = self._storage.get(name)
        if not chain:
            return True

        metadata: Optional[Listener] = None
        if listener_id is None:
            metadata = self._metadata_of(chain, callback)
            if metadata is None:
                return True

        removed = 0
        for bucket in chain:
            for listener in bucket:
                if metadata is None:
                    hit = listener.id == listener_id
                else:
                    hit = listener.name == metadata.name
                if hit:
                    bucket.discard(listener)
                    removed += 1
        LOGGER.debug("Removed %d listener(s) from %r", removed, name)
        return True

    def remove_listeners(self, name: str, callbacks: Iterable[Any]) -> "EventRegistry":
        """Call :meth:`off` for every callable entry; other entries are skipped."""

        _require_name(name)
        for callback in callbacks:
            if not callable(callback):
                continue
            self.off(name, callback)
        return self

    def emit(self, name: str, *args: Any, **kwargs: Any) -> Optional[bool]:
        """Invoke every active listener of ``name`` with the given arguments.

        Returns ``None`` when ``name`` was never registered and ``True``
        otherwise, even if no listener ran. Exceptions raised by a listener
        propagate to the caller.
        """

        _require_name(name)
        chain = self._storage.get(name)
        if chain is None:
            return None

        for bucket in list(chain):
            for listener in bucket:
                if listener.suspended:
                    continue
                if listener.once and listener.emitted:
                    bucket.discard(listener)
                    continue

                result = listener.callback(*args, **kwargs)
                if inspect.isawaitable(result):
                    self._settle(name, listener, result)
                else:
                    listener.emitted = True
        return True

    def emitted(self, name: str) -> bool:
        """Emitted flag of the last listener visited for ``name``.

        When listeners disagree the one iterated last wins.
        """

        _require_name(name)
        state = False
        for bucket in self._storage.get(name, ()):
            for listener in bucket:
                state = listener.emitted
        return state

    def _settle(self, name: str, listener: Listener, result: Awaitable[Any]) -> None:
        if asyncio.isfuture(result):
            result.add_done_callback(partial(self._on_settled, name, listener))
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._settle_inline(name, listener, result)
            return
        task = loop.create_task(_await(result))
        self._pending.add(task)
        task.add_done_callback(partial(self._on_settled, name, listener))

    def _settle_inline(self, name: str, listener: Listener, result: Awaitable[Any]) -> None:
        # no loop to defer to: drive the awaitable here
        try:
            asyncio.run(_await(result))
        except Exception as exc:
            if self._observer is None:
                LOGGER.error("Listener %s for %r failed", listener.id, name, exc_info=True)
            else:
                self._observer(exc, {"event": name, "listener": listener})
            return
        listener.emitted = True

    def _on_settled(self, name: str, listener: Listener, future: asyncio.Future) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            listener.emitted = True
            return

        context = {
            "message": f"Listener {listener.id} for {name!r} failed",
            "exception": error,
            "future": future,
            "event": name,
            "listener": listener,
        }
        if self._observer is not None:
            self._observer(error, context)
        else:
            future.get_loop().call_exception_handler(context)

    def has_listener(
        self,
        name: str,
        callback: Optional[Callback] = None,
        *,
        listener_id: Optional[int] = None,
    ) -> bool:
        _require_name(name)
        if callback is not None:
            _require_callback(callback)

        chain = self._storage.get(name)
        if chain is None:
            return False
        if listener_id is not None:
            return any(listener.id == listener_id for bucket in chain for listener in bucket)
        if callback is None:
            return any(len(bucket) for bucket in chain)

        metadata = self._metadata_of(chain, callback)
        if metadata is None:
            return False
        return any(listener.name == metadata.name for bucket in chain for listener in bucket)

    def get_listener(self, name: Optional[str] = None) -> Union[Chain, List[Listener]]:
        """Return the bucket chain of ``name``, or every listener when there is none.

        The chain is the live internal list, not a copy.
        """

        if name is not None:
            _require_name(name)
            chain = self._storage.get(name)
            if chain:
                return chain
        return [listener for chain in self._storage.values() for bucket in chain for listener in bucket]

    def _metadata_of(self, chain: Chain, callback: Callback) -> Optional[Listener]:
        for bucket in chain:
            for listener in bucket:
                if listener.callback is callback:
                    return listener
        return None

    def _check_storage_limit(self) -> None:
        limits = self.options.limits
        if limits.ignore or self._storage_warned:
            return
        current = len(self._storage)
        if current > limits.storage:
            self._storage_warned = True
            LOGGER.warning(
                "Possible listener leak detected: %d event names registered, limit is %s",
                current,
                limits.storage,
                extra={"current": current, "limit": limits.storage},
            )

    def suspend_listener(self, name: str, duration_ms: float) -> None:
        """Skip the listeners of ``name`` for ``duration_ms`` milliseconds.

        Every call schedules its own resume timer; overlapping suspensions are
        not merged, so an earlier timer can end a later suspension early.
        """

        _require_name(name)
        if isinstance(duration_ms, bool) or not isinstance(duration_ms, (int, float)):
            raise EmitterTypeError("time", "number")

        for bucket in self._storage.get(name, ()):
            for listener in bucket:
                listener.suspended = True
                self._schedule_resume(listener, duration_ms / 1000.0)
                LOGGER.debug("Listener %s on %r suspended for %sms", listener.id, name, duration_ms)

    def suspend_listeners(self, entries: Iterable[Mapping[str, Any]]) -> "EventRegistry":
        for entry in entries:
            self.suspend_listener(entry["name"], entry["time"])
        return self

    def _schedule_resume(self, listener: Listener, delay: float) -> None:
        # thread timer so the resume outlives any event loop
        timer = threading.Timer(delay, _resume, args=(listener,))
        timer.daemon = True
        timer.start()


UnityEmitter = EventRegistry


__all__ = ["EventRegistry", "UnityEmitter"]
