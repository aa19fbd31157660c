"""
Memoization scope for Read results, bounded to one invocation context.

An invocation context is one external request/trigger and everything it
orchestrates. The active scope is tracked in a ContextVar, so every thread and
every asyncio task started outside a context sees no scope, while nested
dispatches inside a context share the same one.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import threading
import uuid
from contextlib import contextmanager, nullcontext
from contextvars import ContextVar
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, Hashable, Iterator, Optional, Tuple, Union

from loguru import logger

from opdispatch.core.errors import LifecycleError

Compute = Callable[[], Union[Any, Awaitable[Any]]]


class Entry:
    """A stored result plus whether it is a private copy."""

    __slots__ = ("value", "copied")

    def __init__(self, value: Any, copied: bool):
        self.value = value
        self.copied = copied


class MemoScope:
    """
    ``get(key, compute)`` caches the first successful result per key.

    Failures are never stored. With ``copy_results`` (default) values are
    deep-copied on store and on every hit, so a caller mutating what it got
    back cannot change what later hits return. Values that cannot be
    deep-copied are shared as-is.

    The bus uses the finer steps instead of ``get``: ``lookup`` on the way in,
    ``snapshot`` right after the execution step and ``commit`` only once the
    whole middleware chain has succeeded.
    """

    def __init__(self, copy_results: bool = True):
        self.copy_results = copy_results
        self.invocation_id = uuid.uuid4().hex
        self._entries: Dict[Hashable, Entry] = {}
        self._active = False
        self._ended = False
        self.hits = 0
        self.misses = 0

    # ------------------ lifecycle hooks ------------------
    def begin(self) -> "MemoScope":
        if self._active or self._ended:
            raise LifecycleError(message="memo scope can only begin once")
        self._active = True
        return self

    def end(self) -> None:
        self._entries.clear()
        self._active = False
        self._ended = True
        logger.debug(f"memo scope ended (hits={self.hits}, misses={self.misses})")

    @property
    def active(self) -> bool:
        return self._active

    # ------------------ access ------------------
    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def claim(self, key: Hashable) -> AsyncContextManager[Any]:
        """Held while a key is looked up, computed and committed. No-op here."""
        return nullcontext()

    def lookup(self, key: Hashable) -> Tuple[bool, Any]:
        self._ensure_active()
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return False, None
        self.hits += 1
        return True, self._copy(entry.value) if entry.copied else entry.value

    def snapshot(self, value: Any) -> Entry:
        """Freeze a freshly computed value for a later ``commit``."""
        if not self.copy_results:
            return Entry(value, copied=False)
        copied = self._copy(value)
        return Entry(copied, copied=copied is not value)

    def commit(self, key: Hashable, entry: Entry) -> None:
        self._ensure_active()
        self._entries[key] = entry

    async def get(self, key: Hashable, compute: Compute) -> Any:
        async with self.claim(key):
            hit, value = self.lookup(key)
            if hit:
                return value
            value = await _call(compute)
            self.commit(key, self.snapshot(value))
            return value

    def _copy(self, value: Any) -> Any:
        try:
            return copy.deepcopy(value)
        except (TypeError, copy.Error) as exc:
            logger.debug(f"memoized {type(value).__name__} is shared uncopied: {exc}")
            return value

    def _ensure_active(self) -> None:
        if not self._active:
            raise LifecycleError(message="memo scope used outside its invocation context")


class SharedMemoScope(MemoScope):
    """
    Scope deliberately shared by concurrent branches of one fan-out.

    A lock per key makes concurrent branches compute each key once; the others
    wait and receive the committed result.
    """

    def __init__(self, copy_results: bool = True):
        super().__init__(copy_results=copy_results)
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._locks_guard = threading.Lock()

    def claim(self, key: Hashable) -> AsyncContextManager[Any]:
        self._ensure_active()
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = asyncio.Lock()
            return lock

    def end(self) -> None:
        super().end()
        self._locks.clear()


async def _call(compute: Compute) -> Any:
    value = compute()
    if inspect.isawaitable(value):
        value = await value
    return value


_current: ContextVar[Optional[MemoScope]] = ContextVar("opdispatch_memo_scope", default=None)


def current_scope() -> Optional[MemoScope]:
    return _current.get()


@contextmanager
def invocation_context(scope: Optional[MemoScope] = None) -> Iterator[MemoScope]:
    """
    Open an invocation context with a fresh (or the given, unstarted) scope.

    The scope is discarded when the block exits, on success or failure.
    """
    scope = (scope if scope is not None else MemoScope()).begin()
    token = _current.set(scope)
    try:
        yield scope
    finally:
        _current.reset(token)
        scope.end()


@contextmanager
def ensure_invocation_context(copy_results: bool = True) -> Iterator[MemoScope]:
    """Reuse the active scope, or open one for the duration of the block."""
    scope = _current.get()
    if scope is not None and scope.active:
        yield scope
        return
    with invocation_context(MemoScope(copy_results=copy_results)) as fresh:
        yield fresh
