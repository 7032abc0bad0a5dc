"""Per-scope schema cache.

Each scope maps to one published CacheEntry: the SchemaSet built for it and
the dependency token observed when the build started. A lookup is fresh when
the scope's current token equals the stored one; otherwise the set is rebuilt
under that scope's lock and the new entry replaces the old one in a single
assignment. Readers holding the old SchemaSet are unaffected.
"""

import itertools
import threading
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from scoped_schemas.events import EventSink, LoguruEventSink
from scoped_schemas.schema.errors import SchemaBuildError
from scoped_schemas.schema.index import SchemaSet


@dataclass(frozen=True)
class CacheEntry:
    """One published generation of a scope's schemas.

    Attributes:
        schema_set: The transformed, indexed schemas
        token: Dependency token the build was started with
        generation: Monotonic build number across the cache
        documents: Materialized documents for this generation, keyed by
            canonical location
    """

    schema_set: SchemaSet
    token: Hashable
    generation: int
    documents: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


class ScopeCache:
    """Lazily computed SchemaSets keyed by scope.

    Args:
        compute: Builds the published SchemaSet for a scope (build + transforms).
            May raise SchemaBuildError.
        token_provider: Returns the scope's current dependency token.
        events: Diagnostic sink.
    """

    def __init__(
        self,
        compute: Callable[[Any], SchemaSet],
        token_provider: Callable[[Any], Hashable],
        events: EventSink | None = None,
    ) -> None:
        self.compute = compute
        self.token_provider = token_provider
        self.events = events or LoguruEventSink()
        self._entries: dict[Any, CacheEntry] = {}
        self._locks: dict[Any, threading.Lock] = {}
        self._guard = threading.Lock()
        self._generations = itertools.count(1)

    def get(self, scope) -> SchemaSet:
        return self.get_entry(scope).schema_set

    def get_entry(self, scope) -> CacheEntry:
        """Return the scope's entry, rebuilding it first if missing or stale.

        Raises:
            SchemaBuildError: If the build fails and no earlier generation exists.
        """
        entry = self._entries.get(scope)
        if entry is not None and entry.token == self.token_provider(scope):
            return entry

        lock = self._lock_for(scope)

        if entry is not None:
            # Someone is already rebuilding; the stale set is still consistent
            if not lock.acquire(blocking=False):
                self.events.emit(
                    "cache.stale_served", {"scope": str(scope), "generation": entry.generation}
                )
                return entry
        else:
            lock.acquire()

        try:
            # Re-check once we hold the lock, another thread may have finished
            token = self.token_provider(scope)
            entry = self._entries.get(scope)
            if entry is not None and entry.token == token:
                return entry

            logger.info(f"Recomputing schemas for scope {scope}")
            try:
                schema_set = self.compute(scope)
            except SchemaBuildError as e:
                self.events.emit(
                    "cache.rebuild_failed",
                    {
                        "scope": str(scope),
                        "error": str(e),
                        "kept_generation": entry.generation if entry else None,
                    },
                )
                if entry is not None:
                    return entry
                raise

            new_entry = CacheEntry(
                schema_set=schema_set, token=token, generation=next(self._generations)
            )
            with self._guard:
                # The scope was dropped while building; hand the result to this
                # caller only
                if self._locks.get(scope) is not lock:
                    logger.debug(f"Scope {scope} dropped during rebuild, not publishing")
                    return new_entry
                self._entries[scope] = new_entry
            self.events.emit(
                "cache.rebuild",
                {
                    "scope": str(scope),
                    "generation": new_entry.generation,
                    "schemas": len(schema_set),
                },
            )
            return new_entry
        finally:
            lock.release()

    def peek(self, scope) -> CacheEntry | None:
        """Return the published entry without checking freshness."""
        return self._entries.get(scope)

    def invalidate(self, scope) -> None:
        """Forget the scope's entry; the next get rebuilds it."""
        self._entries.pop(scope, None)

    def drop(self, scope) -> None:
        """Forget everything about a scope that no longer exists."""
        with self._guard:
            self._entries.pop(scope, None)
            self._locks.pop(scope, None)

    def clear(self) -> None:
        with self._guard:
            self._entries.clear()
            self._locks.clear()

    def cached_scopes(self) -> list:
        return list(self._entries)

    def _lock_for(self, scope) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(scope)
            if lock is None:
                lock = self._locks[scope] = threading.Lock()
            return lock
