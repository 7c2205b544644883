"""
Query Cache

Client-side cache of last-known query results, keyed by tuples:

    ("expenses", owner, date)              -> list[Expense], newest first
    ("dayTotal", owner, date)              -> int
    ("expenses", "recent", owner, limit)   -> list[Expense]

DESIGN DECISION: The cache is an explicit object passed to whoever needs
it. There is no module-level state, so tests and sessions never share
entries.

Values are replaced, never mutated in place. A snapshot can therefore
hold plain references and still restore the exact prior state.

Fetches in flight are tracked by a per-key generation. cancel() and
invalidate() bump the generation, and a fetch that finishes under an
older generation returns its result to its caller without storing it.
That is what keeps a slow refetch from overwriting an optimistic entry.
"""

from typing import Any, Awaitable, Callable, Hashable, Iterable, Optional

import structlog

from expense_tracker.utils.dates import DateLike, format_date

logger = structlog.get_logger(__name__)

CacheKey = tuple[Hashable, ...]

EXPENSES = "expenses"
DAY_TOTAL = "dayTotal"
RECENT = "recent"


def expenses_key(owner: str, date: DateLike) -> CacheKey:
    return (EXPENSES, owner, format_date(date))


def day_total_key(owner: str, date: DateLike) -> CacheKey:
    return (DAY_TOTAL, owner, format_date(date))


def recent_expenses_key(owner: str, limit: int) -> CacheKey:
    return (EXPENSES, RECENT, owner, limit)


def recent_expenses_prefix(owner: str) -> CacheKey:
    """Matches the recent lists of an owner at every limit."""
    return (EXPENSES, RECENT, owner)


def owner_prefixes(owner: str) -> list[CacheKey]:
    """Prefixes covering every expense list and day total of one owner."""
    return [(EXPENSES, owner), recent_expenses_prefix(owner), (DAY_TOTAL, owner)]


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


MISSING = _Missing()


class CacheSnapshot:
    """
    Prior values of a set of keys; MISSING marks keys that were absent.

    generations records each key's generation when the snapshot was
    taken. If any of them has moved on, some other mutation cancelled or
    invalidated the key since and the snapshot no longer describes a
    state worth going back to.
    """

    def __init__(
        self,
        entries: dict[CacheKey, Any],
        generations: Optional[dict[CacheKey, int]] = None,
    ):
        self.entries = entries
        self.generations = generations or {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self.entries

    def __repr__(self) -> str:
        return f"CacheSnapshot({self.entries!r})"


def _has_prefix(key: CacheKey, prefix: CacheKey) -> bool:
    return key[:len(prefix)] == prefix


class QueryCache:
    """Keyed store of last-known query results."""

    def __init__(self):
        self._data: dict[CacheKey, Any] = {}
        self._generations: dict[CacheKey, int] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._data

    def keys(self) -> list[CacheKey]:
        return list(self._data)

    def get_data(self, key: CacheKey, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set_data(self, key: CacheKey, value: Any) -> None:
        self._data[key] = value

    def update_data(self, key: CacheKey, updater: Callable[[Any], Any]) -> Any:
        """Replace a value with updater(current); current is None if absent."""
        value = updater(self._data.get(key))
        self._data[key] = value
        return value

    async def fetch(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """
        Return the cached value, or load, store and return it.

        The loaded value is not stored if the key was cancelled or
        invalidated while the load was in flight.
        """
        if key in self._data:
            return self._data[key]

        generation = self._generations.setdefault(key, 0)
        value = await loader()

        if self._generations.get(key, 0) == generation:
            self._data[key] = value
        else:
            logger.debug("stale_fetch_discarded", key=key)
        return value

    def cancel(self, key: CacheKey) -> None:
        """Discard the results of fetches currently in flight for key."""
        self._generations[key] = self._generations.get(key, 0) + 1

    def invalidate(self, prefix: CacheKey) -> int:
        """
        Drop every entry whose key starts with prefix.

        In-flight fetches under the prefix are cancelled too, so the next
        read goes back to storage.

        Returns:
            Number of entries dropped
        """
        for key in [k for k in self._generations if _has_prefix(k, prefix)]:
            self.cancel(key)

        dropped = [k for k in self._data if _has_prefix(k, prefix)]
        for key in dropped:
            del self._data[key]
        return len(dropped)

    def snapshot(self, keys: Iterable[CacheKey]) -> CacheSnapshot:
        keys = list(keys)
        return CacheSnapshot(
            {key: self._data.get(key, MISSING) for key in keys},
            {key: self._generations.get(key, 0) for key in keys},
        )

    def is_current(self, snapshot: CacheSnapshot) -> bool:
        """True if no key of the snapshot was cancelled or invalidated since."""
        return all(
            self._generations.get(key, 0) == generation
            for key, generation in snapshot.generations.items()
        )

    def restore(self, snapshot: CacheSnapshot) -> None:
        """Put every snapshotted key back exactly as it was."""
        for key, value in snapshot.entries.items():
            if value is MISSING:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def clear(self) -> None:
        for key in list(self._generations):
            self.cancel(key)
        self._data.clear()


class OptimisticUpdate:
    """
    Three-phase protocol around a remote mutation.

        snapshot = update.begin(keys)      # cancel fetches, remember state
        ... mutate the cache, await the remote write ...
        update.commit(prefixes)            # success: refetch from storage
        update.rollback(snapshot, keys)    # failure: exact prior state

    Mutations against the same keys are not serialized. A rollback whose
    snapshot was overtaken by another mutation would resurrect that
    mutation's intermediate state, so it invalidates instead and lets the
    next read converge on storage.
    """

    def __init__(self, cache: QueryCache):
        self._cache = cache

    def begin(self, keys: Iterable[CacheKey]) -> CacheSnapshot:
        keys = list(keys)
        for key in keys:
            self._cache.cancel(key)
        return self._cache.snapshot(keys)

    def commit(self, keys_to_invalidate: Iterable[CacheKey]) -> None:
        for prefix in keys_to_invalidate:
            self._cache.invalidate(prefix)

    def rollback(
        self,
        snapshot: Optional[CacheSnapshot],
        keys_to_invalidate: Iterable[CacheKey] = (),
    ) -> bool:
        """
        Undo an optimistic change.

        Returns:
            True if the snapshot was restored, False if it was stale and
            keys_to_invalidate were dropped instead
        """
        if snapshot is None:
            return False
        if self._cache.is_current(snapshot):
            self._cache.restore(snapshot)
            return True

        logger.debug("stale_snapshot_invalidated", keys=list(snapshot.entries))
        self.commit(keys_to_invalidate)
        return False
