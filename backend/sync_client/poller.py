"""
Polling cache that keeps board data in step with other users' changes.

Each key (a task listing URL) maps to one CacheEntry. Entries are refreshed
on a fixed interval, on window focus, on network reconnect and on demand
after a local mutation. Requests for a key that start within the dedupe
window share one in-flight fetch. Data already fetched stays visible while a
refresh runs and survives a failed refresh; the failure is exposed on the
entry's ``error`` instead.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger("kanban-sync.client.poller")

REFRESH_INTERVAL = float(os.getenv("SYNC_REFRESH_INTERVAL_MS", "3000")) / 1000
DEDUPE_INTERVAL = float(os.getenv("SYNC_DEDUPE_INTERVAL_MS", "2000")) / 1000

Fetcher = Callable[[str], Awaitable[Any]]
Listener = Callable[["CacheEntry"], None]


@dataclass
class CacheEntry:
    key: str
    data: Any = None
    error: Optional[BaseException] = None
    last_fetched: Optional[float] = None
    started_at: Optional[float] = None
    in_flight: Optional[asyncio.Future] = None
    generation: int = 0

    @property
    def is_validating(self) -> bool:
        return self.in_flight is not None and not self.in_flight.done()

    @property
    def is_loading(self) -> bool:
        return self.data is None and self.is_validating


class SyncCache:
    """Stale-while-revalidate cache keyed by request path"""

    def __init__(
        self,
        fetcher: Fetcher,
        refresh_interval: float = REFRESH_INTERVAL,
        dedupe_interval: float = DEDUPE_INTERVAL,
        fallback_data: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetcher = fetcher
        self.refresh_interval = refresh_interval
        self.dedupe_interval = dedupe_interval
        self.fallback_data = fallback_data
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._loops: Dict[str, asyncio.Task] = {}

    # --------------------------------------------------------
    # Reads
    # --------------------------------------------------------

    def entry(self, key: str) -> CacheEntry:
        if key not in self._entries:
            self._entries[key] = CacheEntry(key=key)
        return self._entries[key]

    def data(self, key: str) -> Any:
        """Latest good data, else the fallback, else an empty list"""
        entry = self.entry(key)
        if entry.data is not None:
            return entry.data
        if self.fallback_data is not None:
            return self.fallback_data
        return []

    def keys(self) -> List[str]:
        return sorted(set(self._listeners) | set(self._loops))

    # --------------------------------------------------------
    # Refresh
    # --------------------------------------------------------

    async def revalidate(self, key: str, force: bool = False) -> Any:
        """Refresh ``key`` unless a request for it started inside the dedupe window"""
        entry = self.entry(key)
        now = self._clock()
        recent = entry.started_at is not None and now - entry.started_at < self.dedupe_interval
        if recent and not force:
            if entry.is_validating:
                return await asyncio.shield(entry.in_flight)
            return entry.data

        entry.generation += 1
        entry.started_at = now
        entry.in_flight = asyncio.ensure_future(self._fetch(entry, entry.generation))
        return await asyncio.shield(entry.in_flight)

    async def _fetch(self, entry: CacheEntry, generation: int) -> Any:
        try:
            data = await self._fetcher(entry.key)
        except Exception as e:
            if generation == entry.generation:
                entry.error = e
                logger.warning(f"Refresh of {entry.key} failed, keeping cached data: {e}")
                self._notify(entry)
            return entry.data

        if generation != entry.generation:
            # A newer request for this key was started; its answer wins
            return entry.data

        entry.data = data
        entry.error = None
        entry.last_fetched = self._clock()
        self._notify(entry)
        return data

    async def mutate(self, key: str, data: Any = None, revalidate: bool = True) -> Any:
        """Optionally seed local data, then refresh out of cycle"""
        entry = self.entry(key)
        if data is not None:
            entry.data = data
            self._notify(entry)
        if not revalidate:
            return entry.data
        return await self.revalidate(key, force=True)

    async def on_focus(self) -> None:
        await self._revalidate_all()

    async def on_reconnect(self) -> None:
        await self._revalidate_all()

    async def _revalidate_all(self) -> None:
        await asyncio.gather(*(self.revalidate(key) for key in self.keys()))

    # --------------------------------------------------------
    # Subscriptions
    # --------------------------------------------------------

    def subscribe(self, key: str, listener: Listener) -> Callable[[], None]:
        self._listeners.setdefault(key, []).append(listener)

        def unsubscribe():
            listeners = self._listeners.get(key, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(key, None)

        return unsubscribe

    def _notify(self, entry: CacheEntry) -> None:
        for listener in list(self._listeners.get(entry.key, [])):
            try:
                listener(entry)
            except Exception:
                logger.exception(f"Listener for {entry.key} raised")

    # --------------------------------------------------------
    # Interval polling
    # --------------------------------------------------------

    def start(self, key: str) -> None:
        """Poll ``key`` every refresh_interval seconds; 0 disables polling"""
        if self.refresh_interval <= 0:
            return
        loop = self._loops.get(key)
        if loop is not None and not loop.done():
            return
        self._loops[key] = asyncio.create_task(self._poll(key))

    async def _poll(self, key: str) -> None:
        while True:
            await self.revalidate(key)
            await asyncio.sleep(self.refresh_interval)

    async def stop(self, key: Optional[str] = None) -> None:
        keys = [key] if key else list(self._loops)
        for k in keys:
            loop = self._loops.pop(k, None)
            if loop is None:
                continue
            loop.cancel()
            try:
                await loop
            except asyncio.CancelledError:
                pass
