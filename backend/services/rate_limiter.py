#  Voice Tutor - Rate Limiter
#
#  Fixed-window request counters per (client key, operation class).
#  Storage and stale-entry sweeping are injectable so tests can drive a fake
#  clock and force deterministic sweeps.
#
#  Depends on: backend/models/enums.py
#  Used by:    container.py, rate_limit.py, app.py

import asyncio
import itertools
import logging
import math
import random
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Mapping

from backend.models.enums import OperationClass, SweepStrategy

logger = logging.getLogger("tutor.rate_limit")

StoreKey = tuple[str, str]


@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window_seconds: float


@dataclass(frozen=True)
class RateLimitEntry:
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None = None


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class RateLimitStore(ABC):
    """Entry storage for the limiter.

    lock(key) must serialise callers on the same key. Callers holding it do
    a get/set read-modify-write; nothing else in the store may block on it.
    """

    @abstractmethod
    def get(self, key: StoreKey) -> RateLimitEntry | None: ...

    @abstractmethod
    def set(self, key: StoreKey, entry: RateLimitEntry) -> None: ...

    @abstractmethod
    def delete(self, key: StoreKey) -> None: ...

    @abstractmethod
    def sweep(self, now: float) -> int:
        """Delete every entry whose window has passed. Returns the count removed."""

    @abstractmethod
    def lock(self, key: StoreKey): ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def __len__(self) -> int: ...


class InMemoryRateLimitStore(RateLimitStore):
    """Process-local store. Restarting the process forgets every counter.

    Per-key serialisation uses a fixed pool of striped locks: keys hash onto
    one of `stripes` locks, so memory stays bounded no matter how many
    clients are seen, and unrelated keys only contend on a hash collision.
    The map lock guards the dict itself and is never held across a
    read-modify-write.
    """

    def __init__(self, stripes: int = 64):
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._entries: dict[StoreKey, RateLimitEntry] = {}
        self._map_lock = threading.Lock()
        self._stripes = [threading.Lock() for _ in range(stripes)]

    def get(self, key: StoreKey) -> RateLimitEntry | None:
        with self._map_lock:
            return self._entries.get(key)

    def set(self, key: StoreKey, entry: RateLimitEntry) -> None:
        with self._map_lock:
            self._entries[key] = entry

    def delete(self, key: StoreKey) -> None:
        with self._map_lock:
            self._entries.pop(key, None)

    def sweep(self, now: float) -> int:
        with self._map_lock:
            stale = [k for k, e in self._entries.items() if e.window_reset_at <= now]
            for k in stale:
                del self._entries[k]
        return len(stale)

    @contextmanager
    def lock(self, key: StoreKey) -> Iterator[None]:
        stripe = self._stripes[hash(key) % len(self._stripes)]
        with stripe:
            yield

    def clear(self) -> None:
        with self._map_lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._map_lock:
            return len(self._entries)


# ---------------------------------------------------------------------------
# Sweep policies
# ---------------------------------------------------------------------------

class SweepPolicy(ABC):
    """Decides, on each admit, whether to sweep stale entries first."""

    @abstractmethod
    def should_sweep(self) -> bool: ...


class RandomSweepPolicy(SweepPolicy):
    """Sweep on a random fraction of admits (default ~1 in 10)."""

    def __init__(self, probability: float = 0.1, rng: Callable[[], float] = random.random):
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be within [0, 1], got {probability}")
        self._probability = probability
        self._rng = rng

    def should_sweep(self) -> bool:
        return self._rng() < self._probability


class EveryNthCallSweepPolicy(SweepPolicy):
    """Sweep on every n-th admit. Deterministic."""

    def __init__(self, n: int = 10):
        if n < 1:
            raise ValueError(f"n must be >= 1, got {n}")
        self._n = n
        self._calls = itertools.count(1)
        self._lock = threading.Lock()

    def should_sweep(self) -> bool:
        with self._lock:
            return next(self._calls) % self._n == 0


class NeverSweepPolicy(SweepPolicy):
    """Admit never sweeps; pair with RateLimiter.start_background()."""

    def should_sweep(self) -> bool:
        return False


def build_sweep_policy(config: Mapping | None = None) -> SweepPolicy:
    """Build a sweep policy from {"strategy": ..., "probability"|"every_n": ...}."""
    config = config or {}
    strategy = SweepStrategy(config.get("strategy", SweepStrategy.RANDOM.value))
    if strategy is SweepStrategy.EVERY_N:
        return EveryNthCallSweepPolicy(int(config.get("every_n", 10)))
    if strategy is SweepStrategy.INTERVAL:
        return NeverSweepPolicy()
    return RandomSweepPolicy(float(config.get("probability", 0.1)))


# ---------------------------------------------------------------------------
# Limiter
# ---------------------------------------------------------------------------

class RateLimiter:
    """Fixed-window admit/deny decisions per (client key, operation class).

    A burst of up to 2x the limit can straddle a window boundary (the tail of
    one window plus the head of the next). That is the accepted tradeoff of
    fixed windows and is kept on purpose.

    admit() never awaits, so it is safe to call from coroutines and worker
    threads alike; the per-key store lock makes the count check and the
    increment one atomic step.
    """

    def __init__(
        self,
        policies: Mapping[OperationClass, RateLimitPolicy],
        store: RateLimitStore | None = None,
        sweep_policy: SweepPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._policies = {OperationClass(k): v for k, v in policies.items()}
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._sweep_policy = sweep_policy or RandomSweepPolicy()
        self._clock = clock
        self._task: asyncio.Task | None = None

    @classmethod
    def from_config(
        cls,
        policies: Mapping[str, Mapping],
        sweep: Mapping | None = None,
        store: RateLimitStore | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "RateLimiter":
        """Build from the config table {operation_class: {limit, window_seconds}}."""
        return cls(
            policies={
                OperationClass(name): RateLimitPolicy(
                    limit=int(p["limit"]), window_seconds=float(p["window_seconds"])
                )
                for name, p in policies.items()
            },
            store=store,
            sweep_policy=build_sweep_policy(sweep),
            clock=clock,
        )

    @property
    def store(self) -> RateLimitStore:
        return self._store

    def policy_for(self, operation_class: OperationClass | str) -> RateLimitPolicy:
        op = OperationClass(operation_class)
        policy = self._policies.get(op) or self._policies.get(OperationClass.DEFAULT)
        if policy is None:
            raise ValueError(f"No rate-limit policy for '{op.value}' and no default policy")
        return policy

    def admit(self, client_key: str, operation_class: OperationClass | str) -> RateLimitDecision:
        """Count one request and decide whether it may proceed."""
        op = OperationClass(operation_class)
        policy = self.policy_for(op)

        if self._sweep_policy.should_sweep():
            self.sweep()

        key = (client_key, op.value)
        with self._store.lock(key):
            now = self._clock()
            entry = self._store.get(key)

            if entry is None or entry.window_reset_at <= now:
                entry = RateLimitEntry(count=1, window_reset_at=now + policy.window_seconds)
                self._store.set(key, entry)
                return RateLimitDecision(
                    allowed=True,
                    limit=policy.limit,
                    remaining=policy.limit - 1,
                    reset_at=entry.window_reset_at,
                )

            if entry.count < policy.limit:
                entry = RateLimitEntry(count=entry.count + 1, window_reset_at=entry.window_reset_at)
                self._store.set(key, entry)
                return RateLimitDecision(
                    allowed=True,
                    limit=policy.limit,
                    remaining=policy.limit - entry.count,
                    reset_at=entry.window_reset_at,
                )

            retry_after = max(1, math.ceil(entry.window_reset_at - now))

        logger.info(
            "Rate limit exceeded: key=%s class=%s retry_after=%ds",
            client_key, op.value, retry_after,
        )
        return RateLimitDecision(
            allowed=False,
            limit=policy.limit,
            remaining=0,
            reset_at=entry.window_reset_at,
            retry_after_seconds=retry_after,
        )

    def sweep(self) -> int:
        """Drop entries whose window has passed."""
        removed = self._store.sweep(self._clock())
        if removed:
            logger.debug("Swept %d stale rate-limit entr%s", removed, "y" if removed == 1 else "ies")
        return removed

    def reset(self):
        """Forget every counter."""
        self._store.clear()

    # ------------------------------------------------------------------
    # Background sweeping (strategy "interval")
    # ------------------------------------------------------------------

    async def start_background(self, interval: float):
        """Start sweeping stale entries every `interval` seconds."""
        if self._task is None:
            self._task = asyncio.create_task(self._sweep_loop(interval))

    async def stop_background(self):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _sweep_loop(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception as e:
                logger.error("Rate-limit sweep error: %s", e)
