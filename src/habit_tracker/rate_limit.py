from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

import yaml

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

DEFAULT_STORE_CAPACITY = 10_000


@dataclass(frozen=True)
class RateLimitPolicy:
    max_attempts: int
    window_seconds: int


DEFAULT_POLICIES: dict[str, RateLimitPolicy] = {
    "signup_ip": RateLimitPolicy(max_attempts=3, window_seconds=60 * 60),
    "auth_ip": RateLimitPolicy(max_attempts=15, window_seconds=15 * 60),
}


@dataclass(frozen=True)
class RateLimitConfig:
    policies: dict[str, RateLimitPolicy]
    store_capacity: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float | None


class LruStore(Generic[K, V]):
    """Capped mapping that evicts the least recently used key on overflow."""

    def __init__(self, capacity: int = DEFAULT_STORE_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._data: OrderedDict[K, V] = OrderedDict()

    def get(self, key: K) -> V | None:
        if key not in self._data:
            return None
        self._data.move_to_end(key)
        return self._data[key]

    def set(self, key: K, value: V) -> None:
        self._data[key] = value
        self._data.move_to_end(key)
        while len(self._data) > self.capacity:
            evicted, _ = self._data.popitem(last=False)
            logger.debug("rate limit store evicted key=%s", evicted)

    def delete(self, key: K) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class RateLimiter:
    def __init__(
        self,
        policies: dict[str, RateLimitPolicy],
        store: LruStore[tuple[str, str], list[float]],
        clock: Callable[[], float] = time.monotonic,
        enabled: bool = True,
    ) -> None:
        self.policies = policies
        self.store = store
        self.clock = clock
        self.enabled = enabled

    def hit(self, kind: str, key: str) -> RateLimitResult:
        policy = self.policies.get(kind)
        if policy is None:
            raise KeyError(f"Unknown rate limit policy: {kind}")
        if not self.enabled:
            return RateLimitResult(allowed=True, remaining=policy.max_attempts, reset_at=None)

        now = self.clock()
        window_start = now - policy.window_seconds
        attempts = [t for t in (self.store.get((kind, key)) or []) if t > window_start]
        if len(attempts) >= policy.max_attempts:
            self.store.set((kind, key), attempts)
            logger.warning("rate limit hit kind=%s key=%s", kind, key)
            return RateLimitResult(allowed=False, remaining=0, reset_at=attempts[0] + policy.window_seconds)

        attempts.append(now)
        self.store.set((kind, key), attempts)
        return RateLimitResult(
            allowed=True,
            remaining=policy.max_attempts - len(attempts),
            reset_at=attempts[0] + policy.window_seconds,
        )

    def reset(self, kind: str, key: str) -> None:
        self.store.delete((kind, key))


def _parse_policy(payload: Any, fallback: RateLimitPolicy) -> RateLimitPolicy:
    if not isinstance(payload, dict):
        return fallback
    try:
        max_attempts = int(payload.get("max_attempts", fallback.max_attempts))
        window_seconds = int(payload.get("window_seconds", fallback.window_seconds))
    except (TypeError, ValueError):
        return fallback
    if max_attempts < 1 or window_seconds < 1:
        return fallback
    return RateLimitPolicy(max_attempts=max_attempts, window_seconds=window_seconds)


def load_rate_limit_config(path: Path) -> RateLimitConfig:
    if not path.exists():
        return RateLimitConfig(policies=dict(DEFAULT_POLICIES), store_capacity=DEFAULT_STORE_CAPACITY)

    raw = yaml.safe_load(path.read_text()) or {}
    if not isinstance(raw, dict):
        raw = {}
    policies = dict(DEFAULT_POLICIES)
    policies_raw = raw.get("policies", {})
    if isinstance(policies_raw, dict):
        for name, payload in policies_raw.items():
            policies[str(name)] = _parse_policy(payload, DEFAULT_POLICIES.get(str(name), RateLimitPolicy(5, 900)))

    try:
        capacity = int(raw.get("store_capacity", DEFAULT_STORE_CAPACITY))
    except (TypeError, ValueError):
        capacity = DEFAULT_STORE_CAPACITY
    if capacity < 1:
        capacity = DEFAULT_STORE_CAPACITY
    return RateLimitConfig(policies=policies, store_capacity=capacity)


def build_rate_limiter(config: RateLimitConfig, enabled: bool = True) -> RateLimiter:
    return RateLimiter(policies=config.policies, store=LruStore(config.store_capacity), enabled=enabled)
