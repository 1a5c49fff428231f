# services/rate_limiter.py
"""
Rate limiting for login, password reset and the general API.

Counts live behind a `CounterStore`. `DatabaseCounterStore` keeps them in
the relational store so every server process sees the same numbers;
`InMemoryCounterStore` is per-process and only suitable for tests and a
single dev server.

Windows are fixed and aligned to the epoch. Once a client goes over its
limit it is blocked for the endpoint's block duration, independent of
window boundaries.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import RateLimitBlock, RateLimitCounter
from utils.security_log import log_security_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
     max_attempts: int
     window_seconds: int
     block_seconds: int


RATE_LIMITS: Dict[str, RateLimitConfig] = {
     "login": RateLimitConfig(max_attempts=5, window_seconds=15 * 60, block_seconds=30 * 60),
     "password_reset": RateLimitConfig(max_attempts=3, window_seconds=60 * 60, block_seconds=60 * 60),
     "api": RateLimitConfig(max_attempts=100, window_seconds=60, block_seconds=5 * 60),
}


@dataclass(frozen=True)
class RateLimitResult:
     allowed: bool
     remaining: int
     reset_at: int  # epoch seconds


def window_start(now: float, window_seconds: int) -> int:
     now = int(now)
     return now - now % window_seconds


class CounterStore(Protocol):
     def increment(self, key: str, window_seconds: int, now: float) -> int: ...

     def current(self, key: str, window_seconds: int, now: float) -> int: ...

     def block(self, key: str, until: int) -> None: ...

     def blocked_until(self, key: str) -> Optional[int]: ...


class InMemoryCounterStore:
     """Process-local counters. State is lost on restart and not shared."""

     def __init__(self):
          self._counts: Dict[Tuple[str, int], int] = {}
          self._blocks: Dict[str, int] = {}
          self._lock = threading.Lock()

     def increment(self, key: str, window_seconds: int, now: float) -> int:
          start = window_start(now, window_seconds)
          with self._lock:
               # Drop this key's older windows
               for stale in [k for k in self._counts if k[0] == key and k[1] < start]:
                    del self._counts[stale]
               count = self._counts.get((key, start), 0) + 1
               self._counts[(key, start)] = count
               return count

     def current(self, key: str, window_seconds: int, now: float) -> int:
          with self._lock:
               return self._counts.get((key, window_start(now, window_seconds)), 0)

     def block(self, key: str, until: int) -> None:
          with self._lock:
               self._blocks[key] = until

     def blocked_until(self, key: str) -> Optional[int]:
          with self._lock:
               return self._blocks.get(key)


class DatabaseCounterStore:
     """
     Counters in `rate_limit_counters` / `rate_limit_blocks`.

     Increments are a single `UPDATE ... SET count = count + 1`; the first
     hit in a window inserts the row, and a unique-constraint race falls
     back to the update. Each call commits on its own session.
     """

     def __init__(self, session_factory: Callable[[], Session]):
          self.session_factory = session_factory

     def increment(self, key: str, window_seconds: int, now: float) -> int:
          start = window_start(now, window_seconds)
          session = self.session_factory()
          try:
               if not self._bump(session, key, start):
                    try:
                         with session.begin_nested():
                              session.add(RateLimitCounter(key=key, window_start=start, count=1))
                    except IntegrityError:
                         self._bump(session, key, start)
               count = (
                    session.query(RateLimitCounter.count)
                    .filter(RateLimitCounter.key == key, RateLimitCounter.window_start == start)
                    .scalar()
               )
               session.commit()
               return int(count or 0)
          except Exception:
               session.rollback()
               raise
          finally:
               session.close()

     @staticmethod
     def _bump(session: Session, key: str, start: int) -> bool:
          result = session.execute(
               update(RateLimitCounter)
               .where(RateLimitCounter.key == key, RateLimitCounter.window_start == start)
               .values(count=RateLimitCounter.count + 1)
               .execution_options(synchronize_session=False)
          )
          return result.rowcount > 0

     def current(self, key: str, window_seconds: int, now: float) -> int:
          session = self.session_factory()
          try:
               count = (
                    session.query(RateLimitCounter.count)
                    .filter(
                         RateLimitCounter.key == key,
                         RateLimitCounter.window_start == window_start(now, window_seconds),
                    )
                    .scalar()
               )
               return int(count or 0)
          finally:
               session.close()

     def block(self, key: str, until: int) -> None:
          session = self.session_factory()
          try:
               updated = session.execute(
                    update(RateLimitBlock)
                    .where(RateLimitBlock.key == key)
                    .values(blocked_until=until)
                    .execution_options(synchronize_session=False)
               ).rowcount
               if not updated:
                    try:
                         with session.begin_nested():
                              session.add(RateLimitBlock(key=key, blocked_until=until))
                    except IntegrityError:
                         session.execute(
                              update(RateLimitBlock)
                              .where(RateLimitBlock.key == key)
                              .values(blocked_until=until)
                              .execution_options(synchronize_session=False)
                         )
               session.commit()
          except Exception:
               session.rollback()
               raise
          finally:
               session.close()

     def blocked_until(self, key: str) -> Optional[int]:
          session = self.session_factory()
          try:
               return session.query(RateLimitBlock.blocked_until).filter(RateLimitBlock.key == key).scalar()
          finally:
               session.close()


class RateLimiter:
     def __init__(
          self,
          store: CounterStore,
          limits: Optional[Dict[str, RateLimitConfig]] = None,
          clock: Callable[[], float] = time.time,
     ):
          self.store = store
          self.limits = limits or RATE_LIMITS
          self.clock = clock

     def _config(self, endpoint: str) -> RateLimitConfig:
          try:
               return self.limits[endpoint]
          except KeyError:
               raise ValueError(f"Unknown rate limit endpoint: {endpoint}")

     def check(self, endpoint: str, client_id: str) -> RateLimitResult:
          """Count one request from `client_id` and say whether it may proceed."""
          config = self._config(endpoint)
          key = f"{endpoint}:{client_id}"
          now = self.clock()

          until = self.store.blocked_until(key)
          if until and until > now:
               return RateLimitResult(False, 0, until)

          count = self.store.increment(key, config.window_seconds, now)
          if count > config.max_attempts:
               until = int(now) + config.block_seconds
               self.store.block(key, until)
               log_security_event(
                    "rate_limit_exceeded",
                    client_id,
                    details={"endpoint": endpoint, "count": count},
               )
               return RateLimitResult(False, 0, until)

          reset_at = window_start(now, config.window_seconds) + config.window_seconds
          return RateLimitResult(True, max(0, config.max_attempts - count), reset_at)

     def record_failure(self, endpoint: str, client_id: str) -> None:
          """Count a failed attempt; reaching the limit starts a block."""
          config = self._config(endpoint)
          key = f"{endpoint}:{client_id}"
          now = self.clock()
          count = self.store.increment(key, config.window_seconds, now)
          if count >= config.max_attempts:
               self.store.block(key, int(now) + config.block_seconds)
               logger.warning("Blocked %s for %s after %d failures", client_id, endpoint, count)


def client_id_from_request(request) -> str:
     """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
     forwarded = request.headers.get("x-forwarded-for")
     if forwarded:
          first = forwarded.split(",")[0].strip()
          if first:
               return first
     real_ip = request.headers.get("x-real-ip")
     if real_ip:
          return real_ip.strip()
     if request.client and request.client.host:
          return request.client.host
     return "unknown"
