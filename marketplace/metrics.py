"""
Lightweight runtime metrics for health/observability.

Uses in-process counters so it works without extra dependencies.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Dict


class _RuntimeMetrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._payments_succeeded = 0
        self._payments_rejected = 0
        self._deposits_succeeded = 0
        self._deposits_rejected = 0
        self._tx_retries = 0
        self._error_timestamps: Deque[float] = deque()

    def record_payment(self, succeeded: bool) -> None:
        with self._lock:
            if succeeded:
                self._payments_succeeded += 1
            else:
                self._payments_rejected += 1

    def record_deposit(self, succeeded: bool) -> None:
        with self._lock:
            if succeeded:
                self._deposits_succeeded += 1
            else:
                self._deposits_rejected += 1

    def record_tx_retry(self) -> None:
        with self._lock:
            self._tx_retries += 1

    def record_error(self, ts: float | None = None) -> None:
        now = ts if ts is not None else time.time()
        with self._lock:
            self._error_timestamps.append(now)
            self._prune_locked(now)

    def snapshot(self) -> Dict[str, int]:
        now = time.time()
        with self._lock:
            self._prune_locked(now)
            return {
                "payments_succeeded": self._payments_succeeded,
                "payments_rejected": self._payments_rejected,
                "deposits_succeeded": self._deposits_succeeded,
                "deposits_rejected": self._deposits_rejected,
                "transaction_retries": self._tx_retries,
                "errors_last_hour": len(self._error_timestamps),
            }

    def reset_for_tests(self) -> None:
        with self._lock:
            self._payments_succeeded = 0
            self._payments_rejected = 0
            self._deposits_succeeded = 0
            self._deposits_rejected = 0
            self._tx_retries = 0
            self._error_timestamps.clear()

    def _prune_locked(self, now: float) -> None:
        cutoff = now - 3600.0
        while self._error_timestamps and self._error_timestamps[0] < cutoff:
            self._error_timestamps.popleft()


_METRICS = _RuntimeMetrics()


def record_payment(succeeded: bool) -> None:
    _METRICS.record_payment(succeeded)


def record_deposit(succeeded: bool) -> None:
    _METRICS.record_deposit(succeeded)


def record_tx_retry() -> None:
    _METRICS.record_tx_retry()


def record_error(ts: float | None = None) -> None:
    _METRICS.record_error(ts)


def metrics_snapshot() -> Dict[str, int]:
    return _METRICS.snapshot()


def reset_metrics_for_tests() -> None:
    _METRICS.reset_for_tests()
