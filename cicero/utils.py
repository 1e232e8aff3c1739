"""Utility functions for the application."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Hashable, Optional

from google.api_core import exceptions as google_exceptions

from .errors import (
    AppError,
    DeadlineExceededError,
    DuplicateResourceError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    UnauthenticatedError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def translate_error(error: Exception) -> AppError:
    """Map a Google API or unexpected exception onto the application errors."""
    if isinstance(error, AppError):
        return error
    if isinstance(error, google_exceptions.NotFound):
        return NotFoundError(error.message)
    if isinstance(error, (google_exceptions.AlreadyExists, google_exceptions.Conflict)):
        return DuplicateResourceError(error.message)
    if isinstance(error, google_exceptions.PermissionDenied):
        return PermissionDeniedError(error.message)
    if isinstance(error, google_exceptions.Unauthenticated):
        return UnauthenticatedError(error.message)
    if isinstance(error, google_exceptions.InvalidArgument):
        return ValidationError(error.message)
    if isinstance(error, google_exceptions.DeadlineExceeded):
        return DeadlineExceededError()
    return InternalError(str(error) or InternalError().message)


def run_with_timeout(
    executor: Executor, timeout: float, func: Callable[..., Any], *args: Any, **kwargs: Any
) -> Any:
    """Run ``func`` on ``executor`` and wait at most ``timeout`` seconds.

    Raises:
        DeadlineExceededError: If the call does not finish in time.
        AppError: The translated form of whatever ``func`` raised.
    """
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as e:
        future.cancel()
        raise DeadlineExceededError() from e
    except AppError:
        raise
    except Exception as e:
        raise translate_error(e) from e


class Debouncer:
    """Coalesce rapid calls per key; only the last call after a quiet period runs."""

    def __init__(
        self,
        delay: float,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        self.delay = delay
        self.on_error = on_error
        self._timers: dict[Hashable, threading.Timer] = {}
        self._pending: dict[Hashable, tuple[Callable[..., Any], tuple[Any, ...]]] = {}
        self._lock = threading.Lock()

    def call(self, key: Hashable, func: Callable[..., Any], *args: Any) -> None:
        """Schedule ``func(*args)``, replacing anything pending for ``key``."""
        with self._lock:
            timer = self._timers.pop(key, None)
            if timer:
                timer.cancel()
            self._pending[key] = (func, args)
            timer = threading.Timer(self.delay, self._fire, args=(key,))
            timer.daemon = True
            self._timers[key] = timer
            timer.start()

    def flush(self) -> None:
        """Run every pending call now."""
        with self._lock:
            keys = list(self._pending)
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
        for key in keys:
            self._fire(key)

    def cancel(self) -> None:
        """Drop every pending call without running it."""
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._pending.clear()

    @property
    def pending(self) -> int:
        """Number of calls waiting for their quiet period to end."""
        with self._lock:
            return len(self._pending)

    def _fire(self, key: Hashable) -> None:
        with self._lock:
            self._timers.pop(key, None)
            entry = self._pending.pop(key, None)
        if entry is None:
            return
        func, args = entry
        try:
            func(*args)
        except Exception as e:
            logger.error(f"Debounced call for {key} failed: {e}")
            if self.on_error:
                self.on_error(e)
