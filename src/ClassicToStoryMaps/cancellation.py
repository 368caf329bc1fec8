"""Cooperative cancellation primitives for conversion runs.

A conversion is checked for cancellation at every phase boundary and before
each collaborator call. :class:`CancellationToken` is the flag callers flip
from another thread; :meth:`CancellationToken.raise_if_cancelled` turns a
positive check into :class:`~ClassicToStoryMaps.errors.ConversionCancelled`.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional, Union

from .errors import ConversionCancelled

CancelPredicate = Callable[[], bool]


class CancellationToken:
    """Thread-safe cancellation token for cooperative task cancellation.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self, predicate: Optional[CancelPredicate] = None) -> None:
        """Initialize a token, optionally mirroring an external ``predicate``."""
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._predicate = predicate

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        with self._lock:
            self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        """Return True once cancellation was requested here or by the predicate."""
        if self._is_cancelled.is_set():
            return True
        if self._predicate is not None and self._predicate():
            self.cancel()
            return True
        return False

    def raise_if_cancelled(self, stage: Optional[str] = None) -> None:
        """Raise :class:`ConversionCancelled` when cancellation was requested."""
        if self.is_cancelled():
            raise ConversionCancelled(stage=stage)


def coerce_token(
    value: Union[CancellationToken, CancelPredicate, None],
) -> CancellationToken:
    """Return a :class:`CancellationToken` for a token, a predicate, or ``None``."""

    if isinstance(value, CancellationToken):
        return value
    if value is None:
        return CancellationToken()
    if callable(value):
        return CancellationToken(predicate=value)
    raise TypeError(f"Unsupported cancellation value: {type(value).__name__}")
