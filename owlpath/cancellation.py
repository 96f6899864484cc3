"""Cooperative cancellation for long-running path fits.

A :class:`CancellationToken` is handed to :func:`owlpath.path.fit_path`
(and from there to the solver).  The path loop polls it at the start of
every penalty step and every KKT-repair iteration; the solver polls it once
per pass.  Cancelling never corrupts steps that were already committed: the
path returns everything fitted so far, flagged with ``cancelled=True``.

The token is backed by :class:`threading.Event`, so it may be cancelled from
another thread, from a signal handler or from a path callback.
"""

from __future__ import annotations

import threading


class CancellationToken:
    """A one-shot, thread-safe cancellation flag.

    Examples
    --------
    >>> token = CancellationToken()
    >>> token.cancelled
    False
    >>> token.cancel()
    >>> token.cancelled
    True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """``True`` once :meth:`cancel` has been called."""
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


def is_cancelled(token: CancellationToken | None) -> bool:
    """Return ``True`` if *token* is set; ``None`` is never cancelled."""
    return token is not None and token.cancelled
