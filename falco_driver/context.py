from __future__ import annotations

import threading
from http.client import HTTPException

from .errors import CancelledError, TransportError


class Context:
    """Cancellation token shared by every blocking operation of an invocation.

    Another thread calls `cancel()`; network reads and running commands notice
    it between chunks or polls and abort with `CancelledError`.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def check(self) -> None:
        """Raise `CancelledError` if the context has been cancelled."""
        if self._cancelled.is_set():
            raise CancelledError("operation cancelled")


class CancellableReader:
    """File-like wrapper whose reads fail once the context is cancelled.

    When `url` is given the wrapped object is an HTTP response body, and
    read failures are reported as TransportError for that url.
    """

    def __init__(self, ctx: Context, fileobj, url: str | None = None) -> None:
        self._ctx = ctx
        self._fileobj = fileobj
        self._url = url

    def read(self, size: int = -1) -> bytes:
        self._ctx.check()
        if self._url is None:
            return self._fileobj.read(size)
        try:
            return self._fileobj.read(size)
        except (HTTPException, OSError) as e:
            raise TransportError(f"failed reading response body ({e!r})", self._url) from e
