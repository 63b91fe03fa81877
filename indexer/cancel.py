from __future__ import annotations

import threading
from typing import Optional


class Cancellation:
    """
    Broadcast cancel signal plus a completion signal the owner can wait on.

    ``cancel()`` may be called any number of times; ``complete()`` is raised
    once by the worker when it has flushed its state and exited.
    """

    def __init__(self) -> None:
        self._cancel = threading.Event()
        self._done = threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def canceled(self) -> bool:
        return self._cancel.is_set()

    def complete(self) -> None:
        self._done.set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait_done(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)
