"""
Local listener for ffmpeg's ``-progress`` stream.

ffmpeg connects to ``tcp://127.0.0.1:<port>`` and writes ``key=value`` lines:

    frame=1
    out_time_ms=1800000000
    speed=25.6x
    progress=continue

``out_time_ms`` is in microseconds despite its name. A ``progress`` line closes
one interval: the collected snapshot is handed to the armed callback and the
accumulator starts over.
"""
from __future__ import annotations

import socket
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from . import log
from .errors import RelayError
from .models import ProgressSnapshot

_RECV_SIZE = 4096
_ACCEPT_POLL = 0.2


class LineBuffer:
    """Reassembles newline-terminated lines from arbitrarily split chunks."""

    def __init__(self) -> None:
        self._pending = b""

    def feed(self, data: bytes) -> List[str]:
        buf = self._pending + data
        parts = buf.split(b"\n")
        self._pending = parts.pop()
        return [p.rstrip(b"\r").decode("ascii", errors="replace") for p in parts]

    def flush(self) -> Optional[str]:
        if not self._pending:
            return None
        line = self._pending.rstrip(b"\r").decode("ascii", errors="replace")
        self._pending = b""
        return line


class ProgressCollector:
    def __init__(self, duration: float) -> None:
        self.duration = duration
        self._current: Optional[ProgressSnapshot] = None

    def collect(self, line: str) -> Optional[ProgressSnapshot]:
        """Feed one ``key=value`` line; returns a finished snapshot on a ``progress`` line."""
        key, sep, value = line.partition("=")
        if not sep:
            return None
        key = key.strip()
        value = value.strip()
        if self._current is None:
            self._current = ProgressSnapshot(duration=self.duration)
        if key == "out_time_ms":
            try:
                self._current.out_time = int(value) / 1_000_000.0
            except ValueError:
                pass
        elif key == "speed":
            if value.endswith("x"):
                value = value[:-1]
            try:
                self._current.speed = float(value)
            except ValueError:
                # speed=N/A before the first frame
                pass
        elif key == "progress":
            snap = self._current
            self._current = None
            return snap
        return None


@dataclass
class ProgressSource:
    duration: float
    callback: Callable[[ProgressSnapshot], None]


class ProgressRelay:
    def __init__(self, host: str = "127.0.0.1") -> None:
        self.host = host
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._source: Optional[ProgressSource] = None
        self._lock = threading.Lock()
        self._closing = threading.Event()
        self.addr = ""

    # -- source hand-off: arming replaces, taking clears --
    def arm(self, source: ProgressSource) -> None:
        with self._lock:
            self._source = source

    def take(self) -> Optional[ProgressSource]:
        with self._lock:
            source = self._source
            self._source = None
            return source

    def start(self) -> str:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            sock.bind((self.host, 0))
            sock.listen(8)
            # accept loop polls _closing between timeouts
            sock.settimeout(_ACCEPT_POLL)
        except OSError as e:
            raise RelayError(f"cannot start progress listener: {e}") from e
        self._sock = sock
        self._closing.clear()
        host, port = sock.getsockname()[:2]
        self.addr = f"tcp://{host}:{port}"
        th = threading.Thread(target=self._accept_loop, name="progress-relay", daemon=True)
        self._thread = th
        th.start()
        log.log("relay", "progress relay listening at %s", self.addr)
        return self.addr

    def stop(self) -> None:
        self._closing.set()
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def __enter__(self) -> "ProgressRelay":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _accept_loop(self) -> None:
        sock = self._sock
        while sock is not None and not self._closing.is_set():
            try:
                conn, _ = sock.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._closing.is_set():
                    return
                log.warning("relay", "accepting progress connection failed: %s", e)
                continue
            conn.settimeout(None)
            th = threading.Thread(target=self._handle, args=(conn, self.take()), name="progress-conn", daemon=True)
            th.start()

    def _handle(self, conn: socket.socket, source: Optional[ProgressSource]) -> None:
        if source is None:
            log.debug("relay", "progress connection without an armed source, dropping")
        collector = ProgressCollector(source.duration) if source is not None else None
        lines = LineBuffer()
        with conn:
            while True:
                try:
                    data = conn.recv(_RECV_SIZE)
                except OSError:
                    return
                if not data:
                    break
                if collector is None:
                    continue
                for line in lines.feed(data):
                    self._dispatch(collector, source, line)
            tail = lines.flush()
            if collector is not None and tail:
                self._dispatch(collector, source, tail)

    @staticmethod
    def _dispatch(collector: ProgressCollector, source: Optional[ProgressSource], line: str) -> None:
        snap = collector.collect(line)
        if snap is None or source is None:
            return
        try:
            source.callback(snap)
        except Exception as e:
            log.warning("relay", "progress callback failed: %s", e)
