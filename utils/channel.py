# utils/channel.py
"""
Cross-thread plumbing between the acquisition worker and the UI
- SampleChannel: one producer (worker) / one consumer (UI), float32 samples
- RepaintSignal: idempotent "please redraw" pulse delivered on the UI thread
"""
import queue
import threading
from typing import Optional

import numpy as np
from PyQt6.QtCore import QObject, pyqtSignal

from sensors.errors import ChannelClosed


class SampleChannel:
    def __init__(self, maxsize: int = 0):
        # maxsize <= 0 means unbounded
        self._q: "queue.Queue[np.float32]" = queue.Queue(maxsize=max(0, int(maxsize)))
        self._closed = threading.Event()
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, sample) -> None:
        if self._closed.is_set():
            raise ChannelClosed("sample channel receiver is gone")
        try:
            self._q.put_nowait(np.float32(sample))
        except queue.Full:
            # bounded and full: drop newest
            self.dropped += 1

    def poll(self) -> Optional[np.float32]:
        try:
            return self._q.get_nowait()
        except queue.Empty:
            return None

    def close(self) -> None:
        self._closed.set()

    def __len__(self) -> int:
        return self._q.qsize()


class RepaintSignal(QObject):
    """Edge-triggered repaint request; pulses are coalesced until acknowledged."""
    requested = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._pending = threading.Event()

    @property
    def pending(self) -> bool:
        return self._pending.is_set()

    def pulse(self) -> None:
        if self._pending.is_set():
            return
        self._pending.set()
        self.requested.emit()

    def acknowledge(self) -> None:
        self._pending.clear()
