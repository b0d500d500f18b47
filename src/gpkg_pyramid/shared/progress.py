import contextlib
import logging
import sys
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class SingleLineRenderer:
    """Thread-safe renderer that redraws a single console line."""

    def __init__(self, *, single_line: bool = True, stream=None) -> None:
        self.single_line = single_line
        self._stream = stream
        self._last_len = 0
        self._lock = threading.Lock()

    @property
    def stream(self):
        return self._stream if self._stream is not None else sys.stdout

    def clear_line(self) -> None:
        """Wipe the current progress line."""
        with self._lock:
            if self.single_line and self._last_len > 0:
                self.stream.write('\r' + ' ' * self._last_len + '\r')
                self.stream.flush()
                self._last_len = 0

    def write_line(self, msg: str) -> None:
        """Redraw the current progress line."""
        with self._lock:
            if self.single_line:
                pad = max(0, self._last_len - len(msg))
                self.stream.write('\r' + msg + (' ' * pad))
            else:
                self.stream.write(msg + '\n')
            self.stream.flush()
            self._last_len = len(msg)


DEFAULT_WRITER = SingleLineRenderer()


# Optional global hook, e.g. for a host application: (done, total, label)
class _CbStore:
    progress: Callable[[int, int, str], None] | None = None


def set_progress_callback(cb: Callable[[int, int, str], None] | None) -> None:
    """Install a global progress callback: (done, total, label)."""
    _CbStore.progress = cb


class ConsoleProgress:
    """Tile counter bar: done/total, rate, ETA and the current stage.

    ``note`` (e.g. the zoom level being rendered) is shown after the label
    and changes only when a step passes a new one.
    """

    def __init__(
        self,
        total: int,
        label: str = 'Tiles',
        writer: SingleLineRenderer | None = None,
        unit: str = 'tiles',
    ) -> None:
        self.total = max(1, int(total))
        self.done = 0
        self.start = time.monotonic()
        self.label = label
        self.unit = unit
        self.note = ''
        self._writer = writer or DEFAULT_WRITER
        self._writer.clear_line()
        self._render()

    def _format_eta(self, remaining: float) -> str:
        if remaining == float('inf'):
            return '--:--'
        m, s = divmod(int(remaining), 60)
        h, m = divmod(m, 60)
        if h > 0:
            return f'{h:02d}:{m:02d}:{s:02d}'
        return f'{m:02d}:{s:02d}'

    def _render(self) -> None:
        elapsed = max(1e-6, time.monotonic() - self.start)
        rps = self.done / elapsed
        remaining = (self.total - self.done) / rps if rps > 0 else float('inf')
        bar_len = 30
        filled = int(bar_len * self.done / self.total)
        bar = '█' * filled + '░' * (bar_len - filled)
        head = f'{self.label} {self.note}' if self.note else self.label
        msg = (
            f'{head}: [{bar}] {self.done}/{self.total} | {rps:4.1f} {self.unit}/s'
            f' | ETA {self._format_eta(remaining)}'
        )
        self._writer.write_line(msg)
        if _CbStore.progress is not None:
            with contextlib.suppress(Exception):
                _CbStore.progress(self.done, self.total, self.label)

    def step(self, n: int = 1, note: str | None = None) -> None:
        if note is not None:
            self.note = note
        self.done = min(self.total, self.done + n)
        self._render()

    def close(self) -> None:
        self._writer.clear_line()
        logger.debug(
            '%s finished: %d/%d %s in %.1fs',
            self.label,
            self.done,
            self.total,
            self.unit,
            time.monotonic() - self.start,
        )
