"""Live status/content/completion display redrawn from a background thread.

The consumer thread only mutates line state under a lock; every terminal write
happens on the redraw thread, including the final frame, so joining that
thread guarantees nothing is drawn once ``stop()`` returns. On a terminal the
frame is a ``rich`` live display; elsewhere status changes are printed as lines.
"""

from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass, replace
from enum import Enum
from types import TracebackType
from typing import TextIO

from rich.cells import cell_len
from rich.console import Console, Group
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 0.1
SPINNER_NAME = "dots"
SUCCESS_MARKER = "✓"
ERROR_MARKER = "✗"
INCOMPLETE_SUFFIX = " [incomplete]"
_ELLIPSIS = "…"

_STYLES: dict[str, str] = {
    "muted": "dim",
    "accent": "cyan",
    "success": "green",
    "error": "red",
}


class LineState(str, Enum):
    """Per-line lifecycle: idle, then active, then finished for good."""

    IDLE = "idle"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass(slots=True)
class RenderLine:
    """One display slot."""

    text: str = ""
    style: str | None = None
    state: LineState = LineState.IDLE


@dataclass(slots=True)
class RenderSnapshot:
    """Consistent copy of all three lines taken under the lock."""

    status: RenderLine
    content: RenderLine
    completion: RenderLine

    @property
    def all_finished(self) -> bool:
        return all(
            line.state == LineState.FINISHED
            for line in (self.status, self.content, self.completion)
        )


class RenderSurface:
    """Three-line terminal display shared by the stream consumer and a redraw thread."""

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        show_content: bool = True,
        interactive: bool | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        width: int | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Redraw interval must be > 0.")
        self._stream = stream if stream is not None else sys.stderr
        self._console = Console(
            file=self._stream,
            force_terminal=interactive,
            width=width,
            highlight=False,
        )
        self.show_content = show_content
        self.interactive = self._console.is_terminal and not self._console.is_dumb_terminal
        self.interval_seconds = interval_seconds
        self._lock = threading.Lock()
        self._status = RenderLine()
        self._content = RenderLine()
        self._completion = RenderLine()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._spinner = Spinner(SPINNER_NAME, style="cyan")
        self._redraw_count = 0
        self._last_plain_status: str | None = None

    # -- lifecycle ------------------------------------------------------------

    def start(self, status: str) -> None:
        if self._thread is not None or self._stop_event.is_set():
            raise RuntimeError("Render surface can only be started once.")
        with self._lock:
            self._status = RenderLine(text=status, style="muted", state=LineState.ACTIVE)
        self._thread = threading.Thread(target=self._run, daemon=True, name="q-render")
        self._thread.start()

    def stop(self) -> None:
        """Stop the redraw thread after it drew the final frame."""

        if self._thread is None:
            return
        if not self.snapshot().all_finished:
            raise RuntimeError("Render surface stopped before all lines finished.")
        self._stop_event.set()
        self._thread.join()
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def redraw_count(self) -> int:
        with self._lock:
            return self._redraw_count

    def __enter__(self) -> RenderSurface:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._thread is None:
            return
        if not self.snapshot().all_finished:
            self.abort("cancelled" if isinstance(exc, KeyboardInterrupt) else "aborted")
        self.stop()

    # -- mutations (consumer side) --------------------------------------------

    def set_status(self, text: str) -> None:
        with self._lock:
            _ensure_not_finished(self._status, "status")
            self._status = RenderLine(text=text, style="muted", state=LineState.ACTIVE)

    def set_content(self, text: str) -> None:
        with self._lock:
            _ensure_not_finished(self._content, "content")
            self._content = RenderLine(text=text, style="accent", state=LineState.ACTIVE)

    def finish_status(self, text: str, *, style: str | None = "muted") -> None:
        with self._lock:
            _ensure_not_finished(self._status, "status")
            self._status = RenderLine(text=text, style=style, state=LineState.FINISHED)

    def finish_content(self, text: str, *, failed: bool = False) -> None:
        with self._lock:
            _ensure_not_finished(self._content, "content")
            if not self.show_content:
                self._content = RenderLine(state=LineState.FINISHED)
                return
            self._content = RenderLine(
                text=text,
                style="error" if failed else None,
                state=LineState.FINISHED,
            )

    def complete(self, text: str, *, success: bool) -> None:
        with self._lock:
            _ensure_not_finished(self._completion, "completion")
            marker = SUCCESS_MARKER if success else ERROR_MARKER
            self._completion = RenderLine(
                text=f"{marker} {text}",
                style="success" if success else "error",
                state=LineState.FINISHED,
            )

    def abort(self, reason: str) -> None:
        """Finish every line that is not finished yet, keeping partial content visible."""

        with self._lock:
            if self._status.state != LineState.FINISHED:
                self._status = RenderLine(
                    text=self._status.text,
                    style="muted",
                    state=LineState.FINISHED,
                )
            if self._content.state != LineState.FINISHED:
                self._content = RenderLine(
                    text=self._content.text if self.show_content else "",
                    style="error",
                    state=LineState.FINISHED,
                )
            if self._completion.state != LineState.FINISHED:
                self._completion = RenderLine(
                    text=f"{ERROR_MARKER} {reason}",
                    style="error",
                    state=LineState.FINISHED,
                )

    def snapshot(self) -> RenderSnapshot:
        with self._lock:
            return self._snapshot_locked()

    # -- redraw thread --------------------------------------------------------

    def _run(self) -> None:
        live = self._start_live() if self.interactive else None
        try:
            while not self._stop_event.wait(self.interval_seconds):
                self._draw(live, final=False)
            self._draw(live, final=True)
        finally:
            if live is not None:
                try:
                    live.stop()
                except (OSError, ValueError):
                    logger.debug("Render surface teardown failed", exc_info=True)

    def _start_live(self) -> Live:
        live = Live(
            console=self._console,
            auto_refresh=False,
            transient=False,
            redirect_stdout=False,
            redirect_stderr=False,
        )
        live.start()
        return live

    def _draw(self, live: Live | None, *, final: bool) -> None:
        with self._lock:
            snapshot = self._snapshot_locked()
            self._redraw_count += 1
        try:
            if live is not None:
                live.update(self._frame(snapshot), refresh=True)
            else:
                self._draw_plain(snapshot, final=final)
        except (OSError, ValueError):
            # Closed or broken stream.
            logger.debug("Render surface write failed", exc_info=True)

    def _frame(self, snapshot: RenderSnapshot) -> Group:
        width = self._console.width
        rows = [self._status_row(snapshot.status)]
        if self.show_content:
            rows.append(_content_row(snapshot.content, width=width))
        rows.append(_row(snapshot.completion.text, snapshot.completion.style))
        return Group(*rows)

    def _status_row(self, line: RenderLine) -> Text:
        if line.state != LineState.ACTIVE:
            return _row(line.text, line.style)
        self._spinner.update(text=Text(line.text, style=_STYLES["muted"]))
        row = self._spinner.render(self._console.get_time())
        if not isinstance(row, Text):
            return _row(line.text, line.style)
        row.no_wrap = True
        row.overflow = "ellipsis"
        return row

    def _draw_plain(self, snapshot: RenderSnapshot, *, final: bool) -> None:
        status = snapshot.status
        lines: list[str] = []
        if status.text and status.text != self._last_plain_status:
            if status.state == LineState.ACTIVE or final:
                lines.append(status.text)
                self._last_plain_status = status.text
        if final:
            content = snapshot.content
            if self.show_content and content.text and content.style == "error":
                lines.append(f"{content.text}{INCOMPLETE_SUFFIX}")
            if snapshot.completion.text:
                lines.append(snapshot.completion.text)
        for line in lines:
            self._console.out(line, highlight=False)

    def _snapshot_locked(self) -> RenderSnapshot:
        return RenderSnapshot(
            status=replace(self._status),
            content=replace(self._content),
            completion=replace(self._completion),
        )


def _ensure_not_finished(line: RenderLine, name: str) -> None:
    if line.state == LineState.FINISHED:
        raise RuntimeError(f"Render {name} line is already finished.")


def _row(text: str, style: str | None) -> Text:
    return Text(
        text,
        style=_STYLES[style] if style else "",
        no_wrap=True,
        overflow="ellipsis",
    )


def _content_row(line: RenderLine, *, width: int) -> Text:
    flat = " ".join(line.text.split())
    if line.state != LineState.FINISHED:
        # Live preview keeps the newest text in view.
        return _row(_tail(flat, width), line.style)
    if line.style == "error" and flat:
        row = _row(flat, line.style)
        row.truncate(max(width - cell_len(INCOMPLETE_SUFFIX), 1), overflow="ellipsis")
        row.append(INCOMPLETE_SUFFIX, style=_STYLES["error"])
        return row
    return _row(flat, line.style)


def _tail(text: str, width: int) -> str:
    if cell_len(text) <= width:
        return text
    kept: list[str] = []
    used = cell_len(_ELLIPSIS)
    for char in reversed(text):
        used += cell_len(char)
        if used > width:
            break
        kept.append(char)
    return _ELLIPSIS + "".join(reversed(kept))
