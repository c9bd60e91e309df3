"""Async terminal input: cbreak-mode stdin reads plus SIGWINCH resizes."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import os
import shutil
import signal
import sys
import termios
import tty
from typing import Any

from .keys import KeyDecoder, Resize, TerminalEvent

_READ_SIZE = 1024


class TerminalInput:
    """Async iterator of terminal events read from a tty file descriptor.

    The terminal is put in cbreak mode (no echo, char-at-a-time, output
    processing kept so rich's newline handling still works) with ISIG
    cleared so Ctrl+C arrives as a key instead of SIGINT. Attributes are
    restored on close.
    """

    def __init__(self, fd: int | None = None, *, logger: logging.Logger | None = None) -> None:
        self.fd = sys.stdin.fileno() if fd is None else fd
        self.logger = logger or logging.getLogger("jenkins_tui.terminal")
        self._decoder = KeyDecoder()
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._queue: asyncio.Queue[TerminalEvent | None] = asyncio.Queue()
        self._saved_attrs: list[Any] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    async def __aenter__(self) -> TerminalInput:
        self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def __aiter__(self) -> TerminalInput:
        return self

    async def __anext__(self) -> TerminalEvent:
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._saved_attrs = termios.tcgetattr(self.fd)
        tty.setcbreak(self.fd)
        attrs = termios.tcgetattr(self.fd)
        attrs[3] &= ~termios.ISIG
        termios.tcsetattr(self.fd, termios.TCSADRAIN, attrs)
        self._loop.add_reader(self.fd, self._on_readable)
        if hasattr(signal, "SIGWINCH"):
            self._loop.add_signal_handler(signal.SIGWINCH, self._on_resize)

    def close(self) -> None:
        if self._loop is not None:
            self._loop.remove_reader(self.fd)
            if hasattr(signal, "SIGWINCH"):
                self._loop.remove_signal_handler(signal.SIGWINCH)
            self._loop = None
        if self._saved_attrs is not None:
            with contextlib.suppress(termios.error):
                termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved_attrs)
            self._saved_attrs = None

    def _on_readable(self) -> None:
        try:
            data = os.read(self.fd, _READ_SIZE)
        except BlockingIOError:
            return
        if not data:
            self.logger.info("Terminal input closed")
            if self._loop is not None:
                self._loop.remove_reader(self.fd)
            self._queue.put_nowait(None)
            return
        for event in self._decoder.feed(self._utf8.decode(data)):
            self._queue.put_nowait(event)

    def _on_resize(self) -> None:
        size = shutil.get_terminal_size()
        self._queue.put_nowait(Resize(size.columns, size.lines))
