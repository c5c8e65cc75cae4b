"""Keyboard input pump.

A background thread polls the terminal and feeds one ordered channel with
``KeyPress`` messages as keys arrive and a ``Tick`` at a fixed cadence, so the
main loop wakes up even when nobody types.
"""

from __future__ import annotations

import codecs
import os
import queue
import select
import termios
import threading
import time
import tty
from dataclasses import dataclass
from typing import Callable, Optional, Union

from loguru import logger

KEY_UP = "UP"
KEY_DOWN = "DOWN"
KEY_LEFT = "LEFT"
KEY_RIGHT = "RIGHT"
KEY_ENTER = "ENTER"
KEY_ESCAPE = "ESC"
KEY_BACKSPACE = "BACKSPACE"
KEY_TAB = "TAB"
KEY_MOUSE = "MOUSE"
KEY_UNKNOWN = "UNKNOWN"


class InputSourceError(RuntimeError):
    """The terminal could not be polled for key events."""


class ChannelClosed(Exception):
    pass


@dataclass(frozen=True)
class KeyPress:
    key: str


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class InputFailure:
    error: BaseException


Message = Union[KeyPress, Tick, InputFailure]


class Channel:
    """Unbounded FIFO with a closed flag so the producer can notice a gone consumer."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[Message]" = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, message: Message) -> None:
        if self._closed.is_set():
            raise ChannelClosed()
        self._queue.put(message)

    def recv(self, timeout: Optional[float] = None) -> Message:
        return self._queue.get(timeout=timeout)

    def close(self) -> None:
        self._closed.set()


class KeySource:
    """Reads keys from a tty file descriptor."""

    def __init__(self, fd: int, escape_timeout: float = 0.02):
        self.fd = fd
        self.escape_timeout = escape_timeout
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def poll(self, timeout: float) -> bool:
        ready, _, _ = select.select([self.fd], [], [], timeout)
        return bool(ready)

    def read_key(self) -> str:
        first = os.read(self.fd, 1)
        if not first:
            raise InputSourceError("terminal input closed")
        if first == b"\x1b":
            seq = "\x1b"
            while len(seq) < 12 and self.poll(self.escape_timeout):
                nxt = os.read(self.fd, 1).decode("latin-1")
                seq += nxt
                if len(seq) > 2 and (nxt.isalpha() or nxt == "~"):
                    break
            return normalize_key(seq)

        char = self._decoder.decode(first)
        while not char and self.poll(self.escape_timeout):
            char = self._decoder.decode(os.read(self.fd, 1))
        return normalize_key(char) if char else KEY_UNKNOWN


def normalize_key(key: str) -> str:
    if key.startswith("\x1b[") or key.startswith("\x1bO"):
        last = key[-1]
        if last == "A":
            return KEY_UP
        if last == "B":
            return KEY_DOWN
        if last == "C":
            return KEY_RIGHT
        if last == "D":
            return KEY_LEFT
        if "[<" in key or key.startswith("\x1b[M"):
            return KEY_MOUSE
        return KEY_UNKNOWN
    if key.startswith("\x1b"):
        return KEY_ESCAPE
    if key in ("\r", "\n"):
        return KEY_ENTER
    if key in ("\x7f", "\b"):
        return KEY_BACKSPACE
    if key == "\t":
        return KEY_TAB
    return key


class InputPump(threading.Thread):
    def __init__(
        self,
        channel: Channel,
        source: KeySource,
        tick_interval: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(name="xpedia-input", daemon=True)
        self.channel = channel
        self.source = source
        self.tick_interval = tick_interval
        self.clock = clock
        self._stopping = threading.Event()

    def stop(self) -> None:
        self._stopping.set()

    def run(self) -> None:
        logger.debug("Input pump started (tick={}s)", self.tick_interval)
        try:
            self._pump()
        except ChannelClosed:
            pass
        logger.debug("Input pump stopped")

    def _pump(self) -> None:
        last_tick = self.clock()
        while not self._stopping.is_set():
            timeout = max(0.0, self.tick_interval - (self.clock() - last_tick))
            try:
                if self.source.poll(timeout):
                    key = self.source.read_key()
                    self.channel.send(KeyPress(key))
            except (OSError, ValueError, termios.error, InputSourceError) as exc:
                logger.error("Cannot poll terminal input: {}", exc)
                self.channel.send(InputFailure(exc))
                return

            if self.clock() - last_tick >= self.tick_interval:
                self.channel.send(Tick())
                last_tick = self.clock()


class RawTerminal:
    """Puts a tty into character-at-a-time mode and always restores it."""

    def __init__(self, fd: int):
        self.fd = fd
        self._saved = None

    def __enter__(self) -> "RawTerminal":
        try:
            self._saved = termios.tcgetattr(self.fd)
            tty.setcbreak(self.fd)
        except termios.error as exc:
            raise InputSourceError(f"cannot configure terminal: {exc}") from exc
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._saved is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)
            self._saved = None
