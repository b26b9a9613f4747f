"""Line sources — follow a file by path, or read a stream.

Tailer follows a path the way ``tail -F`` does:
  * starts at end of file (or at the beginning with ``from_start``);
  * waits for the file to appear if it does not exist yet;
  * notices rotation (the path now points at a different inode) and
    truncation (the file shrank below the read offset) and reopens the
    path from the beginning.

Lines are yielded without their trailing newline.  Bytes are decoded as
UTF-8 with replacement, so a corrupt byte never stops the stream.
"""
from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import BinaryIO, Iterator, TextIO

logger = logging.getLogger(__name__)


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\r")


class Tailer:
    """Yield lines appended to a file, surviving rotation and truncation.

    Usage::

        stop = threading.Event()
        for line in Tailer("/var/log/nginx/access.log").lines(stop):
            chain.handle(line)
    """

    def __init__(
        self,
        path: str | Path,
        interval: float = 0.25,
        from_start: bool = False,
        follow: bool = True,
    ) -> None:
        self.path = Path(path)
        self.interval = interval
        self.from_start = from_start
        self.follow = follow

    def _open(self, at_end: bool) -> BinaryIO | None:
        try:
            fh = open(self.path, "rb")
        except FileNotFoundError:
            return None
        if at_end:
            fh.seek(0, os.SEEK_END)
        logger.debug("Opened %s at offset %d", self.path, fh.tell())
        return fh

    def _wait_open(self, at_end: bool, stop: threading.Event) -> BinaryIO | None:
        fh = self._open(at_end)
        if fh is None and self.follow:
            logger.info("Waiting for %s to appear", self.path)
        while fh is None:
            if not self.follow or stop.wait(self.interval):
                return None
            fh = self._open(at_end)
        return fh

    def _rotated(self, fh: BinaryIO) -> bool:
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            # Moved away, replacement not created yet: keep draining the old handle
            return False
        if st.st_ino != os.fstat(fh.fileno()).st_ino:
            return True
        return st.st_size < fh.tell()

    def lines(self, stop: threading.Event | None = None) -> Iterator[str]:
        """Yield lines until stop is set (or EOF, when not following)."""
        stop = stop or threading.Event()
        fh = self._wait_open(at_end=not self.from_start, stop=stop)
        if fh is None:
            return
        pending = b""
        try:
            while True:
                chunk = fh.read(65536)
                if chunk:
                    pending += chunk
                    *complete, pending = pending.split(b"\n")
                    for raw in complete:
                        yield _decode(raw)
                    continue

                if not self.follow or stop.is_set():
                    if pending and not self.follow:
                        yield _decode(pending)
                    return

                if self._rotated(fh):
                    logger.info("%s was rotated or truncated; reopening", self.path)
                    if pending:
                        yield _decode(pending)
                        pending = b""
                    fh.close()
                    reopened = self._wait_open(at_end=False, stop=stop)
                    if reopened is None:
                        return
                    fh = reopened
                    continue

                stop.wait(self.interval)
        finally:
            fh.close()


def stream_lines(stream: TextIO) -> Iterator[str]:
    """Yield lines from an already-open text stream (e.g. stdin)."""
    for line in stream:
        yield line.rstrip("\r\n")
