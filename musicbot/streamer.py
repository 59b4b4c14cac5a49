"""Streaming audio from yt-dlp through ffmpeg into a voice connection."""

from __future__ import annotations

import contextlib
import logging
import subprocess
import sys
import threading
import time
from array import array
from collections import deque
from typing import BinaryIO, Iterator, Protocol

CHANNELS = 2
FRAME_RATE = 48000
FRAME_SIZE = 960
MAX_BYTES = FRAME_SIZE * 2 * 2
FRAME_BYTES = FRAME_SIZE * CHANNELS * 2
PAUSE_POLL_SECONDS = 0.1

logger = logging.getLogger(__name__)


class VoiceSink(Protocol):
    """The voice connection audio is sent to."""

    ready: bool

    def speaking(self, flag: bool) -> None: ...

    def send_pcm(self, frame: array) -> None: ...

    def disconnect(self) -> None: ...


def iter_frames(stream: BinaryIO) -> Iterator[array]:
    """Yield whole frames of signed 16-bit little-endian stereo PCM."""
    while True:
        chunk = stream.read(FRAME_BYTES)
        if not chunk or len(chunk) < FRAME_BYTES:
            return
        frame = array("h")
        frame.frombytes(chunk)
        if sys.byteorder == "big":
            frame.byteswap()
        yield frame


def build_pipeline_commands(url: str) -> tuple[list[str], list[str]]:
    """Return the downloader and decoder command lines for a URL."""
    downloader = ["yt-dlp", "-f", "bestaudio[ext=m4a]", "--no-playlist", "-o", "-", url]
    decoder = [
        "ffmpeg",
        "-re",
        "-i", "pipe:0",
        "-f", "s16le",
        "-ar", str(FRAME_RATE),
        "-ac", str(CHANNELS),
        "pipe:1",
    ]
    return downloader, decoder


class _FrameChannel:
    """A small bounded hand-off between the reader and the sender."""

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._items: deque = deque()
        self._cond = threading.Condition()
        self._closed = False

    def offer(self, item) -> bool:
        with self._cond:
            if self._closed or len(self._items) >= self._capacity:
                return False
            self._items.append(item)
            self._cond.notify()
            return True

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def __iter__(self):
        while True:
            with self._cond:
                while not self._items and not self._closed:
                    self._cond.wait()
                if not self._items:
                    return
                item = self._items.popleft()
            yield item


class Connection:
    """Plays one track at a time into a voice sink."""

    def __init__(self, voice: VoiceSink, *, popen=subprocess.Popen) -> None:
        self._voice = voice
        self._popen = popen
        self._lock = threading.Lock()
        self._channel: _FrameChannel | None = None
        self._sending = False
        self._stop_running = False
        self._playing = False
        self._decoder = None
        self._downloader = None

    def disconnect(self) -> None:
        self._voice.disconnect()

    def _send_frames(self, channel: _FrameChannel, paused: threading.Event) -> None:
        with self._lock:
            if self._sending:
                return
            self._sending = True
        try:
            for frame in channel:
                while paused.is_set():
                    time.sleep(PAUSE_POLL_SECONDS)
                if not self._voice.ready:
                    logger.warning("voice connection not ready for audio")
                    return
                self._voice.send_pcm(frame)
            logger.debug("frame channel closed, sender exiting")
        except Exception:
            logger.exception("audio sender failed")
        finally:
            with self._lock:
                self._sending = False

    def play(self, url: str, paused: threading.Event) -> None:
        """Stream ``url`` until it ends or :meth:`stop` is called.

        ``paused`` holds playback while it is set.
        """
        with self._lock:
            if self._playing:
                raise RuntimeError("song already playing")
            self._playing = True
            self._stop_running = False

        downloader_cmd, decoder_cmd = build_pipeline_commands(url)
        try:
            downloader = self._popen(downloader_cmd, stdout=subprocess.PIPE)
            try:
                decoder = self._popen(
                    decoder_cmd, stdin=downloader.stdout, stdout=subprocess.PIPE
                )
            except BaseException:
                with contextlib.suppress(OSError):
                    downloader.kill()
                raise
        except BaseException:
            with self._lock:
                self._playing = False
            raise
        downloader.stdout.close()
        with self._lock:
            self._downloader = downloader
            self._decoder = decoder

        self._voice.speaking(True)
        channel = _FrameChannel(2)
        try:
            with self._lock:
                if self._channel is not None:
                    self._channel.close()
                self._channel = channel
            threading.Thread(
                target=self._send_frames, args=(channel, paused), daemon=True
            ).start()

            frames = iter_frames(decoder.stdout)
            while True:
                with self._lock:
                    if self._stop_running:
                        with contextlib.suppress(OSError):
                            decoder.kill()
                        break
                    current = self._channel
                frame = next(frames, None)
                if frame is None:
                    break
                if current is not None:
                    current.offer(frame)  # a full channel drops the frame
        finally:
            channel.close()
            self._voice.speaking(False)
            with self._lock:
                self._playing = False
            with contextlib.suppress(OSError):
                decoder.stdout.close()
            decoder.wait()
            downloader.wait()

    def stop(self) -> None:
        """Stop the current track; calling it again has no effect."""
        with self._lock:
            if self._stop_running:
                return
            self._stop_running = True
            self._playing = False
            for process in (self._decoder, self._downloader):
                if process is not None:
                    with contextlib.suppress(OSError):
                        process.kill()
            channel, self._channel = self._channel, None
        if channel is not None:
            channel.close()