"""Tracks, per-guild play queues and playlist extraction."""

from __future__ import annotations

import random
import subprocess
import threading
from dataclasses import dataclass
from enum import IntEnum

WATCH_URL_PREFIX = "https://www.youtube.com/watch?v="


class LoopMode(IntEnum):
    """How the queue repeats tracks."""

    OFF = 0
    ONE = 1
    ALL = 2

    def __str__(self) -> str:
        return self.name.lower()


@dataclass
class Track:
    """A playable item and the metadata known about it."""

    url: str
    title: str = ""
    duration: str = ""
    uploader: str = ""


class Queue:
    """A thread-safe queue of upcoming tracks for one guild."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.tracks: list[Track] = []
        self.is_playing = False
        self.current_track: Track | None = None
        self._loop_mode = LoopMode.OFF

    @property
    def loop_mode(self) -> LoopMode:
        with self._lock:
            return self._loop_mode

    @loop_mode.setter
    def loop_mode(self, mode: LoopMode) -> None:
        with self._lock:
            self._loop_mode = LoopMode(mode)

    def enqueue(self, track: Track) -> None:
        with self._lock:
            self.tracks.append(track)

    def enqueue_multiple(self, tracks) -> None:
        with self._lock:
            self.tracks.extend(tracks)

    def dequeue(self) -> Track | None:
        """Return the next track to play, or None when nothing is left."""
        with self._lock:
            if self.current_track is not None and self._loop_mode is LoopMode.ONE:
                return self.current_track
            if not self.tracks:
                return None
            track = self.tracks.pop(0)
            if self._loop_mode is LoopMode.ALL:
                self.tracks.append(track)
            self.current_track = track
            return track

    def list(self) -> list[Track]:
        """Return a snapshot of the upcoming tracks."""
        with self._lock:
            return list(self.tracks)

    def clear(self) -> None:
        with self._lock:
            self.tracks = []
            self.current_track = None

    def toggle_loop_mode(self) -> LoopMode:
        """Advance to the next loop mode and return it."""
        with self._lock:
            self._loop_mode = LoopMode((self._loop_mode + 1) % len(LoopMode))
            return self._loop_mode

    def shuffle(self) -> None:
        """Shuffle the upcoming tracks; the current track is untouched."""
        with self._lock:
            random.shuffle(self.tracks)

    def remove(self, index: int) -> Track:
        """Remove and return the track at a 0-based index."""
        with self._lock:
            if not 0 <= index < len(self.tracks):
                raise IndexError(f"no track at position {index}")
            return self.tracks.pop(index)

    def insert(self, index: int, track: Track) -> None:
        """Insert a track at a 0-based index (up to the queue length)."""
        with self._lock:
            if not 0 <= index <= len(self.tracks):
                raise IndexError(f"cannot insert at position {index}")
            self.tracks.insert(index, track)

    def move(self, source: int, target: int) -> None:
        """Move the track at ``source`` so that it ends up at ``target``."""
        with self._lock:
            size = len(self.tracks)
            if not (0 <= source < size and 0 <= target < size):
                raise IndexError(f"cannot move track from {source} to {target}")
            track = self.tracks.pop(source)
            self.tracks.insert(target, track)


class QueueManager:
    """Holds one queue per guild, created on first use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queues: dict[str, Queue] = {}

    def get(self, guild_id: str) -> Queue:
        with self._lock:
            return self._queues.setdefault(guild_id, Queue())


def parse_playlist_output(output: str) -> list[Track]:
    """Parse ``title|url`` lines into tracks, skipping malformed lines."""
    tracks = []
    for line in output.strip().split("\n"):
        title, sep, url = line.partition("|")
        if not sep:
            continue
        if not url.startswith("http"):
            url = WATCH_URL_PREFIX + url
        tracks.append(Track(url=url, title=title))
    return tracks


def extract_playlist_tracks(playlist_url: str) -> list[Track]:
    """List the entries of a playlist using yt-dlp."""
    result = subprocess.run(
        ["yt-dlp", "--flat-playlist", "--print", "%(title)s|%(url)s", playlist_url],
        capture_output=True,
        text=True,
        check=True,
    )
    return parse_playlist_output(result.stdout)