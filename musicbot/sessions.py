"""Per-guild audio playback state."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from musicbot.streamer import Connection


@dataclass
class GuildAudioState:
    """The active connection of a guild and whether it is paused."""

    conn: Connection | None = None
    paused_event: threading.Event = field(default_factory=threading.Event)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def paused(self) -> bool:
        return self.paused_event.is_set()

    def pause(self) -> bool:
        """Pause playback; return False if it was already paused."""
        with self._lock:
            if self.paused_event.is_set():
                return False
            self.paused_event.set()
            return True

    def resume(self) -> bool:
        """Resume playback; return False if it was not paused."""
        with self._lock:
            if not self.paused_event.is_set():
                return False
            self.paused_event.clear()
            return True


class AudioSessionManager:
    """A thread-safe map from guild id to its audio state."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, GuildAudioState] = {}

    def get(self, guild_id: str) -> GuildAudioState | None:
        with self._lock:
            return self._sessions.get(guild_id)

    def set(self, guild_id: str, state: GuildAudioState) -> None:
        with self._lock:
            self._sessions[guild_id] = state

    def delete(self, guild_id: str) -> None:
        with self._lock:
            self._sessions.pop(guild_id, None)