"""Tracking of voice connections per guild."""

from __future__ import annotations

import threading


class VoiceManager:
    """Joins, remembers and leaves voice channels, one per guild.

    The chat client passed to :meth:`join` must offer
    ``join_voice(guild_id, channel_id, mute=..., deaf=...)`` returning a
    connection with a ``disconnect()`` method.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: dict = {}

    def join(self, client, guild_id: str, channel_id: str):
        """Join a voice channel and remember the connection."""
        connection = client.join_voice(guild_id, channel_id, mute=False, deaf=True)
        with self._lock:
            self._connections[guild_id] = connection
        return connection

    def leave(self, guild_id: str) -> None:
        """Disconnect and forget the guild's connection, if any."""
        with self._lock:
            connection = self._connections.pop(guild_id, None)
            if connection is not None:
                connection.disconnect()

    def get(self, guild_id: str):
        """Return the guild's connection, or None."""
        with self._lock:
            return self._connections.get(guild_id)