"""Chat commands that drive joining, queueing and playback."""

from __future__ import annotations

import contextlib
import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Protocol

from musicbot.sessions import AudioSessionManager, GuildAudioState
from musicbot.streamer import Connection
from musicbot.tracks import (
    LoopMode,
    Queue,
    QueueManager,
    Track,
    extract_playlist_tracks,
)
from musicbot.voice import VoiceManager

logger = logging.getLogger(__name__)

METADATA_FORMAT = "%(title)s|%(duration_string)s|%(uploader)s"
SEARCH_FORMAT = "%(title)s|%(duration_string)s|%(uploader)s|%(webpage_url)s"
SEARCH_RESULTS = 5


class ChatClient(Protocol):
    """The chat service the bot talks through."""

    user_id: str

    def send_message(self, channel_id: str, text: str) -> None: ...

    def voice_channel_of(self, guild_id: str, user_id: str) -> str | None: ...

    def join_voice(self, guild_id: str, channel_id: str, *, mute: bool, deaf: bool): ...

    def add_message_handler(self, handler: Callable[[Message], None]) -> Callable[[], None]: ...


@dataclass
class Message:
    """An incoming chat message."""

    guild_id: str
    channel_id: str
    author_id: str
    content: str = ""


@dataclass
class SearchResult:
    """One entry found by a search."""

    title: str
    duration: str
    uploader: str
    url: str


def parse_metadata(output: str) -> tuple[str, str, str] | None:
    """Split ``title|duration|uploader`` output; None if it is malformed."""
    parts = output.strip().split("|", 2)
    if len(parts) != 3:
        return None
    return parts[0], parts[1], parts[2]


def _fetch_metadata(args: list[str]) -> tuple[str, str, str] | None:
    try:
        result = subprocess.run(args, capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError):
        return None
    return parse_metadata(result.stdout)


def extract_metadata(track: Track) -> None:
    """Fill in a track's title, duration and uploader using yt-dlp."""
    metadata = _fetch_metadata(
        ["yt-dlp", "--quiet", "--no-warnings", "--no-playlist",
         "--print", METADATA_FORMAT, track.url]
    )
    if metadata is not None:
        track.title, track.duration, track.uploader = metadata


def parse_search_output(output: str) -> list[SearchResult]:
    """Parse ``title|duration|uploader|url`` lines, skipping malformed ones."""
    results = []
    for line in output.strip().split("\n"):
        parts = line.split("|", 3)
        if len(parts) != 4:
            continue
        results.append(SearchResult(*parts))
    return results


def _spawn_thread(func, *args) -> None:
    threading.Thread(target=func, args=args, daemon=True).start()


class BotCommand:
    """Carries out commands issued by one chat message."""

    SELECTION_TIMEOUT = 30.0

    def __init__(
        self,
        client: ChatClient,
        message: Message,
        voice_manager: VoiceManager,
        queue_manager: QueueManager,
        audio_sessions: AudioSessionManager,
        *,
        connection_factory: Callable = Connection,
        spawn: Callable = _spawn_thread,
    ) -> None:
        self.client = client
        self.message = message
        self.voice_manager = voice_manager
        self.queue_manager = queue_manager
        self.audio_sessions = audio_sessions
        self._connection_factory = connection_factory
        self._spawn = spawn

    @property
    def _guild_id(self) -> str:
        return self.message.guild_id

    def _send(self, text: str) -> None:
        self.client.send_message(self.message.channel_id, text)

    def _queue(self) -> Queue:
        return self.queue_manager.get(self._guild_id)

    def _user_voice_channel(self) -> str:
        return self.client.voice_channel_of(self._guild_id, self.message.author_id) or ""

    def join(self) -> None:
        channel_id = self._user_voice_channel()
        if not channel_id:
            self._send("You must be in a voice channel.")
            return
        try:
            self.voice_manager.join(self.client, self._guild_id, channel_id)
        except Exception as err:
            self._send(f"Failed to join VC: {err}")
            return
        self._send("Joined your voice channel.")

    def leave(self) -> None:
        state = self.audio_sessions.get(self._guild_id)
        if state is not None:
            state.conn.stop()
            self.audio_sessions.delete(self._guild_id)

        queue = self._queue()
        queue.clear()
        queue.is_playing = False

        try:
            self.voice_manager.leave(self._guild_id)
        except Exception as err:
            self._send(f"⚠️ Failed to leave VC: {err}")
            return
        self._send("👋 Disconnected from voice channel.")

    def play(self, query: str) -> None:
        """Queue a URL or playlist and start playback if idle."""
        if not self._user_voice_channel():
            self._send("🔊 You must be in a voice channel.")
            return

        voice = self.voice_manager.get(self._guild_id)
        if voice is None:
            self.join()
            voice = self.voice_manager.get(self._guild_id)
            if voice is None:
                self._send("❌ Failed to join your voice channel.")
                return

        queue = self._queue()

        if "playlist?" in query:
            try:
                tracks = extract_playlist_tracks(query)
            except (OSError, subprocess.CalledProcessError):
                tracks = []
            if not tracks:
                self._send("⚠️ Failed to extract playlist.")
                return
            queue.enqueue_multiple(tracks)
            self._send(f"📜 Enqueued {len(tracks)} tracks from playlist.")
            for track in tracks:
                self._spawn(extract_metadata, track)
        else:
            track = Track(url=query, title=query)
            queue.enqueue(track)
            self._send("🎶 Added to queue.")
            self._spawn(extract_metadata, track)

        if self.audio_sessions.get(self._guild_id) is None:
            self.audio_sessions.set(
                self._guild_id, GuildAudioState(conn=self._connection_factory(voice))
            )

        if queue.is_playing:
            return
        self._spawn(self._start_queue_playback, voice, queue)

    def _start_queue_playback(self, voice, queue: Queue) -> None:
        queue.is_playing = True
        try:
            while (track := queue.dequeue()) is not None:
                queue.current_track = track
                self._spawn(self.now_playing)
                state = GuildAudioState(conn=self._connection_factory(voice))
                self.audio_sessions.set(self._guild_id, state)
                try:
                    state.conn.play(track.url, state.paused_event)
                except Exception as err:
                    self._send(f"⚠️ Error playing track: {err}")
        finally:
            queue.is_playing = False
            queue.current_track = None
            with contextlib.suppress(Exception):
                self.voice_manager.leave(self._guild_id)
            self._send("👋 Finished playback. Left the voice channel.")

    def stop(self) -> None:
        queue = self._queue()
        queue.clear()
        queue.is_playing = False

        state = self.audio_sessions.get(self._guild_id)
        if state is not None:
            state.conn.stop()
            self.audio_sessions.delete(self._guild_id)

        self._send("⏹️ Stopped playback and cleared the queue.")

    def skip(self) -> None:
        queue = self._queue()
        state = self.audio_sessions.get(self._guild_id)
        if state is None or state.conn is None:
            self._send("❌ Nothing is currently playing.")
            return
        queue.current_track = None
        state.conn.stop()
        self._send("⏭️ Skipped current track.")

    def queue(self) -> None:
        queue = self._queue()
        tracks = queue.list()

        lines = []
        if queue.current_track is not None:
            lines.append(f"🎶 Now Playing: {queue.current_track.url}\n")
        else:
            lines.append("📭 Nothing is currently playing.\n")

        if not tracks:
            lines.append("🕳️ The queue is empty.")
        else:
            lines.append("🎼 Upcoming Queue:\n")
            lines.extend(f"{pos}. {track.url}\n" for pos, track in enumerate(tracks, 1))

        self._send("".join(lines))

    def now_playing(self) -> None:
        track = self._queue().current_track
        if track is None:
            self._send("❌ Nothing is playing.")
            return
        self._send(
            f"🎶 Now Playing: {track.title}\n"
            f"⏱️ Duration: {track.duration}\n"
            f"👤 Uploader: {track.uploader}"
        )

    def pause(self) -> None:
        state = self.audio_sessions.get(self._guild_id)
        if state is None:
            self._send("❌ Nothing is playing.")
        elif state.pause():
            self._send("⏸️ Paused playback.")
        else:
            self._send("⏸️ Already paused.")

    def resume(self) -> None:
        state = self.audio_sessions.get(self._guild_id)
        if state is None:
            self._send("❌ Nothing is playing.")
        elif state.resume():
            self._send("▶️ Resumed playback.")
        else:
            self._send("▶️ Already playing.")

    def set_loop_mode(self, mode: str) -> None:
        loop = {"one": LoopMode.ONE, "all": LoopMode.ALL}.get(mode, LoopMode.OFF)
        self._queue().loop_mode = loop
        self._send(f"🔁 Loop mode set to: {loop}")

    def toggle_loop_mode(self) -> None:
        mode = self._queue().toggle_loop_mode()
        self._send(f"🔄 Toggled loop mode: {mode}")

    def clear_queue(self) -> None:
        self._queue().clear()
        self._send("🧹 Cleared the queue.")

    def shuffle_queue(self) -> None:
        self._queue().shuffle()
        self._send("🔀 Queue shuffled.")

    def remove_from_queue(self, index: int) -> None:
        """Remove the track at a 1-based position."""
        try:
            self._queue().remove(index - 1)
        except IndexError:
            self._send("⚠️ Invalid index.")
            return
        self._send(f"❌ Removed track {index} from queue.")

    def insert_into_queue(self, index: int, url: str) -> None:
        """Insert a URL at a 1-based position, fetching its metadata first."""
        metadata = _fetch_metadata(["yt-dlp", "--print", METADATA_FORMAT, url])
        title, duration, uploader = metadata if metadata is not None else (url, "", "")
        track = Track(url=url, title=title, duration=duration, uploader=uploader)
        try:
            self._queue().insert(index - 1, track)
        except IndexError:
            self._send("⚠️ Invalid insert position.")
            return
        self._send(f"➕ Inserted at position {index}: {title}")

    def move_in_queue(self, source: int, target: int) -> None:
        """Move a track between 1-based positions."""
        try:
            self._queue().move(source - 1, target - 1)
        except IndexError:
            self._send("⚠️ Invalid move. Check positions and try again.")
            return
        self._send(f"🔁 Moved track from position {source} to {target}.")

    def search(self, query: str) -> None:
        """List the top results for a query and wait for the user to pick one."""
        try:
            result = subprocess.run(
                ["yt-dlp", f"ytsearch{SEARCH_RESULTS}:{query}", "--print", SEARCH_FORMAT],
                capture_output=True,
                text=True,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as err:
            self._send(f"❌ Search failed: {err}")
            return

        results = parse_search_output(result.stdout)
        lines = ["**🔍 Search Results:**\n"]
        lines.extend(
            f"{pos}. [{r.title}]({r.url}) — {r.duration} by {r.uploader}\n"
            for pos, r in enumerate(results, 1)
        )
        lines.append("\nReply with the number to select a track.")
        self._send("".join(lines))

        self._wait_for_selection(results)

    def _wait_for_selection(self, results: list[SearchResult]) -> None:
        lock = threading.Lock()
        removed = False
        unregister: Callable[[], None] = lambda: None

        def remove() -> None:
            nonlocal removed
            with lock:
                if removed:
                    return
                removed = True
            unregister()

        def handler(message: Message) -> None:
            selected = self.handle_selection(results, message)
            if selected is None:
                return
            remove()
            self.play(selected.url)

        unregister = self.client.add_message_handler(handler)
        timer = threading.Timer(self.SELECTION_TIMEOUT, remove)
        timer.daemon = True
        timer.start()

    def handle_selection(self, results: list[SearchResult], message: Message) -> SearchResult | None:
        """Check a reply to a search; return the chosen result, or None.

        Replies from other users or channels are ignored; invalid choices are
        answered with a hint.
        """
        if (
            message.author_id != self.message.author_id
            or message.channel_id != self.message.channel_id
        ):
            return None
        try:
            choice = int(message.content.strip())
        except ValueError:
            choice = 0
        if not 1 <= choice <= len(results):
            self._send("❌ Invalid choice. Please enter a number from 1 to 5.")
            return None
        selected = results[choice - 1]
        self._send(f"🎶 Selected: {selected.title}")
        return selected