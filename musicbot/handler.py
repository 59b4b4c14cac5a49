"""Dispatching of chat messages to bot commands."""

from __future__ import annotations

import re
import threading
from typing import Callable

from musicbot.commands import BotCommand, ChatClient, Message
from musicbot.sessions import AudioSessionManager
from musicbot.streamer import Connection
from musicbot.tracks import QueueManager
from musicbot.voice import VoiceManager

PREFIX = ">"

HELP_TEXT = (
    "Available commands:\n"
    "`>ping` - Responds with Pong>\n"
    "`>help` - Displays this help message\n"
    "`>join`, `>leave` - Voice connection\n"
    "`>play <url>` - Play a YouTube video or playlist\n"
    "`>pause`, `>resume`, `>skip`, `>stop`\n"
    "`>queue` - Show queue\n"
    "`>queue clear|shuffle` - Manage queue\n"
    "`>queue insert <index> <url>`\n"
    "`>queue remove <index>`\n"
    "`>queue move <from> <to>`\n"
    "`>loop one|all|off|toggle` - Set loop mode\n"
    "`>nowplaying`, `>search <query>`"
)

INFO_TEXT = (
    "🎵 This is a music bot written in Go using DiscordGo.\n"
    "Supports playback, queues, and loop modes."
)

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _parse_int(text: str) -> int | None:
    """Parse a plain decimal integer; None if the text is not one."""
    if _INTEGER.fullmatch(text) is None:
        return None
    return int(text)


def _spawn_thread(func, *args) -> None:
    threading.Thread(target=func, args=args, daemon=True).start()


class Bot:
    """Routes incoming messages to the matching command."""

    def __init__(
        self,
        client: ChatClient,
        *,
        voice_manager: VoiceManager | None = None,
        queue_manager: QueueManager | None = None,
        audio_sessions: AudioSessionManager | None = None,
        connection_factory: Callable = Connection,
        spawn: Callable = _spawn_thread,
    ) -> None:
        self.client = client
        self.voice_manager = voice_manager or VoiceManager()
        self.queue_manager = queue_manager or QueueManager()
        self.audio_sessions = audio_sessions or AudioSessionManager()
        self._connection_factory = connection_factory
        self._spawn = spawn

    def _command(self, message: Message) -> BotCommand:
        return BotCommand(
            self.client,
            message,
            self.voice_manager,
            self.queue_manager,
            self.audio_sessions,
            connection_factory=self._connection_factory,
            spawn=self._spawn,
        )

    def on_message(self, message: Message) -> None:
        """Handle one incoming chat message."""
        if message.author_id == self.client.user_id:
            return

        args = message.content.split()
        if not args or not args[0].startswith(PREFIX):
            return

        def reply(text: str) -> None:
            self.client.send_message(message.channel_id, text)

        cmd = self._command(message)
        name, rest = args[0], args[1:]

        if name == ">ping":
            reply("Pong!")
        elif name == ">help":
            reply(HELP_TEXT)
        elif name == ">info":
            reply(INFO_TEXT)
        elif name == ">join":
            cmd.join()
        elif name == ">play":
            if not rest:
                reply("Usage: `>play <youtube_url>`")
                return
            cmd.play(rest[0])
        elif name == ">leave":
            cmd.leave()
        elif name == ">skip":
            cmd.skip()
        elif name == ">queue":
            self._queue_command(cmd, args, reply)
        elif name == ">stop":
            cmd.stop()
        elif name == ">nowplaying":
            cmd.now_playing()
        elif name == ">pause":
            cmd.pause()
        elif name == ">resume":
            cmd.resume()
        elif name == ">loop":
            if not rest:
                reply("Usage: `>loop one | all | off | toggle`")
                return
            mode = rest[0]
            if mode in ("one", "all", "off"):
                cmd.set_loop_mode(mode)
            elif mode == "toggle":
                cmd.toggle_loop_mode()
            else:
                reply("Invalid loop mode. Use: `one`, `all`, `off`, or `toggle`.")
        elif name == ">search":
            query = " ".join(rest).strip()
            if not query:
                reply("Usage: `>search <query>`")
                return
            self._spawn(cmd.search, query)
        else:
            reply("Unknown command. Type `>help` for available commands.")

    @staticmethod
    def _queue_command(cmd: BotCommand, args: list[str], reply: Callable[[str], None]) -> None:
        count = len(args)
        sub = args[1] if count > 1 else ""

        if count == 2 and sub == "clear":
            cmd.clear_queue()
        elif count == 2 and sub == "shuffle":
            cmd.shuffle_queue()
        elif count == 3 and sub == "remove":
            index = _parse_int(args[2])
            if index is None:
                reply("⚠️ Invalid index.")
                return
            cmd.remove_from_queue(index)
        elif count >= 4 and sub == "insert":
            index = _parse_int(args[2])
            if index is None:
                reply("⚠️ Invalid index.")
                return
            cmd.insert_into_queue(index, args[3])
        elif count == 4 and sub == "move":
            source = _parse_int(args[2])
            target = _parse_int(args[3])
            if source is None or target is None:
                reply("⚠️ Invalid move positions.")
                return
            cmd.move_in_queue(source, target)
        else:
            cmd.queue()