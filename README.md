# musicbot

The core of a chat music bot. It keeps one track queue per guild and supports
loop modes. It tracks voice connections and playback sessions, and it turns
chat messages that start with `>` into commands. Audio is streamed through an
external `yt-dlp` → `ffmpeg` pipeline that produces 48 kHz stereo signed
16-bit PCM frames.

## Requirements

- Python 3.10 or later
- `yt-dlp` and `ffmpeg` on your `PATH`. They are used for playback, search,
  metadata and playlist extraction.

## Installation

```
pip install .
```

## Modules

- `musicbot.tracks`
  - `Track`, `LoopMode` (`OFF`, `ONE`, `ALL`), `Queue` and `QueueManager`.
  - `parse_playlist_output` and `extract_playlist_tracks`, for playlists.
  - `Queue.remove`, `Queue.insert` and `Queue.move` take 0-based indexes. They
    raise `IndexError` for positions that are out of range.
- `musicbot.streamer`
  - `Connection` runs the audio pipeline for one track at a time and hands
    PCM frames to a `VoiceSink`. `Connection.play` blocks until the track
    ends or `Connection.stop` is called. It holds playback while the given
    `threading.Event` is set. It raises `RuntimeError` if a track is already
    playing.
  - `build_pipeline_commands` returns the two command lines of the pipeline.
  - `iter_frames` splits a PCM stream into frames of 960 samples per channel.
- `musicbot.sessions`
  - `GuildAudioState` holds a guild's connection and its paused state.
    `pause()` and `resume()` return `False` when they change nothing.
  - `AudioSessionManager` maps guild ids to their state.
- `musicbot.voice`
  - `VoiceManager` keeps one voice connection per guild.
- `musicbot.commands`
  - `BotCommand` has one method for each chat command.
  - `ChatClient` and `Message` describe the chat side. `SearchResult` holds
    one search hit.
  - `parse_metadata`, `extract_metadata` and `parse_search_output` read the
    output of `yt-dlp`.
- `musicbot.handler`
  - `Bot` routes incoming messages to commands through `Bot.on_message`.

## Working with the queue

```python
from musicbot.tracks import LoopMode, QueueManager, Track

queues = QueueManager()
queue = queues.get("guild-1")
queue.enqueue(Track(url="https://example.com/a", title="a"))
queue.enqueue(Track(url="https://example.com/b", title="b"))
queue.loop_mode = LoopMode.ALL
track = queue.dequeue()   # "a"; with LoopMode.ALL it goes back to the end
queue.toggle_loop_mode()  # cycles off -> one -> all -> off
```

## Connecting a chat service

`Bot` needs a client object that has the following:

- `user_id`: the bot's own user id. Messages from this id are ignored.
- `send_message(channel_id, text)`
- `voice_channel_of(guild_id, user_id)`: returns the voice channel the user
  is in, or `None`.
- `join_voice(guild_id, channel_id, *, mute, deaf)`: returns a voice
  connection. That connection must have `ready`, `speaking(flag)`,
  `send_pcm(frame)` and `disconnect()`.
- `add_message_handler(handler)`: returns a function that removes the handler
  again. It is used to wait for the reply to `>search`.

Pass each incoming message to the bot as a `Message`:

```python
from musicbot.commands import Message
from musicbot.handler import Bot

bot = Bot(client)
bot.on_message(Message(guild_id="g1", channel_id="c1", author_id="u1", content=">ping"))
```

## Chat commands

- `>ping`, `>help` and `>info`
- `>join` and `>leave`
- `>play <url>`: queues a video. A URL that contains `playlist?` queues the
  whole playlist. Playback starts if nothing is playing. When the queue runs
  out, the bot leaves the voice channel.
- `>pause`, `>resume`, `>skip` and `>stop`
- `>queue`, `>queue clear` and `>queue shuffle`
- `>queue insert <index> <url>`, `>queue remove <index>` and
  `>queue move <from> <to>`: positions count from 1.
- `>loop one|all|off|toggle`
- `>nowplaying`
- `>search <query>`: lists the top five results. The same user can reply in
  the same channel with a number within 30 seconds to play that result.

## What the package does not do

- It has no chat-service client and no program to start. You connect it to a
  service yourself through the client object described above.
- It does not encode audio for transmission. The voice connection receives
  raw PCM frames (`array` of signed 16-bit samples, stereo interleaved) and
  has to encode them itself.

## Tests

```
pip install .[test]
pytest
```