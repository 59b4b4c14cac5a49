import pytest

from musicbot.voice import VoiceManager


class FakeVoice:
    def __init__(self, fail=False):
        self.disconnects = 0
        self.fail = fail

    def disconnect(self):
        self.disconnects += 1
        if self.fail:
            raise ConnectionError("lost")


class FakeClient:
    def __init__(self, voice=None, error=None):
        self.voice = voice
        self.error = error
        self.calls = []

    def join_voice(self, guild_id, channel_id, mute, deaf):
        self.calls.append((guild_id, channel_id, mute, deaf))
        if self.error:
            raise self.error
        return self.voice


def test_join_stores_connection():
    voice = FakeVoice()
    client = FakeClient(voice)
    manager = VoiceManager()
    assert manager.join(client, "g", "c") is voice
    assert manager.get("g") is voice
    assert client.calls == [("g", "c", False, True)]


def test_join_failure_stores_nothing():
    manager = VoiceManager()
    with pytest.raises(ConnectionError):
        manager.join(FakeClient(error=ConnectionError("no")), "g", "c")
    assert manager.get("g") is None


def test_leave_disconnects_and_forgets():
    voice = FakeVoice()
    manager = VoiceManager()
    manager.join(FakeClient(voice), "g", "c")
    manager.leave("g")
    assert voice.disconnects == 1
    assert manager.get("g") is None


def test_leave_unknown_guild_is_noop():
    manager = VoiceManager()
    manager.leave("nothing")
    assert manager.get("nothing") is None


def test_leave_error_propagates_but_forgets():
    voice = FakeVoice(fail=True)
    manager = VoiceManager()
    manager.join(FakeClient(voice), "g", "c")
    with pytest.raises(ConnectionError):
        manager.leave("g")
    assert manager.get("g") is None