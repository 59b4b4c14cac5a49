from musicbot.sessions import AudioSessionManager, GuildAudioState


def test_new_state_is_not_paused():
    state = GuildAudioState()
    assert state.paused is False
    assert state.conn is None


def test_pause_and_resume_transitions():
    state = GuildAudioState()
    assert state.pause() is True
    assert state.paused is True
    assert state.pause() is False
    assert state.resume() is True
    assert state.paused is False
    assert state.resume() is False


def test_pause_sets_shared_event():
    state = GuildAudioState()
    state.pause()
    assert state.paused_event.is_set()


def test_manager_set_get_delete():
    manager = AudioSessionManager()
    state = GuildAudioState()
    assert manager.get("g") is None
    manager.set("g", state)
    assert manager.get("g") is state
    manager.delete("g")
    assert manager.get("g") is None


def test_manager_delete_missing_is_harmless():
    manager = AudioSessionManager()
    manager.delete("absent")
    assert manager.get("absent") is None


def test_manager_set_replaces():
    manager = AudioSessionManager()
    first, second = GuildAudioState(), GuildAudioState()
    manager.set("g", first)
    manager.set("g", second)
    assert manager.get("g") is second