"""Tests for the application state reducer."""

import pytest

from cecmpd.cec import decode_event
from cecmpd.models import AppState, CecEvent, PlaybackState, PlayerEvent, PlayerStatus
from cecmpd.reducer import AppStateReducer, is_app_state_changed, on_player_state_change
from conftest import RecordingEffects, bus_event

ON = bus_event("5f:72:01")
STANDBY = bus_event("5f:72:00")


def key(code: str) -> CecEvent:
    return bus_event(f"51:8b:{code}")


UP, DOWN, ENTER, RETURN = key("02"), key("01"), key("00"), key("0d")
PLAY, PAUSE, STOP, NEXT, PREVIOUS = key("44"), key("46"), key("45"), key("4b"), key("4c")
RED, GREEN, YELLOW = key("72"), key("73"), key("74")


@pytest.fixture
def reducer(effects):
    return AppStateReducer(effects, settle_delay=0.5)


class TestInitialSnapshot:
    """Tests for the first event of the fold."""

    def test_first_event_is_returned(self, reducer, playing_state):
        assert reducer(None, playing_state) is playing_state

    def test_first_event_must_be_state(self, reducer):
        with pytest.raises(TypeError):
            reducer(None, ON)


class TestPlayerEvents:
    """Tests for player status folding."""

    def test_play_hides_playlist(self, browsing_state):
        status = PlayerStatus.from_fields(
            {"state": "play", "song": "4", "playlistlength": "9", "elapsed": "1.5",
             "duration": "200.0", "repeat": "1", "random": "0"}
        )
        state = on_player_state_change(status, browsing_state)
        assert state.playback_state == PlaybackState.PLAY
        assert state.show_playlist is False
        assert state.song == "4"
        assert state.playlist_length == "9"
        assert state.elapsed == "1.5"
        assert state.duration == "200.0"
        assert state.repeat is True
        assert state.random is False

    def test_pause_hides_playlist(self, browsing_state):
        status = PlayerStatus(state=PlaybackState.PAUSE)
        assert on_player_state_change(status, browsing_state).show_playlist is False

    def test_stop_shows_playlist(self, playing_state):
        status = PlayerStatus(state=PlaybackState.STOP, random=True)
        state = on_player_state_change(status, playing_state)
        assert state.show_playlist is True
        assert state.playback_state == PlaybackState.STOP
        assert state.random is True

    def test_unknown_state_is_ignored(self, playing_state):
        status = PlayerStatus.from_fields({"state": "buffering"})
        state = on_player_state_change(status, playing_state)
        assert state == playing_state
        assert state is not playing_state

    def test_through_reducer(self, reducer, playing_state, effects):
        event = PlayerEvent(status=PlayerStatus(state=PlaybackState.STOP))
        assert reducer(playing_state, event).show_playlist is True
        assert effects.player_commands == []


class TestPowerChanges:
    """Tests for receiver power transitions."""

    def test_same_power_is_noop(self, reducer, playing_state, effects):
        state = reducer(playing_state, ON)
        assert state == playing_state
        assert effects.player_commands == []
        assert effects.cec_commands == []

    def test_turn_on_while_playing(self, reducer, playing_state):
        off = playing_state.replace(is_device_on=False)
        state = reducer(off, ON)
        assert state.is_device_on is True
        assert state.show_playlist is False

    def test_turn_on_while_stopped(self, reducer, browsing_state):
        off = browsing_state.replace(is_device_on=False, show_playlist=False)
        state = reducer(off, ON)
        assert state.is_device_on is True
        assert state.show_playlist is True

    def test_standby_pauses_and_reclaims_source(self, reducer, playing_state, effects):
        state = reducer(playing_state, STANDBY)
        assert state.is_device_on is False
        assert state.show_playlist is True
        assert effects.player_commands == [(("pause",), 0.0)]
        assert effects.cec_commands == [("as", 0.5, None)]

    def test_tv_follows_receiver_to_standby(self, playing_state):
        effects = RecordingEffects(tv_enabled=True)
        reducer = AppStateReducer(effects, settle_delay=0.5)
        state = reducer(playing_state, STANDBY)
        reducer(state, STANDBY)
        assert effects.tv_standbys == 1

    def test_only_differing_reports_change_power(self, reducer, playing_state):
        state = playing_state
        history = []
        for event in [ON, ON, STANDBY, STANDBY, ON, STANDBY]:
            previous = state.is_device_on
            state = reducer(state, event)
            history.append(state.is_device_on != previous)
        assert history == [False, False, True, False, True, True]


class TestPlaylistKeys:
    """Tests for remote keys while the playlist is shown."""

    def test_arrow_up_wraps(self, reducer, browsing_state):
        assert reducer(browsing_state, UP).playlist_index == 2

    def test_arrow_down_wraps(self, reducer, browsing_state):
        last = browsing_state.replace(playlist_index=2)
        assert reducer(last, DOWN).playlist_index == 0

    def test_arrows_with_no_playlists(self, reducer, browsing_state):
        empty = browsing_state.replace(playlists=(), playlist_index=0)
        assert reducer(empty, UP) == empty
        assert reducer(empty, DOWN) == empty

    def test_enter_loads_selected_playlist(self, reducer, browsing_state, effects):
        selected = browsing_state.replace(playlist_index=1)
        state = reducer(selected, ENTER)
        assert state == selected
        assert effects.player_commands == [(("clear", 'load "B"', "play"), 0.0)]

    def test_enter_quotes_playlist_name(self, reducer, browsing_state, effects):
        state = browsing_state.replace(playlists=('Say "Hi"',), playlist_index=0)
        reducer(state, ENTER)
        assert effects.player_commands[0][0][1] == 'load "Say \\"Hi\\""'

    def test_return_while_stopped_keeps_playlist(self, reducer, browsing_state):
        assert reducer(browsing_state, RETURN).show_playlist is True

    def test_return_while_paused_hides_playlist(self, reducer, browsing_state):
        paused = browsing_state.replace(playback_state=PlaybackState.PAUSE)
        assert reducer(paused, RETURN).show_playlist is False

    def test_transport_keys_ignored(self, reducer, browsing_state, effects):
        assert reducer(browsing_state, PLAY) == browsing_state
        assert effects.player_commands == []


class TestPlaybackKeys:
    """Tests for remote keys while the playback state is shown."""

    def test_return_shows_playlist(self, reducer, playing_state):
        assert reducer(playing_state, RETURN).show_playlist is True

    @pytest.mark.parametrize("event,command", [(PLAY, "play"), (PAUSE, "pause")])
    def test_play_pause_are_delayed(self, reducer, playing_state, effects, event, command):
        reducer(playing_state, event)
        assert effects.player_commands == [((command,), 0.5)]

    @pytest.mark.parametrize(
        "event,command", [(STOP, "stop"), (NEXT, "next"), (PREVIOUS, "previous")]
    )
    def test_immediate_keys(self, reducer, playing_state, effects, event, command):
        reducer(playing_state, event)
        assert effects.player_commands == [((command,), 0.0)]

    def test_red_toggles_repeat(self, reducer, playing_state, effects):
        reducer(playing_state, RED)
        reducer(playing_state.replace(repeat=True), RED)
        assert effects.player_commands == [(("repeat 1",), 0.5), (("repeat 0",), 0.5)]

    def test_green_toggles_random(self, reducer, playing_state, effects):
        reducer(playing_state, GREEN)
        assert effects.player_commands == [(("random 1",), 0.5)]

    def test_toggle_does_not_touch_state(self, reducer, playing_state):
        assert reducer(playing_state, RED).repeat is False

    def test_unmapped_key(self, reducer, playing_state, effects):
        assert reducer(playing_state, YELLOW) == playing_state
        assert effects.player_commands == []

    def test_noise_is_ignored(self, reducer, playing_state, effects):
        state = reducer(playing_state, decode_event("log: connection opened"))
        assert state == playing_state
        assert effects.player_commands == []
        assert effects.cec_commands == []


class TestIdempotence:
    """Re-applying a decode-only event yields equal states."""

    @pytest.mark.parametrize("event", [UP, DOWN, RETURN, ON, YELLOW])
    def test_same_input_same_output(self, reducer, browsing_state, event):
        assert reducer(browsing_state, event) == reducer(browsing_state, event)


class TestChangeSuppression:
    """Tests for is_app_state_changed."""

    def test_transient_fields_do_not_count(self, playing_state):
        later = playing_state.replace(song="4", elapsed="1.0", duration="100.0")
        assert is_app_state_changed(playing_state, later) is True

    def test_power_change_renders(self, playing_state):
        assert is_app_state_changed(playing_state, playing_state.replace(is_device_on=False)) is False

    def test_view_change_renders(self, playing_state):
        assert is_app_state_changed(playing_state, playing_state.replace(show_playlist=True)) is False

    def test_playlist_index_counts_in_playlist_view(self, browsing_state):
        moved = browsing_state.replace(playlist_index=1)
        assert is_app_state_changed(browsing_state, moved) is False

    def test_playback_fields_ignored_in_playlist_view(self, browsing_state):
        other = browsing_state.replace(playback_state=PlaybackState.PAUSE, repeat=True)
        assert is_app_state_changed(browsing_state, other) is True

    @pytest.mark.parametrize(
        "changes",
        [{"playback_state": PlaybackState.PAUSE}, {"repeat": True}, {"random": True}],
    )
    def test_playback_fields_count_in_playback_view(self, playing_state, changes):
        assert is_app_state_changed(playing_state, playing_state.replace(**changes)) is False


class TestAppStateInvariant:
    """Tests for the playlist index invariant."""

    def test_index_out_of_range(self):
        with pytest.raises(ValueError):
            AppState(playlists=("A",), playlist_index=1)

    def test_replace_validates(self, browsing_state):
        with pytest.raises(ValueError):
            browsing_state.replace(playlist_index=3)
