"""Tests for the startup power handshake."""

from cecmpd.cec import decode
from cecmpd.handshake import PowerHandshake, PowerHandshakeState
from conftest import traffic


class TestPowerHandshake:
    """Tests for PowerHandshake."""

    def test_waits_for_display_name_request(self, effects):
        handshake = PowerHandshake(effects)
        assert handshake(decode(traffic("5f:72:01"))) is None
        assert handshake.state is PowerHandshakeState.IDLE
        assert effects.sent == []

    def test_queries_power_after_probe(self, effects):
        handshake = PowerHandshake(effects)
        assert handshake(decode(traffic("51:46"))) is None
        assert handshake.state is PowerHandshakeState.AWAITING_RESPONSE
        assert effects.sent == ["pow 5"]

    def test_first_report_wins(self, effects):
        handshake = PowerHandshake(effects)
        handshake(decode(traffic("51:46")))
        assert handshake(decode(traffic("51:8b:44"))) is None
        assert handshake(decode(traffic("51:90:01"))) is False
        assert handshake.done
        assert handshake(decode(traffic("51:90:00"))) is False
        assert effects.sent == ["pow 5"]

    def test_broadcast_counts_as_report(self, effects):
        handshake = PowerHandshake(effects)
        handshake(decode(traffic("51:46")))
        assert handshake(decode(traffic("5f:72:01"))) is True
