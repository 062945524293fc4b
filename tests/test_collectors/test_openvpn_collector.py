"""Tests for the OpenVPN collector."""

import asyncio

import pytest
from unittest.mock import patch

from ovpn_exporter.collectors.openvpn_collector import OpenVPNCollector
from ovpn_exporter.config.models import CollectorConfig
from ovpn_exporter.exposition import build_metric_families
from ovpn_exporter.utils.status import PollStatus

from tests.fake_management import HANG, STATE_REPLY, STATS_REPLY, FakeManagementServer


@pytest.mark.asyncio
async def test_collector_success(make_target, logger):
    """Healthy server produces a full snapshot."""
    target = make_target("main")
    collector = OpenVPNCollector([target], logger=logger)

    async with FakeManagementServer(target.socket_path):
        outcomes = await collector.update()

    assert len(outcomes) == 1
    outcome = outcomes[0]
    assert outcome.label == "main"
    assert outcome.status == PollStatus.UP
    assert outcome.error is None
    assert outcome.snapshot.up_since_unix_seconds == 1434651012
    assert outcome.snapshot.connected_clients == 5
    assert outcome.snapshot.bytes_received == 1024
    assert outcome.snapshot.bytes_sent == 2048
    assert outcome.duration_seconds >= 0


@pytest.mark.asyncio
async def test_collector_no_targets(logger):
    collector = OpenVPNCollector([], logger=logger)

    assert await collector.update() == []


@pytest.mark.asyncio
async def test_connect_failure_does_not_stop_other_targets(make_target, logger):
    """An unreachable socket is DOWN, later targets are still polled."""
    missing = make_target("a-missing")
    healthy = make_target("b-healthy")
    collector = OpenVPNCollector([missing, healthy], logger=logger)

    async with FakeManagementServer(healthy.socket_path):
        outcomes = await collector.update()

    assert [o.label for o in outcomes] == ["a-missing", "b-healthy"]
    assert outcomes[0].status == PollStatus.DOWN
    assert "connect" in outcomes[0].error.lower()
    assert outcomes[0].snapshot.connected_clients is None
    assert outcomes[1].status == PollStatus.UP
    assert outcomes[1].snapshot.connected_clients == 5


@pytest.mark.asyncio
async def test_bad_stats_keeps_state(make_target, logger):
    """Stats parse failure: DOWN, no stats fields, up-since still recorded."""
    target = make_target("main")
    responses = {
        "state": STATE_REPLY,
        "load-stats": "SUCCESS: nclients=abc,bytesin=1024,bytesout=2048\r\n",
    }
    collector = OpenVPNCollector([target], logger=logger)

    async with FakeManagementServer(target.socket_path, responses) as server:
        outcomes = await collector.update()
        await asyncio.sleep(0.05)

        assert server.disconnects == 1

    snapshot = outcomes[0].snapshot
    assert outcomes[0].status == PollStatus.DOWN
    assert "nclients" in outcomes[0].error
    assert snapshot.up_since_unix_seconds == 1434651012
    assert snapshot.connected_clients is None
    assert snapshot.bytes_received is None
    assert snapshot.bytes_sent is None


@pytest.mark.asyncio
async def test_bad_state_line_aborts_poll(make_target, logger):
    """State parse failure skips load-stats, earlier values are kept."""
    target = make_target("main")
    responses = {
        "state": "1434651012,CONNECTED,SUCCESS,10.8.0.1,,,,\r\nbogus,CONNECTED\r\nEND\r\n",
        "load-stats": STATS_REPLY,
    }
    collector = OpenVPNCollector([target], logger=logger)

    async with FakeManagementServer(target.socket_path, responses) as server:
        outcomes = await collector.update()

    assert outcomes[0].status == PollStatus.DOWN
    assert outcomes[0].snapshot.up_since_unix_seconds == 1434651012
    assert outcomes[0].snapshot.connected_clients is None
    assert server.commands == ["state"]


@pytest.mark.asyncio
async def test_multiple_state_lines_last_wins(make_target, logger):
    target = make_target("main")
    responses = {
        "state": "1434651012,CONNECTED\r\n1434651099,CONNECTED\r\nEND\r\n",
        "load-stats": STATS_REPLY,
    }
    collector = OpenVPNCollector([target], logger=logger)

    async with FakeManagementServer(target.socket_path, responses):
        outcomes = await collector.update()

    assert outcomes[0].snapshot.up_since_unix_seconds == 1434651099


@pytest.mark.asyncio
async def test_scrape_deadline_marks_remaining_down(make_target, logger):
    """Once the cycle deadline passes, remaining targets are DOWN without connecting."""
    slow = make_target("a-slow")
    later = make_target("b-later")
    config = CollectorConfig(io_timeout_seconds=5.0, scrape_timeout_seconds=0.3)
    collector = OpenVPNCollector([slow, later], config=config, logger=logger)

    async with FakeManagementServer(slow.socket_path, responses={"state": HANG}):
        async with FakeManagementServer(later.socket_path) as later_server:
            outcomes = await asyncio.wait_for(collector.update(), timeout=3.0)

    assert [o.status for o in outcomes] == [PollStatus.DOWN, PollStatus.DOWN]
    assert outcomes[1].error == "Scrape deadline exceeded"
    assert later_server.connections == 0


@pytest.mark.asyncio
async def test_explicit_timeout_overrides_config(make_target, logger):
    target = make_target("main")
    collector = OpenVPNCollector([target], logger=logger)

    async with FakeManagementServer(target.socket_path, responses={"state": HANG}):
        outcomes = await asyncio.wait_for(collector.update(timeout=0.2), timeout=3.0)

    assert outcomes[0].status == PollStatus.DOWN


@pytest.mark.asyncio
async def test_target_order_independent(make_target, logger):
    """Configuration order does not change what each label reports."""
    a = make_target("a")
    b = make_target("b")
    a_responses = {"state": STATE_REPLY, "load-stats": "SUCCESS: nclients=1,bytesin=10,bytesout=20\r\n"}
    b_responses = {"state": STATE_REPLY, "load-stats": "SUCCESS: nclients=2,bytesin=30,bytesout=40\r\n"}

    async with FakeManagementServer(a.socket_path, a_responses), \
            FakeManagementServer(b.socket_path, b_responses):
        forward = await OpenVPNCollector([a, b], logger=logger).update()
        backward = await OpenVPNCollector([b, a], logger=logger).update()

    by_label = lambda outcomes: {o.label: (o.status, o.snapshot) for o in outcomes}
    assert by_label(forward) == by_label(backward)
    assert by_label(forward)["b"][1].connected_clients == 2


@pytest.mark.asyncio
async def test_unexpected_error_reports_all_down(make_target, logger):
    """safe_collect turns an unexpected exception into DOWN outcomes."""
    targets = [make_target("a"), make_target("b")]
    collector = OpenVPNCollector(targets, logger=logger)

    with patch.object(collector, "_poll_target", side_effect=RuntimeError("boom")):
        outcomes = await collector.update()

    assert [o.label for o in outcomes] == ["a", "b"]
    assert all(o.status == PollStatus.DOWN for o in outcomes)
    assert "boom" in outcomes[0].error


@pytest.mark.asyncio
async def test_concurrent_updates_are_serialized(make_target, logger):
    """Overlapping update calls never poll at the same time."""
    target = make_target("main")
    collector = OpenVPNCollector([target], logger=logger)

    async with FakeManagementServer(target.socket_path) as server:
        first, second = await asyncio.gather(collector.update(), collector.update())

    assert first[0].status == PollStatus.UP
    assert second[0].status == PollStatus.UP
    assert server.connections == 2
    assert server.commands == ["state", "load-stats", "state", "load-stats"]


@pytest.mark.asyncio
async def test_oversized_counter_only_affects_its_label(make_target, logger):
    """A counter beyond int64 takes down its own label, the scrape still renders."""
    bad = make_target("a-bad")
    good = make_target("b-good")
    bad_responses = {
        "state": STATE_REPLY,
        "load-stats": "SUCCESS: nclients=1,bytesin=" + "9" * 400 + ",bytesout=2\r\n",
    }
    collector = OpenVPNCollector([bad, good], logger=logger)

    async with FakeManagementServer(bad.socket_path, bad_responses), \
            FakeManagementServer(good.socket_path):
        outcomes = await collector.update()

    assert [o.status for o in outcomes] == [PollStatus.DOWN, PollStatus.UP]
    assert outcomes[0].snapshot.bytes_received is None
    assert "bytesin" in outcomes[0].error

    rendered = {
        (sample.name, sample.labels["vpn_label"]): sample.value
        for family in build_metric_families(outcomes)
        for sample in family.samples
    }
    assert rendered[("openvpn_up", "a-bad")] == 0.0
    assert rendered[("openvpn_up", "b-good")] == 1.0
    assert rendered[("openvpn_bytes_in", "b-good")] == 1024.0
    assert ("openvpn_bytes_in", "a-bad") not in rendered
