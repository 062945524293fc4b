"""Tests for the application entry point."""

import asyncio
import threading

import pytest
from unittest.mock import patch

from ovpn_exporter.config.models import ExporterConfig, ServerTarget
from ovpn_exporter.main import ExporterApp, main

from tests.fake_management import FakeManagementServer


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("OPENVPN_SOCKETS", "OPENVPN_EXPORTER_PORT", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


def test_run_once_unreachable_target(socket_dir, logger, capsys):
    config = ExporterConfig(targets=[ServerTarget(label="main", socket_path=f"{socket_dir}/none.sock")])
    app = ExporterApp(config, logger=logger)

    assert app.run_once() is False

    output = capsys.readouterr().out
    assert 'openvpn_up{vpn_label="main"} 0.0' in output
    assert "openvpn_clients_number{" not in output


def test_run_once_healthy_target(make_target, logger, capsys):
    """Serve the fake interface from its own loop thread while the app scrapes."""
    target = make_target("main")
    ready = threading.Event()
    stop = None
    loop = asyncio.new_event_loop()

    async def serve():
        nonlocal stop
        stop = asyncio.Event()
        async with FakeManagementServer(target.socket_path):
            ready.set()
            await stop.wait()

    thread = threading.Thread(target=loop.run_until_complete, args=(serve(),))
    thread.start()
    try:
        assert ready.wait(5)
        app = ExporterApp(ExporterConfig(targets=[target]), logger=logger)

        assert app.run_once() is True
    finally:
        loop.call_soon_threadsafe(stop.set)
        thread.join(5)
        loop.close()

    output = capsys.readouterr().out
    assert 'openvpn_up{vpn_label="main"} 1.0' in output
    assert 'openvpn_clients_number{vpn_label="main"} 5.0' in output
    assert 'openvpn_up_since_time_seconds{vpn_label="main"} 1.434651012e+09' in output


def test_run_once_without_targets(logger, capsys):
    app = ExporterApp(ExporterConfig(), logger=logger)

    assert app.run_once() is True
    assert "# TYPE openvpn_up gauge" in capsys.readouterr().out


def test_main_malformed_sockets_exits():
    with patch("sys.argv", ["ovpn-exporter", "--sockets", "main", "--run-once"]):
        with pytest.raises(SystemExit) as exc_info:
            main()

    assert exc_info.value.code == 1


def test_main_run_once_exit_code(socket_dir):
    argv = ["ovpn-exporter", "--sockets", f"main:{socket_dir}/none.sock", "--run-once"]

    with patch("sys.argv", argv):
        with pytest.raises(SystemExit) as exc_info:
            main()

    assert exc_info.value.code == 1


def test_main_serves_metrics():
    with patch("sys.argv", ["ovpn-exporter", "--port", "9999", "--listen-address", "127.0.0.1"]), \
            patch("ovpn_exporter.main.start_http_server") as mock_start, \
            patch("ovpn_exporter.main.signal.signal"), \
            patch("ovpn_exporter.main.threading.Event") as mock_event:
        main()

    mock_start.assert_called_once()
    args, kwargs = mock_start.call_args
    assert args == (9999,)
    assert kwargs["addr"] == "127.0.0.1"
    mock_event.return_value.wait.assert_called_once()
