"""
Command-line interface tests.

``show`` runs against a pty; ``send`` and ``receive`` run against the
in-memory FakeLineDevice so the byte stream is deterministic.

Run with full visibility:
    pytest tests/test_cli.py -v -s
"""

from __future__ import annotations

import serial.tools.list_ports
import pytest

from serial_line_tools import cli
from serial_line_tools.serial_port import SerialPort
from serial_line_tools.types import Parity, StopBits


@pytest.fixture()
def fake_cli_port(monkeypatch, fake_device):
    """Make the CLI build its handles on the in-memory device."""
    monkeypatch.setattr(
        cli, "SerialPort",
        lambda name: SerialPort(name, device=fake_device),
    )
    return fake_device


class TestList:

    def test_no_ports(self, monkeypatch, capsys):
        monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: [])
        assert cli.main(["list"]) == 0
        assert "No serial ports found." in capsys.readouterr().out

    def test_ports_listed(self, monkeypatch, capsys):
        class _Info:
            device = "/dev/ttyACM0"
            description = "USB ACM"

        monkeypatch.setattr(serial.tools.list_ports, "comports", lambda: [_Info()])
        assert cli.main(["list"]) == 0
        out = capsys.readouterr().out
        assert "Available serial ports:" in out
        assert "/dev/ttyACM0 — USB ACM" in out


class TestShow:

    def test_show_on_pty(self, serial_pair, capsys):
        rc = cli.main(["show", "--serial-port", serial_pair.slave_path, "--baud-rate", "9600"])
        out = capsys.readouterr().out
        print(out)
        assert rc == 0
        assert serial_pair.slave_path in out
        assert "9600 8N1" in out
        assert "data available: no" in out

    def test_show_fake_settings(self, fake_cli_port, capsys):
        rc = cli.main([
            "show", "--serial-port", "/dev/ttyFAKE0",
            "--baud-rate", "19200", "--char-size", "7", "--parity", "e",
            "--stop-bits", "2", "--flow-control", "HARDWARE",
        ])
        assert rc == 0
        assert "19200 7E2 (flow control: hardware)" in capsys.readouterr().out
        assert fake_cli_port.open_fds == set()

    def test_show_nonexistent_port(self, capsys):
        rc = cli.main(["show", "--serial-port", "/dev/ttyNONEXISTENT_99"])
        assert rc == 1
        assert "Error:" in capsys.readouterr().err

    def test_rejected_setting_closes_port(self, fake_cli_port, capsys):
        fake_cli_port.reject = lambda config: config.stop_bits is StopBits.TWO
        rc = cli.main(["show", "--serial-port", "/dev/ttyFAKE0", "--stop-bits", "2"])
        assert rc == 1
        assert "rejected" in capsys.readouterr().err
        assert fake_cli_port.open_fds == set()
        assert fake_cli_port.config.stop_bits is StopBits.ONE

    def test_unsupported_baud_rate(self, fake_cli_port, capsys):
        rc = cli.main(["show", "--serial-port", "/dev/ttyFAKE0", "--baud-rate", "12345"])
        assert rc == 1
        assert "Unsupported baud rate" in capsys.readouterr().err
        assert fake_cli_port.open_fds == set()


class TestSend:

    def test_send_file(self, fake_cli_port, tmp_path):
        payload = bytes(range(256)) * 3
        source = tmp_path / "payload.bin"
        source.write_bytes(payload)

        rc = cli.main([
            "send", str(source), "--serial-port", "/dev/ttyFAKE0",
            "--parity", "O", "--no-progress",
        ])

        assert rc == 0
        assert bytes(fake_cli_port.outgoing) == payload
        assert fake_cli_port.open_fds == set()

    def test_send_missing_file(self, fake_cli_port, tmp_path, capsys):
        rc = cli.main(["send", str(tmp_path / "missing.bin"), "--no-progress"])
        assert rc == 1
        assert "cannot read" in capsys.readouterr().err
        assert fake_cli_port.calls == []

    def test_send_uses_requested_parity(self, fake_cli_port, tmp_path, monkeypatch):
        seen = []
        original_write = fake_cli_port.write

        def _write(fd, data):
            seen.append(fake_cli_port.config.parity)
            return original_write(fd, data)

        monkeypatch.setattr(fake_cli_port, "write", _write)
        source = tmp_path / "one.bin"
        source.write_bytes(b"\x55")
        assert cli.main(["send", str(source), "--parity", "E", "--no-progress"]) == 0
        assert seen == [Parity.EVEN]


class TestReceive:

    def test_receive_to_file(self, fake_cli_port, tmp_path):
        fake_cli_port.incoming.extend(b"0123456789" * 60)
        target = tmp_path / "out.bin"

        rc = cli.main([
            "receive", "--count", "600", "--output", str(target),
            "--serial-port", "/dev/ttyFAKE0", "--no-progress",
        ])

        assert rc == 0
        assert target.read_bytes() == b"0123456789" * 60
        assert fake_cli_port.open_fds == set()

    def test_receive_to_stdout(self, fake_cli_port, capsysbinary):
        fake_cli_port.incoming.extend(b"\x00\xffABC")
        rc = cli.main(["receive", "--count", "4", "--no-progress"])
        assert rc == 0
        assert capsysbinary.readouterr().out == b"\x00\xffAB"
        assert bytes(fake_cli_port.incoming) == b"C"

    def test_negative_count(self, fake_cli_port, capsys):
        assert cli.main(["receive", "--count", "-1"]) == 1
        assert fake_cli_port.calls == []
