from __future__ import annotations

from bundle_settings.adapters.probes.tcp import TCPSocketProbe
from bundle_settings.domain.mirror import Mirror


class _Connection:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


def test_probe_connects_to_default_port_with_mirror_timeout() -> None:
    calls = []
    connection = _Connection()

    def connect(address, timeout):
        calls.append((address, timeout))
        return connection

    probe = TCPSocketProbe(connect=connect)
    assert probe.replies(Mirror("https://mirror.example", "true")) is True
    assert calls == [(("mirror.example", 443), 0.1)]
    assert connection.closed


def test_probe_honours_explicit_port() -> None:
    calls = []

    def connect(address, timeout):
        calls.append(address)
        return _Connection()

    TCPSocketProbe(connect=connect).replies(Mirror("http://mirror.example:8080/gems", "2"))
    assert calls == [("mirror.example", 8080)]


def test_probe_reports_unreachable_mirrors() -> None:
    def connect(address, timeout):
        raise ConnectionRefusedError("refused")

    assert TCPSocketProbe(connect=connect).replies(Mirror("https://mirror.example", "1")) is False


def test_probe_without_uri() -> None:
    assert TCPSocketProbe().replies(Mirror()) is False
