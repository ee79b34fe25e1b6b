"""Test that network access is properly blocked in tests."""

import socket

import pytest


class TestNetworkBlocking:
    """Verify that the network blocking fixture works."""

    def test_socket_connect_is_blocked(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            with pytest.raises(RuntimeError, match="Tests must not make network connections"):
                sock.connect(("127.0.0.1", 80))
        finally:
            sock.close()
