"""Fixtures and helpers for integration tests."""

import socket

import pytest


def is_service_available(host: str, port: int) -> bool:
    """Check if a service accepts TCP connections at host:port."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(2)
            return sock.connect_ex((host, port)) == 0
    except OSError:
        return False


@pytest.fixture
def skip_if_no_redis():
    """Skip test if Redis is not available."""
    if not is_service_available("localhost", 6379):
        pytest.skip("Redis not available at localhost:6379")
