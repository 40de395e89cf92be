# tests/agent/conftest.py
"""
Pytest fixtures for Sync Agent tests
Shared configuration and mock objects
"""

import json
import socket
import threading
from collections import namedtuple
from unittest.mock import Mock

import pytest
import requests

from sync_agent.collectors.local_identity import AgentIdentity

CONTROLLER_URL = "https://controller.example.com/api/v1"

# Same shape as psutil's snicaddr entries
FakeAddr = namedtuple("FakeAddr", ["family", "address", "netmask", "broadcast", "ptp"])


def fake_addr(family, address):
    return FakeAddr(family, address, None, None, None)


def make_response(status_code=200, body=None):
    """Fake requests.Response with the given status and JSON body"""
    resp = Mock(spec=requests.Response)
    resp.status_code = status_code
    if body is None:
        resp.content = b""
    elif isinstance(body, (bytes, str)):
        resp.content = body.encode() if isinstance(body, str) else body
    else:
        resp.content = json.dumps(body).encode()
    return resp


def posted_json(call):
    """Decode the JSON body of a recorded session.post call"""
    return json.loads(call.kwargs["data"])


@pytest.fixture
def controller_url():
    return CONTROLLER_URL


@pytest.fixture
def identity():
    return AgentIdentity(
        ip_address="10.1.2.3",
        port=9443,
        namespace="payments",
        service_name="checkout",
    )


@pytest.fixture
def fake_interfaces():
    """Interfaces with loopback, IPv6 and one usable IPv4 address"""
    return {
        "lo": [
            fake_addr(socket.AF_INET, "127.0.0.1"),
            fake_addr(socket.AF_INET6, "::1"),
        ],
        "eth0": [
            fake_addr(socket.AF_INET6, "fe80::1"),
            fake_addr(socket.AF_INET, "10.1.2.3"),
        ],
        "eth1": [
            fake_addr(socket.AF_INET, "192.168.0.10"),
        ],
    }


@pytest.fixture
def mock_session():
    """Mock secured transport"""
    session = Mock(spec=requests.Session)
    session.post.return_value = make_response(200, {})
    return session


@pytest.fixture
def mock_rules_store():
    store = Mock()
    store.current_version.return_value = "v1"
    return store


@pytest.fixture
def stop_event():
    """
    Mock stop event; wait() returns False (keep going) unless a test
    sets wait.side_effect
    """
    event = Mock(spec=threading.Event)
    event.is_set.return_value = False
    event.wait.return_value = False
    return event


@pytest.fixture
def no_jitter():
    """Random source whose backoff is always zero"""
    rng = Mock()
    rng.randrange.return_value = 0
    return rng
