"""Shared fixtures for the routing assistant tests."""

from datetime import datetime, timezone

import pytest

from collector.links import LinkSnapshot


RMAP_TEXT = """DALnet Routing Team Map
===========================
Tier 1 Hubs

Hub: services

server1: hub1 hub2 hub3
server2: hub1
server3: hub2 hub3

===========================
Special Servers
LOA servers go here

Temporary assignments
"""


class FakeConnection:
    """Records everything the assistant sends."""

    def __init__(self):
        self.messages = []
        self.raw = []

    def privmsg(self, target, text):
        self.messages.append((target, text))

    def send_raw(self, line):
        self.raw.append(line)

    def lines_to(self, target):
        return [text for to, text in self.messages if to == target]


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def fixed_clock():
    moment = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "rmap.txt").write_text(RMAP_TEXT, encoding="utf-8")
    return tmp_path


@pytest.fixture
def small_snapshot():
    """hub.net with children a.net and b.net; c.net hangs off a.net."""
    snapshot = LinkSnapshot()
    snapshot.add("hub.net", "hub.net", 0, "Hub")
    snapshot.add("a.net", "hub.net", 1, "A")
    snapshot.add("b.net", "hub.net", 1, "B")
    snapshot.add("c.net", "a.net", 2, "C")
    return snapshot
