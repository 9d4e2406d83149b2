"""Tests for comparing LINKS snapshots with the routing map."""

import random

from collector.links import LinkSnapshot
from engine.reconcile import Reconciler
from routing_map import RoutingMap


def routing_map_of(names):
    return RoutingMap(raw=[], servers={n: [] for n in names}, server_list=list(names))


def snapshot_of(servers):
    snapshot = LinkSnapshot()
    for i, server in enumerate(servers):
        snapshot.add(server, servers[0], 0 if i == 0 else 1, "")
    return snapshot


def test_missing_servers():
    result = Reconciler().reconcile(
        snapshot_of(["hub.net", "a.net", "b.net"]),
        routing_map_of(["hub", "a", "b", "z"]),
    )
    assert result.total == 4
    assert result.linked == 3
    assert result.missing == ["z"]


def test_counts_match_original_example():
    result = Reconciler().reconcile(
        snapshot_of(["hub.dal.net", "server1.dal.net"]),
        routing_map_of(["hub", "server1", "server2", "server3"]),
    )
    assert (result.total, result.linked) == (4, 2)
    assert result.missing == ["server2", "server3"]


def test_case_insensitive_and_domain_stripped():
    result = Reconciler().reconcile(
        snapshot_of(["HUB.dal.net", "Server1.dal.net"]),
        routing_map_of(["hub.dal.net", "server1", "Server2.dal.net"]),
    )
    assert result.missing == ["Server2"]


def test_linked_counts_observed_servers_not_matches():
    # unmapped servers still count as linked, so linked + missing != total
    result = Reconciler().reconcile(
        snapshot_of(["hub.net", "a.net", "extra1.net", "extra2.net"]),
        routing_map_of(["hub", "a", "z"]),
    )
    assert result.total == 3
    assert result.linked == 4
    assert result.missing == ["z"]


def test_total_counts_duplicate_map_entries():
    result = Reconciler().reconcile(
        snapshot_of(["hub.net"]),
        routing_map_of(["hub", "a", "a"]),
    )
    assert result.total == 3
    assert result.missing == ["a", "a"]


def test_missing_independent_of_arrival_order():
    servers = ["hub.net", "a.net", "b.net", "c.net", "d.net"]
    routing_map = routing_map_of(["hub", "a", "c", "e", "f"])
    expected = Reconciler().reconcile(snapshot_of(servers), routing_map).missing

    rng = random.Random(7)
    for _ in range(10):
        shuffled = servers[:]
        rng.shuffle(shuffled)
        assert Reconciler().reconcile(snapshot_of(shuffled), routing_map).missing == expected
    assert expected == ["e", "f"]


def test_empty_map():
    result = Reconciler().reconcile(snapshot_of(["hub.net"]), RoutingMap())
    assert result.to_dict() == {"total": 0, "linked": 1, "missing": [], "missing_count": 0}
