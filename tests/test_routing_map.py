"""Tests for routing map parsing, lookup and reload."""

import pytest

from routing_map import (
    RoutingMap,
    RoutingMapStore,
    RoutingMapError,
    parse_routing_map,
    load_routing_map,
)


def test_load_routing_map(data_dir):
    routing_map = load_routing_map(str(data_dir))

    assert set(routing_map.servers) == {"server1", "server2", "server3"}
    assert routing_map.servers["server1"] == ["hub1", "hub2", "hub3"]
    assert routing_map.servers["server2"] == ["hub1"]
    assert routing_map.server_list == ["server1", "server2", "server3"]
    assert len(routing_map.raw) == (data_dir / "rmap.txt").read_text().count("\n")


def test_load_missing_map_is_empty(tmp_path):
    routing_map = load_routing_map(str(tmp_path))
    assert routing_map.servers == {}
    assert routing_map.server_list == []
    assert routing_map.raw == []


def test_load_unreadable_map_raises(tmp_path):
    (tmp_path / "rmap.txt").mkdir()
    with pytest.raises(RoutingMapError):
        load_routing_map(str(tmp_path))


def test_crlf_lines_are_cleaned(tmp_path):
    (tmp_path / "rmap.txt").write_bytes(b"server1: hub1 hub2\r\nserver2: hub3\r\n")
    routing_map = load_routing_map(str(tmp_path))

    assert routing_map.raw == ["server1: hub1 hub2", "server2: hub3"]
    assert routing_map.servers["server1"] == ["hub1", "hub2"]


def test_annotation_tokens_dropped():
    routing_map = parse_routing_map(["server1: hub1 (comment) hub2 =backup"])
    assert routing_map.servers["server1"] == ["hub1", "hub2"]


def test_structural_lines_skipped_but_kept_raw():
    lines = [
        "DALnet Routing Team Map",
        "tier 2 hubs",
        "Client: servers",
        "--- separator",
        "loa: someone",
        "",
        "server1: hub1",
        "no separator here",
        "   : empty name",
    ]
    routing_map = parse_routing_map(lines)

    assert routing_map.server_list == ["server1"]
    assert routing_map.raw == lines


def test_duplicates_last_wins_but_all_listed():
    routing_map = parse_routing_map(["a: hub1", "b: hub2", "a: hub3"])
    assert routing_map.servers["a"] == ["hub3"]
    assert routing_map.server_list == ["a", "b", "a"]


def test_get_uplinks_exact_then_prefix():
    routing_map = parse_routing_map(["testserver: hub1 hub2", "other: hub3"])

    assert routing_map.get_uplinks("testserver") == ["hub1", "hub2"]
    assert routing_map.get_uplinks("TEST") == ["hub1", "hub2"]
    assert routing_map.get_uplinks("nonexistent") is None


def test_get_uplinks_prefix_tie_break_uses_map_order():
    routing_map = parse_routing_map(["alpha2: hubB", "alpha1: hubA"])
    assert routing_map.get_uplinks("alp") == ["hubB"]


def test_find_servers():
    routing_map = parse_routing_map(["Server1: h", "other: h", "server2: h"])
    assert routing_map.find_servers("SERVER") == ["Server1", "server2"]
    assert routing_map.find_servers("zzz") == []


def test_uplink_lines(data_dir):
    routing_map = load_routing_map(str(data_dir))

    assert routing_map.uplink_lines() == [
        "Hub: services",
        "server1: hub1 hub2 hub3",
        "server2: hub1",
        "server3: hub2 hub3",
    ]
    assert routing_map.uplink_lines("SERVER1") == ["server1: hub1 hub2 hub3"]
    assert routing_map.uplink_lines("nosuch") == []


def test_store_reload_swaps_map(tmp_path):
    store = RoutingMapStore(str(tmp_path))
    before = store.get()
    assert before.server_list == []

    (tmp_path / "rmap.txt").write_text("server1: hub1\n")
    store.reload()

    assert store.get().server_list == ["server1"]
    # readers holding the old map are unaffected
    assert before.server_list == []


def test_store_failed_reload_keeps_previous(tmp_path):
    initial = RoutingMap(raw=["a: b"], servers={"a": ["b"]}, server_list=["a"])
    store = RoutingMapStore(str(tmp_path), initial)
    (tmp_path / "rmap.txt").mkdir()

    with pytest.raises(RoutingMapError):
        store.reload()
    assert store.get() is initial
