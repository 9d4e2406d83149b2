"""
Routing Map Loader

Loads and parses rmap.txt, the hand-maintained routing map that lists each
server with its expected uplink hubs:

    server1: hub1 hub2 (backup) hub3

Section headers, separator rules and blank lines are kept for display but
never parsed as servers.
"""

import os
import re
import logging
import threading
from typing import Dict, List, Iterable, Optional
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

RMAP_FILENAME = "rmap.txt"

SKIP_PATTERN = re.compile(
    r"(?i)^Tier|^Hub:|^Client:|^Special:|^LOA|===|DALnet Routing|^Temporary|^---|^\s*$"
)

# Tokens starting with these are annotations, not hubs
ANNOTATION_PREFIXES = ("(", "=")


class RoutingMapError(Exception):
    """Exception raised for routing map loading errors."""
    pass


@dataclass(frozen=True)
class RoutingMap:
    """
    Parsed routing map.

    Attributes:
        raw: Every line of the document, carriage returns removed
        servers: Server name to ordered list of expected uplinks
        server_list: Server names in document order, duplicates included
    """
    raw: List[str] = field(default_factory=list)
    servers: Dict[str, List[str]] = field(default_factory=dict)
    server_list: List[str] = field(default_factory=list)

    def get_uplinks(self, server: str) -> Optional[List[str]]:
        """
        Get the expected uplinks for a server.

        Tries an exact match first, then the earliest server in map order
        whose name starts with the term, ignoring case.

        Returns:
            List of uplink names, or None if no server matches
        """
        if server in self.servers:
            return self.servers[server]

        term = server.lower()
        for name in self.server_list:
            if name.lower().startswith(term):
                return self.servers[name]
        return None

    def find_servers(self, prefix: str) -> List[str]:
        """All server names starting with prefix (case-insensitive), in map order."""
        prefix = prefix.lower()
        return [name for name in self.server_list if name.lower().startswith(prefix)]

    def uplink_lines(self, term: Optional[str] = None) -> List[str]:
        """
        Raw assignment lines for display, optionally filtered by server prefix.

        Args:
            term: Case-insensitive prefix the line must start with

        Returns:
            Matching raw lines in document order
        """
        lines = []
        term_lower = term.lower() if term else None

        for line in self.raw:
            if ":" not in line:
                continue
            if line.startswith("Tier ") or line.startswith("Secondary ") or "Routing" in line:
                continue
            if term_lower is not None and not line.lower().startswith(term_lower):
                continue
            lines.append(line)

        return lines


def parse_routing_map(lines: Iterable[str]) -> RoutingMap:
    """
    Parse routing map lines.

    Args:
        lines: Document lines, with or without line endings

    Returns:
        RoutingMap built from the lines
    """
    raw: List[str] = []
    servers: Dict[str, List[str]] = {}
    server_list: List[str] = []

    for line in lines:
        line = line.rstrip("\n").replace("\r", "")
        raw.append(line)

        if SKIP_PATTERN.search(line):
            continue
        if ":" not in line:
            continue

        name, _, hub_part = line.partition(":")
        name = name.strip()
        if not name:
            logger.debug(f"Skipping routing map line with empty server name: {line!r}")
            continue

        hubs = [
            token for token in hub_part.split()
            if not token.startswith(ANNOTATION_PREFIXES)
        ]

        servers[name] = hubs
        server_list.append(name)

    return RoutingMap(raw=raw, servers=servers, server_list=server_list)


def load_routing_map(data_dir: str) -> RoutingMap:
    """
    Load the routing map from the data directory.

    Args:
        data_dir: Directory holding rmap.txt

    Returns:
        Parsed RoutingMap; empty if the file does not exist

    Raises:
        RoutingMapError: If the file exists but cannot be read
    """
    path = os.path.join(os.path.expanduser(data_dir), RMAP_FILENAME)

    try:
        # split on "\n" only; stray "\r" is stripped per line
        with open(path, "r", encoding="utf-8", errors="replace", newline="\n") as f:
            routing_map = parse_routing_map(f)
    except FileNotFoundError:
        logger.info(f"No routing map at {path}, using an empty map")
        return RoutingMap()
    except OSError as e:
        raise RoutingMapError(f"Failed to read routing map {path}: {e}")

    logger.info(
        f"Loaded routing map from {path}: {len(routing_map.servers)} servers, "
        f"{len(routing_map.raw)} lines"
    )
    return routing_map


class RoutingMapStore:
    """
    Shared holder for the current routing map.

    Readers always see a complete map: reload() builds a new map and swaps
    the reference.
    """

    def __init__(self, data_dir: str, routing_map: Optional[RoutingMap] = None):
        self.data_dir = data_dir
        self._lock = threading.Lock()
        self._map = routing_map if routing_map is not None else RoutingMap()

    def get(self) -> RoutingMap:
        with self._lock:
            return self._map

    def reload(self) -> RoutingMap:
        """
        Load a fresh map from disk and make it current.

        Raises:
            RoutingMapError: If loading fails; the previous map stays current
        """
        routing_map = load_routing_map(self.data_dir)
        with self._lock:
            self._map = routing_map
        return routing_map
