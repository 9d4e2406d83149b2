"""
Hierarchical Tree Builder

Rebuilds the network's spanning tree from an unordered LINKS snapshot by:
1. Locating the root (the record reporting 0 hops)
2. Indexing every record under the hub it reports
3. Walking the hub pointers depth-first, siblings in ascending name order

Hop counts are only used to find the root; structure comes from hubs alone.
"""

import logging
from typing import Dict, List, Any
from dataclasses import dataclass, field

from collector.links import LinkSnapshot

logger = logging.getLogger(__name__)


class TreeBuildError(Exception):
    """Exception raised when a snapshot cannot be arranged into a tree."""
    pass


class NoRootError(TreeBuildError):
    """Raised when no record in the snapshot reports 0 hops."""

    def __init__(self, message: str = "no root server found"):
        super().__init__(message)


@dataclass
class TreeOrder:
    """Depth-first ordering of a snapshot, plus anything left out of it."""
    order: List[str] = field(default_factory=list)
    root: str = ""
    orphans: List[str] = field(default_factory=list)
    cycles: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "order": list(self.order),
            "orphans": list(self.orphans),
            "cycles": list(self.cycles),
        }


class TreeBuilder:
    """
    Arranges a LINKS snapshot into pre-order tree sequence.

    A server's children are the records whose hub is that server (excluding
    the server itself, so a self-hubbed root is not its own child). The
    walk keeps a visited set so a hub cycle through the root is reported
    instead of looping forever.
    """

    def build(self, snapshot: LinkSnapshot) -> TreeOrder:
        """
        Order the snapshot's servers depth-first from the root.

        Args:
            snapshot: Completed LINKS snapshot

        Returns:
            TreeOrder; empty when the snapshot is empty

        Raises:
            NoRootError: If no record reports 0 hops
        """
        if len(snapshot) == 0:
            return TreeOrder()

        root = self._find_root(snapshot)
        children = self._index_children(snapshot)

        result = TreeOrder(root=root)
        visited = set()
        stack = [root]

        while stack:
            server = stack.pop()
            if server in visited:
                logger.warning(f"Hub cycle detected at {server}, not revisiting")
                result.cycles.append(server)
                continue

            visited.add(server)
            result.order.append(server)
            # reversed so the smallest name is popped first
            stack.extend(reversed(children.get(server, [])))

        result.orphans = self._find_orphans(snapshot, visited)
        if result.orphans:
            logger.warning(
                f"{len(result.orphans)} servers unreachable from {root}: "
                f"{', '.join(result.orphans)}"
            )

        logger.debug(f"Built tree from {root}: {len(result.order)} of {len(snapshot)} servers")
        return result

    def _find_root(self, snapshot: LinkSnapshot) -> str:
        """First server in arrival order whose current record has 0 hops."""
        for server in snapshot.arrival_order:
            record = snapshot.get(server)
            if record is not None and record.hops == 0:
                return server
        raise NoRootError()

    def _index_children(self, snapshot: LinkSnapshot) -> Dict[str, List[str]]:
        """Map each hub to its children, sorted by name."""
        children: Dict[str, List[str]] = {}
        for server, record in snapshot.records.items():
            if record.hub == server:
                continue
            children.setdefault(record.hub, []).append(server)

        for names in children.values():
            names.sort()
        return children

    def _find_orphans(self, snapshot: LinkSnapshot, visited: set) -> List[str]:
        orphans = []
        for server in snapshot.arrival_order:
            if server not in visited and server not in orphans:
                orphans.append(server)
        return orphans
