"""
Routing Map Reconciliation

Compares the servers seen in a LINKS snapshot against the routing map and
reports which expected servers are not linked.

Note on the counts: `linked` is the raw number of servers observed in the
snapshot, not the number that matched a map entry. A snapshot can therefore
report more linked servers than the map holds, or a linked count that does
not equal total minus missing. Consumers of the report should read the
missing list, not the difference of the two counts.
"""

import logging
from typing import Dict, List, Any
from dataclasses import dataclass, field, asdict

from collector.links import LinkSnapshot, short_name
from routing_map import RoutingMap

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of comparing a snapshot with the routing map."""
    total: int = 0
    linked: int = 0
    missing: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["missing_count"] = len(self.missing)
        return result


class Reconciler:
    """Finds routing map servers absent from an observed snapshot."""

    def reconcile(self, snapshot: LinkSnapshot, routing_map: RoutingMap) -> ReconcileResult:
        """
        Reconcile a snapshot with the routing map.

        Args:
            snapshot: Completed LINKS snapshot
            routing_map: Reference routing map

        Returns:
            ReconcileResult with total, linked and missing (short names,
            in routing map order)
        """
        linked = snapshot.linked_servers()
        linked_set = {name.lower() for name in linked}

        missing = []
        for server in routing_map.server_list:
            short = short_name(server)
            if short.lower() not in linked_set:
                missing.append(short)

        result = ReconcileResult(
            total=len(routing_map.server_list),
            linked=len(linked),
            missing=missing,
        )

        logger.info(
            f"Reconciliation complete: {result.total} in map, "
            f"{result.linked} linked, {len(result.missing)} missing"
        )
        return result
