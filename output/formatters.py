"""
Output Formatters

Turns a LINKS snapshot and its reconciliation into the text lines sent back
to the requester, or into JSON.

Tree lines look like:

    hub.example.net (0) Main Hub
    |_ a.example.net (1) Server A
        |_ c.example.net (2) Leaf C
    |_ b.example.net (1) Server B
"""

import json
import logging
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from pathlib import Path

from collector.links import LinkSnapshot, LinkRecord
from engine.tree import TreeBuilder, TreeOrder, NoRootError
from engine.reconcile import Reconciler, ReconcileResult
from routing_map import RoutingMap
from storage import Motd

logger = logging.getLogger(__name__)

NO_ROOT_LINE = "Error: no root server found"
END_OF_LIST_LINE = "End of server list."
BRANCH = "|_ "
CONTINUATION = "   |"
GAP = "    "


@dataclass
class LinksReport:
    """Everything produced for one completed LINKS query."""
    tree_lines: List[str] = field(default_factory=list)
    tree: Optional[TreeOrder] = None
    result: ReconcileResult = field(default_factory=ReconcileResult)

    def to_dict(self) -> Dict[str, Any]:
        output: Dict[str, Any] = {
            "tree": self.tree.to_dict() if self.tree is not None else None,
            "lines": list(self.tree_lines),
            "summary": self.result.to_dict(),
        }
        return output


def format_node(record: LinkRecord) -> str:
    return f"{record.server} ({record.hops}) {record.description}"


def render_tree(snapshot: LinkSnapshot, tree: Optional[TreeOrder] = None) -> List[str]:
    """
    Render a snapshot as indented tree lines, root first.

    For a node at depth N, each level 1..N-1 gets a continuation bar if
    any node still to be rendered sits at depth level+1, otherwise blank
    padding. This looks at depth counts only, not at subtree membership,
    so a bar can appear where a later branch of a different subtree sits
    at that depth.

    Args:
        snapshot: Completed LINKS snapshot
        tree: Precomputed ordering; built from the snapshot if omitted

    Returns:
        Rendered lines; a single diagnostic line if there is no root
    """
    if tree is None:
        try:
            tree = TreeBuilder().build(snapshot)
        except NoRootError:
            logger.warning(f"No root server in LINKS snapshot of {len(snapshot)} servers")
            return [NO_ROOT_LINE]

    hops = [snapshot.records[server].hops for server in tree.order]
    lines = []

    for i, server in enumerate(tree.order):
        record = snapshot.records[server]
        if record.hops == 0:
            lines.append(format_node(record))
            continue

        remaining = hops[i + 1:]
        prefix = []
        for level in range(1, record.hops):
            if level + 1 in remaining:
                prefix.append(CONTINUATION)
            else:
                prefix.append(GAP)
        prefix.append(BRANCH)

        lines.append("".join(prefix) + format_node(record))

    for server in tree.cycles:
        lines.append(f"Warning: link cycle detected at {server}")

    return lines


def build_report(snapshot: LinkSnapshot, routing_map: RoutingMap) -> LinksReport:
    """
    Build, render and reconcile a completed snapshot.

    Args:
        snapshot: Completed LINKS snapshot
        routing_map: Reference routing map

    Returns:
        LinksReport holding tree lines and reconciliation counts
    """
    report = LinksReport()

    try:
        report.tree = TreeBuilder().build(snapshot)
        report.tree_lines = render_tree(snapshot, report.tree)
    except NoRootError:
        logger.warning(f"No root server in LINKS snapshot of {len(snapshot)} servers")
        report.tree_lines = [NO_ROOT_LINE]

    report.result = Reconciler().reconcile(snapshot, routing_map)
    return report


def format_summary(result: ReconcileResult) -> List[str]:
    """Total/linked/missing lines for a reconciliation result."""
    lines = [
        f"Total servers: {result.total}",
        f"Linked servers: {result.linked}",
    ]
    if result.missing:
        lines.append(f"Missing servers: {', '.join(result.missing)} ({len(result.missing)})")
    else:
        lines.append("No servers are currently missing")
    return lines


def format_links_report(
    report: LinksReport,
    summary_only: bool = False,
    connected_server: str = "",
    motd: Optional[Motd] = None
) -> List[str]:
    """
    Format a report as the ordered lines sent to the requester.

    Args:
        report: Built LINKS report
        summary_only: Skip the tree and only report reconciliation
        connected_server: Server the view was taken from
        motd: Optional message of the day to append

    Returns:
        Ordered output lines
    """
    lines = []

    if not summary_only:
        lines.extend(report.tree_lines)
        lines.append(END_OF_LIST_LINE)
        lines.append(
            "Note - the map displayed above is the network as viewed "
            f"from my server, {connected_server}"
        )

    lines.extend(format_summary(report.result))

    if motd is not None:
        lines.append(" ")
        lines.append(f"[MOTD] {motd.message}")
        lines.append(f"MOTD set by {motd.setter}")

    return lines


def to_json(report: LinksReport, path: str, indent: int = 2) -> None:
    """
    Write a LINKS report to a JSON file.

    Args:
        report: Report to serialize
        path: Output file path
        indent: JSON indentation level
    """
    path_obj = Path(path)
    path_obj.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, indent=indent, ensure_ascii=False)

    logger.info(f"LINKS report written to {path}")
