#!/usr/bin/env python3
"""
LINKS Map Report Script

Rebuilds the server tree from a captured LINKS reply and compares it with
the routing map.

Usage:
    python scripts/linkmap.py --links links.txt --data-dir data
    python scripts/linkmap.py -c config.yaml -l links.txt --summary
    python scripts/linkmap.py -l links.txt -f json -o report.json
    python scripts/linkmap.py -d data --uplinks server1
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

# Add parent directory to path for imports when running as script
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(script_dir)
if project_root not in sys.path:
    sys.path.insert(0, project_root)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def read_links(path: str):
    """
    Collect a LINKS snapshot from a captured dump.

    Args:
        path: File with one reply per line, or "-" for stdin

    Returns:
        Tuple of (LinkSnapshot, connected server name from the 365 line)
    """
    from collector import LinkSnapshot, parse_irc_line, parse_links_line, RPL_ENDOFLINKS

    logger = logging.getLogger(__name__)

    if path == "-":
        lines = sys.stdin.read().splitlines()
    else:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()

    snapshot = LinkSnapshot()
    connected_server = ""

    for line in lines:
        if line.startswith(":"):
            message = parse_irc_line(line)
            if message is not None and message.command == RPL_ENDOFLINKS:
                connected_server = message.source
                break

        record = parse_links_line(line)
        if record is not None:
            snapshot.add_record(record)

    logger.info(f"Read {len(snapshot)} servers from {path}")
    return snapshot, connected_server


def print_uplinks(routing_map, term: str) -> int:
    """Print the routing map assignments matching term."""
    names = routing_map.find_servers(term)
    if not names:
        print("No such server found")
        return 1

    for name in names:
        uplinks = routing_map.servers.get(name, [])
        print(f"{name}: {' '.join(uplinks)}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Rebuild the server map from a LINKS reply and compare it with the routing map"
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to config file (optional; supplies data_dir)"
    )
    parser.add_argument(
        "-d", "--data-dir",
        help="Directory holding rmap.txt (default: data_dir from config, else ./data)"
    )
    parser.add_argument(
        "-l", "--links",
        help="Captured LINKS reply, one line per server, or - for stdin"
    )
    parser.add_argument(
        "--server",
        default="",
        help="Server the LINKS view was taken from (default: source of the 365 line)"
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Only report linked/missing counts, not the tree"
    )
    parser.add_argument(
        "--uplinks",
        metavar="SERVER",
        help="Show routing map uplinks for servers starting with SERVER and exit"
    )
    parser.add_argument(
        "-o", "--output",
        help="Output file path (default: stdout for text, required for JSON)"
    )
    parser.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    from config import load_config, ConfigError, DEFAULTS
    from routing_map import load_routing_map, RoutingMapError
    from storage import load_motd, StorageError
    from output import build_report, format_links_report, to_json

    try:
        data_dir = args.data_dir
        if data_dir is None:
            data_dir = load_config(args.config)["data_dir"] if args.config else DEFAULTS["data_dir"]

        routing_map = load_routing_map(data_dir)

        if args.uplinks:
            return print_uplinks(routing_map, args.uplinks)

        if not args.links:
            parser.error("--links is required unless --uplinks is given")

        snapshot, connected_server = read_links(args.links)
        report = build_report(snapshot, routing_map)

        if args.format == "json":
            if not args.output:
                print("Error: --output is required for JSON format", file=sys.stderr)
                return 1
            to_json(report, args.output)
            print(f"Report written to {args.output}")
            return 0

        try:
            motd = load_motd(data_dir)
        except StorageError as e:
            logger.warning(f"Could not load MOTD: {e}")
            motd = None
        if motd is not None and not motd.message:
            motd = None

        lines = format_links_report(
            report,
            summary_only=args.summary,
            connected_server=args.server or connected_server,
            motd=motd,
        )
        text = "\n".join(lines)

        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(text + "\n")
            print(f"Report written to {args.output}")
        else:
            print(text)

    except ConfigError as e:
        logger.error(f"Config error: {e}")
        return 1
    except RoutingMapError as e:
        logger.error(f"Routing map error: {e}")
        return 1
    except OSError as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
