"""
Link Record Collection

Parses LINKS replies from the chat network and accumulates them into a
snapshot for a single in-flight topology query.

Reply formats handled:
- Raw protocol line:  ":irc.example.net 364 me leaf.example.net hub.example.net :2 Leaf"
- Bare dump line:     "leaf.example.net hub.example.net 2 Leaf"
"""

import logging
from typing import Dict, List, Optional, Any, Tuple
from dataclasses import dataclass, field, asdict

logger = logging.getLogger(__name__)

RPL_LINKS = "364"
RPL_ENDOFLINKS = "365"


def short_name(server: str) -> str:
    """
    Strip the domain suffix from a server name.

    Returns the text before the first '.', or the name unchanged when it
    has no '.' (or starts with one).
    """
    idx = server.find(".")
    if idx > 0:
        return server[:idx]
    return server


@dataclass
class LinkRecord:
    """One reported link between a server and its hub."""
    server: str
    hub: str
    hops: int = 0
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class IRCMessage:
    """A parsed protocol line."""
    source: str
    command: str
    params: List[str] = field(default_factory=list)


class LinkSnapshot:
    """
    Keyed collection of link records for one query.

    The last record for a server wins; arrival order keeps every add,
    duplicates included, and is only used for tie-breaks.
    """

    def __init__(self):
        self._records: Dict[str, LinkRecord] = {}
        self._order: List[str] = []

    def add(self, server: str, hub: str, hops: int, description: str = "") -> LinkRecord:
        record = LinkRecord(server=server, hub=hub, hops=hops, description=description)
        self._records[server] = record
        self._order.append(server)
        return record

    def add_record(self, record: LinkRecord) -> LinkRecord:
        return self.add(record.server, record.hub, record.hops, record.description)

    def get(self, server: str) -> Optional[LinkRecord]:
        return self._records.get(server)

    @property
    def records(self) -> Dict[str, LinkRecord]:
        return self._records

    @property
    def arrival_order(self) -> List[str]:
        return list(self._order)

    def linked_servers(self) -> List[str]:
        """Short names of every held record, without deduplication."""
        return [short_name(server) for server in self._records]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, server: str) -> bool:
        return server in self._records

    def __repr__(self) -> str:
        return f"LinkSnapshot({len(self._records)} servers)"


def parse_irc_line(line: str) -> Optional[IRCMessage]:
    """
    Split a protocol line into source, command and parameters.

    Args:
        line: Raw line, with or without trailing CRLF

    Returns:
        IRCMessage, or None for an empty line
    """
    line = line.rstrip("\r\n")
    if not line.strip():
        return None

    source = ""
    if line.startswith(":"):
        source, _, line = line[1:].partition(" ")
        # "nick!user@host" sources keep only the nick
        source = source.split("!", 1)[0]

    trailing = None
    if " :" in line:
        line, trailing = line.split(" :", 1)
    elif line.startswith(":"):
        line, trailing = "", line[1:]

    parts = line.split()
    if not parts:
        return None

    params = parts[1:]
    if trailing is not None:
        params.append(trailing)

    return IRCMessage(source=source, command=parts[0].upper(), params=params)


def _parse_hops(info: str) -> Tuple[int, str]:
    """Split "<hops> <description>" into (int, str); bad hops count as 0."""
    hops_text, _, description = info.partition(" ")
    try:
        hops = int(hops_text)
    except ValueError:
        logger.debug(f"Non-numeric hop count {hops_text!r}, using 0")
        hops = 0
    return hops, description


def parse_links_reply(message: IRCMessage) -> Optional[LinkRecord]:
    """
    Convert a 364 reply into a LinkRecord.

    364 <me> <server> <hub> :<hops> <description>
    """
    if message.command != RPL_LINKS:
        return None
    if len(message.params) < 4:
        logger.debug(f"Short LINKS reply ignored: {message.params}")
        return None

    server = message.params[1]
    hub = message.params[2]
    hops, description = _parse_hops(message.params[3])

    return LinkRecord(server=server, hub=hub, hops=hops, description=description)


def parse_links_line(line: str) -> Optional[LinkRecord]:
    """
    Parse one line of a captured LINKS dump.

    Accepts either a raw 364 protocol line or the bare
    "<server> <hub> <hops> <description>" form.
    """
    stripped = line.strip()
    if not stripped:
        return None

    if stripped.startswith(":"):
        message = parse_irc_line(stripped)
        if message is None:
            return None
        return parse_links_reply(message)

    parts = stripped.split(None, 2)
    if len(parts) < 3:
        logger.debug(f"Unrecognised LINKS line ignored: {stripped!r}")
        return None

    server, hub, info = parts
    hops, description = _parse_hops(info.lstrip(":"))

    return LinkRecord(server=server, hub=hub, hops=hops, description=description)
