"""
Collector module - LINKS reply collection

Contains:
- links: link records, snapshot and reply parsing
- session: the single in-flight topology query
"""

from .links import (
    LinkRecord,
    LinkSnapshot,
    IRCMessage,
    short_name,
    parse_irc_line,
    parse_links_reply,
    parse_links_line,
    RPL_LINKS,
    RPL_ENDOFLINKS,
)
from .session import QuerySession, LinksQuery

__all__ = [
    'LinkRecord',
    'LinkSnapshot',
    'IRCMessage',
    'short_name',
    'parse_irc_line',
    'parse_links_reply',
    'parse_links_line',
    'RPL_LINKS',
    'RPL_ENDOFLINKS',
    'QuerySession',
    'LinksQuery',
]
