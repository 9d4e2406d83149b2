"""
Output module - LINKS report formatters

Contains formatters for:
- Tree lines (indented server map)
- Report lines sent to the requester
- JSON
"""

from .formatters import (
    LinksReport,
    build_report,
    render_tree,
    format_summary,
    format_links_report,
    to_json,
)

__all__ = [
    'LinksReport',
    'build_report',
    'render_tree',
    'format_summary',
    'format_links_report',
    'to_json',
]
