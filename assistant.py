"""
Routing Assistant

Command dispatch for the routing team assistant. Turns operator commands
into LINKS queries and routing map lookups, and protocol replies into
collected link records.

The connection object must implement:
- privmsg(target: str, text: str) -> None
- send_raw(line: str) -> None

Operator authorization happens before handle_command() is called.
"""

import re
import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Any, Optional, Callable

from collector.links import (
    parse_irc_line,
    parse_links_reply,
    LinkRecord,
    short_name,
    RPL_LINKS,
    RPL_ENDOFLINKS,
)
from collector.session import QuerySession
from output.formatters import build_report, format_links_report
from routing_map import RoutingMap, RoutingMapStore, RoutingMapError
import storage
from storage import Motd, StorageError

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

RPL_LOGOFF = "601"

ROUTING_NOTICE_MARKER = "*** Routing"
ROUTING_NOTICE_PREFIX = "*** Routing -- from "

DEFAULT_LOG_COUNT = 10

STAT_TIME_FORMAT = "%a %b %d, %Y at %H:%M:%S GMT"
LOG_TIME_FORMAT = "%a %b %d, %Y %H:%M:%S GMT"

_SEARCH_CLEAN_RE = re.compile(r"[^\w\s-]")
_REGEX_CHARS_RE = re.compile(r"[+|*()\[\]]")

HELP_LINES = [
    "Available commands:",
    "!summary - displays a summary of currently linked/missing servers",
    "!links - shows all currently connected servers, compared to the routing map",
    "!map - displays the most recent routing map",
    "!logs - displays the last 10 routing notices received",
    "!logs <number> - displays the last given number of messages",
    "!logsearch - search logs of routing notices for a given string",
    "!uplinks <server> - shows the primary, secondary and tertiary hubs for the specified server",
    "!motd - displays the MOTD from the routing team",
    "!version - displays bot version information",
]

ADMIN_HELP_LINES = [
    " ",
    "Admin commands:",
    "!set motd <message>",
    "!reload - reload a fresh copy of the current routing map",
    "!logout",
]


class RoutingAssistant:
    """
    Routing team assistant bound to one connection.

    Holds the routing map store, the in-flight LINKS query session and the
    persisted logs, stats and MOTD.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        connection,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the assistant and load persisted state.

        Args:
            config: Processed configuration (see config.load_config)
            connection: Object implementing privmsg() and send_raw()
            clock: Source of the current UTC time for timestamps
        """
        self.config = config
        self.conn = connection
        self.data_dir = config["data_dir"]
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._lock = threading.RLock()
        self.admins: Dict[str, bool] = {}

        self.maps = RoutingMapStore(self.data_dir)
        self.session = QuerySession(timeout=config.get("links_timeout", QuerySession.DEFAULT_TIMEOUT))

        try:
            self.maps.reload()
        except RoutingMapError as e:
            logger.warning(f"Could not load routing map: {e}")

        self.logs: List[str] = self._load(storage.load_logs, [], "logs")
        self.stats: List[str] = self._load(storage.load_stats, [], "stats")
        self.motd: Motd = self._load(storage.load_motd, Motd(), "MOTD")

        self._commands = {
            "!help": self.cmd_help,
            "!links": lambda n, h, m: self.cmd_links(n, h, m, summary_only=False),
            "!summary": lambda n, h, m: self.cmd_links(n, h, m, summary_only=True),
            "!map": self.cmd_map,
            "!uplinks": self.cmd_uplinks,
            "!logs": self.cmd_logs,
            "!logsearch": self.cmd_logsearch,
            "!motd": self.cmd_motd,
            "!version": self.cmd_version,
            "!login": self.cmd_login,
            "!su": self.cmd_login,
            "!logout": self.cmd_logout,
            "!set": self.cmd_set,
            "!reload": self.cmd_reload,
        }

    def _load(self, loader, default, what: str):
        try:
            return loader(self.data_dir)
        except StorageError as e:
            logger.warning(f"Could not load {what}: {e}")
            return default

    @property
    def routing_map(self) -> RoutingMap:
        return self.maps.get()

    # Protocol input

    def handle_line(self, line: str) -> None:
        """Route one raw protocol line from the server."""
        message = parse_irc_line(line)
        if message is None:
            return

        if message.command == RPL_LINKS:
            record = parse_links_reply(message)
            if record is not None:
                self.session.add_record(record)
        elif message.command == RPL_ENDOFLINKS:
            self.end_of_query(connected_server=message.source)
        elif message.command == "NOTICE" and len(message.params) >= 2:
            self.handle_notice(message.source, message.params[1])
        elif message.command == RPL_LOGOFF and len(message.params) >= 2:
            self.handle_logoff(message.params[1])

    def begin_query(self, requester: str, summary_only: bool = False) -> None:
        """Start a LINKS query for requester, superseding any open one."""
        self.reload_map()
        self.session.begin(requester, summary_only)
        self.conn.send_raw("LINKS")

    def add_record(self, server: str, hub: str, hops: int, description: str = "") -> bool:
        return self.session.add_record(
            LinkRecord(server=server, hub=hub, hops=hops, description=description)
        )

    def end_of_query(self, connected_server: str = "") -> List[str]:
        """
        Finish the open LINKS query and send its report to the requester.

        Returns:
            The lines sent; empty if no query was open
        """
        query = self.session.end()
        if query is None or not query.requester:
            logger.debug("End of LINKS with no open query")
            return []

        with self._lock:
            motd = self.motd

        report = build_report(query.snapshot, self.routing_map)
        lines = format_links_report(
            report,
            summary_only=query.summary_only,
            connected_server=connected_server,
            motd=motd,
        )

        for line in lines:
            self.conn.privmsg(query.requester, line)

        logger.info(
            f"Sent LINKS report to {query.requester}: {len(query.snapshot)} servers, "
            f"{len(report.result.missing)} missing"
        )
        return lines

    def handle_notice(self, source: str, text: str) -> bool:
        """
        Record a routing notice from a network server.

        Returns:
            True if the notice was logged
        """
        if not any(source.endswith(suffix) for suffix in self.config["notice_sources"]):
            return False
        if ROUTING_NOTICE_MARKER not in text:
            return False

        if text.startswith(ROUTING_NOTICE_PREFIX):
            text = text[len(ROUTING_NOTICE_PREFIX):]

        timestamp = self._clock().strftime(LOG_TIME_FORMAT)
        entry = f"[{timestamp}] [{short_name(source)}]: {text}"

        with self._lock:
            self.logs = storage.add_log(self.logs, entry)
            logs = self.logs

        try:
            storage.save_logs(self.data_dir, logs)
        except StorageError as e:
            logger.error(f"Error saving logs: {e}")
        return True

    def handle_logoff(self, nick: str) -> None:
        """A watched admin signed off; end their admin session."""
        with self._lock:
            self.admins.pop(nick, None)
        self.conn.send_raw(f"WATCH -{nick}")

    def reload_map(self) -> bool:
        try:
            self.maps.reload()
        except RoutingMapError as e:
            logger.error(f"Routing map reload failed, keeping previous map: {e}")
            return False
        return True

    # Commands

    def handle_command(self, nick: str, hostmask: str, message: str) -> bool:
        """
        Dispatch a command from an authorized operator.

        Returns:
            True if the message was a known command
        """
        message = message.strip()
        if not message:
            return False

        cmd = message.split()[0].lower()
        handler = self._commands.get(cmd)
        if handler is None:
            return False

        handler(nick, hostmask, message)
        return True

    def is_admin(self, nick: str) -> bool:
        with self._lock:
            return self.admins.get(nick, False)

    def cmd_help(self, nick: str, hostmask: str, message: str) -> None:
        self.log_command(hostmask, message)
        lines = list(HELP_LINES)
        if self.is_admin(nick):
            lines.extend(ADMIN_HELP_LINES)
        self._reply(nick, lines)

    def cmd_links(self, nick: str, hostmask: str, message: str, summary_only: bool = False) -> None:
        self.log_command(hostmask, message)
        self.begin_query(nick, summary_only)

    def cmd_map(self, nick: str, hostmask: str, message: str) -> None:
        self.log_command(hostmask, message)
        self._reply(nick, self.routing_map.raw)

    def cmd_uplinks(self, nick: str, hostmask: str, message: str) -> None:
        self.log_command(hostmask, message)

        parts = message.split()
        if len(parts) < 2:
            self._reply(nick, self.routing_map.uplink_lines())
            return

        term = _SEARCH_CLEAN_RE.sub("", short_name(parts[1]))
        lines = self.routing_map.uplink_lines(term)
        if not lines:
            self.conn.privmsg(nick, "No such server found")
            return
        self._reply(nick, lines)

    def cmd_logs(self, nick: str, hostmask: str, message: str) -> None:
        self.log_command(hostmask, message)

        count = DEFAULT_LOG_COUNT
        parts = message.split()
        if len(parts) > 1:
            try:
                requested = int(parts[1])
            except ValueError:
                requested = 0
            if requested > 0:
                count = requested

        with self._lock:
            logs = self.logs[:count]

        self.conn.privmsg(nick, f"The last \x02{count}\x02 routing notices:")
        self._reply(nick, logs)

    def cmd_logsearch(self, nick: str, hostmask: str, message: str) -> None:
        self.log_command(hostmask, message)

        parts = message.split(" ", 1)
        term = parts[1].strip() if len(parts) > 1 else ""
        if not term:
            self.conn.privmsg(nick, "Please specify a string to search for")
            return

        if _REGEX_CHARS_RE.search(term):
            self.conn.privmsg(
                nick, "Please try searching without regular expression characters - *+()|[]"
            )
            return

        with self._lock:
            logs = list(self.logs)

        self.conn.privmsg(nick, f'Displaying search results for "{term}":')
        term_lower = term.lower()
        self._reply(nick, ["    " + log for log in logs if term_lower in log.lower()])
        self.conn.privmsg(nick, "End of matches")

    def cmd_motd(self, nick: str, hostmask: str, message: str) -> None:
        self.log_command(hostmask, message)
        with self._lock:
            motd = self.motd
        self.conn.privmsg(nick, motd.message)
        self.conn.privmsg(nick, f"MOTD set by {motd.setter}")

    def cmd_version(self, nick: str, hostmask: str, message: str) -> None:
        self.log_command(hostmask, message)
        self.conn.privmsg(nick, f"{self.config['nick']} routing assistant version {VERSION}")

    def cmd_login(self, nick: str, hostmask: str, message: str) -> None:
        parts = message.split()
        if len(parts) < 2:
            self.conn.privmsg(nick, "Usage: !login <password>")
            return

        admin_pass = self.config.get("admin_pass", "")
        if admin_pass and parts[1] == admin_pass:
            with self._lock:
                self.admins[nick] = True
            self.conn.send_raw(f"WATCH +{nick}")
            self.conn.privmsg(
                nick,
                "Password accepted, you are now an admin. "
                "Type !help for a list of admin-only commands",
            )
            self.log_command(hostmask, "successful login")
        else:
            self.conn.privmsg(nick, "Password incorrect")
            self.log_command(hostmask, "INCORRECT LOGIN ATTEMPT")

    def cmd_logout(self, nick: str, hostmask: str, message: str) -> None:
        with self._lock:
            was_admin = self.admins.pop(nick, False)

        if was_admin:
            self.conn.send_raw(f"WATCH -{nick}")
            self.conn.privmsg(nick, "You have been logged out")
            self.log_command(hostmask, "logged out")
        else:
            self.conn.privmsg(nick, "You're not logged in!")
            self.log_command(hostmask, "tried to log out, but wasn't logged in")

    def cmd_set(self, nick: str, hostmask: str, message: str) -> None:
        if not message.lower().startswith("!set motd"):
            return

        if not self.is_admin(nick):
            self.conn.privmsg(nick, "Sorry, only my admins can change the motd")
            self.log_command(hostmask, "tried to change MOTD but wasn't logged in")
            return

        parts = message.split(" ", 2)
        if len(parts) < 3 or not parts[2].strip():
            self.conn.privmsg(nick, "Usage: !set motd <message>")
            return

        text = parts[2].strip()
        timestamp = self._clock().strftime(STAT_TIME_FORMAT)
        motd = Motd(setter=f"{nick} on {timestamp}", message=text)

        with self._lock:
            self.motd = motd

        try:
            storage.save_motd(self.data_dir, motd)
        except StorageError as e:
            self.conn.privmsg(nick, f"Error saving MOTD: {e}")
            return

        self.conn.privmsg(nick, f'MOTD has been set to "{text}"')
        self.log_command(hostmask, f'changed MOTD to "{text}"')

    def cmd_reload(self, nick: str, hostmask: str, message: str) -> None:
        if not self.is_admin(nick):
            self.conn.privmsg(nick, "Sorry, only my admins can issue that command")
            self.log_command(hostmask, "tried to reload routing map, but wasn't logged in")
            return

        self.conn.privmsg(nick, "Reloading routing map...")
        if self.reload_map():
            self.conn.privmsg(nick, "Done.")
        else:
            self.conn.privmsg(nick, "Reload failed, still using the previous map.")
        self.log_command(hostmask, "reloaded routing map")

    # Helpers

    def log_command(self, hostmask: str, command: str) -> None:
        """Append an entry to the command audit trail and persist it."""
        timestamp = self._clock().strftime(STAT_TIME_FORMAT)
        entry = f"{timestamp}: {hostmask} -> {command}"

        with self._lock:
            self.stats = storage.add_stat(self.stats, entry)
            stats = self.stats

        try:
            storage.save_stats(self.data_dir, stats)
        except StorageError as e:
            logger.error(f"Error saving stats: {e}")

    def _reply(self, nick: str, lines: List[str]) -> None:
        for line in lines:
            self.conn.privmsg(nick, line)
