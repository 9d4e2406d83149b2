"""
Persistent State

Flat-file storage under the data directory:
- logs.txt:  routing notices, oldest first on disk, newest first in memory
- stats.txt: command audit trail
- motd.txt:  message of the day as "<setter>%%<message>"
"""

import os
import logging
from typing import List
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MAX_ENTRIES = 500

LOGS_FILENAME = "logs.txt"
STATS_FILENAME = "stats.txt"
MOTD_FILENAME = "motd.txt"
MOTD_SEPARATOR = "%%"


class StorageError(Exception):
    """Exception raised when a data file cannot be read or written."""
    pass


@dataclass
class Motd:
    """Message of the day and who set it."""
    setter: str = ""
    message: str = ""


def load_logs(data_dir: str) -> List[str]:
    """Routing notices, newest first. Missing file gives an empty list."""
    lines = _read_lines(os.path.join(data_dir, LOGS_FILENAME))
    lines.reverse()
    return lines


def save_logs(data_dir: str, logs: List[str]) -> None:
    """Write routing notices given newest first; stored oldest first."""
    _write_lines(os.path.join(data_dir, LOGS_FILENAME), list(reversed(logs)))


def load_stats(data_dir: str) -> List[str]:
    return _read_lines(os.path.join(data_dir, STATS_FILENAME))


def save_stats(data_dir: str, stats: List[str]) -> None:
    """Write the command audit trail, keeping only the newest entries."""
    _write_lines(os.path.join(data_dir, STATS_FILENAME), stats[-MAX_ENTRIES:])


def load_motd(data_dir: str) -> Motd:
    path = os.path.join(data_dir, MOTD_FILENAME)
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            line = f.read().strip()
    except FileNotFoundError:
        return Motd()
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}")

    setter, sep, message = line.partition(MOTD_SEPARATOR)
    if not sep:
        return Motd(setter="", message=line)
    return Motd(setter=setter, message=message)


def save_motd(data_dir: str, motd: Motd) -> None:
    path = os.path.join(data_dir, MOTD_FILENAME)
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"{motd.setter}{MOTD_SEPARATOR}{motd.message}\n")
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}")


def add_log(logs: List[str], entry: str) -> List[str]:
    """Prepend a routing notice, dropping the oldest past the cap."""
    return ([entry] + logs)[:MAX_ENTRIES]


def add_stat(stats: List[str], entry: str) -> List[str]:
    """Append an audit entry, dropping the oldest past the cap."""
    stats = stats + [entry]
    if len(stats) > MAX_ENTRIES:
        stats = stats[1:]
    return stats


def _read_lines(path: str) -> List[str]:
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return [line.rstrip("\r\n") for line in f if line.rstrip("\r\n")]
    except FileNotFoundError:
        return []
    except OSError as e:
        raise StorageError(f"Failed to read {path}: {e}")


def _write_lines(path: str, lines: List[str]) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            for line in lines:
                f.write(line + "\n")
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}")
