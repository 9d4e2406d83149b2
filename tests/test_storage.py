"""Tests for flat-file logs, stats and MOTD."""

import pytest

import storage
from storage import Motd, StorageError, MAX_ENTRIES


def test_missing_files_give_empty_state(tmp_path):
    assert storage.load_logs(str(tmp_path)) == []
    assert storage.load_stats(str(tmp_path)) == []
    assert storage.load_motd(str(tmp_path)) == Motd()


def test_logs_newest_first_in_memory_oldest_first_on_disk(tmp_path):
    logs = storage.add_log([], "first")
    logs = storage.add_log(logs, "second")
    assert logs == ["second", "first"]

    storage.save_logs(str(tmp_path), logs)
    assert (tmp_path / "logs.txt").read_text().splitlines() == ["first", "second"]
    assert storage.load_logs(str(tmp_path)) == ["second", "first"]


def test_add_log_caps_entries():
    logs = [str(i) for i in range(MAX_ENTRIES)]
    logs = storage.add_log(logs, "new")
    assert len(logs) == MAX_ENTRIES
    assert logs[0] == "new"
    assert logs[-1] == str(MAX_ENTRIES - 2)


def test_add_stat_drops_oldest():
    stats = [str(i) for i in range(MAX_ENTRIES)]
    stats = storage.add_stat(stats, "new")
    assert len(stats) == MAX_ENTRIES
    assert stats[0] == "1"
    assert stats[-1] == "new"


def test_save_stats_keeps_newest(tmp_path):
    stats = [str(i) for i in range(MAX_ENTRIES + 10)]
    storage.save_stats(str(tmp_path), stats)
    loaded = storage.load_stats(str(tmp_path))
    assert len(loaded) == MAX_ENTRIES
    assert loaded[0] == "10"


def test_blank_lines_skipped(tmp_path):
    (tmp_path / "stats.txt").write_text("a\n\nb\n")
    assert storage.load_stats(str(tmp_path)) == ["a", "b"]


def test_motd_round_trip(tmp_path):
    storage.save_motd(str(tmp_path), Motd(setter="alice on Sun", message="Hello 50%"))
    assert storage.load_motd(str(tmp_path)) == Motd(setter="alice on Sun", message="Hello 50%")


def test_motd_without_separator_is_all_message(tmp_path):
    (tmp_path / "motd.txt").write_text("just a message\n")
    assert storage.load_motd(str(tmp_path)) == Motd(setter="", message="just a message")


def test_unreadable_file_raises(tmp_path):
    (tmp_path / "logs.txt").mkdir()
    with pytest.raises(StorageError):
        storage.load_logs(str(tmp_path))
