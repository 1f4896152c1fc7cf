from __future__ import annotations

from pathlib import Path

from imsg_autoreply.state import CursorStore


def test_load_returns_zero_when_file_missing(tmp_path: Path):
    assert CursorStore(tmp_path / "last_rowid.txt").load() == 0


def test_load_returns_zero_for_malformed_content(tmp_path: Path):
    path = tmp_path / "last_rowid.txt"
    for junk in ["", "abc", "12.5", "-4"]:
        path.write_text(junk)
        assert CursorStore(path).load() == 0


def test_load_strips_whitespace(tmp_path: Path):
    path = tmp_path / "last_rowid.txt"
    path.write_text("  4521\n")
    assert CursorStore(path).load() == 4521


def test_store_creates_parent_and_leaves_no_tmp_file(tmp_path: Path):
    path = tmp_path / "state" / "nested" / "last_rowid.txt"
    store = CursorStore(path)

    store.store(17)
    store.store(18)

    assert store.load() == 18
    assert sorted(p.name for p in path.parent.iterdir()) == ["last_rowid.txt"]


def test_store_failure_is_logged_not_raised(tmp_path: Path, caplog):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file in the way")
    store = CursorStore(blocker / "last_rowid.txt")

    store.store(5)  # must not raise

    assert store.load() == 0
    assert "Could not persist cursor" in caplog.text


def test_replace_keeps_previous_value_if_write_fails(tmp_path: Path, monkeypatch):
    path = tmp_path / "last_rowid.txt"
    store = CursorStore(path)
    store.store(10)

    def _boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("imsg_autoreply.state.os.replace", _boom)
    store.store(11)

    assert path.read_text().strip() == "10"
