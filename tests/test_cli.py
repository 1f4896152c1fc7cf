from __future__ import annotations

import json
from pathlib import Path

import pytest

from imsg_autoreply import cli
from imsg_autoreply import config as cfg
from imsg_autoreply.loop import AutoResponder


@pytest.fixture
def config_file(monkeypatch, tmp_path: Path, chat_db):
    db_path, _ = chat_db
    monkeypatch.setattr(cfg, "_config_cache", None)
    monkeypatch.setattr(cfg, "_config_override", None)
    monkeypatch.setattr(cli, "setup_logging", lambda level="INFO": None)

    path = tmp_path / "config.yaml"
    path.write_text(
        f"""
messages_db: {db_path}
state_dir: {tmp_path}/state
replies:
  "friend@example.com": "Away"
"""
    )
    return path


def test_run_exits_1_when_messages_db_missing(monkeypatch, tmp_path: Path, capsys):
    monkeypatch.setattr(cfg, "_config_cache", None)
    monkeypatch.setattr(cfg, "_config_override", None)
    monkeypatch.setattr(cli, "setup_logging", lambda level="INFO": None)
    path = tmp_path / "config.yaml"
    path.write_text(f"messages_db: {tmp_path}/missing/chat.db\n")

    rc = cli.main(["--config", str(path), "run", "--once"])

    assert rc == 1
    assert "Messages DB not found" in capsys.readouterr().err


def test_run_once_bootstraps_cursor(config_file: Path, tmp_path: Path, chat_db):
    _, add = chat_db
    add("before we started", "friend@example.com", 1)

    rc = cli.main(["--config", str(config_file), "run", "--once", "--dry-run"])

    assert rc == 0
    assert (tmp_path / "state" / "last_rowid.txt").read_text().strip() == "1"


def test_run_handles_ctrl_c(monkeypatch, config_file: Path, capsys):
    def _interrupt(self, max_iterations=None):
        raise KeyboardInterrupt

    monkeypatch.setattr(AutoResponder, "run", _interrupt)

    assert cli.main(["--config", str(config_file), "run"]) == 0
    assert "Stopped." in capsys.readouterr().out


def test_on_off_toggle_flag(config_file: Path, tmp_path: Path, capsys):
    flag = tmp_path / "state" / "focus.flag"

    assert cli.main(["--config", str(config_file), "on"]) == 0
    assert flag.exists()
    assert cli.main(["--config", str(config_file), "off"]) == 0
    assert not flag.exists()
    assert "Auto-reply OFF" in capsys.readouterr().out


def test_status_json(config_file: Path, chat_db, capsys):
    _, add = chat_db
    add("hi", "friend@example.com", 1)

    assert cli.main(["--config", str(config_file), "status", "--json"]) == 0
    status = json.loads(capsys.readouterr().out)

    assert status["latest_id"] == 1
    assert status["cursor"] == 0
    assert status["active"] is False
    assert status["contacts"] == ["friend@example.com"]
    assert status["db_error"] is None


def test_send_uses_actuator(monkeypatch, config_file: Path, capsys):
    sent = []
    monkeypatch.setattr(
        "imsg_autoreply.actuator.OsascriptActuator.send",
        lambda self, handle, text: sent.append((handle, text)) or True,
    )

    assert cli.main(["--config", str(config_file), "send", "+1555", "hello"]) == 0
    assert sent == [("+1555", "hello")]
    assert "Sent to +1555" in capsys.readouterr().out


def test_config_path_prints_pinned_file(config_file: Path, capsys):
    assert cli.main(["--config", str(config_file), "config", "--path"]) == 0
    assert capsys.readouterr().out.strip() == str(config_file)


def test_send_dry_run_goes_through_dry_run_actuator(monkeypatch, config_file: Path, capsys):
    real, dry = [], []
    monkeypatch.setattr(
        "imsg_autoreply.actuator.OsascriptActuator.send",
        lambda self, handle, text: real.append((handle, text)) or True,
    )
    monkeypatch.setattr(
        "imsg_autoreply.actuator.DryRunActuator.send",
        lambda self, handle, text: dry.append((handle, text)) or True,
    )

    assert cli.main(["--config", str(config_file), "send", "+1555", "hello", "--dry-run"]) == 0
    assert real == []
    assert dry == [("+1555", "hello")]
