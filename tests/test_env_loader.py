# tests/test_env_loader.py
"""
Tests for env.loader.load_environment.

Covers:
- defaults with an empty environment
- environment variable parsing (lists, booleans, numbers)
- YAML file values and env-over-YAML precedence
- validation errors
"""

from __future__ import annotations

from pathlib import Path

import pytest

from env.loader import ConfigError, load_environment


def test_defaults_with_empty_environment() -> None:
    cfg = load_environment(environ={})

    assert cfg.connection.host == "127.0.0.1"
    assert cfg.connection.port == 25565
    assert cfg.connection.version == "1.21.1"
    assert cfg.connection.auth == "microsoft"
    assert cfg.prefix == "!"
    assert cfg.control_users == frozenset()
    assert cfg.interact_distance == 4.5
    assert cfg.exit_on_disconnect is True
    assert cfg.combat.range == 3.2
    assert cfg.combat.fov_cos == 0.92
    assert cfg.combat.every_ms == 600
    assert cfg.combat.kinds == ("mob",)
    assert cfg.runner.idle_s == 1.5
    assert cfg.runner.backoff_s == 2.0
    assert cfg.runner.goto_timeout_s == 120.0
    assert cfg.runner.max_retries == 0
    assert cfg.state_file == Path("state.json")
    assert cfg.log_file is None
    assert cfg.event_log is None


def test_environment_variables_are_parsed() -> None:
    cfg = load_environment(
        environ={
            "MC_HOST": "mc.example.org",
            "MC_PORT": "25570",
            "MC_USER": "Bot",
            "MC_AUTH": "offline",
            "CONTROL_USERS": " Alice, Bob ,,",
            "CMD_PREFIX": "#",
            "EXIT_ON_DISCONNECT": "0",
            "INTERACT_DIST": "3",
            "ATTACK_RANGE": "4",
            "ATTACK_FOV": "0.5",
            "ATTACK_EVERY_MS": "250",
            "ATTACK_TYPES": "mob,player",
            "TASK_MAX_RETRIES": "5",
            "STATE_FILE": "/tmp/agent/state.json",
            "LOG_FILE": "logs/agent.log",
            "EVENT_LOG": "logs/events.jsonl",
            "BOT_CLIENT": "fake",
        }
    )

    assert cfg.connection.host == "mc.example.org"
    assert cfg.connection.port == 25570
    assert cfg.connection.username == "Bot"
    assert cfg.connection.auth == "offline"
    assert cfg.control_users == frozenset({"Alice", "Bob"})
    assert cfg.prefix == "#"
    assert cfg.exit_on_disconnect is False
    assert cfg.interact_distance == 3.0
    assert cfg.combat.range == 4.0
    assert cfg.combat.fov_cos == 0.5
    assert cfg.combat.every_ms == 250
    assert cfg.combat.kinds == ("mob", "player")
    assert cfg.runner.max_retries == 5
    assert cfg.state_file == Path("/tmp/agent/state.json")
    assert cfg.log_file == Path("logs/agent.log")
    assert cfg.event_log == Path("logs/events.jsonl")
    assert cfg.client_mode == "fake"


def test_is_allowed_respects_control_users() -> None:
    open_cfg = load_environment(environ={})
    closed_cfg = load_environment(environ={"CONTROL_USERS": "Alice"})

    assert open_cfg.is_allowed("anyone")
    assert closed_cfg.is_allowed("Alice")
    assert not closed_cfg.is_allowed("Bob")


def test_yaml_file_and_env_precedence(tmp_path: Path) -> None:
    path = tmp_path / "agent.yaml"
    path.write_text(
        "connection:\n"
        "  host: yaml-host\n"
        "  port: 25566\n"
        "combat:\n"
        "  kinds: [mob, player]\n"
        "runner:\n"
        "  backoff_s: 0.5\n"
        "prefix: '?'\n"
        "control_users: [Alice]\n",
        encoding="utf-8",
    )

    cfg = load_environment(environ={"MC_PORT": "30000"}, config_path=path)

    assert cfg.connection.host == "yaml-host"
    assert cfg.connection.port == 30000
    assert cfg.combat.kinds == ("mob", "player")
    assert cfg.runner.backoff_s == 0.5
    assert cfg.prefix == "?"
    assert cfg.control_users == frozenset({"Alice"})


def test_config_path_from_environment(tmp_path: Path) -> None:
    path = tmp_path / "agent.yaml"
    path.write_text("interact_distance: 6\n", encoding="utf-8")

    cfg = load_environment(environ={"AGENT_CONFIG": str(path)})

    assert cfg.interact_distance == 6.0


def test_empty_yaml_section_is_tolerated(tmp_path: Path) -> None:
    path = tmp_path / "agent.yaml"
    path.write_text("combat:\n", encoding="utf-8")

    cfg = load_environment(environ={"ATTACK_RANGE": "2.5"}, config_path=path)

    assert cfg.combat.range == 2.5


@pytest.mark.parametrize(
    "environ",
    [
        {"MC_PORT": "not-a-port"},
        {"MC_PORT": "70000"},
        {"ATTACK_RANGE": "0"},
        {"ATTACK_FOV": "1.5"},
        {"ATTACK_TYPES": " , "},
        {"CMD_PREFIX": ""},
        {"TASK_MAX_RETRIES": "-1"},
        {"BOT_CLIENT": "telnet"},
    ],
)
def test_invalid_values_raise_config_error(environ) -> None:
    with pytest.raises(ConfigError):
        load_environment(environ=environ)


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_environment(environ={}, config_path=tmp_path / "missing.yaml")
