from __future__ import annotations

import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml

from .schema import (
    AgentConfig,
    CombatConfig,
    ConnectionConfig,
    ReconnectConfig,
    RunnerConfig,
)


class ConfigError(ValueError):
    """Raised when the resolved configuration is invalid."""


# ---------------------------------------------------------------------------
# Environment variable mapping
# ---------------------------------------------------------------------------

# env var -> (section or None for top-level, key)
ENV_VARS: Dict[str, Tuple[Optional[str], str]] = {
    "MC_HOST": ("connection", "host"),
    "MC_PORT": ("connection", "port"),
    "MC_VERSION": ("connection", "version"),
    "MC_USER": ("connection", "username"),
    "MC_AUTH": ("connection", "auth"),
    "PROFILES_DIR": ("connection", "profiles_folder"),
    "ATTACK_RANGE": ("combat", "range"),
    "ATTACK_FOV": ("combat", "fov_cos"),
    "ATTACK_EVERY_MS": ("combat", "every_ms"),
    "ATTACK_TYPES": ("combat", "kinds"),
    "TASK_IDLE_S": ("runner", "idle_s"),
    "TASK_BACKOFF_S": ("runner", "backoff_s"),
    "GOTO_TIMEOUT_S": ("runner", "goto_timeout_s"),
    "TASK_MAX_RETRIES": ("runner", "max_retries"),
    "RECONNECT_INITIAL_S": ("reconnect", "initial_s"),
    "RECONNECT_MAX_S": ("reconnect", "max_s"),
    "RECONNECT_MAX_ATTEMPTS": ("reconnect", "max_attempts"),
    "CMD_PREFIX": (None, "prefix"),
    "CONTROL_USERS": (None, "control_users"),
    "INTERACT_DIST": (None, "interact_distance"),
    "EXIT_ON_DISCONNECT": (None, "exit_on_disconnect"),
    "STATE_FILE": (None, "state_file"),
    "BOT_CLIENT": (None, "client_mode"),
    "LOG_LEVEL": (None, "log_level"),
    "LOG_FILE": (None, "log_file"),
    "EVENT_LOG": (None, "event_log"),
}

CONFIG_PATH_VAR = "AGENT_CONFIG"

SECTIONS = {
    "connection": ConnectionConfig,
    "combat": CombatConfig,
    "runner": RunnerConfig,
    "reconnect": ReconnectConfig,
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML config file; the top level must be a mapping."""
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected mapping at top of {path}, got {type(data).__name__}")
    return data


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_names(value: Any) -> Tuple[str, ...]:
    """Accept "a, b" or ["a", "b"]; drop blanks."""
    if value is None:
        return ()
    items = value.split(",") if isinstance(value, str) else list(value)
    return tuple(str(item).strip() for item in items if str(item).strip())


def _as_optional_path(value: Any) -> Optional[Path]:
    if value is None or str(value).strip() == "":
        return None
    return Path(str(value))


# Converters by (section, key); anything not listed is converted from the
# dataclass field annotation.
_SPECIAL: Dict[Tuple[Optional[str], str], Callable[[Any], Any]] = {
    ("combat", "kinds"): _as_names,
    (None, "control_users"): lambda v: frozenset(_as_names(v)),
    (None, "exit_on_disconnect"): _as_bool,
    (None, "state_file"): lambda v: Path(str(v)),
    (None, "log_file"): _as_optional_path,
    (None, "event_log"): _as_optional_path,
}

_BY_ANNOTATION: Dict[str, Callable[[Any], Any]] = {
    "int": lambda v: int(float(v)),
    "float": float,
    "str": str,
    "bool": _as_bool,
}


def _type_name(tp: Any) -> str:
    return tp if isinstance(tp, str) else getattr(tp, "__name__", str(tp))


def _convert(section: Optional[str], key: str, annotation: str, value: Any) -> Any:
    converter = _SPECIAL.get((section, key)) or _BY_ANNOTATION.get(annotation)
    if converter is None:
        return value
    try:
        return converter(value)
    except (TypeError, ValueError) as exc:
        where = f"{section}.{key}" if section else key
        raise ConfigError(f"Invalid value for {where}: {value!r}") from exc


def _build(cls: Any, raw: Mapping[str, Any], section: Optional[str]) -> Dict[str, Any]:
    """Convert a raw mapping into kwargs for `cls`, ignoring unknown keys."""
    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name in SECTIONS and section is None:
            continue
        if f.name not in raw:
            continue
        value = raw[f.name]
        if value is None and f.name not in ("log_file", "event_log"):
            continue
        kwargs[f.name] = _convert(section, f.name, _type_name(f.type), value)
    return kwargs


def _merge_env(raw: Dict[str, Any], environ: Mapping[str, str]) -> None:
    """Overlay environment variables onto the raw (YAML-derived) mapping."""
    for var, (section, key) in ENV_VARS.items():
        if var not in environ:
            continue
        if section is not None and raw.get(section) is None:
            raw[section] = {}
        target = raw if section is None else raw[section]
        if not isinstance(target, dict):
            raise ConfigError(f"Config section {section!r} must be a mapping")
        target[key] = environ[var]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_environment(
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> AgentConfig:
    """
    Main entry point: returns a fully resolved AgentConfig.

    Precedence: dataclass defaults < YAML file < environment variables.
    The YAML file is `config_path`, else $AGENT_CONFIG, else none.
    """
    env = os.environ if environ is None else environ

    raw: Dict[str, Any] = {}
    path = config_path or (Path(env[CONFIG_PATH_VAR]) if env.get(CONFIG_PATH_VAR) else None)
    if path is not None:
        raw = _load_yaml(Path(path))

    _merge_env(raw, env)

    sections: Dict[str, Any] = {}
    for name, cls in SECTIONS.items():
        section_raw = raw.get(name) or {}
        if not isinstance(section_raw, dict):
            raise ConfigError(f"Config section {name!r} must be a mapping")
        sections[name] = cls(**_build(cls, section_raw, name))

    config = AgentConfig(**sections, **_build(AgentConfig, raw, None))
    _validate(config)
    return config


def _validate(cfg: AgentConfig) -> None:
    """Minimal sanity checks for the resolved configuration."""
    if not 0 < cfg.connection.port < 65536:
        raise ConfigError(f"Invalid port: {cfg.connection.port}")
    if not cfg.connection.host:
        raise ConfigError("Connection host must not be empty")
    if not cfg.prefix:
        raise ConfigError("Command prefix must not be empty")
    if cfg.interact_distance <= 0:
        raise ConfigError(f"interact_distance must be > 0, got {cfg.interact_distance}")

    combat = cfg.combat
    if combat.range <= 0:
        raise ConfigError(f"Attack range must be > 0, got {combat.range}")
    if not -1.0 <= combat.fov_cos <= 1.0:
        raise ConfigError(f"Attack FOV cosine must be in [-1, 1], got {combat.fov_cos}")
    if combat.every_ms <= 0:
        raise ConfigError(f"Attack interval must be > 0 ms, got {combat.every_ms}")
    if not combat.kinds:
        raise ConfigError("At least one attackable entity kind is required")

    runner = cfg.runner
    if runner.idle_s < 0 or runner.backoff_s < 0 or runner.goto_timeout_s <= 0:
        raise ConfigError(f"Invalid runner timings: {runner}")
    if runner.max_retries < 0:
        raise ConfigError("TASK_MAX_RETRIES must be >= 0")

    if cfg.client_mode not in ("mineflayer", "fake"):
        raise ConfigError(f"Invalid client mode: {cfg.client_mode}")
