# AgentConfig, ConnectionConfig, CombatConfig dataclasses
# src/env/schema.py

from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional, Tuple


@dataclass(frozen=True)
class ConnectionConfig:
    """How to reach the game server."""
    host: str = "127.0.0.1"
    port: int = 25565
    version: str = "1.21.1"
    username: str = "email@example.com"
    auth: str = "microsoft"            # "microsoft" or "offline"
    profiles_folder: str = "./profiles"


@dataclass(frozen=True)
class CombatConfig:
    """Tuning for the attack loop and its target selector."""
    range: float = 3.2
    # 1.0 = exactly forward, 0.0 = 90 degrees to the side
    fov_cos: float = 0.92
    every_ms: int = 600
    kinds: Tuple[str, ...] = ("mob",)


@dataclass(frozen=True)
class RunnerConfig:
    """Timing for the queue runner and goto handler (seconds)."""
    idle_s: float = 1.5
    backoff_s: float = 2.0
    goto_timeout_s: float = 120.0
    max_retries: int = 0               # 0 = retry forever


@dataclass(frozen=True)
class ReconnectConfig:
    """Exponential backoff used when the agent reconnects in-process."""
    initial_s: float = 1.0
    factor: float = 2.0
    max_s: float = 60.0
    max_attempts: int = 0              # 0 = unlimited


@dataclass(frozen=True)
class AgentConfig:
    """Resolved process-wide configuration. Read-only after boot."""
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    combat: CombatConfig = field(default_factory=CombatConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    prefix: str = "!"
    control_users: FrozenSet[str] = frozenset()   # empty = anyone
    interact_distance: float = 4.5
    exit_on_disconnect: bool = True
    state_file: Path = Path("state.json")
    client_mode: str = "mineflayer"    # "mineflayer" or "fake"
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    event_log: Optional[Path] = None

    def is_allowed(self, username: str) -> bool:
        """True if `username` may issue commands."""
        if not self.control_users:
            return True
        return username in self.control_users
