# config/tools/validate_env.py

import sys           # for exit codes
from dataclasses import asdict  # config dataclasses -> dicts
from pprint import pprint  # for structured printing

# make src discoverable if running as a script
from pathlib import Path
# __file__ is .../config/tools/validate_env.py
# parents[2] is the project root; append ROOT/src
PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(PROJECT_ROOT / "src"))

from env.loader import ConfigError, load_environment  # import our loader


def main(argv: list = None) -> None:
    """Load and print the resolved configuration, failing fast on errors."""
    argv = sys.argv[1:] if argv is None else argv
    config_path = Path(argv[0]) if argv else None   # optional YAML file

    try:
        config = load_environment(config_path=config_path)
    except ConfigError as e:
        print("Config validation FAILED:", file=sys.stderr)
        print(repr(e), file=sys.stderr)
        sys.exit(1)                          # non-zero exit: CI will mark as failed

    print("Config validation OK.")
    print("\nClient mode:", config.client_mode)
    print("\nConnection:")
    pprint(asdict(config.connection))
    print("\nCombat:")
    pprint(asdict(config.combat))
    print("\nRunner:")
    pprint(asdict(config.runner))
    print("\nReconnect:")
    pprint(asdict(config.reconnect))
    print("\nCommand prefix:", config.prefix)
    print("Control users:", ", ".join(sorted(config.control_users)) or "<anyone>")
    print("Interaction distance:", config.interact_distance)
    print("Exit on disconnect:", config.exit_on_disconnect)
    print("State file:", config.state_file)
    print("Log file:", config.log_file or "<stdout only>")
    print("Event log:", config.event_log or "<off>")


if __name__ == "__main__":
    main()  # run main() only when script is executed directly
