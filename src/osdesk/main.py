from __future__ import annotations

from .cli import run_cli
from .config import ConfigError, configure_logging, load_config
from .context import build_context
from .db import DbError


def main() -> int:
    try:
        cfg = load_config("config.toml")
        configure_logging(cfg.log_level)
        run_cli(build_context(cfg))
        return 0
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        return 2
    except DbError as e:
        print(f"[DB ERROR] {e}")
        return 3
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
