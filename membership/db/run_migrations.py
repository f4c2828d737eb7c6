"""
Programmatic Alembic migration runner.

Allows running migrations without an alembic.ini by configuring the script location
to this package's migrations directory.

Usage examples:
    python -m membership.db.run_migrations upgrade head
    python -m membership.db.run_migrations downgrade -1
    python -m membership.db.run_migrations history
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

from alembic import command
from alembic.config import Config

from membership.core.logging import configure_logging
from membership.core.settings import get_app_settings
from membership.db.config import get_settings


# PUBLIC_INTERFACE
def build_config(database_url: Optional[str] = None) -> Config:
    """Alembic config pointing at the bundled migrations and the given (or configured) URL."""
    cfg = Config()
    # Script location is the migrations folder next to this file.
    script_location = Path(__file__).resolve().parent / "migrations"
    cfg.set_main_option("script_location", str(script_location))
    url = database_url or get_settings().database_url
    # ConfigParser interpolation treats % as special.
    cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None, database_url: Optional[str] = None) -> None:
    """Run Alembic command with programmatic configuration."""
    args = list(sys.argv[1:] if argv is None else argv)

    if not args:
        print("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    cfg = build_config(database_url)

    # Dispatch to Alembic CLI command
    cmd = args[0]
    other = args[1:]

    if cmd == "upgrade":
        command.upgrade(cfg, *(other or ["head"]))
    elif cmd == "downgrade":
        command.downgrade(cfg, *(other or ["-1"]))
    elif cmd == "history":
        command.history(cfg, *other)
    elif cmd == "current":
        command.current(cfg, *other)
    elif cmd == "heads":
        command.heads(cfg, *other)
    elif cmd == "show":
        if not other:
            print("Usage: show <revision>")
            sys.exit(2)
        command.show(cfg, other[0])
    else:
        print(f"Unsupported Alembic command: {cmd}")
        sys.exit(2)


if __name__ == "__main__":
    configure_logging(get_app_settings().log_level)
    main()
