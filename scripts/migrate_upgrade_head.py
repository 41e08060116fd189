"""Upgrade the feedtrust schema (forward only).

Usage:
  python scripts/migrate_upgrade_head.py
  python scripts/migrate_upgrade_head.py --revision 0001_feedback_calibration
  python scripts/migrate_upgrade_head.py --sql > upgrade.sql

DATABASE_URL comes from the environment, or from $FT_ENV_FILE / `.env` /
`backend/.env` via feedtrust.core.env.load_env_if_present().
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config


BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from feedtrust.core.env import load_env_if_present  # noqa: E402


def build_config(url: str) -> Config:
    cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--revision", default="head")
    ap.add_argument("--sql", action="store_true", help="Print SQL instead of applying it")
    args = ap.parse_args()

    load_env_if_present()
    url = os.environ.get("DATABASE_URL")
    if not url:
        print("Missing DATABASE_URL (set env var or create .env).", file=sys.stderr)
        return 2

    if not args.sql:
        print(f"Upgrading feedtrust schema to {args.revision}...", file=sys.stderr)
    command.upgrade(build_config(url), args.revision, sql=args.sql)
    if not args.sql:
        print("Done.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
