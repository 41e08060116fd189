from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Optional


ENV_FILE_VAR = "FT_ENV_FILE"


def parse_env_line(line: str) -> Optional[tuple[str, str]]:
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[len("export ") :].lstrip()
    if "=" not in line:
        return None
    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip()
    if not key:
        return None
    # KEY="value" or KEY='value'
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return key, value


def _candidate_files() -> Iterable[Path]:
    explicit = os.environ.get(ENV_FILE_VAR)
    if explicit:
        yield Path(explicit)
    # backend/feedtrust/core/env.py -> backend/feedtrust/core -> backend/feedtrust -> backend -> repo root
    repo_root = Path(__file__).resolve().parents[3]
    yield repo_root / ".env"
    yield repo_root / "backend" / ".env"


def load_env_if_present(*, override: bool = False) -> list[Path]:
    """Load KEY=VALUE lines from .env files into os.environ.

    - FT_ENV_FILE (if set) is read first, then repo-root `.env`, then `backend/.env`.
    - Existing environment variables win unless override=True.
    - Returns the files that were actually read.
    """
    loaded: list[Path] = []
    for p in _candidate_files():
        if not p.is_file():
            continue
        try:
            content = p.read_text(encoding="utf-8")
        except OSError:
            continue
        loaded.append(p)
        for raw in content.splitlines():
            parsed = parse_env_line(raw)
            if not parsed:
                continue
            k, v = parsed
            if not override and k in os.environ:
                continue
            os.environ[k] = v
    return loaded
