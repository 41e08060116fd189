"""Rebuild account trust policies of a source from the feedback event log.

Usage:
  python backend/scripts/recompute_account_policies.py --source-id <id>
  python backend/scripts/recompute_account_policies.py --source-id <id> --handle @alice --handle bob
  python backend/scripts/recompute_account_policies.py --source-id <id> --dry-run

Without --handle every tracked handle of the source is rebuilt. --dry-run only
prints the current projected views.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

# Ensure `backend/` is on sys.path when run from repo root
BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from calibration.core.types import AccountPolicyView  # noqa: E402
from feedtrust.services.account_policy_service import AccountPolicyService  # noqa: E402


logger = logging.getLogger("feedtrust.scripts.recompute")


def _view_json(view: AccountPolicyView) -> dict:
    return {
        "handle": view.handle,
        "mode": view.mode.value,
        "pos": round(view.pos, 4),
        "neg": round(view.neg, 4),
        "score": round(view.score, 4),
        "throttle": round(view.throttle, 4),
        "state": view.state.value,
        "included": view.included,
    }


def recompute_source(
    service: AccountPolicyService,
    source_id: str,
    handles: Sequence[str] = (),
    *,
    now: Optional[datetime] = None,
    dry_run: bool = False,
) -> list[dict]:
    now = now or datetime.now(timezone.utc)
    rows = service.list_policies(source_id, handles) if handles else service.list_source_policies(source_id)

    out: list[dict] = []
    for row in rows:
        if not dry_run:
            rebuilt = service.recompute_from_feedback(source_id, row.handle, now)
            if rebuilt is None:
                logger.warning(f"Policy {source_id}/{row.handle} disappeared during recompute")
                continue
            row = rebuilt
        out.append(_view_json(service.compute_policy_view(row, now)))
    return out


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--source-id", required=True)
    ap.add_argument("--handle", action="append", default=[])
    ap.add_argument("--dry-run", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")

    from feedtrust.core.db import get_sessionmaker
    from feedtrust.repositories.account_policy_repo import AccountPolicyRepository
    from feedtrust.repositories.feedback_history_repo import FeedbackHistoryRepository

    session = get_sessionmaker()()
    try:
        service = AccountPolicyService(AccountPolicyRepository(session), FeedbackHistoryRepository(session))
        out = recompute_source(service, args.source_id, args.handle, dry_run=args.dry_run)
    finally:
        session.close()

    print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
