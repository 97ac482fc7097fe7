# invalidation.py — Per-tenant board revisions
# Successful mutations bump the tenant's revision; the task listing exposes it
# so pollers can tell fresh data from a repeat. In-memory per process: one
# integer per organisation seen since start, never trimmed, so memory is
# bounded by the number of active organisations rather than by traffic.

import logging
from collections import defaultdict
from typing import Dict

logger = logging.getLogger("kanban-sync.invalidation")

_revisions: Dict[str, int] = defaultdict(int)


def notify(org_id: str, reason: str = "") -> int:
    _revisions[org_id] += 1
    revision = _revisions[org_id]
    logger.debug(f"Board revision {revision} for org {org_id} ({reason})")
    return revision


def current_revision(org_id: str) -> int:
    return _revisions.get(org_id, 0)


def reset() -> None:
    _revisions.clear()
