# Synthetic ids of occurrences that only exist as expansions of a master event

import hashlib
import logging
import datetime
from typing import Iterable, Optional, Tuple
from dateutil.relativedelta import relativedelta

from exclusions import canonical_timestamp
import recurrence

logger = logging.getLogger(__name__)

# Occurrence ids live in [2**52, 2**53): above any auto-increment row id and
# still exact as a JSON number in JavaScript clients.
OCCURRENCE_ID_BITS = 52
OCCURRENCE_ID_FLOOR = 1 << OCCURRENCE_ID_BITS
_OCCURRENCE_ID_MASK = OCCURRENCE_ID_FLOOR - 1

# Forward horizon of the inverse search, counted from "now"
RESOLVE_HORIZON_YEARS = 2


def occurrence_id(master_id: int, occurrence_start: datetime.datetime) -> int:
    """
    Deterministic id of the occurrence of master_id starting at occurrence_start.

    A truncated SHA-256 digest of "<master_id>_<timestamp>"; distinct
    occurrences may collide, with negligible probability.
    """
    key = f"{master_id}_{canonical_timestamp(occurrence_start)}"
    digest = hashlib.sha256(key.encode()).digest()
    return OCCURRENCE_ID_FLOOR | (int.from_bytes(digest[:8], "big") & _OCCURRENCE_ID_MASK)


def is_occurrence_id(target_id: int) -> bool:
    return OCCURRENCE_ID_FLOOR <= target_id < (OCCURRENCE_ID_FLOOR << 1)


def resolve_occurrence_id(
        target_id: int,
        candidates: Iterable,
        now: Optional[datetime.datetime] = None,
) -> Optional[Tuple[int, datetime.datetime]]:
    """
    Map an occurrence id back to (master id, occurrence start).

    No mapping is stored, so every recurring candidate's step sequence is
    regenerated, up to recurrence.MAX_EXPANSION_STEPS steps or
    RESOLVE_HORIZON_YEARS past now, and hashed until one matches.

    Returns None when nothing matches, meaning target_id names a stored row.
    """
    if not is_occurrence_id(target_id):
        return None

    horizon = (now or datetime.datetime.now()) + relativedelta(years=RESOLVE_HORIZON_YEARS)
    scanned = 0
    for event in candidates:
        if event.is_override or not event.is_recurring:
            continue
        rule = recurrence.parse_rule(event.recurrence_rule)
        scanned += 1

        cursor = event.start_datetime
        for _ in range(recurrence.MAX_EXPANSION_STEPS):
            if occurrence_id(event.id, cursor) == target_id:
                logger.debug(f"Resolved occurrence {target_id} to event {event.id} at {cursor}")
                return event.id, cursor
            cursor = recurrence.next_occurrence(cursor, rule)
            if cursor > horizon:
                break

    logger.info(f"Occurrence id {target_id} not found among {scanned} recurring events")
    return None
