# Exclusion lists of recurring events: occurrence starts skipped on expansion

import logging
import datetime
from typing import Iterator, Optional, Union

logger = logging.getLogger(__name__)

SEPARATOR = ","


def canonical_timestamp(value: datetime.datetime) -> str:
    """
    Render a naive timestamp the way it is stored in exclusion lists and hashed
    into occurrence ids: minutes precision when seconds and fractions are zero,
    full precision otherwise ("2024-01-16T09:00", "2024-01-16T09:00:30").
    """
    if value.second == 0 and value.microsecond == 0:
        return value.isoformat(timespec="minutes")
    return value.isoformat()


class ExclusionSet:
    """
    Ordered set of excluded occurrence starts.

    Entries are kept as canonical strings so membership is an exact match, and
    the persisted form stays the comma-joined list stored on the master event.
    """

    def __init__(self, entries=None):
        self._entries = {}
        for entry in entries or []:
            self.add(entry)

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ExclusionSet":
        if not raw:
            return cls()
        return cls(part.strip() for part in raw.split(SEPARATOR) if part.strip())

    @staticmethod
    def _key(value: Union[str, datetime.datetime]) -> str:
        if isinstance(value, datetime.datetime):
            return canonical_timestamp(value)
        return value

    def add(self, value: Union[str, datetime.datetime]) -> bool:
        """Append an entry; returns False when it was already excluded."""
        key = self._key(value)
        if key in self._entries:
            logger.debug(f"Exclusion {key} already present")
            return False
        self._entries[key] = None
        return True

    def __contains__(self, value) -> bool:
        if not isinstance(value, (str, datetime.datetime)):
            return False
        return self._key(value) in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def serialize(self) -> Optional[str]:
        if not self._entries:
            return None
        return SEPARATOR.join(self._entries)

    def __repr__(self):
        return f"ExclusionSet({list(self._entries)!r})"


def exclude_occurrence(event, occurrence_start: datetime.datetime) -> bool:
    """Add an occurrence start to the event's stored exclusion list in place."""
    exclusions = ExclusionSet.parse(event.excluded_dates)
    added = exclusions.add(occurrence_start)
    event.excluded_dates = exclusions.serialize()
    return added
