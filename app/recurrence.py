# Recurrence rule parsing and expansion of recurring events into occurrences

import logging
import datetime
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional
from dateutil.relativedelta import relativedelta

from exclusions import ExclusionSet
from models import MasterEvent, OccurrenceProjection
import occurrence_ids

logger = logging.getLogger(__name__)

# Upper bound of cursor advances for a single master, whatever the window
MAX_EXPANSION_STEPS = 1000


class Frequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class RecurrenceRule(NamedTuple):
    # Raw FREQ value, unknown or missing values step as one day
    frequency: Optional[str] = None
    interval: int = 1


def _parse_interval(value: str) -> int:
    try:
        interval = int(value)
    except ValueError:
        return 1
    return interval if interval > 0 else 1


def parse_rule(rule: Optional[str]) -> Optional[RecurrenceRule]:
    """
    Parse a rule string like "FREQ=WEEKLY;INTERVAL=2".

    Only FREQ and INTERVAL are read. Segments that are not a single key=value
    pair and unknown keys are skipped without error, so any non-empty string
    yields a rule. Returns None only for an empty or missing rule.
    """
    if not rule:
        return None

    frequency = None
    interval = 1
    for segment in rule.split(";"):
        parts = segment.split("=")
        if len(parts) != 2:
            continue
        key, value = parts[0].strip(), parts[1].strip()
        if key == "FREQ":
            frequency = value
        elif key == "INTERVAL":
            interval = _parse_interval(value)

    return RecurrenceRule(frequency=frequency, interval=interval)


def next_occurrence(cursor: datetime.datetime, rule: RecurrenceRule) -> datetime.datetime:
    """Advance a cursor by one step of the rule."""
    if rule.frequency == Frequency.DAILY.value:
        return cursor + datetime.timedelta(days=rule.interval)
    if rule.frequency == Frequency.WEEKLY.value:
        return cursor + datetime.timedelta(weeks=rule.interval)
    if rule.frequency == Frequency.MONTHLY.value:
        # relativedelta clamps to the last day of shorter months
        return cursor + relativedelta(months=rule.interval)
    return cursor + datetime.timedelta(days=1)


def _project(event: MasterEvent, start: datetime.datetime, end: datetime.datetime) -> OccurrenceProjection:
    return OccurrenceProjection(
        id=occurrence_ids.occurrence_id(event.id, start),
        user_id=event.user_id,
        title=event.title,
        description=event.description,
        start_datetime=start,
        end_datetime=end,
        recurrence_rule=event.recurrence_rule,
        recurrence_end_date=event.recurrence_end_date,
        recurrence_count=event.recurrence_count,
        parent_event_id=event.id,
        original_start_datetime=start,
        excluded_dates=event.excluded_dates,
        tags=list(event.tags),
    )


def _may_step(event: MasterEvent, cursor: datetime.datetime, steps: int, range_end: datetime.datetime) -> bool:
    """Whether the walk of a master continues at cursor after `steps` steps."""
    if cursor >= range_end:
        return False
    if event.recurrence_end_date is not None and cursor > event.recurrence_end_date:
        return False
    if event.recurrence_count is not None and steps >= event.recurrence_count:
        return False
    return True


def expand_event(event: MasterEvent, range_start: datetime.datetime, range_end: datetime.datetime) -> List[OccurrenceProjection]:
    """
    Expand one recurring master into the occurrences overlapping
    [range_start, range_end), in start order.

    The walk stops at the window end, after the recurrence end date, once the
    recurrence count of steps has been taken, or after MAX_EXPANSION_STEPS.
    Excluded occurrence starts are skipped but still count as steps.
    """
    rule = parse_rule(event.recurrence_rule)
    if rule is None:
        return []

    duration = event.end_datetime - event.start_datetime
    exclusions = ExclusionSet.parse(event.excluded_dates)
    occurrences = []

    cursor = event.start_datetime
    for steps in range(MAX_EXPANSION_STEPS):
        if not _may_step(event, cursor, steps, range_end):
            break

        occurrence_end = cursor + duration
        if cursor not in exclusions and cursor < range_end and occurrence_end > range_start:
            occurrences.append(_project(event, cursor, occurrence_end))

        cursor = next_occurrence(cursor, rule)
    else:
        if _may_step(event, cursor, MAX_EXPANSION_STEPS, range_end):
            logger.warning(f"Expansion of event {event.id} stopped after {MAX_EXPANSION_STEPS} steps")

    return occurrences


def expand(events: Iterable[MasterEvent], range_start: datetime.datetime, range_end: datetime.datetime) -> List[OccurrenceProjection]:
    """Expand every recurring master and merge the occurrences by start."""
    occurrences = []
    for event in events:
        if event.is_override or not event.is_recurring:
            continue
        occurrences.extend(expand_event(event, range_start, range_end))
    occurrences.sort(key=lambda occ: occ.start_datetime)
    return occurrences


def events_in_range(
        events: Iterable[MasterEvent],
        range_start: datetime.datetime,
        range_end: datetime.datetime,
        tag_id: Optional[int] = None,
) -> List[OccurrenceProjection]:
    """
    Everything visible in a calendar window: overrides and plain events that
    overlap it plus the expanded occurrences of recurring masters, sorted by
    start. With tag_id only events carrying that tag are considered.
    """
    results = []
    recurring = []
    for event in events:
        if tag_id is not None and not any(tag.id == tag_id for tag in event.tags):
            continue
        if event.is_recurring and not event.is_override:
            recurring.append(event)
        elif event.start_datetime < range_end and event.end_datetime > range_start:
            results.append(OccurrenceProjection.of_event(event))

    results.extend(expand(recurring, range_start, range_end))
    results.sort(key=lambda occ: occ.start_datetime)
    return results
