# Test the series module: creating events and editing/deleting series and occurrences

import pytest
import sys
import os
from datetime import datetime
from unittest.mock import patch
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from unit_test_utils import (
    InMemoryEventStore, InMemoryTagStore, make_event, make_payload, make_tag, USER_ID, OTHER_USER_ID
)
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'app'))
import series
from errors import AccessDeniedError, NotFoundError, TagResolutionError, ValidationError
from occurrence_ids import occurrence_id
from recurrence import expand_event

JAN_16_9 = datetime(2024, 1, 16, 9, 0)


@pytest.fixture
def tag_store():
    return InMemoryTagStore([make_tag("work"), make_tag("home"), make_tag("secret", user_id=OTHER_USER_ID)])

@pytest.fixture
def event_store():
    return InMemoryEventStore()

@pytest.fixture
def master(event_store):
    return event_store.save(make_event(recurrence_rule="FREQ=DAILY", recurrence_count=4))


class TestCreateEvent:

    def test_creates_recurring_event(self, event_store, tag_store):
        payload = make_payload(recurrence_rule="FREQ=WEEKLY", recurrence_count=3, tag_ids=[1, 2])
        event = series.create_event(payload, USER_ID, event_store, tag_store)
        stored = event_store.find_by_id(event.id)
        assert stored.user_id == USER_ID
        assert stored.recurrence_rule == "FREQ=WEEKLY"
        assert stored.recurrence_count == 3
        assert sorted(tag.name for tag in stored.tags) == ["home", "work"]

    def test_empty_rule_is_stored_as_none(self, event_store, tag_store):
        event = series.create_event(make_payload(recurrence_rule=""), USER_ID, event_store, tag_store)
        assert event.recurrence_rule is None

    @pytest.mark.parametrize("end", [datetime(2024, 1, 16, 11, 0), datetime(2024, 1, 16, 10, 0)])
    def test_end_must_follow_start(self, event_store, tag_store, end):
        with pytest.raises(ValidationError):
            series.create_event(make_payload(end_datetime=end), USER_ID, event_store, tag_store)
        assert event_store.rows == {}

    def test_negative_count_is_rejected(self, event_store, tag_store):
        with pytest.raises(ValidationError):
            series.create_event(make_payload(recurrence_count=-1), USER_ID, event_store, tag_store)

    def test_unknown_tag_rejects_everything(self, event_store, tag_store):
        with pytest.raises(TagResolutionError):
            series.create_event(make_payload(tag_ids=[1, 99]), USER_ID, event_store, tag_store)
        assert event_store.rows == {}

    def test_tags_of_other_users_cannot_be_used(self, event_store, tag_store):
        with pytest.raises(TagResolutionError):
            series.create_event(make_payload(tag_ids=[3]), USER_ID, event_store, tag_store)


class TestQueryEvents:

    def test_window_must_not_be_empty(self, event_store):
        with pytest.raises(ValidationError):
            series.query_events(USER_ID, datetime(2024, 1, 2), datetime(2024, 1, 1), event_store)

    def test_only_own_events(self, event_store, master):
        event_store.save(make_event(user_id=OTHER_USER_ID))
        results = series.query_events(USER_ID, datetime(2024, 1, 14), datetime(2024, 1, 20), event_store)
        assert len(results) == 4
        assert {r.user_id for r in results} == {USER_ID}


class TestResolveEdit:

    def test_instance_edit_splits_the_occurrence(self, event_store, tag_store, master):
        target = occurrence_id(master.id, JAN_16_9)
        override = series.resolve_edit(target, make_payload(title="Moved standup"), "instance", USER_ID, event_store, tag_store)

        stored_master = event_store.find_by_id(master.id)
        assert stored_master.excluded_dates == "2024-01-16T09:00"
        assert stored_master.title == "Standup"

        stored_override = event_store.find_by_id(override.id)
        assert stored_override.parent_event_id == master.id
        assert stored_override.original_start_datetime == JAN_16_9
        assert stored_override.title == "Moved standup"
        assert stored_override.recurrence_rule is None
        assert stored_override.recurrence_count is None
        assert stored_override.recurrence_end_date is None
        assert stored_override.excluded_dates is None
        assert len(event_store.rows) == 2

        remaining = expand_event(stored_master, datetime(2024, 1, 14), datetime(2024, 1, 20))
        assert [occ.start_datetime.day for occ in remaining] == [15, 17, 18]

    def test_instance_edits_accumulate_exclusions(self, event_store, tag_store, master):
        for day in (16, 18):
            target = occurrence_id(master.id, datetime(2024, 1, day, 9))
            series.resolve_edit(target, make_payload(), "instance", USER_ID, event_store, tag_store)
        assert event_store.find_by_id(master.id).excluded_dates == "2024-01-16T09:00,2024-01-18T09:00"
        overrides = [row for row in event_store.rows.values() if row.parent_event_id == master.id]
        assert len(overrides) == 2

    def test_instance_edit_override_gets_payload_tags(self, event_store, tag_store, master):
        target = occurrence_id(master.id, JAN_16_9)
        override = series.resolve_edit(target, make_payload(tag_ids=[2]), "instance", USER_ID, event_store, tag_store)
        assert [tag.name for tag in override.tags] == ["home"]

    @pytest.mark.parametrize("scope", ["series", "single"])
    def test_series_edit_through_an_occurrence(self, event_store, tag_store, master, scope):
        target = occurrence_id(master.id, JAN_16_9)
        payload = make_payload(title="Renamed", recurrence_rule="FREQ=WEEKLY", recurrence_count=2)
        updated = series.resolve_edit(target, payload, scope, USER_ID, event_store, tag_store)

        assert updated.id == master.id
        stored = event_store.find_by_id(master.id)
        assert stored.title == "Renamed"
        assert stored.start_datetime == datetime(2024, 1, 16, 11, 0)
        assert stored.recurrence_rule == "FREQ=WEEKLY"
        assert stored.recurrence_count == 2
        assert stored.excluded_dates is None
        assert len(event_store.rows) == 1

    def test_instance_edit_of_master_id_edits_the_series(self, event_store, tag_store, master):
        updated = series.resolve_edit(master.id, make_payload(title="Renamed"), "instance", USER_ID, event_store, tag_store)
        assert updated.id == master.id
        assert event_store.find_by_id(master.id).title == "Renamed"
        assert len(event_store.rows) == 1

    def test_edit_plain_event(self, event_store, tag_store):
        plain = event_store.save(make_event())
        updated = series.resolve_edit(plain.id, make_payload(title="Lunch"), "single", USER_ID, event_store, tag_store)
        assert updated.title == "Lunch"
        assert event_store.find_by_id(plain.id).end_datetime == datetime(2024, 1, 16, 12, 0)

    def test_edit_override_never_makes_it_recurring(self, event_store, tag_store, master):
        target = occurrence_id(master.id, JAN_16_9)
        override = series.resolve_edit(target, make_payload(), "instance", USER_ID, event_store, tag_store)
        payload = make_payload(title="Moved again", recurrence_rule="FREQ=DAILY", recurrence_count=3)
        series.resolve_edit(override.id, payload, "instance", USER_ID, event_store, tag_store)

        stored = event_store.find_by_id(override.id)
        assert stored.title == "Moved again"
        assert stored.recurrence_rule is None
        assert stored.recurrence_count is None
        assert stored.parent_event_id == master.id

    def test_tags_are_replaced_and_cleared(self, event_store, tag_store):
        event = series.create_event(make_payload(tag_ids=[1]), USER_ID, event_store, tag_store)
        series.resolve_edit(event.id, make_payload(tag_ids=[2]), "series", USER_ID, event_store, tag_store)
        assert [tag.name for tag in event_store.find_by_id(event.id).tags] == ["home"]
        series.resolve_edit(event.id, make_payload(tag_ids=[]), "series", USER_ID, event_store, tag_store)
        assert event_store.find_by_id(event.id).tags == []
        series.resolve_edit(event.id, make_payload(tag_ids=[1]), "series", USER_ID, event_store, tag_store)
        series.resolve_edit(event.id, make_payload(), "series", USER_ID, event_store, tag_store)
        assert event_store.find_by_id(event.id).tags == []

    def test_unknown_tag_leaves_series_untouched(self, event_store, tag_store, master):
        saves = event_store.saves
        target = occurrence_id(master.id, JAN_16_9)
        with pytest.raises(TagResolutionError):
            series.resolve_edit(target, make_payload(tag_ids=[42]), "instance", USER_ID, event_store, tag_store)
        assert event_store.saves == saves
        assert event_store.find_by_id(master.id).excluded_dates is None

    def test_failed_override_insert_keeps_occurrence(self, event_store, tag_store, master):
        store_save = event_store.save

        def save(event):
            if event.is_override:
                raise RuntimeError("insert failed")
            return store_save(event)

        target = occurrence_id(master.id, JAN_16_9)
        with patch.object(event_store, "save", side_effect=save):
            with pytest.raises(RuntimeError):
                series.resolve_edit(target, make_payload(), "instance", USER_ID, event_store, tag_store)

        assert list(event_store.rows) == [master.id]
        assert event_store.find_by_id(master.id).excluded_dates is None
        starts = [occ.start_datetime for occ in expand_event(event_store.find_by_id(master.id), datetime(2024, 1, 1), datetime(2024, 2, 1))]
        assert JAN_16_9 in starts

    def test_invalid_payload_is_rejected_before_mutation(self, event_store, tag_store, master):
        saves = event_store.saves
        target = occurrence_id(master.id, JAN_16_9)
        payload = make_payload(end_datetime=datetime(2024, 1, 16, 10, 0))
        with pytest.raises(ValidationError):
            series.resolve_edit(target, payload, "instance", USER_ID, event_store, tag_store)
        assert event_store.saves == saves

    def test_unknown_id(self, event_store, tag_store, master):
        with pytest.raises(NotFoundError, match="Event not found"):
            series.resolve_edit(999, make_payload(), "series", USER_ID, event_store, tag_store)

    def test_unresolvable_occurrence_id(self, event_store, tag_store, master):
        target = occurrence_id(master.id + 1, JAN_16_9)
        with pytest.raises(NotFoundError):
            series.resolve_edit(target, make_payload(), "instance", USER_ID, event_store, tag_store)

    def test_foreign_event_is_access_denied(self, event_store, tag_store, master):
        with pytest.raises(AccessDeniedError):
            series.resolve_edit(master.id, make_payload(), "series", OTHER_USER_ID, event_store, tag_store)
        target = occurrence_id(master.id, JAN_16_9)
        with pytest.raises(AccessDeniedError):
            series.resolve_edit(target, make_payload(), "instance", OTHER_USER_ID, event_store, tag_store)
        assert event_store.find_by_id(master.id).excluded_dates is None

    def test_user_scan_scope_only_sees_own_series(self, event_store, tag_store, master):
        target = occurrence_id(master.id, JAN_16_9)
        with patch("config.OCCURRENCE_SCAN_SCOPE", "user"):
            with pytest.raises(NotFoundError):
                series.resolve_edit(target, make_payload(), "instance", OTHER_USER_ID, event_store, tag_store)
            override = series.resolve_edit(target, make_payload(), "instance", USER_ID, event_store, tag_store)
        assert override.parent_event_id == master.id

    def test_unknown_scope(self, event_store, tag_store, master):
        with pytest.raises(ValueError):
            series.resolve_edit(master.id, make_payload(), "everything", USER_ID, event_store, tag_store)


class TestResolveDelete:

    def test_delete_occurrence_excludes_it(self, event_store, master):
        series.resolve_delete(occurrence_id(master.id, JAN_16_9), "instance", USER_ID, event_store)
        stored = event_store.find_by_id(master.id)
        assert stored.excluded_dates == "2024-01-16T09:00"
        remaining = expand_event(stored, datetime(2024, 1, 14), datetime(2024, 1, 20))
        assert [occ.start_datetime.day for occ in remaining] == [15, 17, 18]

    def test_delete_override(self, event_store, tag_store, master):
        override = series.resolve_edit(occurrence_id(master.id, JAN_16_9), make_payload(), "instance", USER_ID, event_store, tag_store)
        series.resolve_delete(override.id, "instance", USER_ID, event_store)
        assert event_store.find_by_id(override.id) is None
        assert event_store.find_by_id(master.id).excluded_dates == "2024-01-16T09:00"

    def test_delete_master_id_excludes_first_occurrence(self, event_store, master):
        series.resolve_delete(master.id, "instance", USER_ID, event_store)
        stored = event_store.find_by_id(master.id)
        assert stored.excluded_dates == "2024-01-15T09:00"

    def test_delete_plain_event(self, event_store):
        plain = event_store.save(make_event())
        series.resolve_delete(plain.id, "instance", USER_ID, event_store)
        assert event_store.rows == {}

    def test_delete_plain_event_with_series_scope(self, event_store):
        plain = event_store.save(make_event())
        series.resolve_delete(plain.id, "series", USER_ID, event_store)
        assert event_store.rows == {}

    def test_delete_series_removes_overrides(self, event_store, tag_store, master):
        other = event_store.save(make_event(user_id=OTHER_USER_ID, recurrence_rule="FREQ=DAILY"))
        for day in (16, 17):
            series.resolve_edit(occurrence_id(master.id, datetime(2024, 1, day, 9)), make_payload(), "instance", USER_ID, event_store, tag_store)
        assert len(event_store.rows) == 4

        series.resolve_delete(occurrence_id(master.id, datetime(2024, 1, 18, 9)), "series", USER_ID, event_store)

        assert list(event_store.rows) == [other.id]
        results = series.query_events(USER_ID, datetime(2024, 1, 1), datetime(2024, 12, 31), event_store)
        assert results == []

    def test_failed_master_delete_keeps_overrides(self, event_store, tag_store, master):
        series.resolve_edit(occurrence_id(master.id, JAN_16_9), make_payload(), "instance", USER_ID, event_store, tag_store)
        rows = dict(event_store.rows)

        with patch.object(event_store, "delete", side_effect=RuntimeError("delete failed")):
            with pytest.raises(RuntimeError):
                series.resolve_delete(master.id, "series", USER_ID, event_store)

        assert event_store.rows == rows

    def test_delete_unknown_id(self, event_store, master):
        with pytest.raises(NotFoundError):
            series.resolve_delete(12345, "series", USER_ID, event_store)

    def test_delete_foreign_event(self, event_store, master):
        with pytest.raises(AccessDeniedError):
            series.resolve_delete(master.id, "series", OTHER_USER_ID, event_store)
        assert event_store.find_by_id(master.id) is not None
