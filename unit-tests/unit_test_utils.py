# Shared utility functions for unit tests

import sys
import os
import itertools
from contextlib import contextmanager
from datetime import datetime
from unittest.mock import patch
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'app'))
from models import MasterEvent, Tag, EventPayload

USER_ID = "user0001"
OTHER_USER_ID = "user0002"
ADMIN_ID = "admin001"

class InMemoryEventStore:
    """Event store keeping copies of saved rows, like a database would"""

    def __init__(self, events=None):
        self.rows = {}
        self._ids = itertools.count(1)
        self.saves = 0
        for event in events or []:
            self.save(event)

    def find_by_id(self, event_id):
        row = self.rows.get(event_id)
        return row.model_copy(deep=True) if row else None

    def find_all_for_user(self, user_id):
        return [row.model_copy(deep=True) for row in self._ordered() if row.user_id == user_id]

    def find_all(self):
        return [row.model_copy(deep=True) for row in self._ordered()]

    def save(self, event):
        if event.id is None:
            event.id = next(self._ids)
        self.rows[event.id] = event.model_copy(deep=True)
        self.saves += 1
        return event

    @contextmanager
    def transaction(self):
        snapshot = dict(self.rows)
        try:
            yield self
        except Exception:
            self.rows = snapshot
            raise

    def delete(self, event):
        self.rows.pop(event.id, None)

    def delete_by_parent(self, parent):
        for event_id in [row.id for row in self.rows.values() if row.parent_event_id == parent.id]:
            del self.rows[event_id]

    def _ordered(self):
        return sorted(self.rows.values(), key=lambda row: (row.start_datetime, row.id))

class InMemoryTagStore:
    def __init__(self, tags=None):
        self.rows = {}
        self._ids = itertools.count(1)
        for tag in tags or []:
            self.save(tag)

    def find_by_id(self, tag_id):
        row = self.rows.get(tag_id)
        return row.model_copy() if row else None

    def find_by_ids(self, tag_ids, user_id):
        return [row.model_copy() for row in self.rows.values() if row.id in tag_ids and row.user_id == user_id]

    def find_all_for_user(self, user_id):
        return sorted((row.model_copy() for row in self.rows.values() if row.user_id == user_id), key=lambda t: t.name)

    def find_by_name(self, user_id, name):
        for row in self.rows.values():
            if row.user_id == user_id and row.name == name:
                return row.model_copy()
        return None

    def save(self, tag):
        if tag.id is None:
            tag.id = next(self._ids)
        self.rows[tag.id] = tag.model_copy()
        return tag

    def delete(self, tag):
        self.rows.pop(tag.id, None)

def make_event(**overrides):
    """A one hour event of USER_ID on 2024-01-15 09:00, fields overridable"""
    fields = {
        "user_id": USER_ID,
        "title": "Standup",
        "description": "Daily sync",
        "start_datetime": datetime(2024, 1, 15, 9, 0),
        "end_datetime": datetime(2024, 1, 15, 10, 0),
    }
    fields.update(overrides)
    return MasterEvent(**fields)

def make_payload(**overrides):
    fields = {
        "title": "Moved standup",
        "description": "Daily sync",
        "start_datetime": datetime(2024, 1, 16, 11, 0),
        "end_datetime": datetime(2024, 1, 16, 12, 0),
    }
    fields.update(overrides)
    return EventPayload(**fields)

def make_tag(name, user_id=USER_ID):
    return Tag(user_id=user_id, name=name)

def as_user(user_id=USER_ID, role="user"):
    """Patch API key validation so every key belongs to the given user"""
    return patch("utils.validate_api_key", return_value=(user_id, role, True))
