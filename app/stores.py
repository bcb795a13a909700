# MySQL backed event and tag stores used by the calendar services

import logging
from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence
import database
import utils
from models import MasterEvent, Tag

logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "id", "user_id", "title", "description", "start_datetime", "end_datetime",
    "recurrence_rule", "recurrence_end_date", "recurrence_count",
    "parent_event_id", "original_start_datetime", "excluded_dates",
)

# Columns written on insert/update, in statement order
_WRITABLE_EVENT_COLUMNS = EVENT_COLUMNS[1:]


def _placeholders(values: Sequence) -> str:
    return ", ".join(["%s"] * len(values))


class EventStore:
    """Event rows in the `events` table, tags joined through `event_tags`."""

    def __init__(self):
        self._in_transaction = False

    def _select(self, where: str = "", params: tuple = ()) -> List[MasterEvent]:
        cursor = database.get_cursor()
        sql = f"SELECT {', '.join(EVENT_COLUMNS)} FROM events"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY start_datetime ASC, id ASC"
        cursor.execute(sql, params)
        items = utils.rows_to_dicts(cursor, cursor.fetchall())

        tags_by_event = self._load_tags(cursor, [item["id"] for item in items])
        return [MasterEvent(**item, tags=tags_by_event.get(item["id"], [])) for item in items]

    @staticmethod
    def _load_tags(cursor, event_ids: List[int]) -> Dict[int, List[Tag]]:
        if not event_ids:
            return {}
        cursor.execute(
            "SELECT et.event_id, t.id, t.user_id, t.name FROM event_tags et "
            f"JOIN tags t ON t.id = et.tag_id WHERE et.event_id IN ({_placeholders(event_ids)}) "
            "ORDER BY t.name",
            tuple(event_ids)
        )
        tags_by_event = {}
        for event_id, tag_id, user_id, name in cursor.fetchall():
            tags_by_event.setdefault(event_id, []).append(Tag(id=tag_id, user_id=user_id, name=name))
        return tags_by_event

    def find_by_id(self, event_id: int) -> Optional[MasterEvent]:
        events = self._select("id = %s", (event_id,))
        return events[0] if events else None

    def find_all_for_user(self, user_id: str) -> List[MasterEvent]:
        return self._select("user_id = %s", (user_id,))

    def find_all(self) -> List[MasterEvent]:
        return self._select()

    @contextmanager
    def transaction(self):
        """
        Group several writes into one unit: a single commit at the end, or a
        rollback of all of them when any write fails. Nested use joins the
        outer unit.
        """
        if self._in_transaction:
            yield self
            return

        self._in_transaction = True
        try:
            yield self
            database.get_connection().commit()
        except Exception:
            database.get_connection().rollback()
            raise
        finally:
            self._in_transaction = False

    def save(self, event: MasterEvent) -> MasterEvent:
        """Insert a new row or update the existing one, tags included."""
        values = [getattr(event, col) for col in _WRITABLE_EVENT_COLUMNS]
        try:
            with self.transaction():
                cursor = database.get_cursor()
                if event.id is None:
                    cursor.execute(
                        f"INSERT INTO events ({', '.join(_WRITABLE_EVENT_COLUMNS)}) "
                        f"VALUES ({_placeholders(values)})",
                        tuple(values)
                    )
                    event.id = cursor.lastrowid
                else:
                    assignments = ", ".join(f"{col} = %s" for col in _WRITABLE_EVENT_COLUMNS)
                    cursor.execute(f"UPDATE events SET {assignments} WHERE id = %s", (*values, event.id))

                cursor.execute("DELETE FROM event_tags WHERE event_id = %s", (event.id,))
                if event.tags:
                    cursor.executemany(
                        "INSERT INTO event_tags (event_id, tag_id) VALUES (%s, %s)",
                        [(event.id, tag.id) for tag in event.tags]
                    )
        except Exception as e:
            logger.error(f"Failed to save event {event.id}: {e}")
            raise

        logger.info(f"Saved event {event.id} for user {event.user_id}")
        return event

    def delete(self, event: MasterEvent):
        self._delete_where("id = %s", (event.id,))
        logger.info(f"Deleted event {event.id}")

    def delete_by_parent(self, parent: MasterEvent):
        count = self._delete_where("parent_event_id = %s", (parent.id,))
        logger.info(f"Deleted {count} overrides of event {parent.id}")

    def _delete_where(self, where: str, params: tuple) -> int:
        try:
            with self.transaction():
                cursor = database.get_cursor()
                cursor.execute(f"DELETE FROM events WHERE {where}", params)
                return cursor.rowcount
        except Exception as e:
            logger.error(f"Failed to delete events ({where} {params}): {e}")
            raise


class TagStore:
    """Per-user tags in the `tags` table."""

    def _select(self, where: str, params: tuple) -> List[Tag]:
        cursor = database.get_cursor()
        cursor.execute(f"SELECT id, user_id, name FROM tags WHERE {where} ORDER BY name", params)
        return [Tag(**item) for item in utils.rows_to_dicts(cursor, cursor.fetchall())]

    def find_by_id(self, tag_id: int) -> Optional[Tag]:
        tags = self._select("id = %s", (tag_id,))
        return tags[0] if tags else None

    def find_by_ids(self, tag_ids: Sequence[int], user_id: str) -> List[Tag]:
        """Tags of user_id among tag_ids; unknown or foreign ids are left out."""
        ids = list(dict.fromkeys(tag_ids))
        if not ids:
            return []
        return self._select(f"user_id = %s AND id IN ({_placeholders(ids)})", (user_id, *ids))

    def find_all_for_user(self, user_id: str) -> List[Tag]:
        return self._select("user_id = %s", (user_id,))

    def find_by_name(self, user_id: str, name: str) -> Optional[Tag]:
        tags = self._select("user_id = %s AND name = %s", (user_id, name))
        return tags[0] if tags else None

    def save(self, tag: Tag) -> Tag:
        try:
            cursor = database.get_cursor()
            if tag.id is None:
                cursor.execute("INSERT INTO tags (user_id, name) VALUES (%s, %s)", (tag.user_id, tag.name))
                tag.id = cursor.lastrowid
            else:
                cursor.execute("UPDATE tags SET name = %s WHERE id = %s", (tag.name, tag.id))
            database.get_connection().commit()
        except Exception as e:
            database.get_connection().rollback()
            logger.error(f"Failed to save tag '{tag.name}': {e}")
            raise
        logger.info(f"Saved tag {tag.id} '{tag.name}' for user {tag.user_id}")
        return tag

    def delete(self, tag: Tag):
        try:
            cursor = database.get_cursor()
            cursor.execute("DELETE FROM tags WHERE id = %s", (tag.id,))
            database.get_connection().commit()
        except Exception as e:
            database.get_connection().rollback()
            logger.error(f"Failed to delete tag {tag.id}: {e}")
            raise
        logger.info(f"Deleted tag {tag.id}")


def get_event_store() -> EventStore:
    """FastAPI dependency providing the event store"""
    return EventStore()


def get_tag_store() -> TagStore:
    """FastAPI dependency providing the tag store"""
    return TagStore()
