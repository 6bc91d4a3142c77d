"""Append-only session history, one list per category."""

from flowstate.common.logger import log
from flowstate.core.session import Session


class SessionStore:

    def __init__(self, sessions=None):
        # category_id -> list[Session], oldest first
        self._by_category = {}
        for category_id, records in (sessions or {}).items():
            self._by_category[category_id] = list(records)

    def append(self, records):
        for record in records:
            self._by_category.setdefault(record.category_id, []).append(record)
            log.debug(f"Stored session {record.id} for '{record.category_id}' ({record.duration}ms)")

    # The only edit allowed on a stored session. Returns False when no session has that id.
    def update_note(self, session_id, note):
        for records in self._by_category.values():
            for i, record in enumerate(records):
                if record.id == session_id:
                    records[i] = record.with_note(note)
                    log.info(f"Updated note on session {session_id}")
                    return True
        log.warning(f"Tried to update note on unknown session {session_id}")
        return False

    def find(self, session_id):
        for records in self._by_category.values():
            for record in records:
                if record.id == session_id:
                    return record
        return None

    def sessions_for(self, category_id):
        return list(self._by_category.get(category_id, []))

    def all_sessions(self):
        return [record for records in self._by_category.values() for record in records]

    def drop_category(self, category_id):
        dropped = self._by_category.pop(category_id, [])
        if dropped:
            log.info(f"Dropped {len(dropped)} session(s) belonging to deleted category '{category_id}'")

    def to_dict(self):
        return {cid: [r.to_dict() for r in records] for cid, records in self._by_category.items()}

    @staticmethod
    def from_dict(raw):
        store = SessionStore()
        if not isinstance(raw, dict):
            return store
        skipped = 0
        for category_id, records in raw.items():
            if not isinstance(records, list):
                skipped += 1
                continue
            loaded = []
            for record in records:
                try:
                    loaded.append(Session.from_dict(record))
                except (KeyError, TypeError, ValueError, AttributeError):
                    skipped += 1
            store._by_category[category_id] = loaded
        if skipped:
            log.warning(f"Skipped {skipped} malformed session record(s) while loading history")
        return store
