"""Flat-file subscriber store.

Each mutation is one read-modify-write of ``subscribers.json`` under an
exclusive ``flock``, so the predicates below (email not taken, row still
inactive, row still active) are checked and applied atomically across
threads and worker processes.
"""

import json
from contextlib import contextmanager
from pathlib import Path

from portfolio.errors import StoreUnavailableError
from portfolio.utils.file_lock import locked_json_write, read_json
from portfolio.utils.helpers import now_iso


@contextmanager
def _store_guard(path):
    try:
        yield
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StoreUnavailableError(f"Subscriber store {path} unavailable: {e}") from e


class JsonSubscriberStore:

    def __init__(self, path):
        self.path = Path(path)

    def _rows(self):
        with _store_guard(self.path):
            return read_json(self.path)

    @contextmanager
    def _locked_rows(self):
        with _store_guard(self.path):
            with locked_json_write(self.path) as rows:
                yield rows

    def all(self):
        return [dict(r) for r in self._rows()]

    def find_by_email(self, email):
        for r in self._rows():
            if r["email"] == email:
                return dict(r)
        return None

    def find_active_by_token(self, token):
        for r in self._rows():
            if r["is_active"] and r["unsubscribe_token"] == token:
                return dict(r)
        return None

    def list_active(self):
        return [dict(r) for r in self._rows() if r["is_active"]]

    def insert(self, record):
        """Append a new row. Returns False if the email is already stored."""
        with self._locked_rows() as rows:
            for r in rows:
                if r["email"] == record["email"]:
                    return False
                if r["unsubscribe_token"] == record["unsubscribe_token"]:
                    raise ValueError("unsubscribe token collision")
            rows.append(dict(record))
            return True

    def reactivate(self, email):
        """Flip an inactive row back to active. Returns the row, or None."""
        with self._locked_rows() as rows:
            for r in rows:
                if r["email"] == email:
                    if r["is_active"]:
                        return None
                    r["is_active"] = True
                    r["subscribed_at"] = now_iso()
                    return dict(r)
        return None

    def deactivate_by_token(self, token):
        """Deactivate the active row holding token. Returns the row, or None."""
        with self._locked_rows() as rows:
            for r in rows:
                if r["is_active"] and r["unsubscribe_token"] == token:
                    r["is_active"] = False
                    r["unsubscribed_at"] = now_iso()
                    return dict(r)
        return None
