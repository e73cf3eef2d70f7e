import json
import sys
from pathlib import Path
from contextlib import contextmanager

# Cross-platform file locking
if sys.platform == "win32":
    import msvcrt

    def _lock_shared(f):
        msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)

    def _lock_exclusive(f):
        msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)

    def _unlock(f):
        try:
            f.seek(0)
            msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)
        except OSError:
            pass
else:
    import fcntl

    def _lock_shared(f):
        fcntl.flock(f.fileno(), fcntl.LOCK_SH)

    def _lock_exclusive(f):
        fcntl.flock(f.fileno(), fcntl.LOCK_EX)

    def _unlock(f):
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def _parse(content, default):
    return json.loads(content) if content else default()


@contextmanager
def locked_json_write(filepath, default=list):
    """Read-modify-write a JSON file with an exclusive lock.

    Usage:
        with locked_json_write('subscribers.json') as rows:
            rows.append(new_row)
        # File is written on context exit

    The file is left untouched when the body raises.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    # "a+" creates the file without truncating a concurrent writer's data
    with open(filepath, "a+", encoding="utf-8") as f:
        _lock_exclusive(f)
        try:
            f.seek(0)
            data = _parse(f.read().strip(), default)
            yield data
            f.seek(0)
            f.truncate()
            json.dump(data, f, indent=2, default=str)
            f.flush()
        finally:
            _unlock(f)


def write_json(filepath, data):
    """Write data to a JSON file with an exclusive lock."""
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "a+", encoding="utf-8") as f:
        _lock_exclusive(f)
        try:
            f.seek(0)
            f.truncate()
            json.dump(data, f, indent=2, default=str)
            f.flush()
        finally:
            _unlock(f)


def read_json(filepath, default=list):
    """Read a JSON file with a shared lock."""
    filepath = Path(filepath)
    if not filepath.exists():
        return default()
    with open(filepath, "r", encoding="utf-8") as f:
        _lock_shared(f)
        try:
            return _parse(f.read().strip(), default)
        finally:
            _unlock(f)
