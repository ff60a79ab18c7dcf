"""
Entity id and slug helpers.
"""
import re
import threading
import time

_lock = threading.Lock()
_last_id = 0


def new_id() -> str:
    """
    Return a millisecond-timestamp id, strictly increasing within the process.

    Two calls in the same millisecond get consecutive values, so ids are
    never reused even when entities are created in a burst.
    """
    global _last_id
    with _lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
        return str(candidate)


def custom_page_id() -> str:
    """Id for an administrator-created page."""
    return f"custom-{new_id()}"


def slugify(name: str) -> str:
    """Lowercase a page name and join whitespace runs with '-'."""
    return re.sub(r"\s+", "-", name.strip().lower())
