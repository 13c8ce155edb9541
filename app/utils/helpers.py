"""Small helpers for ids and timestamps."""
import threading
import time
import uuid
from datetime import datetime, timezone


def generate_doc_uuid() -> str:
    """Public document identifier shared in URLs."""
    return str(uuid.uuid4())


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with milliseconds and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Inverse of format_timestamp; also accepts offsets other than ``Z``."""
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordIdGenerator:
    """Mint integer record ids from the epoch-millisecond clock.

    Two calls within the same millisecond would collide, so each id is bumped
    past the previous one.
    """

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            candidate = int(time.time() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate
