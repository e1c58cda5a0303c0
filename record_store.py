import threading
from contextlib import contextmanager


class RecordStore:
    """Thread-safe in-memory identity map of user records.

    Two locks: ``_lock`` guards the map itself and is only held for a single
    mutation or copy; ``_writer_lock`` is held by ``batch()`` for a whole
    ingestion so uploads run one at a time without stalling readers.
    """

    def __init__(self):
        self._records = {}
        self._lock = threading.Lock()
        self._writer_lock = threading.Lock()

    def put(self, record):
        """Insert the record, replacing any record with the same identifier."""
        with self._lock:
            self._records[record.id] = record

    def all(self):
        """Return a snapshot of every current record, in no particular order."""
        with self._lock:
            return list(self._records.values())

    @contextmanager
    def batch(self):
        """Serialize writers for the length of the block; readers are not blocked."""
        with self._writer_lock:
            yield self

    def __len__(self):
        with self._lock:
            return len(self._records)

    def __bool__(self):
        return len(self) > 0
