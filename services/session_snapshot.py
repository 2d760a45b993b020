"""Session snapshot holder — single replaceable slot for the session view.

Writers replace the whole :class:`SessionSnapshot`; there is no partial
update.  Concurrent writers are not merged: the last ``set`` wins.
Index-addressed slide updates go through :meth:`replace_slide`, which
swaps the slot atomically so two async callbacks touching different
slides do not lose each other's writes.
"""

from __future__ import annotations

import threading

from models.session import LessonSlide, SessionSnapshot


class SessionSnapshotHolder:
    """Thread-safe holder of the latest :class:`SessionSnapshot`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: SessionSnapshot | None = None
        self._version = 0

    def get(self) -> SessionSnapshot | None:
        with self._lock:
            return self._snapshot

    def set(self, snapshot: SessionSnapshot) -> int:
        """Replace the snapshot wholesale.  Returns the new version number."""
        with self._lock:
            self._snapshot = snapshot
            self._version += 1
            return self._version

    def clear(self) -> None:
        with self._lock:
            self._snapshot = None
            self._version += 1

    def replace_slide(self, index: int, slide: LessonSlide) -> SessionSnapshot | None:
        """Swap one slide by index, keeping every other field of the current snapshot."""
        with self._lock:
            if self._snapshot is None:
                return None
            self._snapshot = self._snapshot.with_slide(index, slide)
            self._version += 1
            return self._snapshot

    @property
    def version(self) -> int:
        """Monotonic counter bumped on every write (including clears)."""
        return self._version
