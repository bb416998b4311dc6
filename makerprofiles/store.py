"""In-memory profile storage with a JSON snapshot on disk."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Optional

from makerprofiles.config import DATA_FILE_NAME, SAVE_DELAY_SECONDS
from makerprofiles.models import Profile

logger = logging.getLogger(__name__)


class HandleTakenError(ValueError):
    """Raised when a new profile would reuse an existing handle."""


def resolve_data_dir(preferred: Path | str) -> Path:
    """Return a writable directory for the snapshot file.

    Args:
        preferred: Deployment-specific directory to try first.

    Returns:
        ``preferred`` when it can be created and written, otherwise
        ``./data`` under the current working directory.
    """
    preferred = Path(preferred)
    try:
        preferred.mkdir(parents=True, exist_ok=True)
        if not os.access(preferred, os.W_OK):
            raise PermissionError(f"{preferred} is not writable")
        return preferred
    except OSError as exc:
        fallback = Path.cwd() / "data"
        logger.warning(f"Data dir {preferred} unusable ({exc}); using {fallback}.")
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


class ProfileStore:
    """Authoritative handle-to-profile map for the running process.

    The snapshot file is written from this map and only read back at
    startup. Every access takes the store lock because request handlers run
    on separate threads.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._profiles: dict[str, Profile] = {}
        self._lock = threading.RLock()
        self._save_lock = threading.Lock()

    @classmethod
    def in_dir(cls, data_dir: Path | str) -> "ProfileStore":
        return cls(Path(data_dir) / DATA_FILE_NAME)

    def __len__(self) -> int:
        with self._lock:
            return len(self._profiles)

    def __contains__(self, handle: str) -> bool:
        return self.has_handle(handle)

    def has_handle(self, handle: str) -> bool:
        with self._lock:
            return handle in self._profiles

    def get(self, handle: str) -> Optional[Profile]:
        with self._lock:
            return self._profiles.get(handle)

    def all(self) -> list[Profile]:
        """Return the stored profiles in insertion order."""
        with self._lock:
            return list(self._profiles.values())

    def handles(self) -> list[str]:
        with self._lock:
            return list(self._profiles)

    def add(self, profile: Profile) -> Profile:
        """Insert a new profile.

        Raises:
            HandleTakenError: If the handle is already in use.
        """
        with self._lock:
            if profile.handle in self._profiles:
                raise HandleTakenError(profile.handle)
            self._profiles[profile.handle] = profile
        return profile

    def put(self, profile: Profile) -> Profile:
        """Insert or overwrite the profile stored under its handle."""
        with self._lock:
            self._profiles[profile.handle] = profile
        return profile

    def replace_all(self, profiles: Iterable[Profile]) -> None:
        """Swap the whole collection; profiles without a handle are skipped."""
        fresh = {profile.handle: profile for profile in profiles if profile.handle}
        with self._lock:
            self._profiles = fresh

    def snapshot(self) -> list[dict]:
        """Return JSON-ready records for every stored profile."""
        return [profile.to_record() for profile in self.all()]

    def load(self) -> bool:
        """Replace the collection with the snapshot file contents.

        Returns:
            True when a snapshot was read. A missing, unreadable or malformed
            file leaves the collection empty and returns False.
        """
        self.replace_all([])
        if not self.path.exists():
            logger.info(f"No snapshot at {self.path}; starting empty.")
            return False
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error(f"Failed to load profiles from {self.path}: {exc}")
            return False
        if not isinstance(raw, list):
            logger.error(f"Snapshot {self.path} is not a JSON array; ignoring it.")
            return False

        profiles: list[Profile] = []
        for record in raw:
            if not isinstance(record, dict) or not record.get("handle"):
                continue
            try:
                profiles.append(Profile.from_record(record))
            except (TypeError, ValueError) as exc:
                logger.warning(f"Skipping malformed profile record: {exc}")
        self.replace_all(profiles)
        logger.info(f"Loaded {len(profiles)} profiles from {self.path}.")
        return True

    def save(self) -> bool:
        """Write the snapshot atomically via a temp file and rename.

        Returns:
            True on success. Failures are logged; in-memory state is kept.
        """
        with self._save_lock:
            tmp_path: Optional[Path] = None
            try:
                payload = json.dumps(self.snapshot(), ensure_ascii=False, indent=2)
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=self.path.parent,
                    prefix=f"{self.path.name}.",
                    suffix=".tmp",
                    delete=False,
                ) as handle:
                    tmp_path = Path(handle.name)
                    handle.write(payload)
                os.replace(tmp_path, self.path)
            except (OSError, TypeError, ValueError):
                logger.exception(f"Failed to save profiles to {self.path}.")
                if tmp_path is not None:
                    tmp_path.unlink(missing_ok=True)
                return False
        logger.debug(f"Saved {len(self)} profiles to {self.path}.")
        return True


class SaveScheduler:
    """Debounce snapshot writes into one flush per delay window.

    ``arm`` starts a timer only when none is pending; the flush writes
    whatever the store holds when the timer fires.
    """

    def __init__(self, flush: Callable[[], object], delay: float = SAVE_DELAY_SECONDS):
        self._flush = flush
        self.delay = delay
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._flush_lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self) -> bool:
        """Request a flush after the delay.

        Returns:
            True if this call armed the timer, False if one was already
            pending.
        """
        with self._lock:
            if self._timer is not None:
                return False
            timer = threading.Timer(self.delay, self._fire)
            timer.daemon = True
            self._timer = timer
        timer.start()
        return True

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        self._run_flush()

    def _run_flush(self) -> None:
        # One flush in flight at a time; a timer armed mid-flush waits here.
        with self._flush_lock:
            try:
                self._flush()
            except Exception:
                logger.exception("Scheduled profile save failed.")

    def flush_now(self) -> None:
        """Cancel any pending timer and flush synchronously."""
        self.cancel()
        self._run_flush()

    def cancel(self) -> None:
        """Disarm the pending timer without flushing."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
