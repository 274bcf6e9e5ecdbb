"""In-memory registry of live proctoring sessions."""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..models.session import ProctoringSession, Trigger, next_state

logger = logging.getLogger(__name__)


class SessionConflictError(Exception):
    """Raised when adding a session for a student who already has one."""

    def __init__(self, existing: ProctoringSession):
        super().__init__(f"Student {existing.stu_id} already has session {existing.psid}")
        self.existing = existing


def _format_timeout(timeout_at: float) -> str:
    return datetime.fromtimestamp(timeout_at).strftime("%m/%d/%Y %H:%M:%S")


class SessionRegistry:
    """Live proctoring sessions, keyed by session ID and by student ID.

    Both maps are guarded by one lock and always change together. Callers get
    immutable snapshots; state and timeout changes go through ``advance`` and
    ``extend_timeout``.
    """

    def __init__(self):
        self._by_id: Dict[str, ProctoringSession] = {}
        self._by_student: Dict[str, ProctoringSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_id)

    def sessions(self) -> List[ProctoringSession]:
        with self._lock:
            return list(self._by_id.values())

    def lookup(self, psid: str) -> Optional[ProctoringSession]:
        with self._lock:
            return self._by_id.get(psid)

    def lookup_by_student(self, stu_id: str) -> Optional[ProctoringSession]:
        """Return the live session for a student, or None."""
        with self._lock:
            return self._by_student.get(stu_id)

    def add(self, session: ProctoringSession) -> None:
        """Register a new session.

        Raises:
            ValueError: if the session, its ID or its student ID is missing
            SessionConflictError: if the student (or the session ID) already has a live session
        """
        if session is None:
            raise ValueError("Session may not be None")
        if not session.psid:
            raise ValueError("Session ID may not be empty")
        if not session.stu_id:
            raise ValueError("Session student ID may not be empty")

        with self._lock:
            existing = self._by_student.get(session.stu_id) or self._by_id.get(session.psid)
            if existing is not None:
                raise SessionConflictError(existing)
            self._by_id[session.psid] = session
            self._by_student[session.stu_id] = session

        logger.info(f"[SESSION ADDED] {session} timeout {_format_timeout(session.timeout_at)}")

    def remove(self, session: ProctoringSession) -> None:
        """Remove a session from both maps. Removing an absent session does nothing."""
        with self._lock:
            removed = self._remove_locked(session.psid)

        if removed is not None:
            logger.info(f"[SESSION ENDED] {removed}")

    def advance(self, psid: str, trigger: Trigger, now: float,
                timeout: float) -> Tuple[Optional[ProctoringSession], bool]:
        """Fire ``trigger`` on a live session.

        Returns the session after the attempt and whether the transition was
        allowed. A disallowed trigger leaves the session untouched. Returns
        ``(None, False)`` if the session is no longer live.
        """
        with self._lock:
            current = self._by_id.get(psid)
            if current is None:
                return None, False

            target = next_state(current.state, trigger)
            if target is None:
                return current, False

            updated = replace(
                current,
                state=target,
                timeout_at=now + timeout,
                just_started=trigger is Trigger.ASSESSMENT_STARTED,
            )
            self._store_locked(updated)

        logger.info(f"Updating timeout on session {updated} to {_format_timeout(updated.timeout_at)}")
        return updated, True

    def extend_timeout(self, psid: str, now: float, timeout: float) -> Optional[ProctoringSession]:
        """Push a live session's timeout to ``now + timeout``; returns None if it is gone."""
        with self._lock:
            current = self._by_id.get(psid)
            if current is None:
                return None
            updated = replace(current, timeout_at=now + timeout)
            self._store_locked(updated)

        logger.info(f"Updating timeout on session {updated} to {_format_timeout(updated.timeout_at)}")
        return updated

    def sweep(self, now: float) -> List[ProctoringSession]:
        """Remove every session whose timeout is earlier than ``now`` and return them."""
        with self._lock:
            expired = [s for s in self._by_id.values() if s.is_expired(now)]
            for session in expired:
                self._remove_locked(session.psid)

        for session in expired:
            logger.info(f"[SESSION TIMED OUT] {session}")
        return expired

    def _store_locked(self, session: ProctoringSession) -> None:
        self._by_id[session.psid] = session
        self._by_student[session.stu_id] = session

    def _remove_locked(self, psid: str) -> Optional[ProctoringSession]:
        current = self._by_id.pop(psid, None)
        if current is not None:
            mirrored = self._by_student.get(current.stu_id)
            if mirrored is not None and mirrored.psid == psid:
                del self._by_student[current.stu_id]
        return current
