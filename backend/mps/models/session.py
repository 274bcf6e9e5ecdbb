"""Proctoring session data models."""

import enum
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Tuple

# Characters allowed in a proctoring session ID, in lexical order
LEXICAL_CHARS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"

_PREFIX_LEN = 6


class ProctoringSessionState(str, enum.Enum):
    """States of a proctoring session."""

    AWAITING_STUDENT_PHOTO = "AWAITING_STUDENT_PHOTO"
    AWAITING_STUDENT_ID = "AWAITING_STUDENT_ID"
    ENVIRONMENT = "ENVIRONMENT"
    SHOWING_INSTRUCTIONS = "SHOWING_INSTRUCTIONS"
    ASSESSMENT = "ASSESSMENT"
    FINISHED = "FINISHED"


class Trigger(str, enum.Enum):
    """Client events that advance a session's state."""

    PHOTO_CAPTURED = "photo"
    ID_CAPTURED = "id"
    ENVIRONMENT_SCANNED = "environment"
    ASSESSMENT_STARTED = "assessment"


# trigger -> (states it may fire from, resulting state)
TRANSITIONS: Dict[Trigger, Tuple[FrozenSet[ProctoringSessionState], ProctoringSessionState]] = {
    Trigger.PHOTO_CAPTURED: (
        frozenset({ProctoringSessionState.AWAITING_STUDENT_PHOTO}),
        ProctoringSessionState.AWAITING_STUDENT_ID,
    ),
    Trigger.ID_CAPTURED: (
        frozenset({ProctoringSessionState.AWAITING_STUDENT_ID}),
        ProctoringSessionState.ENVIRONMENT,
    ),
    Trigger.ENVIRONMENT_SCANNED: (
        frozenset({ProctoringSessionState.ENVIRONMENT}),
        ProctoringSessionState.SHOWING_INSTRUCTIONS,
    ),
    Trigger.ASSESSMENT_STARTED: (
        frozenset({ProctoringSessionState.SHOWING_INSTRUCTIONS, ProctoringSessionState.ASSESSMENT}),
        ProctoringSessionState.ASSESSMENT,
    ),
}


def next_state(state: ProctoringSessionState, trigger: Trigger) -> Optional[ProctoringSessionState]:
    """Return the state reached by firing ``trigger`` in ``state``, or None if the move is not allowed."""
    sources, target = TRANSITIONS[trigger]
    if state in sources:
        return target
    return None


@dataclass(frozen=True)
class ProctoringSession:
    """Represents one student's proctoring session for one exam attempt.

    Instances are snapshots. The registry holds the live copy and replaces it
    whenever the state or timeout changes.
    """

    psid: str
    stu_id: str
    course_id: str
    exam_id: str
    timeout_at: float
    state: ProctoringSessionState = ProctoringSessionState.AWAITING_STUDENT_PHOTO
    just_started: bool = False

    def is_expired(self, now: float) -> bool:
        return self.timeout_at < now

    def to_dict(self) -> Dict[str, str]:
        """Convert session to the dictionary sent to the browser."""
        return {
            "psid": self.psid,
            "stuid": self.stu_id,
            "courseid": self.course_id,
            "examid": self.exam_id,
            "state": self.state.value,
        }

    def __str__(self) -> str:
        return f"{self.psid} ({self.stu_id}/{self.exam_id}/{self.state.value})"


def new_session_id(length: int, now: Optional[datetime] = None) -> str:
    """Generate a proctoring session ID whose lexical order is also creation order.

    The first six characters encode year, month, day, hour, minute and second
    (the year as ``year % 100 + 10`` so the ID always starts with a letter);
    the rest are random characters from the same alphabet.
    """
    if length < _PREFIX_LEN:
        raise ValueError(f"Session ID length must be at least {_PREFIX_LEN}")

    now = now or datetime.now()
    prefix = "".join(
        LEXICAL_CHARS[value]
        for value in (now.year % 100 + 10, now.month, now.day, now.hour, now.minute, now.second)
    )
    suffix = "".join(secrets.choice(LEXICAL_CHARS) for _ in range(length - _PREFIX_LEN))
    return prefix + suffix
