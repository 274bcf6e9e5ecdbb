"""Inbound WebSocket messages.

Each text frame starts with a one-character opcode, optionally followed by a
payload::

    !{login-session-id}   connect
    ?                     query session state
    S{exam-id}            start a proctoring session
    P                     student photo captured
    I                     student ID captured
    E                     environment scanned
    A                     assessment started (or resumed)
    F                     assessment finished
    X{login-session-id}   abandon the session and start over
    R                     rejoin the session after a reload
    ~                     ping
    .                     keepalive
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Connect:
    login_session_id: str


@dataclass(frozen=True)
class Query:
    pass


@dataclass(frozen=True)
class Start:
    exam_id: str


@dataclass(frozen=True)
class PhotoCaptured:
    pass


@dataclass(frozen=True)
class IdCaptured:
    pass


@dataclass(frozen=True)
class EnvironmentScanned:
    pass


@dataclass(frozen=True)
class AssessmentStarted:
    pass


@dataclass(frozen=True)
class Finished:
    pass


@dataclass(frozen=True)
class StartOver:
    login_session_id: str


@dataclass(frozen=True)
class Rejoin:
    pass


@dataclass(frozen=True)
class Ping:
    pass


@dataclass(frozen=True)
class Keepalive:
    pass


@dataclass(frozen=True)
class Unknown:
    opcode: str


Message = Union[
    Connect, Query, Start, PhotoCaptured, IdCaptured, EnvironmentScanned,
    AssessmentStarted, Finished, StartOver, Rejoin, Ping, Keepalive, Unknown,
]

_NO_PAYLOAD = {
    "?": Query,
    "P": PhotoCaptured,
    "I": IdCaptured,
    "E": EnvironmentScanned,
    "A": AssessmentStarted,
    "F": Finished,
    "R": Rejoin,
    "~": Ping,
    ".": Keepalive,
}

_WITH_PAYLOAD = {
    "!": Connect,
    "S": Start,
    "X": StartOver,
}


def parse_message(text: str) -> Optional[Message]:
    """Parse a text frame into a message; returns None for an empty frame."""
    if not text:
        return None

    opcode, payload = text[0], text[1:]
    if opcode in _WITH_PAYLOAD:
        return _WITH_PAYLOAD[opcode](payload.strip())
    if opcode in _NO_PAYLOAD:
        return _NO_PAYLOAD[opcode]()
    return Unknown(opcode)
